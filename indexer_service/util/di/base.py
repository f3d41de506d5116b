"""DI primitives: the service's scopes and its Provider base."""

from dishka import BaseScope, new_scope
from dishka import Provider as _DishkaProvider


class Scope(BaseScope):  # type: ignore[misc]
    """APP lives as long as the container (engine, queue, handler registry,
    worker pool). UOW is opened per HTTP request, per delivered control
    message and per liveness run, and owns the lifecycle service built on top.
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")


class Provider(_DishkaProvider):
    """Base for the service's DI providers; defaults to the UOW scope."""

    scope = Scope.UOW
