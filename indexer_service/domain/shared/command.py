"""Service, Command/Query and handler base classes.

Services and handlers are plain dataclasses whose fields are filled in by the
DI container. Commands, queries and results are pydantic models so they can be
used directly as request/response bodies.
"""

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, dataclass_transform

from pydantic import BaseModel


class Command(BaseModel):
    """A request to change the state of the system."""


class Query(BaseModel):
    """A request to read the state of the system."""


class Result(BaseModel): ...


C = TypeVar("C", bound=Command)
Q = TypeVar("Q", bound=Query)
R = TypeVar("R", bound=Result)


@dataclass_transform()
class _DataclassMeta(ABCMeta):
    """Metaclass that applies @dataclass to every subclass of a base using it."""

    def __new__(mcs, name: str, bases: tuple[type, ...], namespace: dict[str, Any]):
        cls = super().__new__(mcs, name, bases, namespace)
        if any(isinstance(b, mcs) for b in bases):
            cls = dataclass(cls)
        return cls


class Service(metaclass=_DataclassMeta):
    """Base class for domain services. Subclasses are automatically dataclasses."""


class CommandHandler(Generic[C, R], metaclass=_DataclassMeta):
    """Base class for command handlers. Subclasses are automatically dataclasses."""

    @abstractmethod
    async def run(self, cmd: C) -> R: ...


class QueryHandler(Generic[Q, R], metaclass=_DataclassMeta):
    """Base class for query handlers. Subclasses are automatically dataclasses."""

    @abstractmethod
    async def run(self, query: Q) -> R: ...
