"""Base marker for outbound ports (interfaces implemented by infrastructure)."""

from typing import Protocol


class Port(Protocol):
    """Marker base class for ports. Adapters subclass the concrete port explicitly."""
