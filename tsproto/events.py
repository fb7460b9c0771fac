"""Events fired when the tracked state of a connection changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .bookkeeping import MessageTarget
from .types import Invoker


@dataclass(frozen=True)
class ExtraInfo:
    """Additional data for some events."""

    reason: Optional[object] = None
    """Distinguishes e.g. clients that joined from ones seen after subscribing to a channel."""


@dataclass(frozen=True)
class PropertyAdded:
    """The object with this id was added."""

    id: object
    invoker: Optional[Invoker] = None
    extra: ExtraInfo = field(default_factory=ExtraInfo)


@dataclass(frozen=True)
class PropertyChanged:
    """The attribute with this id changed; ``old`` holds the previous value."""

    id: object
    old: object
    invoker: Optional[Invoker] = None
    extra: ExtraInfo = field(default_factory=ExtraInfo)


@dataclass(frozen=True)
class PropertyRemoved:
    """The object with this id was removed; ``old`` holds the removed object."""

    id: object
    old: object
    invoker: Optional[Invoker] = None
    extra: ExtraInfo = field(default_factory=ExtraInfo)


@dataclass(frozen=True)
class MessageEvent:
    """A text message or poke was received."""

    target: MessageTarget
    invoker: Invoker
    message: str


Event = Union[PropertyAdded, PropertyChanged, PropertyRemoved, MessageEvent]


def get_invoker(event: Event) -> Optional[Invoker]:
    """The client that caused the event, if known."""
    if isinstance(event, (PropertyAdded, PropertyChanged, PropertyRemoved, MessageEvent)):
        return event.invoker
    raise TypeError(f"Not an event: {event!r}")