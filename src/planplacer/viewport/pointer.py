"""
Viewport-level pointer events.

Drags must keep working when the pointer leaves the dragged marker, so move
and release handlers are registered on the viewport (this bus) rather than on
the marker, and only for as long as a drag is active.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PointerKind(str, Enum):
    MOVE = "move"
    UP = "up"


class PointerButton(IntEnum):
    LEFT = 1
    MIDDLE = 2
    RIGHT = 3


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in widget pixels, origin top-left, y growing downward."""
    client_x: float
    client_y: float
    button: PointerButton = PointerButton.LEFT


PointerHandler = Callable[[PointerEvent], None]


class PointerSubscription:
    """
    Handle for one registered handler. `close()` deregisters it; closing twice
    is harmless. Usable as a context manager.
    """
    def __init__(self, bus: PointerBus, kind: PointerKind, handler: PointerHandler) -> None:
        self._bus: Optional[PointerBus] = bus
        self.kind = kind
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._bus is not None

    def close(self) -> None:
        if self._bus is None:
            return
        self._bus._remove(self)
        self._bus = None

    def __enter__(self) -> PointerSubscription:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PointerBus:
    """Dispatches move/up events to the handlers subscribed at that moment."""
    def __init__(self) -> None:
        self._subscriptions: dict[PointerKind, list[PointerSubscription]] = {
            kind: [] for kind in PointerKind
        }

    def subscribe(self, kind: PointerKind, handler: PointerHandler) -> PointerSubscription:
        sub = PointerSubscription(self, kind, handler)
        self._subscriptions[kind].append(sub)
        return sub

    def dispatch(self, kind: PointerKind, event: PointerEvent) -> None:
        # Handlers may close their own subscription while running
        for sub in list(self._subscriptions[kind]):
            if sub.active:
                sub.handler(event)

    def listener_count(self, kind: Optional[PointerKind] = None) -> int:
        if kind is not None:
            return len(self._subscriptions[kind])
        return sum(len(subs) for subs in self._subscriptions.values())

    def close_all(self) -> None:
        """Deregister everything (viewport teardown)."""
        count = self.listener_count()
        for subs in self._subscriptions.values():
            for sub in list(subs):
                sub.close()
        if count:
            logger.debug(f"Closed {count} pointer subscription(s).")

    def _remove(self, sub: PointerSubscription) -> None:
        subs = self._subscriptions[sub.kind]
        if sub in subs:
            subs.remove(sub)
