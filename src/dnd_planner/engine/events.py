"""Synchronous notification channel for proficiency changes.

The engine emits a ``ProficiencyNotice`` after each mutation so a UI can
re-render. Delivery happens before the mutating call returns. A handler that
raises is logged and skipped; it never undoes or interrupts the mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dnd_planner.models.constants import Origin, ProficiencyType


logger = logging.getLogger(__name__)


class ProficiencyEventName(str, Enum):
    ADDED = "proficiency:added"
    REMOVED_BY_SOURCE = "proficiency:removedBySource"
    REFUNDED = "proficiency:refunded"
    OPTIONAL_CONFIGURED = "proficiency:optionalConfigured"
    OPTIONAL_CLEARED = "proficiency:optionalCleared"
    OPTIONAL_SELECTED = "proficiency:optionalSelected"
    OPTIONAL_DESELECTED = "proficiency:optionalDeselected"


@dataclass(frozen=True, slots=True)
class ProficiencyNotice:
    """Payload for every proficiency event; unused fields stay None."""

    event: ProficiencyEventName
    character: Any
    type: ProficiencyType | None = None
    name: str | None = None
    source: str | None = None
    origin: Origin | None = None
    allowed: int | None = None
    options: tuple[str, ...] = ()
    refunded_origins: tuple[Origin, ...] = ()
    removed: dict[ProficiencyType, list[str]] = field(default_factory=dict)


Handler = Callable[[ProficiencyNotice], None]


class EventBus:
    """Per-engine listener registry (no process-wide instance)."""

    __slots__ = ("_listeners", "_once_listeners")

    def __init__(self) -> None:
        self._listeners: dict[ProficiencyEventName, list[Handler]] = {}
        self._once_listeners: dict[ProficiencyEventName, list[Handler]] = {}

    def on(self, event: ProficiencyEventName, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler for {event.value} must be callable")
        self._listeners.setdefault(event, []).append(handler)

    def once(self, event: ProficiencyEventName, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler for {event.value} must be callable")
        self._once_listeners.setdefault(event, []).append(handler)

    def off(self, event: ProficiencyEventName, handler: Handler) -> None:
        handlers = self._listeners.get(event)
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._listeners[event]

    def clear(self, event: ProficiencyEventName | None = None) -> None:
        """Drop listeners for one event, or all of them."""
        if event is None:
            self._listeners.clear()
            self._once_listeners.clear()
            return
        self._listeners.pop(event, None)
        self._once_listeners.pop(event, None)

    def listener_count(self, event: ProficiencyEventName) -> int:
        return len(self._listeners.get(event, ())) + len(
            self._once_listeners.get(event, ())
        )

    def emit(self, notice: ProficiencyNotice) -> None:
        event = notice.event
        handlers = list(self._listeners.get(event, ()))
        handlers += self._once_listeners.pop(event, [])
        for handler in handlers:
            try:
                handler(notice)
            except Exception:
                logger.exception("Handler for %s failed", event.value)
