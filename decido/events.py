"""Decision event emitter.

Broadcasts audit events (closures, final decisions, stage changes,
creator overrides) to registered listeners: the host's history table,
the JSONL decision log, a notification relay. Workflow code emits; it
never knows who listens.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from decido.schemas.workflow import DecisionEvent

logger = logging.getLogger(__name__)

# Type alias for event listener callbacks
EventListener = Callable[[DecisionEvent], Any]


class DecisionEventEmitter:
    """Broadcasts decision events to registered listeners.

    Listeners can be sync or async callables. A listener failure is
    logged and never reaches the workflow that emitted the event: the
    state change it describes has already been persisted.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []
        self._history: list[DecisionEvent] = []

    @property
    def history(self) -> list[DecisionEvent]:
        """All events emitted so far."""
        return list(self._history)

    def add_listener(self, listener: EventListener) -> None:
        """Register a listener to receive decision events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    async def emit(self, event: DecisionEvent) -> None:
        """Dispatch one event to every listener."""
        self._history.append(event)

        for listener in self._listeners:
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(
                    "Event listener error for %s on decision %s",
                    event.type, event.decision_id,
                )

    async def emit_all(self, events: Iterable[DecisionEvent]) -> None:
        for event in events:
            await self.emit(event)
