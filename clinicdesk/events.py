"""
In-process change notifications for the ClinicDesk record collections.

Each persisted collection has one named event. Whoever saves a collection
publishes its event; views and services that care subscribe and re-load the whole
collection when it fires. Events carry no payload and there is no diffing.

Dispatch is synchronous and follows subscription order. A bus lives inside one
service instance (one Streamlit session), so writes made in another session are
only seen after that session reloads.
"""
# clinicdesk/events.py

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

PATIENTS_UPDATED = 'patientsUpdated'
APPOINTMENTS_UPDATED = 'appointmentsUpdated'
LAB_TESTS_UPDATED = 'labTestsUpdated'
USERS_UPDATED = 'usersUpdated'

ALL_EVENTS = (PATIENTS_UPDATED, APPOINTMENTS_UPDATED, LAB_TESTS_UPDATED, USERS_UPDATED)


class ChangeBus:
    """Publish/subscribe channel for collection change events."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Callable[[], None]]] = defaultdict(list)

    def subscribe(self, event: str, handler: Callable[[], None]) -> None:
        """Registers `handler` to be called with no arguments whenever `event` is published.

        Subscribing the same handler twice is a no-op.
        """
        if handler not in self._handlers[event]:
            self._handlers[event].append(handler)
            logger.debug("Handler %r subscribed to %s", handler, event)

    def unsubscribe(self, event: str, handler: Callable[[], None]) -> bool:
        """Removes a handler.

        Returns:
            True if the handler was subscribed, False otherwise.
        """
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Handler %r unsubscribed from %s", handler, event)
            return True
        return False

    def publish(self, event: str) -> int:
        """Calls every handler subscribed to `event`.

        A handler that raises is logged and skipped; the rest still run.

        Returns:
            The number of handlers that completed successfully.
        """
        # Copy so handlers may unsubscribe themselves while being dispatched.
        handlers = list(self._handlers.get(event, []))
        delivered = 0
        for handler in handlers:
            try:
                handler()
                delivered += 1
            except Exception:
                logger.exception("Change handler %r failed for %s", handler, event)
        return delivered

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def clear(self, event: str | None = None) -> None:
        """Drops the handlers of one event, or of all events."""
        if event:
            self._handlers.pop(event, None)
        else:
            self._handlers.clear()
