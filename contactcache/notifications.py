"""Address-book change notifications with disposable listener handles."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .models import Card

log = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"


class Subscription:
    """Handle returned by ``ContactEvents.on_*``; call ``remove()`` to stop
    receiving events. Removing twice is a no-op."""

    def __init__(self, events: ContactEvents, kind: str, callback: Callable) -> None:
        self._events = events
        self.kind = kind
        self.callback = callback
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self._events._remove(self.kind, self.callback)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc) -> None:
        self.remove()


class ContactEvents:
    """Synchronous fan-out of contact created/updated/deleted events.

    Created and updated listeners receive the ``Card``; deleted listeners
    receive ``(parent_id, contact_id)``.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {CREATED: [], UPDATED: [], DELETED: []}

    def on_created(self, callback: Callable[[Card], None]) -> Subscription:
        return self._add(CREATED, callback)

    def on_updated(self, callback: Callable[[Card], None]) -> Subscription:
        return self._add(UPDATED, callback)

    def on_deleted(self, callback: Callable[[str | None, str], None]) -> Subscription:
        return self._add(DELETED, callback)

    def listener_count(self, kind: str) -> int:
        return len(self._listeners[kind])

    def emit_created(self, card: Card) -> None:
        self._emit(CREATED, card)

    def emit_updated(self, card: Card) -> None:
        self._emit(UPDATED, card)

    def emit_deleted(self, parent_id: str | None, contact_id: str) -> None:
        self._emit(DELETED, parent_id, contact_id)

    def _add(self, kind: str, callback: Callable) -> Subscription:
        self._listeners[kind].append(callback)
        return Subscription(self, kind, callback)

    def _remove(self, kind: str, callback: Callable) -> None:
        try:
            self._listeners[kind].remove(callback)
        except ValueError:
            pass

    def _emit(self, kind: str, *args) -> None:
        # Snapshot so listeners may unsubscribe while being notified
        for callback in list(self._listeners[kind]):
            try:
                callback(*args)
            except Exception:
                log.exception("Error in contact %s listener", kind)
