"""
core.domain.events — Entity change notifications.

A small in-process listener registry that lets apps react to rows
being inserted or updated without importing each other.  Producers
call ``EntityChangeBus.emit`` from inside their service transaction;
handlers run only after that transaction commits, so a rolled-back
mutation never triggers a listener.

Listeners are registered from each app's ``AppConfig.ready()``::

    from core.domain.events import EntityChangeBus, EventType

    EntityChangeBus.on_entity_changed(
        "reports.Report", EventType.INSERT, FileScanService.handle_report_created,
    )

Handler contract
----------------
``handler(event: EntityChanged) -> None``.  A handler that raises is
logged and skipped; the remaining handlers still run and the producer
never sees the error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from django.db import transaction

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class EntityChanged:
    """Payload handed to every listener."""

    table: str
    event_type: EventType
    entity_id: Any
    changes: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[EntityChanged], None]


class EntityChangeBus:
    """
    Registry of ``(table, event_type) → [handler, ...]``.

    All methods are classmethods; the registry is process-wide and is
    populated once at app start-up.
    """

    _handlers: dict[tuple[str, EventType], list[Handler]] = {}

    @classmethod
    def on_entity_changed(cls, table: str, event_type: EventType | str, handler: Handler) -> None:
        """Register ``handler`` for changes to ``table`` of ``event_type``."""
        key = (table, EventType(event_type))
        handlers = cls._handlers.setdefault(key, [])
        if handler not in handlers:
            handlers.append(handler)

    @classmethod
    def remove_listener(cls, table: str, event_type: EventType | str, handler: Handler) -> None:
        handlers = cls._handlers.get((table, EventType(event_type)), [])
        if handler in handlers:
            handlers.remove(handler)

    @classmethod
    def emit(
        cls,
        table: str,
        event_type: EventType | str,
        entity_id: Any,
        changes: dict[str, Any] | None = None,
    ) -> None:
        """
        Schedule every matching handler to run after the current
        transaction commits (immediately when not in a transaction).
        """
        event = EntityChanged(
            table=table,
            event_type=EventType(event_type),
            entity_id=entity_id,
            changes=changes or {},
        )
        for handler in list(cls._handlers.get((table, event.event_type), [])):
            transaction.on_commit(lambda h=handler: cls._dispatch(h, event))

    @staticmethod
    def _dispatch(handler: Handler, event: EntityChanged) -> None:
        try:
            handler(event)
        except Exception:
            logger.exception(
                "Change listener %s failed for %s %s id=%s",
                getattr(handler, "__qualname__", handler),
                event.table,
                event.event_type.value,
                event.entity_id,
            )
