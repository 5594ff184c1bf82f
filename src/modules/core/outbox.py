"""Transactional Outbox: write events with the data, publish after commit.

``record_events`` is called by repositories inside the unit of work that
produced the events.  Each event becomes an ``OutboxEvent`` row and an
``on_commit`` callback that hands it to the in-process event bus.  When the
transaction rolls back, the rows vanish and the callbacks never run.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from functools import partial
from typing import Any, Dict, Iterable, List
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


def record_events(events: Iterable[DomainEvent], topic: str) -> List[OutboxEvent]:
    """Persist *events* to the outbox and schedule their publication."""
    rows: List[OutboxEvent] = []
    for event in events:
        row = OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event_payload(event),
            topic=topic,
        )
        rows.append(row)
        transaction.on_commit(partial(dispatch_event, row.pk, event))
    return rows


def dispatch_event(outbox_id: UUID, event: DomainEvent) -> None:
    """Publish a committed event and record the outcome on its outbox row.

    Runs after commit, so a handler failure cannot undo the business change;
    it is logged and left as ``FAILED`` for inspection or replay.
    """
    row = OutboxEvent.objects.filter(pk=outbox_id).first()
    if row is None:
        logger.warning("outbox.row_missing", outbox_id=str(outbox_id))
        return

    log = logger.bind(
        outbox_id=str(outbox_id),
        event_type=event.event_name,
        aggregate_id=str(event.aggregate_id),
    )
    try:
        event_bus.publish(event)
    except Exception as exc:
        log.exception("outbox.publish_failed")
        row.mark_as_failed(str(exc))
        return

    row.mark_as_published()
    log.info("outbox.published")


def serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
