"""Django ORM implementation of the Sale repositories.

Writes that may hit a unique constraint run inside their own savepoint
(``transaction.atomic()``), so the service can react to the
``IntegrityError`` without poisoning the surrounding transaction.

Transitions are serialized with ``select_for_update()`` on the latest
history row of ``(sale, machine)``; the two machines lock different tables
and never contend with each other.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import connection, transaction

from modules.core.outbox import record_events
from modules.sales.constants import OUTBOX_TOPIC
from modules.sales.models import (
    HISTORY_MODELS,
    Comment,
    HistoryEntry,
    NewLineRecord,
    PortabilityRecord,
    Sale,
    ShipmentRecord,
    StatusHistoryEntry,
)
from modules.sales.repositories.interfaces import (
    ISaleRepository,
    IStatusHistoryRepository,
)

logger = structlog.get_logger(__name__)

SALE_RELATIONS = (
    "client",
    "plan",
    "promotion",
    "origin_company",
    "portability__donor_company",
    "new_line__company",
    "shipment",
)


class SaleDjangoRepository(ISaleRepository):
    """Concrete Sale repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Sale]:
        """Retrieve a sale with its client, offer, variant and shipment.

        Returns ``None`` for non-existent or non-numeric ids.
        """
        try:
            return Sale.objects.select_related(*SALE_RELATIONS).filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Sale]:
        return Sale.objects.select_related(*SALE_RELATIONS).filter(idempotency_key=key).first()

    def reference_code_exists(self, code: str) -> bool:
        return Sale.objects.filter(reference_code=code).exists()

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Sale:
        sale = Sale(**data)
        with transaction.atomic():
            sale.save()
        logger.info(
            "sale.inserted",
            sale_id=sale.id,
            reference_code=sale.reference_code,
        )
        return sale

    def add_portability(self, sale: Sale, data: Dict[str, Any]) -> PortabilityRecord:
        return PortabilityRecord.objects.create(sale=sale, **data)

    def add_new_line(self, sale: Sale, data: Dict[str, Any]) -> NewLineRecord:
        return NewLineRecord.objects.create(sale=sale, **data)

    def add_shipment(self, sale: Sale, data: Dict[str, Any]) -> ShipmentRecord:
        return ShipmentRecord.objects.create(sale=sale, **data)

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Sale) -> Sale:
        """Insert a new sale, then flush its pending domain events to the outbox.

        A sale is immutable, so an already persisted sale only has its
        events written.
        """
        if entity._state.adding:
            entity.save()

        events = entity.pull_domain_events()
        record_events(events, topic=OUTBOX_TOPIC)

        logger.info("sale.saved", sale_id=entity.id, event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, sale_id: int, data: Dict[str, Any]) -> Comment:
        comment = Comment.objects.create(sale_id=sale_id, **data)
        logger.info("sale.comment_added", sale_id=sale_id, comment_id=str(comment.id))
        return comment

    def list_comments(self, sale_id: int) -> List[Comment]:
        return list(Comment.objects.filter(sale_id=sale_id).order_by("created_at", "id"))


class StatusHistoryDjangoRepository(IStatusHistoryRepository):
    """Append-only status streams backed by one table per machine."""

    @staticmethod
    def _model(machine: str) -> type[StatusHistoryEntry]:
        try:
            return HISTORY_MODELS[machine]
        except KeyError:
            raise ValueError(f"Unknown state machine {machine!r}.") from None

    @staticmethod
    def _apply_lock_timeout() -> None:
        """Bound the wait for a row lock on PostgreSQL (transaction scoped)."""
        if connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{settings.STATUS_LOCK_TIMEOUT_MS}ms"],
            )

    def lock_head(self, sale_id: int, machine: str) -> Optional[HistoryEntry]:
        model = self._model(machine)
        self._apply_lock_timeout()
        return (
            model.objects.select_for_update()
            .filter(sale_id=sale_id)
            .order_by("-seq")
            .first()
        )

    def get_head(self, sale_id: int, machine: str) -> Optional[HistoryEntry]:
        return self._model(machine).objects.filter(sale_id=sale_id).order_by("-seq").first()

    def insert(
        self,
        sale_id: int,
        machine: str,
        seq: int,
        state: str,
        description: str,
        actor_id: str,
    ) -> HistoryEntry:
        entry = self._model(machine)(
            sale_id=sale_id,
            seq=seq,
            state=state,
            description=description,
            actor_id=actor_id,
        )
        with transaction.atomic():
            entry.save()
        return entry

    def list(self, sale_id: int, machine: str) -> List[HistoryEntry]:
        return list(self._model(machine).objects.filter(sale_id=sale_id).order_by("seq"))
