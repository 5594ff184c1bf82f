"""Event handlers for Sales domain events.

Handlers run after commit (see ``modules.core.outbox``) and only log;
integrations (notifications, SAP sync) subscribe here.
"""

from __future__ import annotations

import structlog

from modules.sales.events import (
    CommercialStatusChanged,
    LogisticsStatusChanged,
    SaleCreated,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class SaleCreatedHandler(IEventHandler[SaleCreated]):
    def handle(self, event: SaleCreated) -> None:
        logger.info(
            "sale.event.created",
            sale_id=str(event.aggregate_id),
            reference_code=event.reference_code,
            sale_kind=event.sale_kind,
            final_price=event.final_price,
        )


class CommercialStatusChangedHandler(IEventHandler[CommercialStatusChanged]):
    def handle(self, event: CommercialStatusChanged) -> None:
        logger.info(
            "sale.event.commercial_status_changed",
            sale_id=str(event.aggregate_id),
            from_state=event.from_state,
            to_state=event.to_state,
            seq=event.seq,
        )


class LogisticsStatusChangedHandler(IEventHandler[LogisticsStatusChanged]):
    def handle(self, event: LogisticsStatusChanged) -> None:
        logger.info(
            "sale.event.logistics_status_changed",
            sale_id=str(event.aggregate_id),
            from_state=event.from_state,
            to_state=event.to_state,
            seq=event.seq,
        )


sale_created_handler = SaleCreatedHandler()
commercial_status_changed_handler = CommercialStatusChangedHandler()
logistics_status_changed_handler = LogisticsStatusChangedHandler()
