"""Domain events for the Sales bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class SaleCreated(DomainEvent):
    """Raised once a sale and all its dependent records are persisted."""

    reference_code: str
    sale_kind: str
    chip_type: str
    final_price: str
    seller_id: str


@dataclass(frozen=True, kw_only=True)
class SaleStatusChanged(DomainEvent):
    """A new entry was appended to one of the sale's status streams."""

    machine: str
    from_state: Optional[str]
    to_state: str
    seq: int
    actor_id: str


@dataclass(frozen=True, kw_only=True)
class CommercialStatusChanged(SaleStatusChanged):
    """Raised when the commercial status changes."""


@dataclass(frozen=True, kw_only=True)
class LogisticsStatusChanged(SaleStatusChanged):
    """Raised when the logistics status changes."""
