"""Sale repository interfaces.

Two contracts, matching the two kinds of writes the engine makes:

- ``ISaleRepository``: the Sale aggregate (sale row, variant, shipment,
  comments) plus its domain events.
- ``IStatusHistoryRepository``: the append-only status streams, with the
  per-``(sale, machine)`` lock that serializes transitions.

The Service Layer depends exclusively on these contracts (DIP).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.sales.models import (
        Comment,
        HistoryEntry,
        NewLineRecord,
        PortabilityRecord,
        Sale,
        ShipmentRecord,
    )


class ISaleRepository(IRepository["Sale"]):
    """Repository contract for the Sale aggregate root."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Sale]:
        """Retrieve a sale by the client-supplied idempotency key."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Sale:
        """Insert the sale row inside a savepoint.

        A unique-constraint violation (reference code, idempotency key)
        raises ``IntegrityError`` and leaves the caller's transaction usable.
        """

    @abstractmethod
    def reference_code_exists(self, code: str) -> bool:
        """Whether a sale already carries ``code``."""

    @abstractmethod
    def add_portability(self, sale: Sale, data: Dict[str, Any]) -> PortabilityRecord:
        """Insert the portability variant of ``sale``."""

    @abstractmethod
    def add_new_line(self, sale: Sale, data: Dict[str, Any]) -> NewLineRecord:
        """Insert the new-line variant of ``sale``."""

    @abstractmethod
    def add_shipment(self, sale: Sale, data: Dict[str, Any]) -> ShipmentRecord:
        """Insert the shipment record of ``sale``."""

    @abstractmethod
    def add_comment(self, sale_id: int, data: Dict[str, Any]) -> Comment:
        """Append a comment to a sale."""

    @abstractmethod
    def list_comments(self, sale_id: int) -> List[Comment]:
        """Comments of a sale, oldest first."""


class IStatusHistoryRepository(ABC):
    """Storage of the append-only status streams."""

    @abstractmethod
    def lock_head(self, sale_id: int, machine: str) -> Optional[HistoryEntry]:
        """Lock the latest entry of ``(sale_id, machine)`` until commit.

        Returns ``None`` when the stream is empty.  Blocks while another
        transaction holds the lock and raises ``OperationalError`` when the
        lock timeout expires.
        """

    @abstractmethod
    def get_head(self, sale_id: int, machine: str) -> Optional[HistoryEntry]:
        """Latest entry (highest ``seq``) of the stream, or ``None``."""

    @abstractmethod
    def insert(
        self,
        sale_id: int,
        machine: str,
        seq: int,
        state: str,
        description: str,
        actor_id: str,
    ) -> HistoryEntry:
        """Insert one entry; ``IntegrityError`` when ``(sale, seq)`` exists."""

    @abstractmethod
    def list(self, sale_id: int, machine: str) -> List[HistoryEntry]:
        """Whole stream ordered by ``seq`` ascending."""
