"""Append-only audit trail of sale status changes."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.db import DatabaseError, IntegrityError

from modules.sales.exceptions import ConcurrentTransitionConflict, PersistenceFailure

if TYPE_CHECKING:
    from modules.sales.models import HistoryEntry
    from modules.sales.repositories.interfaces import IStatusHistoryRepository

logger = structlog.get_logger(__name__)


class AuditTrailRecorder:
    """Appends history entries. Exposes no update or delete operation.

    ``seq`` is assigned here as ``head.seq + 1`` (``1`` for an empty
    stream).  It is the authoritative order of a stream: wall-clock
    ``created_at`` may disagree across writers.
    """

    def __init__(self, history_repository: IStatusHistoryRepository) -> None:
        self._history_repo = history_repository

    def append(
        self,
        sale_id: int,
        machine: str,
        new_state: str,
        description: str,
        actor_id: str,
    ) -> HistoryEntry:
        """Write the next entry of ``(sale_id, machine)``.

        Raises:
            ConcurrentTransitionConflict: another writer took the same ``seq``.
            PersistenceFailure: any other storage fault; nothing was written.
        """
        log = logger.bind(sale_id=sale_id, machine=machine, state=new_state)
        try:
            head = self._history_repo.get_head(sale_id, machine)
            seq = head.seq + 1 if head else 1
            entry = self._history_repo.insert(
                sale_id=sale_id,
                machine=machine,
                seq=seq,
                state=new_state,
                description=description,
                actor_id=actor_id,
            )
        except IntegrityError as exc:
            log.warning("sale.history_seq_conflict")
            raise ConcurrentTransitionConflict(
                f"Another {machine} transition for sale {sale_id} was recorded first."
            ) from exc
        except DatabaseError as exc:
            log.error("sale.history_write_failed", error=str(exc))
            raise PersistenceFailure(
                f"Could not record {machine} history for sale {sale_id}."
            ) from exc

        log.info("sale.history_appended", seq=entry.seq, actor_id=actor_id)
        return entry

    def history(self, sale_id: int, machine: str) -> List[HistoryEntry]:
        return self._history_repo.list(sale_id, machine)

    def current_state(self, sale_id: int, machine: str) -> Optional[str]:
        """State of the latest entry, read fresh on every call."""
        head = self._history_repo.get_head(sale_id, machine)
        return head.state if head else None
