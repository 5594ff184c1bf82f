"""Status transition concurrency integration test.

Proves that ``SELECT FOR UPDATE`` on the head of a status stream
serializes concurrent transitions of the same sale and machine.

Scenarios:
- 8 threads request ``INICIAL -> EN_PROCESO`` at once: exactly one wins,
  the rest get ``InvalidTransition`` (or a retryable conflict).
- Threads request different successors: the stream stays gap-free and
  every consecutive pair is a legal edge.

Uses ``TransactionTestCase`` so each thread sees committed data.  SQLite
ignores row locks, so the suite only runs against PostgreSQL.
"""

from __future__ import annotations

import logging
import unittest
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

import django
from django.db import connection
from django.test import TransactionTestCase

from modules.catalog.models import OriginCompany, Plan
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.models import Client, DocumentType
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.sales.constants import COMMERCIAL_TRANSITIONS
from modules.sales.dtos import CreateSaleDTO
from modules.sales.exceptions import ConcurrentTransitionConflict, InvalidTransition
from modules.sales.models import CommercialStatusHistory
from modules.sales.repositories.django_repository import (
    SaleDjangoRepository,
    StatusHistoryDjangoRepository,
)
from modules.sales.services import SaleCreationCoordinator, StatusTransitionEngine

logger = logging.getLogger(__name__)

NUM_WORKERS = 8


def _engine() -> StatusTransitionEngine:
    return StatusTransitionEngine(
        sale_repository=SaleDjangoRepository(),
        history_repository=StatusHistoryDjangoRepository(),
    )


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class TestTransitionConcurrency(TransactionTestCase):
    """Prove serialized transitions under concurrent load."""

    def setUp(self):
        company = OriginCompany.objects.create(name="Concurrencia", country="AR")
        plan = Plan.objects.create(
            name="Plan 15GB",
            price=Decimal("900.00"),
            gigabytes=15,
            origin_company=company,
        )
        client = Client.objects.create(
            first_name="Ana",
            last_name="Gomez",
            document_type=DocumentType.DNI,
            document="30111222",
            email="concurrency@example.com",
        )
        coordinator = SaleCreationCoordinator(
            sale_repository=SaleDjangoRepository(),
            client_repository=ClientDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
            transition_engine=_engine(),
        )
        dto = CreateSaleDTO.model_validate(
            {
                "client_id": client.id,
                "plan_id": plan.id,
                "chip_type": "ESIM",
                "variant": {"kind": "LINEA_NUEVA", "company_id": company.id},
                "seller_id": "vendedor",
            }
        )
        self.sale = coordinator.create_sale(dto).sale

    def _transition_in_thread(self, thread_id: int, state: str) -> str:
        """Attempt a transition. Returns 'success', 'invalid' or 'conflict'."""
        django.db.connections.close_all()
        try:
            _engine().transition(
                self.sale.id,
                "COMMERCIAL",
                state,
                actor_id=f"agente-{thread_id}",
            )
            return "success"
        except InvalidTransition:
            logger.warning("Thread %d: InvalidTransition (expected)", thread_id)
            return "invalid"
        except ConcurrentTransitionConflict:
            logger.warning("Thread %d: ConcurrentTransitionConflict", thread_id)
            return "conflict"
        finally:
            django.db.connections.close_all()

    def _run(self, states: list[str]) -> list[str]:
        results = []
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [
                pool.submit(self._transition_in_thread, i, state)
                for i, state in enumerate(states)
            ]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def _stream(self) -> list[tuple[int, str]]:
        return list(
            CommercialStatusHistory.objects.filter(sale_id=self.sale.id)
            .order_by("seq")
            .values_list("seq", "state")
        )

    def test_same_transition_wins_once(self):
        """8 threads request EN_PROCESO: exactly one entry is appended."""
        results = self._run(["EN_PROCESO"] * NUM_WORKERS)

        self.assertEqual(results.count("success"), 1, results)
        self.assertEqual(
            results.count("invalid") + results.count("conflict"),
            NUM_WORKERS - 1,
        )
        self.assertEqual(self._stream(), [(1, "INICIAL"), (2, "EN_PROCESO")])

    def test_mixed_transitions_keep_stream_legal(self):
        """Every persisted edge is legal and ``seq`` has no gaps."""
        states = ["EN_PROCESO", "PENDIENTE_DOCUMENTACION", "CANCELADO", "RECHAZADO"] * 2
        results = self._run(states)

        stream = self._stream()
        self.assertGreaterEqual(results.count("success"), 1)
        self.assertEqual(len(stream), results.count("success") + 1)
        self.assertEqual([seq for seq, _ in stream], list(range(1, len(stream) + 1)))
        for (_, previous), (_, current) in zip(stream, stream[1:]):
            self.assertIn(
                current,
                COMMERCIAL_TRANSITIONS[previous],
                f"Illegal edge persisted: {previous} -> {current}",
            )
