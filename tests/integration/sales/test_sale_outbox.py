"""Integration tests for OutboxEvent creation from the sale services."""

from __future__ import annotations

import pytest

from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.models import EventStatus, OutboxEvent
from modules.sales.dtos import CreateSaleDTO
from modules.sales.exceptions import InvalidTransition
from modules.sales.repositories.django_repository import (
    SaleDjangoRepository,
    StatusHistoryDjangoRepository,
)
from modules.sales.services import SaleCreationCoordinator, StatusTransitionEngine

pytestmark = pytest.mark.integration


@pytest.fixture()
def engine():
    return StatusTransitionEngine(
        sale_repository=SaleDjangoRepository(),
        history_repository=StatusHistoryDjangoRepository(),
    )


@pytest.fixture()
def coordinator(engine):
    return SaleCreationCoordinator(
        sale_repository=SaleDjangoRepository(),
        client_repository=ClientDjangoRepository(),
        catalog_repository=CatalogDjangoRepository(),
        transition_engine=engine,
    )


@pytest.fixture()
def dto(sale_payload):
    return CreateSaleDTO.model_validate({**sale_payload, "seller_id": "vendedor-1"})


def test_create_sale_writes_one_outbox_event(coordinator, dto):
    sale = coordinator.create_sale(dto).sale

    events = OutboxEvent.objects.filter(aggregate_id=str(sale.id))
    assert events.count() == 1
    event = events.get()
    assert event.event_type == "SaleCreated"
    assert event.topic == "sales"
    assert event.status == EventStatus.PENDING
    assert event.payload["reference_code"] == sale.reference_code
    assert event.payload["final_price"] == "720.00"
    assert event.payload["seller_id"] == "vendedor-1"


def test_transitions_write_status_events(coordinator, engine, dto):
    sale = coordinator.create_sale(dto).sale

    engine.transition(sale.id, "COMMERCIAL", "EN_PROCESO", actor_id="bo-1")
    engine.transition(sale.id, "LOGISTICS", "EN_TRANSITO", actor_id="courier")

    types = list(
        OutboxEvent.objects.filter(aggregate_id=str(sale.id))
        .order_by("created_at", "id")
        .values_list("event_type", flat=True)
    )
    assert sorted(types) == [
        "CommercialStatusChanged",
        "LogisticsStatusChanged",
        "SaleCreated",
    ]
    logistics = OutboxEvent.objects.get(event_type="LogisticsStatusChanged")
    assert logistics.payload["from_state"] == "ASIGNADO"
    assert logistics.payload["to_state"] == "EN_TRANSITO"
    assert logistics.payload["actor_id"] == "courier"


def test_rejected_transition_writes_no_event(coordinator, engine, dto):
    sale = coordinator.create_sale(dto).sale

    with pytest.raises(InvalidTransition):
        engine.transition(sale.id, "COMMERCIAL", "ACTIVADO", actor_id="bo-1")

    assert not OutboxEvent.objects.filter(event_type="CommercialStatusChanged").exists()


def test_idempotent_replay_writes_no_event(coordinator, sale_payload):
    keyed = CreateSaleDTO.model_validate(
        {**sale_payload, "seller_id": "vendedor-1", "idempotency_key": "outbox-key"}
    )
    coordinator.create_sale(keyed)
    coordinator.create_sale(keyed)

    assert OutboxEvent.objects.filter(event_type="SaleCreated").count() == 1


def test_events_are_published_after_commit(
    coordinator, dto, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        sale = coordinator.create_sale(dto).sale

    assert len(callbacks) == 1
    event = OutboxEvent.objects.get(aggregate_id=str(sale.id))
    assert event.status == EventStatus.PUBLISHED
    assert event.processed_at is not None
