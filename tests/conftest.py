from __future__ import annotations

from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model

from rest_framework.test import APIClient

from modules.catalog.models import OriginCompany, Plan, Promotion
from modules.clients.models import Client, DocumentType

User = get_user_model()

SALES_URL = "/api/v1/ventas/"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def seller():
    return User.objects.create_user(username="vendedor", password="testpass123")


@pytest.fixture()
def auth_client(seller):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=seller)
    return client


# ---------------------------------------------------------------------------
# Catalog and clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def company():
    return OriginCompany.objects.create(name="Compania A", country="AR")


@pytest.fixture()
def other_company():
    return OriginCompany.objects.create(name="Compania B", country="AR")


@pytest.fixture()
def plan(company):
    return Plan.objects.create(
        name="Plan 15GB",
        price=Decimal("900.00"),
        gigabytes=15,
        origin_company=company,
    )


@pytest.fixture()
def promotion(company):
    return Promotion.objects.create(
        name="Bienvenida",
        origin_company=company,
        discount_percent=20,
    )


@pytest.fixture()
def client_record():
    return Client.objects.create(
        first_name="Ana",
        last_name="Gomez",
        document_type=DocumentType.DNI,
        document="30111222",
        email="ana@example.com",
    )


# ---------------------------------------------------------------------------
# Sale payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def shipment_payload():
    return {
        "recipient": "Ana Gomez",
        "contact_phone": "1140000000",
        "street_address": "Av. Corrientes",
        "house_number": "1234",
        "locality": "CABA",
        "department": "CABA",
        "postal_code": "1043",
    }


@pytest.fixture()
def sale_payload(client_record, plan, promotion, company, shipment_payload):
    """Portability SIM sale: plan 900.00 with a 20% promotion."""
    return {
        "client_id": str(client_record.id),
        "plan_id": str(plan.id),
        "promotion_id": str(promotion.id),
        "chip_type": "SIM",
        "variant": {
            "kind": "PORTABILIDAD",
            "spn": "spn001",
            "donor_company_id": str(company.id),
            "origin_market": "prepago",
            "number_to_port": "1155551234",
            "pin": "4321",
        },
        "shipment": shipment_payload,
    }


@pytest.fixture()
def create_sale(auth_client, sale_payload):
    """Create a sale through the API and return the response body."""

    def _create(**overrides):
        response = auth_client.post(SALES_URL, {**sale_payload, **overrides}, format="json")
        assert response.status_code == 201, response.json()
        return response.json()

    return _create
