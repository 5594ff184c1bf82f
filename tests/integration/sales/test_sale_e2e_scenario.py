"""End-to-end sale scenario through the public API.

A portability SIM sale is created, picked up by a back-office agent and
then a second agent tries to take the same sale.
"""

from __future__ import annotations

import pytest

from modules.sales.models import CommercialStatusHistory, LogisticsStatusHistory

pytestmark = pytest.mark.integration

URL = "/api/v1/ventas/"


def test_sale_lifecycle_scenario(auth_client, sale_payload):
    created = auth_client.post(URL, sale_payload, format="json")

    assert created.status_code == 201
    sale = created.json()
    assert sale["final_price"] == "720.00"
    assert sale["commercial_status"] == "INICIAL"
    assert sale["logistics_status"] == "ASIGNADO"

    first = auth_client.patch(
        f"{URL}{sale['id']}/estado/",
        {"state": "EN_PROCESO", "actor_id": "agente-1"},
        format="json",
    )
    assert first.status_code == 200
    assert first.json()["seq"] == 2

    second = auth_client.patch(
        f"{URL}{sale['id']}/estado/",
        {"state": "EN_PROCESO", "actor_id": "agente-2"},
        format="json",
    )
    assert second.status_code == 409
    assert second.json()["type"] == "invalid_transition"

    history = auth_client.get(f"{URL}{sale['id']}/historial/").json()
    assert [e["actor_id"] for e in history["commercial"]][1:] == ["agente-1"]
    assert CommercialStatusHistory.objects.filter(sale_id=sale["id"]).count() == 2
    assert LogisticsStatusHistory.objects.filter(sale_id=sale["id"]).count() == 1


def test_sale_reaches_activation_and_delivery(auth_client, create_sale):
    sale = create_sale()
    sale_url = f"{URL}{sale['id']}"

    for state in ("EN_PROCESO", "APROBADO", "ACTIVADO"):
        response = auth_client.patch(f"{sale_url}/estado/", {"state": state}, format="json")
        assert response.status_code == 200
    for state in ("EN_TRANSITO", "INGRESADO_AGENCIA", "ENTREGADO"):
        response = auth_client.patch(f"{sale_url}/logistica/", {"state": state}, format="json")
        assert response.status_code == 200

    snapshot = auth_client.get(f"{sale_url}/").json()
    assert snapshot["commercial_status"] == "ACTIVADO"
    assert snapshot["logistics_status"] == "ENTREGADO"

    history = auth_client.get(f"{sale_url}/historial/").json()
    assert [e["seq"] for e in history["commercial"]] == [1, 2, 3, 4]
    assert [e["seq"] for e in history["logistics"]] == [1, 2, 3, 4]
