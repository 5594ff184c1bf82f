"""Performance regression tests — constant query count (N+1 prevention).

Verifies that the sale read endpoints execute a bounded number of SQL
queries regardless of how long the status histories grow, proving that
``select_related`` is applied and current statuses come from the stream
heads only.
"""

from __future__ import annotations

import pytest

URL = "/api/v1/ventas/"


@pytest.fixture()
def busy_sale(auth_client, create_sale):
    """A sale with several entries in both status streams."""
    sale = create_sale()
    for state in ("EN_PROCESO", "PENDIENTE_DOCUMENTACION", "EN_PROCESO", "APROBADO"):
        auth_client.patch(f"{URL}{sale['id']}/estado/", {"state": state}, format="json")
    for state in ("EN_TRANSITO", "NO_ENTREGADO", "EN_TRANSITO"):
        auth_client.patch(f"{URL}{sale['id']}/logistica/", {"state": state}, format="json")
    return sale


@pytest.mark.django_db
class TestSaleRetrieveQueryCount:
    def test_retrieve_query_count_is_constant(
        self, auth_client, busy_sale, django_assert_max_num_queries
    ):
        """GET /api/v1/ventas/{id}/ should use bounded queries.

        Expected queries (bounded):
        1. SELECT sale with JOINs (client, offer, variant, shipment)
        2. SELECT commercial head
        3. SELECT logistics head
        """
        with django_assert_max_num_queries(4):
            response = auth_client.get(f"{URL}{busy_sale['id']}/")

        assert response.status_code == 200
        assert response.data["commercial_status"] == "APROBADO"
        assert response.data["logistics_status"] == "EN_TRANSITO"


@pytest.mark.django_db
class TestSaleHistoryQueryCount:
    def test_history_query_count_is_constant(
        self, auth_client, busy_sale, django_assert_max_num_queries
    ):
        """GET /api/v1/ventas/{id}/historial/ reads each stream once."""
        with django_assert_max_num_queries(4):
            response = auth_client.get(f"{URL}{busy_sale['id']}/historial/")

        assert response.status_code == 200
        assert len(response.data["commercial"]) == 5
        assert len(response.data["logistics"]) == 4
