"""Unit tests for the Sale aggregate models.

Covers:
- Reference code format.
- Immutability of sales and history rows.
- ``(sale, seq)`` uniqueness and price constraints at the database level.
"""

from __future__ import annotations

import re
from decimal import Decimal

import pytest
from django.db import IntegrityError
from freezegun import freeze_time

from modules.core.models import ImmutableRecordError
from modules.sales.constants import ChipType, CommercialStatus, SaleKind
from modules.sales.models import (
    CommercialStatusHistory,
    LogisticsStatusHistory,
    Sale,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def sale(client_record, plan, company):
    return Sale.objects.create(
        client=client_record,
        plan=plan,
        origin_company=company,
        seller_id="seller-1",
        chip_type=ChipType.ESIM,
        sale_kind=SaleKind.LINEA_NUEVA,
        base_price=Decimal("900.00"),
        discount_percent=0,
        final_price=Decimal("900.00"),
        reference_code="SAP-20250101-000001",
    )


class TestReferenceCode:
    @freeze_time("2025-06-15 12:00:00")
    def test_format(self):
        code = Sale.generate_reference_code()
        assert re.fullmatch(r"SAP-20250615-[0-9A-F]{6}", code)

    def test_codes_differ(self):
        codes = {Sale.generate_reference_code() for _ in range(20)}
        assert len(codes) > 1


class TestSaleImmutability:
    def test_numeric_id(self, sale):
        assert isinstance(sale.id, int)

    def test_update_rejected(self, sale):
        sale.seller_id = "otro"
        with pytest.raises(ImmutableRecordError):
            sale.save()

    def test_delete_rejected(self, sale):
        with pytest.raises(ImmutableRecordError):
            sale.delete()

    def test_bulk_update_rejected(self, sale):
        with pytest.raises(ImmutableRecordError):
            Sale.objects.filter(pk=sale.pk).update(final_price=Decimal("1.00"))

    def test_reference_code_unique(self, sale, client_record, plan, company):
        with pytest.raises(IntegrityError):
            Sale.objects.create(
                client=client_record,
                plan=plan,
                origin_company=company,
                seller_id="seller-2",
                chip_type=ChipType.ESIM,
                sale_kind=SaleKind.LINEA_NUEVA,
                base_price=Decimal("900.00"),
                final_price=Decimal("900.00"),
                reference_code=sale.reference_code,
            )

    def test_final_price_cannot_exceed_base(self, client_record, plan, company):
        with pytest.raises(IntegrityError):
            Sale.objects.create(
                client=client_record,
                plan=plan,
                origin_company=company,
                seller_id="seller-3",
                chip_type=ChipType.ESIM,
                sale_kind=SaleKind.LINEA_NUEVA,
                base_price=Decimal("900.00"),
                final_price=Decimal("901.00"),
                reference_code="SAP-20250101-000002",
            )

    def test_without_shipment(self, sale):
        assert sale.has_shipment is False


class TestStatusHistory:
    def test_seq_unique_per_sale(self, sale):
        CommercialStatusHistory.objects.create(
            sale=sale, seq=1, state=CommercialStatus.INICIAL, actor_id="a"
        )
        with pytest.raises(IntegrityError):
            CommercialStatusHistory.objects.create(
                sale=sale, seq=1, state=CommercialStatus.EN_PROCESO, actor_id="b"
            )

    def test_streams_have_separate_sequences(self, sale):
        CommercialStatusHistory.objects.create(
            sale=sale, seq=1, state=CommercialStatus.INICIAL, actor_id="a"
        )
        LogisticsStatusHistory.objects.create(sale=sale, seq=1, state="ASIGNADO", actor_id="a")
        assert sale.commercial_history.count() == 1
        assert sale.logistics_history.count() == 1

    def test_entries_are_append_only(self, sale):
        entry = CommercialStatusHistory.objects.create(
            sale=sale, seq=1, state=CommercialStatus.INICIAL, actor_id="a"
        )
        entry.state = CommercialStatus.CANCELADO
        with pytest.raises(ImmutableRecordError):
            entry.save()
        with pytest.raises(ImmutableRecordError):
            entry.delete()

    def test_str(self, sale):
        entry = CommercialStatusHistory.objects.create(
            sale=sale, seq=1, state=CommercialStatus.INICIAL, actor_id="a"
        )
        assert "#1" in str(entry)
        assert "INICIAL" in str(entry)
