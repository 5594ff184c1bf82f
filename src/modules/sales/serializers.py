"""Sale DRF serializers (output only).

Input is validated by the Pydantic DTOs in ``dtos.py``; these serializers
only render models for API responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import serializers

from modules.clients.dtos import ClientOutputDTO
from modules.sales.constants import SaleKind
from modules.sales.models import (
    CommercialStatusHistory,
    Comment,
    NewLineRecord,
    PortabilityRecord,
    Sale,
    ShipmentRecord,
)


class PortabilitySerializer(serializers.ModelSerializer):
    kind = serializers.SerializerMethodField()
    donor_company = serializers.CharField(source="donor_company.name", read_only=True)

    class Meta:
        model = PortabilityRecord
        fields = [
            "kind",
            "spn",
            "donor_company_id",
            "donor_company",
            "origin_market",
            "number_to_port",
            "pin_expires_at",
            "porting_date",
        ]
        read_only_fields = fields

    def get_kind(self, obj: PortabilityRecord) -> str:
        return SaleKind.PORTABILIDAD


class NewLineSerializer(serializers.ModelSerializer):
    kind = serializers.SerializerMethodField()
    company = serializers.CharField(source="company.name", read_only=True)

    class Meta:
        model = NewLineRecord
        fields = ["kind", "assigned_number", "company_id", "company"]
        read_only_fields = fields

    def get_kind(self, obj: NewLineRecord) -> str:
        return SaleKind.LINEA_NUEVA


class ShipmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShipmentRecord
        exclude = ["id", "sale"]


class HistoryEntrySerializer(serializers.ModelSerializer):
    """Read serializer for either status stream (same shape)."""

    class Meta:
        model = CommercialStatusHistory
        fields = ["seq", "state", "description", "actor_id", "created_at"]
        read_only_fields = fields


class CommentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Comment
        fields = ["id", "title", "body", "author_id", "kind", "created_at"]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """Read serializer for a sale with its variant, shipment and statuses.

    Current statuses are not sale columns: the view passes them in the
    serializer context after reading the history.
    """

    client = serializers.SerializerMethodField()
    plan = serializers.CharField(source="plan.name", read_only=True)
    promotion = serializers.CharField(source="promotion.name", read_only=True, default=None)
    origin_company = serializers.CharField(source="origin_company.name", read_only=True)
    variant = serializers.SerializerMethodField()
    shipment = serializers.SerializerMethodField()
    commercial_status = serializers.SerializerMethodField()
    logistics_status = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "reference_code",
            "sale_kind",
            "chip_type",
            "client",
            "plan_id",
            "plan",
            "promotion_id",
            "promotion",
            "origin_company_id",
            "origin_company",
            "base_price",
            "discount_percent",
            "final_price",
            "sds",
            "stl",
            "seller_id",
            "variant",
            "shipment",
            "commercial_status",
            "logistics_status",
            "created_at",
        ]
        read_only_fields = fields

    def get_client(self, obj: Sale) -> Dict[str, Any]:
        return ClientOutputDTO.from_entity(obj.client).model_dump(mode="json")

    def get_variant(self, obj: Sale) -> Optional[Dict[str, Any]]:
        if obj.sale_kind == SaleKind.PORTABILIDAD:
            record = getattr(obj, "portability", None)
            return PortabilitySerializer(record).data if record else None
        record = getattr(obj, "new_line", None)
        return NewLineSerializer(record).data if record else None

    def get_shipment(self, obj: Sale) -> Optional[Dict[str, Any]]:
        record = getattr(obj, "shipment", None)
        return ShipmentSerializer(record).data if record else None

    def get_commercial_status(self, obj: Sale) -> Optional[str]:
        return self.context.get("commercial_status")

    def get_logistics_status(self, obj: Sale) -> Optional[str]:
        return self.context.get("logistics_status")
