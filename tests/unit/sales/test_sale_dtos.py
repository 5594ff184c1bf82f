"""Unit tests for Sale DTOs (Pydantic v2)."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.sales.dtos import (
    CreateCommentDTO,
    CreateSaleDTO,
    NewLineDTO,
    PortabilityDTO,
    ShipmentDTO,
    TransitionRequestDTO,
)

pytestmark = pytest.mark.unit


def _sale_data(**overrides):
    data = {
        "client_id": str(uuid4()),
        "plan_id": str(uuid4()),
        "chip_type": "esim",
        "variant": {"kind": "LINEA_NUEVA"},
        "seller_id": "seller-1",
    }
    data.update(overrides)
    return data


class TestCreateSaleDTO:
    def test_minimal_payload(self):
        dto = CreateSaleDTO.model_validate(_sale_data())
        assert dto.chip_type == "ESIM"
        assert isinstance(dto.variant, NewLineDTO)
        assert dto.shipment is None
        assert dto.promotion_id is None

    def test_variant_discriminated_by_kind(self):
        dto = CreateSaleDTO.model_validate(
            _sale_data(
                variant={
                    "kind": "PORTABILIDAD",
                    "spn": "spn1",
                    "donor_company_id": str(uuid4()),
                    "origin_market": "prepago",
                    "number_to_port": "+541155551234",
                }
            )
        )
        assert isinstance(dto.variant, PortabilityDTO)
        assert dto.variant.spn == "SPN1"
        assert dto.variant.origin_market == "PREPAGO"

    def test_unknown_variant_kind(self):
        with pytest.raises(ValidationError):
            CreateSaleDTO.model_validate(_sale_data(variant={"kind": "RENOVACION"}))

    def test_portability_requires_its_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateSaleDTO.model_validate(_sale_data(variant={"kind": "PORTABILIDAD"}))
        missing = {err["loc"][-1] for err in exc_info.value.errors()}
        assert {"spn", "donor_company_id", "origin_market", "number_to_port"} <= missing

    def test_number_to_port_digits_only(self):
        with pytest.raises(ValidationError):
            PortabilityDTO(
                spn="S",
                donor_company_id=uuid4(),
                origin_market="M",
                number_to_port="11-5555-1234",
            )

    def test_both_client_forms_rejected(self):
        client = {
            "first_name": "Ana",
            "last_name": "Gomez",
            "document_type": "DNI",
            "document": "30111222",
            "email": "ana@example.com",
        }
        with pytest.raises(ValidationError, match="exactly one"):
            CreateSaleDTO.model_validate(_sale_data(client=client))

    def test_no_client_rejected(self):
        with pytest.raises(ValidationError, match="exactly one"):
            CreateSaleDTO.model_validate(_sale_data(client_id=None))

    def test_blank_codes_become_none(self):
        dto = CreateSaleDTO.model_validate(_sale_data(sds="  ", stl="stl9"))
        assert dto.sds is None
        assert dto.stl == "STL9"

    def test_invalid_chip_type(self):
        with pytest.raises(ValidationError):
            CreateSaleDTO.model_validate(_sale_data(chip_type="USIM"))

    def test_seller_required(self):
        with pytest.raises(ValidationError):
            CreateSaleDTO.model_validate(_sale_data(seller_id=""))


class TestShipmentDTO:
    def _data(self, **overrides):
        data = {
            "recipient": "Ana Gomez",
            "contact_phone": "1140000000",
            "street_address": "Av. Corrientes",
            "house_number": "1234",
            "locality": "CABA",
            "department": "CABA",
            "postal_code": "1043",
        }
        data.update(overrides)
        return data

    def test_reference_code_uppercased(self):
        assert ShipmentDTO(**self._data(reference_code=" sap-1 ")).reference_code == "SAP-1"

    def test_blank_reference_code_is_none(self):
        assert ShipmentDTO(**self._data(reference_code="")).reference_code is None

    def test_address_required(self):
        with pytest.raises(ValidationError):
            ShipmentDTO(**self._data(street_address=""))


class TestTransitionAndCommentDTOs:
    def test_state_uppercased(self):
        dto = TransitionRequestDTO(state=" en_proceso ", actor_id="bo")
        assert dto.state == "EN_PROCESO"
        assert dto.description == ""

    def test_transition_requires_actor(self):
        with pytest.raises(ValidationError):
            TransitionRequestDTO(state="EN_PROCESO", actor_id="")

    def test_comment_defaults_kind(self):
        dto = CreateCommentDTO(title="Llamado", body="Cliente no atiende", author_id="bo")
        assert dto.kind == "GENERAL"

    def test_comment_requires_body(self):
        with pytest.raises(ValidationError):
            CreateCommentDTO(title="Llamado", body="", author_id="bo")
