"""Sale DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the API layer and the Service layer; all are
immutable (``frozen=True``).

The product variant is a discriminated union on ``kind``: a payload is
either a portability or a new line, never both.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Annotated, Literal, Optional, Self, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.clients.dtos import ClientDataDTO


def _upper(v: object) -> object:
    return v.strip().upper() if isinstance(v, str) else v


class ChipTypeEnum(StrEnum):
    SIM = "SIM"
    ESIM = "ESIM"


# ---------------------------------------------------------------------------
# Product variant
# ---------------------------------------------------------------------------


class PortabilityDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["PORTABILIDAD"] = "PORTABILIDAD"
    spn: str = Field(min_length=1, max_length=30)
    donor_company_id: UUID
    origin_market: str = Field(min_length=1, max_length=30)
    number_to_port: str = Field(min_length=6, max_length=20, pattern=r"^\+?\d+$")
    pin: Optional[str] = Field(default=None, max_length=10)
    pin_expires_at: Optional[date] = None
    porting_date: Optional[date] = None

    @field_validator("spn", "origin_market", mode="before")
    @classmethod
    def upper_codes(cls, v: object) -> object:
        return _upper(v)


class NewLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["LINEA_NUEVA"] = "LINEA_NUEVA"
    assigned_number: Optional[str] = Field(
        default=None, max_length=20, pattern=r"^\+?\d+$"
    )
    company_id: Optional[UUID] = None


ProductVariantDTO = Annotated[
    Union[PortabilityDTO, NewLineDTO],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Shipment
# ---------------------------------------------------------------------------


class ShipmentDTO(BaseModel):
    """Delivery data for a physical SIM.

    ``reference_code`` is the SAP id printed on the shipment when the
    back office already has one; otherwise the engine generates it.
    """

    model_config = ConfigDict(frozen=True)

    reference_code: Optional[str] = Field(default=None, min_length=1, max_length=30)
    recipient: str = Field(min_length=1, max_length=100)
    contact_phone: str = Field(min_length=1, max_length=20)
    alternative_phone: str = Field(default="", max_length=20)
    authorized_person: str = Field(default="", max_length=100)
    street_address: str = Field(min_length=1, max_length=150)
    house_number: str = Field(min_length=1, max_length=10)
    between_streets: str = Field(default="", max_length=150)
    neighbourhood: str = Field(default="", max_length=100)
    locality: str = Field(min_length=1, max_length=100)
    department: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=10)
    floor: str = Field(default="", max_length=10)
    apartment: str = Field(default="", max_length=10)
    geolocation: str = Field(default="", max_length=100)
    courier_comment: str = Field(default="", max_length=255)

    @field_validator("reference_code", mode="before")
    @classmethod
    def upper_reference(cls, v: object) -> object:
        return _upper(v) or None


# ---------------------------------------------------------------------------
# Sale creation
# ---------------------------------------------------------------------------


class CreateSaleDTO(BaseModel):
    """Immutable DTO for sale creation requests.

    Validates:
    - exactly one of ``client_id`` / ``client`` is present.
    - ``sds`` / ``stl`` are uppercased.

    Chip/shipment consistency is a business rule checked by the service,
    so it applies to every caller, not only the API.
    """

    model_config = ConfigDict(frozen=True)

    client_id: Optional[UUID] = None
    client: Optional[ClientDataDTO] = None
    plan_id: UUID
    promotion_id: Optional[UUID] = None
    chip_type: ChipTypeEnum
    variant: ProductVariantDTO
    shipment: Optional[ShipmentDTO] = None
    sds: Optional[str] = Field(default=None, max_length=30)
    stl: Optional[str] = Field(default=None, max_length=30)
    seller_id: str = Field(min_length=1, max_length=64)
    idempotency_key: Optional[str] = Field(default=None, max_length=255)

    @field_validator("chip_type", "sds", "stl", mode="before")
    @classmethod
    def upper_codes(cls, v: object) -> object:
        v = _upper(v)
        return v or None

    @model_validator(mode="after")
    def exactly_one_client(self) -> Self:
        if (self.client_id is None) == (self.client is None):
            raise ValueError("Provide exactly one of 'client_id' or 'client'.")
        return self


# ---------------------------------------------------------------------------
# Status transitions and comments
# ---------------------------------------------------------------------------


class TransitionRequestDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str = Field(min_length=1, max_length=30)
    description: str = Field(default="", max_length=1000)
    actor_id: str = Field(min_length=1, max_length=64)

    @field_validator("state", mode="before")
    @classmethod
    def upper_state(cls, v: object) -> object:
        return _upper(v)


class CreateCommentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=100)
    body: str = Field(min_length=1)
    author_id: str = Field(min_length=1, max_length=64)
    kind: str = Field(default="GENERAL", max_length=20)
