"""Client DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2, immutable
(``frozen=True``).

- ``ClientDataDTO``: inline client data carried by a sale creation request.
- ``ClientOutputDTO``: output with masked document.
"""

from __future__ import annotations

import re
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from stdnum.ar import cuit, dni
from stdnum.exceptions import ValidationError as DocumentNumberError

if TYPE_CHECKING:
    from modules.clients.models import Client


class DocumentTypeEnum(StrEnum):
    DNI = "DNI"
    CI = "CI"
    CUIT = "CUIT"
    PASAPORTE = "PASAPORTE"


_CHECKED_DOCUMENTS = {
    DocumentTypeEnum.DNI: dni,
    DocumentTypeEnum.CUIT: cuit,
}


class ClientDataDTO(BaseModel):
    """Immutable DTO for a client supplied inline with a sale.

    Validates:
    - ``document`` is non-empty once separators are removed.
    - numeric document types (DNI, CI, CUIT) contain digits only.
    - DNI length and CUIT check digit (``python-stdnum``).
    - ``email`` is a well-formed address (Pydantic ``EmailStr``).
    """

    model_config = ConfigDict(frozen=True)

    first_name: str = Field(min_length=1, max_length=45)
    last_name: str = Field(min_length=1, max_length=45)
    document_type: DocumentTypeEnum
    document: str = Field(min_length=1, max_length=30)
    email: EmailStr
    phone: str = Field(default="", max_length=20)
    alternative_phone: str = Field(default="", max_length=20)
    birth_date: Optional[date] = None
    nationality: str = Field(default="", max_length=45)

    @field_validator("document_type", mode="before")
    @classmethod
    def upper_document_type(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("first_name", "last_name", mode="after")
    @classmethod
    def upper_names(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("document", mode="after")
    @classmethod
    def sanitize_document(cls, v: str, info: ValidationInfo) -> str:
        """Strip separators; numeric document types must be digits only."""
        document_type = info.data.get("document_type")
        if document_type == DocumentTypeEnum.PASAPORTE:
            cleaned = re.sub(r"[\s.-]", "", v).upper()
        else:
            if re.search(r"[^\d\s.-]", v):
                raise ValueError(f"Invalid {document_type or 'document'} number.")
            cleaned = re.sub(r"\D", "", v)
        if not cleaned:
            raise ValueError(f"Invalid {document_type or 'document'} number.")
        validator = _CHECKED_DOCUMENTS.get(document_type)
        if validator is not None:
            try:
                validator.validate(cleaned)
            except DocumentNumberError as exc:
                raise ValueError(f"Invalid {document_type} number: {exc.message}") from exc
        return cleaned


class ClientOutputDTO(BaseModel):
    """Immutable DTO for client data in API responses.

    The ``document`` field is **masked** (``***678``).
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    first_name: str
    last_name: str
    document_type: str
    document: str
    email: str
    phone: str

    @staticmethod
    def mask_document(raw_document: str) -> str:
        suffix = raw_document[-3:] if raw_document else "???"
        return f"***{suffix}"

    @classmethod
    def from_entity(cls, client: Client) -> ClientOutputDTO:
        return cls(
            id=client.id,
            first_name=client.first_name,
            last_name=client.last_name,
            document_type=client.document_type,
            document=cls.mask_document(client.document),
            email=client.email,
            phone=client.phone,
        )
