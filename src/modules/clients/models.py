"""Client model.

Business rules implemented:
- A client is identified by ``(document_type, document)``; the pair is unique.
- Names and document type are stored uppercased, email lowercased.
- Sensitive data (document) masked in ``__str__`` and logs.
"""

from __future__ import annotations

import re

from django.db import models

from modules.core.models import BaseModel


class DocumentType(models.TextChoices):
    DNI = "DNI", "DNI"
    CI = "CI", "Cédula de identidad"
    CUIT = "CUIT", "CUIT"
    PASAPORTE = "PASAPORTE", "Pasaporte"


class Client(BaseModel):
    """Person a sale is made to.

    ``document`` is stored without separators for numeric document types
    (``12.345.678`` and ``12345678`` are the same DNI).  Passports keep
    their letters.
    """

    first_name = models.CharField(max_length=45)
    last_name = models.CharField(max_length=45)
    document_type = models.CharField(max_length=10, choices=DocumentType.choices)
    document = models.CharField(max_length=30)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, default="")
    alternative_phone = models.CharField(max_length=20, blank=True, default="")
    birth_date = models.DateField(null=True, blank=True, default=None)
    nationality = models.CharField(max_length=45, blank=True, default="")

    class Meta:
        db_table = "clients"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["document_type", "document"],
                name="clients_document_uniq",
            ),
        ]

    @staticmethod
    def normalize_document(document_type: str, value: str) -> str:
        """Strip separators; numeric document types keep digits only."""
        if document_type == DocumentType.PASAPORTE:
            return re.sub(r"[\s.-]", "", value).upper()
        return re.sub(r"\D", "", value)

    def save(self, *args, **kwargs) -> None:
        self.first_name = self.first_name.strip().upper()
        self.last_name = self.last_name.strip().upper()
        self.email = self.email.strip().lower()
        self.nationality = self.nationality.strip().upper()
        if self.document:
            self.document = self.normalize_document(self.document_type, self.document)
        super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __str__(self) -> str:
        suffix = self.document[-3:] if self.document else "???"
        return f"{self.full_name} ({self.document_type}: ***{suffix})"
