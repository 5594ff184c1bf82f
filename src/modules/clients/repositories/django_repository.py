"""Django ORM implementation of the Client repository.

Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising; the Service Layer decides what a missing client means.
"""

from __future__ import annotations

from typing import Optional, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.clients.dtos import ClientDataDTO
from modules.clients.models import Client
from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


class ClientDjangoRepository(IClientRepository):
    """Concrete Client repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Client]:
        """Returns ``None`` for non-existent or malformed (non-UUID) ids."""
        try:
            return Client.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_document(self, document_type: str, document: str) -> Optional[Client]:
        normalized = Client.normalize_document(document_type, document)
        return Client.objects.filter(
            document_type=document_type, document=normalized
        ).first()

    def get_or_create(self, data: ClientDataDTO) -> Tuple[Client, bool]:
        """Look up by document, insert inside a savepoint otherwise.

        A concurrent insert of the same document loses on the unique
        constraint; the savepoint keeps the caller's transaction usable and
        the winner's row is returned instead.
        """
        existing = self.get_by_document(data.document_type, data.document)
        if existing:
            return existing, False

        client = Client(
            first_name=data.first_name,
            last_name=data.last_name,
            document_type=data.document_type,
            document=data.document,
            email=data.email,
            phone=data.phone,
            alternative_phone=data.alternative_phone,
            birth_date=data.birth_date,
            nationality=data.nationality,
        )
        try:
            with transaction.atomic():
                client.save()
        except IntegrityError:
            winner = self.get_by_document(data.document_type, data.document)
            if winner is None:
                raise
            logger.info("client.concurrent_create_resolved", client_id=str(winner.id))
            return winner, False

        logger.info("client.created", client_id=str(client.id))
        return client, True
