"""Client repository interface.

The sale engine resolves clients by id or by document and creates a
client only when an inline one is not on file yet.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional, Tuple

from modules.core.repositories.interfaces import IReadRepository

if TYPE_CHECKING:
    from modules.clients.dtos import ClientDataDTO
    from modules.clients.models import Client


class IClientRepository(IReadRepository["Client"]):
    """Repository contract for the Client collaborator."""

    @abstractmethod
    def get_by_document(self, document_type: str, document: str) -> Optional[Client]:
        """Retrieve a client by its document."""

    @abstractmethod
    def get_or_create(self, data: ClientDataDTO) -> Tuple[Client, bool]:
        """Return the client holding ``data``'s document, creating it if needed.

        An existing client is returned untouched: inline data never
        overwrites a client already on file.
        """
