"""Generic repository interfaces (Dependency Inversion Principle).

Service-layer code depends on these abstractions, never on the Django
ORM directly.  Two contracts exist because the project has two kinds of
data: reference data the engine only reads (clients, catalog) and
aggregates it writes (sales).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IReadRepository(ABC, Generic[T]):
    """Read-only contract for reference data.

    Type parameter ``T`` represents the entity managed by the repository
    (e.g. ``Plan``, ``Client``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key, ``None`` when absent or malformed."""


class IRepository(IReadRepository[T]):
    """Read/write contract for aggregates the service layer owns."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist an entity and any domain events it collected."""
