"""Catalog repository interface.

The sale engine only ever reads the catalog, so the contract exposes
look-ups and nothing else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.catalog.models import OriginCompany, Plan, Promotion


class ICatalogRepository(ABC):
    """Read-only access to origin companies, plans and promotions.

    Every method returns ``None`` for missing or malformed ids; the caller
    decides which domain error that becomes.
    """

    @abstractmethod
    def get_company(self, id: str) -> Optional[OriginCompany]:
        """Retrieve an origin company by id."""

    @abstractmethod
    def get_plan(self, id: str) -> Optional[Plan]:
        """Retrieve a plan (with its company) by id."""

    @abstractmethod
    def get_promotion(self, id: str) -> Optional[Promotion]:
        """Retrieve a promotion (with its company) by id."""
