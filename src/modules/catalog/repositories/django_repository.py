"""Django ORM implementation of the catalog repository."""

from __future__ import annotations

from typing import Optional

from django.core.exceptions import ValidationError

from modules.catalog.models import OriginCompany, Plan, Promotion
from modules.catalog.repositories.interfaces import ICatalogRepository


class CatalogDjangoRepository(ICatalogRepository):
    def get_company(self, id: str) -> Optional[OriginCompany]:
        try:
            return OriginCompany.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_plan(self, id: str) -> Optional[Plan]:
        try:
            return Plan.objects.select_related("origin_company").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_promotion(self, id: str) -> Optional[Promotion]:
        try:
            return (
                Promotion.objects.select_related("origin_company").filter(id=id).first()
            )
        except (ValueError, ValidationError):
            return None
