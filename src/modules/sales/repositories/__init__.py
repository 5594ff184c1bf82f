"""Sale repositories package."""

from modules.sales.repositories.django_repository import (
    SaleDjangoRepository,
    StatusHistoryDjangoRepository,
)
from modules.sales.repositories.interfaces import (
    ISaleRepository,
    IStatusHistoryRepository,
)

__all__ = [
    "ISaleRepository",
    "IStatusHistoryRepository",
    "SaleDjangoRepository",
    "StatusHistoryDjangoRepository",
]
