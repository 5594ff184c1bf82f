"""Commercial catalog: origin companies, plans and promotions.

Reference data only.  The sale engine reads these rows when a sale is
created and copies what it needs (base price, discount) onto the sale, so
editing a plan or promotion later never changes an existing sale.

Business rules implemented:
- A plan and a promotion each belong to exactly one origin company.
- Discount is a whole percentage in ``[0, 100]`` (database check).
- A promotion stops being sellable after ``ends_on``.
- An inactive plan is not sellable.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Optional

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel


class OriginCompany(BaseModel):
    """Carrier whose offers are sold (and, for portability, the donor)."""

    name = models.CharField(max_length=45, unique=True)
    country = models.CharField(max_length=45, blank=True, default="")

    class Meta:
        db_table = "origin_companies"
        ordering = ["name"]
        verbose_name_plural = "origin companies"

    def save(self, *args, **kwargs) -> None:
        self.name = self.name.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class Plan(BaseModel):
    name = models.CharField(max_length=45)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    gigabytes = models.PositiveIntegerField(default=0)
    benefits = models.CharField(max_length=100, blank=True, default="")
    origin_company = models.ForeignKey(
        OriginCompany,
        on_delete=models.PROTECT,
        related_name="plans",
    )
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "plans"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gt=0),
                name="plans_price_positive",
            ),
            models.UniqueConstraint(
                fields=["origin_company", "name"],
                name="plans_company_name_uniq",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        self.name = self.name.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} (${self.price})"


class Promotion(BaseModel):
    name = models.CharField(max_length=45)
    benefits = models.CharField(max_length=45, blank=True, default="")
    origin_company = models.ForeignKey(
        OriginCompany,
        on_delete=models.PROTECT,
        related_name="promotions",
    )
    discount_percent = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    ends_on = models.DateField(null=True, blank=True, default=None)

    class Meta:
        db_table = "promotions"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(discount_percent__gte=0, discount_percent__lte=100),
                name="promotions_discount_range",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        self.name = self.name.strip().upper()
        super().save(*args, **kwargs)

    def is_expired(self, today: Optional[datetime.date] = None) -> bool:
        """``True`` once the last valid day (``ends_on``) has passed."""
        if self.ends_on is None:
            return False
        today = today or timezone.localdate()
        return self.ends_on < today

    def __str__(self) -> str:
        return f"{self.name} (-{self.discount_percent}%)"
