"""Sale aggregate and its dependent records.

Business rules implemented:
- A sale is immutable once created; cancellation is a commercial status,
  never a delete.
- Prices are pinned at creation: ``base_price``, ``discount_percent`` and
  ``final_price`` are copies, not references to the catalog.
- Exactly one product variant (portability or new line) per sale, and at
  most one shipment record, both created with the sale.
- Status history is append-only, one stream per machine, ordered by a
  per-sale sequence number that is unique per ``(sale, seq)``.
- The current status is the latest history entry; it is never stored on
  the sale itself.
- ``reference_code`` (SAP-like id) and ``idempotency_key`` are unique.
"""

from __future__ import annotations

import secrets
from typing import Union

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import AppendOnlyModel
from modules.sales.constants import (
    REFERENCE_CODE_PREFIX,
    ChipType,
    CommercialStatus,
    LogisticsStatus,
    SaleKind,
    StatusMachine,
)
from shared.domain.events import DomainEventMixin


class Sale(DomainEventMixin, AppendOnlyModel):
    """Sale aggregate root.

    Uses a numeric id (``/ventas/{id}``) instead of the UUIDv7 key of the
    other models.  ``idempotency_key`` is nullable: only API requests that
    send an ``Idempotency-Key`` header carry one.
    """

    id = models.BigAutoField(primary_key=True)
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    plan = models.ForeignKey(
        "catalog.Plan",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    promotion = models.ForeignKey(
        "catalog.Promotion",
        on_delete=models.PROTECT,
        related_name="sales",
        null=True,
        blank=True,
    )
    origin_company = models.ForeignKey(
        "catalog.OriginCompany",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    seller_id = models.CharField(max_length=64)
    chip_type = models.CharField(max_length=4, choices=ChipType.choices)
    sale_kind = models.CharField(max_length=12, choices=SaleKind.choices)
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_percent = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    reference_code = models.CharField(max_length=30, unique=True)
    sds = models.CharField(max_length=30, null=True, blank=True, default=None)  # noqa: DJ01
    stl = models.CharField(max_length=30, null=True, blank=True, default=None)  # noqa: DJ01
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "sales"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="sales_created_idx"),
            models.Index(fields=["seller_id"], name="sales_seller_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(discount_percent__gte=0, discount_percent__lte=100),
                name="sales_discount_range",
            ),
            models.CheckConstraint(
                check=models.Q(base_price__gt=0),
                name="sales_base_price_positive",
            ),
            models.CheckConstraint(
                check=models.Q(final_price__lte=models.F("base_price")),
                name="sales_final_price_not_above_base",
            ),
        ]

    @staticmethod
    def generate_reference_code() -> str:
        """Generate an external reference code: ``SAP-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"{REFERENCE_CODE_PREFIX}-{now:%Y%m%d}-{suffix}"

    @property
    def has_shipment(self) -> bool:
        return ShipmentRecord.objects.filter(sale_id=self.pk).exists()

    def __str__(self) -> str:
        return f"Venta {self.pk} [{self.reference_code}]"


# ---------------------------------------------------------------------------
# Product variant (tagged union: exactly one of the two per sale)
# ---------------------------------------------------------------------------


class PortabilityRecord(AppendOnlyModel):
    """Number ported in from a donor carrier."""

    sale = models.OneToOneField(
        Sale,
        on_delete=models.PROTECT,
        related_name="portability",
    )
    spn = models.CharField(max_length=30)
    donor_company = models.ForeignKey(
        "catalog.OriginCompany",
        on_delete=models.PROTECT,
        related_name="ported_numbers",
    )
    origin_market = models.CharField(max_length=30)
    number_to_port = models.CharField(max_length=20)
    pin = models.CharField(max_length=10, null=True, blank=True, default=None)  # noqa: DJ01
    pin_expires_at = models.DateField(null=True, blank=True, default=None)
    porting_date = models.DateField(null=True, blank=True, default=None)

    class Meta:
        db_table = "sale_portabilities"

    def __str__(self) -> str:
        return f"Portabilidad {self.number_to_port} (venta {self.sale_id})"


class NewLineRecord(AppendOnlyModel):
    """Brand-new line, optionally with its assigned number."""

    sale = models.OneToOneField(
        Sale,
        on_delete=models.PROTECT,
        related_name="new_line",
    )
    assigned_number = models.CharField(  # noqa: DJ01
        max_length=20, null=True, blank=True, default=None
    )
    company = models.ForeignKey(
        "catalog.OriginCompany",
        on_delete=models.PROTECT,
        related_name="new_lines",
    )

    class Meta:
        db_table = "sale_new_lines"

    def __str__(self) -> str:
        return f"Línea nueva {self.assigned_number or '-'} (venta {self.sale_id})"


# ---------------------------------------------------------------------------
# Shipment
# ---------------------------------------------------------------------------


class ShipmentRecord(AppendOnlyModel):
    """Delivery address and contact for a physical SIM."""

    sale = models.OneToOneField(
        Sale,
        on_delete=models.PROTECT,
        related_name="shipment",
    )
    recipient = models.CharField(max_length=100)
    contact_phone = models.CharField(max_length=20)
    alternative_phone = models.CharField(max_length=20, blank=True, default="")
    authorized_person = models.CharField(max_length=100, blank=True, default="")
    street_address = models.CharField(max_length=150)
    house_number = models.CharField(max_length=10)
    between_streets = models.CharField(max_length=150, blank=True, default="")
    neighbourhood = models.CharField(max_length=100, blank=True, default="")
    locality = models.CharField(max_length=100)
    department = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=10)
    floor = models.CharField(max_length=10, blank=True, default="")
    apartment = models.CharField(max_length=10, blank=True, default="")
    geolocation = models.CharField(max_length=100, blank=True, default="")
    courier_comment = models.CharField(max_length=255, blank=True, default="")
    deadline = models.DateTimeField()

    class Meta:
        db_table = "sale_shipments"

    def __str__(self) -> str:
        return f"Envío venta {self.sale_id} -> {self.locality}"


# ---------------------------------------------------------------------------
# Status history (append-only, one stream per machine)
# ---------------------------------------------------------------------------


class StatusHistoryEntry(AppendOnlyModel):
    """Abstract history entry shared by both state machines.

    ``seq`` starts at 1 and grows by exactly one per entry of the same
    sale; it (not ``created_at``) orders the stream.
    """

    machine: str

    seq = models.PositiveIntegerField()
    description = models.TextField(blank=True, default="")
    actor_id = models.CharField(max_length=64)

    class Meta:
        abstract = True
        ordering = ["seq"]

    def __str__(self) -> str:
        return f"{self.machine} venta {self.sale_id} #{self.seq}: {self.state}"


class CommercialStatusHistory(StatusHistoryEntry):
    machine = StatusMachine.COMMERCIAL

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        related_name="commercial_history",
    )
    state = models.CharField(max_length=30, choices=CommercialStatus.choices)

    class Meta(StatusHistoryEntry.Meta):
        db_table = "sale_commercial_history"
        constraints = [
            models.UniqueConstraint(
                fields=["sale", "seq"],
                name="commercial_history_sale_seq_uniq",
            ),
            models.CheckConstraint(
                check=models.Q(seq__gte=1),
                name="commercial_history_seq_positive",
            ),
        ]


class LogisticsStatusHistory(StatusHistoryEntry):
    machine = StatusMachine.LOGISTICS

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        related_name="logistics_history",
    )
    state = models.CharField(max_length=30, choices=LogisticsStatus.choices)

    class Meta(StatusHistoryEntry.Meta):
        db_table = "sale_logistics_history"
        constraints = [
            models.UniqueConstraint(
                fields=["sale", "seq"],
                name="logistics_history_sale_seq_uniq",
            ),
            models.CheckConstraint(
                check=models.Q(seq__gte=1),
                name="logistics_history_seq_positive",
            ),
        ]


HISTORY_MODELS: dict[str, type[StatusHistoryEntry]] = {
    StatusMachine.COMMERCIAL: CommercialStatusHistory,
    StatusMachine.LOGISTICS: LogisticsStatusHistory,
}

HistoryEntry = Union[CommercialStatusHistory, LogisticsStatusHistory]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class Comment(AppendOnlyModel):
    """Free-text note on a sale; outside both state machines."""

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        related_name="comments",
    )
    title = models.CharField(max_length=100)
    body = models.TextField()
    author_id = models.CharField(max_length=64)
    kind = models.CharField(max_length=20, default="GENERAL")

    class Meta:
        db_table = "sale_comments"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Comentario venta {self.sale_id}: {self.title}"
