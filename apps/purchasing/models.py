import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models

logger = logging.getLogger(__name__)


class PurchaseOrder(models.Model):
    """
    A purchase order raised against a supplier.

    Purchasing owns this record. Job costing only reads it, apart from
    rewriting ``job_code`` when a job code is re-keyed.
    """

    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("submitted", "Submitted to Supplier"),
        ("partially_received", "Partially Received"),
        ("fully_received", "Fully Received"),
        ("cancelled", "Cancelled"),
        ("deleted", "Deleted"),
    ]

    # Statuses that no longer count towards a job's PO value
    UNLINKED_STATUSES = ("cancelled", "deleted")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    po_number = models.CharField(max_length=50, unique=True)
    supplier_name = models.CharField(max_length=255, blank=True, default="")
    job_code = models.CharField(
        max_length=50,
        blank=True,
        default="",
        db_index=True,
        help_text="Job code this PO is raised against (source of truth for links)",
    )
    total_amount = models.BigIntegerField(default=0, help_text="Total in cents")
    currency = models.CharField(max_length=3, default="MYR")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")
    order_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "purchasing_purchaseorder"
        ordering = ["-created_at"]
        verbose_name = "Purchase Order"
        verbose_name_plural = "Purchase Orders"

    def __str__(self) -> str:
        return self.po_number


class CostInvoice(models.Model):
    """A supplier invoice (PI) booked against a job code."""

    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("received", "Received"),
        ("approved", "Approved"),
        ("paid", "Paid"),
        ("cancelled", "Cancelled"),
        ("deleted", "Deleted"),
    ]

    UNLINKED_STATUSES = ("cancelled", "deleted")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice_number = models.CharField(max_length=50, unique=True)
    supplier_name = models.CharField(max_length=255, blank=True, default="")
    job_code = models.CharField(
        max_length=50,
        blank=True,
        default="",
        db_index=True,
        help_text="Job code this invoice is booked against (source of truth for links)",
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cost_invoices",
    )
    total_amount = models.BigIntegerField(default=0, help_text="Subtotal in cents")
    grand_total = models.BigIntegerField(
        null=True, blank=True, help_text="Total including tax in cents"
    )
    currency = models.CharField(max_length=3, default="MYR")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="received")
    invoice_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "purchasing_costinvoice"
        ordering = ["-created_at"]
        verbose_name = "Cost Invoice"
        verbose_name_plural = "Cost Invoices"

    def __str__(self) -> str:
        return self.invoice_number

    @property
    def rollup_amount(self) -> int:
        """Grand total when known, otherwise the subtotal."""
        if self.grand_total is not None:
            return self.grand_total
        return self.total_amount


class PurchaseOrderLine(models.Model):
    """A line item on a PO."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="po_lines"
    )
    description = models.CharField(max_length=200, blank=True, default="")
    item_code = models.CharField(max_length=50, blank=True, default="")
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal("1"))
    unit = models.CharField(max_length=20, blank=True, default="")
    unit_cost = models.BigIntegerField(default=0, help_text="Unit price in cents")
    line_total = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Line total in cents when the supplier quotes one",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "purchasing_purchaseorderline"
        ordering = ["created_at", "id"]
        verbose_name = "Purchase Order Line"
        verbose_name_plural = "Purchase Order Lines"

    def __str__(self) -> str:
        return f"{self.purchase_order_id} {self.description or self.item_code}"

    @property
    def total(self) -> int:
        """Quoted line total, otherwise quantity x unit cost rounded to the cent."""
        if self.line_total is not None:
            return self.line_total
        return int(
            (Decimal(self.quantity) * self.unit_cost).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        )
