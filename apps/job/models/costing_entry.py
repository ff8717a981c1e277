import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from simple_history.models import HistoricalRecords

from apps.job.enums import (
    ApprovalStatus,
    CostCategory,
    CostType,
    EntrySource,
    PaymentStatus,
)
from apps.job.models.costing_validators import (
    validate_approval_history,
    validate_source_meta,
)


class CostingEntry(models.Model):
    """
    One recorded cost against a job code.

    Money is stored as integer cents. ``balance_payable`` is written alongside
    ``amount`` and ``amount_paid`` on every save path, never derived on read.
    Only approved entries count towards the job's rollup.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    job_code = models.ForeignKey(
        "job.JobCode", on_delete=models.CASCADE, related_name="costing_entries"
    )
    cost_type = models.CharField(max_length=4, choices=CostType.choices)
    category = models.CharField(max_length=1, choices=CostCategory.choices)

    entry_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True, default="")
    vendor = models.CharField(max_length=255, blank=True, default="")
    invoice_no = models.CharField(max_length=100, blank=True, default="")
    quantity = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal("1.000")
    )
    unit = models.CharField(max_length=20, blank=True, default="")

    unit_rate = models.BigIntegerField(default=0)
    amount = models.BigIntegerField(default=0)
    amount_paid = models.BigIntegerField(default=0)
    balance_payable = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=3, default="MYR")

    company_prefix = models.CharField(max_length=10, blank=True, default="", db_index=True)
    branch_id = models.CharField(max_length=100, blank=True, default="")

    approval_status = models.CharField(
        max_length=10,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.DRAFT,
        db_index=True,
    )
    approval_history = models.JSONField(default=list, blank=True)

    created_by = models.ForeignKey(
        "accounts.Staff",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_costing_entries",
    )
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        "accounts.Staff",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_costing_entries",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        "accounts.Staff",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rejected_costing_entries",
    )
    rejection_reason = models.TextField(blank=True, default="")
    assigned_approver = models.ForeignKey(
        "accounts.Staff",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_costing_entries",
    )
    remarks = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    source = models.CharField(
        max_length=10, choices=EntrySource.choices, default=EntrySource.MANUAL
    )
    external_id = models.CharField(max_length=255, null=True, blank=True)
    source_meta = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords(table_name="job_historicalcostingentry")

    class Meta:
        db_table = "job_costing_entry"
        ordering = ["-created_at"]
        verbose_name = "Costing Entry"
        verbose_name_plural = "Costing Entries"
        constraints = [
            models.UniqueConstraint(
                fields=["source", "external_id"],
                condition=models.Q(external_id__isnull=False),
                name="unique_costing_entry_external_id",
            ),
        ]
        indexes = [
            models.Index(
                fields=["approval_status", "submitted_at"],
                name="job_ce_status_submitted_idx",
            ),
            models.Index(
                fields=["job_code", "approval_status"],
                name="job_ce_job_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.job_code_id} {self.cost_type}/{self.category} {self.amount}"

    @property
    def is_terminal(self) -> bool:
        return self.approval_status in ApprovalStatus.terminal()

    @property
    def payment_status(self) -> str:
        if self.amount_paid <= 0:
            return PaymentStatus.UNPAID
        if self.amount_paid >= self.amount:
            return PaymentStatus.PAID
        return PaymentStatus.PARTIAL

    def clean(self) -> None:
        errors = {}
        for field_name in ("unit_rate", "amount", "amount_paid"):
            if getattr(self, field_name) < 0:
                errors[field_name] = "Amount cannot be negative."
        if self.amount_paid > self.amount:
            errors["amount_paid"] = "Amount paid cannot exceed the entry amount."
        if self.balance_payable != self.amount - self.amount_paid:
            errors["balance_payable"] = "Balance payable is out of step with amount."
        if errors:
            raise ValidationError(errors)

        validate_source_meta(self.source_meta, self.source)
        validate_approval_history(self.approval_history)
