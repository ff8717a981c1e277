import uuid
from decimal import Decimal
from typing import Any, Dict

from django.db import models
from simple_history.models import HistoricalRecords

from apps.job.enums import (
    CostCategory,
    CostingStatus,
    JobCodeSource,
    JobCodeStatus,
    JobNature,
    VarianceStatus,
)
from apps.job.models.costing_validators import validate_costing_summary


def empty_category_totals() -> Dict[str, int]:
    return {code: 0 for code in CostCategory.values}


def empty_costing_summary() -> Dict[str, Any]:
    """Costing summary for a job with no approved entries."""
    return {
        "pre_cost": {"total": 0, "by_category": empty_category_totals()},
        "post_cost": {"total": 0, "by_category": empty_category_totals()},
        "total_paid": 0,
        "total_payable": 0,
        "pending_approval_count": 0,
        "pending_approval_amount": 0,
        "variance": {"amount": 0, "status": VarianceStatus.ON_BUDGET.value},
    }


class JobCode(models.Model):
    """
    A unit of work identified by ``{company_prefix}-{job_nature_code}{running_number}``.

    ``code`` is the identity used everywhere outside the database. The UUID
    primary key only exists so a re-key touches one column.

    All money fields are integer cents. Derived fields (costing_summary, the
    pending counters, link caches, PO/PI totals and margin) are written only by
    the costing services and the financial rollup, never by hand.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)

    company_prefix = models.CharField(max_length=10, db_index=True)
    job_nature_code = models.CharField(max_length=2, choices=JobNature.choices)
    running_number = models.PositiveIntegerField()

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    client_id = models.CharField(max_length=100, blank=True, default="")
    client_name = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(
        max_length=20, choices=JobCodeStatus.choices, default=JobCodeStatus.ACTIVE
    )
    currency = models.CharField(max_length=3, default="MYR")
    quoted_value = models.BigIntegerField(
        default=0, help_text="Quoted/contract value in cents"
    )

    # Directory scoping (owned by company/branch management)
    company_id = models.CharField(max_length=100, blank=True, default="")
    branch_id = models.CharField(max_length=100, blank=True, default="")

    source = models.CharField(
        max_length=10, choices=JobCodeSource.choices, default=JobCodeSource.MANUAL
    )
    crm_job_id = models.CharField(max_length=100, blank=True, default="")
    notion_project_id = models.CharField(max_length=100, blank=True, default="")

    costing_status = models.CharField(
        max_length=20,
        choices=CostingStatus.choices,
        default=CostingStatus.NOT_STARTED,
    )
    costing_summary = models.JSONField(default=empty_costing_summary)
    pending_approval_count = models.IntegerField(default=0)
    pending_approval_amount = models.BigIntegerField(default=0)

    linked_pos = models.JSONField(default=list, blank=True)
    linked_pis = models.JSONField(default=list, blank=True)
    total_po_value = models.BigIntegerField(default=0)
    total_pi_value = models.BigIntegerField(default=0)
    gross_margin = models.BigIntegerField(default=0)
    gross_margin_percentage = models.DecimalField(
        max_digits=9, decimal_places=2, default=Decimal("0.00")
    )

    created_by = models.ForeignKey(
        "accounts.Staff",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_job_codes",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords(table_name="job_historicaljobcode")

    class Meta:
        db_table = "job_code"
        ordering = ["-created_at"]
        verbose_name = "Job Code"
        verbose_name_plural = "Job Codes"
        constraints = [
            models.UniqueConstraint(
                fields=["company_prefix", "job_nature_code", "running_number"],
                name="unique_job_code_running_number",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.title}"

    def is_editable(self) -> bool:
        """CRM-sourced job codes are owned by the CRM and read-only here."""
        return self.source != JobCodeSource.CRM

    def clean(self) -> None:
        validate_costing_summary(self.costing_summary)


class JobCodeCounter(models.Model):
    """
    Last issued running number per (company prefix, job nature).

    Only the code registry mutates this row, and only through an atomic
    ``F()`` increment under a row lock.
    """

    company_prefix = models.CharField(max_length=10)
    job_nature_code = models.CharField(max_length=2, choices=JobNature.choices)
    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "job_code_counter"
        ordering = ["company_prefix", "job_nature_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company_prefix", "job_nature_code"],
                name="unique_job_code_counter",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.company_prefix}-{self.job_nature_code}: {self.last_number}"
