import uuid
from datetime import datetime
from typing import Any, ClassVar, List, Optional

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .managers import StaffManager


class Staff(AbstractBaseUser, PermissionsMixin):
    """A member of staff: creates job codes, submits costs, approves them."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email: str = models.EmailField(unique=True)
    first_name: str = models.CharField(max_length=30)
    last_name: str = models.CharField(max_length=30)
    preferred_name: Optional[str] = models.CharField(
        max_length=30, blank=True, null=True
    )
    is_office_staff: bool = models.BooleanField(
        default=False,
        help_text="Office staff may approve or reject costing entries",
    )
    is_staff: bool = models.BooleanField(default=False)
    is_active: bool = models.BooleanField(default=True)
    date_joined: datetime = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StaffManager()

    USERNAME_FIELD: str = "email"
    REQUIRED_FIELDS: ClassVar[List[str]] = [
        "first_name",
        "last_name",
    ]

    class Meta:
        ordering = ["last_name", "first_name"]
        db_table = "workflow_staff"
        verbose_name = "Staff Member"
        verbose_name_plural = "Staff Members"

    def save(self, *args: Any, **kwargs: Any) -> None:
        # Fixtures don't carry updated_at, so auto_now alone is not enough
        self.updated_at = timezone.now()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def get_display_name(self) -> str:
        display = self.preferred_name or self.first_name

        display = display.split()[0] if display else ""

        return display

    def get_display_full_name(self) -> str:
        display_name = self.get_display_name()
        full_name = f"{display_name} {self.last_name}"
        return full_name

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ApproverScope(models.TextChoices):
    GLOBAL = "global", "Global"
    COMPANY = "company", "Company"
    BRANCH = "branch", "Branch"


class ApproverProfile(models.Model):
    """
    Where an office-staff approver may act and how much they may approve.

    Office staff without a profile keep unrestricted approval rights but are
    never picked for auto-assignment. An inactive profile suspends both.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    staff = models.OneToOneField(
        Staff, on_delete=models.CASCADE, related_name="approver_profile"
    )
    scope = models.CharField(
        max_length=10, choices=ApproverScope.choices, default=ApproverScope.GLOBAL
    )
    company_prefixes = models.JSONField(
        default=list, blank=True, help_text="Company prefixes a company approver covers"
    )
    branch_ids = models.JSONField(
        default=list, blank=True, help_text="Branches a branch approver covers"
    )
    auto_assign = models.BooleanField(
        default=False,
        help_text="Assign new submissions in scope to this approver",
    )
    max_amount_limit = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Largest entry amount (cents) this approver may approve; blank for no limit",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "accounts_approverprofile"
        ordering = ["staff__last_name", "staff__first_name"]
        verbose_name = "Approver Profile"
        verbose_name_plural = "Approver Profiles"

    def __str__(self) -> str:
        return f"{self.staff} ({self.get_scope_display()})"

    def clean(self) -> None:
        errors = {}
        for field_name in ("company_prefixes", "branch_ids"):
            value = getattr(self, field_name)
            if not isinstance(value, list) or not all(
                isinstance(item, str) and item.strip() for item in value
            ):
                errors[field_name] = "Must be a list of non-empty strings."
        if errors:
            raise ValidationError(errors)

        self.company_prefixes = [prefix.strip().upper() for prefix in self.company_prefixes]
        self.branch_ids = [branch.strip() for branch in self.branch_ids]
        if self.scope == ApproverScope.COMPANY and not self.company_prefixes:
            errors["company_prefixes"] = "A company approver needs at least one prefix."
        if self.scope == ApproverScope.BRANCH and not self.branch_ids:
            errors["branch_ids"] = "A branch approver needs at least one branch."
        if errors:
            raise ValidationError(errors)

    def covers(self, company_prefix: str, branch_id: Optional[str]) -> bool:
        if self.scope == ApproverScope.GLOBAL:
            return True
        if self.scope == ApproverScope.COMPANY:
            return (company_prefix or "").upper() in self.company_prefixes
        if self.scope == ApproverScope.BRANCH:
            return bool(branch_id) and branch_id in self.branch_ids
        return False

    def within_limit(self, amount: int) -> bool:
        return self.max_amount_limit is None or amount <= self.max_amount_limit
