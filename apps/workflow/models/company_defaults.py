from typing import Any

from django.core.exceptions import ValidationError
from django.db import models


class CompanyDefaults(models.Model):
    """Singleton holding business configuration for costing and approvals."""

    company_name = models.CharField(max_length=255, primary_key=True)
    default_currency = models.CharField(max_length=3, default="MYR")

    # Approval queue priority thresholds
    approval_high_days = models.PositiveIntegerField(
        default=3, help_text="Entries waiting longer than this are high priority"
    )
    approval_urgent_days = models.PositiveIntegerField(
        default=7, help_text="Entries waiting longer than this are urgent"
    )
    approval_high_amount = models.BigIntegerField(
        default=500000, help_text="Amount in cents above which an entry is high priority"
    )
    approval_urgent_amount = models.BigIntegerField(
        default=1000000, help_text="Amount in cents above which an entry is urgent"
    )

    # Notion costing database sync
    notion_costing_database_id = models.CharField(max_length=64, blank=True, null=True)
    notion_sync_enabled = models.BooleanField(default=False)
    last_notion_sync = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "workflow_companydefaults"
        verbose_name = "Company Defaults"
        verbose_name_plural = "Company Defaults"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if (
            not CompanyDefaults.objects.filter(pk=self.pk).exists()
            and CompanyDefaults.objects.exists()
        ):
            raise ValidationError("There can be only one CompanyDefaults instance")
        super().save(*args, **kwargs)

    @classmethod
    def get_instance(cls) -> "CompanyDefaults":
        """Return the singleton, raising DoesNotExist if it was never configured."""
        return cls.objects.get()

    def __str__(self) -> str:
        return self.company_name
