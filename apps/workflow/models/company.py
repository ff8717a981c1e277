from django.db import models


class Company(models.Model):
    """
    A company in the group, identified by the prefix used in job codes.

    The wider company/branch directory lives elsewhere; this table only holds
    what job-code validation needs.
    """

    prefix = models.CharField(max_length=10, primary_key=True)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "workflow_company"
        ordering = ["prefix"]
        verbose_name = "Company"
        verbose_name_plural = "Companies"

    def __str__(self) -> str:
        return f"{self.prefix} - {self.name}"
