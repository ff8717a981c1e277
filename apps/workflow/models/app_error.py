import logging
import uuid

from django.db import models
from django.utils import timezone


class AppError(models.Model):
    """Persistent record of an application error."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    timestamp = models.DateTimeField(auto_now_add=True)
    message = models.TextField()
    data = models.JSONField(blank=True, null=True)

    # Code location fields for filtering
    app = models.CharField(max_length=50, blank=True, null=True)
    file = models.CharField(max_length=200, blank=True, null=True)
    function = models.CharField(max_length=100, blank=True, null=True)
    severity = models.IntegerField(default=logging.ERROR)

    # Commonly filtered business context
    job_code = models.CharField(max_length=50, blank=True, null=True)
    user_id = models.UUIDField(blank=True, null=True)

    resolved = models.BooleanField(default=False)
    resolved_by = models.ForeignKey(
        "accounts.Staff", on_delete=models.SET_NULL, blank=True, null=True
    )
    resolved_timestamp = models.DateTimeField(blank=True, null=True)

    def mark_resolved(self, staff_member):
        """Mark this error as resolved by the given staff member."""
        self.resolved = True
        self.resolved_by = staff_member
        self.resolved_timestamp = timezone.now()
        self.save()

    class Meta:
        db_table = "workflow_app_error"
        ordering = ["-timestamp"]
        verbose_name = "Application Error"
        verbose_name_plural = "Application Errors"
        indexes = [
            models.Index(
                fields=["timestamp", "severity"], name="workflow_ap_timesta_5a1c7e_idx"
            ),
            models.Index(
                fields=["resolved", "timestamp"], name="workflow_ap_resolve_9d3f2b_idx"
            ),
            models.Index(fields=["app", "severity"], name="workflow_ap_app_4e8b61_idx"),
        ]

    def __str__(self) -> str:
        return f"[{self.app}] {self.message[:80]}"
