from django.apps import AppConfig
from django.conf import settings

from apps.workflow.scheduler import add_scheduled_job

NOTION_SYNC_MINUTES = 15


class WorkflowConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.workflow"
    verbose_name = "Workflow"

    def ready(self) -> None:
        # The workflow app schedules integration jobs; the job app schedules
        # its own maintenance jobs on the same shared scheduler.
        if settings.RUN_SCHEDULER:
            self._register_notion_jobs()

    def _register_notion_jobs(self) -> None:
        """Register Notion-related jobs with the shared scheduler."""
        from apps.workflow.scheduler_jobs import notion_costing_sync_job

        add_scheduled_job(
            notion_costing_sync_job,
            "notion_costing_sync",
            "interval",
            misfire_grace_time=NOTION_SYNC_MINUTES * 60,
            minutes=NOTION_SYNC_MINUTES,
        )
