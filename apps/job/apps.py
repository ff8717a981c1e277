from django.apps import AppConfig
from django.conf import settings

from apps.workflow.scheduler import add_scheduled_job


class JobConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.job"

    def ready(self) -> None:
        from apps.job import receivers  # noqa: F401

        if settings.RUN_SCHEDULER:
            self._register_job_jobs()

    def _register_job_jobs(self) -> None:
        # Import here to avoid AppRegistryNotReady during Django startup
        from apps.job.scheduler_jobs import reconcile_job_financials_job

        # Repair any drift in job code caches and rollups - nightly at 2 AM
        add_scheduled_job(
            reconcile_job_financials_job,
            "reconcile_job_financials",
            "cron",
            misfire_grace_time=60 * 60,
            hour=2,
            minute=0,
            timezone=settings.SCHEDULER_TIME_ZONE,
        )
