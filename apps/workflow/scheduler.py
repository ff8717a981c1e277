"""
The one BackgroundScheduler the project runs its periodic costing work on.

Both the Notion sync and the nightly reconcile register here, so every job
shares one job store and one set of overlap rules.
"""

import logging
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings

logger = logging.getLogger(__name__)

scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    """Return the process-wide scheduler, building it on first use."""
    global scheduler
    if scheduler is None:
        logger.info(f"Building costing scheduler ({settings.SCHEDULER_TIME_ZONE})")
        scheduler = BackgroundScheduler(timezone=settings.SCHEDULER_TIME_ZONE)

        # django_apscheduler models are not ready while apps load
        from django_apscheduler.jobstores import DjangoJobStore

        scheduler.add_jobstore(DjangoJobStore(), "default")
    return scheduler


def add_scheduled_job(
    func: Callable[[], Any],
    job_id: str,
    trigger: str,
    misfire_grace_time: int,
    **trigger_args: Any,
) -> None:
    """
    Register ``func`` under ``job_id``, replacing any earlier registration.

    A job never overlaps itself and missed runs collapse into one.
    """
    get_scheduler().add_job(
        func,
        trigger=trigger,
        id=job_id,
        max_instances=1,
        replace_existing=True,
        misfire_grace_time=misfire_grace_time,
        coalesce=True,
        **trigger_args,
    )
    logger.info(f"Scheduled '{job_id}' ({trigger} {trigger_args})")
