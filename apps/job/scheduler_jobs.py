"""Scheduled job functions for the job app."""

import logging
from datetime import datetime

from django.db import close_old_connections

from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


def reconcile_job_financials_job():
    """Rebuild link caches and rollups for job codes that have drifted."""
    logger.info(f"Running reconcile_job_financials_job at {datetime.now()}.")
    try:
        close_old_connections()

        # Import here to avoid Django startup issues
        from apps.job.services.reconcile_service import ReconcileService

        result = ReconcileService.reconcile()

        logger.info(
            f"Checked {result.jobs_checked} job codes, repaired {result.jobs_repaired}. "
            f"Failed: {len(result.failed_codes)}. "
            f"Orphan references: {len(result.orphan_references)}. "
            f"Operation completed in {result.duration_seconds:.2f} seconds."
        )
    except Exception as e:
        persist_app_error(e)
        logger.error(f"Error during reconcile_job_financials_job: {e}", exc_info=True)
