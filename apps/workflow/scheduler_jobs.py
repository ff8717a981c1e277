"""Scheduled job functions for the workflow app."""

import logging
from datetime import datetime

from django.db import close_old_connections

from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


def notion_costing_sync_job():
    """Pull costing entries from the configured Notion database."""
    logger.info(f"Running notion_costing_sync_job at {datetime.now()}.")
    try:
        close_old_connections()

        # Import here to avoid Django startup issues
        from apps.workflow.api.notion.sync import sync_costing_entries

        result = sync_costing_entries()

        if result.get("skipped_run"):
            logger.info(f"Notion costing sync skipped: {result['skipped_run']}")
            return

        logger.info(
            f"Notion costing sync finished: {result['created']} created, "
            f"{result['updated']} updated, {result['skipped']} skipped, "
            f"{len(result['errors'])} errors."
        )
    except Exception as e:
        persist_app_error(e)
        logger.error(f"Error during notion_costing_sync_job: {e}", exc_info=True)
