"""Receivers for ``approval_queue_changed``."""

import logging

from django.dispatch import receiver

from apps.job.enums import ApprovalAction
from apps.job.models import CostingEntry
from apps.job.signals import approval_queue_changed
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)

DECISION_ACTIONS = (ApprovalAction.APPROVED, ApprovalAction.REJECTED)


@receiver(approval_queue_changed, dispatch_uid="push_decision_to_notion")
def push_decision_to_notion(sender, entry_id, action, **kwargs):
    if action not in DECISION_ACTIONS:
        return

    from apps.workflow.api.notion.sync import push_approval_status

    entry = CostingEntry.objects.filter(pk=entry_id).first()
    if entry is None:
        return
    try:
        push_approval_status(entry)
    except Exception as exc:
        # The decision is committed; the Notion page catches up on the next push
        persist_app_error(exc, job_code=kwargs.get("job_code"))
        logger.error(
            f"Failed to push {action} for entry {entry_id} to Notion: {exc}",
            exc_info=True,
        )
