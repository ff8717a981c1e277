"""Signals raised by the costing services."""

from django.db import transaction
from django.dispatch import Signal

# Sent after commit whenever the set of pending entries may have changed.
# kwargs: entry_id, job_code, company_prefix, branch_id, assigned_approver_id, action
approval_queue_changed = Signal()


def notify_approval_queue_changed(entry, action: str) -> None:
    """Queue an ``approval_queue_changed`` notification for after commit."""
    payload = {
        "entry_id": entry.id,
        "job_code": entry.job_code.code,
        "company_prefix": entry.company_prefix,
        "branch_id": entry.branch_id,
        "assigned_approver_id": entry.assigned_approver_id,
        "action": action,
    }

    transaction.on_commit(
        lambda: approval_queue_changed.send(sender=entry.__class__, **payload)
    )
