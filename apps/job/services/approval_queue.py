"""
Approval queue: the pending costing entries waiting on a decision.

The queue is not stored anywhere; it is a query over entries in ``pending``.
Approve and reject use a conditional UPDATE (``WHERE approval_status =
'pending'``) so that of several concurrent decisions exactly one wins and the
rest see either an idempotent repeat or a conflict.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts.models import Staff
from apps.accounts.services.approver_service import check_can_decide
from apps.job.enums import ApprovalAction, ApprovalPriority, ApprovalStatus
from apps.job.models import CostingEntry
from apps.job.services.costing_entry_service import adjust_pending, history_event
from apps.job.services.financial_rollup import recompute
from apps.job.signals import approval_queue_changed, notify_approval_queue_changed
from apps.workflow.exceptions import ConflictError
from apps.workflow.services.company_defaults_service import get_company_defaults

logger = logging.getLogger(__name__)


@dataclass
class ApprovalQueueItem:
    entry: CostingEntry
    days_waiting: int
    priority: str

    @property
    def id(self) -> UUID:
        return self.entry.id

    @property
    def job_code(self) -> str:
        return self.entry.job_code.code


def calculate_priority(days_waiting: int, amount: int, defaults=None) -> str:
    """Bucket an entry by age and amount (cents) using the CompanyDefaults thresholds."""
    defaults = defaults or get_company_defaults()
    if (
        days_waiting > defaults.approval_urgent_days
        or amount > defaults.approval_urgent_amount
    ):
        return ApprovalPriority.URGENT.value
    if (
        days_waiting > defaults.approval_high_days
        or amount > defaults.approval_high_amount
    ):
        return ApprovalPriority.HIGH.value
    return ApprovalPriority.NORMAL.value


def pending_entries(
    approver: Optional[Staff] = None,
    company_prefix: Optional[str] = None,
    branch_id: Optional[str] = None,
) -> QuerySet:
    """Pending entries visible to ``approver``: assigned to them or to nobody."""
    queryset = CostingEntry.objects.filter(approval_status=ApprovalStatus.PENDING)
    if approver is not None:
        queryset = queryset.filter(
            Q(assigned_approver=approver) | Q(assigned_approver__isnull=True)
        )
    if company_prefix:
        queryset = queryset.filter(company_prefix=company_prefix)
    if branch_id:
        queryset = queryset.filter(branch_id=branch_id)
    return queryset


def get_queue(
    approver: Optional[Staff] = None,
    company_prefix: Optional[str] = None,
    branch_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[ApprovalQueueItem]:
    """Pending entries, oldest submission first."""
    now = now or timezone.now()
    defaults = get_company_defaults()
    entries = (
        pending_entries(approver, company_prefix, branch_id)
        .select_related("job_code", "created_by", "assigned_approver")
        .order_by("submitted_at", "created_at", "id")
    )

    items = []
    for entry in entries:
        submitted_at = entry.submitted_at or entry.created_at
        days_waiting = max((now - submitted_at).days, 0)
        items.append(
            ApprovalQueueItem(
                entry=entry,
                days_waiting=days_waiting,
                priority=calculate_priority(days_waiting, entry.amount, defaults),
            )
        )
    return items


def queue_count(
    approver: Optional[Staff] = None, company_prefix: Optional[str] = None
) -> int:
    """Number of pending entries for a badge."""
    return pending_entries(approver, company_prefix).count()


def _check_assigned_approver(entry_id: UUID, approver: Staff) -> CostingEntry:
    try:
        entry = CostingEntry.objects.select_related("job_code").get(pk=entry_id)
    except (CostingEntry.DoesNotExist, ValueError, ValidationError):
        raise CostingEntry.DoesNotExist(f"Costing entry {entry_id} not found")

    if entry.assigned_approver_id and entry.assigned_approver_id != approver.id:
        logger.warning(
            f"{approver.email} tried to decide entry {entry.id} assigned to "
            f"{entry.assigned_approver_id}"
        )
        raise PermissionDenied("This entry is assigned to a different approver")
    return entry


def _decide(
    entry_id: UUID,
    approver: Staff,
    target: str,
    action: str,
    remarks: str,
    stamp_fields: Dict[str, Any],
) -> CostingEntry:
    entry = _check_assigned_approver(entry_id, approver)
    check_can_decide(approver, entry, approving=target == ApprovalStatus.APPROVED)

    with transaction.atomic():
        updated = CostingEntry.objects.filter(
            pk=entry.pk, approval_status=ApprovalStatus.PENDING
        ).update(approval_status=target, **stamp_fields)

        if not updated:
            entry.refresh_from_db()
            if entry.approval_status == target:
                logger.info(f"Entry {entry.id} already {target}; nothing to do")
                return entry
            raise ConflictError(
                f"Costing entry {entry.id} is {entry.approval_status}, not pending"
            )

        # The conditional update made this caller the only one deciding the entry
        entry.refresh_from_db()
        entry.approval_history = entry.approval_history + [
            history_event(
                action, target, approver, remarks=remarks, at=stamp_fields["updated_at"]
            )
        ]
        entry.save(update_fields=["approval_history", "updated_at"])
        adjust_pending(entry.job_code_id, -1, -entry.amount)
        recompute(entry.job_code.code)
        notify_approval_queue_changed(entry, action)

    logger.info(
        f"Entry {entry.id} on {entry.job_code.code} {target} by {approver.email}"
    )
    return entry


def approve(entry_id: UUID, approver: Staff, remarks: str = "") -> CostingEntry:
    """
    Approve a pending entry and refresh the job's rollup.

    Approving an entry that is already approved succeeds without changes.

    Raises:
        PermissionDenied: the entry is assigned to someone else, lies
            outside the approver's profile scope or exceeds their limit.
        ConflictError: the entry is draft or rejected.
    """
    now = timezone.now()
    return _decide(
        entry_id,
        approver,
        target=ApprovalStatus.APPROVED.value,
        action=ApprovalAction.APPROVED.value,
        remarks=remarks or "",
        stamp_fields={
            "approved_at": now,
            "approved_by": approver,
            "remarks": remarks or "",
            "updated_at": now,
        },
    )


def reject(entry_id: UUID, approver: Staff, reason: str) -> CostingEntry:
    """
    Reject a pending entry with a reason.

    A blank reason raises ValidationError before anything is written.
    Rejecting an already rejected entry succeeds without changes.
    """
    if not reason or not str(reason).strip():
        raise ValidationError({"reason": "A rejection reason is required."})

    reason = str(reason).strip()
    now = timezone.now()
    return _decide(
        entry_id,
        approver,
        target=ApprovalStatus.REJECTED.value,
        action=ApprovalAction.REJECTED.value,
        remarks=reason,
        stamp_fields={
            "rejected_at": now,
            "rejected_by": approver,
            "rejection_reason": reason,
            "updated_at": now,
        },
    )


def subscribe(
    callback: Callable[[Dict[str, Any]], None],
    approver: Optional[Staff] = None,
    company_prefix: Optional[str] = None,
) -> Callable[[], bool]:
    """
    Call ``callback(event)`` after every committed change to the queue.

    ``event`` holds entry_id, job_code, company_prefix, branch_id,
    assigned_approver_id and action. Filters mirror ``get_queue`` scoping.
    Returns a function that removes the subscription.
    """
    dispatch_uid = f"approval-queue-subscriber-{uuid.uuid4()}"
    approver_id = approver.id if approver is not None else None

    def _receiver(sender, **event):
        event.pop("signal", None)
        if company_prefix and event.get("company_prefix") != company_prefix:
            return
        assigned = event.get("assigned_approver_id")
        if approver_id is not None and assigned not in (None, approver_id):
            return
        callback(event)

    approval_queue_changed.connect(_receiver, weak=False, dispatch_uid=dispatch_uid)

    def unsubscribe() -> bool:
        return approval_queue_changed.disconnect(dispatch_uid=dispatch_uid)

    return unsubscribe
