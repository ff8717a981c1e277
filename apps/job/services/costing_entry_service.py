"""
Costing Entry Service Layer

CRUD and state transitions for costing entries. Every entry write and the
matching adjustment of the job's pending counters happen in one transaction.
Approve/reject live in ``approval_queue``.
"""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from apps.accounts.models import Staff
from apps.accounts.services.approver_service import get_default_approver
from apps.job.enums import (
    ApprovalAction,
    ApprovalStatus,
    CostCategory,
    CostType,
    EntrySource,
    JobCodeStatus,
)
from apps.job.models import CostingEntry, JobCode
from apps.job.services.money import from_minor_units, to_minor_units
from apps.job.signals import notify_approval_queue_changed
from apps.purchasing.models import PurchaseOrder
from apps.workflow.exceptions import ConflictError

logger = logging.getLogger(__name__)

QUANTITY_STEP = Decimal("0.001")

MONEY_FIELDS = ("unit_rate", "amount", "amount_paid")

# Fields a caller may patch through ``update``
EDITABLE_FIELDS = frozenset(
    {
        "job_code",
        "cost_type",
        "category",
        "entry_date",
        "description",
        "vendor",
        "invoice_no",
        "quantity",
        "unit",
        "unit_rate",
        "amount",
        "amount_paid",
        "remarks",
        "notes",
        "assigned_approver",
    }
)

# Fields frozen once an entry leaves draft
STRUCTURAL_FIELDS = frozenset({"job_code", "cost_type"})

TEXT_FIELDS = ("description", "vendor", "invoice_no", "unit", "remarks", "notes")


def history_event(
    action: str,
    status: str,
    staff: Optional[Staff],
    remarks: str = "",
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """One approval_history item."""
    return {
        "action": action,
        "status": status,
        "timestamp": (at or timezone.now()).isoformat(),
        "staff_id": str(staff.id) if staff else None,
        "staff_name": staff.get_display_full_name() if staff else None,
        "remarks": remarks or "",
    }


def adjust_pending(job_code_id: UUID, count_delta: int, amount_delta: int) -> None:
    """Apply a delta to the job's pending counters. Caller owns the transaction."""
    if not count_delta and not amount_delta:
        return
    JobCode.objects.filter(pk=job_code_id).update(
        pending_approval_count=F("pending_approval_count") + count_delta,
        pending_approval_amount=F("pending_approval_amount") + amount_delta,
    )


def resolve_job_code(value: Union[str, JobCode], for_update: bool = False) -> JobCode:
    if isinstance(value, JobCode):
        return value
    if not value:
        raise ValidationError({"job_code": "Job code is required."})
    queryset = JobCode.objects.select_for_update() if for_update else JobCode.objects
    try:
        return queryset.get(code=str(value).strip().upper())
    except JobCode.DoesNotExist:
        raise ValidationError({"job_code": f"Job code '{value}' does not exist."})


def resolve_staff(value: Union[None, str, UUID, Staff], field_name: str) -> Optional[Staff]:
    if value is None or value == "":
        return None
    if isinstance(value, Staff):
        return value
    try:
        return Staff.objects.get(pk=value)
    except (Staff.DoesNotExist, ValueError, ValidationError):
        raise ValidationError({field_name: f"Staff member '{value}' does not exist."})


def resolve_approver(value: Union[None, str, UUID, Staff], field_name: str) -> Optional[Staff]:
    approver = resolve_staff(value, field_name)
    if approver is not None and not approver.is_office_staff:
        raise ValidationError({field_name: "Approver must be office staff."})
    return approver


# First match wins; anything unmatched is miscellaneous
CATEGORY_KEYWORDS = (
    (CostCategory.MECHANICAL, ("pump", "valve", "pipe")),
    (CostCategory.INSTRUMENTATION, ("sensor", "transmitter", "meter")),
    (CostCategory.ELECTRICAL_CONTROL, ("plc", "panel", "cable", "electrical")),
    (CostCategory.LABOUR, ("labour", "wage", "manpower")),
    (CostCategory.FREIGHT_TRANSPORT, ("freight", "delivery", "shipping")),
    (CostCategory.TRAVELLING, ("travel", "petrol", "toll")),
    (CostCategory.ENTERTAINMENT, ("meal", "entertainment", "gift")),
)


def infer_category_from_item(description: str) -> str:
    """Guess a cost category from a PO line description by keyword."""
    text = (description or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category.value
    return CostCategory.MISCELLANEOUS.value


def _parse_quantity(value: Any) -> Decimal:
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({"quantity": f"'{value}' is not a valid quantity."})
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError({"quantity": "Quantity must be greater than zero."})
    return quantity.quantize(QUANTITY_STEP)


def _check_choice(field_name: str, value: Any, choices) -> str:
    if value not in choices.values:
        raise ValidationError({field_name: f"'{value}' is not a valid choice."})
    return value


class CostingEntryService:
    """Create, edit, submit and query costing entries."""

    @staticmethod
    def create(
        data: Mapping[str, Any],
        staff: Optional[Staff],
        submit_immediately: bool = False,
    ) -> CostingEntry:
        """
        Record a new costing entry.

        ``data`` carries major-unit amounts (``"1250.50"``); they are stored as
        cents. ``unit_rate`` defaults to ``amount``. The entry starts in draft,
        or pending when ``submit_immediately`` is set.

        Raises:
            ValidationError: missing or malformed fields, unknown job code.
            ConflictError: the job code is cancelled.
        """
        unknown = set(data) - EDITABLE_FIELDS - {"source", "external_id", "source_meta"}
        if unknown:
            raise ValidationError(
                {field: "Unknown field." for field in sorted(unknown)}
            )

        errors = {}
        for field_name in ("job_code", "cost_type", "category", "amount"):
            if data.get(field_name) in (None, ""):
                errors[field_name] = "This field is required."
        if errors:
            raise ValidationError(errors)

        cost_type = _check_choice("cost_type", data["cost_type"], CostType)
        category = _check_choice("category", data["category"], CostCategory)
        amount = to_minor_units(data["amount"], "amount")
        amount_paid = to_minor_units(data.get("amount_paid") or 0, "amount_paid")
        unit_rate = (
            to_minor_units(data["unit_rate"], "unit_rate")
            if data.get("unit_rate") not in (None, "")
            else amount
        )
        quantity = _parse_quantity(data.get("quantity") or 1)
        if amount_paid > amount:
            raise ValidationError(
                {"amount_paid": "Amount paid cannot exceed the entry amount."}
            )
        assigned_approver = resolve_approver(
            data.get("assigned_approver"), "assigned_approver"
        )

        with transaction.atomic():
            job_code = resolve_job_code(data["job_code"])
            if job_code.status == JobCodeStatus.CANCELLED:
                raise ConflictError(
                    f"Job code {job_code.code} is cancelled; no new costs can be recorded"
                )
            if submit_immediately and assigned_approver is None:
                assigned_approver = get_default_approver(
                    job_code.company_prefix, job_code.branch_id, amount
                )

            now = timezone.now()
            status = ApprovalStatus.PENDING if submit_immediately else ApprovalStatus.DRAFT
            history = [history_event(ApprovalAction.CREATED, ApprovalStatus.DRAFT, staff, at=now)]
            if submit_immediately:
                history.append(
                    history_event(ApprovalAction.SUBMITTED, ApprovalStatus.PENDING, staff, at=now)
                )

            entry = CostingEntry(
                job_code=job_code,
                cost_type=cost_type,
                category=category,
                entry_date=data.get("entry_date") or None,
                quantity=quantity,
                unit_rate=unit_rate,
                amount=amount,
                amount_paid=amount_paid,
                balance_payable=amount - amount_paid,
                currency=job_code.currency,
                company_prefix=job_code.company_prefix,
                branch_id=job_code.branch_id,
                approval_status=status,
                approval_history=history,
                created_by=staff,
                submitted_at=now if submit_immediately else None,
                assigned_approver=assigned_approver,
                source=data.get("source") or EntrySource.MANUAL,
                external_id=data.get("external_id") or None,
                source_meta=data.get("source_meta") or {},
            )
            for field_name in TEXT_FIELDS:
                setattr(entry, field_name, data.get(field_name) or "")

            entry.full_clean()
            entry.save()

            if submit_immediately:
                adjust_pending(job_code.pk, 1, amount)
                notify_approval_queue_changed(entry, ApprovalAction.SUBMITTED)

        logger.info(
            f"Costing entry {entry.id} created on {job_code.code} "
            f"({cost_type}/{category}, {amount} cents, {status})"
        )
        return entry

    @staticmethod
    def update(
        entry_id: UUID, patch: Mapping[str, Any], staff: Optional[Staff]
    ) -> CostingEntry:
        """
        Apply a partial edit to a draft or pending entry.

        Raises:
            ValidationError: unknown field or malformed value.
            ConflictError: the entry is approved/rejected, or a structural field
                (job code, cost type) changes after the entry left draft.
        """
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                {field: "Field cannot be edited." for field in sorted(unknown)}
            )

        with transaction.atomic():
            entry = CostingEntryService._get_locked(entry_id)
            if not patch:
                return entry
            if entry.is_terminal:
                raise ConflictError(
                    f"Costing entry {entry.id} is {entry.approval_status} and can no longer be edited"
                )

            was_pending = entry.approval_status == ApprovalStatus.PENDING
            old_amount = entry.amount
            old_job_code_id = entry.job_code_id

            if "job_code" in patch:
                new_job_code = resolve_job_code(patch["job_code"])
                if new_job_code.pk != entry.job_code_id:
                    if entry.approval_status != ApprovalStatus.DRAFT:
                        raise ConflictError("Job code can only be changed while the entry is a draft")
                    if new_job_code.status == JobCodeStatus.CANCELLED:
                        raise ConflictError(f"Job code {new_job_code.code} is cancelled")
                    entry.job_code = new_job_code
                    entry.company_prefix = new_job_code.company_prefix
                    entry.branch_id = new_job_code.branch_id
                    entry.currency = new_job_code.currency

            if "cost_type" in patch and patch["cost_type"] != entry.cost_type:
                if entry.approval_status != ApprovalStatus.DRAFT:
                    raise ConflictError("Cost type can only be changed while the entry is a draft")
                entry.cost_type = _check_choice("cost_type", patch["cost_type"], CostType)

            if "category" in patch:
                entry.category = _check_choice("category", patch["category"], CostCategory)
            for field_name in MONEY_FIELDS:
                if field_name in patch:
                    setattr(entry, field_name, to_minor_units(patch[field_name], field_name))
            if "quantity" in patch:
                entry.quantity = _parse_quantity(patch["quantity"])
            if "entry_date" in patch:
                entry.entry_date = patch["entry_date"] or None
            if "assigned_approver" in patch:
                entry.assigned_approver = resolve_approver(
                    patch["assigned_approver"], "assigned_approver"
                )
            for field_name in TEXT_FIELDS:
                if field_name in patch:
                    setattr(entry, field_name, patch[field_name] or "")

            if entry.amount_paid > entry.amount:
                raise ValidationError(
                    {"amount_paid": "Amount paid cannot exceed the entry amount."}
                )
            entry.balance_payable = entry.amount - entry.amount_paid
            entry.approval_history = entry.approval_history + [
                history_event(
                    ApprovalAction.UPDATED,
                    entry.approval_status,
                    staff,
                    remarks=", ".join(sorted(patch)),
                )
            ]
            entry.full_clean()
            entry.save()

            if was_pending:
                adjust_pending(old_job_code_id, 0, entry.amount - old_amount)
                notify_approval_queue_changed(entry, ApprovalAction.UPDATED)

        logger.info(f"Costing entry {entry.id} updated: {sorted(patch)}")
        return entry

    @staticmethod
    def delete(entry_id: UUID, staff: Optional[Staff]) -> None:
        """Delete a draft entry. Anything past draft raises ConflictError."""
        with transaction.atomic():
            entry = CostingEntryService._get_locked(entry_id)
            if entry.approval_status != ApprovalStatus.DRAFT:
                raise ConflictError(
                    f"Only draft entries can be deleted; {entry.id} is {entry.approval_status}"
                )
            entry.delete()

        logger.info(
            f"Costing entry {entry_id} deleted by "
            f"{staff.get_display_full_name() if staff else 'system'}"
        )

    @staticmethod
    def submit_for_approval(
        entry_id: UUID,
        staff: Optional[Staff],
        approver: Union[None, str, UUID, Staff] = None,
    ) -> CostingEntry:
        """
        Move a draft entry to pending.

        Submitting an entry that is already pending returns it unchanged.
        Approved or rejected entries raise ConflictError. Without an explicit
        or previously assigned approver, the default approver for the entry's
        branch or company is assigned when one is configured.
        """
        approver = resolve_approver(approver, "approver")

        with transaction.atomic():
            entry = CostingEntryService._get_locked(entry_id)
            if entry.approval_status == ApprovalStatus.PENDING:
                return entry
            if entry.is_terminal:
                raise ConflictError(
                    f"Costing entry {entry.id} is already {entry.approval_status}"
                )

            if approver is None and entry.assigned_approver_id is None:
                approver = get_default_approver(
                    entry.company_prefix, entry.branch_id, entry.amount
                )

            now = timezone.now()
            entry.approval_status = ApprovalStatus.PENDING
            entry.submitted_at = now
            if approver is not None:
                entry.assigned_approver = approver
            entry.approval_history = entry.approval_history + [
                history_event(ApprovalAction.SUBMITTED, ApprovalStatus.PENDING, staff, at=now)
            ]
            entry.save(
                update_fields=[
                    "approval_status",
                    "submitted_at",
                    "assigned_approver",
                    "approval_history",
                    "updated_at",
                ]
            )
            adjust_pending(entry.job_code_id, 1, entry.amount)
            notify_approval_queue_changed(entry, ApprovalAction.SUBMITTED)

        logger.info(f"Costing entry {entry.id} submitted for approval")
        return entry

    @staticmethod
    def create_from_purchase_order(
        purchase_order: Union[str, UUID, PurchaseOrder], staff: Optional[Staff]
    ) -> List[CostingEntry]:
        """
        Draft one post-cost entry per line of a purchase order.

        Entries stay in draft so the buyer can review categories before
        submitting. Each line is drafted once: lines that already have an
        entry are skipped, so a second call only picks up new lines.

        Raises:
            PurchaseOrder.DoesNotExist: unknown purchase order.
            ValidationError: the PO has no job code or no lines.
            ConflictError: the PO is cancelled or deleted, or its job code is.
        """
        if not isinstance(purchase_order, PurchaseOrder):
            try:
                purchase_order = PurchaseOrder.objects.get(pk=purchase_order)
            except (PurchaseOrder.DoesNotExist, ValueError, ValidationError):
                raise PurchaseOrder.DoesNotExist(
                    f"Purchase order {purchase_order} not found"
                )

        if purchase_order.status in PurchaseOrder.UNLINKED_STATUSES:
            raise ConflictError(
                f"Purchase order {purchase_order.po_number} is {purchase_order.status}"
            )
        if not purchase_order.job_code:
            raise ValidationError(
                {"job_code": f"Purchase order {purchase_order.po_number} has no job code."}
            )
        lines = list(purchase_order.po_lines.all())
        if not lines:
            raise ValidationError(
                {"purchase_order": f"Purchase order {purchase_order.po_number} has no lines."}
            )

        drafted = set(
            CostingEntry.objects.filter(
                source=EntrySource.PO_AUTO,
                external_id__in=[str(line.id) for line in lines],
            ).values_list("external_id", flat=True)
        )
        entry_date = purchase_order.order_date or timezone.localdate()

        entries = []
        with transaction.atomic():
            for line in lines:
                if str(line.id) in drafted:
                    continue
                entries.append(
                    CostingEntryService.create(
                        {
                            "job_code": purchase_order.job_code,
                            "cost_type": CostType.POST.value,
                            "category": infer_category_from_item(line.description),
                            "entry_date": entry_date,
                            "description": line.description or f"PO item: {line.item_code}",
                            "vendor": purchase_order.supplier_name,
                            "invoice_no": purchase_order.po_number,
                            "quantity": line.quantity,
                            "unit": line.unit or "pcs",
                            "unit_rate": from_minor_units(line.unit_cost),
                            "amount": from_minor_units(line.total),
                            "notes": f"Auto-created from PO {purchase_order.po_number}",
                            "source": EntrySource.PO_AUTO.value,
                            "external_id": str(line.id),
                            "source_meta": {
                                "purchase_order_id": str(purchase_order.id),
                                "po_number": purchase_order.po_number,
                                "po_line_id": str(line.id),
                                "item_code": line.item_code or None,
                            },
                        },
                        staff,
                    )
                )

        logger.info(
            f"Drafted {len(entries)} costing entries from PO {purchase_order.po_number} "
            f"({len(drafted)} lines already drafted)"
        )
        return entries

    @staticmethod
    def list_for_job_code(
        code: str, filters: Optional[Mapping[str, Any]] = None
    ) -> QuerySet:
        """Entries on a job code, optionally filtered by cost_type, category or status."""
        filters = filters or {}
        job_code = resolve_job_code(code)
        queryset = job_code.costing_entries.select_related(
            "created_by", "approved_by", "rejected_by", "assigned_approver"
        )
        if filters.get("cost_type"):
            queryset = queryset.filter(cost_type=filters["cost_type"])
        if filters.get("category"):
            queryset = queryset.filter(category=filters["category"])
        if filters.get("approval_status"):
            queryset = queryset.filter(approval_status=filters["approval_status"])
        return queryset.order_by("-created_at", "id")

    @staticmethod
    def user_stats(staff: Staff, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Counts and totals (cents) over the entries a staff member created."""
        now = now or timezone.now()
        month_start = timezone.localtime(now).replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        stats = {
            "total": 0,
            "by_status": {status: 0 for status in ApprovalStatus.values},
            "total_amount": 0,
            "approved_amount": 0,
            "this_month": {"count": 0, "amount": 0},
        }
        entries = CostingEntry.objects.filter(created_by=staff).values_list(
            "approval_status", "amount", "created_at"
        )
        for status, amount, created_at in entries:
            stats["total"] += 1
            stats["by_status"][status] += 1
            stats["total_amount"] += amount
            if status == ApprovalStatus.APPROVED:
                stats["approved_amount"] += amount
            if created_at >= month_start:
                stats["this_month"]["count"] += 1
                stats["this_month"]["amount"] += amount
        return stats

    @staticmethod
    def export_approved(code: str) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        """
        Approved entries of a job grouped by cost type then category, with
        amounts in major units, ready for a spreadsheet export.
        """
        job_code = resolve_job_code(code)
        grouped: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
            cost_type: defaultdict(list) for cost_type in CostType.values
        }
        entries = job_code.costing_entries.filter(
            approval_status=ApprovalStatus.APPROVED
        ).order_by("entry_date", "created_at")
        for entry in entries:
            grouped[entry.cost_type][entry.category].append(
                {
                    "id": str(entry.id),
                    "entry_date": entry.entry_date.isoformat() if entry.entry_date else None,
                    "description": entry.description,
                    "vendor": entry.vendor,
                    "invoice_no": entry.invoice_no,
                    "quantity": str(entry.quantity),
                    "unit_rate": str(from_minor_units(entry.unit_rate)),
                    "amount": str(from_minor_units(entry.amount)),
                    "amount_paid": str(from_minor_units(entry.amount_paid)),
                }
            )
        return {cost_type: dict(groups) for cost_type, groups in grouped.items()}

    @staticmethod
    def _get_locked(entry_id: UUID) -> CostingEntry:
        try:
            return CostingEntry.objects.select_for_update().select_related("job_code").get(
                pk=entry_id
            )
        except (CostingEntry.DoesNotExist, ValueError, ValidationError):
            raise CostingEntry.DoesNotExist(f"Costing entry {entry_id} not found")
