"""
Financial rollup for a job code.

``build_financial_summary`` is pure arithmetic over already-loaded rows;
``recompute`` loads the rows, runs it and writes every derived field in a
single UPDATE. A recompute replaces the stored figures, it never adds to
them, so running it twice gives the same result.
"""

import logging
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping

from django.db import transaction

from apps.job.enums import ApprovalStatus, CostingStatus, CostType, VarianceStatus
from apps.job.models import CostingEntry, JobCode
from apps.job.models.job_code import empty_category_totals
from apps.purchasing.models import CostInvoice, PurchaseOrder

logger = logging.getLogger(__name__)

PERCENT_STEP = Decimal("0.01")


@dataclass
class FinancialSummary:
    costing_summary: Dict[str, Any]
    pending_approval_count: int = 0
    pending_approval_amount: int = 0
    linked_pos: List[Dict[str, Any]] = field(default_factory=list)
    linked_pis: List[Dict[str, Any]] = field(default_factory=list)
    total_po_value: int = 0
    total_pi_value: int = 0
    gross_margin: int = 0
    gross_margin_percentage: Decimal = Decimal("0.00")
    costing_status: str = CostingStatus.NOT_STARTED.value

    def as_update_kwargs(self) -> Dict[str, Any]:
        return asdict(self)


def margin_percentage(gross_margin: int, total_po_value: int) -> Decimal:
    """Margin as a percentage of PO value, 2 dp, half-up. 0 when there is no PO value."""
    if total_po_value <= 0:
        return Decimal("0.00")
    return (Decimal(gross_margin) * 100 / Decimal(total_po_value)).quantize(
        PERCENT_STEP, rounding=ROUND_HALF_UP
    )


def _variance(pre_total: int, post_total: int) -> Dict[str, Any]:
    amount = post_total - pre_total
    if amount > 0:
        status = VarianceStatus.OVER_BUDGET
    elif amount < 0:
        status = VarianceStatus.UNDER_BUDGET
    else:
        status = VarianceStatus.ON_BUDGET
    return {"amount": amount, "status": status.value}


def link_snapshot(document, number: str, amount: int) -> Dict[str, Any]:
    return {
        "id": str(document.id),
        "number": number,
        "total_amount": amount,
        "status": document.status,
    }


def build_financial_summary(
    entries: Iterable[Mapping[str, Any]],
    purchase_orders: Iterable[Any],
    cost_invoices: Iterable[Any],
) -> FinancialSummary:
    """
    Compute every derived figure for one job code.

    ``entries`` are mappings with cost_type, category, approval_status,
    amount and amount_paid (all entries on the job, any status). Purchase
    orders and cost invoices must already be the linked set.
    """
    totals = {
        CostType.PRE.value: {"total": 0, "by_category": empty_category_totals()},
        CostType.POST.value: {"total": 0, "by_category": empty_category_totals()},
    }
    total_paid = 0
    total_payable = 0
    pending_count = 0
    pending_amount = 0
    has_entries = False

    for entry in entries:
        has_entries = True
        status = entry["approval_status"]
        if status == ApprovalStatus.PENDING:
            pending_count += 1
            pending_amount += entry["amount"]
            continue
        if status != ApprovalStatus.APPROVED:
            continue
        block = totals[entry["cost_type"]]
        block["total"] += entry["amount"]
        block["by_category"][entry["category"]] += entry["amount"]
        total_paid += entry["amount_paid"]
        total_payable += entry["amount"] - entry["amount_paid"]

    linked_pos = [
        link_snapshot(po, po.po_number, po.total_amount) for po in purchase_orders
    ]
    linked_pis = [
        link_snapshot(invoice, invoice.invoice_number, invoice.rollup_amount)
        for invoice in cost_invoices
    ]
    total_po_value = sum(link["total_amount"] for link in linked_pos)
    total_pi_value = sum(link["total_amount"] for link in linked_pis)
    gross_margin = total_po_value - total_pi_value

    costing_summary = {
        "pre_cost": totals[CostType.PRE.value],
        "post_cost": totals[CostType.POST.value],
        "total_paid": total_paid,
        "total_payable": total_payable,
        "pending_approval_count": pending_count,
        "pending_approval_amount": pending_amount,
        "variance": _variance(
            totals[CostType.PRE.value]["total"], totals[CostType.POST.value]["total"]
        ),
    }

    return FinancialSummary(
        costing_summary=costing_summary,
        pending_approval_count=pending_count,
        pending_approval_amount=pending_amount,
        linked_pos=linked_pos,
        linked_pis=linked_pis,
        total_po_value=total_po_value,
        total_pi_value=total_pi_value,
        gross_margin=gross_margin,
        gross_margin_percentage=margin_percentage(gross_margin, total_po_value),
        costing_status=(
            CostingStatus.IN_PROGRESS.value if has_entries else CostingStatus.NOT_STARTED.value
        ),
    )


def _linked_documents(code: str):
    purchase_orders = (
        PurchaseOrder.objects.filter(job_code=code)
        .exclude(status__in=PurchaseOrder.UNLINKED_STATUSES)
        .order_by("order_date", "po_number")
    )
    cost_invoices = (
        CostInvoice.objects.filter(job_code=code)
        .exclude(status__in=CostInvoice.UNLINKED_STATUSES)
        .order_by("invoice_date", "invoice_number")
    )
    return list(purchase_orders), list(cost_invoices)


def recompute(code: str) -> FinancialSummary:
    """
    Rebuild the derived financial fields of ``code`` from source rows.

    Raises JobCode.DoesNotExist when the code is unknown.
    """
    with transaction.atomic():
        job_code = JobCode.objects.select_for_update().get(code=code)
        entries = CostingEntry.objects.filter(job_code=job_code).values(
            "cost_type", "category", "approval_status", "amount", "amount_paid"
        )
        purchase_orders, cost_invoices = _linked_documents(job_code.code)
        summary = build_financial_summary(entries, purchase_orders, cost_invoices)
        JobCode.objects.filter(pk=job_code.pk).update(**summary.as_update_kwargs())

    logger.debug(
        f"Recomputed {code}: pre={summary.costing_summary['pre_cost']['total']} "
        f"post={summary.costing_summary['post_cost']['total']} "
        f"po={summary.total_po_value} pi={summary.total_pi_value} "
        f"margin={summary.gross_margin_percentage}%"
    )
    return summary


def find_drift(job_code: JobCode) -> Dict[str, Any]:
    """
    Differences between the stored derived fields and a fresh computation.

    Empty when the job is in step. Used by the reconcile command.
    """
    entries = CostingEntry.objects.filter(job_code=job_code).values(
        "cost_type", "category", "approval_status", "amount", "amount_paid"
    )
    purchase_orders, cost_invoices = _linked_documents(job_code.code)
    expected = build_financial_summary(entries, purchase_orders, cost_invoices)

    drift = {}
    for field_name, value in expected.as_update_kwargs().items():
        stored = getattr(job_code, field_name)
        if stored != value:
            drift[field_name] = {"stored": stored, "expected": value}
    return drift
