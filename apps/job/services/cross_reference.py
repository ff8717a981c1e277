"""
Cross-references between job codes, purchase orders and cost invoices.

The ``job_code`` string on each PO and invoice is authoritative. The
``linked_pos``/``linked_pis`` lists on JobCode are caches rebuilt from it,
never appended to in place.
"""

import logging
from typing import Optional, Union
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.accounts.models import Staff
from apps.job.models import JobCode
from apps.job.services.code_registry import (
    normalize_code,
    parse_job_code,
    reserve_running_number,
    validate_job_code,
)
from apps.job.services.financial_rollup import FinancialSummary, recompute
from apps.purchasing.models import CostInvoice, PurchaseOrder
from apps.workflow.exceptions import JobCodeLockedError, PartialSyncError
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


def rebuild_links(code: str) -> Optional[FinancialSummary]:
    """
    Reconcile the link caches and financials of ``code`` from the documents
    that currently reference it.

    A code that no longer exists (e.g. re-keyed away) is a no-op.
    """
    if not JobCode.objects.filter(code=code).exists():
        logger.info(f"Skipping link rebuild for unknown job code {code}")
        return None
    # recompute rebuilds linked_pos/linked_pis from the same scan
    return recompute(code)


def _get_job_code(code: str) -> JobCode:
    try:
        return JobCode.objects.get(code=normalize_code(code))
    except JobCode.DoesNotExist:
        raise ValidationError({"job_code": f"Job code '{code}' does not exist."})


def _set_document_job_code(document, code: str):
    document.job_code = code
    document.save(update_fields=["job_code", "updated_at"])
    return document


def link_purchase_order(po: Union[PurchaseOrder, UUID], code: str) -> PurchaseOrder:
    """Point a purchase order at ``code``. Caches refresh after commit."""
    if not isinstance(po, PurchaseOrder):
        po = PurchaseOrder.objects.get(pk=po)
    job_code = _get_job_code(code)
    logger.info(f"Linking PO {po.po_number} to {job_code.code}")
    return _set_document_job_code(po, job_code.code)


def unlink_purchase_order(po: Union[PurchaseOrder, UUID]) -> PurchaseOrder:
    if not isinstance(po, PurchaseOrder):
        po = PurchaseOrder.objects.get(pk=po)
    logger.info(f"Unlinking PO {po.po_number} from {po.job_code or '-'}")
    return _set_document_job_code(po, "")


def link_cost_invoice(invoice: Union[CostInvoice, UUID], code: str) -> CostInvoice:
    """Point a cost invoice at ``code``. Caches refresh after commit."""
    if not isinstance(invoice, CostInvoice):
        invoice = CostInvoice.objects.get(pk=invoice)
    job_code = _get_job_code(code)
    logger.info(f"Linking invoice {invoice.invoice_number} to {job_code.code}")
    return _set_document_job_code(invoice, job_code.code)


def unlink_cost_invoice(invoice: Union[CostInvoice, UUID]) -> CostInvoice:
    if not isinstance(invoice, CostInvoice):
        invoice = CostInvoice.objects.get(pk=invoice)
    logger.info(
        f"Unlinking invoice {invoice.invoice_number} from {invoice.job_code or '-'}"
    )
    return _set_document_job_code(invoice, "")


def rekey_job_code(old_code: str, new_code: str, staff: Optional[Staff]) -> JobCode:
    """
    Rename a job code and re-point every PO and invoice that references it.

    The job code and the documents change in one transaction. Rebuilding the
    caches runs after that commit; if it fails the documents already carry the
    new code, so PartialSyncError is raised (and persisted) with the command
    that finishes the job.

    Raises:
        JobCodeLockedError: the job code came from the CRM.
        ValidationError: the new code is malformed, unknown prefix, or taken.
    """
    old_code = normalize_code(old_code)
    new_code = normalize_code(new_code)
    job_code = JobCode.objects.get(code=old_code)
    if not job_code.is_editable():
        raise JobCodeLockedError(job_code.code)
    if new_code == old_code:
        return job_code

    violations = validate_job_code(new_code)
    if violations:
        raise ValidationError({"code": violations})
    if JobCode.objects.filter(code=new_code).exists():
        raise ValidationError({"code": f"Job code {new_code} already exists."})
    parsed = parse_job_code(new_code)

    with transaction.atomic():
        reserve_running_number(parsed)
        job_code = JobCode.objects.select_for_update().get(pk=job_code.pk)
        job_code.code = new_code
        job_code.company_prefix = parsed.company_prefix
        job_code.job_nature_code = parsed.job_nature_code
        job_code.running_number = parsed.running_number
        job_code.save()

        # Queryset updates skip the purchasing signals; caches are rebuilt below
        po_count = PurchaseOrder.objects.filter(job_code=old_code).update(
            job_code=new_code
        )
        invoice_count = CostInvoice.objects.filter(job_code=old_code).update(
            job_code=new_code
        )
        job_code.costing_entries.update(company_prefix=parsed.company_prefix)

    logger.info(
        f"Re-keyed {old_code} -> {new_code} by "
        f"{staff.get_display_full_name() if staff else 'system'}: "
        f"{po_count} POs, {invoice_count} invoices"
    )

    try:
        rebuild_links(new_code)
    except Exception as exc:
        error = PartialSyncError(
            f"Job code {old_code} was re-keyed to {new_code} but the link "
            f"rebuild failed: {exc}",
            old_code=old_code,
            new_code=new_code,
        )
        persist_app_error(
            error,
            job_code=new_code,
            additional_context={"reconcile": error.reconcile_hint},
        )
        logger.error(str(error), exc_info=True)
        raise error from exc

    job_code.refresh_from_db()
    return job_code
