"""
Keep job-code link caches in step with purchase orders and cost invoices.

The ``job_code`` field on each PO/invoice is the source of truth. Any save or
delete schedules a full rebuild of the affected job codes once the write
commits.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from apps.workflow.services.error_persistence import persist_app_error

from .models import CostInvoice, PurchaseOrder

logger = logging.getLogger(__name__)


def _schedule_rebuild(job_codes):
    codes = sorted({code for code in job_codes if code})
    if not codes:
        return

    def _rebuild():
        from apps.job.services.cross_reference import rebuild_links

        for code in codes:
            try:
                rebuild_links(code)
            except Exception as exc:
                # The source write has committed; a later rebuild repairs the cache
                persist_app_error(exc, job_code=code)
                logger.error(
                    f"Failed to rebuild links for job code {code}: {exc}", exc_info=True
                )

    transaction.on_commit(_rebuild)


@receiver(pre_save, sender=PurchaseOrder)
@receiver(pre_save, sender=CostInvoice)
def stash_previous_job_code(sender, instance, **kwargs):
    if kwargs.get("raw"):
        return
    instance._previous_job_code = (
        sender.objects.filter(pk=instance.pk).values_list("job_code", flat=True).first()
    )


@receiver(post_save, sender=PurchaseOrder)
@receiver(post_save, sender=CostInvoice)
def linked_document_saved(sender, instance, **kwargs):
    # If save comes from loaddata/fixtures, we do an early return to avoid unexpected side effects
    if kwargs.get("raw"):
        return
    previous = getattr(instance, "_previous_job_code", None)
    _schedule_rebuild([previous, instance.job_code])


@receiver(post_delete, sender=PurchaseOrder)
@receiver(post_delete, sender=CostInvoice)
def linked_document_deleted(sender, instance, **kwargs):
    _schedule_rebuild([instance.job_code])
