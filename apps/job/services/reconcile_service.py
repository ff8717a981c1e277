"""Find and repair job codes whose derived fields have drifted from source rows."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from django.utils import timezone

from apps.job.models import JobCode
from apps.job.services.cross_reference import rebuild_links
from apps.job.services.financial_rollup import find_drift
from apps.purchasing.models import CostInvoice, PurchaseOrder
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of a reconcile run."""

    jobs_checked: int
    jobs_repaired: int
    duration_seconds: float
    repaired_codes: List[str] = field(default_factory=list)
    failed_codes: List[str] = field(default_factory=list)
    orphan_references: List[str] = field(default_factory=list)


def orphan_job_code_references() -> List[str]:
    """Job code strings referenced by POs or invoices that no JobCode carries."""
    referenced = set(
        PurchaseOrder.objects.exclude(job_code="").values_list("job_code", flat=True)
    ) | set(CostInvoice.objects.exclude(job_code="").values_list("job_code", flat=True))
    known = set(
        JobCode.objects.filter(code__in=referenced).values_list("code", flat=True)
    )
    return sorted(referenced - known)


class ReconcileService:
    @staticmethod
    def reconcile(
        codes: Optional[Iterable[str]] = None,
        dry_run: bool = False,
        verbose: bool = False,
    ) -> ReconcileResult:
        """
        Compare every job code (or just ``codes``) against a fresh rollup and
        rebuild the ones that differ.

        Args:
            codes: Job codes to check; all job codes when omitted
            dry_run: If True, report drift without writing
            verbose: If True, log each drifting field
        """
        start_time = timezone.now()

        job_codes = JobCode.objects.all().order_by("code")
        if codes is not None:
            job_codes = job_codes.filter(code__in=list(codes))

        checked = 0
        repaired = []
        failed = []
        for job_code in job_codes.iterator():
            checked += 1
            drift = find_drift(job_code)
            if not drift:
                continue

            if verbose:
                for field_name, values in drift.items():
                    logger.info(
                        f"{job_code.code}.{field_name}: stored={values['stored']} "
                        f"expected={values['expected']}"
                    )
            if dry_run:
                logger.info(f"Would rebuild {job_code.code} ({sorted(drift)})")
                repaired.append(job_code.code)
                continue

            try:
                rebuild_links(job_code.code)
            except Exception as exc:
                persist_app_error(exc, job_code=job_code.code)
                logger.error(
                    f"Failed to rebuild {job_code.code}: {exc}", exc_info=True
                )
                failed.append(job_code.code)
                continue
            logger.info(f"Rebuilt {job_code.code} ({sorted(drift)})")
            repaired.append(job_code.code)

        orphans = orphan_job_code_references()
        for code in orphans:
            logger.warning(f"Purchasing documents reference unknown job code {code}")

        return ReconcileResult(
            jobs_checked=checked,
            jobs_repaired=len(repaired),
            duration_seconds=(timezone.now() - start_time).total_seconds(),
            repaired_codes=repaired,
            failed_codes=failed,
            orphan_references=orphans,
        )
