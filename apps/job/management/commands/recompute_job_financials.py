import logging

from django.core.management.base import BaseCommand, CommandError

from apps.job.models import JobCode
from apps.job.services.financial_rollup import recompute
from apps.job.services.reconcile_service import ReconcileService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Recompute costing summaries, link caches and margins for job codes"

    def add_arguments(self, parser):
        target = parser.add_mutually_exclusive_group(required=True)
        target.add_argument("--job-code", help="Job code to recompute, e.g. FS-SV12")
        target.add_argument(
            "--all", action="store_true", help="Check every job code and fix drift"
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without making any changes",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Display each field that has drifted",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        verbose = options["verbose"]

        if dry_run:
            self.stdout.write(
                self.style.WARNING("Running in dry-run mode - no changes will be made")
            )

        if options["job_code"] and not dry_run:
            code = options["job_code"].strip().upper()
            try:
                summary = recompute(code)
            except JobCode.DoesNotExist:
                raise CommandError(f"Job code {code} does not exist")
            self.stdout.write(
                self.style.SUCCESS(
                    f"Recomputed {code}: PO {summary.total_po_value} / "
                    f"PI {summary.total_pi_value} cents, "
                    f"margin {summary.gross_margin_percentage}%"
                )
            )
            return

        codes = [options["job_code"].strip().upper()] if options["job_code"] else None
        result = ReconcileService.reconcile(codes=codes, dry_run=dry_run, verbose=verbose)

        if verbose:
            for code in result.repaired_codes:
                self.stdout.write(f"{'Would rebuild' if dry_run else 'Rebuilt'} {code}")
        for code in result.failed_codes:
            self.stderr.write(f"Failed to rebuild {code}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {result.jobs_checked} job codes\n"
                f"{'Would repair' if dry_run else 'Repaired'} {result.jobs_repaired}\n"
                f"Operation completed in {result.duration_seconds:.2f} seconds"
            )
        )
