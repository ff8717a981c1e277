from django.core.management.base import BaseCommand, CommandError

from apps.job.models import JobCode
from apps.job.services.cross_reference import rebuild_links
from apps.job.services.reconcile_service import orphan_job_code_references


class Command(BaseCommand):
    help = (
        "Rebuild job code links after an interrupted re-key and list purchasing "
        "documents that point at unknown job codes"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--job-code",
            action="append",
            dest="job_codes",
            default=[],
            help="Job code to rebuild (repeatable). Defaults to every job code.",
        )

    def handle(self, *args, **options):
        codes = [code.strip().upper() for code in options["job_codes"]]
        if codes:
            missing = sorted(
                set(codes)
                - set(JobCode.objects.filter(code__in=codes).values_list("code", flat=True))
            )
            if missing:
                raise CommandError(f"Unknown job codes: {', '.join(missing)}")
        else:
            codes = list(JobCode.objects.order_by("code").values_list("code", flat=True))

        for code in codes:
            summary = rebuild_links(code)
            self.stdout.write(
                f"{code}: {len(summary.linked_pos)} POs, {len(summary.linked_pis)} invoices"
            )

        orphans = orphan_job_code_references()
        if orphans:
            self.stdout.write(
                self.style.WARNING(
                    "Documents reference unknown job codes: " + ", ".join(orphans)
                )
            )

        self.stdout.write(self.style.SUCCESS(f"Rebuilt {len(codes)} job codes"))
