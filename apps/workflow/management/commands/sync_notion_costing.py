from django.core.management.base import BaseCommand, CommandError

from apps.workflow.api.notion.sync import sync_costing_entries
from apps.workflow.exceptions import NotionApiError


class Command(BaseCommand):
    help = "Pull costing entries from the configured Notion database"

    def add_arguments(self, parser):
        parser.add_argument(
            "--full",
            action="store_true",
            help="Ignore the last sync time and read every page",
        )

    def handle(self, *args, **options):
        try:
            result = sync_costing_entries(full=options["full"])
        except NotionApiError as exc:
            raise CommandError(f"Notion sync failed: {exc}")

        if result.get("skipped_run"):
            self.stdout.write(self.style.WARNING(f"Skipped: {result['skipped_run']}"))
            return

        for error in result["errors"]:
            self.stderr.write(f"{error['page_id']}: {error['error']}")
        for conflict in result.get("conflicts", []):
            self.stderr.write(
                self.style.WARNING(f"{conflict['page_id']}: {conflict['reason']}")
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"{result['created']} created, {result['updated']} updated, "
                f"{result['skipped']} skipped, {len(result.get('conflicts', []))} conflicts, "
                f"{len(result['errors'])} errors"
            )
        )
