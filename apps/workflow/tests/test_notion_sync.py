"""Tests for pulling costing pages from Notion and pushing decisions back."""

from io import StringIO
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.core.management import CommandError, call_command

from apps.job.models import CostingEntry
from apps.job.services import approval_queue
from apps.testing import BaseTestCase, make_entry, make_job_code, make_staff
from apps.workflow.api.notion.sync import (
    SYNC_LOCK_KEY,
    push_approval_status,
    sync_costing_entries,
    transform_costing_page,
)
from apps.workflow.exceptions import NotionApiError, NotionValidationError
from apps.workflow.models import AppError, CompanyDefaults

DATABASE_ID = "db-costing"


def _text(value):
    return {"rich_text": [{"plain_text": value}]}


def _select(value):
    return {"select": {"name": value} if value else None}


def _page(page_id, job_code="FS-S1", amount=250.5, **overrides):
    """Return a page shaped like a Notion database query result."""
    properties = {
        "Entry Name": {"title": [{"plain_text": "Cable tray"}]},
        "Job Code": _text(job_code),
        "Category": _select("C - Electrical & Control"),
        "Cost Type": _select("PRE-Cost Budget"),
        "Amount RM": {"number": amount},
        "Date": {"date": {"start": "2025-03-14"}},
        "Vendor": _text("Sparky Sdn Bhd"),
        "Invoice No": _text("INV-88"),
        "Submitted By": {
            "people": [{"name": "Tech", "person": {"email": "tech@example.com"}}]
        },
        "Receipt": {
            "files": [{"name": "receipt.jpg", "file": {"url": "https://files/r.jpg"}}]
        },
        "Entry Status": _select("Submitted"),
        "HiggsFlow ID": _text(""),
    }
    properties.update(overrides)
    return {
        "id": page_id,
        "url": f"https://www.notion.so/{page_id}",
        "last_edited_time": "2025-03-14T08:00:00.000Z",
        "properties": properties,
    }


def _enable_sync():
    CompanyDefaults.objects.update(
        notion_sync_enabled=True, notion_costing_database_id=DATABASE_ID
    )


class TransformCostingPageTest(BaseTestCase):
    def test_flattens_properties(self):
        raw = transform_costing_page(_page("page-1"), DATABASE_ID)

        self.assertEqual(raw["external_id"], "page-1")
        self.assertEqual(raw["job_code"], "FS-S1")
        self.assertEqual(raw["category"], "C - Electrical & Control")
        self.assertEqual(raw["amount"], 250.5)
        self.assertEqual(raw["entry_date"], "2025-03-14")
        self.assertEqual(raw["description"], "Cable tray")
        self.assertEqual(raw["submitted_by_email"], "tech@example.com")
        self.assertEqual(raw["attachments"], [{"name": "receipt.jpg", "url": "https://files/r.jpg"}])
        self.assertEqual(raw["notion_database_id"], DATABASE_ID)

    def test_missing_required_properties(self):
        page = _page("page-2", **{"Amount RM": {"number": None}, "Category": _select(None)})
        with self.assertRaises(NotionValidationError) as ctx:
            transform_costing_page(page)
        self.assertEqual(ctx.exception.missing_fields, ["category", "amount"])
        self.assertEqual(ctx.exception.page_id, "page-2")


class SyncCostingEntriesTest(BaseTestCase):
    def setUp(self):
        self.submitter = make_staff("tech@example.com")
        self.job_code = make_job_code(self.submitter)
        self.notion = MagicMock()

    def test_disabled_sync_does_nothing(self):
        result = sync_costing_entries(client=self.notion)
        self.assertEqual(result["skipped_run"], "Notion sync is disabled")
        self.notion.query_database.assert_not_called()

    def test_missing_database_is_skipped(self):
        CompanyDefaults.objects.update(notion_sync_enabled=True)
        result = sync_costing_entries(client=self.notion)
        self.assertEqual(result["skipped_run"], "No Notion costing database configured")

    def test_running_sync_holds_the_lock(self):
        _enable_sync()
        cache.add(SYNC_LOCK_KEY, True)
        self.addCleanup(cache.delete, SYNC_LOCK_KEY)

        result = sync_costing_entries(client=self.notion)
        self.assertIn("already running", result["skipped_run"])
        self.notion.query_database.assert_not_called()

    def test_pages_are_ingested_and_written_back(self):
        _enable_sync()
        self.notion.query_database.return_value = [
            _page("page-1"),
            _page("page-2", job_code="FS-S999"),
            _page("page-3", **{"Job Code": _text("")}),
        ]

        result = sync_costing_entries(client=self.notion)

        self.assertEqual(result["created"], 1)
        self.assertEqual(result["updated"], 0)
        self.assertEqual([error["page_id"] for error in result["errors"]], ["page-2", "page-3"])

        entry = CostingEntry.objects.get(external_id="page-1")
        self.assertEqual(entry.amount, 25050)
        self.assertEqual(entry.category, "C")
        self.assertEqual(entry.created_by, self.submitter)

        self.notion.update_page_properties.assert_called_once()
        page_id, properties = self.notion.update_page_properties.call_args.args
        self.assertEqual(page_id, "page-1")
        self.assertEqual(properties["Entry Status"], {"select": {"name": "Synced"}})
        self.assertEqual(
            properties["HiggsFlow ID"]["rich_text"][0]["text"]["content"], str(entry.id)
        )

        self.assertEqual(AppError.objects.count(), 2)
        self.assertIsNotNone(CompanyDefaults.objects.get().last_notion_sync)
        self.assertIsNone(cache.get(SYNC_LOCK_KEY))

    def test_incremental_sync_filters_on_last_edit(self):
        _enable_sync()
        self.notion.query_database.return_value = []
        sync_costing_entries(client=self.notion)
        sync_costing_entries(client=self.notion)

        first_filter = self.notion.query_database.call_args_list[0].kwargs["filter"]
        second_filter = self.notion.query_database.call_args_list[1].kwargs["filter"]
        self.assertIn("or", first_filter)
        self.assertIn("and", second_filter)

    def test_repeat_sync_updates_and_skips_decided_entries(self):
        _enable_sync()
        self.notion.query_database.return_value = [_page("page-1")]
        sync_costing_entries(client=self.notion)

        synced = _page("page-1", amount=300, **{"Entry Status": _select("Synced"), "HiggsFlow ID": _text("x")})
        self.notion.query_database.return_value = [synced]
        result = sync_costing_entries(client=self.notion, full=True)
        self.assertEqual(result["updated"], 1)
        self.assertEqual(CostingEntry.objects.get().amount, 30000)

        approver = make_staff("boss@example.com", office=True)
        approval_queue.approve(CostingEntry.objects.get().id, approver)
        result = sync_costing_entries(client=self.notion, full=True)
        self.assertEqual(result["skipped"], 1)

    def test_structural_change_is_reported_as_conflict_without_write_back(self):
        _enable_sync()
        self.notion.query_database.return_value = [_page("page-1")]
        sync_costing_entries(client=self.notion)
        self.notion.update_page_properties.reset_mock()

        moved = _page("page-1", **{"Cost Type": _select("POST-Cost Actual")})
        self.notion.query_database.return_value = [moved]
        result = sync_costing_entries(client=self.notion, full=True)

        self.assertEqual((result["created"], result["updated"], result["skipped"]), (0, 0, 0))
        self.assertEqual(result["errors"], [])
        self.assertEqual(len(result["conflicts"]), 1)
        self.assertEqual(result["conflicts"][0]["page_id"], "page-1")
        self.assertIn("cost_type", result["conflicts"][0]["reason"])
        self.notion.update_page_properties.assert_not_called()
        self.assertEqual(CostingEntry.objects.get().cost_type, "pre")
        self.assertFalse(AppError.objects.exists())

    def test_query_failure_propagates_and_releases_lock(self):
        _enable_sync()
        self.notion.query_database.side_effect = NotionApiError("bad gateway", status_code=502)
        with self.assertRaises(NotionApiError):
            sync_costing_entries(client=self.notion)
        self.assertIsNone(cache.get(SYNC_LOCK_KEY))


class PushApprovalStatusTest(BaseTestCase):
    def setUp(self):
        self.submitter = make_staff("tech@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.submitter)
        self.entry = make_entry(self.job_code, self.submitter, submit=True)
        CostingEntry.objects.filter(pk=self.entry.pk).update(
            source="notion", external_id="page-9"
        )
        self.notion = MagicMock()

    def test_manual_entries_are_not_pushed(self):
        _enable_sync()
        manual = make_entry(self.job_code, self.submitter)
        self.assertFalse(push_approval_status(manual, client=self.notion))
        self.notion.update_page_properties.assert_not_called()

    def test_disabled_sync_is_not_pushed(self):
        self.entry.refresh_from_db()
        self.assertFalse(push_approval_status(self.entry, client=self.notion))

    def test_rejection_carries_reason(self):
        _enable_sync()
        entry = approval_queue.reject(self.entry.id, self.approver, "No receipt")

        self.assertTrue(push_approval_status(entry, client=self.notion))
        self.notion.update_page_properties.assert_called_once_with(
            "page-9",
            {
                "Approval Status": {"select": {"name": "Rejected"}},
                "Rejection Reason": {
                    "rich_text": [{"type": "text", "text": {"content": "No receipt"}}]
                },
            },
        )

    @patch("apps.workflow.api.notion.sync.NotionClient")
    def test_decision_is_pushed_after_commit(self, client_class):
        _enable_sync()
        with self.captureOnCommitCallbacks(execute=True):
            approval_queue.approve(self.entry.id, self.approver)

        client_class.return_value.update_page_properties.assert_called_once_with(
            "page-9", {"Approval Status": {"select": {"name": "Approved"}}}
        )

    @patch("apps.workflow.api.notion.sync.NotionClient")
    def test_push_failure_does_not_undo_decision(self, client_class):
        _enable_sync()
        client_class.return_value.update_page_properties.side_effect = NotionApiError("down")
        with self.captureOnCommitCallbacks(execute=True):
            approval_queue.approve(self.entry.id, self.approver)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.approval_status, "approved")
        self.assertTrue(AppError.objects.filter(message="down").exists())


class SyncNotionCostingCommandTest(BaseTestCase):
    @patch("apps.workflow.management.commands.sync_notion_costing.sync_costing_entries")
    def test_reports_counts(self, sync):
        sync.return_value = {
            "created": 2,
            "updated": 1,
            "skipped": 0,
            "errors": [{"page_id": "page-5", "error": "bad"}],
        }
        out, err = StringIO(), StringIO()
        call_command("sync_notion_costing", "--full", stdout=out, stderr=err)

        sync.assert_called_once_with(full=True)
        self.assertIn("2 created, 1 updated, 0 skipped, 0 conflicts, 1 errors", out.getvalue())
        self.assertIn("page-5: bad", err.getvalue())

    @patch("apps.workflow.management.commands.sync_notion_costing.sync_costing_entries")
    def test_api_failure_is_a_command_error(self, sync):
        sync.side_effect = NotionApiError("unauthorized", status_code=401)
        with self.assertRaises(CommandError):
            call_command("sync_notion_costing", stdout=StringIO())
