"""
Tests for bringing externally sourced costing records into the entry store.
"""

from datetime import date

from django.core.exceptions import ValidationError

from apps.job.enums import ApprovalStatus
from apps.job.models import CostingEntry
from apps.job.services import approval_queue
from apps.job.services.external_entry_adapter import (
    INGEST_CONFLICT,
    INGEST_CREATED,
    INGEST_SKIPPED,
    INGEST_UPDATED,
    ingest,
    normalize_category,
    normalize_cost_type,
    normalize_record,
)
from apps.testing import BaseTestCase, make_job_code, make_staff


class NormalizeRecordTest(BaseTestCase):
    def _raw(self, **overrides):
        raw = {
            "external_id": "page-1",
            "job_code": "fs-s1",
            "cost_type": "PRE-Cost Budget",
            "category": "C - Electrical & Control",
            "amount": 12.345,
            "entry_date": "2025-02-03T09:30:00.000+08:00",
            "vendor": "Sparky Sdn Bhd",
            "notion_url": "https://www.notion.so/page-1",
            "attachments": [{"name": "receipt.pdf", "url": "https://files/receipt.pdf"}],
        }
        raw.update(overrides)
        return raw

    def test_labels_amount_and_date_are_normalized(self):
        record = normalize_record(self._raw())
        self.assertEqual(record.job_code, "FS-S1")
        self.assertEqual(record.cost_type, "pre")
        self.assertEqual(record.category, "C")
        self.assertEqual(record.amount, 1235)
        self.assertEqual(record.entry_date, date(2025, 2, 3))
        self.assertEqual(record.source, "notion")
        self.assertEqual(record.source_meta["notion_page_id"], "page-1")
        self.assertEqual(record.source_meta["attachments"][0]["name"], "receipt.pdf")
        self.assertIn("synced_at", record.source_meta)

    def test_codes_are_accepted_as_is(self):
        self.assertEqual(normalize_category("H"), "H")
        self.assertEqual(normalize_cost_type("post"), "post")
        self.assertEqual(normalize_category("E - Freight Transport"), "E")

    def test_unknown_labels_are_rejected_not_defaulted(self):
        with self.assertRaises(ValidationError) as ctx:
            normalize_record(self._raw(category="Z - Snacks"))
        self.assertIn("category", ctx.exception.message_dict)
        with self.assertRaises(ValidationError):
            normalize_record(self._raw(cost_type="Forecast"))

    def test_missing_fields_reported(self):
        with self.assertRaises(ValidationError) as ctx:
            normalize_record({"external_id": "page-2"})
        self.assertEqual(
            set(ctx.exception.message_dict), {"job_code", "cost_type", "category", "amount"}
        )

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValidationError):
            normalize_record(self._raw(amount=-5))


class IngestTest(BaseTestCase):
    def setUp(self):
        self.submitter = make_staff("tech@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.submitter)

    def _record(self, **overrides):
        raw = {
            "external_id": "page-abc",
            "job_code": self.job_code.code,
            "cost_type": "POST-Cost Actual",
            "category": "F - Travelling",
            "amount": "88.40",
            "description": "Toll and mileage",
            "submitted_by_email": "TECH@example.com",
        }
        raw.update(overrides)
        return normalize_record(raw)

    def test_first_presentation_creates_pending_entry(self):
        result = ingest(self._record())
        self.assertEqual(result.action, INGEST_CREATED)

        entry = result.entry
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)
        self.assertEqual(entry.source, "notion")
        self.assertEqual(entry.external_id, "page-abc")
        self.assertEqual(entry.amount, 8840)
        self.assertEqual(entry.created_by, self.submitter)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)

    def test_repeat_presentation_updates_instead_of_duplicating(self):
        ingest(self._record())
        result = ingest(self._record(amount="90.00", description="Toll, mileage, parking"))

        self.assertEqual(result.action, INGEST_UPDATED)
        self.assertEqual(CostingEntry.objects.count(), 1)
        entry = CostingEntry.objects.get()
        self.assertEqual(entry.amount, 9000)
        self.assertEqual(entry.description, "Toll, mileage, parking")
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)
        self.assertEqual(self.job_code.pending_approval_amount, 9000)

    def test_unchanged_presentation_only_refreshes_metadata(self):
        ingest(self._record())
        result = ingest(self._record(last_edited_time="2025-05-01T00:00:00.000Z"))
        self.assertEqual(result.action, INGEST_UPDATED)
        self.assertEqual(
            result.entry.source_meta["last_edited_time"], "2025-05-01T00:00:00.000Z"
        )

    def test_decided_entries_are_skipped(self):
        created = ingest(self._record()).entry
        approval_queue.approve(created.id, self.approver)

        result = ingest(self._record(amount="1000.00"))
        self.assertEqual(result.action, INGEST_SKIPPED)
        created.refresh_from_db()
        self.assertEqual(created.amount, 8840)

    def test_unknown_job_code_rejected(self):
        with self.assertRaises(ValidationError):
            ingest(self._record(job_code="FS-S999"))
        self.assertFalse(CostingEntry.objects.exists())

    def test_unknown_submitter_leaves_creator_empty(self):
        result = ingest(self._record(submitted_by_email="nobody@example.com"))
        self.assertIsNone(result.entry.created_by)

    def test_structural_change_on_pending_entry_is_a_conflict(self):
        created = ingest(self._record()).entry
        other = make_job_code(self.submitter, title="Other job")

        result = ingest(self._record(job_code=other.code, amount="95.00"))

        self.assertEqual(result.action, INGEST_CONFLICT)
        self.assertEqual(result.entry.id, created.id)
        self.assertIn("job_code", result.reason)
        self.assertIn("pending", result.reason)
        created.refresh_from_db()
        self.assertEqual(created.job_code, self.job_code)
        self.assertEqual(created.amount, 8840)
        self.assertEqual(created.approval_history[-1]["action"], "submitted")

    def test_cost_type_change_names_the_field(self):
        ingest(self._record())
        result = ingest(self._record(cost_type="PRE-Cost Budget"))
        self.assertEqual(result.action, INGEST_CONFLICT)
        self.assertIn("cost_type", result.reason)
        self.assertEqual(CostingEntry.objects.get().cost_type, "post")
