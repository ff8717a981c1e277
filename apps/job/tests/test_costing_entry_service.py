"""
Tests for CostingEntryService: creation, edits, submission and queries.
"""

from datetime import date

from django.core.exceptions import ValidationError

from apps.accounts.models import ApproverProfile, ApproverScope
from apps.job.enums import ApprovalStatus
from apps.job.models import CostingEntry
from apps.job.services import approval_queue
from apps.job.services.costing_entry_service import CostingEntryService
from apps.testing import BaseTestCase, make_entry, make_job_code, make_staff
from apps.workflow.exceptions import ConflictError


class CostingEntryCreateTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.job_code = make_job_code(self.staff)

    def test_create_draft_stores_cents(self):
        entry = make_entry(
            self.job_code,
            self.staff,
            amount="1250.50",
            amount_paid="250.25",
            entry_date="2025-03-14",
            vendor="Acme Valves",
        )
        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, ApprovalStatus.DRAFT)
        self.assertEqual(entry.amount, 125050)
        self.assertEqual(entry.amount_paid, 25025)
        self.assertEqual(entry.balance_payable, 100025)
        self.assertEqual(entry.unit_rate, 125050)
        self.assertEqual(entry.entry_date, date(2025, 3, 14))
        self.assertEqual(entry.company_prefix, "FS")
        self.assertEqual(entry.currency, "MYR")
        self.assertEqual(entry.created_by, self.staff)
        self.assertEqual([h["action"] for h in entry.approval_history], ["created"])

    def test_draft_does_not_touch_pending_counters(self):
        make_entry(self.job_code, self.staff)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 0)
        self.assertEqual(self.job_code.pending_approval_amount, 0)

    def test_submit_immediately_updates_pending_counters(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="75.00")
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)
        self.assertIsNotNone(entry.submitted_at)
        self.assertEqual(
            [h["action"] for h in entry.approval_history], ["created", "submitted"]
        )
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)
        self.assertEqual(self.job_code.pending_approval_amount, 7500)

    def test_missing_fields_reported_together(self):
        with self.assertRaises(ValidationError) as ctx:
            CostingEntryService.create({"job_code": self.job_code.code}, self.staff)
        self.assertEqual(
            set(ctx.exception.message_dict), {"cost_type", "category", "amount"}
        )

    def test_unknown_category_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            make_entry(self.job_code, self.staff, category="Z")
        self.assertIn("category", ctx.exception.message_dict)

    def test_paid_more_than_amount_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            make_entry(self.job_code, self.staff, amount="10.00", amount_paid="10.01")
        self.assertIn("amount_paid", ctx.exception.message_dict)
        self.assertFalse(CostingEntry.objects.exists())

    def test_unknown_job_code_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            CostingEntryService.create(
                {"job_code": "FS-P999", "cost_type": "pre", "category": "A", "amount": "1"},
                self.staff,
            )
        self.assertIn("job_code", ctx.exception.message_dict)

    def test_job_code_lookup_is_case_insensitive(self):
        entry = CostingEntryService.create(
            {
                "job_code": self.job_code.code.lower(),
                "cost_type": "pre",
                "category": "A",
                "amount": "10.00",
            },
            self.staff,
        )
        self.assertEqual(entry.job_code, self.job_code)
        self.assertEqual(entry.company_prefix, "FS")

    def test_cancelled_job_code_rejects_new_costs(self):
        self.job_code.status = "cancelled"
        self.job_code.save()
        with self.assertRaises(ConflictError):
            make_entry(self.job_code, self.staff)

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            make_entry(self.job_code, self.staff, approval_status="approved")
        self.assertIn("approval_status", ctx.exception.message_dict)


class CostingEntryUpdateTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.staff)
        self.other_job_code = make_job_code(self.staff, title="Other")

    def test_edit_draft_recomputes_balance(self):
        entry = make_entry(self.job_code, self.staff, amount="100.00")
        entry = CostingEntryService.update(
            entry.id, {"amount": "80.00", "amount_paid": "30.00"}, self.staff
        )
        self.assertEqual(entry.amount, 8000)
        self.assertEqual(entry.balance_payable, 5000)
        self.assertEqual(entry.approval_history[-1]["action"], "updated")

    def test_draft_can_move_to_another_job_code(self):
        entry = make_entry(self.job_code, self.staff)
        entry = CostingEntryService.update(
            entry.id, {"job_code": self.other_job_code.code, "cost_type": "post"}, self.staff
        )
        self.assertEqual(entry.job_code, self.other_job_code)
        self.assertEqual(entry.cost_type, "post")

    def test_pending_amount_change_adjusts_counters(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="100.00")
        CostingEntryService.update(entry.id, {"amount": "150.00"}, self.staff)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)
        self.assertEqual(self.job_code.pending_approval_amount, 15000)

    def test_pending_structural_change_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        with self.assertRaises(ConflictError):
            CostingEntryService.update(entry.id, {"cost_type": "post"}, self.staff)
        with self.assertRaises(ConflictError):
            CostingEntryService.update(
                entry.id, {"job_code": self.other_job_code.code}, self.staff
            )

    def test_pending_non_structural_change_allowed(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        entry = CostingEntryService.update(
            entry.id, {"category": "B", "vendor": "New Vendor"}, self.staff
        )
        self.assertEqual(entry.category, "B")
        self.assertEqual(entry.vendor, "New Vendor")

    def test_approved_entry_cannot_be_edited(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.approve(entry.id, self.approver)
        with self.assertRaises(ConflictError):
            CostingEntryService.update(entry.id, {"description": "late edit"}, self.staff)

    def test_unknown_entry_raises_does_not_exist(self):
        with self.assertRaises(CostingEntry.DoesNotExist):
            CostingEntryService.update(
                "00000000-0000-0000-0000-000000000000", {"notes": "x"}, self.staff
            )


class CostingEntryLifecycleTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def test_delete_draft(self):
        entry = make_entry(self.job_code, self.staff)
        CostingEntryService.delete(entry.id, self.staff)
        self.assertFalse(CostingEntry.objects.filter(pk=entry.pk).exists())

    def test_delete_pending_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        with self.assertRaises(ConflictError):
            CostingEntryService.delete(entry.id, self.staff)

    def test_submit_moves_draft_to_pending(self):
        entry = make_entry(self.job_code, self.staff, amount="40.00")
        entry = CostingEntryService.submit_for_approval(
            entry.id, self.staff, approver=self.approver
        )
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)
        self.assertEqual(entry.assigned_approver, self.approver)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)
        self.assertEqual(self.job_code.pending_approval_amount, 4000)

    def test_resubmitting_pending_is_a_no_op(self):
        entry = make_entry(self.job_code, self.staff)
        CostingEntryService.submit_for_approval(entry.id, self.staff)
        CostingEntryService.submit_for_approval(entry.id, self.staff)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 1)

    def test_submit_to_non_office_approver_rejected(self):
        entry = make_entry(self.job_code, self.staff)
        with self.assertRaises(ValidationError):
            CostingEntryService.submit_for_approval(
                entry.id, self.staff, approver=self.staff
            )

    def test_submit_rejected_entry_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.reject(entry.id, self.approver, "Wrong job")
        with self.assertRaises(ConflictError):
            CostingEntryService.submit_for_approval(entry.id, self.staff)

    def test_non_office_assigned_approver_rejected_on_create(self):
        with self.assertRaises(ValidationError) as ctx:
            make_entry(self.job_code, self.staff, submit=True, assigned_approver=self.staff)
        self.assertIn("assigned_approver", ctx.exception.message_dict)
        self.assertFalse(CostingEntry.objects.exists())

    def test_non_office_assigned_approver_rejected_on_update(self):
        entry = make_entry(self.job_code, self.staff)
        with self.assertRaises(ValidationError) as ctx:
            CostingEntryService.update(
                entry.id, {"assigned_approver": str(self.staff.id)}, self.staff
            )
        self.assertIn("assigned_approver", ctx.exception.message_dict)
        entry.refresh_from_db()
        self.assertIsNone(entry.assigned_approver)


class CostingEntryAutoAssignTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.job_code = make_job_code(self.staff, branch_id="KL")
        self.default_approver = make_staff("duty@example.com", office=True)
        ApproverProfile.objects.create(
            staff=self.default_approver,
            scope=ApproverScope.BRANCH,
            branch_ids=["KL"],
            auto_assign=True,
            max_amount_limit=100000,
        )

    def test_submit_assigns_default_approver(self):
        entry = make_entry(self.job_code, self.staff)
        entry = CostingEntryService.submit_for_approval(entry.id, self.staff)
        self.assertEqual(entry.assigned_approver, self.default_approver)

    def test_submit_immediately_assigns_default_approver(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        self.assertEqual(entry.assigned_approver, self.default_approver)

    def test_drafts_are_not_assigned(self):
        entry = make_entry(self.job_code, self.staff)
        self.assertIsNone(entry.assigned_approver)

    def test_explicit_approver_wins(self):
        chosen = make_staff("chosen@example.com", office=True)
        entry = make_entry(self.job_code, self.staff)
        entry = CostingEntryService.submit_for_approval(entry.id, self.staff, approver=chosen)
        self.assertEqual(entry.assigned_approver, chosen)

    def test_amount_above_every_limit_stays_unassigned(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="1000.01")
        self.assertIsNone(entry.assigned_approver)


class CostingEntryQueryTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def test_list_filters_by_cost_type(self):
        make_entry(self.job_code, self.staff, cost_type="pre")
        make_entry(self.job_code, self.staff, cost_type="post")
        entries = CostingEntryService.list_for_job_code(
            self.job_code.code, {"cost_type": "post"}
        )
        self.assertEqual([e.cost_type for e in entries], ["post"])

    def test_user_stats(self):
        approved = make_entry(self.job_code, self.staff, submit=True, amount="100.00")
        make_entry(self.job_code, self.staff, amount="20.00")
        approval_queue.approve(approved.id, self.approver)

        stats = CostingEntryService.user_stats(self.staff)
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["by_status"]["approved"], 1)
        self.assertEqual(stats["by_status"]["draft"], 1)
        self.assertEqual(stats["total_amount"], 12000)
        self.assertEqual(stats["approved_amount"], 10000)
        self.assertEqual(stats["this_month"]["count"], 2)

    def test_export_groups_approved_entries(self):
        first = make_entry(self.job_code, self.staff, submit=True, category="B")
        second = make_entry(
            self.job_code, self.staff, submit=True, cost_type="post", amount="12.30"
        )
        make_entry(self.job_code, self.staff, submit=True, category="C")
        approval_queue.approve(first.id, self.approver)
        approval_queue.approve(second.id, self.approver)

        grouped = CostingEntryService.export_approved(self.job_code.code)
        self.assertEqual(list(grouped["pre"]), ["B"])
        self.assertEqual(grouped["post"]["A"][0]["amount"], "12.30")
