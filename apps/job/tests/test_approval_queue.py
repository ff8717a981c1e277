"""
Tests for the approval queue: ordering, priority, decisions and notifications.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.core.exceptions import PermissionDenied, ValidationError
from django.utils import timezone

from apps.accounts.models import ApproverProfile, ApproverScope
from apps.job.enums import ApprovalStatus
from apps.job.models import CostingEntry
from apps.job.services import approval_queue
from apps.job.services.costing_entry_service import CostingEntryService
from apps.testing import BaseTestCase, make_entry, make_job_code, make_staff
from apps.workflow.exceptions import ConflictError
from apps.workflow.services.company_defaults_service import get_company_defaults


class CalculatePriorityTest(BaseTestCase):
    def setUp(self):
        self.defaults = get_company_defaults()

    def test_fresh_small_entry_is_normal(self):
        self.assertEqual(approval_queue.calculate_priority(0, 1000, self.defaults), "normal")

    def test_age_drives_priority(self):
        self.assertEqual(approval_queue.calculate_priority(4, 0, self.defaults), "high")
        self.assertEqual(approval_queue.calculate_priority(8, 0, self.defaults), "urgent")

    def test_amount_drives_priority(self):
        self.assertEqual(approval_queue.calculate_priority(0, 500001, self.defaults), "high")
        self.assertEqual(
            approval_queue.calculate_priority(0, 1000001, self.defaults), "urgent"
        )

    def test_thresholds_are_exclusive(self):
        self.assertEqual(approval_queue.calculate_priority(3, 500000, self.defaults), "normal")


class ApprovalQueueListingTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.other_approver = make_staff("other@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def _backdate(self, entry, days):
        CostingEntry.objects.filter(pk=entry.pk).update(
            submitted_at=timezone.now() - timedelta(days=days)
        )

    def test_queue_is_oldest_first_with_priority(self):
        newer = make_entry(self.job_code, self.staff, submit=True)
        older = make_entry(self.job_code, self.staff, submit=True)
        self._backdate(older, 10)
        self._backdate(newer, 1)
        make_entry(self.job_code, self.staff)  # draft, not queued

        items = approval_queue.get_queue()
        self.assertEqual([item.id for item in items], [older.id, newer.id])
        self.assertEqual(items[0].priority, "urgent")
        self.assertEqual(items[0].days_waiting, 10)
        self.assertEqual(items[1].priority, "normal")
        self.assertEqual(items[0].job_code, self.job_code.code)

    def test_approver_sees_own_and_unassigned(self):
        mine = make_entry(self.job_code, self.staff, submit=True, assigned_approver=self.approver)
        unassigned = make_entry(self.job_code, self.staff, submit=True)
        make_entry(self.job_code, self.staff, submit=True, assigned_approver=self.other_approver)

        ids = {item.id for item in approval_queue.get_queue(approver=self.approver)}
        self.assertEqual(ids, {mine.id, unassigned.id})
        self.assertEqual(approval_queue.queue_count(approver=self.approver), 2)
        self.assertEqual(approval_queue.queue_count(), 3)

    def test_company_scope(self):
        other_company = make_job_code(self.staff, company_prefix="BWS")
        make_entry(self.job_code, self.staff, submit=True)
        entry = make_entry(other_company, self.staff, submit=True)

        items = approval_queue.get_queue(company_prefix="BWS")
        self.assertEqual([item.id for item in items], [entry.id])


class ApproveRejectTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.other_approver = make_staff("other@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def test_approve_updates_entry_counters_and_rollup(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="250.00")
        entry = approval_queue.approve(entry.id, self.approver, remarks="ok")

        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(entry.approved_by, self.approver)
        self.assertIsNotNone(entry.approved_at)
        self.assertEqual(entry.approval_history[-1]["action"], "approved")
        self.assertEqual(entry.approval_history[-1]["remarks"], "ok")

        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 0)
        self.assertEqual(self.job_code.pending_approval_amount, 0)
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["total"], 25000)
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["by_category"]["A"], 25000)

    def test_repeat_approve_is_idempotent(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.approve(entry.id, self.approver)
        entry = approval_queue.approve(entry.id, self.approver)

        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(
            [h["action"] for h in entry.approval_history],
            ["created", "submitted", "approved"],
        )
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 0)
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["total"], 10000)

    def test_reject_after_approve_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.approve(entry.id, self.approver)
        with self.assertRaises(ConflictError):
            approval_queue.reject(entry.id, self.approver, "Too late")

    def test_approve_after_reject_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.reject(entry.id, self.approver, "Duplicate receipt")
        with self.assertRaises(ConflictError):
            approval_queue.approve(entry.id, self.approver)

    def test_approve_draft_conflicts(self):
        entry = make_entry(self.job_code, self.staff)
        with self.assertRaises(ConflictError):
            approval_queue.approve(entry.id, self.approver)

    def test_blank_reason_rejected_before_any_write(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        for reason in ("", "   ", None):
            with self.subTest(reason=reason):
                with self.assertRaises(ValidationError) as ctx:
                    approval_queue.reject(entry.id, self.approver, reason)
                self.assertIn("reason", ctx.exception.message_dict)

        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)
        self.assertEqual(len(entry.approval_history), 2)

    def test_reject_records_reason_and_excludes_from_rollup(self):
        kept = make_entry(self.job_code, self.staff, submit=True, amount="10.00")
        dropped = make_entry(self.job_code, self.staff, submit=True, amount="90.00")
        approval_queue.approve(kept.id, self.approver)
        dropped = approval_queue.reject(dropped.id, self.approver, "  Not our job  ")

        self.assertEqual(dropped.rejection_reason, "Not our job")
        self.assertEqual(dropped.rejected_by, self.approver)
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["total"], 1000)
        self.assertEqual(self.job_code.pending_approval_count, 0)

    def test_repeat_reject_is_idempotent(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        approval_queue.reject(entry.id, self.approver, "Wrong job")
        entry = approval_queue.reject(entry.id, self.approver, "Wrong job")
        self.assertEqual(entry.approval_status, ApprovalStatus.REJECTED)
        self.assertEqual(len(entry.approval_history), 3)

    def test_entry_assigned_elsewhere_is_forbidden(self):
        entry = make_entry(
            self.job_code, self.staff, submit=True, assigned_approver=self.other_approver
        )
        with self.assertRaises(PermissionDenied):
            approval_queue.approve(entry.id, self.approver)
        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)

    def test_unknown_entry(self):
        with self.assertRaises(CostingEntry.DoesNotExist):
            approval_queue.approve("00000000-0000-0000-0000-000000000000", self.approver)

    def _read_before_decision(self, entry):
        """Load the entry as a racing approver would have seen it while pending."""
        return CostingEntry.objects.select_related("job_code").get(pk=entry.pk)

    def test_approve_losing_race_to_approve_is_idempotent(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="60.00")
        stale = self._read_before_decision(entry)
        self.assertEqual(stale.approval_status, ApprovalStatus.PENDING)
        approval_queue.approve(entry.id, self.other_approver)

        with patch(
            "apps.job.services.approval_queue._check_assigned_approver",
            return_value=stale,
        ):
            result = approval_queue.approve(entry.id, self.approver)

        self.assertEqual(result.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(result.approved_by, self.other_approver)
        self.assertEqual(
            [h["action"] for h in result.approval_history],
            ["created", "submitted", "approved"],
        )
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 0)
        self.assertEqual(self.job_code.pending_approval_amount, 0)
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["total"], 6000)

    def test_reject_losing_race_to_approve_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        stale = self._read_before_decision(entry)
        approval_queue.approve(entry.id, self.other_approver)

        with patch(
            "apps.job.services.approval_queue._check_assigned_approver",
            return_value=stale,
        ):
            with self.assertRaises(ConflictError):
                approval_queue.reject(entry.id, self.approver, "Too late")

        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(entry.rejection_reason, "")
        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.pending_approval_count, 0)


class ApproverProfileDecisionTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("limited@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def _profile(self, **fields):
        return ApproverProfile.objects.create(staff=self.approver, **fields)

    def test_approval_above_limit_is_forbidden(self):
        self._profile(max_amount_limit=50000)
        entry = make_entry(self.job_code, self.staff, submit=True, amount="500.01")

        with self.assertRaises(PermissionDenied):
            approval_queue.approve(entry.id, self.approver)
        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, ApprovalStatus.PENDING)

    def test_approval_at_limit_succeeds(self):
        self._profile(max_amount_limit=50000)
        entry = make_entry(self.job_code, self.staff, submit=True, amount="500.00")
        entry = approval_queue.approve(entry.id, self.approver)
        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)

    def test_rejection_ignores_limit(self):
        self._profile(max_amount_limit=100)
        entry = make_entry(self.job_code, self.staff, submit=True, amount="900.00")
        entry = approval_queue.reject(entry.id, self.approver, "Over budget")
        self.assertEqual(entry.approval_status, ApprovalStatus.REJECTED)

    def test_entry_outside_company_scope_is_forbidden(self):
        self._profile(scope=ApproverScope.COMPANY, company_prefixes=["BWS"])
        entry = make_entry(self.job_code, self.staff, submit=True)
        with self.assertRaises(PermissionDenied):
            approval_queue.reject(entry.id, self.approver, "Not mine")

    def test_inactive_profile_cannot_decide(self):
        self._profile(is_active=False)
        entry = make_entry(self.job_code, self.staff, submit=True)
        with self.assertRaises(PermissionDenied):
            approval_queue.approve(entry.id, self.approver)


class ApprovalQueueSubscriptionTest(BaseTestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.staff)

    def test_subscriber_notified_after_commit(self):
        callback = MagicMock()
        unsubscribe = approval_queue.subscribe(callback)
        self.addCleanup(unsubscribe)

        with self.captureOnCommitCallbacks(execute=True):
            entry = make_entry(self.job_code, self.staff, submit=True)
        with self.captureOnCommitCallbacks(execute=True):
            approval_queue.approve(entry.id, self.approver)

        actions = [call.args[0]["action"] for call in callback.call_args_list]
        self.assertEqual(actions, ["submitted", "approved"])
        event = callback.call_args_list[0].args[0]
        self.assertEqual(event["entry_id"], entry.id)
        self.assertEqual(event["job_code"], self.job_code.code)
        self.assertEqual(event["company_prefix"], "FS")

    def test_no_notification_without_commit(self):
        callback = MagicMock()
        unsubscribe = approval_queue.subscribe(callback)
        self.addCleanup(unsubscribe)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            make_entry(self.job_code, self.staff, submit=True)

        callback.assert_not_called()
        for on_commit in callbacks:
            on_commit()
        callback.assert_called_once()

    def test_company_filter(self):
        callback = MagicMock()
        unsubscribe = approval_queue.subscribe(callback, company_prefix="BWS")
        self.addCleanup(unsubscribe)

        with self.captureOnCommitCallbacks(execute=True):
            make_entry(self.job_code, self.staff, submit=True)
        callback.assert_not_called()

    def test_unsubscribe_stops_notifications(self):
        callback = MagicMock()
        unsubscribe = approval_queue.subscribe(callback)
        self.assertTrue(unsubscribe())

        with self.captureOnCommitCallbacks(execute=True):
            entry = make_entry(self.job_code, self.staff)
            CostingEntryService.submit_for_approval(entry.id, self.staff)
        callback.assert_not_called()
