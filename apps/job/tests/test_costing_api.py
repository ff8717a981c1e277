"""
API tests for the job code and costing REST endpoints.
"""

from django.urls import reverse
from rest_framework import status

from apps.job.models import CostingEntry, JobCode
from apps.job.services import approval_queue
from apps.purchasing.models import PurchaseOrder
from apps.testing import BaseAPITestCase, make_entry, make_job_code, make_staff


class JobCodeApiTest(BaseAPITestCase):
    def setUp(self):
        self.staff = make_staff("pm@example.com")
        self.client.force_authenticate(user=self.staff)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse("jobs:job_code_list"))
        self.assertIn(
            response.status_code,
            (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN),
        )

    def test_create_job_code(self):
        response = self.client.post(
            reverse("jobs:job_code_list"),
            {"title": "Valve supply", "company_prefix": "FS", "job_nature_code": "P", "quoted_value": "2500.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["code"], "FS-P1")
        self.assertEqual(response.data["quoted_value"], "2500.00")
        self.assertEqual(response.data["job_nature_label"], "Product")
        self.assertTrue(response.data["is_editable"])

    def test_create_needs_code_or_prefix_and_nature(self):
        response = self.client.post(
            reverse("jobs:job_code_list"), {"title": "No code"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_with_unknown_prefix(self):
        response = self.client.post(
            reverse("jobs:job_code_list"),
            {"title": "Bad", "company_prefix": "ZZ", "job_nature_code": "P"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("company_prefix", response.data["details"])

    def test_unknown_fields_rejected(self):
        response = self.client.post(
            reverse("jobs:job_code_list"),
            {"title": "x", "company_prefix": "FS", "job_nature_code": "P", "gross_margin": "1"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_and_missing(self):
        job_code = make_job_code(self.staff)
        response = self.client.get(reverse("jobs:job_code_detail", args=[job_code.code.lower()]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["code"], job_code.code)

        response = self.client.get(reverse("jobs:job_code_detail", args=["FS-P404"]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_crm_job_code_patch_conflicts(self):
        job_code = make_job_code(self.staff)
        JobCode.objects.filter(pk=job_code.pk).update(source="crm")
        response = self.client.patch(
            reverse("jobs:job_code_detail", args=[job_code.code]),
            {"title": "Renamed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_generate_next_and_validate(self):
        response = self.client.get(
            reverse("jobs:job_code_next"), {"company_prefix": "FS", "job_nature_code": "SV"}
        )
        self.assertEqual(response.data["code"], "FS-SV1")

        response = self.client.post(
            reverse("jobs:job_code_generate"),
            {"company_prefix": "fs", "job_nature_code": "SV"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["code"], "FS-SV1")

        response = self.client.post(
            reverse("jobs:job_code_validate"), {"code": "xx-p01"}, format="json"
        )
        self.assertFalse(response.data["valid"])
        self.assertEqual(response.data["code"], "XX-P01")
        self.assertEqual(len(response.data["errors"]), 2)

    def test_link_purchase_order(self):
        job_code = make_job_code(self.staff)
        po = PurchaseOrder.objects.create(po_number="PO-77", total_amount=12000, status="submitted")

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("jobs:job_code_po_link", args=[job_code.code]),
                {"document_id": str(po.id)},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        job_code.refresh_from_db()
        self.assertEqual(job_code.total_po_value, 12000)

        other = make_job_code(self.staff, title="Other")
        response = self.client.delete(
            reverse("jobs:job_code_po_unlink", args=[other.code, po.id])
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(
                reverse("jobs:job_code_po_unlink", args=[job_code.code, po.id])
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        job_code.refresh_from_db()
        self.assertEqual(job_code.linked_pos, [])

    def test_refresh_financials(self):
        job_code = make_job_code(self.staff)
        PurchaseOrder.objects.create(po_number="PO-78", total_amount=100000, status="submitted")
        PurchaseOrder.objects.filter(po_number="PO-78").update(job_code=job_code.code)

        response = self.client.post(
            reverse("jobs:job_code_refresh_financials", args=[job_code.code])
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_po_value"], "1000.00")
        self.assertEqual(response.data["linked_pos"][0]["number"], "PO-78")


class CostingEntryApiTest(BaseAPITestCase):
    def setUp(self):
        self.staff = make_staff("site@example.com")
        self.approver = make_staff("boss@example.com", office=True)
        self.job_code = make_job_code(self.staff)
        self.client.force_authenticate(user=self.staff)

    def _create(self, **data):
        payload = {
            "job_code": self.job_code.code,
            "cost_type": "pre",
            "category": "A",
            "amount": "100.00",
        }
        payload.update(data)
        return self.client.post(reverse("jobs:costing_entry_list"), payload, format="json")

    def test_create_and_list(self):
        response = self._create(amount="123.455", submit_immediately=True)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["amount"], "123.46")
        self.assertEqual(response.data["approval_status"], "pending")
        self.assertEqual(response.data["created_by"]["email"], "site@example.com")

        response = self.client.get(
            reverse("jobs:costing_entry_list"), {"job_code": self.job_code.code}
        )
        self.assertEqual(len(response.data), 1)

    def test_list_requires_job_code(self):
        response = self.client.get(reverse("jobs:costing_entry_list"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_validation_errors(self):
        response = self._create(category="Z")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._create(amount="-1")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._create(job_code="FS-P404")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("job_code", response.data["details"])

    def test_edit_and_delete_draft(self):
        entry_id = self._create().data["id"]
        url = reverse("jobs:costing_entry_detail", args=[entry_id])

        response = self.client.patch(url, {"amount": "80.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["balance_payable"], "80.00")

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_submit(self):
        entry_id = self._create().data["id"]
        response = self.client.post(
            reverse("jobs:costing_entry_submit", args=[entry_id]),
            {"approver": str(self.approver.id)},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["approval_status"], "pending")
        self.assertEqual(response.data["assigned_approver"]["id"], str(self.approver.id))

    def test_approve_requires_office_staff(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        response = self.client.post(
            reverse("jobs:costing_entry_approve", args=[entry.id]), {}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approve_twice_then_reject_conflicts(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="350.00")
        self.client.force_authenticate(user=self.approver)
        url = reverse("jobs:costing_entry_approve", args=[entry.id])

        for _ in range(2):
            response = self.client.post(url, {"remarks": "fine"}, format="json")
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data["approval_status"], "approved")

        response = self.client.post(
            reverse("jobs:costing_entry_reject", args=[entry.id]),
            {"reason": "Changed my mind"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        self.job_code.refresh_from_db()
        self.assertEqual(self.job_code.costing_summary["pre_cost"]["total"], 35000)

    def test_reject_requires_reason(self):
        entry = make_entry(self.job_code, self.staff, submit=True)
        self.client.force_authenticate(user=self.approver)
        response = self.client.post(
            reverse("jobs:costing_entry_reject", args=[entry.id]), {"reason": " "}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("reason", response.data["details"])
        entry.refresh_from_db()
        self.assertEqual(entry.approval_status, "pending")

    def test_approving_entry_assigned_elsewhere_is_forbidden(self):
        other = make_staff("other@example.com", office=True)
        entry = make_entry(self.job_code, self.staff, submit=True, assigned_approver=other)
        self.client.force_authenticate(user=self.approver)
        response = self.client.post(
            reverse("jobs:costing_entry_approve", args=[entry.id]), {}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approval_queue_and_count(self):
        make_entry(self.job_code, self.staff, submit=True)
        make_entry(self.job_code, self.staff)
        self.client.force_authenticate(user=self.approver)

        response = self.client.get(reverse("jobs:approval_queue"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["priority"], "normal")
        self.assertEqual(response.data[0]["entry"]["job_code"], self.job_code.code)

        response = self.client.get(reverse("jobs:approval_queue_count"))
        self.assertEqual(response.data, {"count": 1})

    def test_my_stats_and_export(self):
        entry = make_entry(self.job_code, self.staff, submit=True, amount="50.00")
        approval_queue.approve(entry.id, self.approver)

        response = self.client.get(reverse("jobs:costing_entry_my_stats"))
        self.assertEqual(response.data["total"], 1)
        self.assertEqual(response.data["approved_amount"], "50.00")

        response = self.client.get(
            reverse("jobs:job_code_costing_export", args=[self.job_code.code])
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["entries"]["pre"]["A"][0]["amount"], "50.00")
        self.assertEqual(CostingEntry.objects.count(), 1)
