"""
Shared test utilities and base classes for the job costing project.

All test classes that need database models should inherit from BaseTestCase
to ensure required fixtures are loaded.
"""

from django.test import TestCase, TransactionTestCase
from rest_framework.test import APITestCase


class BaseTestCase(TestCase):
    """
    Base test case that loads required fixtures.

    The company_defaults fixture is required for most tests because:
    - Job code creation needs CompanyDefaults for the default currency
    - Approval priority reads its thresholds from CompanyDefaults
    - Job-code validation only accepts prefixes of seeded companies
    """

    fixtures = ["company_defaults"]


class BaseTransactionTestCase(TransactionTestCase):
    """
    Base transaction test case that loads required fixtures.

    Use this for tests that need transaction isolation (e.g., testing
    database constraints, concurrent access, or rollback behavior).
    """

    fixtures = ["company_defaults"]


class BaseAPITestCase(APITestCase):
    """
    Base API test case that loads required fixtures.

    Use this for DRF API tests that need database access.
    """

    fixtures = ["company_defaults"]


def make_staff(email: str = "staff@example.com", office: bool = False, **extra):
    """Create a staff member; ``office=True`` makes them an approver."""
    from apps.accounts.models import Staff

    extra.setdefault("first_name", email.split("@")[0].title())
    extra.setdefault("last_name", "Tester")
    return Staff.objects.create_user(
        email=email, password="testpass123", is_office_staff=office, **extra
    )


def make_job_code(staff=None, company_prefix: str = "FS", job_nature_code: str = "S", **data):
    """Create a manual job code through the service so it gets a registry number."""
    from apps.job.services.job_code_service import JobCodeService

    payload = {
        "title": "Test Job",
        "company_prefix": company_prefix,
        "job_nature_code": job_nature_code,
    }
    payload.update(data)
    return JobCodeService.create_job_code(payload, staff)


def make_entry(job_code, staff=None, submit: bool = False, **data):
    """Create a costing entry on ``job_code``. Amounts are in major units."""
    from apps.job.services.costing_entry_service import CostingEntryService

    payload = {
        "job_code": job_code.code,
        "cost_type": "pre",
        "category": "A",
        "amount": "100.00",
    }
    payload.update(data)
    return CostingEntryService.create(payload, staff, submit_immediately=submit)
