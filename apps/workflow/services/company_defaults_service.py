import logging

from django.conf import settings

from apps.workflow.models import CompanyDefaults

logger = logging.getLogger(__name__)


def get_company_defaults() -> CompanyDefaults:
    """Return the CompanyDefaults singleton, creating it on first use."""
    instance = CompanyDefaults.objects.first()
    if instance is None:
        company_name = getattr(settings, "COMPANY_NAME", "Default Company")
        logger.warning(
            f"CompanyDefaults missing - creating default record for {company_name}"
        )
        instance = CompanyDefaults.objects.create(company_name=company_name)
    return instance
