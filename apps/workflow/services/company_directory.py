"""
Company directory lookups used by job-code validation.

The directory itself is owned by company/branch management; this module only
answers whether a prefix is valid.
"""

from apps.workflow.models import Company


def is_valid_prefix(prefix: str) -> bool:
    if not prefix:
        return False
    return Company.objects.filter(prefix=prefix, is_active=True).exists()
