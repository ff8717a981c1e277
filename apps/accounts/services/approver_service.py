"""
Approver Service

Picks approvers for costing entries from their approver profiles and checks
that an approver may decide a given entry.

Office staff without a profile may decide anything but are never picked
automatically. Auto-assignment matches the most specific scope first: branch
approvers, then company approvers, then global ones. Amounts are in cents.
"""

import logging
from typing import List, Optional

from django.core.exceptions import PermissionDenied
from django.db.models import QuerySet

from apps.accounts.models import ApproverProfile, ApproverScope, Staff

logger = logging.getLogger(__name__)

AUTO_ASSIGN_ORDER = (ApproverScope.BRANCH, ApproverScope.COMPANY, ApproverScope.GLOBAL)


def profile_of(staff: Staff) -> Optional[ApproverProfile]:
    try:
        return staff.approver_profile
    except ApproverProfile.DoesNotExist:
        return None


def active_profiles() -> QuerySet:
    """Active profiles of active office staff, in name order."""
    return ApproverProfile.objects.filter(
        is_active=True, staff__is_active=True, staff__is_office_staff=True
    ).select_related("staff")


def get_available_approvers(
    company_prefix: str, branch_id: Optional[str] = None, amount: int = 0
) -> List[Staff]:
    """Office staff who could approve an entry of ``amount`` cents in this scope."""
    available = []
    for staff in Staff.objects.approvers().select_related("approver_profile"):
        profile = profile_of(staff)
        if profile is None or (
            profile.is_active
            and profile.covers(company_prefix, branch_id)
            and profile.within_limit(amount)
        ):
            available.append(staff)
    return available


def get_default_approver(
    company_prefix: str, branch_id: Optional[str] = None, amount: int = 0
) -> Optional[Staff]:
    """
    The approver a new submission is assigned to when the submitter names none.

    Returns None when no auto-assign approver covers the entry.
    """
    candidates = [
        profile
        for profile in active_profiles().filter(auto_assign=True)
        if profile.covers(company_prefix, branch_id) and profile.within_limit(amount)
    ]
    for scope in AUTO_ASSIGN_ORDER:
        for profile in candidates:
            if profile.scope == scope:
                logger.debug(
                    f"Default approver for {company_prefix}/{branch_id or '-'}: "
                    f"{profile.staff.email}"
                )
                return profile.staff
    return None


def check_can_decide(approver: Staff, entry, approving: bool) -> None:
    """
    Raise PermissionDenied unless ``approver`` may decide ``entry``.

    The amount limit applies to approvals only; an approver may always
    reject within their scope.
    """
    profile = profile_of(approver)
    if profile is None:
        return

    if not profile.is_active:
        raise PermissionDenied("Your approver profile is inactive")
    if not profile.covers(entry.company_prefix, entry.branch_id):
        logger.warning(
            f"{approver.email} is outside the approval scope of entry {entry.id} "
            f"({entry.company_prefix}/{entry.branch_id or '-'})"
        )
        raise PermissionDenied("This entry is outside your approval scope")
    if approving and not profile.within_limit(entry.amount):
        logger.warning(
            f"{approver.email} tried to approve entry {entry.id} for {entry.amount} cents "
            f"above their limit of {profile.max_amount_limit}"
        )
        raise PermissionDenied("This entry exceeds your approval limit")
