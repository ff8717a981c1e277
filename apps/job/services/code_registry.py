"""
Job code registry.

Job codes follow ``<company prefix>-<job nature><running number>``, e.g.
``FS-SV12``. Running numbers come from a counter row per (prefix, nature) that
is only ever advanced with an atomic ``F()`` increment while holding a row
lock, so concurrent callers never see the same number.
"""

import logging
import re
from dataclasses import dataclass
from typing import List

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.db.models.functions import Greatest

from apps.job.enums import JobNature
from apps.job.models import JobCodeCounter
from apps.workflow.exceptions import RegistryUnavailable
from apps.workflow.services.company_directory import is_valid_prefix

logger = logging.getLogger(__name__)

# Longest first so "SV" wins over "S" when lexing
NATURE_CODES_LONGEST_FIRST = sorted(JobNature.values, key=len, reverse=True)

PREFIX_PATTERN = re.compile(r"[A-Z0-9]+")
DIGITS_PATTERN = re.compile(r"[1-9][0-9]*")
LOOSE_CODE_PATTERN = re.compile(r"([A-Z0-9]+)-([A-Z]+)([0-9]+)")


class InvalidJobCode(ValidationError):
    """A job code string that does not follow the code grammar."""


@dataclass(frozen=True)
class ParsedJobCode:
    company_prefix: str
    job_nature_code: str
    running_number: int


def normalize_code(code: str) -> str:
    """Canonical form for user-typed codes: trimmed and upper-cased."""
    return (code or "").strip().upper()


def format_job_code(
    company_prefix: str, job_nature_code: str, running_number: int
) -> str:
    if running_number < 1:
        raise InvalidJobCode(
            f"Running number must be a positive integer, got {running_number}"
        )
    return f"{company_prefix}-{job_nature_code}{running_number}"


def parse_job_code(code: str) -> ParsedJobCode:
    """
    Split a job code into its three parts.

    Raises InvalidJobCode when the string does not follow the grammar. The
    company prefix is not checked against the directory here; see
    ``validate_job_code`` for that.
    """
    if not isinstance(code, str) or not code:
        raise InvalidJobCode("Job code is required")

    prefix, separator, remainder = code.partition("-")
    if not separator or not PREFIX_PATTERN.fullmatch(prefix):
        raise InvalidJobCode(
            f"'{code}' must start with a company prefix followed by '-'"
        )

    for nature in NATURE_CODES_LONGEST_FIRST:
        if remainder.startswith(nature):
            digits = remainder[len(nature) :]
            break
    else:
        raise InvalidJobCode(f"'{code}' has an unknown job nature code")

    if not DIGITS_PATTERN.fullmatch(digits):
        raise InvalidJobCode(
            f"'{code}' must end with a running number without leading zeros"
        )

    return ParsedJobCode(
        company_prefix=prefix,
        job_nature_code=nature,
        running_number=int(digits),
    )


def validate_job_code(code: str) -> List[str]:
    """
    Return every reason ``code`` is not an acceptable job code.

    An empty list means the code is valid. Used for manually typed codes and
    for codes arriving from the CRM.
    """
    match = LOOSE_CODE_PATTERN.fullmatch(code or "")
    if not match:
        return [f"'{code}' does not match <prefix>-<nature><number>"]

    prefix, nature, digits = match.groups()
    violations = []
    if not is_valid_prefix(prefix):
        violations.append(f"Unknown company prefix '{prefix}'")
    if nature not in JobNature.values:
        violations.append(f"Unknown job nature code '{nature}'")
    if int(digits) < 1:
        violations.append("Running number must be a positive integer")
    elif digits.startswith("0"):
        violations.append("Running number must not have leading zeros")
    return violations


def _validate_pair(company_prefix: str, job_nature_code: str) -> None:
    errors = {}
    if not is_valid_prefix(company_prefix):
        errors["company_prefix"] = f"Unknown company prefix '{company_prefix}'"
    if job_nature_code not in JobNature.values:
        errors["job_nature_code"] = f"Unknown job nature code '{job_nature_code}'"
    if errors:
        raise ValidationError(errors)


def _locked_counter(company_prefix: str, job_nature_code: str) -> JobCodeCounter:
    counter, created = JobCodeCounter.objects.select_for_update().get_or_create(
        company_prefix=company_prefix, job_nature_code=job_nature_code
    )
    if created:
        logger.info(f"Started job code counter for {company_prefix}-{job_nature_code}")
    return counter


def generate_job_code(company_prefix: str, job_nature_code: str) -> str:
    """
    Issue the next job code for (prefix, nature).

    The code is built from the counter value read back after the increment.
    When called inside an outer transaction the number is only durable once
    that transaction commits.

    Raises:
        ValidationError: unknown prefix or nature code.
        RegistryUnavailable: the increment could not be committed.
    """
    _validate_pair(company_prefix, job_nature_code)

    try:
        with transaction.atomic():
            counter = _locked_counter(company_prefix, job_nature_code)
            JobCodeCounter.objects.filter(pk=counter.pk).update(
                last_number=F("last_number") + 1
            )
            counter.refresh_from_db(fields=["last_number"])
    except DatabaseError as exc:
        logger.error(
            f"Job code counter increment failed for "
            f"{company_prefix}-{job_nature_code}: {exc}",
            exc_info=True,
        )
        raise RegistryUnavailable(
            f"Could not issue a job code for {company_prefix}-{job_nature_code}; "
            f"no number was consumed, please retry"
        ) from exc

    code = format_job_code(company_prefix, job_nature_code, counter.last_number)
    logger.info(f"Issued job code {code}")
    return code


def reserve_running_number(parsed: ParsedJobCode) -> None:
    """
    Advance the counter so it never issues ``parsed.running_number`` again.

    Used when a code with an externally chosen number (CRM import, re-key)
    enters the registry.
    """
    try:
        with transaction.atomic():
            counter = _locked_counter(parsed.company_prefix, parsed.job_nature_code)
            JobCodeCounter.objects.filter(pk=counter.pk).update(
                last_number=Greatest(F("last_number"), parsed.running_number)
            )
    except DatabaseError as exc:
        raise RegistryUnavailable(
            f"Could not reserve running number {parsed.running_number} for "
            f"{parsed.company_prefix}-{parsed.job_nature_code}"
        ) from exc


def peek_next_number(company_prefix: str, job_nature_code: str) -> int:
    """Preview of the next running number. Not a reservation."""
    last_number = (
        JobCodeCounter.objects.filter(
            company_prefix=company_prefix, job_nature_code=job_nature_code
        )
        .values_list("last_number", flat=True)
        .first()
    )
    return (last_number or 0) + 1
