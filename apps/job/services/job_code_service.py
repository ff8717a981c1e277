"""
Job Code Service Layer

Creating, editing and looking up job codes. Numbering itself belongs to
``code_registry``; this module wires it to the JobCode rows.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, QuerySet

from apps.accounts.models import Staff
from apps.job.enums import JOB_NATURE_DISPLAY, JobCodeSource, JobCodeStatus, JobNature
from apps.job.models import JobCode
from apps.job.services.code_registry import (
    generate_job_code,
    normalize_code,
    parse_job_code,
    reserve_running_number,
    validate_job_code,
)
from apps.job.services.cross_reference import rekey_job_code
from apps.job.services.money import to_minor_units
from apps.workflow.exceptions import JobCodeLockedError
from apps.workflow.services.company_defaults_service import get_company_defaults

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "code",
        "title",
        "description",
        "client_id",
        "client_name",
        "status",
        "quoted_value",
        "company_id",
        "branch_id",
        "notion_project_id",
    }
)

TEXT_FIELDS = (
    "description",
    "client_id",
    "client_name",
    "company_id",
    "branch_id",
    "crm_job_id",
    "notion_project_id",
)


class JobCodeService:
    @staticmethod
    def create_job_code(data: Mapping[str, Any], staff: Optional[Staff]) -> JobCode:
        """
        Create a job code.

        Manual jobs get the next number from the registry unless ``code`` is
        supplied. CRM jobs must bring their own ``code``; it is validated and
        its running number reserved so the registry never reissues it.
        """
        if not (data.get("title") or "").strip():
            raise ValidationError({"title": "Title is required."})

        source = data.get("source") or JobCodeSource.MANUAL
        if source not in JobCodeSource.values:
            raise ValidationError({"source": f"'{source}' is not a valid source."})
        status = data.get("status") or JobCodeStatus.ACTIVE
        if status not in JobCodeStatus.values:
            raise ValidationError({"status": f"'{status}' is not a valid status."})

        supplied_code = normalize_code(data.get("code"))
        if source == JobCodeSource.CRM and not supplied_code:
            raise ValidationError({"code": "CRM job codes must supply their code."})

        quoted_value = to_minor_units(data.get("quoted_value") or 0, "quoted_value")
        currency = data.get("currency") or get_company_defaults().default_currency

        with transaction.atomic():
            if supplied_code:
                violations = validate_job_code(supplied_code)
                if violations:
                    raise ValidationError({"code": violations})
                if JobCode.objects.filter(code=supplied_code).exists():
                    raise ValidationError(
                        {"code": f"Job code {supplied_code} already exists."}
                    )
                parsed = parse_job_code(supplied_code)
                reserve_running_number(parsed)
                code = supplied_code
            else:
                company_prefix = (data.get("company_prefix") or "").strip().upper()
                job_nature_code = (data.get("job_nature_code") or "").strip().upper()
                # Rolled back with the job code if the insert below fails
                code = generate_job_code(company_prefix, job_nature_code)
                parsed = parse_job_code(code)

            job_code = JobCode(
                code=code,
                company_prefix=parsed.company_prefix,
                job_nature_code=parsed.job_nature_code,
                running_number=parsed.running_number,
                title=data["title"].strip(),
                status=status,
                currency=currency,
                quoted_value=quoted_value,
                source=source,
                created_by=staff,
            )
            for field_name in TEXT_FIELDS:
                setattr(job_code, field_name, data.get(field_name) or "")
            job_code.full_clean()
            job_code.save()

        logger.info(f"Created job code {job_code.code} ({source}): {job_code.title}")
        return job_code

    @staticmethod
    def update_job_code(
        code: str, patch: Mapping[str, Any], staff: Optional[Staff]
    ) -> JobCode:
        """
        Edit a manual job code. A new ``code`` re-keys it (see
        ``cross_reference.rekey_job_code``).

        Raises:
            JobCodeLockedError: the job code came from the CRM.
            ValidationError: unknown field or bad value.
        """
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                {field: "Field cannot be edited." for field in sorted(unknown)}
            )

        job_code = JobCodeService.get_job_code(code)
        if not job_code.is_editable():
            raise JobCodeLockedError(job_code.code)

        new_code = normalize_code(patch.get("code")) if "code" in patch else None
        if new_code and new_code != job_code.code:
            job_code = rekey_job_code(job_code.code, new_code, staff)

        changes = {key: value for key, value in patch.items() if key != "code"}
        if not changes:
            return job_code

        with transaction.atomic():
            job_code = JobCode.objects.select_for_update().get(pk=job_code.pk)
            if "title" in changes:
                if not (changes["title"] or "").strip():
                    raise ValidationError({"title": "Title is required."})
                job_code.title = changes["title"].strip()
            if "status" in changes:
                if changes["status"] not in JobCodeStatus.values:
                    raise ValidationError(
                        {"status": f"'{changes['status']}' is not a valid status."}
                    )
                job_code.status = changes["status"]
            if "quoted_value" in changes:
                job_code.quoted_value = to_minor_units(
                    changes["quoted_value"] or 0, "quoted_value"
                )
            for field_name in TEXT_FIELDS:
                if field_name in changes:
                    setattr(job_code, field_name, changes[field_name] or "")
            job_code.full_clean()
            job_code.save()

        logger.info(f"Updated job code {job_code.code}: {sorted(changes)}")
        return job_code

    @staticmethod
    def get_job_code(code: str) -> JobCode:
        try:
            return JobCode.objects.get(code=normalize_code(code))
        except JobCode.DoesNotExist:
            raise JobCode.DoesNotExist(f"Job code {code} not found")

    @staticmethod
    def list_job_codes(filters: Optional[Mapping[str, Any]] = None) -> QuerySet:
        """Job codes filtered by company_prefix, job_nature_code, status, source or a search term."""
        filters = filters or {}
        queryset = JobCode.objects.all()
        for key in ("company_prefix", "job_nature_code", "status", "source"):
            if filters.get(key):
                queryset = queryset.filter(**{key: filters[key]})
        search = (filters.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                Q(code__icontains=search)
                | Q(title__icontains=search)
                | Q(client_name__icontains=search)
            )
        return queryset.order_by("-created_at")

    @staticmethod
    def job_nature_options() -> Dict[str, Dict[str, str]]:
        return {
            nature.value: {"label": nature.label, **JOB_NATURE_DISPLAY[nature]}
            for nature in JobNature
        }
