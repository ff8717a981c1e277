"""
Bring costing records from an external workspace into the costing entry store.

Records are matched on ``(source, external_id)``: the first presentation
creates a pending entry, later presentations update it, and once the entry
has been approved or rejected further presentations are skipped. A change of
job code or cost type on a submitted entry is reported as a conflict.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.accounts.models import Staff
from apps.job.enums import ApprovalStatus, CostCategory, CostType, EntrySource
from apps.job.models import CostingEntry
from apps.job.services.code_registry import normalize_code
from apps.job.services.costing_entry_service import (
    STRUCTURAL_FIELDS,
    CostingEntryService,
)
from apps.job.services.money import from_minor_units, to_minor_units

logger = logging.getLogger(__name__)

# Workspace select labels -> category code. Codes themselves are also accepted.
CATEGORY_LABELS = {
    "A - Mechanical": CostCategory.MECHANICAL,
    "B - Instrumentation": CostCategory.INSTRUMENTATION,
    "C - Electrical Control": CostCategory.ELECTRICAL_CONTROL,
    "C - Electrical & Control": CostCategory.ELECTRICAL_CONTROL,
    "D - Labour": CostCategory.LABOUR,
    "E - Freight Transport": CostCategory.FREIGHT_TRANSPORT,
    "E - Freight & Transport": CostCategory.FREIGHT_TRANSPORT,
    "F - Travelling": CostCategory.TRAVELLING,
    "G - Entertainment": CostCategory.ENTERTAINMENT,
    "H - Miscellaneous": CostCategory.MISCELLANEOUS,
}

COST_TYPE_LABELS = {
    "PRE-Cost Budget": CostType.PRE,
    "POST-Cost Actual": CostType.POST,
}

INGEST_CREATED = "created"
INGEST_UPDATED = "updated"
INGEST_SKIPPED = "skipped"
INGEST_CONFLICT = "conflict"


@dataclass
class ExternalCostingRecord:
    external_id: str
    job_code: str
    cost_type: str
    category: str
    amount: int
    entry_date: Optional[date] = None
    vendor: str = ""
    invoice_no: str = ""
    description: str = ""
    submitted_by_email: Optional[str] = None
    source: str = EntrySource.NOTION.value
    source_meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class IngestResult:
    entry: Optional[CostingEntry]
    action: str
    reason: str = ""


def normalize_category(value: Any) -> str:
    label = str(value or "").strip()
    if label in CostCategory.values:
        return label
    if label in CATEGORY_LABELS:
        return CATEGORY_LABELS[label].value
    raise ValidationError({"category": f"Unknown cost category '{value}'."})


def normalize_cost_type(value: Any) -> str:
    label = str(value or "").strip()
    if label in CostType.values:
        return label
    if label in COST_TYPE_LABELS:
        return COST_TYPE_LABELS[label].value
    raise ValidationError({"cost_type": f"Unknown cost type '{value}'."})


def _normalize_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    # Workspace dates may carry a time part
    parsed = parse_date(str(value)[:10])
    if parsed is None:
        raise ValidationError({"entry_date": f"'{value}' is not a valid date."})
    return parsed


def normalize_record(raw: Mapping[str, Any]) -> ExternalCostingRecord:
    """
    Turn a raw workspace record into an ExternalCostingRecord.

    Unknown category or cost type labels are rejected rather than defaulted.
    """
    errors = {}
    for key in ("external_id", "job_code", "cost_type", "category", "amount"):
        if raw.get(key) in (None, ""):
            errors[key] = "This field is required."
    if errors:
        raise ValidationError(errors)

    meta = {"notion_page_id": str(raw["external_id"])}
    for key in (
        "notion_database_id",
        "notion_url",
        "last_edited_time",
        "submitted_by",
    ):
        if raw.get(key):
            meta[key] = str(raw[key])
    attachments = [
        {"name": item.get("name"), "url": item.get("url")}
        for item in raw.get("attachments") or []
    ]
    if attachments:
        meta["attachments"] = attachments
    meta["synced_at"] = timezone.now().isoformat()

    return ExternalCostingRecord(
        external_id=str(raw["external_id"]),
        job_code=normalize_code(raw["job_code"]),
        cost_type=normalize_cost_type(raw["cost_type"]),
        category=normalize_category(raw["category"]),
        amount=to_minor_units(raw["amount"], "amount"),
        entry_date=_normalize_date(raw.get("entry_date")),
        vendor=raw.get("vendor") or "",
        invoice_no=raw.get("invoice_no") or "",
        description=raw.get("description") or "",
        submitted_by_email=raw.get("submitted_by_email") or None,
        source_meta=meta,
    )


def _submitter(record: ExternalCostingRecord) -> Optional[Staff]:
    if not record.submitted_by_email:
        return None
    return Staff.objects.filter(email__iexact=record.submitted_by_email).first()


def _entry_fields(record: ExternalCostingRecord) -> Dict[str, Any]:
    return {
        "job_code": record.job_code,
        "cost_type": record.cost_type,
        "category": record.category,
        "amount": from_minor_units(record.amount),
        "entry_date": record.entry_date,
        "vendor": record.vendor,
        "invoice_no": record.invoice_no,
        "description": record.description,
    }


def _changed_fields(entry: CostingEntry, record: ExternalCostingRecord) -> List[str]:
    current = {
        "job_code": entry.job_code.code,
        "cost_type": entry.cost_type,
        "category": entry.category,
        "amount": entry.amount,
        "entry_date": entry.entry_date,
        "vendor": entry.vendor,
        "invoice_no": entry.invoice_no,
        "description": entry.description,
    }
    incoming = dict(_entry_fields(record), amount=record.amount)
    return [key for key, value in incoming.items() if current[key] != value]


def ingest(record: ExternalCostingRecord) -> IngestResult:
    """
    Create or update the costing entry for ``record``.

    New entries are submitted for approval straight away. Approved or rejected
    entries are left untouched and reported as skipped. A record that moves a
    submitted entry to another job code or cost type is not applied at all
    and comes back as a conflict carrying the reason.
    """
    with transaction.atomic():
        existing = (
            CostingEntry.objects.select_for_update()
            .select_related("job_code")
            .filter(source=record.source, external_id=record.external_id)
            .first()
        )

        if existing is None:
            data = _entry_fields(record)
            data.update(
                source=record.source,
                external_id=record.external_id,
                source_meta=record.source_meta,
            )
            entry = CostingEntryService.create(
                data, _submitter(record), submit_immediately=True
            )
            logger.info(f"Ingested {record.source} record {record.external_id} as {entry.id}")
            return IngestResult(entry=entry, action=INGEST_CREATED)

        if existing.is_terminal:
            logger.debug(
                f"Skipping {record.source} record {record.external_id}: "
                f"entry {existing.id} is {existing.approval_status}"
            )
            return IngestResult(entry=existing, action=INGEST_SKIPPED)

        changed = _changed_fields(existing, record)
        frozen = sorted(STRUCTURAL_FIELDS.intersection(changed))
        if frozen and existing.approval_status != ApprovalStatus.DRAFT:
            reason = (
                f"Entry {existing.id} is {existing.approval_status}; "
                f"{', '.join(frozen)} can only change while it is a draft"
            )
            logger.warning(f"Not applying {record.source} record {record.external_id}: {reason}")
            return IngestResult(entry=existing, action=INGEST_CONFLICT, reason=reason)

        fields = _entry_fields(record)
        entry = CostingEntryService.update(
            existing.id, {key: fields[key] for key in changed}, _submitter(record)
        )
        entry.source_meta = record.source_meta
        entry.full_clean()
        entry.save(update_fields=["source_meta", "updated_at"])

    logger.info(
        f"Updated entry {entry.id} from {record.source} record "
        f"{record.external_id}: {changed or 'metadata only'}"
    )
    return IngestResult(entry=entry, action=INGEST_UPDATED)
