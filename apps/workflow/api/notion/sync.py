"""
Costing entry sync with the Notion "Job Costing Entries" database.

Pages are pulled, flattened into raw records and handed to the external
entry adapter. After a page is ingested the HiggsFlow ID, entry status and
approval status are written back so site staff can see what happened.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.job.enums import ApprovalStatus, EntrySource
from apps.job.models import CostingEntry
from apps.job.services.external_entry_adapter import (
    INGEST_CONFLICT,
    INGEST_SKIPPED,
    ingest,
    normalize_record,
)
from apps.workflow.api.notion.client import NotionClient
from apps.workflow.exceptions import ConflictError, NotionValidationError
from apps.workflow.models import CompanyDefaults
from apps.workflow.services.company_defaults_service import get_company_defaults
from apps.workflow.services.error_persistence import (
    persist_app_error,
    persist_notion_error,
)
from apps.workflow.services.validation import validate_required_fields

logger = logging.getLogger("notion")

SYNC_LOCK_KEY = "notion_costing_sync_lock"
SYNC_LOCK_TIMEOUT = 60 * 30

# Entry Status values that mean the site has finished editing the page
SYNCABLE_ENTRY_STATUSES = ("Submitted", "Synced")

APPROVAL_STATUS_LABELS = {
    ApprovalStatus.PENDING.value: "Pending",
    ApprovalStatus.APPROVED.value: "Approved",
    ApprovalStatus.REJECTED.value: "Rejected",
}


def extract_text(prop: Optional[Dict[str, Any]]) -> str:
    """Plain text from a title, rich_text, select or formula property."""
    if not prop:
        return ""
    for key in ("title", "rich_text"):
        if key in prop:
            return "".join(part.get("plain_text", "") for part in prop[key] or []).strip()
    if prop.get("select"):
        return prop["select"].get("name", "")
    if prop.get("formula"):
        return str(prop["formula"].get("string") or "")
    return ""


def extract_select(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    if not prop or not prop.get("select"):
        return None
    return prop["select"].get("name")


def extract_number(prop: Optional[Dict[str, Any]]):
    if not prop:
        return None
    return prop.get("number")


def extract_date(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    if not prop or not prop.get("date"):
        return None
    return prop["date"].get("start")


def extract_person(prop: Optional[Dict[str, Any]]) -> Tuple[Optional[str], Optional[str]]:
    """(name, email) of the first person in a people property."""
    if not prop or not prop.get("people"):
        return None, None
    person = prop["people"][0]
    return person.get("name"), (person.get("person") or {}).get("email")


def extract_files(prop: Optional[Dict[str, Any]]) -> List[Dict[str, Optional[str]]]:
    files = []
    for item in (prop or {}).get("files") or []:
        hosted = item.get("file") or item.get("external") or {}
        files.append({"name": item.get("name"), "url": hosted.get("url")})
    return files


def transform_costing_page(page: Dict[str, Any], database_id: str = None) -> Dict[str, Any]:
    """
    Flatten a Notion page into the raw record the entry adapter expects.

    Raises NotionValidationError when a required property is empty.
    """
    props = page.get("properties", {})
    page_id = page.get("id")

    required = {
        "job_code": extract_text(props.get("Job Code")) or None,
        "category": extract_select(props.get("Category")),
        "cost_type": extract_select(props.get("Cost Type")),
        "amount": extract_number(props.get("Amount RM")),
    }
    validate_required_fields(required, page_id)

    submitted_by, submitted_by_email = extract_person(props.get("Submitted By"))
    description = extract_text(props.get("Description")) or extract_text(
        props.get("Entry Name")
    )

    return {
        **required,
        "external_id": page_id,
        "entry_date": extract_date(props.get("Date")),
        "vendor": extract_text(props.get("Vendor")),
        "invoice_no": extract_text(props.get("Invoice No")),
        "description": description,
        "attachments": extract_files(props.get("Receipt")),
        "submitted_by": submitted_by,
        "submitted_by_email": submitted_by_email,
        "notion_database_id": database_id,
        "notion_url": page.get("url"),
        "last_edited_time": page.get("last_edited_time"),
    }


def _rich_text(content: str) -> Dict[str, Any]:
    return {"rich_text": [{"type": "text", "text": {"content": content or ""}}]}


def _write_back_sync(client: NotionClient, page_id: str, entry: CostingEntry) -> None:
    client.update_page_properties(
        page_id,
        {
            "HiggsFlow ID": _rich_text(str(entry.id)),
            "Entry Status": {"select": {"name": "Synced"}},
            "Approval Status": {
                "select": {"name": APPROVAL_STATUS_LABELS.get(entry.approval_status, "Pending")}
            },
        },
    )


def _page_needs_write_back(page: Dict[str, Any]) -> bool:
    props = page.get("properties", {})
    return (
        not extract_text(props.get("HiggsFlow ID"))
        or extract_select(props.get("Entry Status")) != "Synced"
    )


def process_notion_page(
    page: Dict[str, Any], client: NotionClient, database_id: str = None
) -> Tuple[bool, Dict[str, Any]]:
    """Ingest one page. Returns a success flag and an event describing the outcome."""
    page_id = page.get("id")
    try:
        raw = transform_costing_page(page, database_id)
        result = ingest(normalize_record(raw))
        applied = result.action not in (INGEST_SKIPPED, INGEST_CONFLICT)
        if applied and _page_needs_write_back(page):
            _write_back_sync(client, page_id, result.entry)
    except NotionValidationError as exc:
        persist_notion_error(exc)
        return False, {"page_id": page_id, "error": str(exc)}
    except (ValidationError, ConflictError) as exc:
        persist_app_error(
            exc,
            severity=logging.WARNING,
            additional_context={"notion_page_id": page_id, "operation": "ingest"},
        )
        logger.warning(f"Notion page {page_id} rejected: {exc}")
        return False, {"page_id": page_id, "error": str(exc)}
    except Exception as exc:
        persist_app_error(
            exc,
            additional_context={"notion_page_id": page_id, "operation": "ingest"},
        )
        logger.error(f"Unexpected error syncing Notion page {page_id}: {exc}", exc_info=True)
        return False, {"page_id": page_id, "error": "Unexpected: " + str(exc)}

    logger.info(f"Notion page {page_id}: {result.action} entry {result.entry.id}")
    if result.action == INGEST_CONFLICT:
        return True, {"page_id": page_id, "action": result.action, "reason": result.reason}
    return True, {"page_id": page_id, "action": result.action}


def _query_filter(since) -> Dict[str, Any]:
    status_filter = {
        "or": [
            {"property": "Entry Status", "select": {"equals": status}}
            for status in SYNCABLE_ENTRY_STATUSES
        ]
    }
    if since is None:
        return status_filter
    return {
        "and": [
            status_filter,
            {
                "timestamp": "last_edited_time",
                "last_edited_time": {"on_or_after": since.isoformat()},
            },
        ]
    }


def _empty_result(**extra) -> Dict[str, Any]:
    return {"created": 0, "updated": 0, "skipped": 0, "errors": [], "conflicts": [], **extra}


def sync_costing_entries(client: NotionClient = None, full: bool = False) -> Dict[str, Any]:
    """
    Pull submitted costing pages edited since the last sync.

    Returns counts of created, updated and skipped entries plus lists of
    per-page conflicts and errors. ``skipped_run`` is set when the sync did not run at all.
    NotionApiError from the query itself propagates.
    """
    company_defaults = get_company_defaults()
    if not company_defaults.notion_sync_enabled:
        return _empty_result(skipped_run="Notion sync is disabled")
    database_id = company_defaults.notion_costing_database_id
    if not database_id:
        return _empty_result(skipped_run="No Notion costing database configured")

    if not cache.add(SYNC_LOCK_KEY, True, timeout=SYNC_LOCK_TIMEOUT):
        logger.info("Skipping sync - another sync is running")
        return _empty_result(skipped_run="Another Notion sync is already running")

    try:
        client = client or NotionClient()
        started_at = timezone.now()
        since = None if full else company_defaults.last_notion_sync
        result = _empty_result()

        pages = client.query_database(
            database_id,
            filter=_query_filter(since),
            sorts=[{"property": "Date", "direction": "ascending"}],
        )
        for page in pages:
            success, event = process_notion_page(page, client, database_id)
            if not success:
                result["errors"].append(event)
            elif event["action"] == INGEST_CONFLICT:
                result["conflicts"].append(event)
            else:
                result[event["action"]] += 1

        CompanyDefaults.objects.filter(pk=company_defaults.pk).update(
            last_notion_sync=started_at
        )
        logger.info(
            f"Notion costing sync: {result['created']} created, {result['updated']} "
            f"updated, {result['skipped']} skipped, {len(result['conflicts'])} conflicts, "
            f"{len(result['errors'])} errors"
        )
        return result
    finally:
        cache.delete(SYNC_LOCK_KEY)


def push_approval_status(entry: CostingEntry, client: NotionClient = None) -> bool:
    """
    Mirror an approval decision onto the entry's Notion page.

    Returns False when there is nothing to push (not a Notion entry, or sync
    disabled). NotionApiError propagates.
    """
    if entry.source != EntrySource.NOTION or not entry.external_id:
        return False
    if not get_company_defaults().notion_sync_enabled:
        return False

    client = client or NotionClient()
    properties = {
        "Approval Status": {
            "select": {"name": APPROVAL_STATUS_LABELS.get(entry.approval_status, "Pending")}
        }
    }
    if entry.approval_status == ApprovalStatus.REJECTED:
        properties["Rejection Reason"] = _rich_text(entry.rejection_reason)
    client.update_page_properties(entry.external_id, properties)
    logger.info(
        f"Pushed {entry.approval_status} for entry {entry.id} to Notion page {entry.external_id}"
    )
    return True
