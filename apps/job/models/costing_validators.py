from __future__ import annotations

from typing import Any, Mapping, Sequence

import jsonschema
from django.core.exceptions import ValidationError

from apps.job.enums import ApprovalAction, ApprovalStatus, CostCategory

# Common schema fragments used across meta and history validation.
STRING_OR_NULL = {"type": ["string", "null"]}
INTEGER = {"type": "integer"}


def _validate_mapping(
    value: Mapping[str, Any] | None, field_label: str
) -> Mapping[str, Any]:
    """Ensure the JSONField value is a mapping before schema validation."""
    if not value:
        return {}
    if isinstance(value, Mapping):
        return value
    raise ValidationError({field_label: "Value must be a JSON object."}, code="invalid")


def _run_schema_validation(value: Any, schema: dict[str, Any], field_label: str) -> None:
    """Run jsonschema validation and surface readable ValidationError messages."""
    try:
        jsonschema.validate(instance=value, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ValidationError(
            {
                field_label: f"{exc.message} (path: {'/'.join(map(str, exc.path)) or '.'})"
            },
            code="invalid",
        ) from exc


MANUAL_SOURCE_META_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "comments": STRING_OR_NULL,
    },
    "additionalProperties": False,
}

NOTION_SOURCE_META_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "notion_page_id": {"type": "string"},
        "notion_database_id": STRING_OR_NULL,
        "notion_url": STRING_OR_NULL,
        "last_edited_time": STRING_OR_NULL,
        "submitted_by": STRING_OR_NULL,
        "attachments": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": STRING_OR_NULL,
                    "url": STRING_OR_NULL,
                },
                "additionalProperties": False,
            },
        },
        "synced_at": STRING_OR_NULL,
    },
    "required": ["notion_page_id"],
    "additionalProperties": False,
}

PO_AUTO_SOURCE_META_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "purchase_order_id": {"type": "string"},
        "po_number": {"type": "string"},
        "po_line_id": {"type": "string"},
        "item_code": STRING_OR_NULL,
    },
    "required": ["purchase_order_id", "po_number", "po_line_id"],
    "additionalProperties": False,
}

SOURCE_META_SCHEMAS: dict[str, dict[str, Any]] = {
    "manual": MANUAL_SOURCE_META_SCHEMA,
    "notion": NOTION_SOURCE_META_SCHEMA,
    "po_auto": PO_AUTO_SOURCE_META_SCHEMA,
}

APPROVAL_HISTORY_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "action": {"enum": list(ApprovalAction.values)},
            "status": {"enum": list(ApprovalStatus.values)},
            "timestamp": {"type": "string"},
            "staff_id": STRING_OR_NULL,
            "staff_name": STRING_OR_NULL,
            "remarks": STRING_OR_NULL,
        },
        "required": ["action", "status", "timestamp"],
        "additionalProperties": False,
    },
}

_CATEGORY_TOTALS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {code: INTEGER for code in CostCategory.values},
    "required": list(CostCategory.values),
    "additionalProperties": False,
}

_COST_BLOCK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"total": INTEGER, "by_category": _CATEGORY_TOTALS_SCHEMA},
    "required": ["total", "by_category"],
    "additionalProperties": False,
}

COSTING_SUMMARY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "pre_cost": _COST_BLOCK_SCHEMA,
        "post_cost": _COST_BLOCK_SCHEMA,
        "total_paid": INTEGER,
        "total_payable": INTEGER,
        "pending_approval_count": INTEGER,
        "pending_approval_amount": INTEGER,
        "variance": {
            "type": "object",
            "properties": {
                "amount": INTEGER,
                "status": {"type": "string"},
            },
            "required": ["amount", "status"],
            "additionalProperties": False,
        },
    },
    "required": ["pre_cost", "post_cost"],
    "additionalProperties": False,
}


def validate_source_meta(meta: Mapping[str, Any] | None, source: str) -> None:
    """Validate CostingEntry.source_meta against the schema for its origin."""
    meta_dict = _validate_mapping(meta, "source_meta")
    if source == "notion" and not meta_dict:
        raise ValidationError(
            {"source_meta": "Notion entries must record their page id."},
            code="invalid",
        )
    schema = SOURCE_META_SCHEMAS.get(source, MANUAL_SOURCE_META_SCHEMA)
    _run_schema_validation(meta_dict, schema, "source_meta")


def validate_approval_history(history: Sequence[Mapping[str, Any]] | None) -> None:
    """Validate the append-only approval history list."""
    if history is None:
        return
    if not isinstance(history, list):
        raise ValidationError(
            {"approval_history": "Value must be a JSON array."}, code="invalid"
        )
    _run_schema_validation(history, APPROVAL_HISTORY_SCHEMA, "approval_history")


def validate_costing_summary(summary: Mapping[str, Any] | None) -> None:
    summary_dict = _validate_mapping(summary, "costing_summary")
    if not summary_dict:
        return
    _run_schema_validation(summary_dict, COSTING_SUMMARY_SCHEMA, "costing_summary")
