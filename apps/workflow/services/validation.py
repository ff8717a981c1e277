import json
import logging

from apps.workflow.exceptions import NotionValidationError

logger = logging.getLogger("notion")


def validate_required_fields(fields: dict, page_id):
    """Raise NotionValidationError if any value in ``fields`` is ``None``."""
    missing = [name for name, value in fields.items() if value is None]
    if missing:
        logger.error(
            f"Validation failed for Notion page {page_id}: "
            f"missing={missing}\nfields={json.dumps(fields, indent=2, default=str)}"
        )
        raise NotionValidationError(missing, page_id)
    return fields
