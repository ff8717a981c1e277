from typing import List, Optional
from uuid import UUID


class AlreadyLoggedException(Exception):
    """Wraps an exception that has already been persisted as an AppError.

    Callers higher up the stack should re-raise or report it without logging
    or persisting it a second time.
    """

    def __init__(self, original: Exception, app_error_id: Optional[UUID]) -> None:
        self.original = original
        self.app_error_id = app_error_id
        super().__init__(str(original))


class ConflictError(Exception):
    """A requested state transition or edit is not allowed from the current state."""


class JobCodeLockedError(ConflictError):
    """The job code is owned by the CRM and cannot be edited interactively."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(
            f"Job code {code} is managed by the CRM and cannot be edited here"
        )


class RegistryUnavailable(Exception):
    """The job-code counter increment could not be committed.

    No running number was consumed, so the caller may retry.
    """


class PartialSyncError(Exception):
    """A cross-reference rewrite committed but the follow-up rebuild failed.

    Args:
        old_code: Code the documents pointed at before the re-key.
        new_code: Code the documents point at now.
        reconcile_hint: Operator command that completes the sync.
    """

    def __init__(self, message: str, old_code: str, new_code: str) -> None:
        self.old_code = old_code
        self.new_code = new_code
        self.reconcile_hint = (
            f"python manage.py reconcile_job_codes --job-code {new_code}"
        )
        super().__init__(message)


class NotionApiError(Exception):
    """The Notion API returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotionValidationError(Exception):
    """Exception raised when a Notion page is missing required properties.

    Args:
        missing_fields: Names of the missing properties.
        page_id: Identifier for the page in Notion.
    """

    def __init__(self, missing_fields: List[str], page_id: Optional[str]) -> None:
        self.missing_fields = missing_fields
        self.page_id = page_id
        message = f"Missing fields {missing_fields} for Notion page {page_id}"
        super().__init__(message)
