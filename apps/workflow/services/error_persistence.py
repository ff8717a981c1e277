import inspect
import logging
import traceback
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

from apps.workflow.exceptions import AlreadyLoggedException, NotionValidationError
from apps.workflow.models import AppError

logger = logging.getLogger(__name__)


def _extract_caller_context(depth: int = 2):
    """Automatically extract context from the calling function."""
    frame = inspect.currentframe()
    try:
        # Walk up: _extract_caller_context -> persist_* -> actual caller
        caller_frame = frame
        for _ in range(depth):
            caller_frame = caller_frame.f_back

        file_path = Path(caller_frame.f_code.co_filename)

        # Extract app name from path (e.g., apps/job/services/code_registry.py -> job)
        parts = file_path.parts
        app_name = None
        relative_file = file_path.name
        if "apps" in parts:
            app_index = parts.index("apps")
            if len(parts) > app_index + 1:
                app_name = parts[app_index + 1]
            relative_file = "/".join(parts[app_index + 1 :])

        function_name = caller_frame.f_code.co_name

        return {"app": app_name, "file": relative_file, "function": function_name}
    finally:
        del frame


def extract_request_context(request):
    """Extract context from Django request object."""
    return {
        "user_id": request.user.id if request.user.is_authenticated else None,
        "request_path": request.path,
        "request_method": request.method,
    }


def persist_app_error(
    exception: Exception,
    app: str = None,
    file: str = None,
    function: str = None,
    severity: int = logging.ERROR,
    job_code: str = None,
    user_id: str = None,
    additional_context: dict = None,
) -> AppError:
    """Create and save an AppError with enhanced context.

    The app, file, and function parameters are automatically extracted from the
    calling code. Override them explicitly when auto-extraction picks the wrong frame.

    Args:
        exception: The exception to persist
        app: App name (auto-extracted from file path if not provided)
        file: File path (auto-extracted from caller if not provided)
        function: Function name (auto-extracted from caller if not provided)
        severity: Logging severity level (default: logging.ERROR)
        job_code: Job code string for costing-related errors
        user_id: Staff UUID for user-related errors
        additional_context: Additional context data to store in JSON field

    Returns:
        Created AppError instance
    """
    caller_context = _extract_caller_context()

    context_data = {"trace": traceback.format_exc()}
    if additional_context:
        context_data.update(additional_context)

    return AppError.objects.create(
        message=str(exception),
        data=context_data,
        app=app or caller_context["app"],
        file=file or caller_context["file"],
        function=function or caller_context["function"],
        severity=severity,
        job_code=job_code,
        user_id=user_id,
    )


def persist_and_raise(exception: Exception, **kwargs) -> NoReturn:
    """Persist ``exception`` and raise it wrapped in AlreadyLoggedException.

    An exception that is already wrapped is re-raised untouched.
    """
    if isinstance(exception, AlreadyLoggedException):
        raise exception

    caller_context = _extract_caller_context()
    for key in ("app", "file", "function"):
        kwargs.setdefault(key, caller_context[key])

    app_error = persist_app_error(exception, **kwargs)
    raise AlreadyLoggedException(exception, app_error.id) from exception


def persist_notion_error(exc: NotionValidationError) -> AppError:
    """Create and save an AppError describing an unusable Notion page."""
    return AppError.objects.create(
        message=str(exc),
        data={"missing_fields": exc.missing_fields, "page_id": exc.page_id},
        app="workflow",
        file="api/notion/sync.py",
        function="transform_costing_page",
        severity=logging.WARNING,
    )


def list_app_errors(
    *,
    limit: int = 50,
    offset: int = 0,
    app: Optional[str] = None,
    severity: Optional[int] = None,
    resolved: Optional[bool] = None,
    job_code: Optional[str] = None,
) -> Dict[str, Any]:
    """Filtered, paginated AppError records, newest first."""
    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    queryset = AppError.objects.all().order_by("-timestamp")
    if app:
        queryset = queryset.filter(app__icontains=app)
    if severity is not None:
        queryset = queryset.filter(severity=severity)
    if resolved is not None:
        queryset = queryset.filter(resolved=resolved)
    if job_code:
        queryset = queryset.filter(job_code=job_code)

    return {
        "count": queryset.count(),
        "limit": limit,
        "offset": offset,
        "results": list(queryset[offset : offset + limit]),
    }
