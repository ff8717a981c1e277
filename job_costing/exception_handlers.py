"""
Custom DRF exception handlers for the application.
"""

import logging
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.workflow.exceptions import (
    ConflictError,
    PartialSyncError,
    RegistryUnavailable,
)

auth_logger = logging.getLogger("auth")
logger = logging.getLogger(__name__)


def validation_error_payload(exc: DjangoValidationError) -> dict:
    """Flatten a Django ValidationError into field-level messages."""
    if hasattr(exc, "error_dict"):
        return {"error": "Validation failed", "details": exc.message_dict}
    return {"error": "; ".join(exc.messages), "details": {}}


def custom_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """
    Map domain exceptions to HTTP responses and log permission denials.

    Anything DRF already understands is delegated to the stock handler.
    """
    if isinstance(exc, DjangoValidationError):
        return Response(
            validation_error_payload(exc), status=status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, ConflictError):
        return Response({"error": str(exc)}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, RegistryUnavailable):
        return Response(
            {"error": str(exc), "retryable": True},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, PartialSyncError):
        logger.error(f"Partial sync surfaced to client: {exc}")
        return Response(
            {"error": str(exc), "reconcile": exc.reconcile_hint},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)

    if isinstance(exc, PermissionDenied):
        request = context.get("request")
        view = context.get("view")

        user_info = "anonymous"
        if request and hasattr(request, "user"):
            user = request.user
            if hasattr(user, "is_authenticated") and user.is_authenticated:
                user_info = getattr(user, "email", None) or str(user.pk)

        endpoint = request.path if request else "unknown"
        method = request.method if request else "unknown"
        view_name = (
            f"{view.__class__.__module__}.{view.__class__.__name__}"
            if view
            else "unknown"
        )

        auth_logger.warning(
            "Permission denied: user=%s endpoint=%s method=%s view=%s",
            user_info,
            endpoint,
            method,
            view_name,
        )

    return response
