"""
Base view for the costing REST endpoints.

Views only orchestrate: validate input with a serializer, call the service
layer, serialize the result. Service exceptions are turned into responses in
one place.
"""

import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.job.serializers import CostingErrorResponseSerializer
from apps.workflow.exceptions import (
    AlreadyLoggedException,
    ConflictError,
    PartialSyncError,
    RegistryUnavailable,
)
from apps.workflow.services.error_persistence import persist_and_raise
from job_costing.exception_handlers import validation_error_payload

logger = logging.getLogger(__name__)


class BaseCostingRestView(APIView):
    def error_response(self, payload: dict, status_code: int) -> Response:
        return Response(CostingErrorResponseSerializer(payload).data, status=status_code)

    def invalid_serializer_response(self, serializer) -> Response:
        return self.error_response(
            {"error": "Validation failed", "details": serializer.errors},
            status.HTTP_400_BAD_REQUEST,
        )

    def handle_service_error(self, error: Exception) -> Response:
        """Map a service-layer exception to an HTTP response."""
        match error:
            case DjangoValidationError():
                return self.error_response(
                    validation_error_payload(error), status.HTTP_400_BAD_REQUEST
                )
            case ConflictError():
                return self.error_response({"error": str(error)}, status.HTTP_409_CONFLICT)
            case PermissionDenied():
                return self.error_response({"error": str(error)}, status.HTTP_403_FORBIDDEN)
            case ObjectDoesNotExist():
                return self.error_response({"error": str(error)}, status.HTTP_404_NOT_FOUND)
            case RegistryUnavailable():
                return self.error_response(
                    {"error": str(error), "retryable": True},
                    status.HTTP_503_SERVICE_UNAVAILABLE,
                )
            case PartialSyncError():
                # Already persisted by the re-key
                return self.error_response(
                    {"error": str(error), "reconcile": error.reconcile_hint},
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                )

        try:
            persist_and_raise(error)
        except AlreadyLoggedException as logged_exc:
            logger.error(
                f"[COSTING-REST-VIEW] Unhandled error {error} "
                f"(error_id={logged_exc.app_error_id})",
                exc_info=error,
            )
        return self.error_response(
            {"error": "Internal server error"}, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
