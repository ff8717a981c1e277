import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsOfficeStaff
from apps.workflow.api.notion.sync import sync_costing_entries
from apps.workflow.exceptions import NotionApiError
from apps.workflow.serializers import (
    NotionSyncRequestSerializer,
    NotionSyncResponseSerializer,
)
from apps.workflow.services.error_persistence import persist_app_error

logger = logging.getLogger("notion")


class NotionCostingSyncRestView(APIView):
    """Run a Notion costing sync now instead of waiting for the scheduler."""

    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(
        request=NotionSyncRequestSerializer,
        responses={200: NotionSyncResponseSerializer},
        tags=["Notion"],
    )
    def post(self, request):
        serializer = NotionSyncRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = sync_costing_entries(full=serializer.validated_data["full"])
        except NotionApiError as exc:
            persist_app_error(exc, additional_context={"operation": "manual_sync"})
            logger.error(f"Manual Notion sync failed: {exc}")
            return Response(
                {"error": str(exc), "retryable": True},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        return Response(NotionSyncResponseSerializer(result).data)
