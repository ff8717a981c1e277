"""
Costing Entry REST Views

Entry CRUD and submission, the approval queue and approve/reject decisions.
"""

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.accounts.permissions import IsOfficeStaff
from apps.job.models import CostingEntry
from apps.job.serializers import (
    ApprovalQueueItemSerializer,
    ApproveEntrySerializer,
    CostingEntryCreateSerializer,
    CostingEntrySerializer,
    CostingEntryUpdateSerializer,
    CostingErrorResponseSerializer,
    DraftFromPurchaseOrderSerializer,
    RejectEntrySerializer,
    SubmitEntrySerializer,
    UserStatsSerializer,
)
from apps.job.services import approval_queue
from apps.job.services.costing_entry_service import CostingEntryService

from .base import BaseCostingRestView

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: CostingErrorResponseSerializer,
    403: CostingErrorResponseSerializer,
    404: CostingErrorResponseSerializer,
    409: CostingErrorResponseSerializer,
}


class CostingEntryListCreateRestView(BaseCostingRestView):
    @extend_schema(
        parameters=[
            OpenApiParameter("job_code", OpenApiTypes.STR, required=True),
            OpenApiParameter("cost_type", OpenApiTypes.STR, required=False),
            OpenApiParameter("category", OpenApiTypes.STR, required=False),
            OpenApiParameter("approval_status", OpenApiTypes.STR, required=False),
        ],
        responses={200: CostingEntrySerializer(many=True), **ERROR_RESPONSES},
        tags=["Costing Entries"],
    )
    def get(self, request):
        code = request.query_params.get("job_code")
        if not code:
            return self.error_response(
                {"error": "job_code query parameter is required"},
                status.HTTP_400_BAD_REQUEST,
            )
        try:
            entries = CostingEntryService.list_for_job_code(code, request.query_params)
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entries, many=True).data)

    @extend_schema(
        request=CostingEntryCreateSerializer,
        responses={201: CostingEntrySerializer, **ERROR_RESPONSES},
        description="Record a costing entry. Amounts are in major units (e.g. 1250.50).",
        tags=["Costing Entries"],
    )
    def post(self, request):
        serializer = CostingEntryCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        data = dict(serializer.validated_data)
        submit_immediately = data.pop("submit_immediately", False)
        try:
            entry = CostingEntryService.create(
                data, request.user, submit_immediately=submit_immediately
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class CostingEntryDetailRestView(BaseCostingRestView):
    @extend_schema(responses={200: CostingEntrySerializer, 404: CostingErrorResponseSerializer}, tags=["Costing Entries"])
    def get(self, request, entry_id):
        entry = CostingEntry.objects.select_related("job_code").filter(pk=entry_id).first()
        if entry is None:
            return self.error_response(
                {"error": f"Costing entry {entry_id} not found"},
                status.HTTP_404_NOT_FOUND,
            )
        return Response(CostingEntrySerializer(entry).data)

    @extend_schema(
        request=CostingEntryUpdateSerializer,
        responses={200: CostingEntrySerializer, **ERROR_RESPONSES},
        description=(
            "Edit a draft or pending entry. Job code and cost type are frozen once "
            "submitted; approved and rejected entries cannot be edited (409)."
        ),
        tags=["Costing Entries"],
    )
    def patch(self, request, entry_id):
        serializer = CostingEntryUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            entry = CostingEntryService.update(
                entry_id, serializer.validated_data, request.user
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entry).data)

    @extend_schema(responses={204: None, **ERROR_RESPONSES}, tags=["Costing Entries"])
    def delete(self, request, entry_id):
        try:
            CostingEntryService.delete(entry_id, request.user)
        except Exception as e:
            return self.handle_service_error(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SubmitCostingEntryRestView(BaseCostingRestView):
    @extend_schema(
        request=SubmitEntrySerializer,
        responses={200: CostingEntrySerializer, **ERROR_RESPONSES},
        tags=["Costing Entries"],
    )
    def post(self, request, entry_id):
        serializer = SubmitEntrySerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            entry = CostingEntryService.submit_for_approval(
                entry_id, request.user, serializer.validated_data.get("approver")
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entry).data)


class DraftFromPurchaseOrderRestView(BaseCostingRestView):
    @extend_schema(
        request=DraftFromPurchaseOrderSerializer,
        responses={201: CostingEntrySerializer(many=True), **ERROR_RESPONSES},
        description=(
            "Draft a post-cost entry for each line of a purchase order. Lines "
            "drafted earlier are skipped."
        ),
        tags=["Costing Entries"],
    )
    def post(self, request):
        serializer = DraftFromPurchaseOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            entries = CostingEntryService.create_from_purchase_order(
                serializer.validated_data["purchase_order"], request.user
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(
            CostingEntrySerializer(entries, many=True).data,
            status=status.HTTP_201_CREATED,
        )


class ApproveCostingEntryRestView(BaseCostingRestView):
    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(
        request=ApproveEntrySerializer,
        responses={200: CostingEntrySerializer, **ERROR_RESPONSES},
        description="Approve a pending entry. Repeating an approval is a no-op.",
        tags=["Approvals"],
    )
    def post(self, request, entry_id):
        serializer = ApproveEntrySerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            entry = approval_queue.approve(
                entry_id, request.user, serializer.validated_data["remarks"]
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entry).data)


class RejectCostingEntryRestView(BaseCostingRestView):
    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(
        request=RejectEntrySerializer,
        responses={200: CostingEntrySerializer, **ERROR_RESPONSES},
        description="Reject a pending entry. A reason is required.",
        tags=["Approvals"],
    )
    def post(self, request, entry_id):
        serializer = RejectEntrySerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            entry = approval_queue.reject(
                entry_id, request.user, serializer.validated_data["reason"]
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(CostingEntrySerializer(entry).data)


class ApprovalQueueRestView(BaseCostingRestView):
    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(
        parameters=[
            OpenApiParameter("company_prefix", OpenApiTypes.STR, required=False),
            OpenApiParameter("branch_id", OpenApiTypes.STR, required=False),
        ],
        responses={200: ApprovalQueueItemSerializer(many=True)},
        description="Pending entries assigned to the caller or unassigned, oldest first.",
        tags=["Approvals"],
    )
    def get(self, request):
        items = approval_queue.get_queue(
            approver=request.user,
            company_prefix=request.query_params.get("company_prefix"),
            branch_id=request.query_params.get("branch_id"),
        )
        return Response(ApprovalQueueItemSerializer(items, many=True).data)


class ApprovalQueueCountRestView(BaseCostingRestView):
    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(responses={200: OpenApiTypes.OBJECT}, tags=["Approvals"])
    def get(self, request):
        return Response(
            {
                "count": approval_queue.queue_count(
                    approver=request.user,
                    company_prefix=request.query_params.get("company_prefix"),
                )
            }
        )


class MyCostingStatsRestView(BaseCostingRestView):
    @extend_schema(responses={200: UserStatsSerializer}, tags=["Costing Entries"])
    def get(self, request):
        stats = CostingEntryService.user_stats(request.user)
        return Response(UserStatsSerializer(stats).data)


class CostingExportRestView(BaseCostingRestView):
    @extend_schema(
        responses={200: OpenApiTypes.OBJECT, 404: CostingErrorResponseSerializer},
        description="Approved entries grouped by cost type and category.",
        tags=["Costing Entries"],
    )
    def get(self, request, code):
        try:
            grouped = CostingEntryService.export_approved(code)
        except Exception as e:
            return self.handle_service_error(e)
        return Response({"job_code": code.strip().upper(), "entries": grouped})
