from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsOfficeStaff
from apps.workflow.models import AppError
from apps.workflow.serializers import AppErrorListResponseSerializer, AppErrorSerializer
from apps.workflow.services.error_persistence import list_app_errors


class AppErrorRestListView(APIView):
    """
    REST-style view that exposes AppError telemetry for admin monitoring.

    Supports pagination via ``limit``/``offset`` query params and optional filters:
    - ``app`` (icontains match)
    - ``severity`` (exact integer)
    - ``resolved`` (boolean)
    - ``job_code`` (exact)
    """

    permission_classes = [IsAuthenticated, IsOfficeStaff]
    serializer_class = AppErrorListResponseSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter("limit", OpenApiTypes.INT, required=False),
            OpenApiParameter("offset", OpenApiTypes.INT, required=False),
            OpenApiParameter("app", OpenApiTypes.STR, required=False),
            OpenApiParameter("severity", OpenApiTypes.INT, required=False),
            OpenApiParameter("resolved", OpenApiTypes.BOOL, required=False),
            OpenApiParameter("job_code", OpenApiTypes.STR, required=False),
        ],
        responses={200: AppErrorListResponseSerializer},
        tags=["App Errors"],
    )
    def get(self, request):
        try:
            limit = int(request.query_params.get("limit", "50"))
            offset = int(request.query_params.get("offset", "0"))
        except (TypeError, ValueError):
            return Response(
                {"error": "Invalid pagination parameters"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        resolved_param = request.query_params.get("resolved")
        resolved: bool | None = None
        if resolved_param is not None:
            value = resolved_param.strip().lower()
            if value in {"true", "1", "yes"}:
                resolved = True
            elif value in {"false", "0", "no"}:
                resolved = False
            else:
                return Response(
                    {"error": "Invalid resolved parameter"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        severity_param = request.query_params.get("severity")
        severity: int | None = None
        if severity_param is not None:
            try:
                severity = int(severity_param)
            except ValueError:
                return Response(
                    {"error": "Invalid severity parameter"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        payload = list_app_errors(
            limit=limit,
            offset=offset,
            app=request.query_params.get("app"),
            severity=severity,
            resolved=resolved,
            job_code=request.query_params.get("job_code"),
        )

        serializer = self.serializer_class(payload)
        return Response(serializer.data, status=status.HTTP_200_OK)


class AppErrorResolveRestView(APIView):
    """Mark an error as resolved by the requesting staff member."""

    permission_classes = [IsAuthenticated, IsOfficeStaff]

    @extend_schema(request=None, responses={200: AppErrorSerializer}, tags=["App Errors"])
    def post(self, request, error_id):
        error = get_object_or_404(AppError, pk=error_id)
        error.mark_resolved(request.user)
        return Response(AppErrorSerializer(error).data, status=status.HTTP_200_OK)
