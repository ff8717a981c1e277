from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.models import Staff
from apps.accounts.serializers import (
    ApproverQuerySerializer,
    ApproverSerializer,
    UserProfileSerializer,
)
from apps.accounts.services.approver_service import get_available_approvers
from apps.job.services.money import to_minor_units


@extend_schema(
    parameters=[
        OpenApiParameter("company_prefix", OpenApiTypes.STR, required=False),
        OpenApiParameter("branch_id", OpenApiTypes.STR, required=False),
        OpenApiParameter("amount", OpenApiTypes.DECIMAL, required=False),
    ],
)
class ApproverListAPIView(generics.ListAPIView):
    """
    Staff who can be assigned as approvers on costing entries.

    Given ``company_prefix`` the list narrows to approvers whose profile
    covers that company (and ``branch_id``) and whose limit allows ``amount``.
    """

    serializer_class = ApproverSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        query = ApproverQuerySerializer(data=self.request.query_params)
        if not query.is_valid():
            raise ValidationError(query.errors)
        params = query.validated_data
        if not params.get("company_prefix"):
            return Staff.objects.approvers().select_related("approver_profile")
        return get_available_approvers(
            params["company_prefix"].strip().upper(),
            params.get("branch_id"),
            to_minor_units(params.get("amount") or 0),
        )


class GetCurrentUserAPIView(APIView):
    """
    Get current authenticated user information
    """

    permission_classes = [IsAuthenticated]
    serializer_class = UserProfileSerializer

    @extend_schema(
        summary="Returns the current authenticated user profile",
        responses={200: UserProfileSerializer},
    )
    def get(self, request: Request) -> Response:
        serializer = UserProfileSerializer(request.user, context={"request": request})
        return Response(serializer.data, status=status.HTTP_200_OK)
