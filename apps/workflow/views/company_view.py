import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsOfficeStaff
from apps.workflow.models import Company
from apps.workflow.serializers import CompanyDefaultsSerializer, CompanySerializer
from apps.workflow.services.company_defaults_service import get_company_defaults

logger = logging.getLogger(__name__)


class CompanyListRestView(APIView):
    """Companies whose prefixes may appear in job codes."""

    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: CompanySerializer(many=True)}, tags=["Companies"])
    def get(self, request):
        companies = Company.objects.filter(is_active=True)
        return Response(CompanySerializer(companies, many=True).data)


class CompanyDefaultsRestView(APIView):
    """
    Read or update the approval thresholds and Notion sync settings.
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsOfficeStaff()]

    @extend_schema(responses={200: CompanyDefaultsSerializer}, tags=["Companies"])
    def get(self, request):
        return Response(CompanyDefaultsSerializer(get_company_defaults()).data)

    @extend_schema(
        request=CompanyDefaultsSerializer,
        responses={200: CompanyDefaultsSerializer},
        tags=["Companies"],
    )
    def patch(self, request):
        instance = get_company_defaults()
        serializer = CompanyDefaultsSerializer(instance, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        logger.info(f"Company defaults updated by {request.user}: {sorted(request.data)}")
        return Response(serializer.data)
