"""
Job Code REST Views

Create, edit and inspect job codes, issue and check codes, and manage the
purchase order / cost invoice links that feed the financial rollup.
"""

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.response import Response

from apps.job.models import JobCode
from apps.job.serializers import (
    CostingErrorResponseSerializer,
    GenerateCodeRequestSerializer,
    GenerateCodeResponseSerializer,
    JobCodeCreateSerializer,
    JobCodeSerializer,
    JobCodeUpdateSerializer,
    LinkDocumentSerializer,
    ValidateCodeRequestSerializer,
    ValidateCodeResponseSerializer,
)
from apps.job.services.code_registry import (
    generate_job_code,
    normalize_code,
    peek_next_number,
    validate_job_code,
)
from apps.job.services.cross_reference import (
    link_cost_invoice,
    link_purchase_order,
    unlink_cost_invoice,
    unlink_purchase_order,
)
from apps.job.services.financial_rollup import recompute
from apps.job.services.job_code_service import JobCodeService
from apps.purchasing.models import CostInvoice, PurchaseOrder

from .base import BaseCostingRestView

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: CostingErrorResponseSerializer,
    404: CostingErrorResponseSerializer,
    409: CostingErrorResponseSerializer,
}


class JobCodeListCreateRestView(BaseCostingRestView):
    @extend_schema(
        parameters=[
            OpenApiParameter("company_prefix", OpenApiTypes.STR, required=False),
            OpenApiParameter("job_nature_code", OpenApiTypes.STR, required=False),
            OpenApiParameter("status", OpenApiTypes.STR, required=False),
            OpenApiParameter("source", OpenApiTypes.STR, required=False),
            OpenApiParameter("search", OpenApiTypes.STR, required=False),
        ],
        responses={200: JobCodeSerializer(many=True)},
        tags=["Job Codes"],
    )
    def get(self, request):
        job_codes = JobCodeService.list_job_codes(request.query_params).select_related(
            "created_by"
        )
        return Response(JobCodeSerializer(job_codes, many=True).data)

    @extend_schema(
        request=JobCodeCreateSerializer,
        responses={201: JobCodeSerializer, 503: CostingErrorResponseSerializer, **ERROR_RESPONSES},
        description=(
            "Create a job code. Without a code the next running number for the "
            "prefix and nature is issued."
        ),
        tags=["Job Codes"],
    )
    def post(self, request):
        serializer = JobCodeCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            job_code = JobCodeService.create_job_code(
                serializer.validated_data, request.user
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data, status=status.HTTP_201_CREATED)


class JobCodeDetailRestView(BaseCostingRestView):
    @extend_schema(responses={200: JobCodeSerializer, 404: CostingErrorResponseSerializer}, tags=["Job Codes"])
    def get(self, request, code):
        try:
            job_code = JobCodeService.get_job_code(code)
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data)

    @extend_schema(
        request=JobCodeUpdateSerializer,
        responses={200: JobCodeSerializer, 500: CostingErrorResponseSerializer, **ERROR_RESPONSES},
        description="Edit a manually created job code. CRM job codes are read-only (409).",
        tags=["Job Codes"],
    )
    def patch(self, request, code):
        serializer = JobCodeUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            job_code = JobCodeService.update_job_code(
                code, serializer.validated_data, request.user
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data)


class GenerateJobCodeRestView(BaseCostingRestView):
    @extend_schema(
        request=GenerateCodeRequestSerializer,
        responses={
            201: GenerateCodeResponseSerializer,
            400: CostingErrorResponseSerializer,
            503: CostingErrorResponseSerializer,
        },
        description="Issue the next job code for a company prefix and job nature.",
        tags=["Job Codes"],
    )
    def post(self, request):
        serializer = GenerateCodeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            code = generate_job_code(
                serializer.validated_data["company_prefix"].strip().upper(),
                serializer.validated_data["job_nature_code"],
            )
        except Exception as e:
            return self.handle_service_error(e)
        return Response({"code": code}, status=status.HTTP_201_CREATED)


class NextJobCodeRestView(BaseCostingRestView):
    @extend_schema(
        parameters=[
            OpenApiParameter("company_prefix", OpenApiTypes.STR, required=True),
            OpenApiParameter("job_nature_code", OpenApiTypes.STR, required=True),
        ],
        responses={200: GenerateCodeResponseSerializer},
        description="Preview of the next code. Nothing is reserved.",
        tags=["Job Codes"],
    )
    def get(self, request):
        serializer = GenerateCodeRequestSerializer(data=request.query_params)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        prefix = serializer.validated_data["company_prefix"].strip().upper()
        nature = serializer.validated_data["job_nature_code"]
        return Response({"code": f"{prefix}-{nature}{peek_next_number(prefix, nature)}"})


class ValidateJobCodeRestView(BaseCostingRestView):
    @extend_schema(
        request=ValidateCodeRequestSerializer,
        responses={200: ValidateCodeResponseSerializer},
        tags=["Job Codes"],
    )
    def post(self, request):
        serializer = ValidateCodeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        code = normalize_code(serializer.validated_data["code"])
        errors = validate_job_code(code)
        return Response(
            {
                "code": code,
                "valid": not errors,
                "errors": errors,
                "exists": JobCode.objects.filter(code=code).exists(),
            }
        )


class JobNatureOptionsRestView(BaseCostingRestView):
    @extend_schema(responses={200: OpenApiTypes.OBJECT}, tags=["Job Codes"])
    def get(self, request):
        return Response(JobCodeService.job_nature_options())


class RefreshJobFinancialsRestView(BaseCostingRestView):
    @extend_schema(
        request=None,
        responses={200: JobCodeSerializer, 404: CostingErrorResponseSerializer},
        description="Recompute the costing summary, links and margin from source records.",
        tags=["Job Codes"],
    )
    def post(self, request, code):
        try:
            job_code = JobCodeService.get_job_code(code)
            recompute(job_code.code)
            job_code.refresh_from_db()
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data)


class _LinkedDocumentRestView(BaseCostingRestView):
    model = None
    link = None
    unlink = None

    def _get_document(self, document_id):
        return self.model.objects.get(pk=document_id)

    def post(self, request, code):
        serializer = LinkDocumentSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_serializer_response(serializer)
        try:
            document = self._get_document(serializer.validated_data["document_id"])
            self.link(document, code)
            job_code = JobCodeService.get_job_code(code)
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data)

    def delete(self, request, code, document_id):
        try:
            job_code = JobCodeService.get_job_code(code)
            document = self._get_document(document_id)
            if document.job_code != job_code.code:
                return self.error_response(
                    {"error": f"Document is not linked to {job_code.code}"},
                    status.HTTP_404_NOT_FOUND,
                )
            self.unlink(document)
            job_code.refresh_from_db()
        except Exception as e:
            return self.handle_service_error(e)
        return Response(JobCodeSerializer(job_code).data)


@extend_schema(tags=["Job Codes"], request=LinkDocumentSerializer, responses={200: JobCodeSerializer, **ERROR_RESPONSES})
class JobCodePurchaseOrderLinkRestView(_LinkedDocumentRestView):
    model = PurchaseOrder
    link = staticmethod(link_purchase_order)
    unlink = staticmethod(unlink_purchase_order)


@extend_schema(tags=["Job Codes"], request=LinkDocumentSerializer, responses={200: JobCodeSerializer, **ERROR_RESPONSES})
class JobCodeCostInvoiceLinkRestView(_LinkedDocumentRestView):
    model = CostInvoice
    link = staticmethod(link_cost_invoice)
    unlink = staticmethod(unlink_cost_invoice)
