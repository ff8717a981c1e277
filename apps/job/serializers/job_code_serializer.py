from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import StaffSummarySerializer
from apps.job.enums import JOB_NATURE_DISPLAY, JobCodeSource, JobCodeStatus, JobNature
from apps.job.models import JobCode

from .money import MoneyField, RejectUnknownFieldsMixin

AMOUNT_INPUT = dict(max_digits=18, decimal_places=6, min_value=Decimal("0"))


class LinkedDocumentSerializer(serializers.Serializer):
    id = serializers.CharField()
    number = serializers.CharField()
    total_amount = MoneyField()
    status = serializers.CharField()


class JobCodeSerializer(serializers.ModelSerializer):
    """Read model for a job code, money as decimal strings."""

    job_nature_label = serializers.CharField(
        source="get_job_nature_code_display", read_only=True
    )
    job_nature_color = serializers.SerializerMethodField()
    is_editable = serializers.BooleanField(read_only=True)
    quoted_value = MoneyField()
    pending_approval_amount = MoneyField()
    total_po_value = MoneyField()
    total_pi_value = MoneyField()
    gross_margin = MoneyField()
    linked_pos = LinkedDocumentSerializer(many=True, read_only=True)
    linked_pis = LinkedDocumentSerializer(many=True, read_only=True)
    created_by = StaffSummarySerializer(read_only=True)

    class Meta:
        model = JobCode
        fields = [
            "id",
            "code",
            "company_prefix",
            "job_nature_code",
            "job_nature_label",
            "job_nature_color",
            "running_number",
            "title",
            "description",
            "client_id",
            "client_name",
            "status",
            "currency",
            "quoted_value",
            "company_id",
            "branch_id",
            "source",
            "crm_job_id",
            "notion_project_id",
            "is_editable",
            "costing_status",
            "costing_summary",
            "pending_approval_count",
            "pending_approval_amount",
            "linked_pos",
            "linked_pis",
            "total_po_value",
            "total_pi_value",
            "gross_margin",
            "gross_margin_percentage",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_job_nature_color(self, obj) -> str:
        return JOB_NATURE_DISPLAY[JobNature(obj.job_nature_code)]["color"]


class JobCodeCreateSerializer(RejectUnknownFieldsMixin, serializers.Serializer):
    company_prefix = serializers.CharField(max_length=10, required=False)
    job_nature_code = serializers.ChoiceField(choices=JobNature.choices, required=False)
    code = serializers.CharField(max_length=50, required=False)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    client_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    client_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=JobCodeStatus.choices, required=False)
    currency = serializers.CharField(max_length=3, required=False)
    quoted_value = serializers.DecimalField(required=False, **AMOUNT_INPUT)
    company_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    branch_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    source = serializers.ChoiceField(choices=JobCodeSource.choices, required=False)
    crm_job_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notion_project_id = serializers.CharField(
        max_length=100, required=False, allow_blank=True
    )

    def validate(self, attrs):
        if not attrs.get("code") and not (
            attrs.get("company_prefix") and attrs.get("job_nature_code")
        ):
            raise serializers.ValidationError(
                "Provide either a code or a company_prefix and job_nature_code"
            )
        return attrs


class JobCodeUpdateSerializer(RejectUnknownFieldsMixin, serializers.Serializer):
    code = serializers.CharField(max_length=50, required=False)
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    client_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    client_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=JobCodeStatus.choices, required=False)
    quoted_value = serializers.DecimalField(required=False, **AMOUNT_INPUT)
    company_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    branch_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notion_project_id = serializers.CharField(
        max_length=100, required=False, allow_blank=True
    )


class GenerateCodeRequestSerializer(serializers.Serializer):
    company_prefix = serializers.CharField(max_length=10)
    job_nature_code = serializers.ChoiceField(choices=JobNature.choices)


class GenerateCodeResponseSerializer(serializers.Serializer):
    code = serializers.CharField()


class ValidateCodeRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)


class ValidateCodeResponseSerializer(serializers.Serializer):
    code = serializers.CharField()
    valid = serializers.BooleanField()
    errors = serializers.ListField(child=serializers.CharField())
    exists = serializers.BooleanField()


class LinkDocumentSerializer(serializers.Serializer):
    document_id = serializers.UUIDField()
