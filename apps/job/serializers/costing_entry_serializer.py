from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import StaffSummarySerializer
from apps.job.enums import CostCategory, CostType
from apps.job.models import CostingEntry

from .money import MoneyField, RejectUnknownFieldsMixin

AMOUNT_INPUT = dict(max_digits=18, decimal_places=6, min_value=Decimal("0"))


class CostingEntrySerializer(serializers.ModelSerializer):
    """Read model for a costing entry."""

    job_code = serializers.CharField(source="job_code.code", read_only=True)
    category_label = serializers.CharField(
        source="get_category_display", read_only=True
    )
    unit_rate = MoneyField()
    amount = MoneyField()
    amount_paid = MoneyField()
    balance_payable = MoneyField()
    payment_status = serializers.CharField(read_only=True)
    created_by = StaffSummarySerializer(read_only=True)
    approved_by = StaffSummarySerializer(read_only=True)
    rejected_by = StaffSummarySerializer(read_only=True)
    assigned_approver = StaffSummarySerializer(read_only=True)

    class Meta:
        model = CostingEntry
        fields = [
            "id",
            "job_code",
            "cost_type",
            "category",
            "category_label",
            "entry_date",
            "description",
            "vendor",
            "invoice_no",
            "quantity",
            "unit",
            "unit_rate",
            "amount",
            "amount_paid",
            "balance_payable",
            "payment_status",
            "currency",
            "company_prefix",
            "branch_id",
            "approval_status",
            "approval_history",
            "created_by",
            "submitted_at",
            "approved_at",
            "approved_by",
            "rejected_at",
            "rejected_by",
            "rejection_reason",
            "assigned_approver",
            "remarks",
            "notes",
            "source",
            "external_id",
            "source_meta",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class _EntryInputFields(RejectUnknownFieldsMixin, serializers.Serializer):
    job_code = serializers.CharField(max_length=50)
    cost_type = serializers.ChoiceField(choices=CostType.choices)
    category = serializers.ChoiceField(choices=CostCategory.choices)
    entry_date = serializers.DateField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    vendor = serializers.CharField(max_length=255, required=False, allow_blank=True)
    invoice_no = serializers.CharField(max_length=100, required=False, allow_blank=True)
    quantity = serializers.DecimalField(
        max_digits=12, decimal_places=3, min_value=Decimal("0.001"), required=False
    )
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)
    unit_rate = serializers.DecimalField(required=False, **AMOUNT_INPUT)
    amount = serializers.DecimalField(**AMOUNT_INPUT)
    amount_paid = serializers.DecimalField(required=False, **AMOUNT_INPUT)
    remarks = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    assigned_approver = serializers.UUIDField(required=False, allow_null=True)


class CostingEntryCreateSerializer(_EntryInputFields):
    submit_immediately = serializers.BooleanField(required=False, default=False)


class CostingEntryUpdateSerializer(_EntryInputFields):
    """Partial edit; instantiate with ``partial=True``."""


class SubmitEntrySerializer(serializers.Serializer):
    approver = serializers.UUIDField(required=False, allow_null=True)


class DraftFromPurchaseOrderSerializer(serializers.Serializer):
    purchase_order = serializers.UUIDField()


class ApproveEntrySerializer(serializers.Serializer):
    remarks = serializers.CharField(required=False, allow_blank=True, default="")


class RejectEntrySerializer(serializers.Serializer):
    # Blank is allowed here so the service reports the missing reason
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ApprovalQueueItemSerializer(serializers.Serializer):
    entry = CostingEntrySerializer()
    days_waiting = serializers.IntegerField()
    priority = serializers.CharField()


class ThisMonthStatsSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    amount = MoneyField()


class UserStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
    total_amount = MoneyField()
    approved_amount = MoneyField()
    this_month = ThisMonthStatsSerializer()
