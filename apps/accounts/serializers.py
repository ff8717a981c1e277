from rest_framework import serializers

from apps.accounts.models import ApproverProfile, Staff
from apps.job.services.money import from_minor_units


class StaffSummarySerializer(serializers.ModelSerializer):
    """Minimal staff representation used on costing entries and approver pickers."""

    display_name = serializers.CharField(source="get_display_full_name", read_only=True)

    class Meta:
        model = Staff
        fields = ["id", "email", "display_name", "is_office_staff"]
        read_only_fields = fields


class ApproverProfileSerializer(serializers.ModelSerializer):
    max_amount_limit = serializers.SerializerMethodField()

    class Meta:
        model = ApproverProfile
        fields = [
            "scope",
            "company_prefixes",
            "branch_ids",
            "auto_assign",
            "max_amount_limit",
            "is_active",
        ]
        read_only_fields = fields

    def get_max_amount_limit(self, obj) -> str | None:
        if obj.max_amount_limit is None:
            return None
        return str(from_minor_units(obj.max_amount_limit))


class ApproverSerializer(StaffSummarySerializer):
    approver_profile = ApproverProfileSerializer(read_only=True)

    class Meta(StaffSummarySerializer.Meta):
        fields = StaffSummarySerializer.Meta.fields + ["approver_profile"]
        read_only_fields = fields


class ApproverQuerySerializer(serializers.Serializer):
    company_prefix = serializers.CharField(required=False)
    branch_id = serializers.CharField(required=False)
    amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False
    )


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "preferred_name",
            "is_office_staff",
            "is_staff",
        ]
        read_only_fields = fields
