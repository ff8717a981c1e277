from rest_framework import serializers

from .models import AppError, Company, CompanyDefaults

# ---------------------------------------------------------------------------
# Company Serializers
# ---------------------------------------------------------------------------


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ["prefix", "name", "is_active"]


class CompanyDefaultsSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompanyDefaults
        fields = [
            "company_name",
            "default_currency",
            "approval_high_days",
            "approval_urgent_days",
            "approval_high_amount",
            "approval_urgent_amount",
            "notion_costing_database_id",
            "notion_sync_enabled",
            "last_notion_sync",
        ]
        read_only_fields = ["company_name", "last_notion_sync"]


# ---------------------------------------------------------------------------
# App Error Serializers
# ---------------------------------------------------------------------------


class AppErrorSerializer(serializers.ModelSerializer):
    """Basic serializer for AppError instances."""

    class Meta:
        model = AppError
        fields = "__all__"


class AppErrorListResponseSerializer(serializers.Serializer):
    """Serializer for paginated AppError list response."""

    count = serializers.IntegerField()
    limit = serializers.IntegerField()
    offset = serializers.IntegerField()
    results = AppErrorSerializer(many=True)


# ---------------------------------------------------------------------------
# Notion Sync Serializers
# ---------------------------------------------------------------------------


class NotionSyncRequestSerializer(serializers.Serializer):
    full = serializers.BooleanField(required=False, default=False)


class NotionSyncErrorSerializer(serializers.Serializer):
    page_id = serializers.CharField(allow_null=True)
    error = serializers.CharField()


class NotionSyncConflictSerializer(serializers.Serializer):
    page_id = serializers.CharField()
    reason = serializers.CharField()


class NotionSyncResponseSerializer(serializers.Serializer):
    created = serializers.IntegerField()
    updated = serializers.IntegerField()
    skipped = serializers.IntegerField()
    errors = NotionSyncErrorSerializer(many=True)
    conflicts = NotionSyncConflictSerializer(many=True, required=False)
    skipped_run = serializers.CharField(required=False)
