from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from apps.job.models import CostingEntry, JobCode, JobCodeCounter


@admin.register(JobCode)
class JobCodeAdmin(SimpleHistoryAdmin):
    list_display = (
        "code",
        "title",
        "client_name",
        "status",
        "source",
        "costing_status",
        "pending_approval_count",
    )
    list_filter = ("company_prefix", "job_nature_code", "status", "source")
    search_fields = ("code", "title", "client_name")
    # Derived from costing entries, POs and invoices by the rollup
    readonly_fields = (
        "costing_summary",
        "pending_approval_count",
        "pending_approval_amount",
        "linked_pos",
        "linked_pis",
        "total_po_value",
        "total_pi_value",
        "gross_margin",
        "gross_margin_percentage",
    )


@admin.register(JobCodeCounter)
class JobCodeCounterAdmin(admin.ModelAdmin):
    list_display = ("company_prefix", "job_nature_code", "last_number", "updated_at")
    readonly_fields = ("last_number",)


@admin.register(CostingEntry)
class CostingEntryAdmin(SimpleHistoryAdmin):
    list_display = (
        "job_code",
        "cost_type",
        "category",
        "amount",
        "approval_status",
        "source",
        "submitted_at",
    )
    list_filter = ("approval_status", "cost_type", "category", "source")
    search_fields = ("job_code__code", "description", "vendor", "invoice_no")
    raw_id_fields = ("job_code",)
    readonly_fields = ("approval_history", "balance_payable", "source_meta")
