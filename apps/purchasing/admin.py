from django.contrib import admin

from apps.purchasing.models import CostInvoice, PurchaseOrder, PurchaseOrderLine


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    fields = ("description", "item_code", "quantity", "unit", "unit_cost", "line_total")


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("po_number", "supplier_name", "job_code", "total_amount", "status")
    list_filter = ("status",)
    search_fields = ("po_number", "supplier_name", "job_code")
    inlines = [PurchaseOrderLineInline]


@admin.register(CostInvoice)
class CostInvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "supplier_name",
        "job_code",
        "total_amount",
        "grand_total",
        "status",
    )
    list_filter = ("status",)
    search_fields = ("invoice_number", "supplier_name", "job_code")
