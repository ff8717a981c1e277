from django.urls import path

from apps.job.views import (
    ApprovalQueueCountRestView,
    ApprovalQueueRestView,
    ApproveCostingEntryRestView,
    CostingEntryDetailRestView,
    CostingEntryListCreateRestView,
    CostingExportRestView,
    DraftFromPurchaseOrderRestView,
    GenerateJobCodeRestView,
    JobCodeCostInvoiceLinkRestView,
    JobCodeDetailRestView,
    JobCodeListCreateRestView,
    JobCodePurchaseOrderLinkRestView,
    JobNatureOptionsRestView,
    MyCostingStatsRestView,
    NextJobCodeRestView,
    RefreshJobFinancialsRestView,
    RejectCostingEntryRestView,
    SubmitCostingEntryRestView,
    ValidateJobCodeRestView,
)

rest_urlpatterns = [
    # Job codes
    path("rest/job-codes/", JobCodeListCreateRestView.as_view(), name="job_code_list"),
    path(
        "rest/job-codes/generate/",
        GenerateJobCodeRestView.as_view(),
        name="job_code_generate",
    ),
    path("rest/job-codes/next/", NextJobCodeRestView.as_view(), name="job_code_next"),
    path(
        "rest/job-codes/validate/",
        ValidateJobCodeRestView.as_view(),
        name="job_code_validate",
    ),
    path(
        "rest/job-codes/natures/",
        JobNatureOptionsRestView.as_view(),
        name="job_code_natures",
    ),
    path(
        "rest/job-codes/<str:code>/",
        JobCodeDetailRestView.as_view(),
        name="job_code_detail",
    ),
    path(
        "rest/job-codes/<str:code>/refresh-financials/",
        RefreshJobFinancialsRestView.as_view(),
        name="job_code_refresh_financials",
    ),
    path(
        "rest/job-codes/<str:code>/purchase-orders/",
        JobCodePurchaseOrderLinkRestView.as_view(),
        name="job_code_po_link",
    ),
    path(
        "rest/job-codes/<str:code>/purchase-orders/<uuid:document_id>/",
        JobCodePurchaseOrderLinkRestView.as_view(),
        name="job_code_po_unlink",
    ),
    path(
        "rest/job-codes/<str:code>/cost-invoices/",
        JobCodeCostInvoiceLinkRestView.as_view(),
        name="job_code_invoice_link",
    ),
    path(
        "rest/job-codes/<str:code>/cost-invoices/<uuid:document_id>/",
        JobCodeCostInvoiceLinkRestView.as_view(),
        name="job_code_invoice_unlink",
    ),
    path(
        "rest/job-codes/<str:code>/costing-export/",
        CostingExportRestView.as_view(),
        name="job_code_costing_export",
    ),
    # Costing entries
    path(
        "rest/costing-entries/",
        CostingEntryListCreateRestView.as_view(),
        name="costing_entry_list",
    ),
    path(
        "rest/costing-entries/my-stats/",
        MyCostingStatsRestView.as_view(),
        name="costing_entry_my_stats",
    ),
    path(
        "rest/costing-entries/from-purchase-order/",
        DraftFromPurchaseOrderRestView.as_view(),
        name="costing_entry_from_po",
    ),
    path(
        "rest/costing-entries/<uuid:entry_id>/",
        CostingEntryDetailRestView.as_view(),
        name="costing_entry_detail",
    ),
    path(
        "rest/costing-entries/<uuid:entry_id>/submit/",
        SubmitCostingEntryRestView.as_view(),
        name="costing_entry_submit",
    ),
    path(
        "rest/costing-entries/<uuid:entry_id>/approve/",
        ApproveCostingEntryRestView.as_view(),
        name="costing_entry_approve",
    ),
    path(
        "rest/costing-entries/<uuid:entry_id>/reject/",
        RejectCostingEntryRestView.as_view(),
        name="costing_entry_reject",
    ),
    # Approval queue
    path(
        "rest/approval-queue/", ApprovalQueueRestView.as_view(), name="approval_queue"
    ),
    path(
        "rest/approval-queue/count/",
        ApprovalQueueCountRestView.as_view(),
        name="approval_queue_count",
    ),
]
