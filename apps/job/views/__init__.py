from .costing_entry_views import (
    ApprovalQueueCountRestView,
    ApprovalQueueRestView,
    ApproveCostingEntryRestView,
    CostingEntryDetailRestView,
    CostingEntryListCreateRestView,
    CostingExportRestView,
    DraftFromPurchaseOrderRestView,
    MyCostingStatsRestView,
    RejectCostingEntryRestView,
    SubmitCostingEntryRestView,
)
from .job_code_views import (
    GenerateJobCodeRestView,
    JobCodeCostInvoiceLinkRestView,
    JobCodeDetailRestView,
    JobCodeListCreateRestView,
    JobCodePurchaseOrderLinkRestView,
    JobNatureOptionsRestView,
    NextJobCodeRestView,
    RefreshJobFinancialsRestView,
    ValidateJobCodeRestView,
)

__all__ = [
    "ApprovalQueueCountRestView",
    "ApprovalQueueRestView",
    "ApproveCostingEntryRestView",
    "CostingEntryDetailRestView",
    "CostingEntryListCreateRestView",
    "CostingExportRestView",
    "DraftFromPurchaseOrderRestView",
    "GenerateJobCodeRestView",
    "JobCodeCostInvoiceLinkRestView",
    "JobCodeDetailRestView",
    "JobCodeListCreateRestView",
    "JobCodePurchaseOrderLinkRestView",
    "JobNatureOptionsRestView",
    "MyCostingStatsRestView",
    "NextJobCodeRestView",
    "RefreshJobFinancialsRestView",
    "RejectCostingEntryRestView",
    "SubmitCostingEntryRestView",
    "ValidateJobCodeRestView",
]
