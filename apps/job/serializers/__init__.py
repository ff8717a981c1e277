from .costing_entry_serializer import (
    ApprovalQueueItemSerializer,
    ApproveEntrySerializer,
    CostingEntryCreateSerializer,
    CostingEntrySerializer,
    CostingEntryUpdateSerializer,
    DraftFromPurchaseOrderSerializer,
    RejectEntrySerializer,
    SubmitEntrySerializer,
    UserStatsSerializer,
)
from .job_code_serializer import (
    GenerateCodeRequestSerializer,
    GenerateCodeResponseSerializer,
    JobCodeCreateSerializer,
    JobCodeSerializer,
    JobCodeUpdateSerializer,
    LinkDocumentSerializer,
    ValidateCodeRequestSerializer,
    ValidateCodeResponseSerializer,
)
from .error_serializer import CostingErrorResponseSerializer
from .money import MoneyField, RejectUnknownFieldsMixin

__all__ = [
    "ApprovalQueueItemSerializer",
    "ApproveEntrySerializer",
    "CostingEntryCreateSerializer",
    "CostingEntrySerializer",
    "CostingEntryUpdateSerializer",
    "CostingErrorResponseSerializer",
    "DraftFromPurchaseOrderSerializer",
    "GenerateCodeRequestSerializer",
    "GenerateCodeResponseSerializer",
    "JobCodeCreateSerializer",
    "JobCodeSerializer",
    "JobCodeUpdateSerializer",
    "LinkDocumentSerializer",
    "MoneyField",
    "RejectEntrySerializer",
    "RejectUnknownFieldsMixin",
    "SubmitEntrySerializer",
    "UserStatsSerializer",
    "ValidateCodeRequestSerializer",
    "ValidateCodeResponseSerializer",
]
