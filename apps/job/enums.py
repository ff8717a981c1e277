from django.db import models


class JobNature(models.TextChoices):
    """
    Nature of the work a job code covers. The value is the code used inside
    the job code string itself (e.g. the ``SV`` in ``FS-SV12``).
    """

    PRODUCT = "P", "Product"
    SERVICE_SALE = "S", "Service-sale"
    SERVICE_WORK = "SV", "Service-work"
    RESEARCH = "R", "Research"


# Display metadata for job natures, keyed by nature code
JOB_NATURE_DISPLAY = {
    JobNature.PRODUCT: {
        "color": "#2563eb",
        "description": "Supply of manufactured or resold product",
    },
    JobNature.SERVICE_SALE: {
        "color": "#16a34a",
        "description": "Sale of a packaged service or supply contract",
    },
    JobNature.SERVICE_WORK: {
        "color": "#ea580c",
        "description": "On-site service, installation or maintenance work",
    },
    JobNature.RESEARCH: {
        "color": "#9333ea",
        "description": "Internal research and development",
    },
}


class CostCategory(models.TextChoices):
    MECHANICAL = "A", "Mechanical"
    INSTRUMENTATION = "B", "Instrumentation"
    ELECTRICAL_CONTROL = "C", "Electrical & Control"
    LABOUR = "D", "Labour"
    FREIGHT_TRANSPORT = "E", "Freight & Transport"
    TRAVELLING = "F", "Travelling"
    ENTERTAINMENT = "G", "Entertainment"
    MISCELLANEOUS = "H", "Miscellaneous"


COST_CATEGORY_DESCRIPTIONS = {
    CostCategory.MECHANICAL: "Valves, pumps, piping, fittings, mechanical parts",
    CostCategory.INSTRUMENTATION: "Sensors, transmitters, gauges, analysers",
    CostCategory.ELECTRICAL_CONTROL: "Panels, PLCs, cabling, switchgear",
    CostCategory.LABOUR: "Technician, engineer and subcontract labour",
    CostCategory.FREIGHT_TRANSPORT: "Shipping, courier, lorry and forwarding charges",
    CostCategory.TRAVELLING: "Flights, mileage, tolls and accommodation",
    CostCategory.ENTERTAINMENT: "Client meals and hospitality",
    CostCategory.MISCELLANEOUS: "Anything not covered by another category",
}


class CostType(models.TextChoices):
    PRE = "pre", "PRE-Cost (Budget)"
    POST = "post", "POST-Cost (Actual)"


class ApprovalStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending Approval"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"

    @classmethod
    def terminal(cls) -> tuple:
        return (cls.APPROVED, cls.REJECTED)


class ApprovalAction(models.TextChoices):
    CREATED = "created", "Created"
    SUBMITTED = "submitted", "Submitted"
    UPDATED = "updated", "Updated"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ApprovalPriority(models.TextChoices):
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class PaymentStatus(models.TextChoices):
    UNPAID = "unpaid", "Unpaid"
    PARTIAL = "partial", "Partially Paid"
    PAID = "paid", "Paid"


class JobCodeStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class JobCodeSource(models.TextChoices):
    MANUAL = "manual", "Manual"
    CRM = "crm", "CRM"


class CostingStatus(models.TextChoices):
    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"


class VarianceStatus(models.TextChoices):
    ON_BUDGET = "on_budget", "On Budget"
    OVER_BUDGET = "over_budget", "Over Budget"
    UNDER_BUDGET = "under_budget", "Under Budget"


class EntrySource(models.TextChoices):
    MANUAL = "manual", "Manual"
    NOTION = "notion", "Notion"
    PO_AUTO = "po_auto", "Purchase Order"
