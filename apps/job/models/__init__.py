from .costing_entry import CostingEntry
from .job_code import JobCode, JobCodeCounter

__all__ = [
    "CostingEntry",
    "JobCode",
    "JobCodeCounter",
]
