from .app_error import AppError
from .company import Company
from .company_defaults import CompanyDefaults

__all__ = [
    "AppError",
    "Company",
    "CompanyDefaults",
]
