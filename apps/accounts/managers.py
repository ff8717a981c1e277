from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from django.contrib.auth.base_user import BaseUserManager
from django.db import models

if TYPE_CHECKING:
    from apps.accounts.models import Staff

    BaseManagerClass = BaseUserManager["Staff"]
else:
    BaseManagerClass = BaseUserManager


class StaffManager(BaseManagerClass):
    """
    Custom manager for Staff user model that combines:
    - Strict validation for superuser creation
    - Convenience querysets for approver lookups
    """

    def create_user(
        self, email: str, password: Optional[str] = None, **extra_fields: Any
    ) -> "Staff":
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(
        self, email: str, password: str, **extra_fields: Any
    ) -> "Staff":
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_office_staff", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)

    def approvers(self) -> models.QuerySet["Staff"]:
        """Active staff allowed to decide costing entries."""
        return self.filter(is_active=True, is_office_staff=True)
