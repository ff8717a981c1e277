from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from apps.accounts.models import ApproverProfile, Staff


class ApproverProfileInline(admin.StackedInline):
    model = ApproverProfile
    extra = 0
    fields = (
        "scope",
        "company_prefixes",
        "branch_ids",
        "auto_assign",
        "max_amount_limit",
        "is_active",
    )


@admin.register(Staff)
class StaffAdmin(UserAdmin):
    model = Staff
    inlines = [ApproverProfileInline]

    list_display = (
        "email",
        "first_name",
        "last_name",
        "is_office_staff",
        "is_active",
    )
    list_filter = (
        "is_office_staff",
        "is_staff",
        "is_active",
    )
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (
            "Personal Info",
            {"fields": ("first_name", "last_name", "preferred_name")},
        ),
        (
            "Permissions",
            {
                "fields": (
                    "is_office_staff",
                    "is_staff",
                    "is_active",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "first_name",
                    "last_name",
                    "password1",
                    "password2",
                    "is_office_staff",
                ),
            },
        ),
    )
    search_fields = ("email", "first_name", "last_name")
    ordering = ("last_name", "first_name")


@admin.register(ApproverProfile)
class ApproverProfileAdmin(admin.ModelAdmin):
    list_display = ("staff", "scope", "auto_assign", "max_amount_limit", "is_active")
    list_filter = ("scope", "auto_assign", "is_active")
    search_fields = ("staff__email", "staff__first_name", "staff__last_name")
    autocomplete_fields = ("staff",)
