from django.contrib import admin

from apps.workflow.models import AppError, Company, CompanyDefaults


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("prefix", "name", "is_active")


@admin.register(CompanyDefaults)
class CompanyDefaultsAdmin(admin.ModelAdmin):
    list_display = ("company_name", "default_currency", "notion_sync_enabled")


@admin.register(AppError)
class AppErrorAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "app", "function", "severity", "job_code", "resolved")
    list_filter = ("app", "severity", "resolved")
    search_fields = ("message", "job_code")
