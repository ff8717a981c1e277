from django.urls import path

from apps.workflow.views.app_error_view import (
    AppErrorResolveRestView,
    AppErrorRestListView,
)
from apps.workflow.views.company_view import CompanyDefaultsRestView, CompanyListRestView
from apps.workflow.views.notion_sync_view import NotionCostingSyncRestView

app_name = "workflow"

urlpatterns = [
    path("rest/companies/", CompanyListRestView.as_view(), name="companies_rest"),
    path(
        "rest/company-defaults/",
        CompanyDefaultsRestView.as_view(),
        name="company_defaults_rest",
    ),
    path("rest/app-errors/", AppErrorRestListView.as_view(), name="app_errors_rest"),
    path(
        "rest/app-errors/<uuid:error_id>/resolve/",
        AppErrorResolveRestView.as_view(),
        name="app_error_resolve_rest",
    ),
    path(
        "rest/notion/costing-sync/",
        NotionCostingSyncRestView.as_view(),
        name="notion_costing_sync_rest",
    ),
]
