"""
URL Configuration for Job App

This module contains all URL patterns related to job costing:
- Job code issue, validation and editing
- Costing entries and their approval
- Purchase order / cost invoice links
"""

from apps.job.urls_rest import rest_urlpatterns

app_name = "jobs"


urlpatterns = rest_urlpatterns
