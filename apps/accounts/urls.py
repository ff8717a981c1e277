from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from apps.accounts.views.staff_views import ApproverListAPIView, GetCurrentUserAPIView

app_name = "accounts"

urlpatterns = [
    path("api/staff/approvers/", ApproverListAPIView.as_view(), name="api_approvers"),
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/token/verify/", TokenVerifyView.as_view(), name="token_verify"),
    path("me/", GetCurrentUserAPIView.as_view(), name="get_current_user"),
]
