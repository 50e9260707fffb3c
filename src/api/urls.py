"""Main API URL router for /api/."""
from django.urls import include, path, re_path
from rest_framework.routers import DefaultRouter

from api.auth_views import (
    CookieTokenObtainPairView,
    CookieTokenRefreshView,
    CSRFTokenAPIView,
    LogoutAPIView,
)
from api.v1 import analytics_views as analytics_api_views
from api.v1 import views as v1_views

router = DefaultRouter()
# Trailing slash is optional on every route.
router.trailing_slash = '/?'
router.register(r'users', v1_views.UserViewSet, basename='user')
router.register(r'deals', v1_views.DealViewSet, basename='deal')
router.register(r'callbacks', v1_views.CallbackViewSet, basename='callback')
router.register(r'targets', v1_views.SalesTargetViewSet, basename='target')
router.register(r'notifications', v1_views.NotificationViewSet, basename='notification')


app_name = 'api'
urlpatterns = [
    # Auth endpoints
    re_path(r'^auth/csrf/?$', CSRFTokenAPIView.as_view(), name='auth-csrf'),
    re_path(r'^auth/token/?$', CookieTokenObtainPairView.as_view(), name='token_obtain_pair'),
    re_path(r'^auth/token/refresh/?$', CookieTokenRefreshView.as_view(), name='token_refresh'),
    re_path(r'^auth/logout/?$', LogoutAPIView.as_view(), name='auth-logout'),
    re_path(r'^auth/me/?$', v1_views.MeView.as_view(), name='auth-me'),

    # Sales feed; CSV uploads to /sales/import land in the deals importer.
    re_path(r'^sales/import/?$', v1_views.DealViewSet.as_view({'post': 'import_csv'}), name='sales-import'),
    re_path(r'^sales/?$', v1_views.SalesFeedView.as_view(), name='sales-feed'),

    # Analytics
    re_path(r'^analytics/agents/?$', analytics_api_views.AgentLeaderboardView.as_view(), name='analytics-agents'),
    re_path(r'^analytics/teams/?$', analytics_api_views.TeamSummaryView.as_view(), name='analytics-teams'),
    re_path(r'^analytics/services/?$', analytics_api_views.ServiceDistributionView.as_view(), name='analytics-services'),
    re_path(r'^analytics/targets/?$', analytics_api_views.TargetProgressView.as_view(), name='analytics-targets'),
    re_path(r'^analytics/dashboard/?$', analytics_api_views.DashboardView.as_view(), name='analytics-dashboard'),

    path('', include(router.urls)),
]
