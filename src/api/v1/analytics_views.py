"""REST API endpoints for role-scoped sales analytics."""
from django.conf import settings
from rest_framework.views import APIView

from analytics import services as analytics_services
from api.v1.mixins import ApiCallLogMixin
from api.v1.permissions import IsSalesStaff
from api.v1.scoping import (
    CALLBACK_SCOPE,
    DEAL_SCOPE,
    TARGET_SCOPE,
    apply_list_filters,
    scope_queryset,
)
from callbacks.models import Callback
from core.envelope import ErrorCode, error_response, success_response
from deals.models import Deal
from targets.models import SalesTarget
from targets.services import current_period, normalize_period


class _AnalyticsView(ApiCallLogMixin, APIView):
    permission_classes = [IsSalesStaff]
    log_resource = 'analytics'
    log_name = ''

    def get_log_action(self, request) -> str:
        return f'{self.log_resource}.{self.log_name or request.method.lower()}'

    def scoped_deals(self, request):
        params = request.query_params
        qs = scope_queryset(Deal.objects.all(), request.user, DEAL_SCOPE, params)
        return apply_list_filters(qs, params, 'signup_date')

    def scoped_callbacks(self, request):
        params = request.query_params
        qs = scope_queryset(Callback.objects.all(), request.user, CALLBACK_SCOPE, params)
        return apply_list_filters(qs, params, 'first_call_date', choice_fields=('priority',))

    def scoped_targets(self, request):
        return scope_queryset(
            SalesTarget.objects.select_related('agent'), request.user, TARGET_SCOPE, request.query_params,
        )


class AgentLeaderboardView(_AnalyticsView):
    """GET /api/analytics/agents - deals and revenue per agent, best first."""

    log_name = 'agents'

    def get(self, request):
        return success_response(analytics_services.agent_leaderboard(self.scoped_deals(request)))


class TeamSummaryView(_AnalyticsView):
    """GET /api/analytics/teams - deals, callbacks and revenue per team."""

    log_name = 'teams'

    def get(self, request):
        data = analytics_services.team_summary(self.scoped_deals(request), self.scoped_callbacks(request))
        return success_response(data)


class ServiceDistributionView(_AnalyticsView):
    """GET /api/analytics/services?by=service_tier|program_type"""

    log_name = 'services'

    def get(self, request):
        by = request.query_params.get('by') or 'service_tier'
        try:
            data = analytics_services.distribution(self.scoped_deals(request), by=by)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        return success_response(data, by=by)


class TargetProgressView(_AnalyticsView):
    """GET /api/analytics/targets?period=YYYY-MM - progress of targets in scope."""

    log_name = 'targets'

    def get(self, request):
        raw_period = request.query_params.get('period')
        try:
            period = normalize_period(raw_period) if raw_period else current_period()
        except ValueError as exc:
            return error_response(ErrorCode.VALIDATION_ERROR, str(exc), details=[{'field': 'period', 'message': str(exc)}])
        targets = self.scoped_targets(request).filter(period=period)
        return success_response(analytics_services.targets_progress(targets), period=period)


class DashboardView(_AnalyticsView):
    """GET /api/analytics/dashboard - KPI cards, leaderboards and own target."""

    log_name = 'dashboard'

    def get(self, request):
        data = analytics_services.dashboard(
            request.user,
            self.scoped_deals(request),
            self.scoped_callbacks(request),
            self.scoped_targets(request),
        )
        data['pollIntervalSeconds'] = getattr(settings, 'DASHBOARD_POLL_INTERVAL_SECONDS', 30)
        return success_response(data)
