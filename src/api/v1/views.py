"""API v1 viewsets for deals, callbacks, targets, users, notifications and the sales feed."""
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from analytics.services import callback_stats
from api.v1.mixins import ApiCallLogMixin
from api.v1.permissions import CanSendNotifications, IsManager, IsManagerOrReadOnly, IsSalesStaff
from api.v1.scoping import (
    CALLBACK_SCOPE,
    DEAL_SCOPE,
    TARGET_SCOPE,
    USER_SCOPE,
    apply_list_filters,
    scope_queryset,
)
from api.v1.serializers import (
    CallbackConvertSerializer,
    CallbackSerializer,
    CallbackUpdateSerializer,
    CallbackWriteSerializer,
    DealSerializer,
    DealUpdateSerializer,
    DealWriteSerializer,
    MeSerializer,
    NotificationSerializer,
    NotificationWriteSerializer,
    SalesTargetSerializer,
    SalesTargetWriteSerializer,
    UserSerializer,
    UserWriteSerializer,
)
from callbacks.models import Callback
from callbacks.services import convert_callback, create_callback, update_callback
from core.envelope import ErrorCode, error_response, success_response
from core.exceptions import flatten_validation_errors
from core.export import csv_dict_reader, decode_csv_upload, is_blank_row, queryset_to_csv_response
from deals.models import Deal
from deals.services import agent_directory, create_deal, csv_columns, deal_payload_from_row, update_deal
from notifications import services as notification_services
from notifications.models import Notification
from targets.models import SalesTarget
from targets.services import create_target, normalize_period, update_target

User = get_user_model()
logger = logging.getLogger("vmax")


def _date(value, fmt='%Y-%m-%d'):
    return value.strftime(fmt) if value else ''


# ---------------------------------------------------------------------------
# User ViewSet
# ---------------------------------------------------------------------------

TRUTHY = ('1', 'true', 'yes', 'on')


class UserViewSet(
    ApiCallLogMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    User directory for role/team lookups, managed by managers.

    Managers see everyone, team leaders their team, others only themselves.
    Only managers create and edit users; DELETE deactivates the account
    instead of removing it, so deals and callbacks keep their agent.
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['role', 'team']
    search_fields = ['email', 'first_name', 'last_name', 'team']
    ordering_fields = ['first_name', 'last_name', 'role', 'team']
    envelope_key = 'users'
    log_resource = 'users'

    def get_queryset(self):
        qs = scope_queryset(super().get_queryset(), self.request.user, USER_SCOPE)
        user = self.request.user
        sees_inactive = user.is_superuser or user.is_manager
        if self.action == 'list':
            sees_inactive = sees_inactive and self.request.query_params.get('includeInactive', '').lower() in TRUTHY
        if not sees_inactive:
            qs = qs.filter(is_active=True)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = UserWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("User %s (%s) created by %s", user.email, user.role, request.user)
        data = UserSerializer(user).data
        return success_response(data, message='User created', status=status.HTTP_201_CREATED, user=data)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', None)
        user = self.get_object()
        serializer = UserWriteSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return success_response(UserSerializer(user).data, message='User updated')

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.pk == request.user.pk:
            return error_response(ErrorCode.BAD_REQUEST, 'You cannot deactivate your own account.')
        if user.is_active:
            user.is_active = False
            user.save(update_fields=['is_active'])
            logger.info("User %s deactivated by %s", user.email, request.user)
        return success_response(UserSerializer(user).data, message='User deactivated')


# ---------------------------------------------------------------------------
# Deal ViewSet
# ---------------------------------------------------------------------------

DEAL_EXPORT_COLUMNS = [
    ('deal_id', 'Deal ID'),
    ('customer_name', 'Customer'),
    ('phone_number', 'Phone'),
    ('email', 'Email'),
    ('display_country', 'Country'),
    ('amount_paid', 'Amount Paid'),
    (lambda o: _date(o.signup_date), 'Signup Date'),
    (lambda o: _date(o.end_date), 'End Date'),
    ('total_months', 'Duration (months)'),
    ('number_of_users', 'Users'),
    ('service_tier', 'Service Tier'),
    ('program_type', 'Program'),
    ('sales_agent_name', 'Sales Agent'),
    ('closing_agent_name', 'Closing Agent'),
    ('sales_team', 'Team'),
    ('status', 'Status'),
    ('stage', 'Stage'),
    ('priority', 'Priority'),
]


class DealViewSet(
    ApiCallLogMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Deals visible to the caller.

    - list: role-scoped, filter by search, status, stage, priority, salesTeam,
      from/to and month
    - create: record a deal (defaults filled by the deals service)
    - update / partial_update: status, stage and detail edits
    - export: CSV of the filtered rows
    - import: manager-only CSV upload, one deal per row

    Deals are never deleted through the API.
    """

    queryset = Deal.objects.select_related('sales_agent', 'closing_agent')
    serializer_class = DealSerializer
    permission_classes = [IsSalesStaff]
    filterset_fields = ['service_tier', 'program_type', 'sales_agent', 'closing_agent']
    search_fields = [
        'deal_id',
        'customer_name',
        'phone_number',
        'email',
        'sales_agent_name',
        'closing_agent_name',
    ]
    ordering_fields = ['signup_date', 'created_at', 'amount_paid', 'customer_name', 'status', 'stage']
    ordering = ['-signup_date', '-created_at']
    envelope_key = 'deals'
    log_resource = 'deals'

    def get_queryset(self):
        params = self.request.query_params
        qs = scope_queryset(super().get_queryset(), self.request.user, DEAL_SCOPE, params)
        if self.action in ('list', 'export'):
            qs = apply_list_filters(qs, params, 'signup_date')
        return qs

    def create(self, request, *args, **kwargs):
        serializer = DealWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            deal = create_deal(serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        data = DealSerializer(deal).data
        return success_response(data, message='Deal created', status=status.HTTP_201_CREATED, deal=data)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', None)
        deal = self.get_object()
        serializer = DealUpdateSerializer(deal, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            deal = update_deal(deal, serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        return success_response(DealSerializer(deal).data, message='Deal updated')

    @action(detail=False, methods=['get'], url_path='export')
    def export(self, request):
        """Export filtered deals to a CSV file."""
        qs = self.filter_queryset(self.get_queryset())
        return queryset_to_csv_response(qs, DEAL_EXPORT_COLUMNS, 'deals')

    def get_permissions(self):
        if self.action == 'import_csv':
            return [IsManager()]
        return super().get_permissions()

    @action(detail=False, methods=['post'], url_path='import')
    def import_csv(self, request):
        """Bulk import deals from an uploaded CSV file (multipart ``file``).

        Columns use the deal payload names or the export headers; customer
        name and amount are required. Each row goes through the same
        validation and defaults as a single create, and a bad row is
        reported by line without stopping the others.
        """
        content = decode_csv_upload(request.FILES.get('file'))
        reader = csv_dict_reader(content)
        columns = csv_columns(reader.fieldnames)
        if not columns:
            raise ValidationError({'file': 'No recognised deal columns in the CSV header.'})

        directory = agent_directory()
        deal_ids = []
        errors = []
        skipped = 0
        for row in reader:
            line_no = reader.line_num
            if is_blank_row(row):
                skipped += 1
                continue
            try:
                payload = deal_payload_from_row(row, columns, directory)
                serializer = DealWriteSerializer(data=payload)
                if not serializer.is_valid():
                    details = flatten_validation_errors(serializer.errors)
                    raise ValueError('; '.join(f"{d['field']}: {d['message']}" for d in details))
                deal = create_deal(serializer.validated_data, actor=request.user)
            except (ValueError, DjangoValidationError) as exc:
                message = '; '.join(exc.messages) if isinstance(exc, DjangoValidationError) else str(exc)
                errors.append({'line': line_no, 'message': message})
                continue
            deal_ids.append(deal.deal_id)

        logger.info(
            "CSV import by %s: %s imported, %s rejected, %s skipped",
            request.user, len(deal_ids), len(errors), skipped,
        )
        summary = {
            'imported': len(deal_ids),
            'rejected': len(errors),
            'skipped': skipped,
            'dealIds': deal_ids,
            'errors': errors,
        }
        if not deal_ids:
            return error_response(ErrorCode.VALIDATION_ERROR, 'No deals could be imported', details=errors)
        return success_response(
            summary,
            message=f'Imported {len(deal_ids)} deal(s)',
            status=status.HTTP_201_CREATED,
            imported=len(deal_ids),
        )


# ---------------------------------------------------------------------------
# Callback ViewSet
# ---------------------------------------------------------------------------

CALLBACK_EXPORT_COLUMNS = [
    ('customer_name', 'Customer'),
    ('phone_number', 'Phone'),
    ('email', 'Email'),
    ('country', 'Country'),
    (lambda o: _date(o.first_call_date), 'First Call Date'),
    (lambda o: _date(o.first_call_time, '%H:%M'), 'First Call Time'),
    (lambda o: _date(o.scheduled_date), 'Scheduled Date'),
    ('status', 'Status'),
    ('priority', 'Priority'),
    ('created_by_name', 'Agent'),
    ('sales_team', 'Team'),
    (lambda o: 'Yes' if o.converted_to_deal else 'No', 'Converted'),
    ('callback_reason', 'Reason'),
    ('callback_notes', 'Notes'),
]


class CallbackViewSet(
    ApiCallLogMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Callbacks visible to the caller.

    - update / partial_update: status transitions, notes, conversion flags
    - convert: create the Deal and complete the callback
    - stats: totals per status/priority and conversion rate
    - export: CSV of the filtered rows
    """

    queryset = Callback.objects.select_related('created_by', 'converted_by', 'deal')
    serializer_class = CallbackSerializer
    permission_classes = [IsSalesStaff]
    filterset_fields = ['created_by', 'converted_to_deal']
    search_fields = ['customer_name', 'phone_number', 'email', 'created_by_name']
    ordering_fields = ['first_call_date', 'scheduled_date', 'created_at', 'status', 'priority']
    ordering = ['-first_call_date', '-created_at']
    envelope_key = 'callbacks'
    log_resource = 'callbacks'

    def get_queryset(self):
        params = self.request.query_params
        qs = scope_queryset(super().get_queryset(), self.request.user, CALLBACK_SCOPE, params)
        if self.action in ('list', 'export', 'stats'):
            qs = apply_list_filters(qs, params, 'first_call_date', choice_fields=('status', 'priority'))
        return qs

    def create(self, request, *args, **kwargs):
        serializer = CallbackWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            callback = create_callback(serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        data = CallbackSerializer(callback).data
        return success_response(data, message='Callback created', status=status.HTTP_201_CREATED, callback=data)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', None)
        callback = self.get_object()
        serializer = CallbackUpdateSerializer(callback, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            callback = update_callback(callback, serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        return success_response(CallbackSerializer(callback).data, message='Callback updated')

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """Convert the callback into a deal."""
        callback = self.get_object()
        serializer = CallbackConvertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            deal = convert_callback(callback, serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        callback.refresh_from_db()
        return success_response(
            {'deal': DealSerializer(deal).data, 'callback': CallbackSerializer(callback).data},
            message='Callback converted to deal',
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Callback counters for the caller's scope and filters."""
        qs = self.filter_queryset(self.get_queryset())
        return success_response(callback_stats(qs))

    @action(detail=False, methods=['get'], url_path='export')
    def export(self, request):
        """Export filtered callbacks to a CSV file."""
        qs = self.filter_queryset(self.get_queryset())
        return queryset_to_csv_response(qs, CALLBACK_EXPORT_COLUMNS, 'callbacks')


# ---------------------------------------------------------------------------
# Target ViewSet
# ---------------------------------------------------------------------------

class SalesTargetViewSet(
    ApiCallLogMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Sales targets with live progress.

    Everyone reads the targets in their scope; only managers create or edit.
    """

    queryset = SalesTarget.objects.select_related('agent', 'manager')
    serializer_class = SalesTargetSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['agent', 'target_type']
    search_fields = ['agent_name', 'sales_team', 'manager_name']
    ordering_fields = ['period', 'created_at', 'monthly_target', 'agent_name']
    ordering = ['-created_at']
    envelope_key = 'targets'
    log_resource = 'targets'

    def get_queryset(self):
        params = self.request.query_params
        qs = scope_queryset(super().get_queryset(), self.request.user, TARGET_SCOPE, params)
        period = params.get('period')
        if period and period.strip().lower() != 'all':
            try:
                qs = qs.filter(period=normalize_period(period))
            except ValueError:
                qs = qs.filter(period__iexact=period.strip())
        return qs

    def create(self, request, *args, **kwargs):
        serializer = SalesTargetWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            target = create_target(serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        data = SalesTargetSerializer(target).data
        return success_response(data, message='Target created', status=status.HTTP_201_CREATED, target=data)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', None)
        target = self.get_object()
        serializer = SalesTargetWriteSerializer(target, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            target = update_target(target, serializer.validated_data, actor=request.user)
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        return success_response(SalesTargetSerializer(target).data, message='Target updated')


# ---------------------------------------------------------------------------
# Notification ViewSet
# ---------------------------------------------------------------------------

class NotificationViewSet(
    ApiCallLogMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Notifications addressed to the caller, with per-user read state.

    - list: filter by type, priority and unread=true
    - create: managers notify anyone (``to: ["ALL"]`` broadcasts), team
      leaders only their own team
    - read / read-all: mark one or every notification as read
    - unread-count: badge counter
    """

    queryset = Notification.objects.select_related('created_by')
    serializer_class = NotificationSerializer
    permission_classes = [CanSendNotifications]
    search_fields = ['title', 'message', 'created_by_name']
    ordering_fields = ['created_at', 'priority']
    ordering = ['-created_at']
    envelope_key = 'notifications'
    log_resource = 'notifications'

    def get_queryset(self):
        user = self.request.user
        qs = notification_services.visible_to(super().get_queryset(), user)
        qs = notification_services.with_read_state(qs, user)
        if self.action == 'list':
            params = self.request.query_params
            kind = params.get('type')
            if kind and kind != 'all':
                qs = qs.filter(notification_type=kind)
            priority = params.get('priority')
            if priority and priority != 'all':
                qs = qs.filter(priority=priority)
            if params.get('unread', '').lower() in TRUTHY:
                qs = qs.filter(is_read=False)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = NotificationWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            notification = notification_services.create_notification(
                serializer.validated_data, actor=request.user,
            )
        except ValueError as exc:
            return error_response(ErrorCode.BAD_REQUEST, str(exc))
        data = NotificationSerializer(notification).data
        return success_response(
            data, message='Notification sent', status=status.HTTP_201_CREATED, notification=data,
        )

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        """Mark a single notification as read for the caller."""
        notification = self.get_object()
        notification_services.mark_read(notification, request.user)
        notification.is_read = True
        return success_response(NotificationSerializer(notification).data, message='Notification marked as read')

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        """Mark every notification addressed to the caller as read."""
        updated = notification_services.mark_all_read(request.user)
        return success_response({'updated': updated}, message=f'{updated} notification(s) marked as read')

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return success_response({'unread': notification_services.unread_count(request.user)})


# ---------------------------------------------------------------------------
# Sales feed
# ---------------------------------------------------------------------------

def sales_feed_row(deal):
    agent_id = str(deal.sales_agent_id) if deal.sales_agent_id else ''
    closer_id = str(deal.closing_agent_id) if deal.closing_agent_id else ''
    return {
        'amount': deal.amount_paid,
        'sales_agent': deal.sales_agent_name,
        'closing_agent': deal.closing_agent_name,
        'team': deal.sales_team,
        'SalesAgentID': agent_id,
        'sales_agent_id': agent_id,
        'ClosingAgentID': closer_id,
        'closing_agent_id': closer_id,
        'DealID': deal.deal_id,
        'deal_id': deal.deal_id,
        'signup_date': _date(deal.signup_date),
        'service_tier': deal.service_tier,
    }


class SalesFeedView(ApiCallLogMixin, ListAPIView):
    """GET /api/sales - flat deal feed for the competition leaderboard."""

    permission_classes = [IsSalesStaff]
    envelope_key = 'sales'
    log_resource = 'sales'
    search_fields = ['customer_name', 'sales_agent_name', 'closing_agent_name']
    ordering_fields = ['signup_date', 'amount_paid', 'created_at']
    ordering = ['-signup_date', '-created_at']

    def get_queryset(self):
        params = self.request.query_params
        qs = scope_queryset(Deal.objects.all(), self.request.user, DEAL_SCOPE, params)
        return apply_list_filters(qs, params, 'signup_date')

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        return self.get_paginated_response([sales_feed_row(deal) for deal in page])


# ---------------------------------------------------------------------------
# Me
# ---------------------------------------------------------------------------

class MeView(ApiCallLogMixin, APIView):
    """
    GET /api/auth/me/ - return the authenticated user's profile.
    PATCH /api/auth/me/ - update first_name, last_name, phone.
    """

    permission_classes = [IsAuthenticated]
    log_resource = 'auth'

    def get(self, request):
        return success_response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = MeSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(serializer.data, message='Profile updated')
