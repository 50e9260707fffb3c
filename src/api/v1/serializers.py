"""Serializers for the Vmax Sales API v1."""
from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from analytics.normalizers import pick
from callbacks.models import Callback
from callbacks.services import normalize_callback_payload
from deals.models import Deal
from deals.services import normalize_deal_payload
from notifications.models import Notification
from notifications.services import BROADCAST
from targets.models import SalesTarget

User = get_user_model()


def _active_users():
    return User.objects.filter(is_active=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserSerializer(serializers.ModelSerializer):
    """Read serializer for role/team lookups."""

    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'name',
            'phone', 'role', 'team', 'managed_team', 'is_active',
        ]
        read_only_fields = fields


class MeSerializer(serializers.ModelSerializer):
    """Serializer for the authenticated user's own profile (GET/PATCH).

    Includes ``is_superuser`` because this is the user's own data (safe).
    """

    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'name',
            'phone', 'role', 'team', 'managed_team', 'is_active', 'is_superuser',
        ]
        read_only_fields = [
            'id', 'email', 'role', 'team', 'managed_team', 'is_active', 'is_superuser',
        ]


class UserWriteSerializer(serializers.ModelSerializer):
    """Manager-side create/update; ``name`` is split into first and last name."""

    name = serializers.CharField(write_only=True, required=False, allow_blank=True)
    password = serializers.CharField(write_only=True, required=False, min_length=8)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'name', 'phone',
            'role', 'team', 'managed_team', 'is_active', 'password',
        ]
        read_only_fields = ['id']
        extra_kwargs = {
            'first_name': {'required': False},
        }

    def validate_password(self, value):
        from django.contrib.auth.password_validation import validate_password
        from django.core.exceptions import ValidationError as DjangoValidationError
        try:
            validate_password(value)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(list(exc.messages))
        return value

    def validate(self, attrs):
        name = (attrs.pop('name', '') or '').strip()
        if name and not attrs.get('first_name'):
            first, _, last = name.partition(' ')
            attrs['first_name'] = first
            attrs.setdefault('last_name', last.strip())

        instance = self.instance
        if instance is None:
            if not attrs.get('first_name'):
                raise serializers.ValidationError({'first_name': 'A first name or full name is required.'})
            if not attrs.get('password'):
                raise serializers.ValidationError({'password': 'A password is required for new users.'})

        role = attrs.get('role', getattr(instance, 'role', None))
        managed_team = attrs.get('managed_team', getattr(instance, 'managed_team', ''))
        if role == User.Role.TEAM_LEADER and not managed_team:
            raise serializers.ValidationError({'managed_team': 'Team leaders need the team they manage.'})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


# ---------------------------------------------------------------------------
# Custom JWT Serializer (includes user data in token response)
# ---------------------------------------------------------------------------

class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Extends JWT token response to include user profile data."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        token['team'] = user.team
        token['managed_team'] = user.managed_team
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = MeSerializer(self.user).data
        return data


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------

class DealSerializer(serializers.ModelSerializer):
    """Read serializer; agent names sit under the legacy ``sales_agent`` keys."""

    DealID = serializers.CharField(source='deal_id', read_only=True)
    sales_agent = serializers.CharField(source='sales_agent_name', read_only=True)
    sales_agent_id = serializers.UUIDField(read_only=True)
    SalesAgentID = serializers.UUIDField(source='sales_agent_id', read_only=True)
    closing_agent = serializers.CharField(source='closing_agent_name', read_only=True)
    closing_agent_id = serializers.UUIDField(read_only=True)
    ClosingAgentID = serializers.UUIDField(source='closing_agent_id', read_only=True)
    total_months = serializers.IntegerField(read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id', 'deal_id', 'DealID',
            'customer_name', 'phone_number', 'email', 'country', 'custom_country',
            'amount_paid', 'signup_date', 'end_date',
            'duration_months', 'duration_years', 'total_months', 'number_of_users',
            'service_tier', 'program_type', 'device_type', 'device_key', 'device_id',
            'is_ibo_player', 'is_ibo_pro', 'is_iboss', 'invoice_link',
            'sales_agent', 'sales_agent_id', 'SalesAgentID',
            'closing_agent', 'closing_agent_id', 'ClosingAgentID',
            'sales_team', 'status', 'stage', 'priority', 'notes',
            'created_by', 'converted_from_callback', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class DealWriteSerializer(serializers.ModelSerializer):
    """Create/update payloads in camelCase, legacy or snake_case spelling."""

    sales_agent = serializers.PrimaryKeyRelatedField(
        queryset=_active_users(), required=False, allow_null=True,
    )
    closing_agent = serializers.PrimaryKeyRelatedField(
        queryset=_active_users(), required=False, allow_null=True,
    )

    class Meta:
        model = Deal
        fields = [
            'deal_id', 'customer_name', 'phone_number', 'email', 'country', 'custom_country',
            'amount_paid', 'signup_date', 'end_date',
            'duration_months', 'duration_years', 'number_of_users',
            'service_tier', 'program_type', 'device_type', 'device_key', 'device_id',
            'is_ibo_player', 'is_ibo_pro', 'is_iboss', 'invoice_link',
            'sales_agent', 'sales_agent_name', 'closing_agent', 'closing_agent_name',
            'sales_team', 'status', 'stage', 'priority', 'notes',
        ]
        extra_kwargs = {
            'deal_id': {'required': False},
            'amount_paid': {'min_value': 0},
            'signup_date': {'required': False},
            'is_ibo_player': {'required': False, 'default': None, 'allow_null': True},
            'is_ibo_pro': {'required': False, 'default': None, 'allow_null': True},
            'is_iboss': {'required': False, 'default': None, 'allow_null': True},
        }

    def to_internal_value(self, data):
        return super().to_internal_value(normalize_deal_payload(data))


class DealUpdateSerializer(DealWriteSerializer):
    class Meta(DealWriteSerializer.Meta):
        fields = [f for f in DealWriteSerializer.Meta.fields if f != 'deal_id']
        extra_kwargs = {
            'amount_paid': {'min_value': 0},
        }


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------

class CallbackSerializer(serializers.ModelSerializer):
    created_by_id = serializers.UUIDField(read_only=True)
    deal_id = serializers.SerializerMethodField()

    class Meta:
        model = Callback
        fields = [
            'id', 'customer_name', 'phone_number', 'email', 'country',
            'first_call_date', 'first_call_time', 'scheduled_date',
            'callback_reason', 'callback_notes', 'status', 'priority',
            'created_by', 'created_by_id', 'created_by_name', 'sales_team',
            'converted_to_deal', 'converted_at', 'converted_by', 'deal_id',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_deal_id(self, obj):
        deal = getattr(obj, 'deal', None) if obj.converted_to_deal else None
        return deal.deal_id if deal is not None else None


class CallbackWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Callback
        fields = [
            'customer_name', 'phone_number', 'email', 'country',
            'first_call_date', 'first_call_time', 'scheduled_date',
            'callback_reason', 'callback_notes', 'priority', 'sales_team',
        ]
        extra_kwargs = {
            'first_call_date': {'required': False},
        }

    def to_internal_value(self, data):
        return super().to_internal_value(normalize_callback_payload(data))


class CallbackUpdateSerializer(serializers.ModelSerializer):
    converted_by = serializers.PrimaryKeyRelatedField(
        queryset=_active_users(), required=False, allow_null=True,
    )

    class Meta:
        model = Callback
        fields = [
            'status', 'callback_notes', 'callback_reason', 'priority',
            'scheduled_date', 'first_call_time',
            'converted_to_deal', 'converted_at', 'converted_by',
        ]

    def to_internal_value(self, data):
        return super().to_internal_value(normalize_callback_payload(data))


class CallbackConvertSerializer(DealWriteSerializer):
    """Deal fields for a conversion; customer details default to the callback's."""

    class Meta(DealWriteSerializer.Meta):
        extra_kwargs = {
            **DealWriteSerializer.Meta.extra_kwargs,
            'customer_name': {'required': False},
        }


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

TARGET_FIELD_ALIASES = {
    'agent': ('agentId', 'agent_id', 'agent'),
    'agent_name': ('agentName', 'agent_name'),
    'manager': ('managerId', 'manager_id', 'manager'),
    'manager_name': ('managerName', 'manager_name'),
    'sales_team': ('salesTeam', 'sales_team'),
    'period': ('period',),
    'monthly_target': ('monthlyTarget', 'monthly_target'),
    'deals_target': ('dealsTarget', 'deals_target'),
    'target_type': ('type', 'targetType', 'target_type'),
    'description': ('description',),
}


class SalesTargetSerializer(serializers.ModelSerializer):
    """Target with derived progress (current sales, percentages, status)."""

    class Meta:
        model = SalesTarget
        fields = [
            'id', 'agent', 'agent_name', 'sales_team', 'manager', 'manager_name',
            'period', 'monthly_target', 'deals_target', 'target_type', 'description',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        from targets.services import target_progress

        data = super().to_representation(instance)
        progress = target_progress(instance)
        data.update({
            'agentId': data['agent'],
            'agentName': instance.agent_name,
            'monthlyTarget': data['monthly_target'],
            'dealsTarget': instance.deals_target,
            'type': instance.target_type,
            'currentSales': progress['currentSales'],
            'currentDeals': progress['currentDeals'],
            'revenueProgress': progress['revenueProgress'],
            'dealsProgress': progress['dealsProgress'],
            'status': progress['status'],
        })
        return data


class SalesTargetWriteSerializer(serializers.ModelSerializer):
    agent = serializers.PrimaryKeyRelatedField(
        queryset=_active_users(), required=False, allow_null=True,
    )
    manager = serializers.PrimaryKeyRelatedField(
        queryset=_active_users(), required=False, allow_null=True,
    )

    class Meta:
        model = SalesTarget
        fields = [
            'agent', 'agent_name', 'sales_team', 'manager', 'manager_name',
            'period', 'monthly_target', 'deals_target', 'target_type', 'description',
        ]
        extra_kwargs = {
            'period': {'required': False},
            'monthly_target': {'min_value': 0},
        }
        # (agent, period) uniqueness is reported by the service as a 400.
        validators = []

    def to_internal_value(self, data):
        normalized = {
            field: pick(data, *keys)
            for field, keys in TARGET_FIELD_ALIASES.items()
            if any(key in data for key in keys)
        }
        return super().to_internal_value(normalized)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationSerializer(serializers.ModelSerializer):
    """Notification with the reader's read state and the legacy ``to`` list."""

    type = serializers.CharField(source='notification_type', read_only=True)
    to = serializers.SerializerMethodField()
    read = serializers.SerializerMethodField()
    timestamp = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'title', 'message', 'type', 'priority', 'broadcast', 'to',
            'created_by', 'created_by_name', 'read', 'timestamp', 'created_at',
        ]
        read_only_fields = fields

    def get_to(self, obj):
        if obj.broadcast:
            return [BROADCAST]
        return [str(pk) for pk in obj.recipients.values_list('pk', flat=True)]

    def get_read(self, obj):
        return bool(getattr(obj, 'is_read', False))


NOTIFICATION_FIELD_ALIASES = {
    'title': ('title',),
    'message': ('message', 'body'),
    'notification_type': ('type', 'notificationType', 'notification_type'),
    'priority': ('priority',),
    'to': ('to', 'recipients'),
}


class NotificationWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False, allow_blank=False)
    message = serializers.CharField()
    notification_type = serializers.ChoiceField(choices=Notification.Type.choices, required=False)
    priority = serializers.ChoiceField(choices=Notification.Priority.choices, required=False)
    to = serializers.ListField(child=serializers.CharField(), min_length=1)

    def to_internal_value(self, data):
        normalized = {
            field: pick(data, *keys)
            for field, keys in NOTIFICATION_FIELD_ALIASES.items()
            if any(key in data for key in keys)
        }
        if isinstance(normalized.get('to'), str):
            normalized['to'] = [normalized['to']]
        return super().to_internal_value(normalized)
