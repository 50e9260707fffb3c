"""Server-side row scoping and list filters.

The caller's scope always comes from ``request.user``. ``userRole``,
``userId`` and ``managedTeam`` query parameters sent by dashboards are
ignored here, so they can never widen what a user sees.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from accounts.scoping import ALL, TEAM_KEY, RowFilter, Scope, policy_for


@dataclass(frozen=True)
class ScopeFields:
    """Model fields that carry the row owner and the team label."""

    owner: tuple[str, ...]
    team: str


DEAL_SCOPE = ScopeFields(owner=("sales_agent_id",), team="sales_team")
CALLBACK_SCOPE = ScopeFields(owner=("created_by_id",), team="sales_team")
TARGET_SCOPE = ScopeFields(owner=("agent_id",), team="sales_team")
USER_SCOPE = ScopeFields(owner=("id",), team="team")


def row_filter_q(row_filter: RowFilter, fields: ScopeFields) -> Q:
    conditions = []
    if row_filter.agent_id is not None:
        owner = Q()
        for field in fields.owner:
            owner |= Q(**{field: row_filter.agent_id})
        conditions.append(owner)
    if row_filter.team is not None:
        conditions.append(Q(**{f"{fields.team}__iexact": row_filter.team}))

    if not conditions:
        return Q()
    combined = conditions[0]
    for condition in conditions[1:]:
        combined = (combined | condition) if row_filter.match_any else (combined & condition)
    return combined


def scope_queryset(queryset, user, fields: ScopeFields, params=None):
    """Restrict ``queryset`` to the rows ``user`` may see."""
    scope = Scope.for_user(user)
    params = params or {}
    row_filter = policy_for(scope.role).row_filter(scope, {TEAM_KEY: params.get(TEAM_KEY) or params.get("team")})
    return queryset.filter(row_filter_q(row_filter, fields))


# ---------------------------------------------------------------------------
# Optional list filters
# ---------------------------------------------------------------------------

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def _wanted(value) -> bool:
    return value is not None and str(value).strip() != "" and str(value).strip().lower() != ALL


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError({name: f"Invalid date {value!r}; expected YYYY-MM-DD."}) from None


def _parse_month(value: str, year: str | None) -> tuple[int, int]:
    value = value.strip()
    match = _MONTH_RE.match(value)
    if match:
        result = int(match.group(1)), int(match.group(2))
    elif value.isdigit() and year and str(year).strip().isdigit():
        result = int(str(year).strip()), int(value)
    elif value.isdigit():
        result = timezone.localdate().year, int(value)
    else:
        raise ValidationError({"month": f"Invalid month {value!r}; expected YYYY-MM."})
    if not 1 <= result[1] <= 12:
        raise ValidationError({"month": f"Invalid month {value!r}."})
    return result


def apply_list_filters(queryset, params, date_field: str, choice_fields=("status", "stage", "priority")):
    """Apply exact-match choice filters and the from/to/month date filters.

    Empty values and ``"all"`` are ignored.
    """
    model_fields = {f.name for f in queryset.model._meta.get_fields()}
    for name in choice_fields:
        value = params.get(name)
        if name in model_fields and _wanted(value):
            queryset = queryset.filter(**{name: str(value).strip()})

    date_from = params.get("from") or params.get("date_from")
    date_to = params.get("to") or params.get("date_to")
    if _wanted(date_from):
        queryset = queryset.filter(**{f"{date_field}__gte": _parse_date(date_from, "from")})
    if _wanted(date_to):
        queryset = queryset.filter(**{f"{date_field}__lte": _parse_date(date_to, "to")})

    month = params.get("month")
    if _wanted(month):
        year, month_number = _parse_month(str(month), params.get("year"))
        queryset = queryset.filter(**{f"{date_field}__year": year, f"{date_field}__month": month_number})
    return queryset
