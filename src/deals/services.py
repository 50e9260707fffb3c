"""Business-logic / service functions for the deals app."""
from __future__ import annotations

import calendar
import logging
import time
from datetime import date
from typing import Any, Mapping

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from analytics.normalizers import pick
from core.export import normalize_header
from deals.models import IBO_PLAYER, IBO_PRO, IBOSS, Deal

User = get_user_model()
logger = logging.getLogger("vmax")

DEFAULT_DURATION_MONTHS = 12

# model field -> accepted payload keys, camelCase first, then legacy, then snake_case.
DEAL_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "deal_id": ("dealId", "DealID", "deal_id"),
    "customer_name": ("customerName", "customer_name"),
    "phone_number": ("phoneNumber", "phone_number", "phone"),
    "email": ("email",),
    "country": ("country",),
    "custom_country": ("customCountry", "custom_country"),
    "amount_paid": ("amountPaid", "amount_paid", "amount"),
    "signup_date": ("signupDate", "signup_date"),
    "end_date": ("endDate", "end_date"),
    "duration_months": ("durationMonths", "duration_months"),
    "duration_years": ("durationYears", "duration_years"),
    "number_of_users": ("numberOfUsers", "number_of_users"),
    "service_tier": ("serviceTier", "service_tier"),
    "program_type": ("programType", "program_type", "program"),
    "device_type": ("deviceType", "device_type", "device"),
    "device_key": ("deviceKey", "device_key"),
    "device_id": ("deviceId", "device_id"),
    "is_ibo_player": ("isIboPlayer", "is_ibo_player"),
    "is_ibo_pro": ("isIboPro", "is_ibo_pro"),
    "is_iboss": ("isIboss", "is_iboss"),
    "invoice_link": ("invoiceLink", "invoice_link"),
    "sales_agent": ("salesAgentId", "SalesAgentID", "sales_agent_id"),
    "sales_agent_name": ("salesAgentName", "sales_agent_name", "sales_agent"),
    "closing_agent": ("closingAgentId", "ClosingAgentID", "closing_agent_id"),
    "closing_agent_name": ("closingAgentName", "closingAgent", "closing_agent_name", "closing_agent"),
    "sales_team": ("salesTeam", "sales_team"),
    "status": ("status",),
    "stage": ("stage",),
    "priority": ("priority",),
    "notes": ("notes",),
}


def normalize_deal_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map an incoming payload in any naming convention onto model field names.

    Only fields present in ``data`` are returned, so the result also works
    for partial updates.
    """
    result: dict[str, Any] = {}
    for field, keys in DEAL_FIELD_ALIASES.items():
        if any(key in data for key in keys):
            result[field] = pick(data, *keys)
    return result


def generate_deal_id() -> str:
    """``D<epoch millis>``, bumped until unused."""
    stamp = int(time.time() * 1000)
    while Deal.objects.filter(deal_id=f"D{stamp}").exists():
        stamp += 1
    return f"D{stamp}"


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def program_flags(program_type: str) -> dict[str, bool]:
    """Device/program flags implied by a program label such as ``"IBO PRO"``."""
    label = (program_type or "").upper()
    return {
        "is_ibo_player": IBO_PLAYER in label,
        "is_ibo_pro": IBO_PRO in label,
        "is_iboss": IBOSS in label,
    }


def _check_agent_allowed(actor, agent) -> None:
    if actor is None or actor.is_superuser or actor.is_manager:
        return
    if agent is None or agent.pk == actor.pk:
        return
    if actor.is_team_leader and actor.managed_team and agent.team == actor.managed_team:
        return
    raise ValueError("You can only record deals for yourself or your own team.")


def _same_name(left, right) -> bool:
    return (left or "").strip().casefold() == (right or "").strip().casefold()


def _allowed_agents(actor):
    if actor.is_team_leader and actor.managed_team:
        return User.objects.filter(Q(pk=actor.pk) | Q(team=actor.managed_team, is_active=True))
    return User.objects.filter(pk=actor.pk)


def resolve_sales_agent(actor, agent=None, name=None):
    """Return the user a deal is credited to when ``actor`` records it.

    Managers may credit anyone, including a free-text name with no account.
    Everyone else is limited to themself (team leaders also to their team),
    and a bare ``name`` must match one of those agents.
    """
    if actor is None or actor.is_superuser or actor.is_manager:
        return agent
    if agent is None:
        if not name:
            return actor
        agent = next((u for u in _allowed_agents(actor) if _same_name(u.display_name, name)), None)
        if agent is None:
            raise ValueError("You can only record deals for yourself or your own team.")
    _check_agent_allowed(actor, agent)
    if name and not _same_name(agent.display_name, name):
        raise ValueError("Sales agent name does not match the selected agent.")
    return agent


# ---------------------------------------------------------------------------
# create_deal
# ---------------------------------------------------------------------------

@transaction.atomic
def create_deal(data: dict[str, Any], actor=None, callback=None) -> Deal:
    """Create a deal from validated model-field data.

    Fills the defaults a bare payload leaves out: a generated ``deal_id``,
    the actor as sales agent, agent display names, the agent's team, a
    12-month duration, the end date and the program flags.
    """
    data = dict(data)
    if not data.get("customer_name"):
        raise ValueError("Customer name is required.")

    sales_agent = resolve_sales_agent(actor, data.get("sales_agent"), data.get("sales_agent_name"))
    if sales_agent is None and actor is not None and not data.get("sales_agent_name"):
        sales_agent = actor
    data["sales_agent"] = sales_agent

    if sales_agent is not None and not data.get("sales_agent_name"):
        data["sales_agent_name"] = sales_agent.display_name
    closing_agent = data.get("closing_agent")
    if closing_agent is not None and not data.get("closing_agent_name"):
        data["closing_agent_name"] = closing_agent.display_name
    if not data.get("closing_agent_name"):
        data["closing_agent_name"] = data.get("sales_agent_name", "")
        data.setdefault("closing_agent", sales_agent)
    if not data.get("sales_team") and sales_agent is not None:
        data["sales_team"] = sales_agent.team or getattr(sales_agent, "managed_team", "")

    if not data.get("duration_months") and not data.get("duration_years"):
        data["duration_months"] = DEFAULT_DURATION_MONTHS
    data["signup_date"] = data.get("signup_date") or timezone.localdate()
    if not data.get("end_date"):
        total = (data.get("duration_years") or 0) * 12 + (data.get("duration_months") or 0)
        data["end_date"] = add_months(data["signup_date"], total)

    for flag, value in program_flags(data.get("program_type", "")).items():
        if data.get(flag) is None:
            data[flag] = value
    if not data.get("deal_id"):
        data["deal_id"] = generate_deal_id()

    data = {key: value for key, value in data.items() if value is not None}
    deal = Deal(created_by=actor, converted_from_callback=callback, **data)
    deal.full_clean(exclude=["converted_from_callback"])
    deal.save()
    logger.info(
        "Deal %s created for %s (agent=%s, team=%s)",
        deal.deal_id, deal.customer_name, deal.sales_agent_name, deal.sales_team,
    )
    return deal


# ---------------------------------------------------------------------------
# update_deal
# ---------------------------------------------------------------------------

IMMUTABLE_FIELDS = frozenset({"deal_id", "created_by", "converted_from_callback"})


@transaction.atomic
def update_deal(deal: Deal, changes: dict[str, Any], actor=None) -> Deal:
    """Apply a partial update; deal ids and provenance are never rewritten."""
    blocked = IMMUTABLE_FIELDS.intersection(changes)
    if blocked:
        raise ValueError(f"Field(s) cannot be changed: {', '.join(sorted(blocked))}.")
    changes = dict(changes)
    if "sales_agent" in changes or "sales_agent_name" in changes:
        agent = resolve_sales_agent(actor, changes.get("sales_agent"), changes.get("sales_agent_name"))
        if agent is not None:
            changes["sales_agent"] = agent

    before = {field: getattr(deal, field) for field in changes}
    for field, value in changes.items():
        setattr(deal, field, value)
    if "sales_agent" in changes and changes["sales_agent"] is not None and "sales_agent_name" not in changes:
        deal.sales_agent_name = changes["sales_agent"].display_name
    if "program_type" in changes:
        for flag, value in program_flags(deal.program_type).items():
            if flag not in changes:
                setattr(deal, flag, value)

    deal.full_clean(exclude=["converted_from_callback"])
    deal.save()
    logger.info(
        "Deal %s updated by %s: %s",
        deal.deal_id, actor, ", ".join(f"{k}={before[k]!r}->{changes[k]!r}" for k in changes),
    )
    return deal


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------

# Column labels seen in spreadsheets and older exports, beyond the payload aliases.
CSV_EXTRA_HEADERS: dict[str, tuple[str, ...]] = {
    "deal_id": ("Deal ID",),
    "customer_name": ("customer",),
    "amount_paid": ("Amount Paid",),
    "signup_date": ("date", "Signup Date"),
    "end_date": ("End Date",),
    "duration_months": ("duration", "Duration (months)"),
    "number_of_users": ("users",),
    "invoice_link": ("invoice",),
    "sales_team": ("team",),
}


def csv_columns(fieldnames) -> dict[str, str]:
    """Map CSV column names onto deal fields; unknown columns are dropped."""
    lookup: dict[str, str] = {}
    for field, keys in DEAL_FIELD_ALIASES.items():
        for key in keys + CSV_EXTRA_HEADERS.get(field, ()):
            lookup.setdefault(normalize_header(key), field)
    columns = {}
    for name in fieldnames or ():
        field = lookup.get(normalize_header(name))
        if field is not None and field not in columns.values():
            columns[name] = field
    return columns


def agent_directory() -> dict[str, Any]:
    """Active users keyed by case-folded display name."""
    return {user.display_name.casefold(): user for user in User.objects.filter(is_active=True)}


def deal_payload_from_row(row: Mapping[str, Any], columns: dict[str, str], directory=None) -> dict[str, Any]:
    """Turn one CSV row into a deal payload keyed like the JSON API.

    Agent names that match an active user are linked to that user; ids that
    do not point at an active user are dropped in favour of the name.
    """
    values: dict[str, str] = {}
    for column, field in columns.items():
        text = str(row.get(column) or "").strip()
        if text:
            values[field] = text
    if not values.get("customer_name") or not values.get("amount_paid"):
        raise ValueError("Missing required fields (customer name, amount).")
    values["amount_paid"] = values["amount_paid"].replace(",", "").replace("$", "").strip()

    directory = agent_directory() if directory is None else directory
    known_ids = {str(user.pk) for user in directory.values()}
    for id_field, name_field in (("sales_agent", "sales_agent_name"), ("closing_agent", "closing_agent_name")):
        if values.get(id_field) not in known_ids:
            values.pop(id_field, None)
            user = directory.get(values.get(name_field, "").casefold())
            if user is not None:
                values[id_field] = str(user.pk)

    return {DEAL_FIELD_ALIASES[field][0]: value for field, value in values.items()}
