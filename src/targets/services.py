"""Business-logic / service functions for the targets app."""
from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from analytics.aggregation import MONTH_NAMES, evaluate_target, period_label, target_actuals
from targets.models import SalesTarget

logger = logging.getLogger("vmax")


def current_period(today: date | None = None) -> str:
    return period_label(today or timezone.localdate())


def parse_period(period: str) -> tuple[int, int]:
    """``"January 2025"`` or ``"2025-01"`` -> ``(2025, 1)``; raises ValueError otherwise."""
    try:
        text = period.strip()
        if "-" in text:
            year, month = (int(part) for part in text.split("-"))
            if not 1 <= month <= 12:
                raise ValueError(text)
            return year, month
        month_name, year = text.split()
        return int(year), MONTH_NAMES.index(month_name.capitalize()) + 1
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid period {period!r}; expected '<Month> <Year>'.") from None


def normalize_period(period: str) -> str:
    year, month = parse_period(period)
    return f"{MONTH_NAMES[month - 1]} {year}"


def period_bounds(period: str) -> tuple[date, date]:
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _fill_names(data: dict[str, Any]) -> None:
    agent = data.get("agent")
    if agent is not None:
        if not data.get("agent_name"):
            data["agent_name"] = agent.display_name
        if not data.get("sales_team"):
            data["sales_team"] = agent.team
    manager = data.get("manager")
    if manager is not None and not data.get("manager_name"):
        data["manager_name"] = manager.display_name


@transaction.atomic
def create_target(data: dict[str, Any], actor=None) -> SalesTarget:
    data = dict(data)
    data["period"] = normalize_period(data.get("period") or current_period())
    data.setdefault("manager", actor)
    _fill_names(data)
    data = {key: value for key, value in data.items() if value is not None}

    target = SalesTarget(**data)
    target.full_clean(validate_unique=False, validate_constraints=False)
    try:
        with transaction.atomic():
            target.save()
    except IntegrityError:
        raise ValueError(f"{target.agent_name} already has a target for {target.period}.") from None
    logger.info("Target %s created for %s (%s) by %s", target.pk, target.agent_name, target.period, actor)
    return target


@transaction.atomic
def update_target(target: SalesTarget, changes: dict[str, Any], actor=None) -> SalesTarget:
    changes = dict(changes)
    if "period" in changes:
        changes["period"] = normalize_period(changes["period"])
    for field, value in changes.items():
        setattr(target, field, value)
    if "agent" in changes and "agent_name" not in changes and target.agent is not None:
        target.agent_name = target.agent.display_name
    target.full_clean(validate_unique=False, validate_constraints=False)
    try:
        with transaction.atomic():
            target.save()
    except IntegrityError:
        raise ValueError(f"{target.agent_name} already has a target for {target.period}.") from None
    logger.info("Target %s updated by %s", target.pk, actor)
    return target


def target_record(target: SalesTarget) -> dict[str, Any]:
    return {
        "id": str(target.pk),
        "agentId": str(target.agent_id) if target.agent_id else None,
        "agentName": target.agent_name,
        "managerId": str(target.manager_id) if target.manager_id else None,
        "managerName": target.manager_name,
        "salesTeam": target.sales_team,
        "period": target.period,
        "monthlyTarget": target.monthly_target,
        "dealsTarget": target.deals_target,
        "type": target.target_type,
        "description": target.description,
    }


def target_progress(target: SalesTarget) -> dict[str, Any]:
    """Current sales, deals, progress percentages and status for ``target``."""
    from analytics.services import deal_records
    from deals.models import Deal

    start, end = period_bounds(target.period)
    deals = Deal.objects.filter(signup_date__gte=start, signup_date__lte=end)
    if target.target_type == SalesTarget.TargetType.TEAM:
        deals = deals.filter(sales_team__iexact=target.sales_team)
    elif target.agent_id:
        deals = deals.filter(sales_agent_id=target.agent_id)
    else:
        deals = deals.filter(sales_agent_name__iexact=target.agent_name)

    record = target_record(target)
    revenue, count = target_actuals(record, deal_records(deals))
    return evaluate_target(record, revenue, count)
