"""Aggregation engine for dashboards and reports.

Pure functions over lists of deal/callback/target records in any naming
convention. Nothing here touches the database or the network, and input
records are never mutated, so calling a function twice on the same input
returns equal results.
"""
from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from analytics.normalizers import (
    UNKNOWN_AGENT,
    ZERO,
    normalize_callback,
    normalize_deal,
    normalize_target,
)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

UNASSIGNED_TEAM = "Unassigned"
UNKNOWN_CATEGORY = "Unknown"

EXCEEDED = "exceeded"
ON_TRACK = "on-track"
BEHIND = "behind"

EXCEEDED_THRESHOLD = 100
BEHIND_THRESHOLD = 70

CENT = Decimal("0.01")

Record = Mapping[str, Any]


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _share(part, whole) -> float:
    if not whole:
        return 0.0
    return round(float(part) / float(whole) * 100, 2)


def _fold(name: str) -> str:
    return name.strip().casefold()


def period_label(day: date) -> str:
    """``"<Month> <Year>"``, e.g. ``"January 2025"``."""
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def in_period(day: date | None, period: str) -> bool:
    return day is not None and period_label(day) == period


# ---------------------------------------------------------------------------
# Per-agent
# ---------------------------------------------------------------------------

def aggregate_by_agent(deals: Iterable[Record]) -> list[dict[str, Any]]:
    """Group deals per sales agent, sorted by summed amount descending.

    Agents are keyed by id. Records without an id fall back to a
    case-insensitive name match, joining the id group that carries the same
    name when there is one.
    """
    rows = [normalize_deal(d) for d in deals]

    id_for_name: dict[str, str] = {}
    for row in rows:
        if row["agentId"] and row["agentName"]:
            id_for_name.setdefault(_fold(row["agentName"]), row["agentId"])

    groups: dict[tuple[str, str], dict[str, Any]] = {}
    for row in rows:
        name = row["agentName"] or UNKNOWN_AGENT
        agent_id = row["agentId"] or id_for_name.get(_fold(name))
        key = ("id", agent_id) if agent_id else ("name", _fold(name))
        group = groups.get(key)
        if group is None:
            group = groups[key] = {
                "agentId": agent_id,
                "agentName": name,
                "deals": 0,
                "amount": ZERO,
            }
        elif group["agentName"] == UNKNOWN_AGENT and row["agentName"]:
            group["agentName"] = row["agentName"]
        group["deals"] += 1
        group["amount"] += row["amount"]

    result = []
    for group in groups.values():
        count = group["deals"]
        group["avgDealSize"] = _money(group["amount"] / count) if count else ZERO
        result.append(group)
    # sorted() is stable: ties keep first-seen order.
    return sorted(result, key=lambda g: g["amount"], reverse=True)


# ---------------------------------------------------------------------------
# Per-team
# ---------------------------------------------------------------------------

def aggregate_by_team(
    deals: Iterable[Record],
    callbacks: Iterable[Record] = (),
) -> list[dict[str, Any]]:
    teams: dict[str, dict[str, Any]] = {}
    agents: dict[str, set[str]] = {}

    def bucket(label: str) -> dict[str, Any]:
        label = label or UNASSIGNED_TEAM
        if label not in teams:
            teams[label] = {"team": label, "deals": 0, "callbacks": 0, "revenue": ZERO, "agents": 0}
            agents[label] = set()
        return teams[label]

    for deal in map(normalize_deal, deals):
        entry = bucket(deal["team"])
        entry["deals"] += 1
        entry["revenue"] += deal["amount"]
        for name in (deal["agentName"], deal["closingAgentName"]):
            if name:
                agents[entry["team"]].add(_fold(name))

    for callback in map(normalize_callback, callbacks):
        bucket(callback["team"])["callbacks"] += 1

    for label, entry in teams.items():
        entry["agents"] = len(agents[label])
    return sorted(teams.values(), key=lambda t: t["revenue"], reverse=True)


# ---------------------------------------------------------------------------
# Service / program distribution
# ---------------------------------------------------------------------------

DISTRIBUTION_FIELDS = {
    "service_tier": "serviceTier",
    "program_type": "programType",
}


def service_distribution(deals: Iterable[Record], by: str = "service_tier") -> list[dict[str, Any]]:
    """Count and revenue per category with their shares (percent).

    Only categories that actually occur are returned.
    """
    try:
        field = DISTRIBUTION_FIELDS[by]
    except KeyError:
        raise ValueError(f"Unsupported distribution field: {by}") from None

    categories: dict[str, dict[str, Any]] = {}
    total_count = 0
    total_revenue = ZERO
    for deal in map(normalize_deal, deals):
        label = deal[field] or UNKNOWN_CATEGORY
        entry = categories.setdefault(label, {"label": label, "count": 0, "revenue": ZERO})
        entry["count"] += 1
        entry["revenue"] += deal["amount"]
        total_count += 1
        total_revenue += deal["amount"]

    for entry in categories.values():
        entry["revenueShare"] = _share(entry["revenue"], total_revenue)
        entry["countShare"] = _share(entry["count"], total_count)
    return sorted(categories.values(), key=lambda c: (c["revenue"], c["count"]), reverse=True)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

def progress(actual, goal) -> float:
    if not goal:
        return 0.0
    return round(float(actual) / float(goal) * 100, 2)


def classify_progress(revenue_progress: float, deals_progress: float) -> str:
    if revenue_progress >= EXCEEDED_THRESHOLD or deals_progress >= EXCEEDED_THRESHOLD:
        return EXCEEDED
    if revenue_progress < BEHIND_THRESHOLD and deals_progress < BEHIND_THRESHOLD:
        return BEHIND
    return ON_TRACK


def evaluate_target(target: Record, actual_revenue, actual_deals: int) -> dict[str, Any]:
    t = normalize_target(target)
    revenue = Decimal(str(actual_revenue))
    revenue_progress = progress(revenue, t["monthlyTarget"])
    deals_progress = progress(actual_deals, t["dealsTarget"])
    return {
        **t,
        "currentSales": revenue,
        "currentDeals": actual_deals,
        "revenueProgress": revenue_progress,
        "dealsProgress": deals_progress,
        "status": classify_progress(revenue_progress, deals_progress),
    }


def _deal_counts_for(target: Mapping[str, Any], deal: Mapping[str, Any]) -> bool:
    if target["type"] == "team":
        return bool(target["team"]) and _fold(deal["team"]) == _fold(target["team"])
    if target["agentId"] and deal["agentId"]:
        return target["agentId"] == deal["agentId"]
    return bool(target["agentName"]) and _fold(deal["agentName"]) == _fold(target["agentName"])


def target_actuals(target: Record, deals: Iterable[Record]) -> tuple[Decimal, int]:
    """Revenue and deal count credited to ``target`` within its period."""
    t = normalize_target(target)
    revenue = ZERO
    count = 0
    for deal in map(normalize_deal, deals):
        if in_period(deal["signupDate"], t["period"]) and _deal_counts_for(t, deal):
            revenue += deal["amount"]
            count += 1
    return revenue, count


def target_progress_for_agent(
    agent_name: str,
    targets: Iterable[Record],
    deals: Iterable[Record],
    today: date,
) -> dict[str, Any] | None:
    """Progress of ``agent_name`` against their target for today's period."""
    period = period_label(today)
    wanted = _fold(agent_name)
    for target in targets:
        t = normalize_target(target)
        if _fold(t["agentName"]) == wanted and t["period"] == period:
            revenue, count = target_actuals(target, deals)
            return evaluate_target(target, revenue, count)
    return None


def targets_overview(targets: Iterable[Record], deals: Iterable[Record]) -> list[dict[str, Any]]:
    deals = list(deals)
    results = []
    for target in targets:
        revenue, count = target_actuals(target, deals)
        results.append(evaluate_target(target, revenue, count))
    return results


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def kpi_summary(deals: Iterable[Record]) -> dict[str, Any]:
    count = 0
    revenue = ZERO
    for deal in map(normalize_deal, deals):
        count += 1
        revenue += deal["amount"]
    return {
        "totalDeals": count,
        "totalRevenue": revenue,
        "averageDealSize": _money(revenue / count) if count else ZERO,
    }


CALLBACK_STATUSES = ("pending", "contacted", "completed", "cancelled")
PRIORITIES = ("low", "medium", "high")


def summarize_callbacks(callbacks: Iterable[Record], today: date) -> dict[str, Any]:
    summary: dict[str, Any] = {"total": 0, **{status: 0 for status in CALLBACK_STATUSES}}
    summary.update(converted=0, today=0, scheduledToday=0)
    by_priority = {priority: 0 for priority in PRIORITIES}

    for callback in map(normalize_callback, callbacks):
        summary["total"] += 1
        if callback["status"] in CALLBACK_STATUSES:
            summary[callback["status"]] += 1
        if callback["convertedToDeal"]:
            summary["converted"] += 1
        if callback["firstCallDate"] == today:
            summary["today"] += 1
        if callback["scheduledDate"] == today:
            summary["scheduledToday"] += 1
        if callback["priority"] in by_priority:
            by_priority[callback["priority"]] += 1

    summary["conversionRate"] = _share(summary["converted"], summary["total"])
    summary["byPriority"] = by_priority
    return summary
