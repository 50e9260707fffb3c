"""ORM-facing analytics: turn scoped querysets into engine records and payloads."""
from __future__ import annotations

from datetime import date
from typing import Any

from django.utils import timezone

from analytics import aggregation

TOP_AGENTS = 5


def deal_records(queryset) -> list[dict[str, Any]]:
    rows = queryset.values(
        "id",
        "deal_id",
        "customer_name",
        "amount_paid",
        "sales_agent_id",
        "sales_agent_name",
        "closing_agent_id",
        "closing_agent_name",
        "sales_team",
        "service_tier",
        "program_type",
        "status",
        "stage",
        "priority",
        "signup_date",
    )
    return [
        {
            "id": str(row["id"]),
            "deal_id": row["deal_id"],
            "customer_name": row["customer_name"],
            "amount_paid": row["amount_paid"],
            "sales_agent_id": str(row["sales_agent_id"]) if row["sales_agent_id"] else None,
            "sales_agent": row["sales_agent_name"],
            "closing_agent_id": str(row["closing_agent_id"]) if row["closing_agent_id"] else None,
            "closing_agent": row["closing_agent_name"],
            "sales_team": row["sales_team"],
            "service_tier": row["service_tier"],
            "program_type": row["program_type"],
            "status": row["status"],
            "stage": row["stage"],
            "priority": row["priority"],
            "signup_date": row["signup_date"],
        }
        for row in rows
    ]


def callback_records(queryset) -> list[dict[str, Any]]:
    rows = queryset.values(
        "id",
        "customer_name",
        "phone_number",
        "created_by_id",
        "created_by_name",
        "sales_team",
        "status",
        "priority",
        "converted_to_deal",
        "first_call_date",
        "scheduled_date",
    )
    return [
        {
            **row,
            "id": str(row["id"]),
            "created_by_id": str(row["created_by_id"]) if row["created_by_id"] else None,
        }
        for row in rows
    ]


def agent_leaderboard(deals_qs) -> list[dict[str, Any]]:
    return aggregation.aggregate_by_agent(deal_records(deals_qs))


def team_summary(deals_qs, callbacks_qs) -> list[dict[str, Any]]:
    return aggregation.aggregate_by_team(deal_records(deals_qs), callback_records(callbacks_qs))


def distribution(deals_qs, by: str = "service_tier") -> list[dict[str, Any]]:
    return aggregation.service_distribution(deal_records(deals_qs), by=by)


def callback_stats(callbacks_qs, today: date | None = None) -> dict[str, Any]:
    return aggregation.summarize_callbacks(callback_records(callbacks_qs), today or timezone.localdate())


def targets_progress(targets_qs) -> list[dict[str, Any]]:
    from targets.services import target_progress

    return [target_progress(target) for target in targets_qs]


def dashboard(user, deals_qs, callbacks_qs, targets_qs, today: date | None = None) -> dict[str, Any]:
    """KPI cards, leaderboards and the caller's own target for this month."""
    today = today or timezone.localdate()
    deals = deal_records(deals_qs)
    callbacks = callback_records(callbacks_qs)
    period = aggregation.period_label(today)
    month_deals = [d for d in deals if aggregation.in_period(d["signup_date"], period)]

    from targets.services import target_record

    my_target = aggregation.target_progress_for_agent(
        user.display_name,
        [target_record(t) for t in targets_qs.filter(period=period)],
        deals,
        today,
    )
    return {
        "period": period,
        "kpis": aggregation.kpi_summary(deals),
        "monthKpis": aggregation.kpi_summary(month_deals),
        "topAgents": aggregation.aggregate_by_agent(month_deals)[:TOP_AGENTS],
        "teams": aggregation.aggregate_by_team(deals, callbacks),
        "services": aggregation.service_distribution(deals),
        "callbacks": aggregation.summarize_callbacks(callbacks, today),
        "myTarget": my_target,
    }
