"""Normalization boundary for loosely-shaped deal/callback/target records.

Records reach the aggregation engine from the API, CSV imports or the legacy
sales feed, with the same field spelled ``amountPaid``, ``amount_paid`` or
``amount``. Each entity has a single normalizer that resolves those
spellings with a ``camel ?? Legacy ?? snake ?? default`` chain and returns a
plain dict with stable camelCase keys. Inputs are never mutated.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

ZERO = Decimal("0")

UNKNOWN_AGENT = "Unknown"


def pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first value among ``keys`` that is not ``None``."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    return int(result) if result.is_finite() else default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


# ---------------------------------------------------------------------------
# Entity normalizers
# ---------------------------------------------------------------------------

def normalize_deal(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _optional_text(pick(record, "id")),
        "dealId": _text(pick(record, "dealId", "DealID", "deal_id")),
        "customerName": _text(pick(record, "customerName", "customer_name")),
        "amount": to_decimal(pick(record, "amountPaid", "amount_paid", "amount")),
        "agentId": _optional_text(pick(record, "salesAgentId", "SalesAgentID", "sales_agent_id")),
        "agentName": _text(pick(record, "salesAgentName", "sales_agent", "agent")),
        "closingAgentId": _optional_text(pick(record, "closingAgentId", "ClosingAgentID", "closing_agent_id")),
        "closingAgentName": _text(pick(record, "closingAgentName", "closingAgent", "closing_agent")),
        "team": _text(pick(record, "salesTeam", "sales_team", "team")),
        "serviceTier": _text(pick(record, "serviceTier", "service_tier")),
        "programType": _text(pick(record, "programType", "program_type", "program")),
        "status": _text(pick(record, "status")),
        "stage": _text(pick(record, "stage")),
        "priority": _text(pick(record, "priority")),
        "signupDate": to_date(pick(record, "signupDate", "signup_date", "date")),
        "createdAt": pick(record, "createdAt", "created_at"),
    }


def normalize_callback(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _optional_text(pick(record, "id")),
        "customerName": _text(pick(record, "customerName", "customer_name")),
        "phoneNumber": _text(pick(record, "phoneNumber", "phone_number")),
        "agentId": _optional_text(pick(record, "createdById", "created_by_id", "created_by")),
        "agentName": _text(pick(record, "createdByName", "created_by_name", "agent")),
        "team": _text(pick(record, "salesTeam", "sales_team", "team")),
        "status": _text(pick(record, "status")) or "pending",
        "priority": _text(pick(record, "priority")) or "medium",
        "convertedToDeal": to_bool(pick(record, "convertedToDeal", "converted_to_deal", default=False)),
        "firstCallDate": to_date(pick(record, "firstCallDate", "first_call_date")),
        "scheduledDate": to_date(pick(record, "scheduledDate", "scheduled_date")),
        "createdAt": pick(record, "createdAt", "created_at"),
    }


def normalize_target(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _optional_text(pick(record, "id")),
        "agentId": _optional_text(pick(record, "agentId", "agent_id")),
        "agentName": _text(pick(record, "agentName", "agent_name")),
        "managerId": _optional_text(pick(record, "managerId", "manager_id")),
        "managerName": _text(pick(record, "managerName", "manager_name")),
        "team": _text(pick(record, "salesTeam", "sales_team", "team")),
        "period": _text(pick(record, "period")),
        "monthlyTarget": to_decimal(pick(record, "monthlyTarget", "monthly_target")),
        "dealsTarget": to_int(pick(record, "dealsTarget", "deals_target")),
        "type": _text(pick(record, "type", "targetType", "target_type")) or "individual",
        "description": _text(pick(record, "description")),
    }
