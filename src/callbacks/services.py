"""Business-logic / service functions for the callbacks app."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from django.db import transaction
from django.utils import timezone

from analytics.normalizers import pick
from callbacks.models import Callback
from deals.services import create_deal

logger = logging.getLogger("vmax")

Status = Callback.Status

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Status.PENDING: frozenset({Status.CONTACTED, Status.CANCELLED}),
    Status.CONTACTED: frozenset({Status.COMPLETED, Status.CANCELLED}),
    Status.COMPLETED: frozenset({Status.CANCELLED}),
    Status.CANCELLED: frozenset(),
}

CONVERTIBLE_STATUSES = frozenset({Status.PENDING, Status.CONTACTED})

CALLBACK_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "customer_name": ("customerName", "customer_name"),
    "phone_number": ("phoneNumber", "phone_number", "phone"),
    "email": ("email",),
    "country": ("country",),
    "first_call_date": ("firstCallDate", "first_call_date"),
    "first_call_time": ("firstCallTime", "first_call_time"),
    "scheduled_date": ("scheduledDate", "scheduled_date"),
    "callback_reason": ("callbackReason", "callback_reason"),
    "callback_notes": ("callbackNotes", "callback_notes"),
    "status": ("status",),
    "priority": ("priority",),
    "sales_team": ("salesTeam", "sales_team"),
    "converted_to_deal": ("convertedToDeal", "converted_to_deal"),
    "converted_at": ("convertedAt", "converted_at"),
    "converted_by": ("convertedBy", "converted_by"),
}


def normalize_callback_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map a camelCase or snake_case payload onto model field names."""
    result: dict[str, Any] = {}
    for field, keys in CALLBACK_FIELD_ALIASES.items():
        if any(key in data for key in keys):
            result[field] = pick(data, *keys)
    return result


def can_transition(current: str, new: str) -> bool:
    return current == new or new in ALLOWED_TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------------
# create_callback
# ---------------------------------------------------------------------------

def create_callback(data: dict[str, Any], actor=None) -> Callback:
    data = dict(data)
    if data.get("converted_to_deal"):
        raise ValueError("Use the convert action to turn a callback into a deal.")
    data.setdefault("first_call_date", timezone.localdate())
    if actor is not None:
        data.setdefault("created_by_name", actor.display_name)
        if not data.get("sales_team"):
            data["sales_team"] = actor.team or actor.managed_team

    data = {key: value for key, value in data.items() if value is not None}
    callback = Callback(created_by=actor, **data)
    callback.full_clean()
    callback.save()
    logger.info("Callback %s created for %s by %s", callback.pk, callback.customer_name, actor)
    return callback


# ---------------------------------------------------------------------------
# update_callback
# ---------------------------------------------------------------------------

def _check_convertible(callback: Callback) -> None:
    if callback.status not in CONVERTIBLE_STATUSES:
        raise ValueError(f"A {callback.status} callback cannot be converted.")


def _mark_converted(callback: Callback, actor, converted_at=None, converted_by=None) -> None:
    callback.converted_to_deal = True
    callback.status = Status.COMPLETED
    callback.converted_at = converted_at or timezone.now()
    callback.converted_by = converted_by or actor


@transaction.atomic
def update_callback(callback: Callback, changes: dict[str, Any], actor=None) -> Callback:
    """Apply status/notes edits.

    Setting ``converted_to_deal`` forces the status to completed and stamps
    the conversion; a conversion cannot be undone.
    """
    changes = dict(changes)
    converted = changes.pop("converted_to_deal", None)
    converted_at = changes.pop("converted_at", None)
    converted_by = changes.pop("converted_by", None)

    if callback.converted_to_deal:
        if converted is False:
            raise ValueError("A converted callback cannot be un-converted.")
        new_status = changes.get("status")
        if new_status and new_status != Status.COMPLETED:
            raise ValueError("A converted callback must stay completed.")

    new_status = changes.pop("status", None)
    if converted and not callback.converted_to_deal:
        _check_convertible(callback)
        _mark_converted(callback, actor, converted_at, converted_by)
    elif new_status and new_status != callback.status:
        if not can_transition(callback.status, new_status):
            raise ValueError(f"Cannot move a callback from {callback.status} to {new_status}.")
        callback.status = new_status

    for field, value in changes.items():
        setattr(callback, field, value)
    callback.full_clean()
    callback.save()
    logger.info("Callback %s updated by %s (status=%s)", callback.pk, actor, callback.status)
    return callback


# ---------------------------------------------------------------------------
# convert_callback
# ---------------------------------------------------------------------------

@transaction.atomic
def convert_callback(callback: Callback, deal_data: dict[str, Any], actor=None):
    """Create a Deal from ``callback`` and complete the callback.

    Returns the new deal. Customer details default to the callback's.
    """
    callback = Callback.objects.select_for_update().get(pk=callback.pk)
    if callback.converted_to_deal:
        raise ValueError("This callback has already been converted.")
    _check_convertible(callback)

    data = dict(deal_data)
    data.setdefault("customer_name", callback.customer_name)
    data.setdefault("phone_number", callback.phone_number)
    data.setdefault("email", callback.email)
    data.setdefault("country", callback.country)
    if not data.get("sales_team"):
        data["sales_team"] = callback.sales_team
    if data.get("sales_agent") is None and callback.created_by is not None and not data.get("sales_agent_name"):
        data["sales_agent"] = callback.created_by
    notes = data.get("notes") or callback.callback_notes
    if notes:
        data["notes"] = notes

    deal = create_deal(data, actor=actor, callback=callback)

    _mark_converted(callback, actor)
    callback.full_clean()
    callback.save()
    logger.info("Callback %s converted to deal %s by %s", callback.pk, deal.deal_id, actor)
    return deal
