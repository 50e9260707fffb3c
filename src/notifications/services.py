"""Business-logic / service functions for the notifications app."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Exists, OuterRef, Q

from notifications.models import Notification, NotificationRead

User = get_user_model()
logger = logging.getLogger("vmax")

BROADCAST = "ALL"


def _sees_everything(user) -> bool:
    return user.is_superuser or user.is_manager


def addressed_to(user) -> Q:
    """Notifications sent to ``user`` directly or to everyone."""
    return Q(broadcast=True) | Q(recipients=user)


def visible_to(queryset, user):
    """Managers see every notification; others what was sent to them or by them."""
    if _sees_everything(user):
        return queryset
    return queryset.filter(addressed_to(user) | Q(created_by=user)).distinct()


def with_read_state(queryset, user):
    """Annotate ``is_read`` for ``user``."""
    reads = NotificationRead.objects.filter(notification=OuterRef("pk"), user=user)
    return queryset.annotate(is_read=Exists(reads))


# ---------------------------------------------------------------------------
# create_notification
# ---------------------------------------------------------------------------

def _parse_ids(values: Iterable[Any]) -> list[uuid.UUID]:
    ids = []
    for value in values:
        try:
            ids.append(uuid.UUID(str(value).strip()))
        except ValueError:
            raise ValueError(f"Unknown recipient: {value}.") from None
    return ids


def resolve_recipients(to, actor) -> tuple[bool, list]:
    """Turn a ``to`` list into ``(broadcast, users)`` for ``actor``.

    ``"ALL"`` broadcasts and is reserved to managers. Team leaders may only
    address themselves and members of the team they manage.
    """
    if isinstance(to, str):
        to = [to]
    to = [value for value in (to or []) if str(value).strip()]
    if not to:
        raise ValueError('Notifications need at least one recipient in "to".')

    if any(str(value).strip().upper() == BROADCAST for value in to):
        if actor is not None and not _sees_everything(actor):
            raise ValueError("Only managers can notify everyone.")
        return True, []

    ids = _parse_ids(to)
    users = list(User.objects.filter(pk__in=ids, is_active=True))
    missing = set(ids) - {user.pk for user in users}
    if missing:
        raise ValueError(f"Unknown recipient(s): {', '.join(sorted(str(pk) for pk in missing))}.")

    if actor is not None and not _sees_everything(actor):
        team = actor.managed_team if actor.is_team_leader else ""
        outside = [u for u in users if u.pk != actor.pk and not (team and u.team == team)]
        if outside:
            raise ValueError("Team leaders can only notify members of their own team.")
    return False, users


@transaction.atomic
def create_notification(data: dict[str, Any], actor=None) -> Notification:
    data = dict(data)
    broadcast, users = resolve_recipients(data.pop("to", None), actor)
    if actor is not None:
        data.setdefault("created_by_name", actor.display_name)
    data = {key: value for key, value in data.items() if value is not None}

    notification = Notification(created_by=actor, broadcast=broadcast, **data)
    notification.full_clean()
    notification.save()
    notification.recipients.set(users)
    logger.info(
        "Notification %s sent by %s to %s",
        notification.pk, actor, BROADCAST if broadcast else len(users),
    )
    return notification


# ---------------------------------------------------------------------------
# Read state
# ---------------------------------------------------------------------------

def mark_read(notification: Notification, user) -> bool:
    """Mark ``notification`` read for ``user``; False when it already was."""
    _, created = NotificationRead.objects.get_or_create(notification=notification, user=user)
    return created


def unread_for(user):
    return (
        Notification.objects.filter(addressed_to(user))
        .exclude(reads__user=user)
        .distinct()
    )


@transaction.atomic
def mark_all_read(user) -> int:
    """Mark every notification addressed to ``user`` as read; returns how many changed."""
    pending = list(unread_for(user).values_list("pk", flat=True))
    NotificationRead.objects.bulk_create(
        [NotificationRead(notification_id=pk, user=user) for pk in pending],
        ignore_conflicts=True,
    )
    if pending:
        logger.info("%s marked %s notification(s) as read", user, len(pending))
    return len(pending)


def unread_count(user) -> int:
    return unread_for(user).count()
