"""Core Celery tasks: API audit trail."""
import logging

from celery import shared_task

logger = logging.getLogger("vmax")


@shared_task(name="core.record_api_call", ignore_result=True)
def record_api_call(action, status_code=200, entity_id="", actor_id=None, ip_address=None):
    """Persist one :class:`~core.models.AuditLog` row for an API call."""
    from core.models import AuditLog

    entity_type = action.split(".", 1)[0] if action else ""
    log = AuditLog.objects.create(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id or "",
        status_code=status_code,
        ip_address=ip_address,
    )
    logger.debug("Audit log %s recorded for %s", log.pk, action)
    return log.pk
