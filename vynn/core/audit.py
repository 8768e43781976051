"""Audit log for admin and account actions."""

from typing import Any

from vynn.core.logging import get_logger
from vynn.models.audit_log import AuditLog

log = get_logger(__name__)


async def log_event(
    actor_id: str | None,
    event_type: str,
    entity_type: str,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Append to audit_logs collection and mirror the event to the structured log."""
    await AuditLog(
        actor_id=actor_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata or {},
    ).insert()
    log.info(event_type, actor_id=actor_id, entity_type=entity_type, entity_id=entity_id)
