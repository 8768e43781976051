from datetime import datetime
from typing import Any, Literal

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel

AuditEntity = Literal["user", "badge", "store_item"]


class AuditLog(Document):
    """Append-only trail of account and admin actions (premium, roles, credit grants, badges)."""

    actor_id: str | None = None  # None for system events
    event_type: str
    entity_type: AuditEntity
    entity_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "audit_logs"
        indexes = [
            IndexModel([("actor_id", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("entity_type", ASCENDING), ("entity_id", ASCENDING)]),
            IndexModel([("event_type", ASCENDING), ("created_at", DESCENDING)]),
        ]
