from datetime import datetime
from typing import Literal

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

BadgeCategory = Literal["achievement", "supporter", "verified", "community", "event", "custom"]
BadgeRarity = Literal["common", "uncommon", "rare", "epic", "legendary"]


class UnlockCriteria(BaseModel):
    # Declarative only; milestone awards use the tables in services.milestones
    type: Literal["views", "level", "links", "socials", "days_active", "referrals", "none"] = "none"
    value: int = 0


class Badge(Document):
    name: str
    slug: str
    description: str
    icon: str
    color: str = "#6366f1"
    category: BadgeCategory = "achievement"
    rarity: BadgeRarity = "common"

    is_system: bool = False  # name and slug locked on the admin surface
    system_key: str | None = None

    unlock_type: Literal["auto", "manual", "purchase", "event"] = "auto"
    unlock_criteria: UnlockCriteria = Field(default_factory=UnlockCriteria)

    is_active: bool = True
    is_premium_only: bool = False
    is_limited_edition: bool = False
    available_until: datetime | None = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "badges"
        keep_nulls = False
        indexes = [
            IndexModel([("name", ASCENDING)], unique=True),
            IndexModel([("slug", ASCENDING)], unique=True),
            IndexModel([("system_key", ASCENDING)], unique=True, sparse=True),
        ]
