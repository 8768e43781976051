from datetime import datetime
from typing import Literal

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel

ClickType = Literal["link", "social", "music", "other"]
DeviceType = Literal["desktop", "mobile", "tablet"]


class VisitClick(BaseModel):
    link_id: str | None = None
    url: str = ""
    type: ClickType = "link"
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class VisitSession(Document):
    """
    One visit to a public profile. Visitors are identified by a client-generated token,
    never by IP address.
    """

    profile_id: PydanticObjectId
    visitor_id: str
    started_at: datetime = Field(default_factory=datetime.utcnow)
    last_ping_at: datetime = Field(default_factory=datetime.utcnow)
    duration: int = 0  # seconds

    country: str = "Unknown"
    country_code: str = "UN"
    device_type: DeviceType = "desktop"
    browser: str = "Unknown"
    os: str = "Unknown"
    referrer: str = "Direct"

    clicks: list[VisitClick] = Field(default_factory=list)

    class Settings:
        name = "visit_sessions"
        indexes = [
            IndexModel([("profile_id", ASCENDING), ("started_at", DESCENDING)]),
            IndexModel([("visitor_id", ASCENDING)]),
        ]
