from datetime import datetime
from typing import Any, Literal

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

SocialPlatform = Literal[
    "discord", "twitter", "instagram", "youtube", "twitch", "spotify", "github", "tiktok", "steam", "other"
]


class ProfileLink(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    title: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)
    icon: str = "link"
    order: int = 0
    is_visible: bool = True
    clicks: int = 0  # bumped by analytics click tracking


class SocialLink(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    platform: SocialPlatform
    username: str = ""
    url: str = Field(..., min_length=1)
    order: int = 0
    is_visible: bool = True


class ProfileTemplate(BaseModel):
    """Saved snapshot of a theme config."""

    id: str
    name: str
    config: dict[str, Any]
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Profile(Document):
    """Public page settings; one per user."""

    user: PydanticObjectId
    bio: str = ""
    avatar: str = ""
    banner: str = ""
    # Colors, background, effects, audio, cursor: stored as the client sends them
    theme_config: dict[str, Any] = Field(default_factory=dict)
    templates: list[ProfileTemplate] = Field(default_factory=list)
    links: list[ProfileLink] = Field(default_factory=list)
    socials: list[SocialLink] = Field(default_factory=list)
    is_nsfw: bool = False
    views: int = 0  # owned by the profile view counter, read by view milestones
    show_view_count: bool = True
    is_public: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "profiles"
        indexes = [
            IndexModel([("user", ASCENDING)], unique=True),
            IndexModel([("views", ASCENDING)]),
        ]
