import math
from datetime import datetime
from typing import Any, Literal

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field, model_validator
from pymongo import ASCENDING, IndexModel

CreditEntryType = Literal["earned", "spent", "refund", "admin"]
CreditSource = Literal[
    "referral", "purchase", "level_up", "achievement", "admin", "signup_bonus", "daily", "transfer"
]
Role = Literal["user", "admin", "super_admin"]

# Fields a legacy document may lack or hold as null; the model defaults fill them in.
_LEDGER_FIELDS = ("xp", "level", "credits", "credit_history", "referrals", "referral_stats", "badges", "inventory")


class CreditEntry(BaseModel):
    amount: int
    type: CreditEntryType
    source: CreditSource
    description: str = ""
    related_item: PydanticObjectId | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ReferralEntry(BaseModel):
    user: PydanticObjectId
    code_used: str | None = None
    referred_at: datetime = Field(default_factory=datetime.utcnow)
    reward_claimed: bool = False


class ReferralStats(BaseModel):
    total_referrals: int = 0
    active_referrals: int = 0
    total_xp_earned: int = 0
    total_credits_earned: int = 0
    referral_clicks: int = 0

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class DiscordLink(BaseModel):
    id: str
    username: str = ""
    avatar: str | None = None
    connected_at: datetime | None = None
    is_booster: bool = False


class User(Document):
    email: str
    password_hash: str
    username: str
    display_name: str = ""
    tag: str = "0000"  # 4-digit discriminator, assigned on first save
    role: Role = "user"
    session_version: int = 0

    discord: DiscordLink | None = None
    is_early_supporter: bool = False

    # Progression
    xp: int = 0
    level: int = 1
    badges: list[PydanticObjectId] = Field(default_factory=list)

    # Account status
    is_verified: bool = False
    verified_at: datetime | None = None
    is_premium: bool = False
    is_lifetime_premium: bool = False
    premium_until: datetime | None = None

    inventory: list[PydanticObjectId] = Field(default_factory=list)

    # Economy
    credits: int = 0
    credit_history: list[CreditEntry] = Field(default_factory=list)

    # Referral program
    referral_code: str | None = None  # VYNN-XXXX
    premium_referral_code: str | None = None  # VYNN-<USERNAME>
    referred_by: PydanticObjectId | None = None
    referred_by_code: str | None = None
    referrals: list[ReferralEntry] = Field(default_factory=list)
    referral_stats: ReferralStats = Field(default_factory=ReferralStats)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_login_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _backfill_legacy_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key in _LEDGER_FIELDS:
                if key in data and data[key] is None:
                    data = {k: v for k, v in data.items() if k != key}
        return data

    class Settings:
        name = "users"
        # None fields are left out of the stored document, so the sparse indexes skip them
        keep_nulls = False
        indexes = [
            IndexModel([("email", ASCENDING)], unique=True),
            IndexModel([("username", ASCENDING)], unique=True),
            IndexModel([("referral_code", ASCENDING)], unique=True, sparse=True),
            IndexModel([("premium_referral_code", ASCENDING)], unique=True, sparse=True),
            IndexModel([("discord.id", ASCENDING)]),
        ]


def calculate_level(xp: int) -> int:
    """level = floor(sqrt(xp / 100)) + 1"""
    return math.isqrt(max(xp, 0) // 100) + 1


def hydrate_user(raw: dict[str, Any]) -> User:
    """
    Build a User from a raw `users` record read outside Beanie (a motor cursor, an export).
    Beanie's own loads run the same back-fill through `_backfill_legacy_fields`.
    """
    return User.model_validate(raw)


def public_identity(user: User) -> dict[str, Any]:
    return {
        "username": user.username,
        "display_name": user.display_name,
        "is_premium": user.is_premium,
    }
