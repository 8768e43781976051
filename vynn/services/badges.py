"""Badge catalog seeding, Discord badge sync, automatic badge checks and admin badge management."""

import re
from datetime import datetime
from typing import Any, get_args

from beanie import PydanticObjectId
from beanie.operators import In, Or

from vynn.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from vynn.core.logging import get_logger
from vynn.models.badge import Badge, BadgeCategory, BadgeRarity
from vynn.models.user import User
from vynn.services import discord as discord_service
from vynn.services import milestones
from vynn.services.accounts import save_user

log = get_logger(__name__)

DISCORD_MEMBER_KEY = "discord_member"
DISCORD_BOOSTER_KEY = "discord_booster"


def _system(name: str, slug: str, description: str, icon: str, color: str, category: str, system_key: str, rarity: str = "common") -> dict[str, Any]:
    return {
        "name": name,
        "slug": slug,
        "description": description,
        "icon": icon,
        "color": color,
        "category": category,
        "rarity": rarity,
        "is_system": True,
        "system_key": system_key,
    }


SYSTEM_BADGES: list[dict[str, Any]] = [
    _system("Discord Member", "discord-member", "A dedicated member of the Vynn Official Server.", "FaDiscord", "#5865F2", "community", DISCORD_MEMBER_KEY),
    _system("Server Booster", "discord-booster", "Supporting the Vynn community through Nitro Boosting.", "FaFire", "#ff73fa", "supporter", DISCORD_BOOSTER_KEY),
    _system("Verified", "verified", "This user has been officially verified by the Vynn team.", "FaCheckCircle", "#3b82f6", "verified", "verified", "rare"),
    # Referral milestones
    _system("Recruiter", "recruiter", "Invited 5 friends to join the platform.", "FaUserPlus", "#10b981", "achievement", "referral_recruiter"),
    _system("Ambassador", "ambassador", "Invited 25 friends. A true advocate for Vynn.", "FaBullhorn", "#f59e0b", "achievement", "referral_ambassador", "uncommon"),
    _system("Legend", "legend", "Invited 100 friends. You are a community legend.", "FaCrown", "#a855f7", "achievement", "referral_legend", "rare"),
    _system("Icon", "icon", "Reached 500 referrals. You are an icon of the community.", "FaStar", "#3b82f6", "achievement", "referral_icon", "rare"),
    _system("Titan", "titan", "Reached 1,000 referrals. A titanic effort.", "FaDumbbell", "#8b5cf6", "achievement", "referral_titan", "epic"),
    _system("Warlord", "warlord", "Reached 2,500 referrals. You command an army.", "FaFistRaised", "#ef4444", "achievement", "referral_warlord", "epic"),
    _system("Emperor", "emperor", "Reached 5,000 referrals. You rule the realm.", "FaChessKing", "#eab308", "achievement", "referral_emperor", "legendary"),
    _system("Godlike", "godlike", "Reached 10,000 referrals. Unstoppable.", "FaBolt", "#ec4899", "achievement", "referral_godlike", "legendary"),
    # View milestones
    _system("Observer", "observer", "Your profile reached 500 views.", "FaEye", "#64748b", "achievement", "views_observer"),
    _system("Rising Star", "rising-star", "Your profile reached 1,000 views.", "FaStarHalfAlt", "#22c55e", "achievement", "views_rising_star"),
    _system("Socialite", "socialite", "Your profile reached 2,500 views.", "FaGlassCheers", "#06b6d4", "achievement", "views_socialite", "uncommon"),
    _system("Influencer", "influencer", "Your profile reached 5,000 views.", "FaBullseye", "#f97316", "achievement", "views_influencer", "uncommon"),
    _system("Superstar", "superstar", "Your profile reached 10,000 views.", "FaStar", "#facc15", "achievement", "views_superstar", "rare"),
    _system("Celebrity", "celebrity", "Your profile reached 25,000 views.", "FaCamera", "#e11d48", "achievement", "views_celebrity", "epic"),
    _system("Internet Sensation", "internet-sensation", "Your profile reached 50,000 views.", "FaGlobe", "#7c3aed", "achievement", "views_internet_sensation", "epic"),
    _system("World Class", "world-class", "Your profile reached 100,000 views.", "FaTrophy", "#fbbf24", "achievement", "views_world_class", "legendary"),
]


async def seed_system_badges(catalog: list[dict[str, Any]] | None = None) -> int:
    """Upsert catalog entries keyed by name. Safe to run on every start. Returns entries written."""
    catalog = SYSTEM_BADGES if catalog is None else catalog
    for data in catalog:
        badge = await Badge.find_one(Badge.name == data["name"])
        if badge:
            for field, value in data.items():
                setattr(badge, field, value)
            badge.updated_at = datetime.utcnow()
            await badge.save()
        else:
            await Badge(**data).insert()
    log.info("system_badges_seeded", count=len(catalog))
    return len(catalog)


async def sync_user_discord_badges(user: User | None) -> bool:
    """
    Keep the Discord member / booster badges in lockstep with live server state.
    Unlike milestone badges these are revoked when the flag turns false.
    Returns True if the user changed. Never raises.
    """
    if not user or not user.discord or not user.discord.id:
        return False
    try:
        info = await discord_service.get_member_info(user.discord.id)
        badges = await Badge.find(In(Badge.system_key, [DISCORD_MEMBER_KEY, DISCORD_BOOSTER_KEY])).to_list()
        by_key = {b.system_key: b for b in badges}
        updated = False
        for key, flag in ((DISCORD_MEMBER_KEY, info.is_member), (DISCORD_BOOSTER_KEY, info.is_booster)):
            badge = by_key.get(key)
            if not badge:
                continue
            owned = badge.id in user.badges
            if flag and not owned:
                user.badges.append(badge.id)
                updated = True
            elif not flag and owned:
                user.badges = [b for b in user.badges if b != badge.id]
                updated = True
        if user.discord.is_booster != info.is_booster:
            user.discord.is_booster = info.is_booster
            updated = True
        if updated:
            await save_user(user)
            log.info("discord_badges_synced", user_id=str(user.id), is_member=info.is_member, is_booster=info.is_booster)
        return updated
    except UpstreamUnavailableError:
        log.warning("discord_badge_sync_skipped", user_id=str(user.id))
        return False
    except Exception:
        log.exception("discord_badge_sync_failed", user_id=str(user.id))
        return False


async def check_automatic_badges(user_id: PydanticObjectId) -> None:
    """Discord sync, then referral milestones, then view milestones. Each step re-reads the user."""
    try:
        user = await User.get(user_id)
    except Exception:
        log.exception("automatic_badge_check_failed", user_id=str(user_id))
        return
    if not user:
        return
    await sync_user_discord_badges(user)
    await milestones.check_referral_badges(user_id)
    await milestones.check_view_badges(user_id)


# --- Admin management ---

def slugify(name: str) -> str:
    return re.sub(r"[^\w-]+", "", name.lower().replace(" ", "-"))


async def list_active_badges() -> list[Badge]:
    return await Badge.find(Badge.is_active == True).sort(+Badge.category, +Badge.rarity).to_list()  # noqa: E712


async def list_all_badges() -> list[Badge]:
    return await Badge.find_all().sort(-Badge.created_at).to_list()


def _check_choices(rarity: str | None, category: str | None) -> None:
    if rarity and rarity not in get_args(BadgeRarity):
        raise ValidationFailedError(f"Unknown rarity: {rarity}")
    if category and category not in get_args(BadgeCategory):
        raise ValidationFailedError(f"Unknown category: {category}")


async def create_badge(
    name: str,
    description: str,
    icon: str,
    color: str | None = None,
    rarity: BadgeRarity | None = None,
    category: BadgeCategory | None = None,
) -> Badge:
    """Create a manual (never system) badge."""
    _check_choices(rarity, category)
    slug = slugify(name)
    if not slug:
        raise BadRequestError("Badge name must contain letters or digits")
    if await Badge.find_one(Badge.slug == slug) or await Badge.find_one(Badge.name == name):
        raise ConflictError("Badge with this name already exists")
    fields: dict[str, Any] = {"name": name, "slug": slug, "description": description, "icon": icon}
    if color:
        fields["color"] = color
    if rarity:
        fields["rarity"] = rarity
    if category:
        fields["category"] = category
    badge = Badge(**fields, is_system=False)
    await badge.insert()
    return badge


async def update_badge(badge_id: PydanticObjectId, changes: dict[str, Any]) -> Badge:
    """System badges only accept icon, color and description; name and slug stay locked."""
    badge = await Badge.get(badge_id)
    if not badge:
        raise NotFoundError("Badge not found")
    allowed = ("icon", "color", "description") if badge.is_system else ("name", "description", "icon", "color", "rarity", "category")
    if not badge.is_system:
        _check_choices(changes.get("rarity"), changes.get("category"))
    new_name = changes.get("name") if "name" in allowed else None
    if new_name:
        slug = slugify(new_name)
        if not slug:
            raise BadRequestError("Badge name must contain letters or digits")
        clash = await Badge.find_one(Or(Badge.slug == slug, Badge.name == new_name), Badge.id != badge.id)
        if clash:
            raise ConflictError("Badge with this name already exists")
    for field in allowed:
        value = changes.get(field)
        if not value:
            continue
        setattr(badge, field, value)
        if field == "name":
            badge.slug = slugify(value)
    badge.updated_at = datetime.utcnow()
    await badge.save()
    return badge


async def delete_badge(badge_id: PydanticObjectId) -> None:
    badge = await Badge.get(badge_id)
    if not badge:
        raise NotFoundError("Badge not found")
    if badge.is_system:
        raise ForbiddenError("System badges cannot be deleted")
    await badge.delete()


async def assign_badge(user_id: PydanticObjectId, badge_id: PydanticObjectId) -> User:
    user = await User.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    badge = await Badge.get(badge_id)
    if not badge:
        raise NotFoundError("Badge not found")
    if badge.id in user.badges:
        raise BadRequestError("User already has this badge")
    user.badges.append(badge.id)
    await save_user(user)
    return user
