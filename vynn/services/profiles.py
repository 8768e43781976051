"""Profiles: owner settings and public views (view counter, view XP, view milestones)."""

import secrets
from datetime import datetime
from typing import Any

from beanie import PydanticObjectId

from vynn.core.config import get_settings
from vynn.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from vynn.core.logging import get_logger
from vynn.models.badge import Badge
from vynn.models.profile import Profile, ProfileLink, ProfileTemplate, SocialLink
from vynn.models.user import User
from vynn.services import badges as badge_service
from vynn.services import discord as discord_service
from vynn.services import ledger, milestones
from vynn.services.users import ensure_profile

log = get_logger(__name__)

EDITABLE_FIELDS = ("bio", "avatar", "banner", "theme_config", "is_nsfw", "show_view_count", "is_public")
FREE_LINK_LIMIT = 1
PREMIUM_LINK_LIMIT = 3


def serialize_profile(profile: Profile, public: bool = False) -> dict:
    out = {
        "id": str(profile.id),
        "bio": profile.bio,
        "avatar": profile.avatar,
        "banner": profile.banner,
        "theme_config": profile.theme_config,
        "links": [l.model_dump(mode="json") for l in sorted(profile.links, key=lambda l: l.order)],
        "socials": [s.model_dump(mode="json") for s in sorted(profile.socials, key=lambda s: s.order)],
        "is_nsfw": profile.is_nsfw,
        "views": profile.views,
        "show_view_count": profile.show_view_count,
        "is_public": profile.is_public,
    }
    if public:
        out.pop("show_view_count")
        out.pop("is_public")
        out["links"] = [l for l in out["links"] if l["is_visible"]]
        out["socials"] = [s for s in out["socials"] if s["is_visible"]]
        if not profile.show_view_count:
            out["views"] = None
    return out


async def update_profile(user: User, changes: dict[str, Any]) -> Profile:
    """Apply owner edits. Changing the NSFW flag re-runs automatic badge checks."""
    profile = await ensure_profile(user)
    nsfw_before = profile.is_nsfw
    for field in EDITABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(profile, field, changes[field])
    if changes.get("socials") is not None:
        profile.socials = [SocialLink.model_validate(s) for s in changes["socials"]]
    profile.updated_at = datetime.utcnow()
    await profile.save()
    if profile.is_nsfw != nsfw_before:
        await badge_service.check_automatic_badges(user.id)
    return profile


# --- Links and templates ---

def link_limit(user: User) -> int:
    return PREMIUM_LINK_LIMIT if user.is_premium else FREE_LINK_LIMIT


async def add_link(user: User, title: str, url: str, icon: str = "link") -> Profile:
    """Append a custom link. Free accounts get one, premium accounts three."""
    profile = await ensure_profile(user)
    limit = link_limit(user)
    if len(profile.links) >= limit:
        tier = "Pro" if user.is_premium else "Free"
        raise ForbiddenError(f"Link limit reached. {tier} users are limited to {limit} custom links.")
    profile.links.append(ProfileLink(title=title, url=url, icon=icon or "link", order=len(profile.links)))
    profile.updated_at = datetime.utcnow()
    await profile.save()
    return profile


async def delete_link(user: User, link_id: PydanticObjectId) -> Profile:
    profile = await ensure_profile(user)
    remaining = [l for l in profile.links if l.id != link_id]
    if len(remaining) == len(profile.links):
        raise NotFoundError("Link not found")
    profile.links = remaining
    profile.updated_at = datetime.utcnow()
    await profile.save()
    return profile


async def save_template(user: User, name: str, config: dict[str, Any]) -> ProfileTemplate:
    """Snapshot a theme config under a name."""
    if not name.strip():
        raise BadRequestError("Template name is required")
    profile = await ensure_profile(user)
    template = ProfileTemplate(id=secrets.token_urlsafe(6), name=name.strip(), config=config)
    profile.templates.append(template)
    await profile.save()
    log.info("profile_template_saved", user_id=str(user.id), template_id=template.id)
    return template


async def delete_template(user: User, template_id: str) -> None:
    profile = await ensure_profile(user)
    remaining = [t for t in profile.templates if t.id != template_id]
    if len(remaining) == len(profile.templates):
        raise NotFoundError("Template not found")
    profile.templates = remaining
    await profile.save()


async def increment_views(profile: Profile) -> int:
    profile.views += 1
    await profile.save()
    return profile.views


async def view_profile(username: str, viewer: User | None = None) -> dict:
    """
    Public profile lookup. A view by anyone but the owner bumps the counter, grants the
    owner view XP and checks view milestones.
    """
    owner = await User.find_one(User.username == username.strip().lower())
    if not owner:
        raise NotFoundError("Profile not found")
    profile = await Profile.find_one(Profile.user == owner.id)
    if not profile:
        raise NotFoundError("Profile not found")
    is_owner = viewer is not None and viewer.id == owner.id
    if not profile.is_public and not is_owner:
        raise ForbiddenError("This profile is private")

    if not is_owner:
        await increment_views(profile)
        await ledger.add_xp(owner, get_settings().xp_per_profile_view)
        await milestones.check_view_badges(owner.id)
        owner = await User.get(owner.id) or owner

    badges = await Badge.find({"_id": {"$in": owner.badges}}).to_list() if owner.badges else []
    order = {badge_id: i for i, badge_id in enumerate(owner.badges)}
    badges.sort(key=lambda b: order.get(b.id, 0))
    presence = await discord_service.get_presence(owner.discord.id) if owner.discord else None
    return {
        "user": {
            "username": owner.username,
            "display_name": owner.display_name,
            "level": owner.level,
            "is_verified": owner.is_verified,
            "badges": [
                {"id": str(b.id), "name": b.name, "slug": b.slug, "icon": b.icon, "color": b.color}
                for b in badges
            ],
            "discord": {"id": owner.discord.id, "username": owner.discord.username, "avatar": owner.discord.avatar}
            if owner.discord
            else None,
            "created_at": owner.created_at.isoformat(),
        },
        "profile": serialize_profile(profile, public=True),
        "presence": presence,
    }
