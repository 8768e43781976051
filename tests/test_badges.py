"""Badge catalog seeding, Discord badge sync, automatic checks, admin badge management."""

import pytest

from vynn.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from vynn.models.badge import Badge
from vynn.models.profile import Profile
from vynn.models.user import DiscordLink, ReferralStats, User
from vynn.services import badges as badge_service
from vynn.services import discord as discord_service
from vynn.services.discord import MemberInfo

pytestmark = pytest.mark.asyncio


def _member_info_sequence(monkeypatch, *results):
    """Replace the Discord lookup with a fixed sequence of results (exceptions are raised)."""
    queue = list(results)

    async def fake_get_member_info(discord_id, client=None):
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(discord_service, "get_member_info", fake_get_member_info)


async def _keys(user_id) -> set[str]:
    user = await User.get(user_id)
    badges = await Badge.find({"_id": {"$in": user.badges}}).to_list()
    return {b.system_key for b in badges}


async def test_seed_is_idempotent_and_self_healing(db):
    count = await Badge.find_all().count()
    assert count == len(badge_service.SYSTEM_BADGES)

    recruiter = await Badge.find_one(Badge.system_key == "referral_recruiter")
    recruiter.color = "#000000"
    await recruiter.save()

    await badge_service.seed_system_badges()
    assert await Badge.find_all().count() == count
    healed = await Badge.find_one(Badge.system_key == "referral_recruiter")
    assert healed.id == recruiter.id
    assert healed.color == "#10b981"


async def test_seed_accepts_explicit_catalog(db):
    catalog = [
        {
            "name": "Beta Tester",
            "slug": "beta-tester",
            "description": "Tested the beta.",
            "icon": "FaFlask",
            "is_system": True,
            "system_key": "beta_tester",
        }
    ]
    assert await badge_service.seed_system_badges(catalog) == 1
    assert await Badge.find_one(Badge.system_key == "beta_tester")


async def test_discord_sync_converges_with_external_state(make_user, monkeypatch):
    user = await make_user("yara", discord=DiscordLink(id="1234"))
    _member_info_sequence(
        monkeypatch,
        MemberInfo(is_member=True, is_booster=False),
        MemberInfo(is_member=False, is_booster=False),
    )

    assert await badge_service.sync_user_discord_badges(await User.get(user.id)) is True
    assert await _keys(user.id) == {"discord_member"}

    assert await badge_service.sync_user_discord_badges(await User.get(user.id)) is True
    assert await _keys(user.id) == set()


async def test_discord_sync_booster_badge_and_flag(make_user, monkeypatch):
    user = await make_user("zane", discord=DiscordLink(id="999"))
    _member_info_sequence(
        monkeypatch,
        MemberInfo(is_member=True, is_booster=True),
        MemberInfo(is_member=True, is_booster=True),
    )

    assert await badge_service.sync_user_discord_badges(await User.get(user.id)) is True
    assert await _keys(user.id) == {"discord_member", "discord_booster"}
    assert (await User.get(user.id)).discord.is_booster is True

    # Same state again: nothing to write
    assert await badge_service.sync_user_discord_badges(await User.get(user.id)) is False


async def test_discord_sync_without_link_is_noop(make_user, monkeypatch):
    user = await make_user("abel")
    _member_info_sequence(monkeypatch)  # any call would fail on the empty queue
    assert await badge_service.sync_user_discord_badges(user) is False


async def test_discord_sync_upstream_failure_changes_nothing(make_user, monkeypatch):
    user = await make_user("bea", discord=DiscordLink(id="42"))
    _member_info_sequence(monkeypatch, MemberInfo(is_member=True, is_booster=False), UpstreamUnavailableError())

    await badge_service.sync_user_discord_badges(await User.get(user.id))
    assert await badge_service.sync_user_discord_badges(await User.get(user.id)) is False
    assert await _keys(user.id) == {"discord_member"}


async def test_automatic_badges_run_every_check(make_user, monkeypatch):
    user = await make_user(
        "cleo",
        discord=DiscordLink(id="77"),
        referral_stats=ReferralStats(total_referrals=5),
    )
    await Profile(user=user.id, views=500).insert()
    _member_info_sequence(monkeypatch, MemberInfo(is_member=True, is_booster=False))

    await badge_service.check_automatic_badges(user.id)

    assert await _keys(user.id) == {"discord_member", "referral_recruiter", "views_observer"}
    stored = await User.get(user.id)
    assert stored.xp == 500 + 500
    assert stored.credits == 100


async def test_automatic_badges_continue_after_sync_failure(make_user, monkeypatch):
    user = await make_user("dora", discord=DiscordLink(id="78"), referral_stats=ReferralStats(total_referrals=5))
    _member_info_sequence(monkeypatch, RuntimeError("boom"))

    await badge_service.check_automatic_badges(user.id)
    assert await _keys(user.id) == {"referral_recruiter"}


async def test_create_badge_rejects_duplicate_slug(db):
    badge = await badge_service.create_badge("Bug Hunter", "Found bugs.", "FaBug")
    assert badge.slug == "bug-hunter"
    assert badge.is_system is False
    with pytest.raises(ConflictError):
        await badge_service.create_badge("bug hunter", "Again.", "FaBug")


async def test_system_badge_name_is_locked(db):
    titan = await Badge.find_one(Badge.slug == "titan")
    updated = await badge_service.update_badge(titan.id, {"name": "Renamed", "color": "#123456"})
    assert updated.name == "Titan"
    assert updated.slug == "titan"
    assert updated.color == "#123456"


async def test_manual_badge_rename_updates_slug(db):
    badge = await badge_service.create_badge("Staff", "Team member.", "FaShieldAlt")
    updated = await badge_service.update_badge(badge.id, {"name": "Core Staff"})
    assert updated.slug == "core-staff"


async def test_system_badge_cannot_be_deleted(db):
    legend = await Badge.find_one(Badge.slug == "legend")
    with pytest.raises(ForbiddenError):
        await badge_service.delete_badge(legend.id)


async def test_assign_badge_once(make_user):
    user = await make_user("eli")
    badge = await badge_service.create_badge("Early Adopter", "Joined early.", "FaRocket")
    await badge_service.assign_badge(user.id, badge.id)
    with pytest.raises(BadRequestError):
        await badge_service.assign_badge(user.id, badge.id)


async def test_manual_badge_rename_onto_existing_name_conflicts(db):
    badge = await badge_service.create_badge("Staff", "Team member.", "FaShieldAlt")
    with pytest.raises(ConflictError):
        await badge_service.update_badge(badge.id, {"name": "Titan"})
    with pytest.raises(ConflictError):
        await badge_service.update_badge(badge.id, {"name": "rising star"})
    stored = await Badge.get(badge.id)
    assert (stored.name, stored.slug) == ("Staff", "staff")


async def test_manual_badge_rename_to_own_name_is_allowed(db):
    badge = await badge_service.create_badge("Staff", "Team member.", "FaShieldAlt")
    updated = await badge_service.update_badge(badge.id, {"name": "Staff", "color": "#000000"})
    assert updated.color == "#000000"


async def test_badge_rarity_and_category_are_checked(db):
    with pytest.raises(ValidationFailedError):
        await badge_service.create_badge("Oddity", "Strange.", "FaQuestion", rarity="mythic")
    badge = await badge_service.create_badge("Oddity", "Strange.", "FaQuestion", rarity="epic", category="event")
    with pytest.raises(ValidationFailedError):
        await badge_service.update_badge(badge.id, {"rarity": "mythic"})
    with pytest.raises(ValidationFailedError):
        await badge_service.update_badge(badge.id, {"category": "nonsense"})
    stored = await Badge.get(badge.id)
    assert (stored.rarity, stored.category) == ("epic", "event")
