"""Model helpers: level curve, legacy document hydration, stored document shape."""

import pytest
from pydantic import ValidationError

from vynn.models.store_item import StoreItem
from vynn.models.user import User, calculate_level, hydrate_user
from vynn.services.admin_users import add_months
from vynn.services.analytics import device_type, source_label
from vynn.services.badges import SYSTEM_BADGES, slugify
from vynn.services.milestones import REFERRAL_MILESTONES, VIEW_MILESTONES


def test_calculate_level():
    assert calculate_level(0) == 1
    assert calculate_level(99) == 1
    assert calculate_level(100) == 2
    assert calculate_level(399) == 2
    assert calculate_level(400) == 3
    assert calculate_level(1_000_000) == 101


@pytest.mark.asyncio
async def test_hydrate_user_backfills_legacy_fields(db):
    user = hydrate_user(
        {
            "email": "old@example.com",
            "password_hash": "x",
            "username": "oldtimer",
            "referral_stats": None,
            "credit_history": None,
        }
    )
    assert user.credits == 0
    assert user.xp == 0
    assert user.level == 1
    assert user.credit_history == []
    assert user.referrals == []
    assert user.referral_stats.total_referrals == 0
    assert user.referral_stats.referral_clicks == 0


@pytest.mark.asyncio
async def test_hydrate_user_fills_missing_referral_stats_keys(db):
    user = hydrate_user(
        {
            "email": "old2@example.com",
            "password_hash": "x",
            "username": "oldtimer2",
            "referral_stats": {"total_referrals": 3, "referral_clicks": None},
        }
    )
    assert user.referral_stats.total_referrals == 3
    assert user.referral_stats.referral_clicks == 0


def test_every_milestone_badge_is_in_the_catalog():
    catalog_slugs = {b["slug"] for b in SYSTEM_BADGES}
    for milestone in (*REFERRAL_MILESTONES, *VIEW_MILESTONES):
        assert milestone.badge_slug in catalog_slugs


def test_system_keys_are_unique():
    keys = [b["system_key"] for b in SYSTEM_BADGES]
    assert len(keys) == len(set(keys))


def test_slugify():
    assert slugify("Bug Hunter") == "bug-hunter"
    assert slugify("Café Regular!") == "café-regular"


def test_add_months_clamps_day():
    from datetime import datetime

    assert add_months(datetime(2026, 1, 31), 1) == datetime(2026, 2, 28)
    assert add_months(datetime(2026, 11, 15), 3) == datetime(2027, 2, 15)


@pytest.mark.asyncio
async def test_store_items_are_priced_in_credits_only(db):
    with pytest.raises(ValidationError):
        StoreItem(name="Gem Frame", image_url="/f.png", item_type="frame", type="purchase", price=10, currency="gems")
    with pytest.raises(ValidationError):
        StoreItem(name="Debt Frame", image_url="/f.png", item_type="frame", type="purchase", price=-5)
    assert StoreItem(name="Plain Frame", image_url="/f.png", item_type="frame").currency == "credits"


@pytest.mark.asyncio
async def test_legacy_record_loaded_through_beanie_is_backfilled(db):
    raw = {
        "email": "raw@example.com",
        "password_hash": "x",
        "username": "rawuser",
        "credit_history": None,
        "referral_stats": None,
    }
    inserted = await User.get_motor_collection().insert_one(raw)
    user = await User.get(inserted.inserted_id)
    assert user.credit_history == []
    assert user.referral_stats.total_referrals == 0
    assert hydrate_user(raw).referral_stats == user.referral_stats


@pytest.mark.asyncio
async def test_unset_codes_are_left_out_of_stored_users(make_user):
    await make_user("uma")
    await make_user("vic")
    raw = await User.get_motor_collection().find_one({"username": "vic"})
    assert "premium_referral_code" not in raw
    assert "referral_code" in raw


def test_device_type_from_user_agent():
    assert device_type("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148") == "mobile"
    assert device_type("Mozilla/5.0 (iPad; CPU OS 17_0)") == "tablet"
    assert device_type("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0") == "desktop"
    assert device_type("") == "desktop"


def test_referrer_source_label():
    assert source_label("https://t.co/abc") == "Twitter / X"
    assert source_label("https://discord.com/channels/1") == "Discord"
    assert source_label("https://www.google.com/") == "Google"
    assert source_label("Direct") == "Direct / None"
    assert source_label(None) == "Direct / None"
    assert source_label("https://news.ycombinator.com") == "Other"
