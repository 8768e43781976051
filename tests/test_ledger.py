"""Account ledger: XP, credits, referral edges."""

import pytest

from vynn.core.exceptions import InsufficientCreditsError
from vynn.models.user import User
from vynn.services import ledger

pytestmark = pytest.mark.asyncio


async def test_add_then_spend_credits_leaves_balance_unchanged(make_user):
    user = await make_user("alice")
    await ledger.add_credits(user, 40, "daily", "Daily bonus")
    balance = await ledger.spend_credits(user, 40, None, "Purchased Neon Frame")
    assert balance == 0

    stored = await User.get(user.id)
    assert stored.credits == 0
    assert [(e.type, e.source, e.amount) for e in stored.credit_history] == [
        ("earned", "daily", 40),
        ("spent", "purchase", 40),
    ]


async def test_overspend_is_rejected_without_mutation(make_user):
    user = await make_user("bob")
    await ledger.add_credits(user, 10, "admin", "Seed")

    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.spend_credits(user, 11, None, "Too expensive")

    assert exc_info.value.details == {"required": 11, "current": 10}
    assert user.credits == 10
    stored = await User.get(user.id)
    assert stored.credits == 10
    assert len(stored.credit_history) == 1


async def test_referral_credits_and_xp_count_towards_referral_stats(make_user):
    user = await make_user("carol")
    await ledger.add_credits(user, 50, "referral", "Referred dave")
    await ledger.add_credits(user, 100, "achievement", "Milestone reward: Recruiter")
    await ledger.add_xp(user, 100, source="referral")
    await ledger.add_xp(user, 500)

    stored = await User.get(user.id)
    assert stored.referral_stats.total_credits_earned == 50
    assert stored.referral_stats.total_xp_earned == 100
    assert stored.credits == 150


async def test_add_xp_recomputes_level(make_user):
    user = await make_user("erin")
    out = await ledger.add_xp(user, 400)
    assert out == {"xp": 400, "level": 3}
    stored = await User.get(user.id)
    assert (stored.xp, stored.level) == (400, 3)


async def test_add_referral_is_idempotent_per_referred_user(make_user):
    referrer = await make_user("frank")
    referred = await make_user("grace")

    assert await ledger.add_referral(referrer, referred.id, "VYNN-AB12") is True
    assert await ledger.add_referral(referrer, referred.id, "VYNN-AB12") is False

    stored = await User.get(referrer.id)
    assert len(stored.referrals) == 1
    assert stored.referrals[0].user == referred.id
    assert stored.referrals[0].reward_claimed is True
    assert stored.referral_stats.total_referrals == 1
    assert stored.referral_stats.active_referrals == 1
    # Recording a referral grants nothing by itself
    assert stored.xp == 0 and stored.credits == 0

