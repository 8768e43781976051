"""
Milestone rewards: one-time badges (plus XP / credits) for cumulative referral and
profile view counts.

A pass awards every milestone at or below the current count that the user does not
own yet, so a user who jumps past several thresholds catches up in one call. Badge
membership gates every award, which makes repeated passes no-ops. Errors abandon the
pass; awards already written stay written.
"""

from dataclasses import dataclass

from beanie import PydanticObjectId

from vynn.core.logging import get_logger
from vynn.models.badge import Badge
from vynn.models.profile import Profile
from vynn.models.user import User
from vynn.services import ledger
from vynn.services.accounts import save_user

log = get_logger(__name__)


@dataclass(frozen=True)
class Milestone:
    threshold: int
    badge_slug: str
    name: str
    xp_reward: int
    credit_reward: int = 0


REFERRAL_MILESTONES: tuple[Milestone, ...] = (
    Milestone(5, "recruiter", "Recruiter", 500, 100),
    Milestone(25, "ambassador", "Ambassador", 2500, 500),
    Milestone(100, "legend", "Legend", 10000, 2000),
    Milestone(500, "icon", "Icon", 25000, 5000),
    Milestone(1000, "titan", "Titan", 50000, 10000),
    Milestone(2500, "warlord", "Warlord", 100000, 25000),
    Milestone(5000, "emperor", "Emperor", 250000, 50000),
    Milestone(10000, "godlike", "Godlike", 1000000, 100000),
)

VIEW_MILESTONES: tuple[Milestone, ...] = (
    Milestone(500, "observer", "Observer", 500),
    Milestone(1000, "rising-star", "Rising Star", 1000),
    Milestone(2500, "socialite", "Socialite", 2500),
    Milestone(5000, "influencer", "Influencer", 5000),
    Milestone(10000, "superstar", "Superstar", 10000),
    Milestone(25000, "celebrity", "Celebrity", 25000),
    Milestone(50000, "internet-sensation", "Internet Sensation", 50000),
    Milestone(100000, "world-class", "World Class", 100000),
)


async def check_milestones(user: User, current_count: int, table: tuple[Milestone, ...]) -> list[str]:
    """Award every un-owned milestone with threshold <= current_count. Returns awarded slugs."""
    awarded: list[str] = []
    try:
        for milestone in table:
            if current_count < milestone.threshold:
                continue
            badge = await Badge.find_one(Badge.slug == milestone.badge_slug)
            if not badge or badge.id in user.badges:
                continue
            user.badges.append(badge.id)
            if milestone.xp_reward:
                await ledger.add_xp(user, milestone.xp_reward)
            if milestone.credit_reward:
                await ledger.add_credits(
                    user,
                    milestone.credit_reward,
                    "achievement",
                    f"Milestone reward: {milestone.name}",
                )
            awarded.append(milestone.badge_slug)
            log.info(
                "milestone_badge_awarded",
                user_id=str(user.id),
                badge=milestone.badge_slug,
                xp=milestone.xp_reward,
                credits=milestone.credit_reward,
            )
        if awarded:
            await save_user(user)
    except Exception:
        log.exception("milestone_check_failed", user_id=str(user.id), awarded=awarded)
    return awarded


async def check_referral_badges(user_id: PydanticObjectId) -> list[str]:
    """Referral milestones against referral_stats.total_referrals."""
    try:
        user = await User.get(user_id)
    except Exception:
        log.exception("referral_badge_check_failed", user_id=str(user_id))
        return []
    if not user:
        return []
    return await check_milestones(user, user.referral_stats.total_referrals, REFERRAL_MILESTONES)


async def check_view_badges(user_id: PydanticObjectId) -> list[str]:
    """View milestones against the user's profile view count."""
    try:
        user = await User.get(user_id)
        profile = await Profile.find_one(Profile.user == user_id) if user else None
    except Exception:
        log.exception("view_badge_check_failed", user_id=str(user_id))
        return []
    if not user or not profile:
        return []
    return await check_milestones(user, profile.views, VIEW_MILESTONES)
