"""
Account ledger: XP, credits and referral edges for a single user document.

Every operation mutates the in-memory user and writes the whole document back
(read-modify-write, last writer wins). Callers that already hold the user pass it
in; nothing here re-fetches.
"""

from beanie import PydanticObjectId

from vynn.core.exceptions import InsufficientCreditsError
from vynn.models.user import CreditEntry, CreditEntryType, CreditSource, ReferralEntry, User, calculate_level
from vynn.services.accounts import save_user


async def add_xp(user: User, amount: int, source: CreditSource | None = None) -> dict:
    """Add XP, recompute level, persist. Returns {"xp", "level"}."""
    user.xp += amount
    user.level = calculate_level(user.xp)
    if source == "referral":
        user.referral_stats.total_xp_earned += amount
    await save_user(user)
    return {"xp": user.xp, "level": user.level}


async def add_credits(
    user: User,
    amount: int,
    source: CreditSource,
    description: str,
    related_item: PydanticObjectId | None = None,
    entry_type: CreditEntryType = "earned",
) -> int:
    """Credit the user and append a history entry. Returns the new balance."""
    user.credits += amount
    user.credit_history.append(
        CreditEntry(
            amount=amount,
            type=entry_type,
            source=source,
            description=description,
            related_item=related_item,
        )
    )
    if source == "referral":
        user.referral_stats.total_credits_earned += amount
    await save_user(user)
    return user.credits


async def spend_credits(
    user: User,
    amount: int,
    related_item: PydanticObjectId | None,
    description: str,
) -> int:
    """Debit the user. Raises InsufficientCreditsError without touching the document."""
    if user.credits < amount:
        raise InsufficientCreditsError(required=amount, current=user.credits)
    user.credits -= amount
    user.credit_history.append(
        CreditEntry(
            amount=amount,
            type="spent",
            source="purchase",
            description=description,
            related_item=related_item,
        )
    )
    await save_user(user)
    return user.credits


async def add_referral(user: User, referred_user_id: PydanticObjectId, code_used: str | None) -> bool:
    """
    Record that `user` referred `referred_user_id`. Idempotent per referred user.
    Grants no rewards; returns False when the referral was already recorded.
    """
    if any(r.user == referred_user_id for r in user.referrals):
        return False
    user.referrals.append(ReferralEntry(user=referred_user_id, code_used=code_used, reward_claimed=True))
    user.referral_stats.total_referrals += 1
    user.referral_stats.active_referrals += 1
    await save_user(user)
    return True
