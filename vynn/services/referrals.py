"""Referral dashboard: codes, stats, referred users, credit history, gifting, click tracking."""

from beanie.operators import In

from vynn.core.exceptions import BadRequestError, ForbiddenError, InsufficientCreditsError, NotFoundError
from vynn.core.logging import get_logger
from vynn.models.user import User
from vynn.services import ledger, referral_codes
from vynn.services.accounts import save_user

log = get_logger(__name__)


async def get_codes(user: User) -> dict:
    """Return standard and premium codes, generating whichever is missing."""
    changed = False
    if not user.referral_code:
        await referral_codes.generate_referral_code(user)
        changed = True
    if user.is_premium and not user.premium_referral_code:
        changed = await referral_codes.generate_premium_referral_code(user) is not None or changed
    if changed:
        await save_user(user)
    return {
        "referral_code": user.referral_code,
        "premium_referral_code": user.premium_referral_code,
        "is_premium": user.is_premium,
    }


def referral_stats(user: User) -> dict:
    return {
        **user.referral_stats.model_dump(),
        "current_xp": user.xp,
        "current_level": user.level,
    }


async def list_referrals(user: User) -> list[dict]:
    """Referred users in referral order; entries whose user was deleted are dropped."""
    ids = [r.user for r in user.referrals]
    if not ids:
        return []
    referred = {u.id: u for u in await User.find(In(User.id, ids)).to_list()}
    out = []
    for entry in user.referrals:
        u = referred.get(entry.user)
        if not u:
            continue
        out.append(
            {
                "id": str(u.id),
                "username": u.username,
                "display_name": u.display_name,
                "level": u.level,
                "xp": u.xp,
                "is_premium": u.is_premium,
                "referred_at": entry.referred_at.isoformat(),
                "code_used": entry.code_used,
                "reward_claimed": entry.reward_claimed,
            }
        )
    return out


async def get_referrer(user: User) -> dict:
    if not user.referred_by:
        return {"referred_by": None}
    referrer = await User.get(user.referred_by)
    if not referrer:
        return {"referred_by": None}
    return {
        "referred_by": {
            "username": referrer.username,
            "display_name": referrer.display_name,
            "is_premium": referrer.is_premium,
        },
        "code_used": user.referred_by_code,
        "date": user.created_at.isoformat(),
    }


def credit_history(user: User) -> list[dict]:
    """Newest first."""
    entries = sorted(user.credit_history, key=lambda e: e.timestamp, reverse=True)
    return [
        {
            "amount": e.amount,
            "type": e.type,
            "source": e.source,
            "description": e.description,
            "related_item": str(e.related_item) if e.related_item else None,
            "timestamp": e.timestamp.isoformat(),
        }
        for e in entries
    ]


async def gift_credits(sender: User, username: str, amount: int) -> int:
    """Premium-only transfer. Sender and receiver are debited / credited as two separate writes."""
    if amount <= 0:
        raise BadRequestError("Invalid amount")
    if not sender.is_premium:
        raise ForbiddenError("Gifting is a Premium feature")
    if sender.credits < amount:
        raise InsufficientCreditsError(required=amount, current=sender.credits)
    receiver = await User.find_one(User.username == (username or "").strip().lower())
    if not receiver:
        raise NotFoundError("User not found")
    if receiver.id == sender.id:
        raise BadRequestError("Cannot gift credits to yourself")
    remaining = await ledger.spend_credits(sender, amount, None, f"Gift to {receiver.username}")
    await ledger.add_credits(receiver, amount, "transfer", f"Gift from {sender.username}")
    log.info("credits_gifted", sender_id=str(sender.id), receiver_id=str(receiver.id), amount=amount)
    return remaining


async def track_click(code: str) -> User:
    """Count a referral link click against the code's owner."""
    referrer = await referral_codes.find_referrer(code)
    if not referrer:
        raise NotFoundError("Invalid referral code")
    referrer.referral_stats.referral_clicks += 1
    await save_user(referrer)
    return referrer
