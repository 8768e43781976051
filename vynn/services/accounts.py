"""Write path for user documents: normalize, then save."""

import secrets
from datetime import datetime

from vynn.models.user import User
from vynn.services import referral_codes


async def _draw_unique_tag(user: User) -> str:
    while True:
        tag = str(1000 + secrets.randbelow(9000))
        if not await User.find_one(User.username == user.username, User.tag == tag):
            return tag


async def normalize_user(user: User) -> User:
    """
    Fill in everything a user document must carry before it is written:
    a referral code, a premium code once the user is premium with a username,
    a 4-digit tag, and verified_at on first verification.
    """
    if user.is_premium and not user.premium_referral_code and user.username:
        await referral_codes.generate_premium_referral_code(user)
    if not user.referral_code:
        await referral_codes.generate_referral_code(user)
    if not user.tag or user.tag == "0000":
        user.tag = await _draw_unique_tag(user)
    if user.is_verified and not user.verified_at:
        user.verified_at = datetime.utcnow()
    user.updated_at = datetime.utcnow()
    return user


async def save_user(user: User) -> User:
    """Normalize and persist the whole document (inserts when new)."""
    await normalize_user(user)
    if user.id is None:
        await user.insert()
    else:
        await user.save()
    return user
