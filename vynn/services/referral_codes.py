"""Referral code registry: standard VYNN-XXXX codes, premium VYNN-<USERNAME> codes, lookup."""

import re
import secrets
import string

from beanie.operators import Or

from vynn.core.exceptions import NotFoundError, ValidationFailedError
from vynn.models.user import User, public_identity

CODE_PREFIX = "VYNN-"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 4

# Covers both VYNN-XXXX and VYNN-<username> (usernames are 3-20 of [a-z0-9_])
REFERRAL_CODE_RE = re.compile(r"^VYNN-[A-Z0-9_]{3,20}$")


def _draw_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def premium_code_for(username: str) -> str:
    return f"{CODE_PREFIX}{username.upper()}"


async def generate_referral_code(user: User) -> str:
    """Return user's referral code, assigning a fresh unique one if missing. Does not save."""
    if user.referral_code:
        return user.referral_code
    # Both code columns share one namespace: a 4-letter username makes VYNN-XXXX-shaped premium codes
    while True:
        code = _draw_code()
        if not await User.find_one(Or(User.referral_code == code, User.premium_referral_code == code)):
            break
    user.referral_code = code
    return code


async def generate_premium_referral_code(user: User) -> str | None:
    """
    Assign VYNN-<USERNAME> to a premium user. Returns None (and assigns nothing) when the
    user is not premium, has no username yet, or the code already belongs to someone else.
    Does not save.
    """
    if not user.is_premium or not user.username:
        return None
    code = premium_code_for(user.username)
    existing = await User.find_one(
        Or(User.premium_referral_code == code, User.referral_code == code),
        User.id != user.id,
    )
    if existing:
        return None
    user.premium_referral_code = code
    return code


def normalize_referral_code(code: str | None) -> str:
    """Strip and uppercase; raise ValidationFailedError for input that can never be a code."""
    if not code or not isinstance(code, str):
        raise ValidationFailedError("Referral code is required")
    normalized = code.strip().upper()
    if not REFERRAL_CODE_RE.match(normalized):
        raise ValidationFailedError("Malformed referral code", details={"code": code})
    return normalized


async def find_referrer(code: str) -> User | None:
    """Match a code against standard and premium codes. Input is validated first."""
    normalized = normalize_referral_code(code)
    return await User.find_one(
        Or(User.referral_code == normalized, User.premium_referral_code == normalized)
    )


async def validate_referral_code(code: str) -> dict:
    """Return the referrer's public identity; the matched code type is not revealed."""
    referrer = await find_referrer(code)
    if not referrer:
        raise NotFoundError("Invalid referral code")
    return public_identity(referrer)

