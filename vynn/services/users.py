import re
from datetime import datetime

from pymongo.errors import DuplicateKeyError

from vynn.core.audit import log_event
from vynn.core.config import get_settings
from vynn.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from vynn.core.logging import get_logger
from vynn.core.security import hash_password, verify_password
from vynn.models.profile import Profile
from vynn.models.user import User
from vynn.services import badges as badge_service
from vynn.services import ledger, milestones, referral_codes
from vynn.services.accounts import save_user

log = get_logger(__name__)

USERNAME_RE = re.compile(r"^[a-z0-9_]{3,20}$")


def check_username_format(username: str) -> str | None:
    """Return a reason string if the username can never be valid, else None."""
    if not re.fullmatch(r"[a-z0-9_]+", username.lower()):
        return "Invalid characters"
    if not 3 <= len(username) <= 20:
        return "Invalid length"
    return None


async def is_username_available(username: str) -> bool:
    return not await User.find_one(User.username == username.lower())


async def ensure_profile(user: User) -> Profile:
    """Return the user's profile, creating it if a partial registration left none."""
    profile = await Profile.find_one(Profile.user == user.id)
    if not profile:
        profile = Profile(user=user.id)
        await profile.insert()
    return profile


async def register_user(email: str, password: str, username: str, referral_code: str | None = None) -> User:
    """
    Create the account and its profile. With a referral code, the new user gets the referee
    bonus, the referrer gets the referral reward, and the referrer's milestones are checked.
    The two sides are separate writes.
    """
    email = email.strip().lower()
    username = username.strip().lower()
    if not USERNAME_RE.match(username):
        raise BadRequestError("Username must be 3-20 characters, lowercase letters, numbers, and underscores only")
    if await User.find_one(User.email == email):
        raise ConflictError("Email already registered")
    if await User.find_one(User.username == username):
        raise ConflictError("Username already taken")

    referrer = None
    code_used = None
    if referral_code and referral_code.strip():
        code_used = referral_codes.normalize_referral_code(referral_code)
        referrer = await referral_codes.find_referrer(code_used)
        if not referrer:
            raise BadRequestError("Invalid referral code")

    user = User(
        email=email,
        password_hash=hash_password(password),
        username=username,
        display_name=username,
        referred_by=referrer.id if referrer else None,
        referred_by_code=code_used,
    )
    try:
        await save_user(user)
    except DuplicateKeyError as e:
        raise ConflictError("Email or username already registered") from e
    await ensure_profile(user)
    log.info("user_registered", user_id=str(user.id), referred=bool(referrer))

    if referrer:
        settings = get_settings()
        await ledger.add_referral(referrer, user.id, code_used)
        await ledger.add_xp(user, settings.referee_bonus_xp)
        await ledger.add_credits(user, settings.referee_bonus_credits, "signup_bonus", "Referral signup bonus")
        await ledger.add_xp(referrer, settings.referrer_reward_xp, source="referral")
        await ledger.add_credits(referrer, settings.referrer_reward_credits, "referral", f"Referred {user.username}")
        await milestones.check_referral_badges(referrer.id)
        log.info("referral_rewarded", referrer_id=str(referrer.id), referee_id=str(user.id), code=code_used)

    await badge_service.check_automatic_badges(user.id)
    await log_event(str(user.id), "user_registered", "user", str(user.id), {"referred_by": str(referrer.id) if referrer else None})
    return user


async def authenticate(email: str, password: str) -> User:
    user = await User.find_one(User.email == email.strip().lower())
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    user.last_login_at = datetime.utcnow()
    await save_user(user)
    log.info("user_login", user_id=str(user.id))
    return user


async def logout(user: User) -> None:
    """Invalidate every outstanding session cookie for the user."""
    user.session_version += 1
    await save_user(user)


async def load_current(user: User) -> tuple[User, Profile]:
    """Run automatic badge checks, then return the refreshed user and their profile."""
    await badge_service.check_automatic_badges(user.id)
    fresh = await User.get(user.id) or user
    profile = await ensure_profile(fresh)
    return fresh, profile


async def unlink_discord(user: User) -> None:
    user.discord = None
    await save_user(user)


def session_payload_for_user(user: User) -> dict:
    return {"user_id": str(user.id), "session_version": user.session_version}


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "username": user.username,
        "display_name": user.display_name,
        "tag": user.tag,
        "level": user.level,
        "xp": user.xp,
        "credits": user.credits,
        "role": user.role,
        "is_premium": user.is_premium,
        "is_verified": user.is_verified,
        "badges": [str(b) for b in user.badges],
        "discord": {"id": user.discord.id, "username": user.discord.username, "avatar": user.discord.avatar}
        if user.discord
        else None,
        "created_at": user.created_at.isoformat(),
    }
