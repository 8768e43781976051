"""Admin user management: premium, role, verification, credit grants, search."""

import calendar
import re
from datetime import datetime
from typing import Literal

from beanie import PydanticObjectId
from beanie.operators import Or, RegEx

from vynn.core.audit import log_event
from vynn.core.exceptions import BadRequestError, NotFoundError
from vynn.core.pagination import paginate
from vynn.models.user import Role, User
from vynn.services import badges as badge_service
from vynn.services import ledger
from vynn.services.accounts import save_user

PremiumType = Literal["none", "limited", "lifetime"]


def add_months(start: datetime, months: int) -> datetime:
    """Calendar-month arithmetic; the day is clamped to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


async def _get_user(user_id: PydanticObjectId) -> User:
    user = await User.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def list_users(page: int = 1, limit: int = 10, search: str = "") -> dict:
    page, limit, offset = paginate(page, limit)
    if search:
        pattern = re.escape(search)
        query = User.find(Or(RegEx(User.email, pattern, "i"), RegEx(User.username, pattern, "i")))
    else:
        query = User.find_all()
    total = await query.count()
    users = await query.sort(-User.created_at).skip(offset).limit(limit).to_list()
    return {"users": users, "page": page, "limit": limit, "total": total}


async def set_premium(actor: User, user_id: PydanticObjectId, premium_type: PremiumType, months: int = 1) -> User:
    """
    none: premium off (the premium referral code is kept).
    lifetime: premium with no expiry.
    limited: extend from the current expiry if still in the future, else from now.
    """
    user = await _get_user(user_id)
    if premium_type == "none":
        user.is_premium = False
        user.is_lifetime_premium = False
        user.premium_until = None
    elif premium_type == "lifetime":
        user.is_premium = True
        user.is_lifetime_premium = True
        user.premium_until = None
    elif premium_type == "limited":
        now = datetime.utcnow()
        base = user.premium_until if user.premium_until and user.premium_until > now else now
        user.is_premium = True
        user.is_lifetime_premium = False
        user.premium_until = add_months(base, months or 1)
    else:
        raise BadRequestError(f"Invalid premium type: {premium_type}")
    await save_user(user)
    await badge_service.check_automatic_badges(user.id)
    await log_event(str(actor.id), "premium_updated", "user", str(user.id), {"type": premium_type, "months": months})
    return await User.get(user.id) or user


async def set_role(actor: User, user_id: PydanticObjectId, role: Role) -> User:
    user = await _get_user(user_id)
    user.role = role
    await save_user(user)
    await log_event(str(actor.id), "role_updated", "user", str(user.id), {"role": role})
    return user


async def toggle_verified(actor: User, user_id: PydanticObjectId) -> User:
    user = await _get_user(user_id)
    user.is_verified = not user.is_verified
    await save_user(user)
    await badge_service.check_automatic_badges(user.id)
    await log_event(str(actor.id), "verification_toggled", "user", str(user.id), {"is_verified": user.is_verified})
    return user


async def grant_credits(actor: User, user_id: PydanticObjectId, amount: int, description: str) -> int:
    """Admin credit adjustment, logged with type and source 'admin'."""
    if amount <= 0:
        raise BadRequestError("Invalid amount")
    user = await _get_user(user_id)
    balance = await ledger.add_credits(user, amount, "admin", description or "Admin grant", entry_type="admin")
    await log_event(str(actor.id), "credits_granted", "user", str(user.id), {"amount": amount})
    return balance
