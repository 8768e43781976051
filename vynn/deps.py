"""Shared FastAPI dependencies."""

from fastapi import Request

from vynn.core.exceptions import ForbiddenError, UnauthorizedError
from vynn.core.logging import bind_user_id
from vynn.core.security import load_session_cookie
from vynn.models.user import User

SESSION_COOKIE_NAME = "vynn_session"


async def get_optional_user(request: Request) -> User | None:
    """Dependency: user from the session cookie, or None for anonymous / stale sessions."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        return None
    payload = load_session_cookie(cookie)
    if not payload or not payload.get("user_id"):
        return None
    user = await User.get(payload["user_id"])
    if not user or payload.get("session_version") != user.session_version:
        return None
    bind_user_id(str(user.id))
    return user


async def get_current_user(request: Request) -> User:
    """Dependency: load session from cookie and return User."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    user = await User.get(user_id)
    if not user:
        raise UnauthorizedError("User not found")
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    bind_user_id(str(user.id))
    return user


async def require_admin(request: Request) -> User:
    """Dependency: admin or super_admin."""
    user = await get_current_user(request)
    if user.role not in ("admin", "super_admin"):
        raise ForbiddenError("Access denied. Admins only.")
    return user


async def require_super_admin(request: Request) -> User:
    user = await get_current_user(request)
    if user.role != "super_admin":
        raise ForbiddenError("Access denied. Super Admins only.")
    return user
