from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from vynn.core.config import get_settings
from vynn.core.security import SESSION_MAX_AGE, create_session_cookie
from vynn.deps import SESSION_COOKIE_NAME, get_current_user
from vynn.models.user import User
from vynn.services import users as user_service
from vynn.services.profiles import serialize_profile

router = APIRouter()


class RegisterRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    username: str = Field(..., min_length=3, max_length=20)
    referral_code: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


def _set_session(response: Response, user: User) -> None:
    session_value = create_session_cookie(user_service.session_payload_for_user(user))
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_value,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=get_settings().env == "production",
        samesite="lax",
        path="/",
    )


@router.post("/register", status_code=201)
async def auth_register(body: RegisterRequest, response: Response):
    """Create an account (optionally with a referral code) and start a session."""
    user = await user_service.register_user(body.email, body.password, body.username, body.referral_code)
    user = await User.get(user.id) or user
    _set_session(response, user)
    return {"message": "Account created successfully", "user": user_service.serialize_user(user)}


@router.post("/login")
async def auth_login(body: LoginRequest, response: Response):
    user = await user_service.authenticate(body.email, body.password)
    _set_session(response, user)
    return {"user": user_service.serialize_user(user)}


@router.post("/logout")
async def auth_logout(response: Response, user: User = Depends(get_current_user)):
    """Invalidate all sessions and clear the cookie."""
    await user_service.logout(user)
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me")
async def auth_me(user: User = Depends(get_current_user)):
    """Current user and profile; runs automatic badge checks first."""
    user, profile = await user_service.load_current(user)
    return {"user": user_service.serialize_user(user), "profile": serialize_profile(profile)}


@router.get("/check-username/{username}")
async def auth_check_username(username: str):
    reason = user_service.check_username_format(username)
    if reason:
        return {"available": False, "message": reason}
    return {"available": await user_service.is_username_available(username)}


@router.post("/discord/unlink")
async def auth_discord_unlink(user: User = Depends(get_current_user)):
    await user_service.unlink_discord(user)
    return {"message": "Discord unlinked successfully"}
