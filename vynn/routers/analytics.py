from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from vynn.deps import get_current_user
from vynn.models.user import User
from vynn.models.visit_session import ClickType
from vynn.services import analytics as analytics_service
from vynn.services.users import ensure_profile

router = APIRouter()


class StartSessionRequest(BaseModel):
    profile_id: PydanticObjectId
    visitor_id: str = Field(..., min_length=1, max_length=100)
    referrer: str | None = None


class HeartbeatRequest(BaseModel):
    session_id: PydanticObjectId


class ClickRequest(BaseModel):
    session_id: PydanticObjectId | None = None
    link_id: str | None = None
    url: str = ""
    type: ClickType = "link"


@router.post("/start")
async def analytics_start(body: StartSessionRequest, request: Request):
    """Open a visit session for a public profile. Crawlers get `ignored` and nothing is stored."""
    session = await analytics_service.start_session(
        body.profile_id,
        body.visitor_id,
        request.headers.get("user-agent", ""),
        body.referrer or request.headers.get("referer"),
    )
    if session is None:
        return {"ignored": True}
    return {"session_id": str(session.id)}


@router.put("/heartbeat")
async def analytics_heartbeat(body: HeartbeatRequest):
    duration = await analytics_service.heartbeat(body.session_id)
    return {"success": True, "duration": duration}


@router.post("/click")
async def analytics_click(body: ClickRequest):
    await analytics_service.track_click(body.session_id, body.link_id, body.url, body.type)
    return {"success": True}


@router.get("/stats")
async def analytics_stats(
    range: analytics_service.TimeRange = Query("7d"),
    user: User = Depends(get_current_user),
):
    """Dashboard numbers for the caller's own profile."""
    profile = await ensure_profile(user)
    return await analytics_service.profile_stats(profile, range)


@router.get("/sessions")
async def analytics_sessions(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
):
    profile = await ensure_profile(user)
    return await analytics_service.recent_sessions(profile, limit)
