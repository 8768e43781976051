"""
Visit analytics for public profiles: visit sessions with heartbeat and click tracking,
the owner's dashboard, and the admin overview.

The profile `views` counter is owned by the profile view path (it feeds view XP and view
milestones), so starting a session records the visit without touching it. Geo lookup is
not done here; sessions keep the Unknown / UN country defaults.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Literal

from beanie import PydanticObjectId
from bson import ObjectId

from vynn.core.exceptions import BadRequestError, NotFoundError
from vynn.core.logging import get_logger
from vynn.models.badge import Badge
from vynn.models.profile import Profile
from vynn.models.user import User
from vynn.models.visit_session import ClickType, DeviceType, VisitClick, VisitSession

log = get_logger(__name__)

TimeRange = Literal["24h", "7d", "30d"]

BOT_MARKERS = ("bot", "crawler", "spider")
LIVE_WINDOW = timedelta(seconds=30)
DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def is_bot(user_agent: str) -> bool:
    ua = (user_agent or "").lower()
    return any(marker in ua for marker in BOT_MARKERS)


def device_type(user_agent: str) -> DeviceType:
    ua = (user_agent or "").lower()
    if "ipad" in ua or "tablet" in ua:
        return "tablet"
    if "mobi" in ua or "android" in ua or "iphone" in ua:
        return "mobile"
    return "desktop"


def source_label(referrer: str | None) -> str:
    """Collapse a raw referrer into a dashboard source bucket."""
    ref = referrer or ""
    if "t.co" in ref or "twitter" in ref or "x.com" in ref:
        return "Twitter / X"
    if "discord" in ref:
        return "Discord"
    if "instagram" in ref:
        return "Instagram"
    if "google" in ref:
        return "Google"
    if not ref or "Direct" in ref:
        return "Direct / None"
    return "Other"


def _since(time_range: str | None, now: datetime) -> tuple[datetime, int]:
    """Window start and the number of days charted."""
    if time_range == "24h":
        return now - timedelta(hours=24), 7
    if time_range == "30d":
        return now - timedelta(days=30), 30
    return now - timedelta(days=7), 7


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def _daily_counts(dates: list[datetime], days: int, now: datetime) -> list[dict]:
    """One bucket per calendar day, oldest first, zero-filled."""
    per_day = Counter(d.date() for d in dates)
    out = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        out.append({"day": DAY_LABELS[day.weekday()], "date": day.isoformat(), "count": per_day.get(day, 0)})
    return out


# --- Visitor side ---

async def start_session(
    profile_id: PydanticObjectId,
    visitor_id: str,
    user_agent: str = "",
    referrer: str | None = None,
) -> VisitSession | None:
    """Open a visit session. Returns None for crawlers, which are not recorded."""
    if is_bot(user_agent):
        return None
    if not visitor_id:
        raise BadRequestError("Visitor ID required")
    if not await Profile.get(profile_id):
        raise NotFoundError("Profile not found")
    session = VisitSession(
        profile_id=profile_id,
        visitor_id=visitor_id,
        device_type=device_type(user_agent),
        browser=user_agent.split(" ")[0] if user_agent else "Unknown",
        referrer=referrer or "Direct",
    )
    await session.insert()
    log.info("visit_session_started", profile_id=str(profile_id), device=session.device_type)
    return session


async def heartbeat(session_id: PydanticObjectId) -> int:
    """Refresh the session's last ping; duration is measured from the session start."""
    session = await VisitSession.get(session_id)
    if not session:
        raise NotFoundError("Session not found")
    now = datetime.utcnow()
    session.last_ping_at = now
    session.duration = int((now - session.started_at).total_seconds())
    await session.save()
    return session.duration


async def track_click(
    session_id: PydanticObjectId | None,
    link_id: str | None,
    url: str = "",
    click_type: ClickType = "link",
) -> None:
    """Log a click on the session (if it still exists) and bump the link's own counter."""
    if session_id:
        session = await VisitSession.get(session_id)
        if session:
            session.clicks.append(VisitClick(link_id=link_id, url=url, type=click_type))
            await session.save()
    if click_type == "link" and link_id and ObjectId.is_valid(link_id):
        oid = PydanticObjectId(link_id)
        profile = await Profile.find_one({"links.id": oid})
        if profile:
            for link in profile.links:
                if link.id == oid:
                    link.clicks += 1
            await profile.save()


# --- Owner dashboard ---

def _link_label(profile: Profile, click: VisitClick) -> str:
    if click.type == "link":
        link = next((l for l in profile.links if str(l.id) == click.link_id), None)
        return link.title if link else click.url
    if click.type == "social":
        social = next((s for s in profile.socials if str(s.id) == click.link_id), None)
        if not social:
            return click.url
        platform = social.platform.capitalize()
        return f"{platform} ({social.username})" if social.username else platform
    return click.url


async def profile_stats(profile: Profile, time_range: str | None = "7d") -> dict:
    """Dashboard numbers for one profile over 24h / 7d (default) / 30d."""
    now = datetime.utcnow()
    since, days = _since(time_range, now)
    sessions = await VisitSession.find(
        VisitSession.profile_id == profile.id,
        VisitSession.started_at >= since,
    ).to_list()

    total = len(sessions)
    visitors = {s.visitor_id for s in sessions}
    with_clicks = sum(1 for s in sessions if s.clicks)
    avg_seconds = sum(s.duration for s in sessions) // total if total else 0
    live = await VisitSession.find(
        VisitSession.profile_id == profile.id,
        VisitSession.last_ping_at >= now - LIVE_WINDOW,
    ).count()

    devices = Counter(s.device_type for s in sessions)
    countries = Counter(s.country_code or "UN" for s in sessions)
    sources = Counter(source_label(s.referrer) for s in sessions)

    links: dict[str, dict] = {}
    for s in sessions:
        for click in s.clicks:
            key = click.link_id or click.url
            entry = links.setdefault(
                key,
                {"label": _link_label(profile, click), "url": click.url, "type": click.type, "clicks": 0, "visitors": set()},
            )
            entry["clicks"] += 1
            entry["visitors"].add(s.visitor_id)

    return {
        "stats": {
            "total_views": total,
            "unique_visitors": len(visitors),
            "ctr": _percent(with_clicks, total),
            "avg_time_seconds": avg_seconds,
            "bounce_rate": _percent(total - with_clicks, total),
            "live_visitors": live,
        },
        "views_data": [
            {"day": d["day"], "date": d["date"], "views": d["count"]}
            for d in _daily_counts([s.started_at for s in sessions], days, now)
        ],
        "devices": [
            {"label": name.capitalize(), "count": n, "percent": _percent(n, total)}
            for name, n in devices.most_common()
        ],
        "locations": [
            {"code": code, "count": n, "percent": _percent(n, total)} for code, n in countries.most_common(5)
        ],
        "referrers": [
            {"source": name, "count": n, "percent": _percent(n, total)} for name, n in sources.most_common(5)
        ],
        "link_performance": sorted(
            (
                {
                    "label": e["label"],
                    "url": e["url"],
                    "clicks": e["clicks"],
                    "ctr": _percent(len(e["visitors"]), len(visitors)),
                }
                for e in links.values()
            ),
            key=lambda e: e["clicks"],
            reverse=True,
        ),
    }


async def recent_sessions(profile: Profile, limit: int = 50) -> list[dict]:
    """Visitor log, newest first. Visitor tokens are shortened."""
    sessions = (
        await VisitSession.find(VisitSession.profile_id == profile.id)
        .sort(-VisitSession.started_at)
        .limit(limit)
        .to_list()
    )
    out = []
    for s in sessions:
        n = len(s.clicks)
        out.append(
            {
                "id": str(s.id),
                "visitor_id": s.visitor_id[:8],
                "country": s.country,
                "country_code": s.country_code,
                "device": s.device_type,
                "browser": s.browser,
                "duration": s.duration,
                "started_at": s.started_at.isoformat(),
                "activity": f"Clicked {n} Link{'s' if n > 1 else ''}" if n else "Viewed",
                "referrer": s.referrer,
            }
        )
    return out


# --- Admin ---

async def admin_overview() -> dict:
    """Collection counts and the five newest users."""
    recent = await User.find_all().sort(-User.created_at).limit(5).to_list()
    return {
        "counts": {
            "users": await User.find_all().count(),
            "profiles": await Profile.find_all().count(),
            "badges": await Badge.find_all().count(),
            "visits": await VisitSession.find_all().count(),
        },
        "recent_users": recent,
    }


async def admin_activity(days: int = 7) -> dict:
    """Sign-ups and recorded visits per day over the last `days` days."""
    now = datetime.utcnow()
    since = now - timedelta(days=days)
    users = await User.find(User.created_at >= since).to_list()
    visits = await VisitSession.find(VisitSession.started_at >= since).to_list()
    signups = _daily_counts([u.created_at for u in users], days, now)
    views = _daily_counts([v.started_at for v in visits], days, now)
    return {
        "user_growth": [{"name": d["day"], "date": d["date"], "users": d["count"]} for d in signups],
        "activity": [{"name": d["day"], "date": d["date"], "views": d["count"]} for d in views],
    }


async def user_metrics(user_id: PydanticObjectId) -> dict:
    """Everything an admin needs about one user: progression, economy, profile, visits, referral network."""
    user = await User.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    profile = await Profile.find_one(Profile.user == user.id)
    referred = await User.find(User.referred_by == user.id).sort(+User.created_at).to_list()

    visits: dict = {
        "total_unique_visitors": 0,
        "device_breakdown": {},
        "country_breakdown": {},
        "referrer_breakdown": {},
    }
    if profile:
        sessions = await VisitSession.find(VisitSession.profile_id == profile.id).to_list()
        visits = {
            "total_unique_visitors": len({s.visitor_id for s in sessions}),
            "device_breakdown": dict(Counter(s.device_type for s in sessions)),
            "country_breakdown": dict(Counter(s.country for s in sessions)),
            "referrer_breakdown": dict(Counter(s.referrer for s in sessions)),
        }

    return {
        "id": str(user.id),
        "username": user.username,
        "display_name": user.display_name,
        "email": user.email,
        "role": user.role,
        "is_verified": user.is_verified,
        "is_online": bool(user.last_login_at and datetime.utcnow() - user.last_login_at < timedelta(minutes=5)),
        "xp": user.xp,
        "level": user.level,
        "badges": [str(b) for b in user.badges],
        "credits": user.credits,
        "credit_history": [e.model_dump(mode="json") for e in user.credit_history],
        "inventory": [str(i) for i in user.inventory],
        "profile": {
            "bio": profile.bio,
            "avatar": profile.avatar,
            "banner": profile.banner,
            "links": [l.model_dump(mode="json") for l in profile.links],
            "socials": [s.model_dump(mode="json") for s in profile.socials],
            "views": profile.views,
        }
        if profile
        else None,
        "analytics": visits,
        "joined_at": user.created_at.isoformat(),
        "last_login": user.last_login_at.isoformat() if user.last_login_at else None,
        "referral_stats": user.referral_stats.model_dump(),
        "referred_by": str(user.referred_by) if user.referred_by else None,
        "code_used": user.referred_by_code,
        "referral_network": [
            {
                "id": str(r.id),
                "username": r.username,
                "email": r.email,
                "joined_at": r.created_at.isoformat(),
                "stats": r.referral_stats.model_dump(),
            }
            for r in referred
        ],
    }
