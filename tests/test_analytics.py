"""Visit sessions, click tracking, the owner dashboard and the admin metrics."""

from datetime import datetime, timedelta

import pytest
from beanie import PydanticObjectId

from vynn.core.exceptions import NotFoundError
from vynn.models.profile import Profile, ProfileLink
from vynn.models.visit_session import VisitSession
from vynn.services import analytics
from vynn.services.users import ensure_profile

pytestmark = pytest.mark.asyncio

IPHONE = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"
DESKTOP = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0"


async def _profile_with_link(make_user, username: str):
    user = await make_user(username)
    profile = await ensure_profile(user)
    profile.links.append(ProfileLink(title="Portfolio", url="https://example.com"))
    await profile.save()
    return user, profile


async def test_crawlers_are_not_recorded(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    session = await analytics.start_session(profile.id, "v1", "Googlebot/2.1 (+http://www.google.com/bot.html)")
    assert session is None
    assert await VisitSession.find_all().count() == 0


async def test_start_session_records_device_and_referrer(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    session = await analytics.start_session(profile.id, "visitor-1", IPHONE, "https://discord.com/x")
    stored = await VisitSession.get(session.id)
    assert stored.device_type == "mobile"
    assert stored.browser == "Mozilla/5.0"
    assert stored.referrer == "https://discord.com/x"
    assert (stored.country, stored.country_code) == ("Unknown", "UN")

    # Sessions never touch the view counter
    assert (await Profile.get(profile.id)).views == 0

    with pytest.raises(NotFoundError):
        await analytics.start_session(PydanticObjectId(), "visitor-1", DESKTOP)


async def test_heartbeat_measures_from_session_start(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    session = await analytics.start_session(profile.id, "visitor-1", DESKTOP)
    session.started_at = datetime.utcnow() - timedelta(seconds=42)
    await session.save()

    duration = await analytics.heartbeat(session.id)
    assert 42 <= duration < 60
    assert (await VisitSession.get(session.id)).duration == duration

    with pytest.raises(NotFoundError):
        await analytics.heartbeat(PydanticObjectId())


async def test_link_click_is_logged_and_counted(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    link_id = str(profile.links[0].id)
    session = await analytics.start_session(profile.id, "visitor-1", DESKTOP)

    await analytics.track_click(session.id, link_id, "https://example.com", "link")
    await analytics.track_click(None, link_id, "https://example.com", "link")
    await analytics.track_click(session.id, None, "https://twitter.com/alice", "social")

    stored = await VisitSession.get(session.id)
    assert [c.type for c in stored.clicks] == ["link", "social"]
    assert (await Profile.get(profile.id)).links[0].clicks == 2


async def test_profile_stats(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    link_id = str(profile.links[0].id)
    first = await analytics.start_session(profile.id, "visitor-1", IPHONE, "https://t.co/x")
    await analytics.start_session(profile.id, "visitor-1", IPHONE, None)
    idle = await analytics.start_session(profile.id, "visitor-2", DESKTOP, "https://t.co/y")
    old = await analytics.start_session(profile.id, "visitor-3", DESKTOP, None)
    await analytics.track_click(first.id, link_id, "https://example.com", "link")

    idle.last_ping_at = datetime.utcnow() - timedelta(minutes=5)
    await idle.save()
    old.started_at = old.last_ping_at = datetime.utcnow() - timedelta(days=10)
    await old.save()

    out = await analytics.profile_stats(profile, "7d")
    assert out["stats"] == {
        "total_views": 3,
        "unique_visitors": 2,
        "ctr": 33,
        "avg_time_seconds": 0,
        "bounce_rate": 67,
        "live_visitors": 2,
    }
    assert len(out["views_data"]) == 7
    assert out["views_data"][-1]["views"] == 3
    assert {d["label"]: d["count"] for d in out["devices"]} == {"Mobile": 2, "Desktop": 1}
    assert {r["source"]: r["count"] for r in out["referrers"]} == {"Twitter / X": 2, "Direct / None": 1}
    assert out["locations"] == [{"code": "UN", "count": 3, "percent": 100}]
    assert out["link_performance"] == [{"label": "Portfolio", "url": "https://example.com", "clicks": 1, "ctr": 50}]

    month = await analytics.profile_stats(profile, "30d")
    assert month["stats"]["total_views"] == 4
    assert len(month["views_data"]) == 30


async def test_profile_stats_without_visits(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    out = await analytics.profile_stats(profile, "24h")
    assert out["stats"]["total_views"] == 0
    assert out["stats"]["ctr"] == 0
    assert out["link_performance"] == []


async def test_recent_sessions_newest_first(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    older = await analytics.start_session(profile.id, "visitor-abcdefghijk", DESKTOP)
    older.started_at = datetime.utcnow() - timedelta(hours=1)
    await older.save()
    newer = await analytics.start_session(profile.id, "visitor-2", IPHONE)
    await analytics.track_click(newer.id, None, "https://a", "other")
    await analytics.track_click(newer.id, None, "https://b", "other")

    rows = await analytics.recent_sessions(profile)
    assert [r["id"] for r in rows] == [str(newer.id), str(older.id)]
    assert rows[0]["activity"] == "Clicked 2 Links"
    assert rows[1]["activity"] == "Viewed"
    assert rows[1]["visitor_id"] == "visitor-"
    assert len(await analytics.recent_sessions(profile, limit=1)) == 1


async def test_user_metrics_include_referral_network(make_user):
    alice, profile = await _profile_with_link(make_user, "alice")
    await make_user("bob", referred_by=alice.id, referred_by_code=alice.referral_code)
    await analytics.start_session(profile.id, "visitor-1", IPHONE, "https://discord.com/x")

    out = await analytics.user_metrics(alice.id)
    assert out["username"] == "alice"
    assert [r["username"] for r in out["referral_network"]] == ["bob"]
    assert out["analytics"]["total_unique_visitors"] == 1
    assert out["analytics"]["device_breakdown"] == {"mobile": 1}
    assert out["profile"]["links"][0]["title"] == "Portfolio"

    with pytest.raises(NotFoundError):
        await analytics.user_metrics(PydanticObjectId())


async def test_admin_activity_counts_today(make_user):
    _, profile = await _profile_with_link(make_user, "alice")
    await analytics.start_session(profile.id, "visitor-1", DESKTOP)

    out = await analytics.admin_activity()
    assert len(out["user_growth"]) == 7
    assert out["user_growth"][-1]["users"] == 1
    assert out["activity"][-1]["views"] == 1
