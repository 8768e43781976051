"""Discord bot API client: guild membership / boosting status and presence."""

from dataclasses import dataclass

import httpx

from vynn.core.config import get_settings
from vynn.core.exceptions import UpstreamUnavailableError
from vynn.core.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class MemberInfo:
    is_member: bool
    is_booster: bool


NOT_A_MEMBER = MemberInfo(is_member=False, is_booster=False)


def _client() -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=settings.discord_bot_api_url,
        timeout=settings.discord_bot_timeout_seconds,
    )


async def get_member_info(discord_id: str, client: httpx.AsyncClient | None = None) -> MemberInfo:
    """
    Membership and boosting status in the official server.
    404 means the user is not in the server; any other failure raises UpstreamUnavailableError.
    """
    own_client = client is None
    client = client or _client()
    try:
        resp = await client.get(f"/member/{discord_id}")
        if resp.status_code == 404:
            return NOT_A_MEMBER
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log.warning("discord_member_lookup_failed", discord_id=discord_id, error=str(e))
        raise UpstreamUnavailableError("Discord bot API unavailable") from e
    finally:
        if own_client:
            await client.aclose()
    if not isinstance(data, dict):
        raise UpstreamUnavailableError("Unexpected Discord bot API response")
    return MemberInfo(
        is_member=bool(data.get("is_member")),
        is_booster=bool(data.get("is_booster")),
    )


async def get_presence(discord_id: str, client: httpx.AsyncClient | None = None) -> dict | None:
    """Presence data, or None when the bot shares no server with the user or the API fails."""
    if not discord_id:
        return None
    own_client = client is None
    client = client or _client()
    try:
        resp = await client.get(f"/presence/{discord_id}")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json() or None
    except (httpx.HTTPError, ValueError) as e:
        log.warning("discord_presence_lookup_failed", discord_id=discord_id, error=str(e))
        return None
    finally:
        if own_client:
            await client.aclose()
