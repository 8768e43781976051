"""Discord bot API client against a mocked transport."""

import httpx
import pytest

from vynn.core.exceptions import UpstreamUnavailableError
from vynn.services import discord as discord_service

pytestmark = pytest.mark.asyncio


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="http://bot.test", transport=httpx.MockTransport(handler))


async def test_member_info_parses_flags():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/member/123"
        return httpx.Response(200, json={"is_member": True, "is_booster": False})

    async with _client(handler) as client:
        info = await discord_service.get_member_info("123", client=client)
    assert info == discord_service.MemberInfo(is_member=True, is_booster=False)


async def test_member_info_404_means_not_a_member():
    async with _client(lambda request: httpx.Response(404)) as client:
        info = await discord_service.get_member_info("123", client=client)
    assert info == discord_service.NOT_A_MEMBER


async def test_member_info_server_error_is_upstream_unavailable():
    async with _client(lambda request: httpx.Response(502)) as client:
        with pytest.raises(UpstreamUnavailableError):
            await discord_service.get_member_info("123", client=client)


async def test_member_info_connection_error_is_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamUnavailableError):
            await discord_service.get_member_info("123", client=client)


async def test_presence_returns_none_when_unknown():
    async with _client(lambda request: httpx.Response(404)) as client:
        assert await discord_service.get_presence("123", client=client) is None


async def test_presence_returns_payload():
    payload = {"status": "online", "activities": []}
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert await discord_service.get_presence("123", client=client) == payload
