from unittest.mock import AsyncMock, MagicMock

import pytest

from xp_badge_system.client.http_client import HttpClient
from xp_badge_system.exceptions import HTTPRequestError


def make_response(status=200, payload=None, text="", reason="OK", url="https://api.example.com/x"):
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.url = url
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)
    return response


def make_session(response):
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = context
    session.post.return_value = context
    session.close = AsyncMock()
    return session


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_sends_bearer_token():
    session = make_session(make_response(payload={"ok": True}))
    client = HttpClient("https://api.example.com/", token="secret", session=session)

    assert await client.get("/status", params={"a": 1}) == {"ok": True}

    url = session.get.call_args.args[0]
    headers = session.get.call_args.kwargs["headers"]
    assert url == "https://api.example.com/status"
    assert headers["Authorization"] == "Bearer secret"
    assert session.get.call_args.kwargs["params"] == {"a": 1}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_2xx_raises_with_body():
    session = make_session(make_response(status=503, text="maintenance", reason="Service Unavailable"))
    client = HttpClient("https://api.example.com", session=session)

    with pytest.raises(HTTPRequestError) as exc_info:
        await client.post("/things", data={"x": 1})

    error = exc_info.value
    assert error.status == 503
    assert error.method == "POST"
    assert error.body == "maintenance"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("payload,expected", [
    ({"user": {"xp": 340}}, 340),
    ({"xp": 15}, 15),
    ({"user": {}}, 0),
    ({"user": {"xp": "lots"}}, 0),
])
async def test_get_learner_xp(payload, expected):
    session = make_session(make_response(payload=payload))
    client = HttpClient("https://api.example.com", session=session)

    assert await client.get_learner_xp("u1") == expected
    assert session.get.call_args.args[0] == "https://api.example.com/admin/users/u1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_leaderboard():
    rows = [{"name": "Ada", "xp": 900}]
    session = make_session(make_response(payload=rows))
    client = HttpClient("https://api.example.com", session=session)

    assert await client.get_leaderboard(5) == rows
    assert session.get.call_args.kwargs["params"] == {"limit": 5}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_borrowed_session_is_not_closed():
    session = make_session(make_response())
    async with HttpClient("https://api.example.com", session=session):
        pass
    session.close.assert_not_awaited()
