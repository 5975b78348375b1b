"""Tests for the Discord OAuth client, with httpx.MockTransport standing in for Discord."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from guildhub.auth.discord_oauth import (
    DISCORD_TOKEN_URL,
    DISCORD_USER_URL,
    DiscordOAuthClient,
    avatar_url_for,
    parse_identity,
)
from guildhub.errors import MissingAssertion, ProviderFailure

PROFILE = {
    "id": "123456789012345678",
    "username": "testuser",
    "discriminator": "1234",
    "email": "test@example.com",
    "avatar": "abc",
}


def _client(handler) -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://localhost:8000/auth/discord/callback",
        transport=httpx.MockTransport(handler),
    )


def _discord(profile=PROFILE, token_status=200, profile_status=200, token_body=None):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == urlsplit(DISCORD_TOKEN_URL).path:
            return httpx.Response(token_status, json=token_body if token_body is not None else {"access_token": "tok"})
        if request.url.path == urlsplit(DISCORD_USER_URL).path:
            return httpx.Response(profile_status, json=profile)
        return httpx.Response(404)

    return handler, requests


# ---------------------------------------------------------------------------
# parse_identity
# ---------------------------------------------------------------------------

class TestParseIdentity:
    def test_full_payload(self):
        identity = parse_identity(PROFILE)
        assert identity.external_id == "123456789012345678"
        assert identity.name == "testuser"
        assert identity.discriminator == "1234"
        assert identity.email == "test@example.com"
        assert identity.avatar_url == "https://cdn.discordapp.com/avatars/123456789012345678/abc.png"

    def test_numeric_id_is_stringified(self):
        assert parse_identity({"id": 42}).external_id == "42"

    def test_optional_fields_missing(self):
        identity = parse_identity({"id": "1"})
        assert identity.name is None
        assert identity.email is None
        assert identity.avatar_url is None

    @pytest.mark.parametrize("payload", [None, [], "text", {}, {"id": ""}, {"username": "x"}])
    def test_missing_id(self, payload):
        with pytest.raises(MissingAssertion):
            parse_identity(payload)

    def test_malformed_field(self):
        with pytest.raises(MissingAssertion):
            parse_identity({"id": "1", "username": {"nested": True}})

    def test_non_string_avatar(self):
        with pytest.raises(MissingAssertion):
            parse_identity({"id": "1", "username": "x", "avatar": 123})

    @pytest.mark.parametrize("bad_id", [True, ["1"], {"id": "1"}, 1.5])
    def test_non_scalar_id(self, bad_id):
        with pytest.raises(MissingAssertion):
            parse_identity({"id": bad_id, "username": "x"})

    def test_extra_fields_ignored(self):
        identity = parse_identity({**PROFILE, "verified": True, "flags": 0})
        assert identity.external_id == PROFILE["id"]


def test_animated_avatar_is_gif():
    assert avatar_url_for("1", "a_xyz").endswith("/avatars/1/a_xyz.gif")
    assert avatar_url_for("1", None) is None


def test_authorize_url():
    client = DiscordOAuthClient("cid", "secret", "http://localhost:8000/auth/discord/callback")
    url = urlsplit(client.authorize_url("st4te"))
    query = parse_qs(url.query)
    assert url.netloc == "discord.com"
    assert query["client_id"] == ["cid"]
    assert query["state"] == ["st4te"]
    assert query["response_type"] == ["code"]


# ---------------------------------------------------------------------------
# fetch_identity
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_identity():
    handler, requests = _discord()
    identity = await _client(handler).fetch_identity("the-code")

    assert identity.external_id == PROFILE["id"]
    token_request, profile_request = requests
    form = parse_qs(token_request.content.decode())
    assert form["code"] == ["the-code"]
    assert form["grant_type"] == ["authorization_code"]
    assert profile_request.headers["authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_no_code_is_missing_assertion():
    handler, requests = _discord()
    with pytest.raises(MissingAssertion):
        await _client(handler).fetch_identity(None)
    assert requests == []


@pytest.mark.asyncio
async def test_rejected_code():
    handler, _ = _discord(token_status=400, token_body={"error": "invalid_grant"})
    with pytest.raises(ProviderFailure) as exc_info:
        await _client(handler).fetch_identity("bad")
    assert exc_info.value.code == "invalid_credentials"


@pytest.mark.asyncio
async def test_token_response_without_token():
    handler, _ = _discord(token_body={"token_type": "Bearer"})
    with pytest.raises(ProviderFailure):
        await _client(handler).fetch_identity("code")


@pytest.mark.asyncio
async def test_profile_request_fails():
    handler, _ = _discord(profile_status=401)
    with pytest.raises(ProviderFailure):
        await _client(handler).fetch_identity("code")


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(ProviderFailure) as exc_info:
        await _client(handler).fetch_identity("code")
    assert exc_info.value.code == "invalid_credentials"


@pytest.mark.asyncio
async def test_profile_without_id():
    handler, _ = _discord(profile={"username": "ghost"})
    with pytest.raises(MissingAssertion):
        await _client(handler).fetch_identity("code")
