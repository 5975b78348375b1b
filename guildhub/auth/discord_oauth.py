"""Discord OAuth2 client: authorize URL, code exchange and profile lookup."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from guildhub.config import settings
from guildhub.errors import MissingAssertion, ProviderFailure
from guildhub.models.common import error_body
from guildhub.models.user import ProviderIdentity

logger = logging.getLogger(__name__)

DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
DISCORD_TOKEN_URL = "https://discord.com/api/oauth2/token"
DISCORD_USER_URL = "https://discord.com/api/users/@me"
DISCORD_CDN_URL = "https://cdn.discordapp.com"

PROVIDER_DISPLAY_NAMES = {"discord": "Discord"}

HTTP_TIMEOUT = 10.0


def avatar_url_for(user_id: str, avatar_hash: str | None) -> str | None:
    if not avatar_hash:
        return None
    ext = "gif" if avatar_hash.startswith("a_") else "png"
    return f"{DISCORD_CDN_URL}/avatars/{user_id}/{avatar_hash}.{ext}"


class DiscordProfile(BaseModel):
    """Raw ``/users/@me`` fields this app reads; everything else is ignored."""

    id: StrictStr | StrictInt
    username: str | None = None
    discriminator: str | None = None
    email: str | None = None
    avatar: str | None = None


def parse_identity(payload: object) -> ProviderIdentity:
    """Validate a ``/users/@me`` payload. Raises MissingAssertion if unusable."""
    if not isinstance(payload, dict):
        raise MissingAssertion("profile payload is not an object")
    try:
        profile = DiscordProfile.model_validate(payload)
    except ValidationError as exc:
        raise MissingAssertion(f"malformed profile payload: {exc.error_count()} errors") from exc

    external_id = str(profile.id)
    if not external_id:
        raise MissingAssertion("profile payload has no user id")
    return ProviderIdentity(
        external_id=external_id,
        name=profile.username,
        discriminator=profile.discriminator,
        email=profile.email,
        avatar_url=avatar_url_for(external_id, profile.avatar),
    )


class DiscordOAuthClient:
    name = "discord"
    display_name = PROVIDER_DISPLAY_NAMES["discord"]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str = "identify email",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self._transport = transport

    def authorize_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": state,
        }
        return f"{DISCORD_AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_identity(self, code: str | None) -> ProviderIdentity:
        """Exchange ``code`` for a token and return the asserted identity."""
        if not code:
            raise MissingAssertion("callback carried no authorization code")

        async with httpx.AsyncClient(transport=self._transport, timeout=HTTP_TIMEOUT) as client:
            try:
                token_resp = await client.post(
                    DISCORD_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                raise ProviderFailure("invalid_credentials", f"token exchange failed: {exc}") from exc

            if token_resp.status_code != 200:
                raise ProviderFailure(
                    "invalid_credentials", f"token endpoint returned {token_resp.status_code}"
                )
            access_token = _json(token_resp).get("access_token")
            if not access_token:
                raise ProviderFailure("invalid_credentials", "no access token in response")

            try:
                user_resp = await client.get(
                    DISCORD_USER_URL,
                    headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                raise ProviderFailure("invalid_credentials", f"profile request failed: {exc}") from exc

        if user_resp.status_code != 200:
            raise ProviderFailure("invalid_credentials", f"profile endpoint returned {user_resp.status_code}")
        return parse_identity(_json(user_resp))


def _json(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


PROVIDERS = {
    "discord": lambda: DiscordOAuthClient(
        client_id=settings.discord_client_id,
        client_secret=settings.discord_client_secret,
        redirect_uri=f"{settings.app_base_url}/auth/discord/callback",
        scope=settings.discord_scope,
    ),
}


def get_identity_provider(provider: str) -> DiscordOAuthClient:
    """FastAPI dependency: the client for the ``{provider}`` path segment."""
    factory = PROVIDERS.get(provider)
    if factory is None:
        raise HTTPException(status_code=404, detail=error_body("NOT_FOUND", f"Unknown provider: {provider}"))
    return factory()
