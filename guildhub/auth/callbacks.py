"""OAuth routes: authorize redirect, provider callback and failure path."""

from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from guildhub.auth.context import AuthContext, get_auth_context
from guildhub.auth.discord_oauth import PROVIDER_DISPLAY_NAMES, DiscordOAuthClient, get_identity_provider
from guildhub.config import settings
from guildhub.errors import MissingAssertion, PersistenceError, ProviderFailure
from guildhub.models.user import ProviderIdentity
from guildhub.services import user_service
from guildhub.services.state_store import StateStore, get_state_store
from guildhub.utils.validators import humanize, is_safe_redirect_path, sanitize_error_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DEFAULT_PROVIDER_NAME = "Discord"

NO_DATA_RECEIVED = "Authentication failed: No data received from {provider}."
ACCOUNT_CREATION_FAILED = "Failed to create account. Please try again."
SIGN_IN_ERROR = "An error occurred during sign in. Please try again."
SIGNED_IN = "Successfully signed in with {provider}!"


def _landing(
    auth: AuthContext,
    notice: str | None = None,
    alert: str | None = None,
    location: str | None = None,
) -> RedirectResponse:
    auth.session.flash(notice=notice, alert=alert)
    return RedirectResponse(location or settings.landing_path, status_code=302)


def _failure_redirect(provider: str, code: str, description: str | None = None) -> RedirectResponse:
    params = {"message": code, "strategy": provider}
    if description:
        params["error_description"] = description
    return RedirectResponse(f"/auth/failure?{urlencode(params)}", status_code=302)


def _provider_display_name(strategy: str | None) -> str:
    return PROVIDER_DISPLAY_NAMES.get(strategy or "", DEFAULT_PROVIDER_NAME)


# Declared before "/{provider}" so it is not captured as a provider name.
@router.get("/failure")
async def oauth_failure(
    message: str | None = None,
    error_description: str | None = None,
    strategy: str | None = None,
    auth: AuthContext = Depends(get_auth_context),
):
    """Provider reported that authentication was not completed."""
    code = sanitize_error_code(message)
    logger.error("OAuth failure: %s - %s", code, error_description or "Authentication failed")
    provider_name = _provider_display_name(strategy)
    return _landing(auth, alert=f"{provider_name} authentication failed: {humanize(code)}")


@router.get("/{provider}")
async def oauth_authorize(
    oauth: DiscordOAuthClient = Depends(get_identity_provider),
    states: StateStore = Depends(get_state_store),
):
    """Redirect to the provider's authorization page."""
    state = secrets.token_urlsafe(32)
    await states.put_state(state)
    return RedirectResponse(oauth.authorize_url(state), status_code=302)


@router.api_route("/{provider}/callback", methods=["GET", "POST"])
async def oauth_callback(
    provider: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    oauth: DiscordOAuthClient = Depends(get_identity_provider),
    states: StateStore = Depends(get_state_store),
    auth: AuthContext = Depends(get_auth_context),
):
    """Handle the provider's redirect back after authorization.

    Exempt from CSRF token checks: the request originates from the
    provider's redirect, and the OAuth ``state`` parameter is verified instead.
    """
    if error:
        logger.warning("Provider %s returned error %s: %s", provider, error, error_description)
        return _failure_redirect(provider, sanitize_error_code(error), error_description)

    if not state or not await states.validate_state(state):
        logger.warning("OAuth callback for %s with missing or unknown state", provider)
        return _failure_redirect(provider, "csrf_detected", "OAuth state mismatch")

    try:
        identity = await oauth.fetch_identity(code)
    except ProviderFailure as exc:
        logger.error("OAuth provider failure: %s - %s", exc.code, exc.description)
        return _failure_redirect(provider, exc.code)
    except MissingAssertion as exc:
        logger.warning("OAuth callback without identity data: %s", exc)
        return _landing(auth, alert=NO_DATA_RECEIVED.format(provider=oauth.display_name))
    except Exception:
        logger.exception("OAuth callback error while fetching identity")
        return _landing(auth, alert=SIGN_IN_ERROR)

    return await complete_sign_in(auth, identity, oauth.display_name)


async def complete_sign_in(auth: AuthContext, identity: ProviderIdentity, provider_name: str) -> RedirectResponse:
    """Reconcile the identity, sign the user in and redirect to the stored location."""
    try:
        user = await user_service.reconcile(auth.db, identity)
    except PersistenceError as exc:
        logger.error("Failed to create user from %s OAuth: %s", provider_name, exc)
        return _landing(auth, alert=ACCOUNT_CREATION_FAILED)
    except Exception:
        logger.exception("OAuth callback error")
        return _landing(auth, alert=SIGN_IN_ERROR)

    auth.sign_in(user)
    logger.info("User authenticated via %s: %s (ID: %s)", provider_name, user.label, user.id)
    destination = after_sign_in_path(auth)
    return _landing(auth, notice=SIGNED_IN.format(provider=provider_name), location=destination)


def after_sign_in_path(auth: AuthContext) -> str:
    """Stored ``return_to`` (read once and cleared) or the landing page."""
    stored = auth.session.pop_return_to()
    return stored if is_safe_redirect_path(stored) else settings.landing_path
