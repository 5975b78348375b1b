"""Session and anti-forgery middleware for FastAPI."""

from __future__ import annotations

import logging
import re
import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from guildhub.auth.sessions import delete_session, load_session, save_session
from guildhub.config import settings
from guildhub.db.database import get_db
from guildhub.models.common import error_body
from guildhub.models.session import Session

logger = logging.getLogger(__name__)

SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}

# The provider redirects the browser here; it cannot carry our token.
CSRF_EXEMPT_PATTERNS = (
    re.compile(r"^/auth/[^/]+/callback$"),
    re.compile(r"^/auth/failure$"),
)

CSRF_HEADER = "x-csrf-token"


class SessionMiddleware(BaseHTTPMiddleware):
    """Loads the cookie-named session into ``request.state.session``.

    The session is written back only when the request changed it. A session
    whose id was rotated by ``Session.reset()`` replaces the old row.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            db = await get_db()
        except RuntimeError:
            return await call_next(request)

        cookie_value = request.cookies.get(settings.session_cookie_name)
        session = await load_session(db, cookie_value) if cookie_value else None
        loaded_id = session.id if session else None
        if session is None:
            session = Session()

        before = session.state()
        request.state.session = session

        response = await call_next(request)

        if session.state() == before:
            if cookie_value and loaded_id is None:
                # Stale or expired cookie
                response.delete_cookie(settings.session_cookie_name)
            return response

        if loaded_id and session.id != loaded_id:
            await delete_session(db, loaded_id)

        if session.is_empty and session.id != loaded_id:
            response.delete_cookie(settings.session_cookie_name)
            return response

        await save_session(db, session)
        response.set_cookie(
            key=settings.session_cookie_name,
            value=session.id,
            httponly=True,
            samesite="lax",
            max_age=settings.session_ttl_hours * 3600,
            secure=settings.secure_cookies,
        )
        return response


def is_csrf_exempt(path: str) -> bool:
    return any(pattern.match(path) for pattern in CSRF_EXEMPT_PATTERNS)


class CSRFMiddleware(BaseHTTPMiddleware):
    """Rejects state-mutating requests without the session's CSRF token.

    Requests carrying an empty session (no user, no token issued) pass, so
    an anonymous DELETE /logout still gets the normal signed-out redirect.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method in SAFE_METHODS or is_csrf_exempt(request.url.path):
            return await call_next(request)

        session: Session | None = getattr(request.state, "session", None)
        # No identity and no issued token: nothing a forged request could act as
        if session is None or session.is_empty:
            return await call_next(request)

        provided = request.headers.get(CSRF_HEADER, "")
        expected = session.csrf_token or ""
        if not expected or not secrets.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Rejected %s %s: invalid CSRF token", request.method, request.url.path)
            return JSONResponse(
                status_code=403,
                content=error_body("FORBIDDEN", "Invalid authenticity token"),
            )

        return await call_next(request)
