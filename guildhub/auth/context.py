"""Per-request identity context and the session guard dependencies."""

from __future__ import annotations

import logging

import aiosqlite
from fastapi import Depends, Request

from guildhub.config import settings
from guildhub.db.database import get_db
from guildhub.db.queries import users as user_queries
from guildhub.errors import AuthRedirect
from guildhub.models.session import Session
from guildhub.models.user import User

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED = "Please sign in to continue."
NOT_AUTHORIZED = "You are not authorized to access this page."


class AuthContext:
    """Current identity for one request.

    The user is looked up at most once per request, so guards and handlers
    can ask repeatedly without extra queries.
    """

    def __init__(self, db: aiosqlite.Connection, session: Session):
        self.db = db
        self.session = session
        self._user: User | None = None
        self._resolved = False

    async def current_user(self) -> User | None:
        if not self._resolved:
            if self.session.user_id is not None:
                self._user = await user_queries.get_user(self.db, self.session.user_id)
            self._resolved = True
        return self._user

    async def is_signed_in(self) -> bool:
        return await self.current_user() is not None

    def sign_in(self, user: User) -> None:
        self.session.user_id = user.id
        self._user = user
        self._resolved = True

    def sign_out(self) -> None:
        """Discard the whole session, not just the identity."""
        self.session.reset()
        self._user = None
        self._resolved = True


async def get_auth_context(request: Request) -> AuthContext:
    existing = getattr(request.state, "auth", None)
    if existing is not None:
        return existing
    session = getattr(request.state, "session", None)
    if session is None:
        # Session middleware not active; behave as an anonymous request
        session = Session()
        request.state.session = session
    auth = AuthContext(await get_db(), session)
    request.state.auth = auth
    return auth


def _full_path(request: Request) -> str:
    if request.url.query:
        return f"{request.url.path}?{request.url.query}"
    return request.url.path


async def require_signed_in(
    request: Request, auth: AuthContext = Depends(get_auth_context)
) -> User:
    """Resolve the signed-in user or abort with a redirect to the landing page."""
    user = await auth.current_user()
    if user is not None:
        return user

    path = _full_path(request)
    if path != settings.landing_path:
        auth.session.return_to = path
    raise AuthRedirect(settings.landing_path, alert=SIGN_IN_REQUIRED)


async def require_admin(user: User = Depends(require_signed_in)) -> User:
    if not user.is_admin:
        logger.info("User %s denied admin access", user.id)
        raise AuthRedirect(settings.landing_path, alert=NOT_AUTHORIZED)
    return user
