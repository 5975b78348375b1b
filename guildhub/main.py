"""GuildHub — FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from guildhub.auth.middleware import CSRFMiddleware, SessionMiddleware
from guildhub.auth.sessions import cleanup_expired_sessions
from guildhub.config import settings
from guildhub.db.database import close_db, get_db, init_db
from guildhub.errors import AuthRedirect

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


async def _session_cleanup_loop():
    """Background task: clean up expired sessions every hour."""
    while True:
        await asyncio.sleep(3600)
        try:
            db = await get_db()
            deleted = await cleanup_expired_sessions(db)
            if deleted:
                logger.info("Session cleanup: removed %d expired sessions", deleted)
        except Exception:
            logger.exception("Session cleanup failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting GuildHub server...")
    await init_db()
    cleanup_task = asyncio.create_task(_session_cleanup_loop())
    logger.info("GuildHub server ready")
    yield

    cleanup_task.cancel()
    await close_db()
    logger.info("GuildHub server stopped")


app = FastAPI(
    title="GuildHub",
    description="Guild management: Discord sign-in and sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware order: Starlette LIFO — last added runs outermost (first).
# We want: request → Session → CSRF → route handlers
# CSRF reads the session, so Session must be added last.
app.add_middleware(CSRFMiddleware)
app.add_middleware(SessionMiddleware)


@app.exception_handler(AuthRedirect)
async def auth_redirect_handler(request: Request, exc: AuthRedirect):
    """Guard failures end the request with a redirect and a flashed alert."""
    session = getattr(request.state, "session", None)
    if session is not None and exc.alert:
        session.flash(alert=exc.alert)
    return RedirectResponse(exc.location, status_code=exc.status_code)


# Import and register routers
from guildhub.auth.callbacks import router as auth_router
from guildhub.api.pages import router as pages_router
from guildhub.api.sessions import router as sessions_router
from guildhub.api.admin import router as admin_router

app.include_router(auth_router)
app.include_router(pages_router)
app.include_router(sessions_router)
app.include_router(admin_router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "guildhub", "version": "0.1.0"}
