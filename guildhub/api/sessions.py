"""Session teardown."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from guildhub.auth.context import AuthContext, get_auth_context
from guildhub.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])

SIGNED_OUT = "Successfully signed out."


@router.delete("/logout")
async def logout(auth: AuthContext = Depends(get_auth_context)):
    """Clear the entire session. Safe to call when nobody is signed in."""
    user = await auth.current_user()
    if user is not None:
        logger.info("User logged out: %s (ID: %s)", user.label, user.id)

    auth.sign_out()
    auth.session.flash(notice=SIGNED_OUT)
    return RedirectResponse(settings.landing_path, status_code=303)
