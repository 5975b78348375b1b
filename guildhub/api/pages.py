"""Landing page and the signed-in user's profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from guildhub.auth.context import AuthContext, get_auth_context, require_signed_in
from guildhub.models.user import User

router = APIRouter(tags=["pages"])


@router.get("/")
async def landing(auth: AuthContext = Depends(get_auth_context)):
    user = await auth.current_user()
    return {
        "service": "guildhub",
        "signed_in": await auth.is_signed_in(),
        "user": user.public_dict() if user else None,
        "flash": auth.session.consume_flash(),
        "csrf_token": auth.session.ensure_csrf_token(),
        "login_url": "/auth/discord",
    }


@router.get("/me")
async def me(user: User = Depends(require_signed_in)):
    return {"user": user.public_dict()}
