"""Admin-only routes."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends

from guildhub.auth.context import AuthContext, get_auth_context, require_admin
from guildhub.db.queries import users as user_queries
from guildhub.models.user import User

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/users")
async def list_users(
    role: Literal["admin", "member"] | None = None,
    auth: AuthContext = Depends(get_auth_context),
):
    admin = None if role is None else role == "admin"
    users: list[User] = await user_queries.list_users(auth.db, admin=admin)
    return {"items": [u.public_dict() for u in users], "total": len(users)}
