"""Reconcile provider identities with local user records."""

from __future__ import annotations

import logging

import aiosqlite

from guildhub.db.queries import users as user_queries
from guildhub.errors import ConflictError, PersistenceError
from guildhub.models.user import ProviderIdentity, User
from guildhub.utils.validators import is_valid_email, normalize_email

logger = logging.getLogger(__name__)

LEGACY_NO_DISCRIMINATOR = "0"


def format_display_name(name: str | None, discriminator: str | None) -> str | None:
    """Legacy ``name#1234`` when a real discriminator is present, else the bare name."""
    if name and discriminator and discriminator != LEGACY_NO_DISCRIMINATOR:
        return f"{name}#{discriminator}"
    return name


def profile_fields(identity: ProviderIdentity) -> dict:
    email = normalize_email(identity.email)
    if email is not None and not is_valid_email(email):
        raise PersistenceError(f"invalid email for external_id {identity.external_id}")
    return {
        "display_name": format_display_name(identity.name, identity.discriminator),
        "avatar_url": identity.avatar_url,
        "email": email,
    }


async def reconcile(db: aiosqlite.Connection, identity: ProviderIdentity) -> User:
    """Create or update the user for ``identity``.

    The external id is the only lookup key. Profile fields from the provider
    always overwrite the stored copy; ``is_admin`` is never touched. A
    uniqueness conflict on create means a concurrent sign-in created the row
    first, so the existing record is re-read and returned.
    """
    fields = profile_fields(identity)

    existing = await user_queries.get_user_by_external_id(db, identity.external_id)
    if existing is not None:
        return await user_queries.update_user(db, existing.id, **fields)

    try:
        user = await user_queries.create_user(db, identity.external_id, **fields)
    except ConflictError:
        logger.info("Concurrent first sign-in for external_id %s; re-reading", identity.external_id)
        user = await user_queries.get_user_by_external_id(db, identity.external_id)
        if user is None:
            raise PersistenceError(
                f"conflict on external_id {identity.external_id} but no record found"
            ) from None
        return user

    logger.info("Created user %s for external_id %s", user.id, user.external_id)
    return user
