"""Server-side session storage."""

from __future__ import annotations

import aiosqlite

from guildhub.config import settings
from guildhub.models.session import Session


def _ttl_modifier() -> str:
    return f"+{settings.session_ttl_hours} hours"


async def load_session(db: aiosqlite.Connection, session_id: str) -> Session | None:
    """Return the session, or None if it is unknown or expired."""
    async with db.execute(
        "SELECT * FROM sessions WHERE id = ? AND expires_at > datetime('now')",
        (session_id,),
    ) as cursor:
        row = await cursor.fetchone()
        return Session(**dict(row)) if row else None


async def save_session(db: aiosqlite.Connection, session: Session) -> None:
    """Insert or update the session and slide its expiry forward."""
    await db.execute(
        """INSERT INTO sessions
           (id, user_id, return_to, flash_notice, flash_alert, csrf_token, expires_at)
           VALUES (?, ?, ?, ?, ?, ?, datetime('now', ?))
           ON CONFLICT(id) DO UPDATE SET
             user_id=excluded.user_id,
             return_to=excluded.return_to,
             flash_notice=excluded.flash_notice,
             flash_alert=excluded.flash_alert,
             csrf_token=excluded.csrf_token,
             expires_at=excluded.expires_at""",
        (
            session.id,
            session.user_id,
            session.return_to,
            session.flash_notice,
            session.flash_alert,
            session.csrf_token,
            _ttl_modifier(),
        ),
    )
    await db.commit()


async def delete_session(db: aiosqlite.Connection, session_id: str) -> None:
    await db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
    await db.commit()


async def cleanup_expired_sessions(db: aiosqlite.Connection) -> int:
    """Delete expired sessions. Returns count deleted."""
    result = await db.execute("DELETE FROM sessions WHERE expires_at <= datetime('now')")
    await db.commit()
    return result.rowcount
