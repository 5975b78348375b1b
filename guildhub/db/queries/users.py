from __future__ import annotations

import aiosqlite

from guildhub.errors import ConflictError, PersistenceError
from guildhub.models.user import User

PROFILE_FIELDS = ("display_name", "avatar_url", "email")


def _to_user(row: aiosqlite.Row | None) -> User | None:
    if row is None:
        return None
    data = dict(row)
    data["is_admin"] = bool(data.get("is_admin"))
    return User(**data)


async def get_user(db: aiosqlite.Connection, user_id: int) -> User | None:
    async with db.execute("SELECT * FROM users WHERE id = ?", (user_id,)) as cursor:
        return _to_user(await cursor.fetchone())


async def get_user_by_external_id(db: aiosqlite.Connection, external_id: str) -> User | None:
    async with db.execute(
        "SELECT * FROM users WHERE external_id = ?", (external_id,)
    ) as cursor:
        return _to_user(await cursor.fetchone())


async def create_user(
    db: aiosqlite.Connection,
    external_id: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
    email: str | None = None,
) -> User:
    """Insert a new user. Raises ConflictError if ``external_id`` is taken.

    The insert never fails on the unique key, so a conflict leaves no
    statement to roll back on the shared connection.
    """
    try:
        cursor = await db.execute(
            """INSERT INTO users (external_id, display_name, avatar_url, email)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(external_id) DO NOTHING""",
            (external_id, display_name, avatar_url, email),
        )
        await db.commit()
    except aiosqlite.Error as exc:
        raise PersistenceError(str(exc)) from exc

    if cursor.rowcount == 0:
        raise ConflictError(f"user with external_id {external_id!r} already exists")

    user = await get_user(db, cursor.lastrowid)
    if user is None:
        raise PersistenceError(f"user {cursor.lastrowid} vanished after insert")
    return user


async def update_user(db: aiosqlite.Connection, user_id: int, **fields) -> User:
    """Overwrite profile fields. ``is_admin`` is not updatable here."""
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")

    assignments = ", ".join(f"{name}=?" for name in fields)
    sets = f"{assignments}, updated_at=datetime('now')" if assignments else "updated_at=datetime('now')"
    try:
        await db.execute(
            f"UPDATE users SET {sets} WHERE id=?",
            (*fields.values(), user_id),
        )
        await db.commit()
    except aiosqlite.Error as exc:
        raise PersistenceError(str(exc)) from exc

    user = await get_user(db, user_id)
    if user is None:
        raise PersistenceError(f"user {user_id} does not exist")
    return user


async def list_users(db: aiosqlite.Connection, admin: bool | None = None) -> list[User]:
    sql = "SELECT * FROM users"
    params: tuple = ()
    if admin is not None:
        sql += " WHERE is_admin = ?"
        params = (int(admin),)
    sql += " ORDER BY id"
    async with db.execute(sql, params) as cursor:
        return [_to_user(row) for row in await cursor.fetchall()]


async def count_users(db: aiosqlite.Connection) -> int:
    async with db.execute("SELECT COUNT(*) FROM users") as cursor:
        row = await cursor.fetchone()
        return row[0]


async def set_admin(db: aiosqlite.Connection, external_id: str, is_admin: bool) -> User | None:
    """Grant or revoke admin. Only called from administrative tooling."""
    await db.execute(
        "UPDATE users SET is_admin=?, updated_at=datetime('now') WHERE external_id=?",
        (int(is_admin), external_id),
    )
    await db.commit()
    return await get_user_by_external_id(db, external_id)
