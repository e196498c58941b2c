"""Users table CRUD used by the `/users` routes.

Functions take an open connection (see `users_api.db.connect`) so a route can
run several statements in one transaction.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from users_api.util.time import utcnow_iso


PUBLIC_COLUMNS = "user_id, username, role_id, created_at, updated_at"

# Columns a client may change through PUT/PATCH.
UPDATABLE_FIELDS = ("username", "role_id")

# Row ids are signed 64-bit in both SQLite and Postgres (BIGSERIAL).
MAX_ROW_ID = 2**63 - 1


def valid_row_id(user_id: int) -> bool:
    return -MAX_ROW_ID - 1 <= int(user_id) <= MAX_ROW_ID


def public_user(row: Any) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    return d


def list_users(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute(f"SELECT {PUBLIC_COLUMNS} FROM users ORDER BY user_id").fetchall()
    return [public_user(r) for r in rows]


def get_user(conn: Any, user_id: int) -> Optional[Dict[str, Any]]:
    if not valid_row_id(user_id):
        return None
    row = conn.execute(
        f"SELECT {PUBLIC_COLUMNS} FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()
    if row is None:
        return None
    return public_user(row)


def username_taken(conn: Any, username: str, *, exclude_user_id: int | None = None) -> bool:
    row = conn.execute("SELECT user_id FROM users WHERE username=?", (username,)).fetchone()
    if row is None:
        return False
    return exclude_user_id is None or int(row["user_id"]) != int(exclude_user_id)


def update_user_fields(conn: Any, user_id: int, fields: Mapping[str, Any]) -> int:
    """Apply only the provided fields; returns the number of rows touched.

    Unknown keys raise ValueError. `updated_at` is always refreshed when
    anything is written.
    """
    unknown = [k for k in fields if k not in UPDATABLE_FIELDS]
    if unknown:
        raise ValueError(f"unknown_fields:{','.join(sorted(unknown))}")
    if not valid_row_id(user_id):
        return 0

    # Build dynamic SQL so we only touch provided fields.
    sets: list[tuple[str, Any]] = [(k, fields[k]) for k in UPDATABLE_FIELDS if k in fields]
    if not sets:
        return 0
    sets.append(("updated_at", utcnow_iso()))

    clause = ", ".join([f"{k}=?" for k, _ in sets])
    params = [v for _, v in sets] + [int(user_id)]
    cur = conn.execute(f"UPDATE users SET {clause} WHERE user_id=?", params)
    return int(cur.rowcount or 0)


def delete_user(conn: Any, user_id: int) -> int:
    if not valid_row_id(user_id):
        return 0
    cur = conn.execute("DELETE FROM users WHERE user_id=?", (int(user_id),))
    return int(cur.rowcount or 0)
