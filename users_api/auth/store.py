from __future__ import annotations

from typing import Any, Optional

from users_api.db import connect, is_integrity_error
from users_api.errors import Conflict, InternalError
from users_api.models import Credential
from users_api.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[store] {msg}")


def normalize_username(username: str) -> str:
    return (username or "").strip()


def _credential(row: Any) -> Credential:
    pw = row["password_hash"]
    return Credential(
        user_id=int(row["user_id"]),
        username=str(row["username"]),
        password_hash=str(pw) if pw else None,
    )


class CredentialStore:
    """Read/write access to credentials in the users table.

    Database failures never leave this class raw: they surface as `InternalError`.
    """

    def __init__(self, db_dsn: str):
        self.db_dsn = db_dsn

    def find_user_by_username(self, username: str) -> Optional[Credential]:
        u = normalize_username(username)
        if not u:
            return None
        try:
            with connect(self.db_dsn) as conn:
                row = conn.execute(
                    "SELECT user_id, username, password_hash FROM users WHERE username=?",
                    (u,),
                ).fetchone()
        except Exception as e:
            _debug(f"lookup failed: {type(e).__name__}")
            raise InternalError() from e
        if row is None:
            return None
        return _credential(row)

    def create_user(self, username: str, password_hash: str, role_id: int) -> int:
        u = normalize_username(username)
        now = utcnow_iso()
        try:
            with connect(self.db_dsn) as conn:
                existing = conn.execute("SELECT 1 FROM users WHERE username=?", (u,)).fetchone()
                if existing is not None:
                    raise Conflict("username_exists")
                conn.execute(
                    """
                    INSERT INTO users (username, password_hash, role_id, created_at, updated_at)
                    VALUES (?,?,?,?,?)
                    """,
                    (u, password_hash, int(role_id), now, now),
                )
                row = conn.execute("SELECT user_id FROM users WHERE username=?", (u,)).fetchone()
        except Conflict:
            raise
        except Exception as e:
            if is_integrity_error(e):
                # Lost a race with a concurrent insert of the same username.
                raise Conflict("username_exists") from e
            _debug(f"insert failed: {type(e).__name__}")
            raise InternalError() from e
        if row is None:
            raise InternalError()
        return int(row["user_id"])

    def count_users(self) -> int:
        try:
            with connect(self.db_dsn) as conn:
                row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
        except Exception as e:
            _debug(f"count failed: {type(e).__name__}")
            raise InternalError() from e
        return int(row["n"])
