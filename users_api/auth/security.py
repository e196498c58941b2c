from __future__ import annotations

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from users_api.util.time import to_epoch


_JWT_ALG = "HS256"
DEFAULT_PASSWORD_ROUNDS = 29000


def _context(rounds: int) -> CryptContext:
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__rounds=max(1, int(rounds)),
    )


_pwd = _context(DEFAULT_PASSWORD_ROUNDS)


def hash_password(password: str, *, rounds: int | None = None) -> str:
    if not password:
        raise ValueError("password_blank")
    ctx = _pwd if rounds is None else _context(rounds)
    return ctx.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except ValueError:
        # Unknown or corrupt hash format.
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    username: str,
    issued_at: datetime,
    ttl_seconds: int,
) -> tuple[str, datetime, datetime]:
    """Sign `{user_id, username}` into a JWT.

    Returns (token, issued_at, expires_at), truncated to whole seconds so they
    match the `iat`/`exp` claims exactly.
    """
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued_at = issued_at.replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=max(1, int(ttl_seconds)))
    payload: Dict[str, Any] = {
        "user": {"user_id": int(user_id), "username": username},
        "iat": to_epoch(issued_at),
        "exp": to_epoch(expires_at),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG), issued_at, expires_at


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify the signature and return the payload.

    Expiry is not checked here; callers compare `exp` against their own clock.
    """
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(
        token,
        secret,
        algorithms=[_JWT_ALG],
        options={"require": ["exp", "iat"], "verify_exp": False, "verify_iat": False},
    )


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> str:
    return _context(rounds).hash("not-a-real-password")


def burn_verify(password: str, *, rounds: int | None = None) -> None:
    """Spend the same PBKDF2 work as a real `verify_password`, then discard it.

    Called when there is no stored hash; unknown usernames then take as long
    to reject as wrong passwords.
    """
    r = DEFAULT_PASSWORD_ROUNDS if rounds is None else int(rounds)
    _pwd.verify(password or "x", _dummy_hash(r))
