from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from users_api.config import Config
from users_api.errors import BadRequest, InternalError, NotFound, Unauthorized
from users_api.models import Identity, Token
from users_api.util.time import utcnow

from .security import burn_verify, create_access_token, hash_password, verify_password
from .store import CredentialStore, normalize_username


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


class Authenticator:
    """Verifies username/password pairs and issues access tokens.

    Holds no per-request state; one instance serves every request.
    """

    def __init__(
        self,
        cfg: Config,
        store: CredentialStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cfg = cfg
        self.store = store
        self.clock = clock

    def _reject(self, detail: str) -> Unauthorized:
        if self.cfg.AUTH_UNIFY_LOGIN_ERRORS:
            return Unauthorized("invalid_credentials")
        return Unauthorized(detail)

    def login(self, username: str, password: str) -> Token:
        u = normalize_username(username)
        if not u or not password:
            raise Unauthorized("invalid_credentials")

        cred = self.store.find_user_by_username(u)
        if cred is None:
            burn_verify(password, rounds=self.cfg.AUTH_PASSWORD_ROUNDS)
            _debug(f"login failed: unknown user {u!r}")
            if self.cfg.AUTH_UNIFY_LOGIN_ERRORS:
                raise Unauthorized("invalid_credentials")
            raise NotFound("user_not_found")

        if not cred.password_hash:
            burn_verify(password, rounds=self.cfg.AUTH_PASSWORD_ROUNDS)
            _debug(f"login failed: no password set for {u!r}")
            raise self._reject("password_not_set")

        if not verify_password(password, cred.password_hash):
            _debug(f"login failed: bad password for {u!r}")
            raise Unauthorized("invalid_credentials")

        identity = Identity(user_id=cred.user_id, username=cred.username)
        try:
            value, issued_at, expires_at = create_access_token(
                secret=self.cfg.AUTH_JWT_SECRET,
                user_id=identity.user_id,
                username=identity.username,
                issued_at=self.clock(),
                ttl_seconds=self.cfg.AUTH_TOKEN_TTL_SECONDS,
            )
        except Exception as e:
            _debug(f"token signing failed: {type(e).__name__}")
            raise InternalError() from e

        return Token(value=value, identity=identity, issued_at=issued_at, expires_at=expires_at)

    def register(self, username: str, password: str, role_id: Any) -> int:
        u = normalize_username(username)
        if not u:
            raise BadRequest("username_blank")
        if not password:
            raise BadRequest("password_blank")
        if isinstance(role_id, bool) or not isinstance(role_id, int):
            raise BadRequest("role_id_invalid")
        if not -(2**63) <= role_id < 2**63:
            raise BadRequest("role_id_invalid")

        try:
            password_hash = hash_password(password, rounds=self.cfg.AUTH_PASSWORD_ROUNDS)
        except Exception as e:
            _debug(f"password hashing failed: {type(e).__name__}")
            raise InternalError() from e

        user_id = self.store.create_user(u, password_hash, role_id)
        _debug(f"registered user_id={user_id} username={u!r}")
        return user_id


def bootstrap_admin_if_needed(cfg: Config, authenticator: Authenticator) -> Optional[int]:
    """Create the first account if the users table is empty.

    Every /users route needs a token, so a fresh database would otherwise have
    no way in. Controlled via environment variables:

    - AUTH_BOOTSTRAP_ADMIN_USERNAME (default: admin)
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD (default: admin)
    - AUTH_BOOTSTRAP_ADMIN_ROLE_ID (default: 1)

    This only runs when there are 0 rows in `users`.
    """

    if authenticator.store.count_users() > 0:
        return None

    username = normalize_username(cfg.AUTH_BOOTSTRAP_ADMIN_USERNAME)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD

    # If env explicitly clears these, don't create anything.
    if not username or not password:
        return None

    return authenticator.register(username, password, int(cfg.AUTH_BOOTSTRAP_ADMIN_ROLE_ID))
