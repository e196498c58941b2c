import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    # python-dotenv is optional at runtime; plain env vars still work.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Built once at startup and shared read-only by every request.
    Provide secrets via environment variables or a .env file.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set USERS_API_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: USERS_API_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("USERS_API_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("USERS_API_DB_PATH", "./users_api.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_TTL_SECONDS: int = int(os.environ.get("AUTH_TOKEN_TTL_SECONDS", "3600"))  # 1 hour

    # Fixed pbkdf2_sha256 work factor used when hashing new passwords.
    AUTH_PASSWORD_ROUNDS: int = int(os.environ.get("AUTH_PASSWORD_ROUNDS", "29000"))

    # Return the same 401 for unknown users / password-less accounts as for a wrong password.
    AUTH_UNIFY_LOGIN_ERRORS: bool = _env_bool("AUTH_UNIFY_LOGIN_ERRORS", False) is True

    # Bootstrap the first account if the users table is empty
    AUTH_BOOTSTRAP_ADMIN_USERNAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_USERNAME", "admin")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "admin")
    AUTH_BOOTSTRAP_ADMIN_ROLE_ID: int = int(os.environ.get("AUTH_BOOTSTRAP_ADMIN_ROLE_ID", "1"))


def load_config() -> Config:
    return Config()
