from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from pydantic import BaseModel, Field

from users_api.auth import AccessGate, Authenticator, CredentialStore, require_identity
from users_api.auth.authenticator import bootstrap_admin_if_needed
from users_api.auth.deps import get_authenticator
from users_api.config import Config, load_config
from users_api.db import connect, init_db, is_integrity_error
from users_api.errors import (
    BadRequest,
    Conflict,
    InternalError,
    NotFound,
    ServiceError,
    setup_exception_handlers,
)
from users_api.models import Identity
from users_api.users import (
    delete_user,
    get_user,
    list_users,
    update_user_fields,
    username_taken,
)


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def get_cfg(request: Request) -> Config:
    return request.app.state.cfg


@contextmanager
def _db(cfg: Config) -> Iterator[Any]:
    """`connect()` with constraint violations mapped to Conflict, other failures to InternalError."""
    try:
        with connect(cfg.DB_DSN) as conn:
            yield conn
    except ServiceError:
        raise
    except Exception as e:
        if is_integrity_error(e):
            # Only UNIQUE(username) can fail on the writes made here.
            raise Conflict("username_exists") from e
        _debug(f"database error: {type(e).__name__}")
        raise InternalError() from e


# -----------------------------
# Request bodies
# -----------------------------


class LoginRequest(BaseModel):
    username: str
    password: str


# role_id is stored in a signed 64-bit column.
_ROLE_ID_MAX = 2**63 - 1


class CreateUserRequest(BaseModel):
    username: str
    password: str
    role_id: int = Field(..., ge=-_ROLE_ID_MAX - 1, le=_ROLE_ID_MAX)


class UpdateUserRequest(BaseModel):
    username: str
    role_id: int = Field(..., ge=-_ROLE_ID_MAX - 1, le=_ROLE_ID_MAX)


# -----------------------------
# Health + Auth
# -----------------------------

public_router = APIRouter()


@public_router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


@public_router.post("/auth")
def auth_login(
    payload: LoginRequest,
    authenticator: Authenticator = Depends(get_authenticator),
) -> Dict[str, Any]:
    token = authenticator.login(payload.username, payload.password)
    return {
        "token": token.value,
        "token_type": "bearer",
        "expires_at": token.expires_at.isoformat().replace("+00:00", "Z"),
    }


@public_router.get("/auth/me")
def auth_me(identity: Identity = Depends(require_identity)) -> Dict[str, Any]:
    return {"user": identity.as_dict()}


# -----------------------------
# Users (every route behind the access gate)
# -----------------------------

users_router = APIRouter(prefix="/users", dependencies=[Depends(require_identity)])


@users_router.get("")
def users_list(cfg: Config = Depends(get_cfg)) -> List[Dict[str, Any]]:
    with _db(cfg) as conn:
        return list_users(conn)


@users_router.get("/{user_id}")
def users_get(user_id: int, cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    with _db(cfg) as conn:
        user = get_user(conn, user_id)
    if user is None:
        raise NotFound("user_not_found")
    return user


@users_router.post("")
def users_create(
    payload: CreateUserRequest,
    authenticator: Authenticator = Depends(get_authenticator),
) -> Dict[str, Any]:
    user_id = authenticator.register(payload.username, payload.password, payload.role_id)
    return {"message": "User created successfully", "userId": user_id}


@users_router.put("/{user_id}")
def users_replace(
    user_id: int,
    payload: UpdateUserRequest,
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    username = payload.username.strip()
    if not username:
        raise BadRequest("username_blank")
    with _db(cfg) as conn:
        if username_taken(conn, username, exclude_user_id=user_id):
            raise Conflict("username_exists")
        n = update_user_fields(conn, user_id, {"username": username, "role_id": payload.role_id})
    if n == 0:
        raise NotFound("user_not_found")
    return {"message": "User updated successfully"}


@users_router.patch("/{user_id}")
def users_patch(
    user_id: int,
    payload: Dict[str, Any] = Body(...),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    username = payload.get("username")
    if not isinstance(username, str) or not username.strip():
        raise BadRequest("username_required")
    if set(payload) != {"username"}:
        raise BadRequest("only_username_updatable")

    username = username.strip()
    with _db(cfg) as conn:
        if username_taken(conn, username, exclude_user_id=user_id):
            raise Conflict("username_exists")
        n = update_user_fields(conn, user_id, {"username": username})
    if n == 0:
        raise NotFound("user_not_found")
    return {"message": "User updated successfully"}


@users_router.delete("/{user_id}")
def users_delete(user_id: int, cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    with _db(cfg) as conn:
        n = delete_user(conn, user_id)
    if n == 0:
        raise NotFound("user_not_found")
    return {"message": "User deleted successfully"}


# -----------------------------
# App
# -----------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg: Config = app.state.cfg

    # Ensure schema exists.
    init_db(cfg.DB_DSN)

    # Bootstrap first account if needed (only when users table is empty)
    user_id = bootstrap_admin_if_needed(cfg, app.state.authenticator)
    if user_id is not None:
        _debug(f"Bootstrapped initial user: username={cfg.AUTH_BOOTSTRAP_ADMIN_USERNAME} user_id={user_id}")
    yield


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or load_config()

    app = FastAPI(title="Users API", version="0.1.0", lifespan=lifespan)

    # Shared, read-only after startup.
    app.state.cfg = cfg
    app.state.authenticator = Authenticator(cfg, CredentialStore(cfg.DB_DSN))
    app.state.gate = AccessGate(cfg)

    setup_exception_handlers(app)
    app.include_router(public_router)
    app.include_router(users_router)
    return app


app = create_app()
