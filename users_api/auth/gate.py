"""Access gate: validates bearer tokens in front of protected operations.

`inspect` is the state machine (Unchecked -> Missing | Malformed |
InvalidSignature | Expired | Valid); `authorize` turns every non-Valid
outcome into the same `Unauthenticated` error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import jwt

from users_api.config import Config
from users_api.errors import Unauthenticated
from users_api.models import Identity
from users_api.util.time import from_epoch, utcnow

from .security import decode_access_token


def _debug(msg: str) -> None:
    print(f"[gate] {msg}")


class GateState(str, Enum):
    UNCHECKED = "unchecked"
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    VALID = "valid"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    identity: Optional[Identity] = None


def _identity_from_claims(payload: dict[str, Any]) -> Optional[Identity]:
    user = payload.get("user")
    if not isinstance(user, dict):
        return None
    user_id = user.get("user_id")
    username = user.get("username")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return None
    if not isinstance(username, str) or not username:
        return None
    return Identity(user_id=user_id, username=username)


class AccessGate:
    def __init__(self, cfg: Config, *, clock: Callable[[], datetime] = utcnow):
        self.secret = cfg.AUTH_JWT_SECRET
        self.clock = clock

    def inspect(self, raw_token: Optional[str]) -> GateDecision:
        token = (raw_token or "").strip()
        if not token:
            return GateDecision(GateState.MISSING)

        try:
            payload = decode_access_token(token=token, secret=self.secret)
        except jwt.InvalidSignatureError:
            return GateDecision(GateState.INVALID_SIGNATURE)
        except jwt.InvalidTokenError:
            return GateDecision(GateState.MALFORMED)

        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return GateDecision(GateState.MALFORMED)
        identity = _identity_from_claims(payload)
        if identity is None:
            return GateDecision(GateState.MALFORMED)

        if self.clock() >= from_epoch(exp):
            return GateDecision(GateState.EXPIRED)

        return GateDecision(GateState.VALID, identity)

    def authorize(self, raw_token: Optional[str]) -> Identity:
        decision = self.inspect(raw_token)
        if decision.state is GateState.VALID and decision.identity is not None:
            return decision.identity

        _debug(f"rejected request: {decision.state.value}")
        if decision.state is GateState.MISSING:
            raise Unauthenticated("missing_token", state=decision.state.value)
        raise Unauthenticated("token_invalid", state=decision.state.value)
