from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Credential:
    user_id: int
    username: str
    password_hash: Optional[str]


@dataclass(frozen=True)
class Identity:
    """Claims extracted from a validated token."""

    user_id: int
    username: str

    def as_dict(self) -> Dict[str, Any]:
        return {"user_id": self.user_id, "username": self.username}


@dataclass(frozen=True)
class Token:
    """A signed, expiring bearer token.

    `value` is the encoded JWT handed to the client; the signature lives inside it.
    """

    value: str
    identity: Identity
    issued_at: datetime
    expires_at: datetime
