"""Authentication / authorization.

Kept deliberately small:

- Users table (username / password hash / role id)
- Stateless JWT access tokens carrying only `{user_id, username}`

`Authenticator` handles login and registration, `AccessGate` validates the
`Authorization: Bearer <token>` header in front of every protected route.
Both are built once at startup from the immutable `Config`.
"""

from .authenticator import Authenticator
from .deps import require_identity
from .gate import AccessGate, GateDecision, GateState
from .store import CredentialStore

__all__ = [
    "AccessGate",
    "Authenticator",
    "CredentialStore",
    "GateDecision",
    "GateState",
    "require_identity",
]
