from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from users_api.auth import AccessGate, GateState
from users_api.auth.security import create_access_token
from users_api.errors import Unauthenticated
from users_api.models import Identity

from conftest import TEST_SECRET


def _token(clock, *, secret=TEST_SECRET, user_id=1, username="alice", ttl=3600):
    token, _, _ = create_access_token(
        secret=secret, user_id=user_id, username=username, issued_at=clock(), ttl_seconds=ttl
    )
    return token


@pytest.fixture
def gate(cfg, clock):
    return AccessGate(cfg, clock=clock)


def test_valid_token_yields_identity(gate, clock):
    decision = gate.inspect(_token(clock, user_id=42))
    assert decision.state is GateState.VALID
    assert decision.identity == Identity(user_id=42, username="alice")


def test_authorize_is_idempotent(gate, clock):
    token = _token(clock)
    assert gate.authorize(token) == gate.authorize(token)


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_token(gate, raw):
    assert gate.inspect(raw).state is GateState.MISSING
    with pytest.raises(Unauthenticated) as ei:
        gate.authorize(raw)
    assert ei.value.detail == "missing_token"
    assert ei.value.state == "missing"


@pytest.mark.parametrize("raw", ["garbage", "a.b.c", "Bearer abc"])
def test_malformed_token(gate, raw):
    assert gate.inspect(raw).state is GateState.MALFORMED


def test_token_without_expiry_is_malformed(gate):
    raw = jwt.encode({"user": {"user_id": 1, "username": "alice"}, "iat": 0}, TEST_SECRET, algorithm="HS256")
    assert gate.inspect(raw).state is GateState.MALFORMED


@pytest.mark.parametrize("user", [
    None,
    {"user_id": "1", "username": "alice"},
    {"user_id": 1},
    {"user_id": True, "username": "alice"},
])
def test_token_with_bad_claims_is_malformed(gate, clock, user):
    now = int(clock().timestamp())
    payload = {"iat": now, "exp": now + 60}
    if user is not None:
        payload["user"] = user
    raw = jwt.encode(payload, TEST_SECRET, algorithm="HS256")
    assert gate.inspect(raw).state is GateState.MALFORMED


def test_token_signed_with_other_secret_is_rejected(gate, clock):
    raw = _token(clock, secret="someone-elses-secret-0123456789abcdef")
    assert gate.inspect(raw).state is GateState.INVALID_SIGNATURE
    with pytest.raises(Unauthenticated) as ei:
        gate.authorize(raw)
    assert ei.value.detail == "token_invalid"


def test_token_rejected_at_and_after_expiry(gate, clock):
    raw = _token(clock, ttl=3600)

    clock.advance(seconds=3599)
    assert gate.inspect(raw).state is GateState.VALID

    clock.advance(seconds=1)
    assert gate.inspect(raw).state is GateState.EXPIRED

    clock.advance(days=30)
    with pytest.raises(Unauthenticated) as ei:
        gate.authorize(raw)
    assert ei.value.detail == "token_invalid"


def test_expired_token_with_bad_signature_never_valid(gate, clock):
    raw = _token(clock, secret="another-signing-secret-0123456789abcdef", ttl=60)
    clock.advance(hours=2)
    assert gate.inspect(raw).state is not GateState.VALID


def test_rejections_are_indistinguishable_to_caller(gate, clock):
    expired = _token(clock, ttl=60)
    forged = _token(clock, secret="another-signing-secret-0123456789abcdef")
    clock.advance(minutes=5)

    details = set()
    for raw in (expired, forged, "garbage"):
        with pytest.raises(Unauthenticated) as ei:
            gate.authorize(raw)
        details.add((ei.value.detail, ei.value.status_code))
    assert details == {("token_invalid", 401)}


def test_gate_uses_secret_from_config(cfg, clock):
    other = AccessGate(replace(cfg, AUTH_JWT_SECRET="rotated-secret-0123456789abcdefghij"), clock=clock)
    assert other.inspect(_token(clock)).state is GateState.INVALID_SIGNATURE


def test_gate_default_clock_is_wall_time(cfg):
    now = datetime.now(timezone.utc)
    fresh, _, _ = create_access_token(
        secret=TEST_SECRET, user_id=1, username="alice", issued_at=now, ttl_seconds=600
    )
    stale, _, _ = create_access_token(
        secret=TEST_SECRET, user_id=1, username="alice",
        issued_at=now - timedelta(hours=2), ttl_seconds=3600,
    )
    gate = AccessGate(cfg)
    assert gate.inspect(fresh).state is GateState.VALID
    assert gate.inspect(stale).state is GateState.EXPIRED
