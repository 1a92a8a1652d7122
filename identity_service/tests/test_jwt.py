"""
Test cases for token issuing and verification.
"""
import time
from datetime import timedelta

import jwt
import pytest

from identity_service.auth.errors import (
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
)
from identity_service.auth.jwt import (
    ALGORITHM,
    DEFAULT_TOKEN_TTL,
    TokenManager,
    issue_token,
    verify_token,
)

SECRET = "jwt-test-secret-with-at-least-32-bytes"
OTHER_SECRET = "another-secret-with-at-least-32-bytes!"


def test_issue_and_verify():
    token = issue_token("42", SECRET)
    claims = verify_token(token, SECRET)
    assert claims.subject_id == "42"
    assert claims.expires_at - claims.issued_at == int(DEFAULT_TOKEN_TTL.total_seconds())


def test_token_has_expected_claims():
    token = issue_token("7", SECRET, ttl=timedelta(minutes=5), now=1_700_000_000)
    header = jwt.get_unverified_header(token)
    payload = jwt.decode(token, options={"verify_signature": False})
    assert header["alg"] == ALGORITHM
    assert payload == {"sub": "7", "iat": 1_700_000_000, "exp": 1_700_000_300}


def test_integer_subject_is_stringified():
    claims = verify_token(issue_token(5, SECRET), SECRET)
    assert claims.subject_id == "5"


def test_wrong_secret():
    token = issue_token("42", SECRET)
    with pytest.raises(InvalidSignatureError):
        verify_token(token, OTHER_SECRET)


def test_tampered_payload():
    token = issue_token("42", SECRET)
    forged = jwt.encode(
        {"sub": "1", "iat": int(time.time()), "exp": int(time.time()) + 60},
        OTHER_SECRET,
        algorithm=ALGORITHM,
    )
    header, _, signature = token.split(".")
    _, payload, _ = forged.split(".")
    with pytest.raises(InvalidSignatureError):
        verify_token(f"{header}.{payload}.{signature}", SECRET)


def test_expired_token():
    two_days_ago = time.time() - 2 * 24 * 3600
    token = TokenManager(SECRET, clock=lambda: two_days_ago).issue("42")
    with pytest.raises(ExpiredTokenError):
        TokenManager(SECRET).verify(token)


def test_expiry_boundary():
    token = issue_token("42", SECRET, ttl=60, now=1_700_000_000)
    assert verify_token(token, SECRET, now=1_700_000_000).subject_id == "42"
    assert verify_token(token, SECRET, now=1_700_000_059).subject_id == "42"
    with pytest.raises(ExpiredTokenError):
        verify_token(token, SECRET, now=1_700_000_060)


def test_issued_in_the_future():
    now = int(time.time())
    token = jwt.encode({"sub": "42", "iat": now + 3600, "exp": now + 7200}, SECRET, algorithm=ALGORITHM)
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


@pytest.mark.parametrize("offsets", [(-10, -100), (60, 30), (0, 0)])
def test_expiry_not_after_issue_is_malformed(offsets):
    now = int(time.time())
    iat, exp = (now + offset for offset in offsets)
    token = jwt.encode({"sub": "42", "iat": iat, "exp": exp}, SECRET, algorithm=ALGORITHM)
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


def test_manager_verifies_against_its_clock():
    ten_days_ahead = time.time() + 10 * 24 * 3600
    manager = TokenManager(SECRET, clock=lambda: ten_days_ahead)
    token = manager.issue("42")
    assert manager.verify(token).subject_id == "42"

    # Same token, judged by the wall clock, is not valid yet
    with pytest.raises(MalformedTokenError):
        TokenManager(SECRET).verify(token)


def test_manager_sees_expiry_when_clock_advances():
    current = [1_700_000_000]
    manager = TokenManager(SECRET, ttl=60, clock=lambda: current[0])
    token = manager.issue("42")
    current[0] += 59
    assert manager.verify(token).subject_id == "42"
    current[0] += 1
    with pytest.raises(ExpiredTokenError):
        manager.verify(token)


def test_bad_signature_wins_over_expiry():
    token = issue_token("42", SECRET, now=time.time() - 2 * 24 * 3600)
    with pytest.raises(InvalidSignatureError):
        verify_token(token, OTHER_SECRET)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "not.a.jwt.token"])
def test_garbage_token(token):
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


@pytest.mark.parametrize("missing", ["sub", "iat", "exp"])
def test_missing_claim(missing):
    now = int(time.time())
    payload = {"sub": "42", "iat": now, "exp": now + 60}
    del payload[missing]
    token = jwt.encode(payload, SECRET, algorithm=ALGORITHM)
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


def test_empty_subject():
    now = int(time.time())
    token = jwt.encode({"sub": "", "iat": now, "exp": now + 60}, SECRET, algorithm=ALGORITHM)
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


def test_unsigned_token_rejected():
    now = int(time.time())
    token = jwt.encode({"sub": "42", "iat": now, "exp": now + 60}, None, algorithm="none")
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


def test_other_algorithm_rejected():
    now = int(time.time())
    token = jwt.encode({"sub": "42", "iat": now, "exp": now + 60}, SECRET, algorithm="HS512")
    with pytest.raises(MalformedTokenError):
        verify_token(token, SECRET)


@pytest.mark.parametrize("ttl", [0, -1, timedelta(0), timedelta(seconds=-5)])
def test_non_positive_ttl(ttl):
    with pytest.raises(ValueError):
        issue_token("42", SECRET, ttl=ttl)
    with pytest.raises(ValueError):
        TokenManager(SECRET, ttl=ttl)


def test_empty_secret():
    with pytest.raises(ValueError):
        TokenManager("")


def test_manager_ttl_override():
    manager = TokenManager(SECRET, ttl=timedelta(hours=1), clock=lambda: 1_000_000)
    payload = jwt.decode(manager.issue("42", ttl=60), options={"verify_signature": False})
    assert payload["exp"] - payload["iat"] == 60
    assert manager.ttl == timedelta(hours=1)
