"""
tests/test_tokens.py -- Unit tests for the TokenCodec (auth/tokens.py).

Covers:
  - access and refresh round trips preserve account id, email, role
  - issue_pair reports the access lifetime as expires_in
  - cross-class rejection, including when both secrets are identical
  - a refresh-shaped token signed with the access secret is rejected
  - expired, tampered, malformed and wrong-subject tokens map to distinct errors
  - empty secrets and non-positive lifetimes fail at construction
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import REFRESH_TOKEN_CLASS, TokenCodec
from core.errors import (
    ConfigurationError,
    TokenClassError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
    UnauthorizedError,
)
from core.models import Role

ACCESS_SECRET = "a" * 40
REFRESH_SECRET = "r" * 40


@pytest.fixture()
def tc() -> TokenCodec:
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, access_expires_seconds=900, refresh_expires_seconds=604800)


def _forge(secret: str, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {"iat": now, "exp": now + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestRoundTrip:
    def test_access_round_trip(self, tc):
        claims = tc.verify_access(tc.issue_access(42, "a@university.edu", Role.DIRECTOR))
        assert claims.account_id == 42
        assert claims.email == "a@university.edu"
        assert claims.role == Role.DIRECTOR
        assert claims.expires_at - claims.issued_at == 900

    def test_refresh_round_trip(self, tc):
        claims = tc.verify_refresh(tc.issue_refresh(42, "a@university.edu"))
        assert claims.account_id == 42
        assert claims.email == "a@university.edu"
        assert claims.token_class == REFRESH_TOKEN_CLASS
        assert claims.expires_at - claims.issued_at == 604800

    def test_pair_expires_in_is_access_lifetime(self, tc):
        pair = tc.issue_pair(7, "b@university.edu", "ADMIN")
        assert pair.expires_in == 900
        assert pair.token_type == "Bearer"
        assert tc.verify_access(pair.access_token).role == Role.ADMIN
        assert tc.verify_refresh(pair.refresh_token).account_id == 7

    def test_sub_is_encoded_as_string(self, tc):
        token = tc.issue_access(5, "c@university.edu", Role.ADMIN)
        assert jwt.get_unverified_claims(token)["sub"] == "5"

    def test_refresh_token_has_no_role_claim(self, tc):
        token = tc.issue_refresh(5, "c@university.edu")
        claims = jwt.get_unverified_claims(token)
        assert "role" not in claims
        assert claims["type"] == "refresh"


class TestClassSeparation:
    def test_refresh_token_rejected_as_access(self, tc):
        with pytest.raises(UnauthorizedError):
            tc.verify_access(tc.issue_refresh(1, "x@university.edu"))

    def test_access_token_rejected_as_refresh(self, tc):
        with pytest.raises(UnauthorizedError):
            tc.verify_refresh(tc.issue_access(1, "x@university.edu", Role.ADMIN))

    def test_identical_secrets_still_separate_classes(self):
        same = TokenCodec("s" * 40, "s" * 40)
        with pytest.raises(TokenClassError):
            same.verify_access(same.issue_refresh(1, "x@university.edu"))
        with pytest.raises(TokenClassError):
            same.verify_refresh(same.issue_access(1, "x@university.edu", Role.ADMIN))

    def test_refresh_payload_signed_with_access_secret_rejected(self, tc):
        forged = _forge(ACCESS_SECRET, sub="1", email="x@university.edu", type="refresh")
        with pytest.raises(TokenSignatureError):
            tc.verify_refresh(forged)


class TestFailures:
    def test_expired_access_token(self, tc):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "1", "email": "x@university.edu", "role": "ADMIN", "iat": past, "exp": past + timedelta(minutes=1)},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenExpiredError) as exc_info:
            tc.verify_access(token)
        assert exc_info.value.code == "token_expired"

    def test_tampered_signature(self, tc):
        token = tc.issue_access(1, "x@university.edu", Role.ADMIN)
        head, payload, signature = token.split(".")
        tampered = ".".join([head, payload, signature[::-1]])
        with pytest.raises(TokenSignatureError):
            tc.verify_access(tampered)

    def test_wrong_secret(self, tc):
        token = _forge("z" * 40, sub="1", email="x@university.edu", role="ADMIN")
        with pytest.raises(TokenSignatureError):
            tc.verify_access(token)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token(self, tc, token):
        with pytest.raises(TokenMalformedError):
            tc.verify_access(token)

    def test_non_integer_subject_is_malformed(self, tc):
        token = _forge(ACCESS_SECRET, sub="abc", email="x@university.edu", role="ADMIN")
        with pytest.raises(TokenMalformedError):
            tc.verify_access(token)

    def test_unknown_role_is_malformed(self, tc):
        token = _forge(ACCESS_SECRET, sub="1", email="x@university.edu", role="JANITOR")
        with pytest.raises(TokenMalformedError):
            tc.verify_access(token)

    def test_missing_email_is_malformed(self, tc):
        token = _forge(ACCESS_SECRET, sub="1", role="ADMIN")
        with pytest.raises(TokenMalformedError):
            tc.verify_access(token)


class TestConstruction:
    def test_empty_access_secret(self):
        with pytest.raises(ConfigurationError):
            TokenCodec("", REFRESH_SECRET)

    def test_empty_refresh_secret(self):
        with pytest.raises(ConfigurationError):
            TokenCodec(ACCESS_SECRET, "")

    def test_non_positive_lifetime(self):
        with pytest.raises(ConfigurationError):
            TokenCodec(ACCESS_SECRET, REFRESH_SECRET, access_expires_seconds=0)

    def test_from_settings_uses_configured_lifetimes(self, settings):
        codec = TokenCodec.from_settings(settings)
        assert codec.access_expires_seconds == settings.jwt_access_expires_seconds
        assert codec.refresh_expires_seconds == settings.jwt_refresh_expires_seconds
