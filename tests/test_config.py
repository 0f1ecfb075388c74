"""
tests/test_config.py -- Settings validation, OAuth identity extraction, paging math.

Covers:
  - signing-secret policy: missing, short and identical secrets are startup errors
  - bcrypt_rounds bounds and the default-password length check
  - google_enabled / session_key derived properties
  - identity_from_token: verified email required
  - core/pagination helpers
"""

from __future__ import annotations

import pytest

from auth.oauth import build_oauth, identity_from_token
from core.config import load_settings
from core.errors import ConfigurationError
from core.pagination import offset_for, page_meta, total_pages

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "overrides",
    [
        {"jwt_secret": ""},
        {"jwt_refresh_secret": ""},
        {"jwt_secret": "too-short"},
        {"jwt_secret": "s" * 40, "jwt_refresh_secret": "s" * 40},
        {"bcrypt_rounds": 3},
        {"bcrypt_rounds": 32},
        {"default_user_password": "short"},
    ],
)
def test_invalid_settings_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        load_settings(**overrides)


def test_short_default_password_allowed_when_disabled():
    settings = load_settings(default_user_password="x", oauth_default_password_enabled=False)
    assert settings.oauth_default_password_enabled is False


def test_defaults():
    settings = load_settings()
    assert settings.jwt_access_expires_seconds == 900
    assert settings.jwt_refresh_expires_seconds == 7 * 24 * 60 * 60
    assert settings.login_rate_limit == "10/minute"
    assert settings.frontend_url == "http://localhost:4200"


def test_google_enabled_needs_all_three_values():
    assert load_settings().google_enabled is False
    partial = load_settings(google_client_id="id", google_client_secret="secret")
    assert partial.google_enabled is False
    full = load_settings(
        google_client_id="id",
        google_client_secret="secret",
        google_callback_url="http://localhost:3000/api/v1/auth/google/callback",
    )
    assert full.google_enabled is True


def test_session_key_falls_back_to_jwt_secret():
    settings = load_settings()
    assert settings.session_key == settings.jwt_secret
    assert load_settings(session_secret="own-session-secret").session_key == "own-session-secret"


def test_build_oauth_registers_google_only_when_configured():
    assert build_oauth(load_settings()).create_client("google") is None
    configured = load_settings(
        google_client_id="id",
        google_client_secret="secret",
        google_callback_url="http://localhost:3000/api/v1/auth/google/callback",
    )
    assert build_oauth(configured).create_client("google") is not None


# ---------------------------------------------------------------------------
# OAuth identity extraction
# ---------------------------------------------------------------------------


class TestIdentityFromToken:
    def test_verified_userinfo(self):
        identity = identity_from_token(
            {
                "userinfo": {
                    "email": "jane@university.edu",
                    "email_verified": True,
                    "given_name": "Jane",
                    "family_name": "Doe",
                    "picture": "https://example.com/j.png",
                    "sub": "42",
                }
            }
        )
        assert identity.email == "jane@university.edu"
        assert identity.first_name == "Jane"
        assert identity.last_name == "Doe"
        assert identity.picture == "https://example.com/j.png"

    def test_missing_names_default_to_empty(self):
        identity = identity_from_token({"userinfo": {"email": "a@university.edu", "email_verified": True}})
        assert identity.first_name == ""
        assert identity.picture is None

    @pytest.mark.parametrize(
        "token",
        [
            {},
            {"userinfo": {}},
            {"userinfo": {"email": "a@university.edu"}},
            {"userinfo": {"email": "a@university.edu", "email_verified": False}},
            {"userinfo": {"email_verified": True}},
        ],
    )
    def test_rejected(self, token):
        with pytest.raises(ValueError):
            identity_from_token(token)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("total", "limit", "expected"),
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (5, 0, 0)],
)
def test_total_pages(total, limit, expected):
    assert total_pages(total, limit) == expected


def test_offset_for():
    assert offset_for(1, 10) == 0
    assert offset_for(3, 25) == 50


def test_page_meta_middle_page():
    assert page_meta(total=25, page=2, limit=10) == {
        "total": 25,
        "page": 2,
        "limit": 10,
        "totalPages": 3,
        "hasNextPage": True,
        "hasPreviousPage": True,
    }


def test_page_meta_empty():
    meta = page_meta(total=0, page=1, limit=10)
    assert meta["totalPages"] == 0
    assert meta["hasNextPage"] is False
    assert meta["hasPreviousPage"] is False
