"""
auth/tokens.py -- Access/refresh JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Two token classes, two secrets, two lifetimes:

    access   {sub, email, role, iat, exp}            signed with JWT_SECRET,
                                                     default 15 minutes
    refresh  {sub, email, type="refresh", iat, exp}  signed with
                                                     JWT_REFRESH_SECRET,
                                                     default 7 days

  Class separation is enforced twice [T1]:
    1. Disjoint secrets -- a refresh token fails signature verification
       against the access secret and vice versa.
    2. The type claim -- verify_refresh() requires type == "refresh" and
       verify_access() rejects any token that carries one. This still holds
       if an operator misconfigures both secrets to the same value (Settings
       refuses that, but TokenCodec does not rely on it).

  Verification raises a specific UnauthorizedError subclass (expired, bad
  signature, malformed, wrong class) instead of returning None, so callers
  and logs can tell the failures apart. They all render as HTTP 401.

  sub is the account id encoded as a decimal string (JWT sub is a
  StringOrURI, and python-jose rejects non-string subjects on decode). It is
  converted back to int here; a non-integer sub is a malformed token.

  Tokens are stateless. There is no server-side token store and no
  blacklist: a token dies at exp. Revocation of a live account happens by
  re-reading the account on every guarded request and every refresh (see
  auth/dependencies.py and AuthService.refresh()).

  Secrets come from Settings at startup and are handed to the TokenCodec
  constructor. An empty secret raises ConfigurationError immediately [S1].

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.models import AccessClaims, RefreshClaims, TokenPair
from core.errors import (
    ConfigurationError,
    TokenClassError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from core.models import Role

_ALGORITHM = "HS256"

REFRESH_TOKEN_CLASS = "refresh"
TOKEN_TYPE = "Bearer"


class TokenCodec:
    """Signs and verifies access and refresh tokens.

    Usage:
        codec = TokenCodec(settings.jwt_secret, settings.jwt_refresh_secret)
        pair = codec.issue_pair(account.id, account.email, account.role)
        claims = codec.verify_access(pair.access_token)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires_seconds: int = 15 * 60,
        refresh_expires_seconds: int = 7 * 24 * 60 * 60,
    ) -> None:
        if not access_secret:
            raise ConfigurationError("JWT_SECRET is not defined")
        if not refresh_secret:
            raise ConfigurationError("JWT_REFRESH_SECRET is not defined")
        if access_expires_seconds <= 0 or refresh_expires_seconds <= 0:
            raise ConfigurationError("Token lifetimes must be positive")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_expires_seconds = access_expires_seconds
        self.refresh_expires_seconds = refresh_expires_seconds

    @classmethod
    def from_settings(cls, settings) -> TokenCodec:
        return cls(
            settings.jwt_secret,
            settings.jwt_refresh_secret,
            access_expires_seconds=settings.jwt_access_expires_seconds,
            refresh_expires_seconds=settings.jwt_refresh_expires_seconds,
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, account_id: int, email: str, role: Role | str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "email": email,
            "role": Role(role).value,
            "iat": now,
            "exp": now + timedelta(seconds=self.access_expires_seconds),
        }
        return jwt.encode(payload, self._access_secret, algorithm=_ALGORITHM)

    def issue_refresh(self, account_id: int, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "email": email,
            "type": REFRESH_TOKEN_CLASS,
            "iat": now,
            "exp": now + timedelta(seconds=self.refresh_expires_seconds),
        }
        return jwt.encode(payload, self._refresh_secret, algorithm=_ALGORITHM)

    def issue_pair(self, account_id: int, email: str, role: Role | str) -> TokenPair:
        """Issue a fresh access + refresh pair. Used by login, OAuth login, and refresh."""
        return TokenPair(
            access_token=self.issue_access(account_id, email, role),
            refresh_token=self.issue_refresh(account_id, email),
            expires_in=self.access_expires_seconds,
            token_type=TOKEN_TYPE,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> AccessClaims:
        payload = _decode(token, self._access_secret)
        # Access tokens carry no type claim; anything tagged is another class [T1]
        if "type" in payload or "role" not in payload:
            raise TokenClassError()
        try:
            role = Role(payload["role"])
        except ValueError as exc:
            raise TokenMalformedError() from exc
        return AccessClaims(
            account_id=_subject(payload),
            email=_email(payload),
            role=role,
            issued_at=int(payload.get("iat", 0)),
            expires_at=int(payload["exp"]),
        )

    def verify_refresh(self, token: str) -> RefreshClaims:
        payload = _decode(token, self._refresh_secret)
        if payload.get("type") != REFRESH_TOKEN_CLASS:  # [T1]
            raise TokenClassError()
        return RefreshClaims(
            account_id=_subject(payload),
            email=_email(payload),
            token_class=REFRESH_TOKEN_CLASS,
            issued_at=int(payload.get("iat", 0)),
            expires_at=int(payload["exp"]),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _decode(token: str, secret: str) -> dict:
    """Verify signature and expiry; map python-jose failures onto the error taxonomy.

    The unverified parse runs first so structurally broken input is reported
    as malformed rather than as a signature failure.
    """
    if not token:
        raise TokenMalformedError()
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise TokenMalformedError() from exc

    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except JWTClaimsError as exc:
        raise TokenMalformedError() from exc
    except JWTError as exc:
        raise TokenSignatureError() from exc

    if "exp" not in payload:
        raise TokenMalformedError()
    return payload


def _subject(payload: dict) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenMalformedError() from exc


def _email(payload: dict) -> str:
    email = payload.get("email")
    if not isinstance(email, str) or not email:
        raise TokenMalformedError()
    return email
