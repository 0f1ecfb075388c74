"""
auth/service.py -- Password login, Google account provisioning, and token refresh.

AuthService holds the multi-step flows of the auth core. It is built once in
the FastAPI lifespan from Settings and shared read-only across requests; it
keeps no per-request state, no cache, and takes no locks. Every account read
goes to the store.

Flows:
  login()        -- email + password -> token pair + sanitized profile
  oauth_login()  -- verified Google identity -> find-or-create -> token pair
  refresh()      -- refresh token -> brand-new token pair (full rotation)
  resolve_account() -- re-read an account for the access guard

Security:
  [C1] login() runs bcrypt against a dummy hash when the email is unknown so
       response time does not reveal which emails exist. The status check
       runs before the password check; an inactive account reports
       AccountNotActiveError whatever password was sent.

  [C2] Account state is never taken from token claims. refresh() and
       resolve_account() re-read the account by id and require
       deleted == False and status == ACTIVE. This is the only revocation
       mechanism: deactivating or deleting an account cuts off its live
       tokens on their next use.

  [C3] oauth_login() issues tokens even for PENDING/inactive accounts so the
       client can show a "waiting for approval" screen. Those tokens cannot
       reach any guarded route because of [C2].

  [C4] New Google accounts get Settings.default_user_password as their local
       password when oauth_default_password_enabled is set. Each such
       provisioning is logged at WARNING so the decision stays auditable.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import fields

from auth.models import Account, AccountProfile, FederatedIdentity, LoginResult, TokenPair
from auth.passwords import hash_password, verify_password
from auth.store import AccountStore
from auth.tokens import TokenCodec
from core.errors import AccountNotActiveError, InvalidCredentialsError, UnauthorizedError
from core.models import DEFAULT_PROFILE_PIC, AccountStatus

logger = logging.getLogger("unidir.auth")

_USERNAME_UNSAFE = re.compile(r"[^a-z0-9]")

_PROFILE_FIELDS = tuple(f.name for f in fields(AccountProfile))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def username_from_email(email: str) -> str:
    """Derive a username from the email local-part.

    Lower-cased, with every character outside [a-z0-9] replaced by "_":
    "Juan.Dela-Cruz@university.edu" -> "juan_dela_cruz".
    """
    local_part = email.split("@", 1)[0].lower()
    return _USERNAME_UNSAFE.sub("_", local_part)


def to_profile(account: Account) -> AccountProfile:
    """Project an Account onto AccountProfile, dropping password_hash."""
    return AccountProfile(**{name: getattr(account, name) for name in _PROFILE_FIELDS})


class AuthService:
    """Credential verification, federated provisioning, and token refresh.

    Usage:
        service = AuthService(store, codec, settings)
        result = service.login("admin@university.edu", "Admin@123")
        pair = service.refresh(result.tokens.refresh_token)
    """

    def __init__(self, store: AccountStore, codec: TokenCodec, settings) -> None:
        self.store = store
        self.codec = codec
        self._rounds = settings.bcrypt_rounds
        self._default_password = settings.default_user_password
        self._default_password_enabled = settings.oauth_default_password_enabled
        self._default_role = settings.default_user_role
        self._default_campus = settings.default_user_campus
        # Timing equalization hash [C1]. Computed once so the first unknown-email
        # login is not measurably slower than later ones.
        self._dummy_hash = hash_password(secrets.token_hex(16), rounds=self._rounds)

    # ------------------------------------------------------------------
    # Password login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        """Authenticate with email and password.

        Raises InvalidCredentialsError for an unknown email or wrong password
        (same error for both), AccountNotActiveError for a non-ACTIVE account.
        Does not stamp last_login_at.
        """
        account = self.store.find_by_email(normalize_email(email), exclude_deleted=True)
        if account is None:
            # Equalize timing -- do NOT return early before running bcrypt [C1]
            verify_password(password, self._dummy_hash)
            raise InvalidCredentialsError()

        if account.status != AccountStatus.ACTIVE:
            raise AccountNotActiveError()

        if not verify_password(password, account.password_hash):
            raise InvalidCredentialsError()

        tokens = self.codec.issue_pair(account.id, account.email, account.role)
        logger.info("User logged in: %s", account.email)
        return LoginResult(tokens=tokens, user=to_profile(account))

    # ------------------------------------------------------------------
    # Google login
    # ------------------------------------------------------------------

    def oauth_login(self, identity: FederatedIdentity) -> LoginResult:
        """Find or create the account for a verified Google identity and issue tokens.

        Existing account: only profile_pic may change, and only when the
        provider sent a different picture. New account: PENDING, default
        role and campus, username derived from the email.

        Raises ConflictError (from the store) when a concurrent first login
        for the same email, or an unrelated account holding the derived
        username, wins the insert.
        """
        email = normalize_email(identity.email)
        if not email:
            raise UnauthorizedError("Identity provider returned no email.", code="oauth_identity_invalid")

        account = self.store.find_by_email(email, exclude_deleted=True)
        if account is not None:
            if identity.picture and identity.picture != account.profile_pic:
                account = self.store.update(account.id, profile_pic=identity.picture) or account
                logger.info("Updated profile picture for user: %s", account.email)
        else:
            account = self._provision(email, identity)

        if account.status != AccountStatus.ACTIVE:
            logger.warning("Non-active user logged in via Google: %s (status=%s)", account.email, account.status.value)

        tokens = self.codec.issue_pair(account.id, account.email, account.role)
        return LoginResult(tokens=tokens, user=to_profile(account))

    def _provision(self, email: str, identity: FederatedIdentity) -> Account:
        if self._default_password_enabled:
            plain = self._default_password
        else:
            plain = secrets.token_urlsafe(32)[:35]
        account = self.store.create(
            Account(
                email=email,
                username=username_from_email(email),
                first_name=identity.first_name,
                last_name=identity.last_name,
                password_hash=hash_password(plain, rounds=self._rounds),
                role=self._default_role,
                # New Google accounts always wait for admin activation,
                # whatever the default role is.
                status=AccountStatus.PENDING,
                campus=self._default_campus,
                profile_pic=identity.picture or DEFAULT_PROFILE_PIC,
            )
        )
        logger.warning(
            "New user created via Google OAuth: %s (id=%s, role=%s, default_password=%s)",
            account.email,
            account.id,
            account.role.value,
            "yes" if self._default_password_enabled else "no",
        )
        return account

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access + refresh pair.

        The presented refresh token is not blacklisted; it stays valid until
        its own exp. Account state is re-read from the store [C2].
        """
        claims = self.codec.verify_refresh(refresh_token)
        account = self._load_usable(claims.account_id)
        tokens = self.codec.issue_pair(account.id, account.email, account.role)
        logger.info("Tokens refreshed for user: %s", account.email)
        return tokens

    # ------------------------------------------------------------------
    # Guard support
    # ------------------------------------------------------------------

    def resolve_account(self, account_id: int) -> AccountProfile:
        """Re-read an account for a guarded request [C2].

        Raises UnauthorizedError when the account is gone, soft-deleted, or
        not ACTIVE.
        """
        return to_profile(self._load_usable(account_id))

    def _load_usable(self, account_id: int) -> Account:
        account = self.store.find_by_id(account_id)
        if account is None or account.deleted:
            raise UnauthorizedError("User not found or has been deleted.", code="account_rejected")
        if account.status != AccountStatus.ACTIVE:
            raise UnauthorizedError("User account is not active.", code="account_rejected")
        return account

    def get_profile(self, account_id: int) -> AccountProfile:
        """Return the full profile and stamp last_login_at.

        The profile fetch is the one place a "login" is recorded; password
        and Google login deliberately do not write.
        """
        self.store.update_last_login(account_id)
        account = self.store.find_by_id(account_id)
        if account is None or account.deleted:
            raise UnauthorizedError("User not found.", code="account_rejected")
        return to_profile(account)
