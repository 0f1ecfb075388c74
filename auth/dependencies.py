"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

access_guard() is registered app-wide in api/main.py:

    app = FastAPI(..., dependencies=[Depends(access_guard)])

so every route is protected unless its endpoint is marked with @public.
Per request it walks these states:

    Unchecked -> PublicBypass      endpoint marked @public; no identity attached
              -> TokenMissing      no "Authorization: Bearer <token>"    -> 401
              -> TokenInvalid /
                 TokenExpired      TokenCodec.verify_access() failed     -> 401
              -> AccountRejected   account gone, deleted, or not ACTIVE  -> 401
              -> Authorized        AccountProfile on request.state.account

The account is re-read from the store on every guarded request; claims are
never trusted for current status. Because tokens are stateless, this
re-resolution is the system's only revocation mechanism: an admin who
deactivates or deletes an account cuts off its unexpired access tokens on
their very next request.

require_roles(...) is the optional second gate. It must run after
access_guard (app-level dependencies always run before route dependencies)
and is a set-membership check over the closed Role enum.

Layer rule: no imports from api/ or directory/. auth/dependencies.py may import
from fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.models import AccountProfile
from core.errors import ForbiddenError, UnauthorizedError
from core.models import Role

_PUBLIC_ATTR = "__unidir_public__"


def public(endpoint: Callable) -> Callable:
    """Mark a route endpoint as reachable without an access token.

        @router.post("/auth/login")
        @public
        def login(...): ...
    """
    setattr(endpoint, _PUBLIC_ATTR, True)
    return endpoint


def is_public(request: Request) -> bool:
    """True when the matched route's endpoint carries the @public marker."""
    route = request.scope.get("route")
    endpoint = getattr(route, "endpoint", None) or request.scope.get("endpoint")
    return bool(getattr(endpoint, _PUBLIC_ATTR, False))


def bearer_token(request: Request) -> str | None:
    """Return the token from "Authorization: Bearer <token>", or None."""
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    credentials = credentials.strip()
    return credentials or None


def access_guard(request: Request) -> None:
    """App-wide gate. Raises UnauthorizedError; the API layer renders it as 401."""
    if is_public(request):
        request.state.account = None
        return

    token = bearer_token(request)
    if token is None:
        raise UnauthorizedError("Authentication required.", code="token_missing")

    claims = request.app.state.token_codec.verify_access(token)
    request.state.account = request.app.state.auth_service.resolve_account(claims.account_id)


def get_current_account(request: Request) -> AccountProfile:
    """Return the identity attached by access_guard.

    Use as a FastAPI dependency:
        @router.get("/me")
        def route(account: AccountProfile = Depends(get_current_account)): ...
    """
    account = getattr(request.state, "account", None)
    if account is None:
        raise UnauthorizedError("User not authenticated.", code="identity_missing")
    return account


def require_roles(*roles: Role | str) -> Callable[[Request], AccountProfile]:
    """Build a dependency that allows only the listed roles.

    An empty list allows every authenticated identity. A missing identity
    (route is @public, or access_guard was not installed) is a 401 with code
    identity_missing, distinct from the 403 for a role mismatch.

    Use as a FastAPI dependency:
        @router.post("/users", dependencies=[Depends(require_roles(Role.ADMIN))])
    """
    allowed = frozenset(Role(r) for r in roles)

    def role_guard(request: Request) -> AccountProfile:
        account = get_current_account(request)
        if allowed and account.role not in allowed:
            required = ", ".join(sorted(r.value for r in allowed))
            raise ForbiddenError(f"Access denied. Required roles: {required}")
        return account

    return role_guard


require_admin = require_roles(Role.ADMIN)
