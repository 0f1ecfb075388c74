"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login             -- email + password login; returns token pair + profile
  GET  /api/v1/auth/google            -- redirect to Google's consent screen (public)
  GET  /api/v1/auth/google/callback   -- Google callback; redirects to the frontend with tokens
  POST /api/v1/auth/refresh           -- exchange a refresh token for a new pair (public)
  GET  /api/v1/auth/profile           -- current account profile (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C1] AuthService.login() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries tokens.
  The Google callback never renders an error body: any failure redirects to
  {FRONTEND_URL}/auth/callback?error=authentication_failed.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter, login_rate_limit
from api.models import AccountResponse, LoginRequest, LoginResponse, RefreshRequest, TokenResponse
from api.responses import success
from auth.dependencies import get_current_account, public
from auth.models import AccountProfile
from auth.oauth import identity_from_token
from auth.service import AuthService
from core.errors import AppError

logger = logging.getLogger("unidir.api")

# Auth policy:
# - POST /api/v1/auth/login:            public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/google:           public -- starts the OAuth dance
# - GET  /api/v1/auth/google/callback:  public -- Google redirects the browser here
# - POST /api/v1/auth/refresh:          public at the access guard; the refresh token is the credential
# - GET  /api/v1/auth/profile:          requires auth (access_guard + get_current_account)
router = APIRouter()

_CALLBACK_PATH = "/auth/callback"


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


def _frontend_redirect(request: Request, **params) -> RedirectResponse:
    frontend_url = request.app.state.settings.frontend_url.rstrip("/")
    return RedirectResponse(f"{frontend_url}{_CALLBACK_PATH}?{urlencode(params)}", status_code=302)


def _failure_redirect(request: Request) -> RedirectResponse:
    return _frontend_redirect(request, error="authentication_failed")


# ---------------------------------------------------------------------------
# Password login and refresh
# ---------------------------------------------------------------------------


# [H2] The registered endpoint must be the slowapi wrapper: SlowAPIMiddleware
# only applies default limits. @public stays innermost; wraps() copies the marker.
@router.post("/auth/login")
@limiter.limit(login_rate_limit)
@public
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Uses AuthService.login() which includes timing equalization [C1]. Unknown
    email and wrong password produce the same 401 invalid_credentials; an
    inactive account produces 401 account_not_active.
    """
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.login(body.email, body.password)
    return _no_store(success(LoginResponse.from_result(result), message="Login successful"))


@router.post("/auth/refresh")
@public
def refresh(request: Request, body: RefreshRequest) -> JSONResponse:
    """Rotate tokens. The presented refresh token stays valid until its own exp."""
    auth_service: AuthService = request.app.state.auth_service
    pair = auth_service.refresh(body.refresh_token)
    return _no_store(success(TokenResponse.from_pair(pair), message="Tokens refreshed successfully"))


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------


@router.get("/auth/google")
@public
async def google_login(request: Request) -> RedirectResponse:
    """Redirect the browser to Google's authorization page.

    authorize_redirect() stores the OAuth state in the session (CSRF
    protection) and returns a 302 to Google.
    """
    client = request.app.state.oauth.create_client("google")
    if client is None:
        logger.warning("Google login requested but Google OAuth is not configured")
        return _failure_redirect(request)
    return await client.authorize_redirect(request, request.app.state.settings.google_callback_url)


@router.get("/auth/google/callback")
@public
async def google_callback(request: Request) -> RedirectResponse:
    """Handle Google's callback: exchange the code, provision, redirect with tokens.

    Flow:
      1. Exchange the authorization code (authlib verifies state + id_token).
      2. Extract a verified identity -- unverified email is rejected [H1].
      3. Find-or-create the account and issue a token pair.
      4. Redirect to the frontend with accessToken/refreshToken/expiresIn.
    """
    client = request.app.state.oauth.create_client("google")
    if client is None:
        return _failure_redirect(request)

    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("Google token exchange failed")
        return _failure_redirect(request)

    try:
        identity = identity_from_token(token)
    except ValueError as exc:
        logger.warning("Google login rejected: %s", exc)
        return _failure_redirect(request)

    auth_service: AuthService = request.app.state.auth_service
    try:
        # bcrypt runs when a new account is provisioned; keep it off the event loop.
        result = await run_in_threadpool(auth_service.oauth_login, identity)
    except AppError as exc:
        logger.warning("Google login failed for %s: %s", identity.email, exc.code)
        return _failure_redirect(request)

    return _frontend_redirect(
        request,
        accessToken=result.tokens.access_token,
        refreshToken=result.tokens.refresh_token,
        expiresIn=result.tokens.expires_in,
    )


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile")
def profile(request: Request, account: AccountProfile = Depends(get_current_account)) -> JSONResponse:
    """Return the full profile of the current account and stamp last_login_at."""
    auth_service: AuthService = request.app.state.auth_service
    current = auth_service.get_profile(account.id)
    return success(AccountResponse.from_profile(current), message="Profile retrieved successfully")
