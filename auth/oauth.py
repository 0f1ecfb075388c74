"""
auth/oauth.py -- Authlib Google OAuth/OIDC configuration and identity extraction.

build_oauth() is called once from the lifespan with the startup Settings and
returns the registry stored on app.state.oauth. Google is registered only
when client id, client secret, and callback URL are all configured; otherwise
the /auth/google routes redirect to the frontend with an error.

Security notes:
  [H1] Email verification is mandatory. identity_from_token() raises
       ValueError if Google does not confirm the email is verified. The
       provisioner trusts whatever identity it is handed, so the check has
       to happen here, before the identity exists.

  OAuth state parameter (CSRF protection) is handled by authlib automatically
  via Starlette SessionMiddleware. The session stores the state between the
  authorization redirect and the callback.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from authlib.integrations.starlette_client import OAuth

from auth.models import FederatedIdentity

logger = logging.getLogger("unidir.auth.oauth")

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"


def build_oauth(settings) -> OAuth:
    """Return an Authlib registry with Google registered if it is configured."""
    oauth = OAuth()
    if settings.google_enabled:
        oauth.register(
            name="google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            server_metadata_url=GOOGLE_DISCOVERY_URL,
            client_kwargs={"scope": "openid email profile"},
        )
        logger.info("Google OAuth provider registered")
    else:
        logger.info("Google OAuth not configured -- /auth/google is disabled")
    return oauth


def identity_from_token(token: dict) -> FederatedIdentity:
    """Extract a FederatedIdentity from the token Authlib returns after code exchange.

    Google's id_token claims (parsed by Authlib into token["userinfo"]) carry
    email, email_verified, given_name, family_name, picture and sub.

    [H1] The email is only accepted when email_verified is True. A missing
    email_verified claim counts as unverified.

    Raises:
        ValueError: If the userinfo is missing, unverified, or has no email.
    """
    userinfo = token.get("userinfo")
    if not userinfo:
        raise ValueError("google OAuth: no userinfo in token response")

    if not userinfo.get("email_verified", False):
        raise ValueError(
            "google OAuth: email is not verified. "
            "The provider must confirm email ownership before login is allowed."
        )

    email = userinfo.get("email")
    if not email:
        raise ValueError("google OAuth: missing email claim in userinfo")

    return FederatedIdentity(
        email=email,
        first_name=userinfo.get("given_name") or "",
        last_name=userinfo.get("family_name") or "",
        picture=userinfo.get("picture") or None,
        subject=userinfo.get("sub"),
    )
