"""
auth/oauth.py -- Google sign-in via the OAuth 2.0 authorization code flow.

Uses Authlib's requests integration (OAuth2Session) rather than the
Starlette client: the exchange is driven by explicit (code, state) values,
so the core stays transport-agnostic and needs no server-side session. The
state value is signed by SessionIssuer.issue_state() and checked before any
code is exchanged (see auth/service.py).

Security notes:
  Email verification is mandatory. profile_from_userinfo() raises
  ProfileFetchError if Google does not confirm the email is verified. Email
  is the key that links a Google identity to an existing account, so an
  unverified address could hand someone else's account to an attacker.

  Provider error bodies are logged, never returned. Callers only see the
  generic ExchangeError / ProfileFetchError messages.

Layer rule: no imports from api/ or roster/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
from authlib.integrations.requests_client import OAuth2Session, OAuthError

from auth.models import FederatedProfile
from core.config import Settings, get_settings
from core.errors import ExchangeError, ProfileFetchError

logger = logging.getLogger("rollet.auth.oauth")

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 -- URL, not a password
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
)


@dataclass(frozen=True)
class ProviderConfig:
    """Everything needed to run one provider's authorization code flow."""

    name: str
    label: str
    client_id: str
    client_secret: str
    redirect_url: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: tuple[str, ...]
    timeout_seconds: float = 10.0


def google_provider(settings: Settings | None = None) -> ProviderConfig | None:
    """Build the Google provider config, or None when it is not configured."""
    cfg = settings or get_settings()
    if not cfg.google_enabled:
        return None
    return ProviderConfig(
        name="google",
        label="Google",
        client_id=cfg.google_client_id,
        client_secret=cfg.google_client_secret,
        redirect_url=cfg.google_redirect_url,
        authorize_url=GOOGLE_AUTHORIZE_URL,
        token_url=GOOGLE_TOKEN_URL,
        userinfo_url=GOOGLE_USERINFO_URL,
        scopes=GOOGLE_SCOPES,
        timeout_seconds=cfg.oauth_timeout_seconds,
    )


def get_enabled_providers(settings: Settings | None = None) -> list[dict]:
    """Return {"name", "label"} for every configured provider.

    Used by GET /api/v1/auth/providers so clients know which sign-in
    buttons to render.
    """
    provider = google_provider(settings)
    return [{"name": provider.name, "label": provider.label}] if provider else []


def _session(provider: ProviderConfig) -> OAuth2Session:
    return OAuth2Session(
        client_id=provider.client_id,
        client_secret=provider.client_secret,
        scope=" ".join(provider.scopes),
        redirect_uri=provider.redirect_url,
        default_timeout=provider.timeout_seconds,
    )


def authorization_url(provider: ProviderConfig, state: str) -> str:
    """Return the provider URL the browser should be sent to."""
    with _session(provider) as session:
        url, _ = session.create_authorization_url(
            provider.authorize_url,
            state=state,
            access_type="offline",
        )
    return url


def exchange_code(provider: ProviderConfig, code: str) -> FederatedProfile:
    """Trade an authorization code for the user's verified profile.

    Raises:
        ExchangeError:     the provider rejected the code, or was unreachable.
        ProfileFetchError: the profile request failed, or the profile lacks
                           a verified email.
    """
    with _session(provider) as session:
        try:
            session.fetch_token(provider.token_url, code=code)
        except (OAuthError, requests.RequestException, ValueError) as exc:
            logger.warning("%s token exchange failed: %s", provider.name, exc)
            raise ExchangeError() from exc

        try:
            resp = session.get(provider.userinfo_url)
            resp.raise_for_status()
            userinfo = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("%s profile fetch failed: %s", provider.name, exc)
            raise ProfileFetchError() from exc

    return profile_from_userinfo(provider.name, userinfo)


def profile_from_userinfo(provider: str, userinfo: dict) -> FederatedProfile:
    """Normalize a Google v2 userinfo document into a FederatedProfile.

    Only a profile with id, email, and verified_email=true is accepted.
    Missing verified_email is treated as unverified.
    """
    if not isinstance(userinfo, dict):
        raise ProfileFetchError()
    subject = userinfo.get("id")
    email = userinfo.get("email")
    if not subject or not email:
        logger.warning("%s profile is missing id or email", provider)
        raise ProfileFetchError()
    if not userinfo.get("verified_email", False):
        logger.warning("%s sign-in rejected: email is not verified", provider)
        raise ProfileFetchError()
    return FederatedProfile(
        provider=provider,
        subject=str(subject),
        email=email,
        name=userinfo.get("name") or "",
        email_verified=True,
    )
