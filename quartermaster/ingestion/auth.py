"""EVE SSO refresh-token exchange."""

from __future__ import annotations

import base64
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import ListingSourceError
from .esi_client import EsiClient, EsiClientError
from .rate_limit import RateLimitPolicy

logger = logging.getLogger(__name__)


class OAuthToken:
    def __init__(self, access_token: str, expires_in: int) -> None:
        self.access_token = access_token
        self.refresh_token: str | None = None
        safety = max(expires_in - 30, 0)
        self.expires_at = datetime.now(timezone.utc) + timedelta(seconds=safety)

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at


class OAuthClient:
    def __init__(self, client: EsiClient, client_id: str, client_secret: str) -> None:
        self._client = client
        self._client_id = client_id
        self._client_secret = client_secret

    def _basic_auth(self) -> str:
        raw = f"{self._client_id}:{self._client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def refresh(self, refresh_token: str) -> OAuthToken:
        response = self._client.request(
            "POST",
            "token",
            form={"grant_type": "refresh_token", "refresh_token": refresh_token},
            headers={
                "Authorization": self._basic_auth(),
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )
        if not isinstance(response, dict) or "access_token" not in response:
            raise EsiClientError("SSO token response is missing access_token")
        expires_value = response.get("expires_in")
        expires_seconds = 1199 if expires_value is None else int(expires_value)
        token = OAuthToken(
            access_token=response["access_token"],
            expires_in=expires_seconds,
        )
        token.refresh_token = response.get("refresh_token")
        return token


class TokenSource:
    """Caches the current access token and refreshes it when it expires.

    SSO may rotate the refresh token; the newest one is kept for the next
    exchange.
    """

    def __init__(self, oauth: OAuthClient, refresh_token: str) -> None:
        self._oauth = oauth
        self._refresh_token = refresh_token
        self._token: OAuthToken | None = None
        self._lock = threading.Lock()

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def access_token(self) -> str:
        with self._lock:
            if self._token is None or self._token.is_expired():
                try:
                    token = self._oauth.refresh(self._refresh_token)
                except EsiClientError as exc:
                    raise ListingSourceError(f"unable to refresh SSO token: {exc}") from exc
                if token.refresh_token:
                    self._refresh_token = token.refresh_token
                self._token = token
                logger.info("SSO access token refreshed expires_at=%s", token.expires_at)
            return self._token.access_token


def oauth_client_factory(settings: Any) -> OAuthClient:
    if not (settings.eve_client_id and settings.eve_sso_secret):
        raise ValueError("EVE SSO credentials are missing")
    policy = RateLimitPolicy(
        settings.rate_limit_max_retries,
        settings.rate_limit_backoff_base,
        settings.rate_limit_backoff_max,
        settings.rate_limit_jitter,
    )
    client = EsiClient(
        settings.sso_base_url,
        policy,
        settings.user_agent,
        settings.request_timeout,
    )
    return OAuthClient(client, settings.eve_client_id, settings.eve_sso_secret)


def token_source_factory(settings: Any) -> TokenSource:
    if not settings.eve_refresh_token:
        raise ValueError("QM_EVE_REFRESH_TOKEN is required")
    return TokenSource(oauth_client_factory(settings), settings.eve_refresh_token)


__all__ = [
    "OAuthClient",
    "OAuthToken",
    "TokenSource",
    "oauth_client_factory",
    "token_source_factory",
]
