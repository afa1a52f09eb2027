"""Minimal EVE ESI HTTP client with retry/backoff handling."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .rate_limit import ErrorBudget, RateLimitPolicy

logger = logging.getLogger(__name__)

# 420 is ESI's "error limited" status.
RETRY_STATUSES = frozenset({420, 429, 502, 503, 504})


class EsiClientError(RuntimeError):
    """Raised when ESI answers with an error or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class EsiResponse:
    payload: Any
    headers: dict[str, str]
    status_code: int
    attempts: int
    duration_ms: float


@dataclass
class EsiClient:
    base_url: str
    policy: RateLimitPolicy
    user_agent: str
    timeout: float
    http_client: httpx.Client | None = None
    _bearer_token: str | None = field(default=None, init=False)
    _budget: ErrorBudget = field(default_factory=ErrorBudget, init=False)
    _last_attempts: int = field(default=0, init=False)

    def set_bearer_token(self, token: str | None) -> None:
        self._bearer_token = token

    @property
    def error_budget(self) -> ErrorBudget:
        return self._budget

    @property
    def last_attempts(self) -> int:
        return self._last_attempts

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()

    def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        json_body: Any | None = None,
        form: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return self.request_with_metadata(
            method, path, params=params, json_body=json_body, form=form, headers=headers
        ).payload

    def request_with_metadata(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        json_body: Any | None = None,
        form: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> EsiResponse:
        url = self._build_url(path)
        attempts = self.policy.max_retries + 1
        self._last_attempts = 0
        start = time.monotonic()
        client = self._ensure_http()
        for attempt in range(attempts):
            self._last_attempts = attempt + 1
            pause = self._budget.next_delay()
            if pause > 0:
                logger.warning("ESI error budget low, waiting %.1fs", pause)
                time.sleep(pause)
            try:
                logger.debug("ESI request %s %s attempt=%s", method, url, attempt)
                response = client.request(
                    method.upper(),
                    url,
                    params=dict(params) if params else None,
                    json=json_body,
                    data=dict(form) if form else None,
                    headers=self._build_headers(headers),
                    timeout=self.timeout,
                )
            except httpx.TransportError as exc:
                logger.warning("ESI transport error on attempt %s: %s", attempt, exc)
                if attempt < attempts - 1:
                    time.sleep(self.policy.next_backoff(attempt, {}))
                    continue
                raise EsiClientError(f"ESI unreachable: {exc}") from exc

            response_headers = dict(response.headers)
            self._budget.update(response_headers)
            if response.status_code in RETRY_STATUSES and attempt < attempts - 1:
                delay = self.policy.next_backoff(attempt, response_headers)
                logger.warning(
                    "ESI status %s (attempt=%s) waiting %.1fs",
                    response.status_code,
                    attempt,
                    delay,
                )
                time.sleep(delay)
                continue
            if response.status_code >= 400:
                raise EsiClientError(
                    "ESI client error %s: %s" % (response.status_code, response.text),
                    status_code=response.status_code,
                )
            return EsiResponse(
                payload=self._parse_body(response),
                headers=response_headers,
                status_code=response.status_code,
                attempts=self._last_attempts,
                duration_ms=(time.monotonic() - start) * 1000.0,
            )
        raise EsiClientError("ESI client exhausted retries")

    def _ensure_http(self) -> httpx.Client:
        if self.http_client is None:
            self.http_client = httpx.Client(timeout=self.timeout)
        return self.http_client

    def _build_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _build_headers(self, base_headers: Mapping[str, str] | None) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        if base_headers:
            headers.update(base_headers)
        return headers

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


__all__ = ["EsiClient", "EsiClientError", "EsiResponse"]
