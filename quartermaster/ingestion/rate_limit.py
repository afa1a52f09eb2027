"""Backoff and error-budget helpers for ESI clients."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping

logger = logging.getLogger(__name__)

# ESI bans clients that exhaust the per-window error budget; stop short of it.
ERROR_BUDGET_FLOOR = 10


@dataclass(frozen=True)
class RateLimitPolicy:
    max_retries: int
    backoff_base: float
    backoff_max: float
    jitter: float

    def next_backoff(self, attempt: int, headers: Mapping[str, str]) -> float:
        retry = parse_retry_after(headers)
        if retry is not None:
            base = retry
            jitter = 0.0
            delay = max(0.0, retry)
        else:
            base = min(self.backoff_base * (2**attempt), self.backoff_max)
            if self.jitter > 0:
                jitter = random.uniform(-self.jitter, self.jitter)
            else:
                jitter = 0.0
            delay = max(0.0, base + jitter)
        logger.debug(
            "Computed backoff (attempt=%s base=%s jitter=%s) -> %s",
            attempt,
            base,
            jitter,
            delay,
        )
        return delay


@dataclass
class ErrorBudget:
    """Tracks ``X-ESI-Error-Limit-*`` headers and pauses before the budget runs out."""

    remaining: int | None = None
    reset_seconds: int | None = None
    paused_until: float = 0.0
    floor: int = ERROR_BUDGET_FLOOR

    def update(self, headers: Mapping[str, str], now: float | None = None) -> None:
        normalized = _lower_keys(headers)
        remaining = _parse_int(normalized.get("x-esi-error-limit-remain"))
        reset = _parse_int(normalized.get("x-esi-error-limit-reset"))
        if remaining is None:
            return
        self.remaining = remaining
        self.reset_seconds = reset
        if remaining <= self.floor and reset:
            instant = now if now is not None else time.monotonic()
            self.paused_until = max(self.paused_until, instant + reset)

    def next_delay(self, now: float | None = None) -> float:
        instant = now if now is not None else time.monotonic()
        return max(0.0, self.paused_until - instant)


def _lower_keys(headers: Mapping[str, str]) -> Mapping[str, str]:
    return {key.lower(): value for key, value in headers.items()}


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    candidate = _lower_keys(headers).get("retry-after")
    if not candidate:
        return None
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        return float(candidate)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(candidate)
        except (TypeError, ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        delta = (parsed - datetime.now(timezone.utc)).total_seconds()
        return max(0.0, delta)


__all__ = ["ErrorBudget", "RateLimitPolicy", "parse_retry_after"]
