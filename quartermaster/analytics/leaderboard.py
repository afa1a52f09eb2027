from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Iterable

from ..config import constants
from ..models import IssuerStats, PriceObservation, utc_now

# Observations with this issuer were set manually or produced by a rename.
SYNTHETIC_ISSUER_ID = 0


def current_month_range(now: datetime | None = None) -> tuple[datetime, datetime]:
    instant = (now or utc_now()).astimezone(timezone.utc)
    start = datetime(instant.year, instant.month, 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(instant.year, instant.month)[1]
    end = datetime(instant.year, instant.month, last_day, tzinfo=timezone.utc)
    return start, end


def inclusive_end(day: datetime) -> datetime:
    """Stretch a calendar day to its last second."""

    return day + timedelta(days=1) - timedelta(seconds=1)


def leaderboard(
    observations: Iterable[PriceObservation],
    limit: int = constants.LEADERBOARD_SIZE,
) -> list[IssuerStats]:
    totals: dict[int, tuple[int, int]] = {}
    for observation in observations:
        if observation.issuer_id == SYNTHETIC_ISSUER_ID:
            continue
        contracts, total = totals.get(observation.issuer_id, (0, 0))
        totals[observation.issuer_id] = (contracts + 1, total + observation.price)
    stats = [
        IssuerStats(issuer_id=issuer, contracts=contracts, total_price=total)
        for issuer, (contracts, total) in totals.items()
    ]
    stats.sort(key=lambda item: (-item.contracts, -item.total_price, item.issuer_id))
    return stats[:limit]


def leaderboard_title(start: datetime, end: datetime) -> str:
    if (start.year, start.month) == (end.year, end.month):
        return f":crown: Leaderboard for {start.strftime('%B')} {start.year}"
    return (
        f":crown: Leaderboard for {start.strftime('%B')} {start.year}"
        f" - {end.strftime('%B')} {end.year}"
    )


__all__ = [
    "SYNTHETIC_ISSUER_ID",
    "current_month_range",
    "inclusive_end",
    "leaderboard",
    "leaderboard_title",
]
