"""Listing filters and per-channel grouping."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..config import constants
from ..models import Channel, ExchangeType, ListingSnapshot, ListingStatus, utc_now
from .name_matcher import matches


class ListingClassifier:
    """Splits listings between the corporation and alliance channels."""

    def __init__(
        self,
        corporation_id: int,
        alliance_id: int,
        tracking_prefix: str = constants.PRICE_TRACKING_PREFIX,
    ) -> None:
        self.corporation_id = corporation_id
        self.alliance_id = alliance_id
        self.tracking_prefix = tracking_prefix

    def channel_of(self, listing: ListingSnapshot) -> Channel | None:
        if listing.assignee_id == self.corporation_id:
            return Channel.CORPORATION
        if listing.assignee_id == self.alliance_id:
            return Channel.ALLIANCE
        return None

    def classify(
        self,
        listings: Iterable[ListingSnapshot],
        status: ListingStatus,
        exchange_type: ExchangeType,
        skip_expired: bool,
        now: datetime | None = None,
    ) -> tuple[list[ListingSnapshot], list[ListingSnapshot]]:
        instant = now or utc_now()
        corporation: list[ListingSnapshot] = []
        alliance: list[ListingSnapshot] = []
        for listing in listings:
            if listing.exchange_type is not exchange_type:
                continue
            if listing.status is not status:
                continue
            if skip_expired and listing.is_expired(instant):
                continue
            channel = self.channel_of(listing)
            if channel is Channel.CORPORATION:
                corporation.append(listing)
            elif channel is Channel.ALLIANCE:
                alliance.append(listing)
        return corporation, alliance

    def available_counts(self, listings: Iterable[ListingSnapshot]) -> dict[str, int]:
        """Count listings per title, folding near-duplicate titles together.

        The first title seen becomes the group key; later titles matching an
        existing key are counted under it.
        """

        counts: dict[str, int] = {}
        for listing in listings:
            if listing.is_price_tracking(self.tracking_prefix):
                continue
            grouped = False
            for title in list(counts):
                if matches(title, listing.title):
                    counts[title] += 1
                    grouped = True
            if not grouped:
                counts[listing.title] = counts.get(listing.title, 0) + 1
        return counts


__all__ = ["ListingClassifier"]
