"""Price history capture from price-tracking listings."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from ..config import constants
from ..errors import NotFoundError
from ..models import (
    FINISHED_STATUSES,
    DoctrineRequirement,
    ExchangeType,
    ListingSnapshot,
    PriceObservation,
    utc_now,
)
from .classifier import ListingClassifier

logger = logging.getLogger(__name__)


class PriceRepository(Protocol):
    def get_requirement(self, name: str) -> DoctrineRequirement:
        ...

    def list_requirements(self) -> list[DoctrineRequirement]:
        ...

    def update_reference_price(
        self, name: str, amount: int, timestamp: datetime
    ) -> DoctrineRequirement:
        ...

    def record_price_observation(self, observation: PriceObservation) -> None:
        ...

    def last_n_prices(self, doctrine_name: str, n: int) -> list[PriceObservation]:
        ...


def tracked_doctrine_name(title: str, prefix: str = constants.PRICE_TRACKING_PREFIX) -> str | None:
    """``"* v1 Shield Svipul"`` -> ``"v1 Shield Svipul"``; None for stock titles."""

    if not title.startswith(prefix):
        return None
    return title[len(prefix) :].strip()


def max_price(observations: Iterable[PriceObservation]) -> PriceObservation | None:
    best: PriceObservation | None = None
    for observation in observations:
        if best is None or observation.price > best.price:
            best = observation
    return best


class PriceTracker:
    def __init__(self, repository: PriceRepository, classifier: ListingClassifier) -> None:
        self._repository = repository
        self._classifier = classifier

    def finished_tracking_listings(
        self, listings: Sequence[ListingSnapshot], now: datetime | None = None
    ) -> list[ListingSnapshot]:
        instant = now or utc_now()
        selected: list[ListingSnapshot] = []
        for status in FINISHED_STATUSES:
            corporation, alliance = self._classifier.classify(
                listings,
                status,
                ExchangeType.ITEM_EXCHANGE,
                skip_expired=True,
                now=instant,
            )
            selected.extend(corporation)
            selected.extend(alliance)
        prefix = self._classifier.tracking_prefix
        return [item for item in selected if item.is_price_tracking(prefix)]

    def track_and_save_prices(
        self, listings: Sequence[ListingSnapshot], now: datetime | None = None
    ) -> int:
        """Record observed sale prices and refresh reference prices.

        Returns the number of observations written. Store failures propagate.
        """

        recorded = 0
        prefix = self._classifier.tracking_prefix
        for listing in self.finished_tracking_listings(listings, now):
            doctrine_name = tracked_doctrine_name(listing.title, prefix)
            if not doctrine_name:
                continue
            try:
                self._repository.get_requirement(doctrine_name)
            except NotFoundError:
                continue
            # Repeated observations overwrite the same (name, timestamp) key.
            self._repository.record_price_observation(
                PriceObservation(
                    doctrine_name=doctrine_name,
                    timestamp=listing.date_issued,
                    contract_id=listing.contract_id,
                    issuer_id=listing.issuer_id,
                    price=int(math.trunc(listing.price)),
                )
            )
            recorded += 1
        self.refresh_reference_prices()
        return recorded

    def refresh_reference_prices(self) -> None:
        for requirement in self._repository.list_requirements():
            window = requirement.required_count * 2
            recent = self._repository.last_n_prices(requirement.name, window)
            best = max_price(recent)
            logger.debug(
                "reference price doctrine=%s window=%d old=%s new=%s",
                requirement.name,
                window,
                requirement.reference_price,
                best.price if best else None,
            )
            if best is None or best.price == 0:
                continue
            current = requirement.reference_price
            if (
                current is not None
                and current.amount == best.price
                and current.timestamp == best.timestamp
            ):
                continue
            try:
                self._repository.update_reference_price(
                    requirement.name, best.price, best.timestamp
                )
            except NotFoundError:
                logger.info("doctrine removed during price refresh: %s", requirement.name)

    def set_reference_price(
        self, name: str, amount: int, now: datetime | None = None
    ) -> DoctrineRequirement:
        """Manually pin the reference price; raises NotFoundError for unknown names."""

        return self._repository.update_reference_price(name, amount, now or utc_now())


__all__ = ["PriceRepository", "PriceTracker", "max_price", "tracked_doctrine_name"]
