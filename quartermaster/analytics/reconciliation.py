"""Required-versus-available stock reconciliation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping, Protocol, Sequence

from ..errors import ReconciliationError
from ..models import (
    CLOSED_STATUSES,
    AlertListing,
    Channel,
    DoctrineGap,
    DoctrineRequirement,
    ExchangeType,
    FullReport,
    ListingSnapshot,
    ListingStatus,
    MissingReport,
    utc_now,
)
from .classifier import ListingClassifier
from .name_matcher import matches

logger = logging.getLogger(__name__)

ALERT_PRICE = "Price"
ALERT_EXPIRED = "Expired"
ALERT_WRONG_TYPE = "Wrong contract type"


class ListingSource(Protocol):
    def fetch_all(self) -> list[ListingSnapshot]:
        ...


class RequirementReader(Protocol):
    def list_requirements(self) -> list[DoctrineRequirement]:
        ...


def requirements_for(
    requirements: Iterable[DoctrineRequirement], channel: Channel
) -> list[DoctrineRequirement]:
    return [item for item in requirements if item.channel is channel]


def stock_rows(
    requirements: Sequence[DoctrineRequirement], available: Mapping[str, int]
) -> list[DoctrineGap]:
    """One row per requirement with stock summed over every matching title."""

    rows: list[DoctrineGap] = []
    for requirement in requirements:
        have = sum(
            count
            for title, count in available.items()
            if matches(requirement.name, title)
        )
        rows.append(
            DoctrineGap(
                name=requirement.name,
                required=requirement.required_count,
                have=have,
                channel=requirement.channel,
            )
        )
    rows.sort(key=lambda row: row.name)
    return rows


def missing_doctrines(
    requirements: Sequence[DoctrineRequirement], available: Mapping[str, int]
) -> list[DoctrineGap]:
    return [row for row in stock_rows(requirements, available) if row.missing]


def sold_counts(
    requirements: Sequence[DoctrineRequirement], finished: Mapping[str, int]
) -> dict[str, int]:
    sold: dict[str, int] = {}
    for requirement in requirements:
        if requirement.required_count == 0:
            continue
        for title, count in finished.items():
            if matches(requirement.name, title):
                sold[requirement.name] = sold.get(requirement.name, 0) + count
    return sold


class ReconciliationEngine:
    def __init__(
        self,
        source: ListingSource,
        repository: RequirementReader,
        classifier: ListingClassifier,
    ) -> None:
        self._source = source
        self._repository = repository
        self._classifier = classifier

    @property
    def classifier(self) -> ListingClassifier:
        return self._classifier

    def load_listings(self) -> list[ListingSnapshot]:
        try:
            return self._source.fetch_all()
        except Exception as exc:
            raise ReconciliationError(f"unable to load contracts: {exc}") from exc

    def _load_requirements(self) -> list[DoctrineRequirement]:
        try:
            return self._repository.list_requirements()
        except Exception as exc:
            raise ReconciliationError(
                f"error reading required doctrines: {exc}"
            ) from exc

    def report_missing(
        self,
        listings: Sequence[ListingSnapshot] | None = None,
        now: datetime | None = None,
    ) -> MissingReport:
        if listings is None:
            listings = self.load_listings()
        instant = now or utc_now()
        corporation, alliance = self._classifier.classify(
            listings,
            ListingStatus.OUTSTANDING,
            ExchangeType.ITEM_EXCHANGE,
            skip_expired=True,
            now=instant,
        )
        have_corporation = self._classifier.available_counts(corporation)
        have_alliance = self._classifier.available_counts(alliance)
        requirements = self._load_requirements()
        required_corporation = requirements_for(requirements, Channel.CORPORATION)
        required_alliance = requirements_for(requirements, Channel.ALLIANCE)

        missing_corporation = missing_doctrines(required_corporation, have_corporation)
        missing_alliance = missing_doctrines(required_alliance, have_alliance)
        configured = sum(1 for item in requirements if item.required_count > 0)
        all_satisfied = not (missing_corporation or missing_alliance) and configured > 0
        logger.debug(
            "reconciled listings=%d requirements=%d missing=%d",
            len(listings),
            configured,
            len(missing_corporation) + len(missing_alliance),
        )
        return MissingReport(
            corporation=missing_corporation,
            alliance=missing_alliance,
            all_satisfied=all_satisfied,
        )

    def report_full(
        self,
        listings: Sequence[ListingSnapshot] | None = None,
        now: datetime | None = None,
    ) -> FullReport:
        if listings is None:
            listings = self.load_listings()
        instant = now or utc_now()
        corporation, alliance = self._classifier.classify(
            listings,
            ListingStatus.OUTSTANDING,
            ExchangeType.ITEM_EXCHANGE,
            skip_expired=True,
            now=instant,
        )
        requirements = self._load_requirements()
        required_corporation = requirements_for(requirements, Channel.CORPORATION)
        required_alliance = requirements_for(requirements, Channel.ALLIANCE)

        # Sales throughput counts every finished listing, expired or not.
        finished_corporation, finished_alliance = self._classifier.classify(
            listings,
            ListingStatus.FINISHED,
            ExchangeType.ITEM_EXCHANGE,
            skip_expired=False,
            now=instant,
        )
        return FullReport(
            corporation=stock_rows(
                required_corporation, self._classifier.available_counts(corporation)
            ),
            alliance=stock_rows(
                required_alliance, self._classifier.available_counts(alliance)
            ),
            sold_corporation=sold_counts(
                required_corporation,
                self._classifier.available_counts(finished_corporation),
            ),
            sold_alliance=sold_counts(
                required_alliance,
                self._classifier.available_counts(finished_alliance),
            ),
            alerts=self.alert_listings(requirements, listings, instant),
        )

    def alert_listings(
        self,
        requirements: Sequence[DoctrineRequirement],
        listings: Sequence[ListingSnapshot],
        now: datetime,
    ) -> list[AlertListing]:
        """Open listings for required doctrines that look wrong."""

        alerts: list[AlertListing] = []
        seen: set[tuple[int, str]] = set()

        def _add(listing: ListingSnapshot, reason: str) -> None:
            key = (listing.contract_id, reason)
            if key in seen:
                return
            seen.add(key)
            alerts.append(AlertListing(listing=listing, reason=reason))

        for requirement in requirements:
            for listing in listings:
                if self._classifier.channel_of(listing) is None:
                    continue
                if listing.is_price_tracking(self._classifier.tracking_prefix):
                    continue
                if listing.status in CLOSED_STATUSES:
                    continue
                if not matches(requirement.name, listing.title):
                    continue
                reference = requirement.reference_price
                if reference is not None and reference.amount > int(listing.price):
                    _add(listing, ALERT_PRICE)
                if listing.is_expired(now):
                    _add(listing, ALERT_EXPIRED)
                if listing.exchange_type is not ExchangeType.ITEM_EXCHANGE:
                    _add(listing, ALERT_WRONG_TYPE)
        return alerts


__all__ = [
    "ALERT_EXPIRED",
    "ALERT_PRICE",
    "ALERT_WRONG_TYPE",
    "ListingSource",
    "ReconciliationEngine",
    "RequirementReader",
    "missing_doctrines",
    "requirements_for",
    "sold_counts",
    "stock_rows",
]
