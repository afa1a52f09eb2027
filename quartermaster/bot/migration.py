"""Two-phase doctrine rename confirmed through a chat reaction."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol

from ..config import constants
from ..errors import MigrationExpiredError
from ..models import PriceObservation, utc_now

logger = logging.getLogger(__name__)


class MigrationRepository(Protocol):
    def rename_requirements(self, source: str, target: str) -> int:
        ...

    def all_price_observations(self) -> list[PriceObservation]:
        ...

    def replace_all_price_observations(self, observations: Iterable[PriceObservation]) -> None:
        ...


@dataclass(frozen=True)
class PendingMigration:
    source_name: str
    target_name: str
    channel_ref: str
    message_ref: str
    created_at: datetime


@dataclass(frozen=True)
class MigrationResult:
    migration: PendingMigration
    renamed: int
    prices_written: int


def collapse_prices(
    observations: Iterable[PriceObservation],
    source: str,
    target: str,
    now: datetime,
) -> list[PriceObservation]:
    """Keep each doctrine's highest price, renamed and re-stamped at ``now``.

    Existing history stays in place under the old names.
    """

    best: dict[str, int] = {}
    for observation in observations:
        name = observation.doctrine_name.replace(source, target)
        if observation.price > best.get(name, 0):
            best[name] = observation.price
    return [
        PriceObservation(
            doctrine_name=name,
            timestamp=now,
            contract_id=0,
            issuer_id=0,
            price=price,
        )
        for name, price in sorted(best.items())
    ]


class MigrationWorkflow:
    def __init__(
        self,
        repository: MigrationRepository,
        validity: timedelta = timedelta(seconds=constants.MIGRATION_VALIDITY_SECONDS),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._validity = validity
        self._clock = clock
        self._pending: dict[str, PendingMigration] = {}
        self._lock = threading.Lock()

    def propose(
        self, source: str, target: str, message_ref: str, channel_ref: str
    ) -> PendingMigration:
        pending = PendingMigration(
            source_name=source,
            target_name=target,
            channel_ref=channel_ref,
            message_ref=message_ref,
            created_at=self._clock(),
        )
        with self._lock:
            self._pending[message_ref] = pending
        logger.info("migration proposed %r -> %r message=%s", source, target, message_ref)
        return pending

    def pending(self) -> list[PendingMigration]:
        with self._lock:
            return list(self._pending.values())

    def confirm(self, message_ref: str) -> MigrationResult | None:
        """Apply the migration proposed under ``message_ref``.

        Unknown refs return None. The pending entry is consumed either way,
        so a stale confirmation cannot be retried.
        """

        with self._lock:
            pending = self._pending.pop(message_ref, None)
        if pending is None:
            return None
        if pending.created_at < self._clock() - self._validity:
            raise MigrationExpiredError(constants.MIGRATION_EXPIRED_TEXT)
        return self._apply(pending)

    def _apply(self, pending: PendingMigration) -> MigrationResult:
        logger.info(
            "applying migration %r -> %r", pending.source_name, pending.target_name
        )
        renamed = self._repository.rename_requirements(
            pending.source_name, pending.target_name
        )
        prices = collapse_prices(
            self._repository.all_price_observations(),
            pending.source_name,
            pending.target_name,
            self._clock(),
        )
        self._repository.replace_all_price_observations(prices)
        return MigrationResult(
            migration=pending,
            renamed=renamed,
            prices_written=len(prices),
        )


__all__ = [
    "MigrationResult",
    "MigrationWorkflow",
    "PendingMigration",
    "collapse_prices",
]
