"""Quartermaster service: poll loop plus typed command operations."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol

from ..analytics import ListingClassifier, PriceTracker, ReconciliationEngine
from ..analytics.leaderboard import (
    current_month_range,
    inclusive_end,
    leaderboard,
    leaderboard_title,
)
from ..analytics.reconciliation import ListingSource
from ..config import constants
from ..db import Repository
from ..errors import (
    MigrationExpiredError,
    NotFoundError,
    QuartermasterError,
    TransportError,
    ValidationError,
)
from ..models import (
    DoctrineRequirement,
    ExchangeType,
    FullReport,
    IssuerStats,
    ListingStatus,
    MissingReport,
    OutboundMessage,
    utc_now,
)
from ..notify import NotificationGate, Transport
from ..notify import messages
from .commands import (
    Command,
    HelpCommand,
    LeaderboardCommand,
    MigrateCommand,
    ParseExcelCommand,
    PriceFetchCommand,
    PriceSetCommand,
    ReportCommand,
    RequireCommand,
    RequireListCommand,
    StockCommand,
    parse_command,
)
from .migration import MigrationResult, MigrationWorkflow, PendingMigration

logger = logging.getLogger(__name__)


class NameLookup(Protocol):
    def resolve_name(self, entity_id: int) -> str:
        ...


@dataclass
class CommandOutcome:
    """What a command produced, as delivered back to the chat channel."""

    messages: list[OutboundMessage] = field(default_factory=list)
    text: str | None = None
    reaction: str | None = None
    message_refs: list[str] = field(default_factory=list)
    ok: bool = True


@dataclass(frozen=True)
class LeaderboardResult:
    title: str
    start: datetime
    end: datetime
    stats: list[IssuerStats]


class Quartermaster:
    def __init__(
        self,
        store: Repository,
        source: ListingSource,
        transport: Transport,
        resolver: NameLookup,
        classifier: ListingClassifier,
        channel_id: str,
        notify_interval: timedelta = timedelta(seconds=constants.DEFAULT_NOTIFY_INTERVAL),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._transport = transport
        self._resolver = resolver
        self._channel_id = channel_id
        self._clock = clock
        self._engine = ReconciliationEngine(source, store, classifier)
        self._prices = PriceTracker(store, classifier)
        self._gate = NotificationGate(notify_interval, clock)
        self._migrations = MigrationWorkflow(store, clock=clock)
        self._stop_event = threading.Event()

    @property
    def gate(self) -> NotificationGate:
        return self._gate

    @property
    def migrations(self) -> MigrationWorkflow:
        return self._migrations

    # poll loop

    def tick(self) -> bool:
        """One poll iteration; returns False when it stopped early on an error."""

        try:
            report = self._reconcile(track_prices=True)
        except QuartermasterError:
            logger.exception("Error checking for missing doctrines")
            return False

        gaps = report.gaps
        if not any(self._gate.should_notify(gap.name) for gap in gaps):
            return True
        outgoing = messages.low_stock_messages(report.corporation, report.alliance)
        if not outgoing:
            logger.info("No doctrines added yet, sleeping.")
            return True
        for message in outgoing:
            try:
                self._transport.send(self._channel_id, message)
            except TransportError:
                logger.exception("Error sending discord message")
                return False
        self._gate.mark_all([gap.name for gap in gaps])
        logger.info("Notified about %d missing doctrines", len(gaps))
        return True

    def run(self, interval: float, once: bool = False) -> None:
        logger.info(
            "Quartermaster starting check_interval=%s notify_interval=%s",
            interval,
            self._gate.interval,
        )
        while not self._stop_event.is_set():
            self.tick()
            if once:
                break
            self._stop_event.wait(interval)
        logger.info("Quartermaster stopped")

    def stop(self) -> None:
        self._stop_event.set()

    # typed operations

    def _reconcile(self, track_prices: bool) -> MissingReport:
        listings = self._engine.load_listings()
        now = self._clock()
        if track_prices:
            try:
                self._prices.track_and_save_prices(listings, now)
            except QuartermasterError:
                logger.exception("error tracking and saving price history")
        return self._engine.report_missing(listings, now)

    def set_requirement(self, requirement: DoctrineRequirement) -> None:
        """Upsert by name; a zero count removes the doctrine."""

        if requirement.required_count < 0:
            raise ValidationError("required count must not be negative")
        if requirement.required_count > 0 and requirement.reference_price is None:
            # Keep a previously learned price when only the target changes.
            try:
                existing = self._store.get_requirement(requirement.name)
            except NotFoundError:
                pass
            else:
                requirement = replace(requirement, reference_price=existing.reference_price)
        self._store.set_requirement(requirement.name, requirement)

    def list_requirements(self) -> list[DoctrineRequirement]:
        return self._store.list_requirements()

    def resolve_name(self, entity_id: int) -> str:
        return self._resolver.resolve_name(entity_id)

    def report(self) -> MissingReport:
        return self._reconcile(track_prices=True)

    def report_full(self) -> FullReport:
        return self._engine.report_full(now=self._clock())

    def stock(self) -> dict[str, int]:
        listings = self._engine.load_listings()
        classifier = self._engine.classifier
        corporation, alliance = classifier.classify(
            listings,
            ListingStatus.OUTSTANDING,
            ExchangeType.ITEM_EXCHANGE,
            skip_expired=True,
            now=self._clock(),
        )
        return classifier.available_counts(corporation + alliance)

    def fetch_prices(self) -> int:
        """Re-read listings and record prices; store failures propagate."""

        listings = self._engine.load_listings()
        return self._prices.track_and_save_prices(listings, self._clock())

    def set_price(self, name: str, amount: int) -> DoctrineRequirement:
        return self._prices.set_reference_price(name, amount, self._clock())

    def leaderboard(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> LeaderboardResult:
        if start is None or end is None:
            start, end = current_month_range(self._clock())
        if end < start:
            raise ValidationError("leaderboard end date is before start date")
        observations = self._store.query_prices_in_range(start, inclusive_end(end))
        return LeaderboardResult(
            title=leaderboard_title(start, end),
            start=start,
            end=end,
            stats=leaderboard(observations),
        )

    def propose_migration(
        self, source: str, target: str, message_ref: str, channel_ref: str
    ) -> PendingMigration:
        return self._migrations.propose(source, target, message_ref, channel_ref)

    def confirm_migration(self, message_ref: str) -> MigrationResult | None:
        return self._migrations.confirm(message_ref)

    def import_requirements(self, requirements: Iterable[DoctrineRequirement]) -> int:
        wanted = list(requirements)
        self._store.replace_all_requirements(wanted)
        return len(wanted)

    # chat dispatch

    def handle_text(
        self, text: str, channel_id: str, message_id: str | None = None
    ) -> CommandOutcome | None:
        try:
            command = parse_command(text)
        except ValidationError as exc:
            outcome = CommandOutcome(text=str(exc), ok=False)
            self._deliver(outcome, channel_id, message_id)
            return outcome
        if command is None:
            return None
        return self.handle_command(command, channel_id, message_id)

    def handle_command(
        self, command: Command, channel_id: str, message_id: str | None = None
    ) -> CommandOutcome:
        logger.info("Responding to %s channel_id=%s", type(command).__name__, channel_id)
        if isinstance(command, MigrateCommand):
            return self._handle_migrate(command, channel_id)
        try:
            outcome = self._execute(command)
        except ValidationError as exc:
            outcome = CommandOutcome(text=str(exc), ok=False)
        except QuartermasterError as exc:
            logger.error("error handling %s: %s", type(command).__name__, exc)
            outcome = CommandOutcome(text=messages.error_text(exc), ok=False)
            if isinstance(command, ParseExcelCommand):
                outcome.reaction = constants.FAIL_EMOJI
        self._deliver(outcome, channel_id, message_id)
        return outcome

    def _execute(self, command: Command) -> CommandOutcome:
        if isinstance(command, HelpCommand):
            return CommandOutcome(messages=[messages.help_message()])
        if isinstance(command, ReportCommand):
            return self._report_outcome(command.full)
        if isinstance(command, StockCommand):
            return CommandOutcome(messages=[messages.stock_message(self.stock())])
        if isinstance(command, RequireListCommand):
            return CommandOutcome(
                messages=[messages.require_list_message(self.list_requirements())]
            )
        if isinstance(command, RequireCommand):
            self.set_requirement(
                DoctrineRequirement(
                    name=command.name,
                    required_count=command.count,
                    channel=command.channel,
                )
            )
            return CommandOutcome(reaction=constants.ACK_EMOJI)
        if isinstance(command, ParseExcelCommand):
            if not command.requirements:
                return CommandOutcome(text=messages.EMPTY_IMPORT_TEXT)
            self.import_requirements(command.requirements)
            return CommandOutcome(reaction=constants.ACK_EMOJI)
        if isinstance(command, PriceFetchCommand):
            self.fetch_prices()
            return CommandOutcome(reaction=constants.ACK_EMOJI)
        if isinstance(command, PriceSetCommand):
            self.set_price(command.name, command.amount)
            return CommandOutcome(reaction=constants.ACK_EMOJI)
        if isinstance(command, LeaderboardCommand):
            result = self.leaderboard(command.start, command.end)
            return CommandOutcome(
                messages=[
                    messages.leaderboard_message(
                        result.title, result.stats, self._resolver.resolve_name
                    )
                ]
            )
        raise ValidationError(f"unsupported command: {command!r}")

    def _report_outcome(self, full: bool) -> CommandOutcome:
        if full:
            report = self.report_full()
            outgoing = messages.full_report_messages(
                report, self._resolver.resolve_name, self._clock()
            )
        else:
            missing = self.report()
            outgoing = messages.missing_report_messages(missing)
        if not outgoing:
            outgoing = [messages.no_doctrines_message()]
        return CommandOutcome(messages=outgoing)

    def _handle_migrate(self, command: MigrateCommand, channel_id: str) -> CommandOutcome:
        prompt = messages.migration_prompt_message(command.source, command.target)
        outcome = CommandOutcome(messages=[prompt])
        try:
            message_ref = self._transport.send(channel_id, prompt)
        except TransportError as exc:
            logger.error("error sending message for !migrate: %s", exc)
            outcome.ok = False
            return outcome
        outcome.message_refs.append(message_ref)
        self.propose_migration(command.source, command.target, message_ref, channel_id)
        return outcome

    def handle_reaction(
        self, channel_id: str, message_id: str, emoji: str
    ) -> CommandOutcome | None:
        """Confirm a pending migration; other reactions and messages are ignored."""

        if emoji != constants.MIGRATION_CONFIRM_EMOJI:
            return None
        try:
            result = self.confirm_migration(message_id)
        except MigrationExpiredError as exc:
            outcome = CommandOutcome(text=str(exc), ok=False)
            self._deliver(outcome, channel_id, message_id)
            return outcome
        except QuartermasterError as exc:
            logger.error("error applying migration: %s", exc)
            outcome = CommandOutcome(text=messages.error_text(exc), ok=False)
            self._deliver(outcome, channel_id, None)
            return outcome
        if result is None:
            return None
        outcome = CommandOutcome(reaction=constants.ACK_EMOJI)
        self._deliver(outcome, channel_id, message_id)
        return outcome

    def _deliver(
        self, outcome: CommandOutcome, channel_id: str, message_id: str | None
    ) -> None:
        try:
            for message in outcome.messages:
                outcome.message_refs.append(self._transport.send(channel_id, message))
            if outcome.text:
                outcome.message_refs.append(
                    self._transport.send_text(channel_id, outcome.text, reply_to=message_id)
                )
            if outcome.reaction and message_id:
                self._transport.react(channel_id, message_id, outcome.reaction)
        except TransportError:
            logger.exception("error responding in channel %s", channel_id)
            outcome.ok = False


__all__ = ["CommandOutcome", "LeaderboardResult", "Quartermaster"]
