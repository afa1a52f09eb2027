"""Chat command parsing into typed command records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

from ..errors import ValidationError
from ..models import Channel, DoctrineRequirement

REQUIRE_PATTERN = re.compile(
    r"^(?P<number>[0-9]+)\s(?P<contract>[Aa]lliance|[Cc]orporation|[Cc]orp)\s(?P<name>.*)$"
)
PRICE_SET_PATTERN = re.compile(r"^(?P<number>[0-9]+)\s(?P<name>.*)$")
EXCEL_ROW_PATTERN = re.compile(
    r"(?P<name>.+)\s{4}(?P<number>[0-9]+)\s{4}(?P<contract>[Aa]lliance|[Cc]orporation|[Cc]orp)"
)
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class HelpCommand:
    pass


@dataclass(frozen=True)
class ReportCommand:
    full: bool = False


@dataclass(frozen=True)
class StockCommand:
    pass


@dataclass(frozen=True)
class RequireCommand:
    count: int
    channel: Channel
    name: str


@dataclass(frozen=True)
class RequireListCommand:
    pass


@dataclass(frozen=True)
class ParseExcelCommand:
    requirements: tuple[DoctrineRequirement, ...]


@dataclass(frozen=True)
class PriceFetchCommand:
    pass


@dataclass(frozen=True)
class PriceSetCommand:
    amount: int
    name: str


@dataclass(frozen=True)
class LeaderboardCommand:
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class MigrateCommand:
    source: str
    target: str


Command = Union[
    HelpCommand,
    ReportCommand,
    StockCommand,
    RequireCommand,
    RequireListCommand,
    ParseExcelCommand,
    PriceFetchCommand,
    PriceSetCommand,
    LeaderboardCommand,
    MigrateCommand,
]


def _strip_command(text: str, command: str) -> str:
    return text.removeprefix(command + " ").removeprefix(command).strip()


def _parse_require(text: str) -> RequireCommand:
    content = _strip_command(text, "!require")
    match = REQUIRE_PATTERN.fullmatch(content)
    if match is None or not match.group("name").strip():
        raise ValidationError(
            f"unrecognised !require `{content}`, "
            "the format is `!require N Alliance|Corp Some doctrine`"
        )
    return RequireCommand(
        count=int(match.group("number")),
        channel=Channel.parse(match.group("contract")),
        name=match.group("name").strip(),
    )


def _parse_price_set(text: str) -> PriceSetCommand:
    content = _strip_command(text, "!price set")
    match = PRICE_SET_PATTERN.fullmatch(content)
    if match is None or not match.group("name").strip():
        raise ValidationError(
            f"unrecognised !price set `{content}`, "
            "the format is `!price set NN Some doctrine`"
        )
    return PriceSetCommand(amount=int(match.group("number")), name=match.group("name").strip())


def _parse_date(value: str) -> datetime:
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError as exc:
        raise ValidationError(f"unknown date format, use YYYY-MM-DD: {exc}") from exc
    return parsed.replace(tzinfo=timezone.utc)


def _parse_leaderboard(text: str) -> LeaderboardCommand:
    params = _strip_command(text, "!leaderboard").split(" ")
    if len(params) != 2:
        return LeaderboardCommand()
    return LeaderboardCommand(start=_parse_date(params[0]), end=_parse_date(params[1]))


def _parse_migrate(text: str) -> MigrateCommand:
    params = _strip_command(text, "!migrate").split(" ")
    if len(params) != 2 or not all(params):
        raise ValidationError("Bad format, use `!migrate FROM TO`, see `!help` for more info.")
    return MigrateCommand(source=params[0], target=params[1])


def parse_excel(text: str) -> list[DoctrineRequirement]:
    """Rows of ``name<4 spaces>count<4 spaces>channel``; zero counts are dropped."""

    requirements: list[DoctrineRequirement] = []
    for match in EXCEL_ROW_PATTERN.finditer(text):
        count = int(match.group("number"))
        if count == 0:
            continue
        requirements.append(
            DoctrineRequirement(
                name=match.group("name").strip(),
                required_count=count,
                channel=Channel.parse(match.group("contract")),
            )
        )
    return requirements


def parse_command(text: str) -> Command | None:
    """Map raw chat text to a command; None when the text is not one of ours.

    Malformed arguments raise ValidationError carrying the user-facing hint.
    """

    content = text.strip()
    if content in ("!help", "!quartermaster"):
        return HelpCommand()
    if content == "!report full":
        return ReportCommand(full=True)
    if content in ("!report", "!qm"):
        return ReportCommand()
    if content == "!stock":
        return StockCommand()
    # "!require list" must be checked before the generic "!require" prefix.
    if content == "!require list":
        return RequireListCommand()
    if content.startswith("!require"):
        return _parse_require(content)
    if content.startswith("!parse excel"):
        body = content.removeprefix("!parse excel").replace("```", "")
        return ParseExcelCommand(requirements=tuple(parse_excel(body)))
    if content.startswith("!price fetch"):
        return PriceFetchCommand()
    if content.startswith("!price set"):
        return _parse_price_set(content)
    if content.startswith("!leaderboard"):
        return _parse_leaderboard(content)
    if content.startswith("!migrate"):
        return _parse_migrate(content)
    return None


__all__ = [
    "Command",
    "HelpCommand",
    "LeaderboardCommand",
    "MigrateCommand",
    "ParseExcelCommand",
    "PriceFetchCommand",
    "PriceSetCommand",
    "ReportCommand",
    "RequireCommand",
    "RequireListCommand",
    "StockCommand",
    "parse_command",
    "parse_excel",
]
