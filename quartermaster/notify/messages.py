"""Chat message builders for reports, stock listings and prompts."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Mapping, Sequence

import humanize

from ..config import constants
from ..models import (
    AlertListing,
    Channel,
    DoctrineGap,
    DoctrineRequirement,
    FullReport,
    IssuerStats,
    MissingReport,
    OutboundMessage,
    utc_now,
)

NameLookup = Callable[[int], str]

NO_DOCTRINES_TEXT = (
    "Nothing added yet, use `!require` command to add doctrines, "
    "or check `!help` for more information."
)
EMPTY_REQUIRE_LIST_TEXT = "Nothing has been added yet, add items using `!require` or see `!help`."
MIGRATION_EXPIRED_TEXT = constants.MIGRATION_EXPIRED_TEXT
EMPTY_IMPORT_TEXT = "You are trying to import 0 doctrines, are you sure?"

HELP_TEXT = (
    "I'll keep you updated about our current doctrine ship stock listed on contracts. \n\n"
    "Here is the list of commands you can use:\n"
    "`!help` or `!quartermaster` - shows this help message\n"
    "`!report` or `!qm` - shows a report of missing stock\n"
    "`!report full` - shows full report of required doctrines with stock/missing counts\n"
    "`!stock` - shows currently available ships on contract\n"
    "`!require NN Alliance|Corporation Doctrine name` - require to have `Doctrine name` `NN`"
    " times on alliance or corporation contracts at all times (0 to remove)\n"
    "`!require list` - list of doctrine ships required to have on contract at all times\n"
    "`!parse excel` - parse copy+pasted columns from excel (sheet)\n"
    "`!price fetch` - re-check for price contracts, starting with `*`\n"
    "`!price set 45000000 Doctrine Name` - set price to 45M for `Doctrine name`\n"
    "`!leaderboard` - show leaderboard of haulers who made correct pricing contracts"
    " (starting with `*`)\n"
    "`!leaderboard 2022-01-01 2022-04-01` - to specify range\n"
    "`!migrate v4 v5` - for easier upgrading of doctrines, it is simple string replacement"
)

_LOW_STOCK_LINE = "**{name}** is low in stock, have {have} but require {required}"
_FULL_OK_LINE = ":small_blue_diamond: **{name}** [{sold}/mo] - stocked {have}, required {required}"
_FULL_MISSING_LINE = (
    ":small_orange_diamond: **{name}** [{sold}/mo] - stocked {have}, required {required}"
)
_ALERT_EXPIRED_LINE = "**{title}**: By: **{issuer}**, Expired: **{expired}**"
_ALERT_LINE = "**{title}**: By: **{issuer}**, Type: **{type}**, Status: **{status}**"


def split_message_parts(parts: Sequence[str], max_length: int) -> list[str]:
    """Pack newline-terminated lines into chunks no longer than ``max_length``.

    A single line longer than the limit still becomes its own chunk. The
    result always holds at least one (possibly empty) chunk.
    """

    messages: list[str] = []
    buffer: list[str] = []
    length = 0
    for part in parts:
        line = f"{part}\n"
        if buffer and length + len(line) > max_length:
            messages.append("".join(buffer))
            buffer = [line]
            length = len(line)
        else:
            buffer.append(line)
            length += len(line)
    messages.append("".join(buffer))
    return messages


def _embed(
    title: str,
    description: str,
    color: int = constants.COLOR_OK,
    thumbnail_url: str | None = constants.THUMBNAIL_URL,
    image_url: str | None = None,
) -> OutboundMessage:
    return OutboundMessage(
        title=title,
        description=description,
        color=color,
        timestamp=utc_now(),
        thumbnail_url=thumbnail_url,
        image_url=image_url,
    )


def low_stock_messages(
    corporation: Sequence[DoctrineGap],
    alliance: Sequence[DoctrineGap],
    max_length: int = constants.DISCORD_MAX_DESCRIPTION_LENGTH,
) -> list[OutboundMessage]:
    """Alliance block first, then corporation; empty blocks are omitted."""

    messages: list[OutboundMessage] = []
    for channel, gaps in ((Channel.ALLIANCE, alliance), (Channel.CORPORATION, corporation)):
        if not gaps:
            continue
        lines = [
            _LOW_STOCK_LINE.format(name=gap.name, have=gap.have, required=gap.required)
            for gap in gaps
        ]
        for chunk in split_message_parts(lines, max_length):
            messages.append(
                _embed(f"Doctrine ship contracts low [{channel.label}]", chunk)
            )
    return messages


def all_stocked_message() -> OutboundMessage:
    return _embed(
        "Doctrine ship stock :ok_hand:",
        "",
        image_url=constants.ALL_GOOD_IMAGE_URL,
    )


def missing_report_messages(report: MissingReport) -> list[OutboundMessage]:
    if report.all_satisfied:
        return [all_stocked_message()]
    return low_stock_messages(report.corporation, report.alliance)


def _full_lines(rows: Sequence[DoctrineGap], sold: Mapping[str, int]) -> list[str]:
    lines = []
    for row in rows:
        template = _FULL_MISSING_LINE if row.missing else _FULL_OK_LINE
        lines.append(
            template.format(
                name=row.name,
                sold=sold.get(row.name, 0),
                have=row.have,
                required=row.required,
            )
        )
    return lines


def alert_line(alert: AlertListing, resolve_name: NameLookup, now: datetime) -> str:
    listing = alert.listing
    issuer = resolve_name(listing.issuer_id)
    if listing.is_expired(now):
        return _ALERT_EXPIRED_LINE.format(
            title=listing.title,
            issuer=issuer,
            expired=humanize.naturaltime(now - listing.date_expired),
        )
    return _ALERT_LINE.format(
        title=listing.title,
        issuer=issuer,
        type=listing.exchange_type.value,
        status=listing.status.value,
    )


def full_report_messages(
    report: FullReport,
    resolve_name: NameLookup,
    now: datetime | None = None,
    max_length: int = constants.DISCORD_MAX_DESCRIPTION_LENGTH,
) -> list[OutboundMessage]:
    instant = now or utc_now()
    messages: list[OutboundMessage] = []
    blocks = (
        (Channel.ALLIANCE, report.alliance, report.sold_alliance),
        (Channel.CORPORATION, report.corporation, report.sold_corporation),
    )
    for channel, rows, sold in blocks:
        if not rows:
            continue
        for chunk in split_message_parts(_full_lines(rows, sold), max_length):
            messages.append(
                _embed(f":scroll: {channel.label} doctrines full report", chunk)
            )
    if report.alerts:
        lines = [alert_line(alert, resolve_name, instant) for alert in report.alerts]
        for chunk in split_message_parts(lines, max_length):
            messages.append(
                _embed(":x: Problematic contracts", chunk, color=constants.COLOR_ALERT)
            )
    return messages


def stock_message(available: Mapping[str, int]) -> OutboundMessage:
    lines = [f"{available[name]} {name}" for name in sorted(available)]
    return _embed(
        "Have on contract",
        "```\n{}\n```".format("\n".join(lines)),
        thumbnail_url=constants.STOCK_THUMBNAIL_URL,
    )


def require_list_message(requirements: Sequence[DoctrineRequirement]) -> OutboundMessage:
    ordered = sorted(requirements, key=lambda item: item.name)
    description = ""
    for channel in (Channel.ALLIANCE, Channel.CORPORATION):
        lines = [
            f"{item.required_count} {item.name}" for item in ordered if item.channel is channel
        ]
        if lines:
            description += "**{} contracts**\n```\n{}\n```\n".format(
                channel.label, "\n".join(lines)
            )
    return _embed("Target stock", description or EMPTY_REQUIRE_LIST_TEXT)


def leaderboard_message(
    title: str, stats: Sequence[IssuerStats], resolve_name: NameLookup
) -> OutboundMessage:
    lines = []
    for position, stat in enumerate(stats, start=1):
        icon = ":tada: " if position == 1 else ""
        lines.append(
            "{}**{}** `{}` with **{} contracts** worth **{} M ISK**".format(
                icon,
                humanize.ordinal(position),
                resolve_name(stat.issuer_id),
                stat.contracts,
                stat.total_price // 1_000_000,
            )
        )
    return _embed(title, "\n".join(lines))


def migration_prompt_message(source: str, target: str) -> OutboundMessage:
    return _embed(
        "Migrate :question:",
        f'About to migrate "{source}" -> "{target}". '
        "Confirm by reacting :white_check_mark:",
        color=constants.COLOR_CONFIRM,
    )


def help_message() -> OutboundMessage:
    return _embed("Hello, I'm your Quartermaster.", HELP_TEXT)


def no_doctrines_message() -> OutboundMessage:
    return _embed("Doctrine ship stock", NO_DOCTRINES_TEXT)


def error_text(exc: BaseException) -> str:
    return f"Sorry, some error happened: {exc}"


__all__ = [
    "EMPTY_IMPORT_TEXT",
    "HELP_TEXT",
    "MIGRATION_EXPIRED_TEXT",
    "NO_DOCTRINES_TEXT",
    "all_stocked_message",
    "error_text",
    "full_report_messages",
    "help_message",
    "leaderboard_message",
    "low_stock_messages",
    "migration_prompt_message",
    "missing_report_messages",
    "no_doctrines_message",
    "require_list_message",
    "split_message_parts",
    "stock_message",
]
