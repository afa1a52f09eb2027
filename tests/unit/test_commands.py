from datetime import datetime, timezone

import pytest

from quartermaster.bot import commands
from quartermaster.bot.commands import parse_command, parse_excel
from quartermaster.errors import ValidationError
from quartermaster.models import Channel, DoctrineRequirement


@pytest.mark.parametrize(
    "text, expected",
    [
        ("!help", commands.HelpCommand()),
        ("!quartermaster", commands.HelpCommand()),
        ("!report", commands.ReportCommand()),
        ("!qm", commands.ReportCommand()),
        ("!report full", commands.ReportCommand(full=True)),
        ("!stock", commands.StockCommand()),
        ("!require list", commands.RequireListCommand()),
        ("!price fetch", commands.PriceFetchCommand()),
        ("  !qm  ", commands.ReportCommand()),
    ],
)
def test_simple_commands(text, expected):
    assert parse_command(text) == expected


def test_unrelated_text_is_not_a_command():
    assert parse_command("o7 fleet forming in 10") is None
    assert parse_command("!unknown") is None


def test_require_command():
    assert parse_command("!require 5 Corp Drake Fleet") == commands.RequireCommand(
        count=5, channel=Channel.CORPORATION, name="Drake Fleet"
    )
    assert parse_command("!require 0 alliance v4 Shield Drake") == commands.RequireCommand(
        count=0, channel=Channel.ALLIANCE, name="v4 Shield Drake"
    )


@pytest.mark.parametrize(
    "text",
    ["!require", "!require 5 Drake Fleet", "!require five Corp Drake", "!require 5 Corp "],
)
def test_require_command_rejects_bad_format(text):
    with pytest.raises(ValidationError, match="the format is"):
        parse_command(text)


def test_price_set_command():
    assert parse_command("!price set 45000000 Drake Fleet") == commands.PriceSetCommand(
        amount=45_000_000, name="Drake Fleet"
    )
    with pytest.raises(ValidationError, match="!price set NN Some doctrine"):
        parse_command("!price set lots Drake Fleet")


def test_leaderboard_command():
    assert parse_command("!leaderboard") == commands.LeaderboardCommand()
    assert parse_command("!leaderboard 2022-01-01 2022-04-01") == commands.LeaderboardCommand(
        start=datetime(2022, 1, 1, tzinfo=timezone.utc),
        end=datetime(2022, 4, 1, tzinfo=timezone.utc),
    )
    with pytest.raises(ValidationError, match="unknown date format"):
        parse_command("!leaderboard 2022-13-01 2022-04-01")


def test_migrate_command():
    assert parse_command("!migrate v4 v5") == commands.MigrateCommand(source="v4", target="v5")
    with pytest.raises(ValidationError, match="Bad format"):
        parse_command("!migrate v4")


def test_parse_excel_command_strips_code_fences():
    text = "!parse excel ```\nDrake Fleet    5    Corp\nZealot    0    Alliance\n```"

    command = parse_command(text)

    assert command == commands.ParseExcelCommand(
        requirements=(DoctrineRequirement("Drake Fleet", 5, Channel.CORPORATION),)
    )


def test_parse_excel_rows():
    text = "v4 Shield Drake    5    Corporation\nLogistics Scimitar    2    alliance\n"

    assert parse_excel(text) == [
        DoctrineRequirement("v4 Shield Drake", 5, Channel.CORPORATION),
        DoctrineRequirement("Logistics Scimitar", 2, Channel.ALLIANCE),
    ]
    assert parse_excel("not a table") == []
