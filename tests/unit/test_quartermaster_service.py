from datetime import datetime, timedelta, timezone

import pytest

from quartermaster.analytics import ListingClassifier
from quartermaster.bot import Quartermaster
from quartermaster.config import constants
from quartermaster.errors import ListingSourceError, ValidationError
from quartermaster.models import (
    Channel,
    DoctrineRequirement,
    ListingStatus,
    PriceObservation,
    ReferencePrice,
)
from quartermaster.notify import messages

from .factories import (
    ALLIANCE_ID,
    CORPORATION_ID,
    NOW,
    Clock,
    FakeResolver,
    FakeSource,
    FakeTransport,
    make_listing,
)

CHANNEL = "chan-1"


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def qm(store, source, transport, clock):
    return Quartermaster(
        store=store,
        source=source,
        transport=transport,
        resolver=FakeResolver({2112000001: "Hauler Joe"}),
        classifier=ListingClassifier(CORPORATION_ID, ALLIANCE_ID),
        channel_id=CHANNEL,
        notify_interval=timedelta(hours=24),
        clock=clock,
    )


def _require(store, name, count, channel=Channel.CORPORATION):
    store.set_requirement(name, DoctrineRequirement(name, count, channel))


def test_tick_notifies_once_per_interval(qm, store, source, transport, clock):
    _require(store, "Drake Fleet", 5)
    _require(store, "Zealot", 2, Channel.ALLIANCE)
    source.listings = [make_listing("Drake Fleet"), make_listing("Drake Fleet")]

    assert qm.tick() is True
    assert [message.title for _, message in transport.sent] == [
        "Doctrine ship contracts low [Alliance]",
        "Doctrine ship contracts low [Corporation]",
    ]
    assert qm.gate.last_notified("Drake Fleet") == NOW

    clock.now = NOW + timedelta(hours=1)
    assert qm.tick() is True
    assert len(transport.sent) == 2

    clock.now = NOW + timedelta(hours=25)
    assert qm.tick() is True
    assert len(transport.sent) == 4


def test_tick_marks_nothing_when_send_fails(qm, store, transport):
    _require(store, "Drake Fleet", 5)
    transport.fail = True

    assert qm.tick() is False
    assert qm.gate.last_notified("Drake Fleet") is None


def test_tick_resends_whole_batch_when_one_gap_is_new(qm, store, source, transport, clock):
    _require(store, "Drake Fleet", 1)
    _require(store, "Ferox", 1)
    source.listings = [make_listing("Ferox")]

    assert qm.tick() is True
    assert "Drake Fleet" in transport.sent[0][1].description
    assert "Ferox" not in transport.sent[0][1].description

    clock.now = NOW + timedelta(hours=1)
    source.listings = []
    assert qm.tick() is True

    assert len(transport.sent) == 2
    latest = transport.sent[1][1].description
    assert "Drake Fleet" in latest
    assert "Ferox" in latest
    assert qm.gate.last_notified("Drake Fleet") == clock.now
    assert qm.gate.last_notified("Ferox") == clock.now


def test_tick_marks_nothing_when_batch_is_partly_sent(qm, store, transport):
    _require(store, "Drake Fleet", 5)
    _require(store, "Zealot", 2, Channel.ALLIANCE)
    transport.fail_from = 2

    assert qm.tick() is False

    assert [message.title for _, message in transport.sent] == [
        "Doctrine ship contracts low [Alliance]"
    ]
    assert qm.gate.last_notified("Drake Fleet") is None
    assert qm.gate.last_notified("Zealot") is None


def test_tick_survives_source_failure(qm, store, source, transport):
    _require(store, "Drake Fleet", 5)
    source.error = ListingSourceError("ESI down")

    assert qm.tick() is False
    assert transport.sent == []


def test_tick_is_quiet_when_stocked(qm, store, source, transport):
    _require(store, "Drake Fleet", 1)
    source.listings = [make_listing("Drake Fleet")]

    assert qm.tick() is True
    assert transport.sent == []


def test_tick_records_prices(qm, store, source):
    _require(store, "Drake Fleet", 1)
    source.listings = [
        make_listing("Drake Fleet"),
        make_listing("* Drake Fleet", status=ListingStatus.FINISHED, price=88_000_000.0),
    ]

    qm.tick()

    assert [item.price for item in store.all_price_observations()] == [88_000_000]
    assert store.get_requirement("Drake Fleet").reference_price.amount == 88_000_000


def test_run_once_stops_after_one_tick(qm, store, transport):
    _require(store, "Drake Fleet", 5)

    qm.run(interval=60, once=True)

    assert len(transport.sent) == 1


def test_set_requirement_keeps_reference_price(qm, store):
    price = ReferencePrice(45_000_000, NOW)
    store.set_requirement(
        "Drake Fleet",
        DoctrineRequirement("Drake Fleet", 5, Channel.CORPORATION, reference_price=price),
    )

    qm.set_requirement(DoctrineRequirement("Drake Fleet", 8, Channel.ALLIANCE))

    saved = store.get_requirement("Drake Fleet")
    assert saved.required_count == 8
    assert saved.channel is Channel.ALLIANCE
    assert saved.reference_price == price

    with pytest.raises(ValidationError):
        qm.set_requirement(DoctrineRequirement("Drake Fleet", -1, Channel.ALLIANCE))


def test_stock_counts_both_channels(qm, source):
    source.listings = [
        make_listing("Drake Fleet"),
        make_listing("Drake Fleet", assignee_id=ALLIANCE_ID),
        make_listing("Zealot", date_expired=NOW - timedelta(hours=1)),
        make_listing("* Drake Fleet"),
    ]

    assert qm.stock() == {"Drake Fleet": 2}


def test_leaderboard_defaults_to_current_month(qm, store):
    for day, issuer in ((1, 7), (31, 7), (10, 8)):
        store.record_price_observation(
            PriceObservation(
                "Drake Fleet",
                datetime(2024, 3, day, 18, tzinfo=timezone.utc),
                day,
                issuer,
                10_000_000,
            )
        )
    store.record_price_observation(
        PriceObservation("Drake Fleet", datetime(2024, 4, 1, tzinfo=timezone.utc), 99, 9, 1)
    )

    result = qm.leaderboard()

    assert result.title == ":crown: Leaderboard for March 2024"
    assert [(item.issuer_id, item.contracts) for item in result.stats] == [(7, 2), (8, 1)]

    with pytest.raises(ValidationError):
        qm.leaderboard(
            datetime(2024, 3, 2, tzinfo=timezone.utc), datetime(2024, 3, 1, tzinfo=timezone.utc)
        )


def test_handle_text_ignores_chatter(qm, transport):
    assert qm.handle_text("fleet up?", CHANNEL, "m-1") is None
    assert transport.sent == [] and transport.texts == []


def test_require_command_acknowledges(qm, store, transport):
    outcome = qm.handle_text("!require 3 Alliance Zealot", CHANNEL, "m-1")

    assert outcome.ok
    assert store.get_requirement("Zealot").required_count == 3
    assert transport.reactions == [(CHANNEL, "m-1", constants.ACK_EMOJI)]


def test_bad_require_replies_with_format_hint(qm, transport):
    outcome = qm.handle_text("!require lots of drakes", CHANNEL, "m-1")

    assert not outcome.ok
    assert transport.texts[0][1].startswith("unrecognised !require")
    assert transport.texts[0][2] == "m-1"


def test_report_without_doctrines(qm, transport):
    qm.handle_text("!report", CHANNEL, "m-1")

    assert [message.description for _, message in transport.sent] == [
        messages.NO_DOCTRINES_TEXT
    ]


def test_report_when_everything_is_stocked(qm, store, source, transport):
    _require(store, "Drake Fleet", 1)
    source.listings = [make_listing("Drake Fleet")]

    qm.handle_text("!qm", CHANNEL, "m-1")

    assert transport.sent[0][1].title == "Doctrine ship stock :ok_hand:"


def test_full_report_lists_alerts(qm, store, source, transport):
    _require(store, "Drake Fleet", 2)
    source.listings = [make_listing("Drake Fleet", date_expired=NOW - timedelta(days=1))]

    qm.handle_text("!report full", CHANNEL, "m-1")

    titles = [message.title for _, message in transport.sent]
    assert titles == [
        ":scroll: Corporation doctrines full report",
        ":x: Problematic contracts",
    ]
    assert "Hauler Joe" in transport.sent[1][1].description


def test_price_set_unknown_doctrine_reports_error(qm, transport):
    outcome = qm.handle_text("!price set 100 Nope", CHANNEL, "m-1")

    assert not outcome.ok
    assert transport.texts[0][1].startswith("Sorry, some error happened:")


def test_parse_excel_replaces_requirements(qm, store, transport):
    _require(store, "Stale", 1)

    qm.handle_text("!parse excel\nDrake Fleet    4    Corp\nZealot    2    Alliance", CHANNEL, "m-1")

    assert sorted(item.name for item in store.list_requirements()) == ["Drake Fleet", "Zealot"]
    assert transport.reactions == [(CHANNEL, "m-1", constants.ACK_EMOJI)]


def test_parse_excel_with_nothing_to_import(qm, store, transport):
    _require(store, "Stale", 1)

    qm.handle_text("!parse excel nothing here", CHANNEL, "m-1")

    assert transport.texts[0][1] == messages.EMPTY_IMPORT_TEXT
    assert [item.name for item in store.list_requirements()] == ["Stale"]


def test_migration_confirmed_by_reaction(qm, store, transport, clock):
    _require(store, "v4 Shield Drake", 5)

    outcome = qm.handle_text("!migrate v4 v5", CHANNEL, "m-1")
    prompt_ref = outcome.message_refs[0]
    assert transport.sent[0][1].title == "Migrate :question:"

    assert qm.handle_reaction(CHANNEL, prompt_ref, "\U0001F600") is None
    clock.now = NOW + timedelta(minutes=5)
    confirmed = qm.handle_reaction(CHANNEL, prompt_ref, constants.MIGRATION_CONFIRM_EMOJI)

    assert confirmed.ok
    assert [item.name for item in store.list_requirements()] == ["v5 Shield Drake"]
    assert transport.reactions[-1] == (CHANNEL, prompt_ref, constants.ACK_EMOJI)


def test_migration_reaction_after_expiry(qm, store, transport, clock):
    _require(store, "v4 Shield Drake", 5)
    prompt_ref = qm.handle_text("!migrate v4 v5", CHANNEL, "m-1").message_refs[0]

    clock.now = NOW + timedelta(minutes=11)
    outcome = qm.handle_reaction(CHANNEL, prompt_ref, constants.MIGRATION_CONFIRM_EMOJI)

    assert not outcome.ok
    assert transport.texts[-1][1] == messages.MIGRATION_EXPIRED_TEXT
    assert [item.name for item in store.list_requirements()] == ["v4 Shield Drake"]
