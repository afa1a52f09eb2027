from datetime import timedelta

import pytest

from quartermaster.bot.migration import MigrationWorkflow, collapse_prices
from quartermaster.errors import MigrationExpiredError
from quartermaster.models import Channel, DoctrineRequirement, PriceObservation
from quartermaster.notify import messages

from .factories import NOW


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _seed(store):
    store.replace_all_requirements(
        [
            DoctrineRequirement("v4 Shield Drake", 5, Channel.CORPORATION),
            DoctrineRequirement("v4 Armor Zealot", 2, Channel.ALLIANCE),
            DoctrineRequirement("Logistics Scimitar", 1, Channel.ALLIANCE),
        ]
    )
    for hours, price in ((1, 100), (2, 300), (3, 200)):
        store.record_price_observation(
            PriceObservation(
                doctrine_name="v4 Shield Drake",
                timestamp=NOW - timedelta(days=3, hours=hours),
                contract_id=hours,
                issuer_id=42,
                price=price,
            )
        )


def test_confirm_within_window_renames_and_collapses(store):
    _seed(store)
    clock = _Clock(NOW)
    workflow = MigrationWorkflow(store, clock=clock)

    workflow.propose("v4", "v5", message_ref="m-1", channel_ref="c-1")
    clock.now = NOW + timedelta(minutes=9)
    result = workflow.confirm("m-1")

    assert result is not None
    assert result.renamed == 3
    names = sorted(item.name for item in store.list_requirements())
    assert names == ["Logistics Scimitar", "v5 Armor Zealot", "v5 Shield Drake"]

    migrated = store.last_n_prices("v5 Shield Drake", 10)
    assert len(migrated) == 1
    assert migrated[0].price == 300
    assert migrated[0].issuer_id == 0
    assert migrated[0].timestamp == clock.now
    # Old history stays under the old name.
    assert len(store.last_n_prices("v4 Shield Drake", 10)) == 3


def test_confirm_after_window_expires_without_changes(store):
    _seed(store)
    clock = _Clock(NOW)
    workflow = MigrationWorkflow(store, clock=clock)
    workflow.propose("v4", "v5", message_ref="m-1", channel_ref="c-1")

    clock.now = NOW + timedelta(minutes=10, seconds=1)
    with pytest.raises(MigrationExpiredError) as excinfo:
        workflow.confirm("m-1")
    assert str(excinfo.value) == messages.MIGRATION_EXPIRED_TEXT

    names = sorted(item.name for item in store.list_requirements())
    assert names == ["Logistics Scimitar", "v4 Armor Zealot", "v4 Shield Drake"]
    assert len(store.all_price_observations()) == 3
    # The pending entry was consumed.
    assert workflow.confirm("m-1") is None


def test_unknown_message_is_ignored(store):
    workflow = MigrationWorkflow(store, clock=_Clock(NOW))
    assert workflow.confirm("nope") is None


def test_independent_proposals(store):
    workflow = MigrationWorkflow(store, clock=_Clock(NOW))
    workflow.propose("v4", "v5", message_ref="m-1", channel_ref="c-1")
    workflow.propose("v5", "v6", message_ref="m-2", channel_ref="c-1")

    assert sorted(item.message_ref for item in workflow.pending()) == ["m-1", "m-2"]


def test_collapse_prices_merges_renamed_collisions():
    observations = [
        PriceObservation("v4 Drake", NOW, 1, 9, 100),
        PriceObservation("v5 Drake", NOW, 2, 9, 150),
        PriceObservation("Ferox", NOW, 3, 9, 70),
    ]

    collapsed = collapse_prices(observations, "v4", "v5", NOW)

    assert [(item.doctrine_name, item.price) for item in collapsed] == [
        ("Ferox", 70),
        ("v5 Drake", 150),
    ]
    assert all(item.issuer_id == 0 and item.contract_id == 0 for item in collapsed)


class _AddsDuringMigration:
    """Adds doctrines from another writer while a migration is applied."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    def rename_requirements(self, source, target):
        self._store.set_requirement(
            "Ferox", DoctrineRequirement("Ferox", 2, Channel.CORPORATION)
        )
        return self._store.rename_requirements(source, target)

    def all_price_observations(self):
        self._store.set_requirement(
            "Caracal", DoctrineRequirement("Caracal", 1, Channel.ALLIANCE)
        )
        return self._store.all_price_observations()


def test_concurrent_require_is_kept_by_migration(store):
    store.set_requirement(
        "v1 Drake", DoctrineRequirement("v1 Drake", 3, Channel.CORPORATION)
    )
    workflow = MigrationWorkflow(_AddsDuringMigration(store), clock=_Clock(NOW))
    workflow.propose("v1", "v2", message_ref="m-1", channel_ref="c-1")

    workflow.confirm("m-1")

    names = sorted(item.name for item in store.list_requirements())
    assert names == ["Caracal", "Ferox", "v2 Drake"]
