import json

from quartermaster.db import DoctrineStore
from quartermaster.db import legacy
from quartermaster.models import Channel

LEGACY_REPOSITORY = [
    {
        "name": "v4 Shield Drake",
        "require_stock": 5,
        "contracted_on": "corporation",
        "doctrine_price": {"buy": 95000000, "timestamp": "2024-03-01T10:00:00Z"},
    },
    {
        "name": "Logistics Scimitar",
        "require_stock": 2,
        "contracted_on": "alliance",
        "doctrine_price": {"buy": 0, "timestamp": None},
    },
]


def _write(tmp_path, payload):
    path = tmp_path / "repository.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_json_repository(tmp_path):
    requirements = legacy.load_json_repository(_write(tmp_path, LEGACY_REPOSITORY))

    assert [item.name for item in requirements] == ["v4 Shield Drake", "Logistics Scimitar"]
    assert requirements[0].reference_price.amount == 95_000_000
    assert requirements[1].channel is Channel.ALLIANCE
    assert requirements[1].reference_price is None
    assert legacy.load_json_repository(tmp_path / "missing.json") == []


def test_import_json_repository(store, tmp_path):
    path = _write(tmp_path, LEGACY_REPOSITORY)

    assert legacy.import_json_repository(store, path, dry_run=True) == 2
    assert store.list_requirements() == []

    assert legacy.import_json_repository(store, path) == 2
    assert store.get_requirement("v4 Shield Drake").required_count == 5


def test_main_imports_and_reads(tmp_path, capsys):
    database = tmp_path / "repository.db"
    path = _write(tmp_path, LEGACY_REPOSITORY)

    assert legacy.main(["--repository-file", str(database), "import-json", str(path)]) == 0
    assert legacy.main(["--repository-file", str(database), "read", "doctrines"]) == 0

    rows = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert sorted(row["name"] for row in rows) == ["Logistics Scimitar", "v4 Shield Drake"]
    with DoctrineStore.open(database) as reopened:
        assert len(reopened.list_requirements()) == 2
