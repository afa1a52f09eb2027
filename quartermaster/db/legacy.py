"""Import and inspection tooling for the doctrine repository file."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from ..config import settings as config_settings
from ..errors import StoreError
from ..models import DoctrineRequirement
from .store import DoctrineStore

LOGGER = logging.getLogger(__name__)


def load_json_repository(path: str | Path) -> list[DoctrineRequirement]:
    """Read a legacy ``repository.json`` list of doctrines; missing file is empty."""

    source = Path(path)
    if not source.exists():
        return []
    try:
        raw = json.loads(source.read_text(encoding="utf-8") or "[]")
    except (OSError, json.JSONDecodeError) as exc:
        raise StoreError(f"error decoding repository file {source}: {exc}") from exc
    if not isinstance(raw, list):
        raise StoreError(f"repository file {source} must contain a JSON list")
    return [DoctrineRequirement.from_row(entry) for entry in raw]


def import_json_repository(
    store: DoctrineStore, path: str | Path, dry_run: bool = False
) -> int:
    requirements = load_json_repository(path)
    LOGGER.info("loaded %d doctrines from %s", len(requirements), path)
    if dry_run:
        LOGGER.info("dry-run enabled: skipping write of %d doctrines", len(requirements))
        return len(requirements)
    store.replace_all_requirements(requirements)
    written = len(store.list_requirements())
    LOGGER.info(
        "wrote %d doctrines; repositories equal=%s",
        written,
        written == len(requirements),
    )
    return written


def dump_doctrines(store: DoctrineStore) -> list[dict[str, object]]:
    return [item.to_row() for item in store.list_requirements()]


def dump_price_history(store: DoctrineStore) -> list[dict[str, object]]:
    return [item.to_row() for item in store.all_price_observations()]


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="quartermaster-repository")
    parser.add_argument(
        "--repository-file",
        help="Path to the SQLite repository (defaults to QM_REPOSITORY_FILE)",
    )
    subparsers = parser.add_subparsers(dest="action", required=True)
    import_parser = subparsers.add_parser(
        "import-json", help="Replace stored doctrines with a legacy JSON repository"
    )
    import_parser.add_argument("json_file", help="Path to repository.json")
    import_parser.add_argument(
        "--dry-run", action="store_true", help="Parse the file without writing"
    )
    read_parser = subparsers.add_parser("read", help="Print repository contents")
    read_parser.add_argument("what", choices=["doctrines", "price-history"])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    cfg = config_settings.get_settings()
    repository_file = args.repository_file or cfg.repository_file
    try:
        store = DoctrineStore.open(repository_file)
    except StoreError as exc:
        LOGGER.error("error initializing repository file: %s", exc)
        return 1
    with store:
        if args.action == "import-json":
            import_json_repository(store, args.json_file, dry_run=args.dry_run)
            return 0
        rows = dump_doctrines(store) if args.what == "doctrines" else dump_price_history(store)
        for row in rows:
            print(json.dumps(row, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
