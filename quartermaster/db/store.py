"""SQLite-backed repository for doctrine requirements and price history.

Writers are serialised by a lock and each logical operation runs inside one
``engine.begin()`` block, so readers never observe a partial replacement.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol

from sqlalchemy import create_engine, delete, event, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..errors import NotFoundError, StoreError
from ..models import DoctrineRequirement, PriceObservation, format_ts
from .schema import doctrines, metadata, price_history

logger = logging.getLogger(__name__)


class Repository(Protocol):
    def get_requirement(self, name: str) -> DoctrineRequirement:
        ...

    def set_requirement(self, name: str, requirement: DoctrineRequirement) -> None:
        ...

    def list_requirements(self) -> list[DoctrineRequirement]:
        ...

    def replace_all_requirements(self, requirements: Iterable[DoctrineRequirement]) -> None:
        ...

    def update_reference_price(
        self, name: str, amount: int, timestamp: datetime
    ) -> DoctrineRequirement:
        ...

    def rename_requirements(self, source: str, target: str) -> int:
        ...

    def record_price_observation(self, observation: PriceObservation) -> None:
        ...

    def replace_all_price_observations(self, observations: Iterable[PriceObservation]) -> None:
        ...

    def query_prices_in_range(
        self, start: datetime, end: datetime, doctrine_name: str | None = None
    ) -> list[PriceObservation]:
        ...

    def last_n_prices(self, doctrine_name: str, n: int) -> list[PriceObservation]:
        ...

    def all_price_observations(self) -> list[PriceObservation]:
        ...


def create_store_engine(path: str | Path) -> Engine:
    """Create a SQLite engine with WAL journaling; ``":memory:"`` is shared."""

    target = str(path)
    if target == ":memory:":
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    engine = create_engine(
        f"sqlite:///{target}", connect_args={"check_same_thread": False}
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=FULL")
        cursor.close()

    return engine


def _dumps(row: dict[str, Any]) -> str:
    return json.dumps(row, sort_keys=True, separators=(",", ":"))


class DoctrineStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._write_lock = threading.Lock()

    @classmethod
    def open(cls, path: str | Path) -> "DoctrineStore":
        try:
            engine = create_store_engine(path)
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"unable to open DB file: {path}: {exc}") from exc
        logger.info("doctrine store opened path=%s", path)
        return cls(engine)

    def close(self) -> None:
        with self._write_lock:
            self._engine.dispose()

    def __enter__(self) -> "DoctrineStore":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # requirements

    def get_requirement(self, name: str) -> DoctrineRequirement:
        try:
            with self._engine.connect() as conn:
                requirement = self._read_requirement(conn, name)
        except SQLAlchemyError as exc:
            raise StoreError(f"error reading doctrine {name!r}: {exc}") from exc
        if requirement is None:
            raise NotFoundError(name)
        return requirement

    def set_requirement(self, name: str, requirement: DoctrineRequirement) -> None:
        """Upsert ``requirement`` under ``name``; a zero count deletes it."""

        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    if requirement.required_count == 0:
                        conn.execute(delete(doctrines).where(doctrines.c.name == name))
                    else:
                        self._upsert_requirement(conn, replace(requirement, name=name))
            except SQLAlchemyError as exc:
                raise StoreError(f"unable to set doctrine {name!r}: {exc}") from exc

    def list_requirements(self) -> list[DoctrineRequirement]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    select(doctrines.c.payload).order_by(doctrines.c.name)
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"error reading repository: {exc}") from exc
        return [DoctrineRequirement.from_row(json.loads(row.payload)) for row in rows]

    def replace_all_requirements(self, requirements: Iterable[DoctrineRequirement]) -> None:
        """Make the stored set equal to ``requirements``; absent names are deleted."""

        wanted = list(requirements)
        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    keep = set()
                    for requirement in wanted:
                        keep.add(requirement.name)
                        self._upsert_requirement(conn, requirement)
                    existing = conn.execute(select(doctrines.c.name)).scalars().all()
                    stale = [name for name in existing if name not in keep]
                    if stale:
                        conn.execute(delete(doctrines).where(doctrines.c.name.in_(stale)))
            except SQLAlchemyError as exc:
                raise StoreError(f"unable to write doctrines: {exc}") from exc
        logger.info("doctrines replaced count=%d", len(wanted))

    def update_reference_price(
        self, name: str, amount: int, timestamp: datetime
    ) -> DoctrineRequirement:
        """Set the reference price of an existing doctrine; NotFoundError if it is gone."""

        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    current = self._read_requirement(conn, name)
                    if current is None:
                        raise NotFoundError(name)
                    updated = current.with_reference_price(amount, timestamp)
                    self._upsert_requirement(conn, updated)
            except SQLAlchemyError as exc:
                raise StoreError(f"unable to set price of {name!r}: {exc}") from exc
        return updated

    def rename_requirements(self, source: str, target: str) -> int:
        """Replace ``source`` with ``target`` in every doctrine name.

        Names that collide after the rename keep the row whose old name sorts last.
        Returns the number of doctrines stored after the rename.
        """

        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    rows = conn.execute(
                        select(doctrines.c.payload).order_by(doctrines.c.name)
                    ).all()
                    current = [
                        DoctrineRequirement.from_row(json.loads(row.payload)) for row in rows
                    ]
                    moved = [item.name for item in current if source in item.name]
                    if moved:
                        conn.execute(delete(doctrines).where(doctrines.c.name.in_(moved)))
                    renamed: dict[str, DoctrineRequirement] = {}
                    for item in current:
                        new_name = item.name.replace(source, target)
                        renamed[new_name] = item.renamed(new_name)
                    for item in renamed.values():
                        self._upsert_requirement(conn, item)
            except SQLAlchemyError as exc:
                raise StoreError(f"unable to rename {source!r} to {target!r}: {exc}") from exc
        logger.info("doctrines renamed %r -> %r count=%d", source, target, len(moved))
        return len(renamed)

    def _read_requirement(self, conn: Connection, name: str) -> DoctrineRequirement | None:
        row = conn.execute(
            select(doctrines.c.payload).where(doctrines.c.name == name)
        ).first()
        if row is None:
            return None
        return DoctrineRequirement.from_row(json.loads(row.payload))

    def _upsert_requirement(self, conn: Connection, requirement: DoctrineRequirement) -> None:
        payload = _dumps(requirement.to_row())
        statement = sqlite_insert(doctrines).values(name=requirement.name, payload=payload)
        conn.execute(
            statement.on_conflict_do_update(
                index_elements=[doctrines.c.name],
                set_={"payload": statement.excluded.payload},
            )
        )

    # price history

    def record_price_observation(self, observation: PriceObservation) -> None:
        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    self._upsert_price(conn, observation)
            except SQLAlchemyError as exc:
                raise StoreError(
                    f"error recording price: {observation.doctrine_name} {observation.key}: {exc}"
                ) from exc

    def replace_all_price_observations(self, observations: Iterable[PriceObservation]) -> None:
        """Write a batch of observations in one transaction.

        Keys already present are overwritten; the rest of the ledger is kept.
        """

        batch = list(observations)
        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    for observation in batch:
                        self._upsert_price(conn, observation)
            except SQLAlchemyError as exc:
                raise StoreError(f"unable to write price history: {exc}") from exc

    def _upsert_price(self, conn: Connection, observation: PriceObservation) -> None:
        statement = sqlite_insert(price_history).values(
            doctrine_name=observation.doctrine_name,
            ts=observation.key,
            payload=_dumps(observation.to_row()),
        )
        conn.execute(
            statement.on_conflict_do_update(
                index_elements=[price_history.c.doctrine_name, price_history.c.ts],
                set_={"payload": statement.excluded.payload},
            )
        )

    def query_prices_in_range(
        self, start: datetime, end: datetime, doctrine_name: str | None = None
    ) -> list[PriceObservation]:
        """Observations with ``start <= timestamp <= end`` ordered per doctrine by time."""

        query = select(price_history.c.payload).where(
            price_history.c.ts >= format_ts(start),
            price_history.c.ts <= format_ts(end),
        )
        if doctrine_name is not None:
            query = query.where(price_history.c.doctrine_name == doctrine_name)
        query = query.order_by(price_history.c.doctrine_name, price_history.c.ts)
        return self._read_prices(query)

    def last_n_prices(self, doctrine_name: str, n: int) -> list[PriceObservation]:
        """Most recent ``n`` observations for a doctrine, newest first."""

        if n <= 0:
            return []
        query = (
            select(price_history.c.payload)
            .where(price_history.c.doctrine_name == doctrine_name)
            .order_by(price_history.c.ts.desc())
            .limit(n)
        )
        return self._read_prices(query)

    def all_price_observations(self) -> list[PriceObservation]:
        query = select(price_history.c.payload).order_by(
            price_history.c.doctrine_name, price_history.c.ts
        )
        return self._read_prices(query)

    def _read_prices(self, query: Any) -> list[PriceObservation]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"unable to read price history: {exc}") from exc
        return [PriceObservation.from_row(json.loads(row.payload)) for row in rows]


__all__ = ["DoctrineStore", "Repository", "create_store_engine"]
