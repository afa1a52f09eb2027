"""SQLAlchemy Core table definitions for the doctrine store.

``doctrines`` is keyed by doctrine name. ``price_history`` is keyed by
``(doctrine_name, ts)`` where ``ts`` is an RFC3339 UTC string, so the
history of one doctrine is a contiguous range of the primary key index.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, MetaData, PrimaryKeyConstraint, Table, Text

metadata = MetaData()

doctrines = Table(
    "doctrines",
    metadata,
    Column("name", Text, primary_key=True),
    Column("payload", Text, nullable=False),  # JSON
)

price_history = Table(
    "price_history",
    metadata,
    Column("doctrine_name", Text, nullable=False),
    Column("ts", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    PrimaryKeyConstraint("doctrine_name", "ts"),
)

Index("ix_price_history_ts", price_history.c.ts)
