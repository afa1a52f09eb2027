"""Domain records shared by the reconciliation, pricing and storage layers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from .errors import ValidationError

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(value: datetime) -> str:
    """RFC3339 at second resolution in UTC; lexical order equals time order."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_ts(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Channel(Enum):
    CORPORATION = "corporation"
    ALLIANCE = "alliance"

    @classmethod
    def parse(cls, value: str) -> "Channel":
        normalized = value.strip().lower()
        if normalized in ("corp", "corporation"):
            return cls.CORPORATION
        if normalized == "alliance":
            return cls.ALLIANCE
        raise ValidationError(f"Unknown contract target: {value}")

    @property
    def label(self) -> str:
        return self.value.capitalize()


class ListingStatus(Enum):
    OUTSTANDING = "outstanding"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    FINISHED_ISSUER = "finished_issuer"
    FINISHED_CONTRACTOR = "finished_contractor"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    FAILED = "failed"
    DELETED = "deleted"
    REVERSED = "reversed"

    @classmethod
    def parse(cls, value: str) -> "ListingStatus":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"unknown listing status: {value!r}") from None


FINISHED_STATUSES = (
    ListingStatus.FINISHED,
    ListingStatus.FINISHED_ISSUER,
    ListingStatus.FINISHED_CONTRACTOR,
)
# Listings in these states never raise alerts.
CLOSED_STATUSES = FINISHED_STATUSES + (ListingStatus.CANCELLED, ListingStatus.DELETED)


class ExchangeType(Enum):
    ITEM_EXCHANGE = "item_exchange"
    AUCTION = "auction"
    COURIER = "courier"
    LOAN = "loan"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> "ExchangeType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ReferencePrice:
    amount: int
    timestamp: datetime


@dataclass(frozen=True)
class DoctrineRequirement:
    name: str
    required_count: int
    channel: Channel
    reference_price: ReferencePrice | None = None

    def with_reference_price(self, amount: int, timestamp: datetime) -> "DoctrineRequirement":
        return replace(self, reference_price=ReferencePrice(amount, timestamp))

    def renamed(self, name: str) -> "DoctrineRequirement":
        return replace(self, name=name)

    def to_row(self) -> dict[str, Any]:
        price = self.reference_price
        return {
            "name": self.name,
            "require_stock": self.required_count,
            "contracted_on": self.channel.value,
            "doctrine_price": {
                "buy": price.amount if price else 0,
                "timestamp": format_ts(price.timestamp) if price else None,
            },
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DoctrineRequirement":
        price_row = row.get("doctrine_price") or {}
        reference: ReferencePrice | None = None
        buy = price_row.get("buy")
        stamp = price_row.get("timestamp")
        if buy is not None and stamp:
            stamped = parse_ts(str(stamp))
            # Legacy files write "0001-01-01T00:00:00Z" for a price never set.
            if stamped.year > 1:
                reference = ReferencePrice(int(buy), stamped)
        return cls(
            name=str(row["name"]),
            required_count=int(row["require_stock"]),
            channel=Channel.parse(str(row["contracted_on"])),
            reference_price=reference,
        )


@dataclass(frozen=True)
class ListingSnapshot:
    contract_id: int
    title: str
    status: ListingStatus
    exchange_type: ExchangeType
    assignee_id: int
    issuer_id: int
    price: float
    date_issued: datetime
    date_expired: datetime

    def is_price_tracking(self, prefix: str = "*") -> bool:
        return self.title.startswith(prefix)

    def is_expired(self, now: datetime) -> bool:
        return self.date_expired < now


@dataclass(frozen=True)
class PriceObservation:
    doctrine_name: str
    timestamp: datetime
    contract_id: int
    issuer_id: int
    price: int

    @property
    def key(self) -> str:
        return format_ts(self.timestamp)

    def to_row(self) -> dict[str, Any]:
        return {
            "timestamp": self.key,
            "doctrine_name": self.doctrine_name,
            "contract_id": self.contract_id,
            "issuer_id": self.issuer_id,
            "price": self.price,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PriceObservation":
        return cls(
            doctrine_name=str(row["doctrine_name"]),
            timestamp=parse_ts(str(row["timestamp"])),
            contract_id=int(row.get("contract_id") or 0),
            issuer_id=int(row.get("issuer_id") or 0),
            price=int(row.get("price") or 0),
        )


@dataclass(frozen=True)
class DoctrineGap:
    name: str
    required: int
    have: int
    channel: Channel

    @property
    def missing(self) -> bool:
        return self.have < self.required


@dataclass(frozen=True)
class AlertListing:
    listing: ListingSnapshot
    reason: str


@dataclass(frozen=True)
class MissingReport:
    corporation: list[DoctrineGap]
    alliance: list[DoctrineGap]
    all_satisfied: bool

    @property
    def gaps(self) -> list[DoctrineGap]:
        return self.corporation + self.alliance


@dataclass(frozen=True)
class FullReport:
    corporation: list[DoctrineGap]
    alliance: list[DoctrineGap]
    sold_corporation: dict[str, int] = field(default_factory=dict)
    sold_alliance: dict[str, int] = field(default_factory=dict)
    alerts: list[AlertListing] = field(default_factory=list)


@dataclass(frozen=True)
class IssuerStats:
    issuer_id: int
    contracts: int
    total_price: int


@dataclass(frozen=True)
class OutboundMessage:
    title: str
    description: str = ""
    color: int = 0x00FF00
    timestamp: datetime = field(default_factory=utc_now)
    thumbnail_url: str | None = None
    image_url: str | None = None

    def to_embed(self) -> dict[str, Any]:
        embed: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "color": self.color,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.thumbnail_url:
            embed["thumbnail"] = {"url": self.thumbnail_url}
        if self.image_url:
            embed["image"] = {"url": self.image_url}
        return embed


__all__ = [
    "AlertListing",
    "CLOSED_STATUSES",
    "Channel",
    "DoctrineGap",
    "DoctrineRequirement",
    "ExchangeType",
    "FINISHED_STATUSES",
    "FullReport",
    "IssuerStats",
    "ListingSnapshot",
    "ListingStatus",
    "MissingReport",
    "OutboundMessage",
    "PriceObservation",
    "ReferencePrice",
    "format_ts",
    "parse_ts",
    "utc_now",
]
