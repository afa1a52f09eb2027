"""Pydantic API schemas for the quartermaster command surface."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    text: str
    channel_id: str
    message_id: Optional[str] = None


class ReactionRequest(BaseModel):
    channel_id: str
    message_id: str
    emoji: str


class EmbedSchema(BaseModel):
    title: str
    description: str
    color: int
    timestamp: datetime
    thumbnail_url: Optional[str] = None
    image_url: Optional[str] = None


class CommandResponse(BaseModel):
    handled: bool
    ok: bool = True
    messages: List[EmbedSchema] = Field(default_factory=list)
    text: Optional[str] = None
    reaction: Optional[str] = None
    message_refs: List[str] = Field(default_factory=list)


class DoctrineGapSchema(BaseModel):
    name: str
    required: int
    have: int
    channel: str


class MissingReportResponse(BaseModel):
    corporation: List[DoctrineGapSchema]
    alliance: List[DoctrineGapSchema]
    all_satisfied: bool


class AlertSchema(BaseModel):
    contract_id: int
    title: str
    issuer_id: int
    reason: str
    status: str
    exchange_type: str
    date_expired: datetime


class FullReportResponse(BaseModel):
    corporation: List[DoctrineGapSchema]
    alliance: List[DoctrineGapSchema]
    sold_corporation: Dict[str, int]
    sold_alliance: Dict[str, int]
    alerts: List[AlertSchema]


class ReferencePriceSchema(BaseModel):
    amount: int
    timestamp: datetime


class RequirementSchema(BaseModel):
    name: str
    required_count: int
    channel: str
    reference_price: Optional[ReferencePriceSchema] = None


class RequirementUpdate(BaseModel):
    required_count: int = Field(..., ge=0)
    channel: str


class RequirementListResponse(BaseModel):
    requirements: List[RequirementSchema]


class StockResponse(BaseModel):
    available: Dict[str, int]


class IssuerStatsSchema(BaseModel):
    issuer_id: int
    name: str
    contracts: int
    total_price: int


class LeaderboardResponse(BaseModel):
    title: str
    start: date
    end: date
    entries: List[IssuerStatsSchema]
