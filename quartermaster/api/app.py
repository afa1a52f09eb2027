"""FastAPI surface delivering chat commands and reactions to the quartermaster."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request

from ..bot.quartermaster import CommandOutcome, Quartermaster
from ..config import constants
from ..errors import QuartermasterError, ValidationError
from ..models import Channel, DoctrineGap, DoctrineRequirement, FullReport, MissingReport
from .schemas import (
    AlertSchema,
    CommandRequest,
    CommandResponse,
    DoctrineGapSchema,
    EmbedSchema,
    FullReportResponse,
    IssuerStatsSchema,
    LeaderboardResponse,
    MissingReportResponse,
    ReactionRequest,
    ReferencePriceSchema,
    RequirementListResponse,
    RequirementSchema,
    RequirementUpdate,
    StockResponse,
)


def _quartermaster(request: Request) -> Quartermaster:
    return request.app.state.quartermaster


def _gap(row: DoctrineGap) -> DoctrineGapSchema:
    return DoctrineGapSchema(
        name=row.name, required=row.required, have=row.have, channel=row.channel.value
    )


def _requirement(item: DoctrineRequirement) -> RequirementSchema:
    price = item.reference_price
    return RequirementSchema(
        name=item.name,
        required_count=item.required_count,
        channel=item.channel.value,
        reference_price=(
            ReferencePriceSchema(amount=price.amount, timestamp=price.timestamp)
            if price
            else None
        ),
    )


def _outcome(outcome: Optional[CommandOutcome]) -> CommandResponse:
    if outcome is None:
        return CommandResponse(handled=False)
    return CommandResponse(
        handled=True,
        ok=outcome.ok,
        messages=[
            EmbedSchema(
                title=message.title,
                description=message.description,
                color=message.color,
                timestamp=message.timestamp,
                thumbnail_url=message.thumbnail_url,
                image_url=message.image_url,
            )
            for message in outcome.messages
        ],
        text=outcome.text,
        reaction=outcome.reaction,
        message_refs=outcome.message_refs,
    )


def _missing(report: MissingReport) -> MissingReportResponse:
    return MissingReportResponse(
        corporation=[_gap(row) for row in report.corporation],
        alliance=[_gap(row) for row in report.alliance],
        all_satisfied=report.all_satisfied,
    )


def _full(report: FullReport) -> FullReportResponse:
    return FullReportResponse(
        corporation=[_gap(row) for row in report.corporation],
        alliance=[_gap(row) for row in report.alliance],
        sold_corporation=report.sold_corporation,
        sold_alliance=report.sold_alliance,
        alerts=[
            AlertSchema(
                contract_id=alert.listing.contract_id,
                title=alert.listing.title,
                issuer_id=alert.listing.issuer_id,
                reason=alert.reason,
                status=alert.listing.status.value,
                exchange_type=alert.listing.exchange_type.value,
                date_expired=alert.listing.date_expired,
            )
            for alert in report.alerts
        ],
    )


def _day(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def create_app(quartermaster: Quartermaster) -> FastAPI:
    app = FastAPI(title="EVE Quartermaster API", version="0.1.0")
    app.state.quartermaster = quartermaster

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {"status": "ok", "services": constants.SERVICE_NAMES}

    @app.post("/v1/commands", response_model=CommandResponse)
    def post_command(
        request: CommandRequest, qm: Quartermaster = Depends(_quartermaster)
    ) -> CommandResponse:
        return _outcome(qm.handle_text(request.text, request.channel_id, request.message_id))

    @app.post("/v1/reactions", response_model=CommandResponse)
    def post_reaction(
        request: ReactionRequest, qm: Quartermaster = Depends(_quartermaster)
    ) -> CommandResponse:
        return _outcome(
            qm.handle_reaction(request.channel_id, request.message_id, request.emoji)
        )

    @app.get("/v1/report", response_model=MissingReportResponse)
    def report(qm: Quartermaster = Depends(_quartermaster)) -> MissingReportResponse:
        try:
            return _missing(qm.report())
        except QuartermasterError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @app.get("/v1/report/full", response_model=FullReportResponse)
    def report_full(qm: Quartermaster = Depends(_quartermaster)) -> FullReportResponse:
        try:
            return _full(qm.report_full())
        except QuartermasterError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @app.get("/v1/requirements", response_model=RequirementListResponse)
    def requirements(qm: Quartermaster = Depends(_quartermaster)) -> RequirementListResponse:
        return RequirementListResponse(
            requirements=[_requirement(item) for item in qm.list_requirements()]
        )

    @app.put("/v1/requirements/{name}", response_model=RequirementListResponse)
    def put_requirement(
        name: str,
        update: RequirementUpdate,
        qm: Quartermaster = Depends(_quartermaster),
    ) -> RequirementListResponse:
        try:
            channel = Channel.parse(update.channel)
            qm.set_requirement(
                DoctrineRequirement(
                    name=name, required_count=update.required_count, channel=channel
                )
            )
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return RequirementListResponse(
            requirements=[_requirement(item) for item in qm.list_requirements()]
        )

    @app.get("/v1/stock", response_model=StockResponse)
    def stock(qm: Quartermaster = Depends(_quartermaster)) -> StockResponse:
        try:
            return StockResponse(available=qm.stock())
        except QuartermasterError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @app.get("/v1/leaderboard", response_model=LeaderboardResponse)
    def leaderboard(
        start: Optional[date] = None,
        end: Optional[date] = None,
        qm: Quartermaster = Depends(_quartermaster),
    ) -> LeaderboardResponse:
        try:
            result = qm.leaderboard(_day(start), _day(end))
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return LeaderboardResponse(
            title=result.title,
            start=result.start.date(),
            end=result.end.date(),
            entries=[
                IssuerStatsSchema(
                    issuer_id=stat.issuer_id,
                    name=qm.resolve_name(stat.issuer_id),
                    contracts=stat.contracts,
                    total_price=stat.total_price,
                )
                for stat in result.stats
            ],
        )

    return app


__all__ = ["create_app"]
