"""Corporation contract listings pulled from ESI."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from ..errors import ListingSourceError, ValidationError
from ..models import ExchangeType, ListingSnapshot, ListingStatus, parse_ts
from .esi_client import EsiClient, EsiClientError

logger = logging.getLogger(__name__)

CONTRACTS_PATH = "corporations/{corporation_id}/contracts/"


def parse_contract(payload: Mapping[str, Any]) -> ListingSnapshot:
    try:
        return ListingSnapshot(
            contract_id=int(payload["contract_id"]),
            title=str(payload.get("title") or ""),
            status=ListingStatus.parse(str(payload.get("status", ""))),
            exchange_type=ExchangeType.parse(str(payload.get("type", ""))),
            assignee_id=int(payload.get("assignee_id") or 0),
            issuer_id=int(payload.get("issuer_id") or 0),
            price=float(payload.get("price") or 0.0),
            date_issued=parse_ts(str(payload["date_issued"])),
            date_expired=parse_ts(str(payload["date_expired"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"malformed contract payload: {exc}") from exc


def _page_count(headers: Mapping[str, str]) -> int:
    for key, value in headers.items():
        if key.lower() == "x-pages":
            try:
                return max(1, int(value))
            except ValueError:
                return 1
    return 1


class EsiListingSource:
    """Fetches every page of the corporation's contracts.

    ``token_provider`` returns a fresh bearer token before each fetch.
    """

    def __init__(
        self,
        client: EsiClient,
        corporation_id: int,
        token_provider: Callable[[], str] | None = None,
    ) -> None:
        self._client = client
        self._corporation_id = corporation_id
        self._token_provider = token_provider

    def fetch_all(self) -> list[ListingSnapshot]:
        path = CONTRACTS_PATH.format(corporation_id=self._corporation_id)
        try:
            if self._token_provider is not None:
                self._client.set_bearer_token(self._token_provider())
            first = self._client.request_with_metadata("GET", path, params={"page": 1})
            payloads = list(first.payload or [])
            pages = _page_count(first.headers)
            for page in range(2, pages + 1):
                payloads.extend(
                    self._client.request("GET", path, params={"page": page}) or []
                )
        except EsiClientError as exc:
            raise ListingSourceError(f"error listing corporation contracts: {exc}") from exc

        listings: list[ListingSnapshot] = []
        for payload in payloads:
            try:
                listings.append(parse_contract(payload))
            except ValidationError as exc:
                logger.warning("Skipping contract: %s", exc)
        logger.info("Fetched %d contracts over %d pages", len(listings), pages)
        return listings


__all__ = ["EsiListingSource", "parse_contract"]
