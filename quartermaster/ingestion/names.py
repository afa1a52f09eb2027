"""Character/corporation id to name resolution via ``/universe/names/``."""

from __future__ import annotations

import logging
import threading

from .esi_client import EsiClient, EsiClientError

logger = logging.getLogger(__name__)

NAMES_PATH = "universe/names/"


class NameResolver:
    """Only successful lookups are cached; failures fall back to the id."""

    def __init__(self, client: EsiClient) -> None:
        self._client = client
        self._cache: dict[int, str] = {}
        self._lock = threading.Lock()

    def resolve_name(self, entity_id: int) -> str:
        with self._lock:
            cached = self._cache.get(entity_id)
        if cached is not None:
            return cached
        try:
            response = self._client.request("POST", NAMES_PATH, json_body=[entity_id])
        except EsiClientError as exc:
            logger.warning("Unable to resolve name for id=%s: %s", entity_id, exc)
            return str(entity_id)
        for entry in response or []:
            if int(entry.get("id", 0)) == entity_id and entry.get("name"):
                name = str(entry["name"])
                with self._lock:
                    self._cache[entity_id] = name
                return name
        return str(entity_id)

    def cached(self) -> dict[int, str]:
        with self._lock:
            return dict(self._cache)


__all__ = ["NameResolver"]
