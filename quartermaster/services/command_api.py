"""FastAPI gateway for chat commands without the background poller."""

from __future__ import annotations

import logging
from typing import Sequence

import uvicorn

from ..api import create_app
from ..config import settings as config_settings
from ..db import DoctrineStore
from ..errors import StoreError
from ._runner import build_quartermaster

logger = logging.getLogger(__name__)

SERVICE_NAME = "command_api"


def main(argv: Sequence[str] | None = None) -> int:
    cfg = config_settings.get_settings()
    logger.info(
        "%s starting on port %s (repository=%s)",
        SERVICE_NAME,
        cfg.api_port,
        cfg.repository_file,
    )
    try:
        store = DoctrineStore.open(cfg.repository_file)
    except StoreError as exc:
        logger.error("unable to open repository %s: %s", cfg.repository_file, exc)
        return 1
    with store:
        try:
            quartermaster = build_quartermaster(cfg, store)
        except ValueError as exc:
            logger.error("Missing or invalid configuration for %s: %s", SERVICE_NAME, exc)
            return 1
        uvicorn.run(create_app(quartermaster), host="0.0.0.0", port=cfg.api_port, log_level="info")
    return 0
