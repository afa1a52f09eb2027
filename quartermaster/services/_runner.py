"""Shared wiring for the service mains."""

from __future__ import annotations

import logging
import signal
import threading
from datetime import timedelta
from typing import Callable

import uvicorn

from ..analytics import ListingClassifier
from ..api import create_app
from ..bot import Quartermaster
from ..config.settings import Settings
from ..db import DoctrineStore
from ..ingestion import (
    EsiClient,
    EsiListingSource,
    NameResolver,
    RateLimitPolicy,
    token_source_factory,
)
from ..notify import DiscordTransport

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_quartermaster(cfg: Settings, store: DoctrineStore) -> Quartermaster:
    """Assemble the service from settings; raises ValueError on missing credentials."""

    if not cfg.discord_auth_token:
        raise ValueError("QM_DISCORD_AUTH_TOKEN is required")
    tokens = token_source_factory(cfg)
    policy = RateLimitPolicy(
        cfg.rate_limit_max_retries,
        cfg.rate_limit_backoff_base,
        cfg.rate_limit_backoff_max,
        cfg.rate_limit_jitter,
    )
    esi = EsiClient(cfg.esi_base_url, policy, cfg.user_agent, cfg.request_timeout)
    transport = DiscordTransport(
        cfg.discord_api_base_url,
        cfg.discord_auth_token,
        cfg.request_timeout,
        cfg.user_agent,
    )
    return Quartermaster(
        store=store,
        source=EsiListingSource(esi, cfg.corporation_id, tokens.access_token),
        transport=transport,
        resolver=NameResolver(esi),
        classifier=ListingClassifier(cfg.corporation_id, cfg.alliance_id),
        channel_id=cfg.discord_channel_id,
        notify_interval=timedelta(seconds=cfg.notify_interval),
    )


def start_api_thread(quartermaster: Quartermaster, port: int) -> threading.Thread:
    app = create_app(quartermaster)
    thread = threading.Thread(
        target=uvicorn.run,
        args=(app,),
        kwargs={"host": "0.0.0.0", "port": port, "log_level": "info"},
        name="command-api",
        daemon=True,
    )
    thread.start()
    logger.info("command API listening on port %s", port)
    return thread


def install_signal_handlers(name: str, stop: Callable[[], None]) -> None:
    def _handle(signum: int, _frame: object | None) -> None:  # pragma: no cover - signal
        logger.info("%s received signal %s", name, signum)
        stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


__all__ = [
    "build_quartermaster",
    "configure_logging",
    "install_signal_handlers",
    "start_api_thread",
]
