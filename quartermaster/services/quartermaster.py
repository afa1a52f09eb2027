"""Doctrine stock poller with the chat command API alongside."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Sequence

from ..config import settings as config_settings
from ..db import DoctrineStore
from ..errors import StoreError
from ._runner import (
    build_quartermaster,
    configure_logging,
    install_signal_handlers,
    start_api_thread,
)

LOGGER = logging.getLogger(__name__)
SERVICE_NAME = "quartermaster"


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME, description="Watch doctrine contract stock and notify Discord"
    )
    parser.add_argument("--once", action="store_true", help="Run a single check and exit")
    parser.add_argument("--check-interval", type=float, help="Seconds between checks")
    parser.add_argument(
        "--notify-interval", type=float, help="Seconds before re-announcing a doctrine"
    )
    parser.add_argument("--repository-file", help="Path to the SQLite repository")
    parser.add_argument("--corporation-id", type=int, help="Corporation id")
    parser.add_argument("--alliance-id", type=int, help="Alliance id")
    parser.add_argument("--discord-channel-id", help="Channel for notifications")
    parser.add_argument("--api-port", type=int, help="Command API port")
    parser.add_argument(
        "--no-api", action="store_true", help="Do not start the command API"
    )
    args = parser.parse_args(argv)

    configure_logging()
    cfg = config_settings.get_settings()
    overrides = {
        "check_interval": args.check_interval,
        "notify_interval": args.notify_interval,
        "repository_file": args.repository_file,
        "corporation_id": args.corporation_id,
        "alliance_id": args.alliance_id,
        "discord_channel_id": args.discord_channel_id,
        "api_port": args.api_port,
    }
    cfg = replace(cfg, **{key: value for key, value in overrides.items() if value is not None})

    LOGGER.info(
        "%s starting corporation=%s alliance=%s check_interval=%ss notify_interval=%ss",
        SERVICE_NAME,
        cfg.corporation_id,
        cfg.alliance_id,
        cfg.check_interval,
        cfg.notify_interval,
    )
    try:
        store = DoctrineStore.open(cfg.repository_file)
    except StoreError as exc:
        LOGGER.error("unable to open repository %s: %s", cfg.repository_file, exc)
        return 1

    with store:
        try:
            quartermaster = build_quartermaster(cfg, store)
        except ValueError as exc:
            LOGGER.error(
                "Missing or invalid configuration for %s: %s."
                " Ensure QM_EVE_CLIENT_ID, QM_EVE_SSO_SECRET, QM_EVE_REFRESH_TOKEN"
                " and QM_DISCORD_AUTH_TOKEN are set.",
                SERVICE_NAME,
                exc,
            )
            return 1
        install_signal_handlers(SERVICE_NAME, quartermaster.stop)
        if not args.no_api and not args.once:
            start_api_thread(quartermaster, cfg.api_port)
        quartermaster.run(cfg.check_interval, once=args.once)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
