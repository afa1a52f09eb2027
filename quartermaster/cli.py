"""EVE Quartermaster CLI exposing the service router and repository tools."""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from typing import Callable, Sequence

from . import __version__
from .config import constants, settings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_service_main(name: str) -> Callable[[Sequence[str]], int | None]:
    module = importlib.import_module(f"quartermaster.services.{name}")
    return getattr(module, "main")


def _forwarded(values: Sequence[str]) -> list[str]:
    forwarded = list(values)
    if forwarded and forwarded[0] == "--":
        forwarded = forwarded[1:]
    return forwarded


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quartermaster",
        description="Doctrine contract stock tracking for EVE Online corporations",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"quartermaster {__version__}",
        help="Show version",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Root logger level",
    )
    subparsers = parser.add_subparsers(dest="command", required=False)

    service_parser = subparsers.add_parser("service", help="Run a service by name")
    service_parser.add_argument(
        "--name",
        choices=constants.SERVICE_NAMES,
        required=True,
        help="Service to start",
    )
    service_parser.add_argument(
        "service_args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded to the service",
    )

    repository_parser = subparsers.add_parser(
        "repository", help="Import or inspect the doctrine repository"
    )
    repository_parser.add_argument(
        "repository_args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded to the repository tool",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if args.command is None:
        parser.print_help()
        return 1

    # Mains call basicConfig too; the first call wins, so the CLI level sticks.
    _configure_logging(args.log_level)
    settings.get_settings()
    if args.command == "service":
        service_main = _load_service_main(args.name)
        return int(service_main(_forwarded(args.service_args)) or 0)

    from .db.legacy import main as repository_main

    return repository_main(_forwarded(args.repository_args))


if __name__ == "__main__":
    raise SystemExit(main())
