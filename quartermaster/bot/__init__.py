"""Chat-facing quartermaster service and command handling."""

from .commands import Command, parse_command, parse_excel
from .migration import MigrationWorkflow, PendingMigration
from .quartermaster import CommandOutcome, Quartermaster

__all__ = [
    "Command",
    "CommandOutcome",
    "MigrationWorkflow",
    "PendingMigration",
    "Quartermaster",
    "parse_command",
    "parse_excel",
]
