"""Doctrine repository persistence."""

from .legacy import import_json_repository, load_json_repository, main
from .store import DoctrineStore, Repository

__all__ = [
    "DoctrineStore",
    "Repository",
    "import_json_repository",
    "load_json_repository",
    "main",
]
