"""EVE Quartermaster runtime package."""

from .config import constants, settings

__all__ = [
    "config",
    "constants",
    "settings",
]

__version__ = "0.1.0"
