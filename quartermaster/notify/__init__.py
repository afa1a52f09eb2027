"""Outbound notifications: throttling, formatting and delivery."""

from .discord import DiscordTransport, Transport
from .gate import NotificationGate

__all__ = ["DiscordTransport", "NotificationGate", "Transport"]
