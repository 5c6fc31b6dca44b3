"""FastAPI routers and Telegram handlers acting as controllers."""

from . import bot, voice

__all__ = ["bot", "voice"]
