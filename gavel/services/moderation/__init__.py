"""
Moderation Package
==================

Explicit moderator actions, their notifications and their history.

Structure:
    - executor.py: ModerationActionExecutor (ban, kick, warn, timeout, unmute, unban)
    - gateway.py: PlatformGateway protocol and the discord.py implementation
    - notifications.py: DM and mod-log notification intents
    - history.py: Case lookups and guild statistics
"""

from gavel.services.moderation.executor import ActionResult, ModerationActionExecutor
from gavel.services.moderation.gateway import DiscordGateway, PlatformGateway, build_embed
from gavel.services.moderation.history import GuildStats, ModerationHistory, WarnedUser
from gavel.services.moderation.notifications import (
    EmbedColors,
    Notification,
    build_mod_log,
    build_target_dm,
)

__all__ = [
    "ActionResult",
    "ModerationActionExecutor",
    "DiscordGateway",
    "PlatformGateway",
    "build_embed",
    "GuildStats",
    "ModerationHistory",
    "WarnedUser",
    "EmbedColors",
    "Notification",
    "build_mod_log",
    "build_target_dm",
]
