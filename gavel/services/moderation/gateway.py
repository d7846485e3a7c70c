"""
Gavel - Platform Gateway
========================

The boundary between the engine and Discord.

DESIGN:
    The engine depends only on the PlatformGateway protocol. DiscordGateway
    implements it on top of a discord.py client and translates discord.py
    exceptions into the engine's error taxonomy:

        discord.Forbidden      -> InsufficientBotPermission
        discord.NotFound       -> NotFound
        discord.HTTPException  -> TransientIO
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Optional, Protocol

import discord

from gavel.core.errors import (
    ErrorCode,
    InsufficientBotPermission,
    NotFound,
    TransientIO,
)
from gavel.core.logger import logger
from gavel.services.moderation.notifications import Notification


# =============================================================================
# Protocol
# =============================================================================

class PlatformGateway(Protocol):
    """Platform operations the engine needs."""

    async def ban(self, guild_id: int, user_id: int, reason: str, delete_message_days: int = 0) -> None: ...

    async def kick(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def timeout(self, guild_id: int, user_id: int, duration_ms: int, reason: str) -> None: ...

    async def remove_timeout(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def unban(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def is_banned(self, guild_id: int, user_id: int) -> bool: ...

    async def delete_message(self, channel_id: int, message_id: int) -> None: ...

    async def send_dm(self, user_id: int, notification: Notification) -> bool: ...

    async def send_channel(
        self,
        channel_id: int,
        notification: Optional[Notification] = None,
        content: Optional[str] = None,
        delete_after: Optional[float] = None,
    ) -> None: ...


# =============================================================================
# Rendering
# =============================================================================

def build_embed(notification: Notification) -> discord.Embed:
    """Render a Notification as a discord.Embed."""
    embed = discord.Embed(
        title=notification.title,
        description=notification.description or None,
        color=notification.color,
        timestamp=datetime.now(timezone.utc),
    )
    for name, value, inline in notification.fields:
        embed.add_field(name=name, value=value[:1024], inline=inline)
    return embed


# =============================================================================
# Discord Implementation
# =============================================================================

class DiscordGateway:
    """PlatformGateway backed by a discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except discord.Forbidden as e:
            logger.warning("Platform Action Forbidden", [
                ("Operation", operation),
                ("Error", str(e)[:100]),
            ])
            raise InsufficientBotPermission(details={"operation": operation}) from e
        except discord.NotFound as e:
            raise NotFound(ErrorCode.USER_NOT_IN_GUILD, details={"operation": operation}) from e
        except discord.HTTPException as e:
            logger.warning("Platform Action Failed", [
                ("Operation", operation),
                ("Status", str(e.status)),
                ("Error", str(e)[:100]),
            ])
            raise TransientIO(ErrorCode.SERVER_DISCORD_ERROR, details={"operation": operation}) from e

    def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            raise TransientIO(ErrorCode.SERVER_DISCORD_ERROR, "Server is unavailable right now.")
        return guild

    async def _member(self, guild: discord.Guild, user_id: int) -> discord.Member:
        member = guild.get_member(user_id)
        if member is None:
            member = await self._call("Fetch Member", guild.fetch_member(user_id))
        return member

    async def _messageable(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self._call("Fetch Channel", self.client.fetch_channel(channel_id))
        return channel

    # -------------------------------------------------------------------------
    # Moderation Actions
    # -------------------------------------------------------------------------

    async def ban(self, guild_id: int, user_id: int, reason: str, delete_message_days: int = 0) -> None:
        guild = self._guild(guild_id)
        await self._call("Ban", guild.ban(
            discord.Object(id=user_id),
            reason=reason,
            delete_message_seconds=delete_message_days * 86400,
        ))

    async def kick(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = self._guild(guild_id)
        await self._call("Kick", guild.kick(discord.Object(id=user_id), reason=reason))

    async def timeout(self, guild_id: int, user_id: int, duration_ms: int, reason: str) -> None:
        member = await self._member(self._guild(guild_id), user_id)
        await self._call("Timeout", member.timeout(timedelta(milliseconds=duration_ms), reason=reason))

    async def remove_timeout(self, guild_id: int, user_id: int, reason: str) -> None:
        member = await self._member(self._guild(guild_id), user_id)
        await self._call("Remove Timeout", member.timeout(None, reason=reason))

    async def unban(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = self._guild(guild_id)
        await self._call("Unban", guild.unban(discord.Object(id=user_id), reason=reason))

    async def is_banned(self, guild_id: int, user_id: int) -> bool:
        guild = self._guild(guild_id)
        try:
            await guild.fetch_ban(discord.Object(id=user_id))
        except discord.NotFound:
            return False
        except discord.Forbidden as e:
            raise InsufficientBotPermission(details={"operation": "Fetch Ban"}) from e
        except discord.HTTPException as e:
            raise TransientIO(ErrorCode.SERVER_DISCORD_ERROR, details={"operation": "Fetch Ban"}) from e
        return True

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        channel = await self._messageable(channel_id)
        await self._call("Delete Message", channel.get_partial_message(message_id).delete())

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def send_dm(self, user_id: int, notification: Notification) -> bool:
        """
        DM a user. Closed DMs are expected and reported as False.
        """
        user = self.client.get_user(user_id)
        try:
            if user is None:
                user = await self.client.fetch_user(user_id)
            await user.send(embed=build_embed(notification))
            return True
        except discord.Forbidden:
            logger.debug("DM Blocked", [("User", str(user_id))])
            return False

    async def send_channel(
        self,
        channel_id: int,
        notification: Optional[Notification] = None,
        content: Optional[str] = None,
        delete_after: Optional[float] = None,
    ) -> None:
        channel = await self._messageable(channel_id)
        embed = build_embed(notification) if notification else None
        await self._call("Send Message", channel.send(content=content, embed=embed, delete_after=delete_after))


__all__ = [
    "PlatformGateway",
    "DiscordGateway",
    "build_embed",
]
