"""
Member Snapshot Utilities
=========================

Build the engine's immutable snapshots from discord.py objects.

Snapshots are taken at the moment a decision is made and thrown away
afterwards; nothing here caches role data.

Usage:
    from gavel.utils.members import actor_snapshot, target_snapshot, message_snapshot

    actor = actor_snapshot(interaction.user)
    target = target_snapshot(user, interaction.guild)
"""

from typing import Optional, Union

import discord

from gavel.core.models import ActorSnapshot, RoleHierarchyView, TargetSnapshot
from gavel.services.automod.models import MessageSnapshot


# =============================================================================
# Role Views
# =============================================================================

def role_view(member: discord.Member) -> RoleHierarchyView:
    """Snapshot a member's standing in their guild."""
    permissions = member.guild_permissions
    return RoleHierarchyView(
        user_id=member.id,
        is_owner=member.guild.owner_id == member.id,
        top_role_position=member.top_role.position,
        role_ids=frozenset(role.id for role in member.roles),
        administrator=permissions.administrator,
        moderate_members=permissions.moderate_members,
    )


def bot_outranks(bot_member: Optional[discord.Member], target: discord.Member) -> bool:
    """
    Check whether the bot's top role sits above the target's.

    The owner can never be acted on by the bot.
    """
    if bot_member is None or target.guild.owner_id == target.id:
        return False
    return bot_member.top_role.position > target.top_role.position


# =============================================================================
# Snapshots
# =============================================================================

def actor_snapshot(member: discord.Member) -> ActorSnapshot:
    return ActorSnapshot(member=role_view(member), tag=str(member))


def target_snapshot(
    user: Union[discord.Member, discord.User],
    guild: discord.Guild,
) -> TargetSnapshot:
    """
    Snapshot the target of a moderation action.

    A user who is not in the guild gets no member view; they can still be
    banned when the bot holds the ban permission.

    Args:
        user: Target user or member.
        guild: Guild the action happens in.

    Returns:
        TargetSnapshot with the bot's actionable flags filled in.
    """
    bot_member = guild.me
    bot_permissions = bot_member.guild_permissions if bot_member else None
    member = guild.get_member(user.id)

    if member is None:
        return TargetSnapshot(
            user_id=user.id,
            tag=str(user),
            bannable=bool(bot_permissions and bot_permissions.ban_members),
            kickable=False,
            moderatable=False,
        )

    outranked = bot_outranks(bot_member, member)
    return TargetSnapshot(
        user_id=member.id,
        tag=str(member),
        member=role_view(member),
        bannable=outranked and bot_permissions.ban_members,
        kickable=outranked and bot_permissions.kick_members,
        moderatable=(
            outranked
            and bot_permissions.moderate_members
            and not member.guild_permissions.administrator
        ),
    )


def message_snapshot(message: discord.Message) -> MessageSnapshot:
    """
    Snapshot an inbound guild message for the auto-mod pipeline.

    author_moderatable says whether the bot could time the author out.
    """
    author = message.author
    guild = message.guild
    moderatable = False
    if isinstance(author, discord.Member) and guild is not None and guild.me is not None:
        moderatable = (
            bot_outranks(guild.me, author)
            and guild.me.guild_permissions.moderate_members
            and not author.guild_permissions.administrator
        )

    return MessageSnapshot(
        message_id=message.id,
        guild_id=guild.id if guild else 0,
        channel_id=message.channel.id,
        author_id=author.id,
        content=message.content or "",
        mentioned_user_ids=frozenset(user.id for user in message.mentions),
        author_is_bot=author.bot,
        author_moderatable=moderatable,
    )


__all__ = [
    "role_view",
    "bot_outranks",
    "actor_snapshot",
    "target_snapshot",
    "message_snapshot",
]
