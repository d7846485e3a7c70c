"""
Gavel - Moderation Engine
=========================

The facade the command shell talks to.

DESIGN:
    One ModerationEngine per bot process. It owns a single instance of
    each stateful component (case sequencer locks, spam windows, XP locks)
    so that per-guild and per-user serialization holds across every event
    handler that shares the engine.

    Inbound message flow:
        1. auto-mod verdict (may time out a spammer)
        2. on violation: delete the message, post a self-removing notice, stop
        3. otherwise: leveling, with a level-up notice when one happens

SERVICE INITIALIZATION ORDER:
    DatabaseManager -> CaseSequencer -> executor / history / policies
    -> AutoModPipeline -> LevelingEngine
"""

import time
from typing import List, Optional, Union

from gavel.core.config import validate_and_log_config
from gavel.core.constants import AUTOMOD_NOTICE_DELETE_AFTER, LEVEL_UP_NOTICE_DELETE_AFTER
from gavel.core.database import DatabaseManager, get_db
from gavel.core.logger import logger
from gavel.core.models import ActorSnapshot, GuildPolicy, ModerationCase, TargetSnapshot
from gavel.services.automod import AutoModPipeline, AutoModResult, MessageSnapshot
from gavel.services.cases import CaseSequencer
from gavel.services.leveling import LevelingEngine, LevelUpEvent
from gavel.services.moderation import (
    ActionResult,
    GuildStats,
    ModerationActionExecutor,
    ModerationHistory,
    PlatformGateway,
)
from gavel.services.policy import GuildPolicyService
from gavel.utils.async_utils import gather_with_logging


class ModerationEngine:
    """
    Moderation decisions, case records, auto-mod and leveling for a bot.

    Attributes:
        gateway: Platform operations.
        executor: Explicit moderator actions.
        automod: Message auto-moderation.
        leveling: XP and levels.
        history: Case lookups and statistics.
        policies: Guild policy access.
    """

    def __init__(self, gateway: PlatformGateway, db: Optional[DatabaseManager] = None) -> None:
        validate_and_log_config()

        self.gateway = gateway
        self.db = db or get_db()
        self.sequencer = CaseSequencer(self.db)
        self.executor = ModerationActionExecutor(gateway, self.db, self.sequencer)
        self.history = ModerationHistory(self.db)
        self.policies = GuildPolicyService(self.db)
        self.automod = AutoModPipeline(gateway)
        self.leveling = LevelingEngine(self.db)

        logger.tree("Moderation Engine Ready", [
            ("Spam Window", f"{self.automod.windows.threshold} msgs / {self.automod.windows.timeframe_ms}ms"),
            ("XP Cooldown", f"{self.leveling.cooldown_ms}ms"),
        ], emoji="⚖️")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start background maintenance. Call from inside the running loop."""
        self.automod.start()

    def stop(self) -> None:
        self.automod.stop()

    def on_guild_join(self, guild_id: int, guild_name: str) -> GuildPolicy:
        """Create the default policy for a newly joined guild."""
        logger.tree("Guild Joined", [
            ("Guild", f"{guild_name} ({guild_id})"),
        ], emoji="✅")
        return self.policies.ensure_policy(guild_id, guild_name)

    # =========================================================================
    # Moderator Actions
    # =========================================================================

    async def execute_ban(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
        duration: Optional[Union[str, int]] = None,
        delete_message_days: int = 0,
    ) -> ActionResult:
        return await self.executor.execute_ban(guild_id, actor, target, reason, duration, delete_message_days)

    async def execute_kick(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        return await self.executor.execute_kick(guild_id, actor, target, reason)

    async def execute_warn(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        return await self.executor.execute_warn(guild_id, actor, target, reason)

    async def execute_timeout(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        duration: Union[str, int],
        reason: Optional[str] = None,
    ) -> ActionResult:
        return await self.executor.execute_timeout(guild_id, actor, target, duration, reason)

    async def execute_unmute(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        return await self.executor.execute_unmute(guild_id, actor, target, reason)

    async def execute_unban(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        user_id: int,
        reason: Optional[str] = None,
        user_tag: Optional[str] = None,
    ) -> ActionResult:
        return await self.executor.execute_unban(guild_id, actor, user_id, reason, user_tag)

    # =========================================================================
    # History
    # =========================================================================

    def lookup_case(self, actor: ActorSnapshot, guild_id: int, case_id: int) -> ModerationCase:
        return self.history.lookup_case(actor, self.policies.get_policy(guild_id), guild_id, case_id)

    def user_history(
        self,
        actor: ActorSnapshot,
        guild_id: int,
        user_id: int,
        limit: Optional[int] = None,
    ) -> List[ModerationCase]:
        return self.history.user_history(actor, self.policies.get_policy(guild_id), guild_id, user_id, limit)

    def recent_cases(self, actor: ActorSnapshot, guild_id: int, limit: Optional[int] = None) -> List[ModerationCase]:
        return self.history.recent_cases(actor, self.policies.get_policy(guild_id), guild_id, limit)

    def guild_stats(self, guild_id: int) -> GuildStats:
        return self.history.guild_stats(guild_id)

    # =========================================================================
    # Message Stream
    # =========================================================================

    async def evaluate_message(self, message: MessageSnapshot, now_ms: Optional[int] = None) -> AutoModResult:
        """Auto-mod verdict for one message under its guild's current policy."""
        policy = self.policies.get_policy(message.guild_id)
        return await self.automod.evaluate_message(message, policy, now_ms)

    async def on_levelable_message(
        self,
        user_id: int,
        guild_id: int,
        now_ms: Optional[int] = None,
    ) -> Optional[LevelUpEvent]:
        return await self.leveling.on_message(user_id, guild_id, now_ms)

    async def handle_message(self, message: MessageSnapshot, now_ms: Optional[int] = None) -> AutoModResult:
        """
        Run one inbound guild message through auto-mod, then leveling.

        A deleted message earns no XP. Channel notices are best-effort and
        remove themselves after a few seconds.

        Returns:
            The auto-mod verdict.
        """
        policy = self.policies.get_policy(message.guild_id)
        if policy is None or message.author_is_bot or message.channel_id in policy.ignored_channels:
            return AutoModResult()

        if now_ms is None:
            now_ms = int(time.time() * 1000)

        verdict = await self.automod.evaluate_message(message, policy, now_ms)
        if verdict.delete:
            await gather_with_logging(
                ("Delete Message", self.gateway.delete_message(message.channel_id, message.message_id)),
                ("Post Notice", self.gateway.send_channel(
                    message.channel_id,
                    content=verdict.notice(message.author_id),
                    delete_after=AUTOMOD_NOTICE_DELETE_AFTER,
                )),
                context="Auto-Mod",
            )
            return verdict

        event = await self.leveling.on_message(message.author_id, message.guild_id, now_ms, policy)
        if event is not None:
            await gather_with_logging(
                ("Post Level Up", self.gateway.send_channel(
                    message.channel_id,
                    content=event.notice,
                    delete_after=LEVEL_UP_NOTICE_DELETE_AFTER,
                )),
                context="Leveling",
            )
        return verdict


__all__ = ["ModerationEngine"]
