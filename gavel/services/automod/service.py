"""
Gavel - Auto-Mod Pipeline
=========================

Classifies each inbound message against the guild's auto-mod rules.

DESIGN:
    The pipeline owns its spam windows; nothing else mutates them.
    Rule evaluation is synchronous and await-free. The only suspension
    point is the best-effort spam timeout issued through the gateway.
"""

import asyncio
import time
from typing import Optional, TYPE_CHECKING

from gavel.core.config import get_config
from gavel.core.constants import SPAM_TIMEOUT_REASON, SPAM_WINDOW_CLEANUP_INTERVAL
from gavel.core.logger import logger
from gavel.core.models import GuildPolicy
from gavel.services.automod.models import ALLOW, AutoModResult, MessageSnapshot
from gavel.services.automod.rules import RuleContext, evaluate_rules
from gavel.services.automod.store import SpamWindowStore
from gavel.utils.async_utils import create_safe_task, safe_async_operation

if TYPE_CHECKING:
    from gavel.services.moderation.gateway import PlatformGateway


class AutoModPipeline:
    """
    Sliding-window auto-moderation over a live message stream.

    Attributes:
        windows: Per (guild, user) spam windows.
    """

    def __init__(
        self,
        gateway: Optional["PlatformGateway"] = None,
        spam_threshold: Optional[int] = None,
        spam_timeframe_ms: Optional[int] = None,
        spam_timeout_ms: Optional[int] = None,
    ) -> None:
        config = get_config()
        self.gateway = gateway
        self.spam_timeout_ms = spam_timeout_ms if spam_timeout_ms is not None else config.spam_timeout_ms
        self.windows = SpamWindowStore(
            threshold=spam_threshold if spam_threshold is not None else config.spam_threshold,
            timeframe_ms=spam_timeframe_ms if spam_timeframe_ms is not None else config.spam_timeframe_ms,
        )
        self._cleanup_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate_message(
        self,
        message: MessageSnapshot,
        policy: Optional[GuildPolicy],
        now_ms: Optional[int] = None,
    ) -> AutoModResult:
        """
        Evaluate one message and apply the spam side effect.

        Messages are skipped (allowed) when the guild has no policy,
        auto-mod is disabled, the channel is ignored or the author is a bot.

        Args:
            message: Snapshot of the inbound message.
            policy: The guild's policy, if any.
            now_ms: Message time in epoch milliseconds (defaults to now).

        Returns:
            AutoModResult telling the caller whether to delete and why.
        """
        if (
            policy is None
            or not policy.automod_enabled
            or message.author_is_bot
            or message.channel_id in policy.ignored_channels
        ):
            return ALLOW

        if now_ms is None:
            now_ms = int(time.time() * 1000)

        outcome = evaluate_rules(RuleContext(
            message=message,
            settings=policy.automod,
            now_ms=now_ms,
            windows=self.windows,
        ))
        if not outcome.violated:
            return ALLOW

        punished = False
        if outcome.rule == "anti_spam":
            punished = await self._punish_spammer(message)

        logger.tree("AUTO-MOD VIOLATION", [
            ("Guild", str(message.guild_id)),
            ("Channel", str(message.channel_id)),
            ("Author", str(message.author_id)),
            ("Rule", outcome.rule),
            ("Reason", outcome.reason),
            ("Timed Out", "Yes" if punished else "No"),
        ], emoji="🛡️")

        return AutoModResult(delete=True, reason=outcome.reason, rule=outcome.rule, punished=punished)

    async def _punish_spammer(self, message: MessageSnapshot) -> bool:
        if self.gateway is None or not message.author_moderatable:
            return False
        result = await safe_async_operation(
            "Spam Timeout",
            self.gateway.timeout(
                message.guild_id,
                message.author_id,
                self.spam_timeout_ms,
                SPAM_TIMEOUT_REASON,
            ),
            default=False,
        )
        return result is not False

    # =========================================================================
    # Cleanup
    # =========================================================================

    def cleanup(self, now_ms: Optional[int] = None) -> int:
        """Drop idle spam windows. Returns how many were removed."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        removed = self.windows.cleanup(now_ms)
        if removed:
            logger.debug("Spam Windows Cleaned", [
                ("Removed", str(removed)),
                ("Tracked", str(len(self.windows))),
            ])
        return removed

    def start(self) -> None:
        """Start the periodic window cleanup in the running loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = create_safe_task(self._cleanup_loop(), "Auto-Mod Cleanup Loop")

    def stop(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(SPAM_WINDOW_CLEANUP_INTERVAL)
            self.cleanup()


__all__ = ["AutoModPipeline"]
