"""
Gavel - Moderation Action Executor
==================================

Runs ban, kick, warn, timeout, unmute and unban end to end.

DESIGN:
    Every action follows the same ordered steps:

        1. the actor must be a moderator               -> Unauthorized
        2. the target must exist and be outranked      -> NotFound / Forbidden
        3. the bot must be able to act on the target   -> InsufficientBotPermission
        4. platform action, audit reason attached      -> TransientIO
        5. case recorded through the CaseSequencer     (failure = partial success)
        6. user counter incremented                    (failure = logged only)
        7. DM and mod-log notifications                (best-effort, never retried)

    Steps 1-3 fail closed with no side effects. Once step 4 succeeds the
    action has happened: later failures degrade the result but never undo
    or hide it.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

import sqlite3

from gavel.core.authorization import is_moderator, validate_can_moderate
from gavel.core.constants import DEFAULT_REASON, MAX_DELETE_MESSAGE_DAYS, UNKNOWN_USER_TAG
from gavel.core.database import DatabaseManager, get_db, storage_errors
from gavel.core.errors import (
    ErrorCode,
    Forbidden,
    InsufficientBotPermission,
    ModerationError,
    NotFound,
    OutOfRange,
    TransientIO,
    Unauthorized,
)
from gavel.core.logger import logger
from gavel.core.models import (
    ActionKind,
    ActorSnapshot,
    CaseDraft,
    GuildPolicy,
    ModerationCase,
    TargetSnapshot,
    UserRecord,
)
from gavel.services.cases.sequencer import CaseSequencer
from gavel.services.moderation.gateway import PlatformGateway
from gavel.services.moderation.notifications import Notification, build_mod_log, build_target_dm
from gavel.utils.async_utils import gather_with_logging
from gavel.utils.duration import parse_duration, parse_timeout_duration, validate_timeout_duration


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class ActionResult:
    """
    Outcome of a moderation action that reached the platform.

    Attributes:
        action: Kind of action taken.
        target_id: User acted upon.
        case: Stored case, or None if persistence failed.
        user_record: Counters after the increment, when available.
        notifications: Intents built for the target and the mod log.
        warning: Set when the action succeeded but bookkeeping did not.
    """
    action: ActionKind
    target_id: int
    case: Optional[ModerationCase] = None
    user_record: Optional[UserRecord] = None
    notifications: List[Notification] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.case is None


# =============================================================================
# Executor
# =============================================================================

class ModerationActionExecutor:
    """Authorizes, applies and records moderation actions."""

    def __init__(
        self,
        gateway: PlatformGateway,
        db: Optional[DatabaseManager] = None,
        sequencer: Optional[CaseSequencer] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.gateway = gateway
        self.db = db or get_db()
        self.sequencer = sequencer or CaseSequencer(self.db)
        self._clock = clock or (lambda: int(time.time() * 1000))

    # =========================================================================
    # Public Actions
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
        """
        Ban a user, whether or not they are currently in the guild.

        Args:
            guild_id: Guild to ban from.
            actor: Invoking moderator.
            target: User to ban; member is None if they are not in the guild.
            reason: Reason shown in the case and audit log.
            duration: Optional ban length ("7d" or milliseconds), recorded
                on the case as its expiry.
            delete_message_days: Days of the user's messages to purge (0-7).

        Raises:
            InvalidFormat: If duration text cannot be parsed.
            OutOfRange: If a millisecond duration is not positive.
            TransientIO: If the guild policy cannot be read.
        """
        duration_ms = self._optional_duration(duration)
        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.BAN, actor, policy)
        if target.member is not None:
            self._require_outranks(ActionKind.BAN, actor, target)
            self._require_actionable(ActionKind.BAN, target, target.bannable)

        reason = reason or DEFAULT_REASON
        days = max(0, min(delete_message_days, MAX_DELETE_MESSAGE_DAYS))
        await self._apply(
            ActionKind.BAN, guild_id, target,
            self.gateway.ban(guild_id, target.user_id, self._audit_reason(reason, actor), days),
        )
        return await self._finalize(ActionKind.BAN, guild_id, actor, target, reason, policy, duration_ms)

    async def execute_kick(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.KICK, actor, policy)
        self._require_member(target)
        self._require_outranks(ActionKind.KICK, actor, target)
        self._require_actionable(ActionKind.KICK, target, target.kickable)

        reason = reason or DEFAULT_REASON
        await self._apply(
            ActionKind.KICK, guild_id, target,
            self.gateway.kick(guild_id, target.user_id, self._audit_reason(reason, actor)),
        )
        return await self._finalize(ActionKind.KICK, guild_id, actor, target, reason, policy)

    async def execute_warn(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        """
        Warn a member. There is no platform action; the case is the action.
        """
        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.WARN, actor, policy)
        self._require_member(target)
        self._require_outranks(ActionKind.WARN, actor, target)

        return await self._finalize(ActionKind.WARN, guild_id, actor, target, reason or DEFAULT_REASON, policy)

    async def execute_timeout(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        duration: Union[str, int],
        reason: Optional[str] = None,
    ) -> ActionResult:
        """
        Time a member out for between 1 second and 28 days.

        Args:
            duration: Duration text ("10m", "1h") or milliseconds.

        Raises:
            InvalidFormat: If duration text cannot be parsed.
            OutOfRange: If the duration is outside [1s, 28d].
        """
        if isinstance(duration, str):
            duration_ms = parse_timeout_duration(duration)
        else:
            duration_ms = validate_timeout_duration(duration)

        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.TIMEOUT, actor, policy)
        self._require_member(target)
        self._require_outranks(ActionKind.TIMEOUT, actor, target)
        self._require_actionable(ActionKind.TIMEOUT, target, target.moderatable)

        reason = reason or DEFAULT_REASON
        await self._apply(
            ActionKind.TIMEOUT, guild_id, target,
            self.gateway.timeout(guild_id, target.user_id, duration_ms, self._audit_reason(reason, actor)),
        )
        return await self._finalize(ActionKind.TIMEOUT, guild_id, actor, target, reason, policy, duration_ms)

    async def execute_unmute(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: Optional[str] = None,
    ) -> ActionResult:
        """Lift a member's timeout and close their active timeout cases."""
        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.UNMUTE, actor, policy)
        self._require_member(target)
        self._require_outranks(ActionKind.UNMUTE, actor, target)
        self._require_actionable(ActionKind.UNMUTE, target, target.moderatable)

        reason = reason or DEFAULT_REASON
        await self._apply(
            ActionKind.UNMUTE, guild_id, target,
            self.gateway.remove_timeout(guild_id, target.user_id, self._audit_reason(reason, actor)),
        )
        return await self._finalize(ActionKind.UNMUTE, guild_id, actor, target, reason, policy)

    async def execute_unban(
        self,
        guild_id: int,
        actor: ActorSnapshot,
        user_id: int,
        reason: Optional[str] = None,
        user_tag: Optional[str] = None,
    ) -> ActionResult:
        """
        Lift a ban and close every active ban case for that user.

        Raises:
            NotFound: If the user is not banned.
        """
        policy = self._load_policy(guild_id)
        self._require_moderator(ActionKind.UNBAN, actor, policy)

        if not await self.gateway.is_banned(guild_id, user_id):
            raise NotFound(ErrorCode.USER_NOT_BANNED)

        target = TargetSnapshot(user_id=user_id, tag=user_tag or UNKNOWN_USER_TAG)
        reason = reason or DEFAULT_REASON
        await self._apply(
            ActionKind.UNBAN, guild_id, target,
            self.gateway.unban(guild_id, user_id, self._audit_reason(reason, actor)),
        )
        return await self._finalize(ActionKind.UNBAN, guild_id, actor, target, reason, policy, notify_target=False)

    # =========================================================================
    # Checks (steps 1-3)
    # =========================================================================

    def _load_policy(self, guild_id: int) -> Optional[GuildPolicy]:
        with storage_errors("Load Policy", guild=guild_id):
            return self.db.get_guild_policy(guild_id)

    def _require_moderator(self, kind: ActionKind, actor: ActorSnapshot, policy: Optional[GuildPolicy]) -> None:
        if not is_moderator(actor.member, policy):
            logger.tree(f"{kind.value.upper()} BLOCKED", [
                ("Reason", "Not a moderator"),
                ("Moderator", f"{actor.tag} ({actor.user_id})"),
            ], emoji="🚫")
            raise Unauthorized(message=f"You do not have permission to {kind.value} members.")

    def _require_member(self, target: TargetSnapshot) -> None:
        if target.member is None:
            raise NotFound(ErrorCode.USER_NOT_IN_GUILD)

    def _require_outranks(self, kind: ActionKind, actor: ActorSnapshot, target: TargetSnapshot) -> None:
        result = validate_can_moderate(actor.member, target.member, kind.value)
        if not result.is_valid:
            raise Forbidden(result.error_code, result.error_message)

    def _require_actionable(self, kind: ActionKind, target: TargetSnapshot, actionable: bool) -> None:
        if not actionable:
            logger.tree(f"{kind.value.upper()} BLOCKED", [
                ("Reason", "Bot cannot act on target"),
                ("Target", f"{target.tag} ({target.user_id})"),
            ], emoji="🚫")
            raise InsufficientBotPermission(f"I cannot {kind.value} this member. They may have higher roles than me.")

    # =========================================================================
    # Platform Action (step 4)
    # =========================================================================

    async def _apply(self, kind: ActionKind, guild_id: int, target: TargetSnapshot, action) -> None:
        try:
            await action
        except ModerationError as e:
            logger.error("Moderation Action Failed", [
                ("Action", kind.value),
                ("Guild", str(guild_id)),
                ("Target", f"{target.tag} ({target.user_id})"),
                ("Code", e.code.value),
            ])
            raise

    # =========================================================================
    # Bookkeeping (steps 5-7)
    # =========================================================================

    async def _finalize(
        self,
        kind: ActionKind,
        guild_id: int,
        actor: ActorSnapshot,
        target: TargetSnapshot,
        reason: str,
        policy: Optional[GuildPolicy],
        duration_ms: Optional[int] = None,
        notify_target: bool = True,
    ) -> ActionResult:
        now = self._clock()
        draft = CaseDraft(
            guild_id=guild_id,
            kind=kind,
            target_id=target.user_id,
            target_tag=target.tag,
            actor_id=actor.user_id,
            actor_tag=actor.tag,
            reason=reason,
            duration_ms=duration_ms,
            expires_at=now + duration_ms if duration_ms else None,
            created_at=now,
        )
        result = ActionResult(action=kind, target_id=target.user_id)

        try:
            result.case = await self.sequencer.record_case(draft, kind.reverses)
        except TransientIO:
            result.warning = (
                f"The {kind.value} was applied, but its case could not be recorded."
            )
            logger.warning("Case Not Recorded", [
                ("Action", kind.value),
                ("Guild", str(guild_id)),
                ("Target", str(target.user_id)),
            ])

        if kind.counter:
            try:
                result.user_record = self.db.increment_user_counter(target.user_id, guild_id, kind.counter)
            except sqlite3.Error as e:
                logger.warning("User Counter Not Updated", [
                    ("Counter", kind.counter),
                    ("Target", str(target.user_id)),
                    ("Error", str(e)[:100]),
                ])

        case_id = result.case.case_id if result.case else None
        if notify_target:
            guild_name = policy.guild_name if policy else ""
            result.notifications.append(build_target_dm(draft, guild_name, result.user_record))
        if policy and policy.mod_log_channel_id:
            result.notifications.append(build_mod_log(draft, policy.mod_log_channel_id, case_id))

        await self._deliver(kind, result.notifications)

        logger.tree(f"{kind.value.upper()} EXECUTED", [
            ("Guild", str(guild_id)),
            ("Moderator", f"{actor.tag} ({actor.user_id})"),
            ("Target", f"{target.tag} ({target.user_id})"),
            ("Reason", reason[:50]),
            ("Case", f"#{case_id}" if case_id else "Not recorded"),
        ], emoji="⚖️")
        return result

    async def _deliver(self, kind: ActionKind, notifications: List[Notification]) -> None:
        operations = []
        for notification in notifications:
            if notification.is_dm:
                operations.append(("Send DM", self.gateway.send_dm(notification.recipient_id, notification)))
            else:
                operations.append(("Post Mod Log", self.gateway.send_channel(notification.recipient_id, notification)))
        if operations:
            await gather_with_logging(*operations, context=kind.value.capitalize())

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _audit_reason(reason: str, actor: ActorSnapshot) -> str:
        return f"{reason} | Moderator: {actor.tag}"

    @staticmethod
    def _optional_duration(duration: Optional[Union[str, int]]) -> Optional[int]:
        if duration is None:
            return None
        if isinstance(duration, str):
            return parse_duration(duration)
        if duration <= 0:
            raise OutOfRange("Ban duration must be a positive number of milliseconds.")
        return duration


__all__ = ["ModerationActionExecutor", "ActionResult"]
