"""
Gavel - Moderation Executor Tests
=================================

Tests for the ordered action steps: checks fail closed, the platform
action comes before any record, and bookkeeping failures degrade the
result instead of hiding the action.
"""

import sqlite3

import pytest
from unittest.mock import AsyncMock

from gavel.core.constants import MS_PER_MINUTE
from gavel.core.errors import (
    ErrorCode,
    Forbidden,
    InsufficientBotPermission,
    InvalidFormat,
    NotFound,
    OutOfRange,
    TransientIO,
    Unauthorized,
)
from gavel.core.models import ActionKind, GuildPolicy
from gavel.services.moderation import ModerationActionExecutor

GUILD_ID = 987654321
OTHER_GUILD_ID = 192837465
TARGET_ID = 123456789
NOW = 1_700_000_000_000


@pytest.fixture
def executor(test_db, mock_gateway):
    return ModerationActionExecutor(mock_gateway, test_db, clock=lambda: NOW)


def _fields(notification):
    return {name: value for name, value, _ in notification.fields}


# =============================================================================
# Ban
# =============================================================================

class TestBan:
    """Tests for execute_ban."""

    @pytest.mark.asyncio
    async def test_ban_success(self, executor, mock_gateway, test_db, policy, moderator, make_target):
        result = await executor.execute_ban(GUILD_ID, moderator, make_target(), reason="Spamming")

        mock_gateway.ban.assert_awaited_once_with(GUILD_ID, TARGET_ID, "Spamming | Moderator: moduser", 0)
        assert result.action == ActionKind.BAN
        assert result.partial is False
        assert result.warning is None
        assert result.case.case_id == 1
        assert result.case.active is True
        assert result.case.created_at == NOW
        assert result.user_record.bans == 1

        dm, mod_log = result.notifications
        assert dm.is_dm and dm.recipient_id == TARGET_ID
        assert "Test Server" in dm.description
        assert mod_log.recipient_id == policy.mod_log_channel_id
        assert _fields(mod_log)["Case ID"] == "#1"
        mock_gateway.send_dm.assert_awaited_once()
        mock_gateway.send_channel.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_default_reason(self, executor, policy, moderator, make_target):
        result = await executor.execute_ban(GUILD_ID, moderator, make_target())
        assert result.case.reason == "No reason provided"

    @pytest.mark.asyncio
    async def test_ban_user_not_in_guild(self, executor, mock_gateway, policy, moderator, make_target):
        result = await executor.execute_ban(GUILD_ID, moderator, make_target(in_guild=False))
        assert result.case.kind == ActionKind.BAN
        mock_gateway.ban.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ban_with_duration_records_expiry(self, executor, policy, moderator, make_target):
        result = await executor.execute_ban(GUILD_ID, moderator, make_target(), duration="7d")
        assert result.case.duration_ms == 7 * 24 * 60 * MS_PER_MINUTE
        assert result.case.expires_at == NOW + result.case.duration_ms

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, -60_000])
    async def test_non_positive_ban_duration(self, executor, mock_gateway, test_db, policy, moderator, make_target, duration):
        with pytest.raises(OutOfRange):
            await executor.execute_ban(GUILD_ID, moderator, make_target(), duration=duration)

        mock_gateway.ban.assert_not_awaited()
        assert test_db.get_max_case_id(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_delete_days_are_clamped(self, executor, mock_gateway, policy, moderator, make_target):
        await executor.execute_ban(GUILD_ID, moderator, make_target(), delete_message_days=30)
        assert mock_gateway.ban.await_args.args[3] == 7

    @pytest.mark.asyncio
    async def test_non_moderator_is_unauthorized(self, executor, mock_gateway, test_db, policy, regular_actor, make_target):
        with pytest.raises(Unauthorized) as exc_info:
            await executor.execute_ban(GUILD_ID, regular_actor, make_target())

        assert exc_info.value.terminal is True
        mock_gateway.ban.assert_not_awaited()
        assert test_db.get_max_case_id(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_higher_target_is_forbidden(self, executor, mock_gateway, test_db, policy, moderator, make_target):
        with pytest.raises(Forbidden) as exc_info:
            await executor.execute_ban(GUILD_ID, moderator, make_target(position=20))

        assert exc_info.value.code == ErrorCode.USER_HIGHER_ROLE
        mock_gateway.ban.assert_not_awaited()
        assert test_db.get_max_case_id(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_owner_target_is_forbidden(self, executor, policy, moderator, make_target):
        with pytest.raises(Forbidden) as exc_info:
            await executor.execute_ban(GUILD_ID, moderator, make_target(owner=True))
        assert exc_info.value.code == ErrorCode.USER_IS_OWNER

    @pytest.mark.asyncio
    async def test_bot_cannot_ban(self, executor, mock_gateway, policy, moderator, make_target):
        with pytest.raises(InsufficientBotPermission):
            await executor.execute_ban(GUILD_ID, moderator, make_target(bannable=False))
        mock_gateway.ban.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_platform_failure_records_nothing(self, executor, mock_gateway, test_db, policy, moderator, make_target):
        mock_gateway.ban = AsyncMock(side_effect=TransientIO(ErrorCode.SERVER_DISCORD_ERROR))

        with pytest.raises(TransientIO):
            await executor.execute_ban(GUILD_ID, moderator, make_target())

        assert test_db.get_max_case_id(GUILD_ID) == 0
        assert test_db.get_user_record(TARGET_ID, GUILD_ID) is None
        mock_gateway.send_dm.assert_not_awaited()


# =============================================================================
# Kick / Warn
# =============================================================================

class TestKickAndWarn:
    """Tests for execute_kick and execute_warn."""

    @pytest.mark.asyncio
    async def test_kick_requires_member(self, executor, mock_gateway, policy, moderator, make_target):
        with pytest.raises(NotFound) as exc_info:
            await executor.execute_kick(GUILD_ID, moderator, make_target(in_guild=False))
        assert exc_info.value.code == ErrorCode.USER_NOT_IN_GUILD
        mock_gateway.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_kick_success(self, executor, mock_gateway, policy, moderator, make_target):
        result = await executor.execute_kick(GUILD_ID, moderator, make_target(), reason="Rude")
        mock_gateway.kick.assert_awaited_once_with(GUILD_ID, TARGET_ID, "Rude | Moderator: moduser")
        assert result.user_record.kicks == 1

    @pytest.mark.asyncio
    async def test_kick_not_kickable(self, executor, policy, moderator, make_target):
        with pytest.raises(InsufficientBotPermission):
            await executor.execute_kick(GUILD_ID, moderator, make_target(kickable=False))

    @pytest.mark.asyncio
    async def test_warn_has_no_platform_action(self, executor, mock_gateway, policy, moderator, make_target):
        await executor.execute_warn(GUILD_ID, moderator, make_target(), reason="Be nice")
        result = await executor.execute_warn(GUILD_ID, moderator, make_target(), reason="Be nicer")

        assert result.case.case_id == 2
        assert result.user_record.warnings == 2
        assert _fields(result.notifications[0])["Total Warnings"] == "2"
        mock_gateway.ban.assert_not_awaited()
        mock_gateway.kick.assert_not_awaited()
        mock_gateway.timeout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_warn_self_is_forbidden(self, executor, policy, moderator, make_target):
        with pytest.raises(Forbidden) as exc_info:
            await executor.execute_warn(GUILD_ID, moderator, make_target(user_id=moderator.user_id))
        assert exc_info.value.code == ErrorCode.USER_SELF_ACTION


# =============================================================================
# Timeout / Unmute
# =============================================================================

class TestTimeout:
    """Tests for execute_timeout and execute_unmute."""

    @pytest.mark.asyncio
    async def test_timeout_success(self, executor, mock_gateway, policy, moderator, make_target):
        result = await executor.execute_timeout(GUILD_ID, moderator, make_target(), "10m", reason="Cool off")

        mock_gateway.timeout.assert_awaited_once_with(
            GUILD_ID, TARGET_ID, 10 * MS_PER_MINUTE, "Cool off | Moderator: moduser",
        )
        assert result.case.duration_ms == 10 * MS_PER_MINUTE
        assert result.case.expires_at == NOW + 10 * MS_PER_MINUTE
        assert result.user_record.mutes == 1
        assert _fields(result.notifications[0])["Duration"] == "10m 0s"

    @pytest.mark.asyncio
    async def test_timeout_accepts_milliseconds(self, executor, mock_gateway, policy, moderator, make_target):
        await executor.execute_timeout(GUILD_ID, moderator, make_target(), 5000)
        assert mock_gateway.timeout.await_args.args[2] == 5000

    @pytest.mark.asyncio
    async def test_invalid_duration_checked_first(self, executor, mock_gateway, policy, regular_actor, make_target):
        with pytest.raises(InvalidFormat):
            await executor.execute_timeout(GUILD_ID, regular_actor, make_target(), "banana")
        mock_gateway.timeout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_out_of_range_duration(self, executor, mock_gateway, policy, moderator, make_target):
        with pytest.raises(OutOfRange):
            await executor.execute_timeout(GUILD_ID, moderator, make_target(), "29d")
        mock_gateway.timeout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_not_moderatable(self, executor, policy, moderator, make_target):
        with pytest.raises(InsufficientBotPermission):
            await executor.execute_timeout(GUILD_ID, moderator, make_target(moderatable=False), "1h")

    @pytest.mark.asyncio
    async def test_unmute_reverses_timeouts(self, executor, mock_gateway, test_db, policy, moderator, make_target):
        timeout = await executor.execute_timeout(GUILD_ID, moderator, make_target(), "1h")
        result = await executor.execute_unmute(GUILD_ID, moderator, make_target())

        mock_gateway.remove_timeout.assert_awaited_once()
        assert result.case.kind == ActionKind.UNMUTE
        assert result.user_record is None
        assert test_db.get_case(GUILD_ID, timeout.case.case_id).active is False


# =============================================================================
# Unban
# =============================================================================

class TestUnban:
    """Tests for execute_unban."""

    @pytest.mark.asyncio
    async def test_unban_requires_existing_ban(self, executor, mock_gateway, policy, moderator):
        mock_gateway.is_banned = AsyncMock(return_value=False)

        with pytest.raises(NotFound) as exc_info:
            await executor.execute_unban(GUILD_ID, moderator, TARGET_ID)

        assert exc_info.value.code == ErrorCode.USER_NOT_BANNED
        mock_gateway.unban.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unban_reverses_active_bans(self, executor, mock_gateway, test_db, policy, moderator, make_target):
        ban = await executor.execute_ban(GUILD_ID, moderator, make_target())
        other = await executor.execute_ban(GUILD_ID, moderator, make_target(user_id=42))

        result = await executor.execute_unban(GUILD_ID, moderator, TARGET_ID, reason="Appeal accepted")

        mock_gateway.unban.assert_awaited_once_with(GUILD_ID, TARGET_ID, "Appeal accepted | Moderator: moduser")
        assert result.case.kind == ActionKind.UNBAN
        assert result.case.target_tag == "Unknown#0000"
        assert test_db.get_case(GUILD_ID, ban.case.case_id).active is False
        assert test_db.get_case(GUILD_ID, other.case.case_id).active is True

    @pytest.mark.asyncio
    async def test_unban_leaves_other_guilds_untouched(self, executor, test_db, policy, moderator, make_target):
        test_db.save_guild_policy(GuildPolicy(guild_id=OTHER_GUILD_ID, moderator_roles=[5001]))
        here = await executor.execute_ban(GUILD_ID, moderator, make_target())
        elsewhere = await executor.execute_ban(OTHER_GUILD_ID, moderator, make_target())

        await executor.execute_unban(GUILD_ID, moderator, TARGET_ID)

        assert test_db.get_case(GUILD_ID, here.case.case_id).active is False
        assert test_db.get_case(OTHER_GUILD_ID, elsewhere.case.case_id).active is True
        assert test_db.count_cases(OTHER_GUILD_ID, ActionKind.BAN, active_only=True) == 1

    @pytest.mark.asyncio
    async def test_unban_sends_no_dm(self, executor, mock_gateway, policy, moderator):
        mock_gateway.send_dm.reset_mock()
        result = await executor.execute_unban(GUILD_ID, moderator, TARGET_ID)

        assert [n.is_dm for n in result.notifications] == [False]
        mock_gateway.send_dm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unban_needs_moderator(self, executor, mock_gateway, policy, regular_actor):
        with pytest.raises(Unauthorized):
            await executor.execute_unban(GUILD_ID, regular_actor, TARGET_ID)
        mock_gateway.is_banned.assert_not_awaited()


# =============================================================================
# Degraded Bookkeeping
# =============================================================================

class TestPartialSuccess:
    """Tests for failures after the platform action."""

    @pytest.mark.asyncio
    async def test_case_failure_is_partial_success(self, executor, mock_gateway, test_db, policy, moderator, make_target, monkeypatch):
        def broken_insert(draft, reverses=()):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(test_db, "insert_case", broken_insert)

        result = await executor.execute_kick(GUILD_ID, moderator, make_target())

        mock_gateway.kick.assert_awaited_once()
        assert result.partial is True
        assert result.case is None
        assert "kick was applied" in result.warning
        assert result.user_record.kicks == 1
        assert _fields(result.notifications[1])["Case ID"] == "Not recorded"

    @pytest.mark.asyncio
    async def test_counter_failure_is_tolerated(self, executor, test_db, policy, moderator, make_target, monkeypatch):
        def broken_counter(user_id, guild_id, counter):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(test_db, "increment_user_counter", broken_counter)

        result = await executor.execute_warn(GUILD_ID, moderator, make_target())

        assert result.case.case_id == 1
        assert result.user_record is None
        assert result.warning is None

    @pytest.mark.asyncio
    async def test_notification_failures_are_swallowed(self, executor, mock_gateway, policy, moderator, make_target):
        mock_gateway.send_dm = AsyncMock(side_effect=RuntimeError("DMs closed"))
        mock_gateway.send_channel = AsyncMock(side_effect=TransientIO(ErrorCode.SERVER_DISCORD_ERROR))

        result = await executor.execute_kick(GUILD_ID, moderator, make_target())

        assert result.case.case_id == 1
        mock_gateway.send_dm.assert_awaited_once()
        mock_gateway.send_channel.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_mod_log_channel(self, test_db, mock_gateway, moderator, make_target):
        test_db.save_guild_policy(GuildPolicy(guild_id=GUILD_ID, moderator_roles=[5001]))
        executor = ModerationActionExecutor(mock_gateway, test_db, clock=lambda: NOW)

        result = await executor.execute_warn(GUILD_ID, moderator, make_target())

        assert [n.is_dm for n in result.notifications] == [True]
        mock_gateway.send_channel.assert_not_awaited()


# =============================================================================
# Storage Failures Before The Action
# =============================================================================

class TestPolicyStorageFailure:
    """Tests for a policy read that fails before any side effect."""

    @pytest.fixture
    def broken_policy_read(self, test_db, policy, monkeypatch):
        def broken(guild_id):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(test_db, "get_guild_policy", broken)

    @pytest.mark.asyncio
    async def test_kick_surfaces_transient_error(self, executor, mock_gateway, test_db, broken_policy_read, moderator, make_target):
        with pytest.raises(TransientIO) as exc_info:
            await executor.execute_kick(GUILD_ID, moderator, make_target())

        assert exc_info.value.code == ErrorCode.SERVER_DATABASE_ERROR
        assert exc_info.value.terminal is False
        mock_gateway.kick.assert_not_awaited()
        assert test_db.get_max_case_id(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_unban_surfaces_transient_error(self, executor, mock_gateway, broken_policy_read, moderator):
        with pytest.raises(TransientIO):
            await executor.execute_unban(GUILD_ID, moderator, TARGET_ID)

        mock_gateway.is_banned.assert_not_awaited()
        mock_gateway.unban.assert_not_awaited()
