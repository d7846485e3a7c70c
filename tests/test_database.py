"""
Gavel - Database Tests
======================

Tests for policy, case and user record persistence.
"""

import sqlite3

import pytest

from gavel.core.models import ActionKind, AutoModSettings, CaseDraft, GuildPolicy

GUILD_ID = 987654321


def _draft(kind=ActionKind.WARN, target_id=123456789, guild_id=GUILD_ID, created_at=1_700_000_000_000):
    return CaseDraft(
        guild_id=guild_id,
        kind=kind,
        target_id=target_id,
        target_tag="testuser",
        actor_id=111222333,
        actor_tag="moduser",
        reason="Test reason",
        created_at=created_at,
    )


# =============================================================================
# Guild Policies
# =============================================================================

class TestGuildPolicies:
    """Tests for guild policy storage."""

    def test_missing_policy_is_none(self, test_db):
        assert test_db.get_guild_policy(GUILD_ID) is None

    def test_get_or_create_uses_defaults(self, test_db):
        policy = test_db.get_or_create_guild_policy(GUILD_ID, "Test Server")
        stored = test_db.get_guild_policy(GUILD_ID)

        assert stored == policy
        assert stored.guild_name == "Test Server"
        assert stored.automod_enabled is False
        assert stored.leveling_enabled is False
        assert stored.automod == AutoModSettings()
        assert stored.moderator_roles == []
        assert stored.ignored_channels == set()

    def test_get_or_create_keeps_existing(self, test_db):
        test_db.save_guild_policy(GuildPolicy(guild_id=GUILD_ID, guild_name="Old", automod_enabled=True))
        policy = test_db.get_or_create_guild_policy(GUILD_ID, "New")
        assert policy.guild_name == "Old"
        assert policy.automod_enabled is True

    def test_save_round_trips_collections(self, test_db):
        test_db.save_guild_policy(GuildPolicy(
            guild_id=GUILD_ID,
            moderator_roles=[3, 1, 2],
            admin_roles=[9],
            ignored_channels={7, 8},
            mod_log_channel_id=55,
            automod=AutoModSettings(anti_link=True, max_mentions=None),
        ))
        policy = test_db.get_guild_policy(GUILD_ID)

        assert policy.moderator_roles == [3, 1, 2]
        assert policy.admin_roles == [9]
        assert policy.ignored_channels == {7, 8}
        assert policy.mod_log_channel_id == 55
        assert policy.automod.anti_link is True
        assert policy.automod.max_mentions is None

    def test_one_policy_per_guild(self, test_db):
        test_db.save_guild_policy(GuildPolicy(guild_id=GUILD_ID, guild_name="A"))
        test_db.save_guild_policy(GuildPolicy(guild_id=GUILD_ID, guild_name="B"))
        row = test_db.fetchone("SELECT COUNT(*) AS n FROM guild_policies WHERE guild_id = ?", (GUILD_ID,))
        assert row["n"] == 1
        assert test_db.get_guild_policy(GUILD_ID).guild_name == "B"

    def test_corrupted_json_falls_back_to_empty(self, test_db):
        test_db.save_guild_policy(GuildPolicy(guild_id=GUILD_ID))
        test_db.execute("UPDATE guild_policies SET moderator_roles = 'not json' WHERE guild_id = ?", (GUILD_ID,))
        assert test_db.get_guild_policy(GUILD_ID).moderator_roles == []


# =============================================================================
# Cases
# =============================================================================

class TestCases:
    """Tests for case storage."""

    def test_fresh_guild_has_no_cases(self, test_db):
        assert test_db.get_max_case_id(GUILD_ID) == 0

    def test_ids_are_sequential_per_guild(self, test_db):
        first = test_db.insert_case(_draft())
        second = test_db.insert_case(_draft())
        other_guild = test_db.insert_case(_draft(guild_id=1))

        assert (first.case_id, second.case_id) == (1, 2)
        assert other_guild.case_id == 1

    def test_insert_returns_stored_case(self, test_db):
        case = test_db.insert_case(_draft(kind=ActionKind.BAN))
        assert test_db.get_case(GUILD_ID, case.case_id) == case
        assert case.active is True
        assert case.created_at == 1_700_000_000_000

    def test_reversal_deactivates_only_matching_cases(self, test_db):
        ban = test_db.insert_case(_draft(kind=ActionKind.BAN))
        other_user_ban = test_db.insert_case(_draft(kind=ActionKind.BAN, target_id=42))
        warn = test_db.insert_case(_draft(kind=ActionKind.WARN))

        test_db.insert_case(_draft(kind=ActionKind.UNBAN), reverses=ActionKind.UNBAN.reverses)

        assert test_db.get_case(GUILD_ID, ban.case_id).active is False
        assert test_db.get_case(GUILD_ID, other_user_ban.case_id).active is True
        assert test_db.get_case(GUILD_ID, warn.case_id).active is True
        assert test_db.get_active_cases(GUILD_ID, 123456789, ActionKind.BAN) == []
        assert test_db.get_active_cases(GUILD_ID, 42, ActionKind.BAN) == [other_user_ban]

    def test_failed_insert_rolls_back_reversal(self, test_db):
        ban = test_db.insert_case(_draft(kind=ActionKind.BAN))
        test_db.execute(
            "CREATE TRIGGER fail_insert BEFORE INSERT ON mod_cases "
            "WHEN NEW.action = 'unban' BEGIN SELECT RAISE(ABORT, 'boom'); END"
        )

        with pytest.raises(sqlite3.Error):
            test_db.insert_case(_draft(kind=ActionKind.UNBAN), reverses=ActionKind.UNBAN.reverses)

        assert test_db.get_case(GUILD_ID, ban.case_id).active is True
        assert test_db.get_max_case_id(GUILD_ID) == ban.case_id

    def test_user_cases_newest_first(self, test_db):
        for _ in range(3):
            test_db.insert_case(_draft())
        test_db.insert_case(_draft(target_id=42))

        cases = test_db.get_user_cases(GUILD_ID, 123456789, limit=2)
        assert [c.case_id for c in cases] == [3, 2]

    def test_count_cases(self, test_db):
        test_db.insert_case(_draft(kind=ActionKind.BAN))
        test_db.insert_case(_draft(kind=ActionKind.BAN, target_id=42))
        test_db.insert_case(_draft(kind=ActionKind.WARN))
        test_db.insert_case(_draft(kind=ActionKind.UNBAN), reverses=ActionKind.UNBAN.reverses)

        assert test_db.count_cases(GUILD_ID) == 4
        assert test_db.count_cases(GUILD_ID, ActionKind.BAN) == 2
        assert test_db.count_cases(GUILD_ID, ActionKind.BAN, active_only=True) == 1


# =============================================================================
# User Records
# =============================================================================

class TestUserRecords:
    """Tests for counters and XP storage."""

    def test_increment_creates_record(self, test_db):
        record = test_db.increment_user_counter(1, GUILD_ID, "warnings")
        assert record.warnings == 1
        assert record.kicks == 0
        assert record.level == 0

    def test_increment_updates_existing_record(self, test_db):
        test_db.increment_user_counter(1, GUILD_ID, "warnings")
        record = test_db.increment_user_counter(1, GUILD_ID, "warnings")
        assert record.warnings == 2

    def test_unknown_counter_is_rejected(self, test_db):
        with pytest.raises(ValueError):
            test_db.increment_user_counter(1, GUILD_ID, "experience; DROP TABLE user_records")

    def test_save_experience_counts_messages(self, test_db):
        test_db.increment_user_counter(1, GUILD_ID, "bans")
        test_db.save_experience(1, GUILD_ID, 20, 0, 1000)
        record = test_db.save_experience(1, GUILD_ID, 40, 0, 70000)

        assert record.messages == 2
        assert record.experience == 40
        assert record.last_message_at == 70000
        assert record.bans == 1

    def test_leaderboard_and_rank(self, test_db):
        test_db.save_experience(1, GUILD_ID, 50, 1, 0)
        test_db.save_experience(2, GUILD_ID, 10, 2, 0)
        test_db.save_experience(3, GUILD_ID, 90, 1, 0)

        assert [r.user_id for r in test_db.get_leaderboard(GUILD_ID)] == [2, 3, 1]
        assert test_db.get_rank(1, GUILD_ID) == 3
        assert test_db.get_rank(2, GUILD_ID) == 1
        assert test_db.get_rank(99, GUILD_ID) is None

    def test_top_warned(self, test_db):
        for _ in range(3):
            test_db.increment_user_counter(1, GUILD_ID, "warnings")
        test_db.increment_user_counter(2, GUILD_ID, "warnings")
        test_db.increment_user_counter(3, GUILD_ID, "kicks")

        top = test_db.get_top_warned(GUILD_ID)
        assert [(r.user_id, r.warnings) for r in top] == [(1, 3), (2, 1)]
