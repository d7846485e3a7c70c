"""
Gavel - Test Fixtures
=====================

Shared fixtures for all tests.
"""

import os
import tempfile
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set up test environment before importing modules
os.environ.setdefault("GAVEL_LOG_DIR", tempfile.mkdtemp(prefix="gavel-logs-"))

from gavel.core import config as config_module
from gavel.core.database import manager as db_module
from gavel.core.models import (
    ActorSnapshot,
    GuildPolicy,
    RoleHierarchyView,
    TargetSnapshot,
)


GUILD_ID = 987654321
MOD_ROLE_ID = 5001
ADMIN_ROLE_ID = 5002


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload configuration from defaults for every test."""
    config_module.reset_config()
    yield
    config_module.reset_config()


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path for testing."""
    return tmp_path / "test_gavel.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Create a fresh test database instance."""
    # Reset singleton
    db_module.DatabaseManager._instance = None

    # Patch the DB path
    monkeypatch.setattr(db_module, "DB_PATH", temp_db_path)
    monkeypatch.setattr(db_module, "DATA_DIR", temp_db_path.parent)

    db = db_module.DatabaseManager()

    yield db

    # Cleanup
    db.close()
    db_module.DatabaseManager._instance = None


@pytest.fixture
def policy(test_db):
    """A stored policy with one moderator role, one admin role and a mod-log channel."""
    return test_db.save_guild_policy(GuildPolicy(
        guild_id=GUILD_ID,
        guild_name="Test Server",
        moderator_roles=[MOD_ROLE_ID],
        admin_roles=[ADMIN_ROLE_ID],
        mod_log_channel_id=444555666,
    ))


@pytest.fixture
def mock_gateway():
    """Create a mock platform gateway where every call succeeds."""
    gateway = MagicMock()
    gateway.ban = AsyncMock(return_value=None)
    gateway.kick = AsyncMock(return_value=None)
    gateway.timeout = AsyncMock(return_value=None)
    gateway.remove_timeout = AsyncMock(return_value=None)
    gateway.unban = AsyncMock(return_value=None)
    gateway.is_banned = AsyncMock(return_value=True)
    gateway.delete_message = AsyncMock(return_value=None)
    gateway.send_dm = AsyncMock(return_value=True)
    gateway.send_channel = AsyncMock(return_value=None)
    return gateway


# =============================================================================
# Snapshot Factories
# =============================================================================

@pytest.fixture
def make_view():
    """Build a RoleHierarchyView."""
    def _make(user_id, position=1, owner=False, roles=(), administrator=False, moderate_members=False):
        return RoleHierarchyView(
            user_id=user_id,
            is_owner=owner,
            top_role_position=position,
            role_ids=frozenset(roles),
            administrator=administrator,
            moderate_members=moderate_members,
        )
    return _make


@pytest.fixture
def moderator(make_view):
    """A moderator by role, ranked at position 10."""
    return ActorSnapshot(
        member=make_view(111222333, position=10, roles=[MOD_ROLE_ID]),
        tag="moduser",
    )


@pytest.fixture
def regular_actor(make_view):
    """A member with no staff standing."""
    return ActorSnapshot(member=make_view(222333444, position=5), tag="regular")


@pytest.fixture
def make_target(make_view):
    """Build a TargetSnapshot for a member (or a non-member with in_guild=False)."""
    def _make(user_id=123456789, position=1, owner=False, in_guild=True, **flags):
        member = make_view(user_id, position=position, owner=owner) if in_guild else None
        return TargetSnapshot(user_id=user_id, tag="testuser", member=member, **flags)
    return _make
