"""
Gavel - Guild Policy Service
============================

Read and write access to guild policies for the configuration surface.

DESIGN:
    Partial updates are validated by pydantic models that forbid unknown
    fields. Only policy fields can be named, so nothing reaching this
    service is able to touch cases or user records. Absent fields keep
    their stored value; an explicit null clears optional fields (and
    disables the mention or emoji ceiling).
"""

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gavel.core.authorization import is_admin
from gavel.core.database import DatabaseManager, get_db, storage_errors
from gavel.core.errors import ErrorCode, InvalidFormat, Unauthorized
from gavel.core.logger import logger
from gavel.core.models import ActorSnapshot, GuildPolicy, policy_summary


# =============================================================================
# Update Models
# =============================================================================

class AutoModUpdate(BaseModel):
    """Partial update of per-rule auto-mod settings."""

    model_config = ConfigDict(extra="forbid")

    anti_spam: Optional[bool] = None
    anti_invite: Optional[bool] = None
    anti_link: Optional[bool] = None
    anti_caps: Optional[bool] = None
    max_mentions: Optional[int] = Field(None, ge=1, le=100)
    max_emojis: Optional[int] = Field(None, ge=1, le=100)


class PolicyUpdate(BaseModel):
    """Partial update of a guild policy."""

    model_config = ConfigDict(extra="forbid")

    guild_name: Optional[str] = Field(None, max_length=100)
    automod_enabled: Optional[bool] = None
    automod: Optional[AutoModUpdate] = None
    leveling_enabled: Optional[bool] = None
    moderator_roles: Optional[List[int]] = None
    admin_roles: Optional[List[int]] = None
    ignored_channels: Optional[List[int]] = None
    mod_log_channel_id: Optional[int] = None


# Null is meaningful only for these; every other field treats it as "leave as is"
_NULLABLE_FIELDS = {"mod_log_channel_id", "max_mentions", "max_emojis"}


def _changes(model: BaseModel) -> Dict[str, Any]:
    return {
        key: value
        for key, value in model.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE_FIELDS
    }


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "update"
    return f"Invalid value for {location}: {first['msg']}"


# =============================================================================
# Policy Service
# =============================================================================

class GuildPolicyService:
    """Configuration-facing access to GuildPolicy records."""

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or get_db()

    def get_policy(self, guild_id: int) -> Optional[GuildPolicy]:
        """
        Raises:
            TransientIO: If storage cannot be read.
        """
        with storage_errors("Load Policy", guild=guild_id):
            return self.db.get_guild_policy(guild_id)

    def ensure_policy(self, guild_id: int, guild_name: str = "") -> GuildPolicy:
        """Get a guild's policy, creating the defaults on first sight."""
        with storage_errors("Create Policy", guild=guild_id):
            return self.db.get_or_create_guild_policy(guild_id, guild_name)

    def update_policy(
        self,
        guild_id: int,
        updates: Mapping[str, Any],
        actor: Optional[ActorSnapshot] = None,
    ) -> GuildPolicy:
        """
        Apply a partial update to a guild's policy.

        Args:
            guild_id: Guild to update. A default policy is created first if
                the guild has none.
            updates: Field values keyed by policy field name. Auto-mod rule
                settings go under "automod".
            actor: Invoking member, if the update comes from a member. It
                must hold admin standing under the current policy.

        Returns:
            The stored policy after the update.

        Raises:
            InvalidFormat: If a field is unknown or has a bad value.
            Unauthorized: If actor is given and is not an admin.
            TransientIO: If storage rejects the read or the write.
        """
        try:
            update = PolicyUpdate.model_validate(dict(updates))
        except ValidationError as e:
            logger.warning("Policy Update Rejected", [
                ("Guild", str(guild_id)),
                ("Errors", str(e.error_count())),
            ])
            raise InvalidFormat(
                _validation_message(e),
                code=ErrorCode.VALIDATION_INVALID_FIELD,
                details={"errors": e.errors(include_url=False)},
            ) from e

        current = self.ensure_policy(guild_id)

        if actor is not None and not is_admin(actor.member, current):
            logger.tree("POLICY UPDATE BLOCKED", [
                ("Guild", str(guild_id)),
                ("Actor", f"{actor.tag} ({actor.user_id})"),
                ("Reason", "Not an admin"),
            ], emoji="🚫")
            raise Unauthorized(ErrorCode.AUTH_NOT_ADMIN)

        changes = _changes(update)
        automod_changes = _changes(update.automod) if update.automod is not None else {}
        changes.pop("automod", None)
        if "ignored_channels" in changes:
            changes["ignored_channels"] = set(changes["ignored_channels"])

        updated = replace(
            current,
            automod=replace(current.automod, **automod_changes),
            **changes,
        )
        with storage_errors("Save Policy", guild=guild_id):
            self.db.save_guild_policy(updated)

        changed = sorted(changes) + [f"automod.{key}" for key in sorted(automod_changes)]
        logger.tree("Guild Policy Updated", [
            *policy_summary(updated),
            ("Changed", ", ".join(changed) or "Nothing"),
            ("By", f"{actor.tag} ({actor.user_id})" if actor else "Config API"),
        ], emoji="🛠️")
        return updated


__all__ = [
    "GuildPolicyService",
    "PolicyUpdate",
    "AutoModUpdate",
]
