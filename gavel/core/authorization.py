"""
Gavel - Moderation Authorization
================================

Decides who may moderate and whom they may moderate.

Every function here is pure over the snapshots it receives: role data is
captured fresh for each decision by the caller and nothing is cached.

Usage:
    from gavel.core.authorization import is_moderator, validate_can_moderate

    if not is_moderator(actor.member, policy):
        raise Unauthorized()

    result = validate_can_moderate(actor.member, target.member, "ban")
    if not result.is_valid:
        raise Forbidden(result.error_code, result.error_message)
"""

from dataclasses import dataclass
from typing import Optional

from gavel.core.errors import ErrorCode
from gavel.core.logger import logger
from gavel.core.models import GuildPolicy, RoleHierarchyView


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None


VALID = ValidationResult(is_valid=True)


# =============================================================================
# Standing Checks
# =============================================================================

def is_moderator(actor: RoleHierarchyView, policy: Optional[GuildPolicy]) -> bool:
    """
    Check whether a member may use moderation actions in a guild.

    True when the member has the moderate-members or administrator
    capability, or holds any configured moderator or admin role. Without a
    policy only the capabilities count.

    Args:
        actor: Snapshot of the invoking member.
        policy: The guild's policy, if one exists.

    Returns:
        True if the member is a moderator.
    """
    if actor.moderate_members or actor.administrator:
        return True
    if policy is None:
        return False
    staff_roles = set(policy.moderator_roles) | set(policy.admin_roles)
    return not staff_roles.isdisjoint(actor.role_ids)


def is_admin(actor: RoleHierarchyView, policy: Optional[GuildPolicy]) -> bool:
    """Administrator capability or any configured admin role."""
    if actor.administrator:
        return True
    if policy is None:
        return False
    return not set(policy.admin_roles).isdisjoint(actor.role_ids)


# =============================================================================
# Hierarchy Checks
# =============================================================================

def validate_can_moderate(
    actor: RoleHierarchyView,
    target: RoleHierarchyView,
    action: str = "moderate",
) -> ValidationResult:
    """
    Check whether an actor may act on a target.

    Rules, in order:
        - nobody may act on themselves
        - nobody may act on the guild owner
        - the owner may act on anyone else
        - everyone else needs a strictly higher top role

    Args:
        actor: Snapshot of the invoking member.
        target: Snapshot of the targeted member.
        action: Action name used in logs and messages.

    Returns:
        ValidationResult with is_valid=False and a reason when blocked.
    """
    if actor.user_id == target.user_id:
        return _blocked(
            action, actor, target, "Self-action attempt",
            ErrorCode.USER_SELF_ACTION, f"You cannot {action} yourself.",
        )

    if target.is_owner:
        return _blocked(
            action, actor, target, "Target is server owner",
            ErrorCode.USER_IS_OWNER, f"You cannot {action} the server owner.",
        )

    if not actor.is_owner and actor.top_role_position <= target.top_role_position:
        return _blocked(
            action, actor, target, "Role hierarchy",
            ErrorCode.USER_HIGHER_ROLE,
            f"You cannot {action} this user due to role hierarchy.",
        )

    return VALID


def can_moderate(actor: RoleHierarchyView, target: RoleHierarchyView) -> bool:
    """Boolean form of validate_can_moderate, without logging."""
    if actor.user_id == target.user_id or target.is_owner:
        return False
    return actor.is_owner or actor.top_role_position > target.top_role_position


def _blocked(
    action: str,
    actor: RoleHierarchyView,
    target: RoleHierarchyView,
    reason: str,
    code: ErrorCode,
    message: str,
) -> ValidationResult:
    logger.tree(f"{action.upper()} BLOCKED", [
        ("Reason", reason),
        ("Moderator", f"{actor.user_id} (top role {actor.top_role_position})"),
        ("Target", f"{target.user_id} (top role {target.top_role_position})"),
    ], emoji="🚫")
    return ValidationResult(is_valid=False, error_message=message, error_code=code)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ValidationResult",
    "is_moderator",
    "is_admin",
    "can_moderate",
    "validate_can_moderate",
]
