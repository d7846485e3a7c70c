"""
Gavel - Moderation Notifications
================================

Notification intents produced by moderation actions.

DESIGN:
    The engine never talks to users directly. Each action returns
    Notification objects (a DM for the target, a post for the mod-log
    channel) and the gateway renders and delivers them best-effort.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from gavel.core.models import ActionKind, CaseDraft, UserRecord
from gavel.utils.duration import format_duration


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for notification embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    BLUE = 0x3498DB

    LOG_NEGATIVE = RED   # Bans, kicks
    LOG_WARNING = GOLD   # Timeouts, warnings
    LOG_POSITIVE = GREEN  # Unbans, unmutes


ACTION_STYLE = {
    ActionKind.BAN: ("🔨", "Member Banned", "banned from", EmbedColors.LOG_NEGATIVE),
    ActionKind.KICK: ("👢", "Member Kicked", "kicked from", EmbedColors.LOG_NEGATIVE),
    ActionKind.WARN: ("⚠️", "Member Warned", "warned in", EmbedColors.LOG_WARNING),
    ActionKind.TIMEOUT: ("⏱️", "Member Timed Out", "timed out in", EmbedColors.LOG_WARNING),
    ActionKind.MUTE: ("🔇", "Member Muted", "muted in", EmbedColors.LOG_WARNING),
    ActionKind.UNMUTE: ("🔊", "Member Unmuted", "unmuted in", EmbedColors.LOG_POSITIVE),
    ActionKind.UNBAN: ("🔓", "Member Unbanned", "unbanned from", EmbedColors.LOG_POSITIVE),
}


# =============================================================================
# Notification Intent
# =============================================================================

@dataclass(frozen=True)
class Notification:
    """
    A message the presentation layer should deliver.

    Attributes:
        channel: "dm" (recipient_id is a user) or "channel".
        recipient_id: User or channel ID.
        title: Embed title.
        description: Embed description.
        color: Embed color.
        fields: (name, value, inline) rows.
    """

    channel: str
    recipient_id: int
    title: str
    description: str = ""
    color: int = EmbedColors.BLUE
    fields: Tuple[Tuple[str, str, bool], ...] = field(default_factory=tuple)

    @property
    def is_dm(self) -> bool:
        return self.channel == "dm"


def build_target_dm(
    case: CaseDraft,
    guild_name: str,
    record: Optional[UserRecord] = None,
) -> Notification:
    """
    Build the DM telling a member what happened to them.

    Warn DMs carry the member's total warning count when known; timeout
    DMs carry the duration.
    """
    emoji, _, verb, color = ACTION_STYLE[case.kind]
    fields: List[Tuple[str, str, bool]] = [("Reason", case.reason, False)]
    if case.duration_ms:
        fields.append(("Duration", format_duration(case.duration_ms), True))
    if case.kind == ActionKind.WARN and record is not None:
        fields.append(("Total Warnings", str(record.warnings), True))

    return Notification(
        channel="dm",
        recipient_id=case.target_id,
        title=f"{emoji} {case.kind.value.capitalize()}",
        description=f"You have been {verb} **{guild_name or 'the server'}**",
        color=color,
        fields=tuple(fields),
    )


def build_mod_log(case: CaseDraft, channel_id: int, case_id: Optional[int] = None) -> Notification:
    """
    Build the mod-log channel entry for an action.

    case_id is None when the action happened but its case could not be
    stored.
    """
    emoji, title, _, color = ACTION_STYLE[case.kind]
    fields: List[Tuple[str, str, bool]] = [
        ("Member", f"{case.target_tag} ({case.target_id})", False),
        ("Action", case.kind.value.capitalize(), True),
        ("Moderator", case.actor_tag, True),
        ("Reason", case.reason, False),
    ]
    if case.duration_ms:
        fields.append(("Duration", format_duration(case.duration_ms), True))
    fields.append(("Case ID", f"#{case_id}" if case_id is not None else "Not recorded", True))

    return Notification(
        channel="channel",
        recipient_id=channel_id,
        title=f"{emoji} {title}",
        color=color,
        fields=tuple(fields),
    )


__all__ = [
    "EmbedColors",
    "Notification",
    "build_target_dm",
    "build_mod_log",
]
