"""
Auto-Mod Rules
==============

The ordered rule list evaluated for every eligible message.

DESIGN:
    Each rule is a plain function returning a RuleOutcome. evaluate_rules()
    walks AUTOMOD_RULES in order and stops at the first violation, so the
    order below is the precedence:

        1. anti_spam     (also records the message in the spam window)
        2. anti_invite
        3. anti_link
        4. anti_caps
        5. max_mentions
        6. max_emojis

    anti_spam must stay first: the window has to see every message, not
    only those that passed the other rules.
"""

from dataclasses import dataclass
from typing import Callable, List, Tuple

from gavel.core.models import AutoModSettings
from gavel.services.automod.detectors import (
    count_custom_emojis,
    has_invite,
    has_links,
    is_excessive_caps,
)
from gavel.services.automod.models import CLEAN, MessageSnapshot, RuleOutcome
from gavel.services.automod.store import SpamWindowStore


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may read."""
    message: MessageSnapshot
    settings: AutoModSettings
    now_ms: int
    windows: SpamWindowStore


Rule = Callable[[RuleContext], RuleOutcome]


# =============================================================================
# Rules
# =============================================================================

def check_spam(ctx: RuleContext) -> RuleOutcome:
    if not ctx.settings.anti_spam:
        return CLEAN
    count = ctx.windows.record(ctx.message.guild_id, ctx.message.author_id, ctx.now_ms)
    if count > ctx.windows.threshold:
        return RuleOutcome.violation("anti_spam", "Spam detected")
    return CLEAN


def check_invite(ctx: RuleContext) -> RuleOutcome:
    if ctx.settings.anti_invite and has_invite(ctx.message.content):
        return RuleOutcome.violation("anti_invite", "Discord invite link detected")
    return CLEAN


def check_link(ctx: RuleContext) -> RuleOutcome:
    if ctx.settings.anti_link and has_links(ctx.message.content):
        return RuleOutcome.violation("anti_link", "External link detected")
    return CLEAN


def check_caps(ctx: RuleContext) -> RuleOutcome:
    if ctx.settings.anti_caps and is_excessive_caps(ctx.message.content):
        return RuleOutcome.violation("anti_caps", "Excessive caps")
    return CLEAN


def check_mentions(ctx: RuleContext) -> RuleOutcome:
    ceiling = ctx.settings.max_mentions
    if ceiling is not None and len(ctx.message.mentioned_user_ids) > ceiling:
        return RuleOutcome.violation("max_mentions", f"Exceeded max mentions ({ceiling})")
    return CLEAN


def check_emojis(ctx: RuleContext) -> RuleOutcome:
    ceiling = ctx.settings.max_emojis
    if ceiling is not None and count_custom_emojis(ctx.message.content) > ceiling:
        return RuleOutcome.violation("max_emojis", f"Exceeded max emojis ({ceiling})")
    return CLEAN


AUTOMOD_RULES: List[Tuple[str, Rule]] = [
    ("anti_spam", check_spam),
    ("anti_invite", check_invite),
    ("anti_link", check_link),
    ("anti_caps", check_caps),
    ("max_mentions", check_mentions),
    ("max_emojis", check_emojis),
]


def evaluate_rules(ctx: RuleContext, rules: List[Tuple[str, Rule]] = AUTOMOD_RULES) -> RuleOutcome:
    """Return the first violation in rule order, or CLEAN."""
    for _, rule in rules:
        outcome = rule(ctx)
        if outcome.violated:
            return outcome
    return CLEAN


__all__ = [
    "RuleContext",
    "Rule",
    "AUTOMOD_RULES",
    "evaluate_rules",
    "check_spam",
    "check_invite",
    "check_link",
    "check_caps",
    "check_mentions",
    "check_emojis",
]
