"""
Gavel - Auto-Mod Detection Helpers
==================================

Pure functions over message content. No state, no I/O.
"""

import re
from typing import Pattern

from gavel.core.constants import CAPS_MIN_LENGTH, CAPS_RATIO_THRESHOLD


# =============================================================================
# Compiled Regex Patterns
# =============================================================================

INVITE_PATTERN: Pattern = re.compile(
    r'(?:discord\.gg|discord\.com/invite|discordapp\.com/invite)/[\w-]+',
    re.IGNORECASE,
)
LINK_PATTERN: Pattern = re.compile(r'https?://[^\s]+', re.IGNORECASE)
CUSTOM_EMOJI_PATTERN: Pattern = re.compile(r'<a?:\w+:\d+>')


# =============================================================================
# Content Analysis
# =============================================================================

def has_invite(content: str) -> bool:
    """Check if content contains a Discord invite."""
    return bool(INVITE_PATTERN.search(content))


def has_links(content: str) -> bool:
    return bool(LINK_PATTERN.search(content))


def count_custom_emojis(content: str) -> int:
    """Count custom emoji tokens such as <:name:123> and <a:name:123>."""
    return len(CUSTOM_EMOJI_PATTERN.findall(content))


def get_caps_ratio(content: str) -> float:
    """
    Fraction of uppercase letters among all characters.

    Spaces, digits and punctuation count toward the length, so
    "HELLO!!!!!" is less than fully uppercase.
    """
    if not content:
        return 0.0
    upper = sum(1 for c in content if c.isupper())
    return upper / len(content)


def is_excessive_caps(content: str) -> bool:
    return len(content) > CAPS_MIN_LENGTH and get_caps_ratio(content) > CAPS_RATIO_THRESHOLD


__all__ = [
    "INVITE_PATTERN",
    "LINK_PATTERN",
    "CUSTOM_EMOJI_PATTERN",
    "has_invite",
    "has_links",
    "count_custom_emojis",
    "get_caps_ratio",
    "is_excessive_caps",
]
