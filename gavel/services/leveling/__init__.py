"""
Leveling Package
================

Cooldown-gated experience and levels per guild member.
"""

from gavel.services.leveling.service import (
    LevelingEngine,
    LevelUpEvent,
    apply_experience,
    required_experience,
)

__all__ = [
    "LevelingEngine",
    "LevelUpEvent",
    "apply_experience",
    "required_experience",
]
