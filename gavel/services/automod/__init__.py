"""
Auto-Mod Package
================

Rule-based, sliding-window enforcement over inbound messages.

Structure:
    - detectors.py: Pure content checks (invites, links, caps, emojis)
    - models.py: Message snapshot, rule outcome, verdict, SpamWindow
    - store.py: Keyed spam window store
    - rules.py: Ordered rule list and short-circuit evaluation
    - service.py: AutoModPipeline
"""

from gavel.services.automod.models import AutoModResult, MessageSnapshot, RuleOutcome, SpamWindow
from gavel.services.automod.rules import AUTOMOD_RULES, evaluate_rules
from gavel.services.automod.service import AutoModPipeline
from gavel.services.automod.store import SpamWindowStore

__all__ = [
    "AutoModPipeline",
    "AutoModResult",
    "MessageSnapshot",
    "RuleOutcome",
    "SpamWindow",
    "SpamWindowStore",
    "AUTOMOD_RULES",
    "evaluate_rules",
]
