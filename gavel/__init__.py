"""
Gavel - Source Package
======================

Moderation decision and case engine for Discord guilds.

Package Structure:
- engine.py: ModerationEngine facade used by the command shell
- core/: Configuration, logging, errors, models, authorization, database
- services/: Auto-mod, leveling, case sequencing, moderation actions, policies
- utils/: Duration parsing, async helpers, member snapshots
"""

__version__ = "1.0.0"
