"""
Policy Package
==============

Guild policy access for the configuration surface.
"""

from gavel.services.policy.service import AutoModUpdate, GuildPolicyService, PolicyUpdate

__all__ = [
    "GuildPolicyService",
    "PolicyUpdate",
    "AutoModUpdate",
]
