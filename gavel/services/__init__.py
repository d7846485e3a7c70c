"""
Gavel - Services Package
========================

Stateful engine components.

Structure:
    - automod/: Sliding-window auto-moderation pipeline
    - cases/: Per-guild case sequencing
    - leveling/: Cooldown-gated XP and levels
    - moderation/: Moderator actions, gateway, notifications, history
    - policy/: Guild policy configuration surface
"""
