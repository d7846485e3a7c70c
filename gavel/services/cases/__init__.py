"""
Cases Package
=============

Per-guild case numbering.
"""

from gavel.services.cases.sequencer import CaseSequencer

__all__ = ["CaseSequencer"]
