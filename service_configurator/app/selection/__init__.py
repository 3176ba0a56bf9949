"""
Selection store package.

Holds the per-tier selection maps of one loaded catalog: default seeding,
guarded mutation of select controls, current-value lookup for the
dependency evaluator, and the active tier pointer.
"""

from .store import (
    RejectedSelection, SelectionState, SelectionStore, SelectionValue, TierSelections
)

__all__ = [
    "RejectedSelection", "SelectionState", "SelectionStore", "SelectionValue", "TierSelections",
]
