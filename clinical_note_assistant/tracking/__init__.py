"""
Tracking Layer - Edit Tracking and Auto-Save

Submodules:
    delta_tracker.py → Prefix/suffix diff, section attribution, edit analytics
    auto_save.py     → Debounced, retrying save task

Dependency Rule:
    This layer depends on: core, parsing
    This layer is used by: pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.tracking.delta_tracker import (
    DeltaTracker,
    EditAnalytics,
    aggregate_edit_analytics,
    compute_delta,
    pause_bucket,
)
from clinical_note_assistant.tracking.auto_save import AutoSaver

__all__ = [
    "DeltaTracker",
    "EditAnalytics",
    "aggregate_edit_analytics",
    "compute_delta",
    "pause_bucket",
    "AutoSaver",
]
