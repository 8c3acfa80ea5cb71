"""
Feedback Layer - Clinician Ratings and Analytics

Submodules:
    feedback_analytics.py → NoteFeedback model and aggregation

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.feedback.feedback_analytics import (
    NoteFeedback,
    compute_feedback_analytics,
    create_note_feedback,
)

__all__ = [
    "NoteFeedback",
    "compute_feedback_analytics",
    "create_note_feedback",
]
