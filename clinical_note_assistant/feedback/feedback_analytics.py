"""
Feedback Analytics - Clinician Ratings of Generated Notes

Clinicians rate each generated note (1-5 stars), tag quality issues and
optionally leave free text. This module validates those records and
aggregates them into the numbers product reviews look at: average rating,
the most common issues, review time and a per-provider comparison.

Validation:
    pydantic models reject out-of-range ratings and unknown issue tags at
    construction time. create_note_feedback wraps the pydantic error in a
    FeedbackError so callers only deal with domain exceptions.

Author: Shubham Singh
Date: December 2025
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from clinical_note_assistant.core.enums import AIProvider, QualityIssue
from clinical_note_assistant.core.exceptions import FeedbackError


# Top-N issues reported by compute_feedback_analytics
COMMON_ISSUE_LIMIT = 5


# =============================================================================
# STAGE 1: FEEDBACK RECORD
# =============================================================================


class NoteFeedback(BaseModel):
    """
    One clinician's review of one generated note.

    What it does:
        Holds the rating, quality issue tags and review metadata for a note,
        validated on construction.

    Why it exists:
        1. Analytics are only meaningful over well-formed ratings
        2. Issue tags must come from a fixed vocabulary to be counted

    Example:
        >>> fb = NoteFeedback(note_id="note_1", user_id="dr_lee", patient_id="p1",
        ...                   ai_provider="gemini", rating=4)
        >>> fb.rating
        4
    """

    id: str = Field(default_factory=lambda: f"feedback_{uuid.uuid4().hex[:12]}")
    note_id: str = Field(..., min_length=1, description="Generated note being reviewed")
    user_id: str = Field(..., min_length=1, description="Reviewing clinician")
    patient_id: str = Field(default="unknown")
    ai_provider: AIProvider = Field(..., description="Provider that produced the note")

    rating: int = Field(..., ge=1, le=5, description="Overall rating, 1 (poor) to 5 (excellent)")
    quality_issues: List[QualityIssue] = Field(default_factory=list)
    freeform_feedback: Optional[str] = None

    time_to_review: float = Field(default=0.0, ge=0, description="Seconds spent reviewing")
    template_used: Optional[str] = None
    note_length: int = Field(default=0, ge=0, description="Characters in the reviewed note")
    encounter_type: Optional[str] = None
    would_use_again: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("quality_issues")
    @classmethod
    def deduplicate_issues(cls, issues: List[QualityIssue]) -> List[QualityIssue]:
        """Keep the first occurrence of each tag."""
        seen: List[QualityIssue] = []
        for issue in issues:
            if issue not in seen:
                seen.append(issue)
        return seen

    @field_validator("freeform_feedback")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "noteId": self.note_id,
            "userId": self.user_id,
            "patientId": self.patient_id,
            "aiProvider": self.ai_provider.value,
            "rating": self.rating,
            "qualityIssues": [issue.value for issue in self.quality_issues],
            "freeformFeedback": self.freeform_feedback,
            "timeToReview": self.time_to_review,
            "templateUsed": self.template_used,
            "noteLength": self.note_length,
            "encounterType": self.encounter_type,
            "wouldUseAgain": self.would_use_again,
            "createdAt": self.created_at.isoformat(),
        }


def create_note_feedback(**data: Any) -> NoteFeedback:
    """
    Validate and build a feedback record.

    Raises:
        FeedbackError: Rating outside 1-5, unknown issue tag or missing field
    """
    try:
        feedback = NoteFeedback(**data)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        logger.warning(f"Feedback rejected | Problems: {len(problems)}")
        raise FeedbackError(
            f"Invalid feedback: {'; '.join(problems)}",
            context={"problems": problems},
        ) from e

    logger.info(
        f"Feedback recorded | Note: {feedback.note_id} | Provider: {feedback.ai_provider.value} | "
        f"Rating: {feedback.rating} | Issues: {len(feedback.quality_issues)}"
    )
    return feedback


# =============================================================================
# STAGE 2: AGGREGATION
# =============================================================================


def _empty_analytics() -> Dict[str, Any]:
    return {
        "totalFeedback": 0,
        "averageRating": 0.0,
        "ratingDistribution": {rating: 0 for rating in range(1, 6)},
        "commonIssues": [],
        "averageReviewTime": 0.0,
        "providerComparison": {
            provider.value: {"count": 0, "avgRating": 0.0} for provider in AIProvider
        },
    }


def compute_feedback_analytics(feedback: Iterable[NoteFeedback]) -> Dict[str, Any]:
    """
    Aggregate feedback records.

    Returns a dict with totalFeedback, averageRating, ratingDistribution
    (counts for 1..5), commonIssues (top five {issue, count, percentage},
    percentage relative to the number of records), averageReviewTime and
    providerComparison ({provider: {count, avgRating}}). Empty input
    yields all zeros.
    """
    records = list(feedback)
    if not records:
        return _empty_analytics()

    total = len(records)
    analytics = _empty_analytics()
    analytics["totalFeedback"] = total
    analytics["averageRating"] = sum(r.rating for r in records) / total
    analytics["averageReviewTime"] = sum(r.time_to_review for r in records) / total

    for record in records:
        analytics["ratingDistribution"][record.rating] += 1

    issue_counts: Dict[QualityIssue, int] = {}
    for record in records:
        for issue in record.quality_issues:
            issue_counts[issue] = issue_counts.get(issue, 0) + 1

    ranked = sorted(issue_counts.items(), key=lambda item: item[1], reverse=True)
    analytics["commonIssues"] = [
        {"issue": issue.value, "count": count, "percentage": count / total * 100}
        for issue, count in ranked[:COMMON_ISSUE_LIMIT]
    ]

    for provider in AIProvider:
        ratings = [r.rating for r in records if r.ai_provider is provider]
        analytics["providerComparison"][provider.value] = {
            "count": len(ratings),
            "avgRating": sum(ratings) / len(ratings) if ratings else 0.0,
        }

    logger.debug(
        f"Feedback analytics computed | Records: {total} | "
        f"Average rating: {analytics['averageRating']:.2f}"
    )
    return analytics
