"""Tests for clinician feedback records and aggregate analytics."""

import pytest

from clinical_note_assistant.core.enums import AIProvider, QualityIssue
from clinical_note_assistant.core.exceptions import FeedbackError
from clinical_note_assistant.feedback import (
    NoteFeedback,
    compute_feedback_analytics,
    create_note_feedback,
)


def feedback(provider="gemini", rating=4, issues=(), review_time=60.0, **extra) -> NoteFeedback:
    return create_note_feedback(
        note_id="note_1",
        user_id="dr_lee",
        ai_provider=provider,
        rating=rating,
        quality_issues=list(issues),
        time_to_review=review_time,
        **extra,
    )


class TestCreateNoteFeedback:
    def test_valid_feedback(self):
        record = feedback(freeform_feedback="Clear and concise.")
        assert record.ai_provider is AIProvider.GEMINI
        assert record.id.startswith("feedback_")
        assert record.patient_id == "unknown"
        assert record.to_dict()["aiProvider"] == "gemini"

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(FeedbackError) as exc_info:
            feedback(rating=rating)
        assert any("rating" in p for p in exc_info.value.context["problems"])

    def test_unknown_issue_tag(self):
        with pytest.raises(FeedbackError):
            feedback(issues=["too_many_emojis"])

    def test_unknown_provider(self):
        with pytest.raises(FeedbackError):
            feedback(provider="gpt")

    def test_missing_note_id(self):
        with pytest.raises(FeedbackError):
            create_note_feedback(user_id="dr_lee", ai_provider="claude", rating=3)

    def test_issues_deduplicated(self):
        record = feedback(issues=["too_long", "wrong_tone", "too_long"])
        assert record.quality_issues == [QualityIssue.TOO_LONG, QualityIssue.WRONG_TONE]

    def test_blank_freeform_becomes_none(self):
        assert feedback(freeform_feedback="   ").freeform_feedback is None


class TestComputeFeedbackAnalytics:
    def test_empty(self):
        analytics = compute_feedback_analytics([])
        assert analytics["totalFeedback"] == 0
        assert analytics["averageRating"] == 0.0
        assert analytics["ratingDistribution"] == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
        assert analytics["commonIssues"] == []
        assert analytics["providerComparison"]["claude"] == {"count": 0, "avgRating": 0.0}

    def test_aggregates(self):
        records = [
            feedback("gemini", 5, ["too_long"], review_time=30.0),
            feedback("gemini", 3, ["too_long", "missing_details"], review_time=90.0),
            feedback("claude", 4, ["epic_syntax_errors"], review_time=60.0),
            feedback("claude", 2, ["too_long"], review_time=120.0),
        ]
        analytics = compute_feedback_analytics(records)

        assert analytics["totalFeedback"] == 4
        assert analytics["averageRating"] == 3.5
        assert analytics["averageReviewTime"] == 75.0
        assert analytics["ratingDistribution"] == {1: 0, 2: 1, 3: 1, 4: 1, 5: 1}
        assert analytics["commonIssues"][0] == {"issue": "too_long", "count": 3, "percentage": 75.0}
        assert analytics["providerComparison"] == {
            "gemini": {"count": 2, "avgRating": 4.0},
            "claude": {"count": 2, "avgRating": 3.0},
        }

    def test_common_issues_capped_at_five(self):
        records = [feedback(issues=[issue]) for issue in QualityIssue]
        assert len(compute_feedback_analytics(records)["commonIssues"]) == 5
