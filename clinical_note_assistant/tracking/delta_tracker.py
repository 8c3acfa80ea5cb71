"""
Delta Tracker - Clinician Edit Tracking

This module records how clinicians edit an AI-drafted note. Every content
change is reduced to one minimal DeltaChange, attributed to the section
it falls in, and accumulated into an EditSession until the next save.

Diff Algorithm:
    Longest common prefix + longest common suffix. The span between them
    is the change: empty old span → insert, empty new span → delete,
    otherwise replace. One change per call; the editor reports changes
    as they happen so a single span is enough.

    Example:
        old: "The patient is stable."
        new: "The patient is very stable."
        → insert "very " at 15

Analytics (relative to the last save):
    - counts by change type and by section
    - keystrokes/minute and words/minute (5 keystrokes = 1 word)
    - pause histogram: gaps between changes longer than the pause
      threshold, bucketed 1-2s, 2-5s, 5-10s, 10-30s, 30s+

Author: Shubham Singh
Date: December 2025
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from clinical_note_assistant.core.config import ConfigDefaults
from clinical_note_assistant.core.enums import ChangeType
from clinical_note_assistant.core.models import DeltaChange, EditSession, NoteVersion
from clinical_note_assistant.parsing.section_detector import SectionDetector


# =============================================================================
# STAGE 1: DIFF
# =============================================================================


def compute_delta(old_text: str, new_text: str) -> Optional[Tuple[ChangeType, int, str, str]]:
    """
    Isolate the single changed span between two texts.

    Args:
        old_text: Text before the edit
        new_text: Text after the edit

    Returns:
        (change_type, position, inserted, removed) or None if identical
    """
    if old_text == new_text:
        return None

    limit = min(len(old_text), len(new_text))
    prefix = 0
    while prefix < limit and old_text[prefix] == new_text[prefix]:
        prefix += 1

    # The suffix may not eat into the shared prefix
    suffix = 0
    while (
        suffix < limit - prefix
        and old_text[len(old_text) - 1 - suffix] == new_text[len(new_text) - 1 - suffix]
    ):
        suffix += 1

    removed = old_text[prefix:len(old_text) - suffix]
    inserted = new_text[prefix:len(new_text) - suffix]

    if not removed:
        change_type = ChangeType.INSERT
    elif not inserted:
        change_type = ChangeType.DELETE
    else:
        change_type = ChangeType.REPLACE
    return change_type, prefix, inserted, removed


# =============================================================================
# STAGE 2: ANALYTICS MODEL
# =============================================================================

PAUSE_BUCKETS: List[Tuple[str, float, Optional[float]]] = [
    ("1-2s", 1.0, 2.0),
    ("2-5s", 2.0, 5.0),
    ("5-10s", 5.0, 10.0),
    ("10-30s", 10.0, 30.0),
    ("30s+", 30.0, None),
]


def pause_bucket(seconds: float) -> str:
    """Histogram bucket label for a pause length."""
    for label, _, high in PAUSE_BUCKETS:
        if high is None or seconds <= high:
            return label
    return PAUSE_BUCKETS[-1][0]


@dataclass
class EditAnalytics:
    """Aggregate view of one edit session."""

    session_id: str
    total_changes: int = 0
    changes_by_type: Dict[str, int] = field(default_factory=dict)
    changes_by_section: Dict[str, int] = field(default_factory=dict)
    total_keystrokes: int = 0
    session_duration: float = 0.0
    keystrokes_per_minute: float = 0.0
    words_per_minute: float = 0.0
    average_words_per_change: float = 0.0
    pause_count: int = 0
    average_pause: float = 0.0
    pause_histogram: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "totalChanges": self.total_changes,
            "changesByType": dict(self.changes_by_type),
            "changesBySection": dict(self.changes_by_section),
            "totalKeystrokes": self.total_keystrokes,
            "sessionDuration": self.session_duration,
            "keystrokesPerMinute": self.keystrokes_per_minute,
            "wordsPerMinute": self.words_per_minute,
            "averageWordsPerChange": self.average_words_per_change,
            "pauseCount": self.pause_count,
            "averagePause": self.average_pause,
            "pauseHistogram": dict(self.pause_histogram),
        }


# =============================================================================
# STAGE 3: DELTA TRACKER CLASS
# =============================================================================


class DeltaTracker:
    """
    Tracks edits to one note between saves.

    What it does:
        Turns each content change into a DeltaChange, labels it with
        the nearest preceding section header, and accumulates it in the
        current EditSession.

    Why it exists:
        1. Edit volume per section shows where drafts fall short
        2. Analytics feed prompt tuning alongside explicit feedback
        3. The baseline is re-anchored after every save so analytics are
           always relative to the last persisted version

    When to use:
        - One tracker per open note in the editor
        - Call on_content_change() (or track()) on every edit
        - Call reset_baseline() after a successful save

    Example:
        >>> tracker = DeltaTracker(note_id="note_1", baseline="The patient is stable.")
        >>> change = tracker.track("The patient is very stable.")
        >>> change.type.value, change.position, change.content
        ('insert', 15, 'very ')
    """

    def __init__(
        self,
        note_id: str,
        baseline: str = "",
        detector: Optional[SectionDetector] = None,
        pause_threshold: float = ConfigDefaults.DEFAULT_PAUSE_THRESHOLD,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the tracker.

        Args:
            note_id: Note being edited
            baseline: Text as last saved (or as generated)
            detector: Section detector used for header attribution
            pause_threshold: Gaps longer than this (seconds) count as pauses
            clock: Time source (injectable for tests)
        """
        self.note_id = note_id
        self._detector = detector or SectionDetector()
        self._pause_threshold = pause_threshold
        self._clock = clock

        self._baseline = baseline
        self._current = baseline
        self._version = 0
        self._pauses: List[float] = []
        self._last_change_at: Optional[datetime] = None
        self._session = self._new_session()

        logger.debug(
            f"DeltaTracker initialized | Note: {note_id} | "
            f"Baseline: {len(baseline)} chars | Pause threshold: {pause_threshold}s"
        )

    # =========================================================================
    # STAGE 3.1: PROPERTIES
    # =========================================================================

    @property
    def session(self) -> EditSession:
        return self._session

    @property
    def baseline(self) -> str:
        return self._baseline

    @property
    def current_text(self) -> str:
        return self._current

    @property
    def version(self) -> int:
        return self._version

    @property
    def has_unsaved_changes(self) -> bool:
        return self._current != self._baseline

    # =========================================================================
    # STAGE 3.2: CHANGE TRACKING
    # =========================================================================

    def on_content_change(self, old_text: str, new_text: str) -> Optional[DeltaChange]:
        """
        Record the change between two texts.

        Args:
            old_text: Text before the edit
            new_text: Text after the edit

        Returns:
            The recorded DeltaChange, or None when nothing changed
        """
        delta = compute_delta(old_text, new_text)
        self._current = new_text
        if delta is None:
            return None

        change_type, position, inserted, removed = delta
        now = self._clock()

        if self._last_change_at is not None:
            gap = (now - self._last_change_at).total_seconds()
            if gap > self._pause_threshold:
                self._pauses.append(gap)
        self._last_change_at = now

        change = DeltaChange(
            id=f"change_{uuid.uuid4().hex[:8]}",
            timestamp=now,
            type=change_type,
            position=position,
            content=inserted,
            previous_content=removed,
            length=max(len(inserted), len(removed)),
            section_type=self._detector.section_at(old_text, position),
            session_duration=max(0.0, (now - self._session.start_time).total_seconds()),
        )
        self._session.changes.append(change)

        logger.debug(
            f"Edit tracked | Type: {change.type.value} | Position: {position} | "
            f"Length: {change.length} | Section: "
            f"{change.section_type.value if change.section_type else 'UNKNOWN'}"
        )
        return change

    def track(self, new_text: str) -> Optional[DeltaChange]:
        """Record a change against the tracker's current text."""
        return self.on_content_change(self._current, new_text)

    # =========================================================================
    # STAGE 3.3: ANALYTICS
    # =========================================================================

    def get_analytics(self) -> EditAnalytics:
        """Aggregate the current session."""
        changes = self._session.changes
        by_type = Counter(change.type.value for change in changes)
        by_section = Counter(
            change.section_type.value if change.section_type else "UNKNOWN" for change in changes
        )

        keystrokes = sum(change.length for change in changes)
        duration = max(0.0, (self._clock() - self._session.start_time).total_seconds())
        minutes = duration / 60.0
        kpm = keystrokes / minutes if minutes > 0 else 0.0

        histogram = {label: 0 for label, _, _ in PAUSE_BUCKETS}
        for pause in self._pauses:
            histogram[pause_bucket(pause)] += 1

        return EditAnalytics(
            session_id=self._session.id,
            total_changes=len(changes),
            changes_by_type=dict(by_type),
            changes_by_section=dict(by_section),
            total_keystrokes=keystrokes,
            session_duration=round(duration, 3),
            keystrokes_per_minute=round(kpm, 2),
            words_per_minute=round(kpm / 5.0, 2),
            average_words_per_change=(
                round(sum(c.word_count for c in changes) / len(changes), 2) if changes else 0.0
            ),
            pause_count=len(self._pauses),
            average_pause=round(sum(self._pauses) / len(self._pauses), 3) if self._pauses else 0.0,
            pause_histogram=histogram,
        )

    # =========================================================================
    # STAGE 3.4: SAVE CHECKPOINTS
    # =========================================================================

    def reset_baseline(self, content: Optional[str] = None) -> NoteVersion:
        """
        Close the current session and re-anchor on the saved text.

        Args:
            content: Saved text (defaults to the tracker's current text)

        Returns:
            NoteVersion snapshot of the closed session
        """
        saved = self._current if content is None else content
        self._session.end_time = self._clock()
        self._version += 1
        version = NoteVersion.from_session(self._session, saved, self._version)

        logger.info(
            f"Edit session closed | Note: {self.note_id} | Version: {self._version} | "
            f"Changes: {version.change_count} | Duration: {version.edit_duration:.1f}s"
        )

        self._baseline = saved
        self._current = saved
        self._pauses = []
        self._last_change_at = None
        self._session = self._new_session()
        return version

    def _new_session(self) -> EditSession:
        stamp = self._clock()
        return EditSession(
            id=f"session_{int(stamp.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}",
            note_id=self.note_id,
            start_time=stamp,
        )


# =============================================================================
# STAGE 4: CROSS-SESSION AGGREGATION
# =============================================================================


def aggregate_edit_analytics(versions: List[NoteVersion]) -> Dict[str, Any]:
    """
    Summarize saved versions of a note.

    Returns:
        Dict with totalSessions, totalChanges, averageEditTime (seconds)
        and mostEditedSection (None when nothing was edited)
    """
    if not versions:
        return {
            "totalSessions": 0,
            "totalChanges": 0,
            "averageEditTime": 0.0,
            "mostEditedSection": None,
        }

    sections: Counter = Counter()
    for version in versions:
        sections.update(version.sections_edited)

    return {
        "totalSessions": len(versions),
        "totalChanges": sum(v.change_count for v in versions),
        "averageEditTime": round(sum(v.edit_duration for v in versions) / len(versions), 3),
        "mostEditedSection": sections.most_common(1)[0][0] if sections else None,
    }
