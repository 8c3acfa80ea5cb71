"""
Section Detector - Free-Text Note Segmentation

This module segments a free-text clinical note into typed sections by
matching header phrases at the start of lines.

Algorithm:
    1. Scan the note line by line; a line opening with a known header
       phrase (followed by a colon, or alone on its line) starts a section
    2. Each section runs from its header to the next header
    3. Score each section: header strength x type prior, non-emptiness,
       and expected vocabulary for that section type
    4. Infer EMR type (Epic tokens present?) and overall layout

Header Vocabulary:
    SECTION_HEADER_PATTERNS in core/constants.py maps every header
    phrase (standardized and legacy spellings) onto exactly one
    SectionType. SECTION_ALIASES maps legacy types onto standardized
    ones. Both tables are part of the public contract: presets and
    saved update configs are keyed by the canonical types.

Failure Semantics:
    parse() never raises. Unparseable input yields a ParsedNote with
    one OTHER section and populated errors/warnings.

Pipeline Position:
    [SectionDetector] → SectionUpdateConfig → SelectiveUpdater
    ^^^^^^^^^^^^^^^^^
    You are here

Author: Shubham Singh
Date: December 2025
"""

import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from loguru import logger

from clinical_note_assistant.core.constants import (
    CLINICAL_TERMS,
    MIN_BARE_HEADER_LENGTH,
    SECTION_ALIASES,
    SECTION_GROUPS,
    SECTION_HEADER_PATTERNS,
    SECTION_TITLES,
    SECTION_VOCABULARY,
    SOAP_SECTION_TYPES,
)
from clinical_note_assistant.core.enums import EMRType, NoteFormat, SectionType
from clinical_note_assistant.core.exceptions import SectionParseError
from clinical_note_assistant.core.models import (
    DetectedSection,
    ParsedNote,
    ParseMetadata,
    SectionMetadata,
)
from clinical_note_assistant.validation.epic_syntax_validator import EpicTokenScanner


# =============================================================================
# STAGE 1: HEADER MATCHING
# =============================================================================


@dataclass(frozen=True)
class HeaderMatch:
    """
    A header found in note text.

    Attributes:
        section_type: Canonical type the phrase maps to
        phrase: Header text as written in the note
        start: Offset of the header line
        body_start: Offset where the section body begins
        strength: 1.0 keyword+colon, 0.8 alternative name+colon, 0.7 bare line
    """

    section_type: SectionType
    phrase: str
    start: int
    body_start: int
    strength: float


class HeaderMatcher:
    """
    Compiled header vocabulary.

    What it does:
        Builds one case-insensitive regex from every header phrase
        (longest first, so "assessment and plan" wins over "assessment")
        and resolves a matched phrase back to its section type.

    Recognised Header Shapes:
        HPI: text on the same line
        History of Present Illness:
        ## Assessment and Plan
        **Risks:**
        1. Follow-up:
    """

    _PREFIX = r"^[ \t]*(?:(?:#{1,6}|\*\*|__|\d+[.)]|[-•])[ \t]*)*"
    _SUFFIX = r"(?![A-Za-z0-9])[ \t]*(?:\*\*|__)?[ \t]*(?P<colon>:)?(?:[ \t]*(?:\*\*|__))?"

    def __init__(self):
        self._phrases: Dict[str, tuple] = {}
        for section_type, pattern in SECTION_HEADER_PATTERNS.items():
            for keyword in pattern["keywords"]:
                self._phrases.setdefault(keyword.lower(), (section_type, True))
            for name in pattern.get("alternative_names", []):
                self._phrases.setdefault(name.lower(), (section_type, False))

        alternation = "|".join(
            re.escape(phrase) for phrase in sorted(self._phrases, key=len, reverse=True)
        )
        self._regex = re.compile(
            self._PREFIX + rf"(?P<header>{alternation})" + self._SUFFIX, re.IGNORECASE
        )

    def lookup(self, phrase: str) -> Optional[SectionType]:
        """Return the section type for a header phrase, if known."""
        entry = self._phrases.get(phrase.strip().rstrip(":").strip().lower())
        return entry[0] if entry else None

    def match_line(self, line: str, line_start: int) -> Optional[HeaderMatch]:
        """
        Match a header at the start of one line.

        Args:
            line: Line text (may include its trailing newline)
            line_start: Offset of the line in the note

        Returns:
            HeaderMatch or None
        """
        match = self._regex.match(line)
        if not match:
            return None

        phrase = match.group("header")
        section_type, is_keyword = self._phrases[phrase.lower()]
        has_colon = match.group("colon") is not None

        if not has_colon:
            # Bare headers must own the whole line and be unambiguous
            if line[match.end():].strip() or len(phrase) < MIN_BARE_HEADER_LENGTH:
                return None
            strength = 0.7
        else:
            strength = 1.0 if is_keyword else 0.8

        return HeaderMatch(
            section_type=section_type,
            phrase=phrase,
            start=line_start,
            body_start=line_start + match.end(),
            strength=strength,
        )

    def find_headers(self, text: str) -> List[HeaderMatch]:
        """Return every header in text, in document order."""
        headers: List[HeaderMatch] = []
        offset = 0
        for line in text.splitlines(keepends=True):
            header = self.match_line(line, offset)
            if header:
                headers.append(header)
            offset += len(line)
        return headers


_DEFAULT_MATCHER = HeaderMatcher()


# =============================================================================
# STAGE 2: VOCABULARY HELPERS
# =============================================================================


def canonical_section_type(value: Union[str, SectionType]) -> SectionType:
    """
    Resolve a header phrase, type name or SectionType to a standardized type.

    Legacy types are mapped through SECTION_ALIASES; standardized types
    and OTHER are returned unchanged.

    Example:
        >>> canonical_section_type("Mental Status Exam")
        <SectionType.PSYCHIATRIC_EXAM: 'PSYCHIATRIC_EXAM'>
        >>> canonical_section_type(SectionType.PLAN)
        <SectionType.ASSESSMENT_AND_PLAN: 'ASSESSMENT_AND_PLAN'>

    Raises:
        ValueError: If the value is not a known phrase or type
    """
    if isinstance(value, SectionType):
        section_type = value
    else:
        section_type = _DEFAULT_MATCHER.lookup(value)
        if section_type is None:
            section_type = SectionType.from_string(value)
    return SECTION_ALIASES.get(section_type, section_type)


def section_title(section_type: SectionType) -> str:
    return SECTION_TITLES.get(section_type, section_type.value.replace("_", " ").title())


def get_sections_by_group(parsed: ParsedNote) -> Dict[str, List[DetectedSection]]:
    """Group a parsed note's sections by SECTION_GROUPS key."""
    return {
        group: [s for s in parsed.sections if s.type in info["sections"]]
        for group, info in SECTION_GROUPS.items()
    }


def get_standardized_sections(parsed: ParsedNote) -> List[DetectedSection]:
    return [s for s in parsed.sections if s.metadata.is_standardized]


# =============================================================================
# STAGE 3: SECTION DETECTOR
# =============================================================================


class SectionDetector:
    """
    Parses free-text clinical notes into typed sections.

    What it does:
        Turns a note into a ParsedNote: ordered, non-overlapping
        DetectedSections plus EMR/format inference and diagnostics.

    Why it exists:
        1. Transfer of Care updates sections, not whole notes
        2. Preservation checks need the same segmentation on both sides
        3. Edit tracking attributes changes to sections

    When to use:
        - On the previous note before configuring a selective update
        - On generated output to verify preserved sections

    Example:
        >>> parsed = SectionDetector().parse("HPI: Doing well.\\nPlan: Continue sertraline.")
        >>> [s.type.value for s in parsed.sections]
        ['HPI', 'PLAN']
    """

    def __init__(self, matcher: Optional[HeaderMatcher] = None):
        self._matcher = matcher or _DEFAULT_MATCHER

    @property
    def matcher(self) -> HeaderMatcher:
        return self._matcher

    # =========================================================================
    # STAGE 3.1: PUBLIC API
    # =========================================================================

    def parse(self, note_text: str) -> ParsedNote:
        """
        Parse a note into sections. Never raises.

        Args:
            note_text: Free-text note

        Returns:
            ParsedNote (errors populated when the input is unusable)
        """
        started = time.perf_counter()
        metadata = ParseMetadata()

        try:
            parsed = self._parse(note_text, metadata)
        except SectionParseError as e:
            metadata.errors.append(f"{e.code.value}: {e.message}")
            parsed = self._fallback(note_text if isinstance(note_text, str) else "", metadata)
        except Exception as e:
            logger.error(f"Section parsing failed: {e}")
            metadata.errors.append(f"PARSE_ERROR: {e}")
            parsed = self._fallback(note_text if isinstance(note_text, str) else "", metadata)

        metadata.processing_time = round((time.perf_counter() - started) * 1000, 3)
        metadata.total_sections = len(parsed.sections)

        if metadata.warnings or metadata.errors:
            logger.warning(
                f"Parsed note with issues | Sections: {metadata.total_sections} | "
                f"Errors: {len(metadata.errors)} | Warnings: {len(metadata.warnings)}"
            )
        else:
            logger.debug(
                f"Parsed note | Sections: {metadata.total_sections} | "
                f"Format: {parsed.detected_format.value} | EMR: {parsed.emr_type.value} | "
                f"Confidence: {metadata.confidence:.2f}"
            )
        return parsed

    def section_at(self, text: str, position: int) -> Optional[SectionType]:
        """
        Return the type of the nearest header at or before position.

        Used by the delta tracker to attribute an edit to a section.
        """
        current: Optional[SectionType] = None
        for header in self._matcher.find_headers(text):
            if header.start > position:
                break
            current = header.section_type
        return current

    # =========================================================================
    # STAGE 3.2: PARSING
    # =========================================================================

    def _parse(self, note_text: str, metadata: ParseMetadata) -> ParsedNote:
        if not isinstance(note_text, str):
            raise SectionParseError(
                "Note content must be text", context={"received": type(note_text).__name__}
            )
        if not note_text.strip():
            raise SectionParseError("Note content is empty")

        emr_type = self.detect_emr_type(note_text)
        headers = self._matcher.find_headers(note_text)

        if not headers:
            metadata.warnings.append("No section headers detected - manual review recommended")
            return self._fallback(note_text, metadata, emr_type=emr_type)

        # Step 1: Body text under each header
        ends: List[int] = []
        bodies: List[str] = []
        last_index: Dict[SectionType, int] = {}
        for index, header in enumerate(headers):
            end = headers[index + 1].start if index + 1 < len(headers) else len(note_text)
            ends.append(end)
            bodies.append(note_text[header.body_start:end].strip())
            last_index[header.section_type] = index
            metadata.matched_patterns.append(f'{header.section_type.value}: "{header.phrase}"')

        # Step 2: Duplicate headers - the last occurrence keeps its start,
        # earlier bodies are carried into it so no text is dropped
        carried: Dict[SectionType, List[str]] = {}
        deduplicated: List[DetectedSection] = []
        for index, header in enumerate(headers):
            section_type = header.section_type
            if last_index[section_type] != index:
                metadata.warnings.append(
                    f"Duplicate {section_type.value} header at offset {header.start} "
                    f"merged into a later occurrence"
                )
                if bodies[index]:
                    carried.setdefault(section_type, []).append(bodies[index])
                continue
            parts = carried.get(section_type, []) + ([bodies[index]] if bodies[index] else [])
            deduplicated.append(self._build_section(header, "\n\n".join(parts), ends[index]))

        for section in deduplicated:
            if section.is_empty:
                metadata.warnings.append(f"{section.type.value} section is empty")

        metadata.standardized_sections = sum(1 for s in deduplicated if s.metadata.is_standardized)
        metadata.confidence = self._overall_confidence(deduplicated)

        return ParsedNote(
            original_content=note_text,
            detected_format=self.detect_note_format(deduplicated, emr_type),
            emr_type=emr_type,
            sections=deduplicated,
            parse_metadata=metadata,
        )

    def _fallback(
        self,
        note_text: str,
        metadata: ParseMetadata,
        emr_type: Optional[EMRType] = None,
    ) -> ParsedNote:
        """One OTHER section spanning the whole note."""
        content = note_text.strip()
        section = DetectedSection(
            type=SectionType.OTHER,
            title=section_title(SectionType.OTHER),
            content=content,
            start_index=0,
            end_index=len(note_text),
            confidence=0.05 if content else 0.0,
            metadata=self._section_metadata(content, None, False),
        )
        metadata.confidence = section.confidence
        metadata.standardized_sections = 0
        return ParsedNote(
            original_content=note_text,
            detected_format=NoteFormat.UNKNOWN,
            emr_type=emr_type or (self.detect_emr_type(note_text) if note_text else EMRType.CREDIBLE),
            sections=[section],
            parse_metadata=metadata,
        )

    # =========================================================================
    # STAGE 3.3: SCORING
    # =========================================================================

    def _build_section(self, header: HeaderMatch, content: str, end: int) -> DetectedSection:
        section_type = header.section_type
        return DetectedSection(
            type=section_type,
            title=section_title(section_type),
            content=content,
            start_index=header.start,
            end_index=end,
            confidence=self._section_confidence(header, content),
            metadata=self._section_metadata(content, header.phrase, section_type.is_standardized),
        )

    @staticmethod
    def _section_confidence(header: HeaderMatch, content: str) -> float:
        """
        Weighted confidence in [0, 1].

        0.6 x header strength x type prior
        + 0.2 if the body is non-empty
        + 0.2 x share of expected vocabulary hits (two hits saturate)

        Empty sections score 0.
        """
        if not content:
            return 0.0
        prior = SECTION_HEADER_PATTERNS[header.section_type]["confidence"]
        vocabulary = SECTION_VOCABULARY.get(header.section_type, CLINICAL_TERMS)
        lowered = content.lower()
        hits = sum(1 for term in vocabulary if term in lowered)
        term_score = min(1.0, hits / 2)
        return round(0.6 * header.strength * prior + 0.2 + 0.2 * term_score, 3)

    @staticmethod
    def _section_metadata(
        content: str, header: Optional[str], is_standardized: bool
    ) -> SectionMetadata:
        lowered = content.lower()
        return SectionMetadata(
            has_epic_syntax=EpicTokenScanner.has_epic_syntax(content),
            word_count=len(content.split()),
            is_empty=not content,
            clinical_terms=[term for term in CLINICAL_TERMS if term in lowered],
            original_header=header,
            is_standardized=is_standardized,
        )

    @staticmethod
    def _overall_confidence(sections: List[DetectedSection]) -> float:
        """Mean section confidence plus 0.05 per standardized section (max 0.2)."""
        if not sections:
            return 0.0
        average = sum(s.confidence for s in sections) / len(sections)
        standardized = sum(1 for s in sections if s.metadata.is_standardized)
        bonus = min(0.2, standardized * 0.05)
        return round(min(1.0, average + bonus), 3)

    # =========================================================================
    # STAGE 3.4: EMR AND FORMAT DETECTION
    # =========================================================================

    @staticmethod
    def detect_emr_type(note_text: str) -> EMRType:
        """Epic if any Epic-looking token is present, otherwise Credible."""
        return EMRType.EPIC if EpicTokenScanner.has_epic_syntax(note_text) else EMRType.CREDIBLE

    @staticmethod
    def detect_note_format(sections: List[DetectedSection], emr_type: EMRType) -> NoteFormat:
        """
        Infer the note layout from detected sections.

        SOAP:            >= 3 SOAP headers
        EPIC_STRUCTURED: Epic tokens and >= 3 sections
        NARRATIVE:       >= 3 standardized sections, or any headers at all
        MIXED:           SOAP and standardized headers side by side
        """
        types = {s.type for s in sections}
        soap = sum(1 for t in SOAP_SECTION_TYPES if t in types)
        standardized = sum(1 for t in types if t.is_standardized)

        if soap >= 3:
            return NoteFormat.SOAP
        if emr_type is EMRType.EPIC and len(sections) >= 3:
            return NoteFormat.EPIC_STRUCTURED
        if standardized >= 3:
            return NoteFormat.NARRATIVE
        if soap > 0 and standardized > 0:
            return NoteFormat.MIXED
        if sections:
            return NoteFormat.NARRATIVE
        return NoteFormat.UNKNOWN
