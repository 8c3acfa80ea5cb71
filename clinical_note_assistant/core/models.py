"""
Domain Models for the Clinical Note Assistant

This module defines the core data structures used throughout the note
assistant. Models are dataclasses designed for:
    1. Type safety and IDE support
    2. Serialization to the shared record formats (camelCase keys)
    3. Clear domain semantics

Model Hierarchy:
    Inputs
        PatientTranscript, NoteTemplate, TemplateSection, PatientContext,
        NoteGenerationPreferences, NoteGenerationRequest
    Parsing
        SectionMetadata, DetectedSection, ParseMetadata, ParsedNote
    Selective update
        SectionUpdateConfig, SelectiveUpdateResult
    Validation
        TokenValidation, WildcardValidation, EpicSyntaxValidation
    Generation
        GenerationMetadata, GeneratedNote, ErrorInfo, PerformanceInfo,
        NoteGenerationResponse, ProviderComparisonResult
    Edit tracking
        DeltaChange, EditSession, NoteVersion

Usage:
    from clinical_note_assistant.core.models import ParsedNote, SectionUpdateConfig

    config = SectionUpdateConfig(
        section_type=SectionType.HPI,
        should_update=True,
        update_reason="New visit information",
    )

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from clinical_note_assistant.core.enums import (
    AIProvider,
    ChangeType,
    EMRType,
    EncounterType,
    ErrorCode,
    MergeStrategy,
    NoteFormat,
    Recommendation,
    SectionType,
)


# =============================================================================
# STAGE 1: GENERATION INPUTS
# =============================================================================
# Plain data produced by the caller. The assistant only reads these.


@dataclass(frozen=True)
class PatientTranscript:
    """
    Encounter transcript that a note is generated from.

    Attributes:
        id: Transcript identifier
        patient_id: Owning patient
        content: Raw encounter text (dictated or pasted)
        encounter_type: Encounter category
        duration: Encounter length in minutes (if known)
    """

    id: str
    patient_id: str
    content: str
    encounter_type: EncounterType = EncounterType.OFFICE_VISIT
    duration: Optional[float] = None


@dataclass(frozen=True)
class TemplateSection:
    """One named slot of a note template."""

    name: str
    content: str = ""
    required: bool = False


@dataclass(frozen=True)
class NoteTemplate:
    """
    Reusable note skeleton owned by a user.

    Attributes:
        id: Template identifier
        name: Display name
        content: Full template text (may contain Epic tokens)
        sections: Ordered template sections
        smart_phrases: SmartPhrases the template references
        dot_phrases: DotPhrases the template references
        epic_compatible: Whether the template targets Epic
        created_by: Owning user id
    """

    id: str
    name: str
    content: str
    sections: List[TemplateSection] = field(default_factory=list)
    smart_phrases: List[str] = field(default_factory=list)
    dot_phrases: List[str] = field(default_factory=list)
    epic_compatible: bool = True
    created_by: Optional[str] = None


@dataclass(frozen=True)
class PatientContext:
    """Optional patient details threaded into the generation prompt."""

    patient_id: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    chief_complaint: Optional[str] = None
    medical_history: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NoteGenerationPreferences:
    """Per-request generation preferences."""

    emr: EMRType = EMRType.EPIC
    include_epic_syntax: bool = True
    clinic: Optional[str] = None
    visit_type: Optional[str] = None


@dataclass(frozen=True)
class NoteGenerationRequest:
    """
    Everything a provider client needs to draft one note.

    Attributes:
        transcript: Source encounter transcript
        template: Optional template to follow
        patient_context: Optional patient details
        preferences: EMR and formatting preferences
        prompt_override: Complete user prompt built by a caller (the
            selective updater passes its constrained prompt here)
        reference_text: Text whose Epic tokens the output must preserve
        user_id: Owner of the resulting note
    """

    transcript: PatientTranscript
    template: Optional[NoteTemplate] = None
    patient_context: Optional[PatientContext] = None
    preferences: NoteGenerationPreferences = field(default_factory=NoteGenerationPreferences)
    prompt_override: Optional[str] = None
    reference_text: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def expected_syntax_source(self) -> Optional[str]:
        """Text whose Epic tokens are expected to survive generation."""
        if self.reference_text is not None:
            return self.reference_text
        if self.template is not None:
            return self.template.content
        return None


# =============================================================================
# STAGE 2: PARSING MODELS
# =============================================================================


@dataclass(frozen=True)
class SectionMetadata:
    """Derived facts about one detected section."""

    has_epic_syntax: bool = False
    word_count: int = 0
    is_empty: bool = True
    clinical_terms: List[str] = field(default_factory=list)
    original_header: Optional[str] = None
    is_standardized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasEpicSyntax": self.has_epic_syntax,
            "wordCount": self.word_count,
            "isEmpty": self.is_empty,
            "clinicalTerms": list(self.clinical_terms),
            "originalSectionName": self.original_header,
            "isStandardized": self.is_standardized,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SectionMetadata":
        return cls(
            has_epic_syntax=data.get("hasEpicSyntax", False),
            word_count=data.get("wordCount", 0),
            is_empty=data.get("isEmpty", True),
            clinical_terms=list(data.get("clinicalTerms", [])),
            original_header=data.get("originalSectionName"),
            is_standardized=data.get("isStandardized", False),
        )


@dataclass(frozen=True)
class DetectedSection:
    """
    One typed span of a parsed note.

    What it does:
        A view over note text: the section's type, the span it occupies
        in the source, its body (header excluded) and a confidence score.

    Attributes:
        type: Canonical section type
        title: Display title
        content: Section body, header excluded, surrounding whitespace stripped
        start_index: Offset of the header in the source text (inclusive)
        end_index: Offset where the next header starts (exclusive)
        confidence: 0-1 detection confidence
        metadata: Derived section facts
    """

    type: SectionType
    title: str
    content: str
    start_index: int
    end_index: int
    confidence: float
    metadata: SectionMetadata = field(default_factory=SectionMetadata)

    @property
    def is_empty(self) -> bool:
        return self.metadata.is_empty

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "confidence": self.confidence,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectedSection":
        return cls(
            type=SectionType.from_string(data["type"]),
            title=data.get("title", ""),
            content=data.get("content", ""),
            start_index=int(data["startIndex"]),
            end_index=int(data["endIndex"]),
            confidence=float(data.get("confidence", 0.0)),
            metadata=SectionMetadata.from_dict(data.get("metadata", {})),
        )


@dataclass
class ParseMetadata:
    """Diagnostics produced alongside a parse."""

    total_sections: int = 0
    confidence: float = 0.0
    processing_time: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    matched_patterns: List[str] = field(default_factory=list)
    standardized_sections: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSections": self.total_sections,
            "confidence": self.confidence,
            "processingTime": self.processing_time,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "matchedPatterns": list(self.matched_patterns),
            "standardizedSections": self.standardized_sections,
        }


@dataclass
class ParsedNote:
    """
    A free-text note segmented into typed sections.

    Invariant:
        sections are ordered by start_index and their
        [start_index, end_index) ranges never overlap. Gaps are allowed
        (text before the first header belongs to no section).

    Attributes:
        original_content: Source text exactly as provided
        detected_format: Overall layout
        emr_type: Inferred EMR dialect
        sections: Ordered detected sections
        parse_metadata: Diagnostics
    """

    original_content: str
    detected_format: NoteFormat
    emr_type: EMRType
    sections: List[DetectedSection] = field(default_factory=list)
    parse_metadata: ParseMetadata = field(default_factory=ParseMetadata)

    @property
    def section_types(self) -> List[SectionType]:
        return [section.type for section in self.sections]

    def get_section(self, section_type: SectionType) -> Optional[DetectedSection]:
        """Return the section of the given type, if present."""
        for section in self.sections:
            if section.type == section_type:
                return section
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ParsedNote record format."""
        return {
            "originalContent": self.original_content,
            "detectedFormat": self.detected_format.value,
            "emrType": self.emr_type.value,
            "sections": [section.to_dict() for section in self.sections],
            "parseMetadata": self.parse_metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedNote":
        meta = data.get("parseMetadata", {})
        return cls(
            original_content=data["originalContent"],
            detected_format=NoteFormat(data.get("detectedFormat", NoteFormat.UNKNOWN.value)),
            emr_type=EMRType(data.get("emrType", EMRType.CREDIBLE.value)),
            sections=[DetectedSection.from_dict(s) for s in data.get("sections", [])],
            parse_metadata=ParseMetadata(
                total_sections=meta.get("totalSections", 0),
                confidence=meta.get("confidence", 0.0),
                processing_time=meta.get("processingTime", 0.0),
                errors=list(meta.get("errors", [])),
                warnings=list(meta.get("warnings", [])),
                matched_patterns=list(meta.get("matchedPatterns", [])),
                standardized_sections=meta.get("standardizedSections", 0),
            ),
        )


# =============================================================================
# STAGE 3: SELECTIVE UPDATE MODELS
# =============================================================================


@dataclass
class SectionUpdateConfig:
    """
    Per-section update decision for one generation call.

    Built from visit-type defaults, then mutated by user toggles or
    presets before it is handed to the selective updater.

    Attributes:
        section_type: Section this config applies to
        should_update: Regenerate (True) or preserve verbatim (False)
        update_reason: Human-readable guidance passed to the model
        preserve_original: Keep the original text available for merge
        merge_strategy: How regenerated text combines with the original
    """

    section_type: SectionType
    should_update: bool
    update_reason: str = ""
    preserve_original: bool = False
    merge_strategy: MergeStrategy = MergeStrategy.REPLACE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sectionType": self.section_type.value,
            "shouldUpdate": self.should_update,
            "updateReason": self.update_reason,
            "preserveOriginal": self.preserve_original,
            "mergeStrategy": self.merge_strategy.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SectionUpdateConfig":
        return cls(
            section_type=SectionType.from_string(data["sectionType"]),
            should_update=bool(data["shouldUpdate"]),
            update_reason=data.get("updateReason", ""),
            preserve_original=bool(data.get("preserveOriginal", False)),
            merge_strategy=MergeStrategy(data.get("mergeStrategy", MergeStrategy.REPLACE.value)),
        )


# =============================================================================
# STAGE 4: EPIC SYNTAX VALIDATION MODELS
# =============================================================================


@dataclass(frozen=True)
class TokenValidation:
    """Found / missing / malformed tokens of one Epic token kind."""

    found: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    malformed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": list(self.found),
            "missing": list(self.missing),
            "malformed": list(self.malformed),
        }


@dataclass(frozen=True)
class WildcardValidation:
    """Wildcards still present, and how many expected ones were filled in."""

    found: List[str] = field(default_factory=list)
    replaced: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"found": list(self.found), "replaced": self.replaced}


@dataclass(frozen=True)
class EpicSyntaxValidation:
    """
    Result of validating Epic syntax in one text.

    A pure function of its inputs: validating the same text against the
    same reference always yields an equal object.

    Attributes:
        is_valid: No malformed and no missing tokens
        smart_phrases: @PHRASE@ tokens
        dot_phrases: .phrase tokens
        smart_lists: {Name:ID} tokens
        wildcards: *** tokens
        preservation_score: 0-1 share of expected tokens that survived intact
        suggestions: Case-normalized corrections for malformed tokens
    """

    is_valid: bool
    smart_phrases: TokenValidation = field(default_factory=TokenValidation)
    dot_phrases: TokenValidation = field(default_factory=TokenValidation)
    smart_lists: TokenValidation = field(default_factory=TokenValidation)
    wildcards: WildcardValidation = field(default_factory=WildcardValidation)
    preservation_score: float = 1.0
    suggestions: List[str] = field(default_factory=list)

    @property
    def malformed_count(self) -> int:
        return (
            len(self.smart_phrases.malformed)
            + len(self.dot_phrases.malformed)
            + len(self.smart_lists.malformed)
        )

    @property
    def has_tokens(self) -> bool:
        return bool(
            self.smart_phrases.found
            or self.dot_phrases.found
            or self.smart_lists.found
            or self.wildcards.found
            or self.malformed_count
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "smartPhrases": self.smart_phrases.to_dict(),
            "dotPhrases": self.dot_phrases.to_dict(),
            "smartLists": self.smart_lists.to_dict(),
            "wildcards": self.wildcards.to_dict(),
            "preservationScore": self.preservation_score,
            "suggestions": list(self.suggestions),
        }


# =============================================================================
# STAGE 5: GENERATION OUTPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class GenerationMetadata:
    """Provenance and usage facts for a generated note."""

    generated_at: datetime = field(default_factory=datetime.now)
    processing_duration: float = 0.0
    tokens_used: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    smart_phrases_detected: List[str] = field(default_factory=list)
    dot_phrases_detected: List[str] = field(default_factory=list)
    template_used: Optional[str] = None
    patient_id: Optional[str] = None
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat(),
            "processingDuration": self.processing_duration,
            "tokensUsed": self.tokens_used,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "smartPhrasesDetected": list(self.smart_phrases_detected),
            "dotPhrasesDetected": list(self.dot_phrases_detected),
            "templateUsed": self.template_used,
            "patientId": self.patient_id,
            "model": self.model,
        }


@dataclass(frozen=True)
class GeneratedNote:
    """
    A note drafted by an LLM provider.

    What it does:
        Immutable record of one generation call. The UI edits a copy;
        this original is kept (original_content) as the diff baseline.

    Attributes:
        id: Note identifier (note_<timestamp>_<uuid8>)
        content: Generated text
        ai_provider: Provider that produced it
        quality_score: 1-10
        epic_syntax_validation: Syntax check of content
        metadata: Provenance and usage
        original_content: Baseline text for diffing (defaults to content)
    """

    id: str
    content: str
    ai_provider: AIProvider
    quality_score: float
    epic_syntax_validation: EpicSyntaxValidation
    metadata: GenerationMetadata = field(default_factory=GenerationMetadata)
    original_content: Optional[str] = None

    @property
    def baseline(self) -> str:
        return self.original_content if self.original_content is not None else self.content

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the GeneratedNote record format."""
        return {
            "id": self.id,
            "content": self.content,
            "originalContent": self.baseline,
            "aiProvider": self.ai_provider.value,
            "qualityScore": self.quality_score,
            "epicSyntaxValidation": self.epic_syntax_validation.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ErrorInfo:
    """Serializable error attached to a failed response."""

    code: ErrorCode
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "details": dict(self.details)}


@dataclass
class PerformanceInfo:
    """Timing and step trace for one generation request."""

    total_duration: float = 0.0
    provider_duration: float = 0.0
    processing_steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDuration": self.total_duration,
            "providerDuration": self.provider_duration,
            "processingSteps": list(self.processing_steps),
        }


@dataclass
class NoteGenerationResponse:
    """
    Outcome of a generation request (success or classified failure).

    Attributes:
        success: Whether a note was produced
        note: The generated note on success
        error: Classified error on failure
        fallback_used: Whether the fallback provider produced the result
        provider: Provider that produced the final result (or last tried)
        performance: Timing and processing-step trace
    """

    success: bool
    note: Optional[GeneratedNote] = None
    error: Optional[ErrorInfo] = None
    fallback_used: bool = False
    provider: Optional[AIProvider] = None
    performance: PerformanceInfo = field(default_factory=PerformanceInfo)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "note": self.note.to_dict() if self.note else None,
            "error": self.error.to_dict() if self.error else None,
            "fallbackUsed": self.fallback_used,
            "provider": self.provider.value if self.provider else None,
            "performance": self.performance.to_dict(),
        }


@dataclass
class ProviderComparisonResult:
    """
    Side-by-side outcome of running both providers on one request.

    Attributes:
        gemini: Gemini response
        claude: Claude response
        recommendation: Preferred provider or MANUAL_REVIEW
        reasoning: Accumulated rubric explanation
        scores: Rubric points per provider
    """

    gemini: NoteGenerationResponse
    claude: NoteGenerationResponse
    recommendation: Recommendation
    reasoning: str
    scores: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gemini": self.gemini.to_dict(),
            "claude": self.claude.to_dict(),
            "recommendation": self.recommendation.value,
            "reasoning": self.reasoning,
            "scores": dict(self.scores),
        }


@dataclass
class SelectiveUpdateResult:
    """
    Output of a Transfer-of-Care selective update.

    Attributes:
        note: The assembled note (the original, unchanged, when nothing
            was selected for update)
        sections_updated: Section types the model was asked to rewrite
        sections_preserved: Section types that had to come back verbatim
        preservation_violations: Preserved sections that came back altered
        validation_score: Epic syntax preservation score of the output
        warnings: Non-fatal findings for clinician review
        parsed_result: Re-parse of the generated text (None on short-circuit)
        provider_called: Whether an LLM call was made
        fallback_used: Whether the fallback provider produced the note
    """

    note: GeneratedNote
    sections_updated: List[SectionType] = field(default_factory=list)
    sections_preserved: List[SectionType] = field(default_factory=list)
    preservation_violations: List[SectionType] = field(default_factory=list)
    validation_score: float = 1.0
    warnings: List[str] = field(default_factory=list)
    parsed_result: Optional[ParsedNote] = None
    provider_called: bool = True
    fallback_used: bool = False

    @property
    def needs_review(self) -> bool:
        return bool(self.preservation_violations) or not self.note.epic_syntax_validation.is_valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "note": self.note.to_dict(),
            "sectionsUpdated": [s.value for s in self.sections_updated],
            "sectionsPreserved": [s.value for s in self.sections_preserved],
            "preservationViolations": [s.value for s in self.preservation_violations],
            "validationScore": self.validation_score,
            "warnings": list(self.warnings),
            "providerCalled": self.provider_called,
            "fallbackUsed": self.fallback_used,
        }


# =============================================================================
# STAGE 6: EDIT TRACKING MODELS
# =============================================================================


@dataclass(frozen=True)
class DeltaChange:
    """
    One atomic edit between two versions of note text.

    Attributes:
        id: Change identifier
        timestamp: When the change was observed
        type: insert, delete or replace
        position: Offset in the old text where the change starts
        content: Inserted/replacement text ("" for deletions)
        previous_content: Removed/replaced text ("" for insertions)
        length: Length of the affected span (max of old and new)
        section_type: Nearest preceding section header, if any
        session_duration: Seconds since the edit session started
    """

    id: str
    timestamp: datetime
    type: ChangeType
    position: int
    content: str
    previous_content: str
    length: int
    section_type: Optional[SectionType] = None
    session_duration: float = 0.0

    @property
    def word_count(self) -> int:
        return len((self.content or self.previous_content).split())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the DeltaChange record format."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "position": self.position,
            "content": self.content,
            "previousContent": self.previous_content,
            "length": self.length,
            "sectionType": self.section_type.value if self.section_type else None,
            "sessionDuration": self.session_duration,
        }


@dataclass
class EditSession:
    """Changes accumulated since the last save."""

    id: str
    note_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    changes: List[DeltaChange] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or datetime.now()
        return max(0.0, (end - self.start_time).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "noteId": self.note_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "changes": [change.to_dict() for change in self.changes],
        }


@dataclass(frozen=True)
class NoteVersion:
    """
    Persisted snapshot of a note after an edit session.

    Attributes:
        version: Monotonic version number
        content: Note text at save time
        session_id: Edit session that produced it
        change_count: Number of changes in the session
        edit_duration: Session length in seconds
        sections_edited: Change count per section type value
        created_at: Save time
    """

    version: int
    content: str
    session_id: str
    change_count: int
    edit_duration: float
    sections_edited: Dict[str, int] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_session(cls, session: EditSession, content: str, version: int) -> "NoteVersion":
        """Snapshot an edit session into a version record."""
        sections: Dict[str, int] = {}
        for change in session.changes:
            key = change.section_type.value if change.section_type else "UNKNOWN"
            sections[key] = sections.get(key, 0) + 1
        return cls(
            version=version,
            content=content,
            session_id=session.id,
            change_count=len(session.changes),
            edit_duration=session.duration_seconds,
            sections_edited=sections,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "content": self.content,
            "sessionId": self.session_id,
            "changeCount": self.change_count,
            "editDuration": self.edit_duration,
            "sectionsEdited": dict(self.sections_edited),
            "createdAt": self.created_at.isoformat(),
        }
