"""
Enumerations for the Clinical Note Assistant

This module defines all enumeration types used throughout the note
assistant. Enums provide:
    1. Type safety for categorical values
    2. IDE autocomplete support
    3. Stable string values for the serialized record formats

Enumeration Categories:
    SectionType         → Canonical clinical section kinds
    NoteFormat          → Overall note layout (SOAP, narrative, Epic)
    EMRType             → Target EMR dialect
    AIProvider          → LLM providers
    ChangeType          → Edit classification for delta tracking
    MergeStrategy       → How an updated section is combined
    VisitType           → Visit types that drive section defaults
    EncounterType       → Transcript encounter categories
    QualityIssue        → Clinician feedback tags
    ErrorCode           → Error taxonomy
    Recommendation      → Provider comparison outcome

Author: Shubham Singh
Date: December 2025
"""

from enum import Enum


# =============================================================================
# STAGE 1: SECTION TYPE ENUMERATION
# =============================================================================
# One canonical vocabulary. Standardized Transfer-of-Care sections come
# first; legacy SOAP-era types stay as members so older notes parse with
# full fidelity, and SECTION_ALIASES (core/constants.py) maps them onto
# their standardized equivalents.


class SectionType(str, Enum):
    """
    Canonical clinical section kinds produced by the section detector.

    What it does:
        Names every section the detector can recognise. Presets, update
        configs and prompt instructions are all keyed by these values.

    Why it exists:
        1. Historical notes use two vocabularies (SOAP vs. standardized)
        2. Downstream presets need one stable key per section
        3. Values are part of the ParsedNote record format

    When to use:
        - When configuring which sections to update
        - When looking up per-section prompt instructions
    """

    # -------------------------------------------------------------------------
    # 1.1 Patient Information
    # -------------------------------------------------------------------------
    BASIC_DEMO_INFO = "BASIC_DEMO_INFO"
    IDENTIFYING_INFO = "IDENTIFYING_INFO"
    DIAGNOSIS = "DIAGNOSIS"

    # -------------------------------------------------------------------------
    # 1.2 Medications
    # -------------------------------------------------------------------------
    CURRENT_MEDICATIONS = "CURRENT_MEDICATIONS"
    BH_PRIOR_MEDS_TRIED = "BH_PRIOR_MEDS_TRIED"
    MEDICATIONS_PLAN = "MEDICATIONS_PLAN"

    # -------------------------------------------------------------------------
    # 1.3 Clinical Assessment
    # -------------------------------------------------------------------------
    HPI = "HPI"
    REVIEW_OF_SYSTEMS = "REVIEW_OF_SYSTEMS"
    PSYCHIATRIC_EXAM = "PSYCHIATRIC_EXAM"
    QUESTIONNAIRES_SURVEYS = "QUESTIONNAIRES_SURVEYS"

    # -------------------------------------------------------------------------
    # 1.4 Examination
    # -------------------------------------------------------------------------
    MEDICAL = "MEDICAL"
    PHYSICAL_EXAM = "PHYSICAL_EXAM"

    # -------------------------------------------------------------------------
    # 1.5 Plan and Safety
    # -------------------------------------------------------------------------
    RISKS = "RISKS"
    ASSESSMENT_AND_PLAN = "ASSESSMENT_AND_PLAN"
    PSYCHOSOCIAL = "PSYCHOSOCIAL"
    SAFETY_PLAN = "SAFETY_PLAN"

    # -------------------------------------------------------------------------
    # 1.6 Follow-up
    # -------------------------------------------------------------------------
    PROGNOSIS = "PROGNOSIS"
    FOLLOW_UP = "FOLLOW_UP"

    # -------------------------------------------------------------------------
    # 1.7 Legacy Types (aliased onto the standardized set)
    # -------------------------------------------------------------------------
    CHIEF_COMPLAINT = "CHIEF_COMPLAINT"
    SUBJECTIVE = "SUBJECTIVE"
    OBJECTIVE = "OBJECTIVE"
    ASSESSMENT = "ASSESSMENT"
    PLAN = "PLAN"
    MSE = "MSE"
    VITALS = "VITALS"
    MEDICATIONS = "MEDICATIONS"
    ALLERGIES = "ALLERGIES"
    SOCIAL_HISTORY = "SOCIAL_HISTORY"
    FAMILY_HISTORY = "FAMILY_HISTORY"

    # -------------------------------------------------------------------------
    # 1.8 Fallback
    # -------------------------------------------------------------------------
    OTHER = "OTHER"
    """Unrecognised structure: the whole note as one section."""

    @property
    def is_standardized(self) -> bool:
        """True for members of the standardized Transfer-of-Care set."""
        return self in _STANDARDIZED_SECTIONS

    @classmethod
    def from_string(cls, value: str) -> "SectionType":
        """
        Convert string to SectionType with case-insensitive matching.

        Raises:
            ValueError: If string doesn't match any section type
        """
        normalized = value.strip().upper().replace(" ", "_").replace("-", "_")
        for section_type in cls:
            if section_type.value == normalized:
                return section_type
        raise ValueError(f"Unknown section type: '{value}'")


_STANDARDIZED_SECTIONS = frozenset(
    [
        SectionType.BASIC_DEMO_INFO,
        SectionType.IDENTIFYING_INFO,
        SectionType.DIAGNOSIS,
        SectionType.CURRENT_MEDICATIONS,
        SectionType.BH_PRIOR_MEDS_TRIED,
        SectionType.MEDICATIONS_PLAN,
        SectionType.HPI,
        SectionType.REVIEW_OF_SYSTEMS,
        SectionType.PSYCHIATRIC_EXAM,
        SectionType.QUESTIONNAIRES_SURVEYS,
        SectionType.MEDICAL,
        SectionType.PHYSICAL_EXAM,
        SectionType.RISKS,
        SectionType.ASSESSMENT_AND_PLAN,
        SectionType.PSYCHOSOCIAL,
        SectionType.SAFETY_PLAN,
        SectionType.PROGNOSIS,
        SectionType.FOLLOW_UP,
    ]
)


# =============================================================================
# STAGE 2: NOTE FORMAT AND EMR
# =============================================================================


class NoteFormat(str, Enum):
    """Overall layout of a parsed note."""

    SOAP = "SOAP"
    """At least three of Subjective/Objective/Assessment/Plan headers."""

    NARRATIVE = "narrative"
    """Standardized section headers, no Epic tokens."""

    EPIC_STRUCTURED = "epic-structured"
    """Section headers plus Epic SmartPhrase/DotPhrase tokens."""

    MIXED = "mixed"
    """Some SOAP and some standardized headers."""

    UNKNOWN = "unknown"
    """No recognisable structure."""


class EMRType(str, Enum):
    """
    Target EMR dialect.

    EPIC notes keep SmartPhrases, DotPhrases, SmartLists and wildcards.
    CREDIBLE notes are plain text and must carry no Epic tokens.
    """

    EPIC = "epic"
    CREDIBLE = "credible"


# =============================================================================
# STAGE 3: PROVIDERS
# =============================================================================


class AIProvider(str, Enum):
    """LLM providers the assistant can call."""

    GEMINI = "gemini"
    CLAUDE = "claude"

    @property
    def other(self) -> "AIProvider":
        """The opposite provider (used to pick a fallback)."""
        return AIProvider.CLAUDE if self is AIProvider.GEMINI else AIProvider.GEMINI

    @classmethod
    def from_string(cls, value: str) -> "AIProvider":
        normalized = value.strip().lower()
        for provider in cls:
            if provider.value == normalized:
                return provider
        raise ValueError(f"Unknown provider: '{value}'. Valid providers: gemini, claude")


class Recommendation(str, Enum):
    """Outcome of a side-by-side provider comparison."""

    GEMINI = "gemini"
    CLAUDE = "claude"
    MANUAL_REVIEW = "manual_review"


# =============================================================================
# STAGE 4: EDITING AND UPDATES
# =============================================================================


class ChangeType(str, Enum):
    """Classification of a single edit between two note versions."""

    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


class MergeStrategy(str, Enum):
    """How regenerated content is combined with the original section."""

    REPLACE = "replace"
    APPEND = "append"
    MERGE = "merge"


class VisitType(str, Enum):
    """
    Visit types that drive default section update flags.

    TRANSFER_OF_CARE: new provider takes over, most clinical sections refresh
    FOLLOW_UP: routine visit, prior assessment and diagnosis preserved
    PSYCHIATRIC_INTAKE: comprehensive refresh
    """

    TRANSFER_OF_CARE = "transfer-of-care"
    FOLLOW_UP = "follow-up"
    PSYCHIATRIC_INTAKE = "psychiatric-intake"

    @classmethod
    def from_string(cls, value: str) -> "VisitType":
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        for visit_type in cls:
            if visit_type.value == normalized:
                return visit_type
        raise ValueError(f"Unknown visit type: '{value}'")


class EncounterType(str, Enum):
    """Encounter category of a patient transcript."""

    OFFICE_VISIT = "office-visit"
    TELEHEALTH = "telehealth"
    EMERGENCY = "emergency"
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"


# =============================================================================
# STAGE 5: FEEDBACK
# =============================================================================


class QualityIssue(str, Enum):
    """Quality issue tags a clinician can attach to note feedback."""

    TOO_LONG = "too_long"
    TOO_BRIEF = "too_brief"
    MISSING_DETAILS = "missing_details"
    WRONG_TONE = "wrong_tone"
    POOR_STRUCTURE = "poor_structure"
    MEDICAL_INACCURACY = "medical_inaccuracy"
    EPIC_SYNTAX_ERRORS = "epic_syntax_errors"
    IRRELEVANT_CONTENT = "irrelevant_content"
    FORMATTING_ISSUES = "formatting_issues"


# =============================================================================
# STAGE 6: ERROR TAXONOMY
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error taxonomy shared by exceptions and failed responses.

    What it does:
        Gives every failure a stable code that survives serialization,
        so the caller can decide between retrying, falling back and
        surfacing the error.
    """

    # -------------------------------------------------------------------------
    # 6.1 Provider Errors
    # -------------------------------------------------------------------------
    MISSING_API_KEY = "MISSING_API_KEY"
    INVALID_API_KEY = "INVALID_API_KEY"
    RATE_LIMITED = "RATE_LIMITED"
    SAFETY_FILTER = "SAFETY_FILTER"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    BAD_REQUEST = "BAD_REQUEST"

    # -------------------------------------------------------------------------
    # 6.2 Pipeline Errors
    # -------------------------------------------------------------------------
    PRESERVATION_VIOLATION = "PRESERVATION_VIOLATION"
    INCOMPLETE_OUTPUT = "INCOMPLETE_OUTPUT"
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
