"""
Clinical Note Assistant

Transfer-of-Care selective section updates for AI-assisted clinical notes:
parse a prior note into typed sections, regenerate only the sections the
clinician selects from a new transcript, and verify that everything else
(including Epic SmartPhrases, DotPhrases and SmartLists) came back intact.

Architecture Overview:
    clinical_note_assistant/
    ├── core/           → Domain models, enums, configuration (Layer 0 - Pure)
    ├── validation/     → Epic syntax and EMR format checks (Layer 1)
    ├── parsing/        → Section detection (Layer 1)
    ├── tracking/       → Edit deltas, analytics, auto-save (Layer 2)
    ├── clients/        → Gemini / Claude clients, provider manager (Layer 3)
    ├── generation/     → Section configs, prompts, selective updater (Layer 4)
    ├── feedback/       → Clinician feedback analytics (Layer 4)
    └── pipeline.py     → Main orchestrator (Layer 5 - Public API)

Quick Start:
    from clinical_note_assistant import ClinicalNoteAssistant

    assistant = ClinicalNoteAssistant.from_environment()
    parsed = assistant.parse_note(previous_note)
    result = await assistant.generate_update(parsed, transcript)

Author: Shubham Singh
Date: December 2025
"""

__version__ = "1.0.0"
__author__ = "Shubham Singh"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Point
from clinical_note_assistant.pipeline import ClinicalNoteAssistant, configure_logging

# Core Models
from clinical_note_assistant.core.models import (
    DeltaChange,
    DetectedSection,
    GeneratedNote,
    NoteGenerationRequest,
    NoteGenerationResponse,
    ParsedNote,
    PatientTranscript,
    SectionUpdateConfig,
    SelectiveUpdateResult,
)

# Enums
from clinical_note_assistant.core.enums import (
    AIProvider,
    EMRType,
    ErrorCode,
    QualityIssue,
    SectionType,
    VisitType,
)

# Configuration
from clinical_note_assistant.core.config import AssistantConfiguration

# Exceptions
from clinical_note_assistant.core.exceptions import (
    ClinicalNoteAssistantError,
    ConfigurationError,
    GenerationError,
)

__all__ = [
    # Main Entry Point (use this!)
    "ClinicalNoteAssistant",
    "configure_logging",
    # Core Models
    "DeltaChange",
    "DetectedSection",
    "GeneratedNote",
    "NoteGenerationRequest",
    "NoteGenerationResponse",
    "ParsedNote",
    "PatientTranscript",
    "SectionUpdateConfig",
    "SelectiveUpdateResult",
    # Enums
    "AIProvider",
    "EMRType",
    "ErrorCode",
    "QualityIssue",
    "SectionType",
    "VisitType",
    # Configuration
    "AssistantConfiguration",
    # Exceptions
    "ClinicalNoteAssistantError",
    "ConfigurationError",
    "GenerationError",
]
