"""
Core Layer - Domain Models, Enums, and Configuration

This layer contains PURE, side-effect-free components that form the foundation
of the clinical note assistant. No external dependencies beyond the standard
library and python-dotenv (configuration loading only).

Submodules:
    models.py     → Data structures (ParsedNote, GeneratedNote, DeltaChange, ...)
    enums.py      → Enumerations (SectionType, AIProvider, ErrorCode, ...)
    constants.py  → Header vocabulary, aliases, Epic grammars, log format
    config.py     → Configuration dataclasses
    exceptions.py → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.core.models import (
    DetectedSection,
    ParsedNote,
    SectionUpdateConfig,
    EpicSyntaxValidation,
    GeneratedNote,
    NoteGenerationRequest,
    NoteGenerationResponse,
    DeltaChange,
)
from clinical_note_assistant.core.enums import (
    SectionType,
    AIProvider,
    EMRType,
    ErrorCode,
    VisitType,
)
from clinical_note_assistant.core.config import (
    AssistantConfiguration,
    ProviderConfig,
    ProviderManagerConfig,
)
from clinical_note_assistant.core.exceptions import (
    ClinicalNoteAssistantError,
    ConfigurationError,
    GenerationError,
    LLMError,
    ValidationError,
)

__all__ = [
    # Models
    "DetectedSection",
    "ParsedNote",
    "SectionUpdateConfig",
    "EpicSyntaxValidation",
    "GeneratedNote",
    "NoteGenerationRequest",
    "NoteGenerationResponse",
    "DeltaChange",
    # Enums
    "SectionType",
    "AIProvider",
    "EMRType",
    "ErrorCode",
    "VisitType",
    # Configuration
    "AssistantConfiguration",
    "ProviderConfig",
    "ProviderManagerConfig",
    # Exceptions
    "ClinicalNoteAssistantError",
    "ConfigurationError",
    "GenerationError",
    "LLMError",
    "ValidationError",
]
