"""
Validation Layer - Epic Syntax and EMR Format Validation

This layer checks generated notes for EMR compatibility.

Submodules:
    epic_syntax_validator.py → SmartPhrase/DotPhrase/SmartList validation
    note_validator.py        → Credible/SOAP/placeholder format checks

Dependency Rule:
    This layer depends on: core
    This layer is used by: parsing, clients, generation, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.validation.epic_syntax_validator import (
    EpicSyntaxValidator,
    EpicTokenScanner,
    suggest_correction,
)
from clinical_note_assistant.validation.note_validator import (
    FormatValidationResult,
    NoteValidator,
    RuleBasedChecks,
    build_validation_report,
    clean_epic_syntax,
)

__all__ = [
    "EpicSyntaxValidator",
    "EpicTokenScanner",
    "suggest_correction",
    "FormatValidationResult",
    "NoteValidator",
    "RuleBasedChecks",
    "build_validation_report",
    "clean_epic_syntax",
]
