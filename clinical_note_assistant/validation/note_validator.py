"""
Note Validator - EMR Format Validation

This module checks that a note fits the EMR it is headed for:
    1. Credible notes must not carry any Epic macro syntax
    2. SOAP notes must carry the four SOAP headers in order
    3. Unfilled placeholders are flagged
    4. Epic notes with malformed macros are flagged

All checks are rule-based and deterministic; no API calls.

Pipeline Position:
    SelectiveUpdater → EpicSyntaxValidator → [NoteValidator] → caller
                                              ^^^^^^^^^^^^^^^
                                              You are here

Author: Shubham Singh
Date: December 2025
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from clinical_note_assistant.core.constants import (
    EPIC_WILDCARD,
    PLACEHOLDER_PATTERNS,
    SECTION_TITLES,
    SOAP_SECTION_TYPES,
)
from clinical_note_assistant.core.enums import EMRType, NoteFormat
from clinical_note_assistant.validation.epic_syntax_validator import EpicTokenScanner


# =============================================================================
# STAGE 1: RESULT MODEL
# =============================================================================


@dataclass
class FormatValidationResult:
    """
    Outcome of EMR format validation.

    Attributes:
        is_valid: No errors were found
        score: 0-100, starting at 100 and reduced per finding
        errors: Findings that make the note unfit for the EMR
        warnings: Findings that need clinician attention
        recommendations: Suggested fixes
    """

    is_valid: bool
    score: float = 100.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "score": self.score,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
        }


# =============================================================================
# STAGE 2: RULE-BASED CHECKS (STATIC CLASS)
# =============================================================================
# Each check returns (errors, warnings, penalty).


class RuleBasedChecks:
    """
    Static methods for rule-based EMR format validation.

    Checks Performed:
        1. Epic syntax in Credible notes (error)
        2. Malformed SmartPhrases in Epic notes (warning)
        3. SOAP headers present and ordered (error / warning)
        4. Placeholder text (warning)
        5. Minimum length (warning)
    """

    _placeholder_regex = re.compile("|".join(PLACEHOLDER_PATTERNS), re.IGNORECASE)

    @staticmethod
    def check_credible_syntax(note_text: str) -> Tuple[List[str], List[str], float]:
        """
        Credible is plain text: any Epic token is an error.
        """
        sp, sp_bad = EpicTokenScanner.smart_phrases(note_text)
        dp, dp_bad = EpicTokenScanner.dot_phrases(note_text)
        sl, sl_bad = EpicTokenScanner.smart_lists(note_text)
        tokens = sp + sp_bad + dp + dp_bad + sl + sl_bad
        if note_text.count(EPIC_WILDCARD):
            tokens.append(EPIC_WILDCARD)

        if not tokens:
            return [], [], 0.0
        preview = ", ".join(dict.fromkeys(tokens[:5]))
        return [f"EPIC_SYNTAX_IN_CREDIBLE: Epic syntax found in Credible note ({preview})"], [], 15.0

    @staticmethod
    def check_epic_syntax(note_text: str) -> Tuple[List[str], List[str], float]:
        """Epic notes may carry macros, but malformed ones are flagged."""
        _, sp_bad = EpicTokenScanner.smart_phrases(note_text)
        _, dp_bad = EpicTokenScanner.dot_phrases(note_text)
        malformed = sp_bad + dp_bad
        if not malformed:
            return [], [], 0.0
        return [], [f"MALFORMED_EPIC_SYNTAX: {', '.join(malformed)}"], 10.0

    @staticmethod
    def check_soap_structure(note_text: str) -> Tuple[List[str], List[str], float]:
        """
        SOAP headers must all be present and appear in S-O-A-P order.
        """
        errors: List[str] = []
        warnings: List[str] = []
        penalty = 0.0

        positions = []
        missing = []
        for section_type in SOAP_SECTION_TYPES:
            header = SECTION_TITLES[section_type]
            match = re.search(rf"(?im)^\s*{re.escape(header)}\s*:", note_text)
            if match:
                positions.append(match.start())
            else:
                missing.append(header)

        if missing:
            errors.append(f"MISSING_SOAP_SECTIONS: {', '.join(missing)}")
            penalty += 15.0 * len(missing)

        if positions != sorted(positions):
            warnings.append("SOAP_ORDER: SOAP sections are not in standard order")
            penalty += 5.0

        return errors, warnings, penalty

    @classmethod
    def check_placeholders(cls, note_text: str, emr_type: EMRType) -> Tuple[List[str], List[str], float]:
        """
        Flag unfilled placeholders. Epic wildcards are legitimate in Epic notes.
        """
        found = []
        for match in cls._placeholder_regex.finditer(note_text):
            token = match.group(0)
            if token == EPIC_WILDCARD and emr_type is EMRType.EPIC:
                continue
            found.append(token)
        if not found:
            return [], [], 0.0
        unique = list(dict.fromkeys(found))
        return [], [f"PLACEHOLDER_TEXT: {', '.join(unique)}"], 5.0 * len(unique)

    @staticmethod
    def check_minimum_length(note_text: str, min_length: int = 100) -> Tuple[List[str], List[str], float]:
        if len(note_text.strip()) < min_length:
            return (
                [],
                [f"NOTE_TOO_SHORT: Note is {len(note_text.strip())} chars, minimum is {min_length}"],
                10.0,
            )
        return [], [], 0.0


# =============================================================================
# STAGE 3: CLEANUP
# =============================================================================

_SMART_PHRASE_ANY = re.compile(r"@[A-Za-z0-9_]+@")
_DOT_PHRASE_ANY = re.compile(r"(?<![\w.])\.[A-Za-z][A-Za-z0-9]*(?!\w)")
_SMART_LIST_ANY = re.compile(r"\{([^{}\n:]+):[^{}\n]*\}")


def clean_epic_syntax(note_text: str) -> str:
    """
    Strip Epic macro syntax so a note can be pasted into Credible.

    SmartPhrases and DotPhrases are removed, SmartLists collapse to
    their list name and wildcards become "[field]".

    Example:
        >>> clean_epic_syntax("Mood: {Mood:123}. @VITALS@ *** .hpi")
        'Mood: Mood. [field]'
    """
    cleaned = _SMART_PHRASE_ANY.sub("", note_text)
    cleaned = _DOT_PHRASE_ANY.sub("", cleaned)
    cleaned = _SMART_LIST_ANY.sub(lambda m: m.group(1).strip(), cleaned)
    cleaned = cleaned.replace(EPIC_WILDCARD, "[field]")
    # Collapse the gaps left by removed tokens
    cleaned = re.sub(r"[ \t]{2,}", " ", cleaned)
    cleaned = re.sub(r"[ \t]+$", "", cleaned, flags=re.MULTILINE)
    return cleaned.strip()


# =============================================================================
# STAGE 4: NOTE VALIDATOR CLASS
# =============================================================================


class NoteValidator:
    """
    Validates that a note fits its target EMR.

    What it does:
        Runs the rule-based checks appropriate for the EMR and note
        format and folds them into a FormatValidationResult.

    When to use:
        - After a selective update, before showing the draft
        - Before exporting a note to Credible

    Example:
        >>> validator = NoteValidator()
        >>> result = validator.validate(text, EMRType.CREDIBLE)
        >>> result.is_valid
        True
    """

    def __init__(self, min_length: int = 100):
        self._min_length = min_length

    def validate(
        self,
        note_text: str,
        emr_type: EMRType,
        note_format: Optional[NoteFormat] = None,
    ) -> FormatValidationResult:
        """
        Validate a note for an EMR.

        Args:
            note_text: Note text
            emr_type: Target EMR
            note_format: Expected layout; SOAP adds the SOAP structure check

        Returns:
            FormatValidationResult
        """
        checks = []
        if emr_type is EMRType.CREDIBLE:
            checks.append(RuleBasedChecks.check_credible_syntax(note_text))
        else:
            checks.append(RuleBasedChecks.check_epic_syntax(note_text))
        if note_format is NoteFormat.SOAP:
            checks.append(RuleBasedChecks.check_soap_structure(note_text))
        checks.append(RuleBasedChecks.check_placeholders(note_text, emr_type))
        checks.append(RuleBasedChecks.check_minimum_length(note_text, self._min_length))

        errors: List[str] = []
        warnings: List[str] = []
        score = 100.0
        for check_errors, check_warnings, penalty in checks:
            errors.extend(check_errors)
            warnings.extend(check_warnings)
            score -= penalty

        recommendations = []
        if any(e.startswith("EPIC_SYNTAX_IN_CREDIBLE") for e in errors):
            recommendations.append("Run clean_epic_syntax() before exporting to Credible")
        if any(w.startswith("PLACEHOLDER_TEXT") for w in warnings):
            recommendations.append("Replace placeholder text with actual clinical content")
        if any(w.startswith("MALFORMED_EPIC_SYNTAX") for w in warnings):
            recommendations.append("Correct SmartPhrase/DotPhrase casing before signing")

        result = FormatValidationResult(
            is_valid=not errors,
            score=max(0.0, score),
            errors=errors,
            warnings=warnings,
            recommendations=recommendations,
        )

        logger.debug(
            f"Format validation | EMR: {emr_type.value} | "
            f"Valid: {result.is_valid} | Score: {result.score:.0f}"
        )
        return result


def build_validation_report(result: FormatValidationResult, emr_type: EMRType) -> str:
    """Render a FormatValidationResult as a plain-text report."""
    lines = [
        f"VALIDATION REPORT ({emr_type.value})",
        f"Score: {result.score:.0f}/100",
        f"Status: {'VALID' if result.is_valid else 'INVALID'}",
    ]
    for heading, items in (
        ("ERRORS", result.errors),
        ("WARNINGS", result.warnings),
        ("RECOMMENDATIONS", result.recommendations),
    ):
        if items:
            lines.append("")
            lines.append(f"{heading} ({len(items)}):")
            lines.extend(f"{i}. {item}" for i, item in enumerate(items, 1))
    return "\n".join(lines)
