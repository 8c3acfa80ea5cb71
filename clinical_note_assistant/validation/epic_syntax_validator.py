"""
Epic Syntax Validator - SmartPhrase / DotPhrase / SmartList Checks

This module scans note text for Epic EMR macro tokens and reports which
are well-formed, which are malformed and (given a reference text) which
expected tokens went missing during generation.

Token Grammars:
    SmartPhrase  @ + uppercase-alnum + @          @ASSESSMENT@
    DotPhrase    . + lowercase-alnum token        .hpi
    SmartList    {Name:digits}                    {Plan:1}
    Wildcard     ***                              ***

Why Candidate Patterns:
    A strict pattern alone would silently skip `@assessment@`. Each kind
    is scanned with a loose "looks like an attempt" pattern first, and
    every candidate that fails the strict grammar is reported as
    malformed with a case-normalized suggestion.

Pipeline Position:
    ProviderClient → [EpicSyntaxValidator] → quality score
    SelectiveUpdater → [EpicSyntaxValidator] → validation score
                        ^^^^^^^^^^^^^^^^^^^^
                        You are here

Author: Shubham Singh
Date: December 2025
"""

import re
from collections import Counter
from typing import Dict, List, Optional, Tuple

from clinical_note_assistant.core.constants import (
    EPIC_DOT_PHRASE_CANDIDATE,
    EPIC_DOT_PHRASE_PATTERN,
    EPIC_PRESENCE_PATTERN,
    EPIC_SMART_LIST_CANDIDATE,
    EPIC_SMART_LIST_PATTERN,
    EPIC_SMART_PHRASE_CANDIDATE,
    EPIC_SMART_PHRASE_PATTERN,
    EPIC_WILDCARD,
)
from clinical_note_assistant.core.exceptions import ValidationError
from clinical_note_assistant.core.models import (
    EpicSyntaxValidation,
    TokenValidation,
    WildcardValidation,
)


# =============================================================================
# STAGE 1: TOKEN SCANNING
# =============================================================================


class EpicTokenScanner:
    """
    Static helpers that find Epic tokens in text.

    What it does:
        Splits candidate tokens of each kind into well-formed and
        malformed lists, in order of appearance.

    Why it exists:
        1. Shared by the validator, the section detector and the
           Credible format check
        2. Compiled once at import
    """

    _smart_phrase_candidate = re.compile(EPIC_SMART_PHRASE_CANDIDATE)
    _smart_phrase_valid = re.compile(EPIC_SMART_PHRASE_PATTERN)
    _dot_phrase_candidate = re.compile(EPIC_DOT_PHRASE_CANDIDATE)
    _dot_phrase_valid = re.compile(EPIC_DOT_PHRASE_PATTERN)
    _smart_list_candidate = re.compile(EPIC_SMART_LIST_CANDIDATE)
    _smart_list_valid = re.compile(EPIC_SMART_LIST_PATTERN)
    _presence = re.compile(EPIC_PRESENCE_PATTERN)

    @staticmethod
    def _split(text: str, candidate: re.Pattern, valid: re.Pattern) -> Tuple[List[str], List[str]]:
        well_formed: List[str] = []
        malformed: List[str] = []
        for match in candidate.finditer(text):
            token = match.group(0)
            if valid.fullmatch(token):
                well_formed.append(token)
            else:
                malformed.append(token)
        return well_formed, malformed

    @classmethod
    def smart_phrases(cls, text: str) -> Tuple[List[str], List[str]]:
        """Return (well_formed, malformed) SmartPhrases."""
        return cls._split(text, cls._smart_phrase_candidate, cls._smart_phrase_valid)

    @classmethod
    def dot_phrases(cls, text: str) -> Tuple[List[str], List[str]]:
        """Return (well_formed, malformed) DotPhrases."""
        return cls._split(text, cls._dot_phrase_candidate, cls._dot_phrase_valid)

    @classmethod
    def smart_lists(cls, text: str) -> Tuple[List[str], List[str]]:
        """Return (well_formed, malformed) SmartLists."""
        return cls._split(text, cls._smart_list_candidate, cls._smart_list_valid)

    @staticmethod
    def wildcards(text: str) -> List[str]:
        return [EPIC_WILDCARD] * text.count(EPIC_WILDCARD)

    @classmethod
    def has_epic_syntax(cls, text: str) -> bool:
        """Loose check: does the text contain anything Epic-looking?"""
        return bool(cls._presence.search(text))


# =============================================================================
# STAGE 2: SUGGESTIONS
# =============================================================================


def suggest_correction(token: str) -> str:
    """
    Return the case-normalized form of a malformed token.

    Example:
        >>> suggest_correction("@assessment@")
        '@ASSESSMENT@'
        >>> suggest_correction(".HPI")
        '.hpi'
    """
    if token.startswith("@") and token.endswith("@"):
        return "@" + re.sub(r"[^A-Z0-9]", "", token[1:-1].upper()) + "@"
    if token.startswith("."):
        return "." + re.sub(r"[^a-z0-9]", "", token[1:].lower())
    if token.startswith("{") and token.endswith("}"):
        name, _, ident = token[1:-1].partition(":")
        digits = re.sub(r"\D", "", ident) or "1"
        return "{" + name.strip() + ":" + digits + "}"
    return token


# =============================================================================
# STAGE 3: VALIDATOR
# =============================================================================


class EpicSyntaxValidator:
    """
    Validates Epic macro syntax in generated note text.

    What it does:
        Produces an EpicSyntaxValidation for a text, optionally against
        a reference text (template or previous note) whose tokens are
        expected to survive.

    Why it exists:
        1. Generated notes must paste into Epic without broken macros
        2. The preservation score feeds quality scoring and provider
           comparison
        3. Deterministic: same input, same output, no I/O

    Scoring:
        Without a reference, every candidate token in the text is an
        expected token and

            preservation_score = (expected - malformed) / expected

        With a reference, the reference's well-formed tokens are the
        expected ones and the score is the share of them still present
        in the text (by occurrence). 1.0 when nothing was expected.

    Example:
        >>> result = EpicSyntaxValidator().validate("@assessment@ .HPI {Plan:1}")
        >>> result.is_valid
        False
        >>> result.smart_phrases.malformed
        ['@assessment@']
    """

    def validate(self, text: str, reference: Optional[str] = None) -> EpicSyntaxValidation:
        """
        Validate Epic syntax in text.

        Args:
            text: Text to validate
            reference: Optional text whose tokens should be preserved

        Returns:
            EpicSyntaxValidation

        Raises:
            ValidationError: If text or reference is not a string
        """
        if not isinstance(text, str):
            raise ValidationError(
                "Epic syntax validation requires text",
                context={"received": type(text).__name__},
            )
        if reference is not None and not isinstance(reference, str):
            raise ValidationError(
                "Epic syntax reference must be text",
                context={"received": type(reference).__name__},
            )

        # Step 1: Scan the text
        sp_found, sp_bad = EpicTokenScanner.smart_phrases(text)
        dp_found, dp_bad = EpicTokenScanner.dot_phrases(text)
        sl_found, sl_bad = EpicTokenScanner.smart_lists(text)
        wildcards = EpicTokenScanner.wildcards(text)

        # Step 2: Compare against the reference, if any
        sp_missing: List[str] = []
        dp_missing: List[str] = []
        sl_missing: List[str] = []
        wildcards_replaced = 0

        if reference is None:
            expected = len(sp_found) + len(sp_bad) + len(dp_found) + len(dp_bad)
            expected += len(sl_found) + len(sl_bad)
            survived = expected - (len(sp_bad) + len(dp_bad) + len(sl_bad))
        else:
            ref_sp, _ = EpicTokenScanner.smart_phrases(reference)
            ref_dp, _ = EpicTokenScanner.dot_phrases(reference)
            ref_sl, _ = EpicTokenScanner.smart_lists(reference)
            expected = len(ref_sp) + len(ref_dp) + len(ref_sl)
            survived = 0
            for ref_tokens, out_tokens, missing in (
                (ref_sp, sp_found, sp_missing),
                (ref_dp, dp_found, dp_missing),
                (ref_sl, sl_found, sl_missing),
            ):
                kept, lost = self._compare(ref_tokens, out_tokens)
                survived += kept
                missing.extend(lost)
            wildcards_replaced = max(
                0, len(EpicTokenScanner.wildcards(reference)) - len(wildcards)
            )

        score = 1.0 if expected == 0 else round(max(0, survived) / expected, 4)

        # Step 3: Suggestions
        suggestions = [
            f"Replace '{token}' with '{suggest_correction(token)}'"
            for token in sp_bad + dp_bad + sl_bad
        ]
        suggestions.extend(
            f"Restore missing token '{token}'" for token in sp_missing + dp_missing + sl_missing
        )

        is_valid = not (sp_bad or dp_bad or sl_bad or sp_missing or dp_missing or sl_missing)

        return EpicSyntaxValidation(
            is_valid=is_valid,
            smart_phrases=TokenValidation(found=sp_found, missing=sp_missing, malformed=sp_bad),
            dot_phrases=TokenValidation(found=dp_found, missing=dp_missing, malformed=dp_bad),
            smart_lists=TokenValidation(found=sl_found, missing=sl_missing, malformed=sl_bad),
            wildcards=WildcardValidation(found=wildcards, replaced=wildcards_replaced),
            preservation_score=score,
            suggestions=suggestions,
        )

    @staticmethod
    def _compare(reference_tokens: List[str], output_tokens: List[str]) -> Tuple[int, List[str]]:
        """Return (occurrences kept, unique tokens with lost occurrences)."""
        ref_counts: Dict[str, int] = Counter(reference_tokens)
        out_counts: Dict[str, int] = Counter(output_tokens)
        kept = 0
        lost: List[str] = []
        for token in dict.fromkeys(reference_tokens):
            kept += min(ref_counts[token], out_counts.get(token, 0))
            if out_counts.get(token, 0) < ref_counts[token]:
                lost.append(token)
        return kept, lost
