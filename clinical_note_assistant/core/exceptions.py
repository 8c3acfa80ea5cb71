"""
Domain Exceptions for the Clinical Note Assistant

This module defines all custom exceptions used throughout the note
assistant. Well-defined exceptions enable:
    1. Clear error categorization for debugging
    2. Specific catch blocks for different failure modes
    3. Rich error context (error code, provider, processing trace)

Exception Hierarchy:
    ClinicalNoteAssistantError (base)
    ├── ConfigurationError          → Invalid configuration
    ├── GenerationError             → Note generation failures
    │   ├── PromptError
    │   ├── IncompleteOutputError   → Model dropped a section
    │   ├── AllProvidersFailedError → Primary and fallback both failed
    │   └── LLMError                → Provider API failures
    │       ├── LLMAuthenticationError
    │       ├── LLMRateLimitError
    │       ├── LLMContentFilteredError
    │       ├── LLMTimeoutError
    │       └── LLMEmptyResponseError
    ├── ValidationError             → Epic syntax check itself failed
    ├── SectionParseError           → Section detection failed
    └── FeedbackError               → Invalid clinician feedback

Every exception carries an ErrorCode so callers can branch on the
taxonomy without string matching.

Usage:
    from clinical_note_assistant.core.exceptions import LLMTimeoutError

    try:
        text = await client.generate(prompt)
    except LLMTimeoutError as e:
        logger.warning(f"Provider timed out: {e.provider}")

Author: Shubham Singh
Date: December 2025
"""

from typing import List, Optional

from clinical_note_assistant.core.enums import ErrorCode


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================
# All domain exceptions inherit from this base class.


class ClinicalNoteAssistantError(Exception):
    """
    Base exception for all note assistant errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Why it exists:
        1. Enables `except ClinicalNoteAssistantError` to catch all domain errors
        2. Provides consistent error context structure
        3. Separates domain errors from system errors

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
        code: Error taxonomy code
    """

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        code: Optional[ErrorCode] = None,
    ):
        """
        Initialize with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional debugging context (provider, stage, inputs)
            code: Overrides the class-level error code
        """
        self.message = message
        self.context = context or {}
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ClinicalNoteAssistantError):
    """
    Error in assistant configuration.

    When raised:
        - Missing API key for the primary provider
        - Unknown provider name
        - Quality threshold or timeout out of range

    Example:
        >>> raise ConfigurationError(
        ...     "API key not configured",
        ...     context={"setting": "ANTHROPIC_API_KEY", "source": "environment"}
        ... )
    """

    code = ErrorCode.MISSING_API_KEY


# =============================================================================
# STAGE 3: GENERATION ERRORS
# =============================================================================


class GenerationError(ClinicalNoteAssistantError):
    """
    Base exception for note generation errors.

    What it does:
        Parent class for all errors that occur while producing a note,
        from prompt construction to provider calls to output checks.
    """

    pass


class PromptError(GenerationError):
    """
    Error constructing a generation prompt.

    When raised:
        - Empty transcript handed to the prompt builder
        - A section marked for update is missing from the parsed note
    """

    code = ErrorCode.BAD_REQUEST


class IncompleteOutputError(GenerationError):
    """
    The model's response omitted one or more sections of the note.

    Attributes:
        missing_sections: Section type values that did not come back
    """

    code = ErrorCode.INCOMPLETE_OUTPUT

    def __init__(self, missing_sections: List[str], provider: Optional[str] = None):
        self.missing_sections = missing_sections
        super().__init__(
            f"Generated note is missing {len(missing_sections)} section(s)",
            context={"missing": ", ".join(missing_sections), "provider": provider},
        )


class AllProvidersFailedError(GenerationError):
    """
    Neither the primary nor the fallback provider produced a usable note.

    Attributes:
        errors: Per-provider error messages in attempt order
    """

    code = ErrorCode.ALL_PROVIDERS_FAILED

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message, context={"attempts": len(self.errors)})


class LLMError(GenerationError):
    """
    Error from an LLM provider API call.

    What it does:
        Wraps errors from the underlying SDK (Gemini, Claude) with the
        classified error code and the processing steps completed before
        the failure.

    Attributes:
        provider: The LLM provider (gemini, claude)
        original_error: The wrapped original exception
        processing_steps: Trace of steps accumulated so far
    """

    code = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        provider: str,
        original_error: Optional[Exception] = None,
        code: Optional[ErrorCode] = None,
        processing_steps: Optional[List[str]] = None,
    ):
        self.provider = provider
        self.original_error = original_error
        self.processing_steps = list(processing_steps or [])
        super().__init__(
            message,
            context={
                "provider": provider,
                "original_error": str(original_error) if original_error else None,
            },
            code=code,
        )


class LLMAuthenticationError(LLMError):
    """API key missing or rejected by the provider (401/403)."""

    code = ErrorCode.INVALID_API_KEY


class LLMRateLimitError(LLMError):
    """
    Provider rate limit or quota exceeded (429).

    Attributes:
        retry_after: Seconds to wait before retrying (if known)
    """

    code = ErrorCode.RATE_LIMITED

    def __init__(
        self,
        provider: str,
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {provider}", provider=provider, original_error=original_error
        )
        self.context["retry_after"] = retry_after


class LLMContentFilteredError(LLMError):
    """
    Response was blocked by the provider's safety settings.
    """

    code = ErrorCode.SAFETY_FILTER

    def __init__(self, provider: str, reason: Optional[str] = None):
        super().__init__(
            f"Content filtered by {provider} safety settings: {reason or 'unknown reason'}",
            provider=provider,
        )
        self.reason = reason


class LLMTimeoutError(LLMError):
    """
    Provider call exceeded its per-call timeout.

    Attributes:
        timeout_seconds: The timeout that was exceeded
    """

    code = ErrorCode.REQUEST_TIMEOUT

    def __init__(self, provider: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{provider} request timed out after {timeout_seconds}s", provider=provider)
        self.context["timeout_seconds"] = timeout_seconds


class LLMEmptyResponseError(LLMError):
    """Provider returned no text."""

    code = ErrorCode.EMPTY_RESPONSE


# =============================================================================
# STAGE 4: VALIDATION AND PARSING ERRORS
# =============================================================================
# Both are non-fatal in the pipeline: callers convert them into
# warnings and degraded scores rather than aborting.


class ValidationError(ClinicalNoteAssistantError):
    """
    Error during Epic syntax validation.

    What it does:
        Indicates a problem with the validation process itself,
        not that the note is invalid (that's an EpicSyntaxValidation).
    """

    code = ErrorCode.VALIDATION_ERROR


class SectionParseError(ClinicalNoteAssistantError):
    """
    Section detection could not process the input.

    When raised:
        - Note text is not a string
        - Note text is empty
    """

    code = ErrorCode.PARSE_ERROR


# =============================================================================
# STAGE 5: FEEDBACK ERRORS
# =============================================================================


class FeedbackError(ClinicalNoteAssistantError):
    """
    Clinician feedback failed validation.

    When raised:
        - Rating outside 1-5
        - Unknown quality issue tag
    """

    code = ErrorCode.BAD_REQUEST
