"""
Provider Client Protocol and Base Implementation

This module defines the interface every LLM provider client implements
and a base class carrying the shared generation flow: prompt assembly,
retry, response validation, Epic syntax checking, quality scoring and
error classification.

Protocol Pattern:
    - ProviderClientProtocol defines the interface
    - BaseProviderClient provides the common implementation
    - Concrete clients (GeminiClient, ClaudeClient) implement _call_api()

Boundary Validation:
    SDK responses are loosely typed. Each concrete client reduces its
    SDK response to a plain dict which is validated here as a
    ProviderResponse (pydantic) before anything downstream reads it.

Quality Score:
    base   = model self-evaluation (second call, JSON {"qualityScore": n})
             or the deterministic heuristic if that fails or is disabled
    final  = clamp(base - 2 * [syntax invalid] + preservation_score, 1, 10)

Author: Shubham Singh
Date: December 2025
"""

import asyncio
import json
import math
import re
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from clinical_note_assistant.clients.prompts import (
    HEALTH_CHECK_PROMPT,
    build_note_prompt,
    build_quality_prompt,
    build_system_prompt,
)
from clinical_note_assistant.core.config import ProviderConfig
from clinical_note_assistant.core.constants import (
    QUALITY_BASE_SCORE,
    QUALITY_MEDICAL_TERMS,
    QUALITY_STRUCTURE_HEADERS,
    QUALITY_UNPROFESSIONAL_PHRASES,
    STOPWORDS,
)
from clinical_note_assistant.core.enums import AIProvider, ErrorCode
from clinical_note_assistant.core.exceptions import (
    LLMAuthenticationError,
    LLMContentFilteredError,
    LLMEmptyResponseError,
    LLMError,
    LLMRateLimitError,
)
from clinical_note_assistant.core.models import (
    EpicSyntaxValidation,
    GeneratedNote,
    GenerationMetadata,
    NoteGenerationRequest,
    NoteGenerationResponse,
    PerformanceInfo,
)
from clinical_note_assistant.validation.epic_syntax_validator import EpicSyntaxValidator


# Characters per token, for providers that do not report usage
CHARS_PER_TOKEN = 3.7

# Error codes worth retrying inside one client call
RETRYABLE_CODES = {ErrorCode.RATE_LIMITED, ErrorCode.SERVER_ERROR, ErrorCode.NETWORK_ERROR}


# =============================================================================
# STAGE 1: PROVIDER RESPONSE (BOUNDARY MODEL)
# =============================================================================


class ProviderResponse(BaseModel):
    """
    Validated completion returned by a provider SDK.

    Attributes:
        text: Generated text (must not be blank)
        prompt_tokens: Input tokens reported by the provider
        completion_tokens: Output tokens reported by the provider
        model: Model that served the request
        finish_reason: Provider stop reason, if reported
    """

    text: str
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    model: Optional[str] = None
    finish_reason: Optional[str] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("provider returned blank text")
        return v

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


# =============================================================================
# STAGE 2: ERROR CLASSIFICATION
# =============================================================================


def _status_of(error: Exception) -> Optional[int]:
    """HTTP status from an SDK exception (anthropic: status_code, google: code)."""
    for attribute in ("status_code", "status", "code"):
        value = getattr(error, attribute, None)
        if isinstance(value, int):
            return value
    return None


def _retry_after(error: Exception) -> Optional[int]:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    value = headers.get("retry-after")
    try:
        return int(float(value)) if value is not None else None
    except (TypeError, ValueError):
        return None


def classify_provider_error(error: Exception, provider: str) -> LLMError:
    """
    Map an SDK exception onto the error taxonomy.

    HTTP status is checked first, then the message text.

    Args:
        error: Exception raised by the SDK
        provider: Provider name for the resulting error

    Returns:
        LLMError subclass carrying the matching ErrorCode
    """
    if isinstance(error, LLMError):
        return error

    status = _status_of(error)
    message = str(error)
    lowered = message.lower()

    # Step 1: Status codes
    if status in (401, 403):
        return LLMAuthenticationError(
            f"{provider} rejected the API key: {message}", provider=provider, original_error=error
        )
    if status == 429:
        return LLMRateLimitError(provider, retry_after=_retry_after(error), original_error=error)
    if status == 400:
        return LLMError(
            f"{provider} rejected the request: {message}",
            provider=provider,
            original_error=error,
            code=ErrorCode.BAD_REQUEST,
        )
    if status is not None and (status >= 500 or status == 529):
        return LLMError(
            f"{provider} server error ({status}): {message}",
            provider=provider,
            original_error=error,
            code=ErrorCode.SERVER_ERROR,
        )

    # Step 2: Message text
    if "api key" in lowered or "api_key" in lowered or "unauthenticated" in lowered:
        return LLMAuthenticationError(
            f"{provider} API key invalid: {message}", provider=provider, original_error=error
        )
    if "quota" in lowered or "rate limit" in lowered or "resource exhausted" in lowered:
        return LLMRateLimitError(provider, original_error=error)
    if "safety" in lowered or "blocked" in lowered:
        return LLMContentFilteredError(provider=provider, reason=message)
    if "overloaded" in lowered:
        return LLMError(
            f"{provider} overloaded: {message}",
            provider=provider,
            original_error=error,
            code=ErrorCode.SERVER_ERROR,
        )
    if "timeout" in lowered or "timed out" in lowered or "deadline" in lowered:
        return LLMError(
            f"{provider} request timed out: {message}",
            provider=provider,
            original_error=error,
            code=ErrorCode.REQUEST_TIMEOUT,
        )
    if "network" in lowered or "connection" in lowered or "unreachable" in lowered:
        return LLMError(
            f"{provider} network error: {message}",
            provider=provider,
            original_error=error,
            code=ErrorCode.NETWORK_ERROR,
        )

    return LLMError(f"{provider} API error: {message}", provider=provider, original_error=error)


# =============================================================================
# STAGE 3: QUALITY SCORING
# =============================================================================


_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_SCORE = r"(?<![\d.])(10(?:\.0+)?|[1-9](?:\.\d+)?)(?![\d.])"
# "7/10", "7 out of 10", then "score: 7", "rating of 7", "rate this a 7"
_ANCHORED_SCORES = [
    re.compile(_SCORE + r"\s*(?:/|out of)\s*10\b", re.IGNORECASE),
    re.compile(r"\b(?:score|rating|rated?)\b[^\d\n]{0,20}?" + _SCORE, re.IGNORECASE),
]


def parse_quality_reply(reply: str) -> Optional[float]:
    """
    Extract a 1-10 score from a self-evaluation reply.

    Accepts {"qualityScore": n} JSON (possibly wrapped in prose or code
    fences) or falls back to a 1-10 number anchored to "/10", "out of 10" or a
    score/rating keyword. Bare numbers ("3 issues") are never taken.

    Returns:
        Score, or None if the reply has no usable score
    """
    match = _JSON_OBJECT.search(reply)
    if match:
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            value = payload.get("qualityScore", payload.get("quality_score"))
            if isinstance(value, (int, float)) and 1 <= value <= 10:
                return float(value)

    for pattern in _ANCHORED_SCORES:
        number = pattern.search(reply)
        if number:
            return float(number.group(1))
    return None


def combine_quality_score(base: float, validation: EpicSyntaxValidation) -> float:
    """Adjust a base score for Epic syntax and clamp to [1, 10]."""
    score = base
    if not validation.is_valid:
        score -= 2
    score += validation.preservation_score
    return round(min(10.0, max(1.0, score)), 1)


class HeuristicQualityScorer:
    """
    Deterministic quality score from note text alone.

    Scoring (starting at 5):
        +1    length between 300 and 2500 characters
        +2    clinical terminology (0.25 per term, capped)
        +1    Epic tokens present and all well-formed
        +1.5  at least three recognisable section headers
        +0.5  professional tone (no first person or slang)
        +1    meaningful overlap with the transcript vocabulary

    Clamped to [1, 10] and rounded to 0.1.
    """

    _stopwords = set(STOPWORDS)

    @classmethod
    def score(
        cls,
        content: str,
        transcript: str = "",
        validation: Optional[EpicSyntaxValidation] = None,
    ) -> float:
        lowered = content.lower()
        score = QUALITY_BASE_SCORE

        if 300 < len(content) < 2500:
            score += 1

        terms = sum(1 for term in QUALITY_MEDICAL_TERMS if term in lowered)
        score += min(terms * 0.25, 2)

        if validation is not None and validation.has_tokens and validation.is_valid:
            score += 1

        headers = sum(1 for header in QUALITY_STRUCTURE_HEADERS if header in lowered)
        if headers >= 3:
            score += 1.5

        padded = f" {lowered} "
        first_person = " i " in padded or "i think" in lowered or "i believe" in lowered
        slang = any(phrase in lowered for phrase in QUALITY_UNPROFESSIONAL_PHRASES)
        if not first_person and not slang:
            score += 0.5

        if transcript:
            transcript_words = [
                w for w in re.findall(r"[a-z]+", transcript.lower())
                if len(w) > 3 and w not in cls._stopwords
            ]
            note_words = set(re.findall(r"[a-z]+", lowered))
            relevant = sum(1 for w in transcript_words if w in note_words)
            if transcript_words and relevant > min(len(transcript_words) * 0.1, 10):
                score += 1

        return round(min(10.0, max(1.0, score)), 1)


# =============================================================================
# STAGE 4: PROVIDER CLIENT PROTOCOL
# =============================================================================


@runtime_checkable
class ProviderClientProtocol(Protocol):
    """
    Protocol defining the interface for provider clients.

    What it does:
        Specifies what the ProviderManager needs from a client, so fakes
        in tests and the real SDK clients are interchangeable.

    Required Methods:
        generate_note(request) → NoteGenerationResponse (raises LLMError)
        is_healthy() → bool
    """

    @property
    def provider(self) -> AIProvider:
        ...

    @property
    def model_name(self) -> str:
        ...

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        ...

    async def is_healthy(self) -> bool:
        ...


# =============================================================================
# STAGE 5: BASE PROVIDER CLIENT (ABSTRACT)
# =============================================================================


class BaseProviderClient(ABC):
    """
    Abstract base class for provider clients with the shared flow.

    What it does:
        Runs one note generation end to end: prompts, API call with
        retry, boundary validation, Epic syntax validation, quality
        scoring, and assembly of the GeneratedNote.

    Why it exists:
        1. DRY: Gemini and Claude differ only in the SDK call
        2. Consistent behavior: same retry, scoring and error taxonomy
        3. Testability: subclasses (or fakes) implement one method

    What subclasses must implement:
        - _call_api(system_prompt, user_prompt, max_tokens): SDK call
          returning a dict with text and usage fields
        - provider: Property returning the AIProvider

    What base class provides:
        - Retry with backoff for rate limits, server and network errors
        - Error classification with processing-step trace
        - Quality scoring (self-evaluation or heuristic)
        - Metrics
    """

    def __init__(
        self,
        config: ProviderConfig,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        self_evaluate: bool = True,
    ):
        """
        Initialize base provider client.

        Args:
            config: Provider model and sampling parameters
            max_retries: Attempts per API call (1 = no retry)
            retry_delay: Initial backoff in seconds, doubled per retry
            self_evaluate: Ask the model to rate its own note
        """
        # =====================================================================
        # STAGE 5.1: STORE CONFIGURATION
        # =====================================================================
        self._config = config
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._self_evaluate = self_evaluate
        self._validator = EpicSyntaxValidator()

        # =====================================================================
        # STAGE 5.2: TRACKING STATE
        # =====================================================================
        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 6: PUBLIC API
    # =========================================================================

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        """
        Generate a clinical note.

        Algorithm:
            1. Build system and user prompts
            2. Call the API (with retry)
            3. Validate Epic syntax against the expected source
            4. Score quality
            5. Assemble the GeneratedNote

        Args:
            request: Generation request

        Returns:
            Successful NoteGenerationResponse

        Raises:
            LLMError: Classified provider failure carrying processing_steps
        """
        started = time.perf_counter()
        steps: List[str] = [f"Starting {self.provider.value} note generation"]

        try:
            # Step 1: Prompts
            system_prompt = build_system_prompt(
                request.preferences.emr, request.preferences.visit_type
            )
            user_prompt = build_note_prompt(request)
            steps.append(f"Prompt prepared | {len(user_prompt)} chars")

            # Step 2: API call
            provider_started = time.perf_counter()
            response = await self._invoke(system_prompt, user_prompt)
            provider_duration = time.perf_counter() - provider_started
            steps.append(f"Response received | {len(response.text)} chars")

            # Step 3: Epic syntax
            content = response.text.strip()
            validation = self._validator.validate(content, reference=request.expected_syntax_source)
            steps.append(
                f"Epic syntax validated | Valid: {validation.is_valid} | "
                f"Preservation: {validation.preservation_score:.2f}"
            )

            # Step 4: Quality
            quality = await self._score_quality(content, request, validation, steps)

        except LLMError as e:
            self._failed_calls += 1
            e.processing_steps = steps + [f"Failed: {e.code.value}"]
            logger.error(f"{self.provider.value} generation failed | Code: {e.code.value} | {e.message}")
            raise

        # Step 5: Assemble
        prompt_tokens = response.prompt_tokens or estimate_tokens(system_prompt + user_prompt)
        completion_tokens = response.completion_tokens or estimate_tokens(content)
        total_duration = time.perf_counter() - started

        note = GeneratedNote(
            id=f"note_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}",
            content=content,
            ai_provider=self.provider,
            quality_score=quality,
            epic_syntax_validation=validation,
            metadata=GenerationMetadata(
                processing_duration=round(total_duration, 3),
                tokens_used=prompt_tokens + completion_tokens,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                smart_phrases_detected=list(validation.smart_phrases.found),
                dot_phrases_detected=list(validation.dot_phrases.found),
                template_used=request.template.id if request.template else None,
                patient_id=request.transcript.patient_id,
                model=response.model or self.model_name,
            ),
        )
        self._total_calls += 1
        steps.append(f"Quality score: {quality}/10")

        logger.info(
            f"Note generated | Provider: {self.provider.value} | Quality: {quality} | "
            f"Tokens: {note.metadata.tokens_used} | Duration: {total_duration:.2f}s"
        )
        return NoteGenerationResponse(
            success=True,
            note=note,
            provider=self.provider,
            performance=PerformanceInfo(
                total_duration=round(total_duration, 3),
                provider_duration=round(provider_duration, 3),
                processing_steps=steps,
            ),
        )

    async def is_healthy(self) -> bool:
        """Minimal round trip expecting a canned "OK"."""
        try:
            response = await self._call_once("You are a health check.", HEALTH_CHECK_PROMPT, 16)
        except LLMError as e:
            logger.warning(f"{self.provider.value} health check failed | Code: {e.code.value}")
            return False
        return "ok" in response.text.lower()

    # =========================================================================
    # STAGE 7: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    async def _call_api(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Make the actual API call. Must be implemented by subclasses.

        Returns:
            Dict with "text" and optionally "prompt_tokens",
            "completion_tokens", "model", "finish_reason"

        Raises:
            LLMError or any SDK exception (classified by the caller)
        """
        ...

    @property
    @abstractmethod
    def provider(self) -> AIProvider:
        """Return the provider this client talks to."""
        ...

    # =========================================================================
    # STAGE 8: COMMON IMPLEMENTATION
    # =========================================================================

    @property
    def model_name(self) -> str:
        return self._config.model

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def _call_once(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> ProviderResponse:
        """One API call, classified and validated at the boundary."""
        try:
            payload = await self._call_api(system_prompt, user_prompt, max_tokens)
        except Exception as e:
            raise classify_provider_error(e, self.provider.value) from e

        try:
            return ProviderResponse.model_validate(payload)
        except PydanticValidationError as e:
            raise LLMEmptyResponseError(
                f"{self.provider.value} returned an unusable response: {e.errors()[0]['msg']}",
                provider=self.provider.value,
                original_error=e,
            ) from e

    async def _invoke(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> ProviderResponse:
        """API call with retry for transient failures."""
        last_error: Optional[LLMError] = None
        for attempt in range(1, self._max_retries + 1):
            try:
                return await self._call_once(system_prompt, user_prompt, max_tokens)
            except LLMError as e:
                last_error = e
                if e.code not in RETRYABLE_CODES or attempt == self._max_retries:
                    raise
                wait_time = self._retry_delay * (2 ** (attempt - 1))
                if isinstance(e, LLMRateLimitError) and e.retry_after:
                    wait_time = e.retry_after
                logger.warning(
                    f"{self.provider.value} call failed, retrying in {wait_time}s "
                    f"(attempt {attempt}/{self._max_retries}) | Code: {e.code.value}"
                )
                await asyncio.sleep(wait_time)
        raise last_error

    async def _score_quality(
        self,
        content: str,
        request: NoteGenerationRequest,
        validation: EpicSyntaxValidation,
        steps: List[str],
    ) -> float:
        base: Optional[float] = None
        if self._self_evaluate:
            try:
                reply = await self._call_once(
                    "You are a clinical documentation quality reviewer.",
                    build_quality_prompt(content, request.transcript.content),
                    512,
                )
                base = parse_quality_reply(reply.text)
            except LLMError as e:
                logger.warning(
                    f"{self.provider.value} self-evaluation failed, using heuristic | "
                    f"Code: {e.code.value}"
                )
            if base is None:
                steps.append("Self-evaluation unavailable, heuristic score used")
            else:
                steps.append(f"Self-evaluation score: {base}")

        if base is None:
            base = HeuristicQualityScorer.score(content, request.transcript.content, validation)

        return combine_quality_score(base, validation)

    # =========================================================================
    # STAGE 9: METRICS
    # =========================================================================

    @property
    def total_calls(self) -> int:
        """Number of successful generations."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Percentage of successful generations."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
