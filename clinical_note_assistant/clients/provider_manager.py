"""
Provider Manager - Primary/Fallback Orchestration and Comparison

This module decides which provider drafts a note and compares
providers side by side.

Per-Request State Machine:
    Primary ──(success and quality >= threshold)──────────────→ return
       │
       └─(failure, timeout or low quality)─→ fallback enabled?
                                               ├─ no  → return primary result / error
                                               └─ yes → Fallback ─→ return
                                                          └─ fails → error

    Every provider call runs under asyncio.wait_for with the configured
    timeout. A timeout counts as a failure for fallback purposes and is
    never retried.

Comparison Rubric (points out of 10):
    quality         +4  higher quality score (or the only score)
    Epic syntax     +3  only one output valid, else higher preservation
    speed           +2  faster provider call
    availability    +1  only one provider succeeded

    A provider is recommended only when it outscores the other AND
    reaches 5 points; otherwise the result is manual_review.

Pipeline Position:
    SelectiveUpdater → [ProviderManager] → GeminiClient / ClaudeClient
                        ^^^^^^^^^^^^^^^
                        You are here

Author: Shubham Singh
Date: December 2025
"""

import asyncio
import dataclasses
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from clinical_note_assistant.clients.llm_client import ProviderClientProtocol
from clinical_note_assistant.core.config import AssistantConfiguration, ProviderManagerConfig
from clinical_note_assistant.core.enums import AIProvider, ErrorCode, Recommendation
from clinical_note_assistant.core.exceptions import (
    ConfigurationError,
    LLMError,
    LLMTimeoutError,
)
from clinical_note_assistant.core.models import (
    ErrorInfo,
    NoteGenerationRequest,
    NoteGenerationResponse,
    PerformanceInfo,
    ProviderComparisonResult,
)


# =============================================================================
# STAGE 1: USAGE STATISTICS AND HEALTH MODELS
# =============================================================================


@dataclass
class ProviderUsageStats:
    """In-memory usage counters for one provider."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time: float = 0.0
    average_response_time: float = 0.0
    last_used: Optional[datetime] = None

    def record(self, success: bool, duration: float) -> None:
        self.total_requests += 1
        self.total_response_time += duration
        self.average_response_time = self.total_response_time / self.total_requests
        self.last_used = datetime.now()
        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "successfulRequests": self.successful_requests,
            "failedRequests": self.failed_requests,
            "totalResponseTime": round(self.total_response_time, 3),
            "averageResponseTime": round(self.average_response_time, 3),
            "lastUsed": self.last_used.isoformat() if self.last_used else None,
        }


@dataclass
class HealthStatus:
    """Result of a provider health check."""

    providers: Dict[AIProvider, bool] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def any_healthy(self) -> bool:
        return any(self.providers.values())

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {p.value: ok for p, ok in self.providers.items()}
        result["checkedAt"] = self.checked_at.isoformat()
        return result


# =============================================================================
# STAGE 2: PROVIDER MANAGER CLASS
# =============================================================================


class ProviderManager:
    """
    Routes generation requests across Gemini and Claude.

    What it does:
        Runs the primary/fallback state machine with per-call timeouts,
        compares providers concurrently, health-checks them and keeps
        per-provider usage statistics for the lifetime of the instance.

    Why it exists:
        1. A single provider outage must not block note generation
        2. Low-quality drafts get a second opinion automatically
        3. Comparison data guides the choice of primary provider

    When to use:
        - One manager per assistant instance
        - generate_note() for every draft and selective update
        - compare_providers() when comparison is enabled

    Example:
        >>> manager = ProviderManager.from_configuration(config)
        >>> response = await manager.generate_note(request)
        >>> response.fallback_used
        False
    """

    def __init__(
        self,
        clients: Dict[AIProvider, ProviderClientProtocol],
        config: Optional[ProviderManagerConfig] = None,
    ):
        """
        Initialize the manager.

        Args:
            clients: Available provider clients keyed by provider
            config: Orchestration settings

        Raises:
            ConfigurationError: If no client is available
        """
        if not clients:
            raise ConfigurationError(
                "At least one provider client is required",
                context={"providers": []},
            )

        self._clients: Dict[AIProvider, ProviderClientProtocol] = dict(clients)
        self._config = config or ProviderManagerConfig()
        self._usage: Dict[AIProvider, ProviderUsageStats] = {
            provider: ProviderUsageStats() for provider in AIProvider
        }

        logger.info(
            f"ProviderManager initialized | Primary: {self._config.primary_provider.value} | "
            f"Fallback: {self._config.enable_fallback} | "
            f"Providers: {', '.join(p.value for p in self._clients)} | "
            f"Threshold: {self._config.quality_threshold} | Timeout: {self._config.timeout_seconds}s"
        )

    @classmethod
    def from_configuration(cls, config: AssistantConfiguration) -> "ProviderManager":
        """
        Build Gemini/Claude clients for every provider with an API key.

        Raises:
            ConfigurationError: If no provider has an API key
        """
        from clinical_note_assistant.clients.claude_client import ClaudeClient
        from clinical_note_assistant.clients.gemini_client import GeminiClient

        factories = {AIProvider.GEMINI: GeminiClient, AIProvider.CLAUDE: ClaudeClient}
        clients: Dict[AIProvider, ProviderClientProtocol] = {}
        for provider, factory in factories.items():
            if config.api_key_for(provider):
                clients[provider] = factory(
                    config.provider_config(provider), max_retries=config.retry_attempts
                )

        if not clients:
            raise ConfigurationError(
                "No provider API key configured",
                context={"settings": "GEMINI_API_KEY, ANTHROPIC_API_KEY"},
            )
        return cls(clients, config.manager_config())

    # =========================================================================
    # STAGE 2.1: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> ProviderManagerConfig:
        return self._config

    @property
    def available_providers(self) -> List[AIProvider]:
        return list(self._clients)

    # =========================================================================
    # STAGE 3: NOTE GENERATION
    # =========================================================================

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        """
        Generate a note with primary/fallback routing.

        Never raises provider errors: failures come back as
        NoteGenerationResponse(success=False, error=...).

        Args:
            request: Generation request

        Returns:
            NoteGenerationResponse
        """
        started = time.perf_counter()
        steps: List[str] = ["Starting note generation with provider manager"]
        errors: List[LLMError] = []
        low_quality: Optional[NoteGenerationResponse] = None

        primary = self._config.primary_provider
        fallback = self._config.fallback_provider

        # Step 1: Primary provider
        if primary in self._clients:
            steps.append(f"Attempting primary provider: {primary.value}")
            result = await self._attempt(primary, request, steps, errors)
            if result is not None:
                quality = result.note.quality_score
                if quality >= self._config.quality_threshold:
                    steps.append(f"Primary provider succeeded | Quality: {quality}")
                    return self._finish(result, steps, started, fallback_used=False)
                steps.append(
                    f"Primary provider quality too low | Quality: {quality} | "
                    f"Threshold: {self._config.quality_threshold}"
                )
                logger.warning(
                    f"Low quality from {primary.value} | Quality: {quality} | "
                    f"Threshold: {self._config.quality_threshold}"
                )
                low_quality = result
        else:
            steps.append(f"Primary provider {primary.value} not configured")

        # Step 2: Fallback provider
        if self._config.enable_fallback and fallback in self._clients:
            steps.append(f"Attempting fallback provider: {fallback.value}")
            logger.warning(f"Falling back to {fallback.value}")
            result = await self._attempt(fallback, request, steps, errors)
            if result is not None:
                steps.append(f"Fallback provider succeeded | Quality: {result.note.quality_score}")
                return self._finish(result, steps, started, fallback_used=True)

        # Step 3: Best available low-quality draft beats an error
        if low_quality is not None:
            steps.append("Returning primary result below quality threshold")
            return self._finish(low_quality, steps, started, fallback_used=False)

        return self._failure(errors, steps, started)

    async def _attempt(
        self,
        provider: AIProvider,
        request: NoteGenerationRequest,
        steps: List[str],
        errors: List[LLMError],
    ) -> Optional[NoteGenerationResponse]:
        """One timed provider call; failures are recorded, not raised."""
        call_started = time.perf_counter()
        try:
            result = await self._generate_with_timeout(provider, request)
        except LLMError as e:
            self._usage[provider].record(False, time.perf_counter() - call_started)
            steps.extend(e.processing_steps)
            steps.append(f"{provider.value} failed | Code: {e.code.value} | {e.message}")
            errors.append(e)
            return None

        self._usage[provider].record(True, time.perf_counter() - call_started)
        steps.extend(result.performance.processing_steps)
        return result

    async def _generate_with_timeout(
        self, provider: AIProvider, request: NoteGenerationRequest
    ) -> NoteGenerationResponse:
        """
        Run one provider call under the configured timeout.

        Raises:
            LLMTimeoutError: If the call exceeded the timeout
            LLMError: If the client failed
        """
        client = self._clients[provider]
        timeout = self._config.timeout_seconds
        try:
            return await asyncio.wait_for(client.generate_note(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{provider.value} timed out | Timeout: {timeout}s")
            raise LLMTimeoutError(provider.value, timeout)

    def _finish(
        self,
        result: NoteGenerationResponse,
        steps: List[str],
        started: float,
        fallback_used: bool,
    ) -> NoteGenerationResponse:
        total = time.perf_counter() - started
        return NoteGenerationResponse(
            success=True,
            note=result.note,
            fallback_used=fallback_used,
            provider=result.note.ai_provider,
            performance=PerformanceInfo(
                total_duration=round(total, 3),
                provider_duration=result.performance.provider_duration,
                processing_steps=steps,
            ),
        )

    def _failure(
        self, errors: List[LLMError], steps: List[str], started: float
    ) -> NoteGenerationResponse:
        total = time.perf_counter() - started
        steps.append(f"Total failure after {total:.2f}s")

        if not errors:
            error = ErrorInfo(
                code=ErrorCode.MISSING_API_KEY,
                message="No available provider could generate the note",
                details={"processingSteps": list(steps)},
            )
            provider = None
        elif len(errors) == 1:
            last = errors[0]
            error = ErrorInfo(
                code=last.code,
                message=last.message,
                details={"provider": last.provider, "processingSteps": list(steps)},
            )
            provider = AIProvider.from_string(last.provider)
        else:
            error = ErrorInfo(
                code=ErrorCode.ALL_PROVIDERS_FAILED,
                message="All providers failed: "
                + "; ".join(f"{e.provider} {e.code.value}" for e in errors),
                details={
                    "errors": [
                        {"provider": e.provider, "code": e.code.value, "message": e.message}
                        for e in errors
                    ],
                    "processingSteps": list(steps),
                },
            )
            provider = AIProvider.from_string(errors[-1].provider)

        logger.error(f"Note generation failed | Code: {error.code.value} | {error.message}")
        return NoteGenerationResponse(
            success=False,
            error=error,
            fallback_used=len(errors) > 1,
            provider=provider,
            performance=PerformanceInfo(total_duration=round(total, 3), processing_steps=steps),
        )

    # =========================================================================
    # STAGE 4: PROVIDER COMPARISON
    # =========================================================================

    async def compare_providers(self, request: NoteGenerationRequest) -> ProviderComparisonResult:
        """
        Run both providers concurrently and recommend one.

        Both calls are in flight together; neither result is used until
        both have completed or timed out.

        Raises:
            ConfigurationError: If comparison is disabled or a provider is missing
        """
        if not self._config.enable_comparison:
            raise ConfigurationError(
                "Provider comparison is not enabled",
                context={"setting": "ENABLE_COMPARISON"},
                code=ErrorCode.BAD_REQUEST,
            )
        missing = [p.value for p in AIProvider if p not in self._clients]
        if missing:
            raise ConfigurationError(
                "Both providers must be available for comparison",
                context={"missing": ", ".join(missing)},
            )

        gemini, claude = await asyncio.gather(
            self._compare_attempt(AIProvider.GEMINI, request),
            self._compare_attempt(AIProvider.CLAUDE, request),
        )

        recommendation, reasoning, scores = recommend_provider(gemini, claude)
        logger.info(
            f"Provider comparison | Recommendation: {recommendation.value} | "
            f"Gemini: {scores['gemini']} | Claude: {scores['claude']}"
        )
        return ProviderComparisonResult(
            gemini=gemini,
            claude=claude,
            recommendation=recommendation,
            reasoning=reasoning,
            scores=scores,
        )

    async def _compare_attempt(
        self, provider: AIProvider, request: NoteGenerationRequest
    ) -> NoteGenerationResponse:
        steps: List[str] = [f"Comparison run: {provider.value}"]
        errors: List[LLMError] = []
        started = time.perf_counter()
        result = await self._attempt(provider, request, steps, errors)
        if result is None:
            return self._failure(errors, steps, started)
        return self._finish(result, steps, started, fallback_used=False)

    # =========================================================================
    # STAGE 5: HEALTH, STATS, CONFIGURATION
    # =========================================================================

    async def health_check(self) -> HealthStatus:
        """Check every configured provider concurrently."""
        providers = list(self._clients)

        async def check(provider: AIProvider) -> bool:
            try:
                return await asyncio.wait_for(
                    self._clients[provider].is_healthy(), timeout=self._config.timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(f"{provider.value} health check timed out")
                return False

        results = await asyncio.gather(*(check(p) for p in providers))
        status = HealthStatus(providers=dict(zip(providers, results)))
        logger.info(
            "Health check | "
            + " | ".join(f"{p.value}: {'OK' if ok else 'DOWN'}" for p, ok in status.providers.items())
        )
        return status

    def get_usage_stats(self) -> Dict[str, Dict[str, Any]]:
        """Usage statistics per provider (in-memory, this instance only)."""
        return {provider.value: stats.to_dict() for provider, stats in self._usage.items()}

    def switch_primary_provider(self, provider: Optional[AIProvider] = None) -> AIProvider:
        """
        Make provider (default: the current fallback) the primary.

        Raises:
            ConfigurationError: If that provider has no client
        """
        target = provider or self._config.fallback_provider
        if target not in self._clients:
            raise ConfigurationError(
                f"Cannot switch to {target.value}: provider not available",
                context={"provider": target.value},
            )
        self._config.primary_provider = target
        logger.info(f"Primary provider switched | Primary: {target.value}")
        return target

    def update_config(self, **changes: Any) -> ProviderManagerConfig:
        """
        Update orchestration settings in place.

        Raises:
            ConfigurationError: For unknown settings
        """
        known = {f.name for f in dataclasses.fields(ProviderManagerConfig)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown provider manager settings: {', '.join(unknown)}",
                context={"valid": ", ".join(sorted(known))},
                code=ErrorCode.BAD_REQUEST,
            )
        if "primary_provider" in changes and not isinstance(changes["primary_provider"], AIProvider):
            changes["primary_provider"] = AIProvider.from_string(changes["primary_provider"])
        self._config = dataclasses.replace(self._config, **changes)
        logger.info(f"Provider manager config updated | {self._config.to_dict()}")
        return self._config


# =============================================================================
# STAGE 6: RECOMMENDATION RUBRIC
# =============================================================================


def recommend_provider(
    gemini: NoteGenerationResponse, claude: NoteGenerationResponse
) -> tuple:
    """
    Score a comparison and pick a provider.

    Returns:
        (Recommendation, reasoning, {"gemini": points, "claude": points})
    """
    points = {"gemini": 0.0, "claude": 0.0}
    reasons: List[str] = []
    results = {"gemini": gemini, "claude": claude}
    notes = {name: r.note if r.success else None for name, r in results.items()}
    label = {"gemini": "Gemini", "claude": "Claude"}

    # Quality (40%)
    if notes["gemini"] and notes["claude"]:
        g, c = notes["gemini"].quality_score, notes["claude"].quality_score
        if g != c:
            winner, loser = ("gemini", "claude") if g > c else ("claude", "gemini")
            points[winner] += 4
            reasons.append(
                f"{label[winner]} has higher quality "
                f"({notes[winner].quality_score} vs {notes[loser].quality_score})."
            )
        else:
            reasons.append("Quality scores are equal.")
    else:
        for name in points:
            if notes[name]:
                points[name] += 4
                reasons.append(f"Only {label[name]} provided a quality score.")

    # Epic syntax (30%)
    if notes["gemini"] and notes["claude"]:
        g_val, c_val = notes["gemini"].epic_syntax_validation, notes["claude"].epic_syntax_validation
        if g_val.is_valid != c_val.is_valid:
            winner = "gemini" if g_val.is_valid else "claude"
            points[winner] += 3
            reasons.append(f"{label[winner]} preserved Epic syntax better.")
        elif g_val.preservation_score != c_val.preservation_score:
            winner = "gemini" if g_val.preservation_score > c_val.preservation_score else "claude"
            points[winner] += 3
            reasons.append(f"{label[winner]} had the higher Epic syntax preservation score.")
        else:
            reasons.append("Both preserved Epic syntax equally.")
    else:
        for name in points:
            if notes[name] and notes[name].epic_syntax_validation.is_valid:
                points[name] += 3
                reasons.append(f"{label[name]} preserved Epic syntax.")

    # Speed (20%)
    if notes["gemini"] and notes["claude"]:
        g_time = gemini.performance.provider_duration
        c_time = claude.performance.provider_duration
        if g_time != c_time:
            winner, loser = ("gemini", "claude") if g_time < c_time else ("claude", "gemini")
            points[winner] += 2
            reasons.append(
                f"{label[winner]} was faster "
                f"({results[winner].performance.provider_duration:.2f}s vs "
                f"{results[loser].performance.provider_duration:.2f}s)."
            )

    # Availability (10%)
    if bool(notes["gemini"]) != bool(notes["claude"]):
        winner = "gemini" if notes["gemini"] else "claude"
        points[winner] += 1
        reasons.append(f"Only {label[winner]} was available.")

    if points["gemini"] > points["claude"] and points["gemini"] >= 5:
        recommendation = Recommendation.GEMINI
    elif points["claude"] > points["gemini"] and points["claude"] >= 5:
        recommendation = Recommendation.CLAUDE
    else:
        recommendation = Recommendation.MANUAL_REVIEW
        reasons.append("Scores too close for automatic recommendation.")

    return recommendation, " ".join(reasons), points
