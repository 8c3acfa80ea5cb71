"""
Gemini Client - Google Gemini API Implementation

This module provides the concrete provider client for Google's Gemini
API (gemini-1.5-pro, gemini-1.5-flash, etc.)

Why Separate File:
    1. Single Responsibility: one provider per file
    2. Easy to swap: just change import
    3. Provider-specific handling: safety settings, blocked prompts

Author: Shubham Singh
Date: December 2025
"""

from typing import Any, Dict, Optional

from loguru import logger

from clinical_note_assistant.clients.llm_client import BaseProviderClient
from clinical_note_assistant.core.config import ProviderConfig
from clinical_note_assistant.core.enums import AIProvider, ErrorCode
from clinical_note_assistant.core.exceptions import (
    LLMAuthenticationError,
    LLMContentFilteredError,
    LLMEmptyResponseError,
    LLMError,
)


# Clinical text (self-harm, substance use) trips the default filters
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


# =============================================================================
# STAGE 1: GEMINI CLIENT IMPLEMENTATION
# =============================================================================


class GeminiClient(BaseProviderClient):
    """
    Google Gemini API client for clinical note generation.

    What it does:
        Sends the system and user prompt as one Gemini prompt through
        the google-generativeai async API and returns text plus usage.

    Why it exists:
        1. Encapsulates Gemini-specific API logic
        2. Handles Gemini's safety settings and prompt blocking
        3. Translates Gemini responses to the shared boundary format

    When to use:
        - Default primary provider of the ProviderManager

    Example:
        >>> client = GeminiClient(config.provider_config(AIProvider.GEMINI))
        >>> response = await client.generate_note(request)
    """

    def __init__(
        self,
        config: ProviderConfig,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        self_evaluate: bool = True,
    ):
        """
        Initialize Gemini client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure Gemini SDK

        Args:
            config: Gemini model and sampling parameters
            max_retries: Attempts per API call
            retry_delay: Initial retry backoff in seconds
            self_evaluate: Ask the model to rate its own notes

        Raises:
            LLMAuthenticationError: If no API key is configured
            LLMError: If the SDK is missing or fails to initialize
        """
        # =====================================================================
        # STAGE 1.1: INITIALIZE BASE CLASS
        # =====================================================================
        super().__init__(
            config=config,
            max_retries=max_retries,
            retry_delay=retry_delay,
            self_evaluate=self_evaluate,
        )

        # =====================================================================
        # STAGE 1.2: CONFIGURE GEMINI SDK
        # =====================================================================
        self._model = None
        self._initialize_client()

        logger.info(f"GeminiClient initialized | Model: {config.model}")

    def _initialize_client(self) -> None:
        """
        Initialize the Gemini model.

        Lazy import to avoid requiring google-generativeai at module load.
        """
        if not self._config.api_key:
            raise LLMAuthenticationError(
                "Gemini API key not configured (set GEMINI_API_KEY)",
                provider="gemini",
                code=ErrorCode.MISSING_API_KEY,
            )

        try:
            import google.generativeai as genai

            genai.configure(api_key=self._config.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._config.model,
                safety_settings=SAFETY_SETTINGS,
            )

        except ImportError:
            raise LLMError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai",
                provider="gemini",
            )
        except Exception as e:
            raise LLMError(
                f"Failed to initialize Gemini client: {e}", provider="gemini", original_error=e
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    async def _call_api(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Make the actual Gemini API call.

        Raises:
            LLMContentFilteredError: If the prompt or candidate was blocked
            LLMEmptyResponseError: If no text came back
        """
        generation_config = {
            "max_output_tokens": max_tokens or self._config.max_tokens,
            "temperature": self._config.temperature,
        }
        if self._config.top_p is not None:
            generation_config["top_p"] = self._config.top_p
        if self._config.top_k is not None:
            generation_config["top_k"] = self._config.top_k

        response = await self._model.generate_content_async(
            f"{system_prompt}\n\n{user_prompt}",
            generation_config=generation_config,
        )

        # Check for blocked prompt
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise LLMContentFilteredError(provider="gemini", reason=str(feedback.block_reason))

        # Extract text; .text raises ValueError when the candidate has no parts
        finish_reason = None
        if response.candidates:
            finish_reason = str(response.candidates[0].finish_reason)
        try:
            text = response.text
        except ValueError:
            if finish_reason and "SAFETY" in finish_reason.upper():
                raise LLMContentFilteredError(provider="gemini", reason=finish_reason)
            raise LLMEmptyResponseError(
                f"Gemini returned no text (finish reason: {finish_reason})", provider="gemini"
            )

        usage = getattr(response, "usage_metadata", None)
        return {
            "text": text,
            "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
            "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
            "model": self._config.model,
            "finish_reason": finish_reason,
        }

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider(self) -> AIProvider:
        return AIProvider.GEMINI
