"""
Claude Client - Anthropic Messages API Implementation

This module provides the concrete provider client for Anthropic's
Claude models through the async Messages API.

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


# =============================================================================
# STAGE 1: CLAUDE CLIENT IMPLEMENTATION
# =============================================================================


class ClaudeClient(BaseProviderClient):
    """
    Anthropic Claude client for clinical note generation.

    What it does:
        Sends the system prompt as the Messages API system parameter and
        the user prompt as a single user turn, returning text plus usage.

    When to use:
        - Default fallback provider of the ProviderManager

    Example:
        >>> client = ClaudeClient(config.provider_config(AIProvider.CLAUDE))
        >>> response = await client.generate_note(request)
    """

    def __init__(
        self,
        config: ProviderConfig,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        self_evaluate: bool = True,
    ):
        super().__init__(
            config=config,
            max_retries=max_retries,
            retry_delay=retry_delay,
            self_evaluate=self_evaluate,
        )
        self._client = None
        self._initialize_client()

        logger.info(f"ClaudeClient initialized | Model: {config.model}")

    def _initialize_client(self) -> None:
        """Create the AsyncAnthropic client."""
        if not self._config.api_key:
            raise LLMAuthenticationError(
                "Anthropic API key not configured (set ANTHROPIC_API_KEY)",
                provider="claude",
                code=ErrorCode.MISSING_API_KEY,
            )

        try:
            from anthropic import AsyncAnthropic

            # Retries are handled by BaseProviderClient
            self._client = AsyncAnthropic(api_key=self._config.api_key, max_retries=0)

        except ImportError:
            raise LLMError(
                "anthropic package not installed. Install with: pip install anthropic",
                provider="claude",
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    async def _call_api(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Make the actual Claude API call.

        Raises:
            LLMContentFilteredError: If Claude refused the request
            LLMEmptyResponseError: If the reply has no text block
        """
        response = await self._client.messages.create(
            model=self._config.model,
            max_tokens=max_tokens or self._config.max_tokens,
            temperature=self._config.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )

        if response.stop_reason == "refusal":
            raise LLMContentFilteredError(provider="claude", reason="refusal")

        text_blocks = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        if not text_blocks:
            raise LLMEmptyResponseError("Claude returned no text content", provider="claude")

        return {
            "text": "".join(text_blocks),
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": response.model,
            "finish_reason": response.stop_reason,
        }

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider(self) -> AIProvider:
        return AIProvider.CLAUDE
