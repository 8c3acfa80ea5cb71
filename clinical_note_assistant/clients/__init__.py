"""
Clients Layer - LLM Provider Abstractions

This layer provides clean abstractions over LLM providers (Gemini, Claude),
enabling the rest of the system to work with either provider interchangeably.

Submodules:
    llm_client.py       → Protocol, base implementation, error classification
    gemini_client.py    → Google Gemini implementation
    claude_client.py    → Anthropic Claude implementation
    prompts.py          → Shared generation and self-evaluation prompts
    provider_manager.py → Primary/fallback routing and comparison

Why Abstraction Layer:
    1. Swappable providers without changing business logic
    2. Centralized retry, timeout and fallback logic
    3. Testability via fake implementations of the protocol

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.clients.llm_client import (
    BaseProviderClient,
    HeuristicQualityScorer,
    ProviderClientProtocol,
    ProviderResponse,
    classify_provider_error,
)
from clinical_note_assistant.clients.gemini_client import GeminiClient
from clinical_note_assistant.clients.claude_client import ClaudeClient
from clinical_note_assistant.clients.provider_manager import (
    HealthStatus,
    ProviderManager,
    ProviderUsageStats,
    recommend_provider,
)

__all__ = [
    "BaseProviderClient",
    "HeuristicQualityScorer",
    "ProviderClientProtocol",
    "ProviderResponse",
    "classify_provider_error",
    "GeminiClient",
    "ClaudeClient",
    "HealthStatus",
    "ProviderManager",
    "ProviderUsageStats",
    "recommend_provider",
]
