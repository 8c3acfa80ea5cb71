"""
Configuration for the Clinical Note Assistant

This module defines the configuration dataclasses used to initialize the
note assistant. Configuration is:
    1. Loaded from environment variables (with .env support)
    2. Validated at startup to fail fast on misconfiguration
    3. Split into per-provider and provider-manager views

Configuration Hierarchy:
    AssistantConfiguration (main config)
    ├── Provider Settings (API keys, models, sampling parameters)
    ├── Provider Manager Settings (primary, fallback, threshold, timeout)
    ├── Editing Settings (auto-save debounce, pause threshold)
    └── Logging Settings

    ProviderConfig          → derived per provider (model, tokens, sampling)
    ProviderManagerConfig   → derived orchestration settings

Usage:
    from clinical_note_assistant.core.config import AssistantConfiguration

    # Load from environment
    config = AssistantConfiguration.from_environment()

    # Or configure programmatically
    config = AssistantConfiguration(
        gemini_api_key="your-key",
        primary_provider="gemini",
    )

Author: Shubham Singh
Date: December 2025
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from clinical_note_assistant.core.enums import AIProvider
from clinical_note_assistant.core.exceptions import ConfigurationError


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================
# Centralized defaults make configuration transparent and overridable.


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 Gemini Defaults
    # -------------------------------------------------------------------------
    DEFAULT_GEMINI_MODEL = "gemini-1.5-pro"
    DEFAULT_GEMINI_MAX_TOKENS = 8192
    DEFAULT_GEMINI_TEMPERATURE = 0.3
    DEFAULT_GEMINI_TOP_P = 0.95
    DEFAULT_GEMINI_TOP_K = 64

    # -------------------------------------------------------------------------
    # 1.2 Claude Defaults
    # -------------------------------------------------------------------------
    DEFAULT_CLAUDE_MODEL = "claude-3-sonnet-20240229"
    DEFAULT_CLAUDE_MAX_TOKENS = 4096
    DEFAULT_CLAUDE_TEMPERATURE = 0.2

    # -------------------------------------------------------------------------
    # 1.3 Provider Manager Defaults
    # -------------------------------------------------------------------------
    DEFAULT_PRIMARY_PROVIDER = AIProvider.GEMINI
    DEFAULT_QUALITY_THRESHOLD = 6.0  # 1-10 scale
    DEFAULT_PROVIDER_TIMEOUT = 30.0  # seconds per call
    DEFAULT_RETRY_ATTEMPTS = 1

    # -------------------------------------------------------------------------
    # 1.4 Editing Defaults
    # -------------------------------------------------------------------------
    DEFAULT_AUTO_SAVE_DELAY = 2.0  # seconds of inactivity
    DEFAULT_AUTO_SAVE_RETRY_ATTEMPTS = 3
    DEFAULT_AUTO_SAVE_RETRY_DELAY = 1.0  # seconds, doubled per attempt
    DEFAULT_PAUSE_THRESHOLD = 1.0  # seconds between keystrokes

    # -------------------------------------------------------------------------
    # 1.5 Logging Defaults
    # -------------------------------------------------------------------------
    DEFAULT_LOG_LEVEL = "INFO"


# =============================================================================
# STAGE 2: DERIVED CONFIGURATION VIEWS
# =============================================================================


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for one provider client.

    Attributes:
        api_key: Provider API key
        model: Model identifier
        max_tokens: Completion token cap
        temperature: Sampling temperature (kept low for clinical consistency)
        top_p: Nucleus sampling (Gemini only)
        top_k: Top-k sampling (Gemini only)
    """

    api_key: Optional[str]
    model: str
    max_tokens: int
    temperature: float
    top_p: Optional[float] = None
    top_k: Optional[int] = None


@dataclass
class ProviderManagerConfig:
    """
    Orchestration settings for the provider manager.

    Mutable so switch_primary_provider / update_config can adjust a
    running manager.
    """

    primary_provider: AIProvider = ConfigDefaults.DEFAULT_PRIMARY_PROVIDER
    enable_fallback: bool = True
    enable_comparison: bool = False
    quality_threshold: float = ConfigDefaults.DEFAULT_QUALITY_THRESHOLD
    timeout_seconds: float = ConfigDefaults.DEFAULT_PROVIDER_TIMEOUT
    retry_attempts: int = ConfigDefaults.DEFAULT_RETRY_ATTEMPTS

    @property
    def fallback_provider(self) -> AIProvider:
        return self.primary_provider.other

    def to_dict(self) -> dict:
        return {
            "primary_provider": self.primary_provider.value,
            "enable_fallback": self.enable_fallback,
            "enable_comparison": self.enable_comparison,
            "quality_threshold": self.quality_threshold,
            "timeout_seconds": self.timeout_seconds,
            "retry_attempts": self.retry_attempts,
        }


# =============================================================================
# STAGE 3: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class AssistantConfiguration:
    """
    Configuration for the clinical note assistant.

    What it does:
        Encapsulates all configuration parameters needed to construct
        provider clients, the provider manager and the editing helpers.

    Why it exists:
        1. Single source of truth for all configuration
        2. Validated at startup to fail fast on errors
        3. Supports both environment and programmatic configuration

    When to use:
        - At assistant initialization
        - When creating test fixtures with custom config

    Example:
        >>> config = AssistantConfiguration.from_environment()
        >>> config.primary_provider
        <AIProvider.GEMINI: 'gemini'>
    """

    # -------------------------------------------------------------------------
    # 3.1 Gemini Configuration
    # -------------------------------------------------------------------------
    gemini_api_key: Optional[str] = None
    """Google Gemini API key."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL
    gemini_max_tokens: int = ConfigDefaults.DEFAULT_GEMINI_MAX_TOKENS
    gemini_temperature: float = ConfigDefaults.DEFAULT_GEMINI_TEMPERATURE
    gemini_top_p: float = ConfigDefaults.DEFAULT_GEMINI_TOP_P
    gemini_top_k: int = ConfigDefaults.DEFAULT_GEMINI_TOP_K

    # -------------------------------------------------------------------------
    # 3.2 Claude Configuration
    # -------------------------------------------------------------------------
    anthropic_api_key: Optional[str] = None
    """Anthropic API key for Claude."""

    claude_model: str = ConfigDefaults.DEFAULT_CLAUDE_MODEL
    claude_max_tokens: int = ConfigDefaults.DEFAULT_CLAUDE_MAX_TOKENS
    claude_temperature: float = ConfigDefaults.DEFAULT_CLAUDE_TEMPERATURE

    # -------------------------------------------------------------------------
    # 3.3 Provider Manager Configuration
    # -------------------------------------------------------------------------
    primary_provider: AIProvider = ConfigDefaults.DEFAULT_PRIMARY_PROVIDER
    """Provider tried first for every request."""

    enable_fallback: bool = True
    """Try the other provider when the primary fails or scores low."""

    enable_comparison: bool = False
    """Allow side-by-side comparison requests."""

    quality_threshold: float = ConfigDefaults.DEFAULT_QUALITY_THRESHOLD
    """Minimum quality score (1-10) to accept the primary's note."""

    provider_timeout: float = ConfigDefaults.DEFAULT_PROVIDER_TIMEOUT
    """Hard per-call timeout in seconds."""

    retry_attempts: int = ConfigDefaults.DEFAULT_RETRY_ATTEMPTS
    """Attempts per provider call (timeouts are never retried)."""

    # -------------------------------------------------------------------------
    # 3.4 Editing Configuration
    # -------------------------------------------------------------------------
    auto_save_delay: float = ConfigDefaults.DEFAULT_AUTO_SAVE_DELAY
    auto_save_retry_attempts: int = ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_ATTEMPTS
    auto_save_retry_delay: float = ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_DELAY
    pause_threshold: float = ConfigDefaults.DEFAULT_PAUSE_THRESHOLD

    # -------------------------------------------------------------------------
    # 3.5 Logging Configuration
    # -------------------------------------------------------------------------
    log_level: str = ConfigDefaults.DEFAULT_LOG_LEVEL

    # -------------------------------------------------------------------------
    # 3.6 Validation Methods
    # -------------------------------------------------------------------------

    def api_key_for(self, provider: AIProvider) -> Optional[str]:
        """Return the configured API key for a provider."""
        if provider is AIProvider.GEMINI:
            return self.gemini_api_key
        return self.anthropic_api_key

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Checks:
            1. The primary provider has an API key
            2. Numeric parameters are in valid ranges

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.api_key_for(self.primary_provider):
            setting = (
                "GEMINI_API_KEY"
                if self.primary_provider is AIProvider.GEMINI
                else "ANTHROPIC_API_KEY"
            )
            raise ConfigurationError(
                f"API key required for primary provider {self.primary_provider.value}",
                context={"setting": setting, "provider": self.primary_provider.value},
            )

        if not (1 <= self.quality_threshold <= 10):
            raise ConfigurationError(
                f"Quality threshold must be 1-10, got {self.quality_threshold}",
                context={"threshold": self.quality_threshold},
            )

        if self.provider_timeout <= 0:
            raise ConfigurationError(
                f"Provider timeout must be positive, got {self.provider_timeout}",
                context={"timeout": self.provider_timeout},
            )

        if self.retry_attempts < 1:
            raise ConfigurationError(
                f"Retry attempts must be at least 1, got {self.retry_attempts}",
                context={"retry_attempts": self.retry_attempts},
            )

    # -------------------------------------------------------------------------
    # 3.7 Derived Views
    # -------------------------------------------------------------------------

    def provider_config(self, provider: AIProvider) -> ProviderConfig:
        """Build the client settings for one provider."""
        if provider is AIProvider.GEMINI:
            return ProviderConfig(
                api_key=self.gemini_api_key,
                model=self.gemini_model,
                max_tokens=self.gemini_max_tokens,
                temperature=self.gemini_temperature,
                top_p=self.gemini_top_p,
                top_k=self.gemini_top_k,
            )
        return ProviderConfig(
            api_key=self.anthropic_api_key,
            model=self.claude_model,
            max_tokens=self.claude_max_tokens,
            temperature=self.claude_temperature,
        )

    def manager_config(self) -> ProviderManagerConfig:
        """Build the provider manager settings."""
        return ProviderManagerConfig(
            primary_provider=self.primary_provider,
            enable_fallback=self.enable_fallback,
            enable_comparison=self.enable_comparison,
            quality_threshold=self.quality_threshold,
            timeout_seconds=self.provider_timeout,
            retry_attempts=self.retry_attempts,
        )

    # -------------------------------------------------------------------------
    # 3.8 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "AssistantConfiguration":
        """
        Load configuration from environment variables.

        STAGE 1: Load .env file (if specified or found)
        STAGE 2: Read environment variables
        STAGE 3: Convert to typed configuration
        STAGE 4: Validate configuration (optional)

        Args:
            env_file: Path to .env file (optional, auto-detected if not provided)
            validate_on_load: Whether to validate after loading

        Returns:
            Configured AssistantConfiguration instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # STAGE 1: Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            possible_locations = [
                Path.cwd() / ".env",
                Path(__file__).parent.parent / ".env",
            ]
            for location in possible_locations:
                if location.exists():
                    load_dotenv(location)
                    break

        # STAGE 2: Read environment variables
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        anthropic_key = os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY")

        try:
            primary = AIProvider.from_string(
                os.getenv("PRIMARY_PROVIDER", ConfigDefaults.DEFAULT_PRIMARY_PROVIDER.value)
            )
        except ValueError as e:
            raise ConfigurationError(str(e), context={"setting": "PRIMARY_PROVIDER"})

        # Only one key configured: make that provider primary
        if not gemini_key and anthropic_key:
            primary = AIProvider.CLAUDE
        elif gemini_key and not anthropic_key:
            primary = AIProvider.GEMINI

        # STAGE 3: Create configuration
        try:
            config = cls(
                # Gemini
                gemini_api_key=gemini_key,
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                gemini_max_tokens=int(
                    os.getenv("GEMINI_MAX_TOKENS", ConfigDefaults.DEFAULT_GEMINI_MAX_TOKENS)
                ),
                gemini_temperature=float(
                    os.getenv("GEMINI_TEMPERATURE", ConfigDefaults.DEFAULT_GEMINI_TEMPERATURE)
                ),
                # Claude
                anthropic_api_key=anthropic_key,
                claude_model=os.getenv("CLAUDE_MODEL", ConfigDefaults.DEFAULT_CLAUDE_MODEL),
                claude_max_tokens=int(
                    os.getenv("CLAUDE_MAX_TOKENS", ConfigDefaults.DEFAULT_CLAUDE_MAX_TOKENS)
                ),
                claude_temperature=float(
                    os.getenv("CLAUDE_TEMPERATURE", ConfigDefaults.DEFAULT_CLAUDE_TEMPERATURE)
                ),
                # Provider manager
                primary_provider=primary,
                enable_fallback=os.getenv("ENABLE_FALLBACK", "true").lower() == "true",
                enable_comparison=os.getenv("ENABLE_COMPARISON", "false").lower() == "true",
                quality_threshold=float(
                    os.getenv("QUALITY_THRESHOLD", ConfigDefaults.DEFAULT_QUALITY_THRESHOLD)
                ),
                provider_timeout=float(
                    os.getenv("PROVIDER_TIMEOUT", ConfigDefaults.DEFAULT_PROVIDER_TIMEOUT)
                ),
                retry_attempts=int(
                    os.getenv("RETRY_ATTEMPTS", ConfigDefaults.DEFAULT_RETRY_ATTEMPTS)
                ),
                # Editing
                auto_save_delay=float(
                    os.getenv("AUTO_SAVE_DELAY", ConfigDefaults.DEFAULT_AUTO_SAVE_DELAY)
                ),
                auto_save_retry_attempts=int(
                    os.getenv(
                        "AUTO_SAVE_RETRY_ATTEMPTS",
                        ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_ATTEMPTS,
                    )
                ),
                auto_save_retry_delay=float(
                    os.getenv("AUTO_SAVE_RETRY_DELAY", ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_DELAY)
                ),
                pause_threshold=float(
                    os.getenv("PAUSE_THRESHOLD", ConfigDefaults.DEFAULT_PAUSE_THRESHOLD)
                ),
                # Logging
                log_level=os.getenv("LOG_LEVEL", ConfigDefaults.DEFAULT_LOG_LEVEL).upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")

        # STAGE 4: Validate
        if validate_on_load:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "primary_provider": self.primary_provider.value,
            "gemini_model": self.gemini_model,
            "claude_model": self.claude_model,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "anthropic_api_key": "***" if self.anthropic_api_key else None,
            "enable_fallback": self.enable_fallback,
            "enable_comparison": self.enable_comparison,
            "quality_threshold": self.quality_threshold,
            "provider_timeout": self.provider_timeout,
            "retry_attempts": self.retry_attempts,
            "auto_save_delay": self.auto_save_delay,
            "log_level": self.log_level,
        }
