"""Tests for environment-driven configuration."""

import pytest

from clinical_note_assistant.core.config import AssistantConfiguration, ConfigDefaults
from clinical_note_assistant.core.enums import AIProvider
from clinical_note_assistant.core.exceptions import ConfigurationError


class TestFromEnvironment:
    def test_defaults_with_both_keys(self, clean_environment, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-key")

        config = AssistantConfiguration.from_environment()

        assert config.primary_provider is AIProvider.GEMINI
        assert config.enable_fallback
        assert not config.enable_comparison
        assert config.quality_threshold == ConfigDefaults.DEFAULT_QUALITY_THRESHOLD
        assert config.provider_timeout == ConfigDefaults.DEFAULT_PROVIDER_TIMEOUT

    def test_loads_env_file(self, clean_environment):
        env_file = clean_environment / "assistant.env"
        env_file.write_text(
            "ANTHROPIC_API_KEY=a-key\n"
            "PRIMARY_PROVIDER=claude\n"
            "QUALITY_THRESHOLD=7.5\n"
            "PROVIDER_TIMEOUT=12\n"
            "ENABLE_COMPARISON=true\n"
            "LOG_LEVEL=debug\n"
        )

        config = AssistantConfiguration.from_environment(env_file=str(env_file))

        assert config.primary_provider is AIProvider.CLAUDE
        assert config.quality_threshold == 7.5
        assert config.provider_timeout == 12.0
        assert config.enable_comparison
        assert config.log_level == "DEBUG"

    def test_auto_detects_env_in_working_directory(self, clean_environment):
        (clean_environment / ".env").write_text("GEMINI_API_KEY=g-key\n")
        config = AssistantConfiguration.from_environment()
        assert config.gemini_api_key == "g-key"

    def test_single_key_forces_primary(self, clean_environment, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-key")
        monkeypatch.setenv("PRIMARY_PROVIDER", "gemini")

        config = AssistantConfiguration.from_environment()
        assert config.primary_provider is AIProvider.CLAUDE

    def test_alternate_key_names(self, clean_environment, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
        monkeypatch.setenv("CLAUDE_API_KEY", "a-key")

        config = AssistantConfiguration.from_environment()
        assert config.gemini_api_key == "g-key"
        assert config.anthropic_api_key == "a-key"

    def test_no_keys(self, clean_environment):
        with pytest.raises(ConfigurationError) as exc_info:
            AssistantConfiguration.from_environment()
        assert exc_info.value.context["setting"] == "GEMINI_API_KEY"

    def test_no_keys_without_validation(self, clean_environment):
        config = AssistantConfiguration.from_environment(validate_on_load=False)
        assert config.gemini_api_key is None

    def test_unknown_primary_provider(self, clean_environment, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-key")
        monkeypatch.setenv("PRIMARY_PROVIDER", "openai")
        with pytest.raises(ConfigurationError):
            AssistantConfiguration.from_environment()

    def test_non_numeric_setting(self, clean_environment, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        monkeypatch.setenv("PROVIDER_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            AssistantConfiguration.from_environment()


@pytest.mark.parametrize(
    "changes",
    [
        {"quality_threshold": 0.5},
        {"quality_threshold": 11},
        {"provider_timeout": 0},
        {"retry_attempts": 0},
    ],
)
def test_validate_rejects_out_of_range(changes):
    config = AssistantConfiguration(gemini_api_key="g-key", **changes)
    with pytest.raises(ConfigurationError):
        config.validate()


def test_derived_views(assistant_config):
    gemini = assistant_config.provider_config(AIProvider.GEMINI)
    claude = assistant_config.provider_config(AIProvider.CLAUDE)
    manager = assistant_config.manager_config()

    assert gemini.api_key == "test-gemini-key"
    assert gemini.top_k == ConfigDefaults.DEFAULT_GEMINI_TOP_K
    assert claude.top_p is None
    assert manager.timeout_seconds == 0.5
    assert manager.fallback_provider is AIProvider.CLAUDE


def test_to_dict_masks_keys(assistant_config):
    assert assistant_config.to_dict()["gemini_api_key"] == "***"
