"""Tests for primary/fallback routing, provider comparison and manager state."""

import pytest

from clinical_note_assistant.clients.provider_manager import ProviderManager, recommend_provider
from clinical_note_assistant.core.config import AssistantConfiguration, ProviderManagerConfig
from clinical_note_assistant.core.enums import AIProvider, ErrorCode, Recommendation
from clinical_note_assistant.core.exceptions import ConfigurationError, LLMError, LLMTimeoutError

from tests.conftest import FakeProviderClient


def server_error(provider: AIProvider) -> LLMError:
    return LLMError(
        f"{provider.value} server error (503)", provider=provider.value, code=ErrorCode.SERVER_ERROR
    )


def make_manager(gemini=None, claude=None, **config) -> ProviderManager:
    clients = {}
    if gemini is not None:
        clients[AIProvider.GEMINI] = gemini
    if claude is not None:
        clients[AIProvider.CLAUDE] = claude
    config.setdefault("timeout_seconds", 0.5)
    return ProviderManager(clients, ProviderManagerConfig(**config))


# =============================================================================
# PRIMARY / FALLBACK
# =============================================================================


class TestGenerateNote:
    @pytest.mark.asyncio
    async def test_primary_success(self, gemini_client, claude_client, note_request):
        manager = make_manager(gemini_client, claude_client)
        response = await manager.generate_note(note_request)

        assert response.success
        assert response.provider is AIProvider.GEMINI
        assert not response.fallback_used
        assert gemini_client.calls == 1
        assert claude_client.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "primary_error",
        [
            server_error(AIProvider.GEMINI),
            LLMTimeoutError("gemini", 30.0),
        ],
    )
    async def test_fallback_on_primary_failure(self, primary_error, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, error=primary_error)
        claude = FakeProviderClient(AIProvider.CLAUDE)
        response = await make_manager(gemini, claude).generate_note(note_request)

        assert response.success
        assert response.fallback_used
        assert response.provider is AIProvider.CLAUDE
        assert response.note.ai_provider is AIProvider.CLAUDE

    @pytest.mark.asyncio
    async def test_slow_primary_times_out_and_falls_back(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, delay=1.0)
        claude = FakeProviderClient(AIProvider.CLAUDE)
        response = await make_manager(gemini, claude, timeout_seconds=0.05).generate_note(note_request)

        assert response.fallback_used
        assert response.provider is AIProvider.CLAUDE
        assert any("REQUEST_TIMEOUT" in step for step in response.performance.processing_steps)
        assert response.error is None

    @pytest.mark.asyncio
    async def test_low_quality_primary_triggers_fallback(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, quality=3.0)
        claude = FakeProviderClient(AIProvider.CLAUDE, quality=8.0)
        response = await make_manager(gemini, claude).generate_note(note_request)

        assert response.fallback_used
        assert response.note.quality_score == 8.0
        assert claude.calls == 1

    @pytest.mark.asyncio
    async def test_low_quality_primary_returned_when_fallback_fails(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, quality=3.0)
        claude = FakeProviderClient(AIProvider.CLAUDE, error=server_error(AIProvider.CLAUDE))
        response = await make_manager(gemini, claude).generate_note(note_request)

        assert response.success
        assert not response.fallback_used
        assert response.provider is AIProvider.GEMINI
        assert response.note.quality_score == 3.0

    @pytest.mark.asyncio
    async def test_fallback_disabled_returns_primary_error(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, error=server_error(AIProvider.GEMINI))
        claude = FakeProviderClient(AIProvider.CLAUDE)
        response = await make_manager(gemini, claude, enable_fallback=False).generate_note(
            note_request
        )

        assert not response.success
        assert response.error.code is ErrorCode.SERVER_ERROR
        assert response.provider is AIProvider.GEMINI
        assert claude.calls == 0

    @pytest.mark.asyncio
    async def test_all_providers_failed(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, error=server_error(AIProvider.GEMINI))
        claude = FakeProviderClient(AIProvider.CLAUDE, error=server_error(AIProvider.CLAUDE))
        response = await make_manager(gemini, claude).generate_note(note_request)

        assert not response.success
        assert response.error.code is ErrorCode.ALL_PROVIDERS_FAILED
        assert len(response.error.details["errors"]) == 2
        assert response.fallback_used

    @pytest.mark.asyncio
    async def test_single_configured_provider(self, claude_client, note_request):
        response = await make_manager(claude=claude_client).generate_note(note_request)
        assert response.success
        assert response.provider is AIProvider.CLAUDE

    def test_requires_at_least_one_client(self):
        with pytest.raises(ConfigurationError):
            ProviderManager({})


# =============================================================================
# COMPARISON
# =============================================================================


class TestCompareProviders:
    @pytest.mark.asyncio
    async def test_disabled_by_default(self, gemini_client, claude_client, note_request):
        manager = make_manager(gemini_client, claude_client)
        with pytest.raises(ConfigurationError) as exc_info:
            await manager.compare_providers(note_request)
        assert exc_info.value.code is ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_requires_both_providers(self, gemini_client, note_request):
        manager = make_manager(gemini_client, enable_comparison=True)
        with pytest.raises(ConfigurationError):
            await manager.compare_providers(note_request)

    @pytest.mark.asyncio
    async def test_recommends_better_provider(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, quality=9.0, provider_duration=1.0)
        claude = FakeProviderClient(AIProvider.CLAUDE, quality=7.0, provider_duration=2.0)
        result = await make_manager(gemini, claude, enable_comparison=True).compare_providers(
            note_request
        )

        assert gemini.calls == 1 and claude.calls == 1
        assert result.recommendation is Recommendation.GEMINI
        assert result.scores == {"gemini": 6.0, "claude": 0.0}
        assert "Gemini has higher quality" in result.reasoning

    @pytest.mark.asyncio
    async def test_one_provider_failing(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI)
        claude = FakeProviderClient(AIProvider.CLAUDE, error=server_error(AIProvider.CLAUDE))
        result = await make_manager(gemini, claude, enable_comparison=True).compare_providers(
            note_request
        )

        assert result.gemini.success
        assert not result.claude.success
        assert result.recommendation is Recommendation.GEMINI
        assert result.scores["gemini"] == 8.0

    @pytest.mark.asyncio
    async def test_tied_results_need_manual_review(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, quality=8.0, provider_duration=1.0)
        claude = FakeProviderClient(AIProvider.CLAUDE, quality=8.0, provider_duration=1.0)
        result = await make_manager(gemini, claude, enable_comparison=True).compare_providers(
            note_request
        )
        assert result.recommendation is Recommendation.MANUAL_REVIEW
        assert "Scores too close" in result.reasoning


@pytest.mark.asyncio
async def test_speed_alone_is_not_enough_for_a_recommendation(note_request):
    gemini = await FakeProviderClient(AIProvider.GEMINI, provider_duration=1.0).generate_note(
        note_request
    )
    claude = await FakeProviderClient(AIProvider.CLAUDE, provider_duration=3.0).generate_note(
        note_request
    )

    recommendation, reasoning, scores = recommend_provider(gemini, claude)

    assert scores == {"gemini": 2.0, "claude": 0.0}
    assert recommendation is Recommendation.MANUAL_REVIEW
    assert "Gemini was faster" in reasoning


# =============================================================================
# HEALTH, STATS, CONFIGURATION
# =============================================================================


class TestManagerState:
    @pytest.mark.asyncio
    async def test_health_check(self):
        gemini = FakeProviderClient(AIProvider.GEMINI)
        claude = FakeProviderClient(AIProvider.CLAUDE, healthy=False)
        status = await make_manager(gemini, claude).health_check()

        assert status.providers == {AIProvider.GEMINI: True, AIProvider.CLAUDE: False}
        assert status.any_healthy
        assert status.to_dict()["claude"] is False

    def test_switch_primary_provider(self, gemini_client, claude_client):
        manager = make_manager(gemini_client, claude_client)
        assert manager.switch_primary_provider() is AIProvider.CLAUDE
        assert manager.config.primary_provider is AIProvider.CLAUDE
        assert manager.config.fallback_provider is AIProvider.GEMINI

    def test_switch_to_missing_provider(self, gemini_client):
        manager = make_manager(gemini_client)
        with pytest.raises(ConfigurationError):
            manager.switch_primary_provider(AIProvider.CLAUDE)

    def test_update_config(self, gemini_client, claude_client):
        manager = make_manager(gemini_client, claude_client)
        updated = manager.update_config(quality_threshold=8.5, primary_provider="claude")

        assert updated.quality_threshold == 8.5
        assert updated.primary_provider is AIProvider.CLAUDE
        assert manager.config is updated

    def test_update_config_rejects_unknown_settings(self, gemini_client):
        manager = make_manager(gemini_client)
        with pytest.raises(ConfigurationError) as exc_info:
            manager.update_config(model="gpt")
        assert exc_info.value.code is ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_usage_stats(self, note_request):
        gemini = FakeProviderClient(AIProvider.GEMINI, error=server_error(AIProvider.GEMINI))
        claude = FakeProviderClient(AIProvider.CLAUDE)
        manager = make_manager(gemini, claude)
        await manager.generate_note(note_request)

        stats = manager.get_usage_stats()
        assert stats["gemini"]["failedRequests"] == 1
        assert stats["claude"]["successfulRequests"] == 1
        assert stats["claude"]["lastUsed"] is not None

    def test_from_configuration_requires_a_key(self):
        with pytest.raises(ConfigurationError):
            ProviderManager.from_configuration(AssistantConfiguration())
