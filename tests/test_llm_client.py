"""Tests for provider error classification, quality scoring and the shared client flow."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from clinical_note_assistant.clients.claude_client import ClaudeClient
from clinical_note_assistant.clients.llm_client import (
    BaseProviderClient,
    HeuristicQualityScorer,
    ProviderClientProtocol,
    classify_provider_error,
    combine_quality_score,
    parse_quality_reply,
)
from clinical_note_assistant.core.config import ProviderConfig
from clinical_note_assistant.core.enums import AIProvider, ErrorCode
from clinical_note_assistant.core.exceptions import (
    LLMAuthenticationError,
    LLMEmptyResponseError,
    LLMError,
    LLMRateLimitError,
)
from clinical_note_assistant.validation.epic_syntax_validator import EpicSyntaxValidator

from tests.conftest import UPDATED_CREDIBLE_NOTE, FakeProviderClient


class StatusError(Exception):
    """SDK-style exception carrying an HTTP status."""

    def __init__(self, status_code: int, message: str = "request failed", headers=None):
        super().__init__(message)
        self.status_code = status_code
        self.response = SimpleNamespace(headers=headers or {})


def provider_config(api_key: Optional[str] = "test-key") -> ProviderConfig:
    return ProviderConfig(api_key=api_key, model="test-model", max_tokens=1024, temperature=0.3)


class ScriptedClient(BaseProviderClient):
    """Replays a fixed list of replies (dicts) or exceptions from _call_api."""

    def __init__(self, replies: List[Any], **kwargs):
        kwargs.setdefault("retry_delay", 0.0)
        super().__init__(provider_config(), **kwargs)
        self._replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    @property
    def provider(self) -> AIProvider:
        return AIProvider.GEMINI

    async def _call_api(self, system_prompt, user_prompt, max_tokens=None):
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "max_tokens": max_tokens}
        )
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


NOTE_REPLY = {"text": UPDATED_CREDIBLE_NOTE, "prompt_tokens": 900, "completion_tokens": 120}


# =============================================================================
# ERROR CLASSIFICATION
# =============================================================================


@pytest.mark.parametrize(
    "status, code",
    [
        (401, ErrorCode.INVALID_API_KEY),
        (403, ErrorCode.INVALID_API_KEY),
        (429, ErrorCode.RATE_LIMITED),
        (400, ErrorCode.BAD_REQUEST),
        (500, ErrorCode.SERVER_ERROR),
        (503, ErrorCode.SERVER_ERROR),
        (529, ErrorCode.SERVER_ERROR),
    ],
)
def test_classify_by_status(status, code):
    error = classify_provider_error(StatusError(status), "claude")
    assert error.code is code
    assert error.provider == "claude"


@pytest.mark.parametrize(
    "message, code",
    [
        ("Invalid API key provided", ErrorCode.INVALID_API_KEY),
        ("Quota exceeded for this project", ErrorCode.RATE_LIMITED),
        ("Response blocked by safety settings", ErrorCode.SAFETY_FILTER),
        ("Server overloaded, try later", ErrorCode.SERVER_ERROR),
        ("Request timed out", ErrorCode.REQUEST_TIMEOUT),
        ("Deadline exceeded", ErrorCode.REQUEST_TIMEOUT),
        ("Connection reset by peer", ErrorCode.NETWORK_ERROR),
        ("Something odd happened", ErrorCode.UNKNOWN_ERROR),
    ],
)
def test_classify_by_message(message, code):
    assert classify_provider_error(Exception(message), "gemini").code is code


def test_classify_keeps_existing_llm_errors():
    original = LLMEmptyResponseError("nothing", provider="gemini")
    assert classify_provider_error(original, "gemini") is original


def test_rate_limit_reads_retry_after_header():
    error = classify_provider_error(StatusError(429, headers={"retry-after": "7"}), "claude")
    assert isinstance(error, LLMRateLimitError)
    assert error.retry_after == 7


# =============================================================================
# QUALITY SCORING
# =============================================================================


@pytest.mark.parametrize(
    "reply, expected",
    [
        ('{"qualityScore": 8}', 8.0),
        ('```json\n{"qualityScore": 7.5}\n```', 7.5),
        ("I would rate this note a 6 out of 10.", 6.0),
        ('{"qualityScore": 42}', None),
        ("No usable rating.", None),
        ("Found 3 issues with the medication list.", None),
        ("Found 3 issues. Overall score: 7", 7.0),
        ("Quality 8/10 despite 2 omissions.", 8.0),
    ],
)
def test_parse_quality_reply(reply, expected):
    assert parse_quality_reply(reply) == expected


class TestCombineQualityScore:
    def test_valid_syntax_adds_preservation(self):
        validation = EpicSyntaxValidator().validate("Plain text.")
        assert combine_quality_score(8.0, validation) == 9.0

    def test_invalid_syntax_penalized(self):
        validation = EpicSyntaxValidator().validate("See @assessment@")
        assert combine_quality_score(5.0, validation) == 3.0

    def test_clamped_to_range(self):
        valid = EpicSyntaxValidator().validate("Plain text.")
        invalid = EpicSyntaxValidator().validate("@NAME@", reference="@NAME@ @VITALS@ .hpi")
        assert combine_quality_score(10.0, valid) == 10.0
        assert combine_quality_score(1.0, invalid) == 1.0


class TestHeuristicQualityScorer:
    def test_empty_note_stays_in_bounds(self):
        assert 1.0 <= HeuristicQualityScorer.score("") <= 10.0

    def test_structured_note_scores_higher_than_slang(self):
        structured = HeuristicQualityScorer.score(UPDATED_CREDIBLE_NOTE * 2, transcript="mood sleep sertraline")
        slang = HeuristicQualityScorer.score("I think the patient is gonna be ok lol")
        assert structured > slang
        assert structured <= 10.0


# =============================================================================
# BASE PROVIDER CLIENT
# =============================================================================


class TestBaseProviderClient:
    @pytest.mark.asyncio
    async def test_generates_note_with_self_evaluation(self, note_request):
        client = ScriptedClient([NOTE_REPLY, {"text": '{"qualityScore": 8}'}])
        response = await client.generate_note(note_request)

        assert response.success
        assert response.provider is AIProvider.GEMINI
        assert response.note.content == UPDATED_CREDIBLE_NOTE
        assert response.note.quality_score == 9.0
        assert response.note.metadata.tokens_used == 1020
        assert response.note.metadata.patient_id == "patient_1"
        assert "Self-evaluation score: 8.0" in response.performance.processing_steps
        assert len(client.calls) == 2
        assert client.total_calls == 1

    @pytest.mark.asyncio
    async def test_retries_transient_server_error(self, note_request):
        client = ScriptedClient(
            [StatusError(503), NOTE_REPLY, {"text": '{"qualityScore": 7}'}], max_retries=2
        )
        response = await client.generate_note(note_request)
        assert response.success
        assert len(client.calls) == 3

    @pytest.mark.asyncio
    async def test_authentication_error_not_retried(self, note_request):
        client = ScriptedClient([StatusError(401, "invalid x-api-key")], max_retries=3)

        with pytest.raises(LLMAuthenticationError) as exc_info:
            await client.generate_note(note_request)

        assert len(client.calls) == 1
        assert exc_info.value.processing_steps[-1] == "Failed: INVALID_API_KEY"
        assert client.failed_calls == 1
        assert client.success_rate == 0.0

    @pytest.mark.asyncio
    async def test_blank_reply_is_empty_response(self, note_request):
        client = ScriptedClient([{"text": "   "}])
        with pytest.raises(LLMEmptyResponseError) as exc_info:
            await client.generate_note(note_request)
        assert exc_info.value.code is ErrorCode.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_heuristic_used_when_self_evaluation_unusable(self, note_request):
        client = ScriptedClient([NOTE_REPLY, {"text": "No usable rating."}])
        response = await client.generate_note(note_request)

        steps = response.performance.processing_steps
        assert "Self-evaluation unavailable, heuristic score used" in steps
        assert 1.0 <= response.note.quality_score <= 10.0

    @pytest.mark.asyncio
    async def test_heuristic_used_when_self_evaluation_fails(self, note_request):
        client = ScriptedClient([NOTE_REPLY, StatusError(500)])
        response = await client.generate_note(note_request)
        assert "Self-evaluation unavailable, heuristic score used" in response.performance.processing_steps

    @pytest.mark.asyncio
    async def test_self_evaluation_disabled(self, note_request):
        client = ScriptedClient([NOTE_REPLY], self_evaluate=False)
        response = await client.generate_note(note_request)
        assert len(client.calls) == 1
        assert 1.0 <= response.note.quality_score <= 10.0

    @pytest.mark.asyncio
    async def test_token_usage_estimated_when_missing(self, note_request):
        client = ScriptedClient([{"text": UPDATED_CREDIBLE_NOTE}], self_evaluate=False)
        response = await client.generate_note(note_request)
        assert response.note.metadata.prompt_tokens > 0
        assert response.note.metadata.completion_tokens > 0

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await ScriptedClient([{"text": "OK"}]).is_healthy()
        assert not await ScriptedClient([{"text": "nope"}]).is_healthy()
        assert not await ScriptedClient([StatusError(401)]).is_healthy()


def test_fake_client_satisfies_protocol():
    assert isinstance(FakeProviderClient(AIProvider.CLAUDE), ProviderClientProtocol)


# =============================================================================
# CLAUDE CLIENT
# =============================================================================


class TestClaudeClient:
    def test_missing_api_key(self):
        with pytest.raises(LLMAuthenticationError) as exc_info:
            ClaudeClient(provider_config(api_key=None))
        assert exc_info.value.code is ErrorCode.MISSING_API_KEY

    @pytest.mark.asyncio
    async def test_call_api_maps_messages_response(self):
        client = ClaudeClient(provider_config())
        captured = {}

        async def create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(
                stop_reason="end_turn",
                content=[SimpleNamespace(type="text", text="HPI:\nStable.")],
                usage=SimpleNamespace(input_tokens=50, output_tokens=10),
                model="test-model",
            )

        client._client = SimpleNamespace(messages=SimpleNamespace(create=create))
        payload = await client._call_api("system", "user", 256)

        assert payload == {
            "text": "HPI:\nStable.",
            "prompt_tokens": 50,
            "completion_tokens": 10,
            "model": "test-model",
            "finish_reason": "end_turn",
        }
        assert captured["system"] == "system"
        assert captured["max_tokens"] == 256
        assert captured["messages"] == [{"role": "user", "content": "user"}]

    @pytest.mark.asyncio
    async def test_refusal_is_content_filtered(self):
        client = ClaudeClient(provider_config())

        async def create(**kwargs):
            return SimpleNamespace(stop_reason="refusal", content=[], usage=None, model="test-model")

        client._client = SimpleNamespace(messages=SimpleNamespace(create=create))
        with pytest.raises(LLMError) as exc_info:
            await client._call_api("system", "user")
        assert exc_info.value.code is ErrorCode.SAFETY_FILTER
