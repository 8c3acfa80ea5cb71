"""
Shared fixtures: sample notes, transcripts and fake provider clients.

Provider SDKs are never called from the test suite; FakeProviderClient
implements ProviderClientProtocol and records every request it receives.
"""

import asyncio
from typing import Callable, List, Optional

import pytest

from clinical_note_assistant.core.config import AssistantConfiguration, ProviderManagerConfig
from clinical_note_assistant.core.enums import AIProvider
from clinical_note_assistant.core.exceptions import LLMError
from clinical_note_assistant.core.models import (
    GeneratedNote,
    NoteGenerationRequest,
    NoteGenerationResponse,
    PatientTranscript,
    PerformanceInfo,
)
from clinical_note_assistant.parsing.section_detector import SectionDetector
from clinical_note_assistant.validation.epic_syntax_validator import EpicSyntaxValidator


# =============================================================================
# SAMPLE NOTES
# =============================================================================

CREDIBLE_NOTE = """HPI:
Patient reports improved mood since starting sertraline eight weeks ago. Sleep remains fragmented with early waking.

Current Medications:
Sertraline 50 mg daily.

Assessment and Plan:
Major depressive disorder, recurrent, improving. Continue sertraline and weekly therapy.

Follow-up:
Return in 4 weeks."""

UPDATED_CREDIBLE_NOTE = """HPI:
Patient reports stable mood and restored sleep over the past month. Denies side effects.

Current Medications:
Sertraline 50 mg daily.

Assessment and Plan:
Major depressive disorder, recurrent, improving. Continue sertraline and weekly therapy.

Follow-up:
Return in 4 weeks."""

MINIMAL_PRESET_NOTE = """HPI:
Patient presents for medication follow-up and reports fewer panic attacks.

Assessment and Plan:
Panic disorder, improving. Continue current plan.

Follow-up:
Return in 6 weeks.

Medication Plan:
Continue escitalopram 10 mg daily."""

EPIC_NOTE = """HPI:
@NAME@ reports improved mood since the last visit. Mood is {Mood:123}.

Assessment and Plan:
Generalized anxiety disorder, stable. Continue current treatment .followup"""

TRANSCRIPT_TEXT = (
    "Doctor: How has your mood been this month? Patient: Much better, my sleep is back "
    "to normal and I have not noticed any side effects from the sertraline."
)


@pytest.fixture
def detector() -> SectionDetector:
    return SectionDetector()


@pytest.fixture
def credible_note() -> str:
    return CREDIBLE_NOTE


@pytest.fixture
def parsed_credible_note(detector):
    return detector.parse(CREDIBLE_NOTE)


@pytest.fixture
def epic_note() -> str:
    return EPIC_NOTE


@pytest.fixture
def transcript() -> PatientTranscript:
    return PatientTranscript(id="transcript_1", patient_id="patient_1", content=TRANSCRIPT_TEXT)


@pytest.fixture
def note_request(transcript) -> NoteGenerationRequest:
    return NoteGenerationRequest(transcript=transcript, user_id="dr_lee")


# =============================================================================
# FAKE PROVIDER CLIENTS
# =============================================================================


class FakeProviderClient:
    """
    In-memory stand-in for GeminiClient / ClaudeClient.

    Returns `content` (or responder(request)) with a fixed quality score,
    or raises `error`. `delay` is awaited before answering so timeouts
    can be exercised.
    """

    def __init__(
        self,
        provider: AIProvider,
        content: str = UPDATED_CREDIBLE_NOTE,
        quality: float = 8.0,
        error: Optional[LLMError] = None,
        delay: float = 0.0,
        provider_duration: float = 1.0,
        responder: Optional[Callable[[NoteGenerationRequest], str]] = None,
        healthy: bool = True,
    ):
        self._provider = provider
        self.content = content
        self.quality = quality
        self.error = error
        self.delay = delay
        self.provider_duration = provider_duration
        self.responder = responder
        self.healthy = healthy
        self.calls = 0
        self.requests: List[NoteGenerationRequest] = []

    @property
    def provider(self) -> AIProvider:
        return self._provider

    @property
    def model_name(self) -> str:
        return f"fake-{self._provider.value}"

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

        content = self.responder(request) if self.responder else self.content
        validation = EpicSyntaxValidator().validate(
            content, reference=request.expected_syntax_source
        )
        note = GeneratedNote(
            id=f"note_{self._provider.value}_{self.calls}",
            content=content,
            ai_provider=self._provider,
            quality_score=self.quality,
            epic_syntax_validation=validation,
        )
        return NoteGenerationResponse(
            success=True,
            note=note,
            provider=self._provider,
            performance=PerformanceInfo(
                total_duration=self.provider_duration,
                provider_duration=self.provider_duration,
                processing_steps=[f"{self._provider.value} fake response"],
            ),
        )

    async def is_healthy(self) -> bool:
        return self.healthy


@pytest.fixture
def gemini_client() -> FakeProviderClient:
    return FakeProviderClient(AIProvider.GEMINI)


@pytest.fixture
def claude_client() -> FakeProviderClient:
    return FakeProviderClient(AIProvider.CLAUDE)


@pytest.fixture
def manager_config() -> ProviderManagerConfig:
    return ProviderManagerConfig(timeout_seconds=0.5)


# =============================================================================
# CONFIGURATION
# =============================================================================

ENVIRONMENT_KEYS = [
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "ANTHROPIC_API_KEY",
    "CLAUDE_API_KEY",
    "GEMINI_MODEL",
    "CLAUDE_MODEL",
    "PRIMARY_PROVIDER",
    "ENABLE_FALLBACK",
    "ENABLE_COMPARISON",
    "QUALITY_THRESHOLD",
    "PROVIDER_TIMEOUT",
    "RETRY_ATTEMPTS",
    "GEMINI_MAX_TOKENS",
    "GEMINI_TEMPERATURE",
    "CLAUDE_MAX_TOKENS",
    "CLAUDE_TEMPERATURE",
    "AUTO_SAVE_DELAY",
    "AUTO_SAVE_RETRY_ATTEMPTS",
    "AUTO_SAVE_RETRY_DELAY",
    "PAUSE_THRESHOLD",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    """No assistant settings in the environment and no .env in the cwd."""
    # setenv first so keys loaded by load_dotenv are also removed on teardown
    for key in ENVIRONMENT_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def assistant_config() -> AssistantConfiguration:
    return AssistantConfiguration(
        gemini_api_key="test-gemini-key",
        anthropic_api_key="test-claude-key",
        provider_timeout=0.5,
        auto_save_delay=0.01,
        auto_save_retry_delay=0.0,
    )
