"""Tests for the Transfer-of-Care selective update orchestrator."""

import pytest

from clinical_note_assistant.clients.provider_manager import ProviderManager
from clinical_note_assistant.core.enums import AIProvider, ErrorCode, SectionType
from clinical_note_assistant.core.exceptions import (
    AllProvidersFailedError,
    GenerationError,
    IncompleteOutputError,
    LLMError,
    PromptError,
)
from clinical_note_assistant.core.models import SectionUpdateConfig
from clinical_note_assistant.generation.selective_updater import (
    NoteGenerationService,
    SelectiveUpdateOrchestrator,
)

from tests.conftest import CREDIBLE_NOTE, TRANSCRIPT_TEXT, UPDATED_CREDIBLE_NOTE, FakeProviderClient


SOAP_NOTE = """Subjective:
Patient reports increased anxiety at work.

Objective:
Alert, oriented, anxious affect.

Assessment:
Generalized anxiety disorder, worsening.

Plan:
Start buspirone 5 mg twice daily."""

UPDATED_SOAP_NOTE = SOAP_NOTE.replace(
    "Generalized anxiety disorder, worsening.", "Generalized anxiety disorder, improving."
).replace("Start buspirone 5 mg twice daily.", "Continue buspirone 5 mg twice daily.")

DUPLICATE_PLAN_NOTE = "Plan:\nStart lithium 300 mg.\n\nHPI:\nDoing well.\n\nPlan:\nFollow up in 4 weeks.\n"


def update_only(parsed, *section_types):
    return [
        SectionUpdateConfig(section_type=t, should_update=t in section_types)
        for t in parsed.section_types
    ]


def failing(provider: AIProvider) -> FakeProviderClient:
    return FakeProviderClient(
        provider,
        error=LLMError("upstream error", provider=provider.value, code=ErrorCode.SERVER_ERROR),
    )


@pytest.fixture
def orchestrator_for(manager_config):
    def build(gemini, claude=None, **config_changes):
        clients = {AIProvider.GEMINI: gemini}
        if claude is not None:
            clients[AIProvider.CLAUDE] = claude
        for key, value in config_changes.items():
            setattr(manager_config, key, value)
        return SelectiveUpdateOrchestrator(ProviderManager(clients, manager_config))

    return build


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_nothing_selected_returns_original_without_llm_call(
        self, orchestrator_for, gemini_client, parsed_credible_note, transcript
    ):
        orchestrator = orchestrator_for(gemini_client)
        configs = update_only(parsed_credible_note)

        result = await orchestrator.generate_update(parsed_credible_note, transcript, configs)

        assert gemini_client.calls == 0
        assert result.note.content == CREDIBLE_NOTE
        assert result.note.original_content == CREDIBLE_NOTE
        assert not result.provider_called
        assert result.sections_updated == []
        assert result.sections_preserved == parsed_credible_note.section_types
        assert any("No sections selected" in w for w in result.warnings)
        assert 1.0 <= result.note.quality_score <= 10.0
        assert orchestrator.update_count == 0

    @pytest.mark.asyncio
    async def test_empty_prior_note_rejected(self, orchestrator_for, gemini_client, detector, transcript):
        parsed = detector.parse("   ")
        with pytest.raises(PromptError):
            await orchestrator_for(gemini_client).generate_update(
                parsed, transcript, [SectionUpdateConfig(SectionType.OTHER, True)]
            )


class TestSelectiveUpdate:
    @pytest.mark.asyncio
    async def test_updates_only_selected_section(
        self, orchestrator_for, gemini_client, parsed_credible_note, transcript
    ):
        orchestrator = orchestrator_for(gemini_client)
        configs = update_only(parsed_credible_note, SectionType.HPI)

        result = await orchestrator.generate_update(
            parsed_credible_note, transcript, configs, user_id="dr_lee"
        )

        assert result.provider_called
        assert result.note.content == UPDATED_CREDIBLE_NOTE
        assert result.sections_updated == [SectionType.HPI]
        assert result.sections_preserved == [
            SectionType.CURRENT_MEDICATIONS,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.FOLLOW_UP,
        ]
        assert result.preservation_violations == []
        assert not result.needs_review
        assert not result.fallback_used
        assert orchestrator.update_count == 1

        request = gemini_client.requests[0]
        assert request.prompt_override.startswith("# TRANSFER OF CARE")
        assert request.reference_text is None
        assert request.user_id == "dr_lee"

    @pytest.mark.asyncio
    async def test_accepts_plain_text_transcript(
        self, orchestrator_for, gemini_client, parsed_credible_note
    ):
        result = await orchestrator_for(gemini_client).generate_update(
            parsed_credible_note, TRANSCRIPT_TEXT, update_only(parsed_credible_note, SectionType.HPI)
        )
        assert result.provider_called
        assert gemini_client.requests[0].transcript.content == TRANSCRIPT_TEXT

    @pytest.mark.asyncio
    async def test_altered_preserved_section_is_flagged(
        self, orchestrator_for, parsed_credible_note, transcript
    ):
        altered = UPDATED_CREDIBLE_NOTE.replace("Return in 4 weeks.", "Return in 2 weeks.")
        orchestrator = orchestrator_for(FakeProviderClient(AIProvider.GEMINI, content=altered))

        result = await orchestrator.generate_update(
            parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
        )

        assert result.preservation_violations == [SectionType.FOLLOW_UP]
        assert "PRESERVATION_VIOLATION: FOLLOW_UP was altered but should have been preserved" in (
            result.warnings
        )
        assert result.needs_review
        assert result.note.content == altered
        assert orchestrator.violation_count == 1

    @pytest.mark.asyncio
    async def test_missing_section_raises_incomplete_output(
        self, orchestrator_for, parsed_credible_note, transcript
    ):
        truncated = UPDATED_CREDIBLE_NOTE.split("\n\nFollow-up:")[0]
        orchestrator = orchestrator_for(FakeProviderClient(AIProvider.GEMINI, content=truncated))

        with pytest.raises(IncompleteOutputError) as exc_info:
            await orchestrator.generate_update(
                parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
            )
        assert exc_info.value.missing_sections == ["FOLLOW_UP"]
        assert exc_info.value.code is ErrorCode.INCOMPLETE_OUTPUT

    @pytest.mark.asyncio
    async def test_selected_section_absent_from_note_warns(
        self, orchestrator_for, gemini_client, parsed_credible_note, transcript
    ):
        configs = update_only(parsed_credible_note, SectionType.HPI)
        configs.append(SectionUpdateConfig(SectionType.RISKS, True))

        result = await orchestrator_for(gemini_client).generate_update(
            parsed_credible_note, transcript, configs
        )
        assert "RISKS selected for update but not present in the note" in result.warnings
        assert result.sections_updated == [SectionType.HPI]

    @pytest.mark.asyncio
    async def test_headerless_note_warns_that_preservation_is_unverified(
        self, orchestrator_for, detector, transcript
    ):
        parsed = detector.parse("Patient seen for medication review and doing well overall.")
        gemini = FakeProviderClient(
            AIProvider.GEMINI, content="Patient seen for medication review, sleep restored."
        )
        result = await orchestrator_for(gemini).generate_update(
            parsed, transcript, [SectionUpdateConfig(SectionType.OTHER, True)]
        )
        assert any("preservation could not be verified" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_canonical_config_selects_legacy_sections(
        self, orchestrator_for, detector, transcript
    ):
        parsed = detector.parse(SOAP_NOTE)
        gemini = FakeProviderClient(AIProvider.GEMINI, content=UPDATED_SOAP_NOTE)

        result = await orchestrator_for(gemini).generate_update(
            parsed, transcript, [SectionUpdateConfig(SectionType.ASSESSMENT_AND_PLAN, True)]
        )

        assert gemini.calls == 1
        assert result.sections_updated == [SectionType.ASSESSMENT, SectionType.PLAN]
        assert result.sections_preserved == [SectionType.SUBJECTIVE, SectionType.OBJECTIVE]
        assert result.preservation_violations == []
        assert not any("not present in the note" in w for w in result.warnings)
        assert gemini.requests[0].prompt_override.count("(UPDATE THIS SECTION)") == 2

    @pytest.mark.asyncio
    async def test_duplicate_header_text_reaches_prompt(self, orchestrator_for, detector, transcript):
        parsed = detector.parse(DUPLICATE_PLAN_NOTE)
        output = "HPI:\nSleeping better.\n\nPlan:\nStart lithium 300 mg.\n\nFollow up in 4 weeks."
        gemini = FakeProviderClient(AIProvider.GEMINI, content=output)

        result = await orchestrator_for(gemini).generate_update(
            parsed, transcript, update_only(parsed, SectionType.HPI)
        )

        assert "Start lithium 300 mg." in gemini.requests[0].prompt_override
        assert any(w.startswith("Duplicate PLAN header") for w in result.warnings)
        assert result.preservation_violations == []

    @pytest.mark.asyncio
    async def test_reformatted_preserved_header_is_flagged(
        self, orchestrator_for, parsed_credible_note, transcript
    ):
        reformatted = UPDATED_CREDIBLE_NOTE.replace("Current Medications:", "CURRENT MEDICATIONS:")
        orchestrator = orchestrator_for(FakeProviderClient(AIProvider.GEMINI, content=reformatted))

        result = await orchestrator.generate_update(
            parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
        )

        assert result.preservation_violations == [SectionType.CURRENT_MEDICATIONS]


class TestEpicNotes:
    @pytest.mark.asyncio
    async def test_lost_smart_phrase_needs_review(self, orchestrator_for, detector, epic_note, transcript):
        parsed = detector.parse(epic_note)
        output = epic_note.replace(
            "@NAME@ reports improved mood since the last visit.",
            "Patient reports stable mood and restored sleep.",
        )
        gemini = FakeProviderClient(AIProvider.GEMINI, content=output)

        result = await orchestrator_for(gemini).generate_update(
            parsed, transcript, update_only(parsed, SectionType.HPI)
        )

        request = gemini.requests[0]
        assert request.reference_text == epic_note
        assert result.note.epic_syntax_validation.smart_phrases.missing == ["@NAME@"]
        assert result.needs_review
        assert any(w.startswith("Epic syntax issues") for w in result.warnings)
        assert result.preservation_violations == []


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_fallback_result_is_reported(
        self, orchestrator_for, claude_client, parsed_credible_note, transcript
    ):
        orchestrator = orchestrator_for(failing(AIProvider.GEMINI), claude_client)
        result = await orchestrator.generate_update(
            parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
        )
        assert result.fallback_used
        assert result.note.ai_provider is AIProvider.CLAUDE

    @pytest.mark.asyncio
    async def test_all_providers_failed(self, orchestrator_for, parsed_credible_note, transcript):
        orchestrator = orchestrator_for(failing(AIProvider.GEMINI), failing(AIProvider.CLAUDE))
        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.generate_update(
                parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
            )
        assert len(exc_info.value.errors) == 2
        assert exc_info.value.code is ErrorCode.ALL_PROVIDERS_FAILED

    @pytest.mark.asyncio
    async def test_single_provider_failure_keeps_its_code(
        self, orchestrator_for, parsed_credible_note, transcript
    ):
        orchestrator = orchestrator_for(failing(AIProvider.GEMINI), enable_fallback=False)
        with pytest.raises(GenerationError) as exc_info:
            await orchestrator.generate_update(
                parsed_credible_note, transcript, update_only(parsed_credible_note, SectionType.HPI)
            )
        assert not isinstance(exc_info.value, AllProvidersFailedError)
        assert exc_info.value.code is ErrorCode.SERVER_ERROR


def test_provider_manager_satisfies_generation_protocol(gemini_client, manager_config):
    manager = ProviderManager({AIProvider.GEMINI: gemini_client}, manager_config)
    assert isinstance(manager, NoteGenerationService)
