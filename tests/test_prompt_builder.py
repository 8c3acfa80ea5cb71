"""Tests for constrained Transfer-of-Care prompt construction."""

import pytest

from clinical_note_assistant.core.enums import EMRType, SectionType
from clinical_note_assistant.core.exceptions import PromptError
from clinical_note_assistant.core.models import SectionUpdateConfig
from clinical_note_assistant.generation.prompt_builder import (
    DEFAULT_UPDATE_INSTRUCTION,
    PromptBuilder,
    get_section_update_instructions,
)

from tests.conftest import TRANSCRIPT_TEXT


@pytest.fixture
def builder() -> PromptBuilder:
    return PromptBuilder()


@pytest.fixture
def hpi_only(parsed_credible_note):
    return [
        SectionUpdateConfig(
            section_type=section_type,
            should_update=section_type is SectionType.HPI,
            update_reason="Recent symptom changes" if section_type is SectionType.HPI else "",
        )
        for section_type in parsed_credible_note.section_types
    ]


class TestConstrainedPrompt:
    def test_preserved_sections_are_quoted_verbatim(self, builder, parsed_credible_note, hpi_only):
        prompt = builder.build_constrained_transfer_prompt(
            parsed_credible_note, TRANSCRIPT_TEXT, hpi_only, emr=EMRType.CREDIBLE
        )

        assert prompt.startswith("# TRANSFER OF CARE - CONSTRAINED SECTION UPDATE")
        assert "### Current Medications:\nSertraline 50 mg daily." in prompt
        assert "### Follow-up:\nReturn in 4 weeks." in prompt
        assert "### HPI (UPDATE THIS SECTION):" in prompt
        assert "Reason for update: Recent symptom changes" in prompt
        assert TRANSCRIPT_TEXT in prompt

    def test_structure_follows_original_order(self, builder, parsed_credible_note, hpi_only):
        prompt = builder.build_constrained_transfer_prompt(
            parsed_credible_note, TRANSCRIPT_TEXT, hpi_only
        )
        structure = prompt.split("following this EXACT structure:")[1]

        positions = [
            structure.index(header)
            for header in ("HPI:", "Current Medications:", "Assessment and Plan:", "Follow-up:")
        ]
        assert positions == sorted(positions)
        assert "HPI:\n[UPDATE THIS SECTION using new clinical information]" in structure
        assert "Follow-up:\n[PRESERVE EXACTLY as provided above]" in structure

    def test_formatting_rules_follow_emr(self, builder, parsed_credible_note, hpi_only):
        credible = builder.build_constrained_transfer_prompt(
            parsed_credible_note, TRANSCRIPT_TEXT, hpi_only, emr=EMRType.CREDIBLE
        )
        epic = builder.build_constrained_transfer_prompt(
            parsed_credible_note, TRANSCRIPT_TEXT, hpi_only, emr=EMRType.EPIC
        )

        assert "- Use CREDIBLE formatting conventions" in credible
        assert "DO NOT break CREDIBLE syntax" in credible
        assert "- Use EPIC formatting conventions" in epic
        assert "SmartPhrases" in epic

    def test_sections_without_config_are_preserved(self, builder, parsed_credible_note):
        configs = [SectionUpdateConfig(SectionType.FOLLOW_UP, True)]
        prompt = builder.build_constrained_transfer_prompt(
            parsed_credible_note, TRANSCRIPT_TEXT, configs
        )
        assert "### HPI:\nPatient reports improved mood" in prompt
        assert "### Follow-up (UPDATE THIS SECTION):" in prompt

    def test_standardized_config_selects_legacy_headers(self, builder, detector):
        parsed = detector.parse("Subjective:\nAnxious.\n\nAssessment:\nGAD.\n\nPlan:\nStart buspirone.")
        prompt = builder.build_constrained_transfer_prompt(
            parsed, TRANSCRIPT_TEXT, [SectionUpdateConfig(SectionType.ASSESSMENT_AND_PLAN, True)]
        )
        assert "### Assessment (UPDATE THIS SECTION):" in prompt
        assert "### Plan (UPDATE THIS SECTION):" in prompt
        assert "### Subjective:\nAnxious." in prompt

    def test_empty_transcript_rejected(self, builder, parsed_credible_note, hpi_only):
        with pytest.raises(PromptError):
            builder.build_constrained_transfer_prompt(parsed_credible_note, "   ", hpi_only)

    def test_nothing_selected_rejected(self, builder, parsed_credible_note):
        configs = [
            SectionUpdateConfig(t, False) for t in parsed_credible_note.section_types
        ]
        with pytest.raises(PromptError):
            builder.build_constrained_transfer_prompt(
                parsed_credible_note, TRANSCRIPT_TEXT, configs
            )


class TestValidationPrompt:
    def test_lists_sections_and_truncates(self, builder):
        prompt = builder.build_validation_prompt(
            "A" * 1500,
            "B" * 20,
            sections_updated=[SectionType.HPI],
            sections_preserved=[SectionType.FOLLOW_UP, SectionType.RISKS],
        )
        assert "A" * 1000 + "..." in prompt
        assert "A" * 1001 not in prompt
        assert "HPI" in prompt
        assert "FOLLOW_UP, RISKS" in prompt
        assert '"overall_quality": 1-10' in prompt

    def test_excerpt_disabled(self, builder):
        prompt = builder.build_validation_prompt("A" * 1500, "B", [], [], excerpt_length=None)
        assert "A" * 1500 in prompt
        assert "(none)" in prompt


def test_update_instructions_default():
    assert "medication list" in get_section_update_instructions(SectionType.CURRENT_MEDICATIONS)
    assert get_section_update_instructions(SectionType.VITALS) == DEFAULT_UPDATE_INSTRUCTION
