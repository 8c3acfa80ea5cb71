"""Tests for visit-type defaults, presets and manual section toggles."""

import pytest

from clinical_note_assistant.core.enums import ErrorCode, SectionType, VisitType
from clinical_note_assistant.core.exceptions import ConfigurationError
from clinical_note_assistant.core.models import SectionUpdateConfig
from clinical_note_assistant.generation.section_updates import (
    PRESETS,
    apply_preset,
    configure_section_updates,
    create_default_section_configs,
    find_section_config,
    get_default_update_setting,
    get_update_reason,
    resolve_section_decisions,
    select_group,
    set_all,
    summarize_configs,
    toggle_section,
)

from tests.conftest import MINIMAL_PRESET_NOTE


def selected(configs):
    return {c.section_type for c in configs if c.should_update}


# =============================================================================
# VISIT-TYPE DEFAULTS
# =============================================================================


class TestDefaults:
    def test_transfer_of_care_updates_clinical_sections(self, parsed_credible_note):
        configs = create_default_section_configs(parsed_credible_note, VisitType.TRANSFER_OF_CARE)
        assert [c.section_type for c in configs] == parsed_credible_note.section_types
        assert all(c.should_update for c in configs)

    def test_follow_up_preserves_assessment(self, parsed_credible_note):
        configs = create_default_section_configs(parsed_credible_note, "follow-up")
        by_type = {c.section_type: c for c in configs}

        assert not by_type[SectionType.ASSESSMENT_AND_PLAN].should_update
        assert by_type[SectionType.ASSESSMENT_AND_PLAN].update_reason == (
            "Typically preserved from previous visit"
        )
        assert by_type[SectionType.HPI].should_update

    @pytest.mark.parametrize(
        "section_type, visit_type, expected",
        [
            (SectionType.BASIC_DEMO_INFO, VisitType.TRANSFER_OF_CARE, False),
            (SectionType.IDENTIFYING_INFO, VisitType.FOLLOW_UP, False),
            (SectionType.BASIC_DEMO_INFO, VisitType.PSYCHIATRIC_INTAKE, True),
            (SectionType.DIAGNOSIS, VisitType.FOLLOW_UP, False),
            (SectionType.DIAGNOSIS, VisitType.TRANSFER_OF_CARE, True),
            (SectionType.HPI, None, True),
            (SectionType.HPI, "not-a-visit", True),
        ],
    )
    def test_default_update_setting(self, section_type, visit_type, expected):
        assert get_default_update_setting(section_type, visit_type) is expected

    def test_update_reason_falls_back_to_section_reason(self):
        assert get_update_reason(SectionType.RISKS, VisitType.FOLLOW_UP) == "Current risk assessment"
        assert get_update_reason(SectionType.PROGNOSIS) == "Standard update for this visit type"


# =============================================================================
# PRESETS
# =============================================================================


class TestPresets:
    def test_minimal_preset_selects_exactly_its_sections(self, detector):
        parsed = detector.parse(MINIMAL_PRESET_NOTE)
        configs = apply_preset(create_default_section_configs(parsed), "minimal")

        assert selected(configs) == {
            SectionType.HPI,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.FOLLOW_UP,
        }
        medication_plan = next(
            c for c in configs if c.section_type is SectionType.MEDICATIONS_PLAN
        )
        assert not medication_plan.should_update

    def test_preset_matches_legacy_aliases(self, detector):
        parsed = detector.parse("HPI:\nStable.\n\nPlan:\nContinue sertraline.")
        configs = apply_preset(create_default_section_configs(parsed), "minimal")
        assert selected(configs) == {SectionType.HPI, SectionType.PLAN}

    def test_exclude_preset(self, detector):
        parsed = detector.parse("Assessment:\nStable.\n\nPlan:\nContinue sertraline.")
        configs = apply_preset(create_default_section_configs(parsed), "preserve-assessment")
        assert selected(configs) == {SectionType.PLAN}

    def test_update_all_preset(self, parsed_credible_note):
        configs = set_all(create_default_section_configs(parsed_credible_note), False)
        configs = apply_preset(configs, "update-all")
        assert all(c.should_update for c in configs)

    def test_preset_keeps_reasons(self, parsed_credible_note):
        defaults = create_default_section_configs(parsed_credible_note)
        configs = apply_preset(defaults, "minimal")
        assert [c.update_reason for c in configs] == [c.update_reason for c in defaults]

    def test_unknown_preset(self, parsed_credible_note):
        with pytest.raises(ConfigurationError) as exc_info:
            apply_preset(create_default_section_configs(parsed_credible_note), "everything")
        assert exc_info.value.code is ErrorCode.BAD_REQUEST

    def test_every_preset_is_well_formed(self):
        for preset in PRESETS.values():
            assert preset["name"] and preset["description"]
            assert ("select" in preset) != ("exclude" in preset)


# =============================================================================
# MANUAL ADJUSTMENTS
# =============================================================================


class TestAdjustments:
    def test_toggle_section_returns_new_list(self, parsed_credible_note):
        configs = create_default_section_configs(parsed_credible_note)
        toggled = toggle_section(configs, SectionType.CURRENT_MEDICATIONS)

        assert SectionType.CURRENT_MEDICATIONS not in selected(toggled)
        assert SectionType.CURRENT_MEDICATIONS in selected(configs)

    def test_select_group(self, parsed_credible_note):
        configs = set_all(create_default_section_configs(parsed_credible_note), False)
        configs = select_group(configs, "MEDICATIONS")
        assert selected(configs) == {SectionType.CURRENT_MEDICATIONS}

        configs = select_group(configs, "MEDICATIONS", selected=False)
        assert selected(configs) == set()

    def test_unknown_group(self, parsed_credible_note):
        with pytest.raises(ConfigurationError):
            select_group(create_default_section_configs(parsed_credible_note), "VITAL_SIGNS")

    def test_summarize(self):
        configs = [
            SectionUpdateConfig(SectionType.HPI, True),
            SectionUpdateConfig(SectionType.RISKS, False),
            SectionUpdateConfig(SectionType.FOLLOW_UP, True),
        ]
        assert summarize_configs(configs) == {"sectionsToUpdate": 2, "sectionsToPreserve": 1}


def test_configure_section_updates_applies_layers_in_order(parsed_credible_note):
    configs = configure_section_updates(
        parsed_credible_note,
        visit_type=VisitType.FOLLOW_UP,
        preset="minimal",
        overrides={SectionType.FOLLOW_UP: False, SectionType.CURRENT_MEDICATIONS: True},
    )
    assert selected(configs) == {
        SectionType.HPI,
        SectionType.ASSESSMENT_AND_PLAN,
        SectionType.CURRENT_MEDICATIONS,
    }


def test_overrides_accept_standardized_types(detector):
    parsed = detector.parse("Assessment:\nStable.\n\nPlan:\nContinue sertraline.")
    configs = configure_section_updates(
        parsed, overrides={SectionType.ASSESSMENT_AND_PLAN: False, SectionType.PLAN: True}
    )
    assert selected(configs) == {SectionType.PLAN}


class TestFindSectionConfig:
    def test_standardized_config_decides_legacy_section(self):
        config = SectionUpdateConfig(SectionType.ASSESSMENT_AND_PLAN, True)
        assert find_section_config(SectionType.PLAN, [config]) is config
        assert find_section_config(SectionType.ASSESSMENT, [config]) is config
        assert find_section_config(SectionType.HPI, [config]) is None

    def test_exact_type_wins_over_alias(self):
        exact = SectionUpdateConfig(SectionType.PLAN, False)
        aliased = SectionUpdateConfig(SectionType.ASSESSMENT_AND_PLAN, True)
        assert find_section_config(SectionType.PLAN, [exact, aliased]) is exact

    def test_resolves_every_parsed_section(self, detector):
        parsed = detector.parse("Subjective:\nAnxious.\n\nAssessment:\nGAD.\n\nPlan:\nStart buspirone.")
        decisions = resolve_section_decisions(
            parsed, [SectionUpdateConfig(SectionType.ASSESSMENT_AND_PLAN, True)]
        )
        assert decisions[SectionType.SUBJECTIVE] is None
        assert decisions[SectionType.ASSESSMENT].should_update
        assert decisions[SectionType.PLAN].should_update


def test_config_dict_round_trip():
    config = SectionUpdateConfig(SectionType.HPI, True, update_reason="Recent symptom changes")
    assert SectionUpdateConfig.from_dict(config.to_dict()) == config
