"""
Section Updates - Visit-Type Defaults, Presets and Toggles

Pure data transforms that build and adjust the list of
SectionUpdateConfig handed to the selective updater. Nothing here does
I/O; every function returns new config objects and leaves its input
untouched.

Defaults by Visit Type:
    transfer-of-care    update everything except identity/demographics
    follow-up           additionally preserve the prior assessment and diagnosis
    psychiatric-intake  update everything

Presets:
    transfer-standard, medication-focused, comprehensive, minimal,
    update-all, preserve-assessment, update-plan-only, standard-followup

Matching:
    A config matches a preset or default list when its section type is
    listed, or when its standardized alias (SECTION_ALIASES) is listed.
    A legacy "Plan:" section is therefore selected by a preset naming
    ASSESSMENT_AND_PLAN. The selective updater resolves configs to parsed
    sections the same way (find_section_config).

Author: Shubham Singh
Date: December 2025
"""

import dataclasses
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from loguru import logger

from clinical_note_assistant.core.constants import SECTION_ALIASES, SECTION_GROUPS
from clinical_note_assistant.core.enums import ErrorCode, SectionType, VisitType
from clinical_note_assistant.core.exceptions import ConfigurationError
from clinical_note_assistant.core.models import ParsedNote, SectionUpdateConfig


# =============================================================================
# STAGE 1: VISIT-TYPE DEFAULTS
# =============================================================================

# Never regenerated by default: the new provider confirms these by hand.
IDENTITY_SECTIONS: FrozenSet[SectionType] = frozenset(
    [SectionType.BASIC_DEMO_INFO, SectionType.IDENTIFYING_INFO]
)

# Follow-up visits keep the prior diagnostic impression.
FOLLOW_UP_PRESERVED: FrozenSet[SectionType] = frozenset(
    [SectionType.ASSESSMENT_AND_PLAN, SectionType.ASSESSMENT, SectionType.DIAGNOSIS]
)

UPDATE_REASONS: Dict[SectionType, str] = {
    SectionType.HPI: "Current visit findings and patient reports",
    SectionType.REVIEW_OF_SYSTEMS: "Current symptom assessment",
    SectionType.PSYCHIATRIC_EXAM: "Current mental status findings",
    SectionType.QUESTIONNAIRES_SURVEYS: "Current screening scores",
    SectionType.ASSESSMENT_AND_PLAN: "Updated clinical assessment and treatment plan",
    SectionType.MEDICATIONS_PLAN: "Medication changes and adjustments",
    SectionType.CURRENT_MEDICATIONS: "Updated medication list",
    SectionType.RISKS: "Current risk assessment",
    SectionType.SAFETY_PLAN: "Updated safety planning",
    SectionType.PSYCHOSOCIAL: "Therapy progress and current stressors",
    SectionType.FOLLOW_UP: "Next appointment and follow-up instructions",
    SectionType.SUBJECTIVE: "Current subjective findings and patient reports",
    SectionType.OBJECTIVE: "Current objective findings and observations",
    SectionType.ASSESSMENT: "Updated clinical assessment",
    SectionType.PLAN: "Updated treatment plan",
    SectionType.MSE: "Current mental status examination findings",
}

VISIT_UPDATE_REASONS: Dict[VisitType, Dict[SectionType, str]] = {
    VisitType.TRANSFER_OF_CARE: {
        SectionType.SUBJECTIVE: "Update with interval history since last visit",
        SectionType.OBJECTIVE: "Current mental status and clinical findings",
        SectionType.ASSESSMENT: "Revised diagnostic impression and severity",
        SectionType.HPI: "Recent developments in symptom presentation",
    },
    VisitType.FOLLOW_UP: {
        SectionType.SUBJECTIVE: "Interval changes and treatment response",
        SectionType.OBJECTIVE: "Current clinical presentation",
        SectionType.ASSESSMENT: "Typically preserved from previous visit",
        SectionType.ASSESSMENT_AND_PLAN: "Typically preserved from previous visit",
        SectionType.DIAGNOSIS: "Typically preserved from previous visit",
        SectionType.PLAN: "Adjusted based on treatment response",
        SectionType.HPI: "Recent symptom changes",
    },
}

DEFAULT_UPDATE_REASON = "Standard update for this visit type"


def _resolve_visit_type(visit_type: Union[VisitType, str, None]) -> Optional[VisitType]:
    if visit_type is None or isinstance(visit_type, VisitType):
        return visit_type
    try:
        return VisitType.from_string(visit_type)
    except ValueError:
        logger.warning(f"Unknown visit type '{visit_type}', using transfer-of-care defaults")
        return None


def _matches(section_type: SectionType, types: Iterable[SectionType]) -> bool:
    types = set(types)
    return section_type in types or SECTION_ALIASES.get(section_type) in types


def _canonical(section_type: SectionType) -> SectionType:
    return SECTION_ALIASES.get(section_type, section_type)


def find_section_config(
    section_type: SectionType, configs: Iterable[SectionUpdateConfig]
) -> Optional[SectionUpdateConfig]:
    """
    The config that decides a parsed section.

    A config for the exact type wins; otherwise a config whose type shares
    the section's standardized alias applies, so an ASSESSMENT_AND_PLAN
    config also decides legacy "Assessment:" and "Plan:" sections. The
    last matching config wins within each tier.
    """
    exact: Optional[SectionUpdateConfig] = None
    aliased: Optional[SectionUpdateConfig] = None
    canonical = _canonical(section_type)
    for config in configs:
        if config.section_type is section_type:
            exact = config
        elif _canonical(config.section_type) is canonical:
            aliased = config
    return exact or aliased


def resolve_section_decisions(
    parsed: ParsedNote, configs: List[SectionUpdateConfig]
) -> Dict[SectionType, Optional[SectionUpdateConfig]]:
    """Map each parsed section type to the config deciding it (None if unconfigured)."""
    return {section.type: find_section_config(section.type, configs) for section in parsed.sections}


def get_default_update_setting(
    section_type: SectionType, visit_type: Union[VisitType, str, None] = None
) -> bool:
    """Whether a section is regenerated by default for a visit type."""
    visit = _resolve_visit_type(visit_type)
    if visit is VisitType.PSYCHIATRIC_INTAKE:
        return True
    if section_type in IDENTITY_SECTIONS:
        return False
    if visit is VisitType.FOLLOW_UP and section_type in FOLLOW_UP_PRESERVED:
        return False
    return True


def get_update_reason(
    section_type: SectionType, visit_type: Union[VisitType, str, None] = None
) -> str:
    """Human-readable guidance for updating a section."""
    visit = _resolve_visit_type(visit_type)
    if visit is not None:
        reason = VISIT_UPDATE_REASONS.get(visit, {}).get(section_type)
        if reason:
            return reason
    return UPDATE_REASONS.get(section_type, DEFAULT_UPDATE_REASON)


def create_default_section_configs(
    parsed: ParsedNote, visit_type: Union[VisitType, str, None] = None
) -> List[SectionUpdateConfig]:
    """
    One config per detected section, in note order.

    Args:
        parsed: Parsed prior note
        visit_type: Visit type driving the defaults

    Returns:
        List of SectionUpdateConfig
    """
    configs = [
        SectionUpdateConfig(
            section_type=section.type,
            should_update=get_default_update_setting(section.type, visit_type),
            update_reason=get_update_reason(section.type, visit_type),
        )
        for section in parsed.sections
    ]
    logger.debug(
        f"Default section configs | Visit: {visit_type} | "
        f"Update: {sum(c.should_update for c in configs)}/{len(configs)}"
    )
    return configs


# =============================================================================
# STAGE 2: PRESETS
# =============================================================================
# "select" presets update exactly the listed sections; "exclude" presets
# update everything except the listed sections.

PRESETS: Dict[str, Dict] = {
    "transfer-standard": {
        "name": "Standard Transfer",
        "description": "Typical transfer of care updates",
        "select": [
            SectionType.HPI,
            SectionType.REVIEW_OF_SYSTEMS,
            SectionType.PSYCHIATRIC_EXAM,
            SectionType.QUESTIONNAIRES_SURVEYS,
            SectionType.RISKS,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.MEDICATIONS_PLAN,
            SectionType.PSYCHOSOCIAL,
            SectionType.SAFETY_PLAN,
            SectionType.FOLLOW_UP,
        ],
    },
    "medication-focused": {
        "name": "Medication Focus",
        "description": "Primarily medication management",
        "select": [
            SectionType.CURRENT_MEDICATIONS,
            SectionType.HPI,
            SectionType.REVIEW_OF_SYSTEMS,
            SectionType.PSYCHIATRIC_EXAM,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.MEDICATIONS_PLAN,
            SectionType.FOLLOW_UP,
        ],
    },
    "comprehensive": {
        "name": "Comprehensive",
        "description": "Update most sections",
        "select": [
            SectionType.BASIC_DEMO_INFO,
            SectionType.CURRENT_MEDICATIONS,
            SectionType.BH_PRIOR_MEDS_TRIED,
            SectionType.HPI,
            SectionType.REVIEW_OF_SYSTEMS,
            SectionType.PSYCHIATRIC_EXAM,
            SectionType.QUESTIONNAIRES_SURVEYS,
            SectionType.MEDICAL,
            SectionType.PHYSICAL_EXAM,
            SectionType.RISKS,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.MEDICATIONS_PLAN,
            SectionType.PSYCHOSOCIAL,
            SectionType.SAFETY_PLAN,
            SectionType.FOLLOW_UP,
        ],
    },
    "minimal": {
        "name": "Minimal Update",
        "description": "Only essential changes",
        "select": [SectionType.HPI, SectionType.ASSESSMENT_AND_PLAN, SectionType.FOLLOW_UP],
    },
    "update-all": {
        "name": "Update All Sections",
        "description": "Update all sections with new information",
        "exclude": [],
    },
    "preserve-assessment": {
        "name": "Preserve Assessment",
        "description": "Update clinical findings but keep diagnostic assessment",
        "exclude": [SectionType.ASSESSMENT, SectionType.DIAGNOSIS],
    },
    "update-plan-only": {
        "name": "Plan Updates Only",
        "description": "Only update treatment plan and recommendations",
        "select": [
            SectionType.PLAN,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.MEDICATIONS_PLAN,
        ],
    },
    "standard-followup": {
        "name": "Standard Follow-up",
        "description": "Typical updates for follow-up visits",
        "select": [
            SectionType.SUBJECTIVE,
            SectionType.OBJECTIVE,
            SectionType.PLAN,
            SectionType.HPI,
            SectionType.MSE,
        ],
    },
}


def _preset_selects(preset: Dict, section_type: SectionType) -> bool:
    if "select" in preset:
        return _matches(section_type, preset["select"])
    return section_type not in set(preset["exclude"])


def apply_preset(configs: List[SectionUpdateConfig], preset_id: str) -> List[SectionUpdateConfig]:
    """
    Apply a named preset to existing configs.

    Only should_update changes; reasons and merge settings are kept.

    Raises:
        ConfigurationError: If the preset is unknown
    """
    preset = PRESETS.get(preset_id)
    if preset is None:
        raise ConfigurationError(
            f"Unknown preset: '{preset_id}'",
            context={"valid": ", ".join(PRESETS)},
            code=ErrorCode.BAD_REQUEST,
        )

    updated = [
        dataclasses.replace(config, should_update=_preset_selects(preset, config.section_type))
        for config in configs
    ]
    logger.debug(
        f"Preset applied | Preset: {preset_id} | "
        f"Update: {sum(c.should_update for c in updated)}/{len(updated)}"
    )
    return updated


# =============================================================================
# STAGE 3: MANUAL ADJUSTMENTS
# =============================================================================


def toggle_section(
    configs: List[SectionUpdateConfig], section_type: SectionType
) -> List[SectionUpdateConfig]:
    """Flip should_update for one section type."""
    return [
        dataclasses.replace(config, should_update=not config.should_update)
        if config.section_type == section_type
        else config
        for config in configs
    ]


def set_all(configs: List[SectionUpdateConfig], should_update: bool) -> List[SectionUpdateConfig]:
    return [dataclasses.replace(config, should_update=should_update) for config in configs]


def select_group(
    configs: List[SectionUpdateConfig], group_id: str, selected: bool = True
) -> List[SectionUpdateConfig]:
    """
    Select (or deselect) every section of a SECTION_GROUPS group.

    Raises:
        ConfigurationError: If the group is unknown
    """
    group = SECTION_GROUPS.get(group_id)
    if group is None:
        raise ConfigurationError(
            f"Unknown section group: '{group_id}'",
            context={"valid": ", ".join(SECTION_GROUPS)},
            code=ErrorCode.BAD_REQUEST,
        )
    members = set(group["sections"])
    return [
        dataclasses.replace(config, should_update=selected)
        if config.section_type in members
        else config
        for config in configs
    ]


def summarize_configs(configs: List[SectionUpdateConfig]) -> Dict[str, int]:
    to_update = sum(1 for c in configs if c.should_update)
    return {"sectionsToUpdate": to_update, "sectionsToPreserve": len(configs) - to_update}


def configure_section_updates(
    parsed: ParsedNote,
    visit_type: Union[VisitType, str, None] = None,
    preset: Optional[str] = None,
    overrides: Optional[Dict[SectionType, bool]] = None,
) -> List[SectionUpdateConfig]:
    """
    Build the configs for a selective update in one call.

    Visit-type defaults first, then the preset (if any), then explicit
    per-section overrides.

    Args:
        parsed: Parsed prior note
        visit_type: Visit type driving defaults and reasons
        preset: Optional preset id
        overrides: Section type -> should_update

    Returns:
        List of SectionUpdateConfig in note order
    """
    configs = create_default_section_configs(parsed, visit_type)
    if preset:
        configs = apply_preset(configs, preset)
    if overrides:
        adjusted = []
        for config in configs:
            if config.section_type in overrides:
                value = overrides[config.section_type]
            else:
                value = overrides.get(_canonical(config.section_type))
            adjusted.append(
                config if value is None else dataclasses.replace(config, should_update=value)
            )
        configs = adjusted
    return configs
