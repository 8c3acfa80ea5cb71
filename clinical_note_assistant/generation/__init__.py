"""
Generation Layer - Transfer-of-Care Selective Updates

Submodules:
    section_updates.py    → Visit-type defaults, presets, toggles
    prompt_builder.py     → Constrained update and validation prompts
    selective_updater.py  → SelectiveUpdateOrchestrator

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.generation.prompt_builder import (
    PromptBuilder,
    SECTION_UPDATE_INSTRUCTIONS,
    get_section_update_instructions,
)
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
from clinical_note_assistant.generation.selective_updater import (
    NoteGenerationService,
    SelectiveUpdateOrchestrator,
)

__all__ = [
    "PromptBuilder",
    "SECTION_UPDATE_INSTRUCTIONS",
    "get_section_update_instructions",
    "PRESETS",
    "apply_preset",
    "configure_section_updates",
    "create_default_section_configs",
    "find_section_config",
    "get_default_update_setting",
    "get_update_reason",
    "resolve_section_decisions",
    "select_group",
    "set_all",
    "summarize_configs",
    "toggle_section",
    "NoteGenerationService",
    "SelectiveUpdateOrchestrator",
]
