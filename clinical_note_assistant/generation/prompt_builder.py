"""
Prompt Builder - Constrained Transfer-of-Care Prompts

This module constructs the prompts used to selectively update a prior
clinical note. Prompts are carefully designed to:
    1. Reproduce preserved sections verbatim
    2. Rewrite only the sections selected for update
    3. Keep the original order, headers and EMR syntax intact

Why Separate Prompt Builder:
    1. Single Responsibility: prompt construction separate from orchestration
    2. Testability: prompts can be inspected without LLM calls
    3. Maintainability: centralized prompt templates and per-section guidance

Pipeline Position:
    SectionDetector → SectionUpdates → [PromptBuilder] → ProviderManager
                                        ^^^^^^^^^^^^^^
                                        You are here

Author: Shubham Singh
Date: December 2025
"""

from typing import Dict, List, Optional

from clinical_note_assistant.core.enums import EMRType, SectionType
from clinical_note_assistant.core.exceptions import PromptError
from clinical_note_assistant.core.models import DetectedSection, ParsedNote, SectionUpdateConfig
from clinical_note_assistant.generation.section_updates import resolve_section_decisions


# =============================================================================
# STAGE 1: PROMPT TEMPLATES
# =============================================================================
# The constrained template. Each {block} is rendered by PromptBuilder.

CONSTRAINED_UPDATE_TEMPLATE = """# TRANSFER OF CARE - CONSTRAINED SECTION UPDATE

## CRITICAL INSTRUCTIONS - MUST FOLLOW EXACTLY:
1. Generate a complete clinical note using the EXACT structure and formatting of the original note
2. PRESERVE sections marked as "PRESERVE" - copy them EXACTLY with no modifications
3. UPDATE sections marked as "UPDATE" - use new clinical information appropriately
4. MAINTAIN the original order and formatting of all sections
5. DO NOT restructure, reformat, or reorganize the note in any way
6. DO NOT add explanatory text, comments, or notes about changes
7. DO NOT break {emr} syntax or formatting conventions

## SECTIONS TO PRESERVE (copy exactly as provided):
{preserved_block}

## SECTIONS TO UPDATE (use new clinical information):
{update_block}

## NEW CLINICAL INFORMATION (use only for sections marked for update):
{transcript}

## OUTPUT REQUIREMENTS:
Generate the complete updated clinical note following this EXACT structure:

{structure_block}

## FORMATTING REQUIREMENTS:
{formatting_block}

BEGIN UPDATED NOTE:"""

EPIC_FORMATTING_RULES = [
    "Use EPIC formatting conventions",
    "Preserve all Epic SmartPhrases (@PHRASE@) and DotPhrases (.phrase) exactly",
    "SmartPhrases are uppercase (@ASSESSMENT@), DotPhrases are lowercase (.hpi)",
    "Keep SmartLists ({Name:123}) and *** wildcards exactly where they appear",
    "Maintain original line breaks and spacing",
    "Keep section headers in the same format as the original",
]

CREDIBLE_FORMATTING_RULES = [
    "Use CREDIBLE formatting conventions",
    "Plain text only - do not introduce SmartPhrases, DotPhrases, SmartLists or *** wildcards",
    "Maintain original line breaks and spacing",
    "Keep section headers in the same format as the original",
]


# =============================================================================
# STAGE 2: PER-SECTION UPDATE INSTRUCTIONS
# =============================================================================
# Guidance the model receives for each section it must rewrite.

SECTION_UPDATE_INSTRUCTIONS: Dict[SectionType, str] = {
    SectionType.HPI: """Update with current visit information, patient reports, and progress since last visit. Include:
- Reason for current visit
- Patient's current status and reports
- Changes since last appointment
- Response to previous treatment plan""",
    SectionType.REVIEW_OF_SYSTEMS: """Update with current symptom assessment:
- Current mood state and symptoms
- Sleep, appetite, energy levels
- Anxiety levels and manifestations
- Any new or changed symptoms""",
    SectionType.PSYCHIATRIC_EXAM: """Update with current mental status examination findings:
- Appearance and behavior
- Mood and affect
- Thought process and content
- Cognitive function
- Insight and judgment""",
    SectionType.ASSESSMENT_AND_PLAN: """Update the clinical assessment and treatment plan:
- Current diagnostic impressions
- Response to treatment
- Treatment modifications
- New interventions or recommendations""",
    SectionType.CURRENT_MEDICATIONS: """Update the current medication list:
- Current active medications with dosages
- Recent medication changes
- Medication compliance and tolerability""",
    SectionType.MEDICATIONS_PLAN: """Update medication management plan:
- New prescriptions or dosage changes
- Medication adjustments planned
- Monitoring requirements
- Patient education provided""",
    SectionType.RISKS: """Update current risk assessment:
- Suicide risk factors and protective factors
- Safety concerns
- Risk level assessment
- Safety planning needs""",
    SectionType.SAFETY_PLAN: """Update safety planning:
- Current safety plan status
- Any modifications needed
- Emergency contacts and resources
- Coping strategies reviewed""",
    SectionType.QUESTIONNAIRES_SURVEYS: """Update with current assessment scores:
- PHQ-9, GAD-7, or other standardized assessments
- Comparison to previous scores
- Clinical significance of changes""",
    SectionType.MEDICAL: """Update medical information:
- New medical conditions or changes
- Recent medical appointments or findings
- Relevant medical updates affecting psychiatric treatment""",
    SectionType.PSYCHOSOCIAL: """Update psychosocial interventions:
- Therapy progress and recommendations
- Social support systems
- Psychosocial stressors or improvements""",
    SectionType.FOLLOW_UP: """Update follow-up planning:
- Next appointment scheduling
- Interim contact plans
- Monitoring requirements
- Patient instructions""",
    SectionType.BASIC_DEMO_INFO: "Update any changes to demographic information",
    SectionType.DIAGNOSIS: "Update diagnostic information if there are changes",
    SectionType.IDENTIFYING_INFO: "Update identifying information if there are changes",
    SectionType.BH_PRIOR_MEDS_TRIED: "Update medication history if new information is available",
    SectionType.PHYSICAL_EXAM: "Update with current physical examination findings",
    SectionType.PROGNOSIS: "Update prognostic assessment if there are changes",
    # Legacy SOAP sections
    SectionType.SUBJECTIVE: "Update with current subjective findings and patient reports",
    SectionType.OBJECTIVE: "Update with current objective findings and observations",
    SectionType.ASSESSMENT: "Update clinical assessment and diagnostic impressions",
    SectionType.PLAN: "Update treatment plan and recommendations",
    SectionType.OTHER: "Update section content appropriately based on context",
}

DEFAULT_UPDATE_INSTRUCTION = "Update section with relevant new information from the clinical encounter"

# Notes are truncated to this many characters in the validation prompt.
VALIDATION_EXCERPT_LENGTH = 1000


def get_section_update_instructions(section_type: SectionType) -> str:
    return SECTION_UPDATE_INSTRUCTIONS.get(section_type, DEFAULT_UPDATE_INSTRUCTION)


def section_header(section: DetectedSection) -> str:
    """Header text as written in the source note (title if unknown)."""
    return section.metadata.original_header or section.title


# =============================================================================
# STAGE 3: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Constructs constrained prompts for Transfer-of-Care updates.

    What it does:
        Takes a parsed prior note, the new transcript and per-section
        update configs, and produces a prompt that tells the model to
        rewrite only the selected sections and copy the rest verbatim.

    Why it exists:
        1. A free-form "update this note" prompt lets the model restructure
        2. Preservation checks need headers the detector can re-parse
        3. Enables testing prompts without making LLM calls

    When to use:
        - Inside SelectiveUpdateOrchestrator before calling the ProviderManager
        - When debugging why a preserved section came back altered

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build_constrained_transfer_prompt(
        ...     parsed, transcript="Patient reports improved sleep...", configs=configs
        ... )
        >>> prompt.startswith("# TRANSFER OF CARE")
        True
    """

    def build_constrained_transfer_prompt(
        self,
        parsed: ParsedNote,
        transcript: str,
        configs: List[SectionUpdateConfig],
        emr: EMRType = EMRType.EPIC,
    ) -> str:
        """
        Build the constrained update prompt.

        STAGE 3.1: Partition sections into update / preserve
        STAGE 3.2: Render preserved and update blocks
        STAGE 3.3: Render the output structure in original order
        STAGE 3.4: Assemble final prompt

        Args:
            parsed: Prior note, already segmented
            transcript: New clinical information
            configs: Per-section update decisions (sections without a
                config are preserved)
            emr: Target EMR dialect

        Returns:
            Complete prompt string ready for the provider manager

        Raises:
            PromptError: If the transcript is empty or nothing is selected
        """
        if not transcript or not transcript.strip():
            raise PromptError("New transcript is empty", context={"stage": "constrained_prompt"})

        # =====================================================================
        # STAGE 3.1: PARTITION SECTIONS
        # =====================================================================
        ordered = sorted(parsed.sections, key=lambda s: s.start_index)
        decisions = resolve_section_decisions(parsed, configs)
        to_update = [s for s in ordered if decisions[s.type] and decisions[s.type].should_update]
        to_preserve = [s for s in ordered if s not in to_update]

        if not to_update:
            raise PromptError(
                "No sections selected for update", context={"sections": len(ordered)}
            )

        # =====================================================================
        # STAGE 3.2: PRESERVED AND UPDATE BLOCKS
        # =====================================================================
        preserved_block = "\n\n".join(
            f"### {section_header(s)}:\n{s.content}" for s in to_preserve
        ) or "(none)"

        update_lines = []
        for section in to_update:
            block = (
                f"### {section_header(section)} (UPDATE THIS SECTION):\n"
                f"Current content: {section.content or '(empty)'}\n\n"
                f"Update instructions: {get_section_update_instructions(section.type)}"
            )
            reason = decisions[section.type].update_reason
            if reason:
                block += f"\n\nReason for update: {reason}"
            update_lines.append(block)
        update_block = "\n\n".join(update_lines)

        # =====================================================================
        # STAGE 3.3: OUTPUT STRUCTURE
        # =====================================================================
        structure_block = "\n\n".join(
            f"{section_header(s)}:\n"
            + (
                "[UPDATE THIS SECTION using new clinical information]"
                if s in to_update
                else "[PRESERVE EXACTLY as provided above]"
            )
            for s in ordered
        )

        # =====================================================================
        # STAGE 3.4: ASSEMBLE FINAL PROMPT
        # =====================================================================
        rules = CREDIBLE_FORMATTING_RULES if emr is EMRType.CREDIBLE else EPIC_FORMATTING_RULES
        return CONSTRAINED_UPDATE_TEMPLATE.format(
            emr=emr.value.upper(),
            preserved_block=preserved_block,
            update_block=update_block,
            transcript=transcript.strip(),
            structure_block=structure_block,
            formatting_block="\n".join(f"- {rule}" for rule in rules),
        )

    def build_validation_prompt(
        self,
        original_note: str,
        updated_note: str,
        sections_updated: List[SectionType],
        sections_preserved: List[SectionType],
        excerpt_length: Optional[int] = VALIDATION_EXCERPT_LENGTH,
    ) -> str:
        """
        Build a prompt asking a model to check an update followed its instructions.

        Args:
            original_note: Prior note text
            updated_note: Generated note text
            sections_updated: Types that were meant to change
            sections_preserved: Types that were meant to stay verbatim
            excerpt_length: Characters of each note to include (None for all)

        Returns:
            Validation prompt for an LLM (JSON reply)
        """

        def excerpt(text: str) -> str:
            if excerpt_length is None or len(text) <= excerpt_length:
                return text
            return text[:excerpt_length] + "..."

        return f"""# CLINICAL NOTE UPDATE VALIDATION

## VALIDATION TASK:
Check if the updated note correctly follows the transfer of care instructions.

## ORIGINAL NOTE:
{excerpt(original_note)}

## UPDATED NOTE:
{excerpt(updated_note)}

## SECTIONS THAT SHOULD HAVE BEEN UPDATED:
{", ".join(s.value for s in sections_updated) or "(none)"}

## SECTIONS THAT SHOULD HAVE BEEN PRESERVED:
{", ".join(s.value for s in sections_preserved) or "(none)"}

## VALIDATION CHECKLIST:
1. Are preserved sections identical to the original? (Yes/No)
2. Are updated sections appropriately modified with new information? (Yes/No)
3. Is the overall note structure maintained? (Yes/No)
4. Is the formatting consistent with the original? (Yes/No)
5. Are there any duplicated or misplaced content? (Yes/No)

## VALIDATION RESULT (respond with JSON):
{{
  "overall_quality": 1-10,
  "preserved_correctly": true/false,
  "updated_appropriately": true/false,
  "structure_maintained": true/false,
  "formatting_consistent": true/false,
  "issues_found": ["list of any issues"],
  "recommendations": ["list of improvements needed"]
}}
"""
