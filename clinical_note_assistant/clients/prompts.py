"""
Provider Prompts - Note Generation and Self-Evaluation Templates

Fixed prompt templates shared by every provider client:
    - SYSTEM_PROMPT: role plus the Epic syntax rules
    - build_note_prompt(): transcript + optional template + patient context
    - build_quality_prompt(): asks the model to rate a note 1-10 as JSON
    - build_system_prompt(): SYSTEM_PROMPT specialised for EMR and visit type

Author: Shubham Singh
Date: December 2025
"""

from typing import Optional

from clinical_note_assistant.core.enums import EMRType, VisitType
from clinical_note_assistant.core.models import NoteGenerationRequest, PatientContext


# =============================================================================
# STAGE 1: SYSTEM PROMPT
# =============================================================================

SYSTEM_PROMPT = """You are an expert medical AI assistant specialized in generating HIPAA-compliant clinical notes. Your role is to:

1. Generate accurate, professional clinical documentation from patient transcripts
2. Preserve Epic EMR syntax including @SMARTPHRASES@, .dotphrases, and {SmartLists:123}
3. Maintain strict medical accuracy and appropriate clinical language
4. Structure notes according to standard medical documentation practices
5. NEVER include patient identifiers or specific personal information

CRITICAL REQUIREMENTS:
- Preserve ALL Epic syntax elements EXACTLY as they appear: @SMARTPHRASE@, .dotphrase, {SmartList:123}
- SmartPhrases are uppercase (@ASSESSMENT@), DotPhrases are lowercase (.hpi)
- Use *** as wildcards for variable content that should be filled in later
- Maintain professional medical tone throughout
- Include appropriate clinical sections based on encounter type"""

CREDIBLE_INSTRUCTIONS = (
    "The target EMR is Credible. Output plain text only - no Epic SmartPhrases, "
    "DotPhrases, SmartLists or *** wildcards."
)

EPIC_INSTRUCTIONS = (
    "The target EMR is Epic. Include Epic SmartPhrases (@SMARTPHRASE@) and "
    "DotPhrases (.dotphrase) where appropriate."
)

VISIT_INSTRUCTIONS = {
    VisitType.TRANSFER_OF_CARE: """TRANSFER OF CARE VISIT:
You are taking over care from another provider. Update only what the visit changed and keep the original note's structure, order and header formatting.""",
    VisitType.FOLLOW_UP: """FOLLOW-UP VISIT:
Focus on interval history, treatment response and side effects, medication compliance, updated mental status and the modified plan.""",
    VisitType.PSYCHIATRIC_INTAKE: """PSYCHIATRIC INTAKE VISIT:
Generate a comprehensive evaluation: chief complaint, HPI, past psychiatric and medical history, medications and allergies, family and social history, mental status examination, risk assessment, assessment and diagnosis, treatment plan.""",
}


def build_system_prompt(emr: EMRType, visit_type: Optional[str] = None) -> str:
    """SYSTEM_PROMPT plus EMR and visit-type instructions."""
    parts = [SYSTEM_PROMPT, CREDIBLE_INSTRUCTIONS if emr is EMRType.CREDIBLE else EPIC_INSTRUCTIONS]
    if visit_type:
        try:
            parts.append(VISIT_INSTRUCTIONS[VisitType.from_string(visit_type)])
        except ValueError:
            pass
    return "\n\n".join(parts)


# =============================================================================
# STAGE 2: NOTE PROMPT
# =============================================================================


def _patient_block(context: PatientContext) -> str:
    lines = [
        "PATIENT CONTEXT:",
        f"- Age: {context.age if context.age is not None else 'Not specified'}",
        f"- Gender: {context.gender or 'Not specified'}",
        f"- Chief Complaint: {context.chief_complaint or 'As documented in transcript'}",
    ]
    if context.medical_history:
        lines.append(f"- Medical History: {', '.join(context.medical_history)}")
    return "\n".join(lines)


def build_note_prompt(request: NoteGenerationRequest) -> str:
    """
    Build the user prompt for a generation request.

    A prompt_override on the request (the selective updater's constrained
    prompt) is returned unchanged.
    """
    if request.prompt_override:
        return request.prompt_override

    blocks = [
        "Generate a clinical note from the following patient encounter transcript:",
        f"TRANSCRIPT:\n{request.transcript.content}",
    ]
    if request.template is not None:
        blocks.append(
            f"TEMPLATE TO FOLLOW:\n{request.template.content}\n\n"
            "Use this template structure but adapt the content based on the actual transcript. "
            "Preserve all Epic syntax elements (@SMARTPHRASES@, .dotphrases, {SmartLists:123}) "
            "exactly as they appear."
        )
    if request.patient_context is not None:
        blocks.append(_patient_block(request.patient_context))

    epic = request.preferences.emr is EMRType.EPIC and request.preferences.include_epic_syntax
    requirements = [
        "Generate a properly structured clinical note with clear section headers",
        "Use appropriate medical terminology",
        (
            "Preserve Epic syntax: @SMARTPHRASES@, .dotphrases, {SmartLists:123}; use *** wildcards for variable content"
            if epic
            else "Plain text only - no Epic syntax"
        ),
        "Include standard sections: HPI, Physical Exam, Assessment, Plan (as appropriate)",
        "Maintain HIPAA compliance - no patient identifiers",
    ]
    blocks.append(
        "REQUIREMENTS:\n" + "\n".join(f"{i}. {line}" for i, line in enumerate(requirements, 1))
    )
    blocks.append("Generate the clinical note now:")
    return "\n\n".join(blocks)


# =============================================================================
# STAGE 3: SELF-EVALUATION PROMPT
# =============================================================================


def build_quality_prompt(note: str, transcript: str) -> str:
    """Ask the model to rate a note 1-10 against its transcript."""
    return f"""Assess the quality of this clinical note on a scale of 1-10.

TRANSCRIPT:
{transcript}

CLINICAL NOTE:
{note}

Rate the note based on:
1. Medical accuracy and faithfulness to the transcript (25%)
2. Epic syntax preservation (25%)
3. Completeness and structure (25%)
4. Professional language and clarity (25%)

Format your response as JSON:
{{
    "qualityScore": number,
    "reasoning": "string",
    "epicSyntaxIssues": ["array of issues"],
    "suggestions": ["array of suggestions"]
}}"""


HEALTH_CHECK_PROMPT = "Reply with exactly: OK"
