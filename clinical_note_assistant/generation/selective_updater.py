"""
Selective Updater - Transfer-of-Care Section Update Orchestration

This module glues the parsing, prompting, provider and validation layers
into one operation: update the selected sections of a prior note and
verify that everything else came back untouched.

Algorithm:
    1. Partition the parsed note into sections to update and to preserve
    2. No section selected → return the original note, no LLM call
    3. Build the constrained prompt
    4. ProviderManager.generate_note (primary, then fallback)
    5. Re-parse the output; any missing section → IncompleteOutputError
    6. Preserved sections must be byte-identical, else a
       PRESERVATION_VIOLATION warning (flagged for review, never corrected)
    7. Attach Epic syntax / EMR format findings and return

Pipeline Position:
    SectionUpdates → PromptBuilder → [SelectiveUpdater] → ProviderManager
                                      ^^^^^^^^^^^^^^^^
                                      You are here

Author: Shubham Singh
Date: December 2025
"""

import time
import uuid
from typing import List, Optional, Protocol, Union, runtime_checkable

from loguru import logger

from clinical_note_assistant.clients.llm_client import HeuristicQualityScorer, combine_quality_score
from clinical_note_assistant.core.enums import AIProvider, EMRType, ErrorCode, SectionType
from clinical_note_assistant.core.exceptions import (
    AllProvidersFailedError,
    GenerationError,
    IncompleteOutputError,
    PromptError,
)
from clinical_note_assistant.core.models import (
    DetectedSection,
    GeneratedNote,
    GenerationMetadata,
    NoteGenerationPreferences,
    NoteGenerationRequest,
    NoteGenerationResponse,
    ParsedNote,
    PatientTranscript,
    SectionUpdateConfig,
    SelectiveUpdateResult,
)
from clinical_note_assistant.generation.prompt_builder import PromptBuilder
from clinical_note_assistant.generation.section_updates import (
    find_section_config,
    resolve_section_decisions,
)
from clinical_note_assistant.parsing.section_detector import SectionDetector
from clinical_note_assistant.validation.epic_syntax_validator import EpicSyntaxValidator
from clinical_note_assistant.validation.note_validator import NoteValidator


# =============================================================================
# STAGE 1: NOTE GENERATOR PROTOCOL
# =============================================================================
# What the orchestrator needs from the provider layer. ProviderManager
# satisfies it; tests can pass any object with the same coroutine.


@runtime_checkable
class NoteGenerationService(Protocol):
    """
    Protocol for the provider layer used by the selective updater.

    Why it exists:
        1. Decouples orchestration from provider routing
        2. Enables counting provider calls in tests
    """

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        """Generate a note; failures come back as success=False."""
        ...


# =============================================================================
# STAGE 2: SELECTIVE UPDATE ORCHESTRATOR
# =============================================================================


class SelectiveUpdateOrchestrator:
    """
    Runs a Transfer-of-Care selective update.

    What it does:
        Takes a parsed prior note, a new transcript and per-section
        configs; asks the provider layer to rewrite only the selected
        sections; verifies the result and reports what changed.

    Why it exists:
        1. Wholesale regeneration loses the prior provider's wording
        2. Preserved sections must be verifiable, not trusted
        3. A note missing sections must never be shown as complete

    When to use:
        - After SectionDetector.parse and configure_section_updates
        - Through ClinicalNoteAssistant.generate_update in applications

    Example:
        >>> orchestrator = SelectiveUpdateOrchestrator(provider_manager)
        >>> result = await orchestrator.generate_update(parsed, transcript, configs)
        >>> result.sections_updated
        [<SectionType.HPI: 'HPI'>, <SectionType.ASSESSMENT_AND_PLAN: 'ASSESSMENT_AND_PLAN'>]
    """

    def __init__(
        self,
        generator: NoteGenerationService,
        detector: Optional[SectionDetector] = None,
        validator: Optional[EpicSyntaxValidator] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        default_provider: AIProvider = AIProvider.GEMINI,
    ):
        """
        Initialize the orchestrator.

        Args:
            generator: Provider layer (normally a ProviderManager)
            detector: Section detector used for the re-parse
            validator: Epic syntax validator
            prompt_builder: Constrained prompt builder
            default_provider: Provider recorded on short-circuit results
        """
        self._generator = generator
        self._detector = detector or SectionDetector()
        self._validator = validator or EpicSyntaxValidator()
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._format_validator = NoteValidator()
        self._default_provider = default_provider

        self._update_count = 0
        self._violation_count = 0

        logger.debug(f"SelectiveUpdateOrchestrator initialized | Default provider: {default_provider.value}")

    # =========================================================================
    # STAGE 2.1: PUBLIC API
    # =========================================================================

    async def generate_update(
        self,
        parsed: ParsedNote,
        transcript: Union[PatientTranscript, str],
        configs: List[SectionUpdateConfig],
        preferences: Optional[NoteGenerationPreferences] = None,
        user_id: Optional[str] = None,
    ) -> SelectiveUpdateResult:
        """
        Update the selected sections of a parsed note.

        Args:
            parsed: Prior note, already segmented
            transcript: New encounter transcript (or its text)
            configs: Per-section update decisions
            preferences: EMR and visit-type context
            user_id: Owner of the resulting note

        Returns:
            SelectiveUpdateResult

        Raises:
            PromptError: Empty prior note or empty transcript
            IncompleteOutputError: The model dropped a section
            AllProvidersFailedError: Primary and fallback both failed
            GenerationError: A single provider failed (code from the provider error)
        """
        started = time.perf_counter()
        preferences = preferences or NoteGenerationPreferences(emr=parsed.emr_type)
        transcript = self._as_transcript(transcript)

        if not parsed.original_content.strip():
            raise PromptError("Previous note is empty", context={"stage": "selective_update"})

        # Step 1: Partition
        decisions = resolve_section_decisions(parsed, configs)
        to_update = [s.type for s in parsed.sections if decisions[s.type] and decisions[s.type].should_update]
        to_preserve = [s.type for s in parsed.sections if s.type not in to_update]
        warnings: List[str] = list(parsed.parse_metadata.warnings)

        for config in configs:
            if config.should_update and not any(
                find_section_config(t, [config]) for t in parsed.section_types
            ):
                warnings.append(
                    f"{config.section_type.value} selected for update but not present in the note"
                )

        # Step 2: Nothing to update
        if not to_update:
            warnings.append("No sections selected for update - original note returned unchanged")
            logger.info(f"Selective update skipped | Sections: {len(parsed.sections)} | No LLM call")
            return self._unchanged_result(parsed, transcript, to_preserve, warnings, started)

        # Step 3: Prompt
        prompt = self._prompt_builder.build_constrained_transfer_prompt(
            parsed, transcript.content, configs, emr=preferences.emr
        )
        request = NoteGenerationRequest(
            transcript=transcript,
            preferences=preferences,
            prompt_override=prompt,
            reference_text=parsed.original_content if preferences.emr is EMRType.EPIC else None,
            user_id=user_id,
        )

        logger.info(
            f"Selective update started | Update: {', '.join(t.value for t in to_update)} | "
            f"Preserve: {len(to_preserve)} | EMR: {preferences.emr.value}"
        )

        # Step 4: Generate
        response = await self._generator.generate_note(request)
        if not response.success or response.note is None:
            raise self._generation_failure(response)
        note = response.note

        # Step 5: Re-parse and check completeness
        reparsed = self._detector.parse(note.content)
        output_sections = {s.type: s for s in reparsed.sections}

        missing = [
            t for t in to_update + to_preserve
            if t is not SectionType.OTHER and t not in output_sections
        ]
        if missing:
            logger.error(
                f"Incomplete output | Missing: {', '.join(t.value for t in missing)} | "
                f"Provider: {note.ai_provider.value}"
            )
            raise IncompleteOutputError([t.value for t in missing], provider=note.ai_provider.value)

        if SectionType.OTHER in to_update + to_preserve:
            warnings.append("Note has no recognised section headers - preservation could not be verified")

        # Step 6: Preservation
        violations: List[SectionType] = []
        for section_type in to_preserve:
            if section_type is SectionType.OTHER:
                continue
            if self._altered(parsed, reparsed, section_type):
                violations.append(section_type)
                warnings.append(
                    f"{ErrorCode.PRESERVATION_VIOLATION.value}: {section_type.value} "
                    f"was altered but should have been preserved"
                )
                logger.warning(f"Preservation violation | Section: {section_type.value}")
        self._violation_count += len(violations)

        original_order = [t for t in parsed.section_types if t in output_sections]
        output_order = [s.type for s in reparsed.sections if s.type in set(original_order)]
        if original_order != output_order:
            warnings.append("Section order differs from the original note")

        # Step 7: Syntax and format findings
        validation = note.epic_syntax_validation
        if not validation.is_valid:
            warnings.append(
                f"Epic syntax issues | Preservation: {validation.preservation_score:.2f} | "
                f"Suggestions: {', '.join(validation.suggestions) or 'none'}"
            )
        format_result = self._format_validator.validate(note.content, preferences.emr)
        warnings.extend(format_result.errors)

        self._update_count += 1
        duration = time.perf_counter() - started
        logger.info(
            f"Selective update complete | Provider: {note.ai_provider.value} | "
            f"Updated: {len(to_update)} | Preserved: {len(to_preserve)} | "
            f"Violations: {len(violations)} | Duration: {duration:.2f}s"
        )

        return SelectiveUpdateResult(
            note=note,
            sections_updated=to_update,
            sections_preserved=to_preserve,
            preservation_violations=violations,
            validation_score=validation.preservation_score,
            warnings=warnings,
            parsed_result=reparsed,
            provider_called=True,
            fallback_used=response.fallback_used,
        )

    # =========================================================================
    # STAGE 2.2: HELPERS
    # =========================================================================

    @staticmethod
    def _raw_text(parsed: ParsedNote, section: DetectedSection) -> str:
        """Header line and body as written, without the blank lines before the next header."""
        return parsed.original_content[section.start_index:section.end_index].rstrip()

    @classmethod
    def _altered(cls, parsed: ParsedNote, reparsed: ParsedNote, section_type: SectionType) -> bool:
        """
        Whether a preserved section differs from the prior note.

        Bodies must match exactly, and so must the raw header + body text
        (header wording, indentation, inner whitespace). Only trailing
        whitespace separating sections is ignored. Sections merged from
        duplicate headers have no single raw span and are compared by body.
        """
        original = parsed.get_section(section_type)
        produced = reparsed.get_section(section_type)
        if produced.content != original.content:
            return True
        original_raw = cls._raw_text(parsed, original)
        if not original_raw.endswith(original.content):
            return False
        return cls._raw_text(reparsed, produced) != original_raw

    @staticmethod
    def _as_transcript(transcript: Union[PatientTranscript, str]) -> PatientTranscript:
        if isinstance(transcript, PatientTranscript):
            return transcript
        return PatientTranscript(
            id=f"transcript_{uuid.uuid4().hex[:8]}", patient_id="unknown", content=transcript or ""
        )

    def _unchanged_result(
        self,
        parsed: ParsedNote,
        transcript: PatientTranscript,
        preserved: List[SectionType],
        warnings: List[str],
        started: float,
    ) -> SelectiveUpdateResult:
        """The original note, verbatim, as a GeneratedNote."""
        content = parsed.original_content
        validation = self._validator.validate(content, reference=content)
        base = HeuristicQualityScorer.score(content, transcript.content, validation)

        note = GeneratedNote(
            id=f"note_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}",
            content=content,
            ai_provider=self._default_provider,
            quality_score=combine_quality_score(base, validation),
            epic_syntax_validation=validation,
            metadata=GenerationMetadata(
                processing_duration=round(time.perf_counter() - started, 3),
                smart_phrases_detected=list(validation.smart_phrases.found),
                dot_phrases_detected=list(validation.dot_phrases.found),
                patient_id=transcript.patient_id,
            ),
            original_content=content,
        )
        return SelectiveUpdateResult(
            note=note,
            sections_updated=[],
            sections_preserved=preserved,
            validation_score=validation.preservation_score,
            warnings=warnings,
            parsed_result=None,
            provider_called=False,
        )

    @staticmethod
    def _generation_failure(response: NoteGenerationResponse) -> GenerationError:
        error = response.error
        if error is None:
            return GenerationError("Provider returned no note", code=ErrorCode.EMPTY_RESPONSE)
        if error.code is ErrorCode.ALL_PROVIDERS_FAILED:
            return AllProvidersFailedError(
                error.message,
                errors=[
                    f"{e.get('provider')}: {e.get('code')} {e.get('message')}"
                    for e in error.details.get("errors", [])
                ],
            )
        return GenerationError(
            error.message,
            context={"provider": response.provider.value if response.provider else None},
            code=error.code,
        )

    # =========================================================================
    # STAGE 2.3: STATISTICS
    # =========================================================================

    @property
    def update_count(self) -> int:
        """Number of completed (LLM-backed) updates."""
        return self._update_count

    @property
    def violation_count(self) -> int:
        return self._violation_count
