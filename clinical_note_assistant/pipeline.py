"""
Clinical Note Assistant - Main Orchestrator

This is the PUBLIC API entry point for the Transfer-of-Care note assistant.
It wires parsing, section-update configuration, provider routing, edit
tracking and feedback into one facade.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ClinicalNoteAssistant                         │
    │                         (This Orchestrator)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ┌───────────┐    ┌───────────┐    ┌───────────┐    ┌───────────┐  │
    │   │  Parsing  │ →  │ Section   │ →  │ Selective │ →  │ Providers │  │
    │   │           │    │ Updates   │    │ Updater   │    │ (G / C)   │  │
    │   └───────────┘    └───────────┘    └───────────┘    └───────────┘  │
    │                                          │                          │
    │                                          ▼                          │
    │                    ┌───────────┐    ┌───────────┐                   │
    │                    │ Tracking  │    │ Feedback  │                   │
    │                    └───────────┘    └───────────┘                   │
    └─────────────────────────────────────────────────────────────────────┘

Why Single Entry Point:
    1. Simple API: the four editor operations are one method each
    2. Encapsulation: provider routing and verification stay hidden
    3. Configuration: one AssistantConfiguration drives every component
    4. Testability: every collaborator can be injected

Usage:
    from clinical_note_assistant import ClinicalNoteAssistant

    assistant = ClinicalNoteAssistant.from_environment()
    parsed = assistant.parse_note(previous_note)
    configs = assistant.configure_section_updates(parsed, preset="minimal")
    result = await assistant.generate_update(parsed, transcript, configs)

Author: Shubham Singh
Date: December 2025
"""

import sys
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from clinical_note_assistant.clients.provider_manager import HealthStatus, ProviderManager
from clinical_note_assistant.core.config import AssistantConfiguration
from clinical_note_assistant.core.constants import LOG_FORMAT
from clinical_note_assistant.core.enums import SectionType, VisitType
from clinical_note_assistant.core.models import (
    DeltaChange,
    NoteGenerationPreferences,
    NoteGenerationRequest,
    NoteGenerationResponse,
    NoteVersion,
    ParsedNote,
    PatientTranscript,
    ProviderComparisonResult,
    SectionUpdateConfig,
    SelectiveUpdateResult,
)
from clinical_note_assistant.feedback.feedback_analytics import (
    NoteFeedback,
    compute_feedback_analytics,
    create_note_feedback,
)
from clinical_note_assistant.generation.section_updates import (
    configure_section_updates as build_section_configs,
)
from clinical_note_assistant.generation.selective_updater import (
    NoteGenerationService,
    SelectiveUpdateOrchestrator,
)
from clinical_note_assistant.parsing.section_detector import SectionDetector
from clinical_note_assistant.tracking.auto_save import AutoSaver, SaveCallback
from clinical_note_assistant.tracking.delta_tracker import (
    DeltaTracker,
    EditAnalytics,
    aggregate_edit_analytics,
)


# =============================================================================
# STAGE 1: LOGGING SETUP
# =============================================================================


def configure_logging(level: str = "INFO") -> None:
    """Install the package log format on stderr, replacing existing sinks."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)


# =============================================================================
# STAGE 2: ASSISTANT CLASS
# =============================================================================


class ClinicalNoteAssistant:
    """
    Main orchestrator for Transfer-of-Care note updates.

    What it does:
        Parses a prior note, builds per-section update decisions, runs the
        constrained update through the provider manager, tracks clinician
        edits to the result and collects feedback.

    Why it exists:
        1. Simple API: one object per editor session or service
        2. Encapsulation: hides provider routing and verification
        3. Configuration: central place for all settings
        4. Extensibility: every component can be overridden

    When to use:
        - Always! This is the recommended way to use the package.

    How it works:
        STAGE 1: parse_note() segments the prior note
        STAGE 2: configure_section_updates() decides update vs preserve
        STAGE 3: generate_update() rewrites only the selected sections
        STAGE 4: track_edit() / save_checkpoint() follow clinician edits
        STAGE 5: record_feedback() / feedback_analytics() close the loop

    Example:
        >>> assistant = ClinicalNoteAssistant.from_environment()
        >>> parsed = assistant.parse_note(previous_note)
        >>> configs = assistant.configure_section_updates(parsed, visit_type="follow-up")
        >>> result = await assistant.generate_update(parsed, transcript, configs)
        >>> result.note.content
    """

    def __init__(
        self,
        config: AssistantConfiguration,
        provider_manager: Optional[NoteGenerationService] = None,
        detector: Optional[SectionDetector] = None,
        orchestrator: Optional[SelectiveUpdateOrchestrator] = None,
    ):
        """
        Initialize the assistant with configuration and optional overrides.

        Args:
            config: Assistant configuration
            provider_manager: Provider layer override (for testing)
            detector: Section detector override
            orchestrator: Selective update orchestrator override

        Raises:
            ConfigurationError: If no provider manager is given and no
                provider has an API key
        """
        # =====================================================================
        # STAGE 2.1: STORE CONFIGURATION
        # =====================================================================
        self._config = config

        # =====================================================================
        # STAGE 2.2: INITIALIZE COMPONENTS
        # =====================================================================
        self._detector = detector or SectionDetector()
        self._provider_manager = provider_manager or ProviderManager.from_configuration(config)
        self._orchestrator = orchestrator or SelectiveUpdateOrchestrator(
            self._provider_manager,
            detector=self._detector,
            default_provider=config.primary_provider,
        )

        # =====================================================================
        # STAGE 2.3: TRACKING STATE
        # =====================================================================
        self._trackers: Dict[str, DeltaTracker] = {}
        self._versions: Dict[str, List[NoteVersion]] = {}
        self._feedback: List[NoteFeedback] = []

        logger.info(
            f"ClinicalNoteAssistant initialized | "
            f"Primary: {config.primary_provider.value} | "
            f"Fallback: {config.enable_fallback} | "
            f"Comparison: {config.enable_comparison}"
        )

    # =========================================================================
    # STAGE 3: NOTE PARSING AND SECTION CONFIGURATION
    # =========================================================================

    def parse_note(self, note_text: str) -> ParsedNote:
        """Segment a note into typed sections (never raises)."""
        return self._detector.parse(note_text)

    def configure_section_updates(
        self,
        parsed: ParsedNote,
        visit_type: Union[VisitType, str, None] = None,
        preset: Optional[str] = None,
        overrides: Optional[Dict[SectionType, bool]] = None,
    ) -> List[SectionUpdateConfig]:
        """
        Decide per section whether to update or preserve.

        Pure data transform: visit-type defaults, then preset, then
        explicit overrides.
        """
        return build_section_configs(parsed, visit_type=visit_type, preset=preset, overrides=overrides)

    # =========================================================================
    # STAGE 4: GENERATION
    # =========================================================================

    async def generate_update(
        self,
        note: Union[ParsedNote, str],
        transcript: Union[PatientTranscript, str],
        configs: Optional[List[SectionUpdateConfig]] = None,
        visit_type: Union[VisitType, str, None] = None,
        preferences: Optional[NoteGenerationPreferences] = None,
        user_id: Optional[str] = None,
    ) -> SelectiveUpdateResult:
        """
        Run a Transfer-of-Care selective update.

        Args:
            note: Prior note, parsed or raw text
            transcript: New encounter transcript
            configs: Section decisions (visit-type defaults when omitted)
            visit_type: Used only when configs are omitted
            preferences: EMR and visit-type context
            user_id: Owner of the resulting note

        Returns:
            SelectiveUpdateResult; the resulting note is registered for
            edit tracking under its id

        Raises:
            PromptError: Empty prior note or transcript
            IncompleteOutputError: The model dropped a section
            AllProvidersFailedError: Primary and fallback both failed
            GenerationError: A single provider failed
        """
        parsed = note if isinstance(note, ParsedNote) else self.parse_note(note)
        if configs is None:
            configs = self.configure_section_updates(parsed, visit_type=visit_type)

        result = await self._orchestrator.generate_update(
            parsed, transcript, configs, preferences=preferences, user_id=user_id
        )

        self._trackers[result.note.id] = DeltaTracker(
            note_id=result.note.id,
            baseline=result.note.content,
            detector=self._detector,
            pause_threshold=self._config.pause_threshold,
        )
        if result.needs_review:
            logger.warning(
                f"Update needs review | Note: {result.note.id} | "
                f"Violations: {len(result.preservation_violations)}"
            )
        return result

    async def generate_note(self, request: NoteGenerationRequest) -> NoteGenerationResponse:
        """Full-note generation through the provider manager (never raises provider errors)."""
        return await self._provider_manager.generate_note(request)

    async def compare_providers(self, request: NoteGenerationRequest) -> ProviderComparisonResult:
        """
        Run both providers side by side.

        Raises:
            ConfigurationError: Comparison disabled or a provider unavailable
        """
        return await self._manager().compare_providers(request)

    async def health_check(self) -> HealthStatus:
        return await self._manager().health_check()

    # =========================================================================
    # STAGE 5: EDIT TRACKING
    # =========================================================================

    def track_edit(self, note_id: str, old_text: str, new_text: str) -> Optional[DeltaChange]:
        """
        Record one editor change.

        The first edit of an unknown note starts a tracker anchored on
        old_text. Returns None when the texts are identical.
        """
        tracker = self._tracker(note_id, baseline=old_text)
        return tracker.on_content_change(old_text, new_text)

    def save_checkpoint(self, note_id: str, content: Optional[str] = None) -> NoteVersion:
        """
        Close the edit session after a successful save.

        Args:
            note_id: Saved note
            content: Saved text (defaults to the tracked text)

        Returns:
            NoteVersion for the caller to persist
        """
        version = self._tracker(note_id).reset_baseline(content)
        self._versions.setdefault(note_id, []).append(version)
        return version

    def edit_analytics(self, note_id: str) -> EditAnalytics:
        """Analytics for the current (unsaved) edit session of a note."""
        return self._tracker(note_id).get_analytics()

    def version_history(self, note_id: str) -> Dict[str, Any]:
        """Totals across the saved versions of a note."""
        return aggregate_edit_analytics(self._versions.get(note_id, []))

    def create_auto_saver(self, note_id: str, save_callback: SaveCallback) -> AutoSaver:
        """
        Build a debounced saver bound to the note's tracker.

        Each successful save re-anchors the tracker, same as save_checkpoint.
        """
        return AutoSaver(
            save_callback,
            delay=self._config.auto_save_delay,
            retry_attempts=self._config.auto_save_retry_attempts,
            retry_delay=self._config.auto_save_retry_delay,
            tracker=self._tracker(note_id),
        )

    # =========================================================================
    # STAGE 6: FEEDBACK
    # =========================================================================

    def record_feedback(self, **data: Any) -> NoteFeedback:
        """
        Validate and keep clinician feedback.

        Raises:
            FeedbackError: Rating outside 1-5 or unknown quality issue
        """
        feedback = create_note_feedback(**data)
        self._feedback.append(feedback)
        return feedback

    def feedback_analytics(self, feedback: Optional[List[NoteFeedback]] = None) -> Dict[str, Any]:
        """Aggregate the given feedback, or everything recorded so far."""
        return compute_feedback_analytics(self._feedback if feedback is None else feedback)

    # =========================================================================
    # STAGE 7: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "ClinicalNoteAssistant":
        """
        Create an assistant from environment configuration.

        This is the recommended way to create an assistant. It:
            1. Loads configuration from .env file
            2. Validates required settings
            3. Installs the log format at the configured level
            4. Builds provider clients for every configured key

        Raises:
            ConfigurationError: If required settings missing
        """
        config = AssistantConfiguration.from_environment(env_file=env_file, validate_on_load=True)
        configure_logging(config.log_level)
        return cls(config)

    # =========================================================================
    # STAGE 8: PRIVATE HELPERS
    # =========================================================================

    def _tracker(self, note_id: str, baseline: str = "") -> DeltaTracker:
        if note_id not in self._trackers:
            self._trackers[note_id] = DeltaTracker(
                note_id=note_id,
                baseline=baseline,
                detector=self._detector,
                pause_threshold=self._config.pause_threshold,
            )
        return self._trackers[note_id]

    def _manager(self) -> ProviderManager:
        if not isinstance(self._provider_manager, ProviderManager):
            raise TypeError("Comparison and health checks require a ProviderManager")
        return self._provider_manager

    # =========================================================================
    # STAGE 9: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> AssistantConfiguration:
        return self._config

    @property
    def provider_manager(self) -> NoteGenerationService:
        return self._provider_manager

    @property
    def feedback(self) -> List[NoteFeedback]:
        """Feedback recorded by this instance."""
        return list(self._feedback)
