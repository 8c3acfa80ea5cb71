"""
Parsing Layer - Section Detection

Submodules:
    section_detector.py → Header matching, section scoring, EMR/format inference

Dependency Rule:
    This layer depends on: core, validation
    This layer is used by: generation, tracking, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_assistant.parsing.section_detector import (
    HeaderMatch,
    HeaderMatcher,
    SectionDetector,
    canonical_section_type,
    get_sections_by_group,
    get_standardized_sections,
    section_title,
)

__all__ = [
    "HeaderMatch",
    "HeaderMatcher",
    "SectionDetector",
    "canonical_section_type",
    "get_sections_by_group",
    "get_standardized_sections",
    "section_title",
]
