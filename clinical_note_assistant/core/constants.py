"""
Constants for the Clinical Note Assistant

This module defines constant values used throughout the note assistant.
Constants are:
    1. Centralized for easy modification
    2. Type-hinted for IDE support
    3. Documented with usage context

Constant Categories:
    SECTION_HEADER_PATTERNS → Header vocabulary per canonical section type
    SECTION_ALIASES         → Legacy type → standardized type mapping
    SECTION_TITLES          → Display titles
    SECTION_GROUPS          → UI groupings with default selection
    SECTION_VOCABULARY      → Expected clinical terms per section type
    EPIC_*_PATTERN          → Epic token grammars
    QUALITY_*               → Heuristic quality scoring tables
    LOG_FORMAT              → loguru format string

Author: Shubham Singh
Date: December 2025
"""

from typing import Dict, List, Any

from clinical_note_assistant.core.enums import SectionType


# =============================================================================
# STAGE 1: SECTION HEADER VOCABULARY
# =============================================================================
# Each header phrase maps to exactly one canonical type. "keywords" are
# matched with or without a trailing colon; "alternative_names" are the
# title-style spellings seen in older notes. "confidence" is the prior
# for a header of that type. Bump SECTION_VOCABULARY_VERSION whenever a
# phrase moves between types, since saved presets depend on the mapping.

SECTION_VOCABULARY_VERSION = "2.0"

SECTION_HEADER_PATTERNS: Dict[SectionType, Dict[str, Any]] = {
    # -------------------------------------------------------------------------
    # 1.1 Patient Information
    # -------------------------------------------------------------------------
    SectionType.BASIC_DEMO_INFO: {
        "keywords": [
            "basic demo information",
            "patient information",
            "demographics",
            "medical record number",
            "date of birth",
            "patient id",
            "mrn",
            "dob",
        ],
        "alternative_names": ["Patient Info", "Basic Information", "Patient Data"],
        "confidence": 0.9,
    },
    SectionType.IDENTIFYING_INFO: {
        "keywords": [
            "identifying information",
            "social demographics",
            "occupation",
            "employment",
            "background",
        ],
        "alternative_names": ["Identifying Info", "Social Information"],
        "confidence": 0.8,
    },
    SectionType.DIAGNOSIS: {
        "keywords": [
            "psychiatric diagnosis",
            "primary diagnosis",
            "working diagnosis",
            "diagnoses",
            "diagnosis",
            "icd-10",
            "dsm-5",
        ],
        "alternative_names": ["Psychiatric Diagnoses", "Working Diagnoses"],
        "confidence": 0.9,
    },
    # -------------------------------------------------------------------------
    # 1.2 Medications
    # -------------------------------------------------------------------------
    SectionType.CURRENT_MEDICATIONS: {
        "keywords": [
            "current medications",
            "active medications",
            "medication list",
            "current meds",
            "medications",
            "meds",
        ],
        "alternative_names": ["Active Meds"],
        "confidence": 0.9,
    },
    SectionType.BH_PRIOR_MEDS_TRIED: {
        "keywords": [
            "behavioral health prior meds tried",
            "prior medication trials",
            "previous medications",
            "medication history",
            "past medications",
            "prior meds tried",
            "prior meds",
        ],
        "alternative_names": ["Past Meds"],
        "confidence": 0.8,
    },
    SectionType.MEDICATIONS_PLAN: {
        "keywords": [
            "medication management",
            "prescription changes",
            "medication changes",
            "medication plan",
            "new medications",
            "med changes",
        ],
        "alternative_names": ["Prescription Plan", "Med Plan"],
        "confidence": 0.8,
    },
    # -------------------------------------------------------------------------
    # 1.3 Clinical Assessment
    # -------------------------------------------------------------------------
    SectionType.HPI: {
        "keywords": [
            "history of presenting illness",
            "history of present illness",
            "reason for visit",
            "present illness",
            "hpi",
        ],
        "alternative_names": [],
        "confidence": 0.95,
    },
    SectionType.REVIEW_OF_SYSTEMS: {
        "keywords": [
            "review of symptoms",
            "review of systems",
            "systems review",
            "symptom review",
            "ros",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.PSYCHIATRIC_EXAM: {
        "keywords": [
            "mental status examination",
            "psychiatric examination",
            "mental status exam",
            "psychiatric exam",
            "psych exam",
            "mse",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.QUESTIONNAIRES_SURVEYS: {
        "keywords": [
            "questionnaires/surveys",
            "assessment scales",
            "screening tools",
            "questionnaires",
            "rating scales",
            "surveys",
            "phq-9",
            "gad-7",
        ],
        "alternative_names": [],
        "confidence": 0.8,
    },
    # -------------------------------------------------------------------------
    # 1.4 Examination
    # -------------------------------------------------------------------------
    SectionType.MEDICAL: {
        "keywords": [
            "past medical history",
            "medical conditions",
            "medical history",
            "medical update",
            "medical review",
            "medical",
        ],
        "alternative_names": [],
        "confidence": 0.8,
    },
    SectionType.PHYSICAL_EXAM: {
        "keywords": [
            "physical examination",
            "physical assessment",
            "physical findings",
            "physical exam",
            "examination",
            "pe",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    # -------------------------------------------------------------------------
    # 1.5 Plan and Safety
    # -------------------------------------------------------------------------
    SectionType.RISKS: {
        "keywords": [
            "risk assessment",
            "risk evaluation",
            "risk factors",
            "suicide risk",
            "safety risk",
            "risks",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.ASSESSMENT_AND_PLAN: {
        "keywords": [
            "assessment and plan",
            "clinical assessment",
            "assessment & plan",
            "assessment/plan",
            "treatment plan",
            "a&p",
        ],
        "alternative_names": [],
        "confidence": 0.95,
    },
    SectionType.PSYCHOSOCIAL: {
        "keywords": [
            "therapeutic interventions",
            "social interventions",
            "psychotherapy",
            "psychosocial",
            "counseling",
            "therapy",
        ],
        "alternative_names": [],
        "confidence": 0.8,
    },
    SectionType.SAFETY_PLAN: {
        "keywords": [
            "crisis intervention",
            "safety strategy",
            "safety planning",
            "emergency plan",
            "safety plan",
            "crisis plan",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    # -------------------------------------------------------------------------
    # 1.6 Follow-up
    # -------------------------------------------------------------------------
    SectionType.PROGNOSIS: {
        "keywords": ["clinical prognosis", "expected outcome", "prognosis", "outlook"],
        "alternative_names": [],
        "confidence": 0.8,
    },
    SectionType.FOLLOW_UP: {
        "keywords": [
            "return appointment",
            "next appointment",
            "follow-up plan",
            "return visit",
            "follow-up",
            "follow up",
        ],
        "alternative_names": [],
        "confidence": 0.9,
    },
    # -------------------------------------------------------------------------
    # 1.7 Legacy Types
    # -------------------------------------------------------------------------
    SectionType.CHIEF_COMPLAINT: {
        "keywords": ["chief complaint", "chief concern", "cc"],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.SUBJECTIVE: {
        "keywords": ["subjective", "s"],
        "alternative_names": [],
        "confidence": 0.95,
    },
    SectionType.OBJECTIVE: {
        "keywords": ["objective", "o"],
        "alternative_names": [],
        "confidence": 0.95,
    },
    SectionType.ASSESSMENT: {
        "keywords": ["assessment", "a"],
        "alternative_names": ["Impression"],
        "confidence": 0.95,
    },
    SectionType.PLAN: {
        "keywords": ["plan", "p"],
        "alternative_names": [],
        "confidence": 0.95,
    },
    SectionType.MSE: {
        "keywords": ["mental status"],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.VITALS: {
        "keywords": ["vital statistics", "vital signs", "vitals", "vs"],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.MEDICATIONS: {
        "keywords": ["outpatient medications", "home medications"],
        "alternative_names": [],
        "confidence": 0.9,
    },
    SectionType.ALLERGIES: {
        "keywords": ["drug allergies", "allergies", "allergy"],
        "alternative_names": ["NKDA"],
        "confidence": 0.9,
    },
    SectionType.SOCIAL_HISTORY: {
        "keywords": ["social history", "social hx", "social", "sh"],
        "alternative_names": [],
        "confidence": 0.8,
    },
    SectionType.FAMILY_HISTORY: {
        "keywords": ["family history", "family hx", "family", "fh"],
        "alternative_names": [],
        "confidence": 0.8,
    },
}

# Phrases shorter than this only count as headers when followed by a colon.
MIN_BARE_HEADER_LENGTH = 4


# =============================================================================
# STAGE 2: ALIASES, TITLES, GROUPS
# =============================================================================

SECTION_ALIASES: Dict[SectionType, SectionType] = {
    SectionType.CHIEF_COMPLAINT: SectionType.HPI,
    SectionType.SUBJECTIVE: SectionType.HPI,
    SectionType.OBJECTIVE: SectionType.PHYSICAL_EXAM,
    SectionType.VITALS: SectionType.PHYSICAL_EXAM,
    SectionType.ASSESSMENT: SectionType.ASSESSMENT_AND_PLAN,
    SectionType.PLAN: SectionType.ASSESSMENT_AND_PLAN,
    SectionType.MSE: SectionType.PSYCHIATRIC_EXAM,
    SectionType.MEDICATIONS: SectionType.CURRENT_MEDICATIONS,
    SectionType.ALLERGIES: SectionType.MEDICAL,
    SectionType.FAMILY_HISTORY: SectionType.MEDICAL,
    SectionType.SOCIAL_HISTORY: SectionType.PSYCHOSOCIAL,
}

SECTION_TITLES: Dict[SectionType, str] = {
    SectionType.BASIC_DEMO_INFO: "Basic Demo Information",
    SectionType.IDENTIFYING_INFO: "Identifying Information",
    SectionType.DIAGNOSIS: "Diagnosis",
    SectionType.CURRENT_MEDICATIONS: "Current Medications",
    SectionType.BH_PRIOR_MEDS_TRIED: "Behavioral Health Prior Meds Tried",
    SectionType.MEDICATIONS_PLAN: "Medication Changes",
    SectionType.HPI: "History of Present Illness",
    SectionType.REVIEW_OF_SYSTEMS: "Review of Systems",
    SectionType.PSYCHIATRIC_EXAM: "Psychiatric Exam",
    SectionType.QUESTIONNAIRES_SURVEYS: "Questionnaires/Surveys",
    SectionType.MEDICAL: "Medical",
    SectionType.PHYSICAL_EXAM: "Physical Exam",
    SectionType.RISKS: "Risks",
    SectionType.ASSESSMENT_AND_PLAN: "Assessment and Plan",
    SectionType.PSYCHOSOCIAL: "Psychosocial",
    SectionType.SAFETY_PLAN: "Safety Plan",
    SectionType.PROGNOSIS: "Prognosis",
    SectionType.FOLLOW_UP: "Follow-Up",
    SectionType.CHIEF_COMPLAINT: "Chief Complaint",
    SectionType.SUBJECTIVE: "Subjective",
    SectionType.OBJECTIVE: "Objective",
    SectionType.ASSESSMENT: "Assessment",
    SectionType.PLAN: "Plan",
    SectionType.MSE: "Mental Status",
    SectionType.VITALS: "Vitals",
    SectionType.MEDICATIONS: "Home Medications",
    SectionType.ALLERGIES: "Allergies",
    SectionType.SOCIAL_HISTORY: "Social History",
    SectionType.FAMILY_HISTORY: "Family History",
    SectionType.OTHER: "Other",
}

SECTION_GROUPS: Dict[str, Dict[str, Any]] = {
    "PATIENT_INFO": {
        "label": "Patient Information",
        "sections": [
            SectionType.BASIC_DEMO_INFO,
            SectionType.DIAGNOSIS,
            SectionType.IDENTIFYING_INFO,
        ],
        "default_selected": False,
    },
    "MEDICATIONS": {
        "label": "Medications",
        "sections": [
            SectionType.CURRENT_MEDICATIONS,
            SectionType.BH_PRIOR_MEDS_TRIED,
            SectionType.MEDICATIONS_PLAN,
        ],
        "default_selected": True,
    },
    "CLINICAL_ASSESSMENT": {
        "label": "Clinical Assessment",
        "sections": [
            SectionType.HPI,
            SectionType.REVIEW_OF_SYSTEMS,
            SectionType.PSYCHIATRIC_EXAM,
            SectionType.QUESTIONNAIRES_SURVEYS,
        ],
        "default_selected": True,
    },
    "EXAMINATION": {
        "label": "Examination",
        "sections": [SectionType.MEDICAL, SectionType.PHYSICAL_EXAM],
        "default_selected": True,
    },
    "PLAN_AND_SAFETY": {
        "label": "Plan & Safety",
        "sections": [
            SectionType.RISKS,
            SectionType.ASSESSMENT_AND_PLAN,
            SectionType.PSYCHOSOCIAL,
            SectionType.SAFETY_PLAN,
        ],
        "default_selected": True,
    },
    "FOLLOW_UP": {
        "label": "Follow-up",
        "sections": [SectionType.PROGNOSIS, SectionType.FOLLOW_UP],
        "default_selected": True,
    },
    "LEGACY_SOAP": {
        "label": "Legacy SOAP",
        "sections": [
            SectionType.SUBJECTIVE,
            SectionType.OBJECTIVE,
            SectionType.ASSESSMENT,
            SectionType.PLAN,
        ],
        "default_selected": False,
    },
}

SOAP_SECTION_TYPES: List[SectionType] = [
    SectionType.SUBJECTIVE,
    SectionType.OBJECTIVE,
    SectionType.ASSESSMENT,
    SectionType.PLAN,
]


# =============================================================================
# STAGE 3: CLINICAL VOCABULARY
# =============================================================================
# CLINICAL_TERMS populates DetectedSection.metadata.clinical_terms.
# SECTION_VOCABULARY is the per-type list used for confidence scoring;
# types without an entry fall back to CLINICAL_TERMS.

CLINICAL_TERMS: List[str] = [
    "anxiety",
    "depression",
    "bipolar",
    "adhd",
    "ptsd",
    "ocd",
    "schizophrenia",
    "medication",
    "therapy",
    "counseling",
    "psychiatric",
    "psychotherapy",
    "diagnosis",
    "treatment",
    "symptoms",
    "mood",
    "affect",
    "behavior",
    "suicidal",
    "homicidal",
    "safety",
    "risk",
    "crisis",
    "emergency",
    "follow-up",
    "appointment",
    "referral",
    "consultation",
]

SECTION_VOCABULARY: Dict[SectionType, List[str]] = {
    SectionType.HPI: ["reports", "presents", "states", "since", "history", "symptoms", "visit"],
    SectionType.CHIEF_COMPLAINT: ["complaint", "presents", "reports", "pain"],
    SectionType.SUBJECTIVE: ["reports", "states", "denies", "complains", "symptoms"],
    SectionType.REVIEW_OF_SYSTEMS: ["denies", "reports", "sleep", "appetite", "energy", "negative"],
    SectionType.PSYCHIATRIC_EXAM: ["mood", "affect", "thought", "insight", "judgment", "appearance"],
    SectionType.MSE: ["mood", "affect", "thought", "insight", "judgment", "appearance"],
    SectionType.PHYSICAL_EXAM: ["normal", "exam", "heart", "lungs", "abdomen", "tenderness"],
    SectionType.OBJECTIVE: ["bp", "hr", "exam", "normal", "temperature", "lungs"],
    SectionType.VITALS: ["bp", "hr", "rr", "temp", "spo2", "weight"],
    SectionType.CURRENT_MEDICATIONS: ["mg", "daily", "bid", "tablet", "dose", "prn"],
    SectionType.MEDICATIONS: ["mg", "daily", "bid", "tablet", "dose", "prn"],
    SectionType.MEDICATIONS_PLAN: ["mg", "increase", "decrease", "start", "continue", "discontinue"],
    SectionType.BH_PRIOR_MEDS_TRIED: ["mg", "trial", "tried", "ineffective", "side effects"],
    SectionType.ASSESSMENT_AND_PLAN: ["assessment", "plan", "continue", "recommend", "diagnosis", "treatment"],
    SectionType.ASSESSMENT: ["impression", "diagnosis", "likely", "consistent", "stable"],
    SectionType.PLAN: ["continue", "start", "follow", "recommend", "return", "order"],
    SectionType.DIAGNOSIS: ["disorder", "f32", "f41", "episode", "type", "diagnosis"],
    SectionType.RISKS: ["suicidal", "homicidal", "risk", "protective", "ideation", "denies"],
    SectionType.SAFETY_PLAN: ["crisis", "988", "contact", "coping", "emergency", "safety"],
    SectionType.QUESTIONNAIRES_SURVEYS: ["phq-9", "gad-7", "score", "scale", "screening"],
    SectionType.FOLLOW_UP: ["weeks", "return", "appointment", "follow", "months", "sooner"],
    SectionType.PSYCHOSOCIAL: ["therapy", "support", "family", "work", "stressors", "counseling"],
    SectionType.ALLERGIES: ["nkda", "allergy", "allergic", "reaction", "penicillin"],
}


# =============================================================================
# STAGE 4: EPIC SYNTAX GRAMMARS
# =============================================================================
# The well-formed patterns are exact. The candidate patterns catch tokens
# that look like an attempted SmartPhrase/DotPhrase/SmartList so the
# validator can flag casing and character-set mistakes.

EPIC_SMART_PHRASE_PATTERN = r"@[A-Z0-9]+@"
EPIC_SMART_PHRASE_CANDIDATE = r"@[A-Za-z0-9_]+@"

EPIC_DOT_PHRASE_PATTERN = r"(?<![\w.])\.[a-z][a-z0-9]*(?!\w)"
EPIC_DOT_PHRASE_CANDIDATE = r"(?<![\w.])\.[A-Za-z][A-Za-z0-9]*(?!\w)"

EPIC_SMART_LIST_PATTERN = r"\{[A-Za-z][A-Za-z0-9 _\-]*:\d+\}"
EPIC_SMART_LIST_CANDIDATE = r"\{[^{}\n:]+:[^{}\n]*\}"

EPIC_WILDCARD = "***"

# Loose detection used for EMR inference (any Epic-looking token).
EPIC_PRESENCE_PATTERN = r"@[A-Z]|(?<![\w.])\.[a-z]|\{[A-Za-z][^{}\n]*:\d+\}|\*\*\*"

PLACEHOLDER_PATTERNS: List[str] = [
    r"\*\*\*",
    r"\[PLACEHOLDER\]",
    r"\[INSERT[^\]]*\]",
    r"\bTODO\b",
    r"\bXXX\b",
]


# =============================================================================
# STAGE 5: QUALITY HEURISTIC TABLES
# =============================================================================

QUALITY_BASE_SCORE = 5.0

QUALITY_MEDICAL_TERMS: List[str] = [
    "patient",
    "history",
    "examination",
    "assessment",
    "plan",
    "diagnosis",
    "treatment",
    "medication",
    "symptoms",
    "follow-up",
    "chief complaint",
    "vital signs",
    "physical exam",
    "review of systems",
]

QUALITY_STRUCTURE_HEADERS: List[str] = [
    "hpi",
    "history of present illness",
    "assessment",
    "plan",
    "physical exam",
    "medications",
    "subjective",
    "objective",
]

QUALITY_UNPROFESSIONAL_PHRASES: List[str] = [
    "lol",
    "gonna",
    "wanna",
    "kinda",
    "sorta",
    "yeah",
    "ok so",
    "!!",
]

# Words ignored when measuring transcript overlap.
STOPWORDS: List[str] = [
    "the", "and", "for", "with", "that", "this", "was", "are", "has", "have",
    "not", "but", "you", "she", "her", "his", "him", "they", "them", "from",
    "been", "were", "will", "what", "when", "said", "says", "about", "there",
]


# =============================================================================
# STAGE 6: LOGGING FORMAT
# =============================================================================
# Loguru format string for console output.

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
