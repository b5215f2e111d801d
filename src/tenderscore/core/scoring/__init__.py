"""Scoring engine - pure (tender, profile) relevance scoring."""

from .combinations import LEAD_PARTNER, PARTNER_LED, SOLO, Combination, LeadPartner, PartnerLed, Solo
from .engine import (
    GATE_FAILED_EXPLANATION,
    NO_MATCHES_EXPLANATION,
    build_explanation,
    score,
    score_combination,
)
from .fingerprint import NO_MATCHES_FINGERPRINT, compute_criteria_fingerprint
from .records import (
    CpvCode,
    EvaluationResult,
    KeywordMatch,
    MinimumRequirement,
    NegativeKeyword,
    ProfileCriteria,
    ProfileEvaluation,
    SupportKeyword,
    TenderRecord,
)

__all__ = [
    "SOLO",
    "LEAD_PARTNER",
    "PARTNER_LED",
    "Combination",
    "Solo",
    "LeadPartner",
    "PartnerLed",
    "GATE_FAILED_EXPLANATION",
    "NO_MATCHES_EXPLANATION",
    "build_explanation",
    "score",
    "score_combination",
    "NO_MATCHES_FINGERPRINT",
    "compute_criteria_fingerprint",
    "CpvCode",
    "EvaluationResult",
    "KeywordMatch",
    "MinimumRequirement",
    "NegativeKeyword",
    "ProfileCriteria",
    "ProfileEvaluation",
    "SupportKeyword",
    "TenderRecord",
]
