"""
Tender scoring engine.

Decides for a (tender, profile) pair whether the tender qualifies and
what relevance score it receives:

1. At least one minimum requirement must be found (title, then body,
   then CPV codes). Minimum requirements contribute no points.
2. Each distinct support keyword found in title or body adds its weight.
3. Each distinct negative keyword found in title or body subtracts its
   penalty.
4. Each profile CPV code that prefixes a tender CPV code adds its weight.

Matching is lowercase substring containment, so a short keyword such as
"IT" also matches inside longer words ("kvalitet").

The engine is pure: same inputs, same result, no I/O.
"""

from __future__ import annotations

from typing import Iterable, Protocol, TypeVar

from .combinations import Combination, Solo
from .fingerprint import compute_criteria_fingerprint
from .records import (
    FOUND_IN_CPV,
    FOUND_IN_DESCRIPTION,
    FOUND_IN_TITLE,
    EvaluationResult,
    KeywordMatch,
    ProfileCriteria,
    TenderRecord,
)

GATE_FAILED_EXPLANATION = "fails minimum requirement gate"
NO_MATCHES_EXPLANATION = "no matches"
EXPLANATION_SEPARATOR = ", "


class _Keyworded(Protocol):
    @property
    def keyword(self) -> str: ...


K = TypeVar("K", bound=_Keyworded)


def _unique_by_keyword(items: Iterable[K]) -> list[K]:
    """Drop case-insensitive duplicate keywords, keeping the first."""
    seen: set[str] = set()
    unique = []
    for item in items:
        key = item.keyword.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _locate_text(keyword: str, title: str, body: str) -> str | None:
    if keyword in title:
        return FOUND_IN_TITLE
    if keyword in body:
        return FOUND_IN_DESCRIPTION
    return None


def _format_points(value: int) -> str:
    return f"+{value}" if value >= 0 else str(value)


def build_explanation(
    met: Iterable[KeywordMatch],
    support: Iterable[KeywordMatch],
    negative: Iterable[KeywordMatch],
    cpv: Iterable[KeywordMatch],
    total_score: int,
) -> str:
    """Human-readable derivation of a qualifying score."""
    support = list(support)
    negative = list(negative)
    cpv = list(cpv)
    if not (support or negative or cpv):
        return NO_MATCHES_EXPLANATION

    parts = [m.keyword for m in met]
    parts.extend(f"{m.keyword}({_format_points(m.weight)})" for m in support)
    parts.extend(f"{m.keyword}({_format_points(m.weight)})" for m in negative)
    parts.extend(f"{m.keyword}({_format_points(m.weight)})" for m in cpv)
    return f"{EXPLANATION_SEPARATOR.join(parts)} = {total_score} poeng"


def score(
    tender: TenderRecord,
    profile: ProfileCriteria,
    fingerprint: str | None = None,
) -> EvaluationResult:
    """Score a tender against a single profile.

    Args:
        tender: Normalized tender record
        profile: Profile criteria
        fingerprint: Precomputed criteria fingerprint (computed when omitted)

    Returns:
        EvaluationResult for the pair
    """
    if fingerprint is None:
        fingerprint = compute_criteria_fingerprint(profile)

    title = (tender.title or "").lower()
    body = (tender.body or "").lower()
    cpv_codes = tuple(tender.cpv_codes or ())
    lowered_codes = [code.lower() for code in cpv_codes]

    # Gate
    met: list[KeywordMatch] = []
    missing: list[str] = []
    for requirement in _unique_by_keyword(profile.minimum_requirements):
        keyword = requirement.keyword.lower()
        found_in = _locate_text(keyword, title, body)
        if found_in is None and any(keyword in code for code in lowered_codes):
            found_in = FOUND_IN_CPV
        if found_in is None:
            missing.append(requirement.keyword)
        else:
            met.append(KeywordMatch(requirement.keyword, 0, found_in))

    if not met:
        return EvaluationResult(
            tender_id=tender.id,
            profile_id=profile.id,
            qualified=False,
            all_minimum_requirements_met=False,
            missing_minimum_requirements=tuple(missing),
            explanation=GATE_FAILED_EXPLANATION,
            criteria_fingerprint=fingerprint,
        )

    support_matches: list[KeywordMatch] = []
    for kw in _unique_by_keyword(profile.support_keywords):
        found_in = _locate_text(kw.keyword.lower(), title, body)
        if found_in is not None:
            support_matches.append(KeywordMatch(kw.keyword, kw.weight, found_in))

    negative_matches: list[KeywordMatch] = []
    for kw in _unique_by_keyword(profile.negative_keywords):
        found_in = _locate_text(kw.keyword.lower(), title, body)
        if found_in is not None:
            negative_matches.append(KeywordMatch(kw.keyword, kw.penalty, found_in))

    cpv_matches: list[KeywordMatch] = []
    for cpv in profile.cpv_codes:
        matched = next((code for code in cpv_codes if code.startswith(cpv.code)), None)
        if matched is not None:
            cpv_matches.append(KeywordMatch(cpv.code, cpv.weight, FOUND_IN_CPV, matched_code=matched))

    support_score = sum(m.weight for m in support_matches)
    negative_score = sum(m.weight for m in negative_matches)
    cpv_score = sum(m.weight for m in cpv_matches)
    synergy_bonus = 0
    total_score = support_score + negative_score + cpv_score + synergy_bonus

    return EvaluationResult(
        tender_id=tender.id,
        profile_id=profile.id,
        qualified=True,
        all_minimum_requirements_met=not missing,
        met_minimum_requirements=tuple(met),
        missing_minimum_requirements=tuple(missing),
        support_score=support_score,
        negative_score=negative_score,
        cpv_score=cpv_score,
        synergy_bonus=synergy_bonus,
        matched_support_keywords=tuple(support_matches),
        matched_negative_keywords=tuple(negative_matches),
        matched_cpv_codes=tuple(cpv_matches),
        explanation=build_explanation(
            met, support_matches, negative_matches, cpv_matches, total_score
        ),
        criteria_fingerprint=fingerprint,
    )


def score_combination(tender: TenderRecord, combination: Combination) -> EvaluationResult:
    """Score a tender against a combination.

    Raises:
        NotImplementedError: For lead/partner pairs (no synergy scoring yet)
    """
    if isinstance(combination, Solo):
        return score(tender, combination.profile)
    raise NotImplementedError(
        f"Scoring for {combination.combination_type} combinations is not supported"
    )
