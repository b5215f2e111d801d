"""
Plain records consumed and produced by the scoring engine.

Profiles and tenders arrive from the stores as these frozen dataclasses
so scoring stays free of ORM sessions and I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# Where a keyword was found in a tender
FOUND_IN_TITLE = "title"
FOUND_IN_DESCRIPTION = "description"
FOUND_IN_CPV = "cpv"


@dataclass(frozen=True)
class MinimumRequirement:
    """Binary gate keyword. Carries no weight."""

    keyword: str


@dataclass(frozen=True)
class SupportKeyword:
    """Keyword adding ``weight`` points when found (1-3 by convention)."""

    keyword: str
    weight: int = 1


@dataclass(frozen=True)
class NegativeKeyword:
    """Penalty keyword.

    The weight may be stored either as a negative number or as a positive
    penalty; it always lowers the score by ``abs(weight)``.
    """

    keyword: str
    weight: int = -1

    @property
    def penalty(self) -> int:
        return -abs(self.weight)


@dataclass(frozen=True)
class CpvCode:
    """CPV code prefix adding ``weight`` points when a tender code starts with it."""

    code: str
    weight: int = 1


@dataclass(frozen=True)
class ProfileCriteria:
    """A profile's matching criteria at a point in time."""

    id: int
    organization_id: int
    name: str = ""
    is_own_profile: bool = False
    minimum_requirements: tuple[MinimumRequirement, ...] = ()
    support_keywords: tuple[SupportKeyword, ...] = ()
    negative_keywords: tuple[NegativeKeyword, ...] = ()
    cpv_codes: tuple[CpvCode, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileCriteria":
        """Build criteria from a JSON-like mapping.

        Missing collections are treated as empty.
        """
        return cls(
            id=int(data.get("id", 0)),
            organization_id=int(data.get("organization_id", 0)),
            name=data.get("name") or data.get("profile_name") or "",
            is_own_profile=bool(data.get("is_own_profile", False)),
            minimum_requirements=tuple(
                MinimumRequirement(_keyword_of(item))
                for item in data.get("minimum_requirements") or ()
            ),
            support_keywords=tuple(
                SupportKeyword(item["keyword"], int(item.get("weight", 1)))
                for item in data.get("support_keywords") or ()
            ),
            negative_keywords=tuple(
                NegativeKeyword(item["keyword"], int(item.get("weight", -1)))
                for item in data.get("negative_keywords") or ()
            ),
            cpv_codes=tuple(
                CpvCode(str(item.get("code") or item.get("cpv_code")), int(item.get("weight", 1)))
                for item in data.get("cpv_codes") or ()
            ),
        )


def _keyword_of(item: Any) -> str:
    if isinstance(item, str):
        return item
    return item["keyword"]


@dataclass(frozen=True)
class TenderRecord:
    """Normalized tender notice as delivered by the tender store."""

    id: int
    title: str = ""
    body: str | None = ""
    cpv_codes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TenderRecord":
        return cls(
            id=int(data.get("id", 0)),
            title=data.get("title") or "",
            body=data.get("body") or "",
            cpv_codes=tuple(str(code) for code in data.get("cpv_codes") or ()),
        )


@dataclass(frozen=True)
class KeywordMatch:
    """A matched keyword or CPV code with the weight it contributed."""

    keyword: str
    weight: int
    found_in: str
    matched_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "keyword": self.keyword,
            "weight": self.weight,
            "found_in": self.found_in,
        }
        if self.matched_code is not None:
            data["matched_code"] = self.matched_code
        return data


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of scoring one tender against one profile."""

    tender_id: int
    profile_id: int
    qualified: bool
    all_minimum_requirements_met: bool
    met_minimum_requirements: tuple[KeywordMatch, ...] = ()
    missing_minimum_requirements: tuple[str, ...] = ()
    support_score: int = 0
    negative_score: int = 0
    cpv_score: int = 0
    synergy_bonus: int = 0
    matched_support_keywords: tuple[KeywordMatch, ...] = ()
    matched_negative_keywords: tuple[KeywordMatch, ...] = ()
    matched_cpv_codes: tuple[KeywordMatch, ...] = ()
    explanation: str = ""
    combination_type: str = "solo"
    criteria_fingerprint: str | None = None

    @property
    def total_score(self) -> int:
        return self.support_score + self.negative_score + self.cpv_score + self.synergy_bonus

    def to_row(self) -> dict[str, Any]:
        """Column values for a ``tender_evaluations`` row."""
        return {
            "tender_id": self.tender_id,
            "lead_profile_id": self.profile_id,
            "combination_type": self.combination_type,
            "qualified": self.qualified,
            "all_minimum_requirements_met": self.all_minimum_requirements_met,
            "met_minimum_requirements": [m.to_dict() for m in self.met_minimum_requirements],
            "missing_minimum_requirements": list(self.missing_minimum_requirements),
            "support_score": self.support_score,
            "negative_score": self.negative_score,
            "cpv_score": self.cpv_score,
            "synergy_bonus": self.synergy_bonus,
            "total_score": self.total_score,
            "matched_support_keywords": [m.to_dict() for m in self.matched_support_keywords],
            "matched_negative_keywords": [m.to_dict() for m in self.matched_negative_keywords],
            "matched_cpv_codes": [m.to_dict() for m in self.matched_cpv_codes],
            "explanation": self.explanation,
            "criteria_fingerprint": self.criteria_fingerprint,
        }


@dataclass
class ProfileEvaluation:
    """Qualifying results for one profile plus the fingerprint they were computed with."""

    profile_id: int
    fingerprint: str
    results: list[EvaluationResult] = field(default_factory=list)
