"""
Set-based evaluation of selected profiles.

Used by the job queue: scores every current tender of an organization
against a subset of its profiles and keeps only qualifying results.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from tenderscore.core.logging import get_logger
from tenderscore.core.scoring import ProfileEvaluation, compute_criteria_fingerprint, score
from tenderscore.persistence.repo import ProfileRepository, TenderRepository

logger = get_logger("evaluation")


def evaluate_profiles(
    session: Session,
    organization_id: int,
    profile_ids: Iterable[int],
) -> dict[int, ProfileEvaluation]:
    """Score all tenders of an organization against the given profiles.
    
    Args:
        session: Database session used for reads only
        organization_id: Organization owning profiles and tenders
        profile_ids: Profiles to evaluate
        
    Returns:
        Mapping of profile id to its qualifying results and fingerprint.
        Profiles with no qualifying tender (or that no longer exist) are
        absent from the mapping.
    """
    profiles = ProfileRepository(session).get_by_ids(organization_id, profile_ids)
    tenders = [t.to_record() for t in TenderRepository(session).list_for_org(organization_id)]
    
    evaluations: dict[int, ProfileEvaluation] = {}
    for profile in profiles:
        criteria = profile.to_criteria()
        fingerprint = compute_criteria_fingerprint(criteria)
        
        qualifying = []
        for tender in tenders:
            result = score(tender, criteria, fingerprint=fingerprint)
            if result.qualified:
                qualifying.append(result)
        
        logger.debug(
            "Profile %s: %d/%d tenders qualify (fingerprint %s)",
            profile.id, len(qualifying), len(tenders), fingerprint,
        )
        
        if qualifying:
            evaluations[profile.id] = ProfileEvaluation(
                profile_id=profile.id,
                fingerprint=fingerprint,
                results=qualifying,
            )
    
    return evaluations
