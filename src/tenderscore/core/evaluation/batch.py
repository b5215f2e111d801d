"""
Evaluation batch runner.

Scores tenders of an organization against every one of its profiles
and upserts the results. Incremental mode only touches tenders that
have no evaluation yet; full mode rescores everything. Stale rows are
not pruned here (the job queue does that per profile).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tenderscore.core.config.models import EvaluationMode
from tenderscore.core.logging import get_contextual_logger, get_logger
from tenderscore.core.scoring import Solo, compute_criteria_fingerprint, score_combination
from tenderscore.persistence.db import SessionScope
from tenderscore.persistence.repo import (
    EvaluationRepository,
    OrganizationRepository,
    ProfileRepository,
    TenderRepository,
)

logger = get_logger("batch")


@dataclass
class BatchStats:
    """Statistics for one organization's batch run."""
    
    organization_id: int | None = None
    mode: str = EvaluationMode.INCREMENTAL.value
    profiles: int = 0
    tenders: int = 0
    evaluated: int = 0
    upserted: int = 0
    qualified: int = 0
    errors_count: int = 0
    skipped_reason: str | None = None
    
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None
    
    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "mode": self.mode,
            "profiles": self.profiles,
            "tenders": self.tenders,
            "evaluated": self.evaluated,
            "upserted": self.upserted,
            "qualified": self.qualified,
            "errors_count": self.errors_count,
            "skipped_reason": self.skipped_reason,
            "duration_seconds": self.duration_seconds,
        }


class BatchRunner:
    """Runs batch evaluations against the tender store.
    
    Each organization is processed inside its own session scope, so a
    storage failure rolls back that organization only.
    """
    
    def __init__(self, scope: SessionScope) -> None:
        self.scope = scope
    
    def run_batch(
        self,
        organization_id: int,
        mode: EvaluationMode | str = EvaluationMode.INCREMENTAL,
    ) -> BatchStats:
        """Evaluate one organization's tenders against all its profiles.
        
        Args:
            organization_id: Organization to evaluate
            mode: incremental (new tenders only) or full
            
        Returns:
            BatchStats for the run
        """
        mode = EvaluationMode(mode)
        stats = BatchStats(organization_id=organization_id, mode=mode.value)
        log = get_contextual_logger("batch", org_id=organization_id).with_context(mode=mode.value)
        
        with self.scope() as session:
            profiles = ProfileRepository(session).list_for_org(organization_id)
            if not profiles:
                stats.skipped_reason = "no profiles"
                log.info("No profiles, skipping")
                stats.finished_at = datetime.utcnow()
                return stats
            
            own = next((p for p in profiles if p.is_own_profile), None)
            if own is None:
                stats.skipped_reason = "no own profile"
                log.info("No own profile, skipping")
                stats.finished_at = datetime.utcnow()
                return stats
            
            # Own profile first, then every other profile, each scored solo
            worklist = [own] + [p for p in profiles if p.id != own.id]
            combinations = [Solo(p.to_criteria()) for p in worklist]
            stats.profiles = len(combinations)
            
            evaluations = EvaluationRepository(session)
            exclude: set[int] = set()
            if mode is EvaluationMode.INCREMENTAL:
                exclude = evaluations.evaluated_tender_ids(organization_id)
            
            tenders = [
                t.to_record()
                for t in TenderRepository(session).list_for_org(organization_id, exclude_ids=exclude)
            ]
            stats.tenders = len(tenders)
            
            fingerprints = {
                c.profile.id: compute_criteria_fingerprint(c.profile) for c in combinations
            }
            
            for tender in tenders:
                for combination in combinations:
                    try:
                        result = score_combination(tender, combination)
                    except Exception:
                        stats.errors_count += 1
                        log.exception(
                            "Scoring failed for tender %s / profile %s",
                            tender.id, combination.profile.id,
                        )
                        continue
                    
                    stats.evaluated += 1
                    if result.qualified:
                        stats.qualified += 1
                    stats.upserted += evaluations.upsert(
                        organization_id,
                        result,
                        fingerprint=fingerprints[combination.profile.id],
                    )
        
        stats.finished_at = datetime.utcnow()
        log.info(
            "Batch complete: %d tenders x %d profiles, %d upserted, %d errors",
            stats.tenders, stats.profiles, stats.upserted, stats.errors_count,
        )
        return stats
    
    def run_all(
        self,
        mode: EvaluationMode | str = EvaluationMode.INCREMENTAL,
        organization_id: int | None = None,
    ) -> list[BatchStats]:
        """Batch trigger entrypoint.
        
        Processes one organization when ``organization_id`` is given,
        otherwise every organization. A failing organization is logged
        and the remaining ones still run.
        """
        if organization_id is not None:
            return [self.run_batch(organization_id, mode)]
        
        with self.scope() as session:
            org_ids = OrganizationRepository(session).get_all_ids()
        
        results: list[BatchStats] = []
        for org_id in org_ids:
            try:
                results.append(self.run_batch(org_id, mode))
            except Exception:
                logger.exception("Batch evaluation failed for organization %s", org_id)
                failed = BatchStats(organization_id=org_id, mode=EvaluationMode(mode).value)
                failed.errors_count = 1
                failed.finished_at = datetime.utcnow()
                results.append(failed)
        return results


def run_batch_evaluation(
    scope: SessionScope,
    mode: EvaluationMode | str = EvaluationMode.INCREMENTAL,
    organization_id: int | None = None,
) -> list[BatchStats]:
    """Convenience function to run the batch evaluation."""
    return BatchRunner(scope).run_all(mode, organization_id=organization_id)
