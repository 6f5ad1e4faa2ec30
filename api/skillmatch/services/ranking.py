from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from ..config import MATCH_SUGGESTION_LIMIT, RESPONSE_RATE_WINDOW_DAYS
from ..domain import MatchInteraction, Person
from ..errors import TransientLookupError
from .explanations import build_match_explanation
from .scoring import DEFAULT_WEIGHTS, ScoreBreakdown, ScoringWeights, compute_breakdown
from .skills import ComplementarySkill, common_skills, complementary_skills

logger = logging.getLogger(__name__)


@dataclass
class RankedMatch:
    candidate: Person
    score: float
    breakdown: ScoreBreakdown
    explanation: str
    common_skills: list[str] = field(default_factory=list)
    complementary_skills: list[ComplementarySkill] = field(default_factory=list)

    @property
    def candidate_id(self) -> str:
        return self.candidate.id

    def to_dict(self) -> dict[str, Any]:
        c = self.candidate
        return {
            "candidate": {
                "id": c.id,
                "display_name": c.display_name,
                "is_verified": c.is_verified,
                "rating": c.rating,
                "total_sessions": c.total_sessions,
                "location": c.location,
            },
            "score": self.score,
            "breakdown": self.breakdown.to_dict(),
            "explanation": self.explanation,
            "common_skills": list(self.common_skills),
            "complementary_skills": [s.to_dict() for s in self.complementary_skills],
        }


def _candidate_interactions(store, candidate_id: str, now: datetime) -> list[MatchInteraction]:
    since = now - timedelta(days=RESPONSE_RATE_WINDOW_DAYS)
    try:
        return list(store.get_recent_interactions(candidate_id, since))
    except TransientLookupError:
        logger.warning("[matching] interaction lookup failed for candidate=%s; using neutral response rate", candidate_id)
        return []


def score_candidate(
    requester: Person,
    candidate: Person,
    store,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: datetime | None = None,
) -> RankedMatch:
    now = now or datetime.now(timezone.utc)
    interactions = _candidate_interactions(store, candidate.id, now)
    breakdown = compute_breakdown(requester, candidate, interactions, now, weights)
    shared = common_skills(requester, candidate)
    return RankedMatch(
        candidate=candidate,
        score=breakdown.total,
        breakdown=breakdown,
        explanation=build_match_explanation(breakdown.total, breakdown, shared, candidate.rating),
        common_skills=shared,
        complementary_skills=complementary_skills(requester, candidate),
    )


def sort_ranked(matches: Iterable[RankedMatch]) -> list[RankedMatch]:
    # equal scores fall back to candidate id so ordering never depends on pool order
    return sorted(matches, key=lambda m: (-m.score, m.candidate_id))


def rank_candidates(
    requester: Person,
    candidates: Iterable[Person],
    store,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limit: int = MATCH_SUGGESTION_LIMIT,
    now: datetime | None = None,
) -> list[RankedMatch]:
    now = now or datetime.now(timezone.utc)
    scored: list[RankedMatch] = []
    for candidate in candidates:
        try:
            scored.append(score_candidate(requester, candidate, store, weights, now))
        except Exception:
            logger.exception("[matching] scoring failed requester=%s candidate=%s; skipping", requester.id, candidate.id)
    return sort_ranked(scored)[: max(0, int(limit))]
