from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..config import MATCH_CANDIDATE_POOL_CAP, MATCH_RECORD_VIEWS, MATCH_SUGGESTION_LIMIT
from ..domain import DECISION_TYPES, InteractionType, MatchInteraction, Person
from ..errors import InvalidDecisionError, NotFoundError
from .candidates import CandidateFilters, select_candidate_pool
from .interactions import InteractionRecorder, parse_interaction_type
from .ranking import RankedMatch, rank_candidates, score_candidate
from .scoring import DEFAULT_WEIGHTS, ScoringWeights

logger = logging.getLogger(__name__)


class MatchingService:
    """Entry point for suggestions, decisions and favorites of one requester at a time."""

    def __init__(
        self,
        store,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        pool_cap: int = MATCH_CANDIDATE_POOL_CAP,
        record_views: bool = MATCH_RECORD_VIEWS,
        clock=None,
    ):
        self.store = store
        self.weights = weights
        self.pool_cap = pool_cap
        self.record_views = record_views
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.recorder = InteractionRecorder(store, clock=self._clock)

    def _require_person(self, person_id: str, role: str) -> Person:
        person = self.store.get_person(person_id)
        if person is None:
            raise NotFoundError(f"{role} {person_id} not found")
        return person

    def suggest_matches(
        self,
        requester_id: str,
        filters: CandidateFilters | None = None,
        limit: int = MATCH_SUGGESTION_LIMIT,
    ) -> list[RankedMatch]:
        requester = self._require_person(requester_id, "requester")
        now = self._clock()
        pool = select_candidate_pool(self.store, requester.id, filters, cap=self.pool_cap)
        ranked = rank_candidates(requester, pool, self.store, self.weights, limit=limit, now=now)
        if self.record_views:
            for match in ranked:
                self.recorder.record_view(requester.id, match.candidate_id, score=match.score)
        logger.info("[matching] suggestions requester=%s pool=%s returned=%s", requester.id, len(pool), len(ranked))
        return ranked

    def record_decision(self, user_id: str, target_id: str, decision: str | InteractionType) -> MatchInteraction:
        if str(user_id) == str(target_id):
            raise InvalidDecisionError("cannot record a decision about yourself")
        try:
            interaction_type = parse_interaction_type(decision)
        except ValueError:
            raise InvalidDecisionError(f"unknown decision {decision!r}")
        if interaction_type not in DECISION_TYPES:
            raise InvalidDecisionError(f"decision must be one of {sorted(t.value for t in DECISION_TYPES)}")

        requester = self._require_person(user_id, "user")
        target = self._require_person(target_id, "target user")

        score = None
        explanation = None
        if interaction_type == InteractionType.FAVORITE:
            snapshot = score_candidate(requester, target, self.store, self.weights, self._clock())
            score = snapshot.score
            explanation = snapshot.explanation
        return self.recorder.record(requester.id, target.id, interaction_type, score=score, explanation=explanation)

    def unblock(self, user_id: str, target_id: str) -> bool:
        return self.recorder.unblock(str(user_id), str(target_id))

    def list_favorites(self, user_id: str) -> list[RankedMatch]:
        requester = self._require_person(user_id, "user")
        now = self._clock()
        out: list[RankedMatch] = []
        for row in self.store.list_interactions(requester.id, InteractionType.FAVORITE):
            target = self.store.get_person(row.target_user_id)
            if target is None:
                logger.warning("[matching] favorite target missing user_id=%s target=%s", requester.id, row.target_user_id)
                continue
            out.append(score_candidate(requester, target, self.store, self.weights, now))
        return out
