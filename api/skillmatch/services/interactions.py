from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..domain import InteractionType, MatchInteraction

logger = logging.getLogger(__name__)


def parse_interaction_type(value: str | InteractionType) -> InteractionType:
    if isinstance(value, InteractionType):
        return value
    return InteractionType(str(value or "").strip().upper())


class InteractionRecorder:
    """
    Writes a requester's decision about a candidate.

    There is exactly one row per ordered (user, target) pair: recording a new
    decision replaces the previous type, score and explanation. Callers must
    reject self-targeting before reaching this class.
    """

    def __init__(self, store, clock=None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def record(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        explanation: str | None = None,
    ) -> MatchInteraction:
        row = self.store.upsert_interaction(
            user_id,
            target_user_id,
            interaction_type,
            score=score,
            explanation=explanation,
            now=self._clock(),
        )
        logger.info("[interactions] recorded user_id=%s target=%s type=%s", user_id, target_user_id, interaction_type.value)
        return row

    def record_view(self, user_id: str, target_user_id: str, score: float | None = None) -> bool:
        return self.store.insert_interaction_if_absent(
            user_id,
            target_user_id,
            InteractionType.VIEW,
            score=score,
            now=self._clock(),
        )

    def unblock(self, user_id: str, target_user_id: str) -> bool:
        removed = self.store.delete_interaction(user_id, target_user_id, only_type=InteractionType.BLOCK)
        if removed:
            logger.info("[interactions] unblocked user_id=%s target=%s", user_id, target_user_id)
        return removed

    def current(self, user_id: str, target_user_id: str) -> MatchInteraction | None:
        return self.store.get_interaction(user_id, target_user_id)
