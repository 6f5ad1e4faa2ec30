from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from ..config import (
    BATCH_ACTIVE_WINDOW_DAYS,
    BATCH_PAUSE_SECONDS,
    BATCH_SIZE,
    BATCH_TOP_K,
    INTERACTION_RETENTION_DAYS,
)
from ..domain import GenerationStats, InteractionType, MatchStatistics
from .notifications import LoggingNotifier, Notifier, notify_new_matches
from .state_machine import COMPLETED, FAILED, IDLE, RUNNING, transition_batch_state

logger = logging.getLogger(__name__)

SKIPPED = "skipped"
EXPIRING_TYPES = (InteractionType.PASS, InteractionType.VIEW)


@dataclass
class BatchRunResult:
    status: str
    total_matches: int = 0
    users_with_matches: int = 0
    total_active_users: int = 0
    failed_users: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class BatchGenerator:
    """
    Population-wide match generation.

    People are processed in fixed-width batches on a pool no wider than one
    batch, with a pause between batches to keep load on the store bounded.
    A failure for one person is logged and skipped; run() itself never raises.
    Only one run may be in flight per generator.
    """

    def __init__(
        self,
        service,
        notifier: Notifier | None = None,
        batch_size: int = BATCH_SIZE,
        pause_seconds: float = BATCH_PAUSE_SECONDS,
        top_k: int = BATCH_TOP_K,
        active_window_days: int = BATCH_ACTIVE_WINDOW_DAYS,
        retention_days: int = INTERACTION_RETENTION_DAYS,
        sleep=time.sleep,
        clock=None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.service = service
        self.store = service.store
        self.notifier = notifier or LoggingNotifier()
        self.batch_size = batch_size
        self.pause_seconds = pause_seconds
        self.top_k = top_k
        self.active_window_days = active_window_days
        self.retention_days = retention_days
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = IDLE
        self._state_lock = threading.Lock()
        self.last_result: BatchRunResult | None = None

    @property
    def state(self) -> str:
        return self._state

    def _transition(self, action: str) -> None:
        with self._state_lock:
            self._state = transition_batch_state(self._state, action)

    def _try_start(self) -> bool:
        with self._state_lock:
            if self._state == RUNNING:
                return False
            self._state = transition_batch_state(self._state, "reset")
            self._state = transition_batch_state(self._state, "start")
            return self._state == RUNNING

    def _process_person(self, user_id: str) -> int | None:
        try:
            matches = self.service.suggest_matches(user_id, limit=self.top_k)
        except Exception:
            logger.exception("[batch] match generation failed user_id=%s", user_id)
            return None
        if matches:
            notify_new_matches(self.notifier, user_id, len(matches))
            best = matches[0]
            logger.debug("[batch] best match user_id=%s candidate=%s score=%s", user_id, best.candidate_id, best.score)
        return len(matches)

    def _run_batches(self, user_ids: list[str]) -> list[int | None]:
        outcomes: list[int | None] = []
        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="match-batch") as pool:
            for start in range(0, len(user_ids), self.batch_size):
                batch = user_ids[start : start + self.batch_size]
                outcomes.extend(pool.map(self._process_person, batch))
                if start + self.batch_size < len(user_ids):
                    self._sleep(self.pause_seconds)
        return outcomes

    def _store_stats(self, stats: GenerationStats) -> None:
        logger.info("[batch] match generation statistics %s", stats.to_dict())
        try:
            self.store.save_generation_stats(stats)
        except Exception:
            logger.exception("[batch] failed to store generation statistics")

    def run(self) -> BatchRunResult:
        if not self._try_start():
            logger.warning("[batch] generation already running; skipping trigger")
            return BatchRunResult(status=SKIPPED)

        started = time.monotonic()
        now = self._clock()
        try:
            user_ids = list(self.store.list_batch_eligible_ids(now - timedelta(days=self.active_window_days)))
            logger.info("[batch] generating matches for %s active users", len(user_ids))
            outcomes = self._run_batches(user_ids)
        except Exception:
            logger.exception("[batch] match generation run failed")
            self._transition("fail")
            self.last_result = BatchRunResult(status=FAILED)
            return self.last_result

        succeeded = [n for n in outcomes if n is not None]
        result = BatchRunResult(
            status=COMPLETED,
            total_matches=sum(succeeded),
            users_with_matches=sum(1 for n in succeeded if n > 0),
            total_active_users=len(user_ids),
            failed_users=len(outcomes) - len(succeeded),
        )
        self._store_stats(
            GenerationStats(
                run_date=now.date().isoformat(),
                total_matches=result.total_matches,
                users_with_matches=result.users_with_matches,
                total_active_users=result.total_active_users,
                failed_users=result.failed_users,
                duration_seconds=time.monotonic() - started,
            )
        )
        logger.info(
            "[batch] completed: %s matches for %s users (%s failed)",
            result.total_matches,
            result.users_with_matches,
            result.failed_users,
        )
        self._transition("finish")
        self.last_result = result
        return result

    def cleanup_old_interactions(self, now: datetime | None = None) -> int:
        """Drop PASS and VIEW rows older than the retention window; FAVORITE and BLOCK are kept."""
        now = now or self._clock()
        cutoff = now - timedelta(days=self.retention_days)
        try:
            deleted = int(self.store.delete_interactions_before(cutoff, EXPIRING_TYPES))
        except Exception:
            logger.exception("[batch] interaction cleanup failed")
            return 0
        logger.info("[batch] cleaned up %s old match interactions", deleted)
        return deleted

    def match_statistics(self, days: int = 30, now: datetime | None = None) -> MatchStatistics:
        """Decision mix, mean stored score and busiest skill categories for interactions created in the last `days`."""
        if days < 1:
            raise ValueError("days must be at least 1")
        now = now or self._clock()
        stats = self.store.get_match_statistics(now - timedelta(days=days))
        logger.info("[batch] match statistics days=%s total=%s", days, stats.total_interactions)
        return stats
