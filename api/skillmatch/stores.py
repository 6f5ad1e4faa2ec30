from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Protocol

from .domain import GenerationStats, InteractionType, MatchInteraction, MatchStatistics, Person, top_categories
from .services.candidates import CandidateFilters, person_matches_filters


class MatchStore(Protocol):
    def get_person(self, person_id: str) -> Person | None: ...

    def get_blocked_targets(self, user_id: str) -> set[str]: ...

    def query_candidates(self, filters: CandidateFilters, exclude_ids: set[str], limit: int) -> list[Person]: ...

    def get_recent_interactions(self, user_id: str, since: datetime) -> list[MatchInteraction]: ...

    def upsert_interaction(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        explanation: str | None = None,
        now: datetime | None = None,
    ) -> MatchInteraction: ...

    def insert_interaction_if_absent(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        now: datetime | None = None,
    ) -> bool: ...

    def get_interaction(self, user_id: str, target_user_id: str) -> MatchInteraction | None: ...

    def delete_interaction(self, user_id: str, target_user_id: str, only_type: InteractionType | None = None) -> bool: ...

    def list_interactions(self, user_id: str, interaction_type: InteractionType) -> list[MatchInteraction]: ...

    def list_batch_eligible_ids(self, active_since: datetime) -> list[str]: ...

    def delete_interactions_before(self, cutoff: datetime, types: Iterable[InteractionType]) -> int: ...

    def save_generation_stats(self, stats: GenerationStats) -> None: ...

    def get_match_statistics(self, since: datetime) -> MatchStatistics: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryMatchStore:
    """
    Dict-backed store used by tests and local runs.

    Interactions live in a map keyed by the ordered (user_id, target_user_id)
    tuple, which is what gives the one-row-per-pair guarantee.
    """

    def __init__(self, people: Iterable[Person] = ()):
        self.people: dict[str, Person] = {}
        self.interactions: dict[tuple[str, str], MatchInteraction] = {}
        self.stats: list[GenerationStats] = []
        self._lock = threading.Lock()
        for person in people:
            self.add_person(person)

    def add_person(self, person: Person) -> Person:
        self.people[person.id] = person
        return person

    def get_person(self, person_id: str) -> Person | None:
        return self.people.get(str(person_id))

    def get_blocked_targets(self, user_id: str) -> set[str]:
        with self._lock:
            return {
                target
                for (owner, target), row in self.interactions.items()
                if owner == user_id and row.type == InteractionType.BLOCK
            }

    def query_candidates(self, filters: CandidateFilters, exclude_ids: set[str], limit: int) -> list[Person]:
        out: list[Person] = []
        for person in self.people.values():
            if person.id in exclude_ids or not person.is_verified:
                continue
            if not person_matches_filters(person, filters):
                continue
            out.append(person)
            if len(out) >= limit:
                break
        return out

    def get_recent_interactions(self, user_id: str, since: datetime) -> list[MatchInteraction]:
        with self._lock:
            return [
                replace(row)
                for (owner, _), row in self.interactions.items()
                if owner == user_id and row.decided_at is not None and row.decided_at >= since
            ]

    def upsert_interaction(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        explanation: str | None = None,
        now: datetime | None = None,
    ) -> MatchInteraction:
        now = now or _now()
        key = (user_id, target_user_id)
        with self._lock:
            existing = self.interactions.get(key)
            row = MatchInteraction(
                user_id=user_id,
                target_user_id=target_user_id,
                type=interaction_type,
                score=score,
                explanation=explanation,
                created_at=existing.created_at if existing else now,
                decided_at=now,
            )
            self.interactions[row.pair] = row
            return replace(row)

    def insert_interaction_if_absent(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        now: datetime | None = None,
    ) -> bool:
        now = now or _now()
        key = (user_id, target_user_id)
        with self._lock:
            if key in self.interactions:
                return False
            self.interactions[key] = MatchInteraction(
                user_id=user_id,
                target_user_id=target_user_id,
                type=interaction_type,
                score=score,
                created_at=now,
                decided_at=now,
            )
            return True

    def get_interaction(self, user_id: str, target_user_id: str) -> MatchInteraction | None:
        with self._lock:
            row = self.interactions.get((user_id, target_user_id))
            return replace(row) if row else None

    def delete_interaction(self, user_id: str, target_user_id: str, only_type: InteractionType | None = None) -> bool:
        key = (user_id, target_user_id)
        with self._lock:
            row = self.interactions.get(key)
            if row is None or (only_type is not None and row.type != only_type):
                return False
            del self.interactions[key]
            return True

    def list_interactions(self, user_id: str, interaction_type: InteractionType) -> list[MatchInteraction]:
        with self._lock:
            rows = [
                replace(row)
                for (owner, _), row in self.interactions.items()
                if owner == user_id and row.type == interaction_type
            ]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(rows, key=lambda r: r.decided_at or epoch, reverse=True)

    def list_batch_eligible_ids(self, active_since: datetime) -> list[str]:
        return [
            p.id
            for p in self.people.values()
            if p.is_verified
            and p.match_suggestions
            and p.last_active_at is not None
            and p.last_active_at >= active_since
        ]

    def delete_interactions_before(self, cutoff: datetime, types: Iterable[InteractionType]) -> int:
        wanted = set(types)
        with self._lock:
            stale = [
                key
                for key, row in self.interactions.items()
                if row.type in wanted and row.decided_at is not None and row.decided_at < cutoff
            ]
            for key in stale:
                del self.interactions[key]
        return len(stale)

    def save_generation_stats(self, stats: GenerationStats) -> None:
        with self._lock:
            self.stats.append(stats)

    def get_match_statistics(self, since: datetime) -> MatchStatistics:
        with self._lock:
            rows = [row for row in self.interactions.values() if row.created_at is not None and row.created_at >= since]
        by_type = {t: sum(1 for r in rows if r.type == t) for t in InteractionType}
        scores = [r.score for r in rows if r.score is not None]
        categories: dict[str, int] = {}
        for owner in {r.user_id for r in rows}:
            person = self.people.get(owner)
            for declaration in person.skills if person else []:
                category = declaration.skill.category
                categories[category] = categories.get(category, 0) + 1
        return MatchStatistics(
            total_interactions=len(rows),
            favorite_count=by_type[InteractionType.FAVORITE],
            pass_count=by_type[InteractionType.PASS],
            block_count=by_type[InteractionType.BLOCK],
            average_match_score=sum(scores) / len(scores) if scores else 0.0,
            top_skill_categories=top_categories(categories),
        )
