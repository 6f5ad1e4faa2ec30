from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import MATCH_CANDIDATE_POOL_CAP
from ..domain import SKILL_CATEGORIES, Person, parse_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFilters:
    skill_categories: tuple[str, ...] = ()
    proficiency_levels: tuple[int, ...] = ()
    location: str | None = None
    min_rating: float | None = None
    availability_days: tuple[int, ...] = ()
    availability_times: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        categories = tuple(str(c).strip().lower() for c in self.skill_categories)
        unknown = [c for c in categories if c not in SKILL_CATEGORIES]
        if unknown:
            raise ValueError(f"unknown skill categories: {unknown}")
        object.__setattr__(self, "skill_categories", categories)
        object.__setattr__(self, "proficiency_levels", tuple(int(p) for p in self.proficiency_levels))
        for day in self.availability_days:
            if not 0 <= int(day) <= 6:
                raise ValueError(f"availability day must be within [0, 6], got {day}")
        object.__setattr__(self, "availability_days", tuple(int(d) for d in self.availability_days))
        for value in self.availability_times:
            parse_minutes(value)
        location = (self.location or "").strip()
        object.__setattr__(self, "location", location or None)

    @property
    def time_minutes(self) -> tuple[int, ...]:
        return tuple(parse_minutes(t) for t in self.availability_times)

    def is_empty(self) -> bool:
        return self == CandidateFilters()


NO_FILTERS = CandidateFilters()


def _skill_filter_ok(person: Person, filters: CandidateFilters) -> bool:
    if not filters.skill_categories and not filters.proficiency_levels:
        return True
    for declaration in person.skills:
        if filters.skill_categories and declaration.skill.category not in filters.skill_categories:
            continue
        if filters.proficiency_levels and declaration.proficiency not in filters.proficiency_levels:
            continue
        return True
    return False


def _availability_filter_ok(person: Person, filters: CandidateFilters) -> bool:
    if not filters.availability_days and not filters.availability_times:
        return True
    minutes = filters.time_minutes
    for slot in person.active_availability:
        if filters.availability_days and slot.day_of_week not in filters.availability_days:
            continue
        if minutes and not any(slot.covers(m) for m in minutes):
            continue
        return True
    return False


def person_matches_filters(person: Person, filters: CandidateFilters) -> bool:
    """All filter fields are conjunctive; skill fields must hold on a single declaration."""
    if filters.location and filters.location.lower() not in (person.location or "").lower():
        return False
    if filters.min_rating is not None and person.rating < filters.min_rating:
        return False
    if not _skill_filter_ok(person, filters):
        return False
    return _availability_filter_ok(person, filters)


def select_candidate_pool(
    store,
    requester_id: str,
    filters: CandidateFilters | None = None,
    cap: int = MATCH_CANDIDATE_POOL_CAP,
) -> list[Person]:
    filters = filters or NO_FILTERS
    blocked = set(store.get_blocked_targets(requester_id))
    excluded = blocked | {requester_id}

    rows = store.query_candidates(filters, exclude_ids=excluded, limit=cap)
    pool: list[Person] = []
    for person in rows:
        if person.id in excluded or not person.is_verified:
            continue
        if not person_matches_filters(person, filters):
            continue
        pool.append(person)
        if len(pool) >= cap:
            break
    logger.debug(
        "[matching] candidate pool requester=%s size=%s blocked=%s filtered=%s",
        requester_id,
        len(pool),
        len(blocked),
        not filters.is_empty(),
    )
    return pool
