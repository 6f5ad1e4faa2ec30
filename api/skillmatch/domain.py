from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SKILL_CATEGORIES = (
    "technology",
    "design",
    "business",
    "marketing",
    "languages",
    "music",
    "arts_crafts",
    "fitness",
    "cooking",
    "photography",
    "writing",
    "other",
)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


def parse_minutes(value: str) -> int:
    """Minute-of-day for an "HH:MM" wall-clock string ("24:00" allowed as end of day)."""
    match = _TIME_RE.match(str(value or "").strip())
    if not match:
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if minutes > 59 or total > MINUTES_PER_DAY:
        raise ValueError(f"invalid time {value!r}, out of range")
    return total


class InteractionType(str, Enum):
    FAVORITE = "FAVORITE"
    PASS = "PASS"
    BLOCK = "BLOCK"
    VIEW = "VIEW"


DECISION_TYPES = frozenset({InteractionType.FAVORITE, InteractionType.PASS, InteractionType.BLOCK})


@dataclass(frozen=True)
class Skill:
    id: str
    name: str
    category: str = "other"


@dataclass
class SkillDeclaration:
    skill: Skill
    proficiency: int
    can_teach: bool = False
    wants_to_learn: bool = False
    verified: bool = False

    def __post_init__(self) -> None:
        self.proficiency = int(self.proficiency)
        if not 0 <= self.proficiency <= 100:
            raise ValueError(f"proficiency must be within [0, 100], got {self.proficiency}")

    @property
    def skill_id(self) -> str:
        return self.skill.id


@dataclass
class AvailabilitySlot:
    day_of_week: int
    start_time: str
    end_time: str
    timezone: str = "UTC"
    is_active: bool = True

    def __post_init__(self) -> None:
        if not 0 <= int(self.day_of_week) <= 6:
            raise ValueError(f"day_of_week must be within [0, 6], got {self.day_of_week}")
        self.day_of_week = int(self.day_of_week)
        if self.start_minute >= self.end_minute:
            raise ValueError(f"start_time {self.start_time} must be before end_time {self.end_time}")

    @property
    def start_minute(self) -> int:
        return parse_minutes(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def covers(self, minute: int) -> bool:
        return self.start_minute <= minute < self.end_minute


@dataclass
class Person:
    id: str
    display_name: str = ""
    is_verified: bool = False
    rating: float = 0.0
    total_sessions: int = 0
    last_active_at: datetime | None = None
    location: str | None = None
    match_suggestions: bool = True
    skills: list[SkillDeclaration] = field(default_factory=list)
    availability: list[AvailabilitySlot] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.rating = float(self.rating or 0.0)
        self.total_sessions = int(self.total_sessions or 0)

    @property
    def active_availability(self) -> list[AvailabilitySlot]:
        return [slot for slot in self.availability if slot.is_active]

    def teaching(self) -> list[SkillDeclaration]:
        return [s for s in self.skills if s.can_teach]

    def declaration_for(self, skill_id: str) -> SkillDeclaration | None:
        for declaration in self.skills:
            if declaration.skill_id == skill_id:
                return declaration
        return None


@dataclass
class MatchInteraction:
    user_id: str
    target_user_id: str
    type: InteractionType
    score: float | None = None
    explanation: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None

    @property
    def pair(self) -> tuple[str, str]:
        return (self.user_id, self.target_user_id)


@dataclass
class GenerationStats:
    run_date: str
    total_matches: int
    users_with_matches: int
    total_active_users: int
    failed_users: int = 0
    duration_seconds: float = 0.0

    @property
    def average_matches_per_user(self) -> float:
        if self.total_active_users <= 0:
            return 0.0
        return round(self.total_matches / self.total_active_users, 2)

    @property
    def match_generation_rate(self) -> float:
        if self.total_active_users <= 0:
            return 0.0
        return round(self.users_with_matches / self.total_active_users * 100, 1)

    def to_dict(self) -> dict:
        return {
            "run_date": self.run_date,
            "total_matches": self.total_matches,
            "users_with_matches": self.users_with_matches,
            "total_active_users": self.total_active_users,
            "failed_users": self.failed_users,
            "average_matches_per_user": self.average_matches_per_user,
            "match_generation_rate": self.match_generation_rate,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class MatchStatistics:
    """Interaction counts over a trailing window; rates are percentages of total_interactions."""

    total_interactions: int = 0
    favorite_count: int = 0
    pass_count: int = 0
    block_count: int = 0
    average_match_score: float = 0.0
    top_skill_categories: list[tuple[str, int]] = field(default_factory=list)

    def _rate(self, count: int) -> float:
        if self.total_interactions <= 0:
            return 0.0
        return round(count / self.total_interactions * 100, 2)

    @property
    def favorite_rate(self) -> float:
        return self._rate(self.favorite_count)

    @property
    def pass_rate(self) -> float:
        return self._rate(self.pass_count)

    @property
    def block_rate(self) -> float:
        return self._rate(self.block_count)

    def to_dict(self) -> dict:
        return {
            "total_interactions": self.total_interactions,
            "favorite_rate": self.favorite_rate,
            "pass_rate": self.pass_rate,
            "block_rate": self.block_rate,
            "average_match_score": round(self.average_match_score, 2),
            "top_skill_categories": [
                {"category": category, "count": count} for category, count in self.top_skill_categories
            ],
        }


def top_categories(counts: dict[str, int], limit: int = 10) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
