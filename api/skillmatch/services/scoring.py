from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping

from ..config import DEFAULT_MATCHING_WEIGHTS, RESPONSE_RATE_WINDOW_DAYS
from ..domain import DECISION_TYPES, InteractionType, MatchInteraction, Person
from .availability import availability_overlap_ratio
from .skills import category_affinity, skill_complementarity

NEUTRAL_RESPONSE_RATE = 0.5
SESSION_BONUS_CAP = 0.2
SESSION_BONUS_SCALE = 50.0


@dataclass(frozen=True)
class ScoringWeights:
    skill_complementarity: float = 0.40
    availability_overlap: float = 0.20
    learning_style_compatibility: float = 0.15
    rating_history: float = 0.15
    response_rate: float = 0.10

    def __post_init__(self) -> None:
        values = list(asdict(self).values())
        if any(v < 0 for v in values):
            raise ValueError("scoring weights must be non-negative")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"scoring weights must sum to 1.0, got {sum(values):.6f}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ScoringWeights":
        known = {k: float(v) for k, v in raw.items() if k in cls.__dataclass_fields__}
        return cls(**known)


DEFAULT_WEIGHTS = ScoringWeights.from_mapping(DEFAULT_MATCHING_WEIGHTS)


@dataclass(frozen=True)
class ScoreBreakdown:
    skill_complementarity: float
    availability_overlap: float
    learning_style_compatibility: float
    rating_history: float
    response_rate: float
    total: float

    def factors(self) -> dict[str, float]:
        out = asdict(self)
        out.pop("total")
        return out

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def rating_history_score(person: Person) -> float:
    normalized = max(0.0, min(1.0, person.rating / 5.0))
    session_bonus = min(SESSION_BONUS_CAP, person.total_sessions / SESSION_BONUS_SCALE * SESSION_BONUS_CAP)
    return min(1.0, normalized + session_bonus)


def response_rate_score(
    interactions: Iterable[MatchInteraction],
    now: datetime,
    window_days: int = RESPONSE_RATE_WINDOW_DAYS,
) -> float:
    """Share of FAVORITE among a person's own recent decisions; VIEW rows are not decisions."""
    since = now - timedelta(days=window_days)
    decisions = [
        i
        for i in interactions
        if i.type in DECISION_TYPES and (i.decided_at is None or i.decided_at >= since)
    ]
    if not decisions:
        return NEUTRAL_RESPONSE_RATE
    favorites = sum(1 for i in decisions if i.type == InteractionType.FAVORITE)
    return min(1.0, favorites / len(decisions))


def weighted_total(factors: Mapping[str, float], weights: ScoringWeights) -> float:
    return round(sum(getattr(weights, name) * value for name, value in factors.items()), 2)


def compute_breakdown(
    requester: Person,
    candidate: Person,
    candidate_interactions: Iterable[MatchInteraction],
    now: datetime,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    factors = {
        "skill_complementarity": skill_complementarity(requester, candidate),
        "availability_overlap": availability_overlap_ratio(requester.active_availability, candidate.active_availability),
        "learning_style_compatibility": category_affinity(requester, candidate),
        "rating_history": rating_history_score(candidate),
        "response_rate": response_rate_score(candidate_interactions, now),
    }
    return ScoreBreakdown(**factors, total=weighted_total(factors, weights))
