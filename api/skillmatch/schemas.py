from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .domain import SKILL_CATEGORIES, parse_minutes
from .services.candidates import CandidateFilters


class MatchFiltersRequest(BaseModel):
    skill_categories: list[str] = Field(default_factory=list)
    proficiency_levels: list[int] = Field(default_factory=list)
    location: str | None = None
    min_rating: float | None = Field(default=None, ge=0, le=5)
    availability_days: list[int] = Field(default_factory=list)
    availability_times: list[str] = Field(default_factory=list)

    @field_validator("skill_categories")
    @classmethod
    def _known_categories(cls, value: list[str]) -> list[str]:
        out = [str(v).strip().lower() for v in value]
        unknown = [v for v in out if v not in SKILL_CATEGORIES]
        if unknown:
            raise ValueError(f"unknown skill categories: {unknown}")
        return out

    @field_validator("proficiency_levels")
    @classmethod
    def _proficiency_range(cls, value: list[int]) -> list[int]:
        for level in value:
            if not 0 <= level <= 100:
                raise ValueError("proficiency levels must be within [0, 100]")
        return value

    @field_validator("availability_days")
    @classmethod
    def _day_range(cls, value: list[int]) -> list[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError("availability days must be within [0, 6]")
        return value

    @field_validator("availability_times")
    @classmethod
    def _hhmm(cls, value: list[str]) -> list[str]:
        for t in value:
            parse_minutes(t)
        return value

    def to_filters(self) -> CandidateFilters:
        return CandidateFilters(
            skill_categories=tuple(self.skill_categories),
            proficiency_levels=tuple(self.proficiency_levels),
            location=self.location,
            min_rating=self.min_rating,
            availability_days=tuple(self.availability_days),
            availability_times=tuple(self.availability_times),
        )


class CandidateOut(BaseModel):
    id: str
    display_name: str
    is_verified: bool
    rating: float
    total_sessions: int
    location: str | None = None


class ComplementarySkillOut(BaseModel):
    skill: str
    teacher_id: str
    learner_id: str
    direction: str
    teacher_proficiency: int
    learner_proficiency: int


class RankedMatchOut(BaseModel):
    candidate: CandidateOut
    score: float
    breakdown: dict[str, float]
    explanation: str
    common_skills: list[str] = Field(default_factory=list)
    complementary_skills: list[ComplementarySkillOut] = Field(default_factory=list)


class MatchListResponse(BaseModel):
    matches: list[RankedMatchOut]
    count: int


class InteractionOut(BaseModel):
    user_id: str
    target_user_id: str
    type: str
    score: float | None = None
    explanation: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None


class UnblockResponse(BaseModel):
    removed: bool


class BatchRunResponse(BaseModel):
    status: str
    total_matches: int
    users_with_matches: int
    total_active_users: int
    failed_users: int


class CleanupResponse(BaseModel):
    deleted: int


class SkillCategoryCount(BaseModel):
    category: str
    count: int


class MatchStatisticsResponse(BaseModel):
    days: int
    total_interactions: int
    favorite_rate: float
    pass_rate: float
    block_rate: float
    average_match_score: float
    top_skill_categories: list[SkillCategoryCount] = Field(default_factory=list)


def match_list_response(matches: list[Any]) -> MatchListResponse:
    return MatchListResponse(
        matches=[RankedMatchOut.model_validate(m.to_dict()) for m in matches],
        count=len(matches),
    )


def interaction_out(row: Any) -> InteractionOut:
    return InteractionOut(
        user_id=row.user_id,
        target_user_id=row.target_user_id,
        type=row.type.value,
        score=row.score,
        explanation=row.explanation,
        created_at=row.created_at,
        decided_at=row.decided_at,
    )
