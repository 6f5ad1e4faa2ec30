from __future__ import annotations

from typing import Sequence

from .scoring import ScoreBreakdown

FALLBACK_REASON = "potential learning opportunity"

_COMPLEMENTARITY_TIERS = (
    (0.7, "excellent skill exchange potential"),
    (0.4, "good skill complementarity"),
)
_AVAILABILITY_TIERS = (
    (0.6, "great schedule compatibility"),
    (0.3, "decent availability overlap"),
)
_RATING_TIERS = (
    (4.5, "highly rated teacher"),
    (4.0, "well-rated teacher"),
)


def _above(value: float, tiers: Sequence[tuple[float, str]]) -> str | None:
    for threshold, phrase in tiers:
        if value > threshold:
            return phrase
    return None


def _at_least(value: float, tiers: Sequence[tuple[float, str]]) -> str | None:
    for threshold, phrase in tiers:
        if value >= threshold:
            return phrase
    return None


def _shared_skills_phrase(count: int) -> str | None:
    if count <= 0:
        return None
    return f"{count} shared skill{'s' if count > 1 else ''}"


def explanation_reasons(breakdown: ScoreBreakdown, common_skills: Sequence[str], candidate_rating: float) -> list[str]:
    reasons = [
        _above(breakdown.skill_complementarity, _COMPLEMENTARITY_TIERS),
        _above(breakdown.availability_overlap, _AVAILABILITY_TIERS),
        _at_least(float(candidate_rating or 0.0), _RATING_TIERS),
        _shared_skills_phrase(len(common_skills)),
    ]
    return [r for r in reasons if r]


def build_match_explanation(
    score: float,
    breakdown: ScoreBreakdown,
    common_skills: Sequence[str],
    candidate_rating: float,
) -> str:
    percentage = int(round(score * 100))
    reasons = explanation_reasons(breakdown, common_skills, candidate_rating)
    reason_text = ", ".join(reasons) if reasons else FALLBACK_REASON
    return f"{percentage}% match because: {reason_text}"
