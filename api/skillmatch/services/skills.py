from __future__ import annotations

from dataclasses import asdict, dataclass

from ..domain import Person, SkillDeclaration

MATCH_BASE = 0.5
PROFICIENCY_GAP_WEIGHT = 0.3
CATEGORY_BLEND = 0.7
SESSION_BLEND = 0.3
SESSION_SPREAD = 100.0


@dataclass(frozen=True)
class ComplementarySkill:
    skill: str
    teacher_id: str
    learner_id: str
    direction: str
    teacher_proficiency: int
    learner_proficiency: int

    def to_dict(self) -> dict:
        return asdict(self)


def _pair_value(teacher: SkillDeclaration, learner: SkillDeclaration) -> float:
    gap = max(0, teacher.proficiency - learner.proficiency) / 100.0
    return MATCH_BASE + PROFICIENCY_GAP_WEIGHT * gap


def _directional_checks(teacher: Person, learner: Person) -> tuple[float, int]:
    total = 0.0
    attempted = 0
    for teaching in teacher.teaching():
        counterpart = learner.declaration_for(teaching.skill_id)
        if counterpart is None:
            continue
        attempted += 1
        if counterpart.wants_to_learn:
            total += _pair_value(teaching, counterpart)
    return total, attempted


def skill_complementarity(requester: Person, candidate: Person) -> float:
    """
    How well each side's teachable skills meet the other's learning wishes.

    A check is attempted for each teachable skill the other person has also
    declared; it matches when they want to learn it. Matched pairs score
    0.5 plus up to 0.3 for the proficiency gap, and the sum is averaged over
    all attempted checks in both directions.

    Teachable skills the other person never declared are left out of the
    average instead of counting as misses, so the denominator is smaller than
    the full count of teachable skills.
    """
    forward, forward_checks = _directional_checks(requester, candidate)
    backward, backward_checks = _directional_checks(candidate, requester)
    attempted = forward_checks + backward_checks
    if attempted == 0:
        return 0.0
    return max(0.0, min(1.0, (forward + backward) / attempted))


def _categories(person: Person) -> set[str]:
    return {d.skill.category for d in person.skills}


def category_jaccard(requester: Person, candidate: Person) -> float:
    a = _categories(requester)
    b = _categories(candidate)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def session_similarity(requester: Person, candidate: Person) -> float:
    return max(0.0, 1.0 - abs(requester.total_sessions - candidate.total_sessions) / SESSION_SPREAD)


def category_affinity(requester: Person, candidate: Person) -> float:
    return CATEGORY_BLEND * category_jaccard(requester, candidate) + SESSION_BLEND * session_similarity(requester, candidate)


def common_skills(requester: Person, candidate: Person) -> list[str]:
    candidate_ids = {d.skill_id for d in candidate.skills}
    return [d.skill.name for d in requester.skills if d.skill_id in candidate_ids and d.skill.name]


def complementary_skills(requester: Person, candidate: Person) -> list[ComplementarySkill]:
    out: list[ComplementarySkill] = []
    for teacher, learner, direction in (
        (requester, candidate, "requester_teaches"),
        (candidate, requester, "candidate_teaches"),
    ):
        for teaching in teacher.teaching():
            counterpart = learner.declaration_for(teaching.skill_id)
            if counterpart is None or not counterpart.wants_to_learn:
                continue
            out.append(
                ComplementarySkill(
                    skill=teaching.skill.name,
                    teacher_id=teacher.id,
                    learner_id=learner.id,
                    direction=direction,
                    teacher_proficiency=teaching.proficiency,
                    learner_proficiency=counterpart.proficiency,
                )
            )
    return out
