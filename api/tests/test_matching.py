from datetime import datetime, timedelta, timezone

import pytest

from skillmatch.domain import AvailabilitySlot, InteractionType, Person, Skill, SkillDeclaration
from skillmatch.errors import InvalidDecisionError, NotFoundError
from skillmatch.services.candidates import CandidateFilters
from skillmatch.services.matching import MatchingService
from skillmatch.stores import InMemoryMatchStore

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
JS = Skill(id="s-js", name="JavaScript", category="technology")
PY = Skill(id="s-py", name="Python", category="technology")
UX = Skill(id="s-ux", name="UI/UX Design", category="design")


def _person(pid: str, rating: float = 4.0, location: str | None = None, skills=None, slots=None) -> Person:
    return Person(
        id=pid,
        display_name=pid.title(),
        is_verified=True,
        rating=rating,
        location=location,
        last_active_at=NOW - timedelta(days=1),
        skills=skills or [],
        availability=slots or [],
    )


def _community() -> InMemoryMatchStore:
    teacher = _person(
        "teacher",
        rating=4.7,
        location="Copenhagen",
        skills=[
            SkillDeclaration(skill=JS, proficiency=90, can_teach=True),
            SkillDeclaration(skill=PY, proficiency=30, wants_to_learn=True),
        ],
        slots=[AvailabilitySlot(day_of_week=1, start_time="09:00", end_time="17:00")],
    )
    learner = _person(
        "learner",
        rating=4.2,
        location="Copenhagen",
        skills=[
            SkillDeclaration(skill=JS, proficiency=20, wants_to_learn=True),
            SkillDeclaration(skill=UX, proficiency=80, can_teach=True),
        ],
        slots=[AvailabilitySlot(day_of_week=1, start_time="10:00", end_time="18:00")],
    )
    stranger = _person("stranger", rating=2.0, location="Berlin")
    return InMemoryMatchStore([teacher, learner, stranger])


def _service(store, **kwargs) -> MatchingService:
    return MatchingService(store, clock=lambda: NOW, **kwargs)


class TestSuggestions:
    def test_best_match_first(self):
        matches = _service(_community()).suggest_matches("learner")
        assert [m.candidate_id for m in matches] == ["teacher", "stranger"]
        best = matches[0]
        assert best.breakdown.skill_complementarity > 0.5
        assert best.breakdown.availability_overlap == pytest.approx(420 / 480)
        assert "excellent skill exchange potential" in best.explanation

    def test_requester_never_in_results(self):
        matches = _service(_community()).suggest_matches("teacher")
        assert "teacher" not in [m.candidate_id for m in matches]

    def test_blocked_never_in_results(self):
        store = _community()
        service = _service(store)
        service.record_decision("learner", "teacher", "BLOCK")
        assert [m.candidate_id for m in service.suggest_matches("learner")] == ["stranger"]

    def test_filters_narrow_results(self):
        matches = _service(_community()).suggest_matches("learner", CandidateFilters(location="copenhagen"))
        assert [m.candidate_id for m in matches] == ["teacher"]

    def test_limit(self):
        assert len(_service(_community()).suggest_matches("learner", limit=1)) == 1

    def test_unknown_requester(self):
        with pytest.raises(NotFoundError):
            _service(_community()).suggest_matches("ghost")

    def test_views_recorded_when_enabled(self):
        store = _community()
        _service(store, record_views=True).suggest_matches("learner")
        assert store.get_interaction("learner", "teacher").type == InteractionType.VIEW

    def test_views_not_recorded_by_default(self):
        store = _community()
        _service(store).suggest_matches("learner")
        assert store.interactions == {}


class TestDecisions:
    def test_favorite_snapshots_score(self):
        store = _community()
        row = _service(store).record_decision("learner", "teacher", "favorite")
        assert row.type == InteractionType.FAVORITE
        assert row.score is not None and 0.0 <= row.score <= 1.0
        assert row.explanation.startswith(f"{int(round(row.score * 100))}% match because: ")

    def test_pass_has_no_snapshot(self):
        row = _service(_community()).record_decision("learner", "teacher", InteractionType.PASS)
        assert row.score is None
        assert row.explanation is None

    def test_self_decision_rejected(self):
        with pytest.raises(InvalidDecisionError):
            _service(_community()).record_decision("learner", "learner", "FAVORITE")

    def test_unknown_and_view_rejected(self):
        service = _service(_community())
        with pytest.raises(InvalidDecisionError):
            service.record_decision("learner", "teacher", "superlike")
        with pytest.raises(InvalidDecisionError):
            service.record_decision("learner", "teacher", "VIEW")

    def test_unknown_target(self):
        with pytest.raises(NotFoundError):
            _service(_community()).record_decision("learner", "ghost", "PASS")

    def test_unblock_restores_candidate(self):
        service = _service(_community())
        service.record_decision("learner", "teacher", "BLOCK")
        assert service.unblock("learner", "teacher") is True
        assert "teacher" in [m.candidate_id for m in service.suggest_matches("learner")]


class TestFavorites:
    def test_rescored_newest_first(self):
        store = _community()
        current = [NOW - timedelta(hours=2)]
        service = MatchingService(store, clock=lambda: current[0])
        service.record_decision("learner", "stranger", "FAVORITE")
        current[0] = NOW - timedelta(hours=1)
        service.record_decision("learner", "teacher", "FAVORITE")

        favorites = service.list_favorites("learner")
        assert [m.candidate_id for m in favorites] == ["teacher", "stranger"]

    def test_reflects_current_profile(self):
        store = _community()
        service = _service(store)
        service.record_decision("learner", "stranger", "FAVORITE")
        before = service.list_favorites("learner")[0].score
        store.people["stranger"].rating = 5.0
        after = service.list_favorites("learner")[0].score
        assert after > before

    def test_missing_target_skipped(self):
        store = _community()
        service = _service(store)
        service.record_decision("learner", "stranger", "FAVORITE")
        del store.people["stranger"]
        assert service.list_favorites("learner") == []

    def test_passed_not_listed(self):
        service = _service(_community())
        service.record_decision("learner", "teacher", "PASS")
        assert service.list_favorites("learner") == []
