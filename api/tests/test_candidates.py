import pytest

from skillmatch.domain import AvailabilitySlot, InteractionType, Person, Skill, SkillDeclaration
from skillmatch.services.candidates import CandidateFilters, person_matches_filters, select_candidate_pool
from skillmatch.stores import InMemoryMatchStore

JS = Skill(id="s-js", name="JavaScript", category="technology")
GUITAR = Skill(id="s-guitar", name="Guitar", category="music")


def _person(pid: str, verified: bool = True, rating: float = 4.0, location: str | None = None, skills=None, slots=None):
    return Person(
        id=pid,
        display_name=pid,
        is_verified=verified,
        rating=rating,
        location=location,
        skills=skills or [],
        availability=slots or [],
    )


class TestFilters:
    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            CandidateFilters(skill_categories=("astrology",))

    def test_bad_day_rejected(self):
        with pytest.raises(ValueError):
            CandidateFilters(availability_days=(9,))

    def test_bad_time_rejected(self):
        with pytest.raises(ValueError):
            CandidateFilters(availability_times=("25:99",))

    def test_empty_filters(self):
        assert CandidateFilters().is_empty()
        assert CandidateFilters(location="  ").is_empty()
        assert not CandidateFilters(min_rating=3.0).is_empty()

    def test_location_substring_case_insensitive(self):
        p = _person("a", location="Copenhagen, Denmark")
        assert person_matches_filters(p, CandidateFilters(location="copenhagen"))
        assert not person_matches_filters(p, CandidateFilters(location="Berlin"))
        assert not person_matches_filters(_person("b"), CandidateFilters(location="Berlin"))

    def test_min_rating(self):
        assert person_matches_filters(_person("a", rating=4.5), CandidateFilters(min_rating=4.5))
        assert not person_matches_filters(_person("a", rating=4.4), CandidateFilters(min_rating=4.5))

    def test_category_and_proficiency_must_hold_on_one_skill(self):
        p = _person(
            "a",
            skills=[
                SkillDeclaration(skill=JS, proficiency=30),
                SkillDeclaration(skill=GUITAR, proficiency=80),
            ],
        )
        assert person_matches_filters(p, CandidateFilters(skill_categories=("music",), proficiency_levels=(80,)))
        assert not person_matches_filters(p, CandidateFilters(skill_categories=("technology",), proficiency_levels=(80,)))

    def test_day_and_time_on_active_slot(self):
        p = _person(
            "a",
            slots=[
                AvailabilitySlot(day_of_week=2, start_time="18:00", end_time="20:00"),
                AvailabilitySlot(day_of_week=5, start_time="09:00", end_time="12:00", is_active=False),
            ],
        )
        assert person_matches_filters(p, CandidateFilters(availability_days=(2,), availability_times=("19:00",)))
        assert not person_matches_filters(p, CandidateFilters(availability_days=(2,), availability_times=("20:00",)))
        assert not person_matches_filters(p, CandidateFilters(availability_days=(5,)))


class TestCandidatePool:
    def test_excludes_self_unverified_and_blocked(self):
        store = InMemoryMatchStore(
            [_person("me"), _person("ok"), _person("unverified", verified=False), _person("blocked")]
        )
        store.upsert_interaction("me", "blocked", InteractionType.BLOCK)
        pool = select_candidate_pool(store, "me")
        assert [p.id for p in pool] == ["ok"]

    def test_pass_does_not_exclude(self):
        store = InMemoryMatchStore([_person("me"), _person("passed")])
        store.upsert_interaction("me", "passed", InteractionType.PASS)
        assert [p.id for p in select_candidate_pool(store, "me")] == ["passed"]

    def test_block_only_applies_to_blocker(self):
        store = InMemoryMatchStore([_person("a"), _person("b")])
        store.upsert_interaction("a", "b", InteractionType.BLOCK)
        assert [p.id for p in select_candidate_pool(store, "b")] == ["a"]

    def test_pool_is_capped(self):
        store = InMemoryMatchStore([_person("me")] + [_person(f"c{i:03d}") for i in range(150)])
        assert len(select_candidate_pool(store, "me")) == 100
        assert len(select_candidate_pool(store, "me", cap=5)) == 5

    def test_filters_applied(self):
        store = InMemoryMatchStore(
            [_person("me"), _person("cph", location="Copenhagen"), _person("ber", location="Berlin")]
        )
        pool = select_candidate_pool(store, "me", CandidateFilters(location="copen"))
        assert [p.id for p in pool] == ["cph"]
