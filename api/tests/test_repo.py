from datetime import datetime, timezone

import pytest

from skillmatch.domain import InteractionType
from skillmatch.errors import TransientLookupError
from skillmatch.repo import SqlMatchStore
from skillmatch.services.batch import EXPIRING_TYPES
from skillmatch.services.candidates import CandidateFilters

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class _Result:
    def __init__(self, rows=None, rowcount=0):
        self._rows = rows or []
        self.rowcount = rowcount

    def mappings(self):
        return self

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)


class FakeSession:
    def __init__(self, results=None):
        self.calls = []
        self.commits = 0
        self._results = list(results or [])

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, stmt, params=None):
        self.calls.append((str(stmt), params or {}))
        return self._results.pop(0) if self._results else _Result()

    def commit(self):
        self.commits += 1


def _store(session):
    return SqlMatchStore(session_factory=lambda: session)


def test_blocked_targets():
    session = FakeSession([_Result([{"target_user_id": "b"}, {"target_user_id": "c"}])])
    assert _store(session).get_blocked_targets("a") == {"b", "c"}
    sql, params = session.calls[0]
    assert "type = 'BLOCK'" in sql
    assert params == {"user_id": "a"}


def test_upsert_is_keyed_on_pair():
    row = {
        "user_id": "a",
        "target_user_id": "b",
        "type": "FAVORITE",
        "match_score": 0.81,
        "explanation": "81% match because: 1 shared skill",
        "created_at": NOW,
        "decided_at": NOW,
    }
    session = FakeSession([_Result([row])])
    out = _store(session).upsert_interaction("a", "b", InteractionType.FAVORITE, score=0.81, explanation=row["explanation"], now=NOW)
    sql, params = session.calls[0]
    assert "ON CONFLICT (user_id, target_user_id)" in sql
    assert "DO UPDATE SET" in sql
    assert params["type"] == "FAVORITE"
    assert session.commits == 1
    assert out.type == InteractionType.FAVORITE
    assert out.score == 0.81


def test_view_insert_does_nothing_on_conflict():
    session = FakeSession([_Result(rowcount=0)])
    assert _store(session).insert_interaction_if_absent("a", "b", InteractionType.VIEW, score=0.4, now=NOW) is False
    assert "DO NOTHING" in session.calls[0][0]


def test_unblock_filters_on_type():
    session = FakeSession([_Result(rowcount=1)])
    assert _store(session).delete_interaction("a", "b", only_type=InteractionType.BLOCK) is True
    assert session.calls[0][1]["only_type"] == "BLOCK"


def test_cleanup_deletes_expiring_types():
    session = FakeSession([_Result(rowcount=7)])
    assert _store(session).delete_interactions_before(NOW, EXPIRING_TYPES) == 7
    sql, params = session.calls[0]
    assert "decided_at < :cutoff" in sql
    assert params["types"] == ["PASS", "VIEW"]


def test_candidate_query_applies_filters_and_exclusions():
    session = FakeSession()
    filters = CandidateFilters(
        skill_categories=("music",),
        location="50%_off",
        min_rating=4.0,
        availability_days=(2,),
        availability_times=("9:30",),
    )
    assert _store(session).query_candidates(filters, exclude_ids={"me", "blocked"}, limit=100) == []
    sql, params = session.calls[0]
    assert "ua.is_verified = TRUE" in sql
    assert "ua.id NOT IN" in sql
    assert "ILIKE" in sql
    assert params["location"] == "%50\\%\\_off%"
    assert params["min_rating"] == 4.0
    assert params["categories"] == ["music"]
    assert params["exclude_ids"] == ["blocked", "me"]
    assert params["t0"] == "09:30"
    assert params["limit"] == 100


def test_person_is_assembled_from_rows():
    person_row = {
        "id": "u1",
        "display_name": "Ana",
        "is_verified": True,
        "rating": 4.5,
        "total_sessions": 12,
        "location": "Aarhus",
        "last_active_at": NOW,
        "match_suggestions": True,
    }
    skill_row = {
        "user_id": "u1",
        "skill_id": "s1",
        "name": "Guitar",
        "category": "Music",
        "proficiency_level": 70,
        "can_teach": True,
        "wants_to_learn": False,
        "is_verified": False,
    }
    slot_row = {
        "user_id": "u1",
        "day_of_week": 2,
        "start_time": "18:00",
        "end_time": "20:00",
        "timezone": "Europe/Copenhagen",
        "is_active": True,
    }
    session = FakeSession([_Result([person_row]), _Result([skill_row]), _Result([slot_row])])
    person = _store(session).get_person("u1")
    assert person.rating == 4.5
    assert person.skills[0].skill.category == "music"
    assert person.skills[0].can_teach
    assert person.availability[0].duration_minutes == 120


def test_eligible_ids_respect_opt_out():
    session = FakeSession([_Result([{"id": "u1"}, {"id": "u2"}])])
    assert _store(session).list_batch_eligible_ids(NOW) == ["u1", "u2"]
    assert "COALESCE(pref.match_suggestions, TRUE)" in session.calls[0][0]


def _person_row(pid: str) -> dict:
    return {
        "id": pid,
        "display_name": pid.title(),
        "is_verified": True,
        "rating": 4.0,
        "total_sessions": 3,
        "location": None,
        "last_active_at": NOW,
        "match_suggestions": True,
    }


def _slot_row(pid: str, day: int, start: str, end: str) -> dict:
    return {
        "user_id": pid,
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
        "timezone": "UTC",
        "is_active": True,
    }


def test_candidate_with_inverted_slot_is_dropped():
    session = FakeSession(
        [
            _Result([_person_row("good"), _person_row("bad")]),
            _Result([]),
            _Result([_slot_row("good", 0, "09:00", "17:00"), _slot_row("bad", 0, "17:00", "09:00")]),
        ]
    )
    people = _store(session).query_candidates(CandidateFilters(), {"me"}, 100)
    assert [p.id for p in people] == ["good"]
    assert people[0].availability[0].duration_minutes == 480


def test_candidate_with_invalid_skill_row_is_dropped():
    bad_skill = {
        "user_id": "bad",
        "skill_id": "s1",
        "name": "Guitar",
        "category": "music",
        "proficiency_level": 250,
        "can_teach": True,
        "wants_to_learn": False,
        "is_verified": False,
    }
    session = FakeSession([_Result([_person_row("good"), _person_row("bad")]), _Result([bad_skill]), _Result([])])
    people = _store(session).query_candidates(CandidateFilters(), set(), 100)
    assert [p.id for p in people] == ["good"]


def test_get_person_with_invalid_slot_is_transient():
    session = FakeSession([_Result([_person_row("bad")]), _Result([]), _Result([_slot_row("bad", 0, "17:00", "09:00")])])
    with pytest.raises(TransientLookupError):
        _store(session).get_person("bad")


def test_time_filter_compares_as_time_values():
    session = FakeSession()
    _store(session).query_candidates(CandidateFilters(availability_times=("9:00", "18:30")), set(), 10)
    sql, params = session.calls[0]
    assert "CAST(av.start_time AS time) <= CAST(:t0 AS time)" in sql
    assert "CAST(av.end_time AS time) > CAST(:t1 AS time)" in sql
    assert params["t0"] == "09:00"
    assert params["t1"] == "18:30"


def test_match_statistics_from_aggregates():
    totals = {"total": 8, "favorites": 2, "passes": 5, "blocks": 1, "average_score": 0.6666}
    categories = [{"category": "technology", "n": 7}, {"category": "music", "n": 2}]
    session = FakeSession([_Result([totals]), _Result(categories)])
    stats = _store(session).get_match_statistics(NOW)
    first_sql, first_params = session.calls[0]
    assert "COUNT(*) FILTER (WHERE type = 'FAVORITE')" in first_sql
    assert "created_at >= :since" in first_sql
    assert first_params == {"since": NOW}
    assert "LIMIT 10" in session.calls[1][0]
    assert stats.to_dict() == {
        "total_interactions": 8,
        "favorite_rate": 25.0,
        "pass_rate": 62.5,
        "block_rate": 12.5,
        "average_match_score": 0.67,
        "top_skill_categories": [{"category": "technology", "count": 7}, {"category": "music", "count": 2}],
    }


def test_match_statistics_with_no_interactions():
    totals = {"total": 0, "favorites": 0, "passes": 0, "blocks": 0, "average_score": None}
    session = FakeSession([_Result([totals]), _Result([])])
    stats = _store(session).get_match_statistics(NOW)
    assert stats.favorite_rate == 0.0
    assert stats.average_match_score == 0.0
    assert stats.top_skill_categories == []
