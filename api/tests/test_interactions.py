from datetime import datetime, timedelta, timezone

import pytest

from skillmatch.domain import InteractionType
from skillmatch.services.interactions import InteractionRecorder, parse_interaction_type
from skillmatch.stores import InMemoryMatchStore

T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def test_parse_interaction_type():
    assert parse_interaction_type("favorite") == InteractionType.FAVORITE
    assert parse_interaction_type(" Block ") == InteractionType.BLOCK
    assert parse_interaction_type(InteractionType.PASS) == InteractionType.PASS
    with pytest.raises(ValueError):
        parse_interaction_type("superlike")


def test_new_decision_replaces_previous_one():
    store = InMemoryMatchStore()
    clock = _Clock(T0)
    recorder = InteractionRecorder(store, clock=clock)

    recorder.record("a", "b", InteractionType.FAVORITE, score=0.8, explanation="80% match because: x")
    clock.advance(hours=1)
    row = recorder.record("a", "b", InteractionType.PASS)

    assert len(store.interactions) == 1
    assert row.type == InteractionType.PASS
    assert row.score is None
    assert row.explanation is None
    assert row.created_at == T0
    assert row.decided_at == T0 + timedelta(hours=1)


def test_pairs_are_directional():
    store = InMemoryMatchStore()
    recorder = InteractionRecorder(store, clock=lambda: T0)
    recorder.record("a", "b", InteractionType.BLOCK)
    recorder.record("b", "a", InteractionType.FAVORITE)
    assert recorder.current("a", "b").type == InteractionType.BLOCK
    assert recorder.current("b", "a").type == InteractionType.FAVORITE


def test_view_never_overwrites_decision():
    store = InMemoryMatchStore()
    recorder = InteractionRecorder(store, clock=lambda: T0)
    recorder.record("a", "b", InteractionType.FAVORITE, score=0.9)
    assert recorder.record_view("a", "b", score=0.5) is False
    assert recorder.current("a", "b").type == InteractionType.FAVORITE
    assert recorder.record_view("a", "c", score=0.5) is True
    assert recorder.current("a", "c").type == InteractionType.VIEW


def test_unblock_only_removes_blocks():
    store = InMemoryMatchStore()
    recorder = InteractionRecorder(store, clock=lambda: T0)
    recorder.record("a", "b", InteractionType.BLOCK)
    recorder.record("a", "c", InteractionType.FAVORITE)

    assert recorder.unblock("a", "b") is True
    assert recorder.current("a", "b") is None
    assert recorder.unblock("a", "c") is False
    assert recorder.current("a", "c").type == InteractionType.FAVORITE
    assert recorder.unblock("a", "zzz") is False
