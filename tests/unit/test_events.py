"""
Tests for the Event Log.

The log is append-only, totally ordered by created_at, and readable by
cursor without blocking writers.
"""

from itertools import islice

import pytest

from casino_ledger.core.errors import InvalidInputError
from casino_ledger.core.events import (
    BrokePayload,
    EventLog,
    EventType,
    ThoughtPayload,
    parse_payload,
)


def _thought(text):
    return ThoughtPayload(content=text)


@pytest.fixture
def log(db):
    return EventLog(db, max_page_size=3)


def _append(db, log, *texts, agent_id="a1", **kwargs):
    with db.transaction() as uow:
        ids = [log.append(uow, agent_id, EventType.THOUGHT, _thought(t), **kwargs) for t in texts]
    return ids


class TestAppend:
    def test_payload_type_must_match(self, db, log):
        with pytest.raises(TypeError):
            with db.transaction() as uow:
                log.append(uow, "a1", EventType.THOUGHT, BrokePayload(available_at="x"))

    def test_events_invisible_until_commit(self, db, log):
        with db.transaction() as uow:
            log.append(uow, "a1", EventType.THOUGHT, _thought("pending"))
            assert log.events_since() == []
        assert [e.payload["content"] for e in log.events_since()] == ["pending"]

    def test_rolled_back_events_never_appear(self, db, log):
        with pytest.raises(RuntimeError):
            with db.transaction() as uow:
                log.append(uow, "a1", EventType.THOUGHT, _thought("lost"))
                raise RuntimeError
        assert log.events_since() == []

    def test_timestamps_strictly_increase_with_frozen_clock(self, db, log):
        _append(db, log, "one", "two")
        _append(db, log, "three")
        stamps = [e.created_at for e in log.events_since()]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3

    def test_stamps_follow_the_clock(self, db, clock, log):
        _append(db, log, "first")
        clock.advance(5)
        _append(db, log, "second")
        events = log.events_since()
        assert events[1].created_at == clock.now()


class TestRead:
    """Paging and filtering."""

    def test_list_newest_first_with_cursor(self, db, clock, log):
        for text in ("e1", "e2", "e3", "e4"):
            _append(db, log, text)
            clock.advance(1)

        page = log.list_events(limit=2)
        assert [e.payload["content"] for e in page] == ["e4", "e3"]

        older = log.list_events(before=page[-1].cursor, limit=2)
        assert [e.payload["content"] for e in older] == ["e2", "e1"]
        assert log.list_events(before=older[-1].cursor) == []

    def test_events_since_oldest_first(self, db, clock, log):
        _append(db, log, "e1")
        clock.advance(1)
        _append(db, log, "e2", "e3")

        first = log.events_since()
        assert [e.payload["content"] for e in first] == ["e1", "e2", "e3"]
        assert [e.payload["content"] for e in log.events_since(first[0].cursor)] == ["e2", "e3"]

    def test_cursor_accepts_zulu_suffix(self, db, log):
        _append(db, log, "e1")
        cursor = log.events_since()[0].cursor
        assert log.events_since(cursor + "Z") == []

    def test_limit_clamped_to_max_page_size(self, db, log):
        _append(db, log, "a", "b", "c", "d", "e")
        assert len(log.list_events(limit=1000)) == 3

    def test_limit_must_be_positive(self, log):
        with pytest.raises(InvalidInputError):
            log.list_events(limit=0)

    def test_invalid_cursor(self, log):
        with pytest.raises(InvalidInputError):
            log.events_since("not-a-timestamp")

    def test_agent_and_type_filters(self, db, log):
        _append(db, log, "mine", agent_id="a1")
        _append(db, log, "theirs", agent_id="a2")
        with db.transaction() as uow:
            log.append(uow, "a1", EventType.BROKE, BrokePayload(available_at="soon"))

        assert [e.payload.get("content") for e in log.list_events(agent_id="a1", types=["thought"])] == ["mine"]
        assert {e.type for e in log.list_events(agent_id="a1")} == {"thought", "broke"}

    def test_hidden_events_excluded_by_default(self, db, log):
        _append(db, log, "visible")
        _append(db, log, "hidden", visibility="moderation_hidden")
        assert [e.payload["content"] for e in log.list_events()] == ["visible"]
        assert len(log.list_events(include_hidden=True)) == 2

    def test_count_by_type(self, db, log):
        _append(db, log, "a", "b")
        assert log.count_by_type() == {"thought": 2}

    def test_feed_dict_shape(self, db, log):
        _append(db, log, "hello")
        event = log.events_since()[0]
        out = event.to_feed_dict()
        assert out["type"] == "thought"
        assert out["ts"] == event.cursor
        assert out["payload"]["content"] == "hello"
        assert isinstance(event.typed_payload(), ThoughtPayload)


class TestStream:
    def test_stream_yields_backlog_then_stops(self, db, log):
        _append(db, log, "a", "b")
        sleeps = []
        polls = iter([False, False, True])

        events = list(log.stream(should_stop=lambda: next(polls), sleep=sleeps.append, poll_interval=0.5))

        assert [e.payload["content"] for e in events] == ["a", "b"]
        assert sleeps == [0.5]

    def test_stream_picks_up_new_events(self, db, clock, log):
        _append(db, log, "old")
        stream = log.stream(sleep=lambda _: _append(db, log, "new"))
        assert [e.payload["content"] for e in islice(stream, 2)] == ["old", "new"]

    def test_stream_from_cursor(self, db, clock, log):
        _append(db, log, "before")
        cursor = log.events_since()[0].cursor
        _append(db, log, "after")
        assert next(log.stream(since=cursor)).payload["content"] == "after"


def test_parse_payload_unknown_type_passes_through():
    assert parse_payload("custom", {"x": 1}) == {"x": 1}
