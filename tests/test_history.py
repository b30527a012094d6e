"""Tests for the history log (pagetrail/core/history.py)."""

from datetime import datetime, timedelta
from typing import List

import pytest

from pagetrail.core.events import Event, EventMetadata, EventType, StyleUpdated
from pagetrail.core.factory import EventFactory
from pagetrail.core.history import HistoryLog, HistoryState, describe_event


def _styles(factory: EventFactory, count: int) -> List[Event]:
    return [factory.style_updated("c", "color", f"#{i:06x}") for i in range(count)]


def _ids(events: List[Event]) -> List[str]:
    return [e.id for e in events]


class TestAppend:

    def test_empty_log(self):
        log = HistoryLog()
        assert len(log) == 0
        assert log.cursor == -1
        assert not log.can_undo
        assert not log.can_redo
        assert log.current_events() == []

    def test_append_moves_cursor(self, factory: EventFactory):
        log = HistoryLog()
        events = _styles(factory, 3)
        for event in events:
            assert log.append(event) == 0
        assert log.cursor == 2
        assert _ids(log.current_events()) == _ids(events)

    def test_append_after_undo_truncates_branch(self, factory: EventFactory):
        log = HistoryLog()
        e1, e2, e3, e4 = _styles(factory, 4)
        for event in (e1, e2, e3):
            log.append(event)
        log.undo()
        log.undo()

        log.append(e4)

        assert _ids(log.all_events()) == [e1.id, e4.id]
        assert log.cursor == 1
        assert not log.can_redo

    def test_append_after_undo_to_empty(self, factory: EventFactory):
        log = HistoryLog()
        e1, e2 = _styles(factory, 2)
        log.append(e1)
        log.undo()
        log.append(e2)
        assert _ids(log.all_events()) == [e2.id]
        assert log.cursor == 0

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            HistoryLog(max_size=0)


class TestRestore:

    def test_restore_reinstates_events_and_cursor(self, factory: EventFactory):
        log = HistoryLog()
        events = _styles(factory, 3)
        for event in events:
            log.append(event)
        saved, cursor = log.all_events(), log.cursor

        log.undo()
        log.append(factory.style_updated("c", "color", "red"))
        log.restore(saved, cursor)

        assert _ids(log.all_events()) == _ids(events)
        assert log.cursor == 2

    def test_restore_rejects_out_of_range_cursor(self, factory: EventFactory):
        with pytest.raises(ValueError):
            HistoryLog().restore(_styles(factory, 1), 1)


class TestEviction:

    def test_cap_evicts_oldest(self, factory: EventFactory):
        log = HistoryLog(max_size=3)
        events = _styles(factory, 4)
        evicted = [log.append(e) for e in events]

        assert evicted == [0, 0, 0, 1]
        assert len(log) == 3
        assert _ids(log.all_events()) == _ids(events[1:])
        assert log.cursor == 2

    def test_length_never_exceeds_cap(self, factory: EventFactory):
        log = HistoryLog(max_size=5)
        for event in _styles(factory, 20):
            log.append(event)
            assert len(log) <= 5
        assert log.max_size == 5

    def test_cap_of_one(self, factory: EventFactory):
        log = HistoryLog(max_size=1)
        e1, e2 = _styles(factory, 2)
        log.append(e1)
        log.append(e2)
        assert _ids(log.all_events()) == [e2.id]
        assert log.cursor == 0


class TestUndoRedo:

    def test_undo_and_redo(self, factory: EventFactory):
        log = HistoryLog()
        events = _styles(factory, 3)
        for event in events:
            log.append(event)

        assert _ids(log.undo()) == _ids(events[:2])
        assert _ids(log.undo()) == _ids(events[:1])
        assert log.undo() == []
        assert log.cursor == -1
        assert log.undo() is None

        assert _ids(log.redo()) == _ids(events[:1])
        assert log.redo() is not None
        assert log.redo() is not None
        assert log.redo() is None
        assert log.cursor == 2

    def test_undo_on_empty_log(self):
        log = HistoryLog()
        assert log.undo() is None
        assert log.redo() is None


class TestJumps:

    def test_jump_to_version(self, factory: EventFactory):
        log = HistoryLog()
        events = _styles(factory, 5)
        for event in events:
            log.append(event)

        result = log.jump_to_version(2)
        assert _ids(result) == _ids(events[:2])
        assert log.cursor == 1
        assert log.can_redo

    def test_jump_to_missing_version(self, factory: EventFactory):
        log = HistoryLog()
        for event in _styles(factory, 3):
            log.append(event)
        assert log.jump_to_version(42) is None
        assert log.cursor == 2

    def test_jump_to_version_skips_events_without_metadata(self, base_timestamp: datetime):
        log = HistoryLog()
        log.append(Event(
            id="bare", type=EventType.STYLE_UPDATED, timestamp=base_timestamp,
            user_id="u", session_id="s", payload=StyleUpdated("c", "color", "red"),
        ))
        assert log.jump_to_version(0) is None

    def test_jump_to_timestamp(self, factory: EventFactory, base_timestamp: datetime):
        log = HistoryLog()
        events = _styles(factory, 5)  # base, +100ms, ... +400ms
        for event in events:
            log.append(event)

        result = log.jump_to_timestamp(base_timestamp + timedelta(milliseconds=250))
        assert _ids(result) == _ids(events[:3])

        exact = log.jump_to_timestamp(base_timestamp + timedelta(milliseconds=400))
        assert _ids(exact) == _ids(events)

    def test_jump_to_timestamp_before_first(self, factory: EventFactory, base_timestamp: datetime):
        log = HistoryLog()
        for event in _styles(factory, 2):
            log.append(event)
        assert log.jump_to_timestamp(base_timestamp - timedelta(seconds=1)) is None
        assert log.cursor == 1


class TestHistoryState:

    def test_empty(self):
        state = HistoryLog().history_state()
        assert state == HistoryState(False, False, 0, 0, None, None)

    def test_descriptions(self, factory: EventFactory):
        log = HistoryLog()
        log.append(factory.component_created("b", "Button", {"x": 0, "y": 0}, {"width": 1, "height": 1}))
        log.append(factory.style_updated("b", "color", "red"))
        log.undo()

        state = log.history_state()
        assert state.can_undo
        assert state.can_redo
        assert state.current_version == 1
        assert state.total_events == 2
        assert state.undo_description == "Create Button component"
        assert state.redo_description == "Update style: color"

    def test_to_dict_keys(self):
        d = HistoryLog().history_state().to_dict()
        assert set(d) == {
            "canUndo", "canRedo", "currentVersion", "totalEvents",
            "undoDescription", "redoDescription",
        }


class TestDescribeEvent:

    @pytest.mark.parametrize("make,expected", [
        (lambda f: f.component_updated("c", props={"a": 1}), "Update component"),
        (lambda f: f.component_deleted("c"), "Delete component"),
        (lambda f: f.component_moved("c", {"x": 1, "y": 1}), "Move component"),
        (lambda f: f.property_changed("c", "props.text", "x"), "Change property: props.text"),
        (lambda f: f.style_updated("c", "margin", "0"), "Update style: margin"),
    ])
    def test_labels(self, factory: EventFactory, make, expected):
        assert describe_event(make(factory)) == expected

    def test_unknown_type_uses_metadata_description(self, base_timestamp: datetime):
        event = Event(
            id="e", type="CUSTOM", timestamp=base_timestamp, user_id="u", session_id="s",
            payload={}, metadata=EventMetadata(version=1, description="Custom thing"),
        )
        assert describe_event(event) == "Custom thing"

    def test_unknown_type_without_description(self, base_timestamp: datetime):
        event = Event(
            id="e", type="CUSTOM", timestamp=base_timestamp, user_id="u", session_id="s",
            payload={},
        )
        assert describe_event(event) == "Unknown operation"


class TestStatistics:

    def test_empty(self):
        stats = HistoryLog().statistics()
        assert stats["totalEvents"] == 0
        assert stats["currentPosition"] == 0
        assert stats["eventsByType"] == {}
        assert stats["timeSpan"] is None
        assert stats["estimatedSize"] == 0

    def test_counts(self, page_events: List[Event], base_timestamp: datetime):
        log = HistoryLog()
        for event in page_events:
            log.append(event)
        log.undo()

        stats = log.statistics()
        assert stats["totalEvents"] == 6
        assert stats["currentPosition"] == 5
        assert stats["eventsByType"] == {
            "COMPONENT_CREATED": 4,
            "STYLE_UPDATED": 1,
            "PROPERTY_CHANGED": 1,
        }
        assert stats["eventsByUser"] == {"tester": 6}
        assert stats["estimatedSize"] > 0
        assert stats["timeSpan"]["start"] == base_timestamp
        assert stats["timeSpan"]["end"] == base_timestamp + timedelta(milliseconds=500)
