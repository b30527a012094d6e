"""Shared fixtures for pagetrail tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest

from pagetrail.core.events import Event
from pagetrail.core.factory import EventFactory, VersionClock
from pagetrail.core.state import PageState
from pagetrail.core.store import EventStore


@pytest.fixture
def base_timestamp() -> datetime:
    """Fixed base timestamp for reproducible tests."""
    return datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def ticking_clock(base_timestamp: datetime) -> Callable[[], datetime]:
    """Time source that advances 100ms on every call."""
    ticks = {"n": 0}

    def now() -> datetime:
        value = base_timestamp + timedelta(milliseconds=100 * ticks["n"])
        ticks["n"] += 1
        return value

    return now


@pytest.fixture
def factory(ticking_clock: Callable[[], datetime]) -> EventFactory:
    """Deterministic event factory: versions 1, 2, 3... and ticking timestamps."""
    return EventFactory(
        user_id="tester",
        session_id="session-1",
        clock=VersionClock(),
        now=ticking_clock,
    )


@pytest.fixture
def store() -> EventStore:
    """Empty store with default configuration."""
    return EventStore()


@pytest.fixture
def page_events(factory: EventFactory) -> List[Event]:
    """A small page: a form holding a button and an input, plus a lone text."""
    return [
        factory.component_created(
            "form-1", "Form", {"x": 0, "y": 0}, {"width": 400, "height": 300},
            initial_props={"title": "Sign up"},
        ),
        factory.component_created(
            "btn-1", "Button", {"x": 20, "y": 240}, {"width": 100, "height": 36},
            initial_props={"text": "Submit", "variant": "contained"},
            initial_styles={"fontSize": "14px"},
            parent_id="form-1",
        ),
        factory.component_created(
            "input-1", "Input", {"x": 20, "y": 20}, {"width": 200, "height": 40},
            initial_props={"label": "Email", "placeholder": "you@example.com"},
            parent_id="form-1",
        ),
        factory.component_created(
            "text-1", "Text", {"x": 450, "y": 10}, {"width": 120, "height": 24},
            initial_props={"content": "Welcome"},
        ),
        factory.style_updated("btn-1", "color", "primary"),
        factory.property_changed("input-1", "props.required", True, old_value=False),
    ]


@pytest.fixture
def populated_store(store: EventStore, page_events: List[Event]) -> EventStore:
    """Store holding ``page_events``."""
    for event in page_events:
        store.add_event(event)
    return store


def assert_tree_consistent(state: PageState) -> None:
    """Check parent/child links agree in both directions and contain no cycles."""
    for node in state.components.values():
        if node.parent_id is not None:
            parent = state.components.get(node.parent_id)
            assert parent is not None, f"{node.id} points at missing parent {node.parent_id}"
            assert parent.children.count(node.id) == 1
        for child_id in node.children:
            assert child_id in state.components, f"{node.id} lists missing child {child_id}"
            assert state.components[child_id].parent_id == node.id
        assert not state.is_ancestor(node.id, node.id)


def assert_same_page(actual: PageState, expected: PageState) -> None:
    """Compare two states built independently; creation time is ignored."""
    assert actual.components == expected.components
    assert actual.selected_component_id == expected.selected_component_id
    assert actual.layout == expected.layout
    assert actual.global_styles == expected.global_styles
    assert actual.metadata.version == expected.metadata.version
    assert actual.metadata.modified == expected.metadata.modified
