"""Tests for the public package surface (pagetrail/__init__.py)."""

import pagetrail
from pagetrail import core


def test_version():
    assert pagetrail.__version__ == "1.0.0"


def test_public_exports():
    for name in pagetrail.__all__:
        assert hasattr(pagetrail, name), name
    for name in core.__all__:
        assert hasattr(core, name), name


def test_quickstart_flow():
    """The usage shown in the package docstring works end to end."""
    store = pagetrail.EventStore()
    factory = pagetrail.EventFactory(user_id="alice")

    store.add_event(factory.component_created(
        "form-1", "Form", {"x": 0, "y": 0}, {"width": 400, "height": 300}
    ))
    store.add_event(factory.component_created(
        "btn-1", "Button", {"x": 20, "y": 20}, {"width": 100, "height": 36},
        initial_props={"text": "Submit"}, parent_id="form-1",
    ))
    store.undo()
    assert "btn-1" not in store.get_current_state().components
    store.redo()
    assert store.get_current_state().components["form-1"].children == ["btn-1"]
