"""pagetrail - Event-sourced state engine for visual page editors.

Every edit is an immutable event; the page is whatever the events fold into.
That gives undo/redo, time travel by version or timestamp, and checkpoints
for free.

Usage:
    from pagetrail import EventFactory, EventStore

    store = EventStore()
    factory = EventFactory(user_id="alice")

    store.add_event(factory.component_created(
        "form-1", "Form", {"x": 0, "y": 0}, {"width": 400, "height": 300}
    ))
    store.add_event(factory.component_created(
        "btn-1", "Button", {"x": 20, "y": 20}, {"width": 100, "height": 36},
        initial_props={"text": "Submit"}, parent_id="form-1",
    ))
    store.undo()
    store.redo()

CLI:
    pagetrail replay project.json          # Rebuild the page
    pagetrail replay --to-version 3 project.json
    pagetrail tree project.json            # Component tree
    pagetrail history project.json         # Undo/redo timeline
    pagetrail stats project.json           # Log statistics
"""

__version__ = "1.0.0"

from .core.config import StoreConfig
from .core.events import Event, EventType
from .core.factory import EventFactory, VersionClock
from .core.reducer import apply_event, replay
from .core.snapshots import Snapshot, SnapshotManager
from .core.state import ComponentNode, PageState
from .core.store import EventStore

__all__ = [
    "ComponentNode",
    "Event",
    "EventFactory",
    "EventStore",
    "EventType",
    "PageState",
    "Snapshot",
    "SnapshotManager",
    "StoreConfig",
    "VersionClock",
    "__version__",
    "apply_event",
    "replay",
]
