"""pagetrail core - event-sourced state engine for a page editor."""

from .config import StoreConfig
from .events import (
    ComponentCreated,
    ComponentDeleted,
    ComponentMoved,
    ComponentUpdated,
    ComponentUpdates,
    Event,
    EventDecodeError,
    EventMetadata,
    EventType,
    PropertyChanged,
    StyleUpdated,
)
from .factory import EventFactory, VersionClock
from .history import HistoryLog, HistoryState, describe_event
from .listeners import ListenerSet
from .reducer import apply_event, initial_state, replay
from .schema import (
    CURRENT_VERSION,
    MIN_SUPPORTED_VERSION,
    VERSION_HISTORY,
    SchemaVersionError,
    get_version_info,
    validate_version,
)
from .snapshots import MAX_SNAPSHOTS, SNAPSHOT_INTERVAL, Snapshot, SnapshotManager
from .state import (
    ComponentNode,
    GlobalStyles,
    LayoutConfig,
    PageMetadata,
    PageState,
    Position,
    Size,
)
from .store import EventStore

__all__ = [
    "CURRENT_VERSION",
    "ComponentCreated",
    "ComponentDeleted",
    "ComponentMoved",
    "ComponentNode",
    "ComponentUpdated",
    "ComponentUpdates",
    "Event",
    "EventDecodeError",
    "EventFactory",
    "EventMetadata",
    "EventStore",
    "EventType",
    "GlobalStyles",
    "HistoryLog",
    "HistoryState",
    "LayoutConfig",
    "ListenerSet",
    "MAX_SNAPSHOTS",
    "MIN_SUPPORTED_VERSION",
    "PageMetadata",
    "PageState",
    "Position",
    "PropertyChanged",
    "SNAPSHOT_INTERVAL",
    "SchemaVersionError",
    "Size",
    "Snapshot",
    "SnapshotManager",
    "StoreConfig",
    "StyleUpdated",
    "VERSION_HISTORY",
    "VersionClock",
    "apply_event",
    "describe_event",
    "get_version_info",
    "initial_state",
    "replay",
    "validate_version",
]
