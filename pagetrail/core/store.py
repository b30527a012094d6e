"""EventStore - orchestrates the history log, snapshots and reducer.

Usage:
    store = EventStore()
    factory = EventFactory(user_id="alice")

    store.subscribe(lambda state: render(state))
    store.add_event(factory.component_created("btn-1", "Button", {"x": 0, "y": 0}, {"width": 100, "height": 36}))
    store.undo()
    store.redo()

    data = store.export_data()
    EventStore().import_data(data)
"""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from .config import StoreConfig
from .events import Event, EventDecodeError, ensure_utc
from .history import HistoryLog, HistoryState
from .listeners import ListenerSet
from .reducer import initial_state, replay
from .schema import CURRENT_VERSION, SchemaVersionError, validate_version
from .snapshots import Snapshot, SnapshotManager
from .state import PageState

logger = logging.getLogger(__name__)

StateListener = Callable[[PageState], None]
HistoryListener = Callable[[HistoryState], None]


class EventStore:
    """Authoritative page state rebuilt from an event history.

    The published state is never mutated after it is handed out; every change
    produces a new state value, so references to older states stay valid.
    All operations are synchronous and expect a single writer.
    Auto snapshots fire on every ``snapshot_interval`` events added since the
    last clear or import, counting appends rather than retained events.
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        self.config = config or StoreConfig()
        self._history = HistoryLog(max_size=self.config.max_history_size)
        self._snapshot_manager = SnapshotManager(
            interval=self.config.snapshot_interval,
            max_snapshots=self.config.max_snapshots,
        )
        self._snapshots: List[Snapshot] = []
        self._appended = 0
        self._state: PageState = initial_state()
        self._state_listeners: ListenerSet = ListenerSet("state")
        self._history_listeners: ListenerSet = ListenerSet("history")

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Detach all subscribers. The store stays usable."""
        self._state_listeners.clear()
        self._history_listeners.clear()

    @property
    def snapshot_manager(self) -> SnapshotManager:
        return self._snapshot_manager

    # -- mutations -------------------------------------------------------

    def add_event(self, event: Union[Event, Dict[str, Any]]) -> Optional[PageState]:
        """Record an event, rebuild state and notify subscribers.

        Accepts an Event or its dictionary form. Naive timestamps are read as
        UTC. If the rebuild fails the log, snapshots and state are left as
        they were before the call.

        Returns:
            The new state, or None if the event was rejected.
        """
        if not isinstance(event, Event):
            try:
                event = Event.from_dict(event)
            except EventDecodeError as e:
                logger.warning("Rejected event: %s", e)
                return None
        if not isinstance(event.timestamp, datetime):
            logger.warning("Rejected event %s: timestamp is %s, not datetime",
                           event.id, type(event.timestamp).__name__)
            return None
        if event.timestamp.tzinfo is None:
            event = dataclasses.replace(event, timestamp=ensure_utc(event.timestamp))

        saved_events = self._history.all_events()
        saved_cursor = self._history.cursor
        saved_snapshots = list(self._snapshots)
        saved_appended = self._appended
        try:
            self._history.append(event)
            self._appended += 1
            self._drop_orphaned_snapshots()
            self._rebuild(self._history.current_events())
        except (TypeError, ValueError) as e:
            self._history.restore(saved_events, saved_cursor)
            self._snapshots = saved_snapshots
            self._appended = saved_appended
            logger.warning("Rejected event %s, rolled back: %s", event.id, e)
            return None

        # Counts appends rather than retained events, so a full log does not
        # snapshot on every event once eviction starts.
        if self.config.auto_snapshot and self._snapshot_manager.should_snapshot(self._appended):
            self.create_snapshot(f"Auto snapshot at {self._appended} events")

        self._notify()
        return self._state

    def undo(self) -> Optional[PageState]:
        return self._move(self._history.undo())

    def redo(self) -> Optional[PageState]:
        return self._move(self._history.redo())

    def jump_to_version(self, version: int) -> Optional[PageState]:
        return self._move(self._history.jump_to_version(version))

    def jump_to_timestamp(self, timestamp: datetime) -> Optional[PageState]:
        try:
            events = self._history.jump_to_timestamp(timestamp)
        except TypeError as e:
            # naive vs aware datetimes
            logger.warning("Cannot compare timestamp %r with history: %s", timestamp, e)
            return None
        return self._move(events)

    def create_snapshot(self, description: Optional[str] = None) -> Snapshot:
        """Checkpoint the current state at the cursor position."""
        current = self._history.current_events()
        snapshot = self._snapshot_manager.create(
            self._state,
            len(current),
            description,
            event_id=current[-1].id if current else None,
        )
        self._snapshots.append(snapshot)
        self._snapshots = self._snapshot_manager.prune(self._snapshots)
        return snapshot

    def restore_from_snapshot(self, snapshot_id: str) -> Optional[PageState]:
        """Move the cursor to the point a snapshot was taken.

        The snapshot only locates the target; state is rebuilt from the log.
        """
        snapshot = next((s for s in self._snapshots if s.id == snapshot_id), None)
        if snapshot is None:
            return None
        return self.jump_to_version(self._snapshot_event_version(snapshot))

    jump_to_snapshot = restore_from_snapshot

    def clear(self) -> None:
        """Reset history, snapshots and state, then notify."""
        self._reset()
        self._notify()

    # -- queries ---------------------------------------------------------

    def get_current_state(self) -> PageState:
        return self._state

    def get_history_state(self) -> HistoryState:
        return self._history.history_state()

    def get_all_events(self) -> List[Event]:
        return self._history.all_events()

    def get_current_events(self) -> List[Event]:
        return self._history.current_events()

    def get_all_snapshots(self) -> List[Snapshot]:
        return list(self._snapshots)

    def get_statistics(self) -> Dict[str, Any]:
        stats = self._history.statistics()
        stats["totalSnapshots"] = len(self._snapshots)
        stats["totalSnapshotSize"] = sum(
            self._snapshot_manager.estimate_size(s) for s in self._snapshots
        )
        stats["currentStateComponents"] = self._state.component_count
        return stats

    # -- subscriptions ---------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], bool]:
        """Subscribe to state changes. Returns an unsubscribe callable."""
        return self._state_listeners.add(listener)

    def subscribe_history(self, listener: HistoryListener) -> Callable[[], bool]:
        """Subscribe to history changes. Returns an unsubscribe callable."""
        return self._history_listeners.add(listener)

    # -- import / export -------------------------------------------------

    def export_data(self) -> Dict[str, Any]:
        """Export everything needed to restore this store."""
        return {
            "events": [e.to_dict() for e in self._history.all_events()],
            "snapshots": [s.to_dict() for s in self._snapshots],
            "currentState": self._state.to_dict(),
            "metadata": {
                "exportTime": datetime.now(timezone.utc).isoformat(),
                "version": CURRENT_VERSION,
            },
        }

    def import_data(self, data: Any) -> bool:
        """Replace the store contents with an exported document.

        The store is cleared first. Events and snapshots are decoded into a
        staging area and committed only if every event decodes, so a failed
        import leaves the store empty rather than partially populated.
        Invalid snapshots are dropped without failing the import.

        Returns:
            True if the data was imported.
        """
        self._reset()
        try:
            events, snapshots = self._decode_import(data)
        except (EventDecodeError, SchemaVersionError, ValueError, TypeError) as e:
            logger.error("Failed to import data: %s", e)
            self._notify()
            return False

        try:
            for event in events:
                self._history.append(event)
            self._appended = len(self._history)
            self._snapshots = self._snapshot_manager.prune(snapshots)
            self._rebuild(self._history.current_events(), use_snapshots=False)
        except (TypeError, ValueError) as e:
            logger.error("Failed to import data: %s", e)
            self._reset()
            self._notify()
            return False
        self._notify()
        return True

    # -- internals -------------------------------------------------------

    def _decode_import(self, data: Any):
        if not isinstance(data, dict):
            raise ValueError(f"Expected dict, got {type(data).__name__}")
        validate_version(data)

        raw_events = data.get("events") or []
        if not isinstance(raw_events, list):
            raise ValueError("events must be a list")
        events = [Event.from_dict(e) for e in raw_events]

        raw_snapshots = data.get("snapshots") or []
        if not isinstance(raw_snapshots, list):
            raise ValueError("snapshots must be a list")
        snapshots = []
        for raw in raw_snapshots:
            if not self._snapshot_manager.validate(raw):
                logger.warning("Dropping invalid snapshot: %r", raw.get("id") if isinstance(raw, dict) else raw)
                continue
            try:
                snapshots.append(Snapshot.from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping undecodable snapshot %r: %s", raw.get("id"), e)
        return events, snapshots

    def _reset(self) -> None:
        self._history.clear()
        self._snapshots = []
        self._appended = 0
        self._state = initial_state()

    def _move(self, events: Optional[List[Event]]) -> Optional[PageState]:
        if events is None:
            return None
        self._rebuild(events)
        self._notify()
        return self._state

    def _rebuild(self, events: List[Event], use_snapshots: bool = True) -> None:
        snapshot = self._best_snapshot(events) if use_snapshots else None
        if snapshot is not None:
            self._state = replay(events[snapshot.version:], snapshot.state)
        else:
            self._state = replay(events)

    def _best_snapshot(self, events: List[Event]) -> Optional[Snapshot]:
        anchored = [s for s in self._snapshots if _is_anchored(s, events)]
        return self._snapshot_manager.select_best(anchored, len(events))

    def _drop_orphaned_snapshots(self) -> None:
        # Branch truncation and eviction change what sits at each log position.
        events = self._history.all_events()
        self._snapshots = [s for s in self._snapshots if _is_anchored(s, events)]

    def _snapshot_event_version(self, snapshot: Snapshot) -> int:
        for event in self._history.all_events():
            if event.id == snapshot.event_id and event.metadata is not None:
                return event.metadata.version
        return snapshot.version

    def _notify(self) -> None:
        self._state_listeners.emit(self._state)
        self._history_listeners.emit(self._history.history_state())


def _is_anchored(snapshot: Snapshot, events: List[Event]) -> bool:
    """True if ``snapshot`` was taken from the same prefix of ``events``."""
    if snapshot.version > len(events):
        return False
    if snapshot.version == 0:
        return True
    return events[snapshot.version - 1].id == snapshot.event_id
