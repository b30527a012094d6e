"""History log - linear undo/redo over an append-only event sequence."""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .events import Event, EventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_SIZE = 1000


@dataclass(frozen=True)
class HistoryState:
    """Read-only view of the history cursor for UI consumers."""
    can_undo: bool
    can_redo: bool
    current_version: int
    total_events: int
    undo_description: Optional[str] = None
    redo_description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "currentVersion": self.current_version,
            "totalEvents": self.total_events,
            "undoDescription": self.undo_description,
            "redoDescription": self.redo_description,
        }


def describe_event(event: Event) -> str:
    """Human readable label for an event."""
    payload = event.payload
    if event.type == EventType.COMPONENT_CREATED:
        return f"Create {payload.component_type} component"
    if event.type == EventType.COMPONENT_UPDATED:
        return "Update component"
    if event.type == EventType.COMPONENT_DELETED:
        return "Delete component"
    if event.type == EventType.COMPONENT_MOVED:
        return "Move component"
    if event.type == EventType.PROPERTY_CHANGED:
        return f"Change property: {payload.property_path}"
    if event.type == EventType.STYLE_UPDATED:
        return f"Update style: {payload.style_key}"
    if event.metadata is not None and event.metadata.description:
        return event.metadata.description
    return "Unknown operation"


class HistoryLog:
    """Ordered event sequence with a single cursor.

    The cursor ranges over ``[-1, len - 1]``; ``-1`` means nothing is applied.
    Appending after an undo discards the abandoned redo branch, so history is
    strictly linear.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_HISTORY_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._events: List[Event] = []
        self._cursor = -1
        self._max_size = max_size

    def __len__(self) -> int:
        return len(self._events)

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor >= 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._events) - 1

    def append(self, event: Event) -> int:
        """Record a new event at the cursor.

        Returns:
            Number of old events evicted to respect ``max_size``.
        """
        if self.can_redo:
            del self._events[self._cursor + 1:]

        self._events.append(event)
        self._cursor = len(self._events) - 1
        return self._evict()

    def undo(self) -> Optional[List[Event]]:
        """Step back one event. Returns the events now applied, or None."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self.current_events()

    def redo(self) -> Optional[List[Event]]:
        """Step forward one event. Returns the events now applied, or None."""
        if not self.can_redo:
            return None
        self._cursor += 1
        return self.current_events()

    def jump_to_version(self, version: int) -> Optional[List[Event]]:
        """Move the cursor to the event carrying ``version``."""
        for index, event in enumerate(self._events):
            if event.metadata is not None and event.metadata.version == version:
                self._cursor = index
                return self.current_events()
        return None

    def jump_to_timestamp(self, timestamp: datetime) -> Optional[List[Event]]:
        """Move the cursor to the last event at or before ``timestamp``."""
        target = -1
        for index, event in enumerate(self._events):
            if event.timestamp <= timestamp:
                target = index
            else:
                break
        if target == -1:
            return None
        self._cursor = target
        return self.current_events()

    def current_events(self) -> List[Event]:
        """Events up to and including the cursor - the replay set."""
        return self._events[:self._cursor + 1]

    def all_events(self) -> List[Event]:
        return list(self._events)

    def clear(self) -> None:
        self._events = []
        self._cursor = -1

    def restore(self, events: List[Event], cursor: int) -> None:
        """Reinstate an event list and cursor captured earlier with ``all_events``."""
        if not -1 <= cursor < len(events):
            raise ValueError(f"cursor {cursor} out of range for {len(events)} events")
        self._events = list(events)
        self._cursor = cursor

    def history_state(self) -> HistoryState:
        undo_description = None
        redo_description = None
        if self.can_undo:
            undo_description = describe_event(self._events[self._cursor])
        if self.can_redo:
            redo_description = describe_event(self._events[self._cursor + 1])
        return HistoryState(
            can_undo=self.can_undo,
            can_redo=self.can_redo,
            current_version=self._cursor + 1,
            total_events=len(self._events),
            undo_description=undo_description,
            redo_description=redo_description,
        )

    def statistics(self) -> Dict[str, Any]:
        """Summary of the retained events for diagnostics."""
        by_type: Counter = Counter()
        by_user: Counter = Counter()
        total_size = 0

        for event in self._events:
            by_type[event.type.value if isinstance(event.type, EventType) else str(event.type)] += 1
            by_user[event.user_id] += 1
            try:
                total_size += len(json.dumps(event.to_dict()))
            except (TypeError, ValueError) as e:
                logger.warning("Could not estimate size of event %s: %s", event.id, e)

        time_span = None
        if self._events:
            time_span = {
                "start": self._events[0].timestamp,
                "end": self._events[-1].timestamp,
            }

        return {
            "totalEvents": len(self._events),
            "currentPosition": self._cursor + 1,
            "eventsByType": dict(by_type),
            "eventsByUser": dict(by_user),
            "estimatedSize": total_size,
            "timeSpan": time_span,
        }

    def _evict(self) -> int:
        overflow = len(self._events) - self._max_size
        if overflow <= 0:
            return 0
        del self._events[:overflow]
        self._cursor = max(0, self._cursor - overflow)
        return overflow
