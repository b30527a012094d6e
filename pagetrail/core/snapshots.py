"""Snapshot manager - checkpoints that bound replay cost."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from .events import parse_timestamp
from .state import PageState

logger = logging.getLogger(__name__)

SNAPSHOT_INTERVAL = 50
MAX_SNAPSHOTS = 10


@dataclass
class Snapshot:
    """A checkpointed copy of page state.

    ``version`` is the number of log events folded into ``state``; ``event_id``
    is the id of the last of those events and anchors the snapshot to the log
    it was taken from.
    """
    id: str
    version: int
    timestamp: datetime
    state: PageState
    description: Optional[str] = None
    event_id: Optional[str] = None

    def clone(self) -> "Snapshot":
        return Snapshot(
            id=self.id,
            version=self.version,
            timestamp=self.timestamp,
            state=self.state.clone(),
            description=self.description,
            event_id=self.event_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "state": self.state.to_dict(),
        }
        if self.description is not None:
            d["description"] = self.description
        if self.event_id is not None:
            d["eventId"] = self.event_id
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Snapshot":
        return cls(
            id=d["id"],
            version=d["version"],
            timestamp=parse_timestamp(d["timestamp"]),
            state=PageState.from_dict(d["state"]),
            description=d.get("description"),
            event_id=d.get("eventId"),
        )


class SnapshotManager:
    """Creates, prunes, selects and validates snapshots.

    Holds no snapshots itself; callers own the snapshot list.
    """

    def __init__(self, interval: int = SNAPSHOT_INTERVAL, max_snapshots: int = MAX_SNAPSHOTS):
        if interval < 1:
            raise ValueError("interval must be at least 1")
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be at least 1")
        self.interval = interval
        self.max_snapshots = max_snapshots

    def should_snapshot(self, event_count: int) -> bool:
        return event_count > 0 and event_count % self.interval == 0

    def create(
        self,
        state: PageState,
        version: int,
        description: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> Snapshot:
        return Snapshot(
            id=str(uuid4()),
            version=version,
            timestamp=datetime.now(timezone.utc),
            state=state.clone(),
            description=description or f"Auto snapshot at version {version}",
            event_id=event_id,
        )

    def prune(self, snapshots: Sequence[Snapshot]) -> List[Snapshot]:
        """Keep the ``max_snapshots`` highest-version snapshots."""
        if len(snapshots) <= self.max_snapshots:
            return list(snapshots)
        ordered = sorted(snapshots, key=lambda s: s.version, reverse=True)
        return ordered[:self.max_snapshots]

    def select_best(
        self, snapshots: Sequence[Snapshot], target_version: int
    ) -> Optional[Snapshot]:
        """Latest snapshot whose version does not exceed ``target_version``."""
        best = None
        for snapshot in snapshots:
            if snapshot.version <= target_version and (best is None or snapshot.version > best.version):
                best = snapshot
        return best

    def validate(self, data: Any) -> bool:
        """Structural check for foreign snapshot data. Never raises."""
        try:
            version = data.get("version")
            state = data.get("state")
            return bool(
                data.get("id")
                and isinstance(version, int)
                and not isinstance(version, bool)
                and version >= 0
                and data.get("timestamp")
                and isinstance(state, dict)
                and state.get("pageId")
                and isinstance(state.get("components"), dict)
                and isinstance(state.get("metadata"), dict)
            )
        except (AttributeError, TypeError) as e:
            logger.warning("Snapshot validation failed: %s", e)
            return False

    def estimate_size(self, snapshot: Snapshot) -> int:
        """Rough memory estimate in bytes; 0 when the snapshot cannot be serialized."""
        try:
            return len(json.dumps(snapshot.to_dict())) * 2
        except (TypeError, ValueError) as e:
            logger.warning("Failed to estimate snapshot size: %s", e)
            return 0
