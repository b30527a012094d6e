"""Store configuration."""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

from .history import DEFAULT_MAX_HISTORY_SIZE
from .snapshots import MAX_SNAPSHOTS, SNAPSHOT_INTERVAL


@dataclass(frozen=True)
class StoreConfig:
    """Resource bounds for an EventStore.

    Attributes:
        max_history_size: Events retained by the history log; older ones are evicted.
        snapshot_interval: Auto snapshot every N appended events.
        max_snapshots: Snapshots kept after pruning.
        auto_snapshot: Whether add_event creates snapshots on the interval.
    """
    max_history_size: int = DEFAULT_MAX_HISTORY_SIZE
    snapshot_interval: int = SNAPSHOT_INTERVAL
    max_snapshots: int = MAX_SNAPSHOTS
    auto_snapshot: bool = True

    def __post_init__(self):
        for name in ("max_history_size", "snapshot_interval", "max_snapshots"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StoreConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown store config keys: {unknown}")
        return cls(**d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
