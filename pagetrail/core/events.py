"""Page editor events - the immutable facts the state engine folds."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from .state import Position, Size


class EventDecodeError(ValueError):
    """Raised when foreign event data cannot be decoded."""


class EventType(str, Enum):
    """Editor event types."""
    COMPONENT_CREATED = "COMPONENT_CREATED"
    COMPONENT_UPDATED = "COMPONENT_UPDATED"
    COMPONENT_DELETED = "COMPONENT_DELETED"
    COMPONENT_MOVED = "COMPONENT_MOVED"
    PROPERTY_CHANGED = "PROPERTY_CHANGED"
    STYLE_UPDATED = "STYLE_UPDATED"


def _require(d: Dict[str, Any], keys, what: str) -> None:
    missing = [k for k in keys if k not in d]
    if missing:
        raise EventDecodeError(f"{what} missing required fields: {missing}")


def _optional_position(value: Any) -> Optional[Position]:
    return Position.from_dict(value) if value is not None else None


@dataclass(frozen=True)
class EventMetadata:
    version: int
    source: str = "user"
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"version": self.version, "source": self.source}
        if self.description is not None:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EventMetadata":
        if not isinstance(d, dict):
            raise EventDecodeError(f"metadata must be a dict, got {type(d).__name__}")
        version = d.get("version", 0)
        if isinstance(version, bool) or not isinstance(version, int):
            raise EventDecodeError(f"metadata.version must be int, got {type(version).__name__}")
        return cls(
            version=version,
            source=d.get("source", "user"),
            description=d.get("description"),
        )


@dataclass(frozen=True)
class ComponentCreated:
    component_id: str
    component_type: str
    position: Position
    size: Size
    initial_props: Dict[str, Any] = field(default_factory=dict)
    initial_styles: Dict[str, Any] = field(default_factory=dict)
    parent_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "componentId": self.component_id,
            "componentType": self.component_type,
            "parentId": self.parent_id,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "initialProps": dict(self.initial_props),
            "initialStyles": dict(self.initial_styles),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentCreated":
        _require(d, ["componentId", "componentType", "position", "size"], "COMPONENT_CREATED payload")
        return cls(
            component_id=d["componentId"],
            component_type=d["componentType"],
            position=Position.from_dict(d["position"]),
            size=Size.from_dict(d["size"]),
            initial_props=dict(d.get("initialProps") or {}),
            initial_styles=dict(d.get("initialStyles") or {}),
            parent_id=d.get("parentId"),
        )


@dataclass(frozen=True)
class ComponentUpdates:
    """Partial update; fields left as None are untouched."""
    position: Optional[Position] = None
    size: Optional[Size] = None
    props: Optional[Dict[str, Any]] = None
    styles: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.position is not None:
            d["position"] = self.position.to_dict()
        if self.size is not None:
            d["size"] = self.size.to_dict()
        if self.props is not None:
            d["props"] = dict(self.props)
        if self.styles is not None:
            d["styles"] = dict(self.styles)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentUpdates":
        if not isinstance(d, dict):
            raise EventDecodeError(f"updates must be a dict, got {type(d).__name__}")
        size = d.get("size")
        return cls(
            position=_optional_position(d.get("position")),
            size=Size.from_dict(size) if size is not None else None,
            props=dict(d["props"]) if d.get("props") is not None else None,
            styles=dict(d["styles"]) if d.get("styles") is not None else None,
        )


@dataclass(frozen=True)
class ComponentUpdated:
    component_id: str
    updates: ComponentUpdates

    def to_dict(self) -> Dict[str, Any]:
        return {"componentId": self.component_id, "updates": self.updates.to_dict()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentUpdated":
        _require(d, ["componentId", "updates"], "COMPONENT_UPDATED payload")
        return cls(component_id=d["componentId"], updates=ComponentUpdates.from_dict(d["updates"]))


@dataclass(frozen=True)
class ComponentDeleted:
    component_id: str
    parent_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"componentId": self.component_id, "parentId": self.parent_id}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentDeleted":
        _require(d, ["componentId"], "COMPONENT_DELETED payload")
        return cls(component_id=d["componentId"], parent_id=d.get("parentId"))


@dataclass(frozen=True)
class ComponentMoved:
    component_id: str
    new_position: Position
    old_position: Optional[Position] = None
    old_parent_id: Optional[str] = None
    new_parent_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "componentId": self.component_id,
            "oldPosition": self.old_position.to_dict() if self.old_position else None,
            "newPosition": self.new_position.to_dict(),
            "oldParentId": self.old_parent_id,
            "newParentId": self.new_parent_id,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentMoved":
        _require(d, ["componentId", "newPosition"], "COMPONENT_MOVED payload")
        return cls(
            component_id=d["componentId"],
            new_position=Position.from_dict(d["newPosition"]),
            old_position=_optional_position(d.get("oldPosition")),
            old_parent_id=d.get("oldParentId"),
            new_parent_id=d.get("newParentId"),
        )


@dataclass(frozen=True)
class PropertyChanged:
    component_id: str
    property_path: str
    new_value: Any
    old_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "componentId": self.component_id,
            "propertyPath": self.property_path,
            "oldValue": self.old_value,
            "newValue": self.new_value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PropertyChanged":
        _require(d, ["componentId", "propertyPath", "newValue"], "PROPERTY_CHANGED payload")
        if not isinstance(d["propertyPath"], str) or not d["propertyPath"]:
            raise EventDecodeError("propertyPath must be a non-empty string")
        return cls(
            component_id=d["componentId"],
            property_path=d["propertyPath"],
            new_value=d["newValue"],
            old_value=d.get("oldValue"),
        )


@dataclass(frozen=True)
class StyleUpdated:
    component_id: str
    style_key: str
    new_value: Any
    old_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "componentId": self.component_id,
            "styleProperty": self.style_key,
            "oldValue": self.old_value,
            "newValue": self.new_value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StyleUpdated":
        _require(d, ["componentId", "styleProperty", "newValue"], "STYLE_UPDATED payload")
        return cls(
            component_id=d["componentId"],
            style_key=d["styleProperty"],
            new_value=d["newValue"],
            old_value=d.get("oldValue"),
        )


Payload = Union[
    ComponentCreated,
    ComponentUpdated,
    ComponentDeleted,
    ComponentMoved,
    PropertyChanged,
    StyleUpdated,
]

PAYLOAD_TYPES = {
    EventType.COMPONENT_CREATED: ComponentCreated,
    EventType.COMPONENT_UPDATED: ComponentUpdated,
    EventType.COMPONENT_DELETED: ComponentDeleted,
    EventType.COMPONENT_MOVED: ComponentMoved,
    EventType.PROPERTY_CHANGED: PropertyChanged,
    EventType.STYLE_UPDATED: StyleUpdated,
}


def ensure_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC so every timestamp in a log is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime.

    Naive values are taken to be UTC.

    Raises:
        EventDecodeError: If the value is missing or not a timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool) or value is None:
        raise EventDecodeError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise EventDecodeError(f"Invalid epoch timestamp {value!r}: {e}")
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value))
        except ValueError as e:
            raise EventDecodeError(f"Invalid timestamp format '{value}': {e}")
    raise EventDecodeError(f"Invalid timestamp type: {type(value).__name__}")


@dataclass(frozen=True)
class Event:
    """A single editor event. Immutable once created."""
    id: str
    type: EventType
    timestamp: datetime
    user_id: str
    session_id: str
    payload: Payload
    metadata: Optional[EventMetadata] = None

    @property
    def version(self) -> int:
        """The event's metadata version, 0 when it carries none."""
        return self.metadata.version if self.metadata is not None else 0

    @property
    def component_id(self) -> str:
        return self.payload.component_id

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "timestamp": self.timestamp.isoformat(),
            "userId": self.user_id,
            "sessionId": self.session_id,
            "payload": self.payload.to_dict(),
        }
        if self.metadata is not None:
            d["metadata"] = self.metadata.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Event":
        """Create Event from dictionary.

        Raises:
            EventDecodeError: If required fields are missing, the type tag is
                unknown, or the payload does not match its type.
        """
        if not isinstance(d, dict):
            raise EventDecodeError(f"Expected dict, got {type(d).__name__}")
        _require(d, ["id", "type", "timestamp", "payload"], "Event")

        try:
            event_type = EventType(d["type"])
        except ValueError:
            raise EventDecodeError(f"Unknown event type: {d['type']!r}")

        payload = d["payload"]
        if not isinstance(payload, dict):
            raise EventDecodeError(f"payload must be a dict, got {type(payload).__name__}")

        try:
            decoded = PAYLOAD_TYPES[event_type].from_dict(payload)
        except EventDecodeError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise EventDecodeError(f"Malformed {event_type.value} payload: {e}")

        metadata = d.get("metadata")
        return cls(
            id=d["id"],
            type=event_type,
            timestamp=parse_timestamp(d["timestamp"]),
            user_id=d.get("userId", "unknown"),
            session_id=d.get("sessionId", "unknown"),
            payload=decoded,
            metadata=EventMetadata.from_dict(metadata) if metadata is not None else None,
        )
