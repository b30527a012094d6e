"""Event factory - builds editor events for a session.

Versions come from an explicit VersionClock rather than process-wide state,
so independent editing sessions (and tests) never share a counter.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union
from uuid import uuid4

from .events import (
    ComponentCreated,
    ComponentDeleted,
    ComponentMoved,
    ComponentUpdated,
    ComponentUpdates,
    Event,
    EventMetadata,
    EventType,
    PropertyChanged,
    StyleUpdated,
)
from .state import Position, Size

PositionLike = Union[Position, Dict[str, float]]
SizeLike = Union[Size, Dict[str, float]]


def _position(value: Optional[PositionLike]) -> Optional[Position]:
    if value is None or isinstance(value, Position):
        return value
    return Position.from_dict(value)


def _size(value: Optional[SizeLike]) -> Optional[Size]:
    if value is None or isinstance(value, Size):
        return value
    return Size.from_dict(value)


class VersionClock:
    """Monotonic version sequence for events."""

    def __init__(self, start: int = 0):
        self._current = start

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        self._current += 1
        return self._current

    def reset(self, start: int = 0) -> None:
        self._current = start


class EventFactory:
    """Creates events stamped with id, time, user, session and version.

    Usage:
        factory = EventFactory(user_id="alice")
        event = factory.component_created("btn-1", "Button", {"x": 10, "y": 20}, {"width": 100, "height": 36})
        store.add_event(event)
    """

    def __init__(
        self,
        user_id: str = "local",
        session_id: Optional[str] = None,
        clock: Optional[VersionClock] = None,
        now: Optional[Callable[[], datetime]] = None,
        source: str = "user",
    ):
        """Initialize the factory.

        Args:
            user_id: Id stamped on every event.
            session_id: Editing session id. Generated if not provided.
            clock: Version sequence. A fresh clock starting at 0 if not provided.
            now: Time source, UTC wall clock by default.
            source: Metadata source for created events.
        """
        self.user_id = user_id
        self.session_id = session_id or str(uuid4())
        self.clock = clock or VersionClock()
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.source = source

    def _event(self, event_type: EventType, payload: Any, description: Optional[str]) -> Event:
        return Event(
            id=str(uuid4()),
            type=event_type,
            timestamp=self._now(),
            user_id=self.user_id,
            session_id=self.session_id,
            payload=payload,
            metadata=EventMetadata(
                version=self.clock.next(),
                source=self.source,
                description=description,
            ),
        )

    def component_created(
        self,
        component_id: str,
        component_type: str,
        position: PositionLike,
        size: SizeLike,
        initial_props: Optional[Dict[str, Any]] = None,
        initial_styles: Optional[Dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Event:
        return self._event(
            EventType.COMPONENT_CREATED,
            ComponentCreated(
                component_id=component_id,
                component_type=component_type,
                position=_position(position),
                size=_size(size),
                initial_props=dict(initial_props or {}),
                initial_styles=dict(initial_styles or {}),
                parent_id=parent_id,
            ),
            description,
        )

    def component_updated(
        self,
        component_id: str,
        position: Optional[PositionLike] = None,
        size: Optional[SizeLike] = None,
        props: Optional[Dict[str, Any]] = None,
        styles: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> Event:
        updates = ComponentUpdates(
            position=_position(position),
            size=_size(size),
            props=dict(props) if props is not None else None,
            styles=dict(styles) if styles is not None else None,
        )
        return self._event(
            EventType.COMPONENT_UPDATED,
            ComponentUpdated(component_id=component_id, updates=updates),
            description,
        )

    def component_deleted(
        self,
        component_id: str,
        parent_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Event:
        return self._event(
            EventType.COMPONENT_DELETED,
            ComponentDeleted(component_id=component_id, parent_id=parent_id),
            description,
        )

    def component_moved(
        self,
        component_id: str,
        new_position: PositionLike,
        old_position: Optional[PositionLike] = None,
        old_parent_id: Optional[str] = None,
        new_parent_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Event:
        return self._event(
            EventType.COMPONENT_MOVED,
            ComponentMoved(
                component_id=component_id,
                new_position=_position(new_position),
                old_position=_position(old_position),
                old_parent_id=old_parent_id,
                new_parent_id=new_parent_id,
            ),
            description,
        )

    def property_changed(
        self,
        component_id: str,
        property_path: str,
        new_value: Any,
        old_value: Any = None,
        description: Optional[str] = None,
    ) -> Event:
        return self._event(
            EventType.PROPERTY_CHANGED,
            PropertyChanged(
                component_id=component_id,
                property_path=property_path,
                new_value=new_value,
                old_value=old_value,
            ),
            description,
        )

    def style_updated(
        self,
        component_id: str,
        style_key: str,
        new_value: Any,
        old_value: Any = None,
        description: Optional[str] = None,
    ) -> Event:
        return self._event(
            EventType.STYLE_UPDATED,
            StyleUpdated(
                component_id=component_id,
                style_key=style_key,
                new_value=new_value,
                old_value=old_value,
            ),
            description,
        )
