"""State reducer - folds editor events into a page state.

``apply_event`` never mutates its input: it works on a clone and returns the
clone. ``replay`` clones the starting state once and folds every event into
that private copy, so callers holding an older state are never affected.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from .events import (
    ComponentCreated,
    ComponentDeleted,
    ComponentMoved,
    ComponentUpdated,
    Event,
    PropertyChanged,
    StyleUpdated,
)
from .state import ComponentNode, PageMetadata, PageState, Position, Size

logger = logging.getLogger(__name__)


class PropertyPathError(ValueError):
    """Raised when a property path cannot be written on a component."""


# Wire names accepted as the first segment of a property path.
_PATH_ROOTS = {
    "type": "type",
    "props": "props",
    "styles": "styles",
    "position": "position",
    "size": "size",
    "visible": "visible",
    "locked": "locked",
    "zIndex": "z_index",
    "z_index": "z_index",
}

# Writing these would break the tree invariants.
_PROTECTED_ROOTS = {"id", "parentId", "parent_id", "children"}


def initial_state(now: Optional[datetime] = None) -> PageState:
    """Create the canonical empty page state."""
    state = PageState()
    if now is not None:
        state.metadata = PageMetadata(created=now, modified=now)
    return state


def apply_event(state: PageState, event: Event) -> PageState:
    """Apply a single event and return the resulting state.

    The input state is left untouched. Malformed events are logged and yield
    a copy of the input with only the metadata advanced.
    """
    draft = state.clone()
    try:
        _apply_in_place(draft, event)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Error applying event %s (%s): %s", event.id, event.type, e)
        draft = state.clone()
    _touch_metadata(draft, event)
    return draft


def replay(events: Iterable[Event], initial: Optional[PageState] = None) -> PageState:
    """Rebuild state by folding events in timestamp order.

    The sort is stable, so events sharing a timestamp keep their log order.
    """
    state = initial.clone() if initial is not None else initial_state()
    for event in sorted(events, key=lambda e: e.timestamp):
        try:
            _apply_in_place(state, event)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Error applying event %s (%s): %s", event.id, event.type, e)
        _touch_metadata(state, event)
    return state


def _touch_metadata(state: PageState, event: Event) -> None:
    state.metadata.version = max(state.metadata.version, event.version)
    state.metadata.modified = event.timestamp


def _apply_in_place(state: PageState, event: Event) -> None:
    # Handlers validate before writing, so a raised error leaves no partial change.
    payload = event.payload
    if isinstance(payload, ComponentCreated):
        _component_created(state, payload)
    elif isinstance(payload, ComponentUpdated):
        _component_updated(state, payload)
    elif isinstance(payload, ComponentDeleted):
        _component_deleted(state, payload)
    elif isinstance(payload, ComponentMoved):
        _component_moved(state, payload)
    elif isinstance(payload, PropertyChanged):
        _property_changed(state, payload)
    elif isinstance(payload, StyleUpdated):
        _style_updated(state, payload)
    else:
        logger.warning("Unknown event type %r in event %s", event.type, event.id)


def _component_created(state: PageState, p: ComponentCreated) -> None:
    if p.component_id in state.components:
        logger.warning("Component %s already exists, ignoring create", p.component_id)
        return

    parent = state.components.get(p.parent_id) if p.parent_id else None
    if p.parent_id and parent is None:
        logger.warning(
            "Parent %s not found for component %s, creating it at the root",
            p.parent_id, p.component_id,
        )

    node = ComponentNode(
        id=p.component_id,
        type=p.component_type,
        props=copy.deepcopy(p.initial_props),
        styles=copy.deepcopy(p.initial_styles),
        position=p.position.clone(),
        size=p.size.clone(),
        parent_id=parent.id if parent is not None else None,
        children=[],
        visible=True,
        locked=False,
        z_index=len(state.components) + 1,
    )
    state.components[node.id] = node

    if parent is not None and node.id not in parent.children:
        parent.children.append(node.id)


def _component_updated(state: PageState, p: ComponentUpdated) -> None:
    component = state.components.get(p.component_id)
    if component is None:
        logger.warning("Component %s not found for update", p.component_id)
        return

    updates = p.updates
    position = updates.position.clone() if updates.position is not None else None
    size = updates.size.clone() if updates.size is not None else None
    props = copy.deepcopy(updates.props) if updates.props is not None else None
    styles = copy.deepcopy(updates.styles) if updates.styles is not None else None

    if position is not None:
        component.position = position
    if size is not None:
        component.size = size
    if props is not None:
        component.props.update(props)
    if styles is not None:
        component.styles.update(styles)


def _component_deleted(state: PageState, p: ComponentDeleted) -> None:
    component = state.components.get(p.component_id)
    if component is None:
        logger.warning("Component %s not found for delete", p.component_id)

    removed: List[str] = state.descendants(p.component_id) if component else []
    for child_id in removed:
        del state.components[child_id]

    parent_ids = {p.parent_id}
    if component is not None:
        parent_ids.add(component.parent_id)
    for parent_id in parent_ids:
        parent = state.components.get(parent_id) if parent_id else None
        if parent is not None and p.component_id in parent.children:
            parent.children.remove(p.component_id)

    if component is not None:
        del state.components[p.component_id]
        removed.append(p.component_id)

    if state.selected_component_id in removed:
        state.selected_component_id = None


def _component_moved(state: PageState, p: ComponentMoved) -> None:
    component = state.components.get(p.component_id)
    if component is None:
        logger.warning("Component %s not found for move", p.component_id)
        return

    new_position = p.new_position.clone()
    if p.old_parent_id == p.new_parent_id:
        component.position = new_position
        return

    new_parent = state.components.get(p.new_parent_id) if p.new_parent_id else None
    if new_parent is not None and (
        new_parent.id == component.id or state.is_ancestor(component.id, new_parent.id)
    ):
        logger.warning(
            "Refusing to move %s under its own descendant %s", component.id, new_parent.id
        )
        return
    if p.new_parent_id and new_parent is None:
        logger.warning(
            "New parent %s not found for component %s, moving it to the root",
            p.new_parent_id, component.id,
        )

    for old_id in {p.old_parent_id, component.parent_id}:
        old_parent = state.components.get(old_id) if old_id else None
        if old_parent is not None and component.id in old_parent.children:
            old_parent.children.remove(component.id)

    if new_parent is not None and component.id not in new_parent.children:
        new_parent.children.append(component.id)

    component.parent_id = new_parent.id if new_parent is not None else None
    component.position = new_position


def _property_changed(state: PageState, p: PropertyChanged) -> None:
    component = state.components.get(p.component_id)
    if component is None:
        logger.warning("Component %s not found for property change", p.component_id)
        return
    try:
        set_property(component, p.property_path, copy.deepcopy(p.new_value))
    except PropertyPathError as e:
        logger.warning("Cannot set %s on %s: %s", p.property_path, p.component_id, e)


def _style_updated(state: PageState, p: StyleUpdated) -> None:
    component = state.components.get(p.component_id)
    if component is None:
        logger.warning("Component %s not found for style update", p.component_id)
        return
    component.styles[p.style_key] = copy.deepcopy(p.new_value)


def set_property(component: ComponentNode, path: str, value: Any) -> None:
    """Write ``value`` at a dotted path inside a component.

    Supports nested paths such as ``position.x`` or ``props.label.text``;
    missing intermediate maps are created.

    Raises:
        PropertyPathError: If the path is protected, unknown, or crosses a
            non-container value. Nothing is written in that case.
    """
    segments = path.split(".")
    if not all(segments):
        raise PropertyPathError(f"Malformed path {path!r}")
    if segments[0] in _PROTECTED_ROOTS:
        raise PropertyPathError(f"{segments[0]!r} is managed by the tree and cannot be set")
    attr = _PATH_ROOTS.get(segments[0])
    if attr is None:
        raise PropertyPathError(f"Unknown property root {segments[0]!r}")

    if len(segments) == 1:
        setattr(component, attr, _coerce_root(attr, value))
        return

    target = getattr(component, attr)
    for segment in segments[1:-1]:
        target = _descend(target, segment, path)
    _assign(target, segments[-1], value, path)


def _coerce_root(attr: str, value: Any) -> Any:
    try:
        if attr == "position":
            return value.clone() if isinstance(value, Position) else Position.from_dict(value)
        if attr == "size":
            return value.clone() if isinstance(value, Size) else Size.from_dict(value)
    except (KeyError, ValueError) as e:
        raise PropertyPathError(str(e))
    if attr in ("props", "styles"):
        if not isinstance(value, dict):
            raise PropertyPathError(f"{attr} must be a mapping")
        return dict(value)
    return value


def _descend(target: Any, segment: str, path: str) -> Any:
    if isinstance(target, dict):
        child = target.get(segment)
        if child is None:
            # Everything below a freshly created map is writable, so no partial writes.
            child = {}
            target[segment] = child
        elif not isinstance(child, (dict, list)):
            raise PropertyPathError(f"{segment!r} in {path!r} is not a container")
        return child
    if isinstance(target, list) and segment.isdigit() and int(segment) < len(target):
        child = target[int(segment)]
        if not isinstance(child, (dict, list)):
            raise PropertyPathError(f"{segment!r} in {path!r} is not a container")
        return child
    raise PropertyPathError(f"Cannot descend into {segment!r} in {path!r}")


def _assign(target: Any, key: str, value: Any, path: str) -> None:
    if isinstance(target, dict):
        target[key] = value
    elif isinstance(target, list) and key.isdigit() and int(key) < len(target):
        target[int(key)] = value
    elif isinstance(target, (Position, Size)) and key in target.__dataclass_fields__:
        setattr(target, key, value)
    else:
        raise PropertyPathError(f"Cannot assign {key!r} in {path!r}")
