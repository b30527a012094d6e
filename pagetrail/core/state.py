"""Materialized page state - the component tree derived from events.

Every entity has an explicit ``clone`` that copies each nested container, so
a clone never shares a mutable dict or list with its source.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _number(d: Dict[str, Any], key: str) -> float:
    value = d[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {type(value).__name__}")
    return value


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a dict, got {type(value).__name__}")
    return value


@dataclass
class Position:
    x: float = 0
    y: float = 0

    def clone(self) -> "Position":
        return Position(self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Position":
        if not isinstance(d, dict):
            raise ValueError(f"position must be a dict, got {type(d).__name__}")
        return cls(x=_number(d, "x"), y=_number(d, "y"))


@dataclass
class Size:
    width: float = 0
    height: float = 0

    def clone(self) -> "Size":
        return Size(self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Size":
        if not isinstance(d, dict):
            raise ValueError(f"size must be a dict, got {type(d).__name__}")
        return cls(width=_number(d, "width"), height=_number(d, "height"))


@dataclass
class ComponentNode:
    """A single component in the page tree."""
    id: str
    type: str
    props: Dict[str, Any] = field(default_factory=dict)
    styles: Dict[str, Any] = field(default_factory=dict)
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    visible: bool = True
    locked: bool = False
    z_index: int = 0

    def clone(self) -> "ComponentNode":
        return ComponentNode(
            id=self.id,
            type=self.type,
            props=copy.deepcopy(self.props),
            styles=copy.deepcopy(self.styles),
            position=self.position.clone(),
            size=self.size.clone(),
            parent_id=self.parent_id,
            children=list(self.children),
            visible=self.visible,
            locked=self.locked,
            z_index=self.z_index,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "props": copy.deepcopy(self.props),
            "styles": copy.deepcopy(self.styles),
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "parentId": self.parent_id,
            "children": list(self.children),
            "visible": self.visible,
            "locked": self.locked,
            "zIndex": self.z_index,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentNode":
        _mapping(d, "component")
        return cls(
            id=d["id"],
            type=d["type"],
            props=copy.deepcopy(_mapping(d.get("props") or {}, "props")),
            styles=copy.deepcopy(_mapping(d.get("styles") or {}, "styles")),
            position=Position.from_dict(d.get("position") or {"x": 0, "y": 0}),
            size=Size.from_dict(d.get("size") or {"width": 0, "height": 0}),
            parent_id=d.get("parentId"),
            children=list(d.get("children") or []),
            visible=d.get("visible", True),
            locked=d.get("locked", False),
            z_index=d.get("zIndex", 0),
        )


@dataclass
class LayoutConfig:
    type: str = "free"
    constraints: Dict[str, Any] = field(
        default_factory=lambda: {"snapToGrid": False, "gridSize": 10}
    )

    def clone(self) -> "LayoutConfig":
        return LayoutConfig(type=self.type, constraints=copy.deepcopy(self.constraints))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "constraints": copy.deepcopy(self.constraints)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LayoutConfig":
        _mapping(d, "layout")
        if "constraints" not in d:
            return cls(type=d.get("type", "free"))
        constraints = _mapping(d["constraints"] or {}, "constraints")
        return cls(type=d.get("type", "free"), constraints=copy.deepcopy(constraints))


@dataclass
class GlobalStyles:
    theme: str = "light"
    custom_css: Optional[str] = None
    variables: Dict[str, str] = field(default_factory=dict)

    def clone(self) -> "GlobalStyles":
        return GlobalStyles(
            theme=self.theme,
            custom_css=self.custom_css,
            variables=dict(self.variables),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"theme": self.theme, "variables": dict(self.variables)}
        if self.custom_css is not None:
            d["customCSS"] = self.custom_css
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GlobalStyles":
        _mapping(d, "globalStyles")
        return cls(
            theme=d.get("theme", "light"),
            custom_css=d.get("customCSS"),
            variables=dict(_mapping(d.get("variables") or {}, "variables")),
        )


@dataclass
class PageMetadata:
    version: int = 0
    created: datetime = field(default_factory=_now)
    modified: datetime = field(default_factory=_now)
    title: str = "Untitled Page"

    def clone(self) -> "PageMetadata":
        # datetimes are immutable
        return PageMetadata(
            version=self.version,
            created=self.created,
            modified=self.modified,
            title=self.title,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PageMetadata":
        from .events import parse_timestamp

        _mapping(d, "metadata")
        version = d.get("version", 0)
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError(f"metadata.version must be int, got {type(version).__name__}")
        return cls(
            version=version,
            created=parse_timestamp(d["created"]) if "created" in d else _now(),
            modified=parse_timestamp(d["modified"]) if "modified" in d else _now(),
            title=d.get("title", "Untitled Page"),
        )


@dataclass
class PageState:
    """Materialized page state derived from events."""
    page_id: str = "main-page"
    components: Dict[str, ComponentNode] = field(default_factory=dict)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    global_styles: GlobalStyles = field(default_factory=GlobalStyles)
    selected_component_id: Optional[str] = None
    metadata: PageMetadata = field(default_factory=PageMetadata)

    def clone(self) -> "PageState":
        return PageState(
            page_id=self.page_id,
            components={cid: node.clone() for cid, node in self.components.items()},
            layout=self.layout.clone(),
            global_styles=self.global_styles.clone(),
            selected_component_id=self.selected_component_id,
            metadata=self.metadata.clone(),
        )

    @property
    def component_count(self) -> int:
        return len(self.components)

    def get_component(self, component_id: str) -> Optional[ComponentNode]:
        return self.components.get(component_id)

    def has_component(self, component_id: str) -> bool:
        return component_id in self.components

    def top_level_components(self) -> List[ComponentNode]:
        """Components without a parent, in insertion order."""
        return [c for c in self.components.values() if not c.parent_id]

    def child_components(self, parent_id: str) -> List[ComponentNode]:
        """Resolved children of ``parent_id`` in their stored order."""
        parent = self.components.get(parent_id)
        if parent is None:
            return []
        return [self.components[cid] for cid in parent.children if cid in self.components]

    def descendants(self, component_id: str) -> List[str]:
        """Ids of every node below ``component_id``, depth-first, children before parents."""
        result: List[str] = []
        node = self.components.get(component_id)
        if node is None:
            return result
        for child_id in node.children:
            result.extend(self.descendants(child_id))
            if child_id in self.components:
                result.append(child_id)
        return result

    def is_ancestor(self, ancestor_id: str, component_id: str) -> bool:
        """True if ``ancestor_id`` appears on the parent chain of ``component_id``."""
        seen = set()
        current = self.components.get(component_id)
        while current is not None and current.parent_id and current.id not in seen:
            seen.add(current.id)
            if current.parent_id == ancestor_id:
                return True
            current = self.components.get(current.parent_id)
        return False

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "pageId": self.page_id,
            "components": {cid: node.to_dict() for cid, node in self.components.items()},
            "layout": self.layout.to_dict(),
            "globalStyles": self.global_styles.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
        if self.selected_component_id is not None:
            d["selectedComponentId"] = self.selected_component_id
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PageState":
        """Create PageState from dictionary.

        Raises:
            ValueError: If the data is not a state mapping.
            KeyError: If a component lacks ``id`` or ``type``.
        """
        if not isinstance(d, dict):
            raise ValueError(f"Expected dict, got {type(d).__name__}")
        components = d.get("components") or {}
        if not isinstance(components, dict):
            raise ValueError("components must be a mapping of id to component")
        return cls(
            page_id=d.get("pageId", "main-page"),
            components={cid: ComponentNode.from_dict(c) for cid, c in components.items()},
            layout=LayoutConfig.from_dict(d.get("layout") or {}),
            global_styles=GlobalStyles.from_dict(d.get("globalStyles") or {}),
            selected_component_id=d.get("selectedComponentId"),
            metadata=PageMetadata.from_dict(d.get("metadata") or {}),
        )
