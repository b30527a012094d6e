"""Tests for page state entities (pagetrail/core/state.py)."""

from datetime import datetime

import pytest

from pagetrail.core.state import (
    ComponentNode,
    GlobalStyles,
    LayoutConfig,
    PageMetadata,
    PageState,
    Position,
    Size,
)


def _tree() -> PageState:
    state = PageState()
    state.components["root"] = ComponentNode(id="root", type="Container", children=["mid"])
    state.components["mid"] = ComponentNode(id="mid", type="Form", parent_id="root", children=["leaf"])
    state.components["leaf"] = ComponentNode(
        id="leaf", type="Button", parent_id="mid",
        props={"text": "Go", "meta": {"tags": ["a"]}},
    )
    state.components["lone"] = ComponentNode(id="lone", type="Text")
    return state


class TestClone:
    """Clones must never share mutable containers with their source."""

    def test_component_clone_is_deep(self):
        node = ComponentNode(
            id="c", type="Button",
            props={"nested": {"list": [1, 2]}},
            styles={"margin": {"top": 1}},
            children=["x"],
        )
        clone = node.clone()

        assert clone == node
        clone.props["nested"]["list"].append(3)
        clone.styles["margin"]["top"] = 9
        clone.children.append("y")
        clone.position.x = 42
        clone.size.width = 42

        assert node.props["nested"]["list"] == [1, 2]
        assert node.styles["margin"]["top"] == 1
        assert node.children == ["x"]
        assert node.position.x == 0
        assert node.size.width == 0

    def test_state_clone_is_deep(self):
        state = _tree()
        state.layout.constraints["gridSize"] = 8
        state.global_styles.variables["primary"] = "#000"
        clone = state.clone()

        assert clone == state
        clone.components["mid"].children.clear()
        clone.components["extra"] = ComponentNode(id="extra", type="Text")
        clone.layout.constraints["gridSize"] = 16
        clone.global_styles.variables["primary"] = "#fff"
        clone.metadata.version = 99

        assert state.components["mid"].children == ["leaf"]
        assert "extra" not in state.components
        assert state.layout.constraints["gridSize"] == 8
        assert state.global_styles.variables["primary"] == "#000"
        assert state.metadata.version == 0

    def test_entity_clones(self):
        assert Position(1, 2).clone() == Position(1, 2)
        assert Size(3, 4).clone() == Size(3, 4)
        assert LayoutConfig().clone() == LayoutConfig()
        assert GlobalStyles(custom_css="a{}").clone() == GlobalStyles(custom_css="a{}")
        meta = PageMetadata(version=3, title="Home")
        assert meta.clone() == meta


class TestQueries:
    """Tree query helpers."""

    def test_top_level_and_children(self):
        state = _tree()
        assert [c.id for c in state.top_level_components()] == ["root", "lone"]
        assert [c.id for c in state.child_components("root")] == ["mid"]
        assert state.child_components("missing") == []

    def test_descendants_are_children_first(self):
        state = _tree()
        assert state.descendants("root") == ["leaf", "mid"]
        assert state.descendants("leaf") == []
        assert state.descendants("missing") == []

    def test_is_ancestor(self):
        state = _tree()
        assert state.is_ancestor("root", "leaf")
        assert state.is_ancestor("mid", "leaf")
        assert not state.is_ancestor("leaf", "root")
        assert not state.is_ancestor("lone", "leaf")

    def test_lookup_helpers(self):
        state = _tree()
        assert state.component_count == 4
        assert state.has_component("leaf")
        assert state.get_component("leaf").type == "Button"
        assert state.get_component("nope") is None


class TestSerialization:
    """Wire form of page state."""

    def test_state_roundtrip(self):
        state = _tree()
        state.selected_component_id = "leaf"
        restored = PageState.from_dict(state.to_dict())
        assert restored == state

    def test_component_wire_keys(self):
        d = ComponentNode(id="c", type="Image", parent_id="p", z_index=3).to_dict()
        assert d["parentId"] == "p"
        assert d["zIndex"] == 3
        assert d["visible"] is True

    def test_from_dict_defaults(self):
        state = PageState.from_dict({"pageId": "p", "components": {}, "metadata": {}})
        assert state.page_id == "p"
        assert state.layout.type == "free"
        assert isinstance(state.metadata.created, datetime)

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(ValueError):
            PageState.from_dict(["x"])
        with pytest.raises(ValueError):
            PageState.from_dict({"components": ["x"]})

    def test_position_rejects_non_numbers(self):
        with pytest.raises(ValueError):
            Position.from_dict({"x": "1", "y": 2})
        with pytest.raises(KeyError):
            Size.from_dict({"width": 1})

    @pytest.mark.parametrize("key, value", [
        ("layout", "grid"),
        ("layout", {"type": "grid", "constraints": ["snap"]}),
        ("globalStyles", "dark"),
        ("globalStyles", {"variables": ["--x"]}),
        ("metadata", "v1"),
        ("metadata", {"version": "3"}),
        ("metadata", {"version": True}),
        ("components", {"a": "junk"}),
        ("components", {"a": {"id": "a", "type": "Text", "props": ["x"]}}),
        ("components", {"a": {"id": "a", "type": "Text", "styles": 3}}),
    ])
    def test_from_dict_rejects_wrongly_typed_fields(self, key, value):
        data = PageState().to_dict()
        data[key] = value
        with pytest.raises(ValueError):
            PageState.from_dict(data)
