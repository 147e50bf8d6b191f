"""
Tests for graph mutation operations and navigation helpers.
"""

import itertools
from datetime import date

import pytest

from taskgraph.exceptions import GraphIntegrityError, InvalidNodeFieldError
from taskgraph.graph import (
    collect_subtree,
    create_child,
    delete_subtree,
    first_child,
    next_sibling,
    patch_node,
    previous_sibling,
    reorder_children_by_position,
    reveal_children,
    selection_after_delete,
)
from taskgraph.models import Graph, NodeType, ROOT_ID, TaskNode, TextNode


def make_ids(prefix="n"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def sample_graph():
    """root -> a -> (a1, a2), root -> b"""
    return Graph({
        ROOT_ID: TaskNode(title="Root Node", children=("a", "b")),
        "a": TaskNode(title="A", children=("a1", "a2"), depth=1),
        "a1": TaskNode(title="A1", depth=2),
        "a2": TextNode(title="A2", content="# note", depth=2),
        "b": TaskNode(title="B", depth=1),
    })


class TestCreateChild:
    """Tests for create_child."""

    def test_creates_default_task_under_parent(self):
        graph = Graph({})
        new_graph, new_id = create_child(graph, ROOT_ID, id_factory=make_ids())

        assert new_id == "n1"
        node = new_graph[new_id]
        assert isinstance(node, TaskNode)
        assert node.title == ""
        assert node.completed is False
        assert node.due_date is None
        assert node.repeat_days == 0
        assert node.visible is True
        assert node.depth == 1
        assert new_graph.root.children == ("n1",)
        assert new_graph.parent_of("n1") == ROOT_ID

    def test_appends_after_existing_children(self):
        graph = Graph({
            ROOT_ID: TaskNode(title="Root Node", children=("A",)),
            "A": TaskNode(title="A", depth=1),
        })
        new_graph, new_id = create_child(graph, ROOT_ID, id_factory=lambda: "B")

        assert new_graph.root.children == ("A", "B")
        assert new_graph["B"].depth == 1

    def test_missing_parent_is_noop(self):
        graph = Graph({})
        new_graph, new_id = create_child(graph, "ghost")
        assert new_graph is graph
        assert new_id is None

    def test_overrides_apply_but_structure_is_protected(self):
        graph = sample_graph()
        new_graph, new_id = create_child(
            graph,
            "a",
            {"title": "Buy milk", "dueDate": "2024-03-01", "id": "x", "depth": 9, "children": ["b"]},
            id_factory=make_ids(),
        )

        node = new_graph[new_id]
        assert new_id == "n1"
        assert node.title == "Buy milk"
        assert node.due_date == date(2024, 3, 1)
        assert node.depth == 2
        assert node.children == ()
        assert new_graph["a"].children == ("a1", "a2", "n1")

    def test_text_node_override(self):
        graph = sample_graph()
        new_graph, new_id = create_child(graph, "b", {"type": "text", "content": "hi"})
        node = new_graph[new_id]
        assert isinstance(node, TextNode)
        assert node.content == "hi"

    def test_regenerates_colliding_ids(self):
        graph = sample_graph()
        ids = iter(["a", "b", "fresh"])
        new_graph, new_id = create_child(graph, ROOT_ID, id_factory=lambda: next(ids))
        assert new_id == "fresh"
        assert new_graph["a"].title == "A"

    def test_original_snapshot_unchanged(self):
        graph = sample_graph()
        create_child(graph, "b")
        assert graph["b"].children == ()


class TestDeleteSubtree:
    """Tests for delete_subtree."""

    def test_removes_node_and_descendants(self):
        graph = sample_graph()
        new_graph = delete_subtree(graph, "a")

        assert set(new_graph) == {ROOT_ID, "b"}
        assert new_graph.root.children == ("b",)
        assert new_graph.parent_of("a1") is None

    def test_leaf_delete(self):
        new_graph = delete_subtree(sample_graph(), "a2")
        assert new_graph["a"].children == ("a1",)
        assert "a2" not in new_graph

    def test_root_and_absent_are_noops(self):
        graph = sample_graph()
        assert delete_subtree(graph, ROOT_ID) is graph
        assert delete_subtree(graph, "ghost") is graph

    def test_tolerates_cycles(self):
        graph = Graph({
            ROOT_ID: TaskNode(children=("x",)),
            "x": TaskNode(children=("y",)),
            "y": TaskNode(children=("x",)),
        })
        new_graph = delete_subtree(graph, "x")
        assert set(new_graph) == {ROOT_ID}
        assert new_graph.root.children == ()

    def test_no_dangling_references_remain(self):
        new_graph = delete_subtree(sample_graph(), "a")
        for node in new_graph.values():
            for child_id in node.children:
                assert child_id in new_graph


class TestPatchNode:
    """Tests for patch_node."""

    def test_shallow_merge(self):
        graph = sample_graph()
        new_graph = patch_node(graph, "b", {"title": "Bee", "completed": True, "repeatDays": 3})
        node = new_graph["b"]
        assert node.title == "Bee"
        assert node.completed is True
        assert node.repeat_days == 3
        assert graph["b"].title == "B"

    def test_absent_node_is_noop(self):
        graph = sample_graph()
        assert patch_node(graph, "ghost", {"title": "x"}) is graph

    def test_unchanged_values_return_same_graph(self):
        graph = sample_graph()
        assert patch_node(graph, "b", {"title": "B"}) is graph

    def test_children_permutation_allowed(self):
        new_graph = patch_node(sample_graph(), "a", {"children": ["a2", "a1"]})
        assert new_graph["a"].children == ("a2", "a1")

    def test_children_membership_change_rejected(self):
        with pytest.raises(GraphIntegrityError):
            patch_node(sample_graph(), "a", {"children": ["a1", "b"]})

    @pytest.mark.parametrize("field_name", ["id", "depth"])
    def test_structural_fields_rejected(self, field_name):
        with pytest.raises(GraphIntegrityError):
            patch_node(sample_graph(), "b", {field_name: 3})

    def test_foreign_field_rejected(self):
        with pytest.raises(InvalidNodeFieldError):
            patch_node(sample_graph(), "b", {"content": "text on a task"})

    def test_invalid_due_date_rejected(self):
        with pytest.raises(InvalidNodeFieldError):
            patch_node(sample_graph(), "b", {"dueDate": "next tuesday"})

    def test_clear_due_date(self):
        graph = patch_node(sample_graph(), "b", {"dueDate": "2024-01-01"})
        cleared = patch_node(graph, "b", {"dueDate": None})
        assert cleared["b"].due_date is None

    def test_convert_task_to_text(self):
        graph = patch_node(sample_graph(), "b", {"completed": True})
        new_graph = patch_node(graph, "b", {"type": "text"})
        node = new_graph["b"]
        assert node.node_type is NodeType.TEXT
        assert node.content == ""
        assert node.title == "B"
        assert new_graph.to_dict()["b"]["type"] == "text"

    def test_convert_text_to_task_resets_task_fields(self):
        new_graph = patch_node(sample_graph(), "a2", {"type": "task"})
        node = new_graph["a2"]
        assert isinstance(node, TaskNode)
        assert node.completed is False
        assert node.due_date is None
        assert node.repeat_days == 0
        assert "content" not in new_graph.to_dict()["a2"]


class TestReorderChildren:
    """Tests for reorder_children_by_position."""

    def test_sorts_by_position(self):
        graph = Graph({
            ROOT_ID: TaskNode(children=("a", "b", "c")),
            "a": TaskNode(depth=1),
            "b": TaskNode(depth=1),
            "c": TaskNode(depth=1),
        })
        new_graph = reorder_children_by_position(graph, ROOT_ID, {"a": 30.0, "b": 10.0, "c": 20.0})
        assert new_graph.root.children == ("b", "c", "a")

    def test_missing_positions_sort_last_and_ties_are_stable(self):
        graph = Graph({
            ROOT_ID: TaskNode(children=("a", "b", "c", "d")),
            "a": TaskNode(depth=1),
            "b": TaskNode(depth=1),
            "c": TaskNode(depth=1),
            "d": TaskNode(depth=1),
        })
        new_graph = reorder_children_by_position(graph, ROOT_ID, {"b": 5, "c": 5, "d": 1})
        assert new_graph.root.children == ("d", "b", "c", "a")

    def test_accepts_callable(self):
        graph = sample_graph()
        positions = {"a1": 2.0, "a2": 1.0}
        new_graph = reorder_children_by_position(graph, "a", positions.get)
        assert new_graph["a"].children == ("a2", "a1")

    def test_noop_cases(self):
        graph = sample_graph()
        assert reorder_children_by_position(graph, "b", {}) is graph
        assert reorder_children_by_position(graph, "ghost", {}) is graph
        assert reorder_children_by_position(graph, "a", {"a1": 1, "a2": 2}) is graph

    def test_reordering_twice_is_idempotent(self):
        graph = Graph({
            ROOT_ID: TaskNode(children=("a", "b", "c")),
            "a": TaskNode(depth=1),
            "b": TaskNode(depth=1),
            "c": TaskNode(depth=1),
        })
        positions = {"a": 3.0, "b": 1.0, "c": 2.0}

        once = reorder_children_by_position(graph, ROOT_ID, positions)
        twice = reorder_children_by_position(once, ROOT_ID, positions)

        assert twice is once
        assert twice.root.children == ("b", "c", "a")

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_position_is_rejected(self, bad):
        graph = sample_graph()
        with pytest.raises(GraphIntegrityError):
            reorder_children_by_position(graph, ROOT_ID, {"a": bad, "b": 1.0})
        assert graph.root.children == ("a", "b")


class TestRevealChildren:
    """Tests for reveal_children."""

    def test_reveals_direct_children_only(self):
        graph = Graph({
            ROOT_ID: TaskNode(children=("a",)),
            "a": TaskNode(children=("a1",), visible=False, depth=1),
            "a1": TaskNode(children=("a11",), visible=False, depth=2),
            "a11": TaskNode(visible=False, depth=3),
        })
        new_graph = reveal_children(graph, ["a"])
        assert new_graph["a1"].visible is True
        assert new_graph["a11"].visible is False
        assert new_graph["a"].visible is False

    def test_never_hides_and_noop_returns_same_graph(self):
        graph = sample_graph()
        assert reveal_children(graph, [ROOT_ID, "a", "ghost"]) is graph


class TestNavigation:
    """Tests for keyboard navigation helpers."""

    def test_collect_subtree(self):
        assert collect_subtree(sample_graph(), "a") == {"a", "a1", "a2"}

    def test_siblings_and_first_child(self):
        graph = sample_graph()
        assert first_child(graph, "a") == "a1"
        assert first_child(graph, "b") is None
        assert next_sibling(graph, "a1") == "a2"
        assert next_sibling(graph, "a2") is None
        assert previous_sibling(graph, "a2") == "a1"
        assert previous_sibling(graph, ROOT_ID) is None

    def test_selection_after_delete(self):
        graph = sample_graph()
        assert selection_after_delete(graph, "a2") == "a1"
        assert selection_after_delete(graph, "a1") == "a"
        assert selection_after_delete(graph, "b") == "a"
        assert selection_after_delete(graph, ROOT_ID) is None
