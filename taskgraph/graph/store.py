"""
Graph mutation operations.

Every operation takes a snapshot and returns a snapshot. When an operation
has nothing to do it returns the very same Graph object, so callers can skip
downstream work (persistence, re-rendering) with an identity check.
"""

import logging
import math
from collections import Counter
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from .navigation import collect_subtree
from ..exceptions import GraphIntegrityError, InvalidNodeFieldError
from ..models.base import generate_id
from ..models.graph import Graph, ROOT_ID
from ..models.node import (
    Node,
    NodeType,
    build_node,
    coerce_field,
    convert_node,
    normalize_field_names,
    parse_node_type,
)

logger = logging.getLogger(__name__)

PositionSource = Union[Mapping[str, float], Callable[[str], Optional[float]]]

# Fields callers may never set when creating a child
PROTECTED_CREATE_FIELDS = ("id", "depth", "children")


def create_child(
    graph: Graph,
    parent_id: str,
    overrides: Optional[Mapping[str, Any]] = None,
    id_factory: Callable[[], str] = generate_id,
) -> Tuple[Graph, Optional[str]]:
    """
    Append a new child node under `parent_id`.

    Args:
        graph: Current snapshot
        parent_id: Parent node id
        overrides: Field values applied over the defaults (wire or attribute names)
        id_factory: Generator for the new node id

    Returns:
        Tuple of (new snapshot, new node id); (graph, None) when the parent is absent
    """
    parent = graph.get(parent_id)
    if parent is None:
        logger.debug(f"create_child: parent {parent_id} not found")
        return graph, None

    fields = normalize_field_names(dict(overrides or {}))
    for name in PROTECTED_CREATE_FIELDS:
        if name in fields:
            logger.debug(f"create_child: ignoring protected field {name!r}")
            fields.pop(name)

    node_type = parse_node_type(fields.pop("type", NodeType.TASK))
    values: Dict[str, Any] = {"title": "", "visible": True}
    if node_type is NodeType.TASK:
        values.update(completed=False, due_date=None, repeat_days=0)
    values.update(fields)

    node = build_node(node_type, values).replace(depth=parent.depth + 1)

    new_id = id_factory()
    while new_id in graph:
        new_id = id_factory()

    return graph.replace_nodes({
        new_id: node,
        parent_id: parent.replace(children=parent.children + (new_id,)),
    }), new_id


def delete_subtree(graph: Graph, node_id: str) -> Graph:
    """Remove a node with all of its descendants and every reference to them."""
    if node_id == ROOT_ID or node_id not in graph:
        return graph

    doomed = collect_subtree(graph, node_id)
    doomed.discard(ROOT_ID)

    updated: Dict[str, Node] = {}
    for other_id, node in graph.items():
        if other_id in doomed:
            continue
        if any(child_id in doomed for child_id in node.children):
            updated[other_id] = node.replace(
                children=tuple(child_id for child_id in node.children if child_id not in doomed)
            )

    logger.debug(f"Deleting subtree of {node_id} ({len(doomed)} nodes)")
    return graph.replace_nodes(updated, removed=doomed)


def patch_node(graph: Graph, node_id: str, fields: Mapping[str, Any]) -> Graph:
    """
    Shallow-merge `fields` into a node.

    A `type` entry converts the node first. `children` may be reordered but
    its membership cannot change; `id` and `depth` cannot be patched.

    Raises:
        GraphIntegrityError: If the patch would change structure
        InvalidNodeFieldError: If a field does not belong to the node's type
    """
    current = graph.get(node_id)
    if current is None:
        return graph

    changes = normalize_field_names(dict(fields))
    for name in ("id", "depth"):
        if name in changes:
            raise GraphIntegrityError(f"Field '{name}' cannot be patched", node_id)

    node = current
    if "type" in changes:
        node = convert_node(node, parse_node_type(changes.pop("type")))

    if "children" in changes:
        children = coerce_field(node.node_type, "children", changes["children"])
        if Counter(children) != Counter(node.children):
            raise GraphIntegrityError("Patch cannot change children membership", node_id)
        changes["children"] = children

    allowed = type(node).field_names()
    values: Dict[str, Any] = {}
    for name, value in changes.items():
        if name not in allowed:
            # Clearing a field of the other variant is harmless
            if value is None:
                continue
            raise InvalidNodeFieldError(name, node.node_type.value)
        values[name] = coerce_field(node.node_type, name, value)

    patched = node.replace(**values) if values else node
    if patched == current:
        return graph
    return graph.replace_nodes({node_id: patched})


def convert_node_type(graph: Graph, node_id: str, node_type: NodeType) -> Graph:
    """Switch a node between task and text."""
    return patch_node(graph, node_id, {"type": node_type})


def reorder_children_by_position(
    graph: Graph,
    parent_id: str,
    position_of: PositionSource,
) -> Graph:
    """
    Stable-sort a parent's children by a scalar position (e.g. on-screen y).

    Ties keep the current order; children without a position go last.
    NaN or infinite positions are rejected with GraphIntegrityError.
    """
    parent = graph.get(parent_id)
    if parent is None or len(parent.children) < 2:
        return graph

    if isinstance(position_of, Mapping):
        positions = position_of
        lookup: Callable[[str], Optional[float]] = positions.get
    else:
        lookup = position_of

    def sort_key(item: Tuple[int, str]) -> Tuple[float, int]:
        index, child_id = item
        position = lookup(child_id)
        if position is None:
            return (math.inf, index)
        position = float(position)
        if not math.isfinite(position):
            raise GraphIntegrityError(f"Position of {child_id} is not a finite number", parent_id)
        return (position, index)

    ordered = tuple(child_id for _, child_id in sorted(enumerate(parent.children), key=sort_key))
    if ordered == parent.children:
        return graph

    return graph.replace_nodes({parent_id: parent.replace(children=ordered)})


def reveal_children(graph: Graph, ids: Iterable[str]) -> Graph:
    """Make the direct children of each id visible. Never hides anything."""
    updated: Dict[str, Node] = {}
    for node_id in ids:
        for child_id in graph.children_of(node_id):
            child = updated.get(child_id) or graph.get(child_id)
            if child is not None and not child.visible:
                updated[child_id] = child.replace(visible=True)

    if not updated:
        return graph
    return graph.replace_nodes(updated)
