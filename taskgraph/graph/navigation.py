"""
Read-only traversal helpers over a graph snapshot.
"""

from typing import List, Optional, Set

from ..models.graph import Graph, ROOT_ID


def collect_subtree(graph: Graph, start_id: str) -> Set[str]:
    """Ids of `start_id` and all of its descendants (cycle-safe)."""
    result: Set[str] = set()
    stack: List[str] = [start_id]
    while stack:
        current = stack.pop()
        if current in result:
            continue
        result.add(current)
        node = graph.get(current)
        if node is not None:
            stack.extend(node.children)
    return result


def parent_of(graph: Graph, node_id: str) -> Optional[str]:
    return graph.parent_of(node_id)


def first_child(graph: Graph, node_id: str) -> Optional[str]:
    children = graph.children_of(node_id)
    return children[0] if children else None


def _sibling(graph: Graph, node_id: str, offset: int) -> Optional[str]:
    parent_id = graph.parent_of(node_id)
    if parent_id is None:
        return None
    siblings = graph.children_of(parent_id)
    try:
        index = siblings.index(node_id) + offset
    except ValueError:
        return None
    if 0 <= index < len(siblings):
        return siblings[index]
    return None


def previous_sibling(graph: Graph, node_id: str) -> Optional[str]:
    return _sibling(graph, node_id, -1)


def next_sibling(graph: Graph, node_id: str) -> Optional[str]:
    return _sibling(graph, node_id, 1)


def selection_after_delete(graph: Graph, node_id: str) -> Optional[str]:
    """
    Node to select once `node_id` is deleted.

    The previous sibling when there is one, otherwise the parent. Computed on
    the graph *before* the deletion.
    """
    if node_id == ROOT_ID:
        return None
    return previous_sibling(graph, node_id) or graph.parent_of(node_id)
