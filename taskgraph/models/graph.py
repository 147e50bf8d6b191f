"""
Graph snapshot model.

A Graph maps node ids to immutable nodes and keeps a reverse index from child
id to parent id. Snapshots are never mutated in place; `replace_nodes`
returns a new snapshot sharing unchanged nodes with the old one.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from .node import Node, TaskNode, node_from_dict

logger = logging.getLogger(__name__)

ROOT_ID = "root"


def default_root() -> Node:
    return TaskNode(title="Root Node", visible=True, depth=0)


class Graph(Mapping[str, Node]):
    """Immutable mapping of node id -> node with a parent index."""

    def __init__(self, nodes: Mapping[str, Node], parents: Optional[Dict[str, str]] = None):
        self._nodes: Dict[str, Node] = dict(nodes)
        if ROOT_ID not in self._nodes:
            self._nodes[ROOT_ID] = default_root()
        self._parents = parents if parents is not None else self._build_parent_index(self._nodes)

    @staticmethod
    def _build_parent_index(nodes: Mapping[str, Node]) -> Dict[str, str]:
        parents: Dict[str, str] = {}
        for node_id, node in nodes.items():
            for child_id in node.children:
                if child_id == ROOT_ID:
                    continue
                existing = parents.get(child_id)
                if existing is not None and existing != node_id:
                    logger.warning(
                        f"Node {child_id} listed under {existing} and {node_id}; keeping {existing}"
                    )
                    continue
                parents[child_id] = node_id
        return parents

    # Mapping protocol

    def __getitem__(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Graph):
            return self._nodes == other._nodes
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Graph({len(self._nodes)} nodes)"

    # Structure

    @property
    def root(self) -> Node:
        return self._nodes[ROOT_ID]

    def parent_of(self, node_id: str) -> Optional[str]:
        """Id of the node whose children contain `node_id`."""
        return self._parents.get(node_id)

    def children_of(self, node_id: str) -> Tuple[str, ...]:
        node = self._nodes.get(node_id)
        return node.children if node else ()

    def replace_nodes(
        self,
        updated: Optional[Mapping[str, Node]] = None,
        removed: Iterable[str] = (),
    ) -> "Graph":
        """Return a new snapshot with nodes updated/added and removed."""
        updated = updated or {}
        removed = [node_id for node_id in removed if node_id != ROOT_ID]
        nodes = dict(self._nodes)
        parents = dict(self._parents)

        def unlink_children(node_id: str, node: Node) -> None:
            for child_id in node.children:
                if parents.get(child_id) == node_id:
                    del parents[child_id]

        for node_id in removed:
            old = nodes.pop(node_id, None)
            parents.pop(node_id, None)
            if old is not None:
                unlink_children(node_id, old)

        for node_id, node in updated.items():
            old = nodes.get(node_id)
            if old is not None:
                unlink_children(node_id, old)
            nodes[node_id] = node

        for node_id, node in updated.items():
            for child_id in node.children:
                if child_id != ROOT_ID and child_id not in parents:
                    parents[child_id] = node_id

        return Graph(nodes, parents)

    # Serialization

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {node_id: node.to_dict() for node_id, node in self._nodes.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Graph":
        """Load a graph from its JSON document, skipping malformed entries."""
        nodes: Dict[str, Node] = {}
        for node_id, raw in data.items():
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed node entry {node_id!r}")
                continue
            nodes[str(node_id)] = node_from_dict(str(node_id), raw)

        # Strip references to ids that are not in the document
        for node_id, node in list(nodes.items()):
            kept = tuple(child for child in node.children if child in nodes)
            if kept != node.children:
                logger.warning(f"Dropping dangling children of {node_id}")
                nodes[node_id] = node.replace(children=kept)

        return cls(nodes)
