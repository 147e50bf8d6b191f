"""
First-load visibility normalization.
"""

from typing import Dict

from ..models.graph import Graph, ROOT_ID
from ..models.node import Node


def normalize_visibility(graph: Graph) -> Graph:
    """Hide everything except root and root's direct children."""
    shown = {ROOT_ID, *graph.children_of(ROOT_ID)}
    updated: Dict[str, Node] = {}
    for node_id, node in graph.items():
        visible = node_id in shown
        if node.visible != visible:
            updated[node_id] = node.replace(visible=visible)

    if not updated:
        return graph
    return graph.replace_nodes(updated)
