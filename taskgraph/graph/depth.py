"""
Depth recomputation.
"""

import logging
from collections import deque
from typing import Deque, Dict

from ..models.graph import Graph, ROOT_ID
from ..models.node import Node

logger = logging.getLogger(__name__)


def recompute_depths(graph: Graph) -> Graph:
    """
    Label every node reachable from root with its minimal BFS distance.

    Unreachable nodes keep their stored depth. Only nodes whose depth
    actually changes are rewritten; the same snapshot is returned when
    everything is already consistent.
    """
    depths: Dict[str, int] = {ROOT_ID: 0}
    queue: Deque[str] = deque([ROOT_ID])

    while queue:
        current = queue.popleft()
        node = graph.get(current)
        if node is None:
            continue
        next_depth = depths[current] + 1
        for child_id in node.children:
            if child_id not in graph:
                continue
            known = depths.get(child_id)
            if known is None or next_depth < known:
                depths[child_id] = next_depth
                queue.append(child_id)

    updated: Dict[str, Node] = {}
    for node_id, depth in depths.items():
        node = graph[node_id]
        if node.depth != depth:
            updated[node_id] = node.replace(depth=depth)

    unreachable = len(graph) - len(depths)
    if unreachable:
        logger.debug(f"{unreachable} nodes unreachable from root; depths left as stored")

    if not updated:
        return graph
    return graph.replace_nodes(updated)
