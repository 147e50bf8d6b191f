"""
Data models for TaskGraph.
"""

from .base import generate_id, parse_date, format_date
from .node import (
    NodeType,
    Node,
    TaskNode,
    TextNode,
    build_node,
    convert_node,
    node_from_dict,
    normalize_field_names,
    parse_node_type,
)
from .graph import Graph, ROOT_ID, default_root

__all__ = [
    # Helpers
    'generate_id',
    'parse_date',
    'format_date',

    # Nodes
    'NodeType',
    'Node',
    'TaskNode',
    'TextNode',
    'build_node',
    'convert_node',
    'node_from_dict',
    'normalize_field_names',
    'parse_node_type',

    # Graph
    'Graph',
    'ROOT_ID',
    'default_root',
]
