"""
Graph operations and derivation passes.
"""

from .store import (
    create_child,
    delete_subtree,
    patch_node,
    convert_node_type,
    reorder_children_by_position,
    reveal_children,
)
from .navigation import (
    collect_subtree,
    parent_of,
    first_child,
    previous_sibling,
    next_sibling,
    selection_after_delete,
)
from .depth import recompute_depths
from .visibility import normalize_visibility
from .recurrence import advance_recurring_tasks, next_occurrence, due_tasks, DueTask

__all__ = [
    # Mutations
    "create_child",
    "delete_subtree",
    "patch_node",
    "convert_node_type",
    "reorder_children_by_position",
    "reveal_children",
    # Navigation
    "collect_subtree",
    "parent_of",
    "first_child",
    "previous_sibling",
    "next_sibling",
    "selection_after_delete",
    # Derivations
    "recompute_depths",
    "normalize_visibility",
    "advance_recurring_tasks",
    "next_occurrence",
    "due_tasks",
    "DueTask",
]
