"""
Node models.

A node is either a task or a text note. Both variants share the structural
fields (title, children, visibility, depth); the variant decides which
payload fields exist. Nodes are immutable: every change produces a new node.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, Optional, Tuple

from .base import format_date, parse_date
from ..exceptions import InvalidNodeFieldError

logger = logging.getLogger(__name__)


class NodeType(Enum):
    """Kind of node."""
    TASK = "task"
    TEXT = "text"


# Wire (JSON document) names -> attribute names
WIRE_FIELD_NAMES: Dict[str, str] = {
    "dueDate": "due_date",
    "repeatDays": "repeat_days",
}

STRUCTURAL_FIELDS: FrozenSet[str] = frozenset({"title", "children", "visible", "depth"})


@dataclass(frozen=True)
class Node:
    """Fields common to every node."""
    title: str = ""
    children: Tuple[str, ...] = ()
    visible: bool = True
    depth: int = 0

    node_type: ClassVar[NodeType]

    @classmethod
    def field_names(cls) -> FrozenSet[str]:
        return frozenset(f.name for f in dataclasses.fields(cls))

    def replace(self, **changes: Any) -> "Node":
        return dataclasses.replace(self, **changes)

    def _base_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "type": self.node_type.value,
            "children": list(self.children),
            "visible": self.visible,
            "depth": self.depth,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self._base_dict()


@dataclass(frozen=True)
class TaskNode(Node):
    """A checkable task with an optional due date and repeat interval."""
    completed: bool = False
    due_date: Optional[date] = None
    repeat_days: int = 0

    node_type: ClassVar[NodeType] = NodeType.TASK

    @property
    def is_repeating(self) -> bool:
        return self.repeat_days > 0

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "completed": self.completed,
            "dueDate": format_date(self.due_date),
            "repeatDays": self.repeat_days,
        })
        return data


@dataclass(frozen=True)
class TextNode(Node):
    """A markdown note."""
    content: str = ""

    node_type: ClassVar[NodeType] = NodeType.TEXT

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data["content"] = self.content
        return data


def node_class(node_type: NodeType) -> type:
    """Resolve the dataclass implementing a node type."""
    if node_type is NodeType.TASK:
        return TaskNode
    if node_type is NodeType.TEXT:
        return TextNode
    raise ValueError(f"Unhandled node type: {node_type!r}")


def parse_node_type(value: Any) -> NodeType:
    if isinstance(value, NodeType):
        return value
    try:
        return NodeType(value)
    except ValueError:
        raise InvalidNodeFieldError("type", str(value), "unknown node type")


def normalize_field_names(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate wire names (dueDate) into attribute names (due_date)."""
    return {WIRE_FIELD_NAMES.get(key, key): value for key, value in fields.items()}


def coerce_field(node_type: NodeType, name: str, value: Any) -> Any:
    """Validate a single field value for a node type, returning the stored value."""
    label = node_type.value

    if name == "title":
        if value is None:
            return ""
        if not isinstance(value, str):
            raise InvalidNodeFieldError(name, label, "expected a string")
        return value

    if name == "children":
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise InvalidNodeFieldError(name, label, "expected a list of ids")
        return tuple(str(child) for child in value)

    if name in ("visible", "completed"):
        if not isinstance(value, bool):
            raise InvalidNodeFieldError(name, label, "expected a boolean")
        return value

    if name == "depth":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidNodeFieldError(name, label, "expected a non-negative integer")
        return value

    if name == "due_date":
        parsed = parse_date(value)
        if parsed is None and value not in (None, ""):
            raise InvalidNodeFieldError(name, label, "expected YYYY-MM-DD")
        return parsed

    if name == "repeat_days":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidNodeFieldError(name, label, "expected a non-negative integer")
        return value

    if name == "content":
        if value is None:
            return ""
        if not isinstance(value, str):
            raise InvalidNodeFieldError(name, label, "expected a string")
        return value

    raise InvalidNodeFieldError(name, label)


def build_node(node_type: NodeType, fields: Dict[str, Any]) -> Node:
    """Construct a node of the given type, validating every field."""
    cls = node_class(node_type)
    allowed = cls.field_names()
    values = {}
    for name, value in normalize_field_names(fields).items():
        if name not in allowed:
            raise InvalidNodeFieldError(name, node_type.value)
        values[name] = coerce_field(node_type, name, value)
    return cls(**values)


def convert_node(node: Node, target: NodeType) -> Node:
    """Change a node's type, keeping its structural fields."""
    if node.node_type is target:
        return node
    base = {
        "title": node.title,
        "children": node.children,
        "visible": node.visible,
        "depth": node.depth,
    }
    if target is NodeType.TASK:
        return TaskNode(completed=False, due_date=None, repeat_days=0, **base)
    if target is NodeType.TEXT:
        return TextNode(content=getattr(node, "content", "") or "", **base)
    raise ValueError(f"Unhandled node type: {target!r}")


def node_from_dict(node_id: str, data: Dict[str, Any]) -> Node:
    """
    Load a node from its JSON representation.

    Loading is lenient: unknown types fall back to task, malformed values are
    replaced by defaults and fields foreign to the node's type are dropped.
    """
    raw_type = data.get("type", NodeType.TASK.value)
    try:
        node_type = NodeType(raw_type)
    except ValueError:
        logger.warning(f"Node {node_id} has unknown type {raw_type!r}, loading as task")
        node_type = NodeType.TASK

    cls = node_class(node_type)
    allowed = cls.field_names()
    values = {}
    for name, value in normalize_field_names(data).items():
        if name not in allowed:
            continue
        try:
            values[name] = coerce_field(node_type, name, value)
        except InvalidNodeFieldError as e:
            logger.warning(f"Node {node_id}: {e.message}; using default")
    return cls(**values)
