"""
Recurring task handling and the due-task agenda.

A completed repeating task whose due date has passed comes back as an open
task, due on the first repeat date that is not in the past.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

from ..models.graph import Graph
from ..models.node import Node, TaskNode

logger = logging.getLogger(__name__)


def next_occurrence(due_date: date, repeat_days: int, today: date) -> Optional[date]:
    """
    First date `due_date + k * repeat_days` (k >= 0) that is on or after `today`.

    Returns None when the result falls outside the supported calendar range.
    """
    if repeat_days <= 0 or due_date >= today:
        return due_date
    overdue_days = (today - due_date).days
    steps = -(-overdue_days // repeat_days)
    try:
        return due_date + timedelta(days=steps * repeat_days)
    except OverflowError:
        return None


def advance_recurring_tasks(graph: Graph, today: date) -> Graph:
    """
    Reopen completed repeating tasks whose due date is before `today`.

    Tasks that are open, undated or non-repeating are left untouched.
    """
    updated: Dict[str, Node] = {}
    for node_id, node in graph.items():
        if not isinstance(node, TaskNode):
            continue
        if not node.completed or node.due_date is None or node.repeat_days <= 0:
            continue
        if node.due_date >= today:
            continue

        new_due = next_occurrence(node.due_date, node.repeat_days, today)
        if new_due is None:
            logger.warning(
                f"Cannot advance task {node_id}: repeat of {node.repeat_days} days "
                f"from {node.due_date} is out of range"
            )
            continue

        updated[node_id] = node.replace(due_date=new_due, completed=False)
        logger.debug(f"Task {node_id} advanced from {node.due_date} to {new_due}")

    if not updated:
        return graph
    logger.info(f"Reopened {len(updated)} recurring tasks")
    return graph.replace_nodes(updated)


@dataclass(frozen=True)
class DueTask:
    """An open task due today or earlier."""
    node_id: str
    title: str
    due_date: date
    repeat_days: int
    overdue: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.node_id,
            "title": self.title,
            "dueDate": self.due_date.isoformat(),
            "repeatDays": self.repeat_days,
            "overdue": self.overdue,
        }


def due_tasks(graph: Graph, today: date) -> List[DueTask]:
    """
    Open tasks due on or before `today`.

    Overdue tasks come first, oldest first (then by title); tasks due today
    follow, ordered by title.
    """
    items = [
        DueTask(
            node_id=node_id,
            title=node.title,
            due_date=node.due_date,
            repeat_days=node.repeat_days,
            overdue=node.due_date < today,
        )
        for node_id, node in graph.items()
        if isinstance(node, TaskNode)
        and not node.completed
        and node.due_date is not None
        and node.due_date <= today
    ]
    overdue = sorted((t for t in items if t.overdue), key=lambda t: (t.due_date, t.title))
    due_today = sorted((t for t in items if not t.overdue), key=lambda t: t.title)
    return overdue + due_today
