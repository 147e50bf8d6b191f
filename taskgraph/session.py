"""
Graph editing session.

Owns the current graph snapshot, applies mutations to it and hands every
changed snapshot to persistence: the sync engine when remote sync is
configured, the local state file otherwise.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .exceptions import GraphIntegrityError, NodeNotFoundError
from .graph import (
    DueTask,
    advance_recurring_tasks,
    create_child,
    delete_subtree,
    due_tasks,
    normalize_visibility,
    patch_node,
    recompute_depths,
    reorder_children_by_position,
    reveal_children,
    selection_after_delete,
)
from .graph.store import PositionSource
from .models.graph import Graph, ROOT_ID
from .sync.engine import SyncEngine
from .sync.local import LocalStateFile

logger = logging.getLogger(__name__)


class GraphSession:
    """
    Current graph plus its persistence.

    Mutations return quickly; persistence is asynchronous (debounced) with a
    sync engine and immediate with a local file.
    """

    def __init__(
        self,
        engine: Optional[SyncEngine] = None,
        local_file: Optional[LocalStateFile] = None,
        graph: Optional[Graph] = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the session.

        Args:
            engine: Remote sync engine; takes precedence over `local_file`
            local_file: Local fallback storage
            graph: Initial graph (bare root when omitted)
            clock: Source of "today" for recurring tasks and the agenda
        """
        self.engine = engine
        self.local_file = local_file
        self.clock = clock
        self._graph = graph if graph is not None else Graph({})
        self._first_load_done = False

        if engine is not None:
            engine.on_remote_state = self.adopt

    @property
    def graph(self) -> Graph:
        return self._graph

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load persisted state."""
        if self.engine is not None:
            await self.engine.start()
        elif self.local_file is not None:
            loaded = self.local_file.load(self._graph)
            self._first_load_done = True
            self._graph = loaded
            self._commit(self._prepare(loaded))

    async def connect(self) -> None:
        """Connect remote sync after the user granted access."""
        if self.engine is None:
            raise GraphIntegrityError("Remote sync is not configured")
        await self.engine.connect()

    async def flush(self) -> None:
        if self.engine is not None:
            await self.engine.flush()

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.close()

    def adopt(self, payload: Mapping[str, Any]) -> None:
        """
        Replace the current graph with a loaded document.

        Recurring tasks are advanced and depths recomputed; on the first
        load, visibility is normalized too. A document changed by this
        pipeline is scheduled for saving.
        """
        loaded = Graph.from_dict(payload)
        prepared = self._prepare(loaded)
        if not self._first_load_done:
            prepared = normalize_visibility(prepared)
            self._first_load_done = True

        self._graph = prepared
        logger.info(f"Adopted document with {len(prepared)} nodes")

        if prepared.to_dict() != dict(payload):
            self._persist()

    def _prepare(self, graph: Graph) -> Graph:
        return recompute_depths(advance_recurring_tasks(graph, self.clock()))

    def _commit(self, graph: Graph) -> bool:
        if graph is self._graph:
            return False
        self._graph = graph
        self._persist()
        return True

    def _persist(self) -> None:
        if self.engine is not None:
            self.engine.schedule(self._graph.to_dict())
        elif self.local_file is not None:
            self.local_file.save(self._graph)

    def _require(self, node_id: str) -> None:
        if node_id not in self._graph:
            raise NodeNotFoundError(node_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_child(self, parent_id: str, overrides: Optional[Mapping[str, Any]] = None) -> str:
        """Create a child node, returning its id."""
        self._require(parent_id)
        graph, new_id = create_child(self._graph, parent_id, overrides)
        self._commit(graph)
        return new_id

    def patch(self, node_id: str, fields: Mapping[str, Any]) -> bool:
        """Patch a node; returns whether anything changed."""
        self._require(node_id)
        return self._commit(patch_node(self._graph, node_id, fields))

    def delete(self, node_id: str) -> Optional[str]:
        """Delete a subtree, returning the node to select next."""
        if node_id == ROOT_ID:
            raise GraphIntegrityError("Root node cannot be deleted", node_id)
        self._require(node_id)
        selection = selection_after_delete(self._graph, node_id)
        self._commit(delete_subtree(self._graph, node_id))
        return selection

    def reorder_children(self, parent_id: str, position_of: PositionSource) -> bool:
        self._require(parent_id)
        return self._commit(reorder_children_by_position(self._graph, parent_id, position_of))

    def reveal(self, ids: Iterable[str]) -> bool:
        return self._commit(reveal_children(self._graph, ids))

    # =========================================================================
    # Queries
    # =========================================================================

    def agenda(self, today: Optional[date] = None) -> List[DueTask]:
        return due_tasks(self._graph, today or self.clock())

    def get_status(self) -> Dict[str, Any]:
        if self.engine is not None:
            return self.engine.get_status()
        return {
            "status": "local" if self.local_file is not None else "memory",
            "path": str(self.local_file.path) if self.local_file is not None else None,
        }
