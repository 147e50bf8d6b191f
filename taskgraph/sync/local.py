"""
Local JSON file fallback used when remote sync is not configured.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from ..graph.visibility import normalize_visibility
from ..models.graph import Graph

logger = logging.getLogger(__name__)

STORAGE_KEY = "taskgraph:userData"


class LocalStateFile:
    """
    Graph persisted under a fixed key in a JSON file.

    Failures are logged and never raised; the in-memory graph stays the
    source of truth.
    """

    def __init__(self, path: Path):
        self.path = path

    def load(self, default: Optional[Graph] = None) -> Graph:
        """
        Read the stored graph, normalize its visibility and write it back.

        Args:
            default: Graph to use when nothing usable is stored

        Returns:
            Loaded graph, or `default` (a bare root when omitted)
        """
        graph = default if default is not None else Graph({})
        raw = self._read()
        if raw is not None:
            graph = Graph.from_dict(raw)

        graph = normalize_visibility(graph)
        self.save(graph)
        return graph

    def _read(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {self.path}: {e}")
            return None

        stored = data.get(STORAGE_KEY) if isinstance(data, dict) else None
        if not isinstance(stored, dict):
            logger.warning(f"No graph stored under {STORAGE_KEY} in {self.path}")
            return None
        return stored

    def save(self, graph: Graph) -> bool:
        """Write the graph; returns False (after logging) on failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump({STORAGE_KEY: graph.to_dict()}, f, indent=2)
            tmp_path.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save {self.path}: {e}")
            return False
