"""
Graph and node routes.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from . import get_session
from ..models import (
    ChangedResponse,
    CreatedResponse,
    DeletedResponse,
    DueTaskResponse,
    ErrorResponse,
    NodeFields,
    NodePatch,
    ReorderRequest,
    RevealRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/graph", summary="Current graph snapshot")
async def get_graph() -> Dict[str, Any]:
    """Whole graph in document format (id -> node)."""
    return get_session().graph.to_dict()


@router.post(
    "/nodes/reveal",
    response_model=ChangedResponse,
    summary="Show the direct children of nodes",
)
async def reveal(body: RevealRequest):
    changed = get_session().reveal(body.ids)
    return ChangedResponse(changed=changed)


@router.post(
    "/nodes/{parent_id}/children",
    response_model=CreatedResponse,
    status_code=201,
    summary="Create a child node",
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_child(parent_id: str, body: Optional[NodeFields] = None):
    """Append a new node to the end of the parent's children."""
    overrides = body.provided() if body is not None else {}
    new_id = get_session().create_child(parent_id, overrides)
    logger.debug(f"Created node {new_id} under {parent_id}")
    return CreatedResponse(id=new_id)


@router.patch(
    "/nodes/{node_id}",
    response_model=ChangedResponse,
    summary="Update node fields",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def patch_node(node_id: str, body: NodePatch):
    changed = get_session().patch(node_id, body.provided())
    return ChangedResponse(changed=changed)


@router.delete(
    "/nodes/{node_id}",
    response_model=DeletedResponse,
    summary="Delete a node and its subtree",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_node(node_id: str):
    """Delete a subtree and return the node to select next."""
    selection = get_session().delete(node_id)
    return DeletedResponse(select=selection)


@router.post(
    "/nodes/{parent_id}/reorder",
    response_model=ChangedResponse,
    summary="Reorder children by position",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def reorder_children(parent_id: str, body: ReorderRequest):
    changed = get_session().reorder_children(parent_id, body.positions)
    return ChangedResponse(changed=changed)


@router.get(
    "/agenda",
    response_model=List[DueTaskResponse],
    summary="Open tasks due today or earlier",
)
async def get_agenda():
    return [DueTaskResponse(**task.to_dict()) for task in get_session().agenda()]
