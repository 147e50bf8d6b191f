"""
API request and response schemas.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.node import NodeType


class NodeFields(BaseModel):
    """Node fields settable through the API (wire names)."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    type: Optional[NodeType] = None
    visible: Optional[bool] = None
    completed: Optional[bool] = None
    dueDate: Optional[str] = None
    repeatDays: Optional[int] = Field(None, ge=0)
    content: Optional[str] = None

    def provided(self) -> Dict[str, Any]:
        """Only the fields present in the request body."""
        return self.model_dump(exclude_unset=True)


class NodePatch(NodeFields):
    """Patch body; children may be reordered but not changed."""
    children: Optional[List[str]] = None


class ReorderRequest(BaseModel):
    """Scalar position (e.g. on-screen y) per child id."""
    positions: Dict[str, float] = Field(default_factory=dict)


class RevealRequest(BaseModel):
    """Nodes whose direct children become visible."""
    ids: List[str]


class CreatedResponse(BaseModel):
    id: str


class ChangedResponse(BaseModel):
    changed: bool


class DeletedResponse(BaseModel):
    """Node to select after the deletion."""
    select: Optional[str] = None


class DueTaskResponse(BaseModel):
    id: str
    title: str
    dueDate: str
    repeatDays: int
    overdue: bool


class ErrorDetail(BaseModel):
    """Error detail."""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: ErrorDetail
