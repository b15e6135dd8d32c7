"""Request and response schemas for the node endpoints."""

from typing import Any, Literal

from pydantic import BaseModel

from nestset.models import Node

# -- Requests --


class CreateNodeRequest(BaseModel):
    name: str | None = None
    data: dict[str, Any] | list[Any] | None = None


class CreateChildRequest(CreateNodeRequest):
    position: Literal["first", "last"] = "last"


class CreateSiblingRequest(CreateNodeRequest):
    position: Literal["before", "after"] = "after"


class MoveNodeRequest(BaseModel):
    """Request body for POST /api/nodes/{node_id}/move. target_id is required except for make_root."""

    operation: Literal["make_root", "prepend_to", "append_to", "insert_before", "insert_after"]
    target_id: int | None = None


class PatchNodeRequest(BaseModel):
    """Payload fields to update. Only fields present in the request body are changed."""

    name: str | None = None
    data: dict[str, Any] | list[Any] | None = None


# -- Responses --


class NodeResponse(BaseModel):
    id: int
    name: str | None = None
    data: dict[str, Any] | list[Any] | None = None
    left: int
    right: int
    depth: int
    tree_id: int | None = None
    is_leaf: bool
    is_root: bool

    @classmethod
    def from_node(cls, node: Node) -> "NodeResponse":
        return cls(
            id=node.id,
            name=node.name,
            data=node.data,
            left=node.left,
            right=node.right,
            depth=node.depth,
            tree_id=node.tree_id,
            is_leaf=node.is_leaf(),
            is_root=node.is_root(),
        )


class DeleteResponse(BaseModel):
    removed: int


class IntegrityProblemResponse(BaseModel):
    code: str
    message: str
    node_ids: list[int | None]


class IntegrityReport(BaseModel):
    tree_id: int | None = None
    valid: bool
    problems: list[IntegrityProblemResponse]
