"""FastAPI routes for node structure operations and traversal queries."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from nestset.api.schemas import (
    CreateChildRequest,
    CreateNodeRequest,
    CreateSiblingRequest,
    DeleteResponse,
    IntegrityProblemResponse,
    IntegrityReport,
    MoveNodeRequest,
    NodeResponse,
    PatchNodeRequest,
)
from nestset.errors import (
    ConstraintViolationError,
    InvalidOperationError,
    NestedSetError,
    NodeNotFoundError,
    StoreFailureError,
)
from nestset.models import (
    AppendTo,
    InsertAfter,
    InsertBefore,
    MakeRoot,
    Node,
    PrependTo,
)
from nestset.queries import NodeQuery
from nestset.service import NestedSetService

router = APIRouter(prefix="/api/nodes", tags=["nodes"])

_PLACEMENTS = {
    "prepend_to": PrependTo,
    "append_to": AppendTo,
    "insert_before": InsertBefore,
    "insert_after": InsertAfter,
}


def get_service() -> NestedSetService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("NestedSetService not initialized")


def _http_error(e: NestedSetError) -> HTTPException:
    if isinstance(e, NodeNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConstraintViolationError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidOperationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StoreFailureError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


async def _load(service: NestedSetService, node_id: int) -> Node:
    try:
        return await service.get(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


async def _rows(query: NodeQuery) -> list[NodeResponse]:
    return [NodeResponse.from_node(node) for node in await query.all()]


# -- Collection routes (registered before /{node_id}) --


@router.post("/roots", status_code=status.HTTP_201_CREATED)
async def create_root(
    request: CreateNodeRequest,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    try:
        node = await service.make_root(Node(name=request.name, data=request.data))
    except NestedSetError as e:
        raise _http_error(e)
    return NodeResponse.from_node(node)


@router.get("/roots")
async def list_roots(
    service: NestedSetService = Depends(get_service),
) -> list[NodeResponse]:
    return await _rows(service.queries.roots())


@router.get("/check")
async def check(
    tree_id: int | None = None,
    service: NestedSetService = Depends(get_service),
) -> IntegrityReport:
    problems = await service.check(tree_id)
    return IntegrityReport(
        tree_id=tree_id,
        valid=not problems,
        problems=[
            IntegrityProblemResponse(code=p.code, message=p.message, node_ids=p.node_ids)
            for p in problems
        ],
    )


# -- Structure --


@router.post("/{target_id}/children", status_code=status.HTTP_201_CREATED)
async def create_child(
    target_id: int,
    request: CreateChildRequest,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    target = await _load(service, target_id)
    node = Node(name=request.name, data=request.data)
    try:
        if request.position == "first":
            node = await service.prepend_to(node, target)
        else:
            node = await service.append_to(node, target)
    except NestedSetError as e:
        raise _http_error(e)
    return NodeResponse.from_node(node)


@router.post("/{target_id}/siblings", status_code=status.HTTP_201_CREATED)
async def create_sibling(
    target_id: int,
    request: CreateSiblingRequest,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    target = await _load(service, target_id)
    node = Node(name=request.name, data=request.data)
    try:
        if request.position == "before":
            node = await service.insert_before(node, target)
        else:
            node = await service.insert_after(node, target)
    except NestedSetError as e:
        raise _http_error(e)
    return NodeResponse.from_node(node)


@router.post("/{node_id}/move")
async def move_node(
    node_id: int,
    request: MoveNodeRequest,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    node = await _load(service, node_id)
    if request.operation == "make_root":
        operation = MakeRoot()
    else:
        if request.target_id is None:
            raise HTTPException(
                status_code=422, detail=f"{request.operation} requires target_id"
            )
        target = await _load(service, request.target_id)
        operation = _PLACEMENTS[request.operation](target=target)
    try:
        moved = await service.save(node, operation)
    except NestedSetError as e:
        raise _http_error(e)
    return NodeResponse.from_node(moved)


@router.patch("/{node_id}")
async def update_node(
    node_id: int,
    request: PatchNodeRequest,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    node = await _load(service, node_id)
    changes = {field: getattr(request, field) for field in request.model_fields_set}
    try:
        updated = await service.save(node.model_copy(update=changes))
    except NestedSetError as e:
        raise _http_error(e)
    return NodeResponse.from_node(updated)


@router.delete("/{node_id}")
async def delete_node(
    node_id: int,
    with_descendants: bool = False,
    service: NestedSetService = Depends(get_service),
) -> DeleteResponse:
    node = await _load(service, node_id)
    try:
        if with_descendants:
            removed = await service.delete_with_descendants(node)
        else:
            removed = await service.delete(node)
    except NestedSetError as e:
        raise _http_error(e)
    return DeleteResponse(removed=removed)


# -- Traversal --


@router.get("/{node_id}")
async def get_node(
    node_id: int,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    return NodeResponse.from_node(await _load(service, node_id))


@router.get("/{node_id}/descendants")
async def get_descendants(
    node_id: int,
    depth: int | None = Query(default=None, ge=1),
    service: NestedSetService = Depends(get_service),
) -> list[NodeResponse]:
    node = await _load(service, node_id)
    return await _rows(service.queries.descendants(node, depth))


@router.get("/{node_id}/children")
async def get_children(
    node_id: int,
    service: NestedSetService = Depends(get_service),
) -> list[NodeResponse]:
    node = await _load(service, node_id)
    return await _rows(service.queries.children(node))


@router.get("/{node_id}/ancestors")
async def get_ancestors(
    node_id: int,
    depth: int | None = Query(default=None, ge=1),
    service: NestedSetService = Depends(get_service),
) -> list[NodeResponse]:
    node = await _load(service, node_id)
    return await _rows(service.queries.ancestors(node, depth))


@router.get("/{node_id}/parent")
async def get_parent(
    node_id: int,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    node = await _load(service, node_id)
    parent = await service.queries.parent(node).one()
    if parent is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} has no parent")
    return NodeResponse.from_node(parent)


@router.get("/{node_id}/prev")
async def get_prev(
    node_id: int,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    node = await _load(service, node_id)
    sibling = await service.queries.prev(node).one()
    if sibling is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} has no previous sibling")
    return NodeResponse.from_node(sibling)


@router.get("/{node_id}/next")
async def get_next(
    node_id: int,
    service: NestedSetService = Depends(get_service),
) -> NodeResponse:
    node = await _load(service, node_id)
    sibling = await service.queries.next(node).one()
    if sibling is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} has no next sibling")
    return NodeResponse.from_node(sibling)
