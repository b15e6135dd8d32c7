"""Mutation service: validates and applies structural changes to nested-set trees.

Every structural change runs inside one transaction: fresh re-read of the
acting node and the target, precondition checks, the algebra plan applied
step by step, then commit. Nothing is written before validation passes, and
a failure at any point rolls the whole change back.
"""

import logging
from enum import Enum

from nestset.algebra import (
    plan_delete,
    plan_insert,
    plan_make_root,
    plan_move,
    root_interval,
)
from nestset.db.connection import Database
from nestset.errors import (
    ConstraintViolationError,
    InvalidOperationError,
    NodeNotFoundError,
)
from nestset.integrity import IntegrityProblem, check_tree
from nestset.models import (
    AppendTo,
    Delete,
    DeleteWithDescendants,
    InsertAfter,
    InsertBefore,
    MakeRoot,
    NestedSetSchema,
    Node,
    PrependTo,
    RemoveOperation,
    SaveOperation,
)
from nestset.predicates import Condition, IntervalUpdate
from nestset.queries import TreeQueries
from nestset.store import IntervalStore

logger = logging.getLogger(__name__)

_SIBLING_PLACEMENTS = ("insert_before", "insert_after")


class OperationState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    VALIDATING = "validating"
    SHIFTING = "shifting"
    COMMITTING = "committing"
    ABORTED = "aborted"


class NestedSetService:
    """Creates, moves and deletes nodes while keeping every interval consistent."""

    def __init__(self, db: Database, schema: NestedSetSchema | None = None) -> None:
        self._db = db
        self._schema = schema or NestedSetSchema()
        self._store = IntervalStore(db, self._schema)
        self.queries = TreeQueries(db, self._schema)
        self._state = OperationState.IDLE

    @property
    def schema(self) -> NestedSetSchema:
        return self._schema

    @property
    def state(self) -> OperationState:
        return self._state

    def _transition(self, state: OperationState) -> None:
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state

    async def get(self, node_id: int) -> Node:
        return await self._store.get(node_id)

    async def check(self, tree_id: int | None = None) -> list[IntegrityProblem]:
        """Return every invariant violation in one tree, or in each tree without an id."""
        return await check_tree(self._db, self._schema, tree_id)

    # -- Structural operations --

    async def make_root(self, node: Node) -> Node:
        """Create ``node`` as a new root, or detach a stored node into its own tree."""
        return await self.save(node, MakeRoot())

    async def prepend_to(self, node: Node, target: Node) -> Node:
        """Create or move ``node`` as the first child of ``target``."""
        return await self.save(node, PrependTo(target=target))

    async def append_to(self, node: Node, target: Node) -> Node:
        """Create or move ``node`` as the last child of ``target``."""
        return await self.save(node, AppendTo(target=target))

    async def insert_before(self, node: Node, target: Node) -> Node:
        """Create or move ``node`` as the previous sibling of ``target``."""
        return await self.save(node, InsertBefore(target=target))

    async def insert_after(self, node: Node, target: Node) -> Node:
        """Create or move ``node`` as the next sibling of ``target``."""
        return await self.save(node, InsertAfter(target=target))

    async def delete(self, node: Node) -> int:
        """Delete ``node`` alone; its children move up to its parent."""
        return await self.remove(node, Delete())

    async def delete_with_descendants(self, node: Node) -> int:
        """Delete ``node`` and its whole subtree. Returns the number of removed rows."""
        return await self.remove(node, DeleteWithDescendants())

    async def save(
        self,
        node: Node,
        operation: SaveOperation | None = None,
    ) -> Node:
        """Store ``node`` according to ``operation`` and return its fresh state.

        A transient node is created; a stored node is moved. Without an
        operation a stored node only has its payload updated.
        """
        if operation is None:
            if node.is_new:
                raise InvalidOperationError(
                    "Inserting a node requires a placement operation"
                )
            return await self._update_payload(node)

        kind = getattr(operation, "kind", type(operation).__name__)
        try:
            self._transition(OperationState.PREPARING)
            self._check_operation(node, operation)
            async with self._db.transaction():
                if node.is_new:
                    node_id = await self._create(node, operation)
                else:
                    node_id = await self._move(node, operation)
                result = await self._store.get(node_id)
                self._transition(OperationState.COMMITTING)
        except Exception as e:
            self._transition(OperationState.ABORTED)
            logger.warning("%s aborted for node %s: %s", kind, node.id, e)
            raise
        finally:
            self._transition(OperationState.IDLE)

        logger.info(
            "%s committed: node %s at [%s, %s] depth %s tree %s",
            kind, result.id, result.left, result.right, result.depth, result.tree_id,
        )
        return result

    async def remove(self, node: Node, operation: RemoveOperation) -> int:
        """Delete according to ``operation`` and return the number of removed rows."""
        if not isinstance(operation, (Delete, DeleteWithDescendants)):
            raise InvalidOperationError(f"Unsupported delete operation: {operation!r}", node.id)

        kind = operation.kind
        try:
            self._transition(OperationState.PREPARING)
            if node.is_new:
                raise ConstraintViolationError(
                    "Can not delete a node that has not been stored", node.id
                )
            async with self._db.transaction():
                current = await self._fetch_current(node)
                self._transition(OperationState.VALIDATING)
                with_descendants = isinstance(operation, DeleteWithDescendants)
                if current.is_root() and not with_descendants:
                    raise InvalidOperationError(
                        "Deleting a root node requires delete_with_descendants", node.id
                    )
                self._transition(OperationState.SHIFTING)
                removed = await self._store.apply(
                    plan_delete(current.interval, current.id, with_descendants)
                )
                self._transition(OperationState.COMMITTING)
        except Exception as e:
            self._transition(OperationState.ABORTED)
            logger.warning("%s aborted for node %s: %s", kind, node.id, e)
            raise
        finally:
            self._transition(OperationState.IDLE)

        logger.info("%s committed: node %s, %d rows removed", kind, node.id, removed)
        return removed

    # -- Internals --

    def _check_operation(self, node: Node, operation) -> None:
        """Preconditions that need no store access."""
        if isinstance(operation, MakeRoot):
            if not node.is_new and not self._schema.forest:
                raise ConstraintViolationError(
                    "Can not move a node as the root when tree_attribute is not set",
                    node.id,
                )
            return

        if not isinstance(operation, (PrependTo, AppendTo, InsertBefore, InsertAfter)):
            raise InvalidOperationError(f"Unsupported operation: {operation!r}", node.id)

        target = operation.target
        if target.is_new:
            raise ConstraintViolationError(
                "Can not place a node relative to a target that has not been stored",
                node.id,
            )
        if node.id is not None and node.id == target.id:
            raise ConstraintViolationError(
                "Can not place a node relative to itself", node.id, target.id
            )

    async def _fetch_current(self, node: Node) -> Node:
        current = await self._store.get(node.id)
        if self._schema.forest and current.tree_id is None:
            raise NodeNotFoundError(node.id, "node belongs to no tree")
        return current

    async def _fetch_target(self, node: Node, target: Node, kind: str) -> Node:
        target = await self._store.get(target.id)
        if self._schema.forest and target.tree_id is None:
            raise NodeNotFoundError(target.id, "target belongs to no tree")
        if kind in _SIBLING_PLACEMENTS and target.is_root():
            raise ConstraintViolationError(
                "Can not place a sibling next to a root node", node.id, target.id
            )
        return target

    async def _create(self, node: Node, operation) -> int:
        self._transition(OperationState.VALIDATING)
        if isinstance(operation, MakeRoot):
            if not self._schema.forest and await self.queries.roots().exists():
                raise ConstraintViolationError(
                    "Can not create more than one root when tree_attribute is not set"
                )
            interval = root_interval()
            steps = []
        else:
            target = await self._fetch_target(node, operation.target, operation.kind)
            plan = plan_insert(operation.kind, target.interval)
            interval, steps = plan.interval, plan.steps

        self._transition(OperationState.SHIFTING)
        await self._store.apply(steps)
        await self._store.insert(
            node.model_copy(
                update={
                    "left": interval.left,
                    "right": interval.right,
                    "depth": interval.depth,
                    "tree_id": interval.tree,
                }
            )
        )
        node_id = self._store.identity()
        if node_id is None:
            raise ConstraintViolationError("Stored node received no identity")

        if isinstance(operation, MakeRoot) and self._schema.forest:
            await self._store.bulk_update(
                IntervalUpdate({"tree": node_id}, (Condition("id", "=", node_id),))
            )
        return node_id

    async def _move(self, node: Node, operation) -> int:
        current = await self._fetch_current(node)
        self._transition(OperationState.VALIDATING)

        if isinstance(operation, MakeRoot):
            if current.is_root():
                raise ConstraintViolationError("Node is already a root", node.id)
            steps = plan_make_root(current.interval, current.id)
        else:
            target = await self._fetch_target(node, operation.target, operation.kind)
            if target.is_descendant_of(current):
                raise ConstraintViolationError(
                    "Can not move a node into its own subtree", node.id, target.id
                )
            steps = plan_move(current.interval, operation.kind, target.interval)

        self._transition(OperationState.SHIFTING)
        await self._store.apply(steps)
        await self._store.update_payload(node)
        return current.id

    async def _update_payload(self, node: Node) -> Node:
        async with self._db.transaction():
            if await self._store.update_payload(node) == 0:
                raise NodeNotFoundError(node.id)
        return await self._store.get(node.id)
