"""Read-side traversal queries over the interval columns.

Each constructor returns a NodeQuery: an immutable filter that can be
narrowed further and is only sent to the database when awaited through
``all()``, ``one()``, ``count()`` or ``exists()``.
"""

from dataclasses import dataclass, replace

from nestset.db.connection import Database
from nestset.models import NestedSetSchema, Node
from nestset.predicates import (
    ColumnDifference,
    Condition,
    Operator,
    render_conditions,
    tree_scope,
)
from nestset.store import IntervalStore


@dataclass(frozen=True)
class NodeQuery:
    store: IntervalStore
    db: Database
    conditions: tuple[Condition | ColumnDifference, ...] = ()
    ordering: tuple[tuple[str, bool], ...] = ()
    max_rows: int | None = None

    def where(self, column: str, op: Operator, value: int | None) -> "NodeQuery":
        return replace(self, conditions=(*self.conditions, Condition(column, op, value)))

    def order_by(self, column: str, ascending: bool = True) -> "NodeQuery":
        return replace(self, ordering=(*self.ordering, (column, ascending)))

    def limit(self, max_rows: int) -> "NodeQuery":
        return replace(self, max_rows=max_rows)

    def to_sql(self, select: str = "*") -> tuple[str, list[int | None]]:
        schema = self.store.schema
        where, params = render_conditions(schema, self.conditions)
        sql = f"SELECT {select} FROM {schema.table} WHERE {where}"
        if self.ordering:
            order = ", ".join(
                f"{schema.column(column)} {'ASC' if ascending else 'DESC'}"
                for column, ascending in self.ordering
            )
            sql += f" ORDER BY {order}"
        if self.max_rows is not None:
            sql += f" LIMIT {int(self.max_rows)}"
        return sql, params

    async def all(self) -> list[Node]:
        sql, params = self.to_sql()
        rows = await self.db.fetchall(sql, params)
        return [self.store.row_to_node(row) for row in rows]

    async def one(self) -> Node | None:
        """First row in query order, or None."""
        sql, params = self.limit(1).to_sql()
        row = await self.db.fetchone(sql, params)
        return self.store.row_to_node(row) if row is not None else None

    async def count(self) -> int:
        sql, params = replace(self, ordering=()).to_sql("COUNT(*) AS n")
        row = await self.db.fetchone(sql, params)
        return row["n"]

    async def exists(self) -> bool:
        sql, params = replace(self, ordering=()).limit(1).to_sql("1")
        return await self.db.fetchone(sql, params) is not None


class TreeQueries:
    """Builds traversal queries relative to a node's current interval.

    The node passed in is used as-is; re-read it first if its interval may
    have changed since it was loaded.
    """

    def __init__(self, db: Database, schema: NestedSetSchema) -> None:
        self._db = db
        self._store = IntervalStore(db, schema)

    @property
    def schema(self) -> NestedSetSchema:
        return self._store.schema

    def _query(self, *conditions: Condition | ColumnDifference) -> NodeQuery:
        return NodeQuery(self._store, self._db, conditions=tuple(conditions))

    def _scope(self, node: Node) -> tuple[Condition, ...]:
        return tree_scope(node.tree_id) if self.schema.forest else ()

    def descendants(self, node: Node, depth: int | None = None) -> NodeQuery:
        conditions = [
            Condition("left", ">", node.left),
            Condition("right", "<", node.right),
        ]
        if depth is not None:
            conditions.append(Condition("depth", "<=", node.depth + depth))
        return self._query(*conditions, *self._scope(node)).order_by("left")

    def children(self, node: Node) -> NodeQuery:
        return self.descendants(node, 1)

    def ancestors(self, node: Node, depth: int | None = None) -> NodeQuery:
        conditions = [
            Condition("left", "<", node.left),
            Condition("right", ">", node.right),
        ]
        if depth is not None:
            conditions.append(Condition("depth", ">=", node.depth - depth))
        return self._query(*conditions, *self._scope(node)).order_by("left")

    def parent(self, node: Node) -> NodeQuery:
        # The innermost enclosing interval has the smallest right bound.
        return self._query(
            Condition("left", "<", node.left),
            Condition("right", ">", node.right),
            *self._scope(node),
        ).order_by("right")

    def prev(self, node: Node) -> NodeQuery:
        return self._query(Condition("right", "=", node.left - 1), *self._scope(node))

    def next(self, node: Node) -> NodeQuery:
        return self._query(Condition("left", "=", node.right + 1), *self._scope(node))

    def roots(self) -> NodeQuery:
        query = self._query(Condition("left", "=", 1))
        if self.schema.forest:
            query = query.order_by("tree")
        return query

    def leaves(self, tree_id: int | None = None) -> NodeQuery:
        conditions: list[Condition | ColumnDifference] = [
            ColumnDifference("right", "left", "=", 1)
        ]
        if self.schema.forest and tree_id is not None:
            conditions.append(Condition("tree", "=", tree_id))
        query = self._query(*conditions)
        if self.schema.forest:
            query = query.order_by("tree")
        return query.order_by("left")

    def tree(self, tree_id: int | None = None) -> NodeQuery:
        """Every node of one tree in pre-order."""
        conditions = tree_scope(tree_id) if self.schema.forest else ()
        return self._query(*conditions).order_by("left")
