"""Interval store: the only code that reads and writes node rows.

Renders algebra steps to SQL for one NestedSetSchema. Writes issued inside
``Database.transaction()`` are committed or rolled back with it.
"""

import logging
from typing import Any

from nestset.db.connection import Database
from nestset.errors import NodeNotFoundError
from nestset.models import NestedSetSchema, Node
from nestset.predicates import (
    IntervalDelete,
    IntervalUpdate,
    Step,
    render_assignments,
    render_conditions,
)
from nestset.utils.json import json_column, parse_json_or_none

logger = logging.getLogger(__name__)


class IntervalStore:
    """Point reads, bulk interval updates and deletes over one node table."""

    def __init__(self, db: Database, schema: NestedSetSchema) -> None:
        self._db = db
        self._schema = schema
        self._last_identity: int | None = None

    @property
    def schema(self) -> NestedSetSchema:
        return self._schema

    async def get(self, node_id: int) -> Node:
        """Read the latest state of a node. Raises NodeNotFoundError if it is gone."""
        node = await self.find(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    async def find(self, node_id: int) -> Node | None:
        s = self._schema
        row = await self._db.fetchone(
            f"SELECT * FROM {s.table} WHERE {s.id_attribute} = ?", (node_id,)
        )
        if row is None:
            return None
        return self.row_to_node(row)

    async def insert(self, node: Node) -> int:
        """Insert a node row with its interval already assigned; return its identity."""
        s = self._schema
        columns = [s.left_attribute, s.right_attribute, s.depth_attribute, "name", "data"]
        values: list[Any] = [node.left, node.right, node.depth, node.name, json_column(node.data)]
        if s.tree_attribute is not None:
            columns.append(s.tree_attribute)
            values.append(node.tree_id)
        placeholders = ", ".join("?" for _ in columns)
        cursor = await self._db.execute(
            f"INSERT INTO {s.table} ({', '.join(columns)}) VALUES ({placeholders})",
            values,
        )
        self._last_identity = cursor.lastrowid
        logger.debug("Inserted %s row %s at [%s, %s]", s.table, cursor.lastrowid, node.left, node.right)
        return cursor.lastrowid

    def identity(self) -> int | None:
        """Identity assigned to the most recently inserted row."""
        return self._last_identity

    async def update_payload(self, node: Node) -> int:
        """Write the non-structural columns of a stored node."""
        s = self._schema
        cursor = await self._db.execute(
            f"UPDATE {s.table} SET name = ?, data = ? WHERE {s.id_attribute} = ?",
            (node.name, json_column(node.data), node.id),
        )
        return cursor.rowcount

    async def bulk_update(self, step: IntervalUpdate) -> int:
        s = self._schema
        assignments, assignment_params = render_assignments(s, step.assignments)
        where, where_params = render_conditions(s, step.conditions)
        cursor = await self._db.execute(
            f"UPDATE {s.table} SET {assignments} WHERE {where}",
            [*assignment_params, *where_params],
        )
        logger.debug("UPDATE %s SET %s WHERE %s -> %d rows", s.table, assignments, where, cursor.rowcount)
        return cursor.rowcount

    async def delete(self, step: IntervalDelete) -> int:
        s = self._schema
        where, params = render_conditions(s, step.conditions)
        cursor = await self._db.execute(f"DELETE FROM {s.table} WHERE {where}", params)
        logger.debug("DELETE FROM %s WHERE %s -> %d rows", s.table, where, cursor.rowcount)
        return cursor.rowcount

    async def apply(self, steps: list[Step]) -> int:
        """Apply plan steps in order. Returns the number of deleted rows."""
        removed = 0
        for step in steps:
            if isinstance(step, IntervalDelete):
                removed += await self.delete(step)
            else:
                await self.bulk_update(step)
        return removed

    def row_to_node(self, row) -> Node:
        """Convert a database row to a Node."""
        s = self._schema
        return Node(
            id=row[s.id_attribute],
            name=row["name"],
            data=parse_json_or_none(row["data"]),
            left=row[s.left_attribute],
            right=row[s.right_attribute],
            depth=row[s.depth_attribute],
            tree_id=row[s.tree_attribute] if s.tree_attribute is not None else None,
        )
