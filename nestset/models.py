"""Canonical data structures for nestset.

Defined once here, referenced everywhere else: the schema descriptor that
names the storage columns, the Node record, and the tagged operation
descriptors accepted by the mutation service.
"""

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nestset.algebra import Interval

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# ---------------------------------------------------------------------------
# Schema descriptor
# ---------------------------------------------------------------------------


class NestedSetSchema(BaseModel):
    """Storage layout of one nested-set table.

    Passed once at construction time. ``tree_attribute`` set to None means
    single-tree mode: at most one root may exist in the table.
    """

    model_config = ConfigDict(frozen=True)

    table: str = "nodes"
    id_attribute: str = "id"
    left_attribute: str = "lft"
    right_attribute: str = "rgt"
    depth_attribute: str = "level"
    tree_attribute: str | None = None

    @field_validator(
        "table",
        "id_attribute",
        "left_attribute",
        "right_attribute",
        "depth_attribute",
        "tree_attribute",
    )
    @classmethod
    def _check_identifier(cls, value: str | None) -> str | None:
        if value is not None and not _IDENTIFIER.match(value):
            raise ValueError(f"Not a valid SQL identifier: {value!r}")
        return value

    @property
    def forest(self) -> bool:
        return self.tree_attribute is not None

    def column(self, name: str) -> str:
        """Map a logical column (id/left/right/depth/tree) to its storage name."""
        columns = {
            "id": self.id_attribute,
            "left": self.left_attribute,
            "right": self.right_attribute,
            "depth": self.depth_attribute,
        }
        if self.tree_attribute is not None:
            columns["tree"] = self.tree_attribute
        try:
            return columns[name]
        except KeyError:
            raise ValueError(f"Unknown column for this schema: {name!r}") from None


# ---------------------------------------------------------------------------
# Node record
# ---------------------------------------------------------------------------


class Node(BaseModel):
    """One tree element. ``id`` is None until the node has been stored."""

    id: int | None = None
    name: str | None = None
    data: dict[str, Any] | list[Any] | None = None
    left: int | None = None
    right: int | None = None
    depth: int | None = None
    tree_id: int | None = None

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def interval(self) -> Interval:
        if self.left is None or self.right is None or self.depth is None:
            raise ValueError(f"Node {self.id} has no interval yet")
        return Interval(self.left, self.right, self.depth, self.tree_id)

    @property
    def size(self) -> int:
        """Number of nodes in the subtree rooted here, this node included."""
        return self.interval.width // 2

    def is_leaf(self) -> bool:
        return self.interval.is_leaf

    def is_root(self) -> bool:
        return self.left == 1

    def is_descendant_of(self, other: "Node") -> bool:
        return self.interval.is_descendant_of(other.interval)


# ---------------------------------------------------------------------------
# Operation descriptors
# ---------------------------------------------------------------------------


class MakeRoot(BaseModel):
    kind: Literal["make_root"] = "make_root"


class PrependTo(BaseModel):
    kind: Literal["prepend_to"] = "prepend_to"
    target: Node


class AppendTo(BaseModel):
    kind: Literal["append_to"] = "append_to"
    target: Node


class InsertBefore(BaseModel):
    kind: Literal["insert_before"] = "insert_before"
    target: Node


class InsertAfter(BaseModel):
    kind: Literal["insert_after"] = "insert_after"
    target: Node


class Delete(BaseModel):
    kind: Literal["delete"] = "delete"


class DeleteWithDescendants(BaseModel):
    kind: Literal["delete_with_descendants"] = "delete_with_descendants"


SaveOperation = Annotated[
    MakeRoot | PrependTo | AppendTo | InsertBefore | InsertAfter,
    Field(discriminator="kind"),
]

RemoveOperation = Annotated[Delete | DeleteWithDescendants, Field(discriminator="kind")]
