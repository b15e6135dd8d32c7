"""Range predicates and bulk assignments over the logical interval columns.

The algebra describes store work with these objects; the store and the
query builder render them to SQL through a NestedSetSchema. Logical column
names are ``id``, ``left``, ``right``, ``depth`` and ``tree``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from nestset.models import NestedSetSchema

Operator = Literal[">=", "<=", "<", ">", "="]

_OPERATORS = {">=", "<=", "<", ">", "="}


@dataclass(frozen=True)
class Condition:
    column: str
    op: Operator
    value: int | None

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op!r}")


@dataclass(frozen=True)
class ColumnDifference:
    """Compares ``left_column - right_column`` with a constant (used by leaves())."""

    left_column: str
    right_column: str
    op: Operator
    value: int


@dataclass(frozen=True)
class Increment:
    """Assignment ``column = column + delta``."""

    delta: int


@dataclass
class IntervalUpdate:
    assignments: dict[str, Increment | int | None]
    conditions: tuple[Condition, ...]


@dataclass
class IntervalDelete:
    conditions: tuple[Condition, ...]


Step = IntervalUpdate | IntervalDelete


def tree_scope(tree: int | None) -> tuple[Condition, ...]:
    """Equality filter on the tree column, or nothing in single-tree mode."""
    if tree is None:
        return ()
    return (Condition("tree", "=", tree),)


def render_conditions(
    schema: "NestedSetSchema",
    conditions: "tuple[Condition | ColumnDifference, ...] | list[Condition | ColumnDifference]",
) -> tuple[str, list[int | None]]:
    """Render conditions as an ``AND``-joined SQL fragment plus parameters."""
    if not conditions:
        return "1 = 1", []
    clauses: list[str] = []
    params: list[int | None] = []
    for condition in conditions:
        if isinstance(condition, ColumnDifference):
            clauses.append(
                f"{schema.column(condition.left_column)}"
                f" - {schema.column(condition.right_column)} {condition.op} ?"
            )
            params.append(condition.value)
            continue
        column = schema.column(condition.column)
        if condition.value is None:
            if condition.op != "=":
                raise ValueError(f"Cannot compare {column} {condition.op} NULL")
            clauses.append(f"{column} IS NULL")
            continue
        clauses.append(f"{column} {condition.op} ?")
        params.append(condition.value)
    return " AND ".join(clauses), params


def render_assignments(
    schema: "NestedSetSchema",
    assignments: dict[str, Increment | int | None],
) -> tuple[str, list[int | None]]:
    """Render assignments as a ``SET`` list plus parameters."""
    parts: list[str] = []
    params: list[int | None] = []
    for name, value in assignments.items():
        column = schema.column(name)
        if isinstance(value, Increment):
            parts.append(f"{column} = {column} + ?")
            params.append(value.delta)
        else:
            parts.append(f"{column} = ?")
            params.append(value)
    return ", ".join(parts), params
