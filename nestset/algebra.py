"""Interval algebra for the nested-set model.

Pure functions: given the current interval of the acting node and of the
target, compute the ordered store steps that renumber every affected row.
No I/O happens here; preconditions (cycles, roots, transient targets) are
checked by the caller before planning.

Step order matters. Each step's predicates assume the rows are already at
the positions left by the previous step, so plans must be applied exactly
in the order returned.
"""

from dataclasses import dataclass
from typing import Literal

from nestset.predicates import (
    Condition,
    Increment,
    IntervalDelete,
    IntervalUpdate,
    Step,
    tree_scope,
)

Placement = Literal["prepend_to", "append_to", "insert_before", "insert_after"]


@dataclass(frozen=True)
class Interval:
    left: int
    right: int
    depth: int
    tree: int | None = None

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def is_leaf(self) -> bool:
        return self.right - self.left == 1

    @property
    def is_root(self) -> bool:
        return self.left == 1

    def is_descendant_of(self, other: "Interval") -> bool:
        return (
            self.left > other.left
            and self.right < other.right
            and self.tree == other.tree
        )


@dataclass(frozen=True)
class InsertPlan:
    interval: Interval
    steps: list[Step]


def shift_from(threshold: int, delta: int, tree: int | None = None) -> list[Step]:
    """Shift every bound at or past ``threshold`` by ``delta``.

    Makes room (positive delta) or closes a gap (negative delta). Left and
    right bounds are matched independently, so an ancestor whose right bound
    lies past the threshold grows or shrinks while its left bound stays.
    """
    scope = tree_scope(tree)
    return [
        IntervalUpdate({"left": Increment(delta)}, (Condition("left", ">=", threshold), *scope)),
        IntervalUpdate({"right": Increment(delta)}, (Condition("right", ">=", threshold), *scope)),
    ]


def insertion_point(placement: Placement, target: Interval) -> tuple[int, int]:
    """Return ``(value, depth_offset)`` for placing a node relative to ``target``.

    ``value`` is the future left bound of the placed node; ``depth_offset``
    is added to the target's depth (1 for a child, 0 for a sibling).
    """
    if placement == "prepend_to":
        return target.left + 1, 1
    if placement == "append_to":
        return target.right, 1
    if placement == "insert_before":
        return target.left, 0
    if placement == "insert_after":
        return target.right + 1, 0
    raise ValueError(f"Unknown placement: {placement!r}")


def root_interval() -> Interval:
    return Interval(1, 2, 0)


def plan_insert(placement: Placement, target: Interval) -> InsertPlan:
    """Plan the creation of a new leaf next to or under ``target``."""
    value, depth_offset = insertion_point(placement, target)
    interval = Interval(value, value + 1, target.depth + depth_offset, target.tree)
    return InsertPlan(interval, shift_from(value, 2, target.tree))


def _subtree(current: Interval, left: int, right: int) -> tuple[Condition, ...]:
    return (
        Condition("left", ">=", left),
        Condition("right", "<=", right),
        *tree_scope(current.tree),
    )


def plan_make_root(current: Interval, new_tree: int) -> list[Step]:
    """Detach the subtree at ``current`` into its own tree numbered from 1."""
    delta = 1 - current.left
    steps: list[Step] = [
        IntervalUpdate(
            {
                "left": Increment(delta),
                "right": Increment(delta),
                "depth": Increment(-current.depth),
                "tree": new_tree,
            },
            _subtree(current, current.left, current.right),
        )
    ]
    steps.extend(shift_from(current.right + 1, -current.width, current.tree))
    return steps


def plan_move(current: Interval, placement: Placement, target: Interval) -> list[Step]:
    """Relocate the subtree at ``current`` next to or under ``target``."""
    value, depth_offset = insertion_point(placement, target)
    depth_delta = target.depth + depth_offset - current.depth
    width = current.width
    left, right = current.left, current.right

    if current.tree == target.tree:
        steps = shift_from(value, width, current.tree)
        # Making room moved the subtree itself when it lay past the insertion point.
        if left >= value:
            left += width
            right += width
        steps.append(
            IntervalUpdate(
                {
                    "left": Increment(value - left),
                    "right": Increment(value - left),
                    "depth": Increment(depth_delta),
                },
                _subtree(current, left, right),
            )
        )
        steps.extend(shift_from(right + 1, -width, current.tree))
        return steps

    steps = shift_from(value, width, target.tree)
    steps.append(
        IntervalUpdate(
            {
                "left": Increment(value - left),
                "right": Increment(value - left),
                "depth": Increment(depth_delta),
                "tree": target.tree,
            },
            _subtree(current, left, right),
        )
    )
    steps.extend(shift_from(right + 1, -width, current.tree))
    return steps


def plan_delete(current: Interval, node_id: int, with_descendants: bool) -> list[Step]:
    """Remove a node (children promoted) or its whole subtree, then close the gap."""
    if with_descendants:
        return [
            IntervalDelete(_subtree(current, current.left, current.right)),
            *shift_from(current.right + 1, -current.width, current.tree),
        ]

    steps: list[Step] = [IntervalDelete((Condition("id", "=", node_id),))]
    if not current.is_leaf:
        steps.append(
            IntervalUpdate(
                {"left": Increment(-1), "right": Increment(-1), "depth": Increment(-1)},
                (
                    Condition("left", ">", current.left),
                    Condition("right", "<", current.right),
                    *tree_scope(current.tree),
                ),
            )
        )
    steps.extend(shift_from(current.right + 1, -2, current.tree))
    return steps


def apply_steps(rows: list[dict], steps: list[Step]) -> int:
    """Apply steps to in-memory rows keyed by logical column names.

    Mirrors what the store does in SQL; used to preview a plan and to test
    the algebra without a database. Returns the number of removed rows.
    """
    removed = 0
    for step in steps:
        matched = [row for row in rows if _matches(row, step.conditions)]
        if isinstance(step, IntervalDelete):
            for row in matched:
                rows.remove(row)
            removed += len(matched)
            continue
        for row in matched:
            for column, value in step.assignments.items():
                if isinstance(value, Increment):
                    row[column] += value.delta
                else:
                    row[column] = value
    return removed


def _matches(row: dict, conditions: tuple[Condition, ...]) -> bool:
    for condition in conditions:
        actual = row[condition.column]
        expected = condition.value
        if condition.op == "=":
            if actual != expected:
                return False
        elif actual is None or expected is None:
            return False
        elif condition.op == ">=" and not actual >= expected:
            return False
        elif condition.op == "<=" and not actual <= expected:
            return False
        elif condition.op == ">" and not actual > expected:
            return False
        elif condition.op == "<" and not actual < expected:
            return False
    return True
