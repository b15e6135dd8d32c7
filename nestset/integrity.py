"""Integrity checks for stored trees.

Verifies the nested-set invariants for one tree (or the whole table in
single-tree mode): bounds ordered, intervals nested or disjoint, bounds
forming exactly 1..2N, one root at left = 1, depth equal to the number of
ancestors.
"""

import logging
from dataclasses import dataclass, field

from nestset.db.connection import Database
from nestset.errors import ConstraintViolationError
from nestset.models import NestedSetSchema, Node
from nestset.queries import TreeQueries

logger = logging.getLogger(__name__)


@dataclass
class IntegrityProblem:
    code: str
    message: str
    node_ids: list[int | None] = field(default_factory=list)


def check_intervals(nodes: list[Node]) -> list[IntegrityProblem]:
    """Check one tree's nodes. ``nodes`` must all belong to the same tree."""
    problems: list[IntegrityProblem] = []
    if not nodes:
        return problems

    bounds: list[int] = []
    for node in nodes:
        if node.left >= node.right:
            problems.append(IntegrityProblem(
                "inverted", f"left {node.left} is not below right {node.right}", [node.id],
            ))
        if (node.right - node.left) % 2 == 0:
            problems.append(IntegrityProblem(
                "parity", f"interval [{node.left}, {node.right}] has odd width", [node.id],
            ))
        bounds.extend((node.left, node.right))

    expected = list(range(1, 2 * len(nodes) + 1))
    if sorted(bounds) != expected:
        problems.append(IntegrityProblem(
            "gaps", f"bounds are not exactly 1..{2 * len(nodes)}",
            [node.id for node in nodes],
        ))

    roots = [node for node in nodes if node.left == 1]
    if len(roots) != 1:
        problems.append(IntegrityProblem(
            "root", f"expected one node with left = 1, found {len(roots)}",
            [node.id for node in roots],
        ))

    ordered = sorted(nodes, key=lambda node: node.left)
    open_intervals: list[Node] = []
    for node in ordered:
        while open_intervals and open_intervals[-1].right < node.left:
            open_intervals.pop()
        if open_intervals and node.right > open_intervals[-1].right:
            problems.append(IntegrityProblem(
                "overlap", "intervals partially overlap",
                [open_intervals[-1].id, node.id],
            ))
        if node.depth != len(open_intervals):
            problems.append(IntegrityProblem(
                "depth", f"depth {node.depth} but {len(open_intervals)} ancestors", [node.id],
            ))
        open_intervals.append(node)

    if len(roots) == 1:
        root = roots[0].interval
        outside = [
            node.id for node in nodes
            if node.id != roots[0].id and not node.interval.is_descendant_of(root)
        ]
        if outside:
            problems.append(IntegrityProblem(
                "outside_root", "nodes not contained in the root interval", outside,
            ))
    return problems


async def check_tree(
    db: Database, schema: NestedSetSchema, tree_id: int | None = None
) -> list[IntegrityProblem]:
    """Load one tree and return every invariant violation found.

    In forest mode without a ``tree_id`` every tree in the table is checked
    on its own.
    """
    nodes = await TreeQueries(db, schema).tree(tree_id).all()
    trees: dict[int | None, list[Node]] = {}
    if schema.forest and tree_id is None:
        for node in nodes:
            trees.setdefault(node.tree_id, []).append(node)
    else:
        trees[tree_id] = nodes

    problems: list[IntegrityProblem] = []
    for tree, members in trees.items():
        found = check_intervals(members)
        for problem in found:
            logger.warning("Tree %s integrity problem [%s]: %s", tree, problem.code, problem.message)
        problems.extend(found)
    return problems


async def assert_tree_valid(
    db: Database, schema: NestedSetSchema, tree_id: int | None = None
) -> None:
    problems = await check_tree(db, schema, tree_id)
    if problems:
        summary = "; ".join(f"{p.code}: {p.message}" for p in problems)
        raise ConstraintViolationError(f"Tree {tree_id} is inconsistent: {summary}")
