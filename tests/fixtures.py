"""Shared test helpers: tree builders and interval snapshots."""

from nestset.models import NestedSetSchema, Node
from nestset.service import NestedSetService

FOREST_SCHEMA = NestedSetSchema(tree_attribute="tree")

# Shape: (name, [children...])
#
# root [1,14]
#   A [2,7]
#     A1 [3,4]
#     A2 [5,6]
#   B [8,11]
#     B1 [9,10]
#   C [12,13]
SAMPLE_SHAPE = (
    "root",
    [
        ("A", [("A1", []), ("A2", [])]),
        ("B", [("B1", [])]),
        ("C", []),
    ],
)

SAMPLE_INTERVALS = {
    "root": (1, 14, 0),
    "A": (2, 7, 1),
    "A1": (3, 4, 2),
    "A2": (5, 6, 2),
    "B": (8, 11, 1),
    "B1": (9, 10, 2),
    "C": (12, 13, 1),
}


async def build_tree(service: NestedSetService, shape: tuple) -> dict[str, Node]:
    """Create a tree from a nested (name, children) shape; return fresh nodes by name."""
    name, children = shape
    root = await service.make_root(Node(name=name))
    nodes = {name: root}
    await _append_children(service, root, children, nodes)
    return await refresh(service, nodes)


async def _append_children(
    service: NestedSetService, parent: Node, children: list, nodes: dict[str, Node]
) -> None:
    for child_name, grandchildren in children:
        child = await service.append_to(Node(name=child_name), parent)
        nodes[child_name] = child
        await _append_children(service, child, grandchildren, nodes)


async def refresh(service: NestedSetService, nodes: dict[str, Node]) -> dict[str, Node]:
    """Re-read every node; nodes deleted since are dropped."""
    fresh: dict[str, Node] = {}
    for name, node in nodes.items():
        row = await service.queries.tree().where("id", "=", node.id).one()
        if row is not None:
            fresh[name] = row
    return fresh


async def snapshot(
    service: NestedSetService, tree_id: int | None = None
) -> dict[str, tuple[int, int, int]]:
    """Map node name -> (left, right, depth) for one tree."""
    nodes = await service.queries.tree(tree_id).all()
    return {node.name: (node.left, node.right, node.depth) for node in nodes}


async def names(query) -> list[str]:
    return [node.name for node in await query.all()]
