"""Tests for traversal queries and node predicates."""

import pytest

from nestset.models import Node
from tests.fixtures import SAMPLE_SHAPE, build_tree, names

# root
#   A
#     A1
#       A1a
#         A1a1
#     A2
#   B
DEEP_SHAPE = (
    "root",
    [
        ("A", [("A1", [("A1a", [("A1a1", [])])]), ("A2", [])]),
        ("B", []),
    ],
)


@pytest.fixture
async def nodes(service):
    return await build_tree(service, SAMPLE_SHAPE)


class TestDescendants:
    async def test_all_in_preorder(self, service, nodes):
        """descendants() lists the whole subtree ordered by left."""
        assert await names(service.queries.descendants(nodes["root"])) == [
            "A", "A1", "A2", "B", "B1", "C",
        ]

    async def test_depth_limited(self, service, nodes):
        """A depth limit keeps only nodes that many levels down."""
        assert await names(service.queries.descendants(nodes["root"], 1)) == ["A", "B", "C"]

    async def test_children(self, service, nodes):
        """children() is descendants() one level deep."""
        assert await names(service.queries.children(nodes["A"])) == ["A1", "A2"]
        assert await names(service.queries.children(nodes["C"])) == []

    async def test_excludes_self(self, service, nodes):
        """A node is not its own descendant."""
        assert "B" not in await names(service.queries.descendants(nodes["B"]))


class TestAncestors:
    async def test_all_from_root_down(self, service, nodes):
        """ancestors() lists the path from the root down."""
        assert await names(service.queries.ancestors(nodes["A1"])) == ["root", "A"]

    async def test_depth_limited(self, service, nodes):
        """A depth limit keeps only the nearest ancestors."""
        assert await names(service.queries.ancestors(nodes["A1"], 1)) == ["A"]

    async def test_root_has_none(self, service, nodes):
        """A root has no ancestors."""
        assert await service.queries.ancestors(nodes["root"]).exists() is False


class TestParent:
    async def test_immediate_parent(self, service, nodes):
        """parent() returns the directly enclosing node."""
        assert (await service.queries.parent(nodes["A1"]).one()).name == "A"
        assert (await service.queries.parent(nodes["B1"]).one()).name == "B"
        assert (await service.queries.parent(nodes["C"]).one()).name == "root"

    async def test_right_ordering_yields_innermost_ancestor(self, service):
        """On a four-level chain every node's first row is its direct parent."""
        deep = await build_tree(service, DEEP_SHAPE)
        expected = {"A": "root", "A1": "A", "A1a": "A1", "A1a1": "A1a", "A2": "A", "B": "root"}
        for child, parent in expected.items():
            found = await service.queries.parent(deep[child]).one()
            assert found.name == parent, child

    async def test_root_has_no_parent(self, service, nodes):
        """parent() of a root finds nothing."""
        assert await service.queries.parent(nodes["root"]).one() is None


class TestSiblings:
    async def test_prev_and_next(self, service, nodes):
        """prev() and next() return the adjacent siblings."""
        assert (await service.queries.prev(nodes["B"]).one()).name == "A"
        assert (await service.queries.next(nodes["B"]).one()).name == "C"

    async def test_edges(self, service, nodes):
        """First and last children have no prev or next sibling."""
        assert await service.queries.prev(nodes["A"]).one() is None
        assert await service.queries.next(nodes["C"]).one() is None
        assert await service.queries.next(nodes["A2"]).one() is None


class TestRootsAndLeaves:
    async def test_roots(self, service, nodes):
        """roots() returns nodes with left = 1."""
        assert await names(service.queries.roots()) == ["root"]

    async def test_leaves(self, service, nodes):
        """leaves() returns nodes with right = left + 1 in pre-order."""
        assert await names(service.queries.leaves()) == ["A1", "A2", "B1", "C"]


class TestNodePredicates:
    async def test_is_descendant_of(self, nodes):
        """is_descendant_of() is strict interval containment."""
        assert nodes["A1"].is_descendant_of(nodes["A"])
        assert nodes["A1"].is_descendant_of(nodes["root"])
        assert not nodes["A1"].is_descendant_of(nodes["B"])
        assert not nodes["A"].is_descendant_of(nodes["A"])

    async def test_is_leaf_and_root(self, nodes):
        """is_leaf() and is_root() read the interval alone."""
        assert nodes["C"].is_leaf()
        assert not nodes["A"].is_leaf()
        assert nodes["root"].is_root()
        assert not nodes["A"].is_root()

    def test_size(self):
        """size counts the node and all its descendants."""
        assert Node(id=1, left=2, right=7, depth=1).size == 3


class TestNodeQuery:
    async def test_composes_extra_conditions(self, service, nodes):
        """where() narrows a traversal query."""
        query = service.queries.descendants(nodes["root"]).where("depth", "=", 2)
        assert await names(query) == ["A1", "A2", "B1"]

    async def test_count_and_exists(self, service, nodes):
        """count() and exists() run without fetching rows."""
        assert await service.queries.descendants(nodes["A"]).count() == 2
        assert await service.queries.children(nodes["B1"]).exists() is False

    async def test_order_and_limit(self, service, nodes):
        """Extra orderings and a limit apply after the traversal order."""
        query = service.queries.children(nodes["root"]).order_by("right", ascending=False)
        query = query.limit(2)
        # Primary order stays left ascending; right is only a tie-breaker.
        assert await names(query) == ["A", "B"]

    async def test_to_sql_uses_configured_columns(self, service, nodes):
        """to_sql() renders storage column names and parameters."""
        sql, params = service.queries.descendants(nodes["A"], 1).to_sql()
        assert "lft > ?" in sql
        assert "rgt < ?" in sql
        assert "level <= ?" in sql
        assert "ORDER BY lft ASC" in sql
        assert params == [2, 7, 2]

    async def test_queries_are_immutable(self, service, nodes):
        """Narrowing a query returns a new one and leaves the base unchanged."""
        base = service.queries.descendants(nodes["root"])
        base.where("depth", "=", 1)
        assert await base.count() == 6
