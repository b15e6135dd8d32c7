"""Tests for node creation: make_root and the four placement operations."""

import pytest

from nestset.errors import ConstraintViolationError, InvalidOperationError, NodeNotFoundError
from nestset.models import Node
from tests.fixtures import SAMPLE_INTERVALS, SAMPLE_SHAPE, build_tree, snapshot


class TestMakeRoot:
    async def test_first_root(self, service):
        """make_root on an empty table creates a root at [1,2] with depth 0."""
        root = await service.make_root(Node(name="root"))
        assert root.id is not None
        assert (root.left, root.right, root.depth) == (1, 2, 0)
        assert root.is_root()
        assert root.is_leaf()

    async def test_second_root_rejected_in_single_tree_mode(self, service):
        """Without a tree column a second root is a constraint violation."""
        await service.make_root(Node(name="root"))
        with pytest.raises(ConstraintViolationError):
            await service.make_root(Node(name="other"))
        assert await service.queries.roots().count() == 1

    async def test_payload_is_stored(self, service):
        """name and data are stored alongside the interval."""
        root = await service.make_root(Node(name="root", data={"color": "red"}))
        assert root.name == "root"
        assert root.data == {"color": "red"}


class TestAppendTo:
    async def test_single_insert(self, service):
        """Root [1,2]; append B -> root [1,4], B [2,3] at depth 1."""
        root = await service.make_root(Node(name="root"))
        b = await service.append_to(Node(name="B"), root)

        assert (b.left, b.right, b.depth) == (2, 3, 1)
        assert await snapshot(service) == {"root": (1, 4, 0), "B": (2, 3, 1)}

    async def test_round_trip(self, service):
        """A created child reads back as a leaf one level below its parent."""
        root = await service.make_root(Node(name="root"))
        child = await service.append_to(Node(name="child"), root)
        child = await service.get(child.id)
        root = await service.get(root.id)

        assert child.is_leaf()
        assert child.depth == root.depth + 1
        assert child.is_descendant_of(root)

    async def test_appends_after_existing_children(self, service):
        """Each append lands after the previous last child."""
        root = await service.make_root(Node(name="root"))
        await service.append_to(Node(name="A"), root)
        await service.append_to(Node(name="B"), root)
        assert await snapshot(service) == {
            "root": (1, 6, 0),
            "A": (2, 3, 1),
            "B": (4, 5, 1),
        }

    async def test_stale_target_is_reread(self, service):
        """The target passed in still has its creation-time interval."""
        stale_root = await service.make_root(Node(name="root"))
        await service.append_to(Node(name="A"), stale_root)
        b = await service.append_to(Node(name="B"), stale_root)
        assert (b.left, b.right) == (4, 5)

    async def test_builds_sample_tree(self, service):
        """Building the sample shape by appends yields the expected intervals."""
        await build_tree(service, SAMPLE_SHAPE)
        assert await snapshot(service) == SAMPLE_INTERVALS
        assert await service.check() == []


class TestPrependTo:
    async def test_becomes_first_child(self, service):
        """prepend_to places the node before existing children."""
        root = await service.make_root(Node(name="root"))
        await service.append_to(Node(name="A"), root)
        p = await service.prepend_to(Node(name="P"), root)

        assert (p.left, p.right, p.depth) == (2, 3, 1)
        assert await snapshot(service) == {
            "root": (1, 6, 0),
            "P": (2, 3, 1),
            "A": (4, 5, 1),
        }


class TestSiblingInsert:
    async def test_insert_before(self, service):
        """Root [1,6] with A [2,3], B [4,5]; C before B -> C [4,5], B [6,7]."""
        root = await service.make_root(Node(name="root"))
        await service.append_to(Node(name="A"), root)
        b = await service.append_to(Node(name="B"), root)

        c = await service.insert_before(Node(name="C"), b)

        assert (c.left, c.right, c.depth) == (4, 5, 1)
        assert await snapshot(service) == {
            "root": (1, 8, 0),
            "A": (2, 3, 1),
            "C": (4, 5, 1),
            "B": (6, 7, 1),
        }

    async def test_insert_after(self, service):
        """Root [1,6] with A [2,3], B [4,5]; C after A -> C [4,5], B [6,7]."""
        root = await service.make_root(Node(name="root"))
        a = await service.append_to(Node(name="A"), root)
        await service.append_to(Node(name="B"), root)

        c = await service.insert_after(Node(name="C"), a)

        assert (c.left, c.right, c.depth) == (4, 5, 1)
        assert await snapshot(service) == {
            "root": (1, 8, 0),
            "A": (2, 3, 1),
            "C": (4, 5, 1),
            "B": (6, 7, 1),
        }

    async def test_sibling_depth_matches_target(self, service):
        """A sibling shares the target's depth and parent."""
        nodes = await build_tree(service, SAMPLE_SHAPE)
        created = await service.insert_after(Node(name="A3"), nodes["A2"])
        assert created.depth == 2
        assert created.is_descendant_of(await service.get(nodes["A"].id))

    @pytest.mark.parametrize("method", ["insert_before", "insert_after"])
    async def test_sibling_of_root_rejected(self, service, method):
        """A root can have no siblings; nothing is written."""
        root = await service.make_root(Node(name="root"))
        with pytest.raises(ConstraintViolationError):
            await getattr(service, method)(Node(name="X"), root)
        assert await snapshot(service) == {"root": (1, 2, 0)}


class TestCreatePreconditions:
    async def test_transient_target_rejected(self, service):
        """Placing relative to an unsaved target is a constraint violation."""
        await service.make_root(Node(name="root"))
        with pytest.raises(ConstraintViolationError):
            await service.append_to(Node(name="X"), Node(name="never stored"))

    async def test_deleted_target_not_found(self, service):
        """A target deleted since it was loaded raises NodeNotFoundError."""
        root = await service.make_root(Node(name="root"))
        a = await service.append_to(Node(name="A"), root)
        await service.delete(a)
        with pytest.raises(NodeNotFoundError):
            await service.append_to(Node(name="X"), a)
        assert await snapshot(service) == {"root": (1, 2, 0)}

    async def test_save_without_operation_requires_stored_node(self, service):
        """save() without an operation can not insert a new node."""
        with pytest.raises(InvalidOperationError):
            await service.save(Node(name="orphan"))
        assert await service.queries.tree().count() == 0
