"""
Unit tests for Expand tree conversion.

Tests cover:
- Union and leaf conversion
- The three leaf variants
- Rejection of malformed and unsupported nodes
"""

import pytest

from fgaquery_sdk.errors import StructuralError
from fgaquery_sdk.mockhttp import (
    computed_leaf,
    expand_response,
    tuple_to_userset_leaf,
    union_node,
    users_leaf,
)
from fgaquery_sdk.tree import (
    Computed,
    DirectUsers,
    IndirectReference,
    UnionNode,
    expansion_tree_from_wire,
)


class TestLeafConversion:
    """Tests for leaf variants."""

    def test_users_leaf(self):
        tree = expansion_tree_from_wire(expand_response(users_leaf("user:alice", "user:bob")))
        assert tree.root == DirectUsers(identifiers=("user:alice", "user:bob"))

    def test_empty_users_leaf(self):
        tree = expansion_tree_from_wire({"tree": {"root": {"leaf": {"users": {}}}}})
        assert tree.root == DirectUsers(identifiers=())

    def test_computed_leaf(self):
        tree = expansion_tree_from_wire(expand_response(computed_leaf("document:1#writer")))
        assert tree.root == Computed(userset="document:1#writer")

    def test_computed_leaf_without_userset(self):
        """A computed leaf without userset converts; the engine rejects it."""
        tree = expansion_tree_from_wire({"tree": {"root": {"leaf": {"computed": {}}}}})
        assert tree.root == Computed(userset=None)

    def test_tuple_to_userset_leaf(self):
        tree = expansion_tree_from_wire(
            expand_response(
                tuple_to_userset_leaf("document:1#parent", "folder:1#editor", "folder:2#editor")
            )
        )
        assert tree.root == IndirectReference(
            tupleset="document:1#parent",
            computed=(Computed("folder:1#editor"), Computed("folder:2#editor")),
        )

    def test_tuple_to_userset_without_computed(self):
        with pytest.raises(StructuralError, match="unsupported indirect-reference shape"):
            expansion_tree_from_wire(
                {"tree": {"root": {"leaf": {"tupleToUserset": {"tupleset": "document:1#parent"}}}}}
            )

    def test_leaf_without_variant(self):
        with pytest.raises(StructuralError, match="unknown leaf type"):
            expansion_tree_from_wire({"tree": {"root": {"leaf": {}}}})

    def test_leaf_with_two_variants(self):
        with pytest.raises(StructuralError, match="unknown leaf type"):
            expansion_tree_from_wire(
                {
                    "tree": {
                        "root": {
                            "leaf": {
                                "users": {"users": ["user:a"]},
                                "computed": {"userset": "document:1#writer"},
                            }
                        }
                    }
                }
            )


class TestNodeConversion:
    """Tests for node variants."""

    def test_union(self):
        tree = expansion_tree_from_wire(
            expand_response(
                union_node(users_leaf("user:a"), computed_leaf("document:1#writer")),
                name="document:1#viewer",
            )
        )
        assert tree.root == UnionNode(
            children=(DirectUsers(("user:a",)), Computed("document:1#writer"))
        )

    def test_nested_union(self):
        tree = expansion_tree_from_wire(
            expand_response(union_node(union_node(users_leaf("user:a"))))
        )
        assert tree.root == UnionNode(children=(UnionNode(children=(DirectUsers(("user:a",)),)),))

    def test_malformed_child_fails_whole_tree(self):
        with pytest.raises(StructuralError):
            expansion_tree_from_wire(
                expand_response(union_node(users_leaf("user:a"), {"leaf": {}}))
            )

    def test_missing_root(self):
        assert expansion_tree_from_wire({"tree": {}}).root is None
        assert expansion_tree_from_wire({}).root is None

    def test_node_without_variant(self):
        with pytest.raises(StructuralError, match="unknown node type") as exc_info:
            expansion_tree_from_wire({"tree": {"root": {"name": "document:1#viewer"}}})
        assert exc_info.value.node == {"name": "document:1#viewer"}

    def test_intersection_unsupported(self):
        with pytest.raises(StructuralError, match="unsupported node type: intersection"):
            expansion_tree_from_wire(
                {"tree": {"root": {"intersection": {"nodes": [users_leaf("user:a")]}}}}
            )

    def test_difference_unsupported(self):
        with pytest.raises(StructuralError, match="unsupported node type: difference"):
            expansion_tree_from_wire(
                {
                    "tree": {
                        "root": {
                            "difference": {
                                "base": users_leaf("user:a"),
                                "subtract": users_leaf("user:b"),
                            }
                        }
                    }
                }
            )

    def test_malformed_payload(self):
        with pytest.raises(StructuralError, match="malformed Expand response"):
            expansion_tree_from_wire({"tree": {"root": {"leaf": {"users": {"users": "user:a"}}}}})
