"""
Userset expansion trees.

OpenFGA answers Expand with a tree in which every node is either a union of
child nodes or a leaf, and every leaf is one of:
- users: stored tuples naming principals or usersets directly
- computed: a relation implied by a rewrite in the authorization model
  (every writer is also a viewer)
- tupleToUserset: a relation inherited through another object
  (editors of the parent folder are editors of the document)

The wire format marks the variant by which key is present. This module
turns it into explicit node classes, rejecting anything that is not exactly
one variant, so the expansion engine only ever sees well-formed nodes.

Invariants:
    - A converted leaf has exactly one variant
    - Intersection and difference nodes are rejected, not approximated
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import StructuralError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnionNode:
    """Holds if any child holds."""

    children: tuple[Node, ...]


@dataclass(frozen=True)
class DirectUsers:
    """Principals and usersets taken from stored tuples."""

    identifiers: tuple[str, ...]


@dataclass(frozen=True)
class Computed:
    """A userset implied by a model rewrite, e.g. document:1#writer."""

    userset: Optional[str]


@dataclass(frozen=True)
class IndirectReference:
    """Usersets reached through a related object (tuple-to-userset).

    Attributes:
        tupleset: The tupleset that links to the related objects
        computed: One computed userset per related object
    """

    tupleset: str
    computed: tuple[Computed, ...]


Leaf = Union[DirectUsers, Computed, IndirectReference]
Node = Union[UnionNode, DirectUsers, Computed, IndirectReference]


@dataclass(frozen=True)
class ExpansionTree:
    """Result of one Expand call. root is None when the server sent none."""

    root: Optional[Node]


# Wire models (OpenFGA HTTP JSON)


class WireUsers(BaseModel):
    users: list[str] = Field(default_factory=list)


class WireComputed(BaseModel):
    userset: Optional[str] = None


class WireTupleToUserset(BaseModel):
    tupleset: str = ""
    computed: Optional[list[WireComputed]] = None


class WireLeaf(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    users: Optional[WireUsers] = None
    computed: Optional[WireComputed] = None
    tuple_to_userset: Optional[WireTupleToUserset] = Field(default=None, alias="tupleToUserset")


class WireNodes(BaseModel):
    nodes: list[WireNode] = Field(default_factory=list)


class WireNode(BaseModel):
    name: str = ""
    leaf: Optional[WireLeaf] = None
    union: Optional[WireNodes] = None
    intersection: Optional[WireNodes] = None
    difference: Optional[dict[str, Any]] = None


class WireTree(BaseModel):
    root: Optional[WireNode] = None


class ExpandResponse(BaseModel):
    tree: Optional[WireTree] = None


WireNodes.model_rebuild()
WireNode.model_rebuild()
ExpandResponse.model_rebuild()


def _structural_error(message: str, wire: BaseModel) -> StructuralError:
    dumped = wire.model_dump(mode="json", by_alias=True, exclude_none=True)
    logger.error(f"{message}: {wire.model_dump_json(by_alias=True, exclude_none=True)}")
    return StructuralError(message, node=dumped)


def node_from_wire(wire: WireNode) -> Node:
    """Convert a wire node into a tree node.

    Raises:
        StructuralError: If the node is not exactly one supported variant
    """
    present = [
        kind
        for kind in ("leaf", "union", "intersection", "difference")
        if getattr(wire, kind) is not None
    ]
    if len(present) != 1:
        raise _structural_error("unknown node type", wire)

    if wire.union is not None:
        return UnionNode(children=tuple(node_from_wire(child) for child in wire.union.nodes))
    if wire.leaf is not None:
        return leaf_from_wire(wire.leaf)
    raise _structural_error(f"unsupported node type: {present[0]}", wire)


def leaf_from_wire(wire: WireLeaf) -> Leaf:
    """Convert a wire leaf into DirectUsers, Computed or IndirectReference.

    Raises:
        StructuralError: If zero or several variants are set, or a
            tupleToUserset carries no computed usersets
    """
    present = [
        value
        for value in (wire.users, wire.computed, wire.tuple_to_userset)
        if value is not None
    ]
    if len(present) != 1:
        raise _structural_error("unknown leaf type", wire)

    if wire.users is not None:
        return DirectUsers(identifiers=tuple(wire.users.users))
    if wire.computed is not None:
        return Computed(userset=wire.computed.userset)

    ttu = wire.tuple_to_userset
    if ttu.computed is None:
        raise _structural_error("unsupported indirect-reference shape", wire)
    return IndirectReference(
        tupleset=ttu.tupleset,
        computed=tuple(Computed(userset=c.userset) for c in ttu.computed),
    )


def expansion_tree_from_wire(payload: dict[str, Any]) -> ExpansionTree:
    """Convert an Expand response body into an ExpansionTree.

    Args:
        payload: Decoded JSON body of an Expand response

    Returns:
        ExpansionTree, with root None when the response has no root

    Raises:
        StructuralError: If the body does not match the Expand schema
    """
    try:
        response = ExpandResponse.model_validate(payload)
    except pydantic.ValidationError as e:
        logger.error(f"Malformed Expand response: {e}")
        raise StructuralError(f"malformed Expand response: {e}", node=payload) from e

    if response.tree is None or response.tree.root is None:
        return ExpansionTree(root=None)
    return ExpansionTree(root=node_from_wire(response.tree.root))
