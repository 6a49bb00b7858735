"""
Userset expansion engine.

Resolves "who has relation R on object O" into the flat set of principals
by walking Expand trees and following every userset they reference:
- users leaves are added directly, or expanded when they name a userset
- computed leaves (model rewrites) are expanded
- tupleToUserset leaves (inheritance through another object) are expanded

Every userset that needs expanding costs another Expand call. The number of
calls along any path is bounded by a depth budget: when it runs out, the
userset itself is returned unexpanded (e.g. "folder:1#editor").

Invariants:
    - The budget is decremented only in _resolve, once per Expand call
    - Results are sets; branch order never changes the outcome
    - The first error anywhere aborts the whole resolution

How to change safely:
    - Keep accumulators local to the frame that creates them
    - If branches are ever expanded concurrently, merge per-branch sets and
      cancel the remaining branches on the first error
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .entity import (
    Entity,
    PlainIdentifier,
    RelationTuple,
    UsersetReference,
    classify_identifier,
)
from .errors import StructuralError
from .tree import Computed, DirectUsers, ExpansionTree, IndirectReference, Node, UnionNode
from .validate import validate_max_depth, validate_user_by_relation_query

logger = logging.getLogger(__name__)


class ExpandBackend(Protocol):
    """The single server operation the engine depends on."""

    async def expand(self, relation: str, object: Entity) -> ExpansionTree:
        """Expand relation on object into a userset tree."""
        ...


class UsersetExpander:
    """Recursively expands a relation on an object into principals.

    Thread safety:
        Holds no per-call state; one instance can serve concurrent calls as
        long as the backend can.

    Example:
        >>> expander = UsersetExpander(backend)
        >>> query = RelationTuple(relation="viewer", object=Entity("document", "1"))
        >>> await expander.resolve_principals(query, max_depth=5)
        {'user:alice', 'user:bob'}
    """

    def __init__(self, backend: ExpandBackend) -> None:
        self._backend = backend

    async def resolve_principals(self, query: RelationTuple, max_depth: int) -> set[str]:
        """Resolve every principal holding query.relation on query.object.

        Args:
            query: Tuple with object (kind and ID) and relation set
            max_depth: Maximum number of nested Expand calls, at least 1

        Returns:
            Set of identifier strings. Usersets that could not be expanded
            within max_depth are included as "kind:id#relation".

        Raises:
            ValidationError: If query or max_depth are invalid
            ParseError: If the server returned a malformed identifier
            StructuralError: If the server returned an unexpected tree
            BackendError: If an Expand call failed
        """
        validate_user_by_relation_query(query)
        validate_max_depth(max_depth)
        return await self._resolve(query, max_depth)

    async def _resolve(self, query: RelationTuple, budget: int) -> set[str]:
        if budget == 0:
            return {str(query.object.with_relation(query.relation))}

        logger.debug(
            f"Expanding {query.object}#{query.relation}",
            extra={"object": str(query.object), "relation": query.relation, "budget": budget},
        )
        tree = await self._backend.expand(query.relation, query.object)
        if tree.root is None:
            logger.error(f"Expand response for {query.object}#{query.relation} has no root")
            raise StructuralError("unexpected tree structure from Expand response: missing root")

        return await self._traverse(tree.root, budget - 1)

    async def _traverse(self, node: Node, budget: int) -> set[str]:
        if isinstance(node, UnionNode):
            principals: set[str] = set()
            for child in node.children:
                principals |= await self._traverse(child, budget)
            return principals

        if isinstance(node, DirectUsers):
            return await self._expand_identifiers(budget, node.identifiers)

        if isinstance(node, Computed):
            return await self._expand_computed(budget, (node,))

        if isinstance(node, IndirectReference):
            if not all(isinstance(entry, Computed) for entry in node.computed):
                logger.error(f"Unsupported tupleToUserset entries: {node.computed!r}")
                raise StructuralError("unsupported indirect-reference shape", node=repr(node))
            return await self._expand_computed(budget, node.computed)

        logger.error(f"Unknown node type: {node!r}")
        raise StructuralError("unknown node type", node=repr(node))

    async def _expand_identifiers(self, budget: int, identifiers: Iterable[str]) -> set[str]:
        principals: set[str] = set()
        for raw in identifiers:
            identifier = classify_identifier(raw)
            if isinstance(identifier, PlainIdentifier):
                principals.add(identifier.value)
            elif isinstance(identifier, UsersetReference):
                nested = RelationTuple(relation=identifier.relation, object=identifier.object)
                principals |= await self._resolve(nested, budget)
        return principals

    async def _expand_computed(self, budget: int, entries: Iterable[Computed]) -> set[str]:
        principals: set[str] = set()
        for entry in entries:
            if not entry.userset:
                logger.error(f"Computed rewrite without userset: {entry!r}")
                raise StructuralError("missing userset on computed rewrite", node=repr(entry))
            principals |= await self._expand_identifiers(budget, (entry.userset,))
        return principals
