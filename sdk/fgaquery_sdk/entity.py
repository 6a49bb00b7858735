"""
Entities and relationship tuples for the fgaquery SDK.

This module handles the textual identifier format used by OpenFGA:
- Entity parsing/rendering (user:alice, team:eng#member, user:*)
- Relationship tuples (subject, relation, object)
- Classification of raw identifiers returned by Expand

Invariants:
    - Entities are immutable once built
    - str(Entity.parse(s)) == s for every valid s
    - An identifier carries at most one '#'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Union

from .errors import ParseError

USERSET_SEPARATOR = "#"
WILDCARD = "*"

_TOKEN = r"[A-Za-z0-9_][A-Za-z0-9_-]*"
_ID = r"\*|[A-Za-z0-9_][A-Za-z0-9_.\-+@]*"

ENTITY_PATTERN = re.compile(rf"(?P<kind>{_TOKEN}):(?P<id>{_ID})(?:#(?P<relation>{_TOKEN}))?")


@dataclass(frozen=True)
class Entity:
    """An entity or entity-set (userset) in OpenFGA.

    Examples:
        - user:alice - a single principal
        - user:* - every principal of kind user
        - team:eng#member - every principal holding member on team:eng

    Attributes:
        kind: Entity type as defined by the authorization model
        id: Entity identifier, or "*" for the wildcard
        relation: Set only when the entity denotes a userset
    """

    kind: str
    id: str = ""
    relation: str = ""

    @classmethod
    def parse(cls, entity_str: str) -> Entity:
        """Parse a string of the form kind:id or kind:id#relation.

        Args:
            entity_str: String like "user:42" or "org:canonical#member"

        Returns:
            Parsed Entity

        Raises:
            ParseError: If the string is not a valid entity representation
        """
        match = ENTITY_PATTERN.fullmatch(entity_str)
        if match is None:
            raise ParseError(f"invalid entity representation: {entity_str!r}", entity_str)
        return cls(
            kind=match.group("kind"),
            id=match.group("id"),
            relation=match.group("relation") or "",
        )

    def __str__(self) -> str:
        if not self.relation:
            return f"{self.kind}:{self.id}"
        return f"{self.kind}:{self.id}{USERSET_SEPARATOR}{self.relation}"

    @property
    def is_userset(self) -> bool:
        return bool(self.relation)

    @property
    def is_wildcard(self) -> bool:
        return self.id == WILDCARD

    def with_relation(self, relation: str) -> Entity:
        """Return a copy of this entity pointing at the given relation."""
        return replace(self, relation=relation)


def parse_entity(entity_str: str) -> Entity:
    """Parse an entity string. See Entity.parse."""
    return Entity.parse(entity_str)


@dataclass(frozen=True)
class PlainIdentifier:
    """A raw identifier naming a single principal, kept verbatim."""

    value: str


@dataclass(frozen=True)
class UsersetReference:
    """A raw identifier naming every principal with relation on object."""

    object: Entity
    relation: str

    def __str__(self) -> str:
        return str(self.object.with_relation(self.relation))


Identifier = Union[PlainIdentifier, UsersetReference]


def classify_identifier(raw: str) -> Identifier:
    """Classify a raw identifier from an Expand response.

    Plain identifiers (no '#') are not parsed, they are passed through as
    they were returned by the server.

    Args:
        raw: Identifier string such as "user:bob" or "group:eng#member"

    Returns:
        PlainIdentifier or UsersetReference

    Raises:
        ParseError: If raw holds more than one '#' or the userset half is invalid
    """
    separators = raw.count(USERSET_SEPARATOR)
    if separators == 0:
        return PlainIdentifier(raw)
    if separators > 1:
        raise ParseError(f"unrecognized principal representation: {raw!r}", raw)

    entity = Entity.parse(raw)
    return UsersetReference(object=replace(entity, relation=""), relation=entity.relation)


@dataclass(frozen=True)
class RelationTuple:
    """A relationship between a subject and an object.

    OpenFGA calls the subject the tuple "user", although it can be any
    entity or userset.

    Attributes:
        subject: Who holds the relation (optional for some queries)
        relation: Relation name (optional for some queries)
        object: The object the relation is held on
    """

    subject: Entity | None = None
    relation: str = ""
    object: Entity | None = None

    def is_empty(self) -> bool:
        return self.subject is None and not self.relation and self.object is None

    def to_wire(self) -> dict[str, str]:
        """Convert to an OpenFGA tuple key, omitting unset parts."""
        key: dict[str, str] = {}
        if self.subject is not None:
            key["user"] = str(self.subject)
        if self.relation:
            key["relation"] = self.relation
        if self.object is not None:
            key["object"] = str(self.object)
        return key

    @classmethod
    def from_wire(cls, key: dict[str, Any]) -> RelationTuple:
        """Create from an OpenFGA tuple key.

        Raises:
            ParseError: If user or object is not a valid entity
        """
        subject = Entity.parse(key["user"]) if key.get("user") else None
        obj = Entity.parse(key["object"]) if key.get("object") else None
        return cls(subject=subject, relation=key.get("relation") or "", object=obj)


@dataclass(frozen=True)
class TimestampedTuple:
    """A stored tuple and the time it was written.

    Attributes:
        tuple: The relationship tuple
        timestamp: When the server stored it
    """

    tuple: RelationTuple
    timestamp: datetime
