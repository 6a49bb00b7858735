"""
Unit tests for entities and relation tuples.

Tests cover:
- Entity parsing and rendering
- Wildcards and usersets
- Identifier classification
- Tuple conversion to and from OpenFGA tuple keys
"""

import pytest

from fgaquery_sdk.entity import (
    Entity,
    PlainIdentifier,
    RelationTuple,
    UsersetReference,
    classify_identifier,
    parse_entity,
)
from fgaquery_sdk.errors import ParseError


class TestEntityParsing:
    """Tests for Entity.parse."""

    def test_parse_plain_entity(self):
        """Parse kind:id format."""
        entity = Entity.parse("user:alice")
        assert entity == Entity(kind="user", id="alice")
        assert not entity.is_userset

    def test_parse_userset(self):
        """Parse kind:id#relation format."""
        entity = Entity.parse("organization:canonical#member")
        assert entity.kind == "organization"
        assert entity.id == "canonical"
        assert entity.relation == "member"
        assert entity.is_userset

    def test_parse_wildcard(self):
        """Parse kind:* format."""
        entity = Entity.parse("user:*")
        assert entity.id == "*"
        assert entity.is_wildcard

    @pytest.mark.parametrize(
        "value",
        ["user:alice@example.com", "user:a.b-c+d", "doc_type:123", "user:_x"],
    )
    def test_parse_id_charset(self, value):
        """IDs may contain '.', '-', '+' and '@' after the first character."""
        assert str(Entity.parse(value)) == value

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "user",
            "user:",
            ":alice",
            "user:alice#",
            "team:eng#member#admin",
            "user:alice bob",
            "user:.alice",
            "us er:alice",
        ],
    )
    def test_parse_invalid(self, value):
        """Invalid representations raise ParseError."""
        with pytest.raises(ParseError) as exc_info:
            Entity.parse(value)
        assert exc_info.value.value == value

    def test_parse_entity_function(self):
        """parse_entity is the functional form of Entity.parse."""
        assert parse_entity("team:eng#member") == Entity("team", "eng", "member")


class TestEntityRendering:
    """Tests for Entity string form."""

    def test_render_plain(self):
        assert str(Entity(kind="user", id="bob")) == "user:bob"

    def test_render_userset(self):
        assert str(Entity(kind="team", id="eng", relation="member")) == "team:eng#member"

    def test_render_kind_only(self):
        """Kind-only entities render with an empty ID for type queries."""
        assert str(Entity(kind="document")) == "document:"

    def test_with_relation(self):
        """with_relation returns a new userset entity."""
        folder = Entity("folder", "1")
        editors = folder.with_relation("editor")
        assert str(editors) == "folder:1#editor"
        assert folder.relation == ""

    def test_entities_are_immutable(self):
        entity = Entity("user", "bob")
        with pytest.raises(AttributeError):
            entity.id = "alice"


class TestClassifyIdentifier:
    """Tests for classify_identifier."""

    def test_plain_identifier_is_kept_verbatim(self):
        assert classify_identifier("user:alice") == PlainIdentifier("user:alice")

    def test_wildcard_is_plain(self):
        assert classify_identifier("user:*") == PlainIdentifier("user:*")

    def test_userset_reference(self):
        identifier = classify_identifier("folder:1#editor")
        assert isinstance(identifier, UsersetReference)
        assert identifier.object == Entity("folder", "1")
        assert identifier.relation == "editor"
        assert str(identifier) == "folder:1#editor"

    def test_multiple_separators_rejected(self):
        with pytest.raises(ParseError, match="unrecognized principal representation"):
            classify_identifier("team:eng#member#admin")

    def test_invalid_userset_rejected(self):
        with pytest.raises(ParseError):
            classify_identifier("not an entity#member")


class TestRelationTuple:
    """Tests for RelationTuple wire conversion."""

    def test_to_wire_full(self):
        t = RelationTuple(Entity("user", "123"), "editor", Entity("contract", "789"))
        assert t.to_wire() == {
            "user": "user:123",
            "relation": "editor",
            "object": "contract:789",
        }

    def test_to_wire_without_subject(self):
        t = RelationTuple(relation="editor", object=Entity("contract", "789"))
        assert t.to_wire() == {"relation": "editor", "object": "contract:789"}

    def test_to_wire_without_relation(self):
        t = RelationTuple(subject=Entity("user", "123"), object=Entity("contract", "789"))
        assert t.to_wire() == {"user": "user:123", "object": "contract:789"}

    def test_to_wire_userset_subject(self):
        t = RelationTuple(Entity("team", "eng", "member"), "viewer", Entity("document", "1"))
        assert t.to_wire()["user"] == "team:eng#member"

    def test_from_wire(self):
        t = RelationTuple.from_wire(
            {"user": "user:bob", "relation": "viewer", "object": "document:planning"}
        )
        assert t == RelationTuple(Entity("user", "bob"), "viewer", Entity("document", "planning"))

    def test_from_wire_invalid_user(self):
        with pytest.raises(ParseError):
            RelationTuple.from_wire({"user": "bob", "relation": "viewer", "object": "doc:1"})

    def test_is_empty(self):
        assert RelationTuple().is_empty()
        assert not RelationTuple(relation="viewer").is_empty()
