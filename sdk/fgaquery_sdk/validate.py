"""
Query validation for the fgaquery SDK.

Each public operation accepts a RelationTuple but needs a different part of
it to be set. This module holds one validator per query shape:
- Matching tuples (Read)
- Users by relation (Expand)
- Accessible objects (ListObjects)
- Relation check (Check)

Invariants:
    - Validators never talk to the server
    - Every failure names the ValidationRule that was violated
"""

from __future__ import annotations

from .entity import Entity, RelationTuple
from .errors import ValidationError, ValidationRule


def _fully_specified(entity: Entity | None) -> bool:
    return entity is not None and bool(entity.kind) and bool(entity.id)


def validate_matching_tuples_query(tuple_: RelationTuple) -> None:
    """Validate a tuple used to read stored tuples.

    An empty tuple is valid and matches every stored tuple. Otherwise the
    object kind is required, and either the object ID or a fully specified
    subject must be present.

    Raises:
        ValidationError: If the tuple has the wrong shape
    """
    if tuple_.is_empty():
        return

    obj = tuple_.object
    if obj is None or not obj.kind:
        raise ValidationError(
            "missing tuple.object.kind",
            rule=ValidationRule.MISSING_OBJECT_KIND,
            field_name="object",
        )
    if not obj.id and not _fully_specified(tuple_.subject):
        raise ValidationError(
            "either tuple.object.id or tuple.subject must be specified",
            rule=ValidationRule.OBJECT_ID_OR_SUBJECT_REQUIRED,
            field_name="object",
        )
    if obj.relation:
        raise ValidationError(
            "invalid tuple.object, tuple.object.relation must not be set",
            rule=ValidationRule.OBJECT_RELATION_NOT_ALLOWED,
            field_name="object",
        )


def validate_user_by_relation_query(tuple_: RelationTuple) -> None:
    """Validate a tuple used to expand the users of a relation.

    Raises:
        ValidationError: If object kind/ID or the relation are missing, or
            the object carries a relation
    """
    if not _fully_specified(tuple_.object):
        raise ValidationError(
            "missing tuple.object",
            rule=ValidationRule.MISSING_OBJECT,
            field_name="object",
        )
    if tuple_.object.relation:
        raise ValidationError(
            "invalid tuple.object, tuple.object.relation must not be set",
            rule=ValidationRule.OBJECT_RELATION_NOT_ALLOWED,
            field_name="object",
        )
    if not tuple_.relation:
        raise ValidationError(
            "missing tuple.relation",
            rule=ValidationRule.MISSING_RELATION,
            field_name="relation",
        )


def validate_accessible_objects_query(tuple_: RelationTuple) -> None:
    """Validate a tuple used to list the objects a subject can reach.

    The subject must be fully specified, the relation set, and the object
    must carry its kind only.

    Raises:
        ValidationError: If the tuple has the wrong shape
    """
    if not _fully_specified(tuple_.subject):
        raise ValidationError(
            "missing tuple.subject",
            rule=ValidationRule.MISSING_SUBJECT,
            field_name="subject",
        )
    if not tuple_.relation:
        raise ValidationError(
            "missing tuple.relation",
            rule=ValidationRule.MISSING_RELATION,
            field_name="relation",
        )
    obj = tuple_.object
    if obj is None or not obj.kind or obj.id or obj.relation:
        raise ValidationError(
            "invalid tuple.object, only tuple.object.kind must be set",
            rule=ValidationRule.OBJECT_KIND_ONLY,
            field_name="object",
        )


def validate_check_query(tuple_: RelationTuple) -> None:
    """Validate a tuple used for a relation check.

    Raises:
        ValidationError: If subject, relation or object are missing
    """
    if not _fully_specified(tuple_.subject):
        raise ValidationError(
            "missing tuple.subject",
            rule=ValidationRule.MISSING_SUBJECT,
            field_name="subject",
        )
    if not tuple_.relation:
        raise ValidationError(
            "missing tuple.relation",
            rule=ValidationRule.MISSING_RELATION,
            field_name="relation",
        )
    if not _fully_specified(tuple_.object):
        raise ValidationError(
            "missing tuple.object",
            rule=ValidationRule.MISSING_OBJECT,
            field_name="object",
        )


def validate_max_depth(max_depth: int) -> None:
    """Validate the expansion depth budget.

    Raises:
        ValidationError: If max_depth is below 1
    """
    if max_depth < 1:
        raise ValidationError(
            f"max_depth must be at least 1, got {max_depth}",
            rule=ValidationRule.MAX_DEPTH_TOO_SMALL,
            field_name="max_depth",
        )
