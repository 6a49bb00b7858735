"""
Error types for the fgaquery SDK.

This module defines all exception types raised by the SDK:
- FgaError: Base exception
- ValidationError: Query tuple has the wrong shape for the operation
- ParseError: Malformed entity/identifier string
- StructuralError: Expand response does not have the expected tree shape
- BackendError: Transport failure or non-success status from OpenFGA
- ConnectionError: Server, store or authorization model unreachable
- DeadlineExceededError: A bounded call ran out of time

Invariants:
    - All errors inherit from FgaError
    - Validation errors are raised before any request is sent
    - Errors include context for debugging (rule, value, operation)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ValidationRule(Enum):
    """Input-shape rules enforced by the query validators."""

    MISSING_OBJECT = "missing_object"
    MISSING_OBJECT_KIND = "missing_object_kind"
    OBJECT_ID_OR_SUBJECT_REQUIRED = "object_id_or_subject_required"
    OBJECT_RELATION_NOT_ALLOWED = "object_relation_not_allowed"
    OBJECT_KIND_ONLY = "object_kind_only"
    MISSING_SUBJECT = "missing_subject"
    MISSING_RELATION = "missing_relation"
    MAX_DEPTH_TOO_SMALL = "max_depth_too_small"


class FgaError(Exception):
    """Base exception for all fgaquery SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "FGA_ERROR"
        self.details = details or {}


class ValidationError(FgaError):
    """Query tuple failed validation for the requested operation.

    Raised when:
    - A required part of the tuple is missing
    - A part of the tuple is set where the operation forbids it
    - The expansion depth is below 1

    Attributes:
        rule: The ValidationRule that was violated
        field_name: Tuple field the rule applies to
    """

    def __init__(
        self,
        message: str,
        rule: ValidationRule,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"rule": rule.value, "field": field_name},
        )
        self.rule = rule
        self.field_name = field_name


class ParseError(FgaError):
    """An identifier string is not a valid entity representation."""

    def __init__(self, message: str, value: str) -> None:
        super().__init__(
            message,
            code="PARSE_ERROR",
            details={"value": value},
        )
        self.value = value


class StructuralError(FgaError):
    """An Expand response cannot be interpreted.

    Raised when:
    - The response has no root node
    - A leaf has none (or more than one) of users/computed/tupleToUserset
    - A computed rewrite has no userset
    - A node type is not supported by the expansion engine
    """

    def __init__(
        self,
        message: str,
        node: Optional[Any] = None,
    ) -> None:
        super().__init__(
            message,
            code="STRUCTURAL_ERROR",
            details={"node": node},
        )
        self.node = node


class BackendError(FgaError):
    """A request to the OpenFGA server failed.

    Attributes:
        operation: API operation name (expand, check, read, list-objects)
        status_code: HTTP status, None for transport failures
        identifiers: Entities/relations the request was about
    """

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        identifiers: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="BACKEND_ERROR",
            details={
                "operation": operation,
                "status_code": status_code,
                "identifiers": identifiers or [],
            },
        )
        self.operation = operation
        self.status_code = status_code
        self.identifiers = identifiers or []


class ConnectionError(FgaError):
    """Failed to connect to the OpenFGA server.

    Raised when:
    - Server is unreachable or does not answer ListStores with 200
    - The configured store does not exist
    - The configured authorization model does not exist
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"address": address},
        )
        self.address = address


class DeadlineExceededError(FgaError):
    """A call did not finish within its timeout."""

    def __init__(self, message: str, timeout: float) -> None:
        super().__init__(
            message,
            code="DEADLINE_EXCEEDED",
            details={"timeout": timeout},
        )
        self.timeout = timeout
