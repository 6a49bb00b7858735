"""
fgaquery - Python SDK for querying OpenFGA.

This SDK provides a typed interface to an OpenFGA store:
- Entity and RelationTuple types (user:alice, team:eng#member)
- FgaClient for checks, tuple reads and object listing
- Recursive expansion of a relation into the users that hold it

Example:
    >>> from fgaquery_sdk import Entity, FgaClient, FgaSettings, RelationTuple
    >>>
    >>> settings = FgaSettings(api_host="localhost", api_port="8080", store_id="01H...")
    >>> async with FgaClient(settings) as fga:
    ...     users = await fga.find_users_by_relation(
    ...         RelationTuple(relation="viewer", object=Entity("document", "planning")),
    ...         max_depth=5,
    ...     )

Invariants:
    - Inputs are validated before any request is sent
    - Expansion depth is bounded by max_depth
    - All errors inherit from FgaError

Version: 1.0.0
"""

__version__ = "1.0.0"

from .client import FgaClient
from .config import FgaSettings
from .entity import (
    Entity,
    PlainIdentifier,
    RelationTuple,
    TimestampedTuple,
    UsersetReference,
    classify_identifier,
    parse_entity,
)
from .errors import (
    BackendError,
    ConnectionError,
    DeadlineExceededError,
    FgaError,
    ParseError,
    StructuralError,
    ValidationError,
    ValidationRule,
)
from .expand import ExpandBackend, UsersetExpander
from .tree import (
    Computed,
    DirectUsers,
    ExpansionTree,
    IndirectReference,
    UnionNode,
)

__all__ = [
    # Version
    "__version__",
    # Entities
    "Entity",
    "RelationTuple",
    "TimestampedTuple",
    "PlainIdentifier",
    "UsersetReference",
    "classify_identifier",
    "parse_entity",
    # Expansion
    "ExpandBackend",
    "UsersetExpander",
    "ExpansionTree",
    "UnionNode",
    "DirectUsers",
    "Computed",
    "IndirectReference",
    # Client
    "FgaClient",
    "FgaSettings",
    # Errors
    "FgaError",
    "ValidationError",
    "ValidationRule",
    "ParseError",
    "StructuralError",
    "BackendError",
    "ConnectionError",
    "DeadlineExceededError",
]
