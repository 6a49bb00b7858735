"""
OpenFGA client for the fgaquery SDK.

This module provides the main client interface:
- FgaClient: Connection to an OpenFGA store and the query operations

Example:
    >>> settings = FgaSettings(api_host="localhost", api_port="8080", store_id="01H...")
    >>> async with FgaClient(settings) as fga:
    ...     doc = Entity("document", "planning")
    ...     users = await fga.find_users_by_relation(
    ...         RelationTuple(relation="viewer", object=doc), max_depth=5
    ...     )

Invariants:
    - Every operation validates its tuple before contacting the server
    - Each operation except find_users_by_relation makes exactly one request
    - Calls are made against the configured authorization model
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import FgaSettings
from ._http_client import HttpClient
from .entity import Entity, RelationTuple, TimestampedTuple
from .errors import (
    BackendError,
    ConnectionError,
    DeadlineExceededError,
    ParseError,
)
from .expand import UsersetExpander
from .validate import (
    validate_accessible_objects_query,
    validate_check_query,
    validate_matching_tuples_query,
)

logger = logging.getLogger(__name__)


class FgaClient:
    """Client for querying an OpenFGA store.

    Wraps the OpenFGA HTTP API with input validation, entity parsing and
    recursive expansion of usersets.

    Example:
        >>> async with FgaClient(FgaSettings()) as fga:
        ...     allowed = await fga.check_relation(
        ...         RelationTuple(Entity("user", "bob"), "viewer", Entity("document", "1"))
        ...     )
    """

    def __init__(
        self,
        settings: FgaSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            settings: Connection settings, read from OPENFGA_* when omitted
            transport: Optional httpx transport

        Raises:
            ValueError: If the settings are incomplete
        """
        self.settings = settings or FgaSettings()
        self.settings.verify()

        self._http = HttpClient(self.settings, transport=transport)
        self._expander = UsersetExpander(self._http)
        self._connected = False

    @property
    def authorization_model_id(self) -> str:
        return self.settings.authorization_model_id

    async def connect(self) -> None:
        """Connect to the server and verify the configured store and model.

        Raises:
            ConnectionError: If the server cannot be reached, or the store or
                authorization model does not exist
        """
        if self._connected:
            return

        logger.info(
            "Configuring OpenFGA client",
            extra={
                "scheme": self.settings.api_scheme,
                "host": self.settings.api_host,
                "port": self.settings.api_port,
                "store": self.settings.store_id,
            },
        )
        await self._http.connect()
        try:
            await self._verify()
        except BaseException:
            await self._http.close()
            raise
        self._connected = True

    async def _verify(self) -> None:
        address = self._http.address
        try:
            response = await self._http.list_stores()
        except BackendError as e:
            raise ConnectionError(f"cannot list stores: {e}", address=address) from e
        if response.status_code != 200:
            raise ConnectionError(
                "failed to contact the OpenFGA server: "
                f"received {response.status_code}: {response.text}",
                address=address,
            )

        if self.settings.store_id:
            try:
                store = await self._http.get_store()
            except BackendError as e:
                raise ConnectionError(f"cannot retrieve store: {e}", address=address) from e
            logger.info(f"Store found: {store.get('name', '')}")

        if self.settings.authorization_model_id:
            try:
                await self._http.read_authorization_model(self.settings.authorization_model_id)
            except BackendError as e:
                raise ConnectionError(
                    f"cannot retrieve authorization model: {e}", address=address
                ) from e
            logger.info(f"Authorization model found: {self.settings.authorization_model_id}")

    async def close(self) -> None:
        """Close the connection."""
        await self._http.close()
        self._connected = False

    async def __aenter__(self) -> FgaClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def check_relation(
        self,
        tuple_: RelationTuple,
        *contextual_tuples: RelationTuple,
    ) -> bool:
        """Check whether the relation holds, directly or through the model.

        Args:
            tuple_: Fully specified subject, relation and object
            *contextual_tuples: Tuples considered for this check only

        Returns:
            True if the subject has the relation on the object

        Raises:
            ValidationError: If the tuple is incomplete
            BackendError: If the request failed
        """
        validate_check_query(tuple_)
        logger.debug(
            "Check request",
            extra={
                "subject": str(tuple_.subject),
                "relation": tuple_.relation,
                "object": str(tuple_.object),
            },
        )
        allowed = await self._http.check(
            tuple_.to_wire(),
            [t.to_wire() for t in contextual_tuples],
        )
        logger.debug(f"Check request allowed={allowed}")
        return allowed

    async def find_matching_tuples(
        self,
        tuple_: RelationTuple | None = None,
        page_size: int = 0,
        continuation_token: str = "",
    ) -> tuple[list[TimestampedTuple], str]:
        """Fetch stored tuples matching tuple_.

        Only stored tuples are returned, relations implied by the
        authorization model are not. Constraints on tuple_:
        - object.kind is required, object.id is optional
        - without object.id the subject must be fully specified
        - an empty tuple (or None) matches every stored tuple

        Args:
            tuple_: Tuple to match
            page_size: Page size, server default when 0
            continuation_token: Token from a previous call, "" for the first page

        Returns:
            Tuple of (matching tuples, continuation token for the next page)

        Raises:
            ValidationError: If the tuple has the wrong shape
            ParseError: If the server returned a malformed tuple
            BackendError: If the request failed
        """
        tuple_ = tuple_ or RelationTuple()
        validate_matching_tuples_query(tuple_)

        response = await self._http.read(
            None if tuple_.is_empty() else tuple_.to_wire(),
            page_size=page_size,
            continuation_token=continuation_token,
        )

        tuples = []
        for stored in response.tuples:
            try:
                parsed = RelationTuple.from_wire(stored.key.model_dump())
            except ParseError as e:
                logger.error(f"Cannot parse tuple from Read response: {e}")
                raise ParseError(f"cannot parse tuple {stored.key}: {e}", e.value) from e
            tuples.append(TimestampedTuple(tuple=parsed, timestamp=stored.timestamp))

        return tuples, response.continuation_token

    async def find_users_by_relation(
        self,
        tuple_: RelationTuple,
        max_depth: int,
        *,
        timeout: float | None = None,
    ) -> list[Entity]:
        """Find every user that has tuple_.relation on tuple_.object.

        Takes stored tuples and the relations implied by the authorization
        model into account, expanding usersets recursively (a writer of a
        document is also a viewer, members of a team with access have
        access, and so on). Each nested userset costs one more request, so
        use with care.

        Args:
            tuple_: Tuple with object (kind and ID) and relation set
            max_depth: Maximum nesting of Expand requests, at least 1.
                Usersets deeper than this are returned unexpanded.
            timeout: Optional deadline in seconds for the whole expansion

        Returns:
            Entities sorted by their string form

        Raises:
            ValidationError: If the tuple or max_depth are invalid
            ParseError: If the server returned a malformed identifier
            StructuralError: If the server returned an unexpected tree
            BackendError: If a request failed
            DeadlineExceededError: If timeout elapsed
        """
        resolution = self._expander.resolve_principals(tuple_, max_depth)
        if timeout is None:
            identifiers = await resolution
        else:
            try:
                identifiers = await asyncio.wait_for(resolution, timeout)
            except asyncio.TimeoutError as e:
                logger.error(f"Expansion of {tuple_.object}#{tuple_.relation} timed out")
                raise DeadlineExceededError(
                    f"expansion did not finish within {timeout}s", timeout=timeout
                ) from e

        users = []
        for identifier in sorted(identifiers):
            try:
                users.append(Entity.parse(identifier))
            except ParseError as e:
                raise ParseError(
                    f"cannot parse entity {identifier!r} from Expand response: {e}", identifier
                ) from e
        return users

    async def find_accessible_objects_by_relation(
        self,
        tuple_: RelationTuple,
        *contextual_tuples: RelationTuple,
    ) -> list[Entity]:
        """List objects of a kind the subject has the relation on.

        Both stored tuples and relations implied by the model are checked.
        Constraints on tuple_:
        - subject must have kind and ID set
        - relation must be set
        - object must have only the kind set

        Args:
            tuple_: Query tuple
            *contextual_tuples: Tuples considered for this query only

        Returns:
            Accessible objects

        Raises:
            ValidationError: If the tuple has the wrong shape
            ParseError: If the server returned a malformed object
            BackendError: If the request failed
        """
        validate_accessible_objects_query(tuple_)

        raw_objects = await self._http.list_objects(
            user=str(tuple_.subject),
            relation=tuple_.relation,
            object_type=tuple_.object.kind,
            contextual_tuples=[t.to_wire() for t in contextual_tuples],
        )

        objects = []
        for raw in raw_objects:
            try:
                objects.append(Entity.parse(raw))
            except ParseError as e:
                raise ParseError(
                    f"cannot parse entity {raw!r} from ListObjects response: {e}", raw
                ) from e
        return objects
