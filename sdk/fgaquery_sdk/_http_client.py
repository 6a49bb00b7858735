"""
Internal HTTP client for the fgaquery SDK.

This module provides the low-level communication layer with the OpenFGA
HTTP API. It is internal to the SDK and should not be used directly.

Users should use FgaClient instead, which provides validation and the
recursive user expansion on top of these calls.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx
import pydantic
from pydantic import BaseModel, Field

from .config import FgaSettings
from .entity import Entity
from .errors import BackendError, ConnectionError, StructuralError
from .tree import ExpansionTree, expansion_tree_from_wire

logger = logging.getLogger(__name__)


class WireTupleKey(BaseModel):
    """Tuple key as sent and received by OpenFGA."""

    user: str = ""
    relation: str = ""
    object: str = ""


class WireStoredTuple(BaseModel):
    key: WireTupleKey
    timestamp: datetime


class ReadResponse(BaseModel):
    tuples: list[WireStoredTuple] = Field(default_factory=list)
    continuation_token: str = ""


class CheckResponse(BaseModel):
    allowed: bool = False


class ListObjectsResponse(BaseModel):
    objects: list[str] = Field(default_factory=list)


class HttpClient:
    """Internal HTTP client for OpenFGA.

    This class handles all HTTP communication with the server.
    It manages the httpx connection pool and provides async methods
    for the API operations the SDK uses.

    This is an internal class - users should use FgaClient instead.
    """

    def __init__(
        self,
        settings: FgaSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            settings: Connection settings
            transport: Optional transport (tests serve an ASGI app through it)
        """
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def address(self) -> str:
        return self._settings.api_url

    async def connect(self) -> None:
        """Open the connection pool."""
        if self._client is not None:
            return

        headers = {"Content-Type": "application/json"}
        if self._settings.api_token:
            headers["Authorization"] = f"Bearer {self._settings.api_token}"

        self._client = httpx.AsyncClient(
            base_url=self._settings.api_url,
            headers=headers,
            timeout=self._settings.request_timeout,
            transport=self._transport,
        )
        logger.debug(f"Connected to OpenFGA server at {self.address}")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("Disconnected from OpenFGA server")

    async def __aenter__(self) -> HttpClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Ensure we're connected and return the httpx client."""
        if self._client is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._client

    def _store_path(self, suffix: str = "") -> str:
        if not self._settings.store_id:
            raise ConnectionError("OpenFGA store ID is not configured", address=self.address)
        return f"/stores/{self._settings.store_id}{suffix}"

    def _with_model(self, body: dict[str, Any]) -> dict[str, Any]:
        if self._settings.authorization_model_id:
            body["authorization_model_id"] = self._settings.authorization_model_id
        return body

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        identifiers: list[str] | None = None,
    ) -> httpx.Response:
        """Send one request and return the response, whatever its status.

        Raises:
            BackendError: If the request could not be sent or answered
        """
        client = self._ensure_connected()
        try:
            response = await client.request(method, path, json=body)
        except httpx.HTTPError as e:
            logger.error(f"cannot execute {operation} request: {e!r}")
            raise BackendError(
                f"cannot execute {operation} request: {e}",
                operation=operation,
                identifiers=identifiers,
            ) from e

        logger.debug(
            f"{operation} request returned {response.status_code}",
            extra={"operation": operation, "status_code": response.status_code},
        )
        return response

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        identifiers: list[str] | None = None,
    ) -> Any:
        """Send one request and return its decoded JSON body.

        Raises:
            BackendError: On transport failure, non-2xx status or a body
                that is not JSON
        """
        response = await self._request(
            operation, method, path, body=body, identifiers=identifiers
        )
        if not response.is_success:
            logger.error(f"{operation} request failed with {response.status_code}: {response.text}")
            raise BackendError(
                f"{operation} request failed: received {response.status_code}: {response.text}",
                operation=operation,
                status_code=response.status_code,
                identifiers=identifiers,
            )
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"{operation} response is not valid JSON",
                operation=operation,
                status_code=response.status_code,
                identifiers=identifiers,
            ) from e

    def _parse(self, operation: str, model: type[BaseModel], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except pydantic.ValidationError as e:
            logger.error(f"Malformed {operation} response: {e}")
            raise StructuralError(f"malformed {operation} response: {e}", node=payload) from e

    async def list_stores(self) -> httpx.Response:
        """List stores. Returns the raw response so callers can inspect the status."""
        return await self._request("list-stores", "GET", "/stores")

    async def get_store(self) -> dict[str, Any]:
        """Fetch the configured store."""
        return await self._call(
            "get-store", "GET", self._store_path(), identifiers=[self._settings.store_id]
        )

    async def read_authorization_model(self, model_id: str) -> dict[str, Any]:
        """Fetch an authorization model of the configured store."""
        return await self._call(
            "read-authorization-model",
            "GET",
            self._store_path(f"/authorization-models/{model_id}"),
            identifiers=[model_id],
        )

    async def expand(self, relation: str, object: Entity) -> ExpansionTree:
        """Expand relation on object into a userset tree.

        Raises:
            BackendError: If the request failed
            StructuralError: If the response is not an Expand tree
        """
        identifiers = [str(object), relation]
        payload = await self._call(
            "expand",
            "POST",
            self._store_path("/expand"),
            body=self._with_model(
                {"tuple_key": {"relation": relation, "object": str(object)}}
            ),
            identifiers=identifiers,
        )
        return expansion_tree_from_wire(payload)

    async def check(
        self,
        tuple_key: dict[str, str],
        contextual_tuples: Optional[list[dict[str, str]]] = None,
    ) -> bool:
        """Check whether a relationship holds."""
        body = self._with_model({"tuple_key": tuple_key})
        if contextual_tuples:
            body["contextual_tuples"] = {"tuple_keys": contextual_tuples}

        payload = await self._call(
            "check",
            "POST",
            self._store_path("/check"),
            body=body,
            identifiers=list(tuple_key.values()),
        )
        response: CheckResponse = self._parse("check", CheckResponse, payload)
        return response.allowed

    async def read(
        self,
        tuple_key: Optional[dict[str, str]] = None,
        page_size: int = 0,
        continuation_token: str = "",
    ) -> ReadResponse:
        """Read stored tuples matching tuple_key (all tuples when None)."""
        body: dict[str, Any] = {}
        if tuple_key:
            body["tuple_key"] = tuple_key
        if page_size:
            body["page_size"] = page_size
        if continuation_token:
            body["continuation_token"] = continuation_token

        payload = await self._call(
            "read",
            "POST",
            self._store_path("/read"),
            body=body,
            identifiers=list((tuple_key or {}).values()),
        )
        return self._parse("read", ReadResponse, payload)

    async def list_objects(
        self,
        user: str,
        relation: str,
        object_type: str,
        contextual_tuples: Optional[list[dict[str, str]]] = None,
    ) -> list[str]:
        """List objects of object_type on which user has relation."""
        body = self._with_model({"type": object_type, "relation": relation, "user": user})
        if contextual_tuples:
            body["contextual_tuples"] = {"tuple_keys": contextual_tuples}

        payload = await self._call(
            "list-objects",
            "POST",
            self._store_path("/list-objects"),
            body=body,
            identifiers=[user, relation, object_type],
        )
        response: ListObjectsResponse = self._parse("list-objects", ListObjectsResponse, payload)
        return response.objects
