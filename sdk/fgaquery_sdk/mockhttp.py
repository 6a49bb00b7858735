"""
Mock OpenFGA server for tests.

Define the routes a test expects to be called, the request bodies they
should receive and the responses they return. The routes are served by a
FastAPI application that FgaClient talks to through httpx.ASGITransport, so
no sockets are opened.

Example:
    >>> expand = RouteResponder(
    ...     route=Route("POST", "/stores/store-1/expand"),
    ...     expected_body={"tuple_key": {"relation": "viewer", "object": "document:1"}},
    ...     mock_response=expand_response(users_leaf("user:alice")),
    ... )
    >>> transport = create_mock_transport([*connection_responders("store-1"), expand])
    >>> async with FgaClient(settings, transport=transport) as fga:
    ...     ...
    >>> expand.validate()

Several responders may share a route. A request is answered by the first
responder whose expected body matches it (a responder without an expected
body matches anything). Unmatched requests get a 404.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


@dataclass(frozen=True)
class Route:
    """A callable API endpoint.

    Attributes:
        method: HTTP method (GET, POST, ...)
        path: Exact request path
    """

    method: str
    path: str


@dataclass
class RecordedRequest:
    """A request received by a responder."""

    method: str
    path: str
    query: dict[str, str]
    body: Any


@dataclass
class RouteResponder:
    """Mock responder for one route.

    Attributes:
        route: Endpoint served
        expected_body: Request body this responder answers (None = any)
        expected_query: Query parameters every request must carry
        mock_response: JSON body returned
        mock_status: HTTP status returned
        delay: Seconds to wait before responding
        requests: Requests received so far
    """

    route: Route
    expected_body: Optional[Any] = None
    expected_query: Optional[dict[str, str]] = None
    mock_response: Any = None
    mock_status: int = 200
    delay: float = 0.0
    requests: list[RecordedRequest] = field(default_factory=list)

    def matches(self, body: Any) -> bool:
        return self.expected_body is None or self.expected_body == body

    def respond(self, recorded: RecordedRequest) -> JSONResponse:
        self.requests.append(recorded)
        content = {} if self.mock_response is None else self.mock_response
        return JSONResponse(content=content, status_code=self.mock_status)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def validate(self) -> None:
        """Assert that the route was called with the expected requests.

        Raises:
            AssertionError: If the route was never called, or a request
                differs from the expectations
        """
        assert self.requests, f"{self.route.method} {self.route.path} was not called"
        for recorded in self.requests:
            if self.expected_body is not None:
                assert recorded.body == self.expected_body, (
                    f"unexpected body for {self.route.path}: {recorded.body!r}"
                )
            if self.expected_query is not None:
                assert recorded.query == self.expected_query, (
                    f"unexpected query for {self.route.path}: {recorded.query!r}"
                )


def _make_endpoint(responders: list[RouteResponder]):
    async def endpoint(request: Request) -> JSONResponse:
        raw = await request.body()
        body = json.loads(raw) if raw else None
        recorded = RecordedRequest(
            method=request.method,
            path=request.url.path,
            query=dict(request.query_params),
            body=body,
        )
        for responder in responders:
            if responder.matches(body):
                if responder.delay:
                    await asyncio.sleep(responder.delay)
                return responder.respond(recorded)
        return JSONResponse(
            content={
                "code": "unmatched_request",
                "message": f"no mock response for {request.method} {request.url.path}: {body!r}",
            },
            status_code=404,
        )

    return endpoint


def create_mock_app(responders: list[RouteResponder]) -> FastAPI:
    """Create a FastAPI app serving the given responders."""
    app = FastAPI(title="OpenFGA mock")

    routes: dict[Route, list[RouteResponder]] = {}
    for responder in responders:
        routes.setdefault(responder.route, []).append(responder)

    for route, group in routes.items():
        app.add_api_route(route.path, _make_endpoint(group), methods=[route.method])

    return app


def create_mock_transport(responders: list[RouteResponder]) -> httpx.ASGITransport:
    """Create an httpx transport that serves the responders in-process."""
    return httpx.ASGITransport(app=create_mock_app(responders))


def connection_responders(
    store_id: str = "",
    authorization_model_id: str = "",
) -> list[RouteResponder]:
    """Responders answering the checks FgaClient.connect() performs."""
    responders = [
        RouteResponder(
            route=Route("GET", "/stores"),
            mock_response={"stores": [], "continuation_token": ""},
        )
    ]
    if store_id:
        responders.append(
            RouteResponder(
                route=Route("GET", f"/stores/{store_id}"),
                mock_response={"id": store_id, "name": "Test Store"},
            )
        )
    if authorization_model_id:
        responders.append(
            RouteResponder(
                route=Route(
                    "GET", f"/stores/{store_id}/authorization-models/{authorization_model_id}"
                ),
                mock_response={
                    "authorization_model": {
                        "id": authorization_model_id,
                        "schema_version": "1.1",
                        "type_definitions": [],
                    }
                },
            )
        )
    return responders


# Expand response builders


def users_leaf(*identifiers: str) -> dict[str, Any]:
    return {"leaf": {"users": {"users": list(identifiers)}}}


def computed_leaf(userset: str) -> dict[str, Any]:
    return {"leaf": {"computed": {"userset": userset}}}


def tuple_to_userset_leaf(tupleset: str, *usersets: str) -> dict[str, Any]:
    return {
        "leaf": {
            "tupleToUserset": {
                "tupleset": tupleset,
                "computed": [{"userset": u} for u in usersets],
            }
        }
    }


def union_node(*nodes: dict[str, Any]) -> dict[str, Any]:
    return {"union": {"nodes": list(nodes)}}


def expand_response(root: dict[str, Any], name: str = "") -> dict[str, Any]:
    """Wrap a root node in an Expand response body."""
    if name:
        root = {"name": name, **root}
    return {"tree": {"root": root}}


def expand_body(relation: str, object: str, authorization_model_id: str = "") -> dict[str, Any]:
    """Request body FgaClient sends for an Expand call."""
    body: dict[str, Any] = {"tuple_key": {"relation": relation, "object": object}}
    if authorization_model_id:
        body["authorization_model_id"] = authorization_model_id
    return body
