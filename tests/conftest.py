"""Shared fixtures: an in-process fake triple store behind httpx.MockTransport."""

import json

import httpx
import pytest

from sparql_gateway.config import GatewayConfig

SERVER = "http://store.test/rdf4j-server"
REPO = "people"
ENDPOINT = f"{SERVER}/repositories/{REPO}"


def bindings(vars, rows):
    """SPARQL JSON results for ``rows`` of plain values (IRIs start with http)."""
    out = []
    for row in rows:
        binding = {}
        for var, value in row.items():
            kind = "uri" if str(value).startswith("http") else "literal"
            binding[var] = {"type": kind, "value": value}
        out.append(binding)
    return {"head": {"vars": vars}, "results": {"bindings": out}}


NAMESPACES = bindings(
    ["prefix", "namespace"],
    [{"prefix": "ex", "namespace": "http://example.org/"}],
)


class FakeStore:
    """
    Routes requests to canned responses and records every request.

    ``routes`` maps (method, path) to an httpx.Response or a callable
    taking the request and returning one.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict = {}

    def on(self, method, path, response):
        self.routes[(method, path)] = response
        return self

    def json(self, method, path, data, status=200):
        return self.on(method, path, httpx.Response(status, json=data))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_store():
    store = FakeStore()
    store.json("GET", "/rdf4j-server/repositories/people/namespaces", NAMESPACES)
    return store


@pytest.fixture
def config():
    return GatewayConfig(server_url=SERVER, repository=REPO)


def body_json(request: httpx.Request):
    return json.loads(request.content)
