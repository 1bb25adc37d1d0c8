"""Tests for AsyncGatewayClient, driven with asyncio.run."""

import asyncio

import httpx
import pytest

from conftest import ENDPOINT, bindings
from sparql_gateway.client import AsyncGatewayClient
from sparql_gateway.config import DEFAULT_QUERY_LIMIT
from sparql_gateway.errors import RemoteError, RequestError
from sparql_gateway.queries import QuerySynthesizer

BASE = "/rdf4j-server/repositories/people"
ALICE = "http://example.org/alice"


def run(coro_fn, fake_store, config, **kwargs):
    """Run ``coro_fn(client)`` with a fresh client bound to the fake store."""

    async def main():
        async with AsyncGatewayClient(
            config, http_transport=fake_store.transport(), **kwargs
        ) as client:
            return await coro_fn(client)

    return asyncio.run(main())


class TestAsyncQueries:
    """Tests for async query operations."""

    def test_select_default_limit(self, fake_store, config):
        fake_store.json("POST", BASE, bindings(["s"], [{"s": ALICE}]))
        result = run(lambda c: c.select_query("SELECT ?s {}"), fake_store, config)
        assert result.bindings[0]["s"].value == ALICE
        assert fake_store.last.url.params["limit"] == str(DEFAULT_QUERY_LIMIT)
        assert str(fake_store.last.url).startswith(ENDPOINT)

    def test_ask_and_construct(self, fake_store, config):
        fake_store.json("POST", BASE, {"boolean": False})
        result = run(lambda c: c.ask_query("ASK {}", limit=5), fake_store, config)
        assert result.boolean is False
        assert fake_store.last.url.params["limit"] == "5"

        fake_store.on("POST", BASE, httpx.Response(200, text="[]"))
        text = run(
            lambda c: c.construct_query("CONSTRUCT {}", "application/ld+json"),
            fake_store, config,
        )
        assert text == "[]"
        assert fake_store.last.headers["Accept"] == "application/ld+json"

    def test_update(self, fake_store, config):
        fake_store.on("POST", BASE + "/statements", httpx.Response(204))
        result = run(lambda c: c.update_query("CLEAR DEFAULT"), fake_store, config)
        assert result.success

    def test_mentions(self, fake_store, config):
        fake_store.json("POST", BASE, bindings(["subject", "predicate", "object", "context"], []))
        run(lambda c: c.get_subject_mentions(ALICE), fake_store, config)
        assert fake_store.last.content.decode() == QuerySynthesizer.mentions_query(ALICE)

    def test_contexts(self, fake_store, config):
        fake_store.json("GET", BASE + "/contexts", bindings(["contextID"], [
            {"contextID": "http://example.org/g"},
        ]))
        fake_store.json("DELETE", BASE + "/statements", {"status": "ok"})

        async def scenario(client):
            contexts = await client.get_contexts()
            deleted = await client.delete_context(contexts[0].iri)
            return contexts, deleted

        contexts, deleted = run(scenario, fake_store, config)
        assert contexts[0].iri == "http://example.org/g"
        assert deleted is True
        assert fake_store.last.url.params["context"] == "<http://example.org/g>"

    def test_remote_error(self, fake_store, config):
        fake_store.json("PUT", BASE + "/statements", {"message": "Bad data"}, status=400)
        with pytest.raises(RemoteError, match="Bad data"):
            run(lambda c: c.replace_context("http://example.org/g", "text/turtle", "x"), fake_store, config)


class TestAsyncState:
    """Tests for async caches, codec and auth."""

    def test_namespaces_cached(self, fake_store, config):
        async def scenario(client):
            first = await client.get_namespaces_cached()
            second = await client.get_namespaces_cached()
            return first is second

        assert run(scenario, fake_store, config)
        assert len(fake_store.requests) == 1

    def test_login_and_codec(self, fake_store, config):
        async def scenario(client):
            await client.login("admin", "secret")
            return await client.get_iri_codec()

        codec = run(scenario, fake_store, config)
        assert codec.expand("ex:alice") == ALICE
        assert fake_store.last.headers["Authorization"].startswith("Basic ")
        assert len(fake_store.requests) == 1

    def test_set_repository_degraded(self, fake_store, config):
        async def scenario(client):
            await client.set_repository("missing")
            return client

        client = run(scenario, fake_store, config)
        assert client.namespaces_degraded
        assert client.current_repo == "missing"

    def test_401_callback(self, fake_store, config):
        calls = []
        fake_store.on("POST", BASE, httpx.Response(401))
        with pytest.raises(RequestError):
            run(
                lambda c: c.select_query("SELECT * {}"),
                fake_store, config,
                on_not_authorized=lambda: calls.append(1),
            )
        assert calls == [1]
