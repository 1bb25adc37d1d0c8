"""
SPARQL gateway client for RDF4J-style triple stores.

GatewayClient (blocking) and AsyncGatewayClient (asyncio) expose the same
operations:
- SELECT / ASK / CONSTRUCT / UPDATE against the current repository
- traversal helpers (description, references, mentions of an IRI)
- named graph (context) listing, export, replace and delete
- repository and namespace listing, with a cached IriCodec
- saved query persistence

Endpoint and credentials live in an immutable GatewayConfig. Switching
repository, server or login swaps the config and drops the namespace cache
and codec.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional
from urllib.parse import quote

import httpx

from sparql_gateway.cache import CachedValue
from sparql_gateway.config import GatewayConfig
from sparql_gateway.errors import DecodeError, GatewayError, error_message
from sparql_gateway.iri import IriCodec
from sparql_gateway.models import (
    AskQueryResult,
    ContextDescription,
    RdfValue,
    RepositoryInfo,
    SelectQueryResult,
    UpdateQueryResult,
    parse_model,
)
from sparql_gateway.queries import QuerySynthesizer
from sparql_gateway.saved_queries import (
    JsonFileStorage,
    KeyValueStorage,
    SavedQuery,
    SavedQueryStore,
)
from sparql_gateway.transport import (
    ACCEPT_JSON,
    CONTENT_SPARQL_QUERY,
    CONTENT_SPARQL_UPDATE,
    AsyncGatewayTransport,
    Credentials,
    GatewayTransport,
    decode_json,
)
from sparql_gateway import values

logger = logging.getLogger(__name__)


def context_param(context_iri: str) -> dict[str, str]:
    """Query parameter addressing one named graph: ``context=<iri>``."""
    return {"context": f"<{context_iri}>"}


def parse_contexts(data: Any) -> list[ContextDescription]:
    result = parse_model(SelectQueryResult, data)
    contexts = []
    for binding in result.bindings:
        value = binding.get("contextID")
        if value is None:
            raise DecodeError("Context listing row without contextID")
        contexts.append(ContextDescription(iri=value.value))
    return contexts


def parse_repositories(data: Any) -> list[RepositoryInfo]:
    result = parse_model(SelectQueryResult, data)
    repos = []
    for binding in result.bindings:
        if "id" not in binding:
            raise DecodeError("Repository listing row without id")
        info: dict[str, Any] = {"id": binding["id"].value}
        if "title" in binding:
            info["title"] = binding["title"].value
        if "uri" in binding:
            info["uri"] = binding["uri"].value
        for flag in ("readable", "writable"):
            if flag in binding:
                info[flag] = binding[flag].value == "true"
        repos.append(RepositoryInfo(**info))
    return repos


def parse_delete_status(response: httpx.Response) -> bool:
    """A context delete succeeded when the body says ``status: ok`` (or is empty)."""
    if not response.content.strip():
        return True
    try:
        data = response.json()
    except ValueError as e:
        raise DecodeError(f"Invalid JSON from context delete: {e}") from e
    return isinstance(data, dict) and data.get("status") == "ok"


class _ClientBase:
    """Configuration, caches and request shaping shared by both clients."""

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        saved_queries: Optional[SavedQueryStore] = None,
        storage: Optional[KeyValueStorage] = None,
    ):
        self._config = config or GatewayConfig()
        if saved_queries is None:
            if storage is None and self._config.saved_queries_path:
                storage = JsonFileStorage(self._config.saved_queries_path)
            saved_queries = SavedQueryStore(storage)
        self.saved_queries = saved_queries

        self._namespaces: CachedValue[SelectQueryResult] = CachedValue()
        self._codec: CachedValue[IriCodec] = CachedValue()
        self.namespaces_degraded = False
        self.last_namespace_error: Optional[GatewayError] = None

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def server_url(self) -> str:
        return self._config.server_url

    @property
    def current_repo(self) -> str:
        return self._config.repository

    def repository_endpoint(self) -> str:
        return self._config.repository_endpoint

    def _replace_config(self, config: GatewayConfig) -> None:
        self._config = config
        self.invalidate_caches()

    def invalidate_caches(self) -> None:
        """Forget cached namespaces and the IRI codec."""
        self._namespaces.invalidate()
        self._codec.invalidate()
        self.namespaces_degraded = False
        self.last_namespace_error = None

    def set_server_url(self, url: str) -> None:
        self._replace_config(self._config.with_server_url(url))

    @property
    def _credentials(self) -> Optional[Credentials]:
        if not self._config.has_credentials:
            return None
        return (self._config.username, self._config.password)

    # -------------------------------------------------------------------------
    # Request shaping
    # -------------------------------------------------------------------------

    def _limit_params(self, limit: Optional[int]) -> dict[str, int]:
        return {"limit": self._config.default_limit if limit is None else limit}

    def _statements_url(self) -> str:
        return self.repository_endpoint() + "/statements"

    def _subject_url(self, subject_iri: str, property_iri: str) -> str:
        return (
            self.repository_endpoint()
            + "/subject/" + quote(subject_iri, safe="")
            + "/" + quote(property_iri, safe="")
        )

    def _degraded(self, error: GatewayError) -> IriCodec:
        logger.warning(
            f"Namespaces unavailable for {self.repository_endpoint()}, "
            f"using defaults: {error_message(error)}"
        )
        self.namespaces_degraded = True
        self.last_namespace_error = error
        return IriCodec()

    # -------------------------------------------------------------------------
    # Saved queries and value coercion
    # -------------------------------------------------------------------------

    def get_saved_queries(self) -> list[SavedQuery]:
        return self.saved_queries.list()

    def save_query(self, query: SavedQuery) -> SavedQuery:
        return self.saved_queries.save(query)

    def delete_query(self, query_id: int) -> bool:
        return self.saved_queries.delete(query_id)

    @staticmethod
    def to_object(binding: Mapping[str, RdfValue]) -> dict[str, values.NativeValue]:
        return values.to_object(binding)

    @staticmethod
    def to_object_array(bindings: Iterable[Mapping[str, RdfValue]]) -> list[dict[str, values.NativeValue]]:
        return values.to_object_array(bindings)

    @staticmethod
    def to_dataframe(result: SelectQueryResult):
        return values.to_dataframe(result)


class GatewayClient(_ClientBase):
    """
    Blocking client for one triple store server.

    Usage:
        config = GatewayConfig(server_url="http://localhost:8080/rdf4j-server",
                               repository="people")
        with GatewayClient(config, on_not_authorized=show_login) as client:
            result = client.select_query("SELECT * WHERE { ?s ?p ?o }", limit=10)
            rows = client.to_object_array(result.bindings)
            codec = client.get_iri_codec()

    The client holds one httpx connection pool for its lifetime. Use it as a
    context manager or call ``close()`` when done; otherwise the pool's
    connections stay open until the process exits.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        on_not_authorized: Optional[Callable[[], None]] = None,
        saved_queries: Optional[SavedQueryStore] = None,
        storage: Optional[KeyValueStorage] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(config, saved_queries, storage)
        self.transport = GatewayTransport(
            on_not_authorized=on_not_authorized,
            timeout=self._config.timeout_seconds,
            http_transport=http_transport,
        )

    @property
    def on_not_authorized(self) -> Optional[Callable[[], None]]:
        return self.transport.on_not_authorized

    @on_not_authorized.setter
    def on_not_authorized(self, callback: Optional[Callable[[], None]]) -> None:
        self.transport.on_not_authorized = callback

    def set_repository(self, repo: str) -> None:
        """Switch repository and rebuild the IRI codec for it."""
        self._replace_config(self._config.with_repository(repo))
        self.get_iri_codec()

    def login(self, username: Optional[str], password: Optional[str]) -> None:
        """Set credentials (None disables auth) and rebuild the IRI codec."""
        self._replace_config(self._config.with_credentials(username, password))
        self.get_iri_codec()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _post_query(self, query: str, accept: str, limit: Optional[int]) -> httpx.Response:
        return self.transport.request(
            "POST",
            self.repository_endpoint(),
            headers={"Content-Type": CONTENT_SPARQL_QUERY, "Accept": accept},
            credentials=self._credentials,
            params=self._limit_params(limit),
            content=query,
        )

    def select_query(self, query: str, limit: Optional[int] = None) -> SelectQueryResult:
        """Run a SELECT query; ``limit`` defaults to the configured row limit."""
        response = self._post_query(query, ACCEPT_JSON, limit)
        return parse_model(SelectQueryResult, decode_json(response))

    def ask_query(self, query: str, limit: Optional[int] = None) -> AskQueryResult:
        response = self._post_query(query, ACCEPT_JSON, limit)
        return parse_model(AskQueryResult, decode_json(response))

    def construct_query(self, query: str, accept: str, limit: Optional[int] = None) -> str:
        """Run a CONSTRUCT query; the serialization is whatever ``accept`` asks for."""
        return self._post_query(query, accept, limit).text

    def update_query(self, query: str) -> UpdateQueryResult:
        self.transport.request(
            "POST",
            self._statements_url(),
            headers={"Content-Type": CONTENT_SPARQL_UPDATE},
            credentials=self._credentials,
            content=query,
        )
        return UpdateQueryResult(success=True)

    def get_subject_description(self, iri: str) -> SelectQueryResult:
        return self.select_query(QuerySynthesizer.description_query(iri))

    def get_subject_references(self, iri: str) -> SelectQueryResult:
        return self.select_query(QuerySynthesizer.references_query(iri))

    def get_subject_mentions(self, iri: str) -> SelectQueryResult:
        return self.select_query(QuerySynthesizer.mentions_query(iri))

    def get_subject_value(self, subject_iri: str, property_iri: str) -> RdfValue:
        data = self.transport.request_json(
            "GET",
            self._subject_url(subject_iri, property_iri),
            credentials=self._credentials,
        )
        return parse_model(RdfValue, data)

    # -------------------------------------------------------------------------
    # Contexts
    # -------------------------------------------------------------------------

    def get_contexts(self) -> list[ContextDescription]:
        data = self.transport.request_json(
            "GET",
            self.repository_endpoint() + "/contexts",
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_contexts(data)

    def export_context(self, context_iri: str, mime: str) -> bytes:
        return self.transport.request_bytes(
            "GET",
            self._statements_url(),
            headers={"Accept": mime},
            credentials=self._credentials,
            params=context_param(context_iri),
        )

    def replace_context(self, context_iri: str, mime: str, data: str | bytes) -> None:
        """Replace all statements of a named graph with ``data`` in format ``mime``."""
        self.transport.request(
            "PUT",
            self._statements_url(),
            headers={"Content-Type": mime},
            credentials=self._credentials,
            params=context_param(context_iri),
            content=data,
        )
        logger.info(f"Replaced context <{context_iri}> in {self.current_repo}")

    def delete_context(self, context_iri: str) -> bool:
        response = self.transport.request(
            "DELETE",
            self._statements_url(),
            credentials=self._credentials,
            params=context_param(context_iri),
        )
        logger.info(f"Deleted context <{context_iri}> in {self.current_repo}")
        return parse_delete_status(response)

    # -------------------------------------------------------------------------
    # Repositories and namespaces
    # -------------------------------------------------------------------------

    def list_repositories(self) -> list[RepositoryInfo]:
        data = self.transport.request_json(
            "GET",
            self._config.repositories_url,
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_repositories(data)

    def get_namespaces(self) -> SelectQueryResult:
        data = self.transport.request_json(
            "GET",
            self.repository_endpoint() + "/namespaces",
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_model(SelectQueryResult, data)

    def get_namespaces_cached(self) -> SelectQueryResult:
        return self._namespaces.get_or_load(self.get_namespaces)

    def get_iri_codec(self) -> IriCodec:
        """
        The IRI codec for the current repository.

        Built on first use from the store's namespaces. When they cannot be
        fetched the codec holds only the defaults and ``namespaces_degraded``
        is set.
        """
        if not self._codec.is_stale:
            return self._codec.peek()
        try:
            codec = IriCodec.from_select_result(self.get_namespaces())
        except GatewayError as e:
            codec = self._degraded(e)
        return self._codec.set(codec)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class AsyncGatewayClient(_ClientBase):
    """
    asyncio client with the same operations as GatewayClient.

    Saved query operations stay synchronous; they touch local storage only.

    Like GatewayClient it owns a connection pool: use ``async with`` or
    ``await client.aclose()`` when done.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        on_not_authorized: Optional[Callable[[], None]] = None,
        saved_queries: Optional[SavedQueryStore] = None,
        storage: Optional[KeyValueStorage] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, saved_queries, storage)
        self.transport = AsyncGatewayTransport(
            on_not_authorized=on_not_authorized,
            timeout=self._config.timeout_seconds,
            http_transport=http_transport,
        )

    @property
    def on_not_authorized(self) -> Optional[Callable[[], None]]:
        return self.transport.on_not_authorized

    @on_not_authorized.setter
    def on_not_authorized(self, callback: Optional[Callable[[], None]]) -> None:
        self.transport.on_not_authorized = callback

    async def set_repository(self, repo: str) -> None:
        self._replace_config(self._config.with_repository(repo))
        await self.get_iri_codec()

    async def login(self, username: Optional[str], password: Optional[str]) -> None:
        self._replace_config(self._config.with_credentials(username, password))
        await self.get_iri_codec()

    async def _post_query(self, query: str, accept: str, limit: Optional[int]) -> httpx.Response:
        return await self.transport.request(
            "POST",
            self.repository_endpoint(),
            headers={"Content-Type": CONTENT_SPARQL_QUERY, "Accept": accept},
            credentials=self._credentials,
            params=self._limit_params(limit),
            content=query,
        )

    async def select_query(self, query: str, limit: Optional[int] = None) -> SelectQueryResult:
        response = await self._post_query(query, ACCEPT_JSON, limit)
        return parse_model(SelectQueryResult, decode_json(response))

    async def ask_query(self, query: str, limit: Optional[int] = None) -> AskQueryResult:
        response = await self._post_query(query, ACCEPT_JSON, limit)
        return parse_model(AskQueryResult, decode_json(response))

    async def construct_query(self, query: str, accept: str, limit: Optional[int] = None) -> str:
        return (await self._post_query(query, accept, limit)).text

    async def update_query(self, query: str) -> UpdateQueryResult:
        await self.transport.request(
            "POST",
            self._statements_url(),
            headers={"Content-Type": CONTENT_SPARQL_UPDATE},
            credentials=self._credentials,
            content=query,
        )
        return UpdateQueryResult(success=True)

    async def get_subject_description(self, iri: str) -> SelectQueryResult:
        return await self.select_query(QuerySynthesizer.description_query(iri))

    async def get_subject_references(self, iri: str) -> SelectQueryResult:
        return await self.select_query(QuerySynthesizer.references_query(iri))

    async def get_subject_mentions(self, iri: str) -> SelectQueryResult:
        return await self.select_query(QuerySynthesizer.mentions_query(iri))

    async def get_subject_value(self, subject_iri: str, property_iri: str) -> RdfValue:
        data = await self.transport.request_json(
            "GET",
            self._subject_url(subject_iri, property_iri),
            credentials=self._credentials,
        )
        return parse_model(RdfValue, data)

    async def get_contexts(self) -> list[ContextDescription]:
        data = await self.transport.request_json(
            "GET",
            self.repository_endpoint() + "/contexts",
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_contexts(data)

    async def export_context(self, context_iri: str, mime: str) -> bytes:
        return await self.transport.request_bytes(
            "GET",
            self._statements_url(),
            headers={"Accept": mime},
            credentials=self._credentials,
            params=context_param(context_iri),
        )

    async def replace_context(self, context_iri: str, mime: str, data: str | bytes) -> None:
        await self.transport.request(
            "PUT",
            self._statements_url(),
            headers={"Content-Type": mime},
            credentials=self._credentials,
            params=context_param(context_iri),
            content=data,
        )
        logger.info(f"Replaced context <{context_iri}> in {self.current_repo}")

    async def delete_context(self, context_iri: str) -> bool:
        response = await self.transport.request(
            "DELETE",
            self._statements_url(),
            credentials=self._credentials,
            params=context_param(context_iri),
        )
        logger.info(f"Deleted context <{context_iri}> in {self.current_repo}")
        return parse_delete_status(response)

    async def list_repositories(self) -> list[RepositoryInfo]:
        data = await self.transport.request_json(
            "GET",
            self._config.repositories_url,
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_repositories(data)

    async def get_namespaces(self) -> SelectQueryResult:
        data = await self.transport.request_json(
            "GET",
            self.repository_endpoint() + "/namespaces",
            headers={"Accept": ACCEPT_JSON},
            credentials=self._credentials,
        )
        return parse_model(SelectQueryResult, data)

    async def get_namespaces_cached(self) -> SelectQueryResult:
        return await self._namespaces.get_or_load_async(self.get_namespaces)

    async def get_iri_codec(self) -> IriCodec:
        if not self._codec.is_stale:
            return self._codec.peek()
        generation = self._codec.generation
        try:
            codec = IriCodec.from_select_result(await self.get_namespaces())
        except GatewayError as e:
            codec = self._degraded(e)
        # Repository or login changed while fetching: do not cache a stale codec.
        if generation != self._codec.generation:
            return codec
        return self._codec.set(codec)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "AsyncGatewayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

