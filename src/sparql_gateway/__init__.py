"""
sparql-gateway: client for RDF4J-style triple store REST APIs.

SPARQL queries and updates, named graph management, IRI prefix compaction
and typed literal coercion.
"""

__version__ = "0.1.0"

from sparql_gateway.client import AsyncGatewayClient, GatewayClient
from sparql_gateway.config import DEFAULT_QUERY_LIMIT, GatewayConfig
from sparql_gateway.errors import (
    DecodeError,
    GatewayError,
    RemoteError,
    RequestError,
    TransportError,
)
from sparql_gateway.iri import DEFAULT_NAMESPACES, IriCodec
from sparql_gateway.models import (
    AskQueryResult,
    ContextDescription,
    NamespaceDef,
    RdfValue,
    RepositoryInfo,
    SelectQueryResult,
    UpdateQueryResult,
)
from sparql_gateway.queries import NIL_IRI, QuerySynthesizer
from sparql_gateway.saved_queries import (
    JsonFileStorage,
    MemoryStorage,
    SavedQuery,
    SavedQueryStore,
)
from sparql_gateway.values import Unparseable, is_unparseable, to_object, to_object_array

__all__ = [
    "GatewayClient",
    "AsyncGatewayClient",
    "GatewayConfig",
    "DEFAULT_QUERY_LIMIT",
    # Errors
    "GatewayError",
    "RequestError",
    "TransportError",
    "RemoteError",
    "DecodeError",
    # IRIs
    "IriCodec",
    "DEFAULT_NAMESPACES",
    # Results
    "RdfValue",
    "SelectQueryResult",
    "AskQueryResult",
    "UpdateQueryResult",
    "ContextDescription",
    "RepositoryInfo",
    "NamespaceDef",
    # Queries
    "QuerySynthesizer",
    "NIL_IRI",
    "SavedQuery",
    "SavedQueryStore",
    "MemoryStorage",
    "JsonFileStorage",
    # Coercion
    "Unparseable",
    "is_unparseable",
    "to_object",
    "to_object_array",
]
