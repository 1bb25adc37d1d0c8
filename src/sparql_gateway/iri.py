"""
IRI compaction and expansion.

Maps full IRIs to ``prefix:local`` short forms and back using a fixed
namespace table. Lookups follow table insertion order: the first prefix
whose namespace is a leading substring of an IRI wins, even when a later
namespace would be a longer match.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from sparql_gateway.models import NamespaceDef, SelectQueryResult

RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS = "http://www.w3.org/2000/01/rdf-schema#"
XSD = "http://www.w3.org/2001/XMLSchema#"
OWL = "http://www.w3.org/2002/07/owl#"

DEFAULT_NAMESPACES: Mapping[str, str] = MappingProxyType({
    "rdf": RDF,
    "rdfs": RDFS,
    "xsd": XSD,
    "owl": OWL,
})


class IriCodec:
    """
    Bidirectional IRI <-> short form codec over a namespace snapshot.

    The table is the default namespaces overlaid with ``namespaces``; it is
    copied at construction and never changes afterwards. A changed namespace
    set needs a new codec.

    Usage:
        codec = IriCodec({"ex": "http://example.org/"})
        codec.compact("http://example.org/thing")   # "ex:thing"
        codec.expand("rdf:type")                      # full rdf:type IRI
    """

    def __init__(self, namespaces: Mapping[str, str] | None = None):
        table = dict(DEFAULT_NAMESPACES)
        if namespaces:
            table.update(namespaces)
        self._namespaces = MappingProxyType(table)

    @property
    def namespaces(self) -> Mapping[str, str]:
        """Read-only view of the namespace table."""
        return self._namespaces

    def expand(self, short_form: str) -> str:
        """Expand ``prefix:local``; unknown prefixes and full IRIs pass through."""
        si = short_form.find(":")
        if si > 0:
            prefix = short_form[:si]
            for key, namespace in self._namespaces.items():
                if prefix == key:
                    return namespace + short_form[si + 1:]
        return short_form

    def compact(self, long_form: str) -> str:
        """Compact a full IRI using the first matching namespace, else return it as is."""
        for key, namespace in self._namespaces.items():
            if long_form.startswith(namespace):
                return key + ":" + long_form[len(namespace):]
        return long_form

    def prefixes(self) -> list[NamespaceDef]:
        return [
            NamespaceDef(prefix=prefix, namespace=namespace)
            for prefix, namespace in self._namespaces.items()
        ]

    @classmethod
    def from_select_result(cls, result: SelectQueryResult) -> "IriCodec":
        """Build a codec from a namespaces listing (``prefix``/``namespace`` bindings)."""
        ns: dict[str, str] = {}
        for binding in result.results.bindings:
            prefix = binding.get("prefix")
            namespace = binding.get("namespace")
            if prefix is None or namespace is None:
                continue
            ns[prefix.value] = namespace.value
        return cls(ns)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._namespaces

    def __len__(self) -> int:
        return len(self._namespaces)

    def __repr__(self) -> str:
        return f"IriCodec({len(self._namespaces)} namespaces)"
