"""
SPARQL text for graph traversals around a single IRI.

All traversal queries project the same four columns
``(subject, predicate, object, context)``. Triples in the default graph are
matched through the RDF4J nil graph and report it as their context.

The IRI is placed verbatim between angle brackets. It is not escaped, so it
must not contain ``>`` or other characters that would break the query.
"""
from __future__ import annotations

# RDF4J name for the default graph
NIL_IRI = "http://rdf4j.org/schema/rdf4j#nil"

PROJECTION = "SELECT (?s as ?subject) (?p as ?predicate) (?o as ?object) (?g as ?context)"


class QuerySynthesizer:
    """
    Builds traversal SELECT queries for one IRI.

    Each branch matches the IRI in one position (subject, predicate or
    object) inside one graph scope (the nil graph or any named graph) and
    binds the matched position back to the IRI.
    """

    SUBJECT = "<{iri}> ?p ?o .\n\t\t\t\tBIND(<{iri}> AS ?s)"
    PREDICATE = "?s <{iri}> ?o .\n\t\t\t\tBIND(<{iri}> AS ?p)"
    OBJECT = "?s ?p <{iri}> .\n\t\t\t\tBIND(<{iri}> AS ?o)"
    GRAPH_CONTENT = "?s ?p ?o .\n\t\t\t\tBIND(<{iri}> AS ?g)"

    @staticmethod
    def _branch(graph: str, pattern: str) -> str:
        return (
            "\t\t{\n"
            f"\t\t\tGRAPH {graph} {{\n"
            f"\t\t\t\t{pattern}\n"
            "\t\t\t}\n"
            "\t\t}"
        )

    @classmethod
    def _select(cls, iri: str, branches: list[tuple[str, str]]) -> str:
        parts = [
            cls._branch(graph.format(iri=iri), pattern.format(iri=iri))
            for graph, pattern in branches
        ]
        body = "\n\t\tUNION\n".join(parts)
        return f"{PROJECTION} WHERE {{\n{body}\n}}\n"

    @classmethod
    def description_query(cls, iri: str) -> str:
        """Triples with ``iri`` as subject, in the default and in named graphs."""
        return cls._select(iri, [
            (f"<{NIL_IRI}>", cls.SUBJECT),
            ("?g", cls.SUBJECT),
        ])

    @classmethod
    def references_query(cls, iri: str) -> str:
        """Triples with ``iri`` as object, in the default and in named graphs."""
        return cls._select(iri, [
            (f"<{NIL_IRI}>", cls.OBJECT),
            ("?g", cls.OBJECT),
        ])

    @classmethod
    def mentions_query(cls, iri: str) -> str:
        """
        Every triple mentioning ``iri``.

        Seven branches: subject, predicate and object position in the nil
        graph, the same three in any named graph, and the contents of the
        graph named by ``iri`` (with ``?context`` bound to it).
        """
        return cls._select(iri, [
            (f"<{NIL_IRI}>", cls.SUBJECT),
            (f"<{NIL_IRI}>", cls.PREDICATE),
            (f"<{NIL_IRI}>", cls.OBJECT),
            ("?g", cls.SUBJECT),
            ("?g", cls.PREDICATE),
            ("?g", cls.OBJECT),
            ("<{iri}>", cls.GRAPH_CONTENT),
        ])


def description_query(iri: str) -> str:
    return QuerySynthesizer.description_query(iri)


def references_query(iri: str) -> str:
    return QuerySynthesizer.references_query(iri)


def mentions_query(iri: str) -> str:
    return QuerySynthesizer.mentions_query(iri)
