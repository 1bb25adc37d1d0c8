"""Tests for traversal query synthesis."""

import re

import pytest

from sparql_gateway.queries import (
    NIL_IRI,
    PROJECTION,
    QuerySynthesizer,
    description_query,
    mentions_query,
    references_query,
)

IRI = "http://example.org/alice"


def branches(query: str) -> list[str]:
    """Split the WHERE body into its UNION branches."""
    body = query.split("WHERE {", 1)[1].rsplit("}", 1)[0]
    return [b.strip() for b in body.split("UNION")]


def graph_of(branch: str) -> str:
    return re.search(r"GRAPH (\S+) \{", branch).group(1)


def balanced(query: str) -> bool:
    depth = 0
    for ch in query:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class TestDescription:
    """Tests for the description query."""

    def test_projection(self):
        assert description_query(IRI).startswith(PROJECTION)

    def test_two_branches(self):
        parts = branches(description_query(IRI))
        assert len(parts) == 2
        assert graph_of(parts[0]) == f"<{NIL_IRI}>"
        assert graph_of(parts[1]) == "?g"

    def test_iri_as_subject(self):
        for part in branches(description_query(IRI)):
            assert f"<{IRI}> ?p ?o ." in part
            assert f"BIND(<{IRI}> AS ?s)" in part

    def test_balanced(self):
        assert balanced(description_query(IRI))


class TestReferences:
    """Tests for the references query."""

    def test_iri_as_object(self):
        parts = branches(references_query(IRI))
        assert len(parts) == 2
        for part in parts:
            assert f"?s ?p <{IRI}> ." in part
            assert f"BIND(<{IRI}> AS ?o)" in part

    def test_graph_scopes(self):
        parts = branches(references_query(IRI))
        assert [graph_of(p) for p in parts] == [f"<{NIL_IRI}>", "?g"]


class TestMentions:
    """Tests for the mentions query."""

    @pytest.fixture
    def parts(self):
        return branches(mentions_query(IRI))

    def test_seven_branches(self, parts):
        assert len(parts) == 7

    def test_graph_scopes(self, parts):
        nil = f"<{NIL_IRI}>"
        assert [graph_of(p) for p in parts] == [nil, nil, nil, "?g", "?g", "?g", f"<{IRI}>"]

    def test_default_graph_subject_branch(self, parts):
        # A triple (iri, p, o) in the default graph matches this branch with ?g unbound,
        # so the context column is reported through the nil graph.
        assert f"<{IRI}> ?p ?o ." in parts[0]
        assert f"BIND(<{IRI}> AS ?s)" in parts[0]

    def test_positions(self, parts):
        assert f"BIND(<{IRI}> AS ?p)" in parts[1]
        assert f"BIND(<{IRI}> AS ?o)" in parts[2]
        assert f"BIND(<{IRI}> AS ?s)" in parts[3]
        assert f"BIND(<{IRI}> AS ?p)" in parts[4]
        assert f"BIND(<{IRI}> AS ?o)" in parts[5]

    def test_graph_named_by_iri(self, parts):
        assert "?s ?p ?o ." in parts[6]
        assert f"BIND(<{IRI}> AS ?g)" in parts[6]

    def test_balanced(self):
        assert balanced(mentions_query(IRI))


class TestSubstitution:
    """The IRI is inserted verbatim."""

    def test_no_escaping(self):
        iri = "urn:x:{weird}"
        assert f"<{iri}>" in QuerySynthesizer.description_query(iri)

    def test_class_and_functions_agree(self):
        assert QuerySynthesizer.mentions_query(IRI) == mentions_query(IRI)
