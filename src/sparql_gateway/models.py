"""
Wire models for the triple store's JSON responses.

These follow the SPARQL 1.1 Query Results JSON format as served by
RDF4J-style stores. Parsing goes through ``parse_model`` so that shape
mismatches surface as DecodeError rather than pydantic internals.
"""
from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sparql_gateway.errors import DecodeError

ModelT = TypeVar("ModelT", bound=BaseModel)

TYPE_LITERAL = "literal"
TYPE_TYPED_LITERAL = "typed-literal"


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate decoded JSON against ``model``."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Unexpected {model.__name__} payload: {e}") from e


class RdfValue(BaseModel):
    """A single RDF term as returned in a binding: IRI, literal or blank node."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    value: str
    datatype: Optional[str] = None
    lang: Optional[str] = Field(default=None, alias="xml:lang")

    @property
    def is_literal(self) -> bool:
        return self.type in (TYPE_LITERAL, TYPE_TYPED_LITERAL)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


RdfValueBinding = dict[str, RdfValue]


class ResultHead(BaseModel):
    vars: list[str] = Field(default_factory=list)


class ResultBindings(BaseModel):
    bindings: list[RdfValueBinding] = Field(default_factory=list)


class SelectQueryResult(BaseModel):
    """SELECT result: projected variables plus rows in server order."""
    head: ResultHead = Field(default_factory=ResultHead)
    results: ResultBindings = Field(default_factory=ResultBindings)

    @property
    def vars(self) -> list[str]:
        return self.head.vars

    @property
    def bindings(self) -> list[RdfValueBinding]:
        return self.results.bindings

    def __len__(self) -> int:
        return len(self.results.bindings)

    def column(self, var: str) -> list[Optional[RdfValue]]:
        """Values of one variable across all rows (None where unbound)."""
        return [row.get(var) for row in self.results.bindings]

    def to_dict(self) -> dict:
        return {
            "head": {"vars": list(self.head.vars)},
            "results": {
                "bindings": [
                    {var: value.to_dict() for var, value in row.items()}
                    for row in self.results.bindings
                ]
            },
        }


class AskQueryResult(BaseModel):
    head: Optional[dict] = None
    boolean: bool


class UpdateQueryResult(BaseModel):
    success: bool


class ContextDescription(BaseModel):
    """A named graph known to the repository."""
    iri: str


class RepositoryInfo(BaseModel):
    """A repository available on the server."""
    id: str
    title: str = ""
    uri: Optional[str] = None
    readable: Optional[bool] = None
    writable: Optional[bool] = None


class NamespaceDef(BaseModel):
    prefix: str
    namespace: str
