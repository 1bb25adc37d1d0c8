"""
Typed literal coercion.

Turns binding rows (variable -> RdfValue) into plain Python values:
xsd:boolean, xsd:integer and xsd:decimal literals become bool/int/float,
everything else (IRIs, blank nodes, other literals) stays a string.

Numeric literals that do not parse are not rejected. They become an
``Unparseable`` marker so callers can tell them apart from real numbers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

import polars as pl

from sparql_gateway.iri import XSD
from sparql_gateway.models import RdfValue, SelectQueryResult

XSD_BOOLEAN = XSD + "boolean"
XSD_INTEGER = XSD + "integer"
XSD_DECIMAL = XSD + "decimal"

INTEGER_LEXICAL = re.compile(r"[+-]?[0-9]+")
DECIMAL_LEXICAL = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)")


@dataclass(frozen=True)
class Unparseable:
    """A numeric literal whose lexical form could not be converted."""
    raw: str
    datatype: str

    def __bool__(self) -> bool:
        return False


NativeValue = Union[bool, int, float, str, Unparseable]


def is_unparseable(value: Any) -> bool:
    return isinstance(value, Unparseable)


def _parse_int(raw: str, datatype: str) -> Union[int, Unparseable]:
    # int() alone would also take "1_000" and non-ASCII digits
    lexical = raw.strip()
    if not INTEGER_LEXICAL.fullmatch(lexical):
        return Unparseable(raw, datatype)
    return int(lexical)


def _parse_float(raw: str, datatype: str) -> Union[float, Unparseable]:
    # float() alone would also take "NaN", "inf" and "1_0.5"
    lexical = raw.strip()
    if not DECIMAL_LEXICAL.fullmatch(lexical):
        return Unparseable(raw, datatype)
    return float(lexical)


def coerce_value(value: RdfValue) -> NativeValue:
    """Coerce one typed value by its datatype."""
    if not value.is_literal:
        return value.value
    datatype = value.datatype
    if datatype == XSD_BOOLEAN:
        return value.value == "true"
    if datatype == XSD_INTEGER:
        return _parse_int(value.value, datatype)
    if datatype == XSD_DECIMAL:
        return _parse_float(value.value, datatype)
    return value.value


def to_object(binding: Mapping[str, RdfValue]) -> dict[str, NativeValue]:
    """Transform one binding row into a dict of native values."""
    return {var: coerce_value(value) for var, value in binding.items()}


def to_object_array(bindings: Iterable[Mapping[str, RdfValue]]) -> list[dict[str, NativeValue]]:
    """Transform binding rows, keeping their order."""
    return [to_object(binding) for binding in bindings]


def to_dataframe(result: SelectQueryResult) -> pl.DataFrame:
    """
    Coerced SELECT rows as a DataFrame.

    Columns follow the projection order; unbound variables and unparseable
    numbers are null. A column whose values have different native types
    (an ``?o`` holding both numbers and IRIs, say) is kept as ``pl.Object``
    so no value is cast to a string.
    """
    columns: dict[str, list[Optional[Any]]] = {var: [] for var in result.vars}
    for row in to_object_array(result.bindings):
        for var in columns:
            value = row.get(var)
            columns[var].append(None if is_unparseable(value) else value)
    return pl.DataFrame([_column(var, cells) for var, cells in columns.items()])


def _column(name: str, cells: list[Optional[Any]]) -> pl.Series:
    kinds = {type(cell) for cell in cells if cell is not None}
    if kinds == {int, float}:
        return pl.Series(name, cells, dtype=pl.Float64)
    if len(kinds) > 1:
        return pl.Series(name, cells, dtype=pl.Object)
    return pl.Series(name, cells)
