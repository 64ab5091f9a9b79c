"""Request parsing, compilation and result shaping."""

from resourceforge.query.collection import ResultCollection
from resourceforge.query.compiler import (
    CompileContext,
    QueryCompiler,
    QueryPlan,
    TrashedMode,
    decode_cursor,
    encode_cursor,
)
from resourceforge.query.parser import QuerySpec, parse_query
from resourceforge.query.reshape import ResultReshaper, unflatten
from resourceforge.query.variables import expand_filter_values, expand_variables

__all__ = [
    "CompileContext",
    "QueryCompiler",
    "QueryPlan",
    "QuerySpec",
    "ResultCollection",
    "ResultReshaper",
    "TrashedMode",
    "decode_cursor",
    "encode_cursor",
    "expand_filter_values",
    "expand_variables",
    "parse_query",
    "unflatten",
]
