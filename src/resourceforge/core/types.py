"""Filter operator and aggregate function registries.

Operators are keyed by the names callers use in filter trees
(``{"status": {"eq": "active"}}``). Each one renders to a SQL fragment
over an already-quoted column expression, with values always bound as
parameters.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from resourceforge.core.errors import InvalidRequest

# Renders (expression, value, placeholder) -> (sql, params)
ConditionRenderer = Callable[[str, Any, str], tuple[str, list[Any]]]


def _escape_like(value: Any) -> str:
    text = str(value)
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _as_flag(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "1", "yes", ""):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise InvalidRequest(f"Invalid filter value: expected a boolean, got {value!r}")


def _scalar(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        raise InvalidRequest("Invalid filter value: expected a scalar")
    return value


def _comparison(symbol: str) -> ConditionRenderer:
    def render(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
        return f"{expr} {symbol} {ph}", [_scalar(value)]

    return render


def _eq(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
    if value is None:
        return f"{expr} IS NULL", []
    return f"{expr} = {ph}", [_scalar(value)]


def _neq(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
    if value is None:
        return f"{expr} IS NOT NULL", []
    return f"{expr} <> {ph}", [_scalar(value)]


def _like(template: str, negate: bool = False) -> ConditionRenderer:
    keyword = "NOT LIKE" if negate else "LIKE"

    def render(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
        pattern = template.format(_escape_like(_scalar(value)))
        return f"{expr} {keyword} {ph} ESCAPE '\\'", [pattern]

    return render


def _icontains(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
    # LOWER on both sides so computed (JSON) expressions fold case too
    pattern = "%" + _escape_like(_scalar(value)).lower() + "%"
    return f"LOWER(CAST({expr} AS TEXT)) LIKE {ph} ESCAPE '\\'", [pattern]


def _membership(negate: bool) -> ConditionRenderer:
    keyword = "NOT IN" if negate else "IN"

    def render(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
        if not isinstance(value, (list, tuple)) or not value:
            raise InvalidRequest("Invalid filter value: expected a non-empty list")
        placeholders = ", ".join(ph for _ in value)
        return f"{expr} {keyword} ({placeholders})", [_scalar(v) for v in value]

    return render


def _null_check(negate: bool) -> ConditionRenderer:
    def render(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
        is_null = _as_flag(value) != negate
        return (f"{expr} IS NULL" if is_null else f"{expr} IS NOT NULL"), []

    return render


def _between(expr: str, value: Any, ph: str) -> tuple[str, list[Any]]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidRequest("Invalid filter value: between expects two values")
    return f"{expr} BETWEEN {ph} AND {ph}", [_scalar(value[0]), _scalar(value[1])]


FILTER_OPERATORS: dict[str, ConditionRenderer] = {
    "eq": _eq,
    "neq": _neq,
    "lt": _comparison("<"),
    "lte": _comparison("<="),
    "gt": _comparison(">"),
    "gte": _comparison(">="),
    "in": _membership(negate=False),
    "notIn": _membership(negate=True),
    "contains": _like("%{}%"),
    "notContains": _like("%{}%", negate=True),
    "icontains": _icontains,
    "startsWith": _like("{}%"),
    "notStartsWith": _like("{}%", negate=True),
    "endsWith": _like("%{}"),
    "notEndsWith": _like("%{}", negate=True),
    "isNull": _null_check(negate=False),
    "isNotNull": _null_check(negate=True),
    "between": _between,
}


def build_condition(
    expr: str, operator: str, value: Any, placeholder: str = "?"
) -> tuple[str, list[Any]]:
    """Render a single predicate.

    Args:
        expr: Quoted column expression
        operator: Operator name from FILTER_OPERATORS
        value: Operator argument (scalar, list, or flag)
        placeholder: Driver parameter placeholder

    Raises:
        InvalidRequest: Unknown operator or malformed value
    """
    renderer = FILTER_OPERATORS.get(operator)
    if renderer is None:
        raise InvalidRequest(f"Invalid filter operator ({operator})")
    return renderer(expr, value, placeholder)


@dataclass(frozen=True)
class AggregateFunction:
    name: str
    sql_function: str
    distinct: bool = False

    def render(self, expr: str) -> str:
        if self.distinct:
            return f"{self.sql_function}(DISTINCT {expr})"
        return f"{self.sql_function}({expr})"


AGGREGATE_FUNCTIONS: dict[str, AggregateFunction] = {
    "AVG": AggregateFunction("AVG", "AVG"),
    "AVG_DISTINCT": AggregateFunction("AVG_DISTINCT", "AVG", distinct=True),
    "COUNT": AggregateFunction("COUNT", "COUNT"),
    "COUNT_DISTINCT": AggregateFunction("COUNT_DISTINCT", "COUNT", distinct=True),
    "MAX": AggregateFunction("MAX", "MAX"),
    "MIN": AggregateFunction("MIN", "MIN"),
    "SUM": AggregateFunction("SUM", "SUM"),
    "SUM_DISTINCT": AggregateFunction("SUM_DISTINCT", "SUM", distinct=True),
}


def get_aggregate(name: str) -> AggregateFunction:
    """Look up an aggregate function by (case-insensitive) name."""
    function = AGGREGATE_FUNCTIONS.get(str(name).upper())
    if function is None:
        raise InvalidRequest(
            f"Unsupported aggregate function '{name}'. "
            f"Allowed: {', '.join(sorted(AGGREGATE_FUNCTIONS))}"
        )
    return function
