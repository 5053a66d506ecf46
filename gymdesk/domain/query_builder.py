"""
Parameter-safe dynamic SQL builder.

Every list/search query in the app goes through ``QueryBuilder`` before it
reaches sqlite3. The builder keeps WHERE / ORDER BY / LIMIT clauses as separate
fragments, each carrying the values for its own ``?`` placeholders, and only
renders them (in that order) on ``build()``. ``build()`` and
``to_count_query()`` refuse to hand out a statement whose placeholder count
differs from its parameter count.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

logger = logging.getLogger(__name__)

UNARY_OPERATORS = ("IS NULL", "IS NOT NULL")

_PROJECTION_RE = re.compile(r"SELECT\s+.*?\s+FROM\b", re.IGNORECASE | re.DOTALL)


class ParameterMismatchError(ValueError):
    """Raised when a statement's ``?`` count differs from its parameter count."""

    def __init__(self, query: str, placeholder_count: int, param_count: int):
        self.query = query
        self.placeholder_count = placeholder_count
        self.param_count = param_count
        super().__init__(
            f"parameter_mismatch: query has {placeholder_count} placeholders, "
            f"got {param_count} parameters"
        )


@dataclass(frozen=True)
class QueryResult:
    query: str
    params: tuple


class Predicate(NamedTuple):
    """One member of an OR group.

    ``keep_empty`` binds ``""`` instead of treating it as an absent filter.
    Unary operators (``IS NULL``/``IS NOT NULL``) take no value.
    """
    field: str
    value: Any = None
    operator: str = "="
    keep_empty: bool = False


def is_absent(value: Any) -> bool:
    """None and "" mean "no filter"; 0 and False are real values."""
    return value is None or (isinstance(value, str) and value == "")


def count_placeholders(query: str) -> int:
    return query.count("?")


def validate_query(query: str, params: Sequence[Any]) -> None:
    placeholders = count_placeholders(query)
    if placeholders != len(params):
        logger.error(
            "QueryBuilder validation failed: %d placeholders, %d params; query=%s params=%r",
            placeholders, len(params), query, list(params),
        )
        raise ParameterMismatchError(query, placeholders, len(params))


def _normalize_operator(operator: str | None) -> str:
    return " ".join((operator or "=").split()).upper()


def _normalize_direction(direction: str | None) -> str:
    return "DESC" if str(direction or "").strip().upper() == "DESC" else "ASC"


def _as_predicate(p: Predicate | Mapping[str, Any]) -> Predicate:
    if isinstance(p, Predicate):
        return p
    return Predicate(
        field=p["field"],
        value=p.get("value"),
        operator=p.get("operator") or "=",
        keep_empty=bool(p.get("keep_empty", False)),
    )


class QueryBuilder:
    """Fluent WHERE/ORDER BY/LIMIT accumulator over a base ``SELECT ... WHERE ...``.

    >>> qb = QueryBuilder("SELECT * FROM members WHERE 1=1")
    >>> qb.condition("gender", "M").limit(20, 20).build().query
    'SELECT * FROM members WHERE 1=1 AND gender = ? LIMIT ? OFFSET ?'
    """

    def __init__(self, base_query: str, params: Iterable[Any] = ()):
        """``params`` bind the base query's own ``?``. They must sit after
        ``FROM``: the projection is swapped out by ``to_count_query()``.
        """
        self._base = base_query.strip()
        projection = _PROJECTION_RE.match(self._base)
        if projection and "?" in projection.group(0):
            raise ValueError("placeholder_in_projection")
        self._base_params: list[Any] = list(params)
        self._where: list[tuple[str, list[Any]]] = []
        self._order: list[str] = []
        self._limit: tuple[str, list[Any]] | None = None
        validate_query(self._base, self._base_params)
        logger.debug("QueryBuilder base: %s", self._base)

    def _add_where(self, fragment: str, params: Sequence[Any] = ()) -> None:
        self._where.append((fragment, list(params)))
        logger.debug("QueryBuilder where: %s %r", fragment, list(params))

    # ---------------- predicates ----------------

    def condition(self, field: str, value: Any = None, operator: str = "=",
                  keep_empty: bool = False) -> "QueryBuilder":
        op = _normalize_operator(operator)
        if op in UNARY_OPERATORS:
            self._add_where(f"{field} {op}")
            return self
        if is_absent(value) and not (keep_empty and value == ""):
            return self
        self._add_where(f"{field} {op} ?", [value])
        return self

    def date_range(self, field: str, date_from: str | None = None,
                   date_to: str | None = None) -> "QueryBuilder":
        self.condition(field, date_from, ">=")
        self.condition(field, date_to, "<=")
        return self

    def number_range(self, expr: str, min_value: float | None = None,
                     max_value: float | None = None) -> "QueryBuilder":
        if not is_absent(min_value):
            self._add_where(f"{expr} >= ?", [min_value])
        if not is_absent(max_value):
            self._add_where(f"{expr} <= ?", [max_value])
        return self

    def in_condition(self, field: str, values: Iterable[Any] | None) -> "QueryBuilder":
        if is_absent(values):
            return self
        # a lone string is one value, not a sequence of characters
        if isinstance(values, (str, bytes)):
            values = [values]
        values = list(values)
        if not values:
            return self
        placeholders = ", ".join(["?"] * len(values))
        self._add_where(f"{field} IN ({placeholders})", values)
        return self

    def like_condition(self, field: str, value: str | None) -> "QueryBuilder":
        if value is None or not str(value).strip():
            return self
        self._add_where(f"{field} LIKE ?", [f"%{value}%"])
        return self

    def or_group(self, predicates: Iterable[Predicate | Mapping[str, Any]]) -> "QueryBuilder":
        clauses: list[str] = []
        params: list[Any] = []
        for p in map(_as_predicate, predicates):
            op = _normalize_operator(p.operator)
            if op in UNARY_OPERATORS:
                clauses.append(f"{p.field} {op}")
                continue
            if is_absent(p.value) and not (p.keep_empty and p.value == ""):
                continue
            clauses.append(f"{p.field} {op} ?")
            params.append(p.value)
        # AND () is invalid SQL
        if not clauses:
            return self
        self._add_where("(" + " OR ".join(clauses) + ")", params)
        return self

    def exists(self, subquery: str, params: Iterable[Any] = (),
               negate: bool = False) -> "QueryBuilder":
        params = list(params)
        validate_query(subquery, params)
        keyword = "NOT EXISTS" if negate else "EXISTS"
        self._add_where(f"{keyword} ({subquery.strip()})", params)
        return self

    # ---------------- ordering & paging ----------------

    def order_by(self, field: str, direction: str = "ASC") -> "QueryBuilder":
        """Add a sort key. ``field`` is rendered verbatim; callers allow-list it."""
        key = f"{field} {_normalize_direction(direction)}"
        self._order.append(key)
        logger.debug("QueryBuilder order by: %s", key)
        return self

    def limit(self, count: int, offset: int | None = None) -> "QueryBuilder":
        if offset is not None and int(offset) > 0:
            self._limit = ("LIMIT ? OFFSET ?", [count, int(offset)])
        else:
            self._limit = ("LIMIT ?", [count])
        logger.debug("QueryBuilder limit: %r", self._limit)
        return self

    # ---------------- terminal ----------------

    def _render(self, with_order: bool = True, with_limit: bool = True) -> tuple[str, list[Any]]:
        parts = [self._base]
        params = list(self._base_params)
        for fragment, fparams in self._where:
            parts.append(f"AND {fragment}")
            params.extend(fparams)
        if with_order and self._order:
            parts.append("ORDER BY " + ", ".join(self._order))
        if with_limit and self._limit is not None:
            parts.append(self._limit[0])
            params.extend(self._limit[1])
        return " ".join(parts), params

    def build(self) -> QueryResult:
        query, params = self._render()
        validate_query(query, params)
        logger.debug("QueryBuilder final: %s %r", query, params)
        return QueryResult(query, tuple(params))

    def to_count_query(self) -> QueryResult:
        """Same filters, ``COUNT(*) AS total`` projection, no ORDER BY/LIMIT."""
        query, params = self._render(with_order=False, with_limit=False)
        query = _PROJECTION_RE.sub("SELECT COUNT(*) AS total FROM", query, count=1)
        validate_query(query, params)
        logger.debug("QueryBuilder count: %s %r", query, params)
        return QueryResult(query, tuple(params))

    def debug(self) -> dict:
        query, params = self._render()
        return {
            "query": query,
            "params": params,
            "placeholders": count_placeholders(query),
            "param_count": len(params),
        }
