"""
Docstore Kernel - Query Engine

Pure predicate evaluation: (document, query) → bool
No side effects. No IO. Documents are never modified.

A query node is a dict. Keys starting with "$" are combinators
($and, $or, $not); every other key names a field (dot paths allowed)
and maps to a field predicate. A node matches only when every
combinator and every field predicate holds.

Result shaping for find() lives here too: sort_documents, paginate.
"""

from __future__ import annotations

import functools
import operator
import re
from collections.abc import Callable, Sequence
from typing import Any

from docstore.kernel.errors import InvalidQueryError
from docstore.kernel.types import (
    MISSING,
    REGEX_OPTIONS,
    Document,
    LogicalOp,
    QueryOp,
    deep_equal,
    get_path,
    is_number,
    is_operator_key,
    normalize_sort,
)

_LOGICAL_KEYS = {op.value for op in LogicalOp}
_QUERY_OPS = {op.value: op for op in QueryOp}

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def matches(document: Document, query: dict[str, Any]) -> bool:
    """Return True if the document satisfies the query tree."""
    if not isinstance(query, dict):
        raise InvalidQueryError(f"Query must be a dict, got {type(query).__name__}")

    for key in query:
        if is_operator_key(key) and key not in _LOGICAL_KEYS:
            raise InvalidQueryError(f"Unsupported logical operator: {key}")

    for op in LogicalOp:
        if op.value in query and not _LOGICAL[op](document, query[op.value]):
            return False

    for key, condition in query.items():
        if is_operator_key(key):
            continue
        if not _matches_field(get_path(document, key), condition):
            return False

    return True


def filter_documents(documents: list[Document], query: dict[str, Any] | None = None) -> list[Document]:
    """
    Keep the documents that match, in their original order.
    An absent or empty query returns the input list unchanged.
    """
    if not query:
        return documents
    return [doc for doc in documents if matches(doc, query)]


def sort_documents(documents: Sequence[Document], sort: Any) -> list[Document]:
    """
    Stable multi-key sort. The first field that differs decides.

    Missing and None values sort after present values in either direction.
    Values of different types are ranked: numbers, strings, dicts, lists, bools.
    """
    keys = normalize_sort(sort)
    if not keys:
        return list(documents)

    def compare(a: Document, b: Document) -> int:
        for field_name, direction in keys:
            result = _compare_sort_values(get_path(a, field_name), get_path(b, field_name), direction)
            if result:
                return result
        return 0

    return sorted(documents, key=functools.cmp_to_key(compare))


def paginate(documents: list[Document], skip: int = 0, limit: int = 0) -> list[Document]:
    """Drop the first `skip` documents, then keep at most `limit` (0 = all)."""
    if skip:
        documents = documents[skip:]
    if limit:
        documents = documents[:limit]
    return documents


# ---------------------------------------------------------------------------
# Logical combinators
# ---------------------------------------------------------------------------


def _sub_queries(op: LogicalOp, clauses: Any) -> list[dict[str, Any]]:
    if not isinstance(clauses, (list, tuple)):
        raise InvalidQueryError(f"{op.value} requires a list of queries")
    return list(clauses)


def _eval_and(document: Document, clauses: Any) -> bool:
    return all(matches(document, q) for q in _sub_queries(LogicalOp.AND, clauses))


def _eval_or(document: Document, clauses: Any) -> bool:
    return any(matches(document, q) for q in _sub_queries(LogicalOp.OR, clauses))


def _eval_not(document: Document, clause: Any) -> bool:
    if not isinstance(clause, dict):
        raise InvalidQueryError("$not requires a single query")
    return not matches(document, clause)


_LOGICAL: dict[LogicalOp, Callable[[Document, Any], bool]] = {
    LogicalOp.AND: _eval_and,
    LogicalOp.OR: _eval_or,
    LogicalOp.NOT: _eval_not,
}


# ---------------------------------------------------------------------------
# Field predicates
# ---------------------------------------------------------------------------


def _matches_field(value: Any, condition: Any) -> bool:
    """
    Evaluate one field predicate against a resolved value.

    - compiled pattern      → $regex shorthand
    - dict of "$" keys      → operator mapping, every operator must hold
    - dict without "$" keys → literal sub-document
    - anything else         → structural equality
    """
    if isinstance(condition, re.Pattern):
        return _op_regex(value, condition, {})

    if not isinstance(condition, dict):
        return deep_equal(value, condition)

    operator_keys = [k for k in condition if is_operator_key(k)]
    if not operator_keys:
        return deep_equal(value, condition)
    if len(operator_keys) != len(condition):
        raise InvalidQueryError(f"Cannot mix operators and field names in one predicate: {sorted(condition)}")

    if REGEX_OPTIONS in condition and QueryOp.REGEX.value not in condition:
        raise InvalidQueryError("$options is only valid together with $regex")

    for key, operand in condition.items():
        if key == REGEX_OPTIONS:
            continue
        op = _QUERY_OPS.get(key)
        if op is None:
            raise InvalidQueryError(f"Unsupported operator: {key}")
        if not _COMPARATORS[op](value, operand, condition):
            return False
    return True


def _op_eq(value: Any, operand: Any, predicate: dict) -> bool:
    return deep_equal(value, operand)


def _op_ne(value: Any, operand: Any, predicate: dict) -> bool:
    return not deep_equal(value, operand)


def _ordered(value: Any, operand: Any, compare: Callable[[Any, Any], bool]) -> bool:
    if value is MISSING or value is None:
        return False
    if isinstance(value, bool) != isinstance(operand, bool):
        return False
    try:
        return bool(compare(value, operand))
    except TypeError:
        return False


def _op_gt(value: Any, operand: Any, predicate: dict) -> bool:
    return _ordered(value, operand, operator.gt)


def _op_gte(value: Any, operand: Any, predicate: dict) -> bool:
    return _ordered(value, operand, operator.ge)


def _op_lt(value: Any, operand: Any, predicate: dict) -> bool:
    return _ordered(value, operand, operator.lt)


def _op_lte(value: Any, operand: Any, predicate: dict) -> bool:
    return _ordered(value, operand, operator.le)


def _candidates(op: QueryOp, operand: Any) -> Sequence[Any]:
    if not isinstance(operand, (list, tuple)):
        raise InvalidQueryError(f"{op.value} requires a list, got {type(operand).__name__}")
    return operand


def _op_in(value: Any, operand: Any, predicate: dict) -> bool:
    return any(deep_equal(value, c) for c in _candidates(QueryOp.IN, operand))


def _op_nin(value: Any, operand: Any, predicate: dict) -> bool:
    return not any(deep_equal(value, c) for c in _candidates(QueryOp.NIN, operand))


@functools.lru_cache(maxsize=256)
def _compile(source: str, flags: int) -> re.Pattern:
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise InvalidQueryError(f"Invalid $regex {source!r}: {e}") from e


def _regex_flags(options: Any) -> int:
    if not isinstance(options, str):
        raise InvalidQueryError(f"$options must be a string, got {type(options).__name__}")
    flags = 0
    for letter in options:
        if letter not in _REGEX_FLAGS:
            raise InvalidQueryError(f"Unsupported $options flag: {letter!r}")
        flags |= _REGEX_FLAGS[letter]
    return flags


def _op_regex(value: Any, operand: Any, predicate: dict) -> bool:
    if isinstance(operand, re.Pattern):
        if REGEX_OPTIONS in predicate:
            raise InvalidQueryError("$options cannot be combined with a compiled pattern")
        pattern = operand
    elif isinstance(operand, str):
        pattern = _compile(operand, _regex_flags(predicate.get(REGEX_OPTIONS, "")))
    else:
        raise InvalidQueryError(f"$regex requires a string or compiled pattern, got {type(operand).__name__}")

    if not isinstance(value, str):
        return False
    return pattern.search(value) is not None


def _op_exists(value: Any, operand: Any, predicate: dict) -> bool:
    if not isinstance(operand, bool):
        raise InvalidQueryError(f"$exists requires true or false, got {operand!r}")
    return (value is not MISSING) == operand


def _text_operand(op: QueryOp, operand: Any) -> str:
    if not isinstance(operand, str):
        raise InvalidQueryError(f"{op.value} requires a string, got {type(operand).__name__}")
    return operand


def _op_starts_with(value: Any, operand: Any, predicate: dict) -> bool:
    prefix = _text_operand(QueryOp.STARTS_WITH, operand)
    return isinstance(value, str) and value.startswith(prefix)


def _op_ends_with(value: Any, operand: Any, predicate: dict) -> bool:
    suffix = _text_operand(QueryOp.ENDS_WITH, operand)
    return isinstance(value, str) and value.endswith(suffix)


def _op_contains(value: Any, operand: Any, predicate: dict) -> bool:
    if not isinstance(value, (list, tuple)):
        return False
    return any(deep_equal(item, operand) for item in value)


_COMPARATORS: dict[QueryOp, Callable[[Any, Any, dict], bool]] = {
    QueryOp.EQ: _op_eq,
    QueryOp.NE: _op_ne,
    QueryOp.GT: _op_gt,
    QueryOp.GTE: _op_gte,
    QueryOp.LT: _op_lt,
    QueryOp.LTE: _op_lte,
    QueryOp.IN: _op_in,
    QueryOp.NIN: _op_nin,
    QueryOp.REGEX: _op_regex,
    QueryOp.EXISTS: _op_exists,
    QueryOp.STARTS_WITH: _op_starts_with,
    QueryOp.ENDS_WITH: _op_ends_with,
    QueryOp.CONTAINS: _op_contains,
}


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def _type_rank(value: Any) -> int:
    if isinstance(value, bool):
        return 4
    if is_number(value):
        return 0
    if isinstance(value, str):
        return 1
    if isinstance(value, dict):
        return 2
    if isinstance(value, (list, tuple)):
        return 3
    return 5


def _compare_present(a: Any, b: Any) -> int:
    rank_a, rank_b = _type_rank(a), _type_rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 3:
        for x, y in zip(a, b):
            result = _compare_sort_values(x, y, 1)
            if result:
                return result
        return (len(a) > len(b)) - (len(a) < len(b))
    if rank_a in (2, 5):
        # No natural order; keep input order.
        return 0
    return (a > b) - (a < b)


def _compare_sort_values(a: Any, b: Any, direction: int) -> int:
    a_absent = a is MISSING or a is None
    b_absent = b is MISSING or b is None
    if a_absent or b_absent:
        # Absent values go last regardless of direction.
        return int(a_absent) - int(b_absent)
    return _compare_present(a, b) * direction
