"""
Docstore Kernel - Shared Types

Values, operator enums, and small data classes used across the query engine,
the update engine, and the collection layer.

Documents are plain dicts holding JSON-compatible values:
None, bool, int, float, str, list, dict.

Absent fields are represented by MISSING, which is distinct from None.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from docstore.kernel.errors import InvalidQueryError

Document = dict[str, Any]

ID_FIELD = "_id"
OPERATOR_PREFIX = "$"

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

COLLECTION_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")


# ---------------------------------------------------------------------------
# Absent values
# ---------------------------------------------------------------------------


class _Missing:
    """Marker for a field that does not exist in a document."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Missing:
        return self

    def __deepcopy__(self, memo: dict) -> _Missing:
        return self


MISSING: Any = _Missing()


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class LogicalOp(str, Enum):
    """Combinators allowed at query-node level. Evaluated in this order."""

    AND = "$and"
    OR = "$or"
    NOT = "$not"


class QueryOp(str, Enum):
    """Comparison operators allowed inside a field predicate."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    REGEX = "$regex"
    EXISTS = "$exists"
    STARTS_WITH = "$startsWith"
    ENDS_WITH = "$endsWith"
    CONTAINS = "$contains"


# Modifies $regex; never evaluated on its own.
REGEX_OPTIONS = "$options"


class UpdateOp(str, Enum):
    """Update operators. Declaration order is application order."""

    SET = "$set"
    UNSET = "$unset"
    INC = "$inc"
    PUSH = "$push"
    PULL = "$pull"
    ADD_TO_SET = "$addToSet"


SORT_DIRECTIONS: dict[Any, int] = {
    1: 1,
    -1: -1,
    "asc": 1,
    "ascending": 1,
    "desc": -1,
    "descending": -1,
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class FindOptions:
    """
    Result shaping for find().

    sort: {field: direction} or [(field, direction), ...], applied first.
    skip: number of sorted matches to drop.
    limit: maximum number of results; 0 means no limit.
    """

    sort: list[tuple[str, int]] = field(default_factory=list)
    skip: int = 0
    limit: int = 0

    def __post_init__(self) -> None:
        self.sort = normalize_sort(self.sort)
        for name in ("skip", "limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidQueryError(f"{name} must be a non-negative integer, got {value!r}")

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> FindOptions:
        unknown = set(d) - {"sort", "skip", "limit"}
        if unknown:
            raise InvalidQueryError(f"Unknown find options: {sorted(unknown)}")
        return cls(
            sort=d.get("sort") or [],
            skip=d.get("skip") or 0,
            limit=d.get("limit") or 0,
        )

    @classmethod
    def coerce(cls, options: FindOptions | Mapping[str, Any] | None) -> FindOptions:
        if options is None:
            return cls()
        if isinstance(options, FindOptions):
            return options
        if isinstance(options, Mapping):
            return cls.from_dict(options)
        raise InvalidQueryError(f"Find options must be a FindOptions or dict, got {type(options).__name__}")


@dataclass
class ValidationIssue:
    """One problem reported by a schema validator."""

    path: tuple[str | int, ...]
    message: str
    code: str | None = None

    def __str__(self) -> str:
        location = ".".join(str(p) for p in self.path) or "<root>"
        return f"{location}: {self.message}"


@dataclass
class ValidationResult:
    """
    Outcome of SchemaValidator.validate().
    On success `document` is the (possibly normalized) document to persist.
    """

    ok: bool
    document: Document | None = None
    issues: list[ValidationIssue] = field(default_factory=list)

    @classmethod
    def success(cls, document: Document) -> ValidationResult:
        return cls(ok=True, document=document)

    @classmethod
    def failure(cls, issues: list[ValidationIssue]) -> ValidationResult:
        return cls(ok=False, issues=list(issues))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_operator_key(key: object) -> bool:
    return isinstance(key, str) and key.startswith(OPERATOR_PREFIX)


def is_number(value: Any) -> bool:
    """True for int and float. bool is not a number here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_collection_name(name: object) -> bool:
    """Letter or underscore, then letters, digits, underscores or hyphens."""
    return isinstance(name, str) and bool(COLLECTION_NAME_PATTERN.match(name))


def generate_id() -> str:
    """32-char lowercase hex identifier."""
    return uuid.uuid4().hex


def normalize_sort(sort: Any) -> list[tuple[str, int]]:
    """
    Normalize a sort specification into [(field, 1 | -1), ...].

    Accepts an ordered mapping {field: direction} or a sequence of pairs.
    Directions: 1, -1, "asc", "ascending", "desc", "descending".
    """
    if not sort:
        return []
    if isinstance(sort, Mapping):
        pairs = list(sort.items())
    elif isinstance(sort, (list, tuple)):
        pairs = list(sort)
    else:
        raise InvalidQueryError(f"Sort must be a dict or a list of pairs, got {type(sort).__name__}")

    normalized: list[tuple[str, int]] = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise InvalidQueryError(f"Sort entry must be a (field, direction) pair, got {pair!r}")
        field_name, direction = pair
        if not isinstance(field_name, str) or not field_name:
            raise InvalidQueryError(f"Sort field must be a non-empty string, got {field_name!r}")
        key = direction.lower() if isinstance(direction, str) else direction
        if isinstance(key, bool) or key not in SORT_DIRECTIONS:
            raise InvalidQueryError(f"Invalid sort direction for {field_name!r}: {direction!r}")
        normalized.append((field_name, SORT_DIRECTIONS[key]))
    return normalized


def get_path(document: Any, path: str) -> Any:
    """
    Resolve a dot path segment by segment.

      get_path({"a": {"b": 1}}, "a.b")  → 1
      get_path({"tags": ["x", "y"]}, "tags.1")  → "y"
      get_path({"a": 5}, "a.b")  → MISSING

    Dict segments look up keys; list segments take a non-negative index.
    Anything else resolves to MISSING.
    """
    current = document
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality over document values.

    - bool never equals a number (True != 1)
    - int and float compare numerically (1 == 1.0)
    - lists are order-sensitive; tuples count as lists
    - dicts need the same key set; key order is ignored
    - None equals only None, MISSING equals only MISSING
    """
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    if a is None or b is None or a is MISSING or b is MISSING:
        return False
    return type(a) is type(b) and a == b
