"""
Docstore Kernel - Update Engine

Pure function: (document, update) → new document
No side effects. No IO. The input document is never modified.

Two modes:
  direct    - no "$" keys; every field is merged into a copy, overwriting
  operators - $set, $unset, $inc, $push, $pull, $addToSet, always applied
              in that order whatever order the caller wrote them in

Operators that find a field of the wrong shape leave it untouched.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from docstore.kernel.errors import InvalidUpdateError
from docstore.kernel.types import (
    ID_FIELD,
    MISSING,
    Document,
    UpdateOp,
    deep_equal,
    get_path,
    is_number,
    is_operator_key,
)

_UPDATE_OPS = {op.value: op for op in UpdateOp}

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_operator_update(update: dict[str, Any]) -> bool:
    """True when any top-level key is an operator."""
    return any(is_operator_key(key) for key in update)


def apply_update(document: Document, update: dict[str, Any]) -> Document:
    """
    Return a new document with the update applied.

    Raises InvalidUpdateError for unknown operators, non-dict operands,
    mixed direct/operator keys, or any change to _id.
    """
    if not isinstance(update, dict):
        raise InvalidUpdateError(f"Update must be a dict, got {type(update).__name__}")

    result = copy.deepcopy(document)

    if not is_operator_update(update):
        for key, value in update.items():
            result[key] = copy.deepcopy(value)
    else:
        operations = _parse_operations(update)
        for op in UpdateOp:
            changes = operations.get(op)
            if not changes:
                continue
            handler = _HANDLERS[op]
            for path, operand in changes.items():
                handler(result, path, operand)

    _check_identifier(document, result)
    return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _parse_operations(update: dict[str, Any]) -> dict[UpdateOp, dict[str, Any]]:
    operations: dict[UpdateOp, dict[str, Any]] = {}
    for key, changes in update.items():
        if not is_operator_key(key):
            raise InvalidUpdateError(f"Cannot mix update operators and plain fields: {key!r}")
        op = _UPDATE_OPS.get(key)
        if op is None:
            raise InvalidUpdateError(f"Unsupported update operator: {key}")
        if not isinstance(changes, dict):
            raise InvalidUpdateError(f"{key} requires a dict of field → value")
        for path in changes:
            if not isinstance(path, str) or not path:
                raise InvalidUpdateError(f"{key} field names must be non-empty strings, got {path!r}")
        operations[op] = changes
    return operations


def _check_identifier(before: Document, after: Document) -> None:
    if ID_FIELD not in before:
        return
    if ID_FIELD not in after:
        raise InvalidUpdateError(f"{ID_FIELD} cannot be removed")
    if not deep_equal(before[ID_FIELD], after[ID_FIELD]):
        raise InvalidUpdateError(f"{ID_FIELD} is immutable")


def _child(container: Any, key: str) -> Any:
    if isinstance(container, dict):
        return container.get(key, MISSING)
    if isinstance(container, list) and key.isdigit() and int(key) < len(container):
        return container[int(key)]
    return MISSING


def _resolve_parent(document: Document, path: str, create: bool) -> tuple[Any, str]:
    """
    Walk to the container holding the last path segment.
    With create=True, missing intermediate dicts are created.
    Returns (None, key) when the path cannot be reached.
    """
    parts = path.split(".")
    container: Any = document
    for part in parts[:-1]:
        child = _child(container, part)
        if child is MISSING and create and isinstance(container, dict):
            child = {}
            container[part] = child
        if not isinstance(child, (dict, list)):
            if create and child is not MISSING:
                raise InvalidUpdateError(f"Cannot create field {path!r}: {part!r} holds a {type(child).__name__}")
            return None, parts[-1]
        container = child
    return container, parts[-1]


def _assign(container: Any, key: str, value: Any, path: str) -> None:
    if isinstance(container, dict):
        container[key] = value
    elif isinstance(container, list) and key.isdigit() and int(key) < len(container):
        container[int(key)] = value
    else:
        raise InvalidUpdateError(f"Cannot set {path!r}: no such array position")


# ---------------------------------------------------------------------------
# Operator handlers
# ---------------------------------------------------------------------------


def _handle_set(doc: Document, path: str, operand: Any) -> None:
    container, key = _resolve_parent(doc, path, create=True)
    if container is None:
        raise InvalidUpdateError(f"Cannot set {path!r}")
    _assign(container, key, copy.deepcopy(operand), path)


def _handle_unset(doc: Document, path: str, operand: Any) -> None:
    container, key = _resolve_parent(doc, path, create=False)
    if isinstance(container, list):
        # Array elements go through $pull.
        raise InvalidUpdateError(f"Cannot unset {path!r}: $unset removes fields, not array elements")
    if isinstance(container, dict):
        container.pop(key, None)


def _handle_inc(doc: Document, path: str, operand: Any) -> None:
    current = get_path(doc, path)
    if not (is_number(current) and is_number(operand)):
        return
    container, key = _resolve_parent(doc, path, create=False)
    _assign(container, key, current + operand, path)


def _handle_push(doc: Document, path: str, operand: Any) -> None:
    current = get_path(doc, path)
    if isinstance(current, list):
        current.append(copy.deepcopy(operand))


def _handle_pull(doc: Document, path: str, operand: Any) -> None:
    current = get_path(doc, path)
    if isinstance(current, list):
        current[:] = [item for item in current if not deep_equal(item, operand)]


def _handle_add_to_set(doc: Document, path: str, operand: Any) -> None:
    current = get_path(doc, path)
    if isinstance(current, list) and not any(deep_equal(item, operand) for item in current):
        current.append(copy.deepcopy(operand))


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

_HANDLERS: dict[UpdateOp, Callable[[Document, str, Any], None]] = {
    UpdateOp.SET: _handle_set,
    UpdateOp.UNSET: _handle_unset,
    UpdateOp.INC: _handle_inc,
    UpdateOp.PUSH: _handle_push,
    UpdateOp.PULL: _handle_pull,
    UpdateOp.ADD_TO_SET: _handle_add_to_set,
}
