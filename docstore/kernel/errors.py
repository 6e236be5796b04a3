"""
Docstore Kernel - Errors

Every error the kernel raises derives from DocstoreError.

Not found is not an error: point lookups and point mutations return None.
Storage adapters may raise anything; storage_errors() wraps those once,
adding the collection and operation, and lets kernel errors pass through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docstore.kernel.types import ValidationIssue

logger = logging.getLogger(__name__)


class DocstoreError(Exception):
    """Base class for docstore errors."""

    pass


class InvalidQueryError(DocstoreError):
    """Query or find options are malformed."""

    pass


class InvalidUpdateError(DocstoreError):
    """Update description is malformed or would change a document's _id."""

    pass


class CollectionNameError(DocstoreError):
    """Collection name is empty or does not match the allowed pattern."""

    def __init__(self, name: object, reason: str):
        super().__init__(f"Invalid collection name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class DuplicateKeyError(DocstoreError):
    """A document with the same _id already exists in the collection."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(
            f'Duplicate key error: document with id "{doc_id}" already exists '
            f'in collection "{collection}"'
        )
        self.collection = collection
        self.doc_id = doc_id


class ValidationError(DocstoreError):
    """Schema validation rejected a document. Nothing was written."""

    def __init__(self, collection: str, issues: list[ValidationIssue]):
        summary = "; ".join(str(issue) for issue in issues) or "no details"
        super().__init__(f'Validation failed for collection "{collection}": {summary}')
        self.collection = collection
        self.issues = list(issues)


class StorageError(DocstoreError):
    """The store adapter failed. The original exception is chained as __cause__."""

    def __init__(self, collection: str | None, operation: str, cause: BaseException):
        where = f' on collection "{collection}"' if collection else ""
        super().__init__(f"Storage {operation} failed{where}: {cause}")
        self.collection = collection
        self.operation = operation


@contextmanager
def storage_errors(collection: str | None, operation: str) -> Iterator[None]:
    """Wrap adapter exceptions raised inside the block in StorageError."""
    try:
        yield
    except DocstoreError:
        raise
    except Exception as exc:
        logger.warning(
            "storage %s failed collection=%s: %s: %s",
            operation,
            collection,
            type(exc).__name__,
            exc,
        )
        raise StorageError(collection, operation, exc) from exc
