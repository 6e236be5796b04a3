"""
Docstore Kernel - the pure engines and the layer that drives them.

Components:
  query       - (document, query) → bool, plus filter/sort/paginate  (pure)
  updates     - (document, update) → new document  (pure, deterministic)
  collection  - coordinates validation + engines + storage IO
  database    - per-handle registry of open collections
"""

from docstore.kernel.collection import Collection
from docstore.kernel.database import Database
from docstore.kernel.errors import (
    CollectionNameError,
    DocstoreError,
    DuplicateKeyError,
    InvalidQueryError,
    InvalidUpdateError,
    StorageError,
    ValidationError,
)
from docstore.kernel.query import filter_documents, matches, paginate, sort_documents
from docstore.kernel.storage import DocumentStorage, MemoryStorage
from docstore.kernel.types import MISSING, FindOptions, ValidationIssue, ValidationResult
from docstore.kernel.updates import apply_update
from docstore.kernel.validation import PydanticValidator, SchemaValidator

__all__ = [
    "matches",
    "filter_documents",
    "sort_documents",
    "paginate",
    "apply_update",
    "Collection",
    "Database",
    "DocumentStorage",
    "MemoryStorage",
    "SchemaValidator",
    "PydanticValidator",
    "FindOptions",
    "ValidationIssue",
    "ValidationResult",
    "MISSING",
    "DocstoreError",
    "DuplicateKeyError",
    "ValidationError",
    "CollectionNameError",
    "StorageError",
    "InvalidQueryError",
    "InvalidUpdateError",
]
