"""
Docstore Kernel - Storage Protocol

The keyed persistence contract the collection layer reads from and writes to.
Documents are stored per named collection and keyed by _id.

Implement with Postgres for production, or in-memory for tests.
"""

from __future__ import annotations

import copy

from docstore.kernel.types import ID_FIELD, Document


class DocumentStorage:
    """
    Abstract storage interface.
    Every method is a coroutine; adapters decide their own I/O model.
    """

    async def ensure_collection(self, name: str) -> None:
        """Create backing storage for a collection. Idempotent."""
        raise NotImplementedError

    async def get(self, name: str, doc_id: str) -> Document | None:
        """Fetch one document by _id. Returns None if not found."""
        raise NotImplementedError

    async def get_all(self, name: str) -> list[Document]:
        """Every document in the collection. Order is adapter-defined."""
        raise NotImplementedError

    async def put(self, name: str, document: Document) -> None:
        """Insert or overwrite by _id."""
        raise NotImplementedError

    async def put_many(self, name: str, documents: list[Document]) -> None:
        """Insert or overwrite a batch."""
        raise NotImplementedError

    async def delete(self, name: str, doc_id: str) -> None:
        """Remove one document. Missing documents are ignored."""
        raise NotImplementedError

    async def clear(self, name: str) -> None:
        """Remove every document, keep the collection."""
        raise NotImplementedError

    async def drop_collection(self, name: str) -> None:
        """Remove the collection and its documents."""
        raise NotImplementedError

    async def has_collection(self, name: str) -> bool:
        raise NotImplementedError

    async def list_collections(self) -> list[str]:
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None


class MemoryStorage(DocumentStorage):
    """In-memory storage for testing. Insertion ordered; copies on the way in and out."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Document]] = {}

    async def ensure_collection(self, name: str) -> None:
        self.collections.setdefault(name, {})

    async def get(self, name: str, doc_id: str) -> Document | None:
        doc = self.collections.get(name, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def get_all(self, name: str) -> list[Document]:
        return [copy.deepcopy(doc) for doc in self.collections.get(name, {}).values()]

    async def put(self, name: str, document: Document) -> None:
        doc_id = _require_id(document)
        self.collections.setdefault(name, {})[doc_id] = copy.deepcopy(document)

    async def put_many(self, name: str, documents: list[Document]) -> None:
        # All-or-nothing: every document is checked before any is stored.
        staged = {_require_id(doc): copy.deepcopy(doc) for doc in documents}
        self.collections.setdefault(name, {}).update(staged)

    async def delete(self, name: str, doc_id: str) -> None:
        self.collections.get(name, {}).pop(doc_id, None)

    async def clear(self, name: str) -> None:
        if name in self.collections:
            self.collections[name].clear()

    async def drop_collection(self, name: str) -> None:
        self.collections.pop(name, None)

    async def has_collection(self, name: str) -> bool:
        return name in self.collections

    async def list_collections(self) -> list[str]:
        return list(self.collections)


def _require_id(document: Document) -> str:
    doc_id = document.get(ID_FIELD)
    if not isinstance(doc_id, str) or not doc_id:
        raise ValueError(f"Document has no usable {ID_FIELD}: {doc_id!r}")
    return doc_id
