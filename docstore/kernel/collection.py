"""
Docstore Kernel - Collection Layer

Sits between the pure engines (query, updates) and a storage adapter.
Exposes the CRUD surface for one named collection.

Operations: insert, insert_fast, insert_many, find, find_one, find_by_id,
count, update, update_one, update_by_id, delete, delete_one, delete_by_id,
get_all, clear, drop

This is where IO happens. The query and update engines are pure.

Multi-document operations read a full snapshot of the collection and
compute against it. There is no locking: a write that lands between the
snapshot read and our own writes is overwritten (last write wins).
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any

from docstore.kernel.errors import (
    CollectionNameError,
    DuplicateKeyError,
    ValidationError,
    storage_errors,
)
from docstore.kernel.query import filter_documents, paginate, sort_documents
from docstore.kernel.storage import DocumentStorage
from docstore.kernel.types import (
    ID_FIELD,
    Document,
    FindOptions,
    ValidationIssue,
    generate_id,
    is_valid_collection_name,
)
from docstore.kernel.updates import apply_update
from docstore.kernel.validation import SchemaValidator

logger = logging.getLogger(__name__)


def check_collection_name(name: object) -> str:
    """Return the name if valid, raise CollectionNameError otherwise."""
    if not isinstance(name, str) or not name:
        raise CollectionNameError(name, "must be a non-empty string")
    if not is_valid_collection_name(name):
        raise CollectionNameError(
            name,
            "must start with a letter or underscore and contain only letters, "
            "numbers, underscores, and hyphens",
        )
    return name


class Collection:
    """
    CRUD over one named collection.
    Coordinates validation + query engine + update engine + storage.

    Every document handed back is a deep copy; callers may mutate it freely.
    """

    def __init__(
        self,
        name: str,
        storage: DocumentStorage,
        *,
        validator: SchemaValidator | None = None,
        id_generator: Callable[[], str] | None = None,
    ):
        self._name = check_collection_name(name)
        self._storage = storage
        self._validator = validator
        self._id_generator = id_generator or generate_id
        self._materialized = False

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"Collection({self._name!r})"

    # -- ensure --

    async def ensure(self) -> None:
        """Materialize backing storage. Called before the first write."""
        if self._materialized:
            return
        with storage_errors(self._name, "ensure_collection"):
            await self._storage.ensure_collection(self._name)
        self._materialized = True

    # -- insert --

    async def insert(self, document: Document) -> Document:
        """
        Assign an _id if absent, validate, reject duplicates, persist.
        Raises DuplicateKeyError if the _id is already taken.
        """
        new_doc = self._prepare(document)
        doc_id = new_doc[ID_FIELD]

        with storage_errors(self._name, "get"):
            existing = await self._storage.get(self._name, doc_id)
        if existing is not None:
            raise DuplicateKeyError(self._name, doc_id)

        await self._put(new_doc)
        logger.debug("insert: collection=%s _id=%s", self._name, doc_id)
        return copy.deepcopy(new_doc)

    async def insert_fast(self, document: Document) -> Document:
        """
        insert() without the duplicate lookup.
        An existing document with the same _id is overwritten by the store.
        """
        new_doc = self._prepare(document)
        await self._put(new_doc)
        logger.debug("insert_fast: collection=%s _id=%s", self._name, new_doc[ID_FIELD])
        return copy.deepcopy(new_doc)

    async def insert_many(self, documents: list[Document]) -> list[Document]:
        """
        Prepare and validate every document, then persist them as one batch.
        Nothing is written if any document fails validation or two documents
        in the batch share an _id. Atomicity of the write itself is up to the store.
        """
        new_docs = [self._prepare(doc) for doc in documents]
        if not new_docs:
            return []

        seen: set[str] = set()
        for doc in new_docs:
            if doc[ID_FIELD] in seen:
                raise DuplicateKeyError(self._name, doc[ID_FIELD])
            seen.add(doc[ID_FIELD])

        await self.ensure()
        with storage_errors(self._name, "put_many"):
            await self._storage.put_many(self._name, new_docs)
        logger.debug("insert_many: collection=%s count=%d", self._name, len(new_docs))
        return [copy.deepcopy(doc) for doc in new_docs]

    # -- find --

    async def find(
        self,
        query: dict[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> list[Document]:
        """
        scan → filter → sort → skip → limit, always in that order.
        """
        opts = FindOptions.coerce(options)
        results = filter_documents(await self._scan(), query)
        if opts.sort:
            results = sort_documents(results, opts.sort)
        results = paginate(results, skip=opts.skip, limit=opts.limit)
        return [copy.deepcopy(doc) for doc in results]

    async def find_one(self, query: dict[str, Any] | None = None) -> Document | None:
        """First match in store order, or None."""
        results = await self.find(query, FindOptions(limit=1))
        return results[0] if results else None

    async def find_by_id(self, doc_id: str) -> Document | None:
        """Point lookup. Skips the query engine entirely."""
        doc = await self._get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def count(self, query: dict[str, Any] | None = None) -> int:
        return len(filter_documents(await self._scan(), query))

    async def get_all(self) -> list[Document]:
        """Every document in store order."""
        return [copy.deepcopy(doc) for doc in await self._scan()]

    # -- update --

    async def update(self, query: dict[str, Any], update: dict[str, Any]) -> int:
        """
        Apply the update to every match. Returns the number updated.
        All results are computed and validated before the first write.
        """
        targets = filter_documents(await self._scan(), query)
        updated = [self._apply(doc, update) for doc in targets]
        for doc in updated:
            await self._put(doc)
        logger.debug("update: collection=%s count=%d", self._name, len(updated))
        return len(updated)

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> Document | None:
        """Update the first match. Returns the updated document, or None."""
        doc = await self.find_one(query)
        if doc is None:
            return None
        return await self._replace(doc, update)

    async def update_by_id(self, doc_id: str, update: dict[str, Any]) -> Document | None:
        """Update by _id. Returns the updated document, or None."""
        doc = await self._get(doc_id)
        if doc is None:
            return None
        return await self._replace(doc, update)

    # -- delete --

    async def delete(self, query: dict[str, Any]) -> int:
        """Delete every match. Returns the number deleted."""
        targets = filter_documents(await self._scan(), query)
        for doc in targets:
            await self._delete(doc[ID_FIELD])
        logger.debug("delete: collection=%s count=%d", self._name, len(targets))
        return len(targets)

    async def delete_one(self, query: dict[str, Any]) -> Document | None:
        """Delete the first match. Returns the removed document, or None."""
        doc = await self.find_one(query)
        if doc is None:
            return None
        await self._delete(doc[ID_FIELD])
        return doc

    async def delete_by_id(self, doc_id: str) -> Document | None:
        """Delete by _id. Returns the removed document, or None."""
        doc = await self._get(doc_id)
        if doc is None:
            return None
        await self._delete(doc_id)
        return copy.deepcopy(doc)

    # -- clear / drop --

    async def clear(self) -> None:
        """Remove every document; the collection itself stays."""
        with storage_errors(self._name, "clear"):
            await self._storage.clear(self._name)
        logger.info("clear: collection=%s", self._name)

    async def drop(self) -> None:
        """Remove the collection from the store. A later write re-creates it."""
        with storage_errors(self._name, "drop_collection"):
            await self._storage.drop_collection(self._name)
        self._materialized = False
        logger.info("drop: collection=%s", self._name)

    # -- internals --

    def _prepare(self, document: Document) -> Document:
        """Copy, assign an _id if absent, validate."""
        if not isinstance(document, dict):
            raise TypeError(f"Document must be a dict, got {type(document).__name__}")
        new_doc = copy.deepcopy(document)
        doc_id = new_doc.get(ID_FIELD) or self._id_generator()
        if not isinstance(doc_id, str) or not doc_id:
            raise ValidationError(
                self._name,
                [ValidationIssue(path=(ID_FIELD,), message="identifier must be a non-empty string")],
            )
        new_doc[ID_FIELD] = doc_id
        return self._validate(new_doc)

    def _validate(self, document: Document) -> Document:
        if self._validator is None:
            return document
        result = self._validator.validate(document)
        if not result.ok:
            raise ValidationError(self._name, result.issues)
        normalized = dict(result.document) if result.document is not None else document
        normalized[ID_FIELD] = document[ID_FIELD]
        return normalized

    def _apply(self, document: Document, update: dict[str, Any]) -> Document:
        return self._validate(apply_update(document, update))

    async def _replace(self, document: Document, update: dict[str, Any]) -> Document:
        updated = self._apply(document, update)
        await self._put(updated)
        logger.debug("update: collection=%s _id=%s", self._name, updated[ID_FIELD])
        return copy.deepcopy(updated)

    async def _scan(self) -> list[Document]:
        with storage_errors(self._name, "get_all"):
            return await self._storage.get_all(self._name)

    async def _get(self, doc_id: str) -> Document | None:
        with storage_errors(self._name, "get"):
            return await self._storage.get(self._name, doc_id)

    async def _put(self, document: Document) -> None:
        await self.ensure()
        with storage_errors(self._name, "put"):
            await self._storage.put(self._name, document)

    async def _delete(self, doc_id: str) -> None:
        with storage_errors(self._name, "delete"):
            await self._storage.delete(self._name, doc_id)
