"""
Docstore Kernel - Database Handle

Owns the registry of open collections for one storage backend.
Construct one per open database and pass it explicitly; there is no
process-wide registry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from docstore.kernel.collection import Collection, check_collection_name
from docstore.kernel.errors import storage_errors
from docstore.kernel.storage import DocumentStorage
from docstore.kernel.validation import SchemaValidator

logger = logging.getLogger(__name__)


class Database:
    """Hands out one long-lived Collection per name."""

    def __init__(self, storage: DocumentStorage, *, name: str = "default"):
        self._storage = storage
        self._name = name
        self._collections: dict[str, Collection] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def storage(self) -> DocumentStorage:
        return self._storage

    def collection(
        self,
        name: str,
        *,
        validator: SchemaValidator | None = None,
        id_generator: Callable[[], str] | None = None,
    ) -> Collection:
        """
        Get or register a collection. No storage I/O happens here.

        The first call for a name fixes its validator and id generator;
        later calls return the same instance and ignore those arguments.
        """
        check_collection_name(name)
        existing = self._collections.get(name)
        if existing is not None:
            return existing

        coll = Collection(name, self._storage, validator=validator, id_generator=id_generator)
        self._collections[name] = coll
        logger.debug("collection registered: db=%s collection=%s", self._name, name)
        return coll

    async def has_collection(self, name: str) -> bool:
        """True once the collection has been materialized in the store."""
        check_collection_name(name)
        with storage_errors(name, "has_collection"):
            return await self._storage.has_collection(name)

    async def list_collections(self) -> list[str]:
        with storage_errors(None, "list_collections"):
            return await self._storage.list_collections()

    async def drop_collection(self, name: str) -> None:
        """Drop from the store first; the registry entry goes only on success."""
        check_collection_name(name)
        coll = self._collections.get(name)
        if coll is not None:
            await coll.drop()
            self._collections.pop(name, None)
            return
        with storage_errors(name, "drop_collection"):
            await self._storage.drop_collection(name)
        logger.info("drop: collection=%s", name)

    async def drop(self) -> None:
        """Drop every collection the store knows about."""
        for name in await self.list_collections():
            await self.drop_collection(name)
        self._collections.clear()
        logger.info("drop: db=%s", self._name)

    async def close(self) -> None:
        """Forget open collections and release the store."""
        self._collections.clear()
        with storage_errors(None, "close"):
            await self._storage.close()
