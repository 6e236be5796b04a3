"""
PostgresStorage adapter for the docstore kernel.

Implements the DocumentStorage protocol on Postgres.
Documents are stored as JSONB, one row per (collection, _id).

The pool must decode JSONB to Python objects; pools built by
docstore.db.create_pool do.
"""

from __future__ import annotations

import asyncpg

from docstore.config import Settings
from docstore.db import create_pool
from docstore.kernel.storage import DocumentStorage
from docstore.kernel.types import ID_FIELD, Document

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS docstore_collections (
    name TEXT PRIMARY KEY,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS docstore_documents (
    collection TEXT NOT NULL REFERENCES docstore_collections (name) ON DELETE CASCADE,
    doc_id TEXT NOT NULL,
    body JSONB NOT NULL,
    seq BIGSERIAL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (collection, doc_id)
);
"""

_ENSURE_COLLECTION_SQL = """
INSERT INTO docstore_collections (name)
VALUES ($1)
ON CONFLICT (name) DO NOTHING
"""

_UPSERT_SQL = """
INSERT INTO docstore_documents (collection, doc_id, body, updated_at)
VALUES ($1, $2, $3, now())
ON CONFLICT (collection, doc_id)
DO UPDATE SET body = EXCLUDED.body, updated_at = now()
"""


class PostgresStorage(DocumentStorage):
    """
    Postgres-based document storage.

    Uses two tables:
    - docstore_collections: one row per materialized collection
    - docstore_documents: JSONB documents, scan order follows insertion (seq)
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def connect(cls, config: Settings | None = None) -> PostgresStorage:
        """Create a pool from settings and make sure the tables exist."""
        storage = cls(await create_pool(config))
        await storage.create_schema()
        return storage

    async def create_schema(self) -> None:
        """Create tables if missing. Idempotent."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)

    async def ensure_collection(self, name: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(_ENSURE_COLLECTION_SQL, name)

    async def get(self, name: str, doc_id: str) -> Document | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT body FROM docstore_documents WHERE collection = $1 AND doc_id = $2",
                name,
                doc_id,
            )
            return row["body"] if row else None

    async def get_all(self, name: str) -> list[Document]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT body FROM docstore_documents WHERE collection = $1 ORDER BY seq",
                name,
            )
            return [row["body"] for row in rows]

    async def put(self, name: str, document: Document) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(_ENSURE_COLLECTION_SQL, name)
                await conn.execute(_UPSERT_SQL, name, document[ID_FIELD], document)

    async def put_many(self, name: str, documents: list[Document]) -> None:
        """Upsert a batch in one transaction: all rows land or none do."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(_ENSURE_COLLECTION_SQL, name)
                await conn.executemany(
                    _UPSERT_SQL,
                    [(name, doc[ID_FIELD], doc) for doc in documents],
                )

    async def delete(self, name: str, doc_id: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM docstore_documents WHERE collection = $1 AND doc_id = $2",
                name,
                doc_id,
            )

    async def clear(self, name: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM docstore_documents WHERE collection = $1", name)

    async def drop_collection(self, name: str) -> None:
        # Documents go with it (ON DELETE CASCADE).
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM docstore_collections WHERE name = $1", name)

    async def has_collection(self, name: str) -> bool:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM docstore_collections WHERE name = $1)",
                name,
            )

    async def list_collections(self) -> list[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT name FROM docstore_collections ORDER BY created_at, name")
            return [row["name"] for row in rows]

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
