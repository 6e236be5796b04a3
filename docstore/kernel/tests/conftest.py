"""
Docstore kernel test configuration.

Kernel tests use MemoryStorage and function-scoped event loops
(asyncio_mode = "auto" in pyproject.toml).
PostgresStorage tests that need DATABASE_URL are skipped automatically when not set.
"""
