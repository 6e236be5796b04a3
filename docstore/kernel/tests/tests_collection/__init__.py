"""
Docstore Collection Test Suite

Tests for the collection layer running against MemoryStorage.

Test Files:
1. test_collection_insert.py - insert, insert_fast, insert_many, identifiers
2. test_collection_find.py - find pipeline, find_one, find_by_id, count
3. test_collection_update_delete.py - update*, delete*, clear, drop
4. test_collection_validation.py - pydantic schema validation on every write
5. test_collection_storage_errors.py - adapter failures surface as StorageError
6. test_database.py - per-handle collection registry
"""
