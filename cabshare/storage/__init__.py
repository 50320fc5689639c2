"""Persistence backends for the CabShare application."""
from cabshare.storage.kv_store import (
    KeyValueStore, FileKeyValueStore, HttpKeyValueStore, StorageError, create_store
)


__all__ = [
    'KeyValueStore',
    'FileKeyValueStore',
    'HttpKeyValueStore',
    'StorageError',
    'create_store',
]
