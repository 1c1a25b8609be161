"""Storage module for the Empire client.

Usage:
    from empire_client.storage import StagingStore, create_key_value_store

    store = StagingStore(create_key_value_store(get_client_config()))
    store.save(game_id, turn, ledger)
    ledger = store.load(game_id, turn)

Configuration via environment variables:
    EMPIRE_CLIENT_STAGING_BACKEND: "memory" or "file" (default: "file")
    EMPIRE_CLIENT_STAGING_PATH: Directory for the file backend (default: "staging")
"""

from .kv import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore, create_key_value_store
from .staging import StagingRecord, StagingStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "create_key_value_store",
    "StagingRecord",
    "StagingStore",
]
