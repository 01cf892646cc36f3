"""duet state persistence layer.

Stores the router configuration and performance metrics as two JSON
blobs, in memory, in a directory of JSON files, or in SQLite.
"""

from duet.persistence.database import SqliteBlobStore, init_db, open_store
from duet.persistence.store import (
    CONFIG_KEY,
    METRICS_KEY,
    BlobStore,
    JsonFileBlobStore,
    MemoryBlobStore,
    StoreError,
)

__all__ = [
    "CONFIG_KEY",
    "METRICS_KEY",
    "BlobStore",
    "JsonFileBlobStore",
    "MemoryBlobStore",
    "SqliteBlobStore",
    "StoreError",
    "init_db",
    "open_store",
]
