"""Remote store contract and its SQLAlchemy / in-memory implementations."""

from pantry.db.store import (
    RemoteStore,
    Increment,
    SERVER_TIMESTAMP,
    METADATA_COLLECTION,
    INVENTORY_LOG_COLLECTION,
)
