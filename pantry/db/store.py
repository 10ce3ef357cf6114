"""
Abstract base class for remote document stores
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

METADATA_COLLECTION = "product_metadata"
INVENTORY_LOG_COLLECTION = "inventory_log"


@dataclass(frozen=True)
class Increment:
    """Field modifier: add ``amount`` to the stored value atomically (missing counts as 0)"""
    amount: int


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


# Sentinel replaced by the store's own clock when a write is applied
SERVER_TIMESTAMP = _ServerTimestamp()


class RemoteStore(ABC):
    """Abstract interface for the document store backing the pantry

    Documents are plain dicts grouped into named collections and keyed by a
    string id. Field values may be ``Increment`` or ``SERVER_TIMESTAMP``
    modifiers, which the store resolves when the write is applied.
    Implementations raise ``StoreIOError`` on read/write failures.
    """

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Read one document.

        Returns:
            The document fields, or None if no document has that key
        """
        pass

    @abstractmethod
    async def set(self, collection: str, key: str, fields: Dict[str, Any], merge: bool = False) -> None:
        """
        Write a document, creating it if needed.

        Args:
            collection: Collection name
            key: Document id
            fields: Field values (may contain modifiers)
            merge: Update only the given fields and keep the others. When False
                the document is replaced and unspecified fields take defaults.
        """
        pass

    @abstractmethod
    async def add(self, collection: str, fields: Dict[str, Any]) -> str:
        """
        Append a new document with a store-assigned id.

        Returns:
            The new document id
        """
        pass

    @abstractmethod
    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Return every document of the collection whose ``field`` equals ``value``"""
        pass

    async def close(self) -> None:
        """Release connections held by the store"""
        return None
