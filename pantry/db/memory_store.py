"""In-process remote store used for development (DATABASE_URL=memory://) and tests"""
import asyncio
import copy
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pantry.db.store import RemoteStore, Increment, SERVER_TIMESTAMP


class InMemoryStore(RemoteStore):
    """Dict-backed store with the same merge and modifier semantics as SqlAlchemyStore

    Each write is applied without suspending in between, so on a single event
    loop every operation (Increment included) is atomic.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    @staticmethod
    def _resolve(current: Optional[Dict[str, Any]], fields: Dict[str, Any]) -> Dict[str, Any]:
        resolved = {}
        for name, value in fields.items():
            if isinstance(value, Increment):
                previous = (current or {}).get(name) or 0
                resolved[name] = previous + value.amount
            elif value is SERVER_TIMESTAMP:
                resolved[name] = datetime.now(timezone.utc)
            else:
                resolved[name] = value
        return resolved

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        document = self._collections[collection].get(key)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, collection: str, key: str, fields: Dict[str, Any], merge: bool = False) -> None:
        await asyncio.sleep(0)
        documents = self._collections[collection]
        current = documents.get(key) if merge else None
        resolved = self._resolve(current, fields)
        if current is not None:
            current.update(resolved)
        else:
            documents[key] = resolved

    async def add(self, collection: str, fields: Dict[str, Any]) -> str:
        await asyncio.sleep(0)
        doc_id = uuid.uuid4().hex
        document = self._resolve(None, fields)
        document["id"] = doc_id
        self._collections[collection][doc_id] = document
        return doc_id

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        await asyncio.sleep(0)
        return [
            copy.deepcopy(document)
            for document in self._collections[collection].values()
            if document.get(field) == value
        ]
