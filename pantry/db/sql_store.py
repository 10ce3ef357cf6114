"""SQLAlchemy implementation of the remote store"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from pantry.db.store import (
    RemoteStore,
    Increment,
    SERVER_TIMESTAMP,
    METADATA_COLLECTION,
    INVENTORY_LOG_COLLECTION,
)
from pantry.errors import StoreIOError
from pantry.models import ProductMetadataRecord, InventoryLogEntry

logger = logging.getLogger(__name__)

_MODELS = {
    METADATA_COLLECTION: ProductMetadataRecord,
    INVENTORY_LOG_COLLECTION: InventoryLogEntry,
}

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _model_for(collection: str):
    try:
        return _MODELS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _row_to_dict(model, row) -> Dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in model.__table__.columns}


def _insert_value(value):
    if isinstance(value, Increment):
        return value.amount
    if value is SERVER_TIMESTAMP:
        return func.now()
    return value


def _update_value(column, value):
    if isinstance(value, Increment):
        return func.coalesce(column, 0) + value.amount
    if value is SERVER_TIMESTAMP:
        return func.now()
    return value


class SqlAlchemyStore(RemoteStore):
    """Remote store backed by one SQL table per collection

    Every operation runs in its own session on a worker thread. Merge writes
    are single upsert statements, so Increment modifiers are applied by the
    database and concurrent increments are never lost.
    """

    def __init__(self, session_factory: sessionmaker, engine: Optional[Engine] = None):
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_engine(cls, engine: Engine) -> "SqlAlchemyStore":
        return cls(sessionmaker(autocommit=False, autoflush=False, bind=engine), engine=engine)

    async def _run(self, description: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            raise StoreIOError(f"{description} failed: {e}") from e

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return await self._run(f"get {collection}/{key}", self._get_sync, collection, key)

    async def set(self, collection: str, key: str, fields: Dict[str, Any], merge: bool = False) -> None:
        await self._run(f"set {collection}/{key}", self._set_sync, collection, key, fields, merge)

    async def add(self, collection: str, fields: Dict[str, Any]) -> str:
        return await self._run(f"add {collection}", self._add_sync, collection, fields)

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        return await self._run(f"query {collection}.{field}", self._query_sync, collection, field, value)

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    def _get_sync(self, collection: str, key: str):
        model = _model_for(collection)
        with self._session_factory() as session:
            row = session.get(model, key)
            return _row_to_dict(model, row) if row is not None else None

    def _set_sync(self, collection: str, key: str, fields: Dict[str, Any], merge: bool):
        model = _model_for(collection)
        table = model.__table__
        pk = list(table.primary_key.columns)[0]

        unknown = set(fields) - set(table.columns.keys())
        if unknown:
            raise ValueError(f"Unknown fields for {collection}: {sorted(unknown)}")

        values = {name: value for name, value in fields.items() if name != pk.name}
        insert_values = {name: _insert_value(value) for name, value in values.items()}
        insert_values[pk.name] = key

        with self._session_factory.begin() as session:
            if not merge:
                session.execute(delete(table).where(pk == key))
                session.execute(insert(table).values(**insert_values))
                return

            updates = {name: _update_value(table.c[name], value) for name, value in values.items()}
            upsert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
            if upsert is not None:
                stmt = upsert(table).values(**insert_values)
                if updates:
                    stmt = stmt.on_conflict_do_update(index_elements=[pk], set_=updates)
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=[pk])
                session.execute(stmt)
                return

            # Generic fallback: update in place, insert when nothing matched
            rowcount = 0
            if updates:
                rowcount = session.execute(update(table).where(pk == key).values(**updates)).rowcount
            if rowcount == 0 and session.get(model, key) is None:
                session.execute(insert(table).values(**insert_values))

    def _add_sync(self, collection: str, fields: Dict[str, Any]) -> str:
        model = _model_for(collection)
        table = model.__table__
        pk = list(table.primary_key.columns)[0]
        doc_id = uuid.uuid4().hex

        insert_values = {name: _insert_value(value) for name, value in fields.items()}
        insert_values[pk.name] = doc_id
        with self._session_factory.begin() as session:
            session.execute(insert(table).values(**insert_values))
        logger.debug(f"Added {collection}/{doc_id}")
        return doc_id

    def _query_sync(self, collection: str, field: str, value: Any):
        model = _model_for(collection)
        if field not in model.__table__.columns:
            raise ValueError(f"Unknown field for {collection}: {field}")
        with self._session_factory() as session:
            rows = session.execute(
                select(model).where(model.__table__.c[field] == value)
            ).scalars().all()
            return [_row_to_dict(model, row) for row in rows]
