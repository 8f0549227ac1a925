"""
SQLAlchemy Document Store
Documents persisted as JSON rows; a batch is one database transaction
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from application.repositories.document_store import (
    CommitEvent,
    DocumentKey,
    DocumentSnapshot,
    IDocumentStore,
    WriteOp,
)
from core.database import build_engine, build_session_factory, init_db, close_db
from core.exceptions import as_store_error
from infrastructure.persistence.models.document import DocumentModel
from .base import ListenerRegistry, decode_document, encode_document, matches, resolve_write

_COMMIT_ATTEMPTS = 3


def _field_equals(name: str, value: Any):
    """SQL predicate comparing a top-level JSON field with a scalar"""
    element = DocumentModel.data[name]
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


class SQLAlchemyDocumentStore(ListenerRegistry, IDocumentStore):
    """
    Document store on a single `documents` table.

    Rows touched by a batch are read with SELECT ... FOR UPDATE so that
    array transforms and conditional creates serialize per document; on
    SQLite every transaction holds the database write lock instead. A
    batch that loses an insert race to another transaction is re-run
    against the committed row. Commit notifications are delivered
    in-process only.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        engine: Optional[AsyncEngine] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__()
        self._session_factory = session_factory
        self._engine = engine
        self._revision = 0
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_url(cls, database_url: Optional[str] = None, **kwargs) -> "SQLAlchemyDocumentStore":
        engine = build_engine(
            database_url,
            json_serializer=encode_document,
            json_deserializer=decode_document,
        )
        return cls(build_session_factory(engine), engine=engine, **kwargs)

    async def initialize(self) -> None:
        """Create the documents table when missing"""
        if self._engine is not None:
            await init_db(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await close_db(self._engine)

    @property
    def revision(self) -> int:
        return self._revision

    async def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DocumentModel).where(
                        DocumentModel.collection == collection,
                        DocumentModel.id == doc_id,
                    )
                )
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get {collection}/{doc_id}: {e}")
            raise as_store_error(e, f"get {collection}/{doc_id}")

        if model is None:
            return None
        return DocumentSnapshot(collection, doc_id, dict(model.data or {}))

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[DocumentSnapshot]:
        stmt = select(DocumentModel).where(DocumentModel.collection == collection)
        for name, value in (filters or {}).items():
            predicate = _field_equals(name, value)
            if predicate is not None:
                stmt = stmt.where(predicate)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                models = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query {collection} {filters}: {e}")
            raise as_store_error(e, f"query {collection}")

        # Re-check in Python; JSON extraction differs slightly between dialects
        return [
            DocumentSnapshot(collection, model.id, dict(model.data or {}))
            for model in models
            if matches(model.data or {}, filters)
        ]

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        now = self._clock()

        for attempt in range(1, _COMMIT_ATTEMPTS + 1):
            try:
                keys = await self._commit_once(ops, now)
                break
            except IntegrityError as e:
                # Another transaction inserted one of the rows first; the
                # next attempt reads it, and a conflicting create then fails
                # with DuplicateResourceException from resolve_write
                if attempt == _COMMIT_ATTEMPTS:
                    logger.error(f"Commit of {len(ops)} writes kept conflicting after {attempt} attempts: {e}")
                    raise as_store_error(e, "commit")
                logger.warning(f"Commit of {len(ops)} writes conflicted (attempt {attempt}), retrying: {e}")
            except SQLAlchemyError as e:
                logger.error(f"Commit of {len(ops)} writes failed: {e}")
                raise as_store_error(e, "commit")

        self._revision += 1
        await self._notify(CommitEvent(self._revision, frozenset(keys)))

    async def _commit_once(self, ops: Sequence[WriteOp], now: datetime) -> List[DocumentKey]:
        keys: List[DocumentKey] = []

        async with self._session_factory() as session:
            async with session.begin():
                models: Dict[DocumentKey, Optional[DocumentModel]] = {}
                contents: Dict[DocumentKey, Optional[Dict[str, Any]]] = {}

                for op in ops:
                    if op.key not in models:
                        result = await session.execute(
                            select(DocumentModel)
                            .where(
                                DocumentModel.collection == op.collection,
                                DocumentModel.id == op.doc_id,
                            )
                            .with_for_update()
                        )
                        model = result.scalar_one_or_none()
                        models[op.key] = model
                        contents[op.key] = dict(model.data) if model is not None else None
                        keys.append(op.key)
                    contents[op.key] = resolve_write(contents[op.key], op, now)

                for key in keys:
                    model, data = models[key], contents[key]
                    if data is None:
                        if model is not None:
                            await session.delete(model)
                    elif model is None:
                        session.add(DocumentModel(
                            collection=key[0],
                            id=key[1],
                            data=data,
                            create_time=now,
                            update_time=now,
                        ))
                    else:
                        model.data = data
                        model.update_time = now

        return keys
