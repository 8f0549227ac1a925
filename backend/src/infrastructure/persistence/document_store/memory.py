"""
In-Memory Document Store
Single-process backend for local runs and tests
"""
import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

from application.repositories.document_store import (
    CommitEvent,
    DocumentKey,
    DocumentSnapshot,
    IDocumentStore,
    WriteOp,
)
from .base import ListenerRegistry, matches, resolve_write


class InMemoryDocumentStore(ListenerRegistry, IDocumentStore):
    """
    Dict-backed store.

    Every call yields to the event loop before touching data, so
    concurrent callers interleave the same way they would against a
    remote store. A commit is staged and applied without yielding, which
    makes it atomic.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        super().__init__()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._revision = 0
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def revision(self) -> int:
        return self._revision

    def _read(self, key: DocumentKey) -> Optional[Dict[str, Any]]:
        collection, doc_id = key
        return self._collections.get(collection, {}).get(doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        await asyncio.sleep(0)
        data = self._read((collection, doc_id))
        if data is None:
            return None
        return DocumentSnapshot(collection, doc_id, copy.deepcopy(data))

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[DocumentSnapshot]:
        await asyncio.sleep(0)
        return [
            DocumentSnapshot(collection, doc_id, copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
            if matches(data, filters)
        ]

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        await asyncio.sleep(0)
        now = self._clock()

        staged: Dict[DocumentKey, Optional[Dict[str, Any]]] = {}
        for op in ops:
            existing = staged[op.key] if op.key in staged else self._read(op.key)
            staged[op.key] = resolve_write(existing, op, now)

        for (collection, doc_id), data in staged.items():
            documents = self._collections.setdefault(collection, {})
            if data is None:
                documents.pop(doc_id, None)
            else:
                documents[doc_id] = data

        self._revision += 1
        logger.debug(f"Committed revision {self._revision} ({len(ops)} writes)")
        await self._notify(CommitEvent(self._revision, frozenset(staged)))
