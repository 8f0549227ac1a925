"""
Document Store Contract
Collections of JSON-like documents with equality queries, atomic
batches, write transforms and commit notifications
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union
from uuid import uuid4


DocumentKey = Tuple[str, str]


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Replaced by the store's clock when the write is applied
SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")

# Removes the field in update / merge writes
DELETE_FIELD = _Sentinel("DELETE_FIELD")


class ArrayUnion:
    """Append each value not already present in the array field"""

    def __init__(self, *values: Any):
        self.values = tuple(values)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ArrayUnion) and self.values == other.values

    def __repr__(self) -> str:
        return f"ArrayUnion{self.values}"


class ArrayRemove:
    """Remove every occurrence of each value from the array field"""

    def __init__(self, *values: Any):
        self.values = tuple(values)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ArrayRemove) and self.values == other.values

    def __repr__(self) -> str:
        return f"ArrayRemove{self.values}"


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document read from the store"""
    collection: str
    id: str
    data: Dict[str, Any]

    @property
    def key(self) -> DocumentKey:
        return (self.collection, self.id)

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.data}


@dataclass(frozen=True)
class WriteOp:
    """One staged write; kind is create, set, update or delete"""
    kind: str
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False

    @property
    def key(self) -> DocumentKey:
        return (self.collection, self.doc_id)


@dataclass(frozen=True)
class CommitEvent:
    """Published to listeners after every successful commit"""
    revision: int
    keys: FrozenSet[DocumentKey] = field(default_factory=frozenset)

    @property
    def collections(self) -> FrozenSet[str]:
        return frozenset(collection for collection, _ in self.keys)


CommitListener = Callable[[CommitEvent], Union[None, Awaitable[None]]]


def collection_path(*parts: str) -> str:
    """Join path segments, e.g. collection_path("users", uid, "applications")"""
    return "/".join(parts)


class WriteBatch:
    """
    Writes committed together: all of them apply or none do.

    Usage:
        batch = store.batch()
        batch.delete("applications", app_id)
        batch.update("users", user_id, {"wishlist": ArrayRemove(project_id)})
        await batch.commit()
    """

    def __init__(self, store: "IDocumentStore"):
        self._store = store
        self._ops: List[WriteOp] = []
        self._committed = False

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("create", collection, doc_id, dict(data)))
        return self

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._ops.append(WriteOp("set", collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("update", collection, doc_id, dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(WriteOp("delete", collection, doc_id))
        return self

    @property
    def ops(self) -> Sequence[WriteOp]:
        return tuple(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        if self._ops:
            await self._store.commit(self._ops)


class IDocumentStore(ABC):
    """Document store interface"""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        """Get a document, or None when absent"""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[DocumentSnapshot]:
        """Documents whose top-level fields equal every filter value; unordered"""
        pass

    @abstractmethod
    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply writes atomically and notify listeners"""
        pass

    @property
    @abstractmethod
    def revision(self) -> int:
        """Number of the last committed batch"""
        pass

    @abstractmethod
    def add_listener(self, listener: CommitListener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, listener: CommitListener) -> None:
        pass

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def new_id(self) -> str:
        """Opaque random document id"""
        return uuid4().hex

    async def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Write a new document; DuplicateResourceException when the id is taken"""
        await self.commit([WriteOp("create", collection, doc_id, dict(data))])

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self.commit([WriteOp("set", collection, doc_id, dict(data), merge)])

    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Partial update; ResourceNotFoundException when the document is absent"""
        await self.commit([WriteOp("update", collection, doc_id, dict(data))])

    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document; absent documents are ignored"""
        await self.commit([WriteOp("delete", collection, doc_id)])
