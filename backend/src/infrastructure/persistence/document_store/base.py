"""
Shared document store behaviour
Write resolution, filter matching, JSON codec and listener fan-out
used by every backend
"""
import copy
import inspect
import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from application.repositories.document_store import (
    SERVER_TIMESTAMP,
    DELETE_FIELD,
    ArrayUnion,
    ArrayRemove,
    CommitEvent,
    CommitListener,
    WriteOp,
)
from core.exceptions import DuplicateResourceException, ResourceNotFoundException

_MISSING = object()


def _resolve_value(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_value(v, now) for k, v in value.items() if v is not DELETE_FIELD}
    if isinstance(value, (list, tuple)):
        return [_resolve_value(v, now) for v in value]
    return copy.deepcopy(value)


def _apply_fields(base: Dict[str, Any], data: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    for name, value in data.items():
        if value is DELETE_FIELD:
            base.pop(name, None)
        elif isinstance(value, ArrayUnion):
            current = list(base[name]) if isinstance(base.get(name), list) else []
            for item in value.values:
                if item not in current:
                    current.append(copy.deepcopy(item))
            base[name] = current
        elif isinstance(value, ArrayRemove):
            current = base.get(name) if isinstance(base.get(name), list) else []
            base[name] = [item for item in current if item not in value.values]
        else:
            base[name] = _resolve_value(value, now)
    return base


def resolve_write(existing: Optional[Dict[str, Any]], op: WriteOp, now: datetime) -> Optional[Dict[str, Any]]:
    """
    Document contents after applying op to existing.
    None means the document does not exist afterwards.
    """
    path = f"{op.collection}/{op.doc_id}"

    if op.kind == "delete":
        return None

    if op.kind == "create":
        if existing is not None:
            raise DuplicateResourceException("Document", "path", path)
        return _apply_fields({}, op.data or {}, now)

    if op.kind == "set":
        base = copy.deepcopy(existing) if (op.merge and existing is not None) else {}
        return _apply_fields(base, op.data or {}, now)

    if op.kind == "update":
        if existing is None:
            raise ResourceNotFoundException("Document", path)
        return _apply_fields(copy.deepcopy(existing), op.data or {}, now)

    raise ValueError(f"Unknown write kind: {op.kind}")


def matches(data: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Equality on every filter field; a missing field never matches"""
    if not filters:
        return True
    return all(data.get(name, _MISSING) == value for name, value in filters.items())


def _encode_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    if isinstance(value, date):
        return {"__date__": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_hook(obj: Dict[str, Any]) -> Any:
    if len(obj) == 1:
        if "__datetime__" in obj:
            return datetime.fromisoformat(obj["__datetime__"])
        if "__date__" in obj:
            return date.fromisoformat(obj["__date__"])
    return obj


def encode_document(data: Any) -> str:
    """JSON text with datetimes tagged so they survive a round trip"""
    return json.dumps(data, default=_encode_default)


def decode_document(text: str) -> Any:
    return json.loads(text, object_hook=_decode_hook)


class ListenerRegistry:
    """Commit listeners; a failing listener never fails the writer"""

    def __init__(self):
        self._listeners: List[CommitListener] = []

    def add_listener(self, listener: CommitListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: CommitListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self, event: CommitEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Commit listener failed for revision {event.revision}: {e}")
