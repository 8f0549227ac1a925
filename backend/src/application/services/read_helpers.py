"""
Read-boundary helpers shared by services
"""
import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

T = TypeVar("T")

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


async def fetch_skip_absent(
    ids: Sequence[str],
    fetch: Callable[[str], Awaitable[Optional[T]]],
    label: str = "document",
) -> List[T]:
    """
    Resolve ids concurrently, dropping the ones that no longer exist.

    Order of ids is preserved. A missing referent is expected (deleted
    elsewhere) and only logged.
    """
    results = await asyncio.gather(*(fetch(item_id) for item_id in ids))
    found = []
    for item_id, item in zip(ids, results):
        if item is None:
            logger.debug(f"Skipping missing {label} {item_id}")
            continue
        found.append(item)
    return found


def _sort_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return _OLDEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def newest_first(items: Iterable[T], key: Callable[[T], Optional[datetime]]) -> List[T]:
    """Sort by a timestamp, newest first; items without one go last"""
    return sorted(items, key=lambda item: _sort_key(key(item)), reverse=True)
