"""
Change Feed
Live queries over the document store. Each subscription re-reads its
result after every commit that could affect it and pushes the full
current result to its callback
"""
import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from loguru import logger

from application.repositories.document_store import CommitEvent, IDocumentStore
from core.config import settings

Loader = Callable[[], Awaitable[Any]]
Callback = Callable[[Any], Any]


@dataclass(frozen=True)
class WatchTarget:
    """What a subscription watches: one document, or a collection query"""
    collection: str
    doc_id: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)

    def affected_by(self, event: CommitEvent) -> bool:
        if self.doc_id is not None:
            return (self.collection, self.doc_id) in event.keys
        return self.collection in event.collections

    def __str__(self) -> str:
        if self.doc_id is not None:
            return f"{self.collection}/{self.doc_id}"
        return f"{self.collection}?{self.filters}"


class Subscription:
    """Handle returned to subscribers; call it or unsubscribe() to stop"""

    def __init__(self, feed: "ChangeFeed", target: WatchTarget, load: Loader, callback: Callback):
        self.id = uuid4().hex
        self.target = target
        self.load = load
        self.callback = callback
        self.active = True
        self.last_revision = -1
        self.loading = False
        self.reload_requested = False
        self._feed = feed

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"Subscription({self.id}, {self.target}, active={self.active})"


class ChangeFeed:
    """
    Push-based subscriptions over store commits.

    Usage:
        feed = ChangeFeed(store)
        sub = await feed.subscribe(target, load, callback)
        ...
        sub.unsubscribe()

    Delivery rules:
        - the current result is delivered once on subscribe
        - every commit touching the target triggers a fresh read and delivery
        - a result read at an older store revision than the last delivered
          one is dropped, so a subscriber never goes back in time
        - each subscription has at most one read in flight; commits made
          during a read cause one more read once it finishes
        - there is no ordering between different subscriptions
    """

    def __init__(self, store: IDocumentStore):
        self.store = store
        self._subscriptions: Dict[str, Subscription] = {}
        store.add_listener(self._on_commit)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, target: WatchTarget, load: Loader, callback: Callback) -> Subscription:
        subscription = Subscription(self, target, load, callback)
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"Subscribed {subscription.id} to {target}")
        await self._refresh(subscription)
        return subscription

    async def stream(self, target: WatchTarget, load: Loader) -> AsyncIterator[Any]:
        """
        Async iterator over deliveries, for streaming endpoints.
        When the consumer falls behind, older pending results are dropped
        in favour of newer ones.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=settings.CHANGE_FEED_QUEUE_SIZE)

        def push(result: Any) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(result)

        subscription = await self.subscribe(target, load, push)
        try:
            while subscription.active:
                yield await queue.get()
        finally:
            subscription.unsubscribe()

    def close(self) -> None:
        """Cancel every subscription and detach from the store"""
        for subscription in list(self._subscriptions.values()):
            subscription.unsubscribe()
        self.store.remove_listener(self._on_commit)

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)
        logger.debug(f"Unsubscribed {subscription.id} from {subscription.target}")

    async def _on_commit(self, event: CommitEvent) -> None:
        affected = [s for s in list(self._subscriptions.values()) if s.target.affected_by(event)]
        if affected:
            await asyncio.gather(*(self._refresh(s) for s in affected))

    async def _refresh(self, subscription: Subscription) -> None:
        # One read in flight per subscription; commits landing during a
        # read trigger exactly one more read after it
        if subscription.loading:
            subscription.reload_requested = True
            return

        subscription.loading = True
        try:
            while subscription.active:
                subscription.reload_requested = False
                await self._load_and_deliver(subscription)
                if not subscription.reload_requested:
                    break
        finally:
            subscription.loading = False

    async def _load_and_deliver(self, subscription: Subscription) -> None:
        revision = self.store.revision
        try:
            result = await subscription.load()
        except Exception as e:
            logger.error(f"Subscription {subscription.id} on {subscription.target} failed to read: {e}")
            return

        if not subscription.active or revision <= subscription.last_revision:
            return
        subscription.last_revision = revision

        try:
            outcome = subscription.callback(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Subscription {subscription.id} callback raised: {e}")
