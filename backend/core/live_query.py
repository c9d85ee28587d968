"""
Live Query Subscriptions
Standing queries that re-deliver the full matching result set whenever the
underlying collection changes.

A LiveQuery is a lazy, restartable stream of snapshots:
- snapshots() yields the current result set, then a fresh one after every
  change notification from the collection's change stream
- subscribe() drives that stream on a background thread and returns a
  Subscription; unsubscribe() must be called exactly once by the owner

Example:
    query = LiveQuery(db.predictions, sort=[("createdAt", DESCENDING)])
    subscription = query.subscribe(lambda rows: print(len(rows)))
    ...
    subscription.unsubscribe()
"""
import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from pymongo.errors import PyMongoError

from core.errors import StoreLookupError

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]

# How long a change stream blocks waiting for the next event before the
# stop flag is checked again
CHANGE_STREAM_AWAIT_MS = 1000


class Subscription:
    """
    Disposer for a live subscription.

    unsubscribe() is idempotent; once it returns no further callback is
    delivered, even if the underlying data changes afterwards.
    """

    def __init__(self, on_close: Optional[Callable[[], None]] = None):
        self._closed = threading.Event()
        self._lock = threading.RLock()
        self._on_close = on_close
        self.thread: Optional[threading.Thread] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def stop_event(self) -> threading.Event:
        return self._closed

    def deliver(self, callback: Callable[..., None], *args) -> bool:
        """Invoke callback unless the subscription is closed. Returns False once closed."""
        with self._lock:
            if self._closed.is_set():
                return False
            callback(*args)
            return True

    def unsubscribe(self) -> None:
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
        if self._on_close is not None:
            self._on_close()

    __call__ = unsubscribe

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class LiveQuery:
    """Filtered, sorted query over one collection, re-run on every change"""

    def __init__(
        self,
        collection,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
        transform: Optional[Callable[[Snapshot], Snapshot]] = None,
    ):
        self.collection = collection
        self.filter = filter or {}
        self.sort = list(sort or [])
        self.limit = limit
        self.transform = transform

    @property
    def name(self) -> str:
        return getattr(self.collection, "name", "collection")

    def fetch(self) -> Snapshot:
        """Run the query once and return the full ordered result set"""
        cursor = self.collection.find(self.filter)
        if self.sort:
            cursor = cursor.sort(self.sort)
        if self.limit:
            cursor = cursor.limit(self.limit)
        docs = list(cursor)
        if self.transform is not None:
            return self.transform(docs)
        return docs

    def snapshots(self, stop: Optional[threading.Event] = None) -> Iterator[Snapshot]:
        """
        Yield the current result set, then a new one after each change.

        The change stream is opened before the first read so no change made
        between the read and the watch is lost. Infinite until `stop` is set.

        Raises:
            StoreLookupError: the change stream closed on the server side
                (e.g. an invalidate event)
        """
        with self.collection.watch(max_await_time_ms=CHANGE_STREAM_AWAIT_MS) as stream:
            yield self.fetch()
            while stream.alive:
                if stop is not None and stop.is_set():
                    return
                change = stream.try_next()
                if change is None:
                    continue
                if stop is not None and stop.is_set():
                    return
                logger.debug(f"{self.name}: {change.get('operationType')} -> refreshing snapshot")
                yield self.fetch()

        if stop is not None and stop.is_set():
            return
        logger.warning(f"Change stream on {self.name} closed; live query ended")
        raise StoreLookupError(f"Live query on {self.name} ended: change stream closed")

    def subscribe(
        self,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Deliver every snapshot to `callback` from a background thread.

        Any failure ends the subscription and is reported once through
        `on_error`: transport errors and a closed change stream as
        StoreLookupError, errors raised by `transform` or `callback` as-is.
        The subscription is not retried.
        """
        subscription = Subscription()

        def run() -> None:
            try:
                for snapshot in self.snapshots(stop=subscription.stop_event):
                    if not subscription.deliver(callback, snapshot):
                        break
                return
            except PyMongoError as e:
                if subscription.closed:
                    return
                logger.error(f"Live query on {self.name} failed: {e}")
                error = StoreLookupError(f"Live query on {self.name} failed: {e}")
            except StoreLookupError as e:
                error = e
            except Exception as e:
                logger.exception(f"Live query subscriber on {self.name} raised")
                error = e

            if on_error is not None:
                subscription.deliver(on_error, error)

        thread = threading.Thread(target=run, name=f"live-query-{self.name}", daemon=True)
        subscription.thread = thread
        thread.start()
        logger.info(f"Live query subscribed: {self.name} filter={self.filter} sort={self.sort}")
        return subscription
