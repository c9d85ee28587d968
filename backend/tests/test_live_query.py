"""
Live Query Tests

Tests verify:
1. Query shape (filter, multi-key sort, limit) is passed to the store
2. snapshots() yields the initial result set, then one per change
3. unsubscribe() stops callbacks even when data keeps changing
4. Transport failures, a closed change stream and subscriber errors
   surface once through on_error
"""
import queue
import threading
from unittest.mock import MagicMock

import pytest
from pymongo.errors import PyMongoError

from core.errors import StoreLookupError
from core.live_query import LiveQuery, Subscription


def wait_for(q: "queue.Queue", timeout: float = 2.0):
    return q.get(timeout=timeout)


class TestFetch:

    def test_fetch_applies_filter_sort_and_limit(self):
        collection = MagicMock()
        cursor = collection.find.return_value
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([{"a": 1}])

        query = LiveQuery(collection, filter={"a": {"$gte": 1}}, sort=[("a", -1), ("b", -1)], limit=5)
        result = query.fetch()

        collection.find.assert_called_once_with({"a": {"$gte": 1}})
        cursor.sort.assert_called_once_with([("a", -1), ("b", -1)])
        cursor.limit.assert_called_once_with(5)
        assert result == [{"a": 1}]

    def test_fetch_without_limit_returns_everything(self, fake_db):
        for i in range(30):
            fake_db.predictions.insert_one({"n": i})

        rows = LiveQuery(fake_db.predictions, sort=[("n", -1)]).fetch()

        assert len(rows) == 30
        assert rows[0]["n"] == 29

    def test_transform_receives_raw_docs(self, fake_db):
        fake_db.predictions.insert_one({"n": 1})
        query = LiveQuery(fake_db.predictions, transform=lambda docs: [d["n"] * 10 for d in docs])

        assert query.fetch() == [10]


class TestSnapshots:

    def test_initial_snapshot_then_one_per_change(self, fake_db):
        stream = LiveQuery(fake_db.predictions).snapshots()

        assert next(stream) == []

        fake_db.predictions.insert_one({"stock": "AAPL"})
        snapshot = next(stream)
        assert [d["stock"] for d in snapshot] == ["AAPL"]

        fake_db.predictions.insert_one({"stock": "MSFT"})
        snapshot = next(stream)
        assert sorted(d["stock"] for d in snapshot) == ["AAPL", "MSFT"]
        stream.close()

    def test_stop_event_ends_stream(self, fake_db):
        stop = threading.Event()
        stream = LiveQuery(fake_db.predictions).snapshots(stop=stop)
        next(stream)

        stop.set()
        with pytest.raises(StopIteration):
            next(stream)

    def test_change_stream_closed_after_stream_ends(self, fake_db):
        stop = threading.Event()
        stream = LiveQuery(fake_db.predictions).snapshots(stop=stop)
        next(stream)
        assert len(fake_db.predictions.streams) == 1

        stop.set()
        list(stream)
        assert fake_db.predictions.streams == []

    def test_closed_change_stream_raises(self, fake_db):
        stream = LiveQuery(fake_db.predictions).snapshots()
        next(stream)

        fake_db.predictions.streams[0].alive = False

        with pytest.raises(StoreLookupError):
            next(stream)


class TestSubscribe:

    def test_callback_gets_full_snapshots(self, fake_db):
        received = queue.Queue()
        subscription = LiveQuery(fake_db.predictions).subscribe(received.put)

        assert wait_for(received) == []
        fake_db.predictions.insert_one({"stock": "AAPL"})
        assert len(wait_for(received)) == 1
        fake_db.predictions.insert_one({"stock": "TSLA"})
        assert len(wait_for(received)) == 2

        subscription.unsubscribe()

    def test_no_callbacks_after_unsubscribe(self, fake_db):
        received = queue.Queue()
        subscription = LiveQuery(fake_db.predictions).subscribe(received.put)
        wait_for(received)

        subscription.unsubscribe()
        subscription.thread.join(timeout=2)
        fake_db.predictions.insert_one({"stock": "AAPL"})

        with pytest.raises(queue.Empty):
            received.get(timeout=0.3)
        assert not subscription.thread.is_alive()

    def test_unsubscribe_is_idempotent(self):
        on_close = MagicMock()
        subscription = Subscription(on_close=on_close)

        subscription.unsubscribe()
        subscription()

        assert subscription.closed
        on_close.assert_called_once()

    def test_context_manager_unsubscribes(self, fake_db):
        received = queue.Queue()

        with LiveQuery(fake_db.predictions).subscribe(received.put) as subscription:
            wait_for(received)

        assert subscription.closed

    def test_transport_failure_reported_once(self):
        collection = MagicMock()
        collection.name = "users"
        collection.watch.side_effect = PyMongoError("connection refused")
        errors = queue.Queue()
        callback = MagicMock()

        subscription = LiveQuery(collection).subscribe(callback, on_error=errors.put)
        error = wait_for(errors)
        subscription.thread.join(timeout=2)

        assert isinstance(error, StoreLookupError)
        assert isinstance(error, LookupError)
        assert errors.empty()
        callback.assert_not_called()

    def test_callback_failure_reported_once(self, fake_db):
        errors = queue.Queue()
        callback = MagicMock(side_effect=ValueError("bad row"))

        subscription = LiveQuery(fake_db.predictions).subscribe(callback, on_error=errors.put)
        error = wait_for(errors)
        subscription.thread.join(timeout=2)

        assert isinstance(error, ValueError)
        assert errors.empty()
        callback.assert_called_once()
        assert not subscription.thread.is_alive()

    def test_transform_failure_reported(self, fake_db):
        def broken(docs):
            raise KeyError("analyst")

        errors = queue.Queue()
        subscription = LiveQuery(fake_db.predictions, transform=broken).subscribe(MagicMock(), on_error=errors.put)

        assert isinstance(wait_for(errors), KeyError)
        subscription.thread.join(timeout=2)

    def test_closed_change_stream_reported(self, fake_db):
        received, errors = queue.Queue(), queue.Queue()
        subscription = LiveQuery(fake_db.predictions).subscribe(received.put, on_error=errors.put)
        wait_for(received)

        fake_db.predictions.streams[0].alive = False
        error = wait_for(errors)
        subscription.thread.join(timeout=2)

        assert isinstance(error, StoreLookupError)
        assert "change stream closed" in error.message
        assert errors.empty()
        assert received.empty()
