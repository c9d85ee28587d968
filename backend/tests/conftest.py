"""
Shared fixtures: an in-memory stand-in for the document store.

FakeCollection implements the slice of the pymongo Collection API the
services use (find/sort/limit, find_one, insert_one, update_one with
$inc/$set on dotted paths, delete_one, watch). Writes made inside a
FakeSession transaction are applied only when the transaction block
exits cleanly.
"""
import copy
import queue
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError


def get_path(doc: Dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


def matches(doc: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    for key, cond in (filter or {}).items():
        value = get_path(doc, key)
        if isinstance(cond, dict):
            if "$gte" in cond and (value is None or value < cond["$gte"]):
                return False
            if "$in" in cond and value not in cond["$in"]:
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    def sort(self, keys):
        # apply keys last-to-first; list.sort is stable
        for key, direction in reversed(list(keys)):
            self.docs.sort(key=lambda d: get_path(d, key), reverse=direction < 0)
        return self

    def limit(self, n: int):
        if n:
            self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


class FakeChangeStream:
    def __init__(self, collection: "FakeCollection"):
        self.collection = collection
        self.events: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.alive = True

    def try_next(self):
        try:
            return self.events.get(timeout=0.02)
        except queue.Empty:
            return None

    def close(self):
        self.alive = False
        if self in self.collection.streams:
            self.collection.streams.remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.streams: List[FakeChangeStream] = []
        self.fail_on: set = set()

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise PyMongoError(f"{self.name}.{op} unavailable")

    def _notify(self, operation: str) -> None:
        for stream in list(self.streams):
            stream.events.put({"operationType": operation})

    # reads

    def find(self, filter=None):
        self._check("find")
        return FakeCursor([copy.deepcopy(d) for d in self.docs if matches(d, filter)])

    def find_one(self, filter=None):
        self._check("find_one")
        for doc in self.docs:
            if matches(doc, filter):
                return copy.deepcopy(doc)
        return None

    def watch(self, **kwargs):
        self._check("watch")
        stream = FakeChangeStream(self)
        self.streams.append(stream)
        return stream

    # writes

    def insert_one(self, doc, session=None):
        self._check("insert_one")
        doc.setdefault("_id", ObjectId())
        stored = copy.deepcopy(doc)

        def apply():
            self.docs.append(stored)
            self._notify("insert")

        self._run(apply, session)
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, filter, update, session=None):
        self._check("update_one")
        target = next((d for d in self.docs if matches(d, filter)), None)

        def apply():
            if target is None:
                return
            for path, amount in update.get("$inc", {}).items():
                set_path(target, path, (get_path(target, path) or 0) + amount)
            for path, value in update.get("$set", {}).items():
                set_path(target, path, value)
            self._notify("update")

        self._run(apply, session)
        matched = 1 if target is not None else 0
        return SimpleNamespace(matched_count=matched, modified_count=matched)

    def delete_one(self, filter):
        self._check("delete_one")
        for doc in self.docs:
            if matches(doc, filter):
                self.docs.remove(doc)
                self._notify("delete")
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    @staticmethod
    def _run(apply, session):
        if session is None:
            apply()
        else:
            session.pending.append(apply)


class FakeTransaction:
    """start_transaction() context: commit on clean exit, abort on error"""

    def __init__(self, session: "FakeSession"):
        self.session = session

    def __enter__(self):
        self.session.pending = []
        self.session.started += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            for apply in self.session.pending:
                apply()
            self.session.committed = True
        self.session.pending = []
        return False


class FakeSession:
    def __init__(self):
        self.pending = []
        self.committed = False
        self.started = 0

    def start_transaction(self):
        return FakeTransaction(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeDatabase:
    """Drop-in for db.database.Database"""

    def __init__(self):
        self.users = FakeCollection("users")
        self.predictions = FakeCollection("predictions")
        self.identities = FakeCollection("identities")
        self.sessions = FakeCollection("sessions")
        self.transactions: List[FakeSession] = []

    def start_session(self):
        session = FakeSession()
        self.transactions.append(session)
        return session

    def ping(self) -> bool:
        return True


@pytest.fixture
def fake_db():
    return FakeDatabase()


def make_profile(uid: str, name: str, accuracy: float = 0, total: int = 0, **extra) -> Dict[str, Any]:
    profile = {
        "uid": uid,
        "name": name,
        "email": f"{uid}@example.com",
        "specialty": extra.pop("specialty", ""),
        "stats": {
            "totalPredictions": total,
            "correctPredictions": 0,
            "accuracy": accuracy,
            "avgReturn": 0,
            "rating": extra.pop("rating", 0),
            "followers": 0,
            "following": 0,
        },
    }
    profile.update(extra)
    return profile


@pytest.fixture
def profile_factory():
    return make_profile
