import logging

from pymongo import MongoClient

from config import DATABASE_NAME, MONGO_URI

logger = logging.getLogger(__name__)

# MongoClient connects lazily on first operation
client = MongoClient(MONGO_URI, tz_aware=True)
db = client[DATABASE_NAME]


def ensure_indexes() -> None:
    """Create core indexes for collections used by the backend."""
    from db.indexes import apply_all_indexes

    apply_all_indexes(db)


def ping() -> bool:
    """Return True when the database answers a ping."""
    result = db.command("ping")
    return result.get("ok") == 1
