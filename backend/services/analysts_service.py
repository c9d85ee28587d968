"""
Analyst Directory
Ranked view over user profiles: analysts with at least one prediction,
best accuracy first, ties broken by prediction count.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from config import MIN_PREDICTIONS_FOR_DIRECTORY, TOP_ANALYSTS_LIMIT
from core.errors import StoreLookupError, ValidationError
from core.live_query import ErrorCallback, LiveQuery, Subscription
from db.database import Database
from utils.mongo_helpers import with_document_id

logger = logging.getLogger(__name__)

TOP_ANALYSTS_FILTER = {"stats.totalPredictions": {"$gte": MIN_PREDICTIONS_FOR_DIRECTORY}}
TOP_ANALYSTS_SORT = [
    ("stats.accuracy", DESCENDING),
    ("stats.totalPredictions", DESCENDING),
]


def to_analyst(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Profile document as published to consumers; `id` is the identity uid"""
    analyst = with_document_id(doc)
    if analyst.get("uid"):
        analyst["id"] = analyst["uid"]
    return analyst


def _check_limit(limit: int) -> int:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise ValidationError("limit must be a positive integer")
    return limit


class AnalystsService:
    """Directory queries over the `users` collection"""

    def __init__(self, database: Database):
        self.database = database

    def top_analysts_query(self, limit: int = TOP_ANALYSTS_LIMIT) -> LiveQuery:
        return LiveQuery(
            self.database.users,
            filter=TOP_ANALYSTS_FILTER,
            sort=TOP_ANALYSTS_SORT,
            limit=_check_limit(limit),
            transform=lambda docs: [to_analyst(doc) for doc in docs],
        )

    def subscribe_to_top_analysts(
        self,
        callback: Callable[[List[Dict[str, Any]]], None],
        limit: int = TOP_ANALYSTS_LIMIT,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Publish the ranked directory to `callback` now and on every change.

        At most `limit` analysts are published. The caller owns the returned
        Subscription and must unsubscribe when the view is torn down.
        """
        return self.top_analysts_query(limit).subscribe(callback, on_error=on_error)

    def list_top_analysts(self, limit: int = TOP_ANALYSTS_LIMIT) -> List[Dict[str, Any]]:
        """One-shot read of the ranked directory"""
        query = self.top_analysts_query(limit)
        try:
            return query.fetch()
        except PyMongoError as e:
            logger.error(f"Error fetching top analysts: {e}")
            raise StoreLookupError("Could not load analysts") from e

    def get_analyst_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one profile by identity uid; None when it does not exist"""
        try:
            doc = self.database.users.find_one({"uid": user_id})
        except PyMongoError as e:
            logger.error(f"Error fetching analyst profile {user_id}: {e}")
            raise StoreLookupError(f"Could not load analyst {user_id}") from e

        if doc is None:
            return None
        return to_analyst(doc)
