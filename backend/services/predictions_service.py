"""
Prediction Ledger & Submission

- create_prediction: inserts the prediction and increments the author's
  stats.totalPredictions inside one transaction (both or neither)
- subscribe_to_all_predictions: newest-first live ledger, each snapshot
  joined with author display fields before it is published
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from config import PREDICTION_STATUS_ACTIVE, UNKNOWN_ANALYST
from core.errors import StoreLookupError, StoreWriteError, ValidationError
from core.live_query import ErrorCallback, LiveQuery, Subscription
from db.database import Database
from db.schemas.predictions import PredictionCreate
from services.analysts_service import AnalystsService
from utils.mongo_helpers import with_document_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

LEDGER_SORT = [("createdAt", DESCENDING)]


def denormalize(doc: Dict[str, Any], analyst: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Prediction document joined with its author's display fields"""
    entry = with_document_id(doc)
    analyst = analyst or {}
    stats = analyst.get("stats") or {}
    entry["analyst"] = analyst.get("name") or UNKNOWN_ANALYST
    entry["analystSpecialty"] = analyst.get("specialty") or ""
    entry["analystRating"] = stats.get("rating") or 0
    if not entry.get("createdAt"):
        entry["createdAt"] = now_utc()
    return entry


class PredictionsService:
    """Reads and writes over the `predictions` collection"""

    def __init__(self, database: Database, analysts: Optional[AnalystsService] = None):
        self.database = database
        self.analysts = analysts or AnalystsService(database)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def create_prediction(self, data: Union[PredictionCreate, Dict[str, Any]]) -> str:
        """
        Persist a validated prediction and bump its author's counter.

        Returns:
            The new prediction id

        Raises:
            ValidationError: payload is not a valid submission
            StoreWriteError: the transaction was rejected; nothing was applied
        """
        if not isinstance(data, PredictionCreate):
            try:
                data = PredictionCreate(**data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid prediction: {e.errors()[0].get('msg')}") from e

        prediction_id = ObjectId()
        doc = {
            "_id": prediction_id,
            **data.model_dump(),
            "createdAt": now_utc(),
            "status": PREDICTION_STATUS_ACTIVE,
            "views": 0,
            "likes": 0,
        }

        def write(session) -> None:
            self.database.predictions.insert_one(doc, session=session)
            result = self.database.users.update_one(
                {"uid": data.userId},
                {"$inc": {"stats.totalPredictions": 1}},
                session=session,
            )
            if result.matched_count == 0:
                raise StoreWriteError(f"No profile for author {data.userId}")

        try:
            # one attempt only; transient transaction errors are not retried
            with self.database.start_session() as session:
                with session.start_transaction():
                    write(session)
        except StoreWriteError as e:
            logger.error(f"Error creating prediction: {e}")
            raise
        except PyMongoError as e:
            logger.error(f"Error creating prediction: {e}")
            raise StoreWriteError("Prediction could not be saved") from e

        logger.info(f"Prediction {prediction_id} created by {data.userId} ({data.stock})")
        return str(prediction_id)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def join_analysts(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Resolve every distinct author once, then denormalize the batch.

        A failed lookup only degrades the predictions of that author.
        """
        authors: Dict[str, Optional[Dict[str, Any]]] = {}
        for user_id in dict.fromkeys(doc.get("userId") for doc in docs):
            if not user_id:
                continue
            try:
                authors[user_id] = self.analysts.get_analyst_profile(user_id)
            except StoreLookupError as e:
                logger.warning(f"Error fetching analyst data: {e}")
                authors[user_id] = None

        return [denormalize(doc, authors.get(doc.get("userId"))) for doc in docs]

    def ledger_query(self) -> LiveQuery:
        return LiveQuery(
            self.database.predictions,
            sort=LEDGER_SORT,
            transform=self.join_analysts,
        )

    def subscribe_to_all_predictions(
        self,
        callback: Callable[[List[Dict[str, Any]]], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Publish the full denormalized ledger now and on every change.

        The caller owns the returned Subscription.
        """
        return self.ledger_query().subscribe(callback, on_error=on_error)

    def list_predictions(self) -> List[Dict[str, Any]]:
        """One-shot read of the denormalized ledger"""
        try:
            return self.ledger_query().fetch()
        except PyMongoError as e:
            logger.error(f"Error fetching predictions: {e}")
            raise StoreLookupError("Could not load predictions") from e
