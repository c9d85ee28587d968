"""
Prediction Routes
Ledger reads and prediction submission
"""
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from config import DEFAULT_CONFIDENCE, DEFAULT_TIMEFRAME
from middleware.auth import get_current_user
from routes.dependencies import get_predictions_service
from services.forms import PredictionForm
from services.identity_provider import Principal
from services.predictions_service import PredictionsService
from utils.mongo_helpers import sanitize_mongo_list

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


class SubmitPredictionRequest(BaseModel):
    """Raw form input; validated by PredictionForm, not here"""
    stock: Optional[str] = ""
    targetPrice: Optional[Union[str, float]] = ""
    timeframe: str = DEFAULT_TIMEFRAME
    reasoning: Optional[str] = ""
    confidence: str = DEFAULT_CONFIDENCE


@router.get("")
def get_predictions(
    user: Principal = Depends(get_current_user),
    predictions: PredictionsService = Depends(get_predictions_service),
):
    """All predictions, newest first, with analyst display fields"""
    items = predictions.list_predictions()
    return {"items": sanitize_mongo_list(items), "count": len(items)}


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_prediction(
    body: SubmitPredictionRequest,
    user: Principal = Depends(get_current_user),
    predictions: PredictionsService = Depends(get_predictions_service),
):
    form = PredictionForm()
    for name, value in body.model_dump().items():
        form.update(name, value)

    # reject before any write: 400 for input, 503 for store failures
    form.validate()
    result = form.submit(predictions, user.uid)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.message)

    return {"status": "ok", "prediction_id": result.prediction_id, "message": result.message}
