"""
Analyst Directory Routes
One-shot reads of the ranked directory; live updates go over /ws/shell
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from config import TOP_ANALYSTS_LIMIT
from middleware.auth import get_current_user
from routes.dependencies import get_analysts_service
from services.analysts_service import AnalystsService
from services.identity_provider import Principal
from utils.mongo_helpers import sanitize_mongo_doc, sanitize_mongo_list

router = APIRouter(prefix="/api/analysts", tags=["analysts"])


@router.get("/top")
def get_top_analysts(
    limit: int = Query(TOP_ANALYSTS_LIMIT, ge=1, le=100),
    user: Principal = Depends(get_current_user),
    analysts: AnalystsService = Depends(get_analysts_service),
):
    """Analysts with at least one prediction, best accuracy first"""
    items = analysts.list_top_analysts(limit)
    return {"items": sanitize_mongo_list(items), "count": len(items)}


@router.get("/{uid}")
def get_analyst(
    uid: str,
    user: Principal = Depends(get_current_user),
    analysts: AnalystsService = Depends(get_analysts_service),
):
    profile = analysts.get_analyst_profile(uid)
    if profile is None:
        raise HTTPException(status_code=404, detail="Analyst not found")
    return sanitize_mongo_doc(profile)
