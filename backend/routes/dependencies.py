"""
Service dependencies shared by the routers
"""
from fastapi import Depends

from db.database import Database, get_database
from middleware.auth import get_identity_provider
from services.analysts_service import AnalystsService
from services.identity_provider import IdentityProvider
from services.predictions_service import PredictionsService
from services.session_service import SessionContext


def get_analysts_service(database: Database = Depends(get_database)) -> AnalystsService:
    return AnalystsService(database)


def get_predictions_service(
    database: Database = Depends(get_database),
    analysts: AnalystsService = Depends(get_analysts_service),
) -> PredictionsService:
    return PredictionsService(database, analysts)


def get_session_context(
    provider: IdentityProvider = Depends(get_identity_provider),
    analysts: AnalystsService = Depends(get_analysts_service),
) -> SessionContext:
    """Fresh session context scoped to one request"""
    return SessionContext(provider, analysts)
