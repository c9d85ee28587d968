from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, EmailStr

from config import CONFIDENCE_LEVELS, SPECIALTIES, TIMEFRAMES
from middleware.auth import extract_bearer_token
from routes.dependencies import get_session_context
from services.session_service import SessionContext
from utils.mongo_helpers import sanitize_mongo_doc


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    displayName: str
    specialty: Optional[str] = ""


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


router = APIRouter(prefix="/api", tags=["auth"])


def session_response(session: SessionContext) -> dict:
    return {
        "status": "ok",
        "access_token": session.token,
        "token_type": "bearer",
        "user": session.principal.to_dict(),
        "profile": sanitize_mongo_doc(session.profile),
    }


@router.post("/auth/signup", status_code=201)
def signup(payload: SignupRequest, session: SessionContext = Depends(get_session_context)):
    session.signup(payload.email, payload.password, payload.displayName, payload.specialty or "")
    return session_response(session)


@router.post("/auth/login")
def login(payload: LoginRequest, session: SessionContext = Depends(get_session_context)):
    session.login(payload.email, payload.password)
    return session_response(session)


@router.post("/auth/logout")
def logout(
    authorization: Optional[str] = Header(None),
    session: SessionContext = Depends(get_session_context),
):
    session.restore(extract_bearer_token(authorization))
    session.logout()
    return {"status": "ok"}


@router.get("/users/me")
def get_current_user_profile(
    authorization: Optional[str] = Header(None),
    session: SessionContext = Depends(get_session_context),
):
    """
    Verify token and return the signed-in principal with their profile.
    """
    session.restore(extract_bearer_token(authorization))
    return {"user": session.principal.to_dict(), "profile": sanitize_mongo_doc(session.profile)}


@router.get("/meta/options")
def get_form_options():
    """Choices offered by the signup and submission forms"""
    return {
        "specialties": SPECIALTIES,
        "timeframes": TIMEFRAMES,
        "confidence_levels": CONFIDENCE_LEVELS,
    }
