"""
Authentication Middleware
Centralized auth dependency for FastAPI routes
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from core.errors import AuthenticationError
from db.database import Database, get_database
from services.identity_provider import IdentityProvider, Principal


def get_identity_provider(database: Database = Depends(get_database)) -> IdentityProvider:
    return IdentityProvider(database)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the session token out of an Authorization header.

    Token format: "Bearer <session token>"
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header"
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format"
        )

    return parts[1]


def get_current_user(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Extract and validate the principal from the Authorization header.

    Raises:
        HTTPException: 401 if token is missing or invalid
    """
    token = extract_bearer_token(authorization)
    try:
        return provider.resolve(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message
        )
