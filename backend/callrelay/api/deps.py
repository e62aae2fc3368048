from typing import AsyncGenerator
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from callrelay.models import database
from callrelay.services.auth_service import identity_from_token
from callrelay.services.signaling import SignalingService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database session.
    """
    async with database.AsyncSessionLocal() as db:
        yield db


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """Identity (token subject) of the calling account."""
    token = credentials.credentials if credentials else None
    identity = identity_from_token(token)
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_signaling(request: Request) -> SignalingService:
    return request.app.state.signaling
