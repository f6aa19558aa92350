"""Caller identity and database session dependencies.

Authentication happens upstream: the gateway verifies the session and
forwards the user id in a trusted header (settings.user_id_header).
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_db


async def get_current_user_id(request: Request) -> str:
    """Return the calling user's id, or 401 if the gateway didn't supply one."""
    user_id = (request.headers.get(settings.user_id_header) or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id


# Type aliases for cleaner endpoint signatures
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
