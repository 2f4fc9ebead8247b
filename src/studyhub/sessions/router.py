"""Study session endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.auth.dependencies import get_current_user
from studyhub.database import get_session
from studyhub.db.models import User
from studyhub.redis_client import get_redis_or_none
from studyhub.sessions.schemas import SessionCompleteResponse
from studyhub.sessions.service import complete_session

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("/{session_id}/complete", response_model=SessionCompleteResponse)
async def complete_session_endpoint(
    session_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SessionCompleteResponse:
    """End a session (host only) and credit participants' study time."""
    result = await complete_session(db, get_redis_or_none(), session_id, user.id)
    return SessionCompleteResponse.model_validate(result)
