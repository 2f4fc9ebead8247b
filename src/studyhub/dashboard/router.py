"""Dashboard endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.auth.dependencies import get_current_user
from studyhub.dashboard.schemas import DashboardResponse
from studyhub.dashboard.service import build_dashboard
from studyhub.database import get_session
from studyhub.db.models import User

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DashboardResponse:
    """Groups, upcoming sessions, stats and today's/this week's progress."""
    snapshot = await build_dashboard(db, user.id)
    return DashboardResponse.model_validate(snapshot)
