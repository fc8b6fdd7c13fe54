# ============================================================================
# Statistics Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_user_id
from app.services.analytics.study_statistics import StudyStatisticsService

router = APIRouter(prefix="/statistics", tags=["statistics"])

@router.get("")
async def get_statistics(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Practice totals, streak, this week's progress and ledger counts"""
    return await StudyStatisticsService(db).get_statistics(user_id)
