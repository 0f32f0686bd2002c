from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.schemas.dashboard import DashboardStats
from app.services.dashboard_service import get_dashboard_stats

router = APIRouter()

@router.get("/stats", response_model=DashboardStats)
async def stats(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await get_dashboard_stats(db, user.id)
