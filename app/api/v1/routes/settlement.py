from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.schemas.balances import GroupBalanceOut
from app.schemas.settlements import SettlementCreate, SettlementOut, SettlementsOverview
from app.services.settlement_service import (
    settlements_overview,
    get_group_balances,
    add_settlement,
    undo_settlement,
)

router = APIRouter()

@router.get("/", response_model=SettlementsOverview)
async def get_settlements(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await settlements_overview(db, user.id)

@router.get("/groups/{group_id}/balances", response_model=GroupBalanceOut)
async def group_balances(group_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await get_group_balances(db, group_id, user.id)

@router.post("/", response_model=SettlementOut, status_code=201)
async def record_settlement(
    data: SettlementCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await add_settlement(db, user.id, data)

@router.delete("/{settlement_id}")
async def undo(settlement_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await undo_settlement(db, settlement_id, user.id)
