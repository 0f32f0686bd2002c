from typing import Literal
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.expense import ExpenseOut, GroupExpenseCreate, PersonalExpenseCreate
from app.services.expense_services import (
    create_personal_expense,
    create_group_expense,
    get_expenses,
    get_group_expenses,
    delete_expense,
)
from app.core.dependencies import get_current_user

router = APIRouter()

@router.get("/", response_model=list[ExpenseOut])
async def my_expenses(
    type: Literal["personal", "group"] | None = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return await get_expenses(db, current_user.id, expense_type=type)

@router.post("/", response_model=ExpenseOut, status_code=201)
async def add_personal_expense(
    data: PersonalExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await create_personal_expense(db, data, current_user.id)

@router.post("/groups/{group_id}", response_model=ExpenseOut, status_code=201)
async def add_group_expense(
    group_id: int,
    data: GroupExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await create_group_expense(db, data, group_id, current_user.id)

@router.get("/groups/{group_id}", response_model=list[ExpenseOut])
async def group_expenses(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await get_group_expenses(db, group_id, current_user.id)

@router.delete("/{expense_id}")
async def del_expense(expense_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await delete_expense(db, user_id=current_user.id, expense_id=expense_id)
