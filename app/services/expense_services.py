import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_
from sqlalchemy.orm import selectinload
from app.core.dependencies import check_group_membership, is_group_member
from app.core.splits import SplitError, SplitType, build_splits
from app.core.utils import qround
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.schemas.expense import GroupExpenseCreate, PersonalExpenseCreate
from app.services.group_services import list_group_member_ids
from fastapi import HTTPException

logger = logging.getLogger(__name__)

async def _load_expense(db: AsyncSession, expense_id: int) -> Expense | None:
    q = (
        select(Expense)
        .options(selectinload(Expense.splits))
        .where(Expense.id == expense_id)
        .execution_options(populate_existing=True)
    )
    res = await db.execute(q)
    return res.scalar_one_or_none()

async def _save_expense(db: AsyncSession, expense: Expense, splits) -> Expense:
    db.add(expense)
    await db.flush()  # generates expense.id

    db.add_all([
        ExpenseSplit(
            expense_id=expense.id,
            user_id=s.user_id,
            amount_owed=s.amount_owed
        )
        for s in splits
    ])

    await db.commit()
    return await _load_expense(db, expense.id)

async def create_personal_expense(db: AsyncSession, data: PersonalExpenseCreate, user_id: int):
    amount = qround(data.amount)

    expense = Expense(
        description=data.description,
        amount=amount,
        category=data.category,
        date=data.date,
        split_type=SplitType.EQUAL.value,
        group_id=None,
        paid_by=user_id,
        created_by=user_id,
    )

    splits = build_splits(SplitType.EQUAL, amount, [user_id])
    expense = await _save_expense(db, expense, splits)

    logger.info("personal expense recorded id=%s user=%s", expense.id, user_id)
    return expense

async def create_group_expense(db: AsyncSession, data: GroupExpenseCreate, group_id: int, user_id: int):
    await check_group_membership(db, group_id, user_id)

    if not await is_group_member(db, group_id, data.paid_by):
        raise HTTPException(400, "Payer is not a member of the group")

    member_ids = await list_group_member_ids(db, group_id)
    amount = qround(data.amount)

    try:
        if data.splits:
            split_user_ids = [s.user_id for s in data.splits]

            if len(split_user_ids) != len(set(split_user_ids)):
                raise HTTPException(400, "Duplicate users found in splits")

            if set(split_user_ids) != set(member_ids):
                raise HTTPException(400, "Splits must include all group members")

            if data.split_type == SplitType.PERCENTAGE:
                if any(s.percentage is None for s in data.splits):
                    raise HTTPException(400, "Every split needs a percentage")
                shares = [(s.user_id, s.percentage) for s in data.splits]
            elif data.split_type == SplitType.UNEQUAL:
                if any(s.amount_owed is None for s in data.splits):
                    raise HTTPException(400, "Every split needs an amount")
                shares = [(s.user_id, s.amount_owed) for s in data.splits]
            else:
                shares = [(uid, None) for uid in split_user_ids]

            splits = build_splits(data.split_type, amount, shares=shares)
        else:
            # no custom splits -> everyone in the group pays the same
            splits = build_splits(SplitType.EQUAL, amount, member_ids)
    except SplitError as e:
        raise HTTPException(400, str(e))

    expense = Expense(
        description=data.description,
        amount=amount,
        category=data.category,
        date=data.date,
        split_type=data.split_type.value,
        group_id=group_id,
        paid_by=data.paid_by,
        created_by=user_id,
    )

    expense = await _save_expense(db, expense, splits)

    logger.info("group expense recorded id=%s group=%s amount=%s", expense.id, group_id, amount)
    return expense

async def get_expenses(db: AsyncSession, user_id: int, expense_type: str | None = None):
    q = (
        select(Expense)
        .options(selectinload(Expense.splits))
        .where(
            or_(
                Expense.paid_by == user_id,
                Expense.splits.any(ExpenseSplit.user_id == user_id),
            )
        )
        .order_by(Expense.created_at.desc(), Expense.id.desc())
    )

    if expense_type == "personal":
        q = q.where(Expense.group_id.is_(None))
    elif expense_type == "group":
        q = q.where(Expense.group_id.is_not(None))

    res = await db.execute(q)
    return res.scalars().all()

async def get_group_expenses(db: AsyncSession, group_id: int, user_id: int):
    await check_group_membership(db, group_id, user_id)

    q = (
        select(Expense)
        .options(selectinload(Expense.splits))
        .where(Expense.group_id == group_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
    )

    res = await db.execute(q)
    return res.scalars().all()

async def delete_expense(db: AsyncSession, user_id: int, expense_id: int):
    expense = await db.scalar(select(Expense).where(Expense.id == expense_id))

    if not expense:
        raise HTTPException(404, "Expense not found")

    if user_id not in (expense.paid_by, expense.created_by):
        raise HTTPException(403, "You cannot delete this expense")

    await db.execute(delete(ExpenseSplit).where(ExpenseSplit.expense_id == expense_id))
    await db.execute(delete(Expense).where(Expense.id == expense_id))
    await db.commit()

    logger.info("expense deleted id=%s by user=%s", expense_id, user_id)
    return {"status": "deleted"}
