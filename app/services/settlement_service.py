import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from fastapi import HTTPException
from app.core.balances import (
    BalanceMap,
    ExpenseRecord,
    SettlementRecord,
    SplitRecord,
    compute_debt_summaries,
    compute_group_balances,
    summarize_debts,
)
from app.core.dependencies import check_group_membership, is_group_member
from app.core.utils import money, qround, to_decimal
from app.models.expense import Expense
from app.models.settlement import Settlement
from app.schemas.settlements import SettlementCreate
from app.services.group_services import list_user_groups
from app.services.user_queries import get_user_directory

logger = logging.getLogger(__name__)

async def load_group_history(db: AsyncSession, group_id: int):
    """
    Full expense + settlement history of a group as engine records.
    """
    exp_res = await db.execute(
        select(Expense)
        .options(selectinload(Expense.splits))
        .where(Expense.group_id == group_id)
    )
    expenses = [
        ExpenseRecord(
            amount=to_decimal(e.amount),
            payer_id=e.paid_by,
            group_id=e.group_id,
            splits=tuple(
                SplitRecord(user_id=s.user_id, amount_owed=to_decimal(s.amount_owed))
                for s in e.splits
            ),
        )
        for e in exp_res.scalars().all()
    ]

    st_res = await db.execute(select(Settlement).where(Settlement.group_id == group_id))
    settlements = [
        SettlementRecord(
            amount=to_decimal(s.amount),
            paid_by_user_id=s.paid_by,
            received_by_user_id=s.received_by,
            group_id=s.group_id,
            date=s.date,
        )
        for s in st_res.scalars().all()
    ]

    return expenses, settlements

async def get_group_balance_map(db: AsyncSession, group_id: int) -> BalanceMap:
    expenses, settlements = await load_group_history(db, group_id)
    return compute_group_balances(expenses, settlements)

async def get_group_balances(db: AsyncSession, group_id: int, user_id: int):
    await check_group_membership(db, group_id, user_id)

    balance = await get_group_balance_map(db, group_id)
    directory = await get_user_directory(db, balance.keys())

    return {
        "group_id": group_id,
        "balances": [
            {
                "user_id": uid,
                "name": directory[uid].name if uid in directory else None,
                "balance": money(amount),
            }
            for uid, amount in sorted(balance.items())
        ]
    }

async def get_user_settlements(db: AsyncSession, user_id: int):
    res = await db.execute(
        select(Settlement)
        .where(or_(Settlement.paid_by == user_id, Settlement.received_by == user_id))
        .order_by(Settlement.date.desc(), Settlement.id.desc())
    )
    return res.scalars().all()

async def settlements_overview(db: AsyncSession, user_id: int):
    """
    The requester's settlements plus who-owes-whom across all their groups.
    Recomputed from the full history on every call.
    """
    settlements = await get_user_settlements(db, user_id)

    summaries = []
    for group_id, group_name in await list_user_groups(db, user_id):
        balance = await get_group_balance_map(db, group_id)
        directory = await get_user_directory(db, balance.keys())

        summaries.extend(
            compute_debt_summaries(balance, user_id, group_id, group_name, directory)
        )

    totals = summarize_debts(summaries)

    return {
        "settlements": settlements,
        "debt_summaries": [
            {
                "user_id": d.user_id,
                "user_name": d.user_name,
                "user_email": d.user_email,
                "group_id": d.group_id,
                "group_name": d.group_name,
                "total_owed": money(d.total_owed),
                "total_owing": money(d.total_owing),
                "net_amount": money(d.net_amount),
            }
            for d in summaries
        ],
        "total_owed_to_me": money(totals.total_owed_to_me),
        "total_i_owe_people": money(totals.total_i_owe_people),
        "net_balance": money(totals.net_balance),
    }

async def add_settlement(db: AsyncSession, user_id: int, data: SettlementCreate):
    await check_group_membership(db, data.group_id, user_id)

    for party in (data.paid_by, data.received_by):
        if not await is_group_member(db, data.group_id, party):
            raise HTTPException(400, "All users must be members of the group")

    settlement = Settlement(
        amount=qround(data.amount),
        note=data.note,
        date=datetime.now(timezone.utc),
        group_id=data.group_id,
        paid_by=data.paid_by,
        received_by=data.received_by,
        created_by=user_id,
    )

    db.add(settlement)
    await db.commit()
    await db.refresh(settlement)

    logger.info(
        "settlement recorded id=%s group=%s %s -> %s",
        settlement.id, settlement.group_id, settlement.paid_by, settlement.received_by
    )
    return settlement

async def undo_settlement(db: AsyncSession, settlement_id: int, user_id: int):
    settlement = await db.scalar(select(Settlement).where(Settlement.id == settlement_id))

    if not settlement:
        raise HTTPException(404, "Settlement entry not found")

    # Only the creator or the user who made the payment can undo it
    if user_id not in (settlement.created_by, settlement.paid_by):
        raise HTTPException(403, "You are not allowed to undo this settlement")

    if not await is_group_member(db, settlement.group_id, user_id):
        raise HTTPException(403, "You are not a member of this group")

    await db.delete(settlement)
    await db.commit()

    logger.info("settlement undone id=%s by user=%s", settlement_id, user_id)
    return {"status": "undo successful"}
