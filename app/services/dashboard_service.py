from collections import OrderedDict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from app.core.utils import ZERO, money, to_decimal
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.settlement import Settlement

RECENT_LIMIT = 10
MONTHS_BACK = 6


def _month_start(today: date, months_back: int) -> date:
    month_index = today.year * 12 + (today.month - 1) - months_back
    return date(month_index // 12, month_index % 12 + 1, 1)


def bucket_by_category(expenses) -> List[dict]:
    buckets: Dict[str, Decimal] = OrderedDict()
    for e in expenses:
        category = e.category or "Other"
        buckets[category] = buckets.get(category, ZERO) + to_decimal(e.amount)

    return [{"category": c, "amount": money(a)} for c, a in buckets.items()]


def bucket_by_month(expenses, today: date | None = None) -> List[dict]:
    """
    Paid amounts per month for the current month and the 5 before it,
    labelled like "Jan 2026", oldest first.
    """
    today = today or datetime.now(timezone.utc).date()
    cutoff = _month_start(today, MONTHS_BACK - 1)

    buckets: Dict[date, Decimal] = {}
    for e in expenses:
        d = e.date.date()
        if d < cutoff:
            continue
        key = date(d.year, d.month, 1)
        buckets[key] = buckets.get(key, ZERO) + to_decimal(e.amount)

    return [
        {"month": key.strftime("%b %Y"), "amount": money(buckets[key])}
        for key in sorted(buckets)
    ]


def group_balance_from_splits(expenses, user_id: int):
    """
    Expense-only view of one group: settlements are not applied here.
    """
    owed_to_user = ZERO
    user_owes = ZERO

    for e in expenses:
        if e.paid_by == user_id:
            owed_to_user += sum(
                (to_decimal(s.amount_owed) for s in e.splits if s.user_id != user_id),
                ZERO,
            )
        else:
            user_owes += sum(
                (to_decimal(s.amount_owed) for s in e.splits if s.user_id == user_id),
                ZERO,
            )

    return owed_to_user, user_owes


async def get_dashboard_stats(db: AsyncSession, user_id: int):
    groups_res = await db.execute(
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .order_by(Group.id)
    )
    groups = groups_res.scalars().all()

    paid_res = await db.execute(
        select(Expense)
        .options(selectinload(Expense.group))
        .where(Expense.paid_by == user_id)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
    )
    expenses_paid = paid_res.scalars().all()

    total_owed = await db.scalar(
        select(func.coalesce(func.sum(ExpenseSplit.amount_owed), 0))
        .where(ExpenseSplit.user_id == user_id)
    )

    total_paid = sum((to_decimal(e.amount) for e in expenses_paid), ZERO)
    total_owed = to_decimal(total_owed)

    group_activity = []
    balance_data = []

    for g in groups:
        exp_res = await db.execute(
            select(Expense)
            .options(selectinload(Expense.splits))
            .where(Expense.group_id == g.id)
        )
        group_expenses = exp_res.scalars().all()

        members = await db.scalar(
            select(func.count(GroupMember.id)).where(GroupMember.group_id == g.id)
        )
        settlements = await db.scalar(
            select(func.count(Settlement.id)).where(Settlement.group_id == g.id)
        )

        group_activity.append({
            "name": g.name,
            "expenses": len(group_expenses),
            "members": members or 0,
            "settlements": settlements or 0,
            "total_amount": money(sum((to_decimal(e.amount) for e in group_expenses), ZERO)),
        })

        owed_to_user, user_owes = group_balance_from_splits(group_expenses, user_id)
        balance_data.append({
            "group_name": g.name,
            "owed_to_user": money(owed_to_user),
            "user_owes": money(user_owes),
            "net_balance": money(owed_to_user - user_owes),
        })

    recent = [
        {
            "id": e.id,
            "description": e.description,
            "amount": money(e.amount),
            "date": e.date,
            "group_name": e.group.name if e.group else "Personal",
            "category": e.category,
        }
        for e in expenses_paid[:RECENT_LIMIT]
    ]

    return {
        "total_stats": {
            "total_groups": len(groups),
            "total_expenses": len(expenses_paid),
            "total_amount_paid": money(total_paid),
            "total_amount_owed": money(total_owed),
            "net_balance": money(total_paid - total_owed),
        },
        "expenses_by_category": bucket_by_category(expenses_paid),
        "expenses_by_month": bucket_by_month(expenses_paid),
        "group_activity": group_activity,
        "recent_expenses": recent,
        "balance_data": balance_data,
    }
