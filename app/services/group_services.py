import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from app.core.dependencies import check_group_membership
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.group_invitation import GroupInvitation
from app.models.settlement import Settlement
from app.models.user import User
from fastapi import HTTPException

logger = logging.getLogger(__name__)

async def create_group(db: AsyncSession, name: str, creator_id: int, description: str | None = None):
    group = Group(name=name.strip(), description=description, created_by=creator_id)
    db.add(group)
    await db.flush()

    member = GroupMember(group_id=group.id, user_id=creator_id)
    db.add(member)

    await db.commit()
    await db.refresh(group)

    logger.info("group created id=%s by user=%s", group.id, creator_id)
    return group

async def add_member(db: AsyncSession, group_id: int, user_id: int):
    existing = await db.scalar(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id
        )
    )
    if existing:
        return existing

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    await db.commit()
    await db.refresh(member)
    return member

async def list_group_member_ids(db: AsyncSession, group_id: int) -> list[int]:
    res = await db.execute(
        select(GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at, GroupMember.id)
    )
    return list(res.scalars().all())

async def _list_members(db: AsyncSession, group_id: int):
    res = await db.execute(
        select(User)
        .join(GroupMember, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at, GroupMember.id)
    )
    return res.scalars().all()

async def _counts(db: AsyncSession, group_id: int):
    expenses = await db.scalar(
        select(func.count(Expense.id)).where(Expense.group_id == group_id)
    )
    settlements = await db.scalar(
        select(func.count(Settlement.id)).where(Settlement.group_id == group_id)
    )
    return {"expenses": expenses or 0, "settlements": settlements or 0}

async def _group_detail(db: AsyncSession, group: Group):
    members = await _list_members(db, group.id)

    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "created_by": group.created_by,
        "members": members,
        "counts": await _counts(db, group.id),
    }

async def list_group_for_user(db: AsyncSession, user_id: int):
    q = (
        select(Group)
        .join(GroupMember)
        .where(GroupMember.user_id == user_id)
        .order_by(Group.updated_at.desc(), Group.id.desc())
    )
    result = await db.execute(q)

    return [await _group_detail(db, g) for g in result.scalars().all()]

async def list_user_groups(db: AsyncSession, user_id: int):
    """Plain (id, name) rows of every group the user belongs to."""
    q = (
        select(Group.id, Group.name)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .order_by(Group.id)
    )
    res = await db.execute(q)
    return res.all()

async def get_group(db: AsyncSession, group_id: int, user_id: int):
    group = await check_group_membership(db, group_id, user_id)
    return await _group_detail(db, group)

async def edit_group(db: AsyncSession, group_id: int, user_id: int, data):
    group = await check_group_membership(db, group_id, user_id)

    if group.created_by != user_id:
        raise HTTPException(403, "Only group admin can edit group")

    if data.name:
        group.name = data.name.strip()

    if data.description is not None:
        group.description = data.description

    await db.commit()
    await db.refresh(group)
    return group

async def delete_group(db: AsyncSession, group_id: int, user_id: int):
    group = await check_group_membership(db, group_id, user_id)

    if group.created_by != user_id:
        raise HTTPException(403, "Only group admin can delete group")

    expense_ids = select(Expense.id).where(Expense.group_id == group_id)
    await db.execute(delete(ExpenseSplit).where(ExpenseSplit.expense_id.in_(expense_ids)))
    for model in (Expense, Settlement, GroupInvitation, GroupMember):
        await db.execute(delete(model).where(model.group_id == group_id))
    await db.execute(delete(Group).where(Group.id == group_id))
    await db.commit()

    logger.info("group deleted id=%s by user=%s", group_id, user_id)
    return {"status": "deleted"}
