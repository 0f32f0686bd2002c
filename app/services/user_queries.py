from typing import Dict, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from app.core.balances import UserInfo
from app.models.user import User

async def get_user_by_id(db: AsyncSession, user_id: int):
    res = await db.execute(select(User).where(User.id == user_id))
    return res.scalar_one_or_none()

async def get_user_by_email(db: AsyncSession, email: str):
    res = await db.execute(select(User).where(User.email == email.lower()))
    return res.scalar_one_or_none()

async def get_user_directory(db: AsyncSession, user_ids: Iterable[int]) -> Dict[int, UserInfo]:
    ids = list(set(user_ids))
    if not ids:
        return {}

    res = await db.execute(select(User.id, User.name, User.email).where(User.id.in_(ids)))
    return {
        row.id: UserInfo(id=row.id, name=row.name, email=row.email)
        for row in res.all()
    }

async def search_users(db: AsyncSession, query: str, exclude_user_id: int, limit: int = 10):
    pattern = f"%{query.lower()}%"

    q = (
        select(User)
        .where(
            User.id != exclude_user_id,
            or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
        .order_by(User.name)
        .limit(limit)
    )

    res = await db.execute(q)
    return res.scalars().all()
