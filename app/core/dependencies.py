from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.db.session import get_db
from app.core.jwt_config import decode_token, get_token_from_cookie
from app.services.user_queries import get_user_by_id
from app.models.group import Group
from app.models.group_member import GroupMember

async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)):
    token = get_token_from_cookie(request=request)
    payload = decode_token(token)
    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    try:
        user = await get_user_by_id(db, int(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")

    return user

async def get_group_or_404(db: AsyncSession, group_id: int) -> Group:
    res = await db.execute(select(Group).where(Group.id == group_id))
    group = res.scalar_one_or_none()

    if not group:
        raise HTTPException(404, "Group does not exist")

    return group

async def is_group_member(db: AsyncSession, group_id: int, user_id: int) -> bool:
    q = select(GroupMember.id).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    )
    return (await db.scalar(q)) is not None

async def check_group_membership(db: AsyncSession, group_id: int, user_id: int) -> Group:
    group = await get_group_or_404(db, group_id)

    if not await is_group_member(db, group_id, user_id):
        raise HTTPException(403, "You are not a member of this group")

    return group
