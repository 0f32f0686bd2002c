from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.schemas.group import GroupCreate, GroupUpdate, GroupOut, GroupDetailOut, InviteCreate, InviteOut
from app.services.group_services import create_group, list_group_for_user, get_group, edit_group, delete_group
from app.services.invite_services import create_invite, accept_invite

router = APIRouter()

@router.post("/", response_model=GroupOut, status_code=201, description="create new group")
async def create_new_group(
    data: GroupCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await create_group(db, data.name, user.id, data.description)

@router.get("/", response_model=list[GroupDetailOut], description="get user groups")
async def my_groups(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await list_group_for_user(db, user.id)

@router.post("/invites/accept")
async def accept(token: str, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await accept_invite(db, token, user)

@router.get("/{group_id}", response_model=GroupDetailOut)
async def group_detail(group_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await get_group(db, group_id, user.id)

@router.patch("/{group_id}", response_model=GroupOut)
async def edit(group_id: int, data: GroupUpdate, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await edit_group(db, group_id, user.id, data)

@router.delete("/{group_id}")
async def del_group(group_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await delete_group(db, group_id, user.id)

@router.post("/{group_id}/invites", response_model=InviteOut, status_code=201)
async def invite(
    group_id: int,
    data: InviteCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await create_invite(db, group_id, user.id, data.email)
