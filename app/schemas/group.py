from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import List
from app.schemas.user import UserBrief

class GroupCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None

class GroupUpdate(BaseModel):
    name: str | None = None
    description: str | None = None

class GroupOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_by: int

    model_config = ConfigDict(from_attributes=True)

class GroupCounts(BaseModel):
    expenses: int
    settlements: int

class GroupDetailOut(GroupOut):
    members: List[UserBrief]
    counts: GroupCounts

class InviteCreate(BaseModel):
    email: EmailStr

class InviteOut(BaseModel):
    id: int
    email: str
    status: str
    group_id: int
    invited_by: int
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)
