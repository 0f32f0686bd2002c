from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import List
from app.core.splits import SplitType

class SplitInput(BaseModel):
    user_id: int
    amount_owed: Decimal | None = None
    percentage: Decimal | None = None

class PersonalExpenseCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    category: str | None = None
    date: datetime

class GroupExpenseCreate(PersonalExpenseCreate):
    split_type: SplitType = SplitType.EQUAL
    paid_by: int
    splits: List[SplitInput] | None = None

class SplitOut(BaseModel):
    user_id: int
    amount_owed: float

    model_config = ConfigDict(from_attributes=True)

class ExpenseOut(BaseModel):
    id: int
    description: str
    amount: float
    category: str | None = None
    date: datetime
    split_type: str
    group_id: int | None = None
    paid_by: int
    created_by: int
    splits: List[SplitOut]

    model_config = ConfigDict(from_attributes=True)
