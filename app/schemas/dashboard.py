from pydantic import BaseModel
from datetime import datetime
from typing import List

class TotalStats(BaseModel):
    total_groups: int
    total_expenses: int
    total_amount_paid: float
    total_amount_owed: float
    net_balance: float

class CategoryAmount(BaseModel):
    category: str
    amount: float

class MonthAmount(BaseModel):
    month: str
    amount: float

class GroupActivity(BaseModel):
    name: str
    expenses: int
    members: int
    settlements: int
    total_amount: float

class RecentExpense(BaseModel):
    id: int
    description: str
    amount: float
    date: datetime
    group_name: str
    category: str | None = None

class GroupBalanceData(BaseModel):
    group_name: str
    owed_to_user: float
    user_owes: float
    net_balance: float

class DashboardStats(BaseModel):
    total_stats: TotalStats
    expenses_by_category: List[CategoryAmount]
    expenses_by_month: List[MonthAmount]
    group_activity: List[GroupActivity]
    recent_expenses: List[RecentExpense]
    balance_data: List[GroupBalanceData]
