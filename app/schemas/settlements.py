from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import List

class SettlementCreate(BaseModel):
    group_id: int
    paid_by: int
    received_by: int
    amount: Decimal = Field(gt=0)
    note: str | None = None

    @model_validator(mode="after")
    def check_parties(self):
        if self.paid_by == self.received_by:
            raise ValueError("Payer and receiver must be different users")
        return self

class SettlementOut(BaseModel):
    id: int
    group_id: int
    paid_by: int
    received_by: int
    created_by: int
    amount: float
    note: str | None = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)

class DebtSummaryOut(BaseModel):
    user_id: int
    user_name: str
    user_email: str | None = None
    group_id: int
    group_name: str
    total_owed: float
    total_owing: float
    net_amount: float

class SettlementsOverview(BaseModel):
    settlements: List[SettlementOut]
    debt_summaries: List[DebtSummaryOut]
    total_owed_to_me: float
    total_i_owe_people: float
    net_balance: float
