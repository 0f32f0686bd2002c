from pydantic import BaseModel

class NetBalance(BaseModel):
    user_id: int
    name: str | None = None
    balance: float

class GroupBalanceOut(BaseModel):
    group_id: int
    balances: list[NetBalance]
