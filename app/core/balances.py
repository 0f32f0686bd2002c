from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.core.utils import ZERO

# Balances smaller than this are treated as settled
DEBT_THRESHOLD = Decimal("0.01")

BalanceMap = Dict[int, Decimal]


@dataclass(frozen=True)
class SplitRecord:
    user_id: int
    amount_owed: Decimal


@dataclass(frozen=True)
class ExpenseRecord:
    amount: Decimal
    payer_id: int
    group_id: Optional[int] = None
    splits: Tuple[SplitRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SettlementRecord:
    amount: Decimal
    paid_by_user_id: int
    received_by_user_id: int
    group_id: Optional[int] = None
    date: Optional[datetime] = None


@dataclass(frozen=True)
class UserInfo:
    id: int
    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class DebtSummary:
    user_id: int
    user_name: str
    user_email: Optional[str]
    group_id: int
    group_name: str
    total_owed: Decimal
    total_owing: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class DebtTotals:
    total_owed_to_me: Decimal
    total_i_owe_people: Decimal
    net_balance: Decimal


def compute_group_balances(
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
) -> BalanceMap:
    """
    Net position of every user seen in one group's history.

    positive -> the group owes this user
    negative -> this user owes the group

    Payer is credited the full amount, every split (payer's own included)
    is debited. A settlement debits paid_by and credits received_by by its
    amount. Input order does not matter.
    """
    balance: BalanceMap = {}

    for exp in expenses:
        balance[exp.payer_id] = balance.get(exp.payer_id, ZERO) + exp.amount

        for s in exp.splits:
            balance[s.user_id] = balance.get(s.user_id, ZERO) - s.amount_owed

    for st in settlements:
        balance[st.paid_by_user_id] = balance.get(st.paid_by_user_id, ZERO) - st.amount
        balance[st.received_by_user_id] = balance.get(st.received_by_user_id, ZERO) + st.amount

    return balance


def compute_debt_summaries(
    balance_map: Mapping[int, Decimal],
    requester_id: int,
    group_id: int,
    group_name: str,
    user_directory: Mapping[int, UserInfo],
) -> List[DebtSummary]:
    """
    Render a group's balance map from the requester's point of view.

    net_amount = -balance[other]
        > 0  other owes the requester
        < 0  requester owes other

    NOTE: this reads the group-wide net vector as if it were a pairwise
    ledger. With more than two members it is only exact in aggregate.
    Users missing from the directory are skipped.
    """
    summaries: List[DebtSummary] = []

    for other_id, bal in balance_map.items():
        if other_id == requester_id or abs(bal) < DEBT_THRESHOLD:
            continue

        other = user_directory.get(other_id)
        if other is None:
            continue

        net_amount = -bal

        summaries.append(DebtSummary(
            user_id=other.id,
            user_name=other.name,
            user_email=other.email,
            group_id=group_id,
            group_name=group_name,
            total_owed=net_amount if net_amount > 0 else ZERO,
            total_owing=abs(net_amount) if net_amount < 0 else ZERO,
            net_amount=net_amount,
        ))

    return summaries


def summarize_debts(summaries: Iterable[DebtSummary]) -> DebtTotals:
    owed_to_me = ZERO
    i_owe = ZERO

    for d in summaries:
        if d.net_amount > 0:
            owed_to_me += d.net_amount
        else:
            i_owe += abs(d.net_amount)

    return DebtTotals(
        total_owed_to_me=owed_to_me,
        total_i_owe_people=i_owe,
        net_balance=owed_to_me - i_owe,
    )
