from decimal import Decimal
from enum import Enum
from typing import List, Sequence, Tuple

from app.core.balances import SplitRecord
from app.core.utils import CENTS, ZERO, qround

HUNDRED = Decimal("100")
TOLERANCE = Decimal("0.01")


class SplitType(str, Enum):
    EQUAL = "EQUAL"
    UNEQUAL = "UNEQUAL"
    PERCENTAGE = "PERCENTAGE"


class SplitError(ValueError):
    pass


def _check_participants(user_ids: Sequence[int]):
    if not user_ids:
        raise SplitError("At least one participant is required")

    if len(user_ids) != len(set(user_ids)):
        raise SplitError("Duplicate users found in splits")


def equal_split(amount: Decimal, user_ids: Sequence[int]) -> List[SplitRecord]:
    """
    Split in whole cents. Leftover cents go one each to the first
    participants, so the shares always add up to the amount.
    """
    _check_participants(user_ids)

    cents = int(qround(amount) / CENTS)
    per_head, leftover = divmod(cents, len(user_ids))

    return [
        SplitRecord(
            user_id=uid,
            amount_owed=(per_head + (1 if i < leftover else 0)) * CENTS,
        )
        for i, uid in enumerate(user_ids)
    ]


def unequal_split(amount: Decimal, shares: Sequence[Tuple[int, Decimal]]) -> List[SplitRecord]:
    _check_participants([uid for uid, _ in shares])

    if any(owed < 0 for _, owed in shares):
        raise SplitError("Split amounts cannot be negative")

    # stored as Numeric(10, 2), so check the cents that will be written
    shares = [(uid, qround(owed)) for uid, owed in shares]
    total = sum((owed for _, owed in shares), ZERO)
    if abs(total - amount) > TOLERANCE:
        raise SplitError(
            f"Split total ({total}) must equal expense amount ({amount})"
        )

    return [SplitRecord(user_id=uid, amount_owed=owed) for uid, owed in shares]


def percentage_split(amount: Decimal, shares: Sequence[Tuple[int, Decimal]]) -> List[SplitRecord]:
    _check_participants([uid for uid, _ in shares])

    if any(pct < 0 for _, pct in shares):
        raise SplitError("Percentages cannot be negative")

    total_pct = sum((pct for _, pct in shares), ZERO)
    if abs(total_pct - HUNDRED) > TOLERANCE:
        raise SplitError(f"Percentages must add up to 100 (got {total_pct})")

    amount = qround(amount)
    splits = [
        SplitRecord(user_id=uid, amount_owed=qround(amount * pct / HUNDRED))
        for uid, pct in shares
    ]

    # rounding residue lands on the last participant
    residue = amount - sum((s.amount_owed for s in splits), ZERO)
    if residue:
        last = splits[-1]
        splits[-1] = SplitRecord(user_id=last.user_id, amount_owed=last.amount_owed + residue)

    if any(s.amount_owed < 0 or s.amount_owed > amount for s in splits):
        raise SplitError("Percentages do not produce a valid split of the amount")

    return splits


def build_splits(
    split_type: SplitType,
    amount: Decimal,
    user_ids: Sequence[int] = (),
    shares: Sequence[Tuple[int, Decimal]] = (),
) -> List[SplitRecord]:
    if amount <= 0:
        raise SplitError("Amount must be positive")

    if split_type == SplitType.EQUAL:
        return equal_split(amount, user_ids or [uid for uid, _ in shares])

    if split_type == SplitType.UNEQUAL:
        return unequal_split(amount, shares)

    if split_type == SplitType.PERCENTAGE:
        return percentage_split(amount, shares)

    raise SplitError(f"Unknown split type {split_type}")
