"""
Ledger Record Rules

Invariants and ownership rules shared by every balance computation and by
the service layer that writes expenses and settlements.

Tolerances:
    SPLIT_SUM_TOLERANCE       - max |sum(splits) - amount| accepted at creation
    PERCENTAGE_SUM_TOLERANCE  - max |sum(percentages) - 100| accepted at creation
    BALANCE_TOLERANCE         - max drift between two derivations of one balance

These values are part of the data contract: tightening them would reject
previously stored expenses, loosening them would admit invalid ones.
"""

import logging
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from splitledger.schemas.ledger_schema import ExpenseRecord, SettlementRecord
from splitledger.utils.exceptions import Inconsistent, InvalidAmount, SelfReference

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')

SPLIT_SUM_TOLERANCE = Decimal('0.10')
PERCENTAGE_SUM_TOLERANCE = Decimal('0.01')
BALANCE_TOLERANCE = Decimal('0.01')


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_decimal(value: Decimal, precision: Decimal = CENT) -> Decimal:
    """
    Round a Decimal value to the specified precision.

    Example:
        >>> round_decimal(Decimal("33.333333"))
        Decimal('33.33')
    """
    return to_decimal(value).quantize(precision)


def validate_split_total(amount, split_amounts: Iterable) -> Decimal:
    """
    Check that split amounts add up to the expense amount.

    Args:
        amount: Expense total
        split_amounts: Amount of every split

    Returns:
        The sum of the split amounts

    Raises:
        Inconsistent: If the sum differs from amount by more than SPLIT_SUM_TOLERANCE
    """
    amount = to_decimal(amount)
    total = sum((to_decimal(a) for a in split_amounts), ZERO)
    difference = abs(total - amount)
    if difference > SPLIT_SUM_TOLERANCE:
        raise Inconsistent(
            f"The total split amount {total} does not match the expense amount {amount} "
            f"(difference {difference}, tolerance {SPLIT_SUM_TOLERANCE})"
        )
    if difference > ZERO:
        logger.debug(f"Split total {total} accepted for amount {amount} (difference {difference})")
    return total


def validate_percentage_total(percentages: Mapping[str, Decimal]) -> Decimal:
    """Raise Inconsistent unless the percentages add up to 100 within tolerance"""
    total = sum((to_decimal(p) for p in percentages.values()), ZERO)
    if abs(total - HUNDRED) > PERCENTAGE_SUM_TOLERANCE:
        raise Inconsistent(f"Percentages must add up to 100, got {total}")
    return total


def validate_settlement_terms(amount, paid_by_user_id: str, received_by_user_id: str) -> None:
    if to_decimal(amount) <= ZERO:
        raise InvalidAmount("Settlement amount must be positive")
    if paid_by_user_id == received_by_user_id:
        raise SelfReference("You cannot settle with yourself")


def is_involved(expense: ExpenseRecord, user_id: str) -> bool:
    """A user is involved in an expense when they paid it or hold a split"""
    return expense.paid_by_user_id == user_id or expense.split_for(user_id) is not None


def unpaid_share(expense: ExpenseRecord, user_id: str) -> Decimal:
    split = expense.split_for(user_id)
    if split is None or split.paid:
        return ZERO
    return split.amount


def in_context(record, group_id: Optional[str]) -> bool:
    """group_id=None selects individual records, otherwise records of that group"""
    return record.group_id == group_id


def can_delete_expense(expense: ExpenseRecord, user_id: str) -> bool:
    return user_id in (expense.created_by, expense.paid_by_user_id)


def can_delete_settlement(settlement: SettlementRecord, user_id: str) -> bool:
    return user_id in (settlement.created_by, settlement.paid_by_user_id)


def can_record_settlement(user_id: str, paid_by_user_id: str, received_by_user_id: str) -> bool:
    return user_id in (paid_by_user_id, received_by_user_id)
