"""
Split Resolver

Turns an expense total, a split policy and a participant list into the
concrete per-participant splits that are stored with the expense.

Policies:
    equal       - every participant gets amount / n, percentage 100 / n
    percentage  - amount_i = amount * percentage_i / 100, percentages default
                  to an even split and are NOT normalised here
    exact       - amount_i is supplied directly (defaults to an even split),
                  percentage_i = amount_i / amount * 100 for display

Shares are quantized to cents. The equal policy does not hand the rounding
remainder to anyone, so sum(splits) may differ from the total by up to
n * 0.005. Checking the sum against the total is the caller's job
(see ledger_rules.validate_split_total).

The payer's own split is created with paid=True; every other split starts
unpaid.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

from splitledger.schemas.ledger_schema import ResolvedSplit, SplitType
from splitledger.utils.exceptions import InvalidAmount, InvalidArgument
from splitledger.utils.ledger_rules import HUNDRED, ZERO, round_decimal, to_decimal

logger = logging.getLogger(__name__)


def _check_participants(participants: Sequence[str]) -> None:
    if not participants:
        raise InvalidArgument("At least one participant is required")
    if len(set(participants)) != len(participants):
        raise InvalidArgument("Participants must be unique")


def _check_overrides(overrides: Dict[str, Decimal], participants: Sequence[str]) -> None:
    unknown = set(overrides) - set(participants)
    if unknown:
        raise InvalidArgument(f"Overrides given for non-participants: {sorted(unknown)}")
    for user_id, value in overrides.items():
        if value < ZERO:
            raise InvalidArgument(f"Override for {user_id} must not be negative")


def resolve_splits(
    amount,
    split_type: Union[SplitType, str],
    participants: Sequence[str],
    payer_id: str,
    overrides: Optional[Dict[str, Decimal]] = None
) -> List[ResolvedSplit]:
    """
    Compute the splits for a new expense.

    Args:
        amount: Expense total, must be positive
        split_type: equal, exact or percentage
        participants: Ordered participant user ids (usually including the payer)
        payer_id: User who fronted the money
        overrides: Per-participant percentages (percentage) or amounts (exact);
            participants without an override get the even default

    Returns:
        One ResolvedSplit per participant, in participant order

    Raises:
        InvalidAmount: If amount <= 0
        InvalidArgument: Empty/duplicate participants, unknown split type,
            overrides for non-participants or negative overrides

    Example:
        >>> resolve_splits(Decimal("200"), "percentage", ["A", "B"], "A",
        ...                {"A": Decimal("60"), "B": Decimal("40")})
        [ResolvedSplit(user_id='A', amount=Decimal('120.00'), ...), ...]
    """
    amount = to_decimal(amount)
    if amount <= ZERO:
        raise InvalidAmount(f"Expense amount must be positive, got {amount}")

    try:
        split_type = SplitType(split_type)
    except ValueError:
        raise InvalidArgument(f"Unknown split type: {split_type}")

    _check_participants(participants)
    overrides = {user_id: to_decimal(value) for user_id, value in (overrides or {}).items()}
    _check_overrides(overrides, participants)

    count = Decimal(len(participants))
    even_percentage = HUNDRED / count
    splits = []

    for participant in participants:
        if split_type == SplitType.equal:
            share = round_decimal(amount / count)
            percentage = even_percentage
        elif split_type == SplitType.percentage:
            percentage = overrides.get(participant, even_percentage)
            share = round_decimal(amount * percentage / HUNDRED)
        else:
            share = round_decimal(overrides.get(participant, amount / count))
            percentage = share / amount * HUNDRED

        splits.append(ResolvedSplit(
            user_id=participant,
            amount=share,
            percentage=round_decimal(percentage),
            paid=participant == payer_id
        ))

    logger.debug(
        f"Resolved {split_type.value} split of {amount} across {len(participants)} participants: "
        f"total={sum((s.amount for s in splits), ZERO)}"
    )
    return splits
