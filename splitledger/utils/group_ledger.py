"""
Group Ledger Netter

Builds the matrix of debts between every ordered pair of group members,
collapses opposite-direction debts for each pair into a single direction and
reports per-member totals with "owes" / "owed by" breakdowns.

The matrix is dense and indexed by a position assigned to each member
(members first, in the given order, then any former members that still
appear in historical records). ledger[i][j] is what member i owes member j.

Two independent figures are kept per member:
    total_balance  - accumulated directly from splits and settlements
    owes/owed_by   - read off the netted matrix
For well-formed input, total_balance == sum(owed_by) - sum(owes).
check_ledger_consistency() verifies that and is used as a self-test by
callers; neither figure is derived from the other.

Example:
    A pays 90 split three ways, B pays 30 split three ways:
    >>> result = group_ledger(["A", "B", "C"], expenses, [])
    >>> result.per_member["B"].owes
    [OwesEntry(to_user_id='A', amount=Decimal('20.00'))]
"""

import logging
from decimal import Decimal
from typing import Dict, List, Sequence

from splitledger.schemas.balance_schema import GroupLedgerResult, MemberBalance, OwedByEntry, OwesEntry
from splitledger.schemas.ledger_schema import ExpenseRecord, SettlementRecord
from splitledger.utils.exceptions import EmptyGroup
from splitledger.utils.ledger_rules import BALANCE_TOLERANCE, ZERO

logger = logging.getLogger(__name__)


def _assign_positions(
    members: Sequence[str],
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord]
) -> Dict[str, int]:
    positions: Dict[str, int] = {}

    def assign(user_id: str) -> None:
        if user_id not in positions:
            positions[user_id] = len(positions)

    for member in members:
        assign(member)
    # Records can outlive membership; their parties keep a slot
    for expense in expenses:
        assign(expense.paid_by_user_id)
        for split in expense.splits:
            assign(split.user_id)
    for settlement in settlements:
        assign(settlement.paid_by_user_id)
        assign(settlement.received_by_user_id)
    return positions


def net_pairs(ledger: List[List[Decimal]]) -> None:
    """Collapse ledger[a][b] and ledger[b][a] into one direction, in place"""
    size = len(ledger)
    for a in range(size):
        for b in range(a + 1, size):
            diff = ledger[a][b] - ledger[b][a]
            if diff > ZERO:
                ledger[a][b] = diff
                ledger[b][a] = ZERO
            elif diff < ZERO:
                ledger[b][a] = -diff
                ledger[a][b] = ZERO
            else:
                ledger[a][b] = ZERO
                ledger[b][a] = ZERO


def group_ledger(
    members: Sequence[str],
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord]
) -> GroupLedgerResult:
    """
    Compute netted pairwise debts and per-member totals for one group.

    Args:
        members: Current member user ids
        expenses: The group's expenses
        settlements: The group's settlements

    Returns:
        GroupLedgerResult keyed by user id. Members never involved in any
        record appear with a zero total and empty lists.

    Raises:
        EmptyGroup: If members is empty
    """
    if not members:
        raise EmptyGroup("A group ledger needs at least one member")

    positions = _assign_positions(members, expenses, settlements)
    ids = list(positions)
    size = len(ids)
    current = set(members)

    totals = [ZERO] * size
    ledger = [[ZERO] * size for _ in range(size)]

    for expense in expenses:
        payer = positions[expense.paid_by_user_id]
        for split in expense.splits:
            if split.user_id == expense.paid_by_user_id or split.paid:
                continue
            debtor = positions[split.user_id]
            totals[payer] += split.amount
            totals[debtor] -= split.amount
            ledger[debtor][payer] += split.amount

    for settlement in settlements:
        payer = positions[settlement.paid_by_user_id]
        receiver = positions[settlement.received_by_user_id]
        totals[payer] += settlement.amount
        totals[receiver] -= settlement.amount
        ledger[payer][receiver] -= settlement.amount

    net_pairs(ledger)

    per_member: Dict[str, MemberBalance] = {}
    for i, user_id in enumerate(ids):
        per_member[user_id] = MemberBalance(
            user_id=user_id,
            total_balance=totals[i],
            owes=[
                OwesEntry(to_user_id=ids[j], amount=ledger[i][j])
                for j in range(size) if j != i and ledger[i][j] > ZERO
            ],
            owed_by=[
                OwedByEntry(from_user_id=ids[j], amount=ledger[j][i])
                for j in range(size) if j != i and ledger[j][i] > ZERO
            ],
            is_current_member=user_id in current
        )

    if size > len(current):
        logger.debug(f"Group ledger carries {size - len(current)} former member(s)")
    return GroupLedgerResult(per_member=per_member)


def check_ledger_consistency(result: GroupLedgerResult, tolerance: Decimal = BALANCE_TOLERANCE) -> List[str]:
    """
    Compare each member's accumulated total with the netted ledger.

    Returns:
        User ids whose total_balance differs from
        sum(owed_by) - sum(owes) by more than tolerance (empty when consistent)
    """
    mismatched = []
    for user_id, balance in result.per_member.items():
        from_ledger = sum((entry.amount for entry in balance.owed_by), ZERO) - \
            sum((entry.amount for entry in balance.owes), ZERO)
        if abs(balance.total_balance - from_ledger) > tolerance:
            mismatched.append(user_id)
    return mismatched
