"""
Pairwise Balance Calculator

Signed net balance between a viewer and one counterpart, recomputed from the
raw expense and settlement records on every call.

Sign convention: positive means the counterpart owes the viewer, negative
means the viewer owes the counterpart, zero means settled.

Only unpaid splits carry debt. A settlement paid by the viewer raises the
balance, one received by the viewer lowers it.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple, Optional

from splitledger.schemas.ledger_schema import ExpenseRecord, SettlementRecord
from splitledger.utils.exceptions import SelfReference
from splitledger.utils.ledger_rules import ZERO, in_context, is_involved, unpaid_share

logger = logging.getLogger(__name__)


def _between(settlement: SettlementRecord, a: str, b: str) -> bool:
    return {settlement.paid_by_user_id, settlement.received_by_user_id} == {a, b}


def shared_expenses(
    viewer_id: str,
    counterpart_id: str,
    expenses: Sequence[ExpenseRecord],
    group_id: Optional[str] = None
) -> List[ExpenseRecord]:
    """Expenses in the context paid by either party and involving both, in input order"""
    return [
        expense for expense in expenses
        if in_context(expense, group_id)
        and expense.paid_by_user_id in (viewer_id, counterpart_id)
        and is_involved(expense, viewer_id)
        and is_involved(expense, counterpart_id)
    ]


def shared_settlements(
    viewer_id: str,
    counterpart_id: str,
    settlements: Sequence[SettlementRecord],
    group_id: Optional[str] = None
) -> List[SettlementRecord]:
    return [
        settlement for settlement in settlements
        if in_context(settlement, group_id) and _between(settlement, viewer_id, counterpart_id)
    ]


def pairwise_balance(
    viewer_id: str,
    counterpart_id: str,
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord],
    group_id: Optional[str] = None
) -> Decimal:
    """
    Net balance between two users within one context.

    Args:
        viewer_id: User the balance is expressed for
        counterpart_id: The other user
        expenses: Expense snapshot; records outside the context are ignored
        settlements: Settlement snapshot; records outside the context are ignored
        group_id: None for the individual (non-group) context, otherwise a group id

    Returns:
        Signed Decimal balance

    Raises:
        SelfReference: If viewer_id == counterpart_id

    Example:
        A pays 100 split equally with B (B unpaid):
        >>> pairwise_balance("A", "B", [expense], [])
        Decimal('50.00')
    """
    if viewer_id == counterpart_id:
        raise SelfReference("You cannot get a balance against yourself")

    balance = ZERO
    for expense in shared_expenses(viewer_id, counterpart_id, expenses, group_id):
        if expense.paid_by_user_id == viewer_id:
            balance += unpaid_share(expense, counterpart_id)
        else:
            balance -= unpaid_share(expense, viewer_id)

    for settlement in shared_settlements(viewer_id, counterpart_id, settlements, group_id):
        if settlement.paid_by_user_id == viewer_id:
            balance += settlement.amount
        else:
            balance -= settlement.amount

    return balance


def counterpart_balances(
    viewer_id: str,
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord],
    all_contexts: bool = False
) -> Tuple[Dict[str, Decimal], Decimal, Decimal]:
    """
    Net balance against every counterpart the viewer has history with.

    Gross figures are accumulated alongside the net map without any netting:
    gross_you_are_owed collects unpaid shares owed to the viewer plus
    settlements the viewer paid, gross_you_owe collects the viewer's unpaid
    shares plus settlements the viewer received.

    Args:
        viewer_id: User the balances are expressed for
        expenses: Expense snapshot
        settlements: Settlement snapshot
        all_contexts: If False only individual (non-group) records count,
            otherwise group and individual records are merged per counterpart

    Returns:
        Tuple of (net balance per counterpart, gross_you_owe, gross_you_are_owed).
        Counterparts are the payers of expenses the viewer shares in and the
        participants of expenses the viewer paid, plus settlement partners.
        They appear in first-seen order and may have a zero balance.
    """
    net: Dict[str, Decimal] = {}
    gross_you_owe = ZERO
    gross_you_are_owed = ZERO

    for expense in expenses:
        if not all_contexts and expense.group_id is not None:
            continue
        if not is_involved(expense, viewer_id):
            continue

        # Only the payer relationship moves money; co-participants of someone
        # else's expense are not counterparts of the viewer
        if expense.paid_by_user_id == viewer_id:
            debtor_ids = []
            for split in expense.splits:
                if split.user_id != viewer_id and split.user_id not in debtor_ids:
                    debtor_ids.append(split.user_id)
            for other_id in debtor_ids:
                share = unpaid_share(expense, other_id)
                net[other_id] = net.get(other_id, ZERO) + share
                gross_you_are_owed += share
        else:
            other_id = expense.paid_by_user_id
            share = unpaid_share(expense, viewer_id)
            net[other_id] = net.get(other_id, ZERO) - share
            gross_you_owe += share

    for settlement in settlements:
        if not all_contexts and settlement.group_id is not None:
            continue
        if settlement.paid_by_user_id == viewer_id:
            other_id = settlement.received_by_user_id
            net[other_id] = net.get(other_id, ZERO) + settlement.amount
            gross_you_are_owed += settlement.amount
        elif settlement.received_by_user_id == viewer_id:
            other_id = settlement.paid_by_user_id
            net[other_id] = net.get(other_id, ZERO) - settlement.amount
            gross_you_owe += settlement.amount

    logger.debug(f"Computed balances for {viewer_id} against {len(net)} counterparts")
    return net, gross_you_owe, gross_you_are_owed
