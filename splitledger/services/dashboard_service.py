import logging
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import Dict, List, Optional, Sequence
from splitledger.schemas.balance_schema import AdvancedBalanceSummary, BalanceSummary
from splitledger.schemas.dashboard_schema import MemberBalanceOut, MemberDetails, MonthlySpend, SharedGroupBalance
from splitledger.schemas.group_schema import GroupWithBalance
from splitledger.schemas.ledger_schema import ExpenseRecord
from splitledger.utils.ledger_rules import ZERO
from splitledger.utils.pairwise_balance import counterpart_balances, pairwise_balance
from splitledger.utils.group_ledger import group_ledger
from splitledger.utils.balance_aggregator import (
    advanced_breakdown, aggregate_balances, combine_contexts, nonzero_by_magnitude
)
from splitledger.services.expense_service import get_expense_records_involving, get_group_expense_records
from splitledger.services.settlement_service import get_group_settlement_records, get_settlement_records_involving
from splitledger.services.group_service import get_user_groups, is_group_member
from splitledger.services.user_service import get_profiles, require_user

logger = logging.getLogger(__name__)


def _as_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def monthly_spend(expenses: Sequence[ExpenseRecord], user_id: str, year: int) -> List[MonthlySpend]:
    """The user's split amounts per calendar month of the given year, all twelve months present"""
    totals: Dict[int, Decimal] = {month: ZERO for month in range(1, 13)}
    for expense in expenses:
        date = _as_utc_naive(expense.date)
        if date.year != year:
            continue
        split = expense.split_for(user_id)
        if split is not None:
            totals[date.month] += split.amount
    return [MonthlySpend(month=datetime(year, month, 1), total=total) for month, total in totals.items()]


def get_user_balances(db: Session, user_id: str) -> BalanceSummary:
    """Net position against every counterpart from individual (non-group) history"""
    expenses = get_expense_records_involving(db, user_id, individual_only=True)
    settlements = get_settlement_records_involving(db, user_id, individual_only=True)
    net, _, _ = counterpart_balances(user_id, expenses, settlements)
    return aggregate_balances(net, get_profiles(db, net))


def get_advanced_breakdown(db: Session, user_id: str) -> AdvancedBalanceSummary:
    """Net and gross position across group and individual history"""
    expenses = get_expense_records_involving(db, user_id)
    settlements = get_settlement_records_involving(db, user_id)
    net, gross_you_owe, gross_you_are_owed = counterpart_balances(user_id, expenses, settlements, all_contexts=True)
    return advanced_breakdown(net, gross_you_owe, gross_you_are_owed, get_profiles(db, net))


def get_total_spent(db: Session, user_id: str, year: Optional[int] = None) -> Decimal:
    """Sum of the user's shares of expenses dated in the given (default: current) year"""
    year = year or datetime.now(timezone.utc).year
    months = monthly_spend(get_expense_records_involving(db, user_id), user_id, year)
    return sum((month.total for month in months), ZERO)


def get_spent_by_month(db: Session, user_id: str, year: Optional[int] = None) -> List[MonthlySpend]:
    year = year or datetime.now(timezone.utc).year
    return monthly_spend(get_expense_records_involving(db, user_id), user_id, year)


def get_user_groups_with_balance(db: Session, user_id: str) -> List[GroupWithBalance]:
    """Each of the user's groups with the user's total balance inside it"""
    result = []
    for group in get_user_groups(db, user_id):
        ledger = group_ledger(
            [member.user_id for member in group.members],
            get_group_expense_records(db, group.id),
            get_group_settlement_records(db, group.id)
        )
        result.append(GroupWithBalance(
            id=group.id,
            name=group.name,
            description=group.description,
            member_count=len(group.members),
            balance=ledger.per_member[user_id].total_balance
        ))
    return result


def get_member_balances(db: Session, user_id: str) -> List[MemberBalanceOut]:
    """Balance with every co-member, summed over all shared groups, largest first"""
    balances: Dict[str, Decimal] = {}
    roles = {}

    for group in get_user_groups(db, user_id):
        expenses = get_group_expense_records(db, group.id)
        settlements = get_group_settlement_records(db, group.id)
        for member in group.members:
            if member.user_id == user_id:
                continue
            balance = pairwise_balance(user_id, member.user_id, expenses, settlements, group_id=group.id)
            balances[member.user_id] = balances.get(member.user_id, ZERO) + balance
            roles.setdefault(member.user_id, member.role)

    profiles = get_profiles(db, balances)
    return [
        MemberBalanceOut(
            user_id=member_id,
            name=profiles[member_id].name if member_id in profiles else "Unknown User",
            image_url=profiles[member_id].image_url if member_id in profiles else None,
            balance=balance,
            role=roles[member_id]
        )
        for member_id, balance in nonzero_by_magnitude(balances)
    ]


def get_member_details(db: Session, user_id: str, member_id: str) -> MemberDetails:
    """Balance with one user in the individual context, per shared group, and combined"""
    if user_id == member_id:
        raise HTTPException(status_code=400, detail="You cannot get balances for yourself")
    member = require_user(db, member_id)

    individual = pairwise_balance(
        user_id,
        member_id,
        get_expense_records_involving(db, user_id, individual_only=True),
        get_settlement_records_involving(db, user_id, individual_only=True)
    )

    shared_groups = []
    for group in get_user_groups(db, user_id):
        if not is_group_member(db, group.id, member_id):
            continue
        balance = pairwise_balance(
            user_id,
            member_id,
            get_group_expense_records(db, group.id),
            get_group_settlement_records(db, group.id),
            group_id=group.id
        )
        shared_groups.append(SharedGroupBalance(group_id=group.id, name=group.name, balance=balance))

    combined = combine_contexts({member_id: individual}, [{member_id: group.balance} for group in shared_groups])
    return MemberDetails(
        user_id=member.id,
        name=member.name,
        email=member.email,
        image_url=member.image_url,
        individual_balance=individual,
        groups=shared_groups,
        total_balance=combined[member_id]
    )
