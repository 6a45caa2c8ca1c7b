import logging
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException
from typing import List, Optional
from splitledger.models.expenses import Expense, ExpenseSplit
from splitledger.schemas.expense_schema import (
    ExpenseCreate, ExpenseOut, ExpensesBetweenUsers, IndividualExpense
)
from splitledger.schemas.ledger_schema import SplitType
from splitledger.schemas.balance_schema import UserProfile
from splitledger.utils.exceptions import Inconsistent, InvalidArgument, NotFound, Unauthorized
from splitledger.utils.ledger_rules import can_delete_expense, validate_percentage_total, validate_split_total
from splitledger.utils.split_resolver import resolve_splits
from splitledger.utils.pairwise_balance import pairwise_balance, shared_expenses, shared_settlements
from splitledger.rabbitmq.producer import publish_expense_event

logger = logging.getLogger(__name__)


def create_expense(db: Session, expense_data: ExpenseCreate, user_id: str) -> Expense:
    """Resolve splits, validate them against the total and store the expense"""
    from splitledger.services.group_service import require_group, is_group_member
    from splitledger.services.user_service import get_user

    if expense_data.group_id:
        require_group(db, expense_data.group_id)
        if not is_group_member(db, expense_data.group_id, user_id):
            raise Unauthorized("You are not a member of this group")
        for participant_id in [expense_data.paid_by_user_id, *expense_data.participant_ids]:
            if not is_group_member(db, expense_data.group_id, participant_id):
                raise HTTPException(status_code=400, detail=f"User {participant_id} is not a member of this group")
    else:
        for participant_id in {expense_data.paid_by_user_id, *expense_data.participant_ids}:
            if not get_user(db, participant_id):
                raise NotFound(f"User {participant_id} not found")

    try:
        if expense_data.split_type == SplitType.percentage and expense_data.overrides:
            even_percentage = Decimal(100) / len(expense_data.participant_ids)
            validate_percentage_total({
                participant_id: expense_data.overrides.get(participant_id, even_percentage)
                for participant_id in expense_data.participant_ids
            })
        splits = resolve_splits(
            expense_data.amount,
            expense_data.split_type,
            expense_data.participant_ids,
            expense_data.paid_by_user_id,
            expense_data.overrides
        )
        validate_split_total(expense_data.amount, [split.amount for split in splits])
    except Inconsistent as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))

    expense = Expense(
        description=expense_data.description,
        amount=expense_data.amount,
        date=expense_data.date,
        category=expense_data.category,
        paid_by_user_id=expense_data.paid_by_user_id,
        group_id=expense_data.group_id,
        split_type=expense_data.split_type.value,
        created_by=user_id,
        splits=[
            ExpenseSplit(position=position, user_id=split.user_id, amount=split.amount, paid=split.paid)
            for position, split in enumerate(splits)
        ]
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    logger.info(f"Expense {expense.id} of {expense.amount} created by {user_id} ({len(splits)} splits)")

    publish_expense_event("expense.created", {
        "expense_id": expense.id,
        "description": expense.description,
        "amount": str(expense.amount),
        "paid_by_user_id": expense.paid_by_user_id,
        "group_id": expense.group_id,
        "participant_ids": [split.user_id for split in splits]
    })
    return expense


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID"""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def delete_expense(db: Session, expense_id: str, user_id: str):
    """Delete an expense (creator or payer only)"""
    expense = get_expense(db, expense_id)
    if not expense:
        raise NotFound("Expense not found")

    record = ExpenseOut.model_validate(expense)
    if not can_delete_expense(record, user_id):
        raise Unauthorized("Only the creator or payer of this expense can delete it")

    db.delete(expense)
    db.commit()
    logger.info(f"Expense {expense_id} deleted by {user_id}")

    publish_expense_event("expense.deleted", {
        "expense_id": record.id,
        "description": record.description,
        "amount": str(record.amount),
        "paid_by_user_id": record.paid_by_user_id,
        "group_id": record.group_id,
        "deleted_by_user_id": user_id,
        "participant_ids": [split.user_id for split in record.splits]
    })


def to_expense_records(expenses: List[Expense]) -> List[ExpenseOut]:
    return [ExpenseOut.model_validate(expense) for expense in expenses]


def get_group_expense_records(db: Session, group_id: str) -> List[ExpenseOut]:
    """All expenses of a group as engine records"""
    return to_expense_records(db.query(Expense).filter(Expense.group_id == group_id).all())


def get_expense_records_involving(db: Session, user_id: str, individual_only: bool = False) -> List[ExpenseOut]:
    """Expenses the user paid or holds a split in"""
    query = db.query(Expense).filter(
        or_(Expense.paid_by_user_id == user_id, Expense.splits.any(ExpenseSplit.user_id == user_id))
    )
    if individual_only:
        query = query.filter(Expense.group_id.is_(None))
    return to_expense_records(query.all())


def get_expenses_between_users(db: Session, user_id: str, other_user_id: str) -> ExpensesBetweenUsers:
    """Shared individual history and the pairwise balance with another user"""
    from splitledger.services.settlement_service import get_settlement_records_between
    from splitledger.services.user_service import require_user

    if user_id == other_user_id:
        raise HTTPException(status_code=400, detail="You cannot get expenses for yourself")
    other = require_user(db, other_user_id)

    query = db.query(Expense).filter(
        Expense.group_id.is_(None),
        Expense.paid_by_user_id.in_([user_id, other_user_id])
    )
    expenses = shared_expenses(user_id, other_user_id, to_expense_records(query.all()))
    settlements = shared_settlements(user_id, other_user_id, get_settlement_records_between(db, user_id, other_user_id))

    balance = pairwise_balance(user_id, other_user_id, expenses, settlements)

    return ExpensesBetweenUsers(
        expenses=sorted(expenses, key=lambda expense: expense.date, reverse=True),
        settlements=sorted(settlements, key=lambda settlement: settlement.date, reverse=True),
        other_user=UserProfile(user_id=other.id, name=other.name, email=other.email, image_url=other.image_url),
        balance=balance
    )


def get_individual_expenses(db: Session, user_id: str) -> List[IndividualExpense]:
    """The user's own share of every individual expense they are part of, newest first"""
    from splitledger.services.user_service import get_profiles

    expenses = get_expense_records_involving(db, user_id, individual_only=True)
    profiles = get_profiles(db, {expense.paid_by_user_id for expense in expenses})

    result = []
    for expense in expenses:
        split = expense.split_for(user_id)
        if split is None:
            continue
        payer = profiles.get(expense.paid_by_user_id)
        result.append(IndividualExpense(
            id=expense.id,
            description=expense.description,
            amount=expense.amount,
            date=expense.date,
            paid_by=payer.name if payer else "Unknown User",
            your_share=split.amount,
            status="paid" if split.paid else "unpaid"
        ))

    result.sort(key=lambda item: item.date, reverse=True)
    return result
