import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_
from fastapi import HTTPException
from typing import List, Optional
from splitledger.models.settlements import Settlement
from splitledger.schemas.settlement_schema import (
    SettlementCreate, SettlementOut, CounterpartSettlementData, UserSettlementData, GroupSettlementData
)
from splitledger.utils.exceptions import InvalidArgument, NotFound, Unauthorized
from splitledger.utils.ledger_rules import (
    ZERO, can_delete_settlement, can_record_settlement, validate_settlement_terms
)
from splitledger.utils.pairwise_balance import pairwise_balance

logger = logging.getLogger(__name__)


def create_settlement(db: Session, settlement_data: SettlementCreate, user_id: str) -> Settlement:
    """Record a payment between two users"""
    from splitledger.services.group_service import require_group, is_group_member
    from splitledger.services.user_service import require_user
    from splitledger.services.expense_service import get_expense

    try:
        validate_settlement_terms(
            settlement_data.amount, settlement_data.paid_by_user_id, settlement_data.received_by_user_id
        )
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))

    require_user(db, settlement_data.paid_by_user_id, detail="Payer user not found")
    require_user(db, settlement_data.received_by_user_id, detail="Receiver user not found")

    # Users can only create settlements they're involved in
    if not can_record_settlement(user_id, settlement_data.paid_by_user_id, settlement_data.received_by_user_id):
        raise Unauthorized("You can only record settlements you pay or receive")

    if settlement_data.group_id:
        require_group(db, settlement_data.group_id)
        if not is_group_member(db, settlement_data.group_id, settlement_data.paid_by_user_id) or \
                not is_group_member(db, settlement_data.group_id, settlement_data.received_by_user_id):
            raise HTTPException(status_code=400, detail="Both payer and receiver must be members of the group")

    related_expense_ids = None
    if settlement_data.related_expense_ids:
        related_expense_ids = list(dict.fromkeys(settlement_data.related_expense_ids))
        for expense_id in related_expense_ids:
            if not get_expense(db, expense_id):
                raise NotFound(f"Expense {expense_id} not found")

    settlement = Settlement(
        amount=settlement_data.amount,
        note=settlement_data.note,
        date=settlement_data.date or datetime.now(timezone.utc),
        paid_by_user_id=settlement_data.paid_by_user_id,
        received_by_user_id=settlement_data.received_by_user_id,
        group_id=settlement_data.group_id,
        related_expense_ids=related_expense_ids,
        created_by=user_id
    )
    db.add(settlement)
    db.commit()
    db.refresh(settlement)
    logger.info(
        f"Settlement {settlement.id}: {settlement.paid_by_user_id} paid {settlement.amount} "
        f"to {settlement.received_by_user_id}"
    )
    return settlement


def get_settlement(db: Session, settlement_id: str) -> Optional[Settlement]:
    """Get a settlement by ID"""
    return db.query(Settlement).filter(Settlement.id == settlement_id).first()


def delete_settlement(db: Session, settlement_id: str, user_id: str):
    """Delete a settlement (creator or payer only)"""
    settlement = get_settlement(db, settlement_id)
    if not settlement:
        raise NotFound("Settlement not found")

    if not can_delete_settlement(SettlementOut.model_validate(settlement), user_id):
        raise Unauthorized("You are not authorized to delete this settlement")

    db.delete(settlement)
    db.commit()
    logger.info(f"Settlement {settlement_id} deleted by {user_id}")


def to_settlement_records(settlements: List[Settlement]) -> List[SettlementOut]:
    return [SettlementOut.model_validate(settlement) for settlement in settlements]


def get_group_settlement_records(db: Session, group_id: str) -> List[SettlementOut]:
    """All settlements of a group as engine records"""
    return to_settlement_records(db.query(Settlement).filter(Settlement.group_id == group_id).all())


def get_settlement_records_involving(db: Session, user_id: str, individual_only: bool = False) -> List[SettlementOut]:
    query = db.query(Settlement).filter(
        or_(Settlement.paid_by_user_id == user_id, Settlement.received_by_user_id == user_id)
    )
    if individual_only:
        query = query.filter(Settlement.group_id.is_(None))
    return to_settlement_records(query.all())


def get_settlement_records_between(db: Session, user_id: str, other_user_id: str) -> List[SettlementOut]:
    """Individual settlements between two users, either direction"""
    query = db.query(Settlement).filter(
        Settlement.group_id.is_(None),
        or_(
            and_(Settlement.paid_by_user_id == user_id, Settlement.received_by_user_id == other_user_id),
            and_(Settlement.paid_by_user_id == other_user_id, Settlement.received_by_user_id == user_id)
        )
    )
    return to_settlement_records(query.all())


def _counterpart_data(profile, user_id: str, balance) -> CounterpartSettlementData:
    return CounterpartSettlementData(
        user_id=user_id,
        name=profile.name if profile else "",
        email=profile.email if profile else None,
        image_url=profile.image_url if profile else None,
        you_are_owed=max(ZERO, balance),
        you_owe=max(ZERO, -balance),
        net_balance=balance
    )


def get_user_settlement_data(db: Session, user_id: str, other_user_id: str) -> UserSettlementData:
    """What the caller and another user owe each other outside of groups"""
    from splitledger.services.expense_service import get_expense_records_involving
    from splitledger.services.user_service import get_profiles, require_user

    if user_id == other_user_id:
        raise HTTPException(status_code=400, detail="You cannot settle with yourself")
    require_user(db, other_user_id)

    expenses = get_expense_records_involving(db, user_id, individual_only=True)
    settlements = get_settlement_records_between(db, user_id, other_user_id)
    balance = pairwise_balance(user_id, other_user_id, expenses, settlements)

    profile = get_profiles(db, [other_user_id]).get(other_user_id)
    return UserSettlementData(counterpart=_counterpart_data(profile, other_user_id, balance))


def get_group_settlement_data(db: Session, user_id: str, group_id: str) -> GroupSettlementData:
    """What the caller and every other member owe each other inside one group"""
    from splitledger.services.expense_service import get_group_expense_records
    from splitledger.services.group_service import require_group, is_group_member, get_group_members
    from splitledger.services.user_service import get_profiles

    group = require_group(db, group_id)
    if not is_group_member(db, group_id, user_id):
        raise Unauthorized("You are not a member of this group")

    expenses = get_group_expense_records(db, group_id)
    settlements = get_group_settlement_records(db, group_id)
    other_ids = [member.user_id for member in get_group_members(db, group_id) if member.user_id != user_id]
    profiles = get_profiles(db, other_ids)

    balances = [
        _counterpart_data(
            profiles.get(other_id),
            other_id,
            pairwise_balance(user_id, other_id, expenses, settlements, group_id=group_id)
        )
        for other_id in other_ids
    ]
    return GroupSettlementData(
        group_id=group.id,
        group_name=group.name,
        group_description=group.description,
        balances=balances
    )
