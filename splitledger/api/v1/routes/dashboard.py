from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from decimal import Decimal
from splitledger.db.database import get_db
from splitledger.api.v1.dependencies import get_current_user_id
from splitledger.services.dashboard_service import (
    get_user_balances, get_advanced_breakdown, get_total_spent, get_spent_by_month,
    get_user_groups_with_balance, get_member_balances, get_member_details
)
from splitledger.schemas.balance_schema import BalanceSummary, AdvancedBalanceSummary
from splitledger.schemas.dashboard_schema import MonthlySpend, MemberBalanceOut, MemberDetails
from splitledger.schemas.group_schema import GroupWithBalance

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/balances", response_model=BalanceSummary)
def balances(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """You owe / you are owed across individual expenses"""
    return get_user_balances(db, user_id)


@router.get("/breakdown", response_model=AdvancedBalanceSummary)
def breakdown(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Net and gross balances across groups and individual expenses"""
    return get_advanced_breakdown(db, user_id)


@router.get("/total-spent", response_model=Decimal)
def total_spent(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return get_total_spent(db, user_id)


@router.get("/spent-by-month", response_model=List[MonthlySpend])
def spent_by_month(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return get_spent_by_month(db, user_id)


@router.get("/groups", response_model=List[GroupWithBalance])
def groups(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return get_user_groups_with_balance(db, user_id)


@router.get("/members", response_model=List[MemberBalanceOut])
def members(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Balance with each co-member across all shared groups"""
    return get_member_balances(db, user_id)


@router.get("/members/{member_id}", response_model=MemberDetails)
def member_details(member_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return get_member_details(db, user_id, member_id)
