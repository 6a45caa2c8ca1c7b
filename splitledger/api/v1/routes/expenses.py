from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.database import get_db
from splitledger.api.v1.dependencies import get_current_user_id
from splitledger.services.expense_service import (
    create_expense, delete_expense, get_expenses_between_users, get_individual_expenses
)
from splitledger.schemas.expense_schema import (
    ExpenseCreate, ExpenseCreated, ExpensesBetweenUsers, IndividualExpense
)

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("", response_model=ExpenseCreated)
def create_new_expense(
    expense_data: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new expense; splits are derived from the split type"""
    expense = create_expense(db, expense_data, user_id)
    return ExpenseCreated(expense_id=expense.id)


@router.get("/between/{other_user_id}", response_model=ExpensesBetweenUsers)
def get_expenses_with_user(
    other_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Individual expenses and settlements shared with another user, plus the balance"""
    return get_expenses_between_users(db, user_id, other_user_id)


@router.get("/individual", response_model=List[IndividualExpense])
def get_my_individual_expenses(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return get_individual_expenses(db, user_id)


@router.delete("/{expense_id}")
def delete_existing_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete an expense (creator or payer only)"""
    delete_expense(db, expense_id, user_id)
    return {"success": True}
