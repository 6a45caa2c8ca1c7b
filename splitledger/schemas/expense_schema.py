from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal
from splitledger.schemas.ledger_schema import SplitType, ExpenseRecord
from splitledger.schemas.settlement_schema import SettlementOut
from splitledger.schemas.balance_schema import UserProfile


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., gt=0)
    date: datetime
    category: Optional[str] = Field(None, max_length=100)
    paid_by_user_id: str
    group_id: Optional[str] = None
    split_type: SplitType = SplitType.equal
    participant_ids: List[str] = Field(..., min_length=1)
    # Percentages for "percentage", amounts for "exact"; ignored for "equal"
    overrides: Optional[Dict[str, Decimal]] = None


class ExpenseOut(ExpenseRecord):
    model_config = ConfigDict(from_attributes=True)

    created_at: Optional[datetime] = None


class ExpenseCreated(BaseModel):
    success: bool = True
    expense_id: str


class ExpensesBetweenUsers(BaseModel):
    expenses: List[ExpenseOut]
    settlements: List[SettlementOut]
    other_user: UserProfile
    balance: Decimal


class IndividualExpense(BaseModel):
    id: str
    description: str
    amount: Decimal
    date: datetime
    paid_by: str
    your_share: Decimal
    status: str  # paid | unpaid
