from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SplitType(str, Enum):
    equal = "equal"
    exact = "exact"
    percentage = "percentage"


class SplitRecord(BaseModel):
    """One participant's share of an expense"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: str
    amount: Decimal = Field(..., ge=0)
    paid: bool = False


class ExpenseRecord(BaseModel):
    """Immutable expense snapshot consumed by the balance engine"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    description: str = ""
    amount: Decimal = Field(..., ge=0)
    date: datetime
    category: Optional[str] = None
    paid_by_user_id: str
    group_id: Optional[str] = None
    split_type: SplitType = SplitType.equal
    splits: List[SplitRecord] = []
    created_by: Optional[str] = None

    def split_for(self, user_id: str) -> Optional[SplitRecord]:
        for split in self.splits:
            if split.user_id == user_id:
                return split
        return None


class SettlementRecord(BaseModel):
    """Immutable settlement snapshot consumed by the balance engine"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    amount: Decimal = Field(..., gt=0)
    date: datetime
    note: Optional[str] = None
    paid_by_user_id: str
    received_by_user_id: str
    group_id: Optional[str] = None
    # Informational only; balances never read it
    related_expense_ids: Optional[List[str]] = None
    created_by: Optional[str] = None

    @model_validator(mode="after")
    def check_parties(self):
        if self.paid_by_user_id == self.received_by_user_id:
            raise ValueError("Settlement payer and receiver must differ")
        return self


class ResolvedSplit(BaseModel):
    """Split produced at expense creation; percentage is for display only"""
    user_id: str
    amount: Decimal
    percentage: Decimal
    paid: bool
