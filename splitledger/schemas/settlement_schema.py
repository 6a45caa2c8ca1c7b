from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from splitledger.schemas.ledger_schema import SettlementRecord
from splitledger.schemas.balance_schema import UserProfile


class SettlementCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=500)
    paid_by_user_id: str
    received_by_user_id: str
    group_id: Optional[str] = None
    related_expense_ids: Optional[List[str]] = None
    date: Optional[datetime] = None


class SettlementOut(SettlementRecord):
    model_config = ConfigDict(from_attributes=True)

    created_at: Optional[datetime] = None


class CounterpartSettlementData(BaseModel):
    user_id: str
    name: str = ""
    email: Optional[str] = None
    image_url: Optional[str] = None
    you_are_owed: Decimal
    you_owe: Decimal
    net_balance: Decimal


class UserSettlementData(BaseModel):
    type: str = "user"
    counterpart: CounterpartSettlementData


class GroupSettlementData(BaseModel):
    type: str = "group"
    group_id: str
    group_name: str
    group_description: Optional[str] = None
    balances: List[CounterpartSettlementData] = []
