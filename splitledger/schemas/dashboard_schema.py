from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from splitledger.schemas.group_schema import MemberRole


class MonthlySpend(BaseModel):
    month: datetime
    total: Decimal


class MemberBalanceOut(BaseModel):
    user_id: str
    name: str
    image_url: Optional[str] = None
    balance: Decimal
    role: MemberRole


class SharedGroupBalance(BaseModel):
    group_id: str
    name: str
    balance: Decimal


class MemberDetails(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    image_url: Optional[str] = None
    individual_balance: Decimal
    groups: List[SharedGroupBalance] = []
    total_balance: Decimal
