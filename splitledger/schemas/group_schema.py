from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal
from splitledger.schemas.expense_schema import ExpenseOut
from splitledger.schemas.settlement_schema import SettlementOut
from splitledger.schemas.balance_schema import MemberBalance
from splitledger.models.groups import MemberRole


class GroupCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    member_ids: List[str] = Field(..., min_length=1)


class GroupMemberCreate(BaseModel):
    user_id: str
    role: MemberRole = MemberRole.member


class GroupMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    role: MemberRole
    joined_at: datetime


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime


class GroupWithMembers(GroupOut):
    members: List[GroupMemberOut] = []


class GroupMemberDetail(BaseModel):
    user_id: str
    name: Optional[str] = None
    image_url: Optional[str] = None
    role: MemberRole


class GroupDetail(BaseModel):
    group: GroupOut
    members: List[GroupMemberDetail]
    expenses: List[ExpenseOut]
    settlements: List[SettlementOut]
    balances: Dict[str, MemberBalance]
    my_balance: Optional[MemberBalance] = None


class GroupSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    member_count: int


class GroupWithBalance(GroupSummary):
    balance: Decimal
