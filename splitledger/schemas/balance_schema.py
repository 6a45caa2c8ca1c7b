from pydantic import BaseModel
from typing import Optional, List, Dict
from decimal import Decimal


class OwesEntry(BaseModel):
    to_user_id: str
    amount: Decimal


class OwedByEntry(BaseModel):
    from_user_id: str
    amount: Decimal


class MemberBalance(BaseModel):
    user_id: str
    total_balance: Decimal
    owes: List[OwesEntry] = []
    owed_by: List[OwedByEntry] = []
    is_current_member: bool = True


class GroupLedgerResult(BaseModel):
    # Keyed by user id, in member order followed by former members
    per_member: Dict[str, MemberBalance]


class CounterpartBalance(BaseModel):
    user_id: str
    name: str = ""
    image_url: Optional[str] = None
    amount: Decimal


class OweDetails(BaseModel):
    you_owe: List[CounterpartBalance] = []
    you_are_owed: List[CounterpartBalance] = []


class BalanceSummary(BaseModel):
    you_owe: Decimal = Decimal("0")
    you_are_owed: Decimal = Decimal("0")
    total_balance: Decimal = Decimal("0")
    owe_details: OweDetails = OweDetails()


class AdvancedBalanceSummary(BalanceSummary):
    gross_you_owe: Decimal = Decimal("0")
    gross_you_are_owed: Decimal = Decimal("0")
    total_users_involved: int = 0


class UserProfile(BaseModel):
    """Display fields attached to a counterpart in balance lists"""
    user_id: str
    name: str = ""
    email: Optional[str] = None
    image_url: Optional[str] = None
