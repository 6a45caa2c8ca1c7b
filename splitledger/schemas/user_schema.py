from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from splitledger.schemas.group_schema import GroupSummary


class UserStore(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = None
    image_url: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime


class ContactUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: Optional[str] = None
    image_url: Optional[str] = None


class Contacts(BaseModel):
    users: List[ContactUser] = []
    groups: List[GroupSummary] = []
