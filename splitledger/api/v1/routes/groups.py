from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.database import get_db
from splitledger.api.v1.dependencies import get_current_user_id
from splitledger.services.group_service import (
    create_group, get_user_groups, get_group_detail, add_member_to_group, remove_member_from_group
)
from splitledger.schemas.group_schema import (
    GroupCreate, GroupWithMembers, GroupDetail, GroupMemberCreate, GroupMemberOut
)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=GroupWithMembers)
def create_new_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new group with the caller as admin"""
    return create_group(db, group_data, user_id)


@router.get("", response_model=List[GroupWithMembers])
def list_my_groups(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all groups of the current user"""
    return get_user_groups(db, user_id)


@router.get("/{group_id}", response_model=GroupDetail)
def get_group_with_balances(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Group members, expenses, settlements and netted member balances"""
    return get_group_detail(db, group_id, user_id)


@router.post("/{group_id}/members", response_model=GroupMemberOut)
def add_member(
    group_id: str,
    member_data: GroupMemberCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add a member to a group (admin only)"""
    return add_member_to_group(db, group_id, member_data.user_id, user_id, member_data.role)


@router.delete("/{group_id}/members/{member_user_id}")
def remove_member(
    group_id: str,
    member_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Remove a member (admin, or the member themselves)"""
    remove_member_from_group(db, group_id, member_user_id, user_id)
    return {"message": "Member removed successfully"}
