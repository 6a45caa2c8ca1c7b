import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional
from splitledger.models.groups import Group, GroupMember, MemberRole
from splitledger.schemas.group_schema import (
    GroupCreate, GroupOut, GroupDetail, GroupMemberDetail
)
from splitledger.utils.group_ledger import group_ledger, check_ledger_consistency
from splitledger.utils.exceptions import NotFound, Unauthorized

logger = logging.getLogger(__name__)


def create_group(db: Session, group_data: GroupCreate, created_by: str) -> Group:
    """Create a group; the creator becomes its admin, every other id a member"""
    from splitledger.services.user_service import get_user

    name = group_data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Group name must not be empty")

    member_ids = [created_by]
    for user_id in group_data.member_ids:
        if user_id not in member_ids:
            member_ids.append(user_id)

    for user_id in member_ids:
        if not get_user(db, user_id):
            raise HTTPException(status_code=400, detail=f"Invalid member: {user_id}")

    description = group_data.description.strip() if group_data.description else None
    group = Group(name=name, description=description or None, created_by=created_by)
    db.add(group)
    db.flush()

    for user_id in member_ids:
        db.add(GroupMember(
            group_id=group.id,
            user_id=user_id,
            role=MemberRole.admin if user_id == created_by else MemberRole.member
        ))

    db.commit()
    db.refresh(group)
    logger.info(f"Group {group.id} created by {created_by} with {len(member_ids)} members")
    return group


def get_group(db: Session, group_id: str) -> Optional[Group]:
    """Get a group by ID"""
    return db.query(Group).filter(Group.id == group_id).first()


def require_group(db: Session, group_id: str) -> Group:
    group = get_group(db, group_id)
    if not group:
        raise NotFound("Group not found")
    return group


def get_user_groups(db: Session, user_id: str) -> List[Group]:
    """Get all groups for a user"""
    return db.query(Group).join(GroupMember).filter(GroupMember.user_id == user_id).all()


def add_member_to_group(db: Session, group_id: str, user_id: str, adder_id: str, role: MemberRole = MemberRole.member):
    """Add a member to a group (admin only)"""
    from splitledger.services.user_service import require_user

    require_group(db, group_id)
    if not is_group_admin(db, group_id, adder_id):
        raise Unauthorized("Only group admins can add members")

    require_user(db, user_id)

    if is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=400, detail="User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id, role=role)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"User {user_id} added to group {group_id} by {adder_id}")
    return member


def remove_member_from_group(db: Session, group_id: str, user_id: str, remover_id: str):
    """
    Remove a member from a group; historical expenses and settlements are kept.

    The creator always stays in the group as admin, and the last admin
    cannot be removed.
    """
    group = require_group(db, group_id)
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()

    if not member:
        raise NotFound("Member not found")

    # Only admins can remove others, users can remove themselves
    if user_id != remover_id and not is_group_admin(db, group_id, remover_id):
        raise Unauthorized("Only group admins can remove other members")

    if user_id == group.created_by:
        raise HTTPException(status_code=400, detail="The group creator cannot be removed from the group")

    if member.role == MemberRole.admin:
        admin_count = db.query(GroupMember).filter(
            and_(GroupMember.group_id == group_id, GroupMember.role == MemberRole.admin)
        ).count()
        if admin_count <= 1:
            raise HTTPException(status_code=400, detail="A group must keep at least one admin")

    db.delete(member)
    db.commit()
    logger.info(f"User {user_id} removed from group {group_id} by {remover_id}")


def is_group_admin(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is admin of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None and member.role == MemberRole.admin


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is member of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None


def get_group_members(db: Session, group_id: str) -> List[GroupMember]:
    """Get all members of a group"""
    return db.query(GroupMember).filter(GroupMember.group_id == group_id).order_by(GroupMember.joined_at).all()


def get_group_detail(db: Session, group_id: str, user_id: str) -> GroupDetail:
    """Group, members, records and the netted group ledger, for a member of the group"""
    from splitledger.services.expense_service import get_group_expense_records
    from splitledger.services.settlement_service import get_group_settlement_records
    from splitledger.services.user_service import get_profiles

    group = require_group(db, group_id)
    if not is_group_member(db, group_id, user_id):
        raise Unauthorized("You are not a member of this group")

    members = get_group_members(db, group_id)
    member_ids = [member.user_id for member in members]
    profiles = get_profiles(db, member_ids)

    expenses = get_group_expense_records(db, group_id)
    settlements = get_group_settlement_records(db, group_id)

    ledger = group_ledger(member_ids, expenses, settlements)
    mismatched = check_ledger_consistency(ledger)
    if mismatched:
        logger.error(f"Group {group_id} totals disagree with netted ledger for: {mismatched}")

    return GroupDetail(
        group=GroupOut.model_validate(group),
        members=[
            GroupMemberDetail(
                user_id=member.user_id,
                name=profiles[member.user_id].name if member.user_id in profiles else None,
                image_url=profiles[member.user_id].image_url if member.user_id in profiles else None,
                role=member.role
            )
            for member in members
        ],
        expenses=expenses,
        settlements=settlements,
        balances=ledger.per_member,
        my_balance=ledger.per_member.get(user_id)
    )
