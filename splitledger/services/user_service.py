import logging
from sqlalchemy.orm import Session
from sqlalchemy import or_
from splitledger.utils.exceptions import NotFound
from typing import Dict, Iterable, List, Optional
from splitledger.models.users import User
from splitledger.schemas.user_schema import UserStore, Contacts, ContactUser
from splitledger.schemas.group_schema import GroupSummary
from splitledger.schemas.balance_schema import UserProfile

logger = logging.getLogger(__name__)


def store_user(db: Session, user_id: str, data: UserStore) -> User:
    """Create the user on first sight, otherwise refresh name, email and image"""
    display_name = data.name or (data.email.split("@")[0] if data.email else None) or "Anonymous User"

    user = get_user(db, user_id)
    if user is None:
        user = User(id=user_id, name=display_name, email=data.email, image_url=data.image_url)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Stored new user {user_id}")
        return user

    if user.name != display_name:
        user.name = display_name
    if not user.email and data.email:
        user.email = data.email
    if data.image_url:
        user.image_url = data.image_url
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get a user by ID"""
    return db.query(User).filter(User.id == user_id).first()


def require_user(db: Session, user_id: str, detail: str = "User not found") -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFound(detail)
    return user


def get_profiles(db: Session, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
    """Display data for a set of users, keyed by id; unknown ids are skipped"""
    ids = set(user_ids)
    if not ids:
        return {}
    users = db.query(User).filter(User.id.in_(ids)).all()
    return {
        user.id: UserProfile(user_id=user.id, name=user.name, email=user.email, image_url=user.image_url)
        for user in users
    }


def search_users(db: Session, query: str, current_user_id: str) -> List[User]:
    """Match users by name or email, excluding the caller"""
    if not query:
        return []
    pattern = f"%{query}%"
    return db.query(User).filter(
        or_(User.name.ilike(pattern), User.email.ilike(pattern)),
        User.id != current_user_id
    ).order_by(User.name).all()


def get_contacts(db: Session, current_user_id: str) -> Contacts:
    """All other users plus the caller's groups, both sorted by name"""
    from splitledger.services.group_service import get_user_groups

    users = db.query(User).filter(User.id != current_user_id).all()
    contact_users = sorted(
        (ContactUser.model_validate(user) for user in users),
        key=lambda contact: contact.name.lower()
    )
    groups = sorted(
        (
            GroupSummary(
                id=group.id,
                name=group.name,
                description=group.description,
                member_count=len(group.members)
            )
            for group in get_user_groups(db, current_user_id)
        ),
        key=lambda group: group.name.lower()
    )
    return Contacts(users=contact_users, groups=groups)
