from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.database import get_db
from splitledger.api.v1.dependencies import get_current_user_id
from splitledger.services.user_service import store_user, require_user, search_users, get_contacts
from splitledger.schemas.user_schema import UserStore, UserOut, ContactUser, Contacts

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserOut)
def store_current_user(
    user_data: UserStore,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create or refresh the calling user's profile"""
    return store_user(db, user_id, user_data)


@router.get("/me", response_model=UserOut)
def get_me(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return require_user(db, user_id)


@router.get("/search", response_model=List[ContactUser])
def search(
    query: str = "",
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Search other users by name or email"""
    return search_users(db, query, user_id)


@router.get("/contacts", response_model=Contacts)
def contacts(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Other users and the caller's groups"""
    return get_contacts(db, user_id)
