from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from splitledger.db.database import get_db
from splitledger.api.v1.dependencies import get_current_user_id
from splitledger.services.settlement_service import (
    create_settlement, delete_settlement, get_user_settlement_data, get_group_settlement_data
)
from splitledger.schemas.settlement_schema import (
    SettlementCreate, SettlementOut, UserSettlementData, GroupSettlementData
)

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("", response_model=SettlementOut)
def create_new_settlement(
    settlement_data: SettlementCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Record a settlement paid or received by the caller"""
    return create_settlement(db, settlement_data, user_id)


@router.delete("/{settlement_id}")
def delete_existing_settlement(
    settlement_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a settlement (creator or payer only)"""
    delete_settlement(db, settlement_id, user_id)
    return {"success": True}


@router.get("/data/user/{other_user_id}", response_model=UserSettlementData)
def get_user_settlement(
    other_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """What the caller and another user owe each other outside groups"""
    return get_user_settlement_data(db, user_id, other_user_id)


@router.get("/data/group/{group_id}", response_model=GroupSettlementData)
def get_group_settlement(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """What the caller and each other member owe each other in a group"""
    return get_group_settlement_data(db, user_id, group_id)
