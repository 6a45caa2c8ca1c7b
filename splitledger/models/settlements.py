import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, DECIMAL, Text, JSON
from splitledger.db.database import Base


class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    note = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    paid_by_user_id = Column(String, nullable=False, index=True)  # Reference to users
    received_by_user_id = Column(String, nullable=False, index=True)  # Reference to users
    group_id = Column(String, nullable=True, index=True)  # NULL for individual settlements
    related_expense_ids = Column(JSON, nullable=True)  # Expenses this payment is meant to cover
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
