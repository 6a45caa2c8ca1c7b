import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, DECIMAL, Text, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from splitledger.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    category = Column(String(100), nullable=True)
    paid_by_user_id = Column(String, nullable=False, index=True)  # Reference to users
    group_id = Column(String, nullable=True, index=True)  # NULL for individual expenses
    split_type = Column(String(20), nullable=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    splits = relationship(
        "ExpenseSplit",
        cascade="all, delete-orphan",
        order_by="ExpenseSplit.position",
        lazy="selectin"
    )


class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    user_id = Column(String, nullable=False, index=True)  # Reference to users
    amount = Column(DECIMAL(12, 2), nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
