import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime
from splitledger.db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)  # Subject of the access token
    name = Column(String(200), nullable=False, index=True)
    email = Column(String, nullable=True, index=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
