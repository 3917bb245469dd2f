import uuid

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from drivecore.core.database import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(64), nullable=False, index=True)
    folder_id = Column(String(36), nullable=True, index=True)
    file_id = Column(String(36), nullable=True, index=True)
    action = Column(String(64), nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
