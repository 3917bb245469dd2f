import enum
import uuid

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from drivecore.core.database import Base


class AccessLevel(enum.IntEnum):
    VIEWER = 1
    EDITOR = 2
    OWNER = 3
    ADMIN = 4


class AccessControl(Base):
    """Grant of an access level on one folder or one file to a user."""

    __tablename__ = "access_controls"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    folder_id = Column(String(36), nullable=True, index=True)
    file_id = Column(String(36), nullable=True, index=True)
    level = Column(Integer, nullable=False, default=AccessLevel.VIEWER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
