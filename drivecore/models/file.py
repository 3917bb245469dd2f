import uuid

from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Index
from sqlalchemy.sql import func
from drivecore.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class File(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    # None means the owner's root
    folder_id = Column(String(36), nullable=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=False, default="application/octet-stream")
    blob_ref = Column(String(512), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    is_starred = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_files_owner_folder_name", "owner_id", "folder_id", "name"),
    )
