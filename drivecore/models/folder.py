import uuid

from sqlalchemy import Column, String, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func
from drivecore.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Folder(Base):
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    # Self reference kept as a plain column: integrity is maintained by the
    # services, and purging a folder leaves its children pointing at it.
    parent_id = Column(String(36), nullable=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    # set when the folder is opened; drives the recent folders listing
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    is_starred = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    folder_metadata = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_folders_owner_parent_name", "owner_id", "parent_id", "name"),
    )
