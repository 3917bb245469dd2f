import uuid

from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey
from sqlalchemy.sql import func
from drivecore.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class FileVersion(Base):
    """Immutable snapshot of a file's content metadata before an overwrite."""

    __tablename__ = "file_versions"

    id = Column(String(36), primary_key=True, default=_new_id)
    file_id = Column(
        String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=False)
    blob_ref = Column(String(512), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
