import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.models.activity import Activity

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    actor_id: str,
    action: str,
    message: str,
    folder_id: Optional[str] = None,
    file_id: Optional[str] = None,
) -> Optional[Activity]:
    """Append an activity row after a mutation has been committed.

    Fire-and-forget: a failure is logged and rolled back, never raised, so it
    cannot undo or fail the mutation it describes.
    """
    entry = Activity(
        actor_id=actor_id,
        folder_id=folder_id,
        file_id=file_id,
        action=action,
        message=message,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record activity %s for %s", action, actor_id)
        return None
    return entry


def recent_activity(db: Session, actor_id: str, limit: int = 20) -> List[Activity]:
    return (
        db.query(Activity)
        .filter(Activity.actor_id == actor_id)
        .order_by(Activity.created_at.desc())
        .limit(limit)
        .all()
    )


def item_activity(db: Session, file_id: str) -> List[Activity]:
    """Everything recorded against one file, by any actor, newest first."""
    return (
        db.query(Activity)
        .filter(Activity.file_id == file_id)
        .order_by(Activity.created_at.desc())
        .all()
    )
