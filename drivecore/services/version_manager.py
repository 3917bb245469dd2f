"""File version history.

A new upload first snapshots the file's current state into a FileVersion,
then overwrites the file row. Restoring a version copies it back onto the
file without snapshotting the state it replaces, so that state is lost unless
an earlier upload already captured it.
"""

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.core.exceptions import NotFoundError
from drivecore.core.security import Actor
from drivecore.models.access_control import AccessLevel
from drivecore.models.file import File
from drivecore.models.file_version import FileVersion
from drivecore.services.access_control import require_access
from drivecore.services.activity_logger import log_activity
from drivecore.services.change_notifier import ChangeNotifier, file_room, folder_room
from drivecore.utils.blob_store import BlobStore, build_blob_key, stored_blob
from drivecore.utils.file_handling import IncomingContent
from drivecore.utils.folder_utils import get_file, get_live_file

logger = logging.getLogger(__name__)


def _announce(notifier: ChangeNotifier, file: File, event: str, payload: dict) -> None:
    notifier.publish_many(
        [file_room(file.id), folder_room(file.owner_id, file.folder_id)],
        event,
        payload,
    )


def snapshot_current(db: Session, file: File, now: datetime) -> FileVersion:
    version = FileVersion(
        file_id=file.id,
        name=file.name,
        size=file.size,
        mime_type=file.mime_type,
        blob_ref=file.blob_ref,
        created_at=now,
    )
    db.add(version)
    return version


def record_new_version(
    db: Session,
    blob_store: BlobStore,
    notifier: ChangeNotifier,
    actor: Actor,
    file_id: str,
    content: IncomingContent,
) -> File:
    file = get_live_file(db, file_id)
    require_access(db, actor, file)

    key = build_blob_key(file.owner_id, content.name)
    with stored_blob(blob_store, key, content.data) as blob_ref:
        now = datetime.now(timezone.utc)
        version = snapshot_current(db, file, now)

        file.name = content.name
        file.size = content.size
        file.mime_type = content.mime_type
        file.blob_ref = blob_ref
        file.updated_at = now
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to record new version of file %s", file_id)
            raise

    db.refresh(file)
    logger.info("File %s superseded; previous state kept as version %s", file.id, version.id)

    log_activity(
        db,
        actor.id,
        "upload",
        f"{actor.display_name} uploaded a new version of \"{file.name}\"",
        folder_id=file.folder_id,
        file_id=file.id,
    )
    _announce(notifier, file, "file:version_uploaded", {"file_id": file.id, "version_id": version.id})
    return file


def list_versions(db: Session, actor: Actor, file_id: str) -> List[FileVersion]:
    """Versions of a file, newest first. Empty once the file is gone."""
    file = get_file(db, file_id, include_deleted=True)
    if file is not None:
        require_access(db, actor, file, AccessLevel.VIEWER)

    return (
        db.query(FileVersion)
        .filter(FileVersion.file_id == file_id)
        .order_by(FileVersion.created_at.desc())
        .all()
    )


def restore_version(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    file_id: str,
    version_id: str,
) -> File:
    file = get_live_file(db, file_id)
    require_access(db, actor, file)

    version = (
        db.query(FileVersion)
        .filter(FileVersion.id == version_id, FileVersion.file_id == file_id)
        .first()
    )
    if not version:
        raise NotFoundError("Version not found")

    file.name = version.name
    file.size = version.size
    file.mime_type = version.mime_type
    file.blob_ref = version.blob_ref
    file.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to restore version %s of file %s", version_id, file_id)
        raise
    db.refresh(file)

    logger.info("File %s restored to version %s", file.id, version.id)
    log_activity(
        db,
        actor.id,
        "restore",
        f"{actor.display_name} restored a previous version of \"{file.name}\"",
        folder_id=file.folder_id,
        file_id=file.id,
    )
    _announce(notifier, file, "file:version_restored", {"file_id": file.id, "version_id": version.id})
    return file
