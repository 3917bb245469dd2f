"""Soft delete, restore, permanent delete and purge of folders and files.

Items move Live -> Trashed -> Purged. Trashed means ``deleted_at`` is set;
purged means the row is gone. Purging a folder removes that folder's row only:
children keep pointing at the removed id.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Union

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.core.config import settings
from drivecore.core.exceptions import NotFoundError
from drivecore.core.security import Actor
from drivecore.models.file import File
from drivecore.models.file_version import FileVersion
from drivecore.models.folder import Folder
from drivecore.services.access_control import require_access
from drivecore.services.activity_logger import log_activity
from drivecore.services.change_notifier import ChangeNotifier, folder_room
from drivecore.utils.blob_store import BlobStore
from drivecore.utils.folder_utils import get_file, get_folder

logger = logging.getLogger(__name__)

_MODELS = {"folder": Folder, "file": File}


@dataclass
class PurgeReport:
    cutoff: datetime
    folders: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    failed: int = 0
    blob_failures: int = 0
    dry_run: bool = False

    @property
    def count(self) -> int:
        return len(self.folders) + len(self.files)


def _model(item_type: str):
    try:
        return _MODELS[item_type]
    except KeyError:
        raise ValueError(f"Unknown item type: {item_type}") from None


def _parent_of(item: Union[Folder, File]) -> Optional[str]:
    return item.parent_id if isinstance(item, Folder) else item.folder_id


def _item_room(item: Union[Folder, File]) -> str:
    return folder_room(item.owner_id, _parent_of(item))


def snapshot(item: Union[Folder, File]) -> dict:
    """Column values of a row, taken before the row is deleted."""
    return {column.key: getattr(item, column.key) for column in item.__mapper__.column_attrs}


def _load_any(db: Session, item_id: str, item_type: str) -> Union[Folder, File]:
    _model(item_type)
    if item_type == "folder":
        item = get_folder(db, item_id, include_deleted=True)
    else:
        item = get_file(db, item_id, include_deleted=True)
    if item is None:
        raise NotFoundError(f"{item_type.capitalize()} not found")
    return item


def _load_trashed(db: Session, item_id: str, item_type: str) -> Union[Folder, File]:
    item = _load_any(db, item_id, item_type)
    if item.deleted_at is None:
        raise NotFoundError(f"{item_type.capitalize()} not found in trash")
    return item


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error while %s", what)
        raise


def soft_delete(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
) -> Union[Folder, File]:
    """Move an item to the trash.

    Trashing an item that is already in the trash sets ``deleted_at`` again,
    which restarts its retention period.
    """
    item = _load_any(db, item_id, item_type)
    require_access(db, actor, item)

    item.deleted_at = datetime.now(timezone.utc)
    _commit(db, f"trashing {item_type} {item_id}")
    db.refresh(item)

    logger.info("Moved %s %s to trash", item_type, item.id)
    log_activity(
        db,
        actor.id,
        f"trash-{item_type}",
        f"{actor.display_name} moved {item_type} \"{item.name}\" to trash",
        folder_id=item.id if item_type == "folder" else item.folder_id,
        file_id=item.id if item_type == "file" else None,
    )
    notifier.publish(_item_room(item), f"{item_type}:trashed", {f"{item_type}_id": item.id})
    return item


def restore(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
) -> Union[Folder, File]:
    """Bring an item back from the trash by clearing ``deleted_at``.

    The item returns under its original name and parent even if a live sibling
    with the same name was created in the meantime.
    """
    item = _load_trashed(db, item_id, item_type)
    require_access(db, actor, item)

    item.deleted_at = None
    _commit(db, f"restoring {item_type} {item_id}")
    db.refresh(item)

    logger.info("Restored %s %s from trash", item_type, item.id)
    log_activity(
        db,
        actor.id,
        f"{item_type}_restored",
        f"{actor.display_name} restored {item_type} \"{item.name}\"",
        folder_id=item.id if item_type == "folder" else item.folder_id,
        file_id=item.id if item_type == "file" else None,
    )
    notifier.publish(_item_room(item), f"{item_type}:restored", {f"{item_type}_id": item.id})
    return item


def _delete_rows(db: Session, item_type: str, item_id: str) -> List[str]:
    """Delete one item's rows and return the blob refs that became garbage.

    Uses query deletes so that a row already removed by a concurrent run is
    a zero-row no-op.
    """
    if item_type == "folder":
        db.query(Folder).filter(Folder.id == item_id).delete(synchronize_session=False)
        return []

    refs = [ref for (ref,) in db.query(File.blob_ref).filter(File.id == item_id).all()]
    refs += [
        ref for (ref,) in db.query(FileVersion.blob_ref).filter(FileVersion.file_id == item_id).all()
    ]
    db.query(FileVersion).filter(FileVersion.file_id == item_id).delete(synchronize_session=False)
    db.query(File).filter(File.id == item_id).delete(synchronize_session=False)
    return refs


def _release_blobs(blob_store: BlobStore, refs: List[str]) -> int:
    """Best-effort blob cleanup after the metadata is gone. Returns failures."""
    failures = 0
    for ref in dict.fromkeys(refs):
        if not blob_store.delete_quietly(ref):
            failures += 1
    return failures


def _purge(db: Session, blob_store: BlobStore, item_type: str, item_id: str) -> int:
    """Delete the rows, then the blobs. Returns the number of blobs left behind."""
    refs = _delete_rows(db, item_type, item_id)
    _commit(db, f"purging {item_type} {item_id}")
    db.expire_all()
    if not refs:
        return 0
    return _release_blobs(blob_store, refs)


def permanent_delete(
    db: Session,
    blob_store: BlobStore,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
) -> dict:
    """Destroy a trashed item. Returns the deleted row's values."""
    item = _load_trashed(db, item_id, item_type)
    require_access(db, actor, item)

    deleted = snapshot(item)
    room = _item_room(item)
    _purge(db, blob_store, item_type, item_id)

    logger.info("Permanently deleted %s %s", item_type, item_id)
    log_activity(
        db,
        actor.id,
        f"{item_type}_deleted_permanently",
        f"{actor.display_name} permanently deleted {item_type} \"{deleted['name']}\"",
        folder_id=item_id if item_type == "folder" else deleted.get("folder_id"),
        file_id=item_id if item_type == "file" else None,
    )
    notifier.publish(room, f"{item_type}:deleted", {f"{item_type}_id": item_id})
    return deleted


def list_trash(db: Session, owner_id: str, item_type: str) -> List[Union[Folder, File]]:
    model = _model(item_type)
    return (
        db.query(model)
        .filter(model.owner_id == owner_id, model.deleted_at.isnot(None))
        .order_by(model.deleted_at.desc())
        .all()
    )


def empty_trash(
    db: Session,
    blob_store: BlobStore,
    notifier: ChangeNotifier,
    actor: Actor,
    item_type: Optional[str] = None,
) -> int:
    """Permanently delete everything in the actor's trash, regardless of age.

    ``item_type`` limits the sweep to folders or files; None empties both.
    """
    item_types = [item_type] if item_type else ["folder", "file"]
    count = 0
    for kind in item_types:
        trashed_ids = [item.id for item in list_trash(db, actor.id, kind)]
        for item_id in trashed_ids:
            _purge(db, blob_store, kind, item_id)
            count += 1

    logger.info("Trash emptied for owner %s: %d items deleted", actor.id, count)
    notifier.publish(
        folder_room(actor.id, None),
        "trash:emptied",
        {"item_type": item_type, "count": count},
    )
    log_activity(
        db,
        actor.id,
        "trash_emptied",
        f"{actor.display_name} emptied the trash ({count} items)",
    )
    return count


def scheduled_purge(
    db: Session,
    blob_store: BlobStore,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
    dry_run: bool = False,
    batch_size: Optional[int] = None,
) -> PurgeReport:
    """Delete every item, of every owner, trashed at or before ``now - retention``.

    Failures on one item are logged and counted; the sweep continues.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if retention_days is None:
        retention_days = settings.trash_retention_days
    cutoff = now - timedelta(days=retention_days)
    report = PurgeReport(cutoff=cutoff, dry_run=dry_run)

    for kind in ("folder", "file"):
        model = _model(kind)
        query = (
            db.query(model.id)
            .filter(model.deleted_at.isnot(None), model.deleted_at <= cutoff)
            .order_by(model.deleted_at.asc())
        )
        if batch_size:
            query = query.limit(batch_size)
        expired = [item_id for (item_id,) in query.all()]

        for item_id in expired:
            if dry_run:
                getattr(report, f"{kind}s").append(item_id)
                continue
            try:
                report.blob_failures += _purge(db, blob_store, kind, item_id)
            except SQLAlchemyError:
                logger.exception("Failed to purge %s %s from trash", kind, item_id)
                report.failed += 1
                continue
            getattr(report, f"{kind}s").append(item_id)

    logger.info(
        "%s %d folders and %d files trashed before %s, %d failed, %d blobs orphaned",
        "Would purge" if dry_run else "Purged",
        len(report.folders),
        len(report.files),
        cutoff.isoformat(),
        report.failed,
        report.blob_failures,
    )
    return report
