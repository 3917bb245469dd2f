import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.core.exceptions import DuplicateNameError, NotFoundError
from drivecore.core.security import Actor
from drivecore.models.file import File
from drivecore.models.folder import Folder
from drivecore.models.access_control import AccessLevel
from drivecore.services.access_control import has_access, require_access
from drivecore.services.activity_logger import log_activity
from drivecore.services.change_notifier import ChangeNotifier, file_room, folder_room
from drivecore.utils.blob_store import BlobStore, build_blob_key, stored_blob
from drivecore.utils.file_handling import IncomingContent
from drivecore.utils.folder_utils import (
    create_folder,
    get_live_file,
    get_live_folder,
)
from drivecore.utils.get_unique_name import NameScope, name_taken

logger = logging.getLogger(__name__)


def new_folder(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    name: str,
    parent_id: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Folder:
    folder = create_folder(db, actor.id, name, parent_id, metadata)

    log_activity(
        db,
        actor.id,
        "create-folder",
        f"{actor.display_name} created folder \"{folder.name}\"",
        folder_id=folder.id,
    )
    notifier.publish(
        folder_room(actor.id, parent_id),
        "folder:created",
        {"folder_id": folder.id, "name": folder.name, "parent_id": parent_id},
    )
    return folder


def upload_file(
    db: Session,
    blob_store: BlobStore,
    notifier: ChangeNotifier,
    actor: Actor,
    content: IncomingContent,
    folder_id: Optional[str] = None,
) -> File:
    """Create a file: validate, store the bytes, then commit the metadata.

    A duplicate live name in the target folder is rejected before anything is
    written. If the metadata commit fails the stored blob is deleted again.
    """
    owner_id = actor.id
    if folder_id is not None:
        folder = get_live_folder(db, folder_id)
        require_access(db, actor, folder)
        owner_id = folder.owner_id

    if name_taken(db, content.name, NameScope(owner_id, folder_id, "file")):
        logger.warning("Duplicate file name %s in folder %s", content.name, folder_id)
        raise DuplicateNameError(content.name, "file")

    key = build_blob_key(owner_id, content.name)
    with stored_blob(blob_store, key, content.data) as blob_ref:
        now = datetime.now(timezone.utc)
        saved = File(
            name=content.name,
            folder_id=folder_id,
            owner_id=owner_id,
            size=content.size,
            mime_type=content.mime_type,
            blob_ref=blob_ref,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(saved)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to save file record for %s", content.name)
            raise

    db.refresh(saved)
    logger.info("File saved: %s (%s, %d bytes)", saved.name, saved.id, saved.size)

    log_activity(
        db,
        actor.id,
        "upload",
        f"{actor.display_name} uploaded {saved.name}",
        folder_id=folder_id,
        file_id=saved.id,
    )
    notifier.publish(
        folder_room(owner_id, folder_id),
        "file:created",
        {"file_id": saved.id, "name": saved.name, "folder_id": folder_id},
    )
    return saved


def toggle_star(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
) -> Union[Folder, File]:
    item = get_live_folder(db, item_id) if item_type == "folder" else get_live_file(db, item_id)
    require_access(db, actor, item)

    item.is_starred = not item.is_starred
    item.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(item)

    verb = "starred" if item.is_starred else "unstarred"
    log_activity(
        db,
        actor.id,
        f"star-{item_type}",
        f"{actor.display_name} {verb} {item_type} \"{item.name}\"",
        folder_id=item.id if item_type == "folder" else item.folder_id,
        file_id=item.id if item_type == "file" else None,
    )
    room = folder_room(item.owner_id, item.id) if item_type == "folder" else file_room(item.id)
    notifier.publish(
        room,
        f"{item_type}:starred",
        {f"{item_type}_id": item.id, "is_starred": item.is_starred},
    )
    return item


def update_folder(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    folder_id: str,
    is_public: Optional[bool] = None,
    tags: Optional[List[str]] = None,
) -> Folder:
    """Update the non-structural attributes of a folder. Renames go through the coordinator."""
    folder = get_live_folder(db, folder_id)
    require_access(db, actor, folder)

    if is_public is not None:
        folder.is_public = is_public
    if tags is not None:
        # de-duplicate, keep first-seen order
        folder.tags = list(dict.fromkeys(tag.strip() for tag in tags if tag.strip()))
    folder.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(folder)

    notifier.publish(
        folder_room(folder.owner_id, folder.id),
        "folder:updated",
        {"folder_id": folder.id, "is_public": folder.is_public, "tags": folder.tags},
    )
    return folder


def visible_folder(db: Session, actor: Actor, folder_id: str) -> Folder:
    folder = get_live_folder(db, folder_id)
    if not (folder.is_public or has_access(db, actor, folder, AccessLevel.VIEWER)):
        raise NotFoundError("Folder not found")
    return folder


def visible_file(db: Session, actor: Actor, file_id: str) -> File:
    file = get_live_file(db, file_id)
    if not has_access(db, actor, file, AccessLevel.VIEWER):
        raise NotFoundError("File not found")
    return file


def open_folder(db: Session, actor: Actor, folder_id: str) -> Folder:
    """Resolve a visible folder and stamp it as recently opened."""
    folder = visible_folder(db, actor, folder_id)
    folder.last_accessed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(folder)
    return folder


def download_file(db: Session, blob_store: BlobStore, actor: Actor, file_id: str) -> Tuple[File, bytes]:
    file = visible_file(db, actor, file_id)
    data = blob_store.get(file.blob_ref)

    log_activity(
        db,
        actor.id,
        "download",
        f"{actor.display_name} downloaded {file.name}",
        folder_id=file.folder_id,
        file_id=file.id,
    )
    return file, data
