"""Validated structural mutations: move and rename.

``move`` runs its checks (destination, cycle, item, access, name) as separate
reads followed by one write. Nothing is locked between the reads and the
write, so two concurrent moves into the same folder can both resolve the same
free name, and a concurrent restructure can invalidate a cycle check that
already passed.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.core.exceptions import CycleError, NotFoundError
from drivecore.core.security import Actor
from drivecore.models.file import File
from drivecore.models.folder import Folder
from drivecore.services.access_control import require_access
from drivecore.services.activity_logger import log_activity
from drivecore.services.change_notifier import ChangeNotifier, file_room, folder_room
from drivecore.utils.folder_utils import (
    get_file,
    get_folder,
    get_live_folder,
    normalize_parent_id,
    would_create_cycle,
)
from drivecore.utils.get_unique_name import NameScope, resolve_unique_name

logger = logging.getLogger(__name__)

ITEM_TYPES = ("file", "folder")


def _parent_of(item: Union[Folder, File]) -> Optional[str]:
    return item.parent_id if isinstance(item, Folder) else item.folder_id


def _load_live_item(db: Session, item_id: str, item_type: str) -> Union[Folder, File]:
    item = get_folder(db, item_id) if item_type == "folder" else get_file(db, item_id)
    if item is None:
        raise NotFoundError(f"{item_type.capitalize()} not found")
    return item


def move(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
    destination_folder_id: Optional[str],
) -> Union[Folder, File]:
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unknown item type: {item_type}")

    destination_id = normalize_parent_id(destination_folder_id)
    destination = None
    if destination_id is not None:
        destination = get_live_folder(db, destination_id, "Destination folder not found")

    if item_type == "folder" and would_create_cycle(db, item_id, destination_id):
        logger.info("Rejected move of folder %s into %s: cycle", item_id, destination_id)
        raise CycleError()

    item = _load_live_item(db, item_id, item_type)
    require_access(db, actor, item)
    if destination is not None and destination.owner_id != item.owner_id:
        raise NotFoundError("Destination folder not found")

    original_name = item.name
    source_id = _parent_of(item)
    unique_name = resolve_unique_name(
        db,
        item.name,
        NameScope(item.owner_id, destination_id, item_type, exclude_id=item.id),
    )

    if isinstance(item, Folder):
        item.parent_id = destination_id
    else:
        item.folder_id = destination_id
    item.name = unique_name
    item.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to move %s %s", item_type, item_id)
        raise
    db.refresh(item)

    renamed = unique_name != original_name
    logger.info(
        "Moved %s %s from %s to %s%s",
        item_type,
        item.id,
        source_id,
        destination_id,
        f" as '{unique_name}'" if renamed else "",
    )

    log_activity(
        db,
        actor.id,
        f"move-{item_type}",
        f"{actor.display_name} moved {item_type} \"{item.name}\""
        + (" (renamed to avoid conflict)" if renamed else ""),
        folder_id=item.id if item_type == "folder" else destination_id,
        file_id=item.id if item_type == "file" else None,
    )

    payload = {
        f"{item_type}_id": item.id,
        "source_folder_id": source_id,
        "destination_folder_id": destination_id,
        "new_name": unique_name,
        "renamed": renamed,
    }
    rooms = [folder_room(item.owner_id, source_id), folder_room(item.owner_id, destination_id)]
    rooms.append(folder_room(item.owner_id, item.id) if item_type == "folder" else file_room(item.id))
    notifier.publish_many(rooms, f"{item_type}:moved", payload)
    return item


def rename(
    db: Session,
    notifier: ChangeNotifier,
    actor: Actor,
    item_id: str,
    item_type: str,
    new_name: str,
) -> Union[Folder, File]:
    """Rename in place. Sibling names are not checked here, unlike create and move."""
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unknown item type: {item_type}")

    item = _load_live_item(db, item_id, item_type)
    require_access(db, actor, item)

    old_name = item.name
    item.name = new_name.strip()
    item.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to rename %s %s", item_type, item_id)
        raise
    db.refresh(item)

    log_activity(
        db,
        actor.id,
        f"rename-{item_type}",
        f"{actor.display_name} renamed {item_type} \"{old_name}\" to \"{item.name}\"",
        folder_id=item.id if item_type == "folder" else item.folder_id,
        file_id=item.id if item_type == "file" else None,
    )
    notifier.publish(
        folder_room(item.owner_id, _parent_of(item)),
        f"{item_type}:renamed",
        {f"{item_type}_id": item.id, "old_name": old_name, "new_name": item.name},
    )
    return item
