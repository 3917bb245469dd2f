import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from drivecore.core.config import settings
from drivecore.core.exceptions import DuplicateNameError, NotFoundError
from drivecore.models.access_control import AccessControl
from drivecore.models.file import File
from drivecore.models.folder import Folder
from drivecore.utils.get_unique_name import NameScope, name_taken

logger = logging.getLogger(__name__)

ROOT = "root"


def normalize_parent_id(value: Optional[str]) -> Optional[str]:
    """Map the root sentinels ("root", "null", "") to None."""
    if value is None or value in (ROOT, "null", ""):
        return None
    return value


def get_folder(db: Session, folder_id: str, include_deleted: bool = False) -> Optional[Folder]:
    query = db.query(Folder).filter(Folder.id == folder_id)
    if not include_deleted:
        query = query.filter(Folder.deleted_at.is_(None))
    return query.first()


def get_live_folder(db: Session, folder_id: str, detail: str = "Folder not found") -> Folder:
    folder = get_folder(db, folder_id)
    if not folder:
        raise NotFoundError(detail)
    return folder


def get_file(db: Session, file_id: str, include_deleted: bool = False) -> Optional[File]:
    query = db.query(File).filter(File.id == file_id)
    if not include_deleted:
        query = query.filter(File.deleted_at.is_(None))
    return query.first()


def get_live_file(db: Session, file_id: str) -> File:
    file = get_file(db, file_id)
    if not file:
        raise NotFoundError("File not found")
    return file


def would_create_cycle(
    db: Session,
    moving_folder_id: str,
    destination_folder_id: Optional[str],
    max_depth: Optional[int] = None,
) -> bool:
    """True if placing ``moving_folder_id`` under the destination closes a loop.

    Walks parent pointers upward from the destination one row at a time. A
    walk longer than ``max_depth`` means the stored tree is already corrupt
    and is reported as a cycle.
    """
    if max_depth is None:
        max_depth = settings.max_ancestor_depth

    current_id = destination_folder_id
    hops = 0
    while current_id is not None:
        if current_id == moving_folder_id:
            return True
        if hops >= max_depth:
            logger.error(
                "Ancestor walk from folder %s exceeded %d hops",
                destination_folder_id,
                max_depth,
            )
            return True
        current_id = db.query(Folder.parent_id).filter(Folder.id == current_id).scalar()
        hops += 1
    return False


def folder_path(db: Session, folder: Folder, max_depth: Optional[int] = None) -> List[Dict[str, str]]:
    """Breadcrumb from the root down to ``folder``."""
    if max_depth is None:
        max_depth = settings.max_ancestor_depth

    path = []
    current = folder
    while current is not None and len(path) < max_depth:
        path.insert(0, {"id": current.id, "name": current.name})
        if current.parent_id is None:
            break
        current = db.query(Folder).filter(Folder.id == current.parent_id).first()
    return path


def list_folders(db: Session, owner_id: str, parent_id: Optional[str]) -> List[Folder]:
    query = db.query(Folder).filter(
        Folder.owner_id == owner_id,
        Folder.deleted_at.is_(None),
    )
    if parent_id is None:
        query = query.filter(Folder.parent_id.is_(None))
    else:
        query = query.filter(Folder.parent_id == parent_id)
    return query.order_by(Folder.created_at.asc(), Folder.name.asc()).all()


def list_files(db: Session, owner_id: str, folder_id: Optional[str]) -> List[File]:
    query = db.query(File).filter(
        File.owner_id == owner_id,
        File.deleted_at.is_(None),
    )
    if folder_id is None:
        query = query.filter(File.folder_id.is_(None))
    else:
        query = query.filter(File.folder_id == folder_id)
    return query.order_by(File.updated_at.desc()).all()


def list_starred(db: Session, owner_id: str, item_type: str) -> List[Union[Folder, File]]:
    model = Folder if item_type == "folder" else File
    return (
        db.query(model)
        .filter(
            model.owner_id == owner_id,
            model.is_starred.is_(True),
            model.deleted_at.is_(None),
        )
        .order_by(model.updated_at.desc())
        .all()
    )


def list_recent_folders(db: Session, owner_id: str, limit: int = 10) -> List[Folder]:
    """Live folders the owner opened, most recently opened first."""
    return (
        db.query(Folder)
        .filter(
            Folder.owner_id == owner_id,
            Folder.deleted_at.is_(None),
            Folder.last_accessed_at.isnot(None),
        )
        .order_by(Folder.last_accessed_at.desc())
        .limit(limit)
        .all()
    )


def list_shared_folders(db: Session, user_id: str) -> List[Folder]:
    """Live folders someone else granted ``user_id`` access to."""
    granted = select(AccessControl.folder_id).where(
        AccessControl.user_id == user_id,
        AccessControl.folder_id.isnot(None),
    )
    return (
        db.query(Folder)
        .filter(
            Folder.id.in_(granted),
            Folder.owner_id != user_id,
            Folder.deleted_at.is_(None),
        )
        .order_by(Folder.updated_at.desc())
        .all()
    )


def folder_stats(db: Session, folder: Folder) -> dict:
    live_files = (File.folder_id == folder.id, File.deleted_at.is_(None))

    total_size = db.query(func.coalesce(func.sum(File.size), 0)).filter(*live_files).scalar()
    by_type = (
        db.query(File.mime_type, func.count(File.id))
        .filter(*live_files)
        .group_by(File.mime_type)
        .all()
    )
    last_modified = db.query(func.max(File.updated_at)).filter(*live_files).scalar()

    return {
        "total_size": int(total_size or 0),
        "file_types": [{"mime_type": mime, "count": count} for mime, count in by_type],
        "last_modified": last_modified,
    }


def create_folder(
    db: Session,
    owner_id: str,
    name: str,
    parent_id: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Folder:
    """Create a folder, rejecting a live sibling with the same name."""
    name = name.strip()
    if parent_id is not None:
        parent = get_live_folder(db, parent_id, "Parent folder not found")
        if parent.owner_id != owner_id:
            raise NotFoundError("Parent folder not found")

    if name_taken(db, name, NameScope(owner_id, parent_id, "folder")):
        raise DuplicateNameError(name, "folder")

    now = datetime.now(timezone.utc)
    new_folder = Folder(
        name=name,
        parent_id=parent_id,
        owner_id=owner_id,
        folder_metadata=metadata or {},
        tags=[],
        created_at=now,
        updated_at=now,
    )

    try:
        db.add(new_folder)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create folder %s under %s", name, parent_id)
        raise

    db.refresh(new_folder)
    logger.info("Created folder %s (%s) for owner %s", new_folder.name, new_folder.id, owner_id)
    return new_folder
