from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from drivecore.models.file import File
from drivecore.models.folder import Folder


@dataclass(frozen=True)
class NameScope:
    """Sibling scope a name must be unique in."""

    owner_id: str
    parent_id: Optional[str]
    item_type: str  # "file" or "folder"
    exclude_id: Optional[str] = None


def split_name(name: str) -> Tuple[str, str]:
    """Split at the last dot: ``"report.final.pdf"`` -> ``("report.final", ".pdf")``.

    A leading dot (``".env"``) is part of the stem, not an extension.
    """
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot:]


def candidate_name(base_name: str, attempt: int) -> str:
    if attempt == 0:
        return base_name
    stem, extension = split_name(base_name)
    return f"{stem} ({attempt}){extension}"


def name_taken(db: Session, name: str, scope: NameScope) -> bool:
    if scope.item_type == "folder":
        model, parent_column = Folder, Folder.parent_id
    else:
        model, parent_column = File, File.folder_id

    filters = [
        model.owner_id == scope.owner_id,
        model.name == name,
        model.deleted_at.is_(None),
    ]
    if scope.parent_id is None:
        filters.append(parent_column.is_(None))
    else:
        filters.append(parent_column == scope.parent_id)
    if scope.exclude_id is not None:
        filters.append(model.id != scope.exclude_id)

    return db.query(model.id).filter(*filters).first() is not None


def resolve_unique_name(db: Session, base_name: str, scope: NameScope) -> str:
    """Return ``base_name`` or the first free ``stem (n)ext`` among live siblings.

    Every candidate is checked with a separate query, so two concurrent callers can both be
    handed the same name.
    """
    base_name = base_name.strip()
    attempt = 0
    while name_taken(db, candidate_name(base_name, attempt), scope):
        attempt += 1
    return candidate_name(base_name, attempt)
