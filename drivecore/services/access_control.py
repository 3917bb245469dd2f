from typing import Union

from sqlalchemy.orm import Session

from drivecore.core.exceptions import AccessDeniedError
from drivecore.core.security import Actor
from drivecore.models.access_control import AccessControl, AccessLevel
from drivecore.models.file import File
from drivecore.models.folder import Folder


def has_access(
    db: Session,
    actor: Actor,
    item: Union[Folder, File],
    required: AccessLevel = AccessLevel.EDITOR,
) -> bool:
    if item.owner_id == actor.id or actor.access_level >= AccessLevel.ADMIN:
        return True

    grants = db.query(AccessControl).filter(
        AccessControl.user_id == actor.id,
        AccessControl.level >= int(required),
    )
    if isinstance(item, Folder):
        grants = grants.filter(AccessControl.folder_id == item.id)
    else:
        # A grant on the containing folder covers the files directly in it
        if item.folder_id is not None:
            grants = grants.filter(
                (AccessControl.file_id == item.id) | (AccessControl.folder_id == item.folder_id)
            )
        else:
            grants = grants.filter(AccessControl.file_id == item.id)
    return grants.first() is not None


def require_access(
    db: Session,
    actor: Actor,
    item: Union[Folder, File],
    required: AccessLevel = AccessLevel.EDITOR,
) -> None:
    if not has_access(db, actor, item, required):
        raise AccessDeniedError("You do not have permission to modify this item")
