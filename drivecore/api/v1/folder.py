from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from drivecore.core.database import get_db
from drivecore.core.dependencies import get_blob_store, get_notifier
from drivecore.core.security import Actor, get_current_actor
from drivecore.schemas.folder import (
    CreateFolderRequest,
    FolderListResponse,
    FolderPathResponse,
    FolderResult,
    FolderStatsResponse,
    FolderTagsRequest,
    GetFolderChildrenReponse,
    UpdateFolderRequest,
)
from drivecore.schemas.item import CountResponse, MoveItemRequest
from drivecore.services import item_service, move_coordinator, trash_manager
from drivecore.services.change_notifier import ChangeNotifier
from drivecore.utils.blob_store import BlobStore
from drivecore.utils.folder_utils import (
    folder_path,
    folder_stats,
    list_files,
    list_folders,
    list_recent_folders,
    list_shared_folders,
    list_starred,
    normalize_parent_id,
)

router = APIRouter()


@router.post("", response_model=FolderResult)
async def create_folder(
    body: CreateFolderRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    folder = item_service.new_folder(
        db,
        notifier,
        actor,
        body.name,
        normalize_parent_id(body.parent_id),
        body.metadata,
    )
    return {"folder": folder}


# Direct child folders of parentId, or of the actor's root
@router.get("", response_model=FolderListResponse)
async def get_folders(
    parent_id: Optional[str] = Query(None, alias="parentId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    parent_id = normalize_parent_id(parent_id)
    if parent_id is None:
        return {"folders": list_folders(db, actor.id, None)}

    parent = item_service.visible_folder(db, actor, parent_id)
    return {"folders": list_folders(db, parent.owner_id, parent.id)}


@router.get("/trash", response_model=FolderListResponse)
async def get_trashed_folders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"folders": trash_manager.list_trash(db, actor.id, "folder")}


@router.post("/empty-trash", response_model=CountResponse)
async def empty_folder_trash(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    count = trash_manager.empty_trash(db, blob_store, notifier, actor, "folder")
    return {"count": count}


@router.get("/starred", response_model=FolderListResponse)
async def get_starred_folders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"folders": list_starred(db, actor.id, "folder")}


# The ten folders the actor opened most recently
@router.get("/recent", response_model=FolderListResponse)
async def get_recent_folders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"folders": list_recent_folders(db, actor.id)}


@router.get("/shared", response_model=FolderListResponse)
async def get_shared_folders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"folders": list_shared_folders(db, actor.id)}


@router.get("/{folder_id}", response_model=FolderResult)
async def get_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"folder": item_service.visible_folder(db, actor, folder_id)}


# Get folder's DIRECT children, include sub folders and files
@router.get("/{folder_id}/contents", response_model=GetFolderChildrenReponse)
async def get_folder_children(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    folder = item_service.open_folder(db, actor, folder_id)
    return {
        "folders": list_folders(db, folder.owner_id, folder.id),
        "files": list_files(db, folder.owner_id, folder.id),
    }


@router.get("/{folder_id}/path", response_model=FolderPathResponse)
async def get_folder_path(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    folder = item_service.visible_folder(db, actor, folder_id)
    return {"path": folder_path(db, folder)}


@router.get("/{folder_id}/stats", response_model=FolderStatsResponse)
async def get_folder_stats(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    folder = item_service.visible_folder(db, actor, folder_id)
    return folder_stats(db, folder)


# change folder name, visibility or tags; moving goes through /move
@router.patch("/{folder_id}", response_model=FolderResult)
async def update_folder(
    folder_id: str,
    body: UpdateFolderRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    folder = None
    if body.name is not None:
        folder = move_coordinator.rename(db, notifier, actor, folder_id, "folder", body.name)
    if folder is None or body.is_public is not None or body.tags is not None:
        folder = item_service.update_folder(
            db, notifier, actor, folder_id, is_public=body.is_public, tags=body.tags
        )
    return {"folder": folder}


@router.post("/{folder_id}/tags", response_model=FolderResult)
async def set_folder_tags(
    folder_id: str,
    body: FolderTagsRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    folder = item_service.update_folder(db, notifier, actor, folder_id, tags=body.tags)
    return {"folder": folder}


@router.post("/{folder_id}/star", response_model=FolderResult)
async def star_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"folder": item_service.toggle_star(db, notifier, actor, folder_id, "folder")}


@router.patch("/{folder_id}/move", response_model=FolderResult)
async def move_folder(
    folder_id: str,
    body: MoveItemRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    folder = move_coordinator.move(
        db, notifier, actor, folder_id, "folder", body.destination_folder_id
    )
    return {"folder": folder}


# Soft delete folder
@router.delete("/{folder_id}", response_model=FolderResult)
async def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"folder": trash_manager.soft_delete(db, notifier, actor, folder_id, "folder")}


@router.post("/{folder_id}/restore", response_model=FolderResult)
async def restore_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"folder": trash_manager.restore(db, notifier, actor, folder_id, "folder")}


@router.delete("/{folder_id}/permanent", response_model=FolderResult)
async def delete_folder_permanently(
    folder_id: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    deleted = trash_manager.permanent_delete(db, blob_store, notifier, actor, folder_id, "folder")
    return {"folder": deleted}
