import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.orm import Session

from drivecore.core.database import get_db
from drivecore.core.dependencies import get_blob_store, get_notifier
from drivecore.core.security import Actor, get_current_actor
from drivecore.schemas.activity import ActivityListResponse
from drivecore.schemas.file import (
    FileListResponse,
    FileResult,
    FileVersionListResponse,
    RenameFileRequest,
    RestoreFileRequest,
)
from drivecore.schemas.item import CountResponse, MoveItemRequest
from drivecore.services import item_service, move_coordinator, trash_manager, version_manager
from drivecore.services.activity_logger import item_activity
from drivecore.services.change_notifier import ChangeNotifier
from drivecore.utils.blob_store import BlobStore
from drivecore.utils.file_handling import read_upload
from drivecore.utils.folder_utils import list_files, list_starred, normalize_parent_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=FileResult)
async def upload(
    file: UploadFile = File(...),
    folder_id: Optional[str] = Form(None, alias="folderId"),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    content = await read_upload(file)
    logger.info("Upload %s (%d bytes) by %s", content.name, content.size, actor.id)
    saved = item_service.upload_file(
        db, blob_store, notifier, actor, content, normalize_parent_id(folder_id)
    )
    return {"file": saved}


@router.get("", response_model=FileListResponse)
async def get_files(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    folder_id = normalize_parent_id(folder_id)
    if folder_id is None:
        return {"files": list_files(db, actor.id, None)}

    folder = item_service.visible_folder(db, actor, folder_id)
    return {"files": list_files(db, folder.owner_id, folder.id)}


@router.get("/trash", response_model=FileListResponse)
async def get_trashed_files(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"files": trash_manager.list_trash(db, actor.id, "file")}


@router.post("/empty-trash", response_model=CountResponse)
async def empty_file_trash(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"count": trash_manager.empty_trash(db, blob_store, notifier, actor, "file")}


@router.get("/starred", response_model=FileListResponse)
async def get_starred_files(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"files": list_starred(db, actor.id, "file")}


@router.get("/{file_id}", response_model=FileResult)
async def get_file(
    file_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"file": item_service.visible_file(db, actor, file_id)}


@router.patch("/{file_id}", response_model=FileResult)
async def rename_file(
    file_id: str,
    body: RenameFileRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"file": move_coordinator.rename(db, notifier, actor, file_id, "file", body.name)}


@router.post("/{file_id}/star", response_model=FileResult)
async def star_file(
    file_id: str,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"file": item_service.toggle_star(db, notifier, actor, file_id, "file")}


@router.patch("/{file_id}/move", response_model=FileResult)
async def move_file(
    file_id: str,
    body: MoveItemRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    moved = move_coordinator.move(db, notifier, actor, file_id, "file", body.destination_folder_id)
    return {"file": moved}


@router.delete("/{file_id}", response_model=FileResult)
async def delete_file(
    file_id: str,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    return {"file": trash_manager.soft_delete(db, notifier, actor, file_id, "file")}


# With a versionId this restores a version, otherwise it restores from trash
@router.post("/{file_id}/restore", response_model=FileResult)
async def restore_file(
    file_id: str,
    body: Optional[RestoreFileRequest] = Body(None),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    if body is not None and body.version_id:
        restored = version_manager.restore_version(db, notifier, actor, file_id, body.version_id)
    else:
        restored = trash_manager.restore(db, notifier, actor, file_id, "file")
    return {"file": restored}


@router.delete("/{file_id}/permanent", response_model=FileResult)
async def delete_file_permanently(
    file_id: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    deleted = trash_manager.permanent_delete(db, blob_store, notifier, actor, file_id, "file")
    return {"file": deleted}


@router.post("/{file_id}/version", response_model=FileResult)
async def upload_version(
    file_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: ChangeNotifier = Depends(get_notifier),
    actor: Actor = Depends(get_current_actor),
):
    content = await read_upload(file)
    updated = version_manager.record_new_version(db, blob_store, notifier, actor, file_id, content)
    return {"file": updated}


@router.get("/{file_id}/versions", response_model=FileVersionListResponse)
async def get_versions(
    file_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"versions": version_manager.list_versions(db, actor, file_id)}


@router.get("/{file_id}/download")
async def download(
    file_id: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    actor: Actor = Depends(get_current_actor),
):
    file, data = item_service.download_file(db, blob_store, actor, file_id)
    return Response(
        content=data,
        media_type=file.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file.name)}"},
    )


@router.get("/{file_id}/activity", response_model=ActivityListResponse)
async def get_file_activity(
    file_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    file = item_service.visible_file(db, actor, file_id)
    return {"activities": item_activity(db, file.id)}
