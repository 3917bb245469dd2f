from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class GetFileResponse(BaseModel):
    id: str = Field(..., description="Unique identifier of the file")
    name: str = Field(..., description="Display name, unique among live siblings after a move")
    folder_id: Optional[str] = Field(None, description="Containing folder, null for the owner's root")
    owner_id: str = Field(..., description="ID of the owning user")
    size: int = Field(..., description="Size of the current content in bytes")
    mime_type: str = Field(..., description="MIME type of the current content")
    blob_ref: str = Field(..., description="Reference of the current content in the blob store")
    is_starred: bool = Field(False, description="Whether the owner starred the file")
    deleted_at: Optional[datetime] = Field(None, description="When the file was moved to trash")
    created_at: Optional[datetime] = Field(None, description="Timestamp when the file was created")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when the file was last updated")
    model_config = {"from_attributes": True}


class FileResult(BaseModel):
    file: GetFileResponse


class FileListResponse(BaseModel):
    files: List[GetFileResponse]


class RenameFileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="The new name of the file")
    model_config = {"str_strip_whitespace": True}


class RestoreFileRequest(BaseModel):
    version_id: Optional[str] = Field(
        None,
        alias="versionId",
        description="Restore this version instead of restoring the file from trash",
    )
    model_config = {"populate_by_name": True}


class FileVersionResponse(BaseModel):
    id: str = Field(..., description="Unique identifier of the version")
    file_id: str = Field(..., description="The file this version belongs to")
    name: str
    size: int
    mime_type: str
    blob_ref: str
    created_at: Optional[datetime] = Field(None, description="When the snapshot was taken")
    model_config = {"from_attributes": True}


class FileVersionListResponse(BaseModel):
    versions: List[FileVersionResponse]
