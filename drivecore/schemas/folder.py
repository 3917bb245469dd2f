from __future__ import annotations
from drivecore.schemas.file import GetFileResponse
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional, List
from datetime import datetime


class CreateFolderRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="The name of the folder")
    parent_id: Optional[str] = Field(
        None, alias="parentId", description='The parent folder id; null or "root" for the root'
    )
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form folder metadata")
    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class UpdateFolderRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="The name of the folder")
    is_public: Optional[bool] = Field(None, alias="isPublic", description="Whether anyone may view the folder")
    tags: Optional[List[str]] = Field(None, description="Replacement tag list")
    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class FolderTagsRequest(BaseModel):
    tags: List[str] = Field(..., description="Replacement tag list")


class GetFolderResponse(BaseModel):
    id: str = Field(..., description="The id of the folder")
    name: str = Field(..., description="The name of the folder")
    parent_id: Optional[str] = Field(None, description="The parent folder id, null for the owner's root")
    owner_id: str = Field(..., description="The user id who owns the folder")
    is_starred: bool = Field(False, description="Whether the owner starred the folder")
    is_public: bool = Field(False, description="Whether anyone may view the folder")
    tags: List[str] = Field(default_factory=list)
    folder_metadata: Optional[Dict[str, Any]] = Field(
        default_factory=dict, serialization_alias="metadata", description="Free-form folder metadata"
    )
    deleted_at: Optional[datetime] = Field(None, description="When the folder was moved to trash")
    last_accessed_at: Optional[datetime] = Field(None, description="When the folder was last opened")
    created_at: Optional[datetime] = Field(None, description="The creation time of the folder")
    updated_at: Optional[datetime] = Field(None, description="The update time of the folder")
    model_config = {"from_attributes": True}


class FolderResult(BaseModel):
    folder: GetFolderResponse


class FolderListResponse(BaseModel):
    folders: List[GetFolderResponse]


class GetFolderChildrenReponse(BaseModel):
    folders: List[GetFolderResponse]
    files: List[GetFileResponse]


class PathEntry(BaseModel):
    id: str
    name: str


class FolderPathResponse(BaseModel):
    path: List[PathEntry]


class FileTypeCount(BaseModel):
    mime_type: str
    count: int


class FolderStatsResponse(BaseModel):
    total_size: int = Field(..., description="Sum of the sizes of the folder's live files")
    file_types: List[FileTypeCount] = Field(default_factory=list)
    last_modified: Optional[datetime] = Field(None, description="Latest update among the folder's live files")
