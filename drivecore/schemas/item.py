from typing import Optional
from pydantic import BaseModel, Field


class MoveItemRequest(BaseModel):
    destination_folder_id: Optional[str] = Field(
        ...,
        alias="destinationFolderId",
        description='Target folder id; null, "root" or "" for the owner\'s root',
    )
    model_config = {"populate_by_name": True}


class CountResponse(BaseModel):
    count: int = Field(..., description="Number of items affected")
