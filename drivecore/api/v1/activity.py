from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drivecore.core.database import get_db
from drivecore.core.security import Actor, get_current_actor
from drivecore.schemas.activity import ActivityListResponse
from drivecore.services.activity_logger import recent_activity

router = APIRouter()


# The actor's own latest actions, newest first
@router.get("/recent", response_model=ActivityListResponse)
async def get_recent_activity(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"activities": recent_activity(db, actor.id)}
