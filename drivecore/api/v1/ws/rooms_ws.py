import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from drivecore.core.database import get_db
from drivecore.core.exceptions import DriveError
from drivecore.core.security import Actor, actor_from_payload, verify_token
from drivecore.services.change_notifier import WebSocketSubscriber
from drivecore.services.item_service import visible_file, visible_folder

router = APIRouter()
logger = logging.getLogger(__name__)


def can_join(db: Session, actor: Actor, room: str) -> bool:
    kind, _, rest = room.partition(":")
    try:
        if kind == "folder" and rest.startswith("root:"):
            return rest[len("root:"):] == actor.id
        if kind == "folder" and rest:
            visible_folder(db, actor, rest)
            return True
        if kind == "file" and rest:
            visible_file(db, actor, rest)
            return True
    except DriveError:
        return False
    return False


@router.websocket("/ws/rooms/{room}")
async def ws_room(
    websocket: WebSocket,
    room: str,
    db: Session = Depends(get_db),
):
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    payload, error = verify_token(token)
    if error:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    actor = actor_from_payload(payload)
    if actor is None or not can_join(db, actor, room):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    notifier = websocket.app.state.notifier
    subscriber = WebSocketSubscriber(websocket, asyncio.get_running_loop())
    notifier.subscribe(room, subscriber)
    logger.info("Actor %s joined room %s", actor.id, room)

    try:
        while True:
            msg = await websocket.receive_json()
            if isinstance(msg, dict) and msg.get("action") == "ping":
                await websocket.send_json({"event": "pong"})
            else:
                logger.warning(f"Ignored message on room {room}: {msg}")
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected by client for room {room}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except RuntimeError:
            pass
    finally:
        notifier.unsubscribe(room, subscriber)
