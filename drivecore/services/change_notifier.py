import asyncio
import logging
import threading
from typing import Dict, List, Optional, Protocol, Set

logger = logging.getLogger(__name__)


def folder_room(owner_id: str, folder_id: Optional[str]) -> str:
    if folder_id is None:
        return f"folder:root:{owner_id}"
    return f"folder:{folder_id}"


def file_room(file_id: str) -> str:
    return f"file:{file_id}"


class Subscriber(Protocol):
    def deliver(self, room: str, event: str, payload: dict) -> None: ...


class WebSocketSubscriber:
    """Forwards events to a connected socket on the loop that accepted it.

    Safe to call from any thread; sends are queued on the socket's loop in
    call order.
    """

    def __init__(self, websocket, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop

    def deliver(self, room: str, event: str, payload: dict) -> None:
        message = {"room": room, "event": event, "payload": payload}
        future = asyncio.run_coroutine_threadsafe(self.websocket.send_json(message), self.loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Dropped event for disconnected subscriber: %s", error)


class ChangeNotifier:
    """Room registry with fire-and-forget fan-out.

    One instance per application, injected where needed. There is no
    acknowledgment and no retry; a failing subscriber never affects the
    others or the publisher.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, room: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._rooms.setdefault(room, set()).add(subscriber)

    def unsubscribe(self, room: str, subscriber: Subscriber) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is None:
                return
            members.discard(subscriber)
            if not members:
                del self._rooms[room]

    def subscribers(self, room: str) -> List[Subscriber]:
        with self._lock:
            return list(self._rooms.get(room, ()))

    def publish(self, room: str, event: str, payload: dict) -> int:
        delivered = 0
        for subscriber in self.subscribers(room):
            try:
                subscriber.deliver(room, event, payload)
                delivered += 1
            except Exception:
                logger.exception("Failed to deliver %s to a subscriber of %s", event, room)
        logger.debug("Published %s to %s (%d subscribers)", event, room, delivered)
        return delivered

    def publish_many(self, rooms, event: str, payload: dict) -> None:
        seen = set()
        for room in rooms:
            if room in seen:
                continue
            seen.add(room)
            self.publish(room, event, payload)
