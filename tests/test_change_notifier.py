import asyncio

from drivecore.services.change_notifier import (
    ChangeNotifier,
    WebSocketSubscriber,
    file_room,
    folder_room,
)


class BrokenSubscriber:
    def deliver(self, room, event, payload):
        raise RuntimeError("socket closed")


class TestRooms:
    def test_room_names(self):
        assert folder_room("u1", None) == "folder:root:u1"
        assert folder_room("u1", "f1") == "folder:f1"
        assert file_room("x") == "file:x"


class TestChangeNotifier:
    def test_only_room_members_receive(self, recorder):
        notifier = ChangeNotifier()
        outsider = type(recorder)()
        notifier.subscribe("folder:a", recorder)
        notifier.subscribe("folder:b", outsider)

        delivered = notifier.publish("folder:a", "file:created", {"file_id": "1"})

        assert delivered == 1
        assert recorder.events == [("folder:a", "file:created", {"file_id": "1"})]
        assert outsider.events == []

    def test_failing_subscriber_does_not_block_others(self, recorder):
        notifier = ChangeNotifier()
        notifier.subscribe("folder:a", BrokenSubscriber())
        notifier.subscribe("folder:a", recorder)

        delivered = notifier.publish("folder:a", "folder:trashed", {})

        assert delivered == 1
        assert recorder.names == ["folder:trashed"]

    def test_publish_without_subscribers(self):
        assert ChangeNotifier().publish("folder:nobody", "x", {}) == 0

    def test_unsubscribe(self, recorder):
        notifier = ChangeNotifier()
        notifier.subscribe("file:1", recorder)
        notifier.unsubscribe("file:1", recorder)
        notifier.unsubscribe("file:1", recorder)

        notifier.publish("file:1", "file:renamed", {})

        assert recorder.events == []
        assert notifier.subscribers("file:1") == []

    def test_publish_many_delivers_once_per_room(self, recorder):
        notifier = ChangeNotifier()
        notifier.subscribe("folder:root:u1", recorder)

        # moving within the root names the same room twice
        notifier.publish_many(["folder:root:u1", "folder:root:u1", "file:9"], "file:moved", {})

        assert recorder.names == ["file:moved"]


class TestWebSocketSubscriber:
    def test_delivery_is_scheduled_on_the_socket_loop(self):
        sent = []

        class FakeSocket:
            async def send_json(self, message):
                sent.append(message)

        async def scenario():
            subscriber = WebSocketSubscriber(FakeSocket(), asyncio.get_running_loop())
            await asyncio.to_thread(subscriber.deliver, "file:1", "file:renamed", {"new_name": "b"})
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        assert sent == [{"room": "file:1", "event": "file:renamed", "payload": {"new_name": "b"}}]
