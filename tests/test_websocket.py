import asyncio
import json

from fastapi import WebSocketDisconnect

from funbooth.services.websocket import WebSocketManager


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, payload):
        if self.fail:
            raise WebSocketDisconnect()
        self.sent.append(json.loads(payload))


def test_broadcast_drops_dead_connections() -> None:
    manager = WebSocketManager()
    alive, dead = FakeSocket(), FakeSocket(fail=True)

    async def scenario():
        await manager.connect(alive)
        await manager.connect(dead)
        await manager.notify("success", "saved")
        await manager.broadcast({"type": "flash", "shot": 1})

    asyncio.run(scenario())

    assert alive.accepted
    assert alive.sent == [
        {"type": "notification", "level": "success", "message": "saved"},
        {"type": "flash", "shot": 1},
    ]
    assert manager.active_connections == [alive]


def test_disconnect_unknown_socket_is_ignored() -> None:
    manager = WebSocketManager()

    manager.disconnect(FakeSocket())

    assert manager.active_connections == []
