"""Shared test fixtures."""

import asyncio
import io
import itertools
from typing import List, Optional

import numpy as np
import pytest
from PIL import Image

from funbooth.services.camera import CameraService
from funbooth.services.compositor import Compositor
from funbooth.services.sequencer import CaptureSequencer
from funbooth.services.session import SessionController
from funbooth.services.storage import LocalPhotoGateway


class FakeCapture:
    """Stands in for ``cv2.VideoCapture``."""

    def __init__(self, width=640, height=480, open_after=0, never_opens=False, blank_reads=0, color=(0, 0, 255)):
        self.width = width
        self.height = height
        self.open_after = open_after
        self.never_opens = never_opens
        self.blank_reads = blank_reads
        self.color = color
        self.open_checks = 0
        self.reads = 0
        self.released = 0
        self.props = {}

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def isOpened(self):
        self.open_checks += 1
        return not self.never_opens and self.open_checks > self.open_after

    def read(self):
        self.reads += 1
        if self.reads <= self.blank_reads:
            return False, None
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, :] = self.color
        return True, frame

    def release(self):
        self.released += 1


class FakeSleep:
    """Records requested delays and advances a virtual clock instead of waiting."""

    def __init__(self):
        self.calls: List[float] = []
        self.now = 0.0

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    def clock(self) -> float:
        return self.now


class FakeWebSocketManager:
    """Collects broadcast messages."""

    def __init__(self):
        self.messages: List[dict] = []

    async def broadcast(self, message: dict):
        self.messages.append(message)

    async def notify(self, level: str, message: str):
        self.messages.append({"type": "notification", "level": level, "message": message})

    def of_type(self, kind: str) -> List[dict]:
        return [message for message in self.messages if message["type"] == kind]


class CountingCompositor(Compositor):
    """Compositor that counts snapshots."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.snapshots = 0

    def snapshot(self, frame, photo_filter, overlays):
        self.snapshots += 1
        return super().snapshot(frame, photo_filter, overlays)


def encode_image(color=(255, 0, 0), size=(300, 225), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def camera(capture: FakeCapture, fake_sleep: FakeSleep) -> CameraService:
    return CameraService(capture_factory=lambda index: capture, sleep=fake_sleep, clock=fake_sleep.clock, mirror=False)


@pytest.fixture
def gateway(tmp_path) -> LocalPhotoGateway:
    return LocalPhotoGateway(
        photos_dir=str(tmp_path / "photos"),
        database_url=f"sqlite:///{tmp_path / 'photos.db'}",
    )


@pytest.fixture
def compositor() -> CountingCompositor:
    return CountingCompositor()


@pytest.fixture
def websocket_manager() -> FakeWebSocketManager:
    return FakeWebSocketManager()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def controller(
        camera: CameraService,
        compositor: CountingCompositor,
        gateway: LocalPhotoGateway,
        fake_sleep: FakeSleep,
        websocket_manager: FakeWebSocketManager,
        id_factory,
) -> SessionController:
    return SessionController(
        camera=camera,
        compositor=compositor,
        gateway=gateway,
        sequencer=CaptureSequencer(sleep=fake_sleep),
        websocket_manager=websocket_manager,
        id_factory=id_factory,
    )
