"""End-to-end tests for the session controller with fake camera and sleep."""

import asyncio
import os

import pytest
from sqlalchemy import select

from funbooth.errors import Busy, InvalidTransition, NoDevice, NotFoundOrUnauthorized, NotReady, TransferFailed
from funbooth.models.database import PhotoRow
from funbooth.models.session import Step
from funbooth.services.camera import CameraService
from funbooth.services.sequencer import CaptureSequencer
from funbooth.services.session import SessionController
from funbooth.services.storage import LocalPhotoGateway
from tests.conftest import CountingCompositor, FakeCapture, FakeSleep, FakeWebSocketManager


class FlakyTransferGateway(LocalPhotoGateway):
    def __init__(self, *args, failures=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures

    def transfer(self, destination, blob, content_type):
        if self.failures:
            self.failures -= 1
            raise TransferFailed()
        return super().transfer(destination, blob, content_type)


class FailingRecordGateway(LocalPhotoGateway):
    def create_record(self, *args, **kwargs):
        raise TransferFailed("record rejected")


def build_controller(gateway, camera=None, **kwargs) -> SessionController:
    sleep = FakeSleep()
    camera = camera or CameraService(capture_factory=lambda index: FakeCapture(), sleep=sleep, mirror=False)
    return SessionController(
        camera=camera,
        compositor=CountingCompositor(),
        gateway=gateway,
        sequencer=CaptureSequencer(sleep=sleep),
        websocket_manager=FakeWebSocketManager(),
        **kwargs,
    )


async def prepare(controller: SessionController, layout_id: str = "2x2", owner_id: str = "alice") -> None:
    await controller.select_layout(layout_id, owner_id=owner_id)
    await controller.start_capture(owner_id)


def test_full_session_round_trip(controller, gateway, compositor, camera, websocket_manager) -> None:
    async def scenario():
        await controller.select_layout("2x2", owner_id="alice")
        assert camera.is_active
        await controller.select_filter("sepia", "alice")
        await controller.select_frame("heart", "alice")
        await controller.add_sticker("🎉", "alice")
        sticker = await controller.add_sticker("⭐", "alice", scale=2.0)
        await controller.move_sticker(sticker.id, 100, 50, "alice")
        await controller.start_capture("alice")
        task = await controller.capture("alice")
        return await task

    record_id = asyncio.run(scenario())

    assert record_id is not None
    assert compositor.snapshots == 4
    assert controller.state.step == Step.layout
    assert controller.state.layout_id is None
    assert not camera.is_active

    (record, url), = gateway.list_records("alice")
    assert record.id == record_id
    assert record.filter == "sepia"
    assert record.frame_id == "heart"
    assert [(o.type, o.x, o.y, o.scale) for o in record.overlays] == [
        ("🎉", 320, 240, 1.0),
        ("⭐", 100, 50, 2.0),
    ]
    assert record.filename.startswith("photo-") and record.filename.endswith(".png")
    assert gateway.open_blob(record.storage_id).content_type == "image/png"

    with gateway.session_factory() as db:
        stored = db.scalars(select(PhotoRow.overlays)).one()
    assert all("id" not in overlay for overlay in stored)

    assert len(websocket_manager.of_type("photo_captured")) == 4
    assert len(websocket_manager.of_type("flash")) == 4
    assert websocket_manager.of_type("session_saved")[0]["photo_id"] == record_id


def test_identity_filter_and_no_frame_are_stored_as_absent(controller, gateway) -> None:
    async def scenario():
        await prepare(controller, "4x1")
        return await (await controller.capture("alice"))

    asyncio.run(scenario())

    (record, _), = gateway.list_records("alice")
    assert record.filter is None
    assert record.frame_id is None
    assert record.overlays == []


def test_transfer_failure_keeps_frames_for_retry(tmp_path) -> None:
    gateway = FlakyTransferGateway(
        photos_dir=str(tmp_path / "photos"), database_url=f"sqlite:///{tmp_path / 'photos.db'}",
    )
    controller = build_controller(gateway)

    async def first_attempt():
        await prepare(controller)
        return await (await controller.capture("alice"))

    assert asyncio.run(first_attempt()) is None
    assert gateway.list_records("alice") == []
    assert controller.state.step == Step.capture
    assert len(controller.state.captured_frames) == 4
    assert controller.last_error == TransferFailed.default_message
    assert controller.websocket_manager.of_type("notification")[-1]["message"] == "Failed to save photo"

    async def retry():
        return await (await controller.capture("alice"))

    record_id = asyncio.run(retry())

    assert record_id is not None
    assert controller.compositor.snapshots == 4
    assert [record.id for record, _ in gateway.list_records("alice")] == [record_id]
    assert controller.state.step == Step.layout


def test_record_failure_discards_uploaded_blob(tmp_path) -> None:
    photos_dir = tmp_path / "photos"
    gateway = FailingRecordGateway(photos_dir=str(photos_dir), database_url=f"sqlite:///{tmp_path / 'photos.db'}")
    controller = build_controller(gateway)

    async def scenario():
        await prepare(controller)
        return await (await controller.capture("alice"))

    assert asyncio.run(scenario()) is None
    assert os.listdir(photos_dir) == []
    assert controller.state.step == Step.capture
    assert controller.last_error == "record rejected"


def test_save_without_owner_fails_cleanly(controller, gateway) -> None:
    async def scenario():
        await prepare(controller, owner_id=None)
        return await (await controller.capture(None))

    assert asyncio.run(scenario()) is None
    assert controller.state.step == Step.capture
    assert os.listdir(gateway.photos_dir) == []


def test_go_back_cancels_running_sequence(controller, compositor, websocket_manager) -> None:
    async def scenario():
        await prepare(controller)
        task = await controller.capture("alice")
        while not websocket_manager.of_type("countdown"):
            await asyncio.sleep(0)
        await controller.go_back("alice")
        await asyncio.wait([task])
        return task

    task = asyncio.run(scenario())

    assert task.cancelled()
    assert compositor.snapshots == 0
    assert controller.state.step == Step.customize
    assert controller.state.captured_frames == []
    assert not controller.is_capturing
    assert controller.camera.is_active


def test_go_back_from_customize_releases_camera(controller, camera) -> None:
    async def scenario():
        await controller.select_layout("2x2", owner_id="alice")
        await controller.go_back("alice")

    asyncio.run(scenario())

    assert controller.state.step == Step.layout
    assert not camera.is_active

    with pytest.raises(InvalidTransition):
        asyncio.run(controller.go_back("alice"))


def test_capture_while_running_is_busy(controller) -> None:
    async def scenario():
        await prepare(controller)
        task = await controller.capture("alice")
        with pytest.raises(Busy):
            await controller.capture("alice")
        return await task

    assert asyncio.run(scenario()) is not None


def test_capture_requires_capture_step(controller) -> None:
    async def scenario():
        await controller.select_layout("2x2", owner_id="alice")
        await controller.capture("alice")

    with pytest.raises(InvalidTransition):
        asyncio.run(scenario())


def test_camera_failure_is_reported_not_raised(tmp_path) -> None:
    camera = CameraService(
        capture_factory=lambda index: FakeCapture(never_opens=True), sleep=FakeSleep(), mirror=False,
    )
    gateway = LocalPhotoGateway(photos_dir=str(tmp_path / "photos"), database_url=f"sqlite:///{tmp_path / 'photos.db'}")
    controller = build_controller(gateway, camera=camera)

    asyncio.run(controller.select_layout("2x2", owner_id="alice"))

    assert controller.state.step == Step.customize
    assert controller.camera_error == NoDevice.default_message
    assert controller.status().camera_error == NoDevice.default_message
    notification = controller.websocket_manager.of_type("notification")[-1]
    assert notification["level"] == "error"

    with pytest.raises(NotReady):
        asyncio.run(controller.start_capture("alice"))


def test_status_reports_progress(controller) -> None:
    asyncio.run(controller.select_layout("3x2", owner_id="alice"))

    status = controller.status()

    assert status.step == Step.customize
    assert status.shot_count == 6
    assert status.photo_count == 0
    assert status.camera_active
    assert not status.capture_complete
    assert not status.is_capturing


def test_unexpected_snapshot_error_is_reported(controller, compositor, websocket_manager) -> None:
    def broken_snapshot(frame, photo_filter, overlays):
        raise ValueError("encoder exploded")

    compositor.snapshot = broken_snapshot

    async def scenario():
        await prepare(controller)
        return await (await controller.capture("alice"))

    assert asyncio.run(scenario()) is None
    assert controller.state.step == Step.capture
    assert not controller.is_capturing
    assert controller.last_error == "encoder exploded"
    notification = websocket_manager.of_type("notification")[-1]
    assert notification["level"] == "error"
    assert "encoder exploded" in notification["message"]


def test_unexpected_collage_error_keeps_frames(controller, compositor, gateway, websocket_manager) -> None:
    def broken_collage(photos, layout, frame):
        raise ValueError("bad canvas")

    compositor.compose_collage = broken_collage

    async def scenario():
        await prepare(controller)
        return await (await controller.capture("alice"))

    assert asyncio.run(scenario()) is None
    assert controller.state.step == Step.capture
    assert len(controller.state.captured_frames) == 4
    assert not controller.is_saving
    assert gateway.list_records("alice") == []
    assert websocket_manager.of_type("notification")[-1]["message"] == "Failed to save photo"


def test_other_user_cannot_drive_session(controller) -> None:
    async def scenario():
        await controller.select_layout("2x2", owner_id="alice")
        sticker = await controller.add_sticker("🎉", "alice")

        for attempt in (
            controller.select_filter("sepia", "bob"),
            controller.select_frame("heart", None),
            controller.add_sticker("⭐", "bob"),
            controller.move_sticker(sticker.id, 1, 1, "bob"),
            controller.remove_sticker(sticker.id, "bob"),
            controller.retry_camera("bob"),
            controller.start_capture("bob"),
            controller.go_back("bob"),
        ):
            with pytest.raises(NotFoundOrUnauthorized):
                await attempt

        await controller.start_capture("alice")
        with pytest.raises(NotFoundOrUnauthorized):
            await controller.capture("bob")

    asyncio.run(scenario())

    assert controller.state.step == Step.capture
    assert controller.state.owner_id == "alice"
    assert controller.state.filter_id == ""
    assert len(controller.state.overlays) == 1
    assert not controller.is_capturing
