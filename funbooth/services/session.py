"""The layout -> customize -> capture flow.

The first half of this module is a set of pure transition functions over the
``Session`` aggregate: each takes the current session and returns a new one,
raising ``InvalidTransition`` when the action is not legal in the current step.
``SessionController`` below wires those transitions to the camera, the
capture sequencer, the compositor and the photo gateway.
"""

import asyncio
import base64
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from funbooth.config import settings
from funbooth.errors import (
    Busy, InvalidSelection, InvalidTransition, NotFoundOrUnauthorized, NotReady, PhotoboothError,
)
from funbooth.models.catalog import (
    IDENTITY_FILTER_ID, NO_FRAME_ID, STICKERS, get_filter, get_frame, get_layout,
)
from funbooth.models.photo import OverlayPayload
from funbooth.models.session import (
    AddOverlay, FrameCaptured, GoBack, MoveOverlay, Overlay, RemoveOverlay, Saved, SelectFilter, SelectFrame,
    SelectLayout, Session, SessionEvent, SessionStatusResponse, StartCapture, Step,
)
from funbooth.services.camera import CameraService, camera_service
from funbooth.services.compositor import Compositor, compositor
from funbooth.services.sequencer import CaptureSequencer
from funbooth.services.storage import PhotoGateway, photo_gateway
from funbooth.services.websocket import WebSocketManager, websocket_manager

logger = logging.getLogger(__name__)

EDITABLE_STEPS = (Step.customize, Step.capture)


def _require_step(session: Session, steps, action: str) -> None:
    if session.step not in steps:
        raise InvalidTransition(f"Cannot {action} during the {session.step.value} step")


def shot_count(session: Session) -> int:
    if session.layout_id is None:
        return 0
    return get_layout(session.layout_id).shot_count


def is_capture_complete(session: Session) -> bool:
    return session.layout_id is not None and len(session.captured_frames) >= shot_count(session)


def select_layout(session: Session, layout_id: str, session_id: str, owner_id: Optional[str] = None) -> Session:
    _require_step(session, (Step.layout,), "choose a layout")
    get_layout(layout_id)
    return session.model_copy(update={
        "session_id": session_id,
        "owner_id": owner_id,
        "layout_id": layout_id,
        "step": Step.customize,
    })


def select_filter(session: Session, filter_id: str) -> Session:
    _require_step(session, EDITABLE_STEPS, "change the filter")
    return session.model_copy(update={"filter_id": get_filter(filter_id).id})


def select_frame(session: Session, frame_id: str) -> Session:
    _require_step(session, EDITABLE_STEPS, "change the frame")
    return session.model_copy(update={"frame_id": get_frame(frame_id).id})


def start_capture(session: Session) -> Session:
    _require_step(session, (Step.customize,), "start capturing")
    return session.model_copy(update={"step": Step.capture, "captured_frames": []})


def go_back(session: Session) -> Session:
    if session.step == Step.capture:
        return session.model_copy(update={"step": Step.customize, "captured_frames": []})
    if session.step == Step.customize:
        return Session()
    raise InvalidTransition("Already at the first step")


def add_overlay(session: Session, overlay_id: str, glyph: str, scale: float = 1.0) -> Session:
    _require_step(session, EDITABLE_STEPS, "add a sticker")
    if glyph not in STICKERS:
        raise InvalidSelection(f"Unknown sticker: {glyph}")
    if any(overlay.id == overlay_id for overlay in session.overlays):
        raise InvalidSelection(f"Sticker id already in use: {overlay_id}")
    overlay = Overlay(
        id=overlay_id, glyph=glyph, x=settings.canvas_width / 2, y=settings.canvas_height / 2, scale=scale,
    )
    return session.model_copy(update={"overlays": session.overlays + [overlay]})


def _find_overlay(session: Session, overlay_id: str) -> Overlay:
    for overlay in session.overlays:
        if overlay.id == overlay_id:
            return overlay
    raise InvalidSelection(f"Unknown sticker: {overlay_id}")


def move_overlay(session: Session, overlay_id: str, x: float, y: float) -> Session:
    _require_step(session, EDITABLE_STEPS, "move a sticker")
    _find_overlay(session, overlay_id)
    x = max(0.0, min(float(settings.canvas_width), x))
    y = max(0.0, min(float(settings.canvas_height), y))
    overlays = [
        overlay.model_copy(update={"x": x, "y": y}) if overlay.id == overlay_id else overlay
        for overlay in session.overlays
    ]
    return session.model_copy(update={"overlays": overlays})


def remove_overlay(session: Session, overlay_id: str) -> Session:
    _require_step(session, EDITABLE_STEPS, "remove a sticker")
    _find_overlay(session, overlay_id)
    return session.model_copy(update={
        "overlays": [overlay for overlay in session.overlays if overlay.id != overlay_id],
    })


def record_frame(session: Session, frame: bytes) -> Session:
    _require_step(session, (Step.capture,), "record a photo")
    if is_capture_complete(session):
        raise InvalidTransition("All photos for this layout have been taken")
    return session.model_copy(update={"captured_frames": session.captured_frames + [frame]})


def complete(session: Session) -> Session:
    _require_step(session, (Step.capture,), "finish the session")
    if not is_capture_complete(session):
        raise InvalidTransition("Photos are still missing for this layout")
    return Session()


_HANDLERS: Dict[type, Callable[[Session, SessionEvent], Session]] = {
    SelectLayout: lambda s, e: select_layout(s, e.layout_id, e.session_id, e.owner_id),
    SelectFilter: lambda s, e: select_filter(s, e.filter_id),
    SelectFrame: lambda s, e: select_frame(s, e.frame_id),
    StartCapture: lambda s, e: start_capture(s),
    GoBack: lambda s, e: go_back(s),
    AddOverlay: lambda s, e: add_overlay(s, e.overlay_id, e.glyph, e.scale),
    MoveOverlay: lambda s, e: move_overlay(s, e.overlay_id, e.x, e.y),
    RemoveOverlay: lambda s, e: remove_overlay(s, e.overlay_id),
    FrameCaptured: lambda s, e: record_frame(s, e.frame),
    Saved: lambda s, e: complete(s),
}


def apply_event(session: Session, event: SessionEvent) -> Session:
    return _HANDLERS[type(event)](session, event)


def overlay_payloads(session: Session) -> List[OverlayPayload]:
    return [
        OverlayPayload(type=overlay.glyph, x=overlay.x, y=overlay.y, scale=overlay.scale)
        for overlay in session.overlays
    ]


class SessionController:
    def __init__(
            self,
            camera: CameraService,
            compositor: Compositor,
            gateway: PhotoGateway,
            sequencer: Optional[CaptureSequencer] = None,
            websocket_manager: Optional[WebSocketManager] = None,
            id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
            clock: Callable[[], float] = time.time,
    ):
        self.camera = camera
        self.compositor = compositor
        self.gateway = gateway
        self.sequencer = sequencer or CaptureSequencer()
        self.websocket_manager = websocket_manager
        self.id_factory = id_factory
        self.clock = clock

        self.state = Session()
        self.camera_error: Optional[str] = None
        self.last_error: Optional[str] = None
        self.last_record_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._saving = False
        self._run_generation = 0

    @property
    def shot_count(self) -> int:
        return shot_count(self.state)

    @property
    def is_capturing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_saving(self) -> bool:
        return self._saving

    def status(self, include_photos: bool = False) -> SessionStatusResponse:
        state = self.state
        return SessionStatusResponse(
            session_id=state.session_id,
            step=state.step,
            layout_id=state.layout_id,
            filter_id=state.filter_id,
            frame_id=state.frame_id,
            overlays=state.overlays,
            photo_count=len(state.captured_frames),
            shot_count=self.shot_count,
            capture_complete=is_capture_complete(state),
            countdown=self.sequencer.countdown,
            is_capturing=self.is_capturing,
            is_saving=self.is_saving,
            camera_active=self.camera.is_active,
            camera_error=self.camera_error,
            photos=[base64.b64encode(frame).decode("utf-8") for frame in state.captured_frames]
            if include_photos else [],
        )

    async def _publish(self, message: dict) -> None:
        if self.websocket_manager is not None:
            await self.websocket_manager.broadcast(message)

    async def _notify(self, level: str, message: str) -> None:
        if self.websocket_manager is not None:
            await self.websocket_manager.notify(level, message)

    async def _apply(self, event: SessionEvent) -> Session:
        self.state = apply_event(self.state, event)
        await self._publish({"type": "session_update", "session": self.status().model_dump(mode="json")})
        return self.state

    async def _sync_camera(self) -> None:
        # The camera is held for exactly as long as the flow is past layout selection
        if self.state.step in EDITABLE_STEPS:
            try:
                await self.camera.open()
                self.camera_error = None
            except PhotoboothError as exc:
                self.camera_error = exc.message
                await self._notify("error", exc.message)
        else:
            self.camera.close()
            self.camera_error = None

    def _ensure_idle(self) -> None:
        if self.is_capturing or self.is_saving:
            raise Busy()

    def _ensure_owner(self, owner_id: Optional[str]) -> None:
        # Only the user who picked the layout may drive the session
        if self.state.layout_id is not None and owner_id != self.state.owner_id:
            raise NotFoundOrUnauthorized("No active session for this user")

    async def select_layout(self, layout_id: str, owner_id: Optional[str] = None) -> Session:
        await self._apply(SelectLayout(layout_id=layout_id, session_id=self.id_factory(), owner_id=owner_id))
        logger.info("Session %s started with layout %s", self.state.session_id, layout_id)
        await self._sync_camera()
        return self.state

    async def select_filter(self, filter_id: str, owner_id: Optional[str]) -> Session:
        self._ensure_owner(owner_id)
        return await self._apply(SelectFilter(filter_id=filter_id or IDENTITY_FILTER_ID))

    async def select_frame(self, frame_id: str, owner_id: Optional[str]) -> Session:
        self._ensure_owner(owner_id)
        return await self._apply(SelectFrame(frame_id=frame_id or NO_FRAME_ID))

    async def add_sticker(self, glyph: str, owner_id: Optional[str], scale: float = 1.0) -> Overlay:
        self._ensure_owner(owner_id)
        overlay_id = self.id_factory()
        await self._apply(AddOverlay(overlay_id=overlay_id, glyph=glyph, scale=scale))
        return _find_overlay(self.state, overlay_id)

    async def move_sticker(self, overlay_id: str, x: float, y: float, owner_id: Optional[str]) -> Overlay:
        self._ensure_owner(owner_id)
        await self._apply(MoveOverlay(overlay_id=overlay_id, x=x, y=y))
        return _find_overlay(self.state, overlay_id)

    async def remove_sticker(self, overlay_id: str, owner_id: Optional[str]) -> Session:
        self._ensure_owner(owner_id)
        return await self._apply(RemoveOverlay(overlay_id=overlay_id))

    async def retry_camera(self, owner_id: Optional[str]) -> None:
        self._ensure_owner(owner_id)
        _require_step(self.state, EDITABLE_STEPS, "start the camera")
        try:
            await self.camera.open()
        except PhotoboothError as exc:
            self.camera_error = exc.message
            raise
        self.camera_error = None

    async def start_capture(self, owner_id: Optional[str]) -> Session:
        self._ensure_owner(owner_id)
        self._ensure_idle()
        _require_step(self.state, (Step.customize,), "start capturing")
        if not self.camera.is_active:
            raise NotReady()
        return await self._apply(StartCapture())

    async def go_back(self, owner_id: Optional[str]) -> Session:
        self._ensure_owner(owner_id)
        if self.is_saving:
            raise Busy("Please wait for the photo to finish saving")
        self._cancel_run()
        await self._apply(GoBack())
        await self._sync_camera()
        return self.state

    def _cancel_run(self) -> None:
        self._run_generation += 1
        if self.is_capturing:
            self._task.cancel()
        self._task = None

    async def capture(self, owner_id: Optional[str]) -> asyncio.Task:
        """Take the remaining shots, or save the collage once every shot is in."""
        self._ensure_owner(owner_id)
        self._ensure_idle()
        _require_step(self.state, (Step.capture,), "take photos")
        if is_capture_complete(self.state):
            self._task = asyncio.create_task(self._save())
        else:
            if not self.camera.is_active:
                raise NotReady()
            self._task = asyncio.create_task(self._run_sequence(self._run_generation))
        return self._task

    async def _run_sequence(self, generation: int) -> Optional[str]:
        def cancelled() -> bool:
            return generation != self._run_generation

        async def take_shot() -> bytes:
            frame = await asyncio.to_thread(self.camera.read_frame)
            photo_filter = get_filter(self.state.filter_id)
            overlays = list(self.state.overlays)
            return await asyncio.to_thread(self.compositor.snapshot, frame, photo_filter, overlays)

        async def on_frame(frame: bytes, index: int) -> None:
            if cancelled():
                return
            self.state = record_frame(self.state, frame)
            await self._publish({
                "type": "photo_captured",
                "session_id": self.state.session_id,
                "photo_count": len(self.state.captured_frames),
                "shot_count": self.shot_count,
                "photo": base64.b64encode(frame).decode("utf-8"),
            })

        async def on_countdown(value: int) -> None:
            await self._publish({"type": "countdown", "value": value})

        async def on_flash(index: int) -> None:
            await self._publish({"type": "flash", "shot": index + 1})

        remaining = self.shot_count - len(self.state.captured_frames)
        try:
            result = await self.sequencer.run(
                remaining, take_shot,
                on_frame=on_frame, on_countdown=on_countdown, on_flash=on_flash, cancelled=cancelled,
            )
        except PhotoboothError as exc:
            logger.warning("Capture aborted: %s", exc.message)
            await self._capture_failed(exc.message)
            return None
        except Exception as exc:
            logger.exception("Capture crashed for session %s", self.state.session_id)
            await self._capture_failed(str(exc) or type(exc).__name__)
            return None

        if not result.completed or cancelled() or not is_capture_complete(self.state):
            return None
        return await self._save()

    async def _capture_failed(self, message: str) -> None:
        self.last_error = message
        await self._notify("error", f"Failed to capture photo: {message}")

    async def _save(self) -> Optional[str]:
        state = self.state
        self._saving = True
        storage_id = None
        try:
            layout = get_layout(state.layout_id)
            frame = get_frame(state.frame_id)
            blob = await asyncio.to_thread(self.compositor.compose_collage, state.captured_frames, layout, frame)

            destination = await asyncio.to_thread(self.gateway.issue_upload_destination, state.owner_id)
            storage_id = await asyncio.to_thread(self.gateway.transfer, destination, blob, "image/png")
            record_id = await asyncio.to_thread(
                self.gateway.create_record,
                state.owner_id,
                storage_id,
                f"photo-{int(self.clock() * 1000)}.png",
                None if state.filter_id == IDENTITY_FILTER_ID else state.filter_id,
                None if state.frame_id == NO_FRAME_ID else state.frame_id,
                overlay_payloads(state),
            )
        except (PhotoboothError, OSError) as exc:
            message = getattr(exc, "message", str(exc))
            logger.warning("Saving session %s failed: %s", state.session_id, message)
            await self._save_failed(storage_id, message)
            return None
        except Exception as exc:
            logger.exception("Saving session %s crashed", state.session_id)
            await self._save_failed(storage_id, str(exc) or type(exc).__name__)
            return None
        finally:
            self._saving = False

        self.last_record_id = record_id
        self.last_error = None
        logger.info("Session %s saved as photo %s", state.session_id, record_id)
        await self._apply(Saved())
        await self._sync_camera()
        await self._publish({"type": "session_saved", "photo_id": record_id})
        await self._notify("success", "📸 Photo captured successfully!")
        return record_id

    async def _save_failed(self, storage_id: Optional[str], message: str) -> None:
        if storage_id is not None:
            try:
                await asyncio.to_thread(self.gateway.discard_blob, storage_id)
            except (PhotoboothError, OSError):
                logger.exception("Could not discard blob %s", storage_id)
        self.last_error = message
        await self._notify("error", "Failed to save photo")

    async def shutdown(self) -> None:
        self._cancel_run()
        self.camera.close()


session_controller = SessionController(
    camera=camera_service,
    compositor=compositor,
    gateway=photo_gateway,
    websocket_manager=websocket_manager,
)
