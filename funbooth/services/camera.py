import asyncio
import base64
import logging
import threading
import time
from typing import Callable, NamedTuple, Optional

import cv2
import numpy as np

from funbooth.config import settings
from funbooth.errors import (
    AcquisitionError, AcquisitionTimeout, CameraBusy, NoDevice, NotReady, NotSupported, PermissionDenied,
)
from funbooth.models.catalog import Filter
from funbooth.services.filters import apply_effects

logger = logging.getLogger(__name__)


class CameraHandle(NamedTuple):
    device_index: int
    width: int
    height: int


def classify_error(exc: Exception) -> AcquisitionError:
    message = str(exc).lower()
    if "permission" in message or "denied" in message or "not authorized" in message:
        return PermissionDenied()
    if "busy" in message or "in use" in message:
        return CameraBusy()
    if "no such" in message or "not found" in message or "no device" in message:
        return NoDevice()
    return NotSupported()


class CameraService:
    def __init__(
            self,
            capture_factory: Optional[Callable] = None,
            sleep: Callable = asyncio.sleep,
            clock: Callable[[], float] = time.monotonic,
            device_index: int = settings.camera_index,
            open_attempts: int = settings.camera_open_attempts,
            open_interval: float = settings.camera_open_interval,
            first_frame_timeout: float = settings.camera_first_frame_timeout,
            mirror: bool = settings.mirror,
    ):
        self.capture_factory = capture_factory or getattr(cv2, "VideoCapture", None)
        self.sleep = sleep
        self.clock = clock
        self.device_index = device_index
        self.open_attempts = open_attempts
        self.open_interval = open_interval
        self.first_frame_timeout = first_frame_timeout
        self.mirror = mirror

        self.camera = None
        self.handle: Optional[CameraHandle] = None
        self.is_active = False
        self.is_pending = False
        self.last_error: Optional[str] = None
        self._read_lock = threading.Lock()
        self._generation = 0

    async def open(self) -> Optional[CameraHandle]:
        """Acquire the camera. Returns the live handle, or None if another open is already pending."""
        if self.is_active:
            return self.handle
        if self.is_pending:
            return None

        self.is_pending = True
        self.last_error = None
        generation = self._generation
        camera = None
        acquired = False
        try:
            camera = await asyncio.to_thread(self._create_capture)
            await self._wait_until_opened(camera)
            frame = await self._wait_for_first_frame(camera)

            height, width = frame.shape[:2]
            if width < settings.camera_min_width or height < settings.camera_min_height:
                raise NotSupported(
                    f"Camera resolution {width}x{height} is below the required "
                    f"{settings.camera_min_width}x{settings.camera_min_height}."
                )

            if generation != self._generation:
                # close() was called while the device was still opening
                return None

            self.camera = camera
            self.handle = CameraHandle(self.device_index, width, height)
            self.is_active = True
            acquired = True
            logger.info("Camera %d initialized at %dx%d", self.device_index, width, height)
            return self.handle
        except AcquisitionError as exc:
            self.last_error = exc.message
            logger.warning("Camera initialization failed: %s", exc.message)
            raise
        finally:
            self.is_pending = False
            if camera is not None and not acquired:
                camera.release()

    def _create_capture(self):
        if self.capture_factory is None:
            raise NotSupported()
        try:
            camera = self.capture_factory(self.device_index)
        except (cv2.error, OSError, RuntimeError) as exc:
            raise classify_error(exc) from exc

        try:
            camera.set(cv2.CAP_PROP_FRAME_WIDTH, settings.camera_width)
            camera.set(cv2.CAP_PROP_FRAME_HEIGHT, settings.camera_height)
            camera.set(cv2.CAP_PROP_FPS, settings.camera_fps)
        except BaseException as exc:
            camera.release()
            if isinstance(exc, cv2.error):
                raise NotSupported("Camera rejected the requested capture settings.") from exc
            raise
        return camera

    async def _wait_until_opened(self, camera) -> None:
        for _ in range(self.open_attempts):
            if camera.isOpened():
                return
            await self.sleep(self.open_interval)
        if not camera.isOpened():
            raise NoDevice()

    async def _wait_for_first_frame(self, camera) -> np.ndarray:
        deadline = self.clock() + self.first_frame_timeout
        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                raise AcquisitionTimeout()
            # The device is not shared yet, so a hung read must not hold the read lock
            try:
                ret, frame = await asyncio.wait_for(asyncio.to_thread(camera.read), remaining)
            except asyncio.TimeoutError:
                raise AcquisitionTimeout() from None
            except cv2.error as exc:
                raise NotSupported("Failed to load video from the camera.") from exc
            if ret and frame is not None:
                return frame
            if deadline - self.clock() <= 0:
                raise AcquisitionTimeout()
            await self.sleep(self.open_interval)

    def _read(self, camera):
        with self._read_lock:
            return camera.read()

    def read_frame(self) -> np.ndarray:
        camera = self.camera
        if not self.is_active or camera is None:
            raise NotReady()

        ret, frame = self._read(camera)
        if not ret or frame is None:
            raise NotReady("Failed to capture photo")

        if self.mirror:
            frame = cv2.flip(frame, 1)
        return frame

    def get_preview_frame(self, photo_filter: Optional[Filter] = None) -> Optional[str]:
        camera = self.camera
        if not self.is_active or camera is None:
            return None

        ret, frame = self._read(camera)
        if not ret or frame is None:
            return None

        if self.mirror:
            frame = cv2.flip(frame, 1)
        height, width = frame.shape[:2]
        preview_height = int(height * settings.preview_width / width)
        frame = cv2.resize(frame, (settings.preview_width, preview_height))

        if photo_filter is not None and not photo_filter.is_identity:
            rgb = apply_effects(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), photo_filter.effects)
            frame = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)

        _, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, settings.preview_quality])
        return base64.b64encode(buffer).decode('utf-8')

    def close(self) -> None:
        self._generation += 1
        camera, self.camera = self.camera, None
        self.handle = None
        self.is_active = False
        if camera is not None:
            with self._read_lock:
                camera.release()
            logger.info("Camera %d released", self.device_index)


camera_service = CameraService()
