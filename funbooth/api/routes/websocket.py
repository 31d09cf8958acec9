from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
import asyncio
import json
import logging

from funbooth.api.dependencies import get_camera_service, get_session_controller, get_websocket_manager
from funbooth.config import settings
from funbooth.models.catalog import get_filter
from funbooth.services.camera import CameraService
from funbooth.services.session import SessionController
from funbooth.services.websocket import WebSocketManager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    camera_service: CameraService = Depends(get_camera_service),
    controller: SessionController = Depends(get_session_controller),
    websocket_manager: WebSocketManager = Depends(get_websocket_manager)
):
    await websocket_manager.connect(websocket)
    try:
        while True:
            if camera_service.is_active:
                photo_filter = get_filter(controller.state.filter_id)
                frame = await asyncio.to_thread(camera_service.get_preview_frame, photo_filter)
                if frame:
                    await websocket.send_text(json.dumps({
                        "type": "preview",
                        "data": frame
                    }))
            await asyncio.sleep(1 / settings.preview_fps)
    except WebSocketDisconnect:
        websocket_manager.disconnect(websocket)
    except RuntimeError as e:
        logger.info("WebSocket closed: %s", e)
        websocket_manager.disconnect(websocket)
