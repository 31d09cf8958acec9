from fastapi import Header
from typing import Optional

from funbooth.errors import Unauthenticated
from funbooth.services.camera import camera_service
from funbooth.services.session import session_controller
from funbooth.services.storage import photo_gateway
from funbooth.services.websocket import websocket_manager


def get_camera_service():
    return camera_service


def get_photo_gateway():
    return photo_gateway


def get_session_controller():
    return session_controller


def get_websocket_manager():
    return websocket_manager


async def get_optional_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity forwarded by the authenticating proxy, if any."""
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


async def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    user_id = await get_optional_user(x_user_id)
    if user_id is None:
        raise Unauthenticated()
    return user_id
