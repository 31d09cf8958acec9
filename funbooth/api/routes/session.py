from fastapi import APIRouter, Depends

from funbooth.api.dependencies import get_current_user, get_session_controller
from funbooth.models.catalog import catalog
from funbooth.models.session import (
    CaptureResponse, FilterRequest, FrameRequest, LayoutRequest, MoveRequest, Overlay, SessionStatusResponse,
    StickerRequest,
)
from funbooth.services.session import SessionController

router = APIRouter(prefix="/session", tags=["session"])


@router.get("/catalog")
async def get_catalog():
    return catalog()


@router.get("/status", response_model=SessionStatusResponse)
async def get_session_status(
        include_photos: bool = False,
        controller: SessionController = Depends(get_session_controller)
):
    return controller.status(include_photos=include_photos)


@router.post("/layout", response_model=SessionStatusResponse)
async def select_layout(
        request: LayoutRequest,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.select_layout(request.layout_id, owner_id=user_id)
    return controller.status()


@router.post("/filter", response_model=SessionStatusResponse)
async def select_filter(
        request: FilterRequest,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.select_filter(request.filter_id, owner_id=user_id)
    return controller.status()


@router.post("/frame", response_model=SessionStatusResponse)
async def select_frame(
        request: FrameRequest,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.select_frame(request.frame_id, owner_id=user_id)
    return controller.status()


@router.post("/camera", response_model=SessionStatusResponse)
async def retry_camera(
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.retry_camera(owner_id=user_id)
    return controller.status()


@router.post("/start", response_model=SessionStatusResponse)
async def start_capture(
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.start_capture(owner_id=user_id)
    return controller.status()


@router.post("/back", response_model=SessionStatusResponse)
async def go_back(
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.go_back(owner_id=user_id)
    return controller.status()


@router.post("/capture", response_model=CaptureResponse, status_code=202)
async def capture(
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    saving = controller.status().capture_complete
    await controller.capture(owner_id=user_id)
    return CaptureResponse(
        success=True,
        action="save" if saving else "sequence",
        shot_count=controller.shot_count,
    )


@router.post("/overlays", response_model=Overlay, status_code=201)
async def add_sticker(
        request: StickerRequest,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    return await controller.add_sticker(request.glyph, owner_id=user_id, scale=request.scale)


@router.patch("/overlays/{overlay_id}", response_model=Overlay)
async def move_sticker(
        overlay_id: str,
        request: MoveRequest,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    return await controller.move_sticker(overlay_id, request.x, request.y, owner_id=user_id)


@router.delete("/overlays/{overlay_id}", response_model=SessionStatusResponse)
async def remove_sticker(
        overlay_id: str,
        user_id: str = Depends(get_current_user),
        controller: SessionController = Depends(get_session_controller)
):
    await controller.remove_sticker(overlay_id, owner_id=user_id)
    return controller.status()
