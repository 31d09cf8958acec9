from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from datetime import datetime

from funbooth.api.dependencies import get_current_user, get_optional_user, get_photo_gateway
from funbooth.models.catalog import frame_display_name
from funbooth.models.photo import CreatePhotoRequest, GalleryPhoto, GalleryResponse, ShareResponse
from funbooth.services.storage import LocalPhotoGateway

router = APIRouter(prefix="/photos", tags=["photos"])

SHARE_TITLE = "Check out my photobooth pic!"


@router.get("/", response_model=GalleryResponse)
async def list_photos(
        user_id: str = Depends(get_optional_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    photos = []
    for record, url in gateway.list_records(user_id):
        photos.append(GalleryPhoto(
            id=record.id,
            filename=record.filename,
            url=url,
            download_url=f"/api/photos/{record.id}/download",
            filter=record.filter,
            frame_id=record.frame_id,
            frame_name=frame_display_name(record.frame_id),
            overlays=record.overlays or [],
            created=datetime.fromtimestamp(record.created_at).isoformat(),
        ))
    return GalleryResponse(photos=photos)


@router.post("/", status_code=201)
async def save_photo(
        request: CreatePhotoRequest,
        user_id: str = Depends(get_current_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    photo_id = gateway.create_record(
        user_id,
        request.storage_id,
        request.filename,
        filter=request.filter,
        frame_id=request.frame_id,
        overlays=request.overlays,
    )
    return {"id": photo_id}


@router.get("/{photo_id}/download")
async def download_photo(
        photo_id: str,
        user_id: str = Depends(get_current_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    record = gateway.get_record(user_id, photo_id)
    blob = gateway.open_blob(record.storage_id)
    return FileResponse(blob.path, media_type=blob.content_type, filename=record.filename)


@router.get("/{photo_id}/share", response_model=ShareResponse)
async def share_photo(
        photo_id: str,
        request: Request,
        user_id: str = Depends(get_current_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    record = gateway.get_record(user_id, photo_id)
    url = str(request.base_url).rstrip("/") + gateway.resolve_url(record.storage_id)
    return ShareResponse(title=SHARE_TITLE, url=url, filename=record.filename)


@router.delete("/{photo_id}")
async def delete_photo(
        photo_id: str,
        user_id: str = Depends(get_current_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    gateway.delete_record(user_id, photo_id)
    return {"success": True}
