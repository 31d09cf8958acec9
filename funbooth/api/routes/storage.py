from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from funbooth.api.dependencies import get_current_user, get_photo_gateway
from funbooth.models.photo import UploadResponse, UploadUrlResponse
from funbooth.services.storage import LocalPhotoGateway

router = APIRouter(prefix="/storage", tags=["storage"])


@router.post("/upload-url", response_model=UploadUrlResponse)
async def generate_upload_url(
        user_id: str = Depends(get_current_user),
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    destination = gateway.issue_upload_destination(user_id)
    return UploadUrlResponse(upload_url=destination.url, expires_at=destination.expires_at)


@router.post("/upload/{token}", response_model=UploadResponse, response_model_by_alias=True)
async def upload(
        token: str,
        request: Request,
        gateway: LocalPhotoGateway = Depends(get_photo_gateway)
):
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="Only images can be uploaded")

    destination = gateway.destination_for(token)
    storage_id = gateway.transfer(destination, await request.body(), content_type)
    return UploadResponse(storage_id=storage_id)


@router.get("/{storage_id}")
async def get_blob(storage_id: str, gateway: LocalPhotoGateway = Depends(get_photo_gateway)):
    blob = gateway.open_blob(storage_id)
    return FileResponse(blob.path, media_type=blob.content_type)
