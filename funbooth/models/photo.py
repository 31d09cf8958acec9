from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class OverlayPayload(BaseModel):
    """Sticker as stored on a photo record. ``rotation`` is kept but never rendered."""

    type: str
    x: float
    y: float
    scale: float
    rotation: Optional[float] = None


class PhotoRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="ownerId")
    storage_id: str = Field(alias="storageId")
    filename: str
    filter: Optional[str] = None
    frame_id: Optional[str] = Field(default=None, alias="frameId")
    overlays: Optional[List[OverlayPayload]] = None
    created_at: float = Field(alias="createdAt")


class StoredBlob(BaseModel):
    storage_id: str
    owner_id: str
    content_type: str
    path: str
    size: int


class UploadDestination(BaseModel):
    token: str
    url: str
    owner_id: str
    expires_at: float


class UploadUrlResponse(BaseModel):
    upload_url: str
    expires_at: float


class UploadResponse(BaseModel):
    storage_id: str = Field(serialization_alias="storageId")


class CreatePhotoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_id: str = Field(alias="storageId")
    filename: str
    filter: Optional[str] = None
    frame_id: Optional[str] = Field(default=None, alias="frameId")
    overlays: Optional[List[OverlayPayload]] = None


class GalleryPhoto(BaseModel):
    id: str
    filename: str
    url: str
    download_url: str
    filter: Optional[str] = None
    frame_id: Optional[str] = None
    frame_name: Optional[str] = None
    overlays: List[OverlayPayload] = []
    created: str


class GalleryResponse(BaseModel):
    photos: List[GalleryPhoto]


class ShareResponse(BaseModel):
    title: str
    url: str
    filename: str
