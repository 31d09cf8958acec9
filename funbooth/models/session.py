from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Union
from enum import Enum

from funbooth.models.catalog import IDENTITY_FILTER_ID, NO_FRAME_ID


class Step(str, Enum):
    layout = "layout"
    customize = "customize"
    capture = "capture"


class Overlay(BaseModel):
    id: str
    glyph: str
    x: float
    y: float
    scale: float = 1.0


class Session(BaseModel):
    session_id: Optional[str] = None
    owner_id: Optional[str] = None
    step: Step = Step.layout
    layout_id: Optional[str] = None
    filter_id: str = IDENTITY_FILTER_ID
    frame_id: str = NO_FRAME_ID
    overlays: List[Overlay] = []
    captured_frames: List[bytes] = []


# Events understood by funbooth.services.session.apply_event

class SelectLayout(BaseModel):
    kind: Literal["select_layout"] = "select_layout"
    layout_id: str
    session_id: str
    owner_id: Optional[str] = None


class SelectFilter(BaseModel):
    kind: Literal["select_filter"] = "select_filter"
    filter_id: str = IDENTITY_FILTER_ID


class SelectFrame(BaseModel):
    kind: Literal["select_frame"] = "select_frame"
    frame_id: str = NO_FRAME_ID


class StartCapture(BaseModel):
    kind: Literal["start_capture"] = "start_capture"


class GoBack(BaseModel):
    kind: Literal["go_back"] = "go_back"


class AddOverlay(BaseModel):
    kind: Literal["add_overlay"] = "add_overlay"
    overlay_id: str
    glyph: str
    scale: float = 1.0


class MoveOverlay(BaseModel):
    kind: Literal["move_overlay"] = "move_overlay"
    overlay_id: str
    x: float
    y: float


class RemoveOverlay(BaseModel):
    kind: Literal["remove_overlay"] = "remove_overlay"
    overlay_id: str


class FrameCaptured(BaseModel):
    kind: Literal["frame_captured"] = "frame_captured"
    frame: bytes


class Saved(BaseModel):
    kind: Literal["saved"] = "saved"


SessionEvent = Union[
    SelectLayout, SelectFilter, SelectFrame, StartCapture, GoBack,
    AddOverlay, MoveOverlay, RemoveOverlay, FrameCaptured, Saved,
]


# Request / response bodies

class LayoutRequest(BaseModel):
    layout_id: str


class FilterRequest(BaseModel):
    filter_id: str = IDENTITY_FILTER_ID


class FrameRequest(BaseModel):
    frame_id: str = NO_FRAME_ID


class StickerRequest(BaseModel):
    glyph: str
    scale: float = Field(default=1.0, gt=0, le=10)


class MoveRequest(BaseModel):
    x: float
    y: float


class SessionStatusResponse(BaseModel):
    session_id: Optional[str]
    step: Step
    layout_id: Optional[str]
    filter_id: str
    frame_id: str
    overlays: List[Overlay] = []
    photo_count: int
    shot_count: int
    capture_complete: bool
    countdown: int
    is_capturing: bool
    is_saving: bool
    camera_active: bool
    camera_error: Optional[str] = None
    photos: List[str] = []


class CaptureResponse(BaseModel):
    success: bool
    action: Literal["sequence", "save"]
    shot_count: int
