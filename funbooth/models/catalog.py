from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional

from funbooth.errors import InvalidSelection


class Layout(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    rows: int
    cols: int
    description: str = ""

    @property
    def shot_count(self) -> int:
        return self.rows * self.cols


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    # Render effects are applied in order by funbooth.services.filters
    effects: List[str] = []

    @property
    def is_identity(self) -> bool:
        return not self.effects


class FrameTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    theme: str


LAYOUTS: List[Layout] = [
    Layout(id="4x1", name="4x1 Strip", rows=4, cols=1, description="4 photos vertical"),
    Layout(id="4x2", name="4x2 Grid", rows=4, cols=2, description="8 photos grid"),
    Layout(id="2x2", name="2x2 Grid", rows=2, cols=2, description="4 photos square"),
    Layout(id="3x2", name="3x2 Grid", rows=3, cols=2, description="6 photos wide"),
]

IDENTITY_FILTER_ID = ""

FILTERS: List[Filter] = [
    Filter(id=IDENTITY_FILTER_ID, name="Original"),
    Filter(id="grayscale", name="B&W", effects=["grayscale:1.0"]),
    Filter(id="sepia", name="Sepia", effects=["sepia:1.0"]),
    Filter(id="vintage", name="Vintage", effects=["sepia:0.5", "contrast:1.2", "brightness:1.1"]),
    Filter(id="cool", name="Cool", effects=["hue-rotate:180", "saturate:1.2"]),
]

NO_FRAME_ID = "none"

FRAME_TEMPLATES: List[FrameTemplate] = [
    FrameTemplate(id=NO_FRAME_ID, name="No Frame", theme="none"),
    FrameTemplate(id="heart", name="Heart", theme="heart"),
    FrameTemplate(id="rainbow", name="Rainbow", theme="rainbow"),
    FrameTemplate(id="star", name="Star", theme="star"),
    FrameTemplate(id="flower", name="Flower", theme="flower"),
    FrameTemplate(id="party", name="Party", theme="party"),
    FrameTemplate(id="cute", name="Cute", theme="cute"),
    FrameTemplate(id="cool", name="Cool", theme="cool"),
    FrameTemplate(id="vintage", name="Vintage", theme="vintage"),
    FrameTemplate(id="modern", name="Modern", theme="modern"),
]

STICKERS: List[str] = [
    "😊", "😎", "🥳", "😍", "🤩", "😘", "🥰", "😋", "🤗", "😇", "🦄", "🌈", "⭐", "💖", "🎉",
]

_LAYOUTS_BY_ID: Dict[str, Layout] = {layout.id: layout for layout in LAYOUTS}
_FILTERS_BY_ID: Dict[str, Filter] = {f.id: f for f in FILTERS}
_FRAMES_BY_ID: Dict[str, FrameTemplate] = {frame.id: frame for frame in FRAME_TEMPLATES}


def get_layout(layout_id: str) -> Layout:
    layout = _LAYOUTS_BY_ID.get(layout_id)
    if layout is None:
        raise InvalidSelection(f"Unknown layout: {layout_id}")
    return layout


def get_filter(filter_id: Optional[str]) -> Filter:
    found = _FILTERS_BY_ID.get(filter_id or IDENTITY_FILTER_ID)
    if found is None:
        raise InvalidSelection(f"Unknown filter: {filter_id}")
    return found


def get_frame(frame_id: Optional[str]) -> FrameTemplate:
    frame = _FRAMES_BY_ID.get(frame_id or NO_FRAME_ID)
    if frame is None:
        raise InvalidSelection(f"Unknown frame: {frame_id}")
    return frame


def frame_display_name(frame_id: Optional[str]) -> Optional[str]:
    if not frame_id or frame_id == NO_FRAME_ID:
        return None
    frame = _FRAMES_BY_ID.get(frame_id)
    return frame.name if frame else frame_id


def catalog() -> dict:
    return {
        "layouts": [dict(layout.model_dump(), shot_count=layout.shot_count) for layout in LAYOUTS],
        "filters": [f.model_dump() for f in FILTERS],
        "frames": [frame.model_dump() for frame in FRAME_TEMPLATES],
        "stickers": list(STICKERS),
    }
