from PIL import Image, ImageDraw, UnidentifiedImageError
import cv2
import io
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from funbooth.config import settings
from funbooth.errors import DecodeFailed, NotReady
from funbooth.models.catalog import Filter, FrameTemplate, Layout
from funbooth.models.session import Overlay
from funbooth.services.filters import apply_filter
from funbooth.services.frames import draw_themed_frame, load_font

logger = logging.getLogger(__name__)


class Compositor:
    def __init__(
            self,
            canvas_width: int = settings.canvas_width,
            canvas_height: int = settings.canvas_height,
            sticker_base_size: int = settings.sticker_base_size,
            photo_quality: int = settings.photo_quality,
            cell_width: int = settings.cell_width,
            cell_height: int = settings.cell_height,
            cell_spacing: int = settings.cell_spacing,
            frame_border_width: int = settings.frame_border_width,
            plain_border_width: int = settings.plain_border_width,
    ):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.sticker_base_size = sticker_base_size
        self.photo_quality = photo_quality
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.cell_spacing = cell_spacing
        self.frame_border_width = frame_border_width
        self.plain_border_width = plain_border_width

    def snapshot(self, frame: Optional[np.ndarray], photo_filter: Filter, overlays: Sequence[Overlay]) -> bytes:
        """Render one BGR camera frame with its filter and stickers into a JPEG still."""
        if frame is None or frame.size == 0:
            raise NotReady()

        image = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        image = apply_filter(image, photo_filter)
        self.draw_overlays(image, overlays)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=self.photo_quality)
        return buffer.getvalue()

    def draw_overlays(self, image: Image.Image, overlays: Sequence[Overlay]) -> Image.Image:
        draw = ImageDraw.Draw(image)
        scale_x = image.width / self.canvas_width
        scale_y = image.height / self.canvas_height
        for overlay in overlays:
            font = load_font(max(1, int(round(self.sticker_base_size * overlay.scale))))
            position = (overlay.x * scale_x, overlay.y * scale_y)
            draw.text(position, overlay.glyph, font=font, fill="black", anchor="mm")
        return image

    def border_width(self, framed: bool) -> int:
        return self.frame_border_width if framed else self.plain_border_width

    def collage_size(self, rows: int, cols: int, framed: bool) -> Tuple[int, int]:
        border = self.border_width(framed)
        width = cols * self.cell_width + (cols - 1) * self.cell_spacing + 2 * border
        height = rows * self.cell_height + (rows - 1) * self.cell_spacing + 2 * border
        return width, height

    def cell_positions(self, rows: int, cols: int, framed: bool) -> List[Tuple[int, int]]:
        border = self.border_width(framed)
        positions = []
        for row in range(rows):
            for col in range(cols):
                x = border + col * (self.cell_width + self.cell_spacing)
                y = border + row * (self.cell_height + self.cell_spacing)
                positions.append((x, y))
        return positions

    def decode_all(self, photos: Sequence[bytes]) -> List[Image.Image]:
        images = []
        for index, data in enumerate(photos):
            try:
                img = Image.open(io.BytesIO(data))
                img.load()
            except (UnidentifiedImageError, OSError) as exc:
                raise DecodeFailed(f"Failed to decode photo {index + 1}") from exc
            images.append(img.convert("RGB"))
        return images

    def compose_collage(self, photos: Sequence[bytes], layout: Layout, frame: FrameTemplate) -> bytes:
        """Lay the shots out row-major on a white canvas and add the themed border. Returns PNG bytes."""
        framed = frame.theme != "none"
        capacity = layout.rows * layout.cols
        # Every photo is decoded before anything is drawn
        images = self.decode_all(photos[:capacity])

        logger.info("Creating collage with %d images for layout %s, frame %s", len(images), layout.id, frame.id)

        final_img = Image.new("RGB", self.collage_size(layout.rows, layout.cols, framed), "white")
        positions = self.cell_positions(layout.rows, layout.cols, framed)
        for img, pos in zip(images, positions):
            final_img.paste(img.resize((self.cell_width, self.cell_height), Image.Resampling.LANCZOS), pos)

        if framed:
            draw_themed_frame(final_img, frame.theme, self.frame_border_width)

        buffer = io.BytesIO()
        final_img.save(buffer, format="PNG")
        return buffer.getvalue()


compositor = Compositor()
