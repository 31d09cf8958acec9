"""Themed decorative borders drawn around a finished collage."""

import logging
from functools import lru_cache
from typing import Callable, Dict, NamedTuple, Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

SANS_FONT_PATHS = [
    "DejaVuSans.ttf",
    "arial.ttf",
    "/System/Library/Fonts/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
]

SERIF_FONT_PATHS = [
    "DejaVuSerif.ttf",
    "times.ttf",
    "/System/Library/Fonts/Times.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
]


@lru_cache(maxsize=32)
def load_font(size: int, serif: bool = False) -> ImageFont.ImageFont:
    for font_path in SERIF_FONT_PATHS if serif else SANS_FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    logger.debug("No TrueType font found, using Pillow default at %spx", size)
    return ImageFont.load_default(size=size)


class BorderPattern(NamedTuple):
    fill: Optional[str]
    top_glyph: str
    bottom_glyph: str
    glyph_color: str
    font_size: int = 25
    step: int = 50


# "party" has no flat fill; its border is a diagonal gradient
PATTERNS: Dict[str, BorderPattern] = {
    "heart": BorderPattern("#ff69b4", "💖", "💖", "#ff1493", font_size=30, step=60),
    "star": BorderPattern("#ffd700", "⭐", "⭐", "#ffaa00"),
    "flower": BorderPattern("#ffb6c1", "🌸", "🌸", "#ff69b4"),
    "party": BorderPattern(None, "🎉", "🎊", "#ffffff"),
    "cute": BorderPattern("#ffcccb", "🥰", "💕", "#ff69b4"),
    "cool": BorderPattern("#87ceeb", "😎", "🔥", "#4169e1"),
}

RAINBOW_COLORS = ["#ff0000", "#ff8000", "#ffff00", "#00ff00", "#0080ff", "#8000ff"]
PARTY_GRADIENT = [(0.0, (0xff, 0x6b, 0x6b)), (0.5, (0x4e, 0xcd, 0xc4)), (1.0, (0x45, 0xb7, 0xd1))]


def _fill_rect(draw: ImageDraw.ImageDraw, x: float, y: float, width: float, height: float, fill) -> None:
    x0, y0 = int(round(x)), int(round(y))
    x1, y1 = int(round(x + width)) - 1, int(round(y + height)) - 1
    if x1 >= x0 and y1 >= y0:
        draw.rectangle([x0, y0, x1, y1], fill=fill)


def _fill_border(draw: ImageDraw.ImageDraw, width: int, height: int, border: int, fill) -> None:
    _fill_rect(draw, 0, 0, width, border, fill)
    _fill_rect(draw, 0, height - border, width, border, fill)
    _fill_rect(draw, 0, 0, border, height, fill)
    _fill_rect(draw, width - border, 0, border, height, fill)


def _gradient(width: int, height: int) -> Image.Image:
    # Linear gradient from the top-left corner to the bottom-right corner
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    t = (xs * width + ys * height) / float(width * width + height * height)
    stops = [stop for stop, _ in PARTY_GRADIENT]
    channels = [
        np.interp(t, stops, [color[channel] for _, color in PARTY_GRADIENT])
        for channel in range(3)
    ]
    return Image.fromarray(np.stack(channels, axis=-1).round().astype(np.uint8), "RGB")


def _draw_glyph_rows(draw: ImageDraw.ImageDraw, width: int, height: int, pattern: BorderPattern) -> None:
    font = load_font(pattern.font_size)
    for x in range(0, width, pattern.step):
        draw.text((x, 25), pattern.top_glyph, fill=pattern.glyph_color, font=font, anchor="ms")
        draw.text((x, height - 15), pattern.bottom_glyph, fill=pattern.glyph_color, font=font, anchor="ms")


def _draw_pattern(image: Image.Image, border: int, pattern: BorderPattern) -> None:
    width, height = image.size
    if pattern.fill is None:
        mask = Image.new("L", image.size, 0)
        _fill_border(ImageDraw.Draw(mask), width, height, border, 255)
        image.paste(_gradient(width, height), (0, 0), mask)
    else:
        _fill_border(ImageDraw.Draw(image), width, height, border, pattern.fill)
    _draw_glyph_rows(ImageDraw.Draw(image), width, height, pattern)


def _draw_rainbow(image: Image.Image, border: int) -> None:
    width, height = image.size
    draw = ImageDraw.Draw(image)
    segment = border / len(RAINBOW_COLORS)
    for i, color in enumerate(RAINBOW_COLORS):
        _fill_rect(draw, 0, i * segment, width, segment, color)
        _fill_rect(draw, 0, height - border + i * segment, width, segment, color)
        _fill_rect(draw, i * segment, 0, segment, height, color)
        _fill_rect(draw, width - border + i * segment, 0, segment, height, color)


def _draw_vintage(image: Image.Image, border: int) -> None:
    width, height = image.size
    draw = ImageDraw.Draw(image)
    _fill_border(draw, width, height, border, "#deb887")
    draw.text((width / 2, 25), "✨ VINTAGE ✨", fill="#8b4513", font=load_font(20, serif=True), anchor="ms")


def _draw_modern(image: Image.Image, border: int) -> None:
    width, height = image.size
    draw = ImageDraw.Draw(image)
    # An 8px stroke centered 4px in covers the outermost 8px
    draw.rectangle([0, 0, width - 1, height - 1], outline="#333333", width=8)
    draw.rectangle([6, 6, width - 7, height - 7], outline="#ffffff", width=4)


SPECIAL_THEMES: Dict[str, Callable[[Image.Image, int], None]] = {
    "rainbow": _draw_rainbow,
    "vintage": _draw_vintage,
    "modern": _draw_modern,
}


def draw_themed_frame(image: Image.Image, theme: str, border: int = 40) -> Image.Image:
    """Draw ``theme`` in place along the four edges of ``image``."""
    if theme == "none":
        return image
    if theme in PATTERNS:
        _draw_pattern(image, border, PATTERNS[theme])
    elif theme in SPECIAL_THEMES:
        SPECIAL_THEMES[theme](image, border)
    else:
        raise ValueError(f"Unknown frame theme: {theme}")
    return image
