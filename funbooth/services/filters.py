"""Render effects behind the filter catalog.

Each effect is one of the CSS filter functions the booth exposes (grayscale,
sepia, saturate, hue-rotate, brightness, contrast) applied as a color matrix
or linear transfer on an RGB array, clamped after every step so that chained
effects behave like a CSS filter list.
"""

import math
from typing import Callable, Dict, List, Tuple

import numpy as np
from PIL import Image

from funbooth.models.catalog import Filter


def _grayscale_matrix(amount: float) -> np.ndarray:
    a = 1 - min(max(amount, 0.0), 1.0)
    return np.array([
        [0.2126 + 0.7874 * a, 0.7152 - 0.7152 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 + 0.2848 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 - 0.7152 * a, 0.0722 + 0.9278 * a],
    ], dtype=np.float32)


def _sepia_matrix(amount: float) -> np.ndarray:
    a = 1 - min(max(amount, 0.0), 1.0)
    return np.array([
        [0.393 + 0.607 * a, 0.769 - 0.769 * a, 0.189 - 0.189 * a],
        [0.349 - 0.349 * a, 0.686 + 0.314 * a, 0.168 - 0.168 * a],
        [0.272 - 0.272 * a, 0.534 - 0.534 * a, 0.131 + 0.869 * a],
    ], dtype=np.float32)


def _saturate_matrix(amount: float) -> np.ndarray:
    s = max(amount, 0.0)
    return np.array([
        [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
    ], dtype=np.float32)


def _hue_rotate_matrix(degrees: float) -> np.ndarray:
    angle = math.radians(degrees)
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
        [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
        [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
    ], dtype=np.float32)


def _matrix_effect(builder: Callable[[float], np.ndarray]) -> Callable[[np.ndarray, float], np.ndarray]:
    def apply(pixels: np.ndarray, amount: float) -> np.ndarray:
        return pixels @ builder(amount).T
    return apply


def _brightness(pixels: np.ndarray, amount: float) -> np.ndarray:
    return pixels * amount


def _contrast(pixels: np.ndarray, amount: float) -> np.ndarray:
    return (pixels - 127.5) * amount + 127.5


EFFECTS: Dict[str, Callable[[np.ndarray, float], np.ndarray]] = {
    "grayscale": _matrix_effect(_grayscale_matrix),
    "sepia": _matrix_effect(_sepia_matrix),
    "saturate": _matrix_effect(_saturate_matrix),
    "hue-rotate": _matrix_effect(_hue_rotate_matrix),
    "brightness": _brightness,
    "contrast": _contrast,
}


def parse_effect(effect: str) -> Tuple[str, float]:
    name, _, amount = effect.partition(":")
    if name not in EFFECTS:
        raise ValueError(f"Unknown render effect: {name}")
    return name, float(amount) if amount else 1.0


def apply_effects(rgb: np.ndarray, effects: List[str]) -> np.ndarray:
    """Apply render effects to an ``HxWx3`` uint8 RGB array."""
    if not effects:
        return rgb
    pixels = rgb.astype(np.float32)
    for effect in effects:
        name, amount = parse_effect(effect)
        pixels = np.clip(EFFECTS[name](pixels, amount), 0, 255)
    return pixels.round().astype(np.uint8)


def apply_filter(image: Image.Image, photo_filter: Filter) -> Image.Image:
    if photo_filter.is_identity:
        return image.convert("RGB")
    rgb = np.asarray(image.convert("RGB"))
    return Image.fromarray(apply_effects(rgb, photo_filter.effects), "RGB")
