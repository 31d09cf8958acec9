"""Tests for filter render effects."""

import numpy as np
import pytest
from PIL import Image

from funbooth.models.catalog import FILTERS, get_filter
from funbooth.services.filters import apply_effects, apply_filter, parse_effect


def solid(rgb) -> np.ndarray:
    pixels = np.zeros((4, 4, 3), dtype=np.uint8)
    pixels[:, :] = rgb
    return pixels


def test_identity_filter_leaves_pixels_untouched() -> None:
    image = Image.new("RGB", (4, 4), (12, 200, 99))

    assert apply_filter(image, get_filter("")).getpixel((0, 0)) == (12, 200, 99)


def test_grayscale_equalizes_channels() -> None:
    r, g, b = apply_effects(solid((200, 40, 90)), ["grayscale:1"])[0, 0]

    assert r == g == b


def test_sepia_of_white() -> None:
    assert tuple(apply_effects(solid((255, 255, 255)), ["sepia:1"])[0, 0]) == (255, 255, 239)


def test_partial_sepia_is_between_identity_and_full() -> None:
    original = solid((0, 0, 255))
    half = apply_effects(original, ["sepia:0.5"])[0, 0]
    full = apply_effects(original, ["sepia:1"])[0, 0]

    assert full[2] < half[2] < 255


@pytest.mark.parametrize("photo_filter", FILTERS, ids=lambda f: f.id or "original")
def test_hue_and_saturation_preserve_neutral_gray(photo_filter) -> None:
    if any(effect.split(":")[0] in {"sepia", "brightness", "contrast"} for effect in photo_filter.effects):
        pytest.skip("tone-shifting filter")
    r, g, b = apply_effects(solid((100, 100, 100)), photo_filter.effects)[0, 0]

    assert abs(int(r) - 100) <= 1 and abs(int(g) - 100) <= 1 and abs(int(b) - 100) <= 1


def test_brightness_and_contrast_clamp() -> None:
    assert tuple(apply_effects(solid((250, 10, 128)), ["brightness:2"])[0, 0]) == (255, 20, 255)
    assert tuple(apply_effects(solid((255, 0, 128)), ["contrast:1.2"])[0, 0]) == (255, 0, 128)


def test_parse_effect() -> None:
    assert parse_effect("hue-rotate:180") == ("hue-rotate", 180.0)
    assert parse_effect("grayscale") == ("grayscale", 1.0)
    with pytest.raises(ValueError):
        parse_effect("blur:3")
