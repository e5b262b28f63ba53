# tests/test_palette.py

import re

import numpy as np
import pytest

from smart_organizer.core.palette import PaletteExtractor, to_hex

HEX_COLOR = re.compile(r"^#[0-9a-f]{6}$")


@pytest.fixture
def extractor():
    return PaletteExtractor(n_colors=5)


def test_palette_shape(extractor, random_pixels):
    palette = extractor.extract(random_pixels)

    assert len(palette) == 5
    assert all(HEX_COLOR.match(color) for color in palette)


def test_deterministic(extractor, random_pixels):
    assert extractor.extract(random_pixels) == extractor.extract(random_pixels)


def test_solid_color(extractor):
    pixels = np.zeros((30, 30, 3), dtype=np.uint8)
    pixels[:, :] = (255, 0, 0)

    assert extractor.extract(pixels) == ["#ff0000"] * 5


def test_two_color_image(extractor):
    # Working size, so no resampling blends the two colors
    pixels = np.zeros((150, 150, 3), dtype=np.uint8)
    pixels[:, :75] = (0, 0, 255)
    pixels[:, 75:] = (0, 255, 0)

    palette = set(extractor.extract(pixels))

    assert palette <= {"#0000ff", "#00ff00"}


def test_transparent_pixels_ignored(extractor):
    pixels = np.zeros((150, 150, 4), dtype=np.uint8)
    pixels[:, :, :3] = (10, 200, 30)
    pixels[:, :, 3] = 255
    # Left half fully transparent white
    pixels[:, :75] = (255, 255, 255, 0)

    assert set(extractor.extract(pixels)) == {"#0ac81e"}


def test_fully_transparent_uses_all_pixels(extractor):
    pixels = np.zeros((20, 20, 4), dtype=np.uint8)
    pixels[:, :, :3] = (50, 60, 70)

    assert extractor.extract(pixels) == ["#323c46"] * 5


def test_to_hex_rounds_and_clamps():
    assert to_hex([0.4, 127.5, 300]) == "#0080ff"
    assert to_hex([-5, 0, 15.49]) == "#00000f"
