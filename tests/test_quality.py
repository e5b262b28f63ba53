# tests/test_quality.py

import numpy as np
import pytest

from smart_organizer.core.quality import QualityAnalyzer


@pytest.fixture
def analyzer():
    return QualityAnalyzer(max_dimension=400)


def test_uniform_gray_image(analyzer):
    """Flat mid-gray has no contrast and no edges"""
    pixels = np.full((50, 50, 3), 128, dtype=np.uint8)
    metrics = analyzer.analyze(pixels)

    assert metrics.contrast == 0
    assert metrics.sharpness == 0
    assert metrics.brightness == round(128 / 255, 3)
    # brightness score 1, contrast 0, sharpness 0
    assert metrics.score == round(1 / 3, 3)


def test_black_image_scores_zero(analyzer):
    pixels = np.zeros((40, 40, 3), dtype=np.uint8)
    metrics = analyzer.analyze(pixels)

    assert metrics.brightness == 0
    assert metrics.score == 0


def test_values_in_unit_range(analyzer, random_pixels, gradient_pixels):
    for pixels in (random_pixels, gradient_pixels):
        metrics = analyzer.analyze(pixels)
        for value in (metrics.sharpness, metrics.contrast,
                      metrics.brightness, metrics.score):
            assert 0 <= value <= 1


def test_noise_is_sharper_than_gradient(analyzer, random_pixels, gradient_pixels):
    assert analyzer.analyze(random_pixels).sharpness > \
        analyzer.analyze(gradient_pixels).sharpness


def test_deterministic(analyzer, random_pixels):
    assert analyzer.analyze(random_pixels) == analyzer.analyze(random_pixels)


def test_rounded_to_three_decimals(analyzer, random_pixels):
    metrics = analyzer.analyze(random_pixels)
    for value in (metrics.sharpness, metrics.contrast,
                  metrics.brightness, metrics.score):
        assert round(value, 3) == value


def test_tiny_image_has_zero_sharpness(analyzer):
    pixels = np.random.default_rng(0).integers(0, 256, (2, 2, 3), dtype=np.uint8)
    assert analyzer.analyze(pixels).sharpness == 0


def test_large_image_is_capped():
    """Axes above the cap are resampled before scoring"""
    big = np.full((900, 1200, 4), 200, dtype=np.uint8)
    metrics = QualityAnalyzer(max_dimension=400).analyze(big)

    assert metrics.contrast == 0
    assert metrics.brightness == round(200 / 255, 3)
