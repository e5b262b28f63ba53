# core/quality.py

import cv2
import numpy as np

from smart_organizer.core.models import QualityMetrics
from smart_organizer.utils.image_utils import cap_dimensions, luminance


class QualityAnalyzer:
    """
    Brightness / contrast / sharpness scoring from raw pixels
    """

    def __init__(self, max_dimension: int = 400):
        self.max_dimension = max_dimension

    def analyze(self, pixels: np.ndarray) -> QualityMetrics:
        """
        Score an RGB or RGBA pixel buffer.

        Brightness is mean luminance, contrast its population standard
        deviation, both divided by 255. Sharpness is the mean Sobel gradient
        magnitude over interior pixels. The composite score averages
        closeness to mid-gray, doubled contrast and sharpness.
        """
        sample = cap_dimensions(pixels, self.max_dimension)
        lum = luminance(sample)

        avg_brightness = float(lum.mean())
        contrast = float(lum.std()) / 255  # zero variance gives 0
        sharpness = min(self._sharpness(lum), 1.0)

        brightness_score = 1 - abs(avg_brightness - 128) / 128
        contrast_score = min(contrast * 2, 1.0)

        overall_score = (brightness_score + contrast_score + sharpness) / 3

        return QualityMetrics(
            sharpness=round(sharpness, 3),
            contrast=round(contrast, 3),
            brightness=round(avg_brightness / 255, 3),
            score=round(overall_score, 3),
        )

    @staticmethod
    def _sharpness(lum: np.ndarray) -> float:
        """Accumulated Sobel magnitude normalized by (width * height * 255)"""
        height, width = lum.shape
        if height < 3 or width < 3:
            return 0.0

        gx = cv2.Sobel(lum, cv2.CV_64F, 1, 0, ksize=3)
        gy = cv2.Sobel(lum, cv2.CV_64F, 0, 1, ksize=3)

        # Borders excluded
        magnitude = np.sqrt(gx[1:-1, 1:-1] ** 2 + gy[1:-1, 1:-1] ** 2)

        return float(magnitude.sum()) / (width * height * 255)
