# core/palette.py

from typing import List

import numpy as np

from smart_organizer.utils.image_utils import resize_exact


class PaletteExtractor:
    """
    Representative colors via fixed-iteration k-means in RGB space
    """

    def __init__(self,
                 n_colors: int = 5,
                 working_size: int = 150,
                 iterations: int = 20,
                 alpha_threshold: int = 128,
                 seed: int = 0):
        self.n_colors = n_colors
        self.working_size = working_size
        self.iterations = iterations
        self.alpha_threshold = alpha_threshold
        self.seed = seed

    def extract(self, pixels: np.ndarray) -> List[str]:
        """Return n_colors '#rrggbb' strings for an RGB or RGBA buffer"""
        sample = resize_exact(pixels, (self.working_size, self.working_size))
        colors = self._opaque_pixels(sample)

        centroids = self.kmeans(colors)

        return [to_hex(color) for color in centroids]

    def _opaque_pixels(self, sample: np.ndarray) -> np.ndarray:
        rgb = sample[:, :, :3].reshape(-1, 3).astype(np.float64)
        if sample.shape[2] < 4:
            return rgb

        alpha = sample[:, :, 3].reshape(-1)
        opaque = rgb[alpha > self.alpha_threshold]

        # Fully transparent input: fall back to every pixel
        return opaque if len(opaque) else rgb

    def kmeans(self, colors: np.ndarray) -> np.ndarray:
        """
        Plain Lloyd iterations without a convergence check.

        Centroids start at randomly drawn pixels (seeded, so repeated runs
        agree); an empty cluster keeps its previous centroid.
        """
        rng = np.random.default_rng(self.seed)
        picks = rng.integers(0, len(colors), size=self.n_colors)
        centroids = colors[picks].copy()

        for _ in range(self.iterations):
            # (n_pixels, k) squared distances; argmin keeps the lowest index on ties
            distances = ((colors[:, None, :] - centroids[None, :, :]) ** 2).sum(axis=2)
            assignment = distances.argmin(axis=1)

            for j in range(self.n_colors):
                members = colors[assignment == j]
                if len(members):
                    centroids[j] = members.mean(axis=0)

        return centroids


def to_hex(color) -> str:
    channels = [int(np.floor(c + 0.5)) for c in color]
    return "#" + "".join(f"{max(0, min(255, c)):02x}" for c in channels)
