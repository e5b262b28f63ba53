# core/perceptual_hash.py

import imagehash
import numpy as np

from smart_organizer.utils.image_utils import luminance, resize_exact


class PerceptualHashEngine:
    """
    Mean-luminance fingerprint over a fixed hash_size x hash_size grid
    """

    def __init__(self, hash_size: int = 32):
        self.hash_size = hash_size

    def compute(self, pixels: np.ndarray) -> imagehash.ImageHash:
        """Downsample, then mark every sample brighter than the grid mean"""
        grid = resize_exact(pixels, (self.hash_size, self.hash_size))
        lum = luminance(grid)
        return imagehash.ImageHash(lum > lum.mean())

    def compute_bits(self, pixels: np.ndarray) -> str:
        """Row-major '0'/'1' string of length hash_size ** 2"""
        return hash_to_bits(self.compute(pixels))


def hash_to_bits(image_hash: imagehash.ImageHash) -> str:
    return "".join("1" if bit else "0" for bit in image_hash.hash.flatten())


def bits_to_hex(bits: str) -> str:
    """Compact hex rendering of a bit string, for display"""
    if not bits:
        return ""
    width = (len(bits) + 3) // 4
    return format(int(bits, 2), f"0{width}x")


def hamming_similarity(hash1: str, hash2: str) -> float:
    """
    Fraction of positions where two bit strings agree.

    Strings of different length (or empty) are not comparable and score 0.
    """
    if len(hash1) != len(hash2) or not hash1:
        return 0.0

    a = np.frombuffer(hash1.encode("ascii"), dtype=np.uint8)
    b = np.frombuffer(hash2.encode("ascii"), dtype=np.uint8)
    return float(np.count_nonzero(a == b)) / len(hash1)
