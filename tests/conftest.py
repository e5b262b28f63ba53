# tests/conftest.py

import io

import cv2
import numpy as np
import pytest
from PIL import Image

from smart_organizer.core.exceptions import ProviderLoadError
from smart_organizer.core.providers import AnalysisContext, Capability, CapabilityProvider


class FakeProvider(CapabilityProvider):
    """Provider returning a canned output, optionally failing to load or run"""

    def __init__(self, capability: Capability, output=None,
                 fail_load: bool = False, fail_run: bool = False):
        super().__init__()
        self.capability = capability
        self.display_name = f"Fake {capability.value}"
        self.output = output
        self.fail_load = fail_load
        self.fail_run = fail_run
        self.load_calls = 0
        self.run_calls = 0
        self.released = False

    def _load_handle(self):
        self.load_calls += 1
        if self.fail_load:
            raise ProviderLoadError("model weights not found")
        return object()

    def _run(self, handle, image):
        self.run_calls += 1
        if self.fail_run:
            raise RuntimeError("inference crashed")
        return self.output

    def _release(self, handle):
        self.released = True


def encode_png(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_context():
    """Build a context with one fake provider per capability"""
    def _make(fail_load: bool = False, fail_run: bool = False, outputs=None):
        outputs = outputs or {}
        context = AnalysisContext()
        for capability in Capability:
            context.register(FakeProvider(
                capability,
                output=outputs.get(capability),
                fail_load=fail_load,
                fail_run=fail_run,
            ))
        return context
    return _make


@pytest.fixture
def random_pixels():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (120, 160, 3), dtype=np.uint8)


@pytest.fixture
def gradient_pixels():
    """Horizontal gradient, left dark to right bright"""
    row = np.linspace(0, 255, 64, dtype=np.uint8)
    gray = np.tile(row, (64, 1))
    return np.dstack([gray, gray, gray])


@pytest.fixture
def png_bytes(random_pixels):
    return encode_png(random_pixels)


@pytest.fixture
def image_files(tmp_path):
    """A small directory of images written with OpenCV"""
    rng = np.random.default_rng(7)
    paths = []
    for i in range(3):
        img = rng.integers(0, 255, (96, 96, 3), dtype=np.uint8)
        path = tmp_path / f"photo_{i}.png"
        cv2.imwrite(str(path), img)
        paths.append(str(path))

    # Exact duplicate of the first image
    duplicate = tmp_path / "photo_0_copy.png"
    duplicate.write_bytes((tmp_path / "photo_0.png").read_bytes())
    paths.append(str(duplicate))

    return paths
