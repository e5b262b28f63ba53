# tests/test_backends.py

import numpy as np
import pytest
from PIL import Image

from smart_organizer.core import fallbacks
from smart_organizer.core.backends import (
    CaptionProvider,
    ClassifierProvider,
    FaceProvider,
    NsfwProvider,
    ObjectDetectionProvider,
    OcrProvider,
    build_default_context,
)
from smart_organizer.core.models import BoundingBox, ClassificationLabel, NsfwPrediction
from smart_organizer.core.providers import Capability, NotLoaded


@pytest.fixture
def image():
    return Image.new("RGB", (64, 64), color=(120, 120, 120))


def test_classifier_sorts_and_truncates(image):
    def handle(img, candidate_labels):
        return [{"label": label, "score": i / 100} for i, label in enumerate(candidate_labels)]

    provider = ClassifierProvider(top_k=3, candidate_labels=["a", "b", "c", "d"])
    result = provider._run(handle, image)

    assert result == [
        ClassificationLabel("d", 0.03),
        ClassificationLabel("c", 0.02),
        ClassificationLabel("b", 0.01),
    ]


def test_caption_output(image):
    provider = CaptionProvider()

    assert provider._run(lambda img: [{"generated_text": " a cat "}], image) == "a cat"
    assert provider._run(lambda img: [], image) == "Unable to generate caption"


def test_object_detection_boxes(image):
    raw = [{"label": "dog", "score": 0.9,
            "box": {"xmin": 1, "ymin": 2, "xmax": 11, "ymax": 22}}]
    result = ObjectDetectionProvider()._run(lambda img: raw, image)

    assert result[0].label == "dog"
    assert result[0].box == BoundingBox(1.0, 2.0, 11.0, 22.0)
    assert result[0].box.width == 10
    assert result[0].box.height == 20


def test_nsfw_drops_negligible_scores(image):
    raw = [{"label": "neutral", "score": 0.98}, {"label": "porn", "score": 0.005}]
    result = NsfwProvider()._run(lambda img: raw, image)

    assert result == [NsfwPrediction("neutral", 0.98)]


def test_face_provider_on_blank_image(image):
    provider = FaceProvider()
    provider.load()

    assert provider.is_loaded
    assert provider.run(image) == []


def test_face_provider_missing_cascade():
    provider = FaceProvider(cascade_name="no_such_cascade.xml")
    provider.load()

    assert provider.has_failed
    assert "Cascade not found" in provider.state.reason


def test_ocr_provider_load_never_raises():
    provider = OcrProvider()
    provider.load()

    assert not isinstance(provider.state, NotLoaded)


def test_default_context_registers_every_capability():
    context = build_default_context(device="cpu")

    for capability in Capability:
        provider = context.get(capability)
        assert provider is not None
        assert isinstance(provider.state, NotLoaded)


@pytest.mark.parametrize("filename,label,score", [
    ("Selfie_001.jpg", "person", 0.9),
    ("my_portrait.png", "person", 0.9),
    ("Screenshot 2024.png", "screenshot", 0.95),
    ("scan_document.pdf.png", "document", 0.85),
    ("food.jpg", "food", 0.8),
    ("nature_walk.jpg", "nature", 0.8),
    ("IMG_1234.jpg", "image", 0.6),
])
def test_fallback_classification(filename, label, score):
    assert fallbacks.classify(filename) == [ClassificationLabel(label, score)]


def test_fallback_caption_is_stable():
    assert fallbacks.caption("a.jpg") == fallbacks.caption("a.jpg")
    assert fallbacks.caption("a.jpg") in fallbacks.GENERIC_CAPTIONS


def test_fallback_faces():
    assert len(fallbacks.detect_faces("selfie.jpg")) == 1
    assert fallbacks.detect_faces("cat.jpg") == []


def test_fallback_nsfw_is_safe():
    predictions = fallbacks.detect_nsfw("anything.jpg")
    assert all(p.is_safe_class for p in predictions)
