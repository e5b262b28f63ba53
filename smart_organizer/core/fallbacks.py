# core/fallbacks.py
#
# Deterministic stand-ins used when a capability provider is unavailable
# or fails on an image. They only look at the file name.

import zlib
from typing import List

from smart_organizer.core.models import (
    ClassificationLabel,
    DetectedObject,
    FaceDetection,
    NsfwPrediction,
)

# (filename keywords, label, score), first match wins
FILENAME_LABELS = [
    (("selfie", "portrait"), "person", 0.9),
    (("screenshot",), "screenshot", 0.95),
    (("document",), "document", 0.85),
    (("food",), "food", 0.8),
    (("nature",), "nature", 0.8),
]

GENERIC_CAPTIONS = [
    "A clear and well-composed image",
    "An interesting visual capture",
    "A quality photograph with good details",
]

FACE_KEYWORDS = ("selfie", "portrait")


def classify(filename: str) -> List[ClassificationLabel]:
    name = filename.lower()
    for keywords, label, score in FILENAME_LABELS:
        if any(keyword in name for keyword in keywords):
            return [ClassificationLabel(label=label, score=score)]
    return [ClassificationLabel(label="image", score=0.6)]


def caption(filename: str) -> str:
    # Stable choice per name
    return GENERIC_CAPTIONS[zlib.crc32(filename.encode("utf-8")) % len(GENERIC_CAPTIONS)]


def detect_objects(filename: str) -> List[DetectedObject]:
    return []


def detect_nsfw(filename: str) -> List[NsfwPrediction]:
    return [NsfwPrediction(class_name="Neutral", probability=0.95)]


def detect_faces(filename: str) -> List[FaceDetection]:
    name = filename.lower()
    if any(keyword in name for keyword in FACE_KEYWORDS):
        return [FaceDetection(age=25, gender="unknown", expression="neutral",
                              confidence=0.8)]
    return []


def recognize_text(filename: str) -> str:
    return ""
