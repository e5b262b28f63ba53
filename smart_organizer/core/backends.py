# core/backends.py

import logging
import os
from typing import Any, List

import cv2
import numpy as np
from PIL import Image

from smart_organizer.core.models import (
    BoundingBox,
    ClassificationLabel,
    DetectedObject,
    FaceDetection,
    NsfwPrediction,
)
from smart_organizer.core.providers import (
    AnalysisContext,
    Capability,
    CapabilityProvider,
    require,
)

logger = logging.getLogger(__name__)

CANDIDATE_LABELS = [
    "person",
    "selfie",
    "portrait",
    "group photo",
    "nature",
    "landscape",
    "food",
    "document",
    "screenshot",
    "animal",
    "vehicle",
    "building",
    "art",
]


def _default_device() -> str:
    import torch
    return 'cuda' if torch.cuda.is_available() else 'cpu'


class TransformersProvider(CapabilityProvider):
    """
    Provider backed by a Hugging Face transformers pipeline
    """

    task: str = ""
    model_name: str = ""

    def __init__(self, model_name: str = None, device: str = None):
        super().__init__()
        self.model_name = model_name or self.model_name
        self.device = device

    def _load_handle(self) -> Any:
        from transformers import pipeline

        device = self.device or _default_device()
        return pipeline(self.task, model=self.model_name, device=device)


class ClassifierProvider(TransformersProvider):
    """
    CLIP zero-shot classification over a fixed label set
    """

    capability = Capability.CLASSIFY
    display_name = "Image Classifier"
    task = "zero-shot-image-classification"
    model_name = "openai/clip-vit-base-patch32"

    def __init__(self, model_name: str = None, device: str = None,
                 candidate_labels: List[str] = None, top_k: int = 5):
        super().__init__(model_name, device)
        self.candidate_labels = candidate_labels or list(CANDIDATE_LABELS)
        self.top_k = top_k

    def _run(self, handle, image: Image.Image) -> List[ClassificationLabel]:
        results = handle(image, candidate_labels=self.candidate_labels)
        results = sorted(results, key=lambda r: r["score"], reverse=True)
        return [
            ClassificationLabel(label=r["label"], score=float(r["score"]))
            for r in results[:self.top_k]
        ]


class CaptionProvider(TransformersProvider):
    """
    ViT-GPT2 image captioning
    """

    capability = Capability.CAPTION
    display_name = "Image Captioner"
    task = "image-to-text"
    model_name = "nlpconnect/vit-gpt2-image-captioning"

    def _run(self, handle, image: Image.Image) -> str:
        result = handle(image)
        text = result[0].get("generated_text", "").strip() if result else ""
        return text or "Unable to generate caption"


class ObjectDetectionProvider(TransformersProvider):
    """
    YOLOS object detection
    """

    capability = Capability.DETECT_OBJECTS
    display_name = "Object Detector"
    task = "object-detection"
    model_name = "hustvl/yolos-tiny"

    def _run(self, handle, image: Image.Image) -> List[DetectedObject]:
        detections = []
        for obj in handle(image):
            box = obj["box"]
            detections.append(DetectedObject(
                box=BoundingBox(
                    x_min=float(box["xmin"]),
                    y_min=float(box["ymin"]),
                    x_max=float(box["xmax"]),
                    y_max=float(box["ymax"]),
                ),
                label=obj["label"],
                score=float(obj["score"]),
            ))
        return detections


class NsfwProvider(TransformersProvider):
    """
    NSFW image classification
    """

    capability = Capability.DETECT_NSFW
    display_name = "NSFW Detector"
    task = "image-classification"
    model_name = "Falconsai/nsfw_image_detection"

    min_probability = 0.01

    def _run(self, handle, image: Image.Image) -> List[NsfwPrediction]:
        return [
            NsfwPrediction(class_name=p["label"], probability=float(p["score"]))
            for p in handle(image)
            if p["score"] > self.min_probability
        ]


class FaceProvider(CapabilityProvider):
    """
    OpenCV Haar cascade face detection.

    The cascade yields boxes only; age, gender and expression keep their
    neutral defaults.
    """

    capability = Capability.DETECT_FACES
    display_name = "Face Detection"

    def __init__(self, cascade_name: str = "haarcascade_frontalface_default.xml",
                 scale_factor: float = 1.1, min_neighbors: int = 5):
        super().__init__()
        self.cascade_name = cascade_name
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors

    def _load_handle(self) -> Any:
        cascade_path = os.path.join(cv2.data.haarcascades, self.cascade_name)
        require(os.path.exists(cascade_path), f"Cascade not found: {cascade_path}")

        cascade = cv2.CascadeClassifier(cascade_path)
        require(not cascade.empty(), f"Cascade failed to load: {cascade_path}")
        return cascade

    def _run(self, handle, image: Image.Image) -> List[FaceDetection]:
        gray = cv2.cvtColor(np.asarray(image), cv2.COLOR_RGB2GRAY)
        boxes = handle.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(30, 30),
        )

        return [
            FaceDetection(box=BoundingBox(
                x_min=float(x), y_min=float(y),
                x_max=float(x + w), y_max=float(y + h),
            ))
            for (x, y, w, h) in boxes
        ]


class OcrProvider(CapabilityProvider):
    """
    Tesseract OCR through pytesseract
    """

    capability = Capability.RECOGNIZE_TEXT
    display_name = "OCR Engine"

    def __init__(self, lang: str = "eng"):
        super().__init__()
        self.lang = lang

    def _load_handle(self) -> Any:
        import pytesseract

        # Raises when the tesseract binary is missing
        version = pytesseract.get_tesseract_version()
        logger.debug("Using tesseract %s", version)
        return pytesseract

    def _run(self, handle, image: Image.Image) -> str:
        return handle.image_to_string(image, lang=self.lang).strip()


def build_default_context(device: str = None) -> AnalysisContext:
    """Context wired with the stock backend for every capability"""
    context = AnalysisContext()
    context.register(ClassifierProvider(device=device))
    context.register(CaptionProvider(device=device))
    context.register(ObjectDetectionProvider(device=device))
    context.register(NsfwProvider(device=device))
    context.register(FaceProvider())
    context.register(OcrProvider())
    return context
