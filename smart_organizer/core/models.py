# core/models.py

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
import uuid

from smart_organizer.core.perceptual_hash import bits_to_hex


class Category(str, Enum):
    """Organization bucket assigned to every processed image"""
    SELFIES = "selfies"
    DOCUMENTS = "documents"
    SCREENSHOTS = "screenshots"
    NATURE = "nature"
    FOOD = "food"
    ART = "art"
    NSFW = "nsfw"
    DUPLICATES = "duplicates"
    GENERAL = "general"
    MEMES = "memes"
    RECEIPTS = "receipts"
    QR_CODES = "qr-codes"
    PETS = "pets"
    VEHICLES = "vehicles"
    ARCHITECTURE = "architecture"


class AnalysisStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"    # at least one stage failed at run time
    FAILED = "failed"      # image-level stub


class ProcessingStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


class ProcessingStage(str, Enum):
    UPLOAD = "upload"
    ANALYSIS = "analysis"
    ORGANIZATION = "organization"
    COMPLETE = "complete"


class SuggestionKind(str, Enum):
    RENAME = "rename"
    CATEGORY = "category"
    TAG = "tag"
    MERGE = "merge"
    DELETE = "delete"


# NSFW model classes that never mark an image unsafe
SAFE_NSFW_CLASSES = {"neutral", "drawing", "normal", "safe"}


def new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Capability outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClassificationLabel:
    label: str
    score: float


@dataclass(frozen=True)
class BoundingBox:
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min


@dataclass(frozen=True)
class DetectedObject:
    box: BoundingBox
    label: str
    score: float


@dataclass(frozen=True)
class NsfwPrediction:
    class_name: str
    probability: float

    @property
    def is_safe_class(self) -> bool:
        return self.class_name.lower() in SAFE_NSFW_CLASSES


@dataclass(frozen=True)
class FaceDetection:
    age: Optional[int] = None
    gender: str = "unknown"
    expression: str = "neutral"
    confidence: float = 0.5
    box: Optional[BoundingBox] = None


@dataclass(frozen=True)
class QualityMetrics:
    """Quality sub-scores, all in [0, 1] and rounded to 3 decimals"""
    sharpness: float
    contrast: float
    brightness: float
    score: float


# ---------------------------------------------------------------------------
# Analysis and records
# ---------------------------------------------------------------------------

@dataclass
class AnalysisResult:
    """
    Structured content analysis of a single image.

    Optional fields stay None when their stage is disabled or failed; an
    error message may coexist with fields filled by earlier stages.
    """
    image_id: str
    width: int = 0
    height: int = 0
    size_mb: float = 0.0
    id: str = field(default_factory=new_id)
    classification: Optional[List[ClassificationLabel]] = None
    description: Optional[str] = None
    objects: Optional[List[DetectedObject]] = None
    nsfw: Optional[List[NsfwPrediction]] = None
    faces: Optional[List[FaceDetection]] = None
    ocr_text: Optional[str] = None
    phash: Optional[str] = None
    quality: Optional[QualityMetrics] = None
    palette: Optional[List[str]] = None
    processing_time: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None
    status: AnalysisStatus = AnalysisStatus.COMPLETE

    @classmethod
    def stub(cls, image_id: str, size_bytes: int, error: str) -> 'AnalysisResult':
        """Placeholder result for an image whose analysis failed outright"""
        return cls(
            image_id=image_id,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            error=error,
            status=AnalysisStatus.FAILED,
        )

    @property
    def failed(self) -> bool:
        return self.status == AnalysisStatus.FAILED

    @property
    def top_label(self) -> Optional[str]:
        if self.classification:
            return self.classification[0].label
        return None

    @property
    def confidence(self) -> float:
        if self.classification:
            return self.classification[0].score
        return 0.5

    @property
    def face_count(self) -> int:
        return len(self.faces) if self.faces else 0

    @property
    def text_length(self) -> int:
        return len(self.ocr_text) if self.ocr_text else 0

    def is_nsfw(self, threshold: float = 0.7) -> bool:
        if not self.nsfw:
            return False
        return any(
            not p.is_safe_class and p.probability > threshold
            for p in self.nsfw
        )


@dataclass
class ImageRecord:
    """An ingested image and everything derived from it"""
    data: bytes = field(repr=False)
    name: str
    original_name: str = ""
    id: str = field(default_factory=new_id)
    size: int = 0
    processed: bool = False
    category: Optional[Category] = None
    tags: List[str] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    created_at: datetime = field(default_factory=datetime.now)
    processed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.original_name:
            self.original_name = self.name
        if not self.size:
            self.size = len(self.data)

    def to_report(self, nsfw_threshold: float = 0.7) -> Dict:
        """Export-facing summary of this record"""
        summary = None
        if self.analysis is not None:
            quality = self.analysis.quality
            summary = {
                'description': self.analysis.description,
                'confidence': self.analysis.confidence,
                'is_nsfw': self.analysis.is_nsfw(nsfw_threshold),
                'face_count': self.analysis.face_count,
                'text_length': self.analysis.text_length,
                'quality': {
                    'sharpness': quality.sharpness,
                    'contrast': quality.contrast,
                    'brightness': quality.brightness,
                    'score': quality.score,
                } if quality else None,
                'colors': list(self.analysis.palette or []),
                'phash': bits_to_hex(self.analysis.phash) if self.analysis.phash else None,
                'error': self.analysis.error,
            }

        return {
            'id': self.id,
            'name': self.name,
            'original_name': self.original_name,
            'size': self.size,
            'category': self.category.value if self.category else None,
            'tags': list(self.tags),
            'analysis': summary,
        }


# ---------------------------------------------------------------------------
# Batch state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProcessingStats:
    total: int = 0
    processed: int = 0
    successful: int = 0
    errors: int = 0
    categorized: Dict[Category, int] = field(default_factory=dict)
    avg_processing_time: float = 0.0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class ProcessingProgress:
    current: int = 0
    total: int = 0
    status: ProcessingStatus = ProcessingStatus.IDLE
    stage: ProcessingStage = ProcessingStage.UPLOAD
    message: str = "Ready to organize images"
    current_file: Optional[str] = None


@dataclass(frozen=True)
class DuplicateGroup:
    image_ids: List[str]
    similarity: float


@dataclass(frozen=True)
class SuggestionAction:
    """Deferred command carried by a suggestion; applied by apply_suggestion()"""
    kind: SuggestionKind
    image_ids: List[str]
    category: Optional[Category] = None
    tag: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Suggestion:
    kind: SuggestionKind
    confidence: float
    description: str
    image_ids: List[str]
    action: SuggestionAction
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class ModelStatus:
    name: str
    loaded: bool
    error: Optional[str] = None
