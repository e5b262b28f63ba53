# core/analyzer.py

import logging
import time
from typing import Callable, Dict, Optional

import numpy as np
from PIL import Image

from smart_organizer import config as cfg
from smart_organizer.core import fallbacks
from smart_organizer.core.exceptions import EngineNotInitializedError, ProviderRunError
from smart_organizer.core.models import AnalysisResult, AnalysisStatus, ImageRecord, ModelStatus
from smart_organizer.core.palette import PaletteExtractor
from smart_organizer.core.perceptual_hash import PerceptualHashEngine
from smart_organizer.core.providers import AnalysisContext, Capability, Failed
from smart_organizer.core.quality import QualityAnalyzer
from smart_organizer.utils.image_utils import decode_image, to_pil_rgb
from smart_organizer.utils.logging_config import PerformanceLogger

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


class AnalysisOrchestrator:
    """
    Runs every enabled analysis stage for one image.

    Model-backed stages go through the providers registered in the
    context and drop to a filename heuristic when the provider is missing,
    failed to load, or errors on the image. Pixel stages (hash, quality,
    palette) are computed locally; a failure there leaves the field empty
    and marks the result partial. Nothing raises out of analyze() except
    the not-initialized precondition.
    """

    # (settings flag, capability, result field, fallback)
    CAPABILITY_STAGES = [
        ('run_classifier', Capability.CLASSIFY, 'classification', fallbacks.classify),
        ('run_captioner', Capability.CAPTION, 'description', fallbacks.caption),
        ('run_object_detection', Capability.DETECT_OBJECTS, 'objects', fallbacks.detect_objects),
        ('run_nsfw', Capability.DETECT_NSFW, 'nsfw', fallbacks.detect_nsfw),
        ('run_face_detection', Capability.DETECT_FACES, 'faces', fallbacks.detect_faces),
        ('run_ocr', Capability.RECOGNIZE_TEXT, 'ocr_text', fallbacks.recognize_text),
    ]

    # (settings flag, result field, stage name)
    PIXEL_STAGES = [
        ('run_duplicate_detection', 'phash', 'perceptual_hash'),
        ('run_quality_analysis', 'quality', 'quality'),
        ('run_color_palette', 'palette', 'palette'),
    ]

    def __init__(self,
                 context: AnalysisContext,
                 settings: Optional[cfg.AiSettings] = None,
                 limits: Optional[cfg.AnalysisLimits] = None):
        self.context = context
        self.settings = settings or cfg.AiSettings()
        limits = limits or cfg.AnalysisLimits()

        self.quality_analyzer = QualityAnalyzer(limits.quality_max_dimension)
        self.hash_engine = PerceptualHashEngine(limits.hash_size)
        self.palette_extractor = PaletteExtractor(
            n_colors=limits.palette_colors,
            working_size=limits.palette_size,
            iterations=limits.palette_iterations,
            alpha_threshold=limits.alpha_threshold,
            seed=limits.palette_seed,
        )
        self.performance = PerformanceLogger()
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self,
                   settings: Optional[cfg.AiSettings] = None,
                   progress_callback: Optional[ProgressCallback] = None):
        """
        Load the provider of every enabled model-backed stage.

        Load failures are recorded on the provider and never raised; the
        stage then uses its fallback for the rest of the session.
        """
        if self._ready:
            return

        if settings is not None:
            self.settings = settings
        report = progress_callback or (lambda message, progress: None)

        report("Starting analysis engine initialization...", 0)

        providers = []
        for flag, capability, _, _ in self.CAPABILITY_STAGES:
            provider = self.context.get(capability)
            if getattr(self.settings, flag) and provider is not None:
                providers.append(provider)

        total = len(providers)
        for idx, provider in enumerate(providers):
            report(f"Loading {provider.display_name}...", idx / total * 90)

            state = provider.load()

            if isinstance(state, Failed):
                report(f"{provider.display_name} failed - using fallback",
                       (idx + 1) / total * 90)
            else:
                report(f"{provider.display_name} loaded", (idx + 1) / total * 90)

        self._ready = True
        report("Analysis engine ready", 100)
        logger.info("Analysis engine ready (%d providers requested)", total)

    def analyze(self,
                record: ImageRecord,
                settings: Optional[cfg.AiSettings] = None) -> AnalysisResult:
        """
        Analyze one image with all enabled stages.

        Raises:
            EngineNotInitializedError: initialize() has not been called.
        """
        if not self._ready:
            raise EngineNotInitializedError()

        settings = settings or self.settings
        start = time.perf_counter()

        try:
            result = self._analyze(record, settings)
        except Exception as e:
            logger.exception("Analysis failed for %s", record.name)
            result = AnalysisResult.stub(record.id, record.size,
                                         f"Processing failed: {e}")

        elapsed = time.perf_counter() - start
        result.processing_time = round(elapsed * 1000, 2)
        self.performance.log_metric('analyze_image', elapsed, image_id=record.id)
        return result

    def _analyze(self, record: ImageRecord, settings: cfg.AiSettings) -> AnalysisResult:
        pixels = decode_image(record.data)
        height, width = pixels.shape[:2]

        result = AnalysisResult(
            image_id=record.id,
            width=width,
            height=height,
            size_mb=round(record.size / (1024 * 1024), 2),
        )

        image = to_pil_rgb(pixels)
        try:
            for flag, capability, field_name, fallback in self.CAPABILITY_STAGES:
                if getattr(settings, flag):
                    value = self._run_capability(capability, image, record.name, fallback)
                    setattr(result, field_name, value)
        finally:
            image.close()

        stage_errors = []
        for flag, field_name, stage in self.PIXEL_STAGES:
            if not getattr(settings, flag):
                continue
            try:
                setattr(result, field_name, self._run_pixel_stage(stage, pixels))
            except Exception as e:
                logger.warning("Stage %s failed for %s: %s", stage, record.name, e)
                stage_errors.append(f"{stage}: {e}")

        if stage_errors:
            result.status = AnalysisStatus.PARTIAL
            result.error = "Analysis error: " + "; ".join(stage_errors)

        return result

    def _run_capability(self, capability: Capability, image: Image.Image,
                        filename: str, fallback):
        provider = self.context.usable(capability)
        if provider is None:
            return fallback(filename)

        start = time.perf_counter()
        try:
            return provider.run(image)
        except ProviderRunError as e:
            logger.error("%s error on %s: %s", capability.value, filename, e)
            return fallback(filename)
        finally:
            self.performance.log_metric(capability.value, time.perf_counter() - start)

    def _run_pixel_stage(self, stage: str, pixels: np.ndarray):
        start = time.perf_counter()
        try:
            if stage == 'perceptual_hash':
                return self.hash_engine.compute_bits(pixels)
            if stage == 'quality':
                return self.quality_analyzer.analyze(pixels)
            if stage == 'palette':
                return self.palette_extractor.extract(pixels)
            raise ValueError(f"Unknown stage: {stage}")
        finally:
            self.performance.log_metric(stage, time.perf_counter() - start)

    def get_model_status(self) -> Dict[str, ModelStatus]:
        """Load status of every registered provider"""
        status = {}
        for capability, provider in self.context.items():
            state = provider.state
            status[capability.value] = ModelStatus(
                name=provider.display_name,
                loaded=provider.is_loaded,
                error=state.reason if isinstance(state, Failed) else None,
            )
        return status

    def terminate(self):
        """Release every provider and require a fresh initialize()"""
        for provider in self.context:
            provider.close()
        self._ready = False
