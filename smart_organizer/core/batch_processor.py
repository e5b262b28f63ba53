# core/batch_processor.py

import dataclasses
import logging
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional

from smart_organizer.config import SystemConfig
from smart_organizer.core.analyzer import AnalysisOrchestrator
from smart_organizer.core.categorizer import categorize, derive_tags, merge_tags, smart_filename
from smart_organizer.core.collection import ImageCollection
from smart_organizer.core.duplicate_detection import DuplicateGrouper
from smart_organizer.core.exceptions import BatchStateError, EngineNotInitializedError
from smart_organizer.core.models import (
    Category,
    ImageRecord,
    ProcessingProgress,
    ProcessingStage,
    ProcessingStats,
    ProcessingStatus,
    Suggestion,
)
from smart_organizer.core.suggestions import low_quality_suggestions, merge_suggestions
from smart_organizer.utils.logging_config import PerformanceLogger

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProcessingProgress, ProcessingStats], None]
ModelProgressCallback = Callable[[str, float], None]


class BatchProcessor:
    """
    Sequential, cancellable driver of a full organization pass.

    Images are analyzed one at a time in collection order. Progress and
    statistics are frozen snapshots replaced by a single assignment, so an
    observer polling from another thread always reads a consistent state.
    cancel() is honoured at the next image boundary and before each
    organization step; a cancelled run ends idle without suggestions.
    """

    def __init__(self,
                 collection: ImageCollection,
                 orchestrator: AnalysisOrchestrator,
                 config: Optional[SystemConfig] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.collection = collection
        self.orchestrator = orchestrator
        self.config = config or SystemConfig()
        self.progress_callback = progress_callback
        self.performance = PerformanceLogger()

        self._cancel_event = threading.Event()
        self._progress = ProcessingProgress()
        self._stats = ProcessingStats()
        self._suggestions: List[Suggestion] = []

    @property
    def progress(self) -> ProcessingProgress:
        return self._progress

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def suggestions(self) -> List[Suggestion]:
        return list(self._suggestions)

    @property
    def is_processing(self) -> bool:
        return self._progress.status == ProcessingStatus.PROCESSING

    def cancel(self):
        """Request cancellation; safe to call from any thread"""
        if self.is_processing:
            logger.info("Cancellation requested")
        self._cancel_event.set()

    def load_engine(self, model_progress: Optional[ModelProgressCallback] = None):
        """
        Initialize the orchestrator, publishing a loading status meanwhile.

        model_progress receives the orchestrator's (message, percent) narration.
        """
        if self.is_processing:
            raise BatchStateError("Cannot load models while a batch run is in progress")

        self._set_progress(status=ProcessingStatus.LOADING, message="Loading AI models...")

        def on_progress(message: str, percent: float):
            self._set_progress(message=message)
            if model_progress is not None:
                model_progress(message, percent)

        try:
            self.orchestrator.initialize(self.config.ai, on_progress)
        except BaseException:
            self._replace_progress(status=ProcessingStatus.ERROR,
                                   message="Failed to load AI models")
            raise

        self._set_progress(status=ProcessingStatus.IDLE, message="Ready to organize images")

    def run(self) -> Optional[ProcessingStats]:
        """
        Process every unprocessed image in the collection.

        Returns the final stats snapshot, or None when there was nothing to
        process. A cancelled run returns its partial stats and leaves the
        processor idle. An exception escaping the run leaves it in the
        error state (idle for KeyboardInterrupt) before propagating.

        Raises:
            EngineNotInitializedError: the orchestrator was not initialized.
            BatchStateError: a run is already in progress.
        """
        if not self.orchestrator.is_ready:
            raise EngineNotInitializedError()
        if self.is_processing:
            raise BatchStateError("A batch run is already in progress")

        pending = self.collection.unprocessed()
        if not pending:
            logger.info("No unprocessed images")
            return None

        self._cancel_event.clear()
        self._suggestions = []
        self._stats = ProcessingStats(total=len(pending))

        try:
            return self._run_batch(pending)
        except KeyboardInterrupt:
            logger.info("Batch interrupted after %d images", self._stats.processed)
            self._replace_progress(status=ProcessingStatus.IDLE,
                                   message="Processing cancelled",
                                   current_file=None)
            raise
        except BaseException as e:
            logger.error("Batch aborted after %d images: %s", self._stats.processed, e)
            self._replace_progress(status=ProcessingStatus.ERROR,
                                   message=f"Processing failed: {e}",
                                   current_file=None)
            raise

    def _run_batch(self, pending: List[ImageRecord]) -> ProcessingStats:
        self._set_progress(
            current=0,
            total=len(pending),
            status=ProcessingStatus.PROCESSING,
            stage=ProcessingStage.ANALYSIS,
            message="Starting AI analysis...",
            current_file=None,
        )
        logger.info("Processing %d images", len(pending))

        for idx, record in enumerate(pending):
            if self._stop_if_cancelled():
                return self._stats

            self._set_progress(
                current=idx,
                message=f"Analyzing {record.name}...",
                current_file=record.name,
            )
            self._process_one(record)
            self._set_progress(current=idx + 1)

        if self._stop_if_cancelled():
            return self._stats

        if self._duplicates_enabled():
            self._set_progress(
                stage=ProcessingStage.ORGANIZATION,
                message="Finding duplicates...",
                current_file=None,
            )
            self._find_duplicates()

        if self._stop_if_cancelled():
            return self._stats

        if self.config.organize.flag_low_quality:
            self._suggestions.extend(low_quality_suggestions(
                self.collection.analyzed(),
                self.config.organize.quality_threshold,
            ))

        self._stats = dataclasses.replace(self._stats, end_time=datetime.now())
        self._set_progress(
            status=ProcessingStatus.COMPLETE,
            stage=ProcessingStage.COMPLETE,
            message=f"Processing complete! {len(self._suggestions)} suggestions",
            current_file=None,
        )

        stats = self._stats
        logger.info("Batch complete: %d processed, %d successful, %d errors",
                    stats.processed, stats.successful, stats.errors)
        return stats

    def _stop_if_cancelled(self) -> bool:
        """Go idle and discard pending suggestions when cancellation was requested"""
        if not self._cancel_event.is_set():
            return False

        logger.info("Batch cancelled after %d of %d images",
                    self._stats.processed, self._stats.total)
        self._suggestions = []
        self._set_progress(
            status=ProcessingStatus.IDLE,
            message="Processing cancelled",
            current_file=None,
        )
        return True

    def _process_one(self, record: ImageRecord):
        start = time.perf_counter()
        ai = self.config.ai
        organize = self.config.organize

        analysis = self.orchestrator.analyze(record, ai)
        failed = analysis.failed

        category = Category.GENERAL if failed else categorize(analysis, ai.nsfw_threshold)

        tags = record.tags
        if organize.add_tags:
            tags = merge_tags(record.tags, derive_tags(analysis, category))

        name = record.name
        if organize.auto_rename and not failed:
            name = smart_filename(analysis, category, record.id, record.original_name)

        self.collection.update(dataclasses.replace(
            record,
            analysis=analysis,
            category=category,
            tags=tags,
            name=name,
            processed=True,
            processed_at=datetime.now(),
        ))

        self._record_stats(category, failed, analysis.processing_time)
        self.performance.log_metric('process_image', time.perf_counter() - start,
                                    image_id=record.id, failed=failed)

        if failed:
            logger.warning("Failed to process %s: %s", record.name, analysis.error)

    def _record_stats(self, category: Category, failed: bool, processing_time: float):
        stats = self._stats
        successful = stats.successful if failed else stats.successful + 1

        avg = stats.avg_processing_time
        if not failed:
            avg = (avg * stats.successful + processing_time) / successful

        categorized = dict(stats.categorized)
        categorized[category] = categorized.get(category, 0) + 1

        self._stats = dataclasses.replace(
            stats,
            processed=stats.processed + 1,
            successful=successful,
            errors=stats.errors + 1 if failed else stats.errors,
            categorized=categorized,
            avg_processing_time=avg,
        )
        self._notify()

    def _duplicates_enabled(self) -> bool:
        return (self.config.organize.find_duplicates
                and self.config.ai.run_duplicate_detection)

    def _find_duplicates(self):
        dup_config = self.config.duplicate_detection
        grouper = DuplicateGrouper(
            similarity_threshold=dup_config.similarity_threshold,
            group_similarity=dup_config.group_similarity,
        )

        hashes = [(r.id, r.analysis.phash) for r in self.collection.analyzed()]
        groups = grouper.find_groups(hashes)
        self._suggestions.extend(merge_suggestions(groups))

    def _set_progress(self, **changes):
        self._replace_progress(**changes)
        self._notify()

    def _replace_progress(self, **changes):
        # Observers are not called
        self._progress = dataclasses.replace(self._progress, **changes)

    def _notify(self):
        if self.progress_callback is not None:
            self.progress_callback(self._progress, self._stats)
