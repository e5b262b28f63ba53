# core/collection.py

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Set

from smart_organizer.core.models import Category, ImageRecord
from smart_organizer.security.input_validation import SecurityValidator

logger = logging.getLogger(__name__)

RemoveHook = Callable[[ImageRecord], None]


@dataclass
class FilterOptions:
    """Criteria for ImageCollection.filter(); None or empty means 'any'"""
    categories: Set[Category] = field(default_factory=set)
    has_text: Optional[bool] = None
    has_faces: Optional[bool] = None
    is_nsfw: Optional[bool] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    tags: Set[str] = field(default_factory=set)
    search_query: str = ""


class ImageCollection:
    """
    In-memory store of ingested images, keyed by id in insertion order.

    Records are replaced whole by update(), so a reader holding a record
    never sees it half-written.
    """

    def __init__(self, nsfw_threshold: float = 0.7):
        self.nsfw_threshold = nsfw_threshold
        self._records: Dict[str, ImageRecord] = {}
        self._remove_hooks: List[RemoveHook] = []

    def add_image(self, data: bytes, name: str) -> ImageRecord:
        """Add raw image bytes under a display name"""
        record = ImageRecord(data=data, name=name)
        self._records[record.id] = record
        return record

    def add_files(self, paths: List[str]) -> List[ImageRecord]:
        """Validate and add image files; invalid paths are skipped"""
        added = []
        for path in paths:
            if not SecurityValidator.validate_image_path(path):
                logger.warning("Skipping invalid image: %s", path)
                continue
            file_path = Path(path)
            added.append(self.add_image(file_path.read_bytes(), file_path.name))

        logger.info("Added %d of %d files", len(added), len(paths))
        return added

    def get(self, image_id: str) -> Optional[ImageRecord]:
        return self._records.get(image_id)

    def __contains__(self, image_id: str) -> bool:
        return image_id in self._records

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def unprocessed(self) -> List[ImageRecord]:
        return [r for r in self._records.values() if not r.processed]

    def analyzed(self) -> List[ImageRecord]:
        """Processed records whose analysis did not fail outright"""
        return [
            r for r in self._records.values()
            if r.processed and r.analysis is not None and not r.analysis.failed
        ]

    def update(self, record: ImageRecord):
        """Replace the stored record with the same id"""
        if record.id not in self._records:
            raise KeyError(f"Unknown image id: {record.id}")
        self._records[record.id] = record

    def on_remove(self, hook: RemoveHook):
        """Register a callback invoked with every removed record"""
        self._remove_hooks.append(hook)

    def remove(self, image_id: str) -> Optional[ImageRecord]:
        record = self._records.pop(image_id, None)
        if record is not None:
            self._notify_removed(record)
        return record

    def clear(self):
        records = list(self._records.values())
        self._records.clear()
        for record in records:
            self._notify_removed(record)

    def _notify_removed(self, record: ImageRecord):
        for hook in self._remove_hooks:
            hook(record)

    def by_category(self, category: Category) -> List[ImageRecord]:
        return [r for r in self._records.values() if r.category == category]

    def category_counts(self) -> Dict[Category, int]:
        counts: Dict[Category, int] = {}
        for record in self._records.values():
            if record.category is not None:
                counts[record.category] = counts.get(record.category, 0) + 1
        return counts

    def filter(self, options: FilterOptions) -> List[ImageRecord]:
        return [r for r in self._records.values() if self._matches(r, options)]

    def _matches(self, record: ImageRecord, options: FilterOptions) -> bool:
        analysis = record.analysis

        if options.categories and record.category not in options.categories:
            return False

        if options.has_text is not None:
            has_text = bool(analysis and analysis.ocr_text)
            if has_text != options.has_text:
                return False

        if options.has_faces is not None:
            has_faces = bool(analysis and analysis.face_count)
            if has_faces != options.has_faces:
                return False

        if options.is_nsfw is not None:
            is_nsfw = bool(analysis and analysis.is_nsfw(self.nsfw_threshold))
            if is_nsfw != options.is_nsfw:
                return False

        if options.min_size is not None and record.size < options.min_size:
            return False
        if options.max_size is not None and record.size > options.max_size:
            return False

        if options.date_from is not None and record.created_at < options.date_from:
            return False
        if options.date_to is not None and record.created_at > options.date_to:
            return False

        if options.tags and not options.tags.intersection(record.tags):
            return False

        if options.search_query:
            query = options.search_query.lower()
            haystack = [record.name, record.original_name, *record.tags]
            if analysis is not None:
                haystack.extend([analysis.description or "", analysis.ocr_text or ""])
            if not any(query in text.lower() for text in haystack):
                return False

        return True
