# core/suggestions.py

import dataclasses
import logging
from typing import Iterable, List

from smart_organizer.core.collection import ImageCollection
from smart_organizer.core.categorizer import merge_tags
from smart_organizer.core.models import (
    Category,
    DuplicateGroup,
    ImageRecord,
    Suggestion,
    SuggestionAction,
    SuggestionKind,
)

logger = logging.getLogger(__name__)


def merge_suggestions(groups: Iterable[DuplicateGroup]) -> List[Suggestion]:
    """One merge suggestion per duplicate group"""
    suggestions = []
    for group in groups:
        suggestions.append(Suggestion(
            kind=SuggestionKind.MERGE,
            confidence=group.similarity,
            description=f"Found {len(group.image_ids)} similar images",
            image_ids=list(group.image_ids),
            action=SuggestionAction(
                kind=SuggestionKind.MERGE,
                image_ids=list(group.image_ids),
                category=Category.DUPLICATES,
            ),
        ))
    return suggestions


def low_quality_suggestions(records: Iterable[ImageRecord],
                            quality_threshold: float) -> List[Suggestion]:
    """A delete suggestion for every analyzed image scoring below the threshold"""
    suggestions = []
    for record in records:
        quality = record.analysis.quality if record.analysis else None
        if quality is None or quality.score >= quality_threshold:
            continue
        suggestions.append(Suggestion(
            kind=SuggestionKind.DELETE,
            confidence=round(1.0 - quality.score, 3),
            description=f"{record.name} has low quality (score {quality.score:.2f})",
            image_ids=[record.id],
            action=SuggestionAction(kind=SuggestionKind.DELETE, image_ids=[record.id]),
        ))
    return suggestions


def apply_suggestion(collection: ImageCollection, suggestion: Suggestion):
    """
    Execute the action carried by a suggestion against the collection.

    Ids no longer present are skipped. Applying the same suggestion twice
    leaves the collection as after the first application.
    """
    action = suggestion.action
    present = [image_id for image_id in action.image_ids if image_id in collection]

    if action.kind == SuggestionKind.MERGE:
        # Keep the first image of the group where it is
        for image_id in action.image_ids[1:]:
            if image_id in present:
                _replace(collection, image_id, category=Category.DUPLICATES)

    elif action.kind == SuggestionKind.CATEGORY:
        for image_id in present:
            _replace(collection, image_id, category=action.category)

    elif action.kind == SuggestionKind.TAG:
        for image_id in present:
            record = collection.get(image_id)
            _replace(collection, image_id, tags=merge_tags(record.tags, [action.tag]))

    elif action.kind == SuggestionKind.RENAME:
        for image_id in present:
            _replace(collection, image_id, name=action.name)

    elif action.kind == SuggestionKind.DELETE:
        for image_id in present:
            collection.remove(image_id)

    else:
        raise ValueError(f"Unsupported suggestion kind: {action.kind}")

    logger.info("Applied %s suggestion to %d images", action.kind.value, len(present))


def _replace(collection: ImageCollection, image_id: str, **changes):
    collection.update(dataclasses.replace(collection.get(image_id), **changes))
