# tests/test_suggestions.py

import dataclasses

import pytest

from smart_organizer.core.collection import ImageCollection
from smart_organizer.core.models import (
    AnalysisResult,
    Category,
    DuplicateGroup,
    QualityMetrics,
    Suggestion,
    SuggestionAction,
    SuggestionKind,
)
from smart_organizer.core.suggestions import (
    apply_suggestion,
    low_quality_suggestions,
    merge_suggestions,
)


@pytest.fixture
def collection():
    coll = ImageCollection()
    for name in ("one.jpg", "two.jpg", "three.jpg"):
        record = coll.add_image(name.encode(), name)
        coll.update(dataclasses.replace(record, category=Category.NATURE, processed=True))
    return coll


def ids(collection):
    return [r.id for r in collection]


def suggestion(kind, image_ids, **action):
    return Suggestion(
        kind=kind,
        confidence=0.9,
        description="test",
        image_ids=image_ids,
        action=SuggestionAction(kind=kind, image_ids=image_ids, **action),
    )


def test_merge_suggestions():
    groups = [DuplicateGroup(["a", "b"], 0.9), DuplicateGroup(["c", "d", "e"], 0.9)]
    suggestions = merge_suggestions(groups)

    assert len(suggestions) == 2
    assert suggestions[1].kind == SuggestionKind.MERGE
    assert suggestions[1].confidence == 0.9
    assert suggestions[1].description == "Found 3 similar images"
    assert suggestions[1].action.image_ids == ["c", "d", "e"]
    assert suggestions[1].action.category == Category.DUPLICATES


def test_low_quality_suggestions(collection):
    first, second, _ = ids(collection)
    for image_id, score in ((first, 0.2), (second, 0.9)):
        record = collection.get(image_id)
        collection.update(dataclasses.replace(record, analysis=AnalysisResult(
            image_id=image_id, quality=QualityMetrics(0.1, 0.1, 0.5, score),
        )))

    suggestions = low_quality_suggestions(collection, quality_threshold=0.7)

    assert len(suggestions) == 1
    assert suggestions[0].kind == SuggestionKind.DELETE
    assert suggestions[0].image_ids == [first]
    assert suggestions[0].confidence == 0.8


def test_apply_merge_keeps_first(collection):
    first, second, third = ids(collection)
    merge = merge_suggestions([DuplicateGroup([first, second, third], 0.9)])[0]

    apply_suggestion(collection, merge)

    assert collection.get(first).category == Category.NATURE
    assert collection.get(second).category == Category.DUPLICATES
    assert collection.get(third).category == Category.DUPLICATES


def test_apply_twice_is_idempotent(collection):
    first, second, _ = ids(collection)
    tag = suggestion(SuggestionKind.TAG, [first, second], tag="beach")

    apply_suggestion(collection, tag)
    apply_suggestion(collection, tag)

    assert collection.get(first).tags == ["beach"]
    assert collection.get(second).tags == ["beach"]


def test_apply_skips_missing_ids(collection):
    first, second, _ = ids(collection)
    collection.remove(second)

    apply_suggestion(collection, suggestion(
        SuggestionKind.CATEGORY, [first, second], category=Category.ART,
    ))

    assert collection.get(first).category == Category.ART
    assert second not in collection


def test_apply_rename(collection):
    first = ids(collection)[0]
    apply_suggestion(collection, suggestion(SuggestionKind.RENAME, [first], name="new.jpg"))

    record = collection.get(first)
    assert record.name == "new.jpg"
    assert record.original_name == "one.jpg"


def test_apply_delete_fires_hooks(collection):
    removed = []
    collection.on_remove(lambda r: removed.append(r.id))
    first = ids(collection)[0]
    delete = suggestion(SuggestionKind.DELETE, [first])

    apply_suggestion(collection, delete)
    apply_suggestion(collection, delete)

    assert removed == [first]
    assert len(collection) == 2
