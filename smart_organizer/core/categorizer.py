# core/categorizer.py

import re
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from smart_organizer.core.models import AnalysisResult, Category
from smart_organizer.security.input_validation import SecurityValidator

# Checked in order against the top classification label
LABEL_KEYWORDS = [
    (("screen", "computer"), Category.SCREENSHOTS),
    (("nature", "landscape", "mountain", "beach"), Category.NATURE),
    (("food", "meal", "dish"), Category.FOOD),
    (("art", "painting"), Category.ART),
    (("pet", "animal"), Category.PETS),
    (("car", "vehicle"), Category.VEHICLES),
    (("building", "architecture"), Category.ARCHITECTURE),
]

DOCUMENT_TEXT_LENGTH = 50


def categorize(analysis: AnalysisResult, nsfw_threshold: float = 0.7) -> Category:
    """
    Map an analysis to exactly one category.

    First match wins: faces, then long OCR text, then the top
    classification label, then unsafe NSFW predictions, else general.
    Faces outrank every other signal, NSFW included.
    """
    if analysis.faces:
        return Category.SELFIES

    if analysis.ocr_text and len(analysis.ocr_text) > DOCUMENT_TEXT_LENGTH:
        return Category.DOCUMENTS

    if analysis.classification:
        top_label = analysis.classification[0].label.lower()
        for keywords, category in LABEL_KEYWORDS:
            if any(keyword in top_label for keyword in keywords):
                return category

    if analysis.is_nsfw(nsfw_threshold):
        return Category.NSFW

    return Category.GENERAL


def smart_filename(analysis: AnalysisResult,
                   category: Category,
                   image_id: str,
                   original_name: str = "",
                   on_date: Optional[date] = None) -> str:
    """
    Build '{category}_{descriptor}_{date}_{suffix}{ext}' from the analysis.

    The descriptor comes from the caption (first three words longer than
    three characters), else the top label, else 'image'.
    """
    on_date = on_date or date.today()

    descriptor = ""
    if analysis.description:
        words = [w for w in analysis.description.split(" ") if len(w) > 3][:3]
        descriptor = re.sub(r"[^a-z0-9_]", "", "_".join(words).lower())
    elif analysis.classification:
        descriptor = re.sub(r"\s+", "_", analysis.classification[0].label.lower())

    descriptor = descriptor or "image"

    ext = Path(original_name).suffix.lower() or ".jpg"
    suffix = image_id.replace("-", "")[:4]

    filename = f"{category.value}_{descriptor}_{on_date.isoformat()}_{suffix}{ext}"
    return SecurityValidator.sanitize_filename(filename)


def derive_tags(analysis: AnalysisResult, category: Category) -> List[str]:
    """Tags describing an analysis: category, top labels, text and faces"""
    tags = [category.value]

    if analysis.classification:
        tags.extend(c.label for c in analysis.classification[:3])

    if analysis.ocr_text:
        tags.append("text")

    if analysis.faces:
        tags.extend(["faces", f"{len(analysis.faces)}-people"])

    return tags


def merge_tags(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Union of two tag lists, first occurrence order kept"""
    return list(dict.fromkeys([*existing, *new]))
