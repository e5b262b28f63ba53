# tests/test_duplicate_detection.py

from pathlib import Path

import cv2
import numpy as np
import pytest

from smart_organizer.core.duplicate_detection import DuplicateGrouper
from smart_organizer.core.perceptual_hash import PerceptualHashEngine
from smart_organizer.utils.image_utils import decode_image


def flip_bits(bits: str, count: int) -> str:
    flipped = ["1" if b == "0" else "0" for b in bits[:count]]
    return "".join(flipped) + bits[count:]


@pytest.fixture
def base_hash():
    rng = np.random.default_rng(3)
    return "".join(rng.choice(["0", "1"], size=1024))


@pytest.fixture
def grouper():
    return DuplicateGrouper(similarity_threshold=0.85, group_similarity=0.9)


@pytest.fixture
def duplicate_images(tmp_path):
    """Create images with duplicates"""
    # Create original image
    img1 = np.random.randint(0, 255, (224, 224, 3), dtype=np.uint8)
    path1 = tmp_path / "original.png"
    cv2.imwrite(str(path1), img1)

    # Create exact duplicate
    path2 = tmp_path / "duplicate.png"
    cv2.imwrite(str(path2), img1)

    # Create near-duplicate (slightly brighter)
    img2 = cv2.convertScaleAbs(img1, alpha=1.0, beta=5)
    path3 = tmp_path / "near_duplicate.png"
    cv2.imwrite(str(path3), img2)

    # Create different image
    img3 = np.zeros((224, 224, 3), dtype=np.uint8)
    img3[:112] = 255
    path4 = tmp_path / "different.png"
    cv2.imwrite(str(path4), img3)

    return [str(path1), str(path2), str(path3), str(path4)]


def test_within_threshold_grouped(grouper, base_hash):
    """153 differing bits out of 1024 is still above 85% similarity"""
    other = flip_bits(base_hash, 153)
    groups = grouper.find_groups([("a", base_hash), ("b", other)])

    assert len(groups) == 1
    assert groups[0].image_ids == ["a", "b"]
    assert groups[0].similarity == 0.9


def test_outside_threshold_not_grouped(grouper, base_hash):
    other = flip_bits(base_hash, 154)
    assert grouper.find_groups([("a", base_hash), ("b", other)]) == []


def test_singletons_not_emitted(grouper, base_hash):
    assert grouper.find_groups([("a", base_hash)]) == []


def test_missing_hashes_skipped(grouper, base_hash):
    groups = grouper.find_groups([("a", base_hash), ("b", None), ("c", base_hash)])

    assert len(groups) == 1
    assert groups[0].image_ids == ["a", "c"]


def test_length_mismatch_not_grouped(grouper, base_hash):
    assert grouper.find_groups([("a", base_hash), ("b", base_hash[:-1])]) == []


def test_greedy_not_transitive(grouper, base_hash):
    """b is close to both a and c, but a and c are too far apart"""
    b = flip_bits(base_hash, 100)
    c = flip_bits(base_hash, 200)

    groups = grouper.find_groups([("a", base_hash), ("b", b), ("c", c)])

    assert [g.image_ids for g in groups] == [["a", "b"]]

    # Seeding from b instead pulls in both neighbours
    groups = grouper.find_groups([("b", b), ("a", base_hash), ("c", c)])
    assert [g.image_ids for g in groups] == [["b", "a", "c"]]


def test_each_image_in_one_group(grouper, base_hash):
    other = flip_bits(base_hash, 512)
    hashes = [("a", base_hash), ("b", other), ("c", base_hash), ("d", other)]

    groups = grouper.find_groups(hashes)
    members = [image_id for g in groups for image_id in g.image_ids]

    assert len(groups) == 2
    assert sorted(members) == ["a", "b", "c", "d"]


def test_duplicate_detection(grouper, duplicate_images):
    """Exact and near duplicates group together, the different image does not"""
    engine = PerceptualHashEngine()
    hashes = [
        (path, engine.compute_bits(decode_image(Path(path).read_bytes())))
        for path in duplicate_images
    ]

    groups = grouper.find_groups(hashes)

    assert len(groups) == 1
    assert set(groups[0].image_ids) == set(duplicate_images[:3])
