# core/duplicate_detection.py

import logging
from typing import List, Optional, Sequence, Tuple

from smart_organizer.core.models import DuplicateGroup
from smart_organizer.core.perceptual_hash import hamming_similarity

logger = logging.getLogger(__name__)


class DuplicateGrouper:
    """
    Single-pass greedy grouping of images by fingerprint similarity.

    Each ungrouped image seeds a group and absorbs every later ungrouped
    image whose similarity to the seed exceeds the threshold. Similarity is
    not chained through group members, so the outcome depends on input
    order and is not a transitive closure.
    """

    def __init__(self,
                 similarity_threshold: float = 0.85,
                 group_similarity: float = 0.9):
        self.similarity_threshold = similarity_threshold
        self.group_similarity = group_similarity

    def find_groups(self,
                    hashes: Sequence[Tuple[str, Optional[str]]]) -> List[DuplicateGroup]:
        """
        Group (image_id, bit_string) pairs.

        Pairs without a hash are skipped. Only groups with two or more
        members are returned.
        """
        candidates = [(image_id, h) for image_id, h in hashes if h]
        grouped = set()
        groups = []

        for i, (image_id, hash1) in enumerate(candidates):
            if image_id in grouped:
                continue

            group = [image_id]

            for j in range(i + 1, len(candidates)):
                other_id, hash2 = candidates[j]
                if other_id in grouped:
                    continue

                if hamming_similarity(hash1, hash2) > self.similarity_threshold:
                    group.append(other_id)
                    grouped.add(other_id)

            if len(group) > 1:
                groups.append(DuplicateGroup(
                    image_ids=group,
                    similarity=self.group_similarity,
                ))
                grouped.update(group)

        logger.info("Found %d duplicate groups among %d hashed images",
                    len(groups), len(candidates))
        return groups
