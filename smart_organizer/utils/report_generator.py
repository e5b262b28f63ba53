# utils/report_generator.py

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from smart_organizer.core.collection import ImageCollection
from smart_organizer.core.models import ProcessingStats, Suggestion
from smart_organizer.utils.file_utils import format_file_size

logger = logging.getLogger(__name__)


class OrganizerReportGenerator:
    """
    Generate JSON reports for an organized collection
    """

    def __init__(self, nsfw_threshold: float = 0.7):
        self.nsfw_threshold = nsfw_threshold

    def build_report(self,
                     collection: ImageCollection,
                     stats: Optional[ProcessingStats] = None,
                     suggestions: Optional[List[Suggestion]] = None) -> Dict:
        """Assemble the report as a plain dict"""
        records = list(collection)
        total_size = sum(r.size for r in records)

        report = {
            'generated_at': _now_iso(),
            'summary': {
                'total_images': len(records),
                'total_size': format_file_size(total_size),
                'categories': {
                    category.value: count
                    for category, count in collection.category_counts().items()
                },
            },
            'images': [r.to_report(self.nsfw_threshold) for r in records],
        }

        if stats is not None:
            report['stats'] = self._stats_to_dict(stats)

        if suggestions:
            report['suggestions'] = [
                {
                    'id': s.id,
                    'type': s.kind.value,
                    'confidence': s.confidence,
                    'description': s.description,
                    'image_ids': list(s.image_ids),
                }
                for s in suggestions
            ]

        return report

    def generate_report(self,
                        collection: ImageCollection,
                        stats: Optional[ProcessingStats] = None,
                        output_path: str = "organizer_report.json",
                        suggestions: Optional[List[Suggestion]] = None) -> Path:
        """
        Write the JSON report to output_path
        """
        report = self.build_report(collection, stats, suggestions)

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info("Report generated: %s", path)
        return path

    @staticmethod
    def _stats_to_dict(stats: ProcessingStats) -> Dict:
        return {
            'total': stats.total,
            'processed': stats.processed,
            'successful': stats.successful,
            'errors': stats.errors,
            'categorized': {c.value: n for c, n in stats.categorized.items()},
            'avg_processing_time_ms': round(stats.avg_processing_time, 2),
            'start_time': stats.start_time.isoformat(),
            'end_time': stats.end_time.isoformat() if stats.end_time else None,
        }


def _now_iso() -> str:
    return datetime.now().isoformat(timespec='seconds')
