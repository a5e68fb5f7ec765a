"""Curation progress statistics and the stats file."""

import logging
import os
from typing import Any, Dict, Optional, Sequence

from photosorter.core.duplicates import DuplicateDetector
from photosorter.core.models import CATEGORIES, Project, ProgressCallback, Stats
from photosorter.core.utils import read_json, utc_now_iso, write_json_atomic

logger = logging.getLogger(__name__)


def category_of(tag: Optional[str]) -> Optional[str]:
    """Map a primary tag to a stats category ("yes", "no", "maybe"), or None."""
    if not tag:
        return None
    key = tag.casefold()
    return key if key in CATEGORIES else None


class StatsTracker:
    """Keeps Stats for an open root and mirrors them to photo_sorter_stats.json.

    Stats are derived data: initialize() rebuilds them from the photo list
    and project, and update() adjusts category counts after each tag edit.
    """

    STATS_FILENAME = "photo_sorter_stats.json"

    def __init__(self, root: str, detector: Optional[DuplicateDetector] = None):
        self.root = root
        self.stats_path = os.path.join(root, self.STATS_FILENAME)
        self.detector = detector or DuplicateDetector()
        self.stats = Stats()

    def initialize(
        self,
        photos: Sequence[str],
        project: Project,
        on_progress: Optional[ProgressCallback] = None
    ) -> Stats:
        """Rebuild stats for the scanned photos and save them.

        Args:
            photos: Photo paths in display order.
            project: Project used to count categories.
            on_progress: Optional callback for hashing progress.
        """
        stats = Stats(total=len(photos))
        stats.duplicates = self.detector.initialize(photos, on_progress)

        for photo in photos:
            entry = project.images.get(os.path.basename(photo))
            category = category_of(entry.primary_tag if entry else None)
            if category:
                stats.categorized[category] += 1

        stats.last_updated = utc_now_iso()
        self.stats = stats
        self.save()
        return stats

    def update(self, previous_primary: Optional[str], new_primary: Optional[str]) -> None:
        """Adjust category counts after a photo's primary tag changed."""
        previous = category_of(previous_primary)
        new = category_of(new_primary)
        if previous == new:
            return

        if previous:
            self.stats.categorized[previous] = max(0, self.stats.categorized[previous] - 1)
        if new:
            self.stats.categorized[new] += 1
        self.stats.last_updated = utc_now_iso()
        self.save()

    def get_stats(self) -> Dict[str, Any]:
        """Stats as a dict, plus categorizedTotal and remaining."""
        data = self.stats.to_dict()
        data["categorizedTotal"] = self.stats.categorized_total
        data["remaining"] = self.stats.remaining
        return data

    def save(self) -> bool:
        """Write the stats file atomically.

        Returns:
            True on success. Failures are logged; stats are never critical.
        """
        try:
            write_json_atomic(self.stats_path, self.stats.to_dict(), temp_prefix=".stats_")
            return True
        except OSError as e:
            logger.warning(f"Failed to save stats to {self.stats_path}: {e}")
            return False

    def load(self) -> bool:
        """Load a previously saved stats file.

        Returns:
            True if the file existed and parsed.
        """
        if not os.path.exists(self.stats_path):
            return False
        try:
            self.stats = Stats.from_dict(read_json(self.stats_path))
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to read stats file {self.stats_path}: {e}")
            return False

    def delete(self) -> Optional[str]:
        """Remove the stats file.

        Returns:
            Error message, or None on success or if it did not exist.
        """
        try:
            os.unlink(self.stats_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            return f"Failed to remove {self.stats_path}: {e}"
        return None
