"""Deterministic display order for a set of photos."""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from photosorter.core.metadata import CaptureTimeExtractor, NullCaptureTimeExtractor
from photosorter.core.models import ProgressCallback
from photosorter.core.utils import natural_sort_key

logger = logging.getLogger(__name__)


def _timestamp(moment: Optional[datetime]) -> Optional[float]:
    if moment is None:
        return None
    try:
        return moment.timestamp()
    except (OverflowError, OSError, ValueError):
        return None


def _mtime(path: str) -> float:
    try:
        return os.stat(path).st_mtime
    except OSError as e:
        logger.debug(f"Cannot stat {path}: {e}")
        return float("inf")


class PhotoOrderer:
    """Sorts photos by capture time, then modification time, then name.

    Photos with a capture time come first, ascending. Ties and photos
    without one fall back to mtime, then to natural case-insensitive
    file-name order. The result depends only on the files' current state,
    so re-running after changes gives a fresh consistent order.

    Usage:
        with create_extractor() as extractor:
            ordered = PhotoOrderer(extractor).sort(paths)
    """

    def __init__(self, extractor: Optional[CaptureTimeExtractor] = None):
        self.extractor = extractor or NullCaptureTimeExtractor()

    def sort(
        self,
        photos: Sequence[str],
        on_progress: Optional[ProgressCallback] = None
    ) -> List[str]:
        """Return photos in display order.

        Metadata failures never abort ordering; affected photos are
        treated as having no capture time.
        """
        total = len(photos)
        if on_progress:
            on_progress(0, total, "Reading capture dates...")

        try:
            capture_times: Dict[str, Optional[datetime]] = self.extractor.extract(photos)
        except Exception as e:
            logger.warning(f"Capture date extraction failed, ordering by file date: {e}")
            capture_times = {}

        ordered = sorted(photos, key=lambda p: self.sort_key(p, capture_times.get(p)))

        if on_progress:
            on_progress(total, total, "Ordering complete")
        return ordered

    @staticmethod
    def sort_key(path: str, capture_time: Optional[datetime]) -> Tuple:
        ts = _timestamp(capture_time)
        name_key = natural_sort_key(os.path.basename(path))
        if ts is None:
            return (1, 0.0, _mtime(path), name_key)
        return (0, ts, _mtime(path), name_key)


def order_photos(
    photos: Sequence[str],
    extractor: Optional[CaptureTimeExtractor] = None
) -> List[str]:
    """Convenience function: sort photos with the given extractor."""
    return PhotoOrderer(extractor).sort(photos)
