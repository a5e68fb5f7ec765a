"""Capture-time extraction from embedded image metadata.

PhotoOrderer only depends on CaptureTimeExtractor. When ExifTool is not
available, NullCaptureTimeExtractor stands in and every photo is treated
as having no capture time.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from photosorter.core.exiftool import ExifToolManager, is_exiftool_available

logger = logging.getLogger(__name__)

# Tags tried in order; the first one that parses wins
CAPTURE_TIME_TAGS = [
    "EXIF:DateTimeOriginal",
    "EXIF:CreateDate",
    "XMP:DateTimeOriginal",
]

_EXIF_DATETIME = re.compile(
    r"^(\d{4}):(\d{2}):(\d{2})[ T](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?\s*(Z|[+-]\d{2}:?\d{2})?$"
)


def parse_exif_datetime(value: Any) -> Optional[datetime]:
    """Parse an EXIF date string such as "2023:06:17 14:02:33".

    Sub-seconds and a trailing UTC offset are honored. Placeholder values
    like "0000:00:00 00:00:00" and anything unparseable return None.

    Example:
        >>> parse_exif_datetime("2023:06:17 14:02:33")
        datetime.datetime(2023, 6, 17, 14, 2, 33)
    """
    if not isinstance(value, str):
        return None
    match = _EXIF_DATETIME.match(value.strip())
    if not match:
        return None

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    try:
        moment = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            int((fraction or "0")[:6].ljust(6, "0"))
        )
    except ValueError:
        return None

    if offset:
        if offset == "Z":
            tz = timezone.utc
        else:
            sign = -1 if offset[0] == "-" else 1
            digits = offset[1:].replace(":", "")
            tz = timezone(sign * timedelta(hours=int(digits[:2]), minutes=int(digits[2:])))
        moment = moment.replace(tzinfo=tz)
    return moment


class CaptureTimeExtractor:
    """Reads capture timestamps for photos.

    Implementations must not raise for individual unreadable files; they
    report None for those instead.
    """

    def extract(self, paths: Sequence[str]) -> Dict[str, Optional[datetime]]:
        """Map each path to its capture time, or None if unknown."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources."""

    def __enter__(self) -> "CaptureTimeExtractor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class NullCaptureTimeExtractor(CaptureTimeExtractor):
    """Used when no metadata reader is available: nothing has a capture time."""

    def extract(self, paths: Sequence[str]) -> Dict[str, Optional[datetime]]:
        return {path: None for path in paths}


class ExifToolCaptureTimeExtractor(CaptureTimeExtractor):
    """Reads DateTimeOriginal (or CreateDate) through ExifTool."""

    BATCH_SIZE = 200

    def __init__(self, manager: Optional[ExifToolManager] = None):
        self._manager = manager or ExifToolManager()
        self._start_failed = False

    def extract(self, paths: Sequence[str]) -> Dict[str, Optional[datetime]]:
        result: Dict[str, Optional[datetime]] = {path: None for path in paths}
        if not paths or not self._ensure_started():
            return result

        for start in range(0, len(paths), self.BATCH_SIZE):
            batch: List[str] = list(paths[start:start + self.BATCH_SIZE])
            rows = self._manager.read_tags_batch(batch, CAPTURE_TIME_TAGS)
            for path, row in zip(batch, rows):
                result[path] = self._capture_time_from_row(row)
        return result

    def close(self) -> None:
        self._manager.stop()

    def _ensure_started(self) -> bool:
        if self._manager.is_running:
            return True
        if self._start_failed:
            return False
        if not self._manager.start():
            self._start_failed = True
            return False
        return True

    @staticmethod
    def _capture_time_from_row(row: Dict[str, Any]) -> Optional[datetime]:
        for tag in CAPTURE_TIME_TAGS:
            moment = parse_exif_datetime(row.get(tag))
            if moment is not None:
                return moment
        return None


def create_extractor(use_exiftool: bool = True) -> CaptureTimeExtractor:
    """Pick the best available extractor.

    Args:
        use_exiftool: Set False to skip metadata reading entirely.
    """
    if use_exiftool and is_exiftool_available():
        return ExifToolCaptureTimeExtractor()
    return NullCaptureTimeExtractor()
