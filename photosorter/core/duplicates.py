"""Duplicate detection by bounded-prefix content fingerprints.

Only the first ``PREFIX_BYTES`` of each file are hashed. Two files that
share that prefix are reported as duplicates even if they differ later;
this false positive on large files is an accepted limitation of the
heuristic.
"""

import hashlib
import logging
import os
import time
from typing import Dict, List, Optional, Sequence

from photosorter.core.models import DuplicatePair, ProgressCallback

logger = logging.getLogger(__name__)

# Prefix for fingerprints of files that could not be read
ERROR_FINGERPRINT_PREFIX = "error_"


class DuplicateDetector:
    """Flags probable duplicate photos by content.

    Usage:
        detector = DuplicateDetector()
        pairs = detector.initialize(photo_paths)
        for pair in pairs:
            print(f"{pair.duplicate} looks like {pair.original}")
    """

    PREFIX_BYTES = 10 * 1024 * 1024  # 10 MiB

    def __init__(self, prefix_bytes: Optional[int] = None):
        """Initialize detector.

        Args:
            prefix_bytes: Bytes hashed per file (default PREFIX_BYTES).
        """
        self.prefix_bytes = self.PREFIX_BYTES if prefix_bytes is None else prefix_bytes
        self.duplicates: List[DuplicatePair] = []
        self._originals: Dict[str, str] = {}

    def fingerprint(self, path: str) -> str:
        """Hash the leading bytes of a file.

        Args:
            path: File to fingerprint.

        Returns:
            MD5 hex digest of at most prefix_bytes bytes. If the file can't
            be read, a unique "error_..." value that never matches another
            file.
        """
        try:
            with open(path, "rb") as f:
                data = f.read(self.prefix_bytes)
            return hashlib.md5(data).hexdigest()
        except OSError as e:
            logger.debug(f"Cannot fingerprint {path}: {e}")
            return f"{ERROR_FINGERPRINT_PREFIX}{os.path.basename(path)}_{time.time_ns()}"

    def initialize(
        self,
        photos: Sequence[str],
        on_progress: Optional[ProgressCallback] = None
    ) -> List[DuplicatePair]:
        """Fingerprint every photo and collect duplicate pairs.

        The first photo with a given fingerprint is the original; each later
        one is paired with it, in scan order.

        Args:
            photos: Photo paths in scan order.
            on_progress: Optional callback for progress updates.

        Returns:
            List of DuplicatePair (also kept in ``self.duplicates``).
        """
        self.duplicates = []
        self._originals = {}
        total = len(photos)

        for i, photo in enumerate(photos):
            if on_progress:
                on_progress(i, total, f"Hashing: {os.path.basename(photo)}")

            digest = self.fingerprint(photo)
            if digest.startswith(ERROR_FINGERPRINT_PREFIX):
                continue

            original = self._originals.get(digest)
            if original is None:
                self._originals[digest] = photo
            else:
                self.duplicates.append(DuplicatePair(original=original, duplicate=photo))

        if on_progress:
            on_progress(total, total, "Duplicate check complete")

        if self.duplicates:
            logger.info(f"Found {len(self.duplicates)} probable duplicate(s) among {total} photos")
        return list(self.duplicates)
