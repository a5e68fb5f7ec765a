"""Photo discovery for Photo Sorter.

Only files directly under the root are considered; subdirectories
(including export folders and .photo-sorter) are ignored.
"""

import logging
import os
from typing import List, Optional

from photosorter.core.models import ProgressCallback

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp"})


def is_image_file(filename: str) -> bool:
    """Check a file name against the accepted image extensions (any case)."""
    return os.path.splitext(filename)[1].lower() in IMAGE_EXTENSIONS


class PhotoScanner:
    """Finds the photos at the top level of a directory.

    Usage:
        photos = PhotoScanner("/photos/wedding").scan()
        print(f"Found {len(photos)} photos")
    """

    def __init__(self, root: str):
        """Initialize scanner.

        Args:
            root: Directory to scan.
        """
        self.root = root
        self.photos: List[str] = []

    def scan(self, on_progress: Optional[ProgressCallback] = None) -> List[str]:
        """Scan the root for image files.

        Regular files and symlinks are accepted. Entries that can't be
        inspected are skipped.

        Args:
            on_progress: Optional callback for progress updates.

        Returns:
            Absolute photo paths in directory-listing order.

        Raises:
            OSError: If the root itself cannot be listed.
        """
        self.photos = []

        with os.scandir(self.root) as entries:
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        continue
                    if not (entry.is_file() or entry.is_symlink()):
                        continue
                except OSError as e:
                    logger.debug(f"Cannot access entry {entry.path}: {e}")
                    continue

                if is_image_file(entry.name):
                    self.photos.append(os.path.abspath(entry.path))
                    if on_progress and len(self.photos) % 100 == 0:
                        on_progress(len(self.photos), len(self.photos), f"Found {len(self.photos)} photos...")

        if on_progress:
            on_progress(len(self.photos), len(self.photos), "Scan complete")
        return list(self.photos)


def scan_photos(root: str, on_progress: Optional[ProgressCallback] = None) -> List[str]:
    """Convenience function to scan a directory for photos."""
    return PhotoScanner(root).scan(on_progress)
