"""ExifTool management for Photo Sorter.

Finds the ExifTool executable and runs it through pyexiftool to read
embedded capture dates.
"""

import logging
import os
import shutil
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)

# ExifTool paths
EXIFTOOL_DIR = os.path.join("tools", "exiftool")
EXIFTOOL_EXE = "exiftool.exe" if sys.platform == "win32" else "exiftool"


def _default_base_dir() -> str:
    # Go up from photosorter/core/ to project root
    return os.path.dirname(os.path.dirname(os.path.dirname(__file__)))


def get_exiftool_path(base_dir: Optional[str] = None) -> Optional[str]:
    """Find ExifTool executable.

    Checks in order:
    1. System PATH
    2. Local tools directory

    Args:
        base_dir: Base directory for local tools folder.
                 Defaults to the directory above the package.

    Returns:
        Path to exiftool executable, or None if not found.
    """
    if shutil.which("exiftool"):
        return "exiftool"

    local_path = os.path.join(base_dir or _default_base_dir(), EXIFTOOL_DIR, EXIFTOOL_EXE)
    if os.path.exists(local_path):
        return local_path

    logger.debug("ExifTool not found; capture dates will not be read")
    return None


def is_exiftool_available(base_dir: Optional[str] = None) -> bool:
    """Check if ExifTool can be found."""
    return get_exiftool_path(base_dir) is not None


def get_install_instructions() -> str:
    """Manual installation instructions, for display by the CLI."""
    return (
        "ExifTool not found. Photos will be ordered by file date and name only.\n"
        "  1. Download from https://exiftool.org/\n"
        "  2. Place it in PATH or in ./tools/exiftool/"
    )


class ExifToolManager:
    """Manages an ExifTool process for batch reads.

    Usage:
        with ExifToolManager() as et:
            if et.is_running:
                rows = et.read_tags_batch(paths, ["EXIF:DateTimeOriginal"])
    """

    def __init__(self, base_dir: Optional[str] = None):
        """Initialize manager.

        Args:
            base_dir: Base directory for local tools folder.
        """
        self._helper = None
        self._exiftool_path = None
        self._base_dir = base_dir

    def start(self) -> bool:
        """Start ExifTool process.

        Returns:
            True if started successfully, False otherwise.
        """
        try:
            import exiftool
        except ImportError:
            logger.warning("pyexiftool not installed. Run: pip install pyexiftool")
            return False

        self._exiftool_path = get_exiftool_path(self._base_dir)
        if not self._exiftool_path:
            return False

        try:
            self._helper = exiftool.ExifToolHelper(executable=self._exiftool_path)
            self._helper.run()
            return True
        except Exception as e:
            logger.error(f"Failed to start ExifTool: {e}")
            self._helper = None
            return False

    def stop(self) -> None:
        """Stop ExifTool process."""
        if self._helper:
            try:
                self._helper.terminate()
            except Exception as e:
                logger.debug(f"Error stopping ExifTool: {e}")
            self._helper = None

    def read_tags(self, filepath: str, tags: List[str]) -> dict:
        """Read tags from a file.

        Args:
            filepath: Path to file.
            tags: Tags to read.

        Returns:
            Dict of tag values, empty if error.
        """
        if not self._helper:
            return {}

        try:
            result = self._helper.get_tags(filepath, tags)
            return result[0] if result else {}
        except Exception as e:
            logger.debug(f"Failed to read tags from {filepath}: {e}")
            return {}

    def read_tags_batch(
        self,
        filepaths: List[str],
        tags: List[str]
    ) -> List[dict]:
        """Read tags from multiple files in one ExifTool call.

        Falls back to per-file reads if the batch fails, so one bad file
        doesn't blank out the rest.

        Args:
            filepaths: List of file paths to read.
            tags: Tags to read.

        Returns:
            List of tag dicts, one per file in same order.
            Empty dict for files that failed to read.
        """
        if not self._helper or not filepaths:
            return [{} for _ in filepaths]

        try:
            results = self._helper.get_tags(filepaths, tags)
            if results and len(results) == len(filepaths):
                return results
        except Exception as e:
            logger.debug(f"Batch read failed, retrying per file: {e}")

        return [self.read_tags(path, tags) for path in filepaths]

    @property
    def is_running(self) -> bool:
        """Check if ExifTool is running."""
        return self._helper is not None

    def __enter__(self) -> "ExifToolManager":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()
