"""Pytest configuration and fixtures."""

import os
import tempfile
import shutil
from typing import Generator

import pytest

from photosorter.core.duplicates import DuplicateDetector
from photosorter.core.metadata import NullCaptureTimeExtractor
from photosorter.core.session import SorterSession


def _write_file(path: str, data: bytes = b"fake jpg data", mtime: float = None) -> str:
    """Create a file (and its parent folders), optionally setting its mtime."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def write_file():
    """Return a helper that writes a file with the given bytes and mtime."""
    return _write_file


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def photo_root(temp_dir: str) -> str:
    """Create a folder of photos for testing.

    Structure:
        temp_dir/
        ├── img1.jpg        (mtime 1000)
        ├── img2.jpg        (mtime 2000)
        ├── img10.JPG       (mtime 3000)
        ├── img3.png        (mtime 4000, same bytes as img1.jpg)
        ├── notes.txt       (ignored)
        └── Album/
            └── nested.jpg  (ignored, not at top level)
    """
    _write_file(os.path.join(temp_dir, "img1.jpg"), b"photo one", mtime=1000)
    _write_file(os.path.join(temp_dir, "img2.jpg"), b"photo two", mtime=2000)
    _write_file(os.path.join(temp_dir, "img10.JPG"), b"photo ten", mtime=3000)
    _write_file(os.path.join(temp_dir, "img3.png"), b"photo one", mtime=4000)
    _write_file(os.path.join(temp_dir, "notes.txt"), b"not a photo")
    _write_file(os.path.join(temp_dir, "Album", "nested.jpg"), b"nested")
    return temp_dir


@pytest.fixture
def session() -> Generator[SorterSession, None, None]:
    """A session that never reads EXIF and saves almost immediately."""
    s = SorterSession(
        use_exiftool=False,
        save_delay=0.01,
        extractor=NullCaptureTimeExtractor(),
        detector=DuplicateDetector(prefix_bytes=1024),
    )
    yield s
    s.close()
