"""Tests for photosorter.core.ordering module."""

import os
from datetime import datetime
from unittest.mock import MagicMock

from photosorter.core.metadata import CaptureTimeExtractor
from photosorter.core.ordering import PhotoOrderer, order_photos


class FixedExtractor(CaptureTimeExtractor):
    """Returns preset capture times."""

    def __init__(self, times):
        self.times = times

    def extract(self, paths):
        return {p: self.times.get(os.path.basename(p)) for p in paths}


def make(temp_dir, name, mtime):
    path = os.path.join(temp_dir, name)
    with open(path, "wb") as f:
        f.write(name.encode())
    os.utime(path, (mtime, mtime))
    return path


def names(paths):
    return [os.path.basename(p) for p in paths]


class TestPhotoOrderer:
    """Tests for PhotoOrderer.sort()."""

    def test_capture_time_first_then_mtime(self, temp_dir):
        a = make(temp_dir, "a.jpg", 100)
        b = make(temp_dir, "b.jpg", 50)
        c = make(temp_dir, "c.jpg", 10)
        extractor = FixedExtractor({
            "a.jpg": datetime(2023, 1, 2),
            "c.jpg": datetime(2023, 1, 1),
        })

        ordered = PhotoOrderer(extractor).sort([a, b, c])

        # c and a have capture times (ascending); b has none and comes last
        assert names(ordered) == ["c.jpg", "a.jpg", "b.jpg"]

    def test_mtime_breaks_capture_time_ties(self, temp_dir):
        a = make(temp_dir, "a.jpg", 200)
        b = make(temp_dir, "b.jpg", 100)
        moment = datetime(2023, 1, 1)
        extractor = FixedExtractor({"a.jpg": moment, "b.jpg": moment})

        assert names(PhotoOrderer(extractor).sort([a, b])) == ["b.jpg", "a.jpg"]

    def test_without_metadata_orders_by_mtime(self, temp_dir):
        a = make(temp_dir, "a.jpg", 300)
        b = make(temp_dir, "b.jpg", 100)
        c = make(temp_dir, "c.jpg", 200)

        assert names(PhotoOrderer().sort([a, b, c])) == ["b.jpg", "c.jpg", "a.jpg"]

    def test_natural_name_order_breaks_mtime_ties(self, temp_dir):
        paths = [make(temp_dir, n, 100) for n in ("IMG10.jpg", "img2.jpg", "IMG1.jpg")]

        assert names(PhotoOrderer().sort(paths)) == ["IMG1.jpg", "img2.jpg", "IMG10.jpg"]

    def test_deterministic(self, temp_dir):
        paths = [make(temp_dir, f"p{i}.jpg", 100) for i in range(5)]

        first = PhotoOrderer().sort(paths)
        second = PhotoOrderer().sort(list(reversed(paths)))

        assert first == second

    def test_extractor_failure_falls_back(self, temp_dir):
        a = make(temp_dir, "a.jpg", 200)
        b = make(temp_dir, "b.jpg", 100)
        extractor = MagicMock()
        extractor.extract.side_effect = RuntimeError("exiftool crashed")

        assert names(PhotoOrderer(extractor).sort([a, b])) == ["b.jpg", "a.jpg"]

    def test_missing_file_sorted_last(self, temp_dir):
        a = make(temp_dir, "a.jpg", 100)
        ghost = os.path.join(temp_dir, "0ghost.jpg")

        assert names(PhotoOrderer().sort([ghost, a])) == ["a.jpg", "0ghost.jpg"]

    def test_progress_callback(self, temp_dir):
        calls = []
        PhotoOrderer().sort([make(temp_dir, "a.jpg", 1)], lambda c, t, m: calls.append((c, t)))

        assert calls == [(0, 1), (1, 1)]

    def test_order_photos_convenience(self, temp_dir):
        a = make(temp_dir, "a.jpg", 2)
        b = make(temp_dir, "b.jpg", 1)

        assert names(order_photos([a, b])) == ["b.jpg", "a.jpg"]
