"""Tests for photosorter.core.stats module."""

import json
import os
from unittest.mock import patch

from photosorter.core.duplicates import DuplicateDetector
from photosorter.core.models import ImageEntry, Project
from photosorter.core.stats import StatsTracker, category_of


def make_photos(temp_dir, names_and_data):
    paths = []
    for name, data in names_and_data:
        path = os.path.join(temp_dir, name)
        with open(path, "wb") as f:
            f.write(data)
        paths.append(path)
    return paths


class TestCategoryOf:
    """Tests for category_of() function."""

    def test_known_categories_ignore_case(self):
        assert category_of("Yes") == "yes"
        assert category_of("NO") == "no"
        assert category_of("maybe") == "maybe"

    def test_other_tags(self):
        assert category_of("Family") is None
        assert category_of(None) is None
        assert category_of("") is None


class TestStatsTracker:
    """Tests for StatsTracker class."""

    def test_initialize_counts_primary_tags(self, temp_dir):
        photos = make_photos(temp_dir, [("a.jpg", b"a"), ("b.jpg", b"b"), ("c.jpg", b"c")])
        project = Project(images={
            "a.jpg": ImageEntry(tags=["Yes", "Family"]),
            "b.jpg": ImageEntry(tags=["Family", "No"]),
            "c.jpg": ImageEntry(tags=["maybe"]),
        })

        stats = StatsTracker(temp_dir).initialize(photos, project)

        assert stats.total == 3
        assert stats.categorized == {"yes": 1, "no": 0, "maybe": 1}
        assert stats.remaining == 1

    def test_initialize_ignores_entries_not_scanned(self, temp_dir):
        photos = make_photos(temp_dir, [("a.jpg", b"a")])
        project = Project(images={
            "a.jpg": ImageEntry(tags=["Yes"]),
            "gone.jpg": ImageEntry(tags=["Yes"]),
        })

        stats = StatsTracker(temp_dir).initialize(photos, project)

        assert stats.categorized["yes"] == 1

    def test_initialize_writes_stats_file(self, temp_dir):
        photos = make_photos(temp_dir, [("a.jpg", b"same"), ("b.jpg", b"same")])
        tracker = StatsTracker(temp_dir)

        tracker.initialize(photos, Project())

        with open(os.path.join(temp_dir, "photo_sorter_stats.json")) as f:
            saved = json.load(f)
        assert saved["total"] == 2
        assert saved["duplicates"] == [{"original": photos[0], "duplicate": photos[1]}]
        assert saved["lastUpdated"]

    def test_update_moves_between_categories(self, temp_dir):
        tracker = StatsTracker(temp_dir)
        tracker.initialize(make_photos(temp_dir, [("a.jpg", b"a")]), Project())

        tracker.update(None, "Yes")
        tracker.update("Yes", "Maybe")

        assert tracker.stats.categorized == {"yes": 0, "no": 0, "maybe": 1}

    def test_update_other_tags_no_change(self, temp_dir):
        tracker = StatsTracker(temp_dir)
        tracker.initialize(make_photos(temp_dir, [("a.jpg", b"a")]), Project())

        tracker.update(None, "Family")

        assert tracker.stats.categorized_total == 0

    def test_update_never_negative(self, temp_dir):
        tracker = StatsTracker(temp_dir)
        tracker.initialize([], Project())

        tracker.update("Yes", None)

        assert tracker.stats.categorized["yes"] == 0

    def test_get_stats_extra_fields(self, temp_dir):
        tracker = StatsTracker(temp_dir)
        tracker.initialize(make_photos(temp_dir, [("a.jpg", b"a"), ("b.jpg", b"b")]), Project())
        tracker.update(None, "No")

        stats = tracker.get_stats()

        assert stats["categorizedTotal"] == 1
        assert stats["remaining"] == 1

    def test_save_failure_is_not_fatal(self, temp_dir):
        tracker = StatsTracker(temp_dir)

        with patch("photosorter.core.stats.write_json_atomic", side_effect=OSError("full")):
            assert tracker.save() is False

    def test_load_round_trip(self, temp_dir):
        tracker = StatsTracker(temp_dir, DuplicateDetector())
        tracker.initialize(make_photos(temp_dir, [("a.jpg", b"a")]), Project())
        tracker.update(None, "Yes")

        other = StatsTracker(temp_dir)
        assert other.load() is True
        assert other.stats.categorized["yes"] == 1

    def test_load_missing(self, temp_dir):
        assert StatsTracker(temp_dir).load() is False

    def test_delete(self, temp_dir):
        tracker = StatsTracker(temp_dir)
        tracker.save()

        assert tracker.delete() is None
        assert not os.path.exists(tracker.stats_path)
        assert tracker.delete() is None
