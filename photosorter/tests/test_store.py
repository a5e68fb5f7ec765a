"""Tests for photosorter.core.store module."""

import json
import os
import time
from unittest.mock import patch

from photosorter.core.models import ExportRecord
from photosorter.core.store import MetadataStore


def read_project(store: MetadataStore) -> dict:
    with open(store.project_path, encoding="utf-8") as f:
        return json.load(f)


def wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


class TestLoadOrCreate:
    """Tests for MetadataStore.load_or_create()."""

    def test_creates_project_file(self, temp_dir):
        store = MetadataStore(temp_dir)
        project = store.load_or_create(["a.jpg", "b.jpg"])

        assert os.path.exists(store.project_path)
        assert set(project.images) == {"a.jpg", "b.jpg"}
        assert store.init_error is None

    def test_written_layout(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        saved = read_project(store)
        assert saved["version"] == 1
        assert saved["root"] == "."
        assert saved["images"] == {"a.jpg": {"tags": []}}
        assert saved["tags"] == []
        assert saved["updatedAt"].endswith("Z")

    def test_reduces_paths_to_base_names(self, temp_dir):
        store = MetadataStore(temp_dir)
        project = store.load_or_create([os.path.join(temp_dir, "a.jpg")])

        assert list(project.images) == ["a.jpg"]

    def test_keeps_existing_tags_and_vanished_entries(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg", "gone.jpg"])
        store.add_tag("a.jpg", "Yes")
        store.add_tag("gone.jpg", "No")
        store.save()
        assert store.flush() is True

        reopened = MetadataStore(temp_dir)
        project = reopened.load_or_create(["a.jpg", "new.jpg"])

        assert project.images["a.jpg"].tags == ["Yes"]
        assert project.images["gone.jpg"].tags == ["No"]
        assert project.images["new.jpg"].tags == []

    def test_corrupt_file_replaced(self, temp_dir):
        store = MetadataStore(temp_dir)
        os.makedirs(store.project_dir)
        with open(store.project_path, "w") as f:
            f.write("{ this is not json")

        project = store.load_or_create(["a.jpg"])

        assert list(project.images) == ["a.jpg"]
        assert store.init_error is None
        assert read_project(store)["images"] == {"a.jpg": {"tags": []}}

    def test_wrongly_typed_export_record_loads(self, temp_dir):
        store = MetadataStore(temp_dir)
        os.makedirs(store.project_dir)
        with open(store.project_path, "w") as f:
            json.dump({"images": {"a.jpg": {"tags": ["Yes"]}},
                       "lastExport": {"exportRoot": ".", "moved": [1], "linked": {}}}, f)

        project = store.load_or_create(["a.jpg"])

        assert store.init_error is None
        assert project.images["a.jpg"].tags == ["Yes"]
        assert project.last_export.moved == 0
        assert project.last_export.linked == 0

    def test_unexpected_parse_error_discards_file(self, temp_dir):
        store = MetadataStore(temp_dir)
        os.makedirs(store.project_dir)
        with open(store.project_path, "w") as f:
            json.dump({"images": {}}, f)

        with patch("photosorter.core.store.Project.from_dict", side_effect=TypeError("bad value")):
            project = store.load_or_create(["a.jpg"])

        assert store.init_error is None
        assert list(project.images) == ["a.jpg"]

    def test_cleans_orphaned_temp_files(self, temp_dir):
        store = MetadataStore(temp_dir)
        os.makedirs(store.project_dir)
        orphan = os.path.join(store.project_dir, ".project_abc.tmp")
        with open(orphan, "w") as f:
            f.write("partial")

        store.load_or_create([])

        assert not os.path.exists(orphan)

    def test_unwritable_project_sets_init_error(self, temp_dir):
        store = MetadataStore(temp_dir)

        with patch("photosorter.core.store.write_json_atomic", side_effect=OSError("read-only")):
            project = store.load_or_create(["a.jpg"])

        assert project.images == {}
        assert "read-only" in store.init_error

    def test_project_dir_blocked_by_file(self, temp_dir):
        with open(os.path.join(temp_dir, MetadataStore.PROJECT_DIR_NAME), "w") as f:
            f.write("in the way")
        store = MetadataStore(temp_dir)

        store.load_or_create(["a.jpg"])

        assert store.init_error is not None


class TestTagMutation:
    """Tests for add_tag()/remove_tag()."""

    def test_add_tag_normalizes(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "  Best   Man ")

        assert store.get_tags("a.jpg") == ["Best Man"]
        assert store.get_all_tags() == ["Best Man"]

    def test_add_duplicate_ignores_case(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "Yes")
        store.add_tag("a.jpg", "YES")

        assert store.get_tags("a.jpg") == ["Yes"]

    def test_add_empty_is_noop(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "   ")

        assert store.get_tags("a.jpg") == []
        assert store.get_all_tags() == []

    def test_add_creates_missing_entry(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create([])

        store.add_tag("new.jpg", "Yes")

        assert store.get_tags("new.jpg") == ["Yes"]

    def test_first_tag_is_primary(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "Yes")
        store.add_tag("a.jpg", "Family")

        assert store.project.images["a.jpg"].primary_tag == "Yes"

    def test_remove_case_insensitive(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])
        store.add_tag("a.jpg", "Yes")
        store.add_tag("a.jpg", "Family")

        store.remove_tag("a.jpg", "yes")

        assert store.get_tags("a.jpg") == ["Family"]

    def test_remove_keeps_global_tag(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])
        store.add_tag("a.jpg", "Yes")

        store.remove_tag("a.jpg", "Yes")

        assert store.get_tags("a.jpg") == []
        assert store.get_all_tags() == ["Yes"]

    def test_remove_unknown_photo_noop(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create([])

        store.remove_tag("missing.jpg", "Yes")

        assert "missing.jpg" not in store.project.images

    def test_get_tags_returns_copy(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])
        store.add_tag("a.jpg", "Yes")

        store.get_tags("a.jpg").append("Hacked")

        assert store.get_tags("a.jpg") == ["Yes"]


class TestDebouncedSave:
    """Tests for save()/flush()."""

    def test_save_is_deferred(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "Yes")
        store.save()

        assert store.has_pending_save is True
        assert read_project(store)["images"]["a.jpg"]["tags"] == []
        store.flush()

    def test_save_lands_after_delay(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=0.01)
        store.load_or_create(["a.jpg"])

        store.add_tag("a.jpg", "Yes")
        store.save()

        assert wait_for(lambda: not store.has_pending_save)
        assert read_project(store)["images"]["a.jpg"]["tags"] == ["Yes"]

    def test_burst_of_saves_writes_latest_state(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=0.05)
        store.load_or_create(["a.jpg"])

        for tag in ("Yes", "Family", "Kids"):
            store.add_tag("a.jpg", tag)
            store.save()

        assert wait_for(lambda: not store.has_pending_save)
        assert read_project(store)["images"]["a.jpg"]["tags"] == ["Yes", "Family", "Kids"]

    def test_flush_writes_immediately(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60)
        store.load_or_create(["a.jpg"])
        store.add_tag("a.jpg", "Yes")
        store.save()

        assert store.flush() is True

        assert store.has_pending_save is False
        assert read_project(store)["tags"] == ["Yes"]

    def test_flush_without_pending(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create([])

        assert store.flush() is True

    def test_flush_failure_returns_false(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60)
        store.load_or_create(["a.jpg"])
        store.save()

        with patch("photosorter.core.store.write_json_atomic", side_effect=OSError("disk full")):
            assert store.flush() is False

    def test_record_export_persisted(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60)
        store.load_or_create([])

        store.record_export(ExportRecord(export_root=".", folders=["Yes"], moved=1))
        store.save()
        store.flush()

        assert read_project(store)["lastExport"]["folders"] == ["Yes"]


class TestBackups:
    """Tests for backup rotation."""

    def test_backup_created_on_rewrite(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60)
        store.load_or_create([])
        store.save()
        store.flush()

        backups = os.listdir(store.backups_dir)
        assert len(backups) >= 1
        assert all(name.startswith("project-") and name.endswith(".json") for name in backups)

    def test_rotation_keeps_max_backups(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=60, max_backups=2)
        store.load_or_create([])
        os.makedirs(store.backups_dir, exist_ok=True)
        for i in range(5):
            path = os.path.join(store.backups_dir, f"project-2020010100000{i}.json")
            with open(path, "w") as f:
                f.write("{}")
            os.utime(path, (1000 + i, 1000 + i))

        store.save()
        store.flush()

        assert len(os.listdir(store.backups_dir)) == 2


class TestDelete:
    """Tests for MetadataStore.delete()."""

    def test_removes_project_dir(self, temp_dir):
        store = MetadataStore(temp_dir)
        store.load_or_create(["a.jpg"])

        assert store.delete() == []
        assert not os.path.exists(store.project_dir)

    def test_cancels_pending_save(self, temp_dir):
        store = MetadataStore(temp_dir, save_delay=0.05)
        store.load_or_create(["a.jpg"])
        store.save()

        store.delete()
        time.sleep(0.1)

        assert not os.path.exists(store.project_dir)
