"""Project persistence for Photo Sorter.

Owns ``<root>/.photo-sorter/project.json``: loading (with recovery from
corrupt files), atomic writes with rotating backups, debounced saves, and
the tag mutation API.
"""

import logging
import os
import shutil
import threading
from typing import Iterable, List, Optional

from photosorter.core.models import ExportRecord, ImageEntry, Project
from photosorter.core.tags import contains_tag, normalize_tag, tags_equal
from photosorter.core.utils import compact_timestamp, read_json, utc_now_iso, write_json_atomic

logger = logging.getLogger(__name__)


class MetadataStore:
    """Single source of truth for a root's Project.

    Tag edits are visible to reads immediately but reach disk only after
    ``save_delay`` seconds without another save() call. Anything still
    pending when the process dies is lost; call flush() (or close the
    session) to persist right away.

    Usage:
        store = MetadataStore("/photos/wedding")
        store.load_or_create(["img001.jpg", "img002.jpg"])

        store.add_tag("img001.jpg", "Family")
        store.save()      # debounced

        store.flush()     # before export/revert or on exit
    """

    PROJECT_DIR_NAME = ".photo-sorter"
    PROJECT_FILENAME = "project.json"
    BACKUPS_DIR_NAME = "backups"
    SAVE_DELAY = 0.5  # Seconds of quiet before a debounced save hits disk
    MAX_BACKUPS = 5

    _TEMP_PREFIX = ".project_"

    def __init__(
        self,
        root: str,
        save_delay: Optional[float] = None,
        max_backups: Optional[int] = None
    ):
        """Initialize store.

        Args:
            root: Directory the project describes.
            save_delay: Debounce window in seconds (default SAVE_DELAY).
            max_backups: Number of backups to keep (default MAX_BACKUPS).
        """
        self.root = root
        self.project_dir = os.path.join(root, self.PROJECT_DIR_NAME)
        self.project_path = os.path.join(self.project_dir, self.PROJECT_FILENAME)
        self.backups_dir = os.path.join(self.project_dir, self.BACKUPS_DIR_NAME)
        self.save_delay = self.SAVE_DELAY if save_delay is None else save_delay
        self.max_backups = self.MAX_BACKUPS if max_backups is None else max_backups

        self._project: Optional[Project] = None
        self._init_error: Optional[str] = None

        # One pending-write slot; the lock also serializes actual writes
        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None

    @property
    def project(self) -> Project:
        """The in-memory project (an empty one if nothing was loaded)."""
        if self._project is None:
            self._project = self._new_project()
        return self._project

    @property
    def init_error(self) -> Optional[str]:
        """Why the last load_or_create() fell back to an empty project, if it did."""
        return self._init_error

    @property
    def has_pending_save(self) -> bool:
        return self._timer is not None

    def load_or_create(self, discovered_file_names: Iterable[str] = ()) -> Project:
        """Load the project file or create a new one, then merge in new photos.

        A corrupt project file is discarded and replaced by a fresh project.
        File names not yet in ``images`` are added with no tags; existing
        entries are left alone, and entries for vanished files are kept.
        The merged result is written immediately.

        Never raises. If the project directory cannot be created or written,
        returns an empty project and sets ``init_error``.

        Args:
            discovered_file_names: Photo base names (full paths are reduced
                to their base name).

        Returns:
            The loaded project.
        """
        with self._lock:
            self._cancel_pending()
            self._init_error = None
            try:
                os.makedirs(self.project_dir, exist_ok=True)
                self._cleanup_temp_files()

                project = self._read_project_file() or self._new_project()

                for name in discovered_file_names:
                    name = os.path.basename(name)
                    if name and name not in project.images:
                        project.images[name] = ImageEntry()

                project.updated_at = utc_now_iso()
                self._project = project
                self._write(project)
                return project

            except Exception as e:
                logger.warning(f"Failed to load or create project in {self.project_dir}: {e}")
                self._init_error = str(e)
                self._project = self._new_project()
                return self._project

    def add_tag(self, file_name: str, raw_tag: str) -> None:
        """Add a tag to a photo and to the global tag list.

        No-op if the tag normalizes to empty. Creates the image entry if
        missing. Duplicates (ignoring case) are not added.
        """
        tag = normalize_tag(raw_tag)
        if not tag:
            return

        with self._lock:
            project = self.project
            entry = project.images.setdefault(file_name, ImageEntry())
            if not contains_tag(entry.tags, tag):
                entry.tags.append(tag)
            if not contains_tag(project.tags, tag):
                project.tags.append(tag)

    def remove_tag(self, file_name: str, raw_tag: str) -> None:
        """Remove the first case-insensitive match of a tag from a photo.

        The global tag list is append-only and keeps the tag.
        """
        tag = normalize_tag(raw_tag)
        if not tag:
            return

        with self._lock:
            entry = self.project.images.get(file_name)
            if entry is None:
                return
            for i, existing in enumerate(entry.tags):
                if tags_equal(existing, tag):
                    del entry.tags[i]
                    break

    def get_tags(self, file_name: str) -> List[str]:
        """Tags for a photo (a copy)."""
        entry = self.project.images.get(file_name)
        return list(entry.tags) if entry else []

    def get_all_tags(self) -> List[str]:
        """Every tag ever used, in first-use order (a copy)."""
        return list(self.project.tags)

    def record_export(self, record: ExportRecord) -> None:
        """Remember what an executed export created, for revert."""
        with self._lock:
            self.project.last_export = record

    def save(self) -> None:
        """Schedule a debounced write of the current state.

        Each call restarts the quiet window; the write that eventually runs
        carries whatever the in-memory project holds at that time.
        """
        with self._lock:
            self.project.updated_at = utc_now_iso()
            self._cancel_pending()
            timer = threading.Timer(self.save_delay, self._on_timer)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def flush(self) -> bool:
        """Write any pending save now.

        Returns:
            True if nothing was pending or the write succeeded.
        """
        with self._lock:
            if self._timer is None:
                return True
            self._cancel_pending()
            try:
                self._write(self.project)
                return True
            except OSError as e:
                logger.warning(f"Failed to save project to {self.project_path}: {e}")
                return False

    def delete(self) -> List[str]:
        """Delete the project file, its backups and the project directory.

        Returns:
            Error messages for anything that could not be removed.
        """
        errors: List[str] = []
        with self._lock:
            self._cancel_pending()
            if os.path.isdir(self.project_dir):
                try:
                    shutil.rmtree(self.project_dir)
                except OSError as e:
                    errors.append(f"Failed to remove {self.project_dir}: {e}")
            self._project = None
        return errors

    def _on_timer(self) -> None:
        """Debounce timer callback."""
        with self._lock:
            # A flush() or newer save() may have replaced this timer already
            if self._timer is None or threading.current_thread() is not self._timer:
                return
            try:
                self._write(self.project)
            except OSError as e:
                logger.warning(f"Failed to save project to {self.project_path}: {e}")
            finally:
                self._timer = None

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _new_project(self) -> Project:
        return Project(updated_at=utc_now_iso())

    def _write(self, project: Project) -> None:
        """Back up the current file, then atomically replace it.

        Raises:
            OSError: If the new content cannot be written.
        """
        os.makedirs(self.project_dir, exist_ok=True)
        self._backup_existing()
        write_json_atomic(self.project_path, project.to_dict(), temp_prefix=self._TEMP_PREFIX)
        logger.debug(f"Saved project to {self.project_path}")

    def _backup_existing(self) -> None:
        """Copy the current project file into backups/ and prune old ones.

        Best-effort: failures are logged and never block the write.
        """
        if not os.path.exists(self.project_path):
            return
        try:
            os.makedirs(self.backups_dir, exist_ok=True)
            backup_path = os.path.join(
                self.backups_dir, f"project-{compact_timestamp()}.json"
            )
            shutil.copyfile(self.project_path, backup_path)
            self._rotate_backups()
        except OSError as e:
            logger.debug(f"Backup of {self.project_path} failed: {e}")

    def _rotate_backups(self) -> None:
        """Keep only the most recently modified backups."""
        backups = []
        for name in os.listdir(self.backups_dir):
            if name.startswith("project-") and name.endswith(".json"):
                path = os.path.join(self.backups_dir, name)
                try:
                    backups.append((os.path.getmtime(path), path))
                except OSError:
                    continue

        backups.sort(reverse=True)
        for _, path in backups[self.max_backups:]:
            try:
                os.unlink(path)
            except OSError as e:
                logger.debug(f"Could not remove old backup {path}: {e}")

    def _cleanup_temp_files(self) -> None:
        """Remove orphaned temp files from interrupted saves."""
        try:
            for f in os.listdir(self.project_dir):
                if f.startswith(self._TEMP_PREFIX) and f.endswith(".tmp"):
                    try:
                        os.unlink(os.path.join(self.project_dir, f))
                    except OSError:
                        pass
        except OSError:
            pass

    def _read_project_file(self) -> Optional[Project]:
        """Read and migrate the project file.

        Returns:
            The project, or None if the file is missing or unreadable.
        """
        if not os.path.exists(self.project_path):
            return None

        try:
            return Project.from_dict(read_json(self.project_path))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable project file {self.project_path}: {e}")
            return None
