"""High-level session for Photo Sorter.

Coordinates scanning, ordering, the project store, stats, export and
revert for one open root. Used by the CLI and by any other front end.
"""

import logging
import os
from typing import List, Optional

from photosorter.core.duplicates import DuplicateDetector
from photosorter.core.executor import ExportExecutor
from photosorter.core.logger import create_logger
from photosorter.core.metadata import CaptureTimeExtractor, create_extractor
from photosorter.core.models import (
    ExportPlan, ExportRecord, ExportResult, OpenResult, PhotoView,
    ProgressCallback, RevertResult
)
from photosorter.core.ordering import PhotoOrderer
from photosorter.core.planner import ExportPlanner
from photosorter.core.revert import RevertEngine
from photosorter.core.scanner import PhotoScanner
from photosorter.core.stats import StatsTracker
from photosorter.core.store import MetadataStore
from photosorter.core.utils import normalize_path, utc_now_iso

logger = logging.getLogger(__name__)


class PhotoSorterError(Exception):
    """Base class for Photo Sorter errors."""


class ProjectInitError(PhotoSorterError):
    """The root could not be opened: unreadable, or project not writable."""


class SessionNotOpenError(PhotoSorterError):
    """A request arrived before open() finished (or after revert)."""


class SorterSession:
    """All curation state for one open root, passed explicitly to callers.

    Requests run one at a time to completion. Until open() returns, every
    other request raises SessionNotOpenError.

    Usage:
        session = SorterSession()
        opened = session.open("/photos/wedding")

        session.add_tag(opened.first_photo, "Yes")
        view = session.next()

        plan = session.export_dry_run()
        print(plan.summary())
        result = session.export_execute()

        # Later, to undo
        session.revert()
    """

    def __init__(
        self,
        use_exiftool: bool = True,
        save_delay: Optional[float] = None,
        verbose: bool = False,
        extractor: Optional[CaptureTimeExtractor] = None,
        detector: Optional[DuplicateDetector] = None
    ):
        """Initialize session.

        Args:
            use_exiftool: Read capture dates with ExifTool when available.
            save_delay: Debounce window for project saves (default 0.5s).
            verbose: Write every export/revert file operation to
                .photo-sorter/operations.log.
            extractor: Capture-time reader to use instead of the default.
            detector: Duplicate detector to use instead of the default.
        """
        self.use_exiftool = use_exiftool
        self.save_delay = save_delay
        self.verbose = verbose
        self._extractor = extractor
        self._detector = detector

        self.root: Optional[str] = None
        self.photos: List[str] = []
        self.index = 0
        self._store: Optional[MetadataStore] = None
        self._stats: Optional[StatsTracker] = None

    @property
    def is_open(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> MetadataStore:
        self._require_open()
        return self._store

    def open(self, root: str, on_progress: Optional[ProgressCallback] = None) -> OpenResult:
        """Scan a root, order its photos, load the project and build stats.

        Args:
            root: Directory of photos.
            on_progress: Optional callback for progress updates.

        Returns:
            OpenResult with photo count, first photo and stats.

        Raises:
            ValueError: If root is not a directory.
            ProjectInitError: If the root can't be scanned or the project
                directory can't be written.
        """
        root = normalize_path(root)
        if not os.path.isdir(root):
            raise ValueError(f"Not a directory: {root}")

        self.close()

        if on_progress:
            on_progress(0, 0, "[1/3] Scanning photos...")
        try:
            photos = PhotoScanner(root).scan()
        except OSError as e:
            raise ProjectInitError(f"Cannot read {root}: {e}") from e

        if on_progress:
            on_progress(0, len(photos), "[2/3] Ordering photos...")
        extractor = self._extractor or create_extractor(self.use_exiftool)
        try:
            photos = PhotoOrderer(extractor).sort(photos)
        finally:
            if self._extractor is None:
                extractor.close()

        store = MetadataStore(root, save_delay=self.save_delay)
        project = store.load_or_create(os.path.basename(p) for p in photos)
        if store.init_error:
            raise ProjectInitError(
                f"Cannot write project in {store.project_dir}: {store.init_error}"
            )

        def hash_progress(current: int, total: int, message: str) -> None:
            if on_progress:
                on_progress(current, total, f"[3/3] {message}")

        stats = StatsTracker(root, self._detector)
        stats.initialize(photos, project, hash_progress if on_progress else None)

        # Publish only once everything is ready
        self.root = root
        self.photos = photos
        self.index = 0
        self._stats = stats
        self._store = store

        logger.info(f"Opened {root}: {len(photos)} photos, {len(project.images)} in project")
        return OpenResult(
            root=root,
            total_photos=len(photos),
            first_photo=photos[0] if photos else None,
            stats=stats.get_stats(),
        )

    def current(self) -> Optional[PhotoView]:
        """The photo at the current position, or None if there are none."""
        self._require_open()
        if not self.photos:
            return None
        photo = self.photos[self.index]
        return PhotoView(
            photo=photo,
            index=self.index,
            total=len(self.photos),
            tags=self._store.get_tags(os.path.basename(photo)),
        )

    def next(self) -> Optional[PhotoView]:
        """Advance one photo, wrapping around at the end."""
        self._require_open()
        if not self.photos:
            return None
        self.index = (self.index + 1) % len(self.photos)
        return self.current()

    def prev(self) -> Optional[PhotoView]:
        """Go back one photo, wrapping around at the start."""
        self._require_open()
        if not self.photos:
            return None
        self.index = (self.index - 1) % len(self.photos)
        return self.current()

    def goto(self, index: int) -> Optional[PhotoView]:
        """Jump to a position; out-of-range positions reset to 0."""
        self._require_open()
        if not self.photos:
            return None
        self.index = index if 0 <= index < len(self.photos) else 0
        return self.current()

    def add_tag(self, photo: str, tag: str) -> List[str]:
        """Tag a photo (path or file name). Returns its updated tags."""
        return self._mutate_tags(photo, tag, add=True)

    def remove_tag(self, photo: str, tag: str) -> List[str]:
        """Untag a photo (path or file name). Returns its updated tags."""
        return self._mutate_tags(photo, tag, add=False)

    def get_tags(self, photo: str) -> List[str]:
        self._require_open()
        return self._store.get_tags(os.path.basename(photo))

    def get_all_tags(self) -> List[str]:
        """Every tag used so far, for autocomplete."""
        self._require_open()
        return self._store.get_all_tags()

    def get_stats(self) -> dict:
        self._require_open()
        return self._stats.get_stats()

    def export_dry_run(self, export_root: Optional[str] = None) -> ExportPlan:
        """Compute what export would do, without changing anything.

        Args:
            export_root: Where tag folders go (default: the root).
        """
        self._require_open()
        self._store.flush()
        return self._plan(export_root)

    def export_execute(
        self,
        export_root: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ExportResult:
        """Recompute the plan and apply it.

        Pending tag edits are flushed first. The photos that were moved
        leave the session's photo list.

        Args:
            export_root: Where tag folders go (default: the root).
            on_progress: Optional callback for progress updates.

        Returns:
            ExportResult; ``ok`` is False if any item failed.
        """
        self._require_open()
        self._store.flush()
        plan = self._plan(export_root)

        op_logger = create_logger(self._store.project_dir, enabled=self.verbose)
        with ExportExecutor(op_logger) as executor:
            result = executor.execute(plan, on_progress)

        if result.moved or result.linked:
            self._store.record_export(self._export_record(plan.export_root, result))
            self._store.save()
            if not self._store.flush():
                result.errors.append(f"Export done but project could not be saved to {self._store.project_path}")

        self.photos = [p for p in self.photos if os.path.lexists(p)]
        self.index = min(self.index, max(len(self.photos) - 1, 0))

        logger.info(
            f"Exported to {plan.export_root}: {result.moved} moved, {result.linked} linked, "
            f"{len(result.errors)} errors"
        )
        return result

    def revert(
        self,
        export_root: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> RevertResult:
        """Undo the export and delete the project.

        Afterwards the session is closed; open the root again to continue.

        Args:
            export_root: Override for where the export went.
            on_progress: Optional callback for progress updates.
        """
        self._require_open()
        self._store.flush()

        op_logger = create_logger(self._store.project_dir, enabled=self.verbose)
        with RevertEngine(self.root, op_logger) as engine:
            result = engine.revert(self._store.project, export_root, on_progress)

        result.errors.extend(self._store.delete())
        stats_error = self._stats.delete()
        if stats_error:
            result.errors.append(stats_error)

        logger.info(
            f"Reverted {self.root}: {result.restored} restored, {result.removed} removed, "
            f"{len(result.errors)} errors"
        )
        self._store = None
        self._stats = None
        self.photos = []
        self.index = 0
        return result

    def close(self) -> None:
        """Flush pending saves. The session can be reopened afterwards."""
        if self._store is not None:
            self._store.flush()
        self._store = None
        self._stats = None

    def _require_open(self) -> None:
        if self._store is None:
            raise SessionNotOpenError("No root is open")

    def _mutate_tags(self, photo: str, tag: str, add: bool) -> List[str]:
        self._require_open()
        name = os.path.basename(photo)
        before = self._store.get_tags(name)

        if add:
            self._store.add_tag(name, tag)
        else:
            self._store.remove_tag(name, tag)
        after = self._store.get_tags(name)

        if after != before:
            self._store.save()
            # Stats only cover the scanned photos
            if any(os.path.basename(p) == name for p in self.photos):
                self._stats.update(before[0] if before else None, after[0] if after else None)
        return after

    def _plan(self, export_root: Optional[str]) -> ExportPlan:
        target = normalize_path(export_root) if export_root else self.root
        photos = [p for p in self.photos if os.path.lexists(p)]
        return ExportPlanner(target).plan(photos, self._store.project)

    def _export_record(self, export_root: str, result: ExportResult) -> ExportRecord:
        """Record for this export, merged with an earlier one to the same place."""
        try:
            inside = os.path.commonpath([export_root, self.root]) == self.root
        except ValueError:
            inside = False
        stored_root = os.path.relpath(export_root, self.root) if inside else export_root

        folders = list(result.folders)
        moves = [
            (os.path.basename(source), os.path.relpath(destination, export_root))
            for source, destination in result.moved_files
        ]
        links = [os.path.relpath(destination, export_root) for destination in result.linked_files]

        previous = self._store.project.last_export
        if previous is not None and previous.export_root == stored_root:
            folders = previous.folders + [f for f in folders if f not in previous.folders]
            moves = previous.moves + moves
            links = previous.links + links

        return ExportRecord(
            export_root=stored_root,
            folders=folders,
            moved=result.moved,
            linked=result.linked,
            completed_at=utc_now_iso(),
            moves=moves,
            links=links,
        )
