"""Revert: put exported photos back where they came from.

Driven by the persisted project rather than by walking the export folders,
so files the user added to those folders are never touched.
"""

import logging
import os
import shutil
from typing import List, Optional, Tuple

from photosorter.core.logger import NullLogger, OperationLogger
from photosorter.core.models import Project, ProgressCallback, RevertResult
from photosorter.core.tags import sanitize_folder_name
from photosorter.core.utils import get_unique_path, is_cross_device_error

logger = logging.getLogger(__name__)


def resolve_export_root(root: str, project: Project, export_root: Optional[str] = None) -> str:
    """Where the last export went.

    An explicit ``export_root`` wins; then the one recorded by the last
    export (relative paths are relative to the root); then the root itself.
    """
    if export_root:
        return os.path.abspath(export_root)
    if project.last_export is not None:
        return os.path.abspath(os.path.join(root, project.last_export.export_root))
    return os.path.abspath(root)


def folders_to_remove(project: Project) -> List[str]:
    """Tag folders the last export created.

    Projects without an export record fall back to the folders of every
    tag in the global tag list.
    """
    if project.last_export is not None:
        return list(project.last_export.folders)
    folders: List[str] = []
    for tag in project.tags:
        folder = sanitize_folder_name(tag)
        if folder not in folders:
            folders.append(folder)
    return folders


def exported_files(project: Project, target_root: str) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Files the last export wrote, as absolute paths under target_root.

    Returns:
        ([(original name, moved-to path)], [linked-to paths]). Taken from
        the export record when it lists files; older projects fall back to
        ``<folder>/<name>`` for every tag of every tagged photo.
    """
    record = project.last_export
    if record is not None and record.has_files:
        restores = [(name, os.path.join(target_root, path)) for name, path in record.moves]
        deletions = [os.path.join(target_root, path) for path in record.links]
        return restores, deletions

    restores = []
    deletions = []
    for name, entry in project.images.items():
        if not entry.tags:
            continue
        restores.append((name, os.path.join(target_root, sanitize_folder_name(entry.tags[0]), name)))
        for tag in entry.tags[1:]:
            deletions.append(os.path.join(target_root, sanitize_folder_name(tag), name))
    return restores, deletions


class RevertEngine:
    """Best-effort inverse of an export.

    Primary copies are moved back to the root under their original names
    (collision-safe), secondary links/copies are deleted, then empty tag
    folders are removed. Files already missing from their export location
    are skipped silently.

    Usage:
        with RevertEngine("/photos/wedding") as engine:
            result = engine.revert(store.project)
    """

    def __init__(self, root: str, op_logger: Optional[OperationLogger] = None):
        self.root = os.path.abspath(root)
        self.op_logger = op_logger or NullLogger()

    def __enter__(self) -> "RevertEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.op_logger.close()

    def revert(
        self,
        project: Project,
        export_root: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> RevertResult:
        """Restore photos and remove generated folders.

        Does not delete the project itself; the session does that once the
        files are back.

        Args:
            project: Project as persisted at export time.
            export_root: Override for the export location.
            on_progress: Optional callback for progress updates.

        Returns:
            RevertResult with counts and per-item error messages.
        """
        result = RevertResult()
        target_root = resolve_export_root(self.root, project, export_root)
        restores, deletions = exported_files(project, target_root)
        total = len(restores) + len(deletions)
        done = 0

        self.op_logger.log(f"Revert started: {target_root}")

        for name, path in restores:
            if on_progress:
                on_progress(done, total, f"Restoring: {name}")
            if os.path.lexists(path) and self._restore(path, name, result):
                result.restored += 1
            done += 1

        for path in deletions:
            if on_progress:
                on_progress(done, total, f"Removing: {os.path.basename(path)}")
            done += 1
            if not os.path.lexists(path):
                continue
            try:
                os.remove(path)
                result.removed += 1
                self.op_logger.log(f"DELETE {path}")
            except OSError as e:
                result.errors.append(f"Failed to delete {path}: {e}")

        for folder in folders_to_remove(project):
            path = os.path.join(target_root, folder)
            if not os.path.isdir(path):
                continue
            try:
                os.rmdir(path)
                result.folders_removed += 1
                self.op_logger.log(f"RMDIR {path}")
            except OSError as e:
                # Not empty: holds files the export did not create
                logger.warning(f"Leaving folder {path}: {e}")
                result.folders_kept.append(path)

        if on_progress:
            on_progress(total, total, "Revert complete")

        self.op_logger.log(
            f"Revert finished: {result.restored} restored, {result.removed} removed, "
            f"{result.folders_removed} folders removed, {len(result.errors)} errors"
        )
        self.op_logger.flush()
        return result

    def _restore(self, source: str, name: str, result: RevertResult) -> bool:
        """Move an exported photo back into the root."""
        destination = get_unique_path(os.path.join(self.root, name))
        try:
            os.rename(source, destination)
        except OSError as e:
            if not is_cross_device_error(e):
                result.errors.append(f"Failed to restore {source}: {e}")
                return False
            try:
                shutil.copy2(source, destination)
                os.remove(source)
            except OSError as copy_error:
                result.errors.append(f"Failed to restore {source} across devices: {copy_error}")
                return False
        self.op_logger.log(f"RESTORE {source} -> {destination}")
        return True
