"""Export execution: applies an ExportPlan to the filesystem.

Moves run first, in plan order, then links. A link's source is the
destination of a move, so no link can run before every move has landed.

Export is not transactional. Failures are recorded per item and the
remaining operations still run; completed moves and links are never
rolled back.
"""

import logging
import os
import shutil
from typing import Optional, Set

from photosorter.core.logger import NullLogger, OperationLogger
from photosorter.core.models import ExportPlan, ExportResult, LinkOp, MoveOp, ProgressCallback
from photosorter.core.utils import checkout_dir, is_cross_device_error

logger = logging.getLogger(__name__)


class ExportExecutor:
    """Realizes an export plan in two ordered passes.

    Usage:
        with ExportExecutor() as executor:
            result = executor.execute(plan)
        print(f"Moved {result.moved}, linked {result.linked}")
    """

    def __init__(self, op_logger: Optional[OperationLogger] = None):
        """Initialize executor.

        Args:
            op_logger: Optional operation log; each move/link is recorded.
        """
        self.op_logger = op_logger or NullLogger()

        # Cache for created directories (avoids redundant os.makedirs calls)
        self._created_dirs: Set[str] = set()

    def __enter__(self) -> "ExportExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.op_logger.close()

    def execute(
        self,
        plan: ExportPlan,
        on_progress: Optional[ProgressCallback] = None
    ) -> ExportResult:
        """Apply every move, then every link.

        Args:
            plan: Freshly computed plan.
            on_progress: Optional callback for progress updates.

        Returns:
            ExportResult with counts of completed operations and per-item
            error messages.
        """
        result = ExportResult()
        total = len(plan.moves) + len(plan.links)
        done = 0
        failed_sources: Set[str] = set()

        self.op_logger.log(f"Export started: {plan.export_root}")

        for op in plan.moves:
            if on_progress:
                on_progress(done, total, f"Moving: {os.path.basename(op.source)}")
            if self._move(op, result):
                result.moved += 1
                result.moved_files.append((op.source, op.destination))
                self._note_folder(result, op.folder)
            else:
                failed_sources.add(op.destination)
            done += 1

        for op in plan.links:
            if on_progress:
                on_progress(done, total, f"Linking: {os.path.basename(op.destination)}")
            if op.source in failed_sources:
                result.errors.append(
                    f"Skipped link {op.destination}: move to {op.source} did not complete"
                )
            elif self._link(op, result):
                result.linked += 1
                result.linked_files.append(op.destination)
                self._note_folder(result, op.folder)
            done += 1

        if on_progress:
            on_progress(total, total, "Export complete")

        self.op_logger.log(
            f"Export finished: {result.moved} moved, {result.linked} linked, "
            f"{len(result.errors)} errors"
        )
        self.op_logger.flush()
        return result

    def _ensure_dir(self, directory: str) -> None:
        if directory not in self._created_dirs:
            checkout_dir(directory)
            self._created_dirs.add(directory)

    def _move(self, op: MoveOp, result: ExportResult) -> bool:
        """Rename into place, or copy+delete across devices."""
        if not os.path.lexists(op.source):
            result.errors.append(f"Source missing, not moved: {op.source}")
            return False
        try:
            self._ensure_dir(os.path.dirname(op.destination))
        except (OSError, ValueError) as e:
            result.errors.append(f"Cannot create folder for {op.destination}: {e}")
            return False
        if os.path.lexists(op.destination):
            result.errors.append(f"Destination already exists, not moved: {op.destination}")
            return False

        try:
            os.rename(op.source, op.destination)
            self.op_logger.log(f"MOVE {op.source} -> {op.destination}")
            return True
        except OSError as e:
            if not is_cross_device_error(e):
                result.errors.append(f"Failed to move {op.source}: {e}")
                return False

        # Different devices: copy then remove the source
        try:
            shutil.copy2(op.source, op.destination)
        except OSError as e:
            result.errors.append(f"Failed to copy {op.source} across devices: {e}")
            return False
        try:
            os.remove(op.source)
        except OSError as e:
            result.errors.append(f"Copied {op.source} but could not remove the original: {e}")
        self.op_logger.log(f"MOVE (copy) {op.source} -> {op.destination}")
        return True

    def _link(self, op: LinkOp, result: ExportResult) -> bool:
        """Hard link, falling back to a copy on any failure."""
        try:
            self._ensure_dir(os.path.dirname(op.destination))
        except (OSError, ValueError) as e:
            result.errors.append(f"Cannot create folder for {op.destination}: {e}")
            return False
        if os.path.lexists(op.destination):
            result.errors.append(f"Destination already exists, not linked: {op.destination}")
            return False

        try:
            os.link(op.source, op.destination)
            self.op_logger.log(f"LINK {op.source} -> {op.destination}")
            return True
        except OSError as e:
            logger.debug(f"Hard link failed for {op.destination}, copying instead: {e}")

        try:
            shutil.copy2(op.source, op.destination)
        except OSError as e:
            result.errors.append(f"Failed to link or copy {op.source} to {op.destination}: {e}")
            return False
        result.copied_instead_of_linked += 1
        self.op_logger.log(f"COPY {op.source} -> {op.destination}")
        return True

    @staticmethod
    def _note_folder(result: ExportResult, folder: str) -> None:
        if folder not in result.folders:
            result.folders.append(folder)
