"""Export planning: what an export would do, without doing it."""

import logging
import os
from typing import Dict, Sequence, Set

from photosorter.core.models import ExportPlan, LinkOp, MoveOp, Project
from photosorter.core.tags import sanitize_folder_name
from photosorter.core.utils import get_unique_path

logger = logging.getLogger(__name__)


class ExportPlanner:
    """Builds an ExportPlan from the scanned photos and the project.

    Each tagged photo is moved into the folder of its primary (first) tag
    and linked into the folder of every other tag. Destination names that
    are already taken, on disk or earlier in the same plan, get _1, _2, ...
    appended.

    The planner only reads the filesystem. A plan is valid for the state it
    was computed from; recompute it right before executing.

    Usage:
        plan = ExportPlanner("/photos/wedding").plan(photos, store.project)
        print(plan.summary())
    """

    def __init__(self, export_root: str):
        """Initialize planner.

        Args:
            export_root: Directory the tag folders are created under.
        """
        self.export_root = os.path.abspath(export_root)

    def folder_path(self, tag: str) -> str:
        """Absolute folder path for a tag."""
        return os.path.join(self.export_root, sanitize_folder_name(tag))

    def plan(self, photos: Sequence[str], project: Project) -> ExportPlan:
        """Compute the export plan.

        Args:
            photos: Currently scanned photo paths, in display order.
            project: Project holding the tags.

        Returns:
            ExportPlan with counts and ordered move/link operations.
        """
        plan = ExportPlan(export_root=self.export_root, total=len(photos))
        reserved: Set[str] = set()
        # casefolded tag -> spelling used as the per_tag key
        tag_keys: Dict[str, str] = {}

        for photo in photos:
            file_name = os.path.basename(photo)
            entry = project.images.get(file_name)
            if entry is None or not entry.tags:
                plan.untagged += 1
                continue

            plan.tagged += 1
            primary = entry.tags[0]
            move = MoveOp(
                source=photo,
                destination=self._claim(primary, file_name, reserved),
                tag=primary,
                folder=sanitize_folder_name(primary),
            )
            plan.moves.append(move)
            self._count(plan, tag_keys, primary)

            for tag in entry.tags[1:]:
                plan.links.append(LinkOp(
                    source=move.destination,
                    destination=self._claim(tag, file_name, reserved),
                    tag=tag,
                    folder=sanitize_folder_name(tag),
                ))
                self._count(plan, tag_keys, tag)

        logger.debug(
            f"Export plan for {self.export_root}: {len(plan.moves)} moves, "
            f"{len(plan.links)} links, {plan.untagged} untagged"
        )
        return plan

    def _claim(self, tag: str, file_name: str, reserved: Set[str]) -> str:
        """Pick a free destination in the tag's folder and reserve it."""
        wanted = os.path.join(self.folder_path(tag), file_name)
        destination = get_unique_path(wanted, reserved)
        reserved.add(os.path.normcase(destination))
        return destination

    @staticmethod
    def _count(plan: ExportPlan, tag_keys: Dict[str, str], tag: str) -> None:
        key = tag_keys.setdefault(tag.casefold(), tag)
        plan.per_tag[key] = plan.per_tag.get(key, 0) + 1


def plan_export(photos: Sequence[str], project: Project, export_root: str) -> ExportPlan:
    """Convenience function: plan an export into ``export_root``."""
    return ExportPlanner(export_root).plan(photos, project)
