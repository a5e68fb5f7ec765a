"""Data models for Photo Sorter."""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from photosorter.core.tags import contains_tag, normalize_tag

logger = logging.getLogger(__name__)

# Schema version written to project.json
PROJECT_VERSION = 1

# Categories counted in the stats file, keyed by primary tag
CATEGORIES = ("yes", "no", "maybe")


def _as_int(value: Any, default: int = 0) -> int:
    """Coerce a stored count, falling back to default for anything malformed."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return default


def _export_path(value: Any) -> Optional[str]:
    """A stored relative path, or None if it is malformed or leaves the export root."""
    if not isinstance(value, str) or not value or os.path.isabs(value):
        return None
    if os.pardir in value.replace("\\", "/").split("/"):
        return None
    return value


@dataclass(slots=True)
class ImageEntry:
    """Tags assigned to one photo. The first tag is the primary tag."""
    tags: List[str] = field(default_factory=list)

    @property
    def primary_tag(self) -> Optional[str]:
        return self.tags[0] if self.tags else None

    @property
    def secondary_tags(self) -> List[str]:
        return self.tags[1:]

    def to_dict(self) -> Dict[str, Any]:
        return {"tags": list(self.tags)}

    @classmethod
    def from_value(cls, value: Any) -> "ImageEntry":
        """Build from a stored entry.

        Accepts the current ``{"tags": [...]}`` form and a bare list of tags.
        Tags are re-normalized and de-duplicated case-insensitively; anything
        that normalizes to empty is dropped.
        """
        if isinstance(value, dict):
            raw_tags = value.get("tags", [])
        elif isinstance(value, list):
            raw_tags = value
        else:
            raw_tags = []
        if not isinstance(raw_tags, list):
            raw_tags = []

        tags: List[str] = []
        for raw in raw_tags:
            tag = normalize_tag(raw)
            if tag and not contains_tag(tags, tag):
                tags.append(tag)
        return cls(tags=tags)


@dataclass
class ExportRecord:
    """What the most recent executed export created.

    Stored in the project as ``lastExport`` so revert knows where the
    export went, which folders it made and exactly which files it wrote.
    Paths in ``moves`` and ``links`` are relative to the export root.
    """
    export_root: str
    folders: List[str] = field(default_factory=list)
    moved: int = 0
    linked: int = 0
    completed_at: str = ""
    # (original file name, path the photo was moved to)
    moves: List[Tuple[str, str]] = field(default_factory=list)
    links: List[str] = field(default_factory=list)

    @property
    def has_files(self) -> bool:
        """False for records written before file paths were tracked."""
        return bool(self.moves or self.links)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportRoot": self.export_root,
            "folders": list(self.folders),
            "moved": self.moved,
            "linked": self.linked,
            "completedAt": self.completed_at,
            "moves": [{"name": name, "path": path} for name, path in self.moves],
            "links": list(self.links),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ExportRecord"]:
        if not isinstance(data, dict) or not isinstance(data.get("exportRoot"), str):
            return None
        folders = data.get("folders", [])
        raw_moves = data.get("moves")
        raw_links = data.get("links")

        moves: List[Tuple[str, str]] = []
        for item in raw_moves if isinstance(raw_moves, list) else []:
            if not isinstance(item, dict):
                continue
            name, path = item.get("name"), _export_path(item.get("path"))
            if isinstance(name, str) and name and os.path.basename(name) == name and path:
                moves.append((name, path))

        links = [p for p in (raw_links if isinstance(raw_links, list) else []) if _export_path(p)]

        return cls(
            export_root=data["exportRoot"],
            folders=[f for f in folders if isinstance(f, str)] if isinstance(folders, list) else [],
            moved=_as_int(data.get("moved")),
            linked=_as_int(data.get("linked")),
            completed_at=str(data.get("completedAt", "")),
            moves=moves,
            links=links,
        )


@dataclass
class Project:
    """Persisted curation state for one root directory."""
    version: int = PROJECT_VERSION
    root: str = "."
    images: Dict[str, ImageEntry] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    updated_at: str = ""
    last_export: Optional[ExportRecord] = None

    # Unknown top-level keys, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ("version", "root", "images", "tags", "updatedAt", "lastExport")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.version,
            "root": self.root,
            "images": {name: entry.to_dict() for name, entry in self.images.items()},
            "tags": list(self.tags),
            "updatedAt": self.updated_at,
        }
        if self.last_export is not None:
            data["lastExport"] = self.last_export.to_dict()
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Project":
        """Build a project from parsed JSON, migrating older layouts.

        Missing fields get defaults, malformed image entries are repaired,
        and tags found on images but missing from the global list are
        appended to it.

        Raises:
            ValueError: If data is not a JSON object.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Project data must be an object, got {type(data).__name__}")

        try:
            version = int(data.get("version", PROJECT_VERSION))
        except (TypeError, ValueError):
            version = PROJECT_VERSION
        if version > PROJECT_VERSION:
            logger.warning(
                f"Project schema version {version} is newer than supported "
                f"version {PROJECT_VERSION}; loading known fields only"
            )
        version = PROJECT_VERSION

        images: Dict[str, ImageEntry] = {}
        raw_images = data.get("images", {})
        if isinstance(raw_images, dict):
            for name, value in raw_images.items():
                if isinstance(name, str) and name:
                    images[name] = ImageEntry.from_value(value)

        tags: List[str] = []
        raw_tags = data.get("tags", [])
        for raw in raw_tags if isinstance(raw_tags, list) else []:
            tag = normalize_tag(raw)
            if tag and not contains_tag(tags, tag):
                tags.append(tag)
        for entry in images.values():
            for tag in entry.tags:
                if not contains_tag(tags, tag):
                    tags.append(tag)

        updated_at = data.get("updatedAt", "")
        extra = {k: v for k, v in data.items() if k not in cls._KNOWN_KEYS}

        return cls(
            version=version,
            root=".",
            images=images,
            tags=tags,
            updated_at=updated_at if isinstance(updated_at, str) else "",
            last_export=ExportRecord.from_dict(data.get("lastExport")),
            extra=extra,
        )


@dataclass(slots=True)
class DuplicatePair:
    """A photo whose fingerprint matches an earlier photo."""
    original: str
    duplicate: str

    def to_dict(self) -> Dict[str, str]:
        return {"original": self.original, "duplicate": self.duplicate}


@dataclass
class Stats:
    """Derived progress statistics. Safe to discard and recompute."""
    total: int = 0
    categorized: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in CATEGORIES})
    duplicates: List[DuplicatePair] = field(default_factory=list)
    last_updated: Optional[str] = None

    @property
    def categorized_total(self) -> int:
        return sum(self.categorized.values())

    @property
    def remaining(self) -> int:
        return self.total - self.categorized_total

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the stats-file layout."""
        return {
            "total": self.total,
            "categorized": dict(self.categorized),
            "duplicates": [d.to_dict() for d in self.duplicates],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Stats":
        """Build from a parsed stats file, defaulting anything missing."""
        if not isinstance(data, dict):
            raise ValueError("Stats data must be an object")
        raw_categorized = data.get("categorized")
        raw_categorized = raw_categorized if isinstance(raw_categorized, dict) else {}
        raw_duplicates = data.get("duplicates")
        return cls(
            total=_as_int(data.get("total")),
            categorized={c: _as_int(raw_categorized.get(c)) for c in CATEGORIES},
            duplicates=[
                DuplicatePair(original=d["original"], duplicate=d["duplicate"])
                for d in (raw_duplicates if isinstance(raw_duplicates, list) else [])
                if isinstance(d, dict) and "original" in d and "duplicate" in d
            ],
            last_updated=data.get("lastUpdated"),
        )


@dataclass(slots=True)
class MoveOp:
    """Move a photo into its primary-tag folder."""
    source: str
    destination: str
    tag: str
    folder: str


@dataclass(slots=True)
class LinkOp:
    """Link (or copy) a moved photo into a secondary-tag folder.

    ``source`` is the destination of the corresponding MoveOp.
    """
    source: str
    destination: str
    tag: str
    folder: str


@dataclass
class ExportPlan:
    """Everything an export would do. Pure description, never cached."""
    export_root: str
    total: int = 0
    tagged: int = 0
    untagged: int = 0
    per_tag: Dict[str, int] = field(default_factory=dict)
    moves: List[MoveOp] = field(default_factory=list)
    links: List[LinkOp] = field(default_factory=list)

    @property
    def folders(self) -> List[str]:
        """Folder names (relative to export_root) the plan writes into, in first-use order."""
        seen: List[str] = []
        for op in [*self.moves, *self.links]:
            if op.folder not in seen:
                seen.append(op.folder)
        return seen

    def summary(self) -> Dict[str, Any]:
        return {
            "exportRoot": self.export_root,
            "total": self.total,
            "tagged": self.tagged,
            "untagged": self.untagged,
            "perTag": dict(self.per_tag),
            "moves": len(self.moves),
            "links": len(self.links),
        }


@dataclass
class ExportResult:
    """Results from executing an export plan."""
    moved: int = 0
    linked: int = 0
    copied_instead_of_linked: int = 0
    folders: List[str] = field(default_factory=list)
    # (source, destination) of each completed move
    moved_files: List[Tuple[str, str]] = field(default_factory=list)
    # Destination of each completed link or copy
    linked_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class RevertResult:
    """Results from reverting an export."""
    restored: int = 0
    removed: int = 0
    folders_removed: int = 0
    folders_kept: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class OpenResult:
    """Returned by SorterSession.open()."""
    root: str
    total_photos: int
    first_photo: Optional[str]
    stats: Dict[str, Any]


@dataclass
class PhotoView:
    """The photo at the session's current position."""
    photo: str
    index: int
    total: int
    tags: List[str] = field(default_factory=list)


# Type aliases for callbacks
# (current_item, total_items, message) -> None
ProgressCallback = Callable[[int, int, str], None]
