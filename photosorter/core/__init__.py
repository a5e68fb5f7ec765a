"""Core logic for Photo Sorter."""

from photosorter.core.models import (
    ImageEntry,
    ExportRecord,
    Project,
    DuplicatePair,
    Stats,
    MoveOp,
    LinkOp,
    ExportPlan,
    ExportResult,
    RevertResult,
    OpenResult,
    PhotoView,
    ProgressCallback,
)

from photosorter.core.tags import (
    normalize_tag,
    tags_equal,
    contains_tag,
    sanitize_folder_name,
)

from photosorter.core.utils import (
    exists,
    get_unique_path,
    checkout_dir,
    normalize_path,
    natural_sort_key,
)

from photosorter.core.logger import (
    BufferedLogger,
    NullLogger,
    create_logger,
)

from photosorter.core.scanner import (
    PhotoScanner,
    scan_photos,
    IMAGE_EXTENSIONS,
)

from photosorter.core.store import MetadataStore

from photosorter.core.duplicates import DuplicateDetector

from photosorter.core.stats import StatsTracker

from photosorter.core.exiftool import (
    get_exiftool_path,
    is_exiftool_available,
    ExifToolManager,
)

from photosorter.core.metadata import (
    CaptureTimeExtractor,
    NullCaptureTimeExtractor,
    ExifToolCaptureTimeExtractor,
    create_extractor,
    parse_exif_datetime,
)

from photosorter.core.ordering import (
    PhotoOrderer,
    order_photos,
)

from photosorter.core.planner import (
    ExportPlanner,
    plan_export,
)

from photosorter.core.executor import ExportExecutor

from photosorter.core.revert import RevertEngine

from photosorter.core.session import (
    SorterSession,
    PhotoSorterError,
    ProjectInitError,
    SessionNotOpenError,
)

__all__ = [
    # Models
    "ImageEntry",
    "ExportRecord",
    "Project",
    "DuplicatePair",
    "Stats",
    "MoveOp",
    "LinkOp",
    "ExportPlan",
    "ExportResult",
    "RevertResult",
    "OpenResult",
    "PhotoView",
    "ProgressCallback",
    # Tags
    "normalize_tag",
    "tags_equal",
    "contains_tag",
    "sanitize_folder_name",
    # Utils
    "exists",
    "get_unique_path",
    "checkout_dir",
    "normalize_path",
    "natural_sort_key",
    # Logger
    "BufferedLogger",
    "NullLogger",
    "create_logger",
    # Scanner
    "PhotoScanner",
    "scan_photos",
    "IMAGE_EXTENSIONS",
    # Store
    "MetadataStore",
    # Duplicates / stats
    "DuplicateDetector",
    "StatsTracker",
    # ExifTool
    "get_exiftool_path",
    "is_exiftool_available",
    "ExifToolManager",
    # Metadata
    "CaptureTimeExtractor",
    "NullCaptureTimeExtractor",
    "ExifToolCaptureTimeExtractor",
    "create_extractor",
    "parse_exif_datetime",
    # Ordering
    "PhotoOrderer",
    "order_photos",
    # Export
    "ExportPlanner",
    "plan_export",
    "ExportExecutor",
    "RevertEngine",
    # Session
    "SorterSession",
    "PhotoSorterError",
    "ProjectInitError",
    "SessionNotOpenError",
]
