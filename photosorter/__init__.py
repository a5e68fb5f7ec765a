"""Photo Sorter - Tag a folder of photos and reorganize it into tag folders.

High-level API:
    from photosorter import SorterSession

    session = SorterSession()
    opened = session.open("/path/to/photos")

    session.add_tag(opened.first_photo, "Yes")

    # Preview what export will do
    plan = session.export_dry_run()
    print(f"{plan.tagged} tagged, {plan.untagged} untagged")

    # Move photos into tag folders
    result = session.export_execute()
    print(f"Moved {result.moved}, linked {result.linked}")

    # Put everything back
    session.revert()
"""

__version__ = "1.0.0"

# Public API exports
from photosorter.core.session import (
    SorterSession,
    PhotoSorterError,
    ProjectInitError,
    SessionNotOpenError,
)
from photosorter.core.models import (
    Project,
    ImageEntry,
    Stats,
    ExportPlan,
    ExportResult,
    RevertResult,
    OpenResult,
    PhotoView,
)

__all__ = [
    "SorterSession",
    "PhotoSorterError",
    "ProjectInitError",
    "SessionNotOpenError",
    "Project",
    "ImageEntry",
    "Stats",
    "ExportPlan",
    "ExportResult",
    "RevertResult",
    "OpenResult",
    "PhotoView",
    "__version__",
]
