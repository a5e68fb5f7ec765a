"""Command-line interface for Photo Sorter."""

import argparse
import logging
import shutil
import sys
from typing import List, Optional, Tuple

from tqdm import tqdm

from photosorter import __version__
from photosorter.cli.settings import Settings
from photosorter.core.exiftool import get_install_instructions, is_exiftool_available
from photosorter.core.models import ExportPlan, OpenResult, PhotoView
from photosorter.core.session import ProjectInitError, SorterSession
from photosorter.core.utils import normalize_path


# Program description
DESCRIPTION = """Photo Sorter

Tag the photos in a folder, then export: each tagged photo is moved into a
folder named after its first tag, and linked (or copied) into a folder for
every other tag. Untagged photos stay where they are.

Tags and progress are kept in <folder>/.photo-sorter/project.json.
Use "revert" to move everything back and delete the project.
"""

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


def create_progress_callback(desc: str = "Working"):
    """Create a tqdm-based progress callback.

    Args:
        desc: Description for progress bar.

    Returns:
        Tuple of (callback function, tqdm instance).
    """
    pbar = tqdm(total=100, desc=desc)

    # Calculate safe message width based on terminal size
    terminal_width = shutil.get_terminal_size().columns
    # Leave room for progress bar elements (percentage, bar, counts)
    max_desc_width = max(20, min(80, terminal_width - 40))

    def callback(current: int, total: int, message: str):
        pbar.total = total
        pbar.n = current
        # Truncate message to fit terminal
        if len(message) > max_desc_width:
            message = message[:max_desc_width - 3] + "..."
        pbar.set_description(message)
        pbar.refresh()

    return callback, pbar


def configure_logging(verbose: bool) -> None:
    """Send library log records to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def confirm(prompt: str) -> bool:
    """Ask a yes/no question; anything but y/yes (or Ctrl+C) means no."""
    try:
        answer = input(f"{prompt} [y/N]: ")
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.")
        return False
    return answer.strip().lower() in ("y", "yes")


def format_view(view: Optional[PhotoView]) -> str:
    if view is None:
        return "No photos in this folder."
    tags = ", ".join(view.tags) if view.tags else "(untagged)"
    return f"[{view.index + 1}/{view.total}] {view.photo}\n  tags: {tags}"


def print_stats(stats: dict) -> None:
    categorized = stats.get("categorized", {})
    print(f"Photos:      {stats.get('total', 0)}")
    print(f"  yes:       {categorized.get('yes', 0)}")
    print(f"  no:        {categorized.get('no', 0)}")
    print(f"  maybe:     {categorized.get('maybe', 0)}")
    print(f"  remaining: {stats.get('remaining', 0)}")
    duplicates = stats.get("duplicates", [])
    if duplicates:
        print(f"Probable duplicates: {len(duplicates)}")
        for pair in duplicates[:10]:
            print(f"  {pair['duplicate']}  ~  {pair['original']}")
        if len(duplicates) > 10:
            print(f"  ... and {len(duplicates) - 10} more")


def print_plan(plan: ExportPlan) -> None:
    print(f"Export to: {plan.export_root}")
    print(f"  {plan.total} photos: {plan.tagged} tagged, {plan.untagged} untagged")
    print(f"  {len(plan.moves)} moves, {len(plan.links)} links")
    for tag, count in plan.per_tag.items():
        print(f"    {tag}: {count}")


def open_session(
    root: str,
    use_exiftool: bool = True,
    verbose: bool = False,
    show_progress: bool = True
) -> Tuple[Optional[SorterSession], Optional[OpenResult]]:
    """Open a root, printing the error if that fails.

    Returns:
        (session, open result), or (None, None) on failure.
    """
    session = SorterSession(use_exiftool=use_exiftool, verbose=verbose)
    callback, pbar = create_progress_callback("Opening") if show_progress else (None, None)
    try:
        opened = session.open(root, on_progress=callback)
    except (ValueError, ProjectInitError) as e:
        print(f"Error: {e}")
        return None, None
    finally:
        if pbar is not None:
            pbar.close()
    return session, opened


def run_open(session: SorterSession, opened: OpenResult, settings: Settings) -> int:
    print(f"\nOpened: {opened.root}")
    print(f"Photos: {opened.total_photos}")
    if not is_exiftool_available():
        print(get_install_instructions())
    view = session.goto(settings.get_position(opened.root))
    print("\n" + format_view(view))
    print()
    print_stats(opened.stats)
    return EXIT_OK


def run_navigate(session: SorterSession, settings: Settings, step: int) -> int:
    session.goto(settings.get_position(session.root))
    if step > 0:
        view = session.next()
    elif step < 0:
        view = session.prev()
    else:
        view = session.current()
    settings.set_position(session.root, session.index)
    print(format_view(view))
    return EXIT_OK


def run_tag(session: SorterSession, photo: str, tags: List[str], remove: bool = False) -> int:
    current: List[str] = session.get_tags(photo)
    for tag in tags:
        current = session.remove_tag(photo, tag) if remove else session.add_tag(photo, tag)
    print(f"{photo}: {', '.join(current) if current else '(untagged)'}")
    return EXIT_OK


def run_export(
    session: SorterSession,
    destination: Optional[str],
    dry_run: bool,
    assume_yes: bool
) -> int:
    """Preview and, unless dry_run, execute an export.

    Returns:
        Exit code (0 for success, 2 if some items failed).
    """
    plan = session.export_dry_run(destination)
    print()
    print_plan(plan)

    if dry_run:
        print("\n=== DRY RUN: nothing was moved ===")
        return EXIT_OK
    if not plan.moves:
        print("\nNothing to export.")
        return EXIT_OK
    if not assume_yes and not confirm("\nMove the tagged photos now?"):
        return EXIT_ERROR

    callback, pbar = create_progress_callback("Exporting")
    try:
        result = session.export_execute(destination, on_progress=callback)
    finally:
        pbar.close()

    print(f"\nMoved:  {result.moved}")
    print(f"Linked: {result.linked}")
    if result.copied_instead_of_linked:
        print(f"  ({result.copied_instead_of_linked} copied because hard links were not possible)")
    return _report_errors(result.errors)


def run_revert(session: SorterSession, settings: Settings, assume_yes: bool) -> int:
    root = session.root
    if not assume_yes and not confirm(
        f"Move exported photos back into {root} and delete its project?"
    ):
        return EXIT_ERROR

    callback, pbar = create_progress_callback("Reverting")
    try:
        result = session.revert(on_progress=callback)
    finally:
        pbar.close()

    settings.forget_root(root)
    print(f"\nRestored: {result.restored}")
    print(f"Removed:  {result.removed}")
    print(f"Folders removed: {result.folders_removed}")
    for folder in result.folders_kept:
        print(f"  Kept (not empty): {folder}")
    return _report_errors(result.errors)


def _report_errors(errors: List[str]) -> int:
    if not errors:
        return EXIT_OK
    print("\nWarnings/Errors:")
    for error in errors[:10]:  # Show first 10
        print(f"  {error}")
    if len(errors) > 10:
        print(f"  ... and {len(errors) - 10} more")
    return EXIT_PARTIAL


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per session request."""
    parser = argparse.ArgumentParser(
        description=DESCRIPTION,
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "-v", "--verbose",
        help="Show debug logging and record every file operation in operations.log",
        action="store_true"
    )

    parser.add_argument(
        "--no-exif",
        help="Don't read capture dates; order by file date and name only",
        action="store_true"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    def add_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text, description=help_text)
        sub.add_argument(
            "root",
            nargs="?",
            default=None,
            help="Photo folder (default: the last one used)"
        )
        return sub

    add_command("open", "Open a folder and show progress")
    add_command("show", "Show the current photo")
    add_command("next", "Go to the next photo")
    add_command("prev", "Go to the previous photo")
    add_command("tags", "List every tag used so far")
    add_command("stats", "Show tagging progress and probable duplicates")

    for name, help_text in (("tag", "Add tags to a photo"), ("untag", "Remove tags from a photo")):
        sub = subparsers.add_parser(name, help=help_text, description=help_text)
        sub.add_argument("photo", help="Photo file name or path")
        sub.add_argument("tag", nargs="+", help="Tag(s)")
        sub.add_argument("-r", "--root", default=None, help="Photo folder (default: the last one used)")

    export = add_command("export", "Move tagged photos into tag folders")
    export.add_argument(
        "-d", "--destination",
        help="Where to create tag folders (default: the photo folder)",
        type=str,
        default=None
    )
    export.add_argument(
        "--dry-run",
        help="Show what would be done without making changes",
        action="store_true"
    )
    export.add_argument("-y", "--yes", help="Don't ask for confirmation", action="store_true")

    revert = add_command("revert", "Undo the export and delete the project")
    revert.add_argument("-y", "--yes", help="Don't ask for confirmation", action="store_true")

    return parser


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Arguments to parse (default: sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    return build_parser().parse_args(args)


def main(args: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command-line arguments (default: sys.argv[1:]).
        settings: Settings store (default: the per-user settings file).

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parsed = parse_args(args)
    configure_logging(parsed.verbose)

    if not parsed.command:
        build_parser().print_help()
        return EXIT_ERROR

    settings = settings or Settings()

    root = parsed.root or settings.get("last_root")
    if not root:
        print("Error: no photo folder given and none used before")
        return EXIT_ERROR
    root = normalize_path(root)

    use_exiftool = not parsed.no_exif and settings.get("use_exiftool", True)
    try:
        session, opened = open_session(
            root,
            use_exiftool=use_exiftool,
            verbose=parsed.verbose,
            show_progress=parsed.command in ("open", "stats", "export", "revert")
        )
    except KeyboardInterrupt:
        print("\n\nInterrupted while opening.")
        return EXIT_INTERRUPTED
    if session is None:
        return EXIT_ERROR
    settings.set("last_root", opened.root)

    try:
        if parsed.command == "open":
            code = run_open(session, opened, settings)
        elif parsed.command in ("show", "next", "prev"):
            step = {"show": 0, "next": 1, "prev": -1}[parsed.command]
            code = run_navigate(session, settings, step)
        elif parsed.command == "tag":
            code = run_tag(session, parsed.photo, parsed.tag)
        elif parsed.command == "untag":
            code = run_tag(session, parsed.photo, parsed.tag, remove=True)
        elif parsed.command == "tags":
            for tag in session.get_all_tags():
                print(tag)
            code = EXIT_OK
        elif parsed.command == "stats":
            print_stats(session.get_stats())
            code = EXIT_OK
        elif parsed.command == "export":
            code = run_export(session, parsed.destination, parsed.dry_run, parsed.yes)
        else:
            code = run_revert(session, settings, parsed.yes)
    except KeyboardInterrupt:
        print("\n\nInterrupted! Saving progress...")
        code = EXIT_INTERRUPTED
    finally:
        session.close()
        settings.save()

    return code


if __name__ == "__main__":
    sys.exit(main())
