import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import config
from .core import DanceLibraryApp
from .exceptions import DanceLibraryError
from .models import FacetFilters, MetadataPatch
from .settings import load_settings
from .storage.vault import LocalVault


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("pymediainfo").setLevel(logging.WARNING)


def _add_meta_args(p: argparse.ArgumentParser):
    p.add_argument("--name", dest="step_name", help="Step name (renames the file to match)")
    p.add_argument("--description")
    p.add_argument("--dance")
    p.add_argument("--style")
    p.add_argument("--class", dest="class_level", help="Class / level")


def _patch_from_args(args) -> MetadataPatch:
    return MetadataPatch(
        step_name=args.step_name,
        description=args.description,
        dance=args.dance,
        style=args.style,
        class_level=args.class_level,
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Dance Library: sidecar-backed video step library")

    p.add_argument("--vault", type=Path, default=Path("."), help="Vault root directory (default: current dir)")
    p.add_argument("--settings", type=Path, default=None, help="JSON settings file")
    p.add_argument("--root-folder", default=None, help="Vault-relative folder to scan (blank = whole vault)")
    p.add_argument("--library-root", default=None, help="Folder organized videos are copied into")
    p.add_argument("--folder-template", default=None, help="e.g. '{dance}/{style}/{class}'")
    p.add_argument("--filename-template", default=None, help="e.g. '{stepName}'")
    p.add_argument("--workers", type=int, default=1, help="Parallel workers for scanning")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("scan", help="List steps, optionally searched, filtered and sorted")
    s.add_argument("--search", default="")
    s.add_argument("--dance", action="append", default=[], help="Allowed dance (repeatable)")
    s.add_argument("--style", action="append", default=[], help="Allowed style (repeatable)")
    s.add_argument("--class", dest="class_level", action="append", default=[], help="Allowed class (repeatable)")
    s.add_argument("--sort", choices=config.SORT_MODES, default=config.SORT_AZ)

    sub.add_parser("facets", help="List the classes, dances and styles in use")

    e = sub.add_parser("edit", help="Update a step's metadata")
    e.add_argument("path", help="Vault-relative video path")
    _add_meta_args(e)

    pl = sub.add_parser("play", help="Record that a step was played")
    pl.add_argument("path")

    d = sub.add_parser("delete", help="Delete a step and its sidecar")
    d.add_argument("path")

    o = sub.add_parser("organize", help="Copy a video into the library structure")
    o.add_argument("path")

    sub.add_parser("organize-all", help="Organize every video not yet in the library")

    i = sub.add_parser("import", help="Import a video from outside the vault and organize it")
    i.add_argument("file", type=Path)
    _add_meta_args(i)

    q = sub.add_parser("quick-import", help="Copy a video into '<library root>/Imported'")
    q.add_argument("file", type=Path)

    return p.parse_args(argv)


def build_app(args) -> DanceLibraryApp:
    settings = load_settings(args.settings)
    # Flags override the settings file
    if args.root_folder is not None:
        settings.root_folder = args.root_folder.strip()
    if args.library_root:
        settings.library_root = args.library_root.strip()
    if args.folder_template:
        settings.organize_template = args.folder_template
    if args.filename_template:
        settings.filename_template = args.filename_template
    return DanceLibraryApp(LocalVault(args.vault), settings, max_workers=args.workers)


def run(args, app: DanceLibraryApp):
    if args.command == "scan":
        app.refresh()
        filters = FacetFilters(classes=args.class_level, dances=args.dance, styles=args.style)
        if filters.is_empty():
            filters = None  # fall back to the configured defaults
        for item in app.query(args.search, filters, args.sort):
            facets = " / ".join(v for v in (item.dance, item.style, item.class_level) if v)
            print(f"{item.path}\t{item.name}\t{facets}\tplayed {item.play_count}")

    elif args.command == "facets":
        app.refresh()
        classes, dances, styles = app.facets()
        print("Classes: " + ", ".join(classes))
        print("Dances:  " + ", ".join(dances))
        print("Styles:  " + ", ".join(styles))

    elif args.command == "edit":
        print(app.save_meta(args.path, _patch_from_args(args)))

    elif args.command == "play":
        print(app.record_play(args.path))

    elif args.command == "delete":
        app.delete_step(args.path)

    elif args.command == "organize":
        print(app.organize(args.path))

    elif args.command == "organize-all":
        for dest in app.organize_pending():
            print(dest)

    elif args.command == "import":
        print(app.import_video(args.file, _patch_from_args(args)))

    elif args.command == "quick-import":
        print(app.quick_import(args.file).path)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        app = build_app(args)
        run(args, app)
    except DanceLibraryError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error.")
        sys.exit(1)


if __name__ == "__main__":
    main()
