import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional

from tqdm import tqdm

from .. import config
from ..exceptions import DanceLibraryError, OrganizeError, StepNotFoundError, UnsupportedMediaError
from ..metadata.extract import MediaProbe
from ..metadata.sidecar import serialize_record, with_tag_line
from ..metadata.sync import read_sidecar
from ..models import MediaItem, MetadataPatch, SidecarRecord
from ..scanning.scanner import find_thumbnail
from ..settings import LibrarySettings
from ..storage.vault import Vault
from .paths import (apply_template, ensure_folder, join_path, normalize_path,
                    sidecar_path_for, slugify, split_name, unique_path)

# Key order of a sidecar written by the organizer or importer
FRESH_KEY_ORDER = [
    config.KEY_STEP_NAME,
    config.KEY_DESCRIPTION,
    config.KEY_CLASS,
    config.KEY_CLASS_LEVEL,
    config.KEY_DANCE,
    config.KEY_STYLE,
    config.KEY_DANCE_STYLE,
    config.KEY_PLAY_COUNT,
    config.KEY_LAST_PLAYED_AT,
    config.KEY_THUMBNAIL,
    config.KEY_DURATION,
]


def now_millis() -> int:
    return int(time.time() * 1000)


def fresh_sidecar(step_name: str,
                  description: Optional[str] = None,
                  dance: Optional[str] = None,
                  style: Optional[str] = None,
                  class_level: Optional[str] = None,
                  thumbnail: Optional[str] = None,
                  duration: Optional[float] = None) -> SidecarRecord:
    """A new sidecar with every field present (blank where unknown) and the tag line."""
    return SidecarRecord(
        step_name=step_name,
        description=description or "",
        dance=dance or "",
        style=style or "",
        class_level=class_level or "",
        play_count=0,
        extras={
            config.KEY_LAST_PLAYED_AT: "",
            config.KEY_THUMBNAIL: thumbnail or "",
            config.KEY_DURATION: duration if duration is not None else "",
        },
        key_order=list(FRESH_KEY_ORDER),
        body=with_tag_line("", dance),
    )


def has_intake_extension(ext: str) -> bool:
    return f".{ext.lower().lstrip('.')}" in config.IMPORT_EXTS


class Organizer:
    """
    Copies videos into the library tree described by the folder and filename
    templates, and stages new imports.
    """
    def __init__(self, vault: Vault, settings: LibrarySettings, probe: Optional[MediaProbe] = None):
        self.vault = vault
        self.settings = settings
        self.probe = probe or MediaProbe()

    def destination_folder(self, rec: SidecarRecord) -> str:
        """'{dance}/{style}/{class}' -> 'Dance/salsa/on1/beginner'"""
        rel_folder = normalize_path(apply_template(self.settings.organize_template, self._tokens(rec)))
        return join_path(self.settings.library_root, rel_folder)

    def organize(self, media_path: str) -> str:
        """
        Copies a video into the library and returns its new path.
        The source is left where it is. A sidecar already present at the
        destination is never overwritten.
        """
        entry = self.vault.get_by_path(media_path)
        if entry is None or entry.is_folder:
            raise StepNotFoundError(f"File not found: {media_path}")
        ext = entry.extension
        if not has_intake_extension(ext):
            raise UnsupportedMediaError(f"Unsupported video format: {media_path}")

        try:
            rec = read_sidecar(self.vault, entry.path) or SidecarRecord()
            if not (rec.step_name and rec.step_name.strip()):
                rec.step_name = entry.basename

            dest_folder = self.destination_folder(rec)
            ensure_folder(self.vault, dest_folder)

            base_name = (apply_template(self.settings.filename_template, self._tokens(rec)).replace("/", "-")
                         or slugify(entry.basename)
                         or f"video-{now_millis()}")
            dest = unique_path(self.vault, join_path(dest_folder, f"{base_name}.{ext}"))

            self.vault.copy(entry.path, dest)
            thumbnail = self._copy_thumbnail(entry.path, dest)

            dest_md = sidecar_path_for(dest)
            if self.vault.get_by_path(dest_md) is None:
                duration = self.probe.get_duration(self.vault.local_path(dest))
                fresh = fresh_sidecar(
                    rec.step_name,
                    description=rec.description,
                    dance=rec.dance,
                    style=rec.style,
                    class_level=rec.class_level,
                    thumbnail=thumbnail,
                    duration=duration,
                )
                self.vault.write_text(dest_md, serialize_record(fresh))
        except (OSError, UnicodeDecodeError) as e:
            logging.error(f"Failed to organize {media_path}: {e}")
            raise OrganizeError(f"Failed to organize {media_path}: {e}") from e

        logging.info(f"Organized: {dest}")
        return dest

    def import_video(self, source_file: Path, meta: Optional[MetadataPatch] = None) -> str:
        """
        Brings a file from outside the vault into the library.

        The file is staged under the staging folder with a sidecar carrying
        `meta`, organized from there, and the staged copies are removed
        whether or not organizing worked.
        """
        meta = meta or MetadataPatch()
        if not has_intake_extension(source_file.suffix):
            raise UnsupportedMediaError(f"Unsupported video format: {source_file.name}")

        staged = join_path(config.STAGING_FOLDER, f"{now_millis()}-{source_file.name}")
        staged_md = sidecar_path_for(staged)
        try:
            ensure_folder(self.vault, config.STAGING_FOLDER)
            self.vault.write_binary(staged, source_file.read_bytes())

            rec = fresh_sidecar(
                (meta.step_name or "").strip() or source_file.stem,
                description=meta.description,
                dance=meta.dance,
                style=meta.style,
                class_level=meta.class_level,
            )
            self.vault.write_text(staged_md, serialize_record(rec))
            return self.organize(staged)
        except OSError as e:
            logging.error(f"Import failed for {source_file}: {e}")
            raise OrganizeError(f"Import failed: {e}") from e
        finally:
            self._remove_quietly(staged_md)
            self._remove_quietly(staged)

    def quick_import(self, source_file: Path) -> MediaItem:
        """Copies a file into '<library root>/Imported' as-is, without a sidecar."""
        if not has_intake_extension(source_file.suffix):
            raise UnsupportedMediaError(f"Unsupported video format: {source_file.name}")

        ext = source_file.suffix.lstrip(".") or "mp4"
        dest_folder = join_path(self.settings.library_root, config.QUICK_IMPORT_FOLDER)
        safe = slugify(source_file.stem) or f"video-{now_millis()}"
        try:
            ensure_folder(self.vault, dest_folder)
            dest = unique_path(self.vault, join_path(dest_folder, f"{safe}.{ext}"))
            self.vault.write_binary(dest, source_file.read_bytes())
        except OSError as e:
            logging.error(f"Import failed for {source_file}: {e}")
            raise OrganizeError(f"Import failed: {e}") from e

        logging.info(f"Imported: {dest}")
        _, basename, _ = split_name(dest)
        return MediaItem(
            path=dest,
            basename=basename,
            extension=ext,
            name=source_file.stem,
            description="",
            added_at=now_millis(),
        )

    def is_organized(self, path: str) -> bool:
        """True for files already inside the library root or waiting in staging."""
        return any(path.startswith(f"{normalize_path(folder)}/")
                   for folder in (self.settings.library_root, config.STAGING_FOLDER))

    def organize_pending(self, items: Iterable[MediaItem]) -> List[str]:
        """Organizes every item that is not in the library yet. Failures are logged and skipped."""
        pending = [item for item in items if not self.is_organized(item.path)]
        if not pending:
            logging.info("No videos need organizing.")
            return []

        logging.info(f"Organizing {len(pending)} videos into {self.settings.library_root}...")
        destinations = []
        for item in tqdm(pending, desc="Organizing"):
            try:
                destinations.append(self.organize(item.path))
            except DanceLibraryError as e:
                logging.error(f"Skipping {item.path}: {e}")
        return destinations

    def _tokens(self, rec: SidecarRecord) -> dict:
        return {
            "dance": slugify(rec.dance),
            "style": slugify(rec.style),
            "class": slugify(rec.class_level),
            "stepName": slugify(rec.step_name),
        }

    def _copy_thumbnail(self, source_path: str, dest: str) -> Optional[str]:
        """Copies the source's thumbnail next to `dest` under the same basename, if that name is free."""
        source = self.vault.get_by_path(source_path)
        thumb = find_thumbnail(source, self.vault.list_children(source.parent)) if source else None
        if not thumb:
            return None

        parent, dest_base, _ = split_name(dest)
        _, _, thumb_ext = split_name(thumb)
        thumb_dest = join_path(parent, f"{dest_base}.{thumb_ext}")
        if self.vault.get_by_path(thumb_dest) is not None:
            logging.debug(f"Thumbnail {thumb_dest} already exists; not copying {thumb}")
            return thumb_dest
        self.vault.copy(thumb, thumb_dest)
        return thumb_dest

    def _remove_quietly(self, path: str):
        try:
            if self.vault.get_by_path(path) is not None:
                self.vault.delete(path)
        except OSError as e:
            logging.warning(f"Could not remove staged file {path}: {e}")
