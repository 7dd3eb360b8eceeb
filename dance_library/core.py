import logging
from pathlib import Path
from typing import List, Optional

from . import config
from .exceptions import DanceLibraryError, FileOperationError, StepNotFoundError
from .metadata.extract import MediaProbe
from .metadata.sync import read_sidecar, upsert_sidecar_metadata
from .models import FacetFilters, MediaItem, MetadataPatch
from .organization.organizer import Organizer, now_millis
from .organization.paths import sidecar_path_for
from .query import facet_values, query
from .scanning.scanner import VaultScanner, is_video, merge_items
from .settings import LibrarySettings
from .storage.vault import Vault


class DanceLibraryApp:
    """
    Operation boundary for the library. Every mutating call logs its outcome,
    updates `items` incrementally and lets library errors reach the caller.
    """
    def __init__(self, vault: Vault, settings: Optional[LibrarySettings] = None,
                 probe: Optional[MediaProbe] = None, max_workers: int = 1):
        self.vault = vault
        self.settings = settings or LibrarySettings()
        self.scanner = VaultScanner(vault)
        self.organizer = Organizer(vault, self.settings, probe)
        self.max_workers = max_workers
        self.items: List[MediaItem] = []

    # --- Reading ---

    def refresh(self) -> List[MediaItem]:
        """Full re-scan of the configured root folder."""
        logging.info(f"Scanning {self.settings.root_folder or 'whole vault'}...")
        self.items = self.scanner.scan(self.settings.root_folder, max_workers=self.max_workers)
        return self.items

    def refresh_paths(self, *paths: str) -> List[MediaItem]:
        """Incremental re-scan of the given paths; vanished ones drop out."""
        refreshed, removed = [], []
        for path in paths:
            item = self.scanner.scan_path(path, self.settings.root_folder)
            if item is None:
                removed.append(path)
            else:
                refreshed.append(item)
        self.items = merge_items(self.items, refreshed, removed)
        return self.items

    def query(self, search_text: str = "", filters: Optional[FacetFilters] = None,
              sort_mode: str = config.SORT_AZ) -> List[MediaItem]:
        if filters is None:
            filters = self.settings.default_filters()
        return query(self.items, search_text, filters, sort_mode)

    def facets(self):
        return facet_values(self.items)

    # --- Editing ---

    def save_meta(self, path: str, patch: MetadataPatch) -> str:
        """Writes `patch` to the step's sidecar. Returns the (possibly renamed) video path."""
        try:
            new_path = upsert_sidecar_metadata(self.vault, path, patch)
        except DanceLibraryError as e:
            logging.error(f"Failed to update step: {e}")
            current = getattr(e, "path", None) or path
            self.refresh_paths(*dict.fromkeys([path, current]))
            raise

        logging.info("Step updated")
        self.refresh_paths(*dict.fromkeys([path, new_path]))
        return new_path

    def record_play(self, path: str) -> str:
        """Bumps the play counter and last-played time of a step."""
        try:
            rec = read_sidecar(self.vault, path)
        except (OSError, UnicodeDecodeError) as e:
            raise FileOperationError(f"Failed to read sidecar of {path}: {e}") from e
        count = rec.play_count if rec and rec.play_count is not None else 0
        return self.save_meta(path, MetadataPatch(play_count=max(0, count) + 1,
                                                  last_played_at=now_millis()))

    def delete_step(self, path: str):
        """Deletes a video and its sidecar (sidecar first)."""
        entry = self.vault.get_by_path(path)
        if entry is None or entry.is_folder:
            raise StepNotFoundError(f"File not found: {path}")

        md_path = sidecar_path_for(path)
        try:
            if self.vault.get_by_path(md_path) is not None:
                self.vault.delete(md_path)
            self.vault.delete(path)
        except OSError as e:
            logging.error(f"Failed to delete step {path}: {e}")
            raise FileOperationError(f"Failed to delete step: {e}") from e

        logging.info("Step deleted")
        self.refresh_paths(path)

    # --- Organizing ---

    def organize(self, path: str) -> str:
        dest = self.organizer.organize(path)
        self.refresh_paths(dest)
        return dest

    def import_video(self, source_file: Path, meta: Optional[MetadataPatch] = None) -> str:
        dest = self.organizer.import_video(source_file, meta)
        logging.info("Video imported.")
        self.refresh_paths(dest)
        return dest

    def quick_import(self, source_file: Path) -> MediaItem:
        item = self.organizer.quick_import(source_file)
        self.refresh_paths(item.path)
        return item

    def organize_pending(self) -> List[str]:
        """Organizes every scanned video that is not in the library yet."""
        if not self.items:
            self.refresh()
        destinations = self.organizer.organize_pending(self.items)
        self.refresh_paths(*destinations)
        return destinations

    def handle_new_file(self, path: str) -> Optional[str]:
        """
        Hook for a file watcher: organizes a newly created video when
        auto-organize is on and it is not already in the library.
        """
        entry = self.vault.get_by_path(path)
        if not self.settings.auto_organize_new or entry is None or not is_video(entry):
            return None
        if self.organizer.is_organized(entry.path):
            return None
        try:
            return self.organize(entry.path)
        except DanceLibraryError as e:
            logging.error(f"Auto-organize failed for {path}: {e}")
            return None
