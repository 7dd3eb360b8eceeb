import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional

from .. import config
from ..models import MediaItem, SidecarRecord, VaultEntry
from ..metadata.sidecar import parse_record
from ..organization.paths import normalize_path
from ..storage.vault import Vault


def root_prefix(root_folder: Optional[str]) -> str:
    """'Dance' -> 'Dance/'; empty means the whole vault."""
    root = normalize_path((root_folder or "").strip())
    return f"{root}/" if root else ""


def is_video(entry: VaultEntry) -> bool:
    return not entry.is_folder and f".{entry.extension.lower()}" in config.VIDEO_EXTS


def find_thumbnail(entry: VaultEntry, siblings: Iterable[VaultEntry]) -> Optional[str]:
    """First sibling image sharing the video's basename (case-insensitive)."""
    base = entry.basename.lower()
    for s in siblings:
        if s.is_folder or s.path == entry.path:
            continue
        if f".{s.extension.lower()}" in config.IMAGE_EXTS and s.basename.lower() == base:
            return s.path
    return None


def merge_items(items: Iterable[MediaItem],
                refreshed: Iterable[MediaItem],
                removed_paths: Iterable[str] = ()) -> List[MediaItem]:
    """
    Incremental re-scan: drops `removed_paths`, replaces or adds the
    refreshed items, and returns the list in path order again.
    """
    by_path = {item.path: item for item in items}
    for path in removed_paths:
        by_path.pop(path, None)
    for item in refreshed:
        by_path[item.path] = item
    return sorted(by_path.values(), key=lambda i: i.path)


class VaultScanner:
    def __init__(self, vault: Vault):
        self.vault = vault

    def scan(self, root_folder: Optional[str] = None, max_workers: int = 1) -> List[MediaItem]:
        """
        Builds one MediaItem per video under `root_folder`, sorted by path.

        One unreadable sidecar or a file deleted mid-scan never fails the
        whole listing; the affected item just loses its optional fields
        (or is left out if the video itself is gone).
        """
        prefix = root_prefix(root_folder)
        candidates = [f for f in self.vault.list_files()
                      if is_video(f) and f.path.startswith(prefix)]

        if max_workers <= 1:
            items = self._scan_sequential(candidates, prefix)
        else:
            items = self._scan_parallel(candidates, prefix, max_workers)

        result = sorted((i for i in items if i is not None), key=lambda i: i.path)
        logging.info(f"Scan complete. Found {len(result)} videos.")
        return result

    def scan_path(self, path: str, root_folder: Optional[str] = None) -> Optional[MediaItem]:
        """Builds the item for a single video, or None if it is not (or no longer) one."""
        prefix = root_prefix(root_folder)
        entry = self.vault.get_by_path(path)
        if entry is None or not is_video(entry) or not entry.path.startswith(prefix):
            return None
        return self._build_item(entry, prefix)

    def _scan_sequential(self, candidates: List[VaultEntry], prefix: str) -> List[Optional[MediaItem]]:
        items: List[Optional[MediaItem]] = []
        for entry in candidates:
            try:
                items.append(self._build_item(entry, prefix))
            except Exception as e:
                logging.error(f"Failed to scan {entry.path}: {e}")
        return items

    def _scan_parallel(self, candidates: List[VaultEntry], prefix: str,
                       max_workers: int) -> List[Optional[MediaItem]]:
        logging.info(f"Parallel scan: {len(candidates)} videos, {max_workers} workers")
        items: List[Optional[MediaItem]] = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_entry = {executor.submit(self._build_item, f, prefix): f for f in candidates}
            for future in as_completed(future_to_entry):
                entry = future_to_entry[future]
                try:
                    items.append(future.result())
                except Exception as e:
                    logging.error(f"Failed to scan {entry.path}: {e}")
        return items

    def _build_item(self, entry: VaultEntry, prefix: str) -> Optional[MediaItem]:
        # Folders under the root, outermost first: dance / style / class
        parts = entry.path[len(prefix):].split("/")
        item = MediaItem(
            path=entry.path,
            basename=entry.basename,
            extension=entry.extension,
            name=entry.basename,
            dance=parts[0] if len(parts) > 1 else None,
            style=parts[1] if len(parts) > 2 else None,
            class_level=parts[2] if len(parts) > 3 else None,
            added_at=entry.ctime,
        )

        siblings = self.vault.list_children(entry.parent)
        if not any(s.path == entry.path for s in siblings):
            logging.debug(f"Video vanished during scan: {entry.path}")
            return None

        item.thumbnail_path = find_thumbnail(entry, siblings)

        sidecar_name = entry.basename + config.SIDECAR_EXT
        sidecar = next((s for s in siblings if not s.is_folder and s.name == sidecar_name), None)
        if sidecar is not None:
            rec = self._read_sidecar(sidecar.path)
            if rec is not None:
                self._apply_sidecar(item, rec)
        return item

    def _read_sidecar(self, path: str) -> Optional[SidecarRecord]:
        try:
            return parse_record(self.vault.read_text(path))
        except FileNotFoundError:
            logging.debug(f"Sidecar vanished during scan: {path}")
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"Failed to read sidecar {path}: {e}")
        return None

    def _apply_sidecar(self, item: MediaItem, rec: SidecarRecord):
        """Non-empty sidecar values win over what the folder layout suggested."""
        if rec.step_name and rec.step_name.strip():
            item.name = rec.step_name.strip()
        if rec.description and rec.description.strip():
            item.description = rec.description.strip()
        if rec.dance and rec.dance.strip():
            item.dance = rec.dance.strip()
        if rec.style and rec.style.strip():
            item.style = rec.style.strip()
        if rec.class_level and rec.class_level.strip():
            item.class_level = rec.class_level.strip()

        if rec.play_count is not None:
            item.play_count = max(0, rec.play_count)
        if rec.last_played_at is not None:
            item.last_played_at = rec.last_played_at
