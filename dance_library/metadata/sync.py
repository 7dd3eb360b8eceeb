"""
Keeps a video and its sidecar paired while metadata changes.

The order of operations is fixed (rename video -> rename sidecar -> write
sidecar -> drop orphan) so that a failure part way leaves two files with
mismatched names rather than lost metadata.
"""
import logging
from typing import Optional

from ..exceptions import MetadataUpdateError
from ..models import MetadataPatch, SidecarRecord
from ..organization.paths import (join_path, matches_slug, sidecar_path_for, slugify,
                                  split_name, unique_path)
from ..storage.vault import Vault
from .sidecar import apply_patch, parse_record, serialize_record


def read_sidecar(vault: Vault, media_path: str) -> Optional[SidecarRecord]:
    """Returns the parsed sidecar of `media_path`, or None if it has none."""
    md_path = sidecar_path_for(media_path)
    entry = vault.get_by_path(md_path)
    if entry is None or entry.is_folder:
        return None
    return parse_record(vault.read_text(md_path))


def upsert_sidecar_metadata(vault: Vault, media_path: str, patch: MetadataPatch) -> str:
    """
    Merges `patch` into the video's sidecar, renaming the video (and sidecar)
    when the step name changes. Returns the video's path after the call;
    callers must re-key on it.

    A video that no longer exists is a silent no-op.
    """
    entry = vault.get_by_path(media_path)
    if entry is None or entry.is_folder:
        logging.debug(f"Skipping metadata update, video not found: {media_path}")
        return media_path

    current_path = entry.path
    old_md_path = sidecar_path_for(current_path)
    orphan_md_path: Optional[str] = None

    try:
        # 1. Rename to match the step name
        target_slug = slugify(patch.step_name)
        if target_slug and not matches_slug(entry.basename, target_slug):
            parent, _, ext = split_name(current_path)
            new_path = unique_path(vault, join_path(parent, f"{target_slug}.{ext}" if ext else target_slug))
            vault.rename(current_path, new_path)
            logging.info(f"Renamed {current_path} -> {new_path}")
            current_path = new_path

            new_md_path = sidecar_path_for(new_path)
            if vault.get_by_path(old_md_path) is not None:
                if vault.get_by_path(new_md_path) is None:
                    vault.rename(old_md_path, new_md_path)
                else:
                    # Never overwrite; the old sidecar stays as a duplicate
                    logging.warning(
                        f"Sidecar {new_md_path} already exists; keeping {old_md_path} in place"
                    )
                    old_md_path = None
            if old_md_path is not None and old_md_path != new_md_path:
                orphan_md_path = old_md_path

        # 2. Merge and write
        md_path = sidecar_path_for(current_path)
        existing = vault.get_by_path(md_path)
        rec = parse_record(vault.read_text(md_path)) if existing is not None else SidecarRecord()
        apply_patch(rec, patch)
        vault.write_text(md_path, serialize_record(rec), create_if_missing=True)

        # 3. Drop the old sidecar, but only once the new one is on disk
        if (orphan_md_path
                and vault.get_by_path(orphan_md_path) is not None
                and vault.get_by_path(md_path) is not None):
            vault.delete(orphan_md_path)
            logging.debug(f"Removed orphaned sidecar {orphan_md_path}")

    except (OSError, UnicodeDecodeError) as e:
        logging.error(f"Failed to update {media_path}: {e}")
        raise MetadataUpdateError(f"Failed to update step: {e}", path=current_path) from e

    return current_path
