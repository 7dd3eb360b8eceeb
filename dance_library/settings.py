"""
User-facing library settings.

Settings are a plain value handed to each component; nothing here is global.
"""
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .models import FacetFilters


def parse_csv(value: Optional[str]) -> List[str]:
    """Splits a comma-separated setting into unique, sorted, non-empty values."""
    items = {part.strip() for part in (value or "").split(",")}
    return sorted(item for item in items if item)


@dataclass
class LibrarySettings:
    root_folder: str = ""                   # where to scan; empty scans the whole vault
    library_root: str = config.DEFAULT_LIBRARY_ROOT
    organize_template: str = config.DEFAULT_FOLDER_TEMPLATE
    filename_template: str = config.DEFAULT_FILENAME_TEMPLATE
    auto_organize_new: bool = True

    # Comma-separated defaults for the library filters
    default_filter_classes: str = ""
    default_filter_dances: str = ""
    default_filter_styles: str = ""

    def __post_init__(self):
        # Blank values fall back to the defaults, as the settings form does
        self.root_folder = (self.root_folder or "").strip()
        self.library_root = (self.library_root or "").strip() or config.DEFAULT_LIBRARY_ROOT
        self.organize_template = self.organize_template or config.DEFAULT_FOLDER_TEMPLATE
        self.filename_template = self.filename_template or config.DEFAULT_FILENAME_TEMPLATE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibrarySettings":
        """Builds settings from saved data, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logging.debug(f"Ignoring unknown settings: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def default_filters(self) -> FacetFilters:
        return FacetFilters(
            classes=parse_csv(self.default_filter_classes),
            dances=parse_csv(self.default_filter_dances),
            styles=parse_csv(self.default_filter_styles),
        )


def load_settings(path: Optional[Path]) -> LibrarySettings:
    """Loads settings from a JSON file; a missing file gives the defaults."""
    if not path or not path.exists():
        return LibrarySettings()
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object.")
    return LibrarySettings.from_dict(data)
