from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class VaultEntry:
    """
    A file or folder in the vault, addressed by its vault-relative POSIX path.
    """
    path: str
    is_folder: bool = False
    size_bytes: int = 0
    ctime: int = 0          # epoch millis
    mtime: int = 0          # epoch millis

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def parent(self) -> str:
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""

    @property
    def basename(self) -> str:
        """File name without its extension."""
        name = self.name
        if self.is_folder or "." not in name.lstrip("."):
            return name
        return name.rsplit(".", 1)[0]

    @property
    def extension(self) -> str:
        """Extension without the dot, as stored (case preserved)."""
        name = self.name
        if self.is_folder or "." not in name.lstrip("."):
            return ""
        return name.rsplit(".", 1)[1]


@dataclass
class MediaItem:
    """
    One video as seen by a scan. Rebuilt on every scan, never persisted.
    """
    path: str
    basename: str
    extension: str
    name: str

    description: Optional[str] = None
    dance: Optional[str] = None         # first folder level
    style: Optional[str] = None         # second folder level
    class_level: Optional[str] = None   # third folder level

    thumbnail_path: Optional[str] = None
    play_count: int = 0
    last_played_at: Optional[int] = None  # epoch millis
    added_at: int = 0                     # epoch millis


@dataclass
class SidecarRecord:
    """
    Parsed content of a `<basename>.md` sidecar.

    Known fields are typed; every other frontmatter key lives in `extras`
    and is written back untouched. `key_order` remembers the order keys had
    in the file so rewrites stay close to the original.
    """
    step_name: Optional[str] = None
    description: Optional[str] = None
    dance: Optional[str] = None
    style: Optional[str] = None
    class_level: Optional[str] = None
    play_count: Optional[int] = None
    last_played_at: Optional[int] = None

    extras: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)
    body: str = ""


@dataclass
class MetadataPatch:
    """
    Partial metadata update. None means "leave as is"; an empty string
    clears the field.
    """
    step_name: Optional[str] = None
    description: Optional[str] = None
    dance: Optional[str] = None
    style: Optional[str] = None
    class_level: Optional[str] = None
    play_count: Optional[int] = None
    last_played_at: Optional[int] = None


@dataclass
class FacetFilters:
    """Allowed values per facet. An empty collection means no constraint."""
    classes: List[str] = field(default_factory=list)
    dances: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.classes or self.dances or self.styles)
