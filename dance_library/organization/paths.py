"""
Path helpers shared by the sync and organize code: slugs, templates and
collision-free names. Everything except ensure_folder/unique_path is pure.
"""
import re
import unicodedata
from typing import Dict, Optional

from .. import config
from ..storage.vault import Vault

TEMPLATE_TOKEN = re.compile(r"\{(\w+)\}")


def slugify(text: Optional[str]) -> str:
    """'Cross Body Lead (Señorita)!' -> 'cross-body-lead-senorita'"""
    s = (text or "").strip()
    if not s:
        return ""
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-zA-Z0-9]+", "-", s)
    return s.strip("-").lower()


def apply_template(template: str, values: Dict[str, str]) -> str:
    """Replaces {token} placeholders; unknown tokens become empty."""
    return TEMPLATE_TOKEN.sub(lambda m: values.get(m.group(1)) or "", template or "")


def normalize_path(path: str) -> str:
    p = (path or "").replace("\\", "/")
    p = re.sub(r"/+", "/", p)
    return p.strip("/")


def join_path(*parts: str) -> str:
    return normalize_path("/".join(p for p in parts if p))


def split_name(path: str):
    """Returns (parent, basename, extension) of a vault path; extension has no dot."""
    parent, _, name = path.rpartition("/")
    if "." in name.lstrip("."):
        base, _, ext = name.rpartition(".")
        return parent, base, ext
    return parent, name, ""


def sidecar_path_for(media_path: str) -> str:
    parent, base, _ = split_name(media_path)
    return join_path(parent, base + config.SIDECAR_EXT)


def unique_path(vault: Vault, path: str) -> str:
    """
    Returns `path` if nothing exists there, otherwise the first free
    '<base> N.<ext>' with N counting up from 2.
    """
    if vault.get_by_path(path) is None:
        return path
    parent, base, ext = split_name(path)
    suffix = f".{ext}" if ext else ""
    counter = 2
    while True:
        candidate = join_path(parent, f"{base} {counter}{suffix}")
        if vault.get_by_path(candidate) is None:
            return candidate
        counter += 1


def matches_slug(basename: str, slug: str) -> bool:
    """True if `basename` is `slug` or a numbered variant of it from unique_path ('slug 2')."""
    return bool(slug) and re.fullmatch(rf"{re.escape(slug)}( \d+)?", basename) is not None


def ensure_folder(vault: Vault, folder: str):
    """Creates every missing folder along `folder`. Existing folders are fine."""
    current = ""
    for part in normalize_path(folder).split("/"):
        if not part:
            continue
        current = f"{current}/{part}" if current else part
        if vault.get_by_path(current) is None:
            try:
                vault.create_folder(current)
            except FileExistsError:
                pass
