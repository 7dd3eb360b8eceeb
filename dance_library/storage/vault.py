"""
Vault access: the file tree that is the library's only durable store.
"""
import os
import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import List, Optional

from ..models import VaultEntry


class Vault:
    """
    The capabilities the library needs from its host file tree.

    Paths are vault-relative POSIX strings ("Dance/Salsa/step.mp4"). Mutating
    calls raise OSError subclasses on failure (FileExistsError when a target
    is taken, FileNotFoundError when a source is gone).
    """

    def list_files(self) -> List[VaultEntry]:
        raise NotImplementedError

    def list_children(self, folder: str) -> List[VaultEntry]:
        raise NotImplementedError

    def get_by_path(self, path: str) -> Optional[VaultEntry]:
        raise NotImplementedError

    def read_text(self, path: str) -> str:
        raise NotImplementedError

    def write_text(self, path: str, content: str, create_if_missing: bool = True):
        raise NotImplementedError

    def read_binary(self, path: str) -> bytes:
        raise NotImplementedError

    def write_binary(self, path: str, content: bytes):
        raise NotImplementedError

    def copy(self, path: str, new_path: str):
        raise NotImplementedError

    def rename(self, path: str, new_path: str):
        raise NotImplementedError

    def delete(self, path: str):
        raise NotImplementedError

    def create_folder(self, path: str):
        raise NotImplementedError

    def local_path(self, path: str) -> Path:
        raise NotImplementedError


class LocalVault(Vault):
    """Vault backed by a directory on the local disk."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise NotADirectoryError(f"Vault root {self.root} is not a directory.")

    def local_path(self, path: str) -> Path:
        rel = PurePosixPath(path.replace("\\", "/").strip("/"))
        if ".." in rel.parts:
            raise ValueError(f"Path escapes the vault: {path}")
        return self.root.joinpath(*rel.parts)

    def _entry(self, rel: str, st: os.stat_result, is_folder: bool) -> VaultEntry:
        # st_birthtime only exists on some platforms; mtime is the closest stand-in
        created = getattr(st, "st_birthtime", None) or st.st_mtime
        return VaultEntry(
            path=rel,
            is_folder=is_folder,
            size_bytes=0 if is_folder else st.st_size,
            ctime=int(created * 1000),
            mtime=int(st.st_mtime * 1000),
        )

    def _rel(self, p: Path) -> str:
        return p.relative_to(self.root).as_posix()

    def list_files(self) -> List[VaultEntry]:
        """Depth-first walk with os.scandir. Hidden entries (".trash", ".obsidian") are skipped."""
        files: List[VaultEntry] = []
        stack = [self.root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Cannot list folder: {current}")
                continue

            for e in entries:
                if e.name.startswith("."):
                    continue
                try:
                    if e.is_dir(follow_symlinks=False):
                        stack.append(Path(e.path))
                    elif e.is_file(follow_symlinks=False):
                        files.append(self._entry(self._rel(Path(e.path)), e.stat(), False))
                except FileNotFoundError:
                    # Removed between listing and stat
                    continue

        files.sort(key=lambda f: f.path)
        return files

    def list_children(self, folder: str) -> List[VaultEntry]:
        base = self.local_path(folder)
        children: List[VaultEntry] = []
        try:
            with os.scandir(base) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError:
            return children

        for e in entries:
            if e.name.startswith("."):
                continue
            try:
                is_folder = e.is_dir(follow_symlinks=False)
                children.append(self._entry(self._rel(Path(e.path)), e.stat(), is_folder))
            except FileNotFoundError:
                continue
        return children

    def get_by_path(self, path: str) -> Optional[VaultEntry]:
        p = self.local_path(path)
        try:
            st = p.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        return self._entry(self._rel(p), st, p.is_dir())

    def read_text(self, path: str) -> str:
        return self.local_path(path).read_text(encoding="utf-8")

    def write_text(self, path: str, content: str, create_if_missing: bool = True):
        p = self.local_path(path)
        if not create_if_missing and not p.exists():
            raise FileNotFoundError(f"No such file in vault: {path}")
        with p.open("w", encoding="utf-8", newline="") as f:
            f.write(content)

    def read_binary(self, path: str) -> bytes:
        return self.local_path(path).read_bytes()

    def write_binary(self, path: str, content: bytes):
        """Creates a new binary file. An existing file is never overwritten."""
        with self.local_path(path).open("xb") as f:
            f.write(content)

    def copy(self, path: str, new_path: str):
        src = self.local_path(path)
        dest = self.local_path(new_path)
        if dest.exists():
            raise FileExistsError(f"Destination already exists: {new_path}")
        shutil.copy2(str(src), str(dest))

    def rename(self, path: str, new_path: str):
        src = self.local_path(path)
        dest = self.local_path(new_path)
        if dest.exists():
            raise FileExistsError(f"Destination already exists: {new_path}")
        os.rename(src, dest)

    def delete(self, path: str):
        p = self.local_path(path)
        if p.is_dir():
            p.rmdir()
        else:
            p.unlink()

    def create_folder(self, path: str):
        self.local_path(path).mkdir()
