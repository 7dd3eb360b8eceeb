import pytest

from dance_library.storage.vault import LocalVault


class StubProbe:
    """Stands in for MediaProbe so tests never shell out to mediainfo/exiftool."""
    def __init__(self, duration=None):
        self.duration = duration
        self.calls = []

    def get_duration(self, path):
        self.calls.append(path)
        return self.duration


@pytest.fixture
def vault(tmp_path):
    """Returns a LocalVault rooted in an empty temporary folder."""
    root = tmp_path / "vault"
    root.mkdir()
    return LocalVault(root)


@pytest.fixture
def make_file(vault):
    """Creates a file (and its folders) inside the vault; returns the vault path."""
    def _make(rel_path, content=b"video-bytes"):
        p = vault.root / rel_path
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            p.write_text(content, encoding="utf-8")
        else:
            p.write_bytes(content)
        return rel_path
    return _make


@pytest.fixture
def probe():
    return StubProbe(duration=12.5)
