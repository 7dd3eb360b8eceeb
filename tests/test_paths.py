import pytest

from dance_library.organization.paths import (
    apply_template, ensure_folder, join_path, matches_slug, normalize_path,
    sidecar_path_for, slugify, split_name, unique_path,
)


@pytest.mark.parametrize("text,expected", [
    ("New Name!", "new-name"),
    ("  Cross Body Lead  ", "cross-body-lead"),
    ("Señorita Turn", "senorita-turn"),
    ("Crème brûlée", "creme-brulee"),
    ("a___b---c", "a-b-c"),
    ("!!!", ""),
    ("", ""),
    (None, ""),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_apply_template_unknown_tokens_are_empty():
    assert apply_template("{dance}/{style}/{nope}", {"dance": "salsa", "style": "on1"}) == "salsa/on1/"


def test_normalize_and_join():
    assert normalize_path("/Dance//salsa///on1/") == "Dance/salsa/on1"
    assert join_path("Dance", "", "salsa") == "Dance/salsa"


def test_split_name_and_sidecar_path():
    assert split_name("Dance/a.b.mp4") == ("Dance", "a.b", "mp4")
    assert split_name("clip.mp4") == ("", "clip", "mp4")
    assert sidecar_path_for("Dance/Salsa/step.MP4") == "Dance/Salsa/step.md"
    assert sidecar_path_for("step.mp4") == "step.md"


def test_unique_path_counts_up_from_two(vault, make_file):
    assert unique_path(vault, "Dance/step.mp4") == "Dance/step.mp4"

    expected = ["Dance/step.mp4", "Dance/step 2.mp4", "Dance/step 3.mp4", "Dance/step 4.mp4"]
    produced = []
    for _ in range(4):
        path = unique_path(vault, "Dance/step.mp4")
        make_file(path)
        produced.append(path)
    assert produced == expected


def test_ensure_folder_is_idempotent(vault):
    ensure_folder(vault, "Dance/salsa/on1")
    ensure_folder(vault, "Dance/salsa/on1/")
    assert (vault.root / "Dance" / "salsa" / "on1").is_dir()


@pytest.mark.parametrize("basename,slug,expected", [
    ("new-name", "new-name", True),
    ("new-name 2", "new-name", True),
    ("new-name 12", "new-name", True),
    ("new-name-2", "new-name", False),
    ("new-name 2x", "new-name", False),
    ("new-names", "new-name", False),
    ("anything", "", False),
])
def test_matches_slug(basename, slug, expected):
    assert matches_slug(basename, slug) is expected
